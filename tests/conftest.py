"""Shared test fixtures for release-sync."""

from __future__ import annotations

import pytest
import respx

from release_sync.client import GitHubClient
from release_sync.config import GitHubConfig
from release_sync.models.repository import RepositoryIdentity

SOURCE_TOKEN = "source-token"
DESTINATION_TOKEN = "destination-token"


@pytest.fixture
def source_repo() -> RepositoryIdentity:
    return RepositoryIdentity(owner="X", name="Y")


@pytest.fixture
def destination_repo() -> RepositoryIdentity:
    return RepositoryIdentity(owner="X", name="Z")


@pytest.fixture
def config() -> GitHubConfig:
    return GitHubConfig(token=SOURCE_TOKEN, retry_backoff=0)


@pytest.fixture
async def source_client(config: GitHubConfig) -> GitHubClient:
    client = GitHubClient(config)
    yield client
    await client.close()


@pytest.fixture
async def destination_client() -> GitHubClient:
    client = GitHubClient(GitHubConfig(token=DESTINATION_TOKEN, retry_backoff=0))
    yield client
    await client.close()


@pytest.fixture
def mock_api() -> respx.MockRouter:
    with respx.mock(assert_all_called=False) as router:
        yield router
