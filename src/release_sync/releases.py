"""Locating and creating releases."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .client import GitHubClient
from .config import LATEST_TAG
from .exceptions import GitHubApiError, GitHubNotFoundError, RemoteError
from .models.releases import Release, ReleaseTemplate
from .models.repository import RepositoryIdentity

logger = logging.getLogger(__name__)


async def locate_release(
    client: GitHubClient, repo: RepositoryIdentity, tag: str
) -> Release | None:
    """Fetch the release for *tag* on *repo*, or ``None`` if it does not exist.

    ``tag == "latest"`` asks for the most recent published, non-prerelease
    release. Every failure other than a 404 raises :class:`RemoteError`.
    """
    logger.info("Getting release %s on %s", tag, repo)
    try:
        if tag == LATEST_TAG:
            data = await client.get_latest_release(repo)
        else:
            data = await client.get_release_by_tag(repo, tag)
        release = Release.model_validate(data)
    except GitHubNotFoundError:
        logger.info("Release %s on %s does not exist", tag, repo)
        return None
    except (GitHubApiError, httpx.HTTPError, ValidationError) as e:
        msg = f"Failed to get release {tag} on {repo}: {e}"
        raise RemoteError(msg, repo, tag) from e

    logger.info("Release %s on %s found (id=%d)", release.tag_name, repo, release.id)
    return release


async def create_release(
    client: GitHubClient,
    repo: RepositoryIdentity,
    tag: str,
    template: ReleaseTemplate,
) -> Release:
    """Create a release at *tag* on *repo* carrying *template*'s metadata. Assets are not copied."""
    logger.info("Creating release %s on %s", tag, repo)
    params: dict[str, Any] = {
        "tag_name": tag,
        "draft": template.draft,
        "prerelease": template.prerelease,
    }
    if template.body is not None:
        params["body"] = template.body
    if template.name is not None:
        params["name"] = template.name

    try:
        data = await client.create_release(repo, params)
        release = Release.model_validate(data)
    except (GitHubApiError, httpx.HTTPError, ValidationError) as e:
        msg = f"Failed to create release {tag} on {repo}: {e}"
        raise RemoteError(msg, repo, tag) from e

    logger.info("Created release %s on %s (id=%d)", release.tag_name, repo, release.id)
    return release
