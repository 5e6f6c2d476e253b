"""Release sync configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .exceptions import ConfigError
from .models.repository import RepositoryIdentity

DEFAULT_API_URL = "https://api.github.com"
LATEST_TAG = "latest"
TAG_REF_PREFIX = "refs/tags/"

_TRUTHY = ("true", "1", "yes")


def _env(name: str) -> str | None:
    """Read an environment variable, treating empty strings as unset."""
    value = os.getenv(name, "").strip()
    return value or None


def _env_int(name: str, default: int | None) -> int | None:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigError(msg) from None


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        msg = f"{name} must be a number, got {value!r}"
        raise ConfigError(msg) from None


def parse_tag(tag: str | None) -> str | None:
    """Normalize a tag input, stripping a leading ``refs/tags/``."""
    while tag and tag.startswith(TAG_REF_PREFIX):
        tag = tag[len(TAG_REF_PREFIX) :]
    return tag or None


@dataclass
class GitHubConfig:
    """Connection settings for one GitHub client (one token)."""

    token: str = ""
    api_url: str = DEFAULT_API_URL
    timeout: int = 30
    max_retries: int = 3
    retry_backoff: float = 1.0

    def validate(self) -> None:
        if not self.api_url:
            msg = "GITHUB_API_URL must not be empty"
            raise ConfigError(msg)
        if not self.token:
            msg = "GitHub token is required. Set the 'token' input or GITHUB_TOKEN"
            raise ConfigError(msg)


@dataclass(frozen=True)
class SyncConfig:
    """Validated inputs of one sync run."""

    source_repo: RepositoryIdentity
    destination_repo: RepositoryIdentity
    source_tag: str
    destination_tag: str | None
    source_token: str
    destination_token: str
    api_url: str = DEFAULT_API_URL
    timeout: int = 30
    max_retries: int = 3
    retry_backoff: float = 1.0
    fail_fast: bool = False
    max_concurrency: int | None = None

    def _client_config(self, token: str) -> GitHubConfig:
        return GitHubConfig(
            token=token,
            api_url=self.api_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_backoff=self.retry_backoff,
        )

    def source_client_config(self) -> GitHubConfig:
        return self._client_config(self.source_token)

    def destination_client_config(self) -> GitHubConfig:
        return self._client_config(self.destination_token)


def resolve_repositories(
    source: str | None, destination: str | None, current_repository: str | None
) -> tuple[RepositoryIdentity, RepositoryIdentity]:
    """Resolve the (source, destination) pair, defaulting one side to the current repository."""
    if not source and not destination:
        msg = "Either source or destination or both should be provided."
        raise ConfigError(msg)
    if source and not destination and source == current_repository:
        msg = (
            "Source repository cannot be the same as the current repository "
            "when destination is not provided."
        )
        raise ConfigError(msg)
    if destination and not source and destination == current_repository:
        msg = (
            "Destination repository cannot be the same as the current repository "
            "when source is not provided."
        )
        raise ConfigError(msg)
    if source == destination:
        msg = "Source and destination repositories cannot be the same."
        raise ConfigError(msg)

    source = source or current_repository
    destination = destination or current_repository
    if not source or not destination:
        msg = "Could not determine source or destination repository (GITHUB_REPOSITORY is unset)."
        raise ConfigError(msg)

    source_repo = RepositoryIdentity.parse(source)
    destination_repo = RepositoryIdentity.parse(destination)
    if source_repo == destination_repo:
        msg = "Source and destination repositories cannot be the same."
        raise ConfigError(msg)
    return source_repo, destination_repo


def resolve_tags(
    tag: str | None, destination_tag: str | None, current_ref: str | None
) -> tuple[str, str | None]:
    """Resolve (source_tag, destination_tag).

    The destination tag stays ``None`` when it should follow the source
    release's own tag, which is only known once that release is fetched.
    """
    source_tag = parse_tag(tag or current_ref)
    if not source_tag:
        msg = (
            "The provided tag is not valid. Please provide a valid tag, "
            f"ensure GITHUB_REF is set, or use '{LATEST_TAG}'."
        )
        raise ConfigError(msg)

    resolved_destination = parse_tag(destination_tag)
    if resolved_destination is None and source_tag != LATEST_TAG:
        resolved_destination = source_tag
    return source_tag, resolved_destination


def resolve_tokens(
    token: str | None, destination_token: str | None, current_token: str | None
) -> tuple[str, str]:
    source_token = token or current_token
    resolved_destination = destination_token or source_token
    if not source_token or not resolved_destination:
        msg = "Could not determine source or destination GitHub token."
        raise ConfigError(msg)
    return source_token, resolved_destination


@dataclass
class SyncInputs:
    """Raw sync inputs, as read from the action environment or the command line."""

    source: str | None = None
    destination: str | None = None
    tag: str | None = None
    destination_tag: str | None = None
    token: str | None = None
    destination_token: str | None = None
    current_repository: str | None = None
    current_ref: str | None = None
    current_token: str | None = None
    api_url: str = DEFAULT_API_URL
    timeout: int = 30
    max_retries: int = 3
    retry_backoff: float = 1.0
    fail_fast: bool = False
    max_concurrency: int | None = None

    @classmethod
    def from_env(cls) -> SyncInputs:
        fail_fast = (_env("INPUT_FAIL-FAST") or "false").lower() in _TRUTHY
        return cls(
            source=_env("INPUT_SOURCE"),
            destination=_env("INPUT_DESTINATION"),
            tag=_env("INPUT_TAG"),
            destination_tag=_env("INPUT_DESTINATION-TAG"),
            token=_env("INPUT_TOKEN"),
            destination_token=_env("INPUT_DESTINATION-TOKEN"),
            current_repository=_env("GITHUB_REPOSITORY"),
            current_ref=_env("GITHUB_REF"),
            current_token=_env("GITHUB_TOKEN"),
            api_url=(_env("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
            timeout=_env_int("RELEASE_SYNC_TIMEOUT", 30),
            max_retries=_env_int("RELEASE_SYNC_MAX_RETRIES", 3),
            retry_backoff=_env_float("RELEASE_SYNC_RETRY_BACKOFF", 1.0),
            fail_fast=fail_fast,
            max_concurrency=_env_int("INPUT_MAX-CONCURRENCY", None),
        )

    def resolve(self) -> SyncConfig:
        source_repo, destination_repo = resolve_repositories(
            self.source, self.destination, self.current_repository
        )
        source_tag, destination_tag = resolve_tags(
            self.tag, self.destination_tag, self.current_ref
        )
        source_token, destination_token = resolve_tokens(
            self.token, self.destination_token, self.current_token
        )
        if self.max_concurrency is not None and self.max_concurrency < 1:
            msg = "max-concurrency must be a positive integer"
            raise ConfigError(msg)
        return SyncConfig(
            source_repo=source_repo,
            destination_repo=destination_repo,
            source_tag=source_tag,
            destination_tag=destination_tag,
            source_token=source_token,
            destination_token=destination_token,
            api_url=self.api_url.rstrip("/"),
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_backoff=self.retry_backoff,
            fail_fast=self.fail_fast,
            max_concurrency=self.max_concurrency,
        )
