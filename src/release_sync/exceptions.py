"""Release sync exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RepositoryIdentity


class ReleaseSyncError(Exception):
    """Base exception for release sync operations."""


class ConfigError(ReleaseSyncError, ValueError):
    """Raised when the sync inputs are missing or contradictory."""


class GitHubApiError(ReleaseSyncError):
    """Raised when the GitHub API returns a non-success response."""

    def __init__(self, status_code: int, status_text: str, body: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        super().__init__(f"GitHub API Error {status_code} {status_text}: {body}")


class GitHubAuthError(GitHubApiError):
    """Raised on 401/403 authentication failures."""

    def __init__(self, status_code: int, body: str = "") -> None:
        status_text = "Unauthorized" if status_code == 401 else "Forbidden"
        super().__init__(status_code, status_text, body)


class GitHubNotFoundError(GitHubApiError):
    """Raised on 404 responses."""

    def __init__(self, body: str = "") -> None:
        super().__init__(404, "Not Found", body)


class RemoteError(ReleaseSyncError):
    """Raised when a release lookup or creation fails for a reason other than absence."""

    def __init__(self, message: str, repo: RepositoryIdentity, tag: str) -> None:
        self.repo = repo
        self.tag = tag
        super().__init__(message)


class SourceReleaseMissing(RemoteError):
    """Raised when the release to mirror does not exist on the source repository."""

    def __init__(self, repo: RepositoryIdentity, tag: str) -> None:
        super().__init__(f"Source release {tag} on {repo} does not exist", repo, tag)


class AssetTransferError(ReleaseSyncError):
    """Raised when a single asset fails to download or upload."""

    def __init__(self, asset_name: str, url: str, message: str) -> None:
        self.asset_name = asset_name
        self.url = url
        super().__init__(f"Failed to sync asset {asset_name} from {url}: {message}")


class AssetTransferFailures(ReleaseSyncError):
    """Raised after a transfer run in which one or more assets failed."""

    def __init__(self, errors: list[AssetTransferError]) -> None:
        self.errors = errors
        names = ", ".join(e.asset_name for e in errors)
        details = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"{len(errors)} asset(s) failed to sync ({names}):\n{details}")

    @property
    def asset_names(self) -> list[str]:
        return [e.asset_name for e in self.errors]
