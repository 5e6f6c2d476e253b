"""Release and release asset models."""

from __future__ import annotations

from .base import GitHubModel

ASSET_STATE_UPLOADED = "uploaded"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ReleaseAsset(GitHubModel):
    id: int
    name: str
    label: str | None = None
    size: int = 0
    content_type: str | None = None
    state: str = ASSET_STATE_UPLOADED
    url: str = ""
    browser_download_url: str = ""

    @property
    def is_uploaded(self) -> bool:
        """Only fully uploaded assets can be downloaded and mirrored."""
        return self.state == ASSET_STATE_UPLOADED

    @property
    def upload_content_type(self) -> str:
        return self.content_type or DEFAULT_CONTENT_TYPE

    @property
    def source_url(self) -> str:
        return self.browser_download_url or self.url or f"asset #{self.id}"


class ReleaseTemplate(GitHubModel):
    """Descriptive metadata copied onto a newly created release."""

    body: str | None = None
    name: str | None = None
    draft: bool = False
    prerelease: bool = False


class Release(GitHubModel):
    id: int
    tag_name: str
    name: str | None = None
    body: str | None = None
    draft: bool = False
    prerelease: bool = False
    html_url: str = ""
    upload_url: str = ""
    assets: list[ReleaseAsset] = []

    def as_template(self) -> ReleaseTemplate:
        return ReleaseTemplate(
            body=self.body,
            name=self.name,
            draft=self.draft,
            prerelease=self.prerelease,
        )
