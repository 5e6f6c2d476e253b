"""GitHub API client using httpx."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import GitHubConfig
from .exceptions import GitHubApiError, GitHubAuthError, GitHubNotFoundError
from .models.repository import RepositoryIdentity

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
UPLOADS_URL = "https://uploads.github.com"
USER_AGENT = "release-sync"

_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_AFTER = 60.0


def _retry_after(resp: httpx.Response) -> float | None:
    """Seconds requested by a rate-limited response, if any."""
    value = resp.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return min(float(value), MAX_RETRY_AFTER)
    except ValueError:
        return None


class GitHubClient:
    """Async HTTP client for the GitHub REST API, bound to a single token."""

    def __init__(self, config: GitHubConfig) -> None:
        self.config = config
        self.config.validate()
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                "Authorization": f"Bearer {self.config.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": USER_AGENT,
            },
            timeout=self.config.timeout,
            follow_redirects=True,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── HTTP helpers ──────────────────────────────────────────────

    @staticmethod
    def _repo_path(repo: RepositoryIdentity) -> str:
        return f"/repos/{quote(repo.owner, safe='')}/{quote(repo.name, safe='')}"

    def _backoff(self, attempt: int) -> float:
        return self.config.retry_backoff * (2**attempt)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying rate limits, server errors and transport failures."""
        max_retries = self.config.max_retries
        attempt = 0
        while True:
            try:
                resp = await self._client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt >= max_retries:
                    raise
                delay = self._backoff(attempt)
                logger.warning(
                    "%s %s failed (%s): retrying in %.1fs, attempt=%d/%d",
                    method,
                    url,
                    e,
                    delay,
                    attempt + 1,
                    max_retries,
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue

            retry_after = _retry_after(resp)
            retryable = resp.status_code in _RETRYABLE_STATUS_CODES or (
                resp.status_code == 403 and retry_after is not None
            )
            if not retryable or attempt >= max_retries:
                return resp

            delay = retry_after if retry_after is not None else self._backoff(attempt)
            logger.warning(
                "%s %s returned %d: retrying in %.1fs, attempt=%d/%d",
                method,
                url,
                resp.status_code,
                delay,
                attempt + 1,
                max_retries,
            )
            await asyncio.sleep(delay)
            attempt += 1

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json_data: Any = None,
        params: dict[str, Any] | None = None,
        raw: bool = False,
        content: bytes | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> Any:
        """Make an API request and return parsed JSON (or raw bytes if raw=True)."""
        headers = {}
        if extra_headers:
            headers.update(extra_headers)

        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if json_data is not None:
            kwargs["json"] = json_data
        if content is not None:
            kwargs["content"] = content

        resp = await self._send(method, url, **kwargs)

        if resp.status_code in (401, 403):
            raise GitHubAuthError(resp.status_code, resp.text)
        if resp.status_code == 404:
            raise GitHubNotFoundError(resp.text)
        if not resp.is_success:
            raise GitHubApiError(resp.status_code, resp.reason_phrase or "", resp.text)

        if raw:
            return resp.content

        if resp.status_code == 204 or not resp.content:
            return None

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise GitHubApiError(
                resp.status_code,
                f"JSON parse error: {e}",
                resp.text[:500],
            ) from e

    async def get(
        self, path: str, params: dict[str, Any] | None = None, *, raw: bool = False, **kwargs: Any
    ) -> Any:
        return await self._request("GET", path, params=params, raw=raw, **kwargs)

    async def post(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self._request("POST", path, json_data=json_data, **kwargs)

    # ── Releases ──────────────────────────────────────────────────

    async def get_release_by_tag(self, repo: RepositoryIdentity, tag: str) -> dict:
        path = self._repo_path(repo)
        return await self.get(f"{path}/releases/tags/{quote(tag, safe='')}")

    async def get_latest_release(self, repo: RepositoryIdentity) -> dict:
        return await self.get(f"{self._repo_path(repo)}/releases/latest")

    async def create_release(self, repo: RepositoryIdentity, params: dict[str, Any]) -> dict:
        return await self.post(f"{self._repo_path(repo)}/releases", params)

    # ── Release assets ────────────────────────────────────────────

    async def get_release_asset(self, repo: RepositoryIdentity, asset_id: int) -> bytes:
        """Download the binary content of a release asset."""
        return await self.get(
            f"{self._repo_path(repo)}/releases/assets/{asset_id}",
            raw=True,
            extra_headers={"Accept": "application/octet-stream"},
        )

    @staticmethod
    def upload_endpoint(repo: RepositoryIdentity, release_id: int, upload_url: str = "") -> str:
        """Asset upload URL, taken from the release's ``upload_url`` template when present."""
        # e.g. https://uploads.github.com/repos/{owner}/{repo}/releases/{id}/assets{?name,label}
        url = upload_url.split("{")[0]
        if url:
            return url
        return (
            f"{UPLOADS_URL}/repos/{quote(repo.owner, safe='')}/{quote(repo.name, safe='')}"
            f"/releases/{release_id}/assets"
        )

    async def upload_release_asset(
        self,
        repo: RepositoryIdentity,
        release_id: int,
        *,
        name: str,
        data: bytes,
        content_type: str,
        content_length: int,
        label: str | None = None,
        upload_url: str = "",
    ) -> dict:
        params = {"name": name}
        if label:
            params["label"] = label
        return await self.post(
            self.upload_endpoint(repo, release_id, upload_url),
            params=params,
            content=data,
            extra_headers={
                "Content-Type": content_type,
                "Content-Length": str(content_length),
            },
        )
