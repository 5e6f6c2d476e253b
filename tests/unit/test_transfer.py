"""Tests for the asset transfer engine."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from github_payloads import API, asset_payload, release_payload

from release_sync.exceptions import (
    AssetTransferError,
    AssetTransferFailures,
    GitHubNotFoundError,
)
from release_sync.models.releases import Release
from release_sync.transfer import transfer_assets

UPLOAD_PATH = "/repos/X/Z/releases/2/assets"


def _source(*assets: dict) -> Release:
    return Release.model_validate(release_payload(1, "v1", assets=list(assets)))


def _destination() -> Release:
    return Release.model_validate(release_payload(2, "v1", repo="X/Z"))


def _mock_download(mock_api, asset_id: int, content: bytes, status: int = 200):
    return mock_api.get(f"{API}/repos/X/Y/releases/assets/{asset_id}").mock(
        return_value=httpx.Response(status, content=content)
    )


def _mock_upload(mock_api, side_effect=None):
    route = mock_api.post(host="uploads.github.com", path=UPLOAD_PATH)
    if side_effect is not None:
        return route.mock(side_effect=side_effect)
    return route.mock(return_value=httpx.Response(201, json={"id": 100}))


def _uploaded_names(route) -> list[str]:
    return sorted(call.request.url.params["name"] for call in route.calls)


class TestTransferAssets:
    @pytest.mark.asyncio
    async def test_transfers_every_uploaded_asset(
        self, mock_api, source_client, destination_client, source_repo, destination_repo
    ):
        _mock_download(mock_api, 11, b"aaaa")
        _mock_download(mock_api, 12, b"bb")
        upload = _mock_upload(mock_api)
        source = _source(
            asset_payload(11, "a.zip", b"aaaa", label="A"),
            asset_payload(12, "b.tar.gz", b"bb", content_type=None),
        )

        report = await transfer_assets(
            source,
            _destination(),
            source_repo,
            destination_repo,
            source_client,
            destination_client,
        )

        assert sorted(report.transferred) == ["a.zip", "b.tar.gz"]
        assert report.skipped == []
        assert _uploaded_names(upload) == ["a.zip", "b.tar.gz"]
        by_name = {call.request.url.params["name"]: call.request for call in upload.calls}
        assert by_name["a.zip"].url.params["label"] == "A"
        assert by_name["a.zip"].content == b"aaaa"
        assert by_name["a.zip"].headers["Content-Type"] == "application/zip"
        assert by_name["a.zip"].headers["Content-Length"] == "4"
        assert by_name["b.tar.gz"].headers["Content-Type"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_download_uses_source_token_and_upload_destination_token(
        self, mock_api, source_client, destination_client, source_repo, destination_repo
    ):
        download = _mock_download(mock_api, 11, b"aaaa")
        upload = _mock_upload(mock_api)
        await transfer_assets(
            _source(asset_payload(11, "a.zip", b"aaaa")),
            _destination(),
            source_repo,
            destination_repo,
            source_client,
            destination_client,
        )
        assert download.calls.last.request.headers["Authorization"] == "Bearer source-token"
        assert upload.calls.last.request.headers["Authorization"] == "Bearer destination-token"

    @pytest.mark.asyncio
    async def test_skips_assets_that_are_not_uploaded(
        self, mock_api, source_client, destination_client, source_repo, destination_repo, caplog
    ):
        _mock_download(mock_api, 11, b"aaaa")
        pending_download = _mock_download(mock_api, 12, b"bb")
        upload = _mock_upload(mock_api)
        source = _source(
            asset_payload(11, "a", b"aaaa"),
            asset_payload(12, "b", b"bb", state="pending"),
        )

        report = await transfer_assets(
            source,
            _destination(),
            source_repo,
            destination_repo,
            source_client,
            destination_client,
        )

        assert report.transferred == ["a"]
        assert report.skipped == ["b"]
        assert not pending_download.called
        assert _uploaded_names(upload) == ["a"]
        assert any(
            r.levelname == "WARNING" and "Asset b is not uploaded" in r.getMessage()
            for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_no_assets(
        self, source_client, destination_client, source_repo, destination_repo
    ):
        report = await transfer_assets(
            _source(),
            _destination(),
            source_repo,
            destination_repo,
            source_client,
            destination_client,
        )
        assert report.transferred == []
        assert report.skipped == []

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_siblings(
        self, mock_api, source_client, destination_client, source_repo, destination_repo
    ):
        _mock_download(mock_api, 11, b"aaaa")
        _mock_download(mock_api, 12, b"", status=403)
        _mock_download(mock_api, 13, b"ccc")
        upload = _mock_upload(mock_api)
        source = _source(
            asset_payload(11, "a", b"aaaa"),
            asset_payload(12, "b", b"bb"),
            asset_payload(13, "c", b"ccc"),
        )

        with pytest.raises(AssetTransferFailures) as exc_info:
            await transfer_assets(
                source,
                _destination(),
                source_repo,
                destination_repo,
                source_client,
                destination_client,
            )

        assert exc_info.value.asset_names == ["b"]
        assert "download failed" in str(exc_info.value)
        assert "https://github.com/X/Y/releases/download/v1/b" in str(exc_info.value)
        assert _uploaded_names(upload) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_duplicate_upload_fails_only_that_asset(
        self, mock_api, source_client, destination_client, source_repo, destination_repo
    ):
        _mock_download(mock_api, 11, b"aaaa")
        _mock_download(mock_api, 12, b"bb")

        def upload(request: httpx.Request) -> httpx.Response:
            if request.url.params["name"] == "a":
                return httpx.Response(
                    422,
                    json={"message": "Validation Failed", "errors": [{"code": "already_exists"}]},
                )
            return httpx.Response(201, json={"id": 100})

        route = _mock_upload(mock_api, side_effect=upload)
        source = _source(asset_payload(11, "a", b"aaaa"), asset_payload(12, "b", b"bb"))

        with pytest.raises(AssetTransferFailures) as exc_info:
            await transfer_assets(
                source,
                _destination(),
                source_repo,
                destination_repo,
                source_client,
                destination_client,
            )

        assert exc_info.value.asset_names == ["a"]
        assert "upload failed" in str(exc_info.value)
        assert "already_exists" in str(exc_info.value)
        assert _uploaded_names(route) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_size_mismatch_is_an_asset_error(
        self, mock_api, source_client, destination_client, source_repo, destination_repo
    ):
        _mock_download(mock_api, 11, b"truncated")
        upload = _mock_upload(mock_api)
        asset = asset_payload(11, "a", b"the full content")

        with pytest.raises(AssetTransferFailures, match="expected 16"):
            await transfer_assets(
                _source(asset),
                _destination(),
                source_repo,
                destination_repo,
                source_client,
                destination_client,
            )
        assert not upload.called

    @pytest.mark.asyncio
    async def test_fail_fast_raises_first_error(
        self, mock_api, source_client, destination_client, source_repo, destination_repo
    ):
        _mock_download(mock_api, 11, b"", status=404)
        _mock_upload(mock_api)

        with pytest.raises(AssetTransferError) as exc_info:
            await transfer_assets(
                _source(asset_payload(11, "a", b"aaaa")),
                _destination(),
                source_repo,
                destination_repo,
                source_client,
                destination_client,
                fail_fast=True,
            )
        assert exc_info.value.asset_name == "a"

    @pytest.mark.asyncio
    async def test_fail_fast_cancels_in_flight_transfers(
        self,
        mock_api,
        source_client,
        destination_client,
        source_repo,
        destination_repo,
        monkeypatch,
    ):
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def get_release_asset(repo, asset_id):
            if asset_id == 11:
                started.set()
                try:
                    await asyncio.sleep(30)
                except asyncio.CancelledError:
                    cancelled.set()
                    raise
                return b"slow"
            await started.wait()
            raise GitHubNotFoundError("gone")

        monkeypatch.setattr(source_client, "get_release_asset", get_release_asset)
        upload = _mock_upload(mock_api)
        source = _source(asset_payload(11, "slow", b"slow"), asset_payload(12, "broken", b"x"))

        with pytest.raises(AssetTransferError, match="broken"):
            await asyncio.wait_for(
                transfer_assets(
                    source,
                    _destination(),
                    source_repo,
                    destination_repo,
                    source_client,
                    destination_client,
                    fail_fast=True,
                ),
                timeout=5,
            )
        assert cancelled.is_set()
        assert not upload.called

    @pytest.mark.asyncio
    async def test_max_concurrency_bounds_in_flight_transfers(
        self,
        mock_api,
        source_client,
        destination_client,
        source_repo,
        destination_repo,
        monkeypatch,
    ):
        in_flight = 0
        peak = 0

        async def get_release_asset(repo, asset_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return b"data"

        monkeypatch.setattr(source_client, "get_release_asset", get_release_asset)
        _mock_upload(mock_api)
        source = _source(*(asset_payload(i, f"asset-{i}", b"data") for i in (11, 12, 13, 14)))

        report = await transfer_assets(
            source,
            _destination(),
            source_repo,
            destination_repo,
            source_client,
            destination_client,
            max_concurrency=2,
        )
        assert len(report.transferred) == 4
        assert peak == 2

    @pytest.mark.asyncio
    async def test_unbounded_by_default(
        self,
        mock_api,
        source_client,
        destination_client,
        source_repo,
        destination_repo,
        monkeypatch,
    ):
        in_flight = 0
        peak = 0

        async def get_release_asset(repo, asset_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return b"data"

        monkeypatch.setattr(source_client, "get_release_asset", get_release_asset)
        _mock_upload(mock_api)
        source = _source(*(asset_payload(i, f"asset-{i}", b"data") for i in (11, 12, 13, 14)))

        await transfer_assets(
            source,
            _destination(),
            source_repo,
            destination_repo,
            source_client,
            destination_client,
        )
        assert peak == 4
