"""Mirroring release assets from one release to another."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from .client import GitHubClient
from .exceptions import AssetTransferError, AssetTransferFailures, GitHubApiError
from .models.releases import Release, ReleaseAsset
from .models.repository import RepositoryIdentity

logger = logging.getLogger(__name__)


@dataclass
class TransferReport:
    """Names of the assets mirrored and skipped during one transfer run."""

    transferred: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class _AssetJob:
    source_repo: RepositoryIdentity
    destination_repo: RepositoryIdentity
    destination_release: Release
    source_client: GitHubClient
    destination_client: GitHubClient

    async def download(self, asset: ReleaseAsset) -> bytes:
        logger.info("Downloading asset %s from %s", asset.name, asset.source_url)
        try:
            data = await self.source_client.get_release_asset(self.source_repo, asset.id)
        except (GitHubApiError, httpx.HTTPError) as e:
            raise AssetTransferError(asset.name, asset.source_url, f"download failed: {e}") from e
        if len(data) != asset.size:
            raise AssetTransferError(
                asset.name,
                asset.source_url,
                f"downloaded {len(data)} bytes, expected {asset.size}",
            )
        return data

    async def upload(self, asset: ReleaseAsset, data: bytes) -> None:
        release = self.destination_release
        logger.info(
            "Uploading asset %s to %s on %s", asset.name, release.tag_name, self.destination_repo
        )
        try:
            await self.destination_client.upload_release_asset(
                self.destination_repo,
                release.id,
                name=asset.name,
                label=asset.label,
                data=data,
                content_type=asset.upload_content_type,
                content_length=asset.size,
                upload_url=release.upload_url,
            )
        except (GitHubApiError, httpx.HTTPError) as e:
            raise AssetTransferError(asset.name, asset.source_url, f"upload failed: {e}") from e

    async def run(self, asset: ReleaseAsset) -> bool:
        """Mirror one asset. Returns ``False`` when the asset was skipped."""
        logger.info(
            "Syncing asset %s to %s on %s",
            asset.name,
            self.destination_release.tag_name,
            self.destination_repo,
        )
        if not asset.is_uploaded:
            logger.warning("Asset %s is not uploaded (state=%s), skipping", asset.name, asset.state)
            return False
        data = await self.download(asset)
        await self.upload(asset, data)
        return True


async def _gather_all(
    tasks: dict[asyncio.Task[bool], ReleaseAsset], report: TransferReport
) -> None:
    """Wait for every task, then raise one aggregate error if any asset failed."""
    results = await asyncio.gather(*tasks, return_exceptions=True)
    errors: list[AssetTransferError] = []
    for asset, result in zip(tasks.values(), results):
        if isinstance(result, AssetTransferError):
            logger.error("%s", result)
            errors.append(result)
        elif isinstance(result, BaseException):
            raise result
        elif result:
            report.transferred.append(asset.name)
        else:
            report.skipped.append(asset.name)
    if errors:
        raise AssetTransferFailures(errors)


async def _gather_fail_fast(
    tasks: dict[asyncio.Task[bool], ReleaseAsset], report: TransferReport
) -> None:
    """Wait until every task succeeds or the first one fails, cancelling the rest."""
    pending = set(tasks)
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.result():
                    report.transferred.append(tasks[task].name)
                else:
                    report.skipped.append(tasks[task].name)
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


async def transfer_assets(
    source_release: Release,
    destination_release: Release,
    source_repo: RepositoryIdentity,
    destination_repo: RepositoryIdentity,
    source_client: GitHubClient,
    destination_client: GitHubClient,
    *,
    fail_fast: bool = False,
    max_concurrency: int | None = None,
) -> TransferReport:
    """Copy every uploaded asset of *source_release* onto *destination_release*.

    All assets are transferred concurrently. Assets that are not in the
    ``uploaded`` state are skipped with a warning. Assets already present on
    the destination are not detected; GitHub rejects the duplicate upload and
    that asset fails.

    By default every transfer runs to completion and failures are reported
    together as :class:`AssetTransferFailures`. With ``fail_fast=True`` the
    first :class:`AssetTransferError` is raised and in-flight transfers are
    cancelled.
    """
    logger.info(
        "Syncing release %s to %s on %s",
        source_release.tag_name,
        destination_release.tag_name,
        destination_repo,
    )
    job = _AssetJob(
        source_repo=source_repo,
        destination_repo=destination_repo,
        destination_release=destination_release,
        source_client=source_client,
        destination_client=destination_client,
    )
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def run_one(asset: ReleaseAsset) -> bool:
        if semaphore is None:
            return await job.run(asset)
        async with semaphore:
            return await job.run(asset)

    report = TransferReport()
    tasks = {
        asyncio.create_task(run_one(asset), name=f"sync-asset-{asset.name}"): asset
        for asset in source_release.assets
    }
    if not tasks:
        logger.info("Release %s has no assets", source_release.tag_name)
        return report

    if fail_fast:
        await _gather_fail_fast(tasks, report)
    else:
        await _gather_all(tasks, report)

    logger.info(
        "Synced %d asset(s) to %s on %s (%d skipped)",
        len(report.transferred),
        destination_release.tag_name,
        destination_repo,
        len(report.skipped),
    )
    return report
