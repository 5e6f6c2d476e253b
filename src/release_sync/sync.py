"""Release sync orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .client import GitHubClient
from .config import SyncConfig
from .exceptions import SourceReleaseMissing
from .models.releases import Release
from .releases import create_release, locate_release
from .transfer import TransferReport, transfer_assets

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    source_release: Release
    destination_release: Release
    created: bool
    report: TransferReport


async def sync_release(
    config: SyncConfig,
    source_client: GitHubClient,
    destination_client: GitHubClient,
) -> SyncResult:
    """Mirror the configured source release onto the destination repository.

    Resolves the source release, finds or creates the destination release,
    then copies the assets. A missing source release is fatal; a missing
    destination release is created from the source release's metadata. An
    existing destination release is used as-is.
    """
    source_release = await locate_release(source_client, config.source_repo, config.source_tag)
    if source_release is None:
        raise SourceReleaseMissing(config.source_repo, config.source_tag)

    destination_tag = config.destination_tag or source_release.tag_name
    if config.destination_tag is None:
        logger.info("Destination tag: %s", destination_tag)

    destination_release = await locate_release(
        destination_client, config.destination_repo, destination_tag
    )
    created = destination_release is None
    if destination_release is None:
        destination_release = await create_release(
            destination_client,
            config.destination_repo,
            destination_tag,
            source_release.as_template(),
        )

    report = await transfer_assets(
        source_release,
        destination_release,
        config.source_repo,
        config.destination_repo,
        source_client,
        destination_client,
        fail_fast=config.fail_fast,
        max_concurrency=config.max_concurrency,
    )
    return SyncResult(
        source_release=source_release,
        destination_release=destination_release,
        created=created,
        report=report,
    )


async def run_sync(config: SyncConfig) -> SyncResult:
    """Build one client per token, run the sync and release the connections."""
    async with GitHubClient(config.source_client_config()) as source_client:
        async with GitHubClient(config.destination_client_config()) as destination_client:
            return await sync_release(config, source_client, destination_client)
