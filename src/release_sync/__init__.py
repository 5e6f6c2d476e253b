"""Mirror a GitHub release and its assets to another repository."""

import asyncio
import dataclasses
import logging

import click
from dotenv import load_dotenv

from .config import SyncInputs
from .exceptions import ReleaseSyncError
from .sync import run_sync

logger = logging.getLogger(__name__)


@click.command()
@click.option("--source", help="Source repository (owner/repo); defaults to GITHUB_REPOSITORY")
@click.option(
    "--destination", help="Destination repository (owner/repo); defaults to GITHUB_REPOSITORY"
)
@click.option("--tag", help="Release tag to sync, 'refs/tags/<tag>' or 'latest'")
@click.option("--destination-tag", help="Tag of the destination release")
@click.option("--token", help="GitHub token for the source repository")
@click.option("--destination-token", help="GitHub token for the destination repository")
@click.option("--fail-fast", is_flag=True, help="Stop at the first asset failure")
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    help="Maximum number of assets transferred at once",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(
    source: str | None,
    destination: str | None,
    tag: str | None,
    destination_tag: str | None,
    token: str | None,
    destination_token: str | None,
    fail_fast: bool,
    max_concurrency: int | None,
    verbose: bool,
) -> None:
    """Sync a GitHub release from a source repository to a destination repository."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "source": source,
        "destination": destination,
        "tag": tag,
        "destination_tag": destination_tag,
        "token": token,
        "destination_token": destination_token,
        "fail_fast": fail_fast or None,
        "max_concurrency": max_concurrency,
    }
    try:
        inputs = SyncInputs.from_env()
        inputs = dataclasses.replace(
            inputs, **{k: v for k, v in overrides.items() if v is not None}
        )
        config = inputs.resolve()
        result = asyncio.run(run_sync(config))
    except ReleaseSyncError as e:
        raise click.ClickException(str(e)) from e

    logger.info(
        "Release %s synced to %s on %s",
        result.source_release.tag_name,
        result.destination_release.tag_name,
        config.destination_repo,
    )


if __name__ == "__main__":
    main()
