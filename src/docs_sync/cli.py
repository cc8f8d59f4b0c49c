"""docs-sync: refresh a skill's documentation resources from upstream.

Usage
-----
Run ``docs-sync --help`` for all options. Common examples:
    - Sync using ./sync.yaml, writing to ./resources:
        uv run docs-sync

    - Preview a skill's sync without writing anything:
        uv run docs-sync --config skills/fastmcp/sync.yaml --dry-run

    - Log to a file:
        uv run docs-sync --config skills/xai/sync.yaml --log-file sync.log
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from docs_sync import __version__
from docs_sync.acquirers import make_session
from docs_sync.config import load_config
from docs_sync.exceptions import DocsSyncError
from docs_sync.logging import LOG_LEVELS, logger, setup_logging
from docs_sync.pipeline import SyncPipeline, summarize
from docs_sync.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docs_sync.config import SyncConfig
    from docs_sync.models import SyncResult


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="docs-sync",
        description="Sync upstream documentation into a skill's resources directory.",
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Sync configuration file (default: ./sync.yaml).",
    )
    p.add_argument(
        "--resources-dir",
        type=Path,
        default=None,
        help="Output directory (default: from the config, else resources/ next to it).",
    )
    p.add_argument("--dry-run", action="store_true", help="Preview without writing files.")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Minimum log level (default: INFO, or DOCS_SYNC_LOG_LEVEL).",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = p.parse_args(argv)
    return Settings(**{k: v for k, v in vars(args).items() if v is not None})


def resolve_resources_dir(settings: Settings, config: SyncConfig) -> Path:
    """Pick the output directory: command line, then config (relative to the config file)."""
    if settings.resources_dir is not None:
        return settings.resources_dir
    base = settings.config.resolve().parent
    return base / (config.resources_dir or "resources")


def print_report(results: Sequence[SyncResult], *, dry_run: bool) -> None:
    for r in results:
        if r.failed:
            print(f"Failed: {r.output_path} ({r.error})")
        elif dry_run:
            print(f"Would write: {r.output_path} ({r.size_bytes} bytes)")
        else:
            print(f"{r.status.value.capitalize()}: {r.output_path}")

    summary = summarize(results)
    synced = len(results) - summary["failed"]
    print(f"\nDone. Total documents: {len(results)}, Synced: {synced}, Failed: {summary['failed']}")
    if not dry_run:
        print(
            "  Created: {created}, Updated: {updated}, Unchanged: {unchanged}".format(**summary),
        )


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    setup_logging(settings.log_file or None, level=settings.log_level)

    print(f"\nSyncing docs{' (dry run)' if settings.dry_run else ''}...\n")
    try:
        config = load_config(settings.config)
        resources_dir = resolve_resources_dir(settings, config)
        with make_session() as session:
            pipeline = SyncPipeline(resources_dir, session=session)
            results = pipeline.run(config, dry_run=settings.dry_run)
    except DocsSyncError as e:
        logger.error("sync_failed", error=str(e), error_type=type(e).__name__)
        print(f"\nSync failed: {e}", file=sys.stderr)
        return 1

    print_report(results, dry_run=settings.dry_run)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
