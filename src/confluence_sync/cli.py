"""Command-line entry point: ``confluence-sync <command>``.

Commands:

- ``sync``           -- run one sync pass into the vault.
- ``check``          -- count pages changed since the last sync.
- ``status``         -- summarize the sync history ledger.
- ``clear-history``  -- forget every synced page (next sync rewrites all).
- ``ping``           -- test the Confluence connection.
- ``init``           -- write a starter config file.

Connection settings follow the usual precedence:
CLI args > env vars (.env) > YAML config > defaults.
"""

import argparse
import asyncio
import json
import logging
import sys

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import load_config
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .core.async_utils import run_sync
from .core.client import ConfluenceClient
from .errors import ConfluenceSyncError
from .file_handler import LocalFileAdapter
from .logger import setup_logging
from .mcp.tools.errors import corrective_action
from .sync.detector import BackgroundChangeDetector
from .sync.engine import SyncEngine
from .sync.history import SyncHistoryStore
from .sync.query import ensure_valid_filters
from .sync.reporter import (
    format_change_check,
    format_sync_report,
    format_synced_files,
    result_to_json,
)

logger = logging.getLogger(__name__)


def _load_unified(args: argparse.Namespace) -> UnifiedConfig:
    """Load YAML config and apply the ``--vault`` override."""
    unified = build_config(load_hierarchical_config())
    if args.vault:
        unified = unified.model_copy(
            update={
                "sync": unified.sync.model_copy(
                    update={"vault_root": args.vault}
                )
            }
        )
    return unified


def _build_client(
    args: argparse.Namespace, unified: UnifiedConfig
) -> ConfluenceClient:
    fallbacks = {
        k: v
        for k, v in unified.confluence.model_dump().items()
        if v is not None
    }
    config = load_config(
        url=args.url,
        email=args.email,
        api_token=args.api_token,
        insecure=args.insecure,
        debug=args.debug,
        yaml_fallbacks=fallbacks,
    )
    return ConfluenceClient(config)


def _history(unified: UnifiedConfig) -> SyncHistoryStore:
    return SyncHistoryStore(
        LocalFileAdapter(unified.sync.vault_root), unified.sync.history_path
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_sync(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    """Pull changed pages into the vault."""
    if args.download_attachments:
        unified = unified.model_copy(
            update={
                "sync": unified.sync.model_copy(
                    update={"download_attachments": True}
                )
            }
        )
    # Filters are checked before the client exists
    ensure_valid_filters(unified.sync.filters)
    engine = SyncEngine.from_config(unified, _build_client(args, unified))
    if args.force:
        engine.set_force_sync(True)

    result = await engine.sync_all()

    if args.json:
        print(json.dumps(result_to_json(result), indent=2))
    else:
        print(format_sync_report(result))
        if args.verbose:
            print()
            print(format_synced_files(result))
    return 0 if result.success else 1


async def cmd_check(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    """Count changed pages without writing anything."""
    ensure_valid_filters(unified.sync.filters)
    detector = BackgroundChangeDetector(
        _build_client(args, unified),
        _history(unified),
        filters=unified.sync.filters,
    )
    changed = await detector.check_for_changes()
    if args.json:
        print(json.dumps({"changed_pages": changed}))
    elif unified.sync.show_notifications or changed:
        print(format_change_check(changed))
    return 0


async def cmd_status(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    """Summarize the sync history ledger."""
    records = await _history(unified).load_history()
    last_sync = max(
        (record.last_synced_at for record in records.values()),
        default="never",
    )
    if args.json:
        print(
            json.dumps(
                {
                    "vault_root": unified.sync.vault_root,
                    "sync_path": unified.sync.sync_path,
                    "last_sync": last_sync,
                    "tracked_pages": len(records),
                }
            )
        )
        return 0

    print(f"Vault:         {unified.sync.vault_root}")
    print(f"Sync folder:   {unified.sync.sync_path}")
    print(f"Last sync:     {last_sync}")
    print(f"Tracked pages: {len(records)}")
    if args.verbose:
        for page_id, record in sorted(records.items()):
            print(f"  {page_id}: {record.file_path} ({record.last_modified})")
    return 0


async def cmd_clear_history(
    args: argparse.Namespace, unified: UnifiedConfig
) -> int:
    """Forget every synced page; local files are left in place."""
    history = _history(unified)
    await history.load_history()
    count = len(history)
    await history.clear_history()
    print(f"Cleared {count} sync history records.")
    return 0


async def cmd_ping(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    """Validate credentials against the Confluence API."""
    client = _build_client(args, unified)
    user = await run_sync(client.validate_connection)
    print(f"Connected to {client.base_url} as {user}")
    return 0


async def cmd_init(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    """Write a starter config file unless one exists."""
    path = await run_sync(ensure_config)
    print(f"Config file: {path}")
    return 0


# ---------------------------------------------------------------------------
# Parser and entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="confluence-sync",
        description="Pull Confluence pages into a local Markdown vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init                       # Write .confluence_sync/config.yml
  %(prog)s ping                       # Test credentials
  %(prog)s sync                       # Sync changed pages
  %(prog)s sync --force --vault ~/kb  # Re-sync everything into ~/kb
  %(prog)s check --json               # Count changed pages
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--url", help="Override Confluence site URL")
    parser.add_argument("--email", help="Override account e-mail")
    parser.add_argument(
        "--api-token",
        help="Override API token (prefer CONFLUENCE_API_TOKEN)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (development only)",
    )
    parser.add_argument("--vault", help="Override the vault root directory")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print more detail"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print machine-readable output"
    )

    subparsers = parser.add_subparsers(
        dest="command", title="Available commands", required=True
    )

    sync_parser = subparsers.add_parser(
        "sync", help="Sync changed pages", description=cmd_sync.__doc__
    )
    sync_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-sync every page regardless of timestamps",
    )
    sync_parser.add_argument(
        "--download-attachments",
        action="store_true",
        help="Download attachments and point links at the local copies",
    )
    sync_parser.set_defaults(func=cmd_sync)

    subparsers.add_parser(
        "check", help="Count changed pages", description=cmd_check.__doc__
    ).set_defaults(func=cmd_check)
    subparsers.add_parser(
        "status", help="Show sync state", description=cmd_status.__doc__
    ).set_defaults(func=cmd_status)
    subparsers.add_parser(
        "clear-history",
        help="Forget synced pages",
        description=cmd_clear_history.__doc__,
    ).set_defaults(func=cmd_clear_history)
    subparsers.add_parser(
        "ping", help="Test connectivity", description=cmd_ping.__doc__
    ).set_defaults(func=cmd_ping)
    subparsers.add_parser(
        "init", help="Create a config file", description=cmd_init.__doc__
    ).set_defaults(func=cmd_init)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    try:
        unified = _load_unified(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"ERROR: Could not load configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=unified.logging.file,
        debug_format=args.log_format,
        level=unified.logging.level,
    )

    try:
        return asyncio.run(args.func(args, unified))
    except ConfluenceSyncError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        print(f"Action: {corrective_action(e)}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
