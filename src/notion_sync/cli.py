"""Command line entry point: ``notion-sync``."""

import argparse
import json
import logging
import os
import sys

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import CONFLICT_STRATEGIES, Config, load_config
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_fallbacks
from .core.client import NotionClient
from .errors import ConfigError
from .logger import setup_logging
from .sync import (
    SyncEngine,
    SyncResult,
    SyncState,
    format_status,
    format_sync_report,
    report_to_json,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notion-sync",
        description="Sync a Notion database with a directory of Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Pull published pages into ./docs
  notion-sync sync

  # Preview a two-way sync where the newest edit wins
  notion-sync sync --bidirectional --strategy latest-wins --dry-run

  # Push local edits back to Notion
  notion-sync push -o website/docs

  # Re-sync everything, ignoring the ledger
  notion-sync sync --full

Credentials come from NOTION_TOKEN and NOTION_DATABASE_ID (environment or
.env), or from the notion section of .notion_sync/config.yml.
        """,
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        help="Log line format on stderr (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"notion-sync version {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--full",
        action="store_true",
        help="Transfer every record, ignoring change detection",
    )
    common.add_argument(
        "-o", "--output", help="Markdown directory (default: ./docs)"
    )
    common.add_argument("--state-file", help="Sync ledger path")
    common.add_argument(
        "--strategy",
        choices=CONFLICT_STRATEGIES,
        help="Conflict strategy for bidirectional sync",
    )
    common.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing anything",
    )
    common.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sync_cmd = sub.add_parser(
        "sync", parents=[common], help="Pull pages from Notion"
    )
    sync_cmd.add_argument(
        "--bidirectional",
        action="store_true",
        help="Pull and push, resolving records changed on both sides",
    )
    sub.add_parser("push", parents=[common], help="Push local files to Notion")

    status_cmd = sub.add_parser("status", help="Show the sync ledger")
    status_cmd.add_argument("--state-file", help="Sync ledger path")
    status_cmd.add_argument(
        "--json", action="store_true", help="Print the ledger as JSON"
    )

    sub.add_parser("init", help="Write a starter .notion_sync/config.yml")
    return parser


def _load_unified() -> UnifiedConfig:
    try:
        return build_config(load_hierarchical_config())
    except (ValidationError, yaml.YAMLError, OSError, ValueError) as exc:
        raise ConfigError(f"Invalid config file: {exc}") from exc


def _resolve_config(args: argparse.Namespace, unified: UnifiedConfig) -> Config:
    return load_config(
        output_dir=getattr(args, "output", None),
        state_file=args.state_file,
        conflict_strategy=getattr(args, "strategy", None),
        debug=args.debug,
        yaml_fallbacks=to_fallbacks(unified),
    )


def _print_result(result: SyncResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(result), indent=2))
    else:
        print(format_sync_report(result))


def _status(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    state_file = (
        args.state_file
        or os.getenv("NOTION_SYNC_STATE_FILE")
        or unified.sync.state_file
        or "./.notion-sync-state.json"
    )
    state = SyncState(state_file).load()
    if args.json:
        print(json.dumps(state, indent=2))
    else:
        print(format_status(state, state_file))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command, and return the exit code."""
    args = _build_parser().parse_args(argv)
    load_dotenv()

    if args.command == "init":
        path = ensure_config()
        print(f"Config file: {path}")
        return 0

    try:
        unified = _load_unified()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging(
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        log_format=args.log_format or unified.logging.format,
        default_level=unified.logging.level,
    )

    if args.command == "status":
        return _status(args, unified)

    try:
        config = _resolve_config(args, unified)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    engine = SyncEngine(NotionClient(config), config)
    if args.command == "push":
        result = engine.push(full=args.full, dry_run=args.dry_run)
    elif args.bidirectional:
        result = engine.bidirectional(full=args.full, dry_run=args.dry_run)
    else:
        result = engine.pull(full=args.full, dry_run=args.dry_run)

    _print_result(result, args.json)
    return 0 if result.ok else 1


def run() -> None:
    """Entry point that handles interrupts and sets the exit status."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
