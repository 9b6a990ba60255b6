from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any

from facility_history import tools
from facility_history.cli import output as out
from facility_history.cli.config import (
    Config,
    config_exists,
    config_path_display,
    config_to_dict,
    load_config,
)
from facility_history.facade import FacilityHistory

DESCRIPTION = """\
facility-history: cleaning records of tracked facilities

Look up rooms by name, check today's coverage, inspect recent cleanings,
find entry/exit photos and export history to an Excel spreadsheet.
Dates use the DD/MM/YYYY format."""


# ── Infrastructure helpers ──────────────────────────────────────────


def _build_history(cfg: Config) -> FacilityHistory:
    return FacilityHistory.from_config(config_to_dict(cfg))


async def _run_tool(
    call: Callable[[FacilityHistory], Coroutine[Any, Any, tools.ToolResult]],
) -> tools.ToolResult:
    history = _build_history(load_config())
    await history.init()
    try:
        result = await call(history)
    finally:
        await history.close()
    out.show_result(result)
    return result


# ── queries ─────────────────────────────────────────────────────────


async def cmd_facilities(args: argparse.Namespace) -> None:
    """List every facility grouped by category."""
    await _run_tool(tools.list_facilities)


async def cmd_summary(args: argparse.Namespace) -> None:
    """Show how many facilities were cleaned today."""
    await _run_tool(tools.today_summary)


async def cmd_history(args: argparse.Namespace) -> None:
    await _run_tool(
        lambda h: tools.facility_history(h, args.query, args.start, args.end)
    )


async def cmd_photos(args: argparse.Namespace) -> None:
    await _run_tool(
        lambda h: tools.cleaning_photos(h, args.query, args.start, args.end)
    )


# ── export ──────────────────────────────────────────────────────────


async def cmd_export(args: argparse.Namespace) -> None:
    """Export history to a spreadsheet, optionally copying it locally."""
    history = _build_history(load_config())
    await history.init()
    try:
        result = await tools.export_history(
            history, args.query, args.start, args.end, args.days
        )
        out.show_result(result)

        artifact = result.artifact
        if artifact is None:
            return
        print()
        if args.out:
            target = Path(args.out)
            if target.is_dir():
                target = target / artifact.file_name
            target.write_bytes(await history.open_artifact(artifact.artifact_id))
            out.note("ok", f"Saved to {target}")
        elif not artifact.inline:
            out.note("ok", f"Download: {artifact.uri}")
        else:
            out.note("hint", "Use --out to save the file locally.")
    finally:
        await history.close()


async def cmd_sweep(args: argparse.Namespace) -> None:
    """Delete expired artifacts and leftover work files."""
    history = _build_history(load_config())
    await history.init()
    try:
        removed = await history.sweep()
    finally:
        await history.close()
    out.note("ok", f"Removed {removed} expired artifact(s)")


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> None:
    """Display current configuration."""
    cfg = load_config()

    source = config_path_display() if config_exists() else "defaults"
    if cfg.uses_postgres:
        store = f"postgres ({cfg.db_host}:{cfg.db_port}/{cfg.db_name})"
    else:
        store = f"memory ({cfg.data_file or 'empty'})"
    if cfg.uses_gcs:
        storage = f"gcs (bucket {cfg.gcs_bucket or 'not set'})"
    else:
        storage = f"disk ({cfg.storage_path})"

    out.settings_table(
        f"Configuration ({source})",
        [
            ("Store", store),
            ("Storage", storage),
            ("Time zone", cfg.timezone),
            ("Artifact delivery", cfg.locator),
            ("Artifact TTL", f"{cfg.artifact_ttl_seconds:g}s"),
            ("Match threshold", cfg.match_threshold),
            ("Record cap", cfg.record_cap),
            ("Uploads base URL", cfg.uploads_base_url),
        ],
    )


async def cmd_config_path(args: argparse.Namespace) -> None:
    """Print the config file path."""
    print(config_path_display())


# ── Parser ──────────────────────────────────────────────────────────


def _add_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="start", help="Start date (DD/MM/YYYY)")
    parser.add_argument("--to", dest="end", help="End date (DD/MM/YYYY)")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="facility-history",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  facility-history facilities                  "
            "List rooms by category\n"
            '  facility-history history "SALA 28"           '
            "Last 12 hours of a room\n"
            '  facility-history export "SALA 28" --days 30  '
            "Export the last 30 days\n"
            "\n"
            "MCP server:\n"
            "  python -m facility_history.ext.mcp_use.run\n"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress logs",
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    sub.add_parser("facilities", help="List all facilities")
    sub.add_parser("summary", help="Facilities cleaned today")

    p_history = sub.add_parser("history", help="Recent records of a facility")
    p_history.add_argument("query", help="Facility name (e.g. 'SALA 28 (BANHEIRO)')")
    _add_range(p_history)

    p_photos = sub.add_parser("photos", help="Entry/exit photos of the latest cleaning")
    p_photos.add_argument("query", help="Facility name")
    _add_range(p_photos)

    p_export = sub.add_parser("export", help="Export records to a spreadsheet")
    p_export.add_argument("query", nargs="?", help="Facility name (default: all)")
    _add_range(p_export)
    p_export.add_argument("--days", type=int, help="Export the last N days")
    p_export.add_argument("--out", help="Copy the spreadsheet to this path")

    sub.add_parser("sweep", help="Delete expired exports")

    p_cfg = sub.add_parser("config", help="View settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command", title="config commands")
    cfg_sub.add_parser("show", help="Show current settings")
    cfg_sub.add_parser("path", help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, None]]

_COMMAND_MAP: dict[str, _CommandHandler] = {
    "facilities": cmd_facilities,
    "summary": cmd_summary,
    "history": cmd_history,
    "photos": cmd_photos,
    "export": cmd_export,
    "sweep": cmd_sweep,
}

_CONFIG_MAP: dict[str, _CommandHandler] = {
    "show": cmd_config_show,
    "path": cmd_config_path,
}


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    if args.command == "config":
        if not args.config_command:
            parser.parse_args(["config", "--help"])
            return
        handler = _CONFIG_MAP.get(args.config_command)
    else:
        handler = _COMMAND_MAP.get(args.command)

    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        print()
