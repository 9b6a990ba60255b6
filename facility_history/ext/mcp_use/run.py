#!/usr/bin/env python
# pyright: reportMissingImports=false
"""Standalone MCP server entry point for facility-history.

Usage::

    python -m facility_history.ext.mcp_use.run
    python -m facility_history.ext.mcp_use.run --transport streamable-http
    python -m facility_history.ext.mcp_use.run --host 127.0.0.1 --port 3000

Reads the same TOML config as the ``facility-history`` CLI.  Run
``facility-history sweep`` once beforehand to create the PostgreSQL
tables.
"""

from __future__ import annotations

import argparse
import logging


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="python -m facility_history.ext.mcp_use.run",
        description="Start the facility-history MCP server.",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    from facility_history.cli.app import _build_history
    from facility_history.cli.config import load_config
    from facility_history.ext.mcp_use.server import create_server

    server = create_server(_build_history(load_config()))

    kwargs: dict = {"transport": args.transport}
    if args.transport == "streamable-http":
        kwargs.update(host=args.host, port=args.port)
    server.run(**kwargs)


if __name__ == "__main__":
    main()
