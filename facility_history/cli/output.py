"""Terminal rendering for the facility-history CLI.

Color is only used on an interactive stdout without ``NO_COLOR``.
"""

from __future__ import annotations

import os
import sys

from facility_history.tools import ToolResult

_MARKS = {"ok": ("32", "✓"), "hint": ("33", "!"), "fail": ("31", "✗")}


def _paint(code: str, text: str) -> str:
    if os.environ.get("NO_COLOR") or not sys.stdout.isatty():
        return text
    return f"\033[{code}m{text}\033[0m"


def note(kind: str, message: str) -> None:
    code, mark = _MARKS[kind]
    stream = sys.stderr if kind == "fail" else sys.stdout
    print(f"  {_paint(code, mark)} {message}", file=stream)


def show_result(result: ToolResult) -> None:
    """Print a tool's text, exiting with status 1 when it reports an error."""
    if result.is_error:
        note("fail", result.text)
        sys.exit(1)
    print(result.text)


def settings_table(title: str, rows: list[tuple[str, object]]) -> None:
    width = max(len(key) for key, _ in rows) + 1
    print(f"\n{_paint('1', title)}\n")
    for key, value in rows:
        shown = _paint("2", "not set") if value in (None, "") else value
        print(f"  {key + ':':<{width}} {shown}")
    print()
