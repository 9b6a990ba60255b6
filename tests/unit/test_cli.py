from __future__ import annotations

import json
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from openpyxl import load_workbook

from facility_history.cli import app
from facility_history.core.types import ArtifactLocator
from facility_history.ext.mcp_use.server import _payload
from facility_history.export.writer import SHEET_TITLE
from facility_history.tools import ToolResult


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    now = datetime.now(UTC)
    dump = {
        "items": [
            {
                "_id": "a",
                "name": "SALA 1 (BANHEIRO)",
                "history": [
                    {"_id": "e1", "date": now.isoformat(), "soap": True},
                    {"_id": "e2", "date": (now - timedelta(hours=1)).isoformat()},
                ],
            }
        ],
        "users": [],
    }
    data_file = tmp_path / "dump.json"
    data_file.write_text(json.dumps(dump), encoding="utf-8")

    config_file = tmp_path / "config.toml"
    config_file.write_text(
        f'[store]\nprovider = "memory"\ndata_file = "{data_file.as_posix()}"\n'
        f'\n[data]\ndir = "{(tmp_path / "data").as_posix()}"\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("FACILITY_HISTORY_CONFIG", str(config_file))
    for name in ("FACILITY_HISTORY_STORE", "FACILITY_HISTORY_DATA", "UPLOADS_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def _main(monkeypatch: pytest.MonkeyPatch, *argv: str) -> None:
    monkeypatch.setattr(sys, "argv", ["facility-history", *argv])
    app.main()


def test_parser_export_arguments():
    args = app._build_parser().parse_args(
        ["export", "SALA 1", "--from", "01/03/2026", "--to", "05/03/2026", "--days", "3"]
    )
    assert args.query == "SALA 1"
    assert (args.start, args.end, args.days) == ("01/03/2026", "05/03/2026", 3)
    assert args.out is None


def test_facilities_command(cli_env, monkeypatch, capsys):
    _main(monkeypatch, "facilities")
    output = capsys.readouterr().out
    assert "Total de salas: 1" in output
    assert "BANHEIRO (1): SALA 1" in output


def test_export_command_saves_file(cli_env: Path, monkeypatch, capsys):
    target = cli_env / "out"
    target.mkdir()
    _main(monkeypatch, "export", "SALA 1", "--days", "2", "--out", str(target))

    output = capsys.readouterr().out
    assert "Exportação concluída: 2 registros exportados." in output
    [saved] = list(target.iterdir())
    assert saved.suffix == ".xlsx"
    workbook = load_workbook(saved, read_only=True)
    try:
        assert len(list(workbook[SHEET_TITLE].iter_rows())) == 3
    finally:
        workbook.close()


def test_tool_error_exits_non_zero(cli_env, monkeypatch, capsys):
    with pytest.raises(SystemExit) as exc_info:
        _main(monkeypatch, "history", "Auditório")
    assert exc_info.value.code == 1
    assert "Nenhuma sala encontrada" in capsys.readouterr().err


def test_config_path_command(cli_env: Path, monkeypatch, capsys):
    _main(monkeypatch, "config", "path")
    assert capsys.readouterr().out.strip() == str(cli_env / "config.toml")


def test_mcp_payload_includes_artifact():
    locator = ArtifactLocator(
        artifact_id="exports/a.xlsx",
        file_name="a.xlsx",
        content_type="application/vnd.ms-excel",
        uri="data:application/vnd.ms-excel;base64,AA==",
        expires_at=datetime(2026, 3, 10, 15, 5, tzinfo=UTC),
        inline=True,
    )
    payload = _payload(ToolResult("ok", artifact=locator))
    assert payload == {
        "text": "ok",
        "is_error": False,
        "artifact": {
            "file_name": "a.xlsx",
            "mime_type": "application/vnd.ms-excel",
            "uri": "data:application/vnd.ms-excel;base64,AA==",
            "expires_at": "2026-03-10T15:05:00+00:00",
        },
    }
    assert "artifact" not in _payload(ToolResult("erro", is_error=True))


def test_config_show_marks_unset_values(cli_env, monkeypatch, capsys):
    _main(monkeypatch, "config", "show")
    lines = capsys.readouterr().out.splitlines()
    assert f"Configuration ({cli_env / 'config.toml'})" in lines
    [uploads] = [line for line in lines if "Uploads base URL:" in line]
    assert uploads.endswith(" not set")
    [store] = [line for line in lines if "Store:" in line]
    assert store.endswith(f"memory ({(cli_env / 'dump.json').as_posix()})")
