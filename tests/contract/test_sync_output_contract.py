from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from sheet_sync.cli.__main__ import main as cli_main
from sheet_sync.sheet.fetcher import SheetFetcher

"""Output contracts consumed by cron wrappers: exit codes, SUMMARY line, error log keys."""

SUMMARY_RE = re.compile(
    r"^SUMMARY workshop=\S+ rows=\d+ succeeded=\d+ failed=\d+ skipped_rows=\d+ elapsed_sec=[0-9.]+$",
    re.MULTILINE,
)
ERROR_LOG_KEYS = {"timestamp", "workshop", "row", "error_type", "message"}


@pytest.fixture(autouse=True)
def _mock_mode(monkeypatch, write_config):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    monkeypatch.delenv("SHEET_SYNC_ENV", raising=False)


def test_summary_line_format(monkeypatch, scenario_table, capsys):
    monkeypatch.setattr(SheetFetcher, "fetch", lambda self, url: scenario_table)
    assert cli_main(["--workshop", "W1", "--sheet-url", "https://sheet", "--no-progress"]) == 0
    out = capsys.readouterr().out
    assert len(SUMMARY_RE.findall(out)) == 1


def test_error_log_lines_have_fixed_keys(monkeypatch, capsys):
    monkeypatch.setattr(SheetFetcher, "fetch", lambda self, url: [["Name"], ["A"], ["B"]])
    from sheet_sync.db.store import InMemoryRegistrationStore, StoreError

    def refuse(self, workshop_id, row_index, fields):
        raise StoreError("read-only transaction")

    monkeypatch.setattr(InMemoryRegistrationStore, "upsert_registration", refuse)
    assert cli_main(["--workshop", "W1", "--sheet-url", "https://sheet", "--no-progress"]) == 2

    (log_file,) = list(Path("logs").glob("sync-errors-*.log"))
    assert re.fullmatch(r"sync-errors-\d{8}-\d{6}\.log", log_file.name)
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [r["row"] for r in records] == [2, 3]
    for r in records:
        assert set(r) == ERROR_LOG_KEYS
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z", r["timestamp"])
        assert r["error_type"] == "UPSERT_ERROR"


def test_exit_code_fatal_without_config(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "sync.yml").unlink()
    assert cli_main(["--workshop", "W1"]) == 1
    assert "ERROR config:" in capsys.readouterr().out
