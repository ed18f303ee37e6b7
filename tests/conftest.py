# Shared pytest fixtures
from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from sheet_sync.logging.init import reset_logging

PROXY = "https://proxy.test/exec"
SHEET_URL = "https://docs.google.com/spreadsheets/d/abc123/edit#gid=0"


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""environment: production
proxy:
  local_endpoint: http://localhost:8080/api/gsheet
  direct_endpoint: {PROXY}
  timeout_seconds: 5
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def scenario_table() -> list[list[object]]:
    return [
        ["Name", "Phone", "Payment Status", "Amount"],
        ["Asha", "9990001111", "Yes", "1500"],
        ["Ravi", "9990002222", "pending", "0"],
        ["", "", "", ""],
    ]


@pytest.fixture()
def make_client() -> Callable[..., httpx.Client]:
    """Build an httpx.Client whose transport answers every request the same way."""
    clients: list[httpx.Client] = []

    def _make(
        status: int = 200,
        body: str | None = None,
        table: list[list[object]] | None = None,
        requests: list[httpx.Request] | None = None,
    ) -> httpx.Client:
        content = json.dumps(table) if table is not None else (body or "")

        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            return httpx.Response(status, text=content)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()
