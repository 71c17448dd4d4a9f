# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from levscore.logging.init import reset_logging


@pytest.fixture(autouse=True)
def fresh_logging():
    # The stdout handler binds sys.stdout at setup; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """organization_id: org-1
uploader: anna@example.com
source_directory: ./data
mode: scored
limits:
  max_file_size: 10485760
  max_rows: 1000
database:
  host: localhost
  port: 5432
  user: levscore
  password: secret
  database: levscore
"""


@pytest.fixture()
def raw_config_yaml() -> str:
    return """organization_id: org-1
uploader: anna@example.com
source_directory: ./data
mode: raw
full_refresh: true
raw_mapping:
  supplier_number: LevNr
  supplier_name: Leverantör
  revenue: Omsättning
  article_number: Artikel
  quantity: Antal
  margin: TG
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "levscore.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def xlsx_bytes() -> Callable[[list[list[object]]], bytes]:
    """Build an in-memory .xlsx whose first sheet holds ``rows`` verbatim (row 0 = header)."""

    def _build(rows: list[list[object]], sheet_name: str = "Leverantörer") -> bytes:
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return buf.getvalue()

    return _build


@pytest.fixture()
def scored_rows() -> list[list[object]]:
    return [
        ["Leverantörsnummer", "Leverantör", "Antal rader", "Total omsättning", "Snitt-TG (%)", "Total_score"],
        ["100", "Acme AB", 12, 250000.5, 31.2, 8.4],
        ["200", "Beta AB", 3, 12000, 14, 2.1],
        ["", "Utan nummer AB", 1, 10, 10, 0],
    ]
