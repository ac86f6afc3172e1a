# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from formula_backfill.lookup.fetcher import FetchError
from formula_backfill.logging.init import reset_logging


DETAIL_URL = "http://www.ichemistry.cn/chemistry/{cas}.htm"


def detail_page(cas: str, formula_html: str, chinese_name: str = "") -> str:
    """Minimal detail page in the reference site's layout."""
    return f"""<html><head><meta charset="gbk"></head><body>
<table class="ChemicalInfo">
<tr><td class="ltd">中文名称</td><td>{chinese_name}</td></tr>
<tr><td class="ltd">CAS号</td><td>{cas}</td></tr>
<tr><td class="ltd">分子式</td><td>{formula_html}</td></tr>
</table></body></html>"""


class FakeFetcher:
    """PageFetcher double: url -> html, or url -> exception to raise.

    Unknown URLs answer with HTTP 404.
    """

    def __init__(self, pages: dict[str, str | Exception] | None = None) -> None:
        self.pages: dict[str, str | Exception] = dict(pages or {})
        self.calls: list[str] = []
        self.closed = False

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, 404)
        if isinstance(page, Exception):
            raise page
        return page

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _clean_logging():
    # the application logger binds sys.stdout on setup; rebind per test for capsys
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("WORKBOOK_PATH", raising=False)
        monkeypatch.delenv("LOOKUP_URL_TEMPLATE", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """workbook: ./data/reagents.xlsx
lookup:
  url_template: "http://www.ichemistry.cn/chemistry/{cas}.htm"
  timeout_seconds: 5
  requests_per_second: 50
error_log: error_log.txt
report_path: reports/empty_formula_report.txt
workers: 1
persist_every: 1
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "enrich.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[..., Path]:
    """Build an .xlsx with pandas + openpyxl; each sheet is a list of rows, header first."""

    def _make(sheets: dict[str, list[list[object]]], name: str = "data/reagents.xlsx") -> Path:
        p = temp_workdir / name
        p.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(p, engine="openpyxl") as writer:
            for sheet, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return p

    return _make


@pytest.fixture()
def reagent_workbook(make_workbook) -> Path:
    return make_workbook({
        "Reagents": [
            ["CAS号", "化学式"],
            ["50-00-0", ""],
            ["64-17-5", "C2H6O"],
        ]
    })


@pytest.fixture()
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()
