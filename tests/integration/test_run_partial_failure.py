from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from conftest import DETAIL_URL, FakeFetcher, detail_page

from formula_backfill.cli.main import main as cli_main
from formula_backfill.excel.store import WorkbookStore

"""Full CLI runs where only part of the flagged rows can be enriched."""


def test_partial_failure_exit_code_and_artifacts(write_config: Path, make_workbook, temp_workdir: Path, capsys):
    workbook = make_workbook({
        "Reagents": [
            ["CAS号", "名称", "化学式"],
            ["50-00-0", "甲醛", ""],
            ["7732-18-5", "水", "-"],
            ["", "未知样品", ""],
            ["64-17-5", "乙醇", "C2H6O"],
        ]
    })
    fake = FakeFetcher({DETAIL_URL.format(cas="50-00-0"): detail_page("50-00-0", "CH<sub>2</sub>O")})
    with patch("formula_backfill.services.orchestrator.HttpFetcher", return_value=fake):
        code = cli_main([])

    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY sheets=1/1 rows=4 flagged=3 enriched=1 failed=2 reasons=fetch_error:1,missing_cas:1" in out

    with WorkbookStore(workbook) as store:
        rows = store.read_rows("Reagents")
    assert rows[1] == ["50-00-0", "甲醛", "CH2O"]
    assert rows[2] == ["7732-18-5", "水", "-"]
    assert rows[4] == ["64-17-5", "乙醇", "C2H6O"]

    error_lines = (temp_workdir / "error_log.txt").read_text(encoding="utf-8").splitlines()
    assert len(error_lines) == 1
    assert error_lines[0].endswith("| 404 | http://www.ichemistry.cn/chemistry/7732-18-5.htm")

    report = (temp_workdir / "reports" / "empty_formula_report.txt").read_text(encoding="utf-8")
    assert "Total empty rows: 3" in report
    assert "2     3     4\n" in report


def test_rerun_after_success_has_nothing_to_do(write_config: Path, reagent_workbook: Path, capsys):
    fake = FakeFetcher({DETAIL_URL.format(cas="50-00-0"): detail_page("50-00-0", "HCHO")})
    with patch("formula_backfill.services.orchestrator.HttpFetcher", return_value=fake):
        assert cli_main([]) == 0
        assert cli_main([]) == 0
    assert len(fake.calls) == 1
    assert "flagged=0 enriched=0 failed=0" in capsys.readouterr().out
