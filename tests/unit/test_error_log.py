from __future__ import annotations

import re
import threading
from pathlib import Path

from formula_backfill.logging.error_log import ErrorLogFile, MemoryErrorLog
from formula_backfill.models.error_record import ErrorLogEntry

LINE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \| (\d{3}|-) \| \S+$")


def test_entry_line_format():
    entry = ErrorLogEntry("2025-06-01 14:03:22", 404, "http://www.ichemistry.cn/chemistry/50-00-0.htm")
    assert entry.to_log_line() == "2025-06-01 14:03:22 | 404 | http://www.ichemistry.cn/chemistry/50-00-0.htm"


def test_entry_without_status_uses_dash():
    entry = ErrorLogEntry.create(None, "http://x/1.htm")
    assert LINE_PATTERN.match(entry.to_log_line())
    assert " | - | " in entry.to_log_line()


def test_file_sink_appends_one_line_per_entry(temp_workdir: Path):
    sink = ErrorLogFile(temp_workdir / "logs" / "error_log.txt")
    sink.append(ErrorLogEntry.create(404, "http://x/50-00-0.htm"))
    sink.append(ErrorLogEntry.create(503, "http://x/64-17-5.htm"))
    lines = (temp_workdir / "logs" / "error_log.txt").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert all(LINE_PATTERN.match(line) for line in lines)
    assert lines[0].endswith("| 404 | http://x/50-00-0.htm")
    assert len(sink) == 2


def test_file_sink_keeps_existing_lines(temp_workdir: Path):
    path = temp_workdir / "error_log.txt"
    path.write_text("2024-01-01 00:00:00 | 500 | http://x/old.htm\n", encoding="utf-8")
    ErrorLogFile(path).append(ErrorLogEntry.create(404, "http://x/new.htm"))
    assert len(path.read_text(encoding="utf-8").splitlines()) == 2


def test_file_sink_thread_safe(temp_workdir: Path):
    sink = ErrorLogFile(temp_workdir / "error_log.txt")

    def worker(n: int) -> None:
        for i in range(20):
            sink.append(ErrorLogEntry.create(404, f"http://x/{n}-{i}.htm"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    lines = (temp_workdir / "error_log.txt").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 80
    assert all(LINE_PATTERN.match(line) for line in lines)


def test_memory_sink_collects_entries():
    sink = MemoryErrorLog()
    sink.append(ErrorLogEntry.create(404, "http://x/1.htm"))
    assert [e.status_code for e in sink.entries] == [404]
