from __future__ import annotations

import logging
import threading
import time
from collections.abc import Collection, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from ..excel.store import PersistError, StoreError, WorkbookStore, WriteError
from ..logging.error_log import ErrorLogFile, ErrorLogSink
from ..logging.init import log_summary
from ..lookup.fetcher import HttpFetcher
from ..lookup.resolver import FormulaResolver
from ..models.config_models import EnrichConfig
from ..models.error_record import ErrorLogEntry
from ..models.record import EnrichmentTask, SheetScan
from ..models.resolution import FailureReason, ResolutionResult
from ..models.run_statistics import LookupTimingAccumulator, RunPhase, RunStatistics
from .progress import ProgressTracker, SheetProgressIndicator
from .report import write_empty_row_report
from .scanner import ColumnNotFound, EmptyFieldScanner, is_usable_cas
from .summary import render_summary_line

"""Enrichment run orchestration.

State machine per run: scanning → resolving → writing_back → reporting → done.

- Scanning: every sheet is scanned; a sheet without a formula column is skipped,
  a workbook where no sheet has one is fatal.
- Resolving: lookups run on a bounded thread pool (workers=1 keeps the strictly
  sequential behaviour). No more than `workers` fetches are in flight, and no
  new fetch starts once the cancel event is set.
- Writing back: only the thread running run() touches the store and the error
  log. A row counts as enriched once the persist covering its write succeeded.
- Reporting: SUMMARY line, statistics returned.

Only ProcessingError escapes run(); per-row failures end up in RunStatistics.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessingError",
    "TabularStore",
    "EnrichmentOrchestrator",
    "enrich_workbook",
]


class ProcessingError(Exception):
    """Fatal run error: the workbook cannot be read or has no formula column."""


class TabularStore(Protocol):
    def list_sheets(self) -> list[str]: ...

    def read_rows(self, sheet: str) -> list[list[str]]: ...

    def resolve_column(self, header_row: Sequence[str], aliases: Sequence[str]) -> int | None: ...

    def set_cell(self, sheet: str, row_number: int, column: int, value: Any) -> None: ...

    def persist(self) -> None: ...

    def rollback(self) -> int: ...


class Resolver(Protocol):
    def resolve(self, cas: str) -> ResolutionResult: ...


class EnrichmentOrchestrator:
    """Drives one enrichment run over a tabular store."""

    def __init__(
        self,
        store: TabularStore,
        resolver: Resolver,
        error_log: ErrorLogSink,
        *,
        formula_aliases: Sequence[str] | None = None,
        cas_aliases: Sequence[str] | None = None,
        null_tokens: Collection[str] | None = None,
        workers: int = 1,
        persist_every: int = 1,
        cancel_event: threading.Event | None = None,
        report_path: Path | str | None = None,
        show_progress: bool = True,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if persist_every < 1:
            raise ValueError(f"persist_every must be >= 1, got {persist_every}")
        self.store = store
        self.resolver = resolver
        self.error_log = error_log
        self.scanner = EmptyFieldScanner(
            store,
            formula_aliases=formula_aliases,
            cas_aliases=cas_aliases,
            null_tokens=null_tokens,
        )
        self.workers = workers
        self.persist_every = persist_every
        self.cancel_event = cancel_event or threading.Event()
        self.report_path = Path(report_path) if report_path else None
        self.show_progress = show_progress

    # -- scanning ----------------------------------------------------------

    def scan(self, stats: RunStatistics) -> list[SheetScan]:
        stats.phase = RunPhase.SCANNING
        try:
            sheets = self.store.list_sheets()
        except StoreError as e:
            raise ProcessingError(f"cannot list sheets: {e}") from e

        scans: list[SheetScan] = []
        indicator = SheetProgressIndicator(len(sheets), enabled=self.show_progress)
        for sheet in sheets:
            indicator.start_sheet(sheet)
            try:
                scan = self.scanner.scan_sheet(sheet)
            except ColumnNotFound as e:
                logger.warning(f"skipping sheet: {e}")
                stats.sheets_skipped += 1
                indicator.finish_sheet(success=False)
                continue
            except StoreError as e:
                raise ProcessingError(f"cannot read sheet '{sheet}': {e}") from e

            stats.sheets_scanned += 1
            stats.rows_scanned += scan.rows_scanned
            stats.rows_flagged += scan.empty_count
            scans.append(scan)
            indicator.finish_sheet(success=True, empty_rows=scan.empty_count)

        if stats.sheets_scanned == 0 and stats.sheets_skipped > 0:
            raise ProcessingError("no sheet has a chemical formula column")
        return scans

    def build_tasks(self, scans: Sequence[SheetScan], stats: RunStatistics) -> list[EnrichmentTask]:
        """Turn scan results into lookups; rows without a usable CAS fail here."""
        tasks: list[EnrichmentTask] = []
        for scan in scans:
            if scan.cas_column is None:
                for _ in scan.empty_rows:
                    stats.record_failure(FailureReason.MISSING_CAS)
                if scan.empty_rows:
                    logger.warning(
                        f"sheet '{scan.sheet}': {scan.empty_count} empty rows cannot be enriched (no CAS column)"
                    )
                continue
            for task in scan.tasks():
                if is_usable_cas(task.cas):
                    tasks.append(task)
                else:
                    stats.record_failure(FailureReason.MISSING_CAS)
                    logger.warning(f"{task.sheet}!row {task.row_number}: no usable CAS ({task.cas or 'blank'})")
        return tasks

    # -- resolving / writing back -------------------------------------------

    def _timed_resolve(self, cas: str) -> tuple[ResolutionResult, float]:
        started = time.perf_counter()
        result = self.resolver.resolve(cas)
        return result, time.perf_counter() - started

    def _flush(self, pending: list[EnrichmentTask], stats: RunStatistics) -> None:
        """Persist buffered writes; on failure undo them and fail those rows."""
        if not pending:
            return
        try:
            self.store.persist()
        except PersistError as e:
            restored = self.store.rollback()
            logger.error(f"persist failed, {restored} buffered writes discarded: {e}")
            for _ in pending:
                stats.record_failure(FailureReason.WRITE_ERROR)
        else:
            for _ in pending:
                stats.record_success()
        pending.clear()

    def _handle_result(
        self,
        task: EnrichmentTask,
        result: ResolutionResult,
        stats: RunStatistics,
        pending: list[EnrichmentTask],
    ) -> None:
        where = f"{task.sheet}!row {task.row_number} ({task.cas})"
        if not result.ok:
            reason = result.reason or FailureReason.EXTRACTION_MISS
            stats.record_failure(reason)
            if reason is FailureReason.FETCH_ERROR and result.url:
                try:
                    self.error_log.append(ErrorLogEntry.create(result.status_code, result.url))
                except OSError as e:
                    logger.error(f"error log append failed: {e}")
            logger.warning(f"{where}: {reason.value} {result.message}".rstrip())
            return

        stats.phase = RunPhase.WRITING_BACK
        try:
            self.store.set_cell(task.sheet, task.row_number, task.formula_column, result.formula)
        except WriteError as e:
            stats.record_failure(FailureReason.WRITE_ERROR)
            logger.error(f"{where}: write failed: {e}")
        else:
            logger.debug(f"{where}: {result.formula}")
            pending.append(task)
            if len(pending) >= self.persist_every:
                self._flush(pending, stats)
        stats.phase = RunPhase.RESOLVING

    def resolve_and_write(self, tasks: Sequence[EnrichmentTask], stats: RunStatistics) -> None:
        stats.phase = RunPhase.RESOLVING
        timing = LookupTimingAccumulator()
        pending: list[EnrichmentTask] = []
        task_iter = iter(tasks)
        in_flight: dict[Future[tuple[ResolutionResult, float]], EnrichmentTask] = {}

        with ProgressTracker(len(tasks), enabled=self.show_progress) as progress, ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="resolver"
        ) as pool:

            def submit_next() -> bool:
                if self.cancel_event.is_set():
                    stats.cancelled = True
                    return False
                task = next(task_iter, None)
                if task is None:
                    return False
                in_flight[pool.submit(self._timed_resolve, task.cas)] = task
                return True

            try:
                while len(in_flight) < self.workers and submit_next():
                    pass
                while in_flight:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        task = in_flight.pop(future)
                        result, elapsed = future.result()
                        timing.add(elapsed)
                        self._handle_result(task, result, stats, pending)
                        progress.advance(task.cas)
                        progress.set_postfix(ok=stats.rows_enriched + len(pending), failed=stats.rows_failed)
                    while len(in_flight) < self.workers and submit_next():
                        pass
            finally:
                # rows already written in memory are committed even when leaving early
                self._flush(pending, stats)

        _, stats.avg_lookup_seconds, stats.p95_lookup_seconds = timing.get_stats()
        if stats.cancelled:
            logger.warning(f"run cancelled, {stats.rows_unprocessed} rows not looked up")

    # -- whole run ---------------------------------------------------------

    def run(self, *, scan_only: bool = False) -> RunStatistics:
        stats = RunStatistics(start_time=datetime.now())
        scans = self.scan(stats)

        if self.report_path is not None:
            source = getattr(self.store, "path", "<workbook>")
            try:
                write_empty_row_report(self.report_path, source, scans)
            except OSError as e:
                logger.warning(f"could not write empty-row report {self.report_path}: {e}")

        if not scan_only:
            tasks = self.build_tasks(scans, stats)
            logger.info(f"{len(tasks)} rows to look up with {self.workers} worker(s)")
            self.resolve_and_write(tasks, stats)

        stats.phase = RunPhase.REPORTING
        stats.end_time = datetime.now()
        if stats.avg_lookup_seconds:
            logger.info(
                f"lookup latency avg={stats.avg_lookup_seconds:.3f}s p95={stats.p95_lookup_seconds:.3f}s"
            )
        log_summary(render_summary_line(stats)[len("SUMMARY "):])
        stats.phase = RunPhase.DONE
        return stats


def enrich_workbook(
    config: EnrichConfig,
    *,
    scan_only: bool = False,
    cancel_event: threading.Event | None = None,
    show_progress: bool = True,
) -> RunStatistics:
    """Open the configured workbook, wire the collaborators, run once.

    Raises:
        ProcessingError: workbook cannot be opened/read or has no formula column
    """
    try:
        store = WorkbookStore(config.workbook)
    except StoreError as e:
        raise ProcessingError(str(e)) from e

    fetcher = HttpFetcher(config.lookup)
    try:
        with store:
            orchestrator = EnrichmentOrchestrator(
                store,
                FormulaResolver(fetcher, config.lookup.url_template),
                ErrorLogFile(config.error_log),
                formula_aliases=config.columns.formula_aliases,
                cas_aliases=config.columns.cas_aliases,
                null_tokens=config.null_tokens,
                workers=config.workers,
                persist_every=config.persist_every,
                cancel_event=cancel_event,
                report_path=config.report_path,
                show_progress=show_progress,
            )
            return orchestrator.run(scan_only=scan_only)
    finally:
        fetcher.close()
