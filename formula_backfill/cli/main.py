from __future__ import annotations

import argparse
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.reader import SheetHeaderError, preview_sheet, read_excel_file
from ..excel.store import StoreError, WorkbookStore
from ..logging.init import set_debug, setup_logging
from ..models.config_models import EnrichConfig
from ..services.orchestrator import ProcessingError, enrich_workbook
from ..services.scanner import ColumnNotFound, EmptyFieldScanner, is_usable_cas

"""CLI entrypoint.

Flow:
- Load .env (overrides the process environment), then the YAML config
- Apply command line overrides (--workbook, --workers)
- --inspect-data: print headers, the first rows and the empty formula count
  of each sheet, then exit
- Otherwise run one enrichment pass; the orchestrator logs the SUMMARY line

Exit codes: 0 every flagged row enriched (or none flagged), 2 some rows
failed or the run was interrupted, 1 fatal (config, workbook, no formula column).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; values in the file win over the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="formula-backfill",
        description="Fill empty chemical formula cells of a reagent workbook from CAS numbers",
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--workbook", help="Workbook to enrich (overrides config and WORKBOOK_PATH)")
    p.add_argument("--workers", type=int, help="Concurrent lookups (1 = sequential)")
    p.add_argument("--scan-only", action="store_true", help="Report empty formula rows without looking anything up")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers, first rows and empty formula counts then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(workbook: Path, cfg: EnrichConfig) -> int:
    print(f"FILE: {workbook.name}")
    raw = read_excel_file(workbook)
    with WorkbookStore(workbook) as store:
        scanner = EmptyFieldScanner(
            store,
            formula_aliases=cfg.columns.formula_aliases,
            cas_aliases=cfg.columns.cas_aliases,
            null_tokens=cfg.null_tokens,
        )
        for sname, df in raw.items():
            try:
                preview = preview_sheet(df, sname)
            except SheetHeaderError as e:
                print(f"  SHEET: {sname} error={e}")
                continue
            print(f"  SHEET: {sname} rows={preview.total_rows} cols={preview.columns}")
            print("    sample_rows=", preview.rows)
            try:
                records = scanner.records(sname)
            except ColumnNotFound:
                print("    empty_formula=- (no formula column)")
                continue
            flagged = [r for r in records if r.needs_enrichment]
            no_cas = sum(1 for r in flagged if not is_usable_cas(r.cas))
            print(f"    empty_formula={len(flagged)} without_cas={no_cas}")
    return EXIT_SUCCESS_ALL


def _apply_overrides(cfg: EnrichConfig, args: argparse.Namespace) -> EnrichConfig:
    if args.workbook:
        cfg = replace(cfg, workbook=args.workbook)
    if args.workers is not None:
        cfg = replace(cfg, workers=args.workers)
    return cfg


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None -> read sys.argv; an explicit [] must not pick up the test runner's args
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = _apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    if cfg.workers < 1:
        logger.error(f"config: workers must be >= 1, got {cfg.workers}")
        return EXIT_FATAL

    workbook = Path(cfg.workbook)
    if not workbook.is_file():
        logger.error(f"workbook: file not found: {workbook}")
        return EXIT_FATAL

    if args.inspect_data:
        try:
            return _inspect_data(workbook, cfg)
        except StoreError as e:
            logger.error(f"workbook: {e}")
            return EXIT_FATAL

    logger.info(f"Enriching workbook: {workbook}")

    cancel = threading.Event()
    previous = signal.getsignal(signal.SIGINT)

    def _request_cancel(signum, frame):
        logger.warning("interrupt received, finishing in-flight lookups")
        cancel.set()

    in_main_thread = threading.current_thread() is threading.main_thread()
    if in_main_thread:
        signal.signal(signal.SIGINT, _request_cancel)
    try:
        stats = enrich_workbook(cfg, scan_only=args.scan_only, cancel_event=cancel)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    finally:
        if in_main_thread:
            signal.signal(signal.SIGINT, previous)

    if stats.rows_failed > 0 or stats.cancelled:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
