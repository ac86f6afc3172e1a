"""Domain models for the reagent workbook formula backfill tool.

This package contains the dataclasses passed between the store, the scanner,
the resolver and the orchestrator.
"""

from .column_index import ColumnIndex
from .config_models import ColumnAliasConfig, EnrichConfig, LookupConfig
from .error_record import ErrorLogEntry
from .record import EnrichmentTask, Record, SheetScan
from .resolution import ChemicalInfo, FailureReason, ResolutionResult
from .run_statistics import LookupTimingAccumulator, RunPhase, RunStatistics

__all__ = [
    # Configuration models
    "ColumnAliasConfig",
    "EnrichConfig",
    "LookupConfig",
    # Scan models
    "ColumnIndex",
    "Record",
    "EnrichmentTask",
    "SheetScan",
    # Resolution models
    "ChemicalInfo",
    "FailureReason",
    "ResolutionResult",
    # Run bookkeeping
    "ErrorLogEntry",
    "LookupTimingAccumulator",
    "RunPhase",
    "RunStatistics",
]
