from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the formula backfill tool.

These are the typed form of config/enrich.yml. formula_backfill.config.loader
builds them after schema validation; keys missing from the file keep the
defaults declared here.
"""

DEFAULT_URL_TEMPLATE = "http://www.ichemistry.cn/chemistry/{cas}.htm"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
DEFAULT_REPORT_PATH = "reports/empty_formula_report.txt"


@dataclass(frozen=True)
class LookupConfig:
    """How CAS identifiers are turned into requests against the reference site."""
    url_template: str = DEFAULT_URL_TEMPLATE  # must contain "{cas}"
    timeout_seconds: float = 10.0
    encoding: str = "gbk"  # response bodies are legacy Chinese encoded
    user_agent: str = DEFAULT_USER_AGENT
    requests_per_second: int = 3


@dataclass(frozen=True)
class ColumnAliasConfig:
    """Ordered header aliases; order is the tie-break, so keep it stable."""
    formula_aliases: tuple[str, ...] | None = None  # None -> scanner defaults
    cas_aliases: tuple[str, ...] | None = None


@dataclass(frozen=True)
class EnrichConfig:
    """Root configuration object for one enrichment run."""
    workbook: str  # path to the .xlsx file, mutated in place
    lookup: LookupConfig = field(default_factory=LookupConfig)
    columns: ColumnAliasConfig = field(default_factory=ColumnAliasConfig)
    null_tokens: frozenset[str] | None = None  # None -> scanner defaults
    error_log: str = "error_log.txt"
    report_path: str | None = DEFAULT_REPORT_PATH  # None disables the report
    workers: int = 1  # 1 = strictly sequential lookups
    persist_every: int = 1  # 1 = save after every successful write
