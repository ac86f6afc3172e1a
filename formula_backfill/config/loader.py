from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_REPORT_PATH,
    ColumnAliasConfig,
    EnrichConfig,
    LookupConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/enrich.yml)
- Validate against config_schema.json shipped next to this module
- Apply defaults declared on the config dataclasses
- Apply environment overrides (WORKBOOK_PATH, LOOKUP_URL_TEMPLATE)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/enrich.yml")

ENV_WORKBOOK = "WORKBOOK_PATH"
ENV_URL_TEMPLATE = "LOOKUP_URL_TEMPLATE"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails schema validation (missing required keys,
            wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Environment variables win over the file (after .env has been loaded)."""
    merged = dict(data)
    workbook = os.getenv(ENV_WORKBOOK)
    if workbook:
        merged["workbook"] = workbook
    template = os.getenv(ENV_URL_TEMPLATE)
    if template:
        if "{cas}" not in template:
            raise ConfigError(f"{ENV_URL_TEMPLATE} must contain '{{cas}}': {template}")
        lookup = dict(merged.get("lookup") or {})
        lookup["url_template"] = template
        merged["lookup"] = lookup
    return merged


def build_config(data: dict[str, Any]) -> EnrichConfig:
    """Build an EnrichConfig from already-validated data."""
    lookup_raw = data.get("lookup") or {}
    defaults = LookupConfig()
    lookup = LookupConfig(
        url_template=lookup_raw.get("url_template", defaults.url_template),
        timeout_seconds=float(lookup_raw.get("timeout_seconds", defaults.timeout_seconds)),
        encoding=lookup_raw.get("encoding", defaults.encoding),
        user_agent=lookup_raw.get("user_agent", defaults.user_agent),
        requests_per_second=int(lookup_raw.get("requests_per_second", defaults.requests_per_second)),
    )

    cols_raw = data.get("columns") or {}
    formula_aliases = cols_raw.get("formula_aliases")
    cas_aliases = cols_raw.get("cas_aliases")
    columns = ColumnAliasConfig(
        formula_aliases=tuple(formula_aliases) if formula_aliases else None,
        cas_aliases=tuple(cas_aliases) if cas_aliases else None,
    )

    null_tokens = data.get("null_tokens")
    return EnrichConfig(
        workbook=data["workbook"],
        lookup=lookup,
        columns=columns,
        null_tokens=frozenset(null_tokens) if null_tokens is not None else None,
        error_log=data.get("error_log", "error_log.txt"),
        report_path=data.get("report_path", DEFAULT_REPORT_PATH),
        workers=int(data.get("workers", 1)),
        persist_every=int(data.get("persist_every", 1)),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> EnrichConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    data = _apply_env_overrides(data)
    _validate_config_schema(data)
    return build_config(data)
