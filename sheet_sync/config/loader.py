from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import ColumnConfig, DatabaseConfig, ProxyConfig, SyncConfig
from ..sheet.columns import DEFAULT_FALLBACKS, DEFAULT_VARIANTS

"""Config loader for the registration sheet sync.

Responsibilities:
- Load YAML (default config/sync.yml)
- Validate against the bundled JSON schema (sync_config_schema.json)
- Apply defaults: environment=production, built-in header variants and
  positional fallbacks for every field the file does not override
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/sync.yml")
SCHEMA_PATH = Path(__file__).parent / "sync_config_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
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


def _build_columns(raw: dict[str, Any]) -> ColumnConfig:
    variants = {k: tuple(v) for k, v in DEFAULT_VARIANTS.items()}
    for field, names in (raw.get("variants") or {}).items():
        variants[field] = tuple(names)
    fallbacks = dict(DEFAULT_FALLBACKS)
    fallbacks.update(raw.get("fallbacks") or {})
    return ColumnConfig(variants=variants, fallbacks=fallbacks)


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> SyncConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    proxy_raw = data["proxy"]
    proxy = ProxyConfig(
        direct_endpoint=proxy_raw["direct_endpoint"],
        local_endpoint=proxy_raw.get("local_endpoint"),
        timeout_seconds=proxy_raw.get("timeout_seconds"),
    )
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return SyncConfig(
        proxy=proxy,
        columns=_build_columns(data.get("columns") or {}),
        database=db,
        environment=data.get("environment", "production"),
    )
