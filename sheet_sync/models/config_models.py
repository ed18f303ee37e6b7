from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the registration sheet sync.

Built by sheet_sync.config.loader from config/sync.yml. The proxy endpoint is
selected once from ``environment`` by the caller (select_proxy_endpoint)
and handed to the SheetFetcher at construction.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL / PG*) take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ProxyConfig:
    direct_endpoint: str  # script endpoint reachable from anywhere
    local_endpoint: str | None = None  # same-origin dev proxy
    timeout_seconds: float | None = None  # None = httpx default


@dataclass(frozen=True)
class ColumnConfig:
    """Header variants and positional fallbacks for the sheet template."""
    variants: dict[str, tuple[str, ...]] = field(default_factory=dict)
    fallbacks: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SyncConfig:
    proxy: ProxyConfig
    columns: ColumnConfig
    database: DatabaseConfig
    environment: str = "production"
