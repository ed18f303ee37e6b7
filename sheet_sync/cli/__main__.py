from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
import psycopg2.extras
from dotenv import load_dotenv

from sheet_sync.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from sheet_sync.db.registration_store import PostgresRegistrationStore
from sheet_sync.db.store import InMemoryRegistrationStore, RegistrationStore, StoreError
from sheet_sync.logging.error_log import ErrorLogBuffer
from sheet_sync.logging.init import enable_debug, log_summary, setup_logging
from sheet_sync.models.config_models import DatabaseConfig, SyncConfig
from sheet_sync.models.sync_result import SyncResult
from sheet_sync.services.financials import (
    compute_financials,
    compute_registration_stats,
    format_currency,
)
from sheet_sync.services.orchestrator import PartialSyncFailure, sync_workshop
from sheet_sync.services.summary import render_summary_line
from sheet_sync.sheet.fetcher import SheetFetcher, SheetSourceError, select_proxy_endpoint

"""CLI entrypoint: sync one workshop's registrations from its sheet.

Flow:
- Load .env, then config/sync.yml
- Select the proxy endpoint once from the environment
- Connect to PostgreSQL (or use the in-memory store in mock mode)
- Run the sync, print the SUMMARY line and the financial report

Exit codes: 0 success, 2 partial sync failure, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

ENVIRONMENT_VAR = "SHEET_SYNC_ENV"


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string resolution order.

    1. DATABASE_URL / PGDSN (full DSN)
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the config file's database section
    """
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn_env:
        return dsn_env
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_cursor(conn: Any) -> Iterator[Any]:
    """Yield a dict cursor; commit on normal exit, rollback on exception."""
    cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
    try:
        yield cur
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Sync workshop registrations from a shared sheet")
    p.add_argument("--workshop", required=True, help="Workshop id to sync")
    p.add_argument("--sheet-url", help="Sheet URL (default: the workshop's stored sheet_url)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--meta-spend", type=float, help="Ad spend for the margin report")
    p.add_argument("--save-snapshot", action="store_true", help="Store the financial snapshot")
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _report(store: RegistrationStore, workshop_id: str, args: argparse.Namespace, logger: logging.Logger) -> None:
    registrations = store.get_registrations(workshop_id)
    stats = compute_registration_stats(registrations)
    logger.info(
        "registered=%d paid=%d unpaid=%d pending=%d paid_pct=%d%% avg_payment=%s",
        stats.registered,
        stats.paid,
        stats.unpaid,
        stats.pending,
        stats.paid_percentage,
        format_currency(stats.average_payment),
    )

    meta_spend = args.meta_spend
    if meta_spend is None:
        snapshots = store.get_financial_snapshots(workshop_id)
        meta_spend = snapshots[0].meta_spend if snapshots else 0.0
    summary = compute_financials(registrations, meta_spend, store.get_other_costs(workshop_id))
    logger.info(
        "revenue=%s costs=%s profit=%s margin=%.1f%%",
        format_currency(summary.revenue),
        format_currency(summary.total_costs),
        format_currency(summary.profit),
        summary.profit_margin,
    )
    if args.save_snapshot:
        store.create_financial_snapshot(summary.to_snapshot(workshop_id))
        logger.info("financial snapshot saved")


def _run(
    cfg: SyncConfig,
    args: argparse.Namespace,
    store: RegistrationStore,
    fetcher: SheetFetcher,
    logger: logging.Logger,
    commit: Callable[[], None] | None = None,
) -> int:
    """Sync, then report.

    ``commit`` (live mode) is called once the sync has finished and before any
    report query runs; the report then works in a fresh transaction.
    """
    workshop_id = args.workshop
    sheet_url = args.sheet_url
    try:
        if not sheet_url:
            workshop = store.get_workshop(workshop_id)
            if workshop is None:
                logger.error(f"workshop not found: {workshop_id}")
                return EXIT_FATAL
            sheet_url = workshop.sheet_url
    except StoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL
    if not sheet_url:
        logger.error(f"no sheet URL for workshop {workshop_id}")
        return EXIT_FATAL

    exit_code = EXIT_SUCCESS_ALL
    result: SyncResult
    try:
        result = sync_workshop(
            workshop_id,
            sheet_url,
            fetcher=fetcher,
            store=store,
            columns=cfg.columns,
            error_log=ErrorLogBuffer(),
            show_progress=not args.no_progress,
        )
    except SheetSourceError as e:
        logger.error(f"sync failed: {e}")
        return EXIT_FATAL
    except PartialSyncFailure as e:
        logger.error(str(e))
        result = e.result
        exit_code = EXIT_PARTIAL_FAILURE

    if commit is not None:
        try:
            commit()
        except psycopg2.Error as e:
            logger.error(f"commit failed, synced rows were not saved: {e}")
            return EXIT_FATAL

    # "SUMMARY " prefix is added by the formatter
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    try:
        _report(store, workshop_id, args, logger)
    except StoreError as e:
        logger.error(f"report: {e}")
        return EXIT_FATAL
    return exit_code


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む ([] はテストからの明示指定)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        enable_debug()
        logger.debug("debug mode enabled")

    environment = os.getenv(ENVIRONMENT_VAR) or cfg.environment
    endpoint = select_proxy_endpoint(
        environment,
        local_endpoint=cfg.proxy.local_endpoint,
        direct_endpoint=cfg.proxy.direct_endpoint,
    )
    logger.info(f"environment={environment} proxy={endpoint}")
    fetcher = SheetFetcher(endpoint, timeout=cfg.proxy.timeout_seconds)

    # DB 接続を完全に無効化したい場合 DISABLE_DB_CONNECT=1
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        logger.info("mode=mock")
        return _run(cfg, args, InMemoryRegistrationStore(), fetcher, logger)

    try:
        conn = psycopg2.connect(_resolve_dsn(cfg.database))
    except psycopg2.Error as db_e:
        logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
        logger.info("mode=mock")
        return _run(cfg, args, InMemoryRegistrationStore(), fetcher, logger)

    logger.info("mode=live")
    with _db_cursor(conn) as cur:
        return _run(cfg, args, PostgresRegistrationStore(cur), fetcher, logger, commit=conn.commit)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
