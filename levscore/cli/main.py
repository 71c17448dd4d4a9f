from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.reader import SheetReadError, preview_file
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import DatabaseConfig
from ..services.importer import ProcessingError, import_files, scan_upload_files
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config
- Collect files (arguments, or every spreadsheet in source_directory)
- Import them against PostgreSQL, or in mock mode when no connection is made
- Print the SUMMARY line and exit with 0 (all ok), 2 (some file failed) or
  1 (fatal: config, directory)
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string, environment first.

    1. DATABASE_URL / PGDSN (or the config dsn) as a whole
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the config ``database`` section for anything still missing
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
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
def _db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor; the import service owns BEGIN / COMMIT per file."""
    conn = psycopg2.connect(_resolve_dsn(db_cfg))
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="levscore", description="Import supplier spreadsheets into LevScore")
    p.add_argument("files", nargs="*", type=Path, help="Files to import (default: every spreadsheet in source_directory)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print headers and sample values, then exit")
    return p.parse_args(argv)


def _inspect_data(paths: list[Path]) -> int:
    if not paths:
        print("inspect: no spreadsheet files")
        return EXIT_SUCCESS_ALL
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            preview = preview_file(path.read_bytes(), path.name)
        except (OSError, SheetReadError) as e:
            print(f"  read_error: {e}")
            continue
        print(f"  SHEET: {preview.sheet_name} rows={preview.row_count}")
        for header in preview.headers:
            print(f"    [{header.index}] {header.name}: {header.preview}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None -> read sys.argv; an explicit [] must not pick up pytest's arguments
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
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.files:
        paths = list(args.files)
    else:
        try:
            paths = scan_upload_files(Path(cfg.source_directory))
        except ProcessingError as e:
            logger.error(str(e))
            return EXIT_FATAL
        logger.info(f"Importing files from: {cfg.source_directory}")

    if args.inspect_data:
        return _inspect_data(paths)

    # DISABLE_DB_CONNECT=1 forces mock mode (tests, dry runs)
    db_mode = "mock"
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        summary = import_files(cfg, paths, cursor=None)
    else:
        try:
            with _db_connection(cfg.database) as cur:
                db_mode = "live"
                summary = import_files(cfg, paths, cursor=cur)
        except psycopg2.OperationalError as db_e:
            logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
            summary = import_files(cfg, paths, cursor=None)

    logger.info(f"mode={db_mode} organization={cfg.organization_id} suppliers={summary.total_suppliers}")
    # log_summary adds the SUMMARY label itself
    log_summary(render_summary_line(summary)[len("SUMMARY ") :])

    if summary.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
