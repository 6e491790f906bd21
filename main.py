"""
Yacht CRM Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the SQLite schema and runs a small command-line front end over
:class:`~yachtcrm.api.BrokerAPI`.  Every subsystem is wired here; there
are no module-level globals.

Usage::

    python main.py init-db
    python main.py dashboard --token <access-token>
"""

from __future__ import annotations

import argparse
import atexit
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from yachtcrm.api import BrokerAPI
from yachtcrm.auth import build_identity_provider
from yachtcrm.config import AppConfig, get_config
from yachtcrm.database import DatabaseManager
from yachtcrm.logger import StructuredLogger, get_logger
from yachtcrm.schema import initialize_schema
from yachtcrm.services import create_services


def build_database(config: AppConfig) -> DatabaseManager:
    """Open the store and bring its schema up to date."""
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=(
            config.SUPABASE_SERVICE_ROLE_KEY.get_secret_value()
            or config.SUPABASE_ANON_KEY.get_secret_value()
        ),
        sqlite_path=Path(config.SQLITE_PATH),
        logger=StructuredLogger(name="database"),
        timeout_s=config.STORE_TIMEOUT_S,
    )
    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
    return db


def build_api(config: AppConfig, db: DatabaseManager) -> BrokerAPI:
    """Wire identity, services and the request layer."""
    identity = build_identity_provider(config, db, get_logger("auth"))
    services = create_services(db=db, config=config)
    return BrokerAPI(identity=identity, services=services)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="yachtcrm", description="Yacht broker CRM core")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="create or migrate the local database")

    dashboard = commands.add_parser(
        "dashboard", help="print dashboard stats and reminder buckets as JSON",
    )
    dashboard.add_argument(
        "--token",
        default=os.environ.get("YACHTCRM_TOKEN", ""),
        help="access token (defaults to $YACHTCRM_TOKEN)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Application entry point; returns the process exit code."""
    args = _parse_args(argv)
    logger: StructuredLogger = get_logger("main")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager + schema (idempotent)
    # ------------------------------------------------------------------
    db = build_database(config)
    atexit.register(db.close)

    try:
        if args.command == "init-db":
            logger.info("Database ready at %s", config.SQLITE_PATH)
            return 0

        # --------------------------------------------------------------
        # 3. Request layer (identity + service container)
        # --------------------------------------------------------------
        api = build_api(config, db)
        result = api.get_dashboard(args.token)
        print(result.model_dump_json(indent=2))
        return 0 if result.success else 1
    finally:
        db.close()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
