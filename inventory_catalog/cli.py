"""
Inventory Catalog Backend — Command Line Entry Point
=====================================================

What:  `python -m inventory_catalog <command>`.

Commands:
    serve          Run the HTTP server. --host/--port/--cache override the
                   HOST/PORT/CACHE_DIR settings.
    sweep-orphans  Delete stored photos no inventory item references, then
                   exit. Safe to run from cron next to a live server.
"""

import argparse
import asyncio
import logging
from typing import List, Optional

import uvicorn

from inventory_catalog.config import Settings
from inventory_catalog.config import settings as default_settings
from inventory_catalog.database import (
    create_engine_from_settings,
    create_session_factory,
    dispose_engine,
    init_db,
)
from inventory_catalog.main import create_app, setup_logging
from inventory_catalog.services.asset_store import LocalAssetStore
from inventory_catalog.services.inventory_service import InventoryService
from inventory_catalog.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inventory_catalog",
        description="Inventory records with optional photos",
    )
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Listen port")
    serve.add_argument("--cache", help="Cache directory, created if missing")

    sweep = subparsers.add_parser("sweep-orphans", help="Reclaim unreferenced photos")
    sweep.add_argument(
        "--grace-seconds",
        type=int,
        help="Skip photos younger than this (default: ORPHAN_GRACE_SECONDS)",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    """Copy of base with every option the user actually passed applied."""
    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if getattr(args, "host", None):
        overrides["backend_host"] = args.host
    if getattr(args, "port", None):
        overrides["backend_port"] = args.port
    if getattr(args, "cache", None):
        overrides["cache_dir"] = args.cache
    return base.model_copy(update=overrides)


async def run_sweep(settings: Settings, grace_seconds: Optional[int] = None) -> List[str]:
    """Build both stores, sweep once, release the engine."""
    engine = create_engine_from_settings(settings)
    try:
        if settings.auto_create_schema:
            await init_db(engine)
        service = InventoryService(
            RecordStore(create_session_factory(engine)),
            LocalAssetStore(settings.storage_root),
            settings,
        )
        return await service.sweep_orphans(grace_seconds)
    finally:
        await dispose_engine(engine)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, default_settings)

    if args.command == "serve":
        uvicorn.run(
            create_app(settings),
            host=settings.backend_host,
            port=settings.backend_port,
            log_level=settings.log_level.lower(),
        )
        return 0

    setup_logging(settings.log_level)
    reclaimed = asyncio.run(run_sweep(settings, args.grace_seconds))
    for asset_ref in reclaimed:
        print(asset_ref)
    logger.info("Reclaimed %d orphaned photo(s)", len(reclaimed))
    return 0
