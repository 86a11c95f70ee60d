"""
Inventory Catalog Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, route mounting, error mapping
       and store construction in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
       Stores can be injected (tests); otherwise lifespan builds them.
Who:   Called by uvicorn (inventory_catalog.main:app) and by the CLI.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐        │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│ CORS │        │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘        │
    │                                                     │
    │  Routes:                                            │
    │  /register  /inventory[/{id}[/photo]]  /search      │
    │  /RegisterForm.html  /SearchForm.html  /health      │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ NotFound→404 │ StoreDown→503      │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Create cache and storage directories
    3. Build engine, RecordStore, LocalAssetStore, InventoryService
       (skipped for whatever was injected into create_app)
    4. Optionally run an orphan sweep

    Shutdown:
    1. Dispose the database engine, if lifespan created it
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory_catalog import __version__
from inventory_catalog.config import Settings
from inventory_catalog.config import settings as default_settings
from inventory_catalog.database import (
    create_engine_from_settings,
    create_session_factory,
    dispose_engine,
    init_db,
)
from inventory_catalog.exceptions import (
    AssetNotFoundError,
    DanglingAssetReferenceError,
    InventoryCatalogError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from inventory_catalog.middleware.logging import RequestLoggingMiddleware
from inventory_catalog.middleware.request_id import RequestIDMiddleware, request_id_var
from inventory_catalog.routes import forms, health, inventory
from inventory_catalog.services.asset_store import AssetStore, LocalAssetStore
from inventory_catalog.services.inventory_service import InventoryService
from inventory_catalog.services.record_store import RecordStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    What:    One format on stdout for every module.
    When:    Called once during startup (before store construction), and by
             the CLI before a sweep.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Per-request noise; our access log covers it
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build whatever create_app() was not given, and release it on shutdown.

    Startup sequence:
        1. Setup logging
        2. Create cache directory
        3. Engine + schema + RecordStore, unless a record store was injected
        4. LocalAssetStore, unless an asset store was injected
        5. InventoryService over the two stores
        6. Orphan sweep, if enabled

    Shutdown sequence:
        1. Dispose the engine this lifespan created
    """
    # ── Startup ───────────────────────────────────────────────────────────
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Inventory Catalog starting up...")

    cache = Path(settings.cache_dir)
    cache.mkdir(parents=True, exist_ok=True)
    logger.info("Cache directory: %s", cache.resolve())

    engine = None
    if app.state.inventory_service is None:
        records = app.state.record_store
        if records is None:
            engine = create_engine_from_settings(settings)
            if settings.auto_create_schema:
                await init_db(engine)
            records = RecordStore(create_session_factory(engine))

        assets = app.state.asset_store
        if assets is None:
            assets = LocalAssetStore(settings.storage_root)

        app.state.record_store = records
        app.state.asset_store = assets
        app.state.inventory_service = InventoryService(records, assets, settings)

    if settings.sweep_orphans_on_startup:
        reclaimed = await app.state.inventory_service.sweep_orphans()
        logger.info("Startup orphan sweep reclaimed %d asset(s)", len(reclaimed))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Inventory Catalog shutting down...")
    if engine is not None:
        await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError, RequestValidationError → 400 validation_error
        NotFoundError, unknown route            → 404 not_found
        AssetNotFoundError                      → 404 asset_not_found
        DanglingAssetReferenceError             → 404 asset_reference_broken
        StoreUnavailableError                   → 503 store_unavailable
        Exception (fallback)                    → 500 internal_server_error

    Security: Store errors, SQL and OS messages are logged server-side and
    never put in the response.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        """Client sent invalid input; tell them what's wrong."""
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.error_code, exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Malformed path/form/body parameters, e.g. a non-integer id."""
        errors = exc.errors()
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in errors]
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), fields)
        return _error_response(
            400,
            ValidationError.error_code,
            "Bad Request: " + "; ".join(err.get("msg", "invalid value") for err in errors),
            {"fields": fields},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc.error_code, exc.message)

    @app.exception_handler(AssetNotFoundError)
    async def handle_asset_not_found(request: Request, exc: AssetNotFoundError):
        """
        Covers both "item has no photo" and the dangling subclass.

        A dangling reference means the stores diverged, so it is logged at
        ERROR with the reference; the client only gets the error code.
        """
        if isinstance(exc, DanglingAssetReferenceError):
            logger.error(
                "[%s] Dangling asset reference: %s | Context: %s",
                request_id_var.get(""),
                exc.message,
                exc.context,
            )
            return _error_response(404, exc.error_code, exc.message, {"item_id": exc.item_id})
        return _error_response(404, exc.error_code, exc.message)

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        """Transient outage: generic message to the client, details logged."""
        logger.error(
            "[%s] Store unavailable: %s | Context: %s",
            request_id_var.get(""),
            exc.store,
            exc.context,
        )
        return _error_response(503, exc.error_code, exc.message)

    @app.exception_handler(InventoryCatalogError)
    async def handle_catalog_error(request: Request, exc: InventoryCatalogError):
        logger.error(
            "[%s] Application error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An internal error occurred. Please try again later.",
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Framework-raised HTTP errors (unknown route, wrong method)."""
        error = "not_found" if exc.status_code == 404 else "http_error"
        response = _error_response(exc.status_code, error, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        Security: Stack trace is logged server-side ONLY (never in response).
        """
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    record_store: Optional[RecordStore] = None,
    asset_store: Optional[AssetStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:     Defaults to the environment-loaded settings.
        record_store: Pre-built record store (tests). Built at startup if None.
        asset_store:  Pre-built asset store (tests, fakes). Built at startup if None.

    When both stores are given the service is wired immediately, so the app
    serves requests even when the ASGI lifespan never runs.
    """
    app_settings = settings or default_settings

    app = FastAPI(
        title="Inventory Catalog API",
        description=(
            "Inventory records with optional photos. Photos are stored outside "
            "the database and coupled to records so that no record ever points "
            "at a photo that is missing."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.record_store = record_store
    app.state.asset_store = asset_store
    app.state.inventory_service = None
    if record_store is not None and asset_store is not None:
        app.state.inventory_service = InventoryService(record_store, asset_store, app_settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added runs first)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Don't compress small responses (overhead > savings)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(inventory.router)
    app.include_router(forms.router)
    app.include_router(health.router)

    return app


# uvicorn expects `inventory_catalog.main:app` to be importable
app = create_app()
