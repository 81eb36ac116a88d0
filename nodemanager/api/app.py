"""
FastAPI application for the node manager.

This is the HTTP API the dashboard talks to. It validates requests and
reads or writes the small state files the supervisor acts upon.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nodemanager import __version__
from nodemanager.config import Settings, get_settings
from nodemanager.core.errors import STATUS_CODES, NodeError, StorageError
from nodemanager.core.log import request_id_var, setup_logging
from nodemanager.core.utils import generate_id
from nodemanager.storage import StorageProvider, create_local_storage
from nodemanager.auth import (
    AuthorizationGate,
    IdentityState,
    KeyStore,
    PasswordHasher,
    account_router,
)
from nodemanager.api.system import router as system_router
from nodemanager.integrations.sentry import capture_exception, init_sentry

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


async def initialize(app: FastAPI) -> None:
    """
    Build the auth subsystem and attach it to app.state.

    A storage failure here is fatal: without signing keys no
    authenticated route can be served.
    """
    settings: Settings = app.state.settings

    storage: StorageProvider | None = getattr(app.state, "storage", None)
    if storage is None:
        storage = create_local_storage(settings)
        app.state.storage = storage

    keystore = KeyStore(
        storage.keys,
        key_size=settings.jwt_key_size,
        algorithm=settings.jwt_algorithm,
    )
    await keystore.ensure_keypair(regenerate=settings.rotate_keys_on_startup)

    hasher = PasswordHasher(iterations=settings.password_hash_iterations)
    identity = IdentityState(storage.credentials)

    app.state.keystore = keystore
    app.state.gate = AuthorizationGate.create(storage.credentials, keystore, hasher, identity)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings: Settings = app.state.settings

    setup_logging(settings)
    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    try:
        await initialize(app)
    except StorageError:
        logger.exception("Unable to initialize signing keys")
        raise

    logger.info(f"Node manager {__version__} starting in {settings.environment} mode")

    yield

    logger.info("Node manager shutting down")


# =============================================================================
# Error Handling
# =============================================================================


async def handle_node_error(request: Request, exc: NodeError) -> JSONResponse:
    """Render the message as the JSON body, with the error's status."""
    level = logging.ERROR if exc.status_code >= STATUS_CODES.INTERNAL_SERVER_ERROR else logging.WARNING
    logger.log(level, f"{exc.message} [{request.url.path}] -> {exc.status_code}")
    return JSONResponse(status_code=exc.status_code, content=exc.message)


async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Storage failure on {request.url.path}: {exc}")
    capture_exception(exc, route=request.url.path)
    return JSONResponse(status_code=STATUS_CODES.INTERNAL_SERVER_ERROR, content="Storage failure")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}", exc_info=exc)
    capture_exception(exc, route=request.url.path)
    return JSONResponse(
        status_code=STATUS_CODES.INTERNAL_SERVER_ERROR,
        content=str(exc) or "Internal error",
    )


async def assign_request_id(request: Request, call_next):
    """Tag every log line of a request with one correlation id."""
    request_id = generate_id("req")
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-Id"] = request_id
    return response


# =============================================================================
# Routes
# =============================================================================


async def ping() -> dict[str, str]:
    return {"version": f"nodemanager-{__version__}"}


# =============================================================================
# App Setup
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
) -> FastAPI:
    """
    Create the API application.

    Pass `storage` to replace the file-backed stores (tests, development).
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Node Manager API",
        description="Control-plane API for the home server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(assign_request_id)

    app.add_exception_handler(NodeError, handle_node_error)
    app.add_exception_handler(StorageError, handle_storage_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Routes
    app.add_api_route("/ping", ping, methods=["GET"])
    app.include_router(account_router)
    app.include_router(system_router)

    return app


app = create_app()
