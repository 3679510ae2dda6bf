"""FastAPI application for the DB explorer.

This module wires the pieces together:
1. Loading configuration and configuring logging
2. Discovering the schema catalog (fatal on failure)
3. Building the ordered router over the CRUD handlers
4. Dispatching every request through that router from a single catch-all route
5. Turning API errors into ``{"error": ...}`` JSON responses

The app is built by :func:`create_app`; uvicorn runs it in factory mode.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..catalog import discover
from ..config import AppConfig, load_config
from ..db import SQLClient
from ..errors import ApiError
from ..handlers import CrudHandlers, build_router
from ..logging_utils import configure_logging, log_extra
from ..router import ApiRequest
from .utils import RequestIdMiddleware

_METHODS = ["GET", "PUT", "POST", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def _config_path() -> Path:
    """Get the configuration file path from environment or default."""
    path = os.environ.get("DB_EXPLORER_CONFIG", "config.yml")
    return Path(path)


def create_app(config_path: Path | None = None, config: AppConfig | None = None) -> FastAPI:
    """Create the application.

    Args:
        config_path: Optional path to config file. If None, uses default from environment.
        config: Already loaded configuration; takes precedence over ``config_path``.

    Returns:
        FastAPI: application serving every discovered table
    """
    if config is None:
        config = load_config(config_path or _config_path())
    configure_logging(config.observability.log_level)
    log = logging.getLogger(__name__)

    sql_client = SQLClient.from_config(config.database)
    try:
        catalog = discover(sql_client)
    except Exception:
        sql_client.dispose()
        raise
    router = build_router(CrudHandlers(catalog, sql_client, config.api))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        sql_client.dispose()

    # Every path belongs to the catch-all route, including /docs and /redoc
    app = FastAPI(
        title="DB Explorer",
        description="Generic REST API over a relational schema",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.add_middleware(
        RequestIdMiddleware, propagate=config.observability.propagate_request_ids
    )

    @app.exception_handler(ApiError)
    async def api_error(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            log.error(
                "Request failed",
                extra=log_extra(path=request.url.path, error_message=str(exc)),
            )
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log.exception(
            "Unhandled error",
            extra=log_extra(path=request.url.path, error_message=str(exc)),
        )
        return JSONResponse({"error": "internal error"}, status_code=500)

    @app.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def dispatch(request: Request) -> JSONResponse:
        api_request = ApiRequest(
            method=request.method,
            path=request.url.path,
            query=dict(request.query_params),
            body=await request.body(),
        )
        payload = await asyncio.to_thread(router.dispatch, api_request)
        return JSONResponse(payload)

    log.info(f"DB explorer ready with {len(catalog)} tables")
    return app
