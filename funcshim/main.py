"""FastAPI application entrypoint routing every request to the invoker."""

from __future__ import annotations

import logging

import structlog
from fastapi import FastAPI, Request, Response

from funcshim import metrics
from funcshim.invoker import Invoker
from funcshim.loader import build_invoker
from funcshim.settings import Settings, get_settings

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Paths browsers and crawlers request on their own; never forwarded to the function.
IGNORED_PATHS = ("/favicon.ico", "/robots.txt")

LOGGER = structlog.get_logger(__name__)


def configure_logging(log_level: str) -> None:
    numeric_level = logging.getLevelName(log_level.upper())
    if isinstance(numeric_level, str):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def create_app(settings: Settings | None = None, invoker: Invoker | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if invoker is None:
        invoker = build_invoker(settings)

    app = FastAPI(
        title="funcshim",
        version=settings.version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    for path in IGNORED_PATHS:

        @app.api_route(path, methods=HTTP_METHODS, include_in_schema=False)
        async def not_found() -> Response:
            return Response(status_code=404)

    if settings.metrics_enabled:

        @app.get(settings.metrics_path, include_in_schema=False)
        async def metrics_endpoint() -> Response:
            payload, content_type = metrics.render_metrics()
            return Response(content=payload, media_type=content_type)

    @app.api_route("/{path:path}", methods=HTTP_METHODS, include_in_schema=False)
    async def invoke(request: Request) -> Response:
        return await invoker.handle(request)

    LOGGER.info(
        "app.ready",
        target=settings.function_target,
        signature_type=invoker.function.signature_type,
    )
    return app
