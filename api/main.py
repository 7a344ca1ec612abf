"""FastAPI application for the static redirector."""

import logging
import os
from collections.abc import Iterable, Mapping
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.logger import configure_logging
from core.observability import configure_observability, instrument_app
from core.redirects import RedirectMiddleware
from routes import health_router
from services.redirect_rules import RedirectConfigError, RedirectIndex, compile_rules

# OTel must be configured before fastapi.FastAPI() is instantiated.
configure_observability()
configure_logging()
logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


def load_redirect_index(
    environ: Mapping[str, str] | Iterable[tuple[str, str]],
) -> RedirectIndex:
    """Compile the redirect rules, logging what was registered.

    Raises:
        RedirectConfigError: If any rule is invalid. Nothing is served then.
    """
    try:
        index = compile_rules(environ)
    except RedirectConfigError as e:
        logger.error(
            "config.invalid",
            extra={"rule": e.rule_name, "key": e.key, "error": str(e)},
        )
        raise

    for rule in index.rules:
        logger.info(
            "redirect.rule.registered",
            extra={
                "rule": rule.name,
                "paths": list(rule.sources),
                "code": rule.code,
                "js_only": rule.js_only,
                "preserve_params": rule.preserve_params,
            },
        )
    if not index.rules:
        logger.warning("redirect.rules.empty")
    return index


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    index: RedirectIndex = app.state.redirect_index
    logger.info(
        "init.complete",
        extra={"rules": len(index.rules), "paths": len(index)},
    )
    yield
    logger.info("shutdown.complete")


def create_app(
    environ: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
) -> fastapi.FastAPI:
    """Build the app around a redirect index compiled from ``environ``.

    The index is fully built before the app object exists, so it is
    published before the server accepts a request.
    """
    settings = get_settings()
    if environ is None:
        environ = dict(os.environ)
    index = load_redirect_index(environ)

    app = fastapi.FastAPI(
        title="Static Redirector",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
    )

    instrument_app(app)

    app.state.redirect_index = index
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(health_router)

    # Outermost: configured redirects are answered before anything else runs.
    app.add_middleware(RedirectMiddleware, index=index)

    return app


app = create_app()
