"""Configured redirect middleware.

Pure ASGI middleware. The compiled ``RedirectIndex`` is injected at
construction time and only read afterwards, so every request shares it
without locking.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from core.templates import templates
from services.redirect_rules import RedirectIndex
from services.redirect_service import (
    HttpRedirect,
    ScriptRedirect,
    resolve,
)

logger = logging.getLogger(__name__)

REDIRECT_METHODS = frozenset({"GET", "HEAD"})
SCRIPT_REDIRECT_TEMPLATE = "redirect.html"

# Printable ASCII passes through untouched
_LOCATION_SAFE = "".join(chr(c) for c in range(0x21, 0x7F)) + " "


def location_header(target: str) -> str:
    """Return ``target`` as a ``Location`` value.

    Printable ASCII is sent exactly as configured. Anything else (non-ASCII,
    CR/LF, other controls) is percent-encoded as UTF-8.
    """
    return quote(target, safe=_LOCATION_SAFE)


class RedirectMiddleware:
    """Serve configured redirects ahead of the rest of the app.

    Registered as the outermost middleware so configured paths win over
    application routes. Unmatched paths fall through to ``app``.

    Args:
        app: The next ASGI application in the middleware stack.
        index: The compiled, read-only redirect index.
    """

    def __init__(self, app: ASGIApp, index: RedirectIndex) -> None:
        self.app = app
        self.index = index

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in REDIRECT_METHODS:
            await self.app(scope, receive, send)
            return

        path: str = scope["path"]
        query = scope.get("query_string", b"").decode("latin-1")
        decision = resolve(self.index, path, query)

        response: Response
        if isinstance(decision, HttpRedirect):
            response = Response(
                status_code=decision.code,
                headers={"location": location_header(decision.target)},
            )
            kind, status_code = "http", decision.code
        elif isinstance(decision, ScriptRedirect):
            response = templates.TemplateResponse(
                Request(scope, receive),
                SCRIPT_REDIRECT_TEMPLATE,
                {"target": decision.target},
            )
            kind, status_code = "script", response.status_code
        else:
            await self.app(scope, receive, send)
            return

        logger.info(
            "redirect.served",
            extra={
                "path": path,
                "rule": getattr(self.index.get(path), "name", None),
                "kind": kind,
                "has_query": bool(query),
                "query_length": len(query),
                "status_code": status_code,
            },
        )
        await response(scope, receive, send)
