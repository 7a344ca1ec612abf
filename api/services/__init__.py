"""Service layer for redirect logic.

Services hold the redirect rules and resolution, keeping the ASGI layer
thin and focused on HTTP handling:

    Middleware / Routes (HTTP) -> Services (rule compilation, resolution)

Services should:
- Contain all rule parsing and validation
- Return dataclasses describing outcomes

Services should NOT:
- Know about HTTP request/response objects
- Read the process environment themselves (the snapshot is passed in)
"""

from services.redirect_rules import (
    RedirectConfigError,
    RedirectIndex,
    RedirectRule,
    compile_rules,
)
from services.redirect_service import (
    HttpRedirect,
    NotFound,
    RedirectDecision,
    ScriptRedirect,
    resolve,
)

__all__ = [
    "RedirectConfigError",
    "RedirectIndex",
    "RedirectRule",
    "compile_rules",
    "HttpRedirect",
    "NotFound",
    "RedirectDecision",
    "ScriptRedirect",
    "resolve",
]
