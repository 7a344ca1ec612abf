"""Redirect resolution service.

Looks an incoming request path up in the compiled ``RedirectIndex`` and
describes how the HTTP layer should answer. Resolution is an in-memory
lookup plus string building; it never touches shared state.
"""

from __future__ import annotations

from dataclasses import dataclass

from services.redirect_rules import RedirectIndex


@dataclass(frozen=True)
class HttpRedirect:
    """Answer with a 3xx status and a ``Location`` header."""

    target: str
    code: int


@dataclass(frozen=True)
class ScriptRedirect:
    """Answer 200 with a page whose script navigates to ``target``."""

    target: str


@dataclass(frozen=True)
class NotFound:
    """No rule claims the path."""


RedirectDecision = HttpRedirect | ScriptRedirect | NotFound


def append_query(target: str, query: str | None) -> str:
    """Append a raw query string to ``target``.

    Uses ``&`` when the target already carries a query, ``?`` otherwise.
    A ``#fragment`` on the target stays last. Trailing ``?``/``&`` on the
    target are left as configured.
    """
    if not query:
        return target
    base, hash_mark, fragment = target.partition("#")
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{query}{hash_mark}{fragment}"


def resolve(
    index: RedirectIndex, path: str, query: str | None = None
) -> RedirectDecision:
    """Resolve ``path`` (exact match) against ``index``."""
    rule = index.get(path)
    if rule is None:
        return NotFound()

    target = rule.target
    if rule.preserve_params:
        target = append_query(target, query)

    if rule.js_only:
        return ScriptRedirect(target=target)
    return HttpRedirect(target=target, code=rule.code)
