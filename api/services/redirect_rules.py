"""Redirect rule compilation.

Parses the flat ``SR_REDIR_*`` key/value namespace into validated
``RedirectRule`` records and builds the immutable ``RedirectIndex`` the
resolver reads from. Compilation happens once at startup; any problem
raises a ``RedirectConfigError`` and the service refuses to start.

Key layout::

    SR_REDIR_<name>                  = "/a,/b"
    SR_REDIR_<name>__TARGET          = "https://example.com"
    SR_REDIR_<name>__CODE            = "301"
    SR_REDIR_<name>__JS_ONLY         = "true"
    SR_REDIR_<name>__PRESERVE_PARAMS = "false"

Keys under ``SR_REDIR__`` (empty rule name) are service settings and are
left to ``core.config``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

ENV_PREFIX = "SR_REDIR_"
SETTINGS_PREFIX = "SR_REDIR__"
FIELD_SEPARATOR = "__"

TARGET_FIELD = "TARGET"
CODE_FIELD = "CODE"
JS_ONLY_FIELD = "JS_ONLY"
PRESERVE_PARAMS_FIELD = "PRESERVE_PARAMS"
RULE_FIELDS = frozenset(
    {TARGET_FIELD, CODE_FIELD, JS_ONLY_FIELD, PRESERVE_PARAMS_FIELD}
)

REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})
DEFAULT_REDIRECT_CODE = 307

# Words joined by single underscores, so "<name>__<FIELD>" splits one way only.
_RULE_NAME_RE = re.compile(r"^[A-Za-z0-9]+(?:_[A-Za-z0-9]+)*$")
_BOOLEANS = {"true": True, "false": False}


# =============================================================================
# Errors
# =============================================================================


class RedirectConfigError(Exception):
    """Raised when the redirect configuration cannot be compiled."""

    def __init__(self, rule_name: str, key: str, message: str):
        self.rule_name = rule_name
        self.key = key
        super().__init__(message)


class InvalidRuleNameError(RedirectConfigError):
    """Raised when a rule name is empty, malformed, or contains ``__``."""

    def __init__(self, rule_name: str, key: str):
        super().__init__(
            rule_name,
            key,
            f'Variable "{key}" does not define a valid rule name: '
            f'"{rule_name}" must be alphanumeric words joined by single underscores',
        )


class OrphanRuleFieldError(RedirectConfigError):
    """Raised when rule fields are set but the rule's base key is not."""

    def __init__(self, rule_name: str, key: str):
        super().__init__(
            rule_name,
            key,
            f'Variable "{key}" is set but "{ENV_PREFIX}{rule_name}" is missing',
        )


class EmptySourcesError(RedirectConfigError):
    """Raised when a rule lists no source paths or an empty entry."""

    def __init__(self, rule_name: str, key: str):
        super().__init__(
            rule_name, key, f'Variable "{key}" has an empty source path list entry'
        )


class InvalidSourcePathError(RedirectConfigError):
    """Raised when a source path does not start with ``/``."""

    def __init__(self, rule_name: str, key: str, path: str):
        self.path = path
        super().__init__(
            rule_name, key, f'Variable "{key}" has source path "{path}" without "/"'
        )


class MissingTargetError(RedirectConfigError):
    """Raised when ``__TARGET`` is absent or blank."""

    def __init__(self, rule_name: str, key: str):
        super().__init__(rule_name, key, f'Variable "{key}" is missing!')


class InvalidValueError(RedirectConfigError):
    """Raised when a rule field cannot be parsed as its expected type."""

    expected = "value"

    def __init__(self, rule_name: str, key: str, value: str):
        self.value = value
        super().__init__(
            rule_name,
            key,
            f'Variable "{key}" has wrong type, expected {self.expected}, '
            f"got {value!r}",
        )


class InvalidIntegerError(InvalidValueError):
    expected = "Integer"


class InvalidBooleanError(InvalidValueError):
    expected = "Boolean (true/false)"


class InvalidStatusCodeError(RedirectConfigError):
    """Raised when ``__CODE`` is an integer but not a redirect status."""

    def __init__(self, rule_name: str, key: str, code: int):
        self.value = code
        allowed = ", ".join(str(c) for c in sorted(REDIRECT_CODES))
        super().__init__(
            rule_name,
            key,
            f'Variable "{key}" has status {code}, expected one of {allowed}',
        )


class DuplicateRuleNameError(RedirectConfigError):
    """Raised when the same rule name is defined more than once."""

    def __init__(self, rule_name: str, key: str):
        super().__init__(
            rule_name, key, f'Rule "{rule_name}" is defined more than once'
        )


class DuplicateRuleFieldError(RedirectConfigError):
    """Raised when one of a rule's fields is set more than once."""

    def __init__(self, rule_name: str, key: str):
        super().__init__(rule_name, key, f'Variable "{key}" is set more than once')


class DuplicateSourcePathError(RedirectConfigError):
    """Raised when two rules claim the same source path."""

    def __init__(self, rule_name: str, key: str, path: str, other_rule: str):
        self.path = path
        self.other_rule = other_rule
        super().__init__(
            rule_name,
            key,
            f'Source path "{path}" of rule "{rule_name}" is already '
            f'claimed by rule "{other_rule}"',
        )


# =============================================================================
# Models
# =============================================================================


@dataclass(frozen=True)
class RedirectRule:
    """A named set of source paths pointing at one target."""

    name: str
    sources: tuple[str, ...]
    target: str
    code: int = DEFAULT_REDIRECT_CODE
    js_only: bool = False
    preserve_params: bool = False


@dataclass(frozen=True)
class RedirectIndex:
    """Read-only path -> rule lookup built once at startup."""

    rules: tuple[RedirectRule, ...] = ()
    _by_path: Mapping[str, RedirectRule] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )

    @classmethod
    def from_rules(cls, rules: Iterable[RedirectRule]) -> RedirectIndex:
        """Flatten rule sources into the lookup.

        Raises:
            DuplicateSourcePathError: If two rules share a source path.
        """
        rules = tuple(rules)
        by_path: dict[str, RedirectRule] = {}
        for rule in rules:
            for path in rule.sources:
                owner = by_path.get(path)
                if owner is not None and owner is not rule:
                    raise DuplicateSourcePathError(
                        rule.name, _base_key(rule.name), path, owner.name
                    )
                by_path[path] = rule
        return cls(rules=rules, _by_path=MappingProxyType(by_path))

    def get(self, path: str) -> RedirectRule | None:
        return self._by_path.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_path)

    def __len__(self) -> int:
        return len(self._by_path)


@dataclass
class _RuleKeys:
    """Raw keys collected for one rule name before validation."""

    name: str
    sources: str | None = None
    fields: dict[str, str] = field(default_factory=dict)
    first_key: str = ""
    duplicate_base: bool = False
    duplicate_fields: list[str] = field(default_factory=list)


# =============================================================================
# Compilation
# =============================================================================


def _base_key(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


def _field_key(name: str, field_name: str) -> str:
    return f"{ENV_PREFIX}{name}{FIELD_SEPARATOR}{field_name}"


def _iter_items(
    config: Mapping[str, str] | Iterable[tuple[str, str]],
) -> Iterable[tuple[str, str]]:
    if isinstance(config, Mapping):
        return config.items()
    return config


def _group_keys(
    config: Mapping[str, str] | Iterable[tuple[str, str]],
) -> list[_RuleKeys]:
    """Group ``SR_REDIR_*`` keys by rule name in first-seen order."""
    groups: dict[str, _RuleKeys] = {}

    for key, value in _iter_items(config):
        if not key.startswith(ENV_PREFIX) or key.startswith(SETTINGS_PREFIX):
            continue

        remainder = key[len(ENV_PREFIX) :]
        name, sep, suffix = remainder.partition(FIELD_SEPARATOR)
        if sep and suffix not in RULE_FIELDS:
            raise InvalidRuleNameError(remainder, key)
        if not _RULE_NAME_RE.match(name):
            raise InvalidRuleNameError(name, key)

        group = groups.get(name)
        if group is None:
            group = groups[name] = _RuleKeys(name=name, first_key=key)

        if not sep:
            if group.sources is not None:
                group.duplicate_base = True
            group.sources = value
        else:
            if suffix in group.fields:
                group.duplicate_fields.append(key)
            group.fields[suffix] = value

    return list(groups.values())


def _parse_sources(name: str, raw: str) -> tuple[str, ...]:
    key = _base_key(name)
    paths: list[str] = []
    for entry in raw.split(","):
        path = entry.strip()
        if not path:
            raise EmptySourcesError(name, key)
        if not path.startswith("/"):
            raise InvalidSourcePathError(name, key, path)
        if path not in paths:
            paths.append(path)
    return tuple(paths)


def _parse_bool(name: str, field_name: str, raw: str | None) -> bool:
    if raw is None:
        return False
    parsed = _BOOLEANS.get(raw.strip().lower())
    if parsed is None:
        raise InvalidBooleanError(name, _field_key(name, field_name), raw)
    return parsed


def _parse_code(name: str, raw: str | None) -> int:
    if raw is None:
        return DEFAULT_REDIRECT_CODE
    key = _field_key(name, CODE_FIELD)
    try:
        code = int(raw.strip())
    except ValueError:
        raise InvalidIntegerError(name, key, raw) from None
    if code not in REDIRECT_CODES:
        raise InvalidStatusCodeError(name, key, code)
    return code


def _build_rule(group: _RuleKeys) -> RedirectRule:
    name = group.name
    if group.sources is None:
        raise OrphanRuleFieldError(name, group.first_key)

    sources = _parse_sources(name, group.sources)

    target = group.fields.get(TARGET_FIELD, "").strip()
    if not target:
        raise MissingTargetError(name, _field_key(name, TARGET_FIELD))

    return RedirectRule(
        name=name,
        sources=sources,
        target=target,
        code=_parse_code(name, group.fields.get(CODE_FIELD)),
        js_only=_parse_bool(name, JS_ONLY_FIELD, group.fields.get(JS_ONLY_FIELD)),
        preserve_params=_parse_bool(
            name, PRESERVE_PARAMS_FIELD, group.fields.get(PRESERVE_PARAMS_FIELD)
        ),
    )


def compile_rules(
    config: Mapping[str, str] | Iterable[tuple[str, str]],
) -> RedirectIndex:
    """Compile a configuration snapshot into a ``RedirectIndex``.

    Args:
        config: Environment-style mapping, or an ordered sequence of
            ``(key, value)`` pairs in which keys may repeat.

    Returns:
        The immutable index of every configured source path.

    Raises:
        RedirectConfigError: On the first invalid rule or conflict found.
    """
    groups = _group_keys(config)
    rules = [_build_rule(group) for group in groups]

    # Uniqueness is checked once every key has been grouped.
    for group in groups:
        if group.duplicate_base:
            raise DuplicateRuleNameError(group.name, _base_key(group.name))
        if group.duplicate_fields:
            raise DuplicateRuleFieldError(group.name, group.duplicate_fields[0])

    return RedirectIndex.from_rules(rules)
