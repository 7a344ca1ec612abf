"""Service configuration using pydantic-settings.

Only the service's own settings live here (``SR_REDIR__*``). Redirect rules
(``SR_REDIR_<name>*``) are compiled separately by
``services.redirect_rules`` from an environment snapshot.
"""

from functools import lru_cache
from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "0.0.0.0:8080"


def _split_host(value: str) -> tuple[str, str]:
    """Split ``host:port`` (``[v6]:port`` for IPv6) into its parts."""
    host, sep, port = value.rpartition(":")
    if not sep:
        return value, ""
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SR_REDIR__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Listen address as "host:port"; wrap IPv6 hosts in brackets
    host: str = DEFAULT_HOST

    # Feature flags
    debug: bool = False  # Enables docs
    enable_docs: bool = False  # Swagger UI at /docs

    @model_validator(mode="after")
    def validate_config(self) -> Self:
        host, port = _split_host(self.host)
        if not host or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(
                f"SR_REDIR__HOST must look like 'host:port', got {self.host!r}"
            )
        return self

    @property
    def bind_host(self) -> str:
        return _split_host(self.host)[0]

    @property
    def bind_port(self) -> int:
        return int(_split_host(self.host)[1])

    @property
    def docs_enabled(self) -> bool:
        return self.enable_docs or self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this in tests to reset settings between test cases.
    After clearing, the next get_settings() call will create
    a fresh Settings instance with current environment variables.
    """
    get_settings.cache_clear()
