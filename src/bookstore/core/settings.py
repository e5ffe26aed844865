"""Process-level settings for the bookstore service.

These are the few knobs that have to be known *before* the hierarchical
configuration is loaded: where the configuration file lives, how to log,
and how the service names itself.  Everything about the listener and the
routing table lives in the TOML configuration instead (see
:mod:`bookstore.core.config`).

All values can be overridden via ``BOOKSTORE_*`` environment variables or a
``.env`` file::

    BOOKSTORE_CONFIG_FILE=/etc/bookstore/application.toml
    BOOKSTORE_LOG_LEVEL=DEBUG
    BOOKSTORE_LOG_FORMAT=json

Tags:
    settings, configuration, pydantic, environment, bookstore

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bookstore import __version__


class BookstoreSettings(BaseSettings):
    """Settings resolved from the environment.

    Order of precedence (highest → lowest):
        1. Environment variables (``BOOKSTORE_LOG_LEVEL``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOKSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Configuration source ─────────────────────────────────────
    config_file: Path | None = Field(default=None, description="TOML configuration file")

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Structlog log level")
    log_format: Literal["auto", "json", "console"] = Field(default="auto")

    # ── Identity ─────────────────────────────────────────────────
    service_name: str = Field(default="bookstore")
    version: str = Field(default=__version__)


@lru_cache(maxsize=1)
def get_settings() -> BookstoreSettings:
    """Cached settings: loaded once per process."""
    return BookstoreSettings()


__all__ = ["BookstoreSettings", "get_settings"]
