"""
Configuration discovery and loading.

Implements the cascading load order::

    packaged application.toml  →  user file  →  BOOKSTORE_* env overlay

The user file is, in order of preference: the explicit ``path`` argument,
``BOOKSTORE_CONFIG_FILE``, or ``./application.toml`` when present.  An
explicitly named file that does not exist is an error; the implicit
``./application.toml`` is optional.

Environment overlay keys use ``__`` between path segments and ``_`` in place
of ``-`` inside a segment::

    BOOKSTORE_APP__JSON_LIBRARY=jackson      →  app.json-library = "jackson"
    BOOKSTORE_SERVER__PORT=9090              →  server.port = "9090"

Tags:
    bookstore, configuration, toml, env-overlay, cascading, loader

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any

from bookstore.core.config.node import ConfigNode
from bookstore.core.errors import ConfigurationError, ErrorContext
from bookstore.core.logging import get_logger
from bookstore.core.settings import BookstoreSettings, get_settings

logger = get_logger(__name__)

DEFAULT_RESOURCE = "application.toml"
ENV_PREFIX = "BOOKSTORE_"
_SEGMENT_SEPARATOR = "__"


def _parse_toml(text: str, source: str) -> dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Cannot parse configuration {source}: {e}",
            context=ErrorContext(resource=source),
            cause=e,
        ) from e


def load_packaged_defaults() -> dict[str, Any]:
    """Parse the ``application.toml`` bundled with the package."""
    text = resources.files("bookstore.resources").joinpath(DEFAULT_RESOURCE).read_text(encoding="utf-8")
    return _parse_toml(text, f"bookstore.resources/{DEFAULT_RESOURCE}")


def load_file(path: Path) -> dict[str, Any]:
    """Parse a single TOML file."""
    if not path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            context=ErrorContext(resource=str(path)),
        )
    return _parse_toml(path.read_text(encoding="utf-8"), str(path))


def env_overlay(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Turn ``PREFIX_A__B_C=value`` variables into ``{"a": {"b-c": value}}``.

    Variables without a ``__`` separator belong to
    :class:`~bookstore.core.settings.BookstoreSettings` and are skipped.
    """
    overlay: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(prefix):
            continue
        rest = name[len(prefix):]
        if _SEGMENT_SEPARATOR not in rest:
            continue
        segments = [s.lower().replace("_", "-") for s in rest.split(_SEGMENT_SEPARATOR)]
        if not all(segments):
            continue
        target = overlay
        for segment in segments[:-1]:
            target = target.setdefault(segment, {})
            if not isinstance(target, dict):
                break
        else:
            target[segments[-1]] = value
    return overlay


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge *override* onto *base*; tables merge, everything else replaces."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge(current, value)
        else:
            merged[key] = value
    return merged


def _user_file(path: Path | None, settings: BookstoreSettings) -> Path | None:
    if path is not None:
        return path
    if settings.config_file is not None:
        return settings.config_file
    implicit = Path.cwd() / DEFAULT_RESOURCE
    return implicit if implicit.is_file() else None


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    settings: BookstoreSettings | None = None,
    include_defaults: bool = True,
) -> ConfigNode:
    """Load, merge and freeze the service configuration.

    Parameters
    ----------
    path:
        Explicit configuration file; must exist.
    environ:
        Environment used for the overlay (defaults to ``os.environ``).
    settings:
        Process settings (defaults to the cached :func:`get_settings`).
    include_defaults:
        Start from the packaged ``application.toml``.
    """
    settings = settings or get_settings()
    environ = os.environ if environ is None else environ

    data: dict[str, Any] = load_packaged_defaults() if include_defaults else {}

    user_file = _user_file(Path(path) if path is not None else None, settings)
    if user_file is not None:
        data = merge(data, load_file(user_file))
        logger.debug("config_file_loaded", path=str(user_file))

    overlay = env_overlay(environ)
    if overlay:
        data = merge(data, overlay)
        logger.debug("config_env_overlay", keys=sorted(overlay))

    return ConfigNode.from_mapping(data)


__all__ = [
    "DEFAULT_RESOURCE",
    "ENV_PREFIX",
    "env_overlay",
    "load_config",
    "load_file",
    "load_packaged_defaults",
    "merge",
]
