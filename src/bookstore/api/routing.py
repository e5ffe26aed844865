"""
Route composition: an ordered, validated table of routable units.

``compose()`` is a pure builder.  It reads configuration, creates the four
standard units and returns a :class:`RoutingTable`; nothing is registered
anywhere until :func:`bookstore.api.app.create_app` installs the table.

Composition order::

    1. media support        /          provides media
    2. health aggregator    /health    provides health
    3. metrics collector    /metrics   provides metrics
    4. business service     /books     requires media

Every unit declares the concerns it ``provides`` and ``requires``.  A unit
whose requirements are not met by an *earlier* unit, or a second provider
of ``media``, is rejected with :class:`RoutingCompositionError`.

Tags:
    bookstore, api, routing, composition, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from fastapi import FastAPI

from bookstore import __version__
from bookstore.api.books import BookService
from bookstore.api.metrics import MetricsSupport
from bookstore.core.config import ConfigNode
from bookstore.core.errors import ErrorContext, InvalidConfigError, RoutingCompositionError
from bookstore.core.health import HealthCheck, HealthSupport
from bookstore.core.health_checks import default_health_checks
from bookstore.media.strategy import SerializationStrategy, media_support
from bookstore.observability.metrics import MetricsRegistry

SERVICE_PATH_KEY = "app.service-path"
DEFAULT_SERVICE_PATH = "/books"

# Concerns that at most one binding may provide
EXCLUSIVE_CONCERNS = frozenset({"media"})


@runtime_checkable
class Routable(Protocol):
    """Anything the composer can place in a routing table."""

    kind: str
    provides: frozenset[str]
    requires: frozenset[str]

    def install(self, app: FastAPI, prefix: str) -> None: ...


@dataclass(frozen=True)
class Binding:
    """One entry of the routing table.

    Equality ignores ``handler`` so two compositions from the same inputs
    compare equal even though they hold distinct handler instances.
    """

    name: str
    prefix: str
    kind: str
    handler: Any = field(compare=False, repr=False)
    provides: frozenset[str] = frozenset()
    requires: frozenset[str] = frozenset()

    @classmethod
    def of(cls, name: str, prefix: str, handler: Routable) -> Binding:
        return cls(
            name=name,
            prefix=prefix,
            kind=handler.kind,
            handler=handler,
            provides=frozenset(handler.provides),
            requires=frozenset(handler.requires),
        )


class RoutingTable:
    """Immutable, validated, ordered sequence of bindings."""

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Iterable[Binding]):
        self._bindings = tuple(bindings)
        _validate(self._bindings)

    @property
    def bindings(self) -> tuple[Binding, ...]:
        return self._bindings

    def names(self) -> list[str]:
        return [b.name for b in self._bindings]

    def find(self, name: str) -> Binding | None:
        return next((b for b in self._bindings if b.name == name), None)

    def provider_of(self, concern: str) -> Binding | None:
        return next((b for b in self._bindings if concern in b.provides), None)

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RoutingTable):
            return NotImplemented
        return self._bindings == other._bindings

    def __hash__(self) -> int:
        return hash(self._bindings)

    def __repr__(self) -> str:
        return f"RoutingTable({', '.join(f'{b.name}@{b.prefix}' for b in self._bindings)})"


def _validate(bindings: tuple[Binding, ...]) -> None:
    provided: set[str] = set()
    for binding in bindings:
        missing = binding.requires - provided
        if missing:
            raise RoutingCompositionError(
                f"Binding {binding.name!r} requires {', '.join(sorted(missing))} "
                "which no earlier binding provides",
                context=ErrorContext(resource=binding.prefix, metadata={"binding": binding.name}),
            )
        duplicate = binding.provides & provided & EXCLUSIVE_CONCERNS
        if duplicate:
            raise RoutingCompositionError(
                f"Binding {binding.name!r} provides {', '.join(sorted(duplicate))} "
                "which is already provided",
                context=ErrorContext(resource=binding.prefix, metadata={"binding": binding.name}),
            )
        provided |= binding.provides


def _service_path(config: ConfigNode) -> str:
    path = config.get(SERVICE_PATH_KEY).as_str(DEFAULT_SERVICE_PATH).strip()
    if not path.startswith("/") or path.rstrip("/") == "":
        raise InvalidConfigError(
            SERVICE_PATH_KEY,
            path,
            f"{SERVICE_PATH_KEY} must be an absolute path below the root",
        )
    return path.rstrip("/")


def compose(
    config: ConfigNode,
    strategy: SerializationStrategy,
    service: Routable | None = None,
    *,
    registry: MetricsRegistry | None = None,
    checks: list[HealthCheck] | None = None,
) -> RoutingTable:
    """Build the routing table for *strategy* and *service*.

    Parameters
    ----------
    config:
        Service configuration (``app.*``, ``health.*``).
    strategy:
        Serialization strategy; selects the media-support codec.
    service:
        Business service mounted at ``app.service-path``; a fresh
        :class:`BookService` when omitted.
    registry:
        Metrics registry (the process-wide default when omitted).
    checks:
        Health check units; the built-in set from ``health.*`` when omitted.
    """
    if service is None:
        service = BookService()
    if checks is None:
        checks = default_health_checks(config)

    return RoutingTable([
        Binding.of("media", "/", media_support(strategy)),
        Binding.of("health", "/health", HealthSupport(checks, version=__version__)),
        Binding.of("metrics", "/metrics", MetricsSupport(registry)),
        Binding.of("books", _service_path(config), service),
    ])


__all__ = [
    "Binding",
    "DEFAULT_SERVICE_PATH",
    "Routable",
    "RoutingTable",
    "compose",
]
