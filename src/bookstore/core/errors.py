"""
Structured error types for the bookstore service.

Every failure the bootstrap can raise is a :class:`BookstoreError`.  Each
carries a category for routing/alerting, a structured context for logging,
and an optional chained cause.  None of them are retryable: a bad
configuration value, a keystore that will not decrypt, or a port that is
already taken must be fixed by an operator, not retried.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       BookstoreError                         │
        │               (category, context, cause)                     │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigurationError      TlsMaterialError    BindError       │
        │  (CONFIG)                (TLS)               (NETWORK)       │
        │       │                                                      │
        │  MissingConfigError      RoutingCompositionError             │
        │  InvalidConfigError      (ROUTING)                           │
        │  UnknownStrategyError                                        │
        │                          LifecycleError   MalformedPayload   │
        │                          (LIFECYCLE)      (PAYLOAD)          │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = UnknownStrategyError("app.json-library", "xml")
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> error.to_dict()["context"]
    {'key': 'app.json-library', 'value': 'xml'}

Tags:
    error-handling, exception-hierarchy, error-context, bookstore, fail-fast

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Missing or unrecognized configuration
    TLS = "TLS"                   # Keystore load / decrypt failures
    NETWORK = "NETWORK"           # Listener cannot bind
    ROUTING = "ROUTING"           # Handler registered without its middleware
    LIFECYCLE = "LIFECYCLE"       # Illegal server state transition
    PAYLOAD = "PAYLOAD"           # Request body could not be decoded
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        key: Configuration key involved, if any
        value: Offending value, if any
        resource: File or packaged resource involved, if any
        address: ``host:port`` involved, if any
        metadata: Additional key-value pairs
    """

    key: str | None = None
    value: Any = None
    resource: str | None = None
    address: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ("key", "value", "resource", "address"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class BookstoreError(Exception):
    """
    Base exception for all bookstore errors.

    Subclasses set ``default_category``; callers may still override it.

    Examples:
        >>> error = BookstoreError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise OSError("address in use")
        ... except OSError as e:
        ...     error = BindError("Cannot bind", cause=e)
        >>> error.cause
        OSError('address in use')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BookstoreError:
        """
        Add context to this error (fluent API).

        Usage:
            raise BindError("Cannot bind").with_context(address="0.0.0.0:8080")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(BookstoreError):
    """
    Malformed or unrecognized configuration.

    Fatal at startup - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigurationError):
    """A value was read from a configuration node that does not exist."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(
            message or f"Missing required configuration: {key}",
            context=ErrorContext(key=key),
        )


class InvalidConfigError(ConfigurationError):
    """A configuration value cannot be converted to the requested type."""

    def __init__(self, key: str, value: Any, message: str | None = None, *, cause: Exception | None = None):
        self.key = key
        self.value = value
        super().__init__(
            message or f"Invalid configuration for {key}: {value!r}",
            context=ErrorContext(key=key, value=value),
            cause=cause,
        )


class UnknownStrategyError(InvalidConfigError):
    """The configured serialization library is not one of the known names."""

    def __init__(self, key: str, value: Any, known: list[str] | None = None):
        self.known = known or []
        message = f"Unknown JSON library {value!r} for {key}"
        if self.known:
            message += f" (expected one of: {', '.join(self.known)})"
        super().__init__(key, value, message)


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================


class TlsMaterialError(BookstoreError):
    """Keystore or passphrase could not be loaded or decrypted."""

    default_category = ErrorCategory.TLS


class BindError(BookstoreError):
    """The listener could not acquire the requested address."""

    default_category = ErrorCategory.NETWORK


# =============================================================================
# COMPOSITION / LIFECYCLE ERRORS
# =============================================================================


class RoutingCompositionError(BookstoreError):
    """A handler was registered (or invoked) without its required middleware."""

    default_category = ErrorCategory.ROUTING


class LifecycleError(BookstoreError):
    """A server handle was asked to make a transition it does not allow."""

    default_category = ErrorCategory.LIFECYCLE


class MalformedPayloadError(BookstoreError):
    """A request body could not be decoded by the active codec."""

    default_category = ErrorCategory.PAYLOAD


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BookstoreError",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "UnknownStrategyError",
    "TlsMaterialError",
    "BindError",
    "RoutingCompositionError",
    "LifecycleError",
    "MalformedPayloadError",
]
