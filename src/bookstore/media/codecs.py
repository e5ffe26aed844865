"""
JSON codecs, one per serialization strategy.

All three produce ``application/json``; they differ in how a request body
becomes a Python value:

- :class:`JsonpCodec` parses to a plain tree with the standard ``json``
  module and builds the target type from it.
- :class:`JsonbCodec` binds straight into the target type with a pydantic
  ``TypeAdapter``, so field types are validated.
- :class:`JacksonCodec` uses ``orjson`` and serializes dataclasses natively.

Decoding failures of any kind surface as :class:`MalformedPayloadError`.

Tags:
    bookstore, media, json, codec, orjson, pydantic

Doc-Types:
    api-reference
"""

from __future__ import annotations

import dataclasses
import json
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, TypeVar

import orjson
import pydantic_core
from pydantic import TypeAdapter, ValidationError

from bookstore.core.errors import ErrorContext, MalformedPayloadError

T = TypeVar("T")

JSON_MEDIA_TYPE = "application/json"


def _malformed(codec: str, exc: Exception) -> MalformedPayloadError:
    return MalformedPayloadError(
        f"Malformed JSON payload: {exc}",
        context=ErrorContext(metadata={"codec": codec}),
        cause=exc,
    )


def _bind(tree: Any, model: type[T] | None, codec: str) -> T | Any:
    """Construct *model* from a parsed tree (the tree itself when no model)."""
    if model is None:
        return tree
    if not isinstance(tree, dict):
        raise MalformedPayloadError(
            f"Expected a JSON object for {model.__name__}, got {type(tree).__name__}",
            context=ErrorContext(metadata={"codec": codec}),
        )
    try:
        return model(**tree)
    except TypeError as e:
        raise _malformed(codec, e) from e


def _to_tree(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (list, tuple)):
        return [_to_tree(v) for v in value]
    return value


class Codec(ABC):
    """Reads request bodies and writes response bodies."""

    name: str = ""
    media_type: str = JSON_MEDIA_TYPE

    @abstractmethod
    def read(self, data: bytes, model: type[T] | None = None) -> T | Any:
        """Decode *data*, optionally into an instance of *model*."""
        ...

    @abstractmethod
    def write(self, value: Any) -> bytes:
        """Encode *value* as a JSON document."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class JsonpCodec(Codec):
    """Tree-model codec on the standard library ``json`` module."""

    name = "jsonp"

    def read(self, data: bytes, model: type[T] | None = None) -> T | Any:
        try:
            tree = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise _malformed(self.name, e) from e
        return _bind(tree, model, self.name)

    def write(self, value: Any) -> bytes:
        return json.dumps(_to_tree(value), ensure_ascii=False).encode("utf-8")


@lru_cache(maxsize=64)
def _adapter(model: type) -> TypeAdapter:
    return TypeAdapter(model)


class JsonbCodec(Codec):
    """Binding codec: pydantic validates the payload into the target type."""

    name = "jsonb"

    def read(self, data: bytes, model: type[T] | None = None) -> T | Any:
        try:
            if model is None:
                return pydantic_core.from_json(data)
            return _adapter(model).validate_json(data)
        except (ValidationError, ValueError) as e:
            raise _malformed(self.name, e) from e

    def write(self, value: Any) -> bytes:
        return pydantic_core.to_json(value)


class JacksonCodec(Codec):
    """``orjson`` codec with native dataclass serialization."""

    name = "jackson"

    def read(self, data: bytes, model: type[T] | None = None) -> T | Any:
        try:
            tree = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise _malformed(self.name, e) from e
        return _bind(tree, model, self.name)

    def write(self, value: Any) -> bytes:
        return orjson.dumps(value)


__all__ = [
    "JSON_MEDIA_TYPE",
    "Codec",
    "JacksonCodec",
    "JsonbCodec",
    "JsonpCodec",
]
