"""
Immutable hierarchical configuration tree.

A :class:`ConfigNode` wraps one position in the tree.  Looking up a path
never fails: ``config.get("app.json-library")`` returns a node whether or not
the key is present, and :meth:`ConfigNode.exists` tells the two cases apart.
Absence is *not* the same as an empty value, so callers branch on
``exists()`` before converting, or pass an explicit ``default``.

Example::

    config = ConfigNode.from_mapping({"server": {"port": 8080}})
    config.get("server.port").as_int()          # 8080
    config.get("server.host").exists()          # False
    config.get("server.host").as_str("0.0.0.0") # "0.0.0.0"
    config.get("server.host").as_str()          # MissingConfigError

Tags:
    bookstore, configuration, immutable, tree, typed-accessors

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from bookstore.core.errors import InvalidConfigError, MissingConfigError

_MISSING: Any = object()

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class ConfigNode:
    """A named, read-only node of the configuration tree."""

    __slots__ = ("_key", "_value")

    def __init__(self, key: str = "", value: Any = _MISSING):
        self._key = key
        self._value = value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConfigNode:
        """Build a root node from nested mappings (deep-copied and frozen)."""
        return cls("", _freeze(data))

    @classmethod
    def empty(cls) -> ConfigNode:
        """A root node with no keys at all."""
        return cls.from_mapping({})

    # ── Navigation ───────────────────────────────────────────────

    @property
    def key(self) -> str:
        """Dotted path of this node from the root (``""`` for the root)."""
        return self._key

    @property
    def name(self) -> str:
        """Last segment of :attr:`key`."""
        return self._key.rsplit(".", 1)[-1]

    def exists(self) -> bool:
        return self._value is not _MISSING

    def is_leaf(self) -> bool:
        return self.exists() and not isinstance(self._value, Mapping)

    def get(self, path: str) -> ConfigNode:
        """Return the node at dotted *path* below this one (possibly missing)."""
        node = self
        for segment in path.split("."):
            if not segment:
                continue
            value = node._value
            child_key = f"{node._key}.{segment}" if node._key else segment
            if isinstance(value, Mapping) and segment in value:
                node = ConfigNode(child_key, value[segment])
            else:
                node = ConfigNode(child_key)
        return node

    def children(self) -> list[ConfigNode]:
        """Direct child nodes, in declaration order (empty for leaves)."""
        if not isinstance(self._value, Mapping):
            return []
        return [self.get(name) for name in self._value]

    def __iter__(self) -> Iterator[ConfigNode]:
        return iter(self.children())

    def __contains__(self, path: str) -> bool:
        return self.get(path).exists()

    # ── Typed accessors ──────────────────────────────────────────

    def _require(self, default: Any) -> Any:
        if self.exists():
            return self._value
        if default is not _MISSING:
            return default
        raise MissingConfigError(self._key)

    def as_str(self, default: Any = _MISSING) -> str:
        if not self.exists() and default is not _MISSING:
            return default
        value = self._require(default)
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return str(value)
        raise InvalidConfigError(self._key, _thaw(value), f"Configuration {self._key} is not a scalar value")

    def as_int(self, default: Any = _MISSING) -> int:
        if not self.exists() and default is not _MISSING:
            return default
        value = self._require(default)
        if isinstance(value, bool):
            raise InvalidConfigError(self._key, value)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(self._key, _thaw(value), cause=e) from e

    def as_float(self, default: Any = _MISSING) -> float:
        if not self.exists() and default is not _MISSING:
            return default
        value = self._require(default)
        if isinstance(value, bool):
            raise InvalidConfigError(self._key, value)
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(self._key, _thaw(value), cause=e) from e

    def as_bool(self, default: Any = _MISSING) -> bool:
        if not self.exists() and default is not _MISSING:
            return default
        value = self._require(default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
        raise InvalidConfigError(self._key, _thaw(value))

    def as_list(self, default: Any = _MISSING) -> list[Any]:
        if not self.exists() and default is not _MISSING:
            return default
        value = self._require(default)
        if isinstance(value, tuple):
            return _thaw(value)
        raise InvalidConfigError(self._key, _thaw(value), f"Configuration {self._key} is not a list")

    def as_dict(self, default: Any = _MISSING) -> dict[str, Any]:
        """Return a plain, mutable copy of this subtree."""
        if not self.exists() and default is not _MISSING:
            return default
        value = self._require(default)
        if isinstance(value, Mapping):
            return _thaw(value)
        raise InvalidConfigError(self._key, _thaw(value), f"Configuration {self._key} is not a table")

    def __repr__(self) -> str:
        if not self.exists():
            return f"ConfigNode({self._key!r}, missing)"
        return f"ConfigNode({self._key!r}, {_thaw(self._value)!r})"


__all__ = ["ConfigNode"]
