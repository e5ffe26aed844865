"""Hierarchical service configuration.

Quick start::

    from bookstore.core.config import load_config

    config = load_config()
    config.get("server.port").as_int()

Architecture::

    node.py      ConfigNode - immutable tree with typed accessors
    loader.py    packaged defaults → user TOML file → BOOKSTORE_* overlay
"""

from .loader import env_overlay, load_config, load_file, merge
from .node import ConfigNode

__all__ = [
    "ConfigNode",
    "env_overlay",
    "load_config",
    "load_file",
    "merge",
]
