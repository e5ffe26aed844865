"""
Shared pytest fixtures for the bookstore tests.

This module provides:
- Configuration factories built on the packaged defaults
- A freshly generated PKCS#12 keystore
- An isolated metrics registry
- Settings cache isolation
"""

from __future__ import annotations

import datetime
import ipaddress
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from cryptography.x509.oid import NameOID

from bookstore.core.config import ConfigNode, merge
from bookstore.core.config.loader import load_packaged_defaults
from bookstore.core.health import HealthCheck, HealthStatus
from bookstore.core.settings import get_settings
from bookstore.observability.metrics import MetricsRegistry

KEYSTORE_PASSPHRASE = "changeit"


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop BOOKSTORE_* variables and the cached settings around each test."""
    for name in list(os.environ):
        if name.startswith("BOOKSTORE_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def make_config() -> Callable[..., ConfigNode]:
    """Build a ConfigNode from the packaged defaults plus overrides.

    Usage::

        config = make_config({"app": {"json-library": "jackson"}})
    """

    def _make(overrides: dict[str, Any] | None = None, *, defaults: bool = True) -> ConfigNode:
        base = load_packaged_defaults() if defaults else {}
        return ConfigNode.from_mapping(merge(base, overrides or {}))

    return _make


@pytest.fixture
def local_config(make_config: Callable[..., ConfigNode]) -> Callable[..., ConfigNode]:
    """Config bound to 127.0.0.1 on an ephemeral port."""

    def _make(overrides: dict[str, Any] | None = None) -> ConfigNode:
        return make_config(merge({"server": {"host": "127.0.0.1", "port": 0, "graceful-timeout": 1.0}}, overrides or {}))

    return _make


@pytest.fixture
def passing_checks() -> list[HealthCheck]:
    async def _ok() -> HealthStatus:
        return HealthStatus.PASS

    return [HealthCheck("ok", _ok)]


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


# =============================================================================
# TLS material
# =============================================================================


@pytest.fixture(scope="session")
def keystore(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Self-signed localhost certificate in a PKCS#12 file (passphrase ``changeit``)."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.datetime.now(datetime.UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(
            x509.SubjectAlternativeName(
                [x509.DNSName("localhost"), x509.IPAddress(ipaddress.ip_address("127.0.0.1"))]
            ),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    data = pkcs12.serialize_key_and_certificates(
        b"bookstore-test",
        key,
        cert,
        None,
        BestAvailableEncryption(KEYSTORE_PASSPHRASE.encode()),
    )
    path = tmp_path_factory.mktemp("tls") / "test.p12"
    path.write_bytes(data)
    return path


@pytest.fixture(scope="session")
def keystore_passphrase() -> str:
    return KEYSTORE_PASSPHRASE
