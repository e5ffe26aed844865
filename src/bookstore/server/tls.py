"""
TLS material loading.

The listener's certificate and private key come from a PKCS#12 keystore.
The keystore path is resolved against the filesystem first and then
against the resources bundled with the package, so the default
``certificate.p12`` works out of the box.

Every failure (missing keystore, wrong passphrase, keystore without a key
or certificate, a key the ``ssl`` module rejects) raises
:class:`TlsMaterialError`.  Callers never get a plaintext fallback.

Example::

    context = create_tls_context("certificate.p12", "bookstore")
"""

from __future__ import annotations

import ssl
import tempfile
from importlib import resources
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from bookstore.core.errors import ErrorContext, TlsMaterialError
from bookstore.core.logging import get_logger

logger = get_logger(__name__)

RESOURCE_PACKAGE = "bookstore.resources"


def read_keystore(location: str) -> bytes:
    """Read keystore bytes from *location* (file path, else packaged resource)."""
    path = Path(location).expanduser()
    try:
        if path.is_file():
            return path.read_bytes()
        resource = resources.files(RESOURCE_PACKAGE).joinpath(location)
        if resource.is_file():
            return resource.read_bytes()
    except OSError as e:
        raise TlsMaterialError(
            f"Cannot read keystore {location}: {e}",
            context=ErrorContext(resource=location),
            cause=e,
        ) from e
    raise TlsMaterialError(
        f"Keystore not found: {location}",
        context=ErrorContext(resource=location),
    )


def create_tls_context(keystore: str, passphrase: str | None) -> ssl.SSLContext:
    """Build a server-side ``SSLContext`` from a PKCS#12 keystore.

    Raises:
        TlsMaterialError: the keystore cannot be read, decrypted or used.
    """
    data = read_keystore(keystore)
    password = passphrase.encode("utf-8") if passphrase else None

    try:
        key, cert, chain = pkcs12.load_key_and_certificates(data, password)
    except ValueError as e:
        raise TlsMaterialError(
            f"Cannot decrypt keystore {keystore}: wrong passphrase or corrupt file",
            context=ErrorContext(resource=keystore),
            cause=e,
        ) from e

    if key is None or cert is None:
        raise TlsMaterialError(
            f"Keystore {keystore} must hold a private key and its certificate",
            context=ErrorContext(resource=keystore),
        )

    # ssl only loads PEM files; the key stays encrypted on disk
    pem_password = password or b"bookstore"
    cert_pem = cert.public_bytes(serialization.Encoding.PEM) + b"".join(
        c.public_bytes(serialization.Encoding.PEM) for c in chain or []
    )
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.BestAvailableEncryption(pem_password),
    )

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    with tempfile.TemporaryDirectory(prefix="bookstore-tls-") as tmp:
        cert_file = Path(tmp) / "cert.pem"
        key_file = Path(tmp) / "key.pem"
        cert_file.write_bytes(cert_pem)
        key_file.write_bytes(key_pem)
        try:
            context.load_cert_chain(cert_file, key_file, password=pem_password)
        except ssl.SSLError as e:
            raise TlsMaterialError(
                f"Keystore {keystore} holds material the TLS stack rejects: {e}",
                context=ErrorContext(resource=keystore),
                cause=e,
            ) from e

    logger.debug("tls_context_created", keystore=keystore, subject=cert.subject.rfc4514_string())
    return context


__all__ = ["create_tls_context", "read_keystore"]
