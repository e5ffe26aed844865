"""Tests for PKCS#12 keystore loading."""

from __future__ import annotations

import ssl

import pytest

from bookstore.core.errors import TlsMaterialError
from bookstore.server.tls import create_tls_context, read_keystore


class TestReadKeystore:
    def test_packaged_resource(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert read_keystore("certificate.p12")

    def test_filesystem_path(self, keystore):
        assert read_keystore(str(keystore)) == keystore.read_bytes()

    def test_missing(self, tmp_path):
        with pytest.raises(TlsMaterialError, match="not found") as exc:
            read_keystore(str(tmp_path / "absent.p12"))
        assert exc.value.context.resource.endswith("absent.p12")


class TestCreateTlsContext:
    def test_bundled_keystore(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        context = create_tls_context("certificate.p12", "bookstore")
        assert isinstance(context, ssl.SSLContext)
        assert context.minimum_version == ssl.TLSVersion.TLSv1_2

    def test_generated_keystore(self, keystore, keystore_passphrase):
        assert isinstance(create_tls_context(str(keystore), keystore_passphrase), ssl.SSLContext)

    def test_wrong_passphrase(self, keystore):
        with pytest.raises(TlsMaterialError, match="Cannot decrypt"):
            create_tls_context(str(keystore), "wrong")

    def test_no_passphrase_for_encrypted_keystore(self, keystore):
        with pytest.raises(TlsMaterialError):
            create_tls_context(str(keystore), None)

    def test_corrupt_file(self, tmp_path):
        bogus = tmp_path / "bogus.p12"
        bogus.write_bytes(b"not a keystore")
        with pytest.raises(TlsMaterialError) as exc:
            create_tls_context(str(bogus), "x")
        assert exc.value.cause is not None
