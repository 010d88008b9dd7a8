"""Pytest fixtures for the zonekeeper test suite."""

import logging
import logging.handlers
from collections.abc import Generator
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tests.fakes import FakeDnsProvider
from zonekeeper.store.backends import FileBlobStorage
from zonekeeper.store.store import Store


@pytest.fixture
def example_zone() -> dict[str, str]:
    return {"id": "z1", "name": "example.com"}


@pytest.fixture
def fake_provider(example_zone: dict[str, str]) -> FakeDnsProvider:
    return FakeDnsProvider([example_zone])


def _generate_keypair() -> dict[str, Any]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = (
        key.public_key()
        .public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
        .decode()
    )
    numbers = key.public_key().public_numbers()
    return {
        "privateKeyPem": private_pem,
        "publicKeyPem": public_pem,
        "privateKeyJwk": {"kty": "RSA", "e": hex(numbers.e), "n": hex(numbers.n)[:32]},
    }


@pytest.fixture(scope="session")
def account_keypair() -> dict[str, Any]:
    """A real RSA account keypair in the engine's keypair shape."""
    return _generate_keypair()


@pytest.fixture(scope="session")
def other_keypair() -> dict[str, Any]:
    return _generate_keypair()


@pytest.fixture
def blob_storage(tmp_path) -> FileBlobStorage:
    return FileBlobStorage(tmp_path, "greenlock-development.json")


@pytest.fixture
def store(blob_storage: FileBlobStorage) -> Store:
    return Store(blob_storage).load()


class LogCapture:
    """Helper class to capture and inspect log records."""

    def __init__(self, handler: logging.handlers.MemoryHandler) -> None:
        self._handler = handler

    @property
    def records(self) -> list[logging.LogRecord]:
        """Get all captured log records."""
        return self._handler.buffer

    def get_records(
        self, level: int | None = None, name: str | None = None
    ) -> list[logging.LogRecord]:
        """Get log records filtered by level and/or logger name.

        Args:
            level: Filter by log level (e.g., logging.INFO).
            name: Filter by logger name prefix (e.g., "zonekeeper.store").

        Returns:
            List of matching log records.
        """
        records = self.records
        if level is not None:
            records = [r for r in records if r.levelno == level]
        if name is not None:
            records = [r for r in records if r.name.startswith(name)]
        return records

    def get_messages(self, level: int | None = None, name: str | None = None) -> list[str]:
        """Get log messages filtered by level and/or logger name."""
        return [r.getMessage() for r in self.get_records(level, name)]

    def clear(self) -> None:
        """Clear all captured log records."""
        self._handler.buffer.clear()


@pytest.fixture
def log_capture() -> Generator[LogCapture]:
    """Capture logs from the zonekeeper package during a test.

    Usage:
        def test_something(log_capture):
            # do something that logs
            assert "Removed ACME challenge" in log_capture.get_messages(logging.INFO)
    """
    handler = logging.handlers.MemoryHandler(capacity=1000)
    handler.setLevel(logging.DEBUG)

    package_logger = logging.getLogger("zonekeeper")
    original_level = package_logger.level
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(handler)

    try:
        yield LogCapture(handler)
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(original_level)
        handler.close()
