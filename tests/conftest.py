"""
Shared fixtures for the PinVault test suite.
"""

import pytest

from pinvault.backends.base import ContentStore
from pinvault.backends.local import LocalBackend
from pinvault.core.config import VaultConfig
from pinvault.core.errors import (
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from pinvault.storage.metadata_store import MetadataStore


class MemoryStore(ContentStore):
    """In-memory store; every call gets a fresh address (no dedup)."""

    name = "memory"

    def __init__(self):
        self.objects = {}
        self.calls = []

    def store(self, data, name, content_type):
        address = f"bafymem{len(self.objects):04d}"
        self.objects[address] = bytes(data)
        self.calls.append((name, content_type, len(data)))
        return address

    def fetch(self, address):
        if address not in self.objects:
            raise RetrievalError(RetrievalErrorKind.NOT_FOUND, f"No object at {address}")
        return self.objects[address]

    def gateway_url(self, address):
        return f"memory://{address}"

    def list_addresses(self):
        return list(self.objects)


class FailingStore(MemoryStore):
    """Store whose pushes always fail with a transport error."""

    name = "failing"

    def store(self, data, name, content_type):
        self.calls.append((name, content_type, len(data)))
        cause = ConnectionError("connection reset by peer")
        raise UploadError(UploadErrorKind.TRANSPORT, "simulated transport failure", cause)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def local_backend(tmp_path):
    return LocalBackend(tmp_path / "objects")


@pytest.fixture
def metadata_store(tmp_path):
    return MetadataStore(tmp_path / "data" / "files.json")


@pytest.fixture
def local_config(tmp_path):
    return VaultConfig(
        backend="local",
        storage_dir=tmp_path / "objects",
        metadata_path=tmp_path / "data" / "files.json",
    )


@pytest.fixture
def repetitive_text():
    """50,000 bytes of highly compressible text."""
    line = b"The quick brown fox jumps over the lazy dog. PinVault stores files on IPFS.\n"
    return (line * (50_000 // len(line) + 1))[:50_000]


@pytest.fixture
def jpeg_bytes():
    """Bytes shaped like a baseline JPEG (SOI/APP0 header, dense body, EOI)."""
    import random

    rng = random.Random(1234)
    header = bytes.fromhex("ffd8ffe000104a46494600010101004800480000")
    body = bytes(rng.getrandbits(8) for _ in range(20_000))
    return header + body + bytes.fromhex("ffd9")
