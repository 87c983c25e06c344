"""
PinVault - messaging-channel file vault on IPFS

Files arrive from a chat bot, get compressed when it pays off, are pinned to
a content-addressed store, and come back byte-for-byte on download.

Quick Start:
    >>> from pinvault import PinVault, VaultConfig
    >>>
    >>> vault = PinVault(VaultConfig(backend="local"))
    >>>
    >>> # Upload (compression decided per file)
    >>> record = vault.ingest(b"hello " * 1000, "notes.txt", "text/plain", owner_id="42")
    >>> record.is_compressed, record.stored_name
    (True, 'notes.txt.gz')
    >>>
    >>> # Download (decompressed transparently)
    >>> _, data = vault.retrieve(record.content_address)
"""
import os as _os

# Point pinvault's __path__ to the repo root so that
# `from pinvault.core import ...` resolves to `core/...` at the project root.
__path__ = [_os.path.dirname(_os.path.dirname(_os.path.abspath(__file__)))]

from pinvault.core.config import VaultConfig  # noqa: E402
from pinvault.core.descriptor import UploadDescriptor  # noqa: E402
from pinvault.core.vault import PinVault  # noqa: E402

__version__ = "1.0.0"

__all__ = ["PinVault", "VaultConfig", "UploadDescriptor"]
