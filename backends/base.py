"""
Content-addressed store interface.
"""

from abc import ABC, abstractmethod
from typing import List


class ContentStore(ABC):
    """
    Remote (or local) content-addressed object store.

    ``store`` returns an opaque address that later retrieves the same bytes.
    Implementations raise ``UploadError`` from ``store`` and
    ``RetrievalError`` from ``fetch``; they never retry on their own.
    """

    name = "base"

    def connect(self) -> bool:
        """
        Prepare credentials/clients. Safe to call more than once.

        Returns:
            True if the store is usable
        """
        return True

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def store(self, data: bytes, name: str, content_type: str) -> str:
        """
        Store ``data`` under ``name``.

        Returns:
            Content address of the stored object
        """

    @abstractmethod
    def fetch(self, address: str) -> bytes:
        """Return the exact bytes stored at ``address``."""

    @abstractmethod
    def gateway_url(self, address: str) -> str:
        """Public URL for ``address``."""

    def list_addresses(self) -> List[str]:
        """Addresses of every object currently held by the store."""
        return []
