"""
Local filesystem content store.

Stores objects on local disk, addressed by the SHA-256 of their bytes.
Used for development and tests in place of the Pinata backend.
"""

from typing import List
from pathlib import Path
import hashlib
import logging
import os
import tempfile

from ..core.errors import (
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from .base import ContentStore

logger = logging.getLogger(__name__)


class LocalBackend(ContentStore):
    """
    Local filesystem content store.

    Directory structure:
    storage_dir/
        AB/
            ABCDEF...123.blob
        CD/
            CDEF...456.blob

    Uses first 2 characters of the address as directory prefix
    to avoid having too many files in a single directory.
    """

    name = "local"
    suffix = ".blob"

    def __init__(self, storage_dir: Path, base_url: str = "file://"):
        """
        Initialize local backend.

        Args:
            storage_dir: Base directory for storage
            base_url: Prefix used to build gateway URLs
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url

        logger.info(f"Initialized local backend at {self.storage_dir}")

    def store(self, data: bytes, name: str, content_type: str) -> str:
        address = hashlib.sha256(data).hexdigest()
        file_path = self._get_file_path(address)

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            # Write to a temp file first so a failed write never leaves a short object
            fd, tmp_path = tempfile.mkstemp(dir=file_path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_path, file_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to store {name} locally: {e}")
            raise UploadError(UploadErrorKind.TRANSPORT, f"Local write failed: {e}", e) from e

        logger.debug(f"Stored {name} ({len(data)} bytes, {content_type}) as {address[:16]}...")

        return address

    def fetch(self, address: str) -> bytes:
        file_path = self._get_file_path(address)

        if not file_path.exists():
            logger.warning(f"Content {address[:16]}... not found at {file_path}")
            raise RetrievalError(RetrievalErrorKind.NOT_FOUND, f"No object at {address}")

        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise RetrievalError(RetrievalErrorKind.TRANSPORT, f"Local read failed: {e}", e) from e

        logger.debug(f"Retrieved {address[:16]}... from {file_path}")

        return data

    def gateway_url(self, address: str) -> str:
        return f"{self.base_url}{self._get_file_path(address).resolve()}"

    def list_addresses(self) -> List[str]:
        return sorted(path.stem for path in self.storage_dir.glob(f"*/*{self.suffix}"))

    def _get_file_path(self, address: str) -> Path:
        """Get file path for an address (rejects path separators)."""
        if not address or "/" in address or "\\" in address or address.startswith("."):
            raise RetrievalError(RetrievalErrorKind.NOT_FOUND, f"Invalid address: {address!r}")
        prefix = address[:2]
        return self.storage_dir / prefix / f"{address}{self.suffix}"
