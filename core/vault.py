"""
Main PinVault orchestrator.

Coordinates the compression policy, the codec, the content store and the
metadata record store. This is the primary API for ingesting files from a
messaging channel and serving them back byte-for-byte.
"""

from typing import Optional, Dict, List, Any, Tuple
import logging

from .codec import GzipCodec
from .config import VaultConfig
from .descriptor import UploadDescriptor
from .orchestrator import UploadOrchestrator, RetrievalOrchestrator
from .policy import CompressionPolicy
from ..backends import ContentStore, LocalBackend, PinataBackend
from ..storage.metadata_store import MetadataStore, FileRecord

logger = logging.getLogger(__name__)


def create_backend(config: VaultConfig) -> ContentStore:
    """Build the content store named by ``config.backend``."""
    if config.backend == "pinata":
        return PinataBackend(config)
    if config.backend == "local":
        return LocalBackend(config.storage_dir)
    raise ValueError(f"Unknown content store backend: {config.backend}")


class PinVault:
    """
    File ingestion pipeline.

    - ``upload_file`` / ``download_and_reconstruct``: the store-facing pipeline
    - ``ingest`` / ``retrieve``: the same, plus metadata records

    A record is only written after the store has acknowledged the upload, so
    a failed upload leaves no trace. The reverse gap (object stored, record
    never written) is reported by ``find_unlinked``.
    """

    def __init__(
        self,
        config: Optional[VaultConfig] = None,
        store: Optional[ContentStore] = None,
        metadata: Optional[MetadataStore] = None,
        codec: Optional[GzipCodec] = None,
        policy: Optional[CompressionPolicy] = None,
    ):
        """
        Initialize the vault. No network calls are made here.

        Args:
            config: Vault configuration (default: VaultConfig())
            store: Content store (default: built from ``config.backend``)
            metadata: Record store (default: JSON file at ``config.metadata_path``)
            codec: Codec shared by policy and retrieval
            policy: Compression policy (default: built from ``config``)
        """
        self.config = config or VaultConfig()
        self.store = store or create_backend(self.config)
        self.metadata = metadata or MetadataStore(self.config.metadata_path)
        self.codec = codec or GzipCodec(level=self.config.compression_level)
        self.policy = policy or CompressionPolicy(
            codec=self.codec,
            skip_content_types=self.config.skip_content_types,
            min_ratio_percent=self.config.min_ratio_percent,
        )

        self.uploader = UploadOrchestrator(self.store, self.policy)
        self.retriever = RetrievalOrchestrator(self.store, self.codec)

        logger.info(
            f"PinVault initialized (backend: {self.store.name}, "
            f"compression: {'on' if self.config.compression_enabled else 'off'}, "
            f"threshold: {self.policy.min_ratio_percent:.1f}%)"
        )

    def connect(self) -> bool:
        """Initialize store credentials ahead of the first upload."""
        return self.store.connect()

    # Pipeline

    def upload_file(
        self,
        data: bytes,
        name: str,
        content_type: Optional[str],
        compression_enabled: Optional[bool] = None,
    ) -> UploadDescriptor:
        """
        Compress (if worthwhile) and store ``data``.

        Raises:
            UploadError: the store did not acknowledge the upload
        """
        if compression_enabled is None:
            compression_enabled = self.config.compression_enabled
        return self.uploader.upload(data, name, content_type, compression_enabled)

    def download_and_reconstruct(self, content_address: str, is_compressed: bool) -> bytes:
        """
        Fetch ``content_address`` and undo compression if ``is_compressed``.

        Raises:
            RetrievalError: NOT_FOUND, TRANSPORT or CORRUPT_PAYLOAD
        """
        return self.retriever.download(content_address, is_compressed)

    # Records

    def ingest(
        self,
        data: bytes,
        name: str,
        content_type: Optional[str],
        owner_id: str,
        owner_name: Optional[str] = None,
        compression_enabled: Optional[bool] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> FileRecord:
        """
        Upload ``data`` and record it for ``owner_id``.

        Raises:
            ValueError: file larger than ``config.max_file_size``
            UploadError: upload failed; no record is written
        """
        if len(data) > self.config.max_file_size:
            raise ValueError(
                f"File too large ({len(data)} bytes, max {self.config.max_file_size} bytes)"
            )

        descriptor = self.upload_file(data, name, content_type, compression_enabled)

        record = self.metadata.add(
            descriptor,
            owner_id=owner_id,
            owner_name=owner_name,
            gateway_url=self.store.gateway_url(descriptor.content_address),
            extra=extra,
        )

        logger.info(
            f"File uploaded by user {owner_id}: {descriptor.content_address} "
            f"({'compressed' if descriptor.is_compressed else 'uncompressed'})"
        )

        return record

    def retrieve(self, content_address: str) -> Tuple[FileRecord, bytes]:
        """
        Look up the record for ``content_address`` and return its original bytes.

        Raises:
            KeyError: no record for ``content_address``
            RetrievalError: download or reconstruction failed
        """
        record = self.metadata.get_by_address(content_address)
        if record is None:
            raise KeyError(content_address)

        data = self.download_and_reconstruct(record.content_address, record.is_compressed)
        return record, data

    def find_unlinked(self) -> List[str]:
        """
        Addresses held by the store that have no metadata record.

        These come from uploads whose caller went away between the store
        acknowledgement and the record write.
        """
        known = self.metadata.addresses()
        unlinked = [a for a in self.store.list_addresses() if a not in known]

        if unlinked:
            logger.warning(f"Found {len(unlinked)} stored objects without metadata records")

        return unlinked

    def get_stats(self, owner_id: Optional[str] = None) -> Dict[str, Any]:
        return self.metadata.stats(owner_id)
