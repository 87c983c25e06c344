"""
Upload and retrieval orchestration.

Ties the compression policy and codec to a content-addressed store while
recording enough metadata to reverse the transformation exactly.
"""

from typing import Optional
import logging

from .codec import GzipCodec, COMPRESSED_SUFFIX, COMPRESSED_CONTENT_TYPE
from .descriptor import UploadDescriptor
from .errors import (
    CodecError,
    CodecErrorKind,
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from .policy import CompressionPolicy, DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Runs the compression policy and pushes the result to the store.

    Compression is decided before the transfer starts, so the store always
    receives one payload of known length. Nothing is retried here.
    """

    def __init__(self, store, policy: Optional[CompressionPolicy] = None):
        """
        Args:
            store: ContentStore receiving the payload
            policy: Compression policy (default: CompressionPolicy())
        """
        self.store = store
        self.policy = policy or CompressionPolicy()

    def upload(
        self,
        data: bytes,
        name: str,
        content_type: Optional[str],
        compression_enabled: bool = True,
    ) -> UploadDescriptor:
        """
        Upload ``data`` and describe what was stored.

        Raises:
            UploadError: store unconfigured, transport failure, or rejection
            CodecError: INTERNAL compression failure
        """
        declared_type = content_type or DEFAULT_CONTENT_TYPE

        # Fail fast before spending CPU on compression
        if not self.store.is_configured:
            raise UploadError(
                UploadErrorKind.UNCONFIGURED,
                f"Content store '{self.store.name}' has no credentials configured",
            )

        payload = data
        stored_name = name
        stored_type = declared_type
        outcome = None

        if compression_enabled:
            outcome = self.policy.evaluate(data, declared_type)
            if outcome is not None:
                payload = outcome.compressed_data
                stored_name = f"{name}{COMPRESSED_SUFFIX}"
                stored_type = COMPRESSED_CONTENT_TYPE
                logger.info(
                    f"File compressed: {outcome.original_size} -> {outcome.compressed_size} bytes "
                    f"({outcome.ratio_percent:.2f}% saved)"
                )

        try:
            address = self.store.store(payload, stored_name, stored_type)
        except UploadError:
            raise
        except Exception as e:
            logger.error(f"Store '{self.store.name}' failed for {stored_name}: {e}")
            raise UploadError(UploadErrorKind.TRANSPORT, f"Upload failed: {e}", e) from e

        if not address:
            raise UploadError(
                UploadErrorKind.REMOTE_REJECTED,
                f"Store '{self.store.name}' returned no content address",
            )

        is_compressed = outcome is not None
        descriptor = UploadDescriptor(
            content_address=address,
            stored_name=stored_name,
            stored_size=len(payload),
            declared_content_type=declared_type,
            is_compressed=is_compressed,
            original_size=outcome.original_size if is_compressed else None,
            ratio_percent=outcome.ratio_percent if is_compressed else None,
        )

        logger.info(
            f"Uploaded {stored_name} as {address} "
            f"({descriptor.stored_size} bytes{', compressed' if is_compressed else ''})"
        )

        return descriptor


class RetrievalOrchestrator:
    """Fetches stored bytes and reverses compression when the flag says so."""

    def __init__(self, store, codec: Optional[GzipCodec] = None):
        self.store = store
        self.codec = codec or GzipCodec()

    def download(self, content_address: str, is_compressed: bool) -> bytes:
        """
        Return the original bytes for ``content_address``.

        ``is_compressed`` must come from the persisted descriptor, never from
        the stored name or content type.

        Raises:
            RetrievalError: NOT_FOUND, TRANSPORT, or CORRUPT_PAYLOAD when the
                bytes don't decompress despite ``is_compressed``
        """
        try:
            data = self.store.fetch(content_address)
        except RetrievalError:
            raise
        except Exception as e:
            logger.error(f"Store '{self.store.name}' failed to fetch {content_address}: {e}")
            raise RetrievalError(RetrievalErrorKind.TRANSPORT, f"Download failed: {e}", e) from e

        if not is_compressed:
            return data

        logger.debug(f"Decompressing {content_address} ({len(data)} bytes)")

        try:
            return self.codec.decompress(data)
        except CodecError as e:
            if e.kind is not CodecErrorKind.MALFORMED:
                raise
            logger.error(
                f"Stored object {content_address} is flagged compressed "
                f"but is not valid {self.codec.algorithm} data: {e.message}"
            )
            raise RetrievalError(
                RetrievalErrorKind.CORRUPT_PAYLOAD,
                f"Object {content_address} does not match its compression flag",
                e,
            ) from e
