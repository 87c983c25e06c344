"""
Gzip codec used by the ingestion pipeline.

One general-purpose algorithm, no state: instances can be shared freely
between concurrent uploads.
"""

import gzip
import time
import zlib
from dataclasses import dataclass
import logging

from .errors import CodecError, CodecErrorKind

logger = logging.getLogger(__name__)

# Marker suffix appended to stored names of compressed objects
COMPRESSED_SUFFIX = ".gz"

# Content type declared to the remote store for compressed objects
COMPRESSED_CONTENT_TYPE = "application/gzip"


@dataclass
class CompressionOutcome:
    """Result of a trial compression."""
    compressed_data: bytes
    original_size: int
    compressed_size: int
    compression_time_ms: float = 0.0

    @property
    def ratio_percent(self) -> float:
        """
        Percentage of the original size saved.

        Negative when the payload grew. Defined as 0.0 for empty input.
        """
        if self.original_size == 0:
            return 0.0
        return (self.original_size - self.compressed_size) / self.original_size * 100

    @property
    def bytes_saved(self) -> int:
        return self.original_size - self.compressed_size


class GzipCodec:
    """
    Stateless gzip compress/decompress.

    The gzip header is written with ``mtime=0`` so equal input always
    produces equal output.
    """

    algorithm = "gzip"

    def __init__(self, level: int = 6):
        """
        Args:
            level: zlib compression level (0-9)
        """
        if not 0 <= level <= 9:
            raise ValueError(f"Invalid gzip compression level: {level}. Must be 0-9.")
        self.level = level

    def compress(self, data: bytes) -> bytes:
        """Compress ``data``. Accepts any input, including empty bytes."""
        try:
            return gzip.compress(data, compresslevel=self.level, mtime=0)
        except (MemoryError, zlib.error) as e:
            logger.error(f"gzip compression failed: {e}")
            raise CodecError(CodecErrorKind.INTERNAL, f"Compression failed: {e}", e) from e

    def decompress(self, data: bytes) -> bytes:
        """
        Decompress ``data``.

        Raises:
            CodecError: MALFORMED if ``data`` is not complete gzip output,
                INTERNAL on allocation failure
        """
        if not data:
            raise CodecError(CodecErrorKind.MALFORMED, "Empty input is not gzip data")

        try:
            return gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            # BadGzipFile is an OSError; truncation surfaces as EOFError
            raise CodecError(
                CodecErrorKind.MALFORMED,
                f"Input is not valid gzip data: {e}",
                e,
            ) from e
        except MemoryError as e:
            raise CodecError(CodecErrorKind.INTERNAL, f"Decompression failed: {e}", e) from e

    def measure(self, data: bytes) -> CompressionOutcome:
        """Compress ``data`` and report the sizes before and after."""
        start = time.perf_counter()
        compressed = self.compress(data)
        elapsed_ms = (time.perf_counter() - start) * 1000

        outcome = CompressionOutcome(
            compressed_data=compressed,
            original_size=len(data),
            compressed_size=len(compressed),
            compression_time_ms=elapsed_ms,
        )

        logger.debug(
            f"gzip: {outcome.original_size} -> {outcome.compressed_size} bytes "
            f"({outcome.ratio_percent:.2f}% saved, {elapsed_ms:.2f}ms)"
        )

        return outcome
