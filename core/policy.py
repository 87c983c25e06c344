"""
Compression policy.

Decides whether an upload is sent compressed. Content type alone is a poor
predictor of the actual benefit, so the decision runs in two stages:

1. Type gate: content types that are already compressed containers skip
   compression without touching the codec.
2. Empirical gate: everything else is trial-compressed, and the result is
   kept only if it saves at least ``min_ratio_percent`` of the original size.
"""

from typing import Iterable, Optional, FrozenSet
import logging

from .codec import GzipCodec, CompressionOutcome

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Already entropy-dense formats. Matroska (video/x-matroska) is deliberately
# absent: the container is uncompressed and its streams may still shrink.
DEFAULT_SKIP_CONTENT_TYPES: FrozenSet[str] = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/mpeg",
    "video/webm",
    "audio/mp3",
    "audio/mpeg",
    "audio/ogg",
    "application/zip",
    "application/gzip",
    "application/x-gzip",
    "application/x-7z-compressed",
    "application/x-rar-compressed",
})

DEFAULT_MIN_RATIO_PERCENT = 10.0


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lower-case a MIME type and drop its parameters (``; charset=...``)."""
    if not content_type:
        return DEFAULT_CONTENT_TYPE
    base = content_type.split(";", 1)[0].strip().lower()
    return base or DEFAULT_CONTENT_TYPE


class CompressionPolicy:
    """
    Two-stage compression decision.

    Pure apart from the codec call; safe to share between concurrent uploads.
    """

    def __init__(
        self,
        codec: Optional[GzipCodec] = None,
        skip_content_types: Optional[Iterable[str]] = None,
        min_ratio_percent: float = DEFAULT_MIN_RATIO_PERCENT,
    ):
        """
        Args:
            codec: Codec used for the trial compression
            skip_content_types: Content types never compressed
                (default: DEFAULT_SKIP_CONTENT_TYPES)
            min_ratio_percent: Minimum saving required to keep the compressed bytes
        """
        self.codec = codec or GzipCodec()
        if skip_content_types is None:
            skip_content_types = DEFAULT_SKIP_CONTENT_TYPES
        self.skip_content_types = frozenset(
            normalize_content_type(t) for t in skip_content_types
        )
        self.min_ratio_percent = min_ratio_percent

    def should_compress(self, content_type: Optional[str]) -> bool:
        """Stage A: False if the content type is an already-compressed format."""
        return normalize_content_type(content_type) not in self.skip_content_types

    def evaluate(self, data: bytes, content_type: Optional[str]) -> Optional[CompressionOutcome]:
        """
        Decide whether to send ``data`` compressed.

        Returns:
            The outcome to upload, or None to send ``data`` unmodified
        """
        if not self.should_compress(content_type):
            logger.info(
                f"Skipping compression for {normalize_content_type(content_type)} "
                "(already compressed format)"
            )
            return None

        outcome = self.codec.measure(data)

        if outcome.ratio_percent < self.min_ratio_percent:
            logger.info(
                f"Skipping compression (only {outcome.ratio_percent:.2f}% reduction, "
                f"need {self.min_ratio_percent:.2f}%)"
            )
            return None

        return outcome
