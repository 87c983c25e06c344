"""
Error taxonomy for the ingestion pipeline.

Every error carries a ``kind`` so callers (HTTP routes, bot handlers, retry
wrappers) can decide on retry/backoff without parsing messages. The underlying
library or network exception is chained as ``__cause__`` and exposed as
``cause``.
"""

from enum import Enum
from typing import Optional


class CodecErrorKind(Enum):
    """Codec failure classes."""
    INTERNAL = "internal"    # Library/allocation failure
    MALFORMED = "malformed"  # Input is not valid compressed output


class UploadErrorKind(Enum):
    """Upload failure classes."""
    UNCONFIGURED = "unconfigured"        # Credential missing, no request made
    TRANSPORT = "transport"              # Network error or timeout
    REMOTE_REJECTED = "remote_rejected"  # Error status or no content address


class RetrievalErrorKind(Enum):
    """Retrieval failure classes."""
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    CORRUPT_PAYLOAD = "corrupt_payload"  # Stored bytes don't match the compression flag


class PipelineError(Exception):
    """Base class for pipeline errors."""

    def __init__(self, kind: Enum, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class CodecError(PipelineError):
    """Raised by the codec."""

    def __init__(
        self,
        kind: CodecErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(kind, message, cause)


class UploadError(PipelineError):
    """Raised when an upload cannot be completed."""

    def __init__(
        self,
        kind: UploadErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(kind, message, cause)
        self.status_code = status_code


class RetrievalError(PipelineError):
    """Raised when stored bytes cannot be fetched or reconstructed."""

    def __init__(
        self,
        kind: RetrievalErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(kind, message, cause)
