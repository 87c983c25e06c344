"""
PinVault Core Module

Core functionality for the file ingestion pipeline:
- Codec (gzip compress/decompress)
- Compression policy (type gate + empirical gate)
- Upload and retrieval orchestration
- Configuration and error taxonomy

The PinVault facade lives in pinvault.core.vault (it pulls in the backends).
"""

from pinvault.core.codec import GzipCodec, CompressionOutcome, COMPRESSED_SUFFIX, COMPRESSED_CONTENT_TYPE
from pinvault.core.config import VaultConfig
from pinvault.core.descriptor import UploadDescriptor
from pinvault.core.errors import (
    CodecError,
    CodecErrorKind,
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from pinvault.core.orchestrator import UploadOrchestrator, RetrievalOrchestrator
from pinvault.core.policy import CompressionPolicy, DEFAULT_SKIP_CONTENT_TYPES

__all__ = [
    "GzipCodec",
    "CompressionOutcome",
    "COMPRESSED_SUFFIX",
    "COMPRESSED_CONTENT_TYPE",
    "VaultConfig",
    "UploadDescriptor",
    "CodecError",
    "CodecErrorKind",
    "UploadError",
    "UploadErrorKind",
    "RetrievalError",
    "RetrievalErrorKind",
    "UploadOrchestrator",
    "RetrievalOrchestrator",
    "CompressionPolicy",
    "DEFAULT_SKIP_CONTENT_TYPES",
]
