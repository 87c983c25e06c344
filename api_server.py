"""
PinVault File API Server

FastAPI server exposing the ingestion pipeline to the web dApp.
Provides REST endpoints for file upload, metadata lookup, and inline or
attachment download with transparent decompression.

Endpoints:
- POST /api/v1/files - Upload file (compressed when worthwhile) and record it
- GET /api/v1/files - List all files
- GET /api/v1/files/user/{owner_id} - List files uploaded by an identity
- GET /api/v1/files/cid/{cid} - Get file metadata by content address
- GET /api/v1/files/stats/all - Get storage statistics
- GET /api/v1/files/{file_id} - Get file metadata by record id
- DELETE /api/v1/files/{file_id} - Delete metadata record
- GET /api/v1/files/serve/{cid} - Serve original bytes inline
- GET /api/v1/files/download/{cid} - Download original bytes as attachment

Author: PinVault Team
License: MIT
"""

import asyncio
import urllib.parse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, UploadFile, File, Form, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from loguru import logger

from pinvault.core.config import VaultConfig
from pinvault.core.errors import (
    CodecError,
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from pinvault.core.vault import PinVault
from pinvault.storage.metadata_store import FileRecord


# =============================================================================
# API Models
# =============================================================================

class FileMetadataResponse(BaseModel):
    """Stored file metadata."""

    id: str
    file_name: str = Field(..., description="Name under which bytes were stored")
    display_name: str = Field(..., description="Original name (compression marker removed)")
    cid: str = Field(..., description="IPFS content address")
    owner_id: str
    owner_name: Optional[str] = None
    uploaded_at: str
    file_type: str = Field(..., description="Declared content type")
    file_size: int = Field(..., description="Stored size in bytes")
    ipfs_url: Optional[str] = None
    is_compressed: bool
    original_size: Optional[int] = None
    compression_ratio: Optional[float] = Field(None, description="Percent saved by compression")
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileMetadataResponse":
        return cls(
            id=record.id,
            file_name=record.stored_name,
            display_name=record.display_name,
            cid=record.content_address,
            owner_id=record.owner_id,
            owner_name=record.owner_name,
            uploaded_at=record.uploaded_at,
            file_type=record.declared_content_type,
            file_size=record.stored_size,
            ipfs_url=record.gateway_url,
            is_compressed=record.is_compressed,
            original_size=record.original_size,
            compression_ratio=record.ratio_percent,
            extra=record.extra,
        )


class FileListResponse(BaseModel):
    """File listing."""

    files: List[FileMetadataResponse]


class StatsResponse(BaseModel):
    """Storage statistics response."""

    total_files: int
    total_size: int
    total_original_size: int
    bytes_saved: int
    compressed_files: int
    file_types: Dict[str, int]


# =============================================================================
# Global State
# =============================================================================

class AppState:
    """Application state."""

    def __init__(self):
        self.config: Optional[VaultConfig] = None
        self.vault: Optional[PinVault] = None
        self.upload_counter: int = 0

    async def initialize(self, config: VaultConfig):
        """Initialize application state."""
        self.config = config
        self.vault = PinVault(config)

        if not self.vault.connect():
            logger.warning("⚠️  Content store not configured - uploads will fail")

        logger.info("✅ PinVault initialized")
        logger.info("   Backend: {}", config.backend)
        logger.info("   Metadata: {}", config.metadata_path)
        logger.info("   Compression: {}", "enabled" if config.compression_enabled else "disabled")
        logger.info("   Threshold: {}%", config.min_ratio_percent)

    async def shutdown(self):
        """Cleanup resources."""
        logger.info("✅ PinVault API server shutdown complete")


# Global app state
app_state = AppState()


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    await app_state.initialize(VaultConfig.from_env())

    yield

    await app_state.shutdown()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="PinVault File API",
    description="Telegram-to-IPFS file vault",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error(exc: Exception) -> HTTPException:
    """Map pipeline errors to HTTP errors with a generic message."""
    if isinstance(exc, UploadError):
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if exc.kind is UploadErrorKind.UNCONFIGURED
            else status.HTTP_502_BAD_GATEWAY
        )
        return HTTPException(status_code=code, detail=f"Failed to upload file to IPFS: {exc.message}")

    if isinstance(exc, RetrievalError):
        codes = {
            RetrievalErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
            RetrievalErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
            RetrievalErrorKind.CORRUPT_PAYLOAD: status.HTTP_500_INTERNAL_SERVER_ERROR,
        }
        return HTTPException(status_code=codes[exc.kind], detail=f"Failed to fetch file from IPFS: {exc.message}")

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Request failed: {exc}",
    )


def _get_record_by_cid(cid: str) -> FileRecord:
    record = app_state.vault.metadata.get_by_address(cid)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return record


# =============================================================================
# Health & Status Endpoints
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "pinvault-api",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "vault_initialized": app_state.vault is not None,
    }


@app.get("/api/v1/status")
async def get_status():
    """Get API status and configuration."""
    return {
        "service": "PinVault",
        "version": "1.0.0",
        "storage": {
            "backend": app_state.config.backend,
            "configured": app_state.vault.store.is_configured,
            "gateway": app_state.config.gateway_url,
        },
        "compression": {
            "enabled": app_state.config.compression_enabled,
            "min_ratio_percent": app_state.config.min_ratio_percent,
            "skip_content_types": sorted(app_state.vault.policy.skip_content_types),
        },
        "total_uploads": app_state.upload_counter,
    }


# =============================================================================
# File Upload & Download
# =============================================================================

@app.post("/api/v1/files", response_model=FileMetadataResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    owner_id: str = Form(...),
    owner_name: Optional[str] = Form(None),
    compress: bool = True,
):
    """
    Upload file to IPFS.

    This endpoint:
    1. Reads uploaded file
    2. Compresses it if the policy says it is worthwhile
    3. Pins it to the content store
    4. Records and returns the file metadata
    """
    content = await file.read()

    if len(content) > app_state.config.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large (max {app_state.config.max_file_size} bytes)"
        )

    try:
        record = await asyncio.to_thread(
            app_state.vault.ingest,
            content,
            file.filename or "unnamed",
            file.content_type,
            owner_id,
            owner_name,
            compress,
        )
    except (UploadError, CodecError) as e:
        logger.error("Upload failed: {}", e)
        raise _http_error(e)

    app_state.upload_counter += 1
    logger.info("✅ Uploaded file: {} ({})", record.stored_name, record.content_address)

    return FileMetadataResponse.from_record(record)


async def _reconstruct(record: FileRecord) -> bytes:
    try:
        return await asyncio.to_thread(
            app_state.vault.download_and_reconstruct,
            record.content_address,
            record.is_compressed,
        )
    except (RetrievalError, CodecError) as e:
        logger.error("Download failed for {}: {}", record.content_address, e)
        raise _http_error(e)


def _content_disposition(disposition: str, filename: str) -> str:
    """
    Build a Content-Disposition value that survives any file name.

    Header values go out as Latin-1, so the plain ``filename`` carries an
    ASCII fallback and ``filename*`` (RFC 5987) carries the real UTF-8 name.
    """
    fallback = "".join(
        c if " " <= c <= "~" else "_" for c in filename
    )
    fallback = fallback.replace("\\", "\\\\").replace('"', '\\"')
    encoded = urllib.parse.quote(filename, safe="")
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def _file_stream(record: FileRecord, content: bytes, disposition: str, extra_headers=None):
    headers = {
        "Content-Disposition": _content_disposition(disposition, record.display_name),
        "Content-Length": str(len(content)),
    }
    headers.update(extra_headers or {})
    return StreamingResponse(
        iter([content]),
        media_type=record.declared_content_type,
        headers=headers,
    )


@app.get("/api/v1/files/serve/{cid}")
async def serve_file(cid: str):
    """Serve original bytes for inline viewing."""
    record = _get_record_by_cid(cid)
    content = await _reconstruct(record)

    logger.info("📥 Served file: {} ({} bytes)", record.display_name, len(content))

    return _file_stream(
        record,
        content,
        "inline",
        {"Cache-Control": "public, max-age=31536000"},
    )


@app.get("/api/v1/files/download/{cid}")
async def download_file(cid: str):
    """Download original bytes as an attachment."""
    record = _get_record_by_cid(cid)
    content = await _reconstruct(record)

    logger.info("📥 Downloaded file: {} ({} bytes)", record.display_name, len(content))

    return _file_stream(record, content, "attachment")


# =============================================================================
# Metadata & Management
# =============================================================================

@app.get("/api/v1/files", response_model=FileListResponse)
async def list_files():
    """List all files."""
    records = app_state.vault.metadata.all()
    return FileListResponse(files=[FileMetadataResponse.from_record(r) for r in records])


@app.get("/api/v1/files/user/{owner_id}", response_model=FileListResponse)
async def list_user_files(owner_id: str):
    """List files uploaded by one identity."""
    records = app_state.vault.metadata.get_by_owner(owner_id)
    return FileListResponse(files=[FileMetadataResponse.from_record(r) for r in records])


@app.get("/api/v1/files/cid/{cid}", response_model=FileMetadataResponse)
async def get_file_by_cid(cid: str):
    """Get file metadata by content address."""
    return FileMetadataResponse.from_record(_get_record_by_cid(cid))


@app.get("/api/v1/files/stats/all", response_model=StatsResponse)
async def get_storage_stats():
    """Get storage statistics."""
    return StatsResponse(**app_state.vault.get_stats())


@app.get("/api/v1/files/{file_id}", response_model=FileMetadataResponse)
async def get_file(file_id: str):
    """Get file metadata by record id."""
    record = app_state.vault.metadata.get_by_id(file_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileMetadataResponse.from_record(record)


@app.delete("/api/v1/files/{file_id}")
async def delete_file(file_id: str):
    """Delete a metadata record (the pinned object is not unpinned)."""
    if not app_state.vault.metadata.delete(file_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    logger.info("🗑️ Deleted file: {}", file_id)

    return {"success": True, "message": "File deleted successfully"}


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Run API server."""
    logger.add(
        "logs/pinvault_api_{time}.log",
        rotation="1 day",
        retention="30 days",
        level="INFO"
    )

    config = VaultConfig.from_env()

    logger.info("🚀 Starting PinVault API server on {}:{}", config.host, config.port)
    logger.info("   Backend: {}", config.backend)
    logger.info("   Metadata: {}", config.metadata_path)

    uvicorn.run(
        "pinvault.api_server:app",
        host=config.host,
        port=config.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
