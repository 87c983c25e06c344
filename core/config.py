"""
PinVault configuration.

Built once at process start (usually with ``VaultConfig.from_env()``) and
passed to the components that need it.
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from .policy import DEFAULT_SKIP_CONTENT_TYPES, DEFAULT_MIN_RATIO_PERCENT

# Value shipped in example .env files; treated as "not configured"
PLACEHOLDER_JWT = "your_pinata_jwt_here"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class VaultConfig(BaseModel):
    """PinVault configuration."""

    # Server
    host: str = Field(
        default="127.0.0.1",
        description="Server host (use 0.0.0.0 for Docker/cloud)"
    )
    port: int = Field(default=3002, description="Server port")

    # Remote store
    backend: str = Field(default="pinata", description="Content store backend (pinata, local)")
    pinata_jwt: Optional[str] = Field(default=None, description="Pinata API JWT")
    pinata_api_url: str = Field(default="https://api.pinata.cloud", description="Pinata API base URL")
    gateway_url: str = Field(default="https://gateway.pinata.cloud", description="IPFS gateway base URL")
    connect_timeout: float = Field(default=10.0, description="Connect timeout (seconds)")
    upload_timeout: float = Field(
        default=300.0,
        description="Read timeout for uploads (seconds); large single-shot transfers"
    )
    download_timeout: float = Field(default=120.0, description="Read timeout for downloads (seconds)")

    # Local storage
    storage_dir: Path = Field(default=Path("./pinvault_storage"), description="LocalBackend directory")
    metadata_path: Path = Field(default=Path("./data/files.json"), description="Metadata record file")

    # Compression settings
    compression_enabled: bool = Field(default=True, description="Run the compression policy on upload")
    compression_level: int = Field(default=6, description="gzip level (0-9)")
    min_ratio_percent: float = Field(
        default=DEFAULT_MIN_RATIO_PERCENT,
        description="Minimum saving (%) required to keep compressed bytes"
    )
    skip_content_types: List[str] = Field(
        default_factory=lambda: sorted(DEFAULT_SKIP_CONTENT_TYPES),
        description="Content types never compressed"
    )

    # File size limits
    max_file_size: int = Field(
        default=2 * 1024 * 1024 * 1024,  # 2GB
        description="Maximum file size in bytes"
    )

    @property
    def has_credentials(self) -> bool:
        """True if a usable Pinata JWT is set."""
        return bool(self.pinata_jwt) and self.pinata_jwt != PLACEHOLDER_JWT

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Build configuration from environment variables."""
        defaults = cls()

        skip_types = defaults.skip_content_types
        raw_skip = os.getenv("PINVAULT_SKIP_CONTENT_TYPES")
        if raw_skip is not None:
            skip_types = [t.strip() for t in raw_skip.split(",") if t.strip()]

        return cls(
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", str(defaults.port))),
            backend=os.getenv("PINVAULT_BACKEND", defaults.backend).lower(),
            pinata_jwt=os.getenv("PINATA_JWT") or None,
            pinata_api_url=os.getenv("PINATA_API_URL", defaults.pinata_api_url),
            gateway_url=os.getenv("PINATA_GATEWAY_URL", defaults.gateway_url),
            upload_timeout=float(os.getenv("PINVAULT_UPLOAD_TIMEOUT", str(defaults.upload_timeout))),
            storage_dir=Path(os.getenv("PINVAULT_STORAGE_DIR", str(defaults.storage_dir))),
            metadata_path=Path(os.getenv("PINVAULT_METADATA_PATH", str(defaults.metadata_path))),
            compression_enabled=_env_bool("PINVAULT_COMPRESSION_ENABLED", defaults.compression_enabled),
            min_ratio_percent=float(
                os.getenv("PINVAULT_MIN_RATIO_PERCENT", str(defaults.min_ratio_percent))
            ),
            skip_content_types=skip_types,
            max_file_size=int(os.getenv("PINVAULT_MAX_FILE_SIZE", str(defaults.max_file_size))),
        )
