"""
Metadata persistence for PinVault.
"""

from .metadata_store import MetadataStore, FileRecord

__all__ = ["MetadataStore", "FileRecord"]
