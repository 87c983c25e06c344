"""
Content stores for PinVault.

Supports Pinata (IPFS) and local filesystem storage.
"""

from .base import ContentStore
from .local import LocalBackend
from .pinata_backend import PinataBackend

__all__ = ["ContentStore", "LocalBackend", "PinataBackend"]
