"""
Upload descriptor: the durable summary of one upload.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from .codec import COMPRESSED_SUFFIX


@dataclass(frozen=True)
class UploadDescriptor:
    """
    Outcome of one upload, as acknowledged by the remote store.

    ``is_compressed`` is the only signal used to decide whether a download
    must be decompressed. The marker suffix on ``stored_name`` is a display
    hint and is never parsed back into the flag.
    """
    content_address: str
    stored_name: str
    stored_size: int
    declared_content_type: str
    is_compressed: bool
    original_size: Optional[int] = None
    ratio_percent: Optional[float] = None

    @property
    def display_name(self) -> str:
        """Stored name with exactly the compression marker removed."""
        return strip_compressed_suffix(self.stored_name, self.is_compressed)

    @property
    def logical_size(self) -> int:
        """Size of the bytes the uploader submitted."""
        if self.is_compressed and self.original_size is not None:
            return self.original_size
        return self.stored_size

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadDescriptor":
        is_compressed = bool(data.get("is_compressed", False))
        return cls(
            content_address=data["content_address"],
            stored_name=data["stored_name"],
            stored_size=int(data["stored_size"]),
            declared_content_type=data["declared_content_type"],
            is_compressed=is_compressed,
            original_size=data.get("original_size") if is_compressed else None,
            ratio_percent=data.get("ratio_percent") if is_compressed else None,
        )


def strip_compressed_suffix(name: str, is_compressed: bool) -> str:
    """Remove the trailing compression marker from ``name`` if ``is_compressed``."""
    if is_compressed and name.endswith(COMPRESSED_SUFFIX):
        return name[: -len(COMPRESSED_SUFFIX)]
    return name
