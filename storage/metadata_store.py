"""
JSON file metadata store.

Persists one record per successful upload, keyed by a generated id and
searchable by content address and by uploading identity.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
import json
import logging
import os
import tempfile
import threading
import uuid

from ..core.descriptor import UploadDescriptor, strip_compressed_suffix

logger = logging.getLogger(__name__)


@dataclass
class FileRecord:
    """Persisted upload descriptor plus ownership data."""
    id: str
    owner_id: str
    uploaded_at: str
    content_address: str
    stored_name: str
    stored_size: int
    declared_content_type: str
    is_compressed: bool
    original_size: Optional[int] = None
    ratio_percent: Optional[float] = None
    owner_name: Optional[str] = None
    gateway_url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def descriptor(self) -> UploadDescriptor:
        return UploadDescriptor(
            content_address=self.content_address,
            stored_name=self.stored_name,
            stored_size=self.stored_size,
            declared_content_type=self.declared_content_type,
            is_compressed=self.is_compressed,
            original_size=self.original_size,
            ratio_percent=self.ratio_percent,
        )

    @property
    def display_name(self) -> str:
        return strip_compressed_suffix(self.stored_name, self.is_compressed)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        descriptor = UploadDescriptor.from_dict(data)
        return cls(
            id=data["id"],
            owner_id=str(data["owner_id"]),
            uploaded_at=data["uploaded_at"],
            owner_name=data.get("owner_name"),
            gateway_url=data.get("gateway_url"),
            extra=data.get("extra") or {},
            **descriptor.to_dict(),
        )


class MetadataStore:
    """
    Record store backed by a single JSON array file.

    Every mutation rewrites the file through a temp file and ``os.replace``,
    so readers never observe a half-written file.
    """

    def __init__(self, path: Path):
        """
        Args:
            path: JSON file location (created on first write)
        """
        self.path = Path(path)
        self._lock = threading.Lock()
        self._records: List[FileRecord] = []
        self._load()

    def add(
        self,
        descriptor: UploadDescriptor,
        owner_id: str,
        owner_name: Optional[str] = None,
        gateway_url: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> FileRecord:
        """Persist a record for an acknowledged upload."""
        record = FileRecord(
            id=str(uuid.uuid4()),
            owner_id=str(owner_id),
            uploaded_at=datetime.now(timezone.utc).isoformat(),
            owner_name=owner_name,
            gateway_url=gateway_url,
            extra=dict(extra or {}),
            **descriptor.to_dict(),
        )

        with self._lock:
            self._records.append(record)
            try:
                self._save()
            except OSError:
                self._records.pop()
                raise

        logger.info(f"File saved: {record.stored_name} ({record.content_address})")
        return record

    def all(self) -> List[FileRecord]:
        with self._lock:
            return list(self._records)

    def get_by_id(self, record_id: str) -> Optional[FileRecord]:
        with self._lock:
            return next((r for r in self._records if r.id == record_id), None)

    def get_by_address(self, content_address: str) -> Optional[FileRecord]:
        """Most recent record for ``content_address``."""
        with self._lock:
            matches = [r for r in self._records if r.content_address == content_address]
        return matches[-1] if matches else None

    def get_by_owner(self, owner_id: str) -> List[FileRecord]:
        owner_id = str(owner_id)
        with self._lock:
            return [r for r in self._records if r.owner_id == owner_id]

    def addresses(self) -> Set[str]:
        with self._lock:
            return {r.content_address for r in self._records}

    def delete(self, record_id: str) -> bool:
        """
        Delete a record. The remote object is left in place.

        Returns:
            True if a record was removed
        """
        with self._lock:
            remaining = [r for r in self._records if r.id != record_id]
            if len(remaining) == len(self._records):
                return False
            previous = self._records
            self._records = remaining
            try:
                self._save()
            except OSError:
                self._records = previous
                raise

        logger.info(f"File deleted: {record_id}")
        return True

    def stats(self, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """Totals over all records (or one owner's)."""
        records = self.get_by_owner(owner_id) if owner_id is not None else self.all()

        total_size = sum(r.stored_size for r in records)
        total_original = sum(r.descriptor.logical_size for r in records)

        file_types: Dict[str, int] = {}
        for r in records:
            major = r.declared_content_type.split("/")[0]
            file_types[major] = file_types.get(major, 0) + 1

        return {
            "total_files": len(records),
            "total_size": total_size,
            "total_original_size": total_original,
            "bytes_saved": total_original - total_size,
            "compressed_files": sum(1 for r in records if r.is_compressed),
            "file_types": file_types,
        }

    def _load(self):
        if not self.path.exists():
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._records = [FileRecord.from_dict(item) for item in raw]
            logger.info(f"Loaded {len(self._records)} files from {self.path}")
        except (OSError, ValueError, KeyError, TypeError) as e:
            self._records = []
            backup = self.path.with_name(self.path.name + ".corrupt")
            try:
                os.replace(self.path, backup)
            except OSError as move_error:
                logger.error(f"Could not move unreadable metadata {self.path} aside: {move_error}")
                raise
            logger.warning(f"Could not load metadata from {self.path}: {e}; moved to {backup}, starting empty")

    def _save(self):
        """Write all records atomically. Caller holds the lock."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([r.to_dict() for r in self._records], indent=2)

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
