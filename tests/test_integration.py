"""
Integration tests for the PinVault facade.

Runs full ingest/retrieve cycles against the local content store and a
JSON metadata file in a temp directory.
"""

import json
from unittest.mock import Mock

import pytest

from pinvault.cli import PinVaultCLI
from pinvault.core.codec import COMPRESSED_SUFFIX
from pinvault.core.config import VaultConfig
from pinvault.core.errors import (
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from pinvault.core.vault import PinVault, create_backend
from pinvault.backends.local import LocalBackend
from pinvault.backends.pinata_backend import PinataBackend
from pinvault.storage.metadata_store import MetadataStore


@pytest.fixture
def vault(local_config):
    return PinVault(local_config)


@pytest.mark.integration
class TestEndToEnd:
    """Full upload/download cycles."""

    def test_compressible_text(self, vault, repetitive_text):
        record = vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="42")

        assert record.is_compressed is True
        assert record.stored_name == "notes.txt" + COMPRESSED_SUFFIX
        assert record.display_name == "notes.txt"
        assert record.original_size == 50_000
        assert record.stored_size < 50_000

        fetched, data = vault.retrieve(record.content_address)
        assert fetched.id == record.id
        assert data == repetitive_text

    def test_jpeg_is_stored_verbatim(self, vault, jpeg_bytes):
        record = vault.ingest(jpeg_bytes, "photo.jpg", "image/jpeg", owner_id="42")

        assert record.is_compressed is False
        assert record.stored_name == "photo.jpg"
        assert record.stored_size == len(jpeg_bytes)
        assert vault.store.fetch(record.content_address) == jpeg_bytes

        _, data = vault.retrieve(record.content_address)
        assert data == jpeg_bytes

    def test_matroska_is_compressed_when_worthwhile(self, vault, repetitive_text):
        record = vault.ingest(repetitive_text, "clip.mkv", "video/x-matroska", owner_id="7")

        assert record.is_compressed is True
        assert record.display_name == "clip.mkv"

    def test_compression_disabled_by_config(self, tmp_path, repetitive_text):
        config = VaultConfig(
            backend="local",
            storage_dir=tmp_path / "objects",
            metadata_path=tmp_path / "files.json",
            compression_enabled=False,
        )
        vault = PinVault(config)

        record = vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="1")

        assert record.is_compressed is False
        assert record.stored_size == len(repetitive_text)

    def test_per_call_override(self, vault, repetitive_text):
        record = vault.ingest(
            repetitive_text, "notes.txt", "text/plain", owner_id="1", compression_enabled=False
        )
        assert record.is_compressed is False

    def test_gateway_url_recorded(self, vault, repetitive_text):
        record = vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="1")
        assert record.gateway_url == vault.store.gateway_url(record.content_address)

    def test_extra_fields_are_persisted(self, vault, local_config, repetitive_text):
        record = vault.ingest(
            repetitive_text, "notes.txt", "text/plain",
            owner_id="1", owner_name="alice", extra={"chat_id": -100123},
        )

        reloaded = MetadataStore(local_config.metadata_path).get_by_id(record.id)
        assert reloaded.owner_name == "alice"
        assert reloaded.extra == {"chat_id": -100123}


@pytest.mark.integration
class TestFailureHandling:
    """Failures leave no partial records."""

    def test_failed_upload_writes_no_record(self, failing_store, metadata_store, repetitive_text):
        vault = PinVault(VaultConfig(backend="local"), store=failing_store, metadata=metadata_store)

        with pytest.raises(UploadError) as exc_info:
            vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="42")

        assert exc_info.value.kind is UploadErrorKind.TRANSPORT
        assert metadata_store.all() == []
        assert not metadata_store.path.exists()

    def test_unconfigured_store_fails_fast(self, metadata_store, repetitive_text):
        session = Mock()
        store = PinataBackend(VaultConfig(), session=session)
        vault = PinVault(VaultConfig(), store=store, metadata=metadata_store)

        with pytest.raises(UploadError) as exc_info:
            vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="42")

        assert exc_info.value.kind is UploadErrorKind.UNCONFIGURED
        session.post.assert_not_called()
        assert metadata_store.all() == []

    def test_wrong_compressed_flag_is_corrupt(self, vault):
        address = vault.store.store(b"plain bytes, never gzipped", "a.txt", "text/plain")

        with pytest.raises(RetrievalError) as exc_info:
            vault.download_and_reconstruct(address, True)

        assert exc_info.value.kind is RetrievalErrorKind.CORRUPT_PAYLOAD

    def test_missing_object_is_not_found(self, vault):
        with pytest.raises(RetrievalError) as exc_info:
            vault.download_and_reconstruct("ff" + "0" * 62, False)

        assert exc_info.value.kind is RetrievalErrorKind.NOT_FOUND

    def test_retrieve_without_record(self, vault):
        with pytest.raises(KeyError):
            vault.retrieve("bafyunknown")

    def test_oversize_file_is_refused(self, tmp_path):
        config = VaultConfig(
            backend="local",
            storage_dir=tmp_path / "objects",
            metadata_path=tmp_path / "files.json",
            max_file_size=10,
        )
        vault = PinVault(config)

        with pytest.raises(ValueError):
            vault.ingest(b"x" * 11, "big.bin", "application/octet-stream", owner_id="1")

        assert vault.store.list_addresses() == []


@pytest.mark.integration
class TestReconciliation:
    """Objects stored without a record."""

    def test_find_unlinked(self, vault, repetitive_text, jpeg_bytes):
        linked = vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="1")
        orphan = vault.upload_file(jpeg_bytes, "photo.jpg", "image/jpeg")

        unlinked = vault.find_unlinked()

        assert orphan.content_address in unlinked
        assert linked.content_address not in unlinked

    def test_nothing_unlinked(self, vault, repetitive_text):
        vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="1")
        assert vault.find_unlinked() == []


@pytest.mark.unit
class TestMetadataStore:
    """JSON record store."""

    def _descriptor(self, vault, data, name, content_type):
        return vault.upload_file(data, name, content_type)

    def test_add_and_lookup(self, vault, metadata_store, repetitive_text):
        descriptor = self._descriptor(vault, repetitive_text, "notes.txt", "text/plain")

        record = metadata_store.add(descriptor, owner_id=42, owner_name="alice")

        assert record.owner_id == "42"
        assert metadata_store.get_by_id(record.id) == record
        assert metadata_store.get_by_address(descriptor.content_address) == record
        assert metadata_store.get_by_owner("42") == [record]
        assert metadata_store.get_by_owner("43") == []
        assert record.descriptor == descriptor

    def test_latest_record_wins_for_address(self, vault, metadata_store, jpeg_bytes):
        descriptor = self._descriptor(vault, jpeg_bytes, "photo.jpg", "image/jpeg")

        metadata_store.add(descriptor, owner_id="1")
        second = metadata_store.add(descriptor, owner_id="2")

        assert metadata_store.get_by_address(descriptor.content_address) == second

    def test_persistence(self, vault, metadata_store, repetitive_text):
        descriptor = self._descriptor(vault, repetitive_text, "notes.txt", "text/plain")
        record = metadata_store.add(descriptor, owner_id="1")

        reloaded = MetadataStore(metadata_store.path)

        assert reloaded.all() == [record]
        assert json.loads(metadata_store.path.read_text())[0]["content_address"] == descriptor.content_address

    def test_delete(self, vault, metadata_store, jpeg_bytes):
        descriptor = self._descriptor(vault, jpeg_bytes, "photo.jpg", "image/jpeg")
        record = metadata_store.add(descriptor, owner_id="1")

        assert metadata_store.delete(record.id) is True
        assert metadata_store.delete(record.id) is False
        assert metadata_store.all() == []
        assert MetadataStore(metadata_store.path).all() == []

    def test_stats(self, vault, metadata_store, repetitive_text, jpeg_bytes):
        text = self._descriptor(vault, repetitive_text, "notes.txt", "text/plain")
        photo = self._descriptor(vault, jpeg_bytes, "photo.jpg", "image/jpeg")
        metadata_store.add(text, owner_id="1")
        metadata_store.add(photo, owner_id="2")

        stats = metadata_store.stats()

        assert stats["total_files"] == 2
        assert stats["compressed_files"] == 1
        assert stats["total_size"] == text.stored_size + photo.stored_size
        assert stats["total_original_size"] == len(repetitive_text) + len(jpeg_bytes)
        assert stats["bytes_saved"] == len(repetitive_text) - text.stored_size
        assert stats["file_types"] == {"text": 1, "image": 1}

        assert metadata_store.stats("2")["total_files"] == 1

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "files.json"
        path.write_text("{not json")

        assert MetadataStore(path).all() == []

    def test_corrupt_file_is_kept_aside(self, vault, tmp_path, jpeg_bytes):
        path = tmp_path / "files.json"
        path.write_text("{not json")

        store = MetadataStore(path)
        store.add(self._descriptor(vault, jpeg_bytes, "photo.jpg", "image/jpeg"), owner_id="1")

        assert (tmp_path / "files.json.corrupt").read_text() == "{not json"
        assert len(MetadataStore(path).all()) == 1

    def test_failed_delete_keeps_record(self, vault, metadata_store, jpeg_bytes, monkeypatch):
        descriptor = self._descriptor(vault, jpeg_bytes, "photo.jpg", "image/jpeg")
        record = metadata_store.add(descriptor, owner_id="1")

        def disk_full():
            raise OSError("disk full")

        monkeypatch.setattr(metadata_store, "_save", disk_full)

        with pytest.raises(OSError):
            metadata_store.delete(record.id)

        assert metadata_store.get_by_id(record.id) == record
        assert MetadataStore(metadata_store.path).get_by_id(record.id) == record


@pytest.mark.unit
class TestConfig:
    """Configuration and backend selection."""

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PINATA_JWT", "env-jwt")
        monkeypatch.setenv("PORT", "4000")
        monkeypatch.setenv("PINVAULT_BACKEND", "LOCAL")
        monkeypatch.setenv("PINVAULT_STORAGE_DIR", str(tmp_path / "objects"))
        monkeypatch.setenv("PINVAULT_COMPRESSION_ENABLED", "false")
        monkeypatch.setenv("PINVAULT_MIN_RATIO_PERCENT", "25")
        monkeypatch.setenv("PINVAULT_SKIP_CONTENT_TYPES", "image/png, video/mp4")

        config = VaultConfig.from_env()

        assert config.pinata_jwt == "env-jwt"
        assert config.port == 4000
        assert config.backend == "local"
        assert config.storage_dir == tmp_path / "objects"
        assert config.compression_enabled is False
        assert config.min_ratio_percent == 25.0
        assert config.skip_content_types == ["image/png", "video/mp4"]

    def test_defaults(self, monkeypatch):
        for name in ("PINATA_JWT", "PORT", "PINVAULT_BACKEND", "PINVAULT_COMPRESSION_ENABLED"):
            monkeypatch.delenv(name, raising=False)

        config = VaultConfig.from_env()

        assert config.port == 3002
        assert config.backend == "pinata"
        assert config.has_credentials is False
        assert config.upload_timeout == 300.0
        assert "video/x-matroska" not in config.skip_content_types

    def test_create_backend(self, local_config):
        assert isinstance(create_backend(local_config), LocalBackend)
        assert isinstance(create_backend(VaultConfig(pinata_jwt="jwt")), PinataBackend)

        with pytest.raises(ValueError):
            create_backend(VaultConfig(backend="s3"))


@pytest.mark.integration
class TestCLI:
    """Operator CLI."""

    def test_upload_and_download(self, vault, tmp_path, repetitive_text, capsys):
        source = tmp_path / "notes.txt"
        source.write_bytes(repetitive_text)
        cli = PinVaultCLI(vault=vault)

        assert cli.run(["upload", str(source), "--owner", "ops"]) == 0
        record = vault.metadata.get_by_owner("ops")[0]
        assert record.is_compressed is True

        output = tmp_path / "restored.txt"
        assert cli.run(["download", record.content_address, "-o", str(output)]) == 0
        assert output.read_bytes() == repetitive_text
        assert "File uploaded successfully" in capsys.readouterr().out

    def test_download_unknown(self, vault, capsys):
        assert PinVaultCLI(vault=vault).run(["download", "bafyunknown"]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_pipeline_error_exit_code(self, failing_store, metadata_store, tmp_path):
        source = tmp_path / "notes.txt"
        source.write_bytes(b"hello " * 100)
        vault = PinVault(VaultConfig(backend="local"), store=failing_store, metadata=metadata_store)

        assert PinVaultCLI(vault=vault).run(["upload", str(source)]) == 2

    def test_stats_and_unlinked(self, vault, repetitive_text, capsys):
        vault.ingest(repetitive_text, "notes.txt", "text/plain", owner_id="1")
        cli = PinVaultCLI(vault=vault)

        assert cli.run(["stats"]) == 0
        assert cli.run(["unlinked"]) == 0
        assert cli.run(["list"]) == 0

        out = capsys.readouterr().out
        assert "Files: 1 (1 compressed)" in out
        assert "0 unlinked object(s)" in out
        assert "notes.txt" in out
