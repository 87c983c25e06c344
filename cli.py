#!/usr/bin/env python3
"""
PinVault CLI

Command-line access to the ingestion pipeline for operators.

Commands:
- upload: Upload a local file (compressed when worthwhile) and record it
- download: Fetch a file by CID and write the original bytes
- list: List recorded files (optionally for one owner)
- stats: Display storage statistics
- unlinked: List stored objects with no metadata record
"""

import sys
import argparse
import mimetypes
from pathlib import Path
from typing import Optional

from loguru import logger

from pinvault.core.config import VaultConfig
from pinvault.core.errors import PipelineError
from pinvault.core.vault import PinVault


class PinVaultCLI:
    """CLI for PinVault file operations."""

    def __init__(self, vault: Optional[PinVault] = None):
        self._vault = vault

    @property
    def vault(self) -> PinVault:
        if self._vault is None:
            self._vault = PinVault(VaultConfig.from_env())
        return self._vault

    def upload(self, args):
        """Upload a local file."""
        path = Path(args.path)
        data = path.read_bytes()
        content_type = args.content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"

        record = self.vault.ingest(
            data,
            path.name,
            content_type,
            owner_id=args.owner,
            compression_enabled=not args.no_compress,
        )

        print("✅ File uploaded successfully!")
        print(f"  Name: {record.stored_name}")
        print(f"  CID: {record.content_address}")
        print(f"  Size: {record.stored_size / 1024:.2f} KB")
        if record.is_compressed:
            print(
                f"  Compressed: {record.original_size / 1024:.2f} KB -> "
                f"{record.stored_size / 1024:.2f} KB ({record.ratio_percent:.1f}% saved)"
            )
        print(f"  URL: {record.gateway_url}")
        return 0

    def download(self, args):
        """Download a file by CID."""
        try:
            record, data = self.vault.retrieve(args.cid)
        except KeyError:
            print(f"❌ File not found: {args.cid}")
            return 1

        output = Path(args.output) if args.output else Path(record.display_name)
        output.write_bytes(data)

        print(f"✅ Wrote {len(data)} bytes to {output}")
        return 0

    def list_files(self, args):
        """List recorded files."""
        if args.owner:
            records = self.vault.metadata.get_by_owner(args.owner)
        else:
            records = self.vault.metadata.all()

        for record in records:
            flag = "gz" if record.is_compressed else "--"
            print(
                f"{record.content_address}  {flag}  {record.stored_size:>10}  "
                f"{record.owner_id:>12}  {record.display_name}"
            )

        print(f"\n{len(records)} file(s)")
        return 0

    def stats(self, args):
        """Display storage statistics."""
        stats = self.vault.get_stats(args.owner)

        print("📊 Storage statistics")
        print(f"  Files: {stats['total_files']} ({stats['compressed_files']} compressed)")
        print(f"  Stored: {stats['total_size'] / 1024 / 1024:.2f} MB")
        print(f"  Original: {stats['total_original_size'] / 1024 / 1024:.2f} MB")
        print(f"  Saved: {stats['bytes_saved'] / 1024 / 1024:.2f} MB")
        for major, count in sorted(stats["file_types"].items()):
            print(f"  {major}: {count}")
        return 0

    def unlinked(self, args):
        """List stored objects with no metadata record."""
        addresses = self.vault.find_unlinked()
        for address in addresses:
            print(address)
        print(f"\n{len(addresses)} unlinked object(s)")
        return 0

    def create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            description="PinVault file vault CLI",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        subparsers = parser.add_subparsers(dest="command", help="Commands")

        upload_parser = subparsers.add_parser("upload", help="Upload a file")
        upload_parser.add_argument("path", help="File to upload")
        upload_parser.add_argument("--owner", default="cli", help="Uploading identity")
        upload_parser.add_argument("--content-type", help="Declared content type (default: guessed)")
        upload_parser.add_argument("--no-compress", action="store_true", help="Skip compression policy")

        download_parser = subparsers.add_parser("download", help="Download a file")
        download_parser.add_argument("cid", help="Content address")
        download_parser.add_argument("-o", "--output", help="Output path (default: original name)")

        list_parser = subparsers.add_parser("list", help="List files")
        list_parser.add_argument("--owner", help="Only files uploaded by this identity")

        stats_parser = subparsers.add_parser("stats", help="Display statistics")
        stats_parser.add_argument("--owner", help="Only files uploaded by this identity")

        subparsers.add_parser("unlinked", help="List stored objects without records")

        return parser

    def run(self, argv=None):
        """Run CLI (entry point)."""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        commands = {
            "upload": self.upload,
            "download": self.download,
            "list": self.list_files,
            "stats": self.stats,
            "unlinked": self.unlinked,
        }

        try:
            return commands[args.command](args)
        except PipelineError as e:
            logger.error("{} failed: {}", args.command, e)
            print(f"❌ {e.message}")
            return 2
        except (OSError, ValueError) as e:
            print(f"❌ {e}")
            return 1


def main():
    """CLI entry point."""
    cli = PinVaultCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
