"""
Pinata IPFS pinning backend.

Uploads objects to IPFS through the Pinata pinning API and reads them back
through an IPFS HTTP gateway. The returned CID is the content address.
"""

from typing import Optional, List, Dict
import json
import logging

import requests

from ..core.config import VaultConfig
from ..core.errors import (
    UploadError,
    UploadErrorKind,
    RetrievalError,
    RetrievalErrorKind,
)
from .base import ContentStore

logger = logging.getLogger(__name__)

PIN_FILE_PATH = "/pinning/pinFileToIPFS"
PIN_LIST_PATH = "/data/pinList"
PIN_LIST_PAGE_LIMIT = 1000


class PinataBackend(ContentStore):
    """
    IPFS storage through Pinata.

    Features:
    - Content-addressable storage (CID returned by Pinata)
    - Lazy credential initialization (first real use, or explicit ``connect()``)
    - Single-shot uploads with a known Content-Length and an extended timeout
    - Gateway retrieval with failure classification (not found vs transport)
    """

    name = "pinata"

    def __init__(
        self,
        config: VaultConfig,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Pinata backend. No network calls are made here.

        Args:
            config: Vault configuration (JWT, endpoints, timeouts)
            session: Optional requests session (mainly for tests)
        """
        self.config = config
        self.session = session or requests.Session()
        self._jwt: Optional[str] = None
        self._initialized = False

    def connect(self) -> bool:
        """
        Load the Pinata JWT from configuration.

        Idempotent: concurrent first calls at worst repeat the same assignment.
        """
        if self._initialized:
            return True

        if not self.config.has_credentials:
            logger.warning("PINATA_JWT not configured - IPFS uploads will fail")
            return False

        self._jwt = self.config.pinata_jwt
        self._initialized = True
        logger.info("Pinata client initialized")
        return True

    @property
    def is_configured(self) -> bool:
        return self._initialized or self.config.has_credentials

    def store(self, data: bytes, name: str, content_type: str) -> str:
        """
        Pin ``data`` to IPFS.

        The multipart body is built in memory, so requests sends an explicit
        Content-Length rather than a chunked transfer.

        Returns:
            IPFS CID
        """
        if not self.connect():
            raise UploadError(
                UploadErrorKind.UNCONFIGURED,
                "Pinata JWT not initialized. Please set PINATA_JWT",
            )

        url = f"{self.config.pinata_api_url.rstrip('/')}{PIN_FILE_PATH}"
        size_mb = len(data) / 1024 / 1024
        logger.info(f"Uploading to IPFS: {name} ({len(data)} bytes, {size_mb:.2f} MB)")

        try:
            response = self.session.post(
                url,
                headers=self._auth_headers(),
                files={"file": (name, data, content_type)},
                data={"pinataMetadata": json.dumps({"name": name})},
                timeout=(self.config.connect_timeout, self.config.upload_timeout),
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"No response received from Pinata: {e}")
            raise UploadError(
                UploadErrorKind.TRANSPORT,
                f"Failed to upload file to IPFS via Pinata: {e}",
                e,
            ) from e

        if not response.ok:
            logger.error(
                f"Pinata API error response: {response.status_code} "
                f"{response.reason}: {response.text[:500]}"
            )
            raise UploadError(
                UploadErrorKind.REMOTE_REJECTED,
                f"Pinata rejected upload with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UploadError(
                UploadErrorKind.REMOTE_REJECTED,
                "Pinata returned a non-JSON response",
                e,
                status_code=response.status_code,
            ) from e

        cid = payload.get("IpfsHash") if isinstance(payload, dict) else None
        if not cid:
            raise UploadError(
                UploadErrorKind.REMOTE_REJECTED,
                "Failed to get IPFS hash from Pinata",
                status_code=response.status_code,
            )

        logger.info(f"File uploaded to IPFS via Pinata: {cid}")

        return cid

    def fetch(self, address: str) -> bytes:
        """Fetch raw bytes for ``address`` from the gateway."""
        url = self.gateway_url(address)

        try:
            response = self.session.get(
                url,
                timeout=(self.config.connect_timeout, self.config.download_timeout),
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to download {address} from IPFS: {e}")
            raise RetrievalError(
                RetrievalErrorKind.TRANSPORT,
                f"Failed to download file from IPFS: {e}",
                e,
            ) from e

        if response.status_code == 404:
            raise RetrievalError(RetrievalErrorKind.NOT_FOUND, f"No IPFS object {address}")

        if not response.ok:
            logger.error(f"Gateway returned {response.status_code} for {address}")
            raise RetrievalError(
                RetrievalErrorKind.TRANSPORT,
                f"Gateway returned status {response.status_code} for {address}",
            )

        logger.debug(f"Retrieved {address} from IPFS ({len(response.content)} bytes)")

        return response.content

    def gateway_url(self, address: str) -> str:
        return f"{self.config.gateway_url.rstrip('/')}/ipfs/{address}"

    def alternative_urls(self, address: str) -> Dict[str, str]:
        """Public gateways that can serve the same CID."""
        return {
            "pinata": f"https://gateway.pinata.cloud/ipfs/{address}",
            "ipfsIo": f"https://ipfs.io/ipfs/{address}",
            "cloudflare": f"https://cloudflare-ipfs.com/ipfs/{address}",
            "dweb": f"https://dweb.link/ipfs/{address}",
        }

    def list_addresses(self) -> List[str]:
        """CIDs of every object currently pinned on the account."""
        if not self.connect():
            raise UploadError(
                UploadErrorKind.UNCONFIGURED,
                "Pinata JWT not initialized. Please set PINATA_JWT",
            )

        url = f"{self.config.pinata_api_url.rstrip('/')}{PIN_LIST_PATH}"
        cids: List[str] = []
        offset = 0

        while True:
            try:
                response = self.session.get(
                    url,
                    headers=self._auth_headers(),
                    params={
                        "status": "pinned",
                        "pageLimit": PIN_LIST_PAGE_LIMIT,
                        "pageOffset": offset,
                    },
                    timeout=(self.config.connect_timeout, self.config.download_timeout),
                )
            except requests.exceptions.RequestException as e:
                raise UploadError(UploadErrorKind.TRANSPORT, f"Failed to list pins: {e}", e) from e

            if not response.ok:
                raise UploadError(
                    UploadErrorKind.REMOTE_REJECTED,
                    f"Pinata rejected pin listing with status {response.status_code}",
                    status_code=response.status_code,
                )

            try:
                payload = response.json()
            except ValueError as e:
                raise UploadError(
                    UploadErrorKind.REMOTE_REJECTED,
                    "Pinata returned a non-JSON pin listing",
                    e,
                    status_code=response.status_code,
                ) from e

            rows = (payload.get("rows") if isinstance(payload, dict) else None) or []
            cids.extend(row["ipfs_pin_hash"] for row in rows if row.get("ipfs_pin_hash"))

            if len(rows) < PIN_LIST_PAGE_LIMIT:
                break
            offset += len(rows)

        return cids

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._jwt}"}
