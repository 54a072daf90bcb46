"""
Snapshot Store Adapters

Content-addressed durable storage for serialized snapshots:

    put(blob) -> content_id
    get(content_id) -> blob   (bit-exact round trip)

A stored blob is immutable; a new snapshot gets a new content id.

Implementations:
- InMemorySnapshotStore: process-local, for tests and ephemeral runs
- DirectorySnapshotStore: one file per blob, id = sha256 hex of the blob
- GatewaySnapshotStore: IPFS pinning service upload, multi-gateway read
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Sequence

from core.http.client import HttpClient, HttpError
from core.schemas.errors import SnapshotFormatError, TransportError
from core.schemas.identity import utc_now


logger = logging.getLogger(__name__)


def content_id_for(blob: bytes) -> str:
    """Content id used by the local stores: sha256 hex of the blob."""
    return hashlib.sha256(blob).hexdigest()


class SnapshotStore(ABC):
    """Abstract content-addressed blob store."""

    _name: str = "snapshot_store"

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def put(self, blob: bytes) -> str:
        """Store a blob and return its content id."""

    @abstractmethod
    def get(self, content_id: str) -> bytes:
        """
        Fetch a blob by content id.

        Raises:
            TransportError: If the blob cannot be retrieved
            SnapshotFormatError: If retrieved bytes fail the content check
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class InMemorySnapshotStore(SnapshotStore):
    """Blobs held in a dict."""

    _name = "memory"

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, blob: bytes) -> str:
        cid = content_id_for(blob)
        with self._lock:
            self._blobs.setdefault(cid, bytes(blob))
        return cid

    def get(self, content_id: str) -> bytes:
        with self._lock:
            blob = self._blobs.get(content_id)
        if blob is None:
            raise TransportError(f"Snapshot {content_id} not found", endpoint="memory")
        return blob

    def __len__(self) -> int:
        return len(self._blobs)


class DirectorySnapshotStore(SnapshotStore):
    """
    One file per blob under a directory.

    The content id is verified on every read, so a tampered or
    truncated file is detected instead of being deserialized.
    """

    _name = "directory"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, content_id: str) -> Path:
        if not content_id or not all(c in "0123456789abcdef" for c in content_id):
            raise SnapshotFormatError(f"Invalid content id: {content_id!r}")
        return self.directory / f"{content_id}.json"

    def put(self, blob: bytes) -> str:
        cid = content_id_for(blob)
        path = self._path(cid)
        if not path.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_bytes(blob)
            tmp.replace(path)
            logger.info(f"Stored snapshot {cid} ({len(blob)} bytes)")
        return cid

    def get(self, content_id: str) -> bytes:
        path = self._path(content_id)
        try:
            blob = path.read_bytes()
        except FileNotFoundError as e:
            raise TransportError(
                f"Snapshot {content_id} not found", endpoint=str(self.directory)
            ) from e
        actual = content_id_for(blob)
        if actual != content_id:
            raise SnapshotFormatError(
                f"Snapshot {content_id} failed its content check",
                details={"actual": actual},
            )
        return blob


class GatewaySnapshotStore(SnapshotStore):
    """
    IPFS pinning-service store.

    Upload goes to the pinning API with either a bearer token (JWT) or
    an API key pair. Retrieval tries each gateway in order with a
    per-gateway timeout; only when all fail is a TransportError raised.
    """

    _name = "pinata"

    PIN_FILE_PATH = "/pinning/pinFileToIPFS"

    def __init__(
        self,
        *,
        gateways: Sequence[str],
        api_url: str = "https://api.pinata.cloud",
        jwt: Optional[str] = None,
        api_key: Optional[str] = None,
        secret_api_key: Optional[str] = None,
        group_id: Optional[str] = None,
        gateway_timeout: float = 10.0,
        client: Optional[HttpClient] = None,
    ) -> None:
        if not gateways:
            raise ValueError("At least one gateway is required")
        self.gateways = [g if g.endswith("/") else g + "/" for g in gateways]
        self.api_url = api_url.rstrip("/")
        self.jwt = jwt
        self.api_key = api_key
        self.secret_api_key = secret_api_key
        self.group_id = group_id
        self.gateway_timeout = gateway_timeout
        self.client = client or HttpClient(timeout=gateway_timeout)

        if not self.has_credentials:
            logger.warning("Pinning credentials not found; snapshot upload will fail")

    @property
    def has_credentials(self) -> bool:
        return bool(self.jwt or (self.api_key and self.secret_api_key))

    def _auth_headers(self) -> dict[str, str]:
        if self.jwt:
            return {"Authorization": f"Bearer {self.jwt}"}
        if self.api_key and self.secret_api_key:
            return {
                "pinata_api_key": self.api_key,
                "pinata_secret_api_key": self.secret_api_key,
            }
        raise TransportError("Pinning credentials not configured", endpoint=self.api_url)

    def put(self, blob: bytes) -> str:
        url = f"{self.api_url}{self.PIN_FILE_PATH}"
        file_name = f"idreg-snapshot-{int(utc_now().timestamp() * 1000)}.json"
        metadata: dict[str, Any] = {
            "name": file_name,
            "keyvalues": {"type": "idreg-snapshot", "timestamp": utc_now().isoformat()},
        }
        options: dict[str, Any] = {"cidVersion": 0}
        if self.group_id:
            options["groupId"] = self.group_id

        try:
            response = self.client.post(
                url,
                headers=self._auth_headers(),
                files={"file": (file_name, blob, "application/json")},
                data={
                    "pinataMetadata": json.dumps(metadata),
                    "pinataOptions": json.dumps(options),
                },
            )
        except HttpError as e:
            raise TransportError(f"Snapshot upload failed: {e}", endpoint=url) from e

        if not response.ok:
            raise TransportError(
                f"Snapshot upload failed: HTTP {response.status_code}: {response.text[:200]}",
                endpoint=url,
                details={"status_code": response.status_code},
            )
        try:
            cid = response.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError("Pinning service returned no content id", endpoint=url) from e

        logger.info(f"Uploaded snapshot to IPFS: {cid}")
        return str(cid)

    def get(self, content_id: str) -> bytes:
        failures: list[str] = []
        for gateway in self.gateways:
            url = f"{gateway}{content_id}"
            try:
                response = self.client.get(
                    url,
                    headers={"Accept": "application/json"},
                    timeout=self.gateway_timeout,
                    retries=0,
                )
            except HttpError as e:
                logger.warning(f"Failed to retrieve from {url}: {e}")
                failures.append(f"{gateway}: {e}")
                continue
            if response.ok:
                return response.content
            logger.warning(f"Failed to retrieve from {url}: HTTP {response.status_code}")
            failures.append(f"{gateway}: HTTP {response.status_code}")

        raise TransportError(
            f"All gateways failed for snapshot {content_id}",
            details={"failures": failures},
        )


__all__ = [
    "content_id_for",
    "SnapshotStore",
    "InMemorySnapshotStore",
    "DirectorySnapshotStore",
    "GatewaySnapshotStore",
]
