"""
Ledger Adapters

The ledger is the authoritative remote state the registry reconciles
against. It holds:
- the last-published accumulator root
- the approved-commitment set (commitment -> approved / blocked)
- optionally, the content id of the snapshot matching the root

Publish and proof submission can fail in two distinct ways:
- LedgerRejectedError: the authority refused the call
- TransportError: the outcome is unknown (network failure, 5xx)

Re-publishing the current root must be a no-op.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Sequence

from adapters.prover import verify_reference_proof
from core.http.client import HttpClient, HttpError, HttpResponse
from core.schemas.canonical import decode_decimal, dumps_canonical, loads_canonical
from core.schemas.errors import (
    CanonicalizationException,
    LedgerRejectedError,
    StoreCorruptedError,
    TransportError,
)
from core.schemas.identity import utc_now
from core.store.record_store import atomic_write_text


logger = logging.getLogger(__name__)

# Root reported before anything has been published
EMPTY_ROOT: int = 0


class LedgerAdapter(ABC):
    """Abstract ledger authority."""

    _name: str = "ledger"

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def current_root(self) -> int:
        """Last-published root (EMPTY_ROOT if none)."""

    @abstractmethod
    def is_approved(self, commitment: int) -> bool:
        """Whether a commitment is in the approved set (blocked -> False)."""

    @abstractmethod
    def current_snapshot_id(self) -> Optional[str]:
        """Content id of the snapshot recorded with the current root."""

    @abstractmethod
    def is_valid_root(self, root: int) -> bool:
        """Whether root is the current root or was published earlier."""

    @abstractmethod
    def publish_root(
        self,
        root: int,
        approved: Sequence[int],
        snapshot_id: Optional[str] = None,
        revoked: Sequence[int] = (),
    ) -> str:
        """
        Publish a new root with its approved and blocked commitments.

        Returns:
            Transaction reference

        Raises:
            LedgerRejectedError: If the authority refuses the publish
            TransportError: If the outcome is unknown
        """

    @abstractmethod
    def submit_proof(
        self,
        proof: dict[str, Any],
        public_signals: Sequence[int],
        identity_commitment: int,
    ) -> str:
        """
        Submit a membership proof for on-ledger verification.

        Returns:
            Transaction reference of the accepted verification
        """

    def info(self) -> dict[str, Any]:
        return {"backend": self.name}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class LocalLedger(LedgerAdapter):
    """
    In-process ledger authority.

    Optionally persisted to a JSON file so that separate CLI invocations
    see the same authority. Thread-safe.
    """

    _name = "local"

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._root: int = EMPTY_ROOT
        self._snapshot_id: Optional[str] = None
        self._approved: dict[int, bool] = {}
        self._known_roots: set[int] = set()
        self._history: list[dict[str, Any]] = []
        self._verifications: list[dict[str, Any]] = []
        self._seq: int = 0
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = loads_canonical(self.path.read_bytes())
            self._root = decode_decimal(data["root"])
            self._snapshot_id = data.get("snapshot_id")
            self._approved = {
                decode_decimal(c): bool(flag) for c, flag in data["approved"].items()
            }
            self._history = list(data.get("history", []))
            self._verifications = list(data.get("verifications", []))
            self._known_roots = {decode_decimal(h["root"]) for h in self._history}
            self._seq = int(data.get("seq", len(self._history)))
        except (CanonicalizationException, KeyError, TypeError, AttributeError) as e:
            raise StoreCorruptedError(str(self.path), str(e)) from e

    def _save(self) -> None:
        if self.path is None:
            return
        payload = {
            "root": str(self._root),
            "snapshot_id": self._snapshot_id,
            "approved": {str(c): flag for c, flag in self._approved.items()},
            "history": self._history,
            "verifications": self._verifications,
            "seq": self._seq,
        }
        atomic_write_text(self.path, dumps_canonical(payload))

    def _next_tx(self, kind: str, body: dict[str, Any]) -> str:
        self._seq += 1
        digest = hashlib.sha256(
            dumps_canonical({"kind": kind, "seq": self._seq, "body": body}).encode("utf-8")
        ).hexdigest()
        return "0x" + digest

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_root(self) -> int:
        with self._lock:
            return self._root

    def is_approved(self, commitment: int) -> bool:
        with self._lock:
            return self._approved.get(commitment, False)

    def current_snapshot_id(self) -> Optional[str]:
        with self._lock:
            return self._snapshot_id

    def is_valid_root(self, root: int) -> bool:
        with self._lock:
            return root != EMPTY_ROOT and (root == self._root or root in self._known_roots)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def publish_root(
        self,
        root: int,
        approved: Sequence[int],
        snapshot_id: Optional[str] = None,
        revoked: Sequence[int] = (),
    ) -> str:
        with self._lock:
            if self._history and root == self._root:
                last = self._history[-1]
                logger.info(f"Root {root} already current; publish is a no-op")
                return last["tx_ref"]

            overlap = set(approved) & set(revoked)
            if overlap:
                raise LedgerRejectedError(
                    "A commitment cannot be both approved and blocked",
                    operation="publish_root",
                    details={"count": len(overlap)},
                )

            tx_ref = self._next_tx("publish_root", {
                "root": str(root),
                "snapshot_id": snapshot_id,
            })
            for commitment in approved:
                self._approved[commitment] = True
            for commitment in revoked:
                self._approved[commitment] = False
            self._root = root
            self._snapshot_id = snapshot_id
            self._known_roots.add(root)
            self._history.append({
                "root": str(root),
                "snapshot_id": snapshot_id,
                "tx_ref": tx_ref,
                "approved_count": len(approved),
                "revoked_count": len(revoked),
                "published_at": utc_now().isoformat(),
            })
            self._save()
            logger.info(f"Published root {root} (tx {tx_ref[:18]}...)")
            return tx_ref

    def submit_proof(
        self,
        proof: dict[str, Any],
        public_signals: Sequence[int],
        identity_commitment: int,
    ) -> str:
        with self._lock:
            if not public_signals:
                raise LedgerRejectedError("Proof has no public signals", operation="submit_proof")
            claimed_root = public_signals[0]
            if claimed_root != self._root:
                reason = "stale root" if claimed_root in self._known_roots else "unknown root"
                raise LedgerRejectedError(
                    f"Proof attests to a {reason}",
                    operation="submit_proof",
                    details={"claimed_root": str(claimed_root)},
                )
            if not self._approved.get(identity_commitment, False):
                raise LedgerRejectedError(
                    "Identity commitment is not approved",
                    operation="submit_proof",
                )
            if len(public_signals) > 1 and public_signals[1] != identity_commitment:
                raise LedgerRejectedError(
                    "Proof is not bound to the submitted identity commitment",
                    operation="submit_proof",
                )
            if not verify_reference_proof(proof, public_signals):
                raise LedgerRejectedError("Invalid proof", operation="submit_proof")

            tx_ref = self._next_tx("submit_proof", {
                "root": str(claimed_root),
                "identity_commitment": str(identity_commitment),
            })
            self._verifications.append({
                "root": str(claimed_root),
                "identity_commitment": str(identity_commitment),
                "tx_ref": tx_ref,
                "verified_at": utc_now().isoformat(),
            })
            self._save()
            return tx_ref

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def root_history(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(h) for h in self._history]

    def info(self) -> dict[str, Any]:
        with self._lock:
            return {
                "backend": self.name,
                "path": str(self.path) if self.path else None,
                "root": str(self._root),
                "snapshot_id": self._snapshot_id,
                "approved": sum(1 for flag in self._approved.values() if flag),
                "blocked": sum(1 for flag in self._approved.values() if not flag),
                "publications": len(self._history),
                "verifications": len(self._verifications),
            }


class HttpLedger(LedgerAdapter):
    """
    REST gateway in front of the ledger contract.

    Endpoints (relative to base_url):
        GET  /root                  -> {"root": "<decimal>"}
        GET  /approved/{commitment} -> {"approved": bool}
        GET  /snapshot              -> {"snapshot_id": str | null}
        GET  /valid-root/{root}     -> {"valid": bool}
        POST /publish               -> {"tx_ref": str}
        POST /proofs                -> {"tx_ref": str}
        GET  /info                  -> {...}

    Reads retry with backoff; mutating calls are sent exactly once.
    """

    _name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[HttpClient] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or HttpClient(timeout=timeout)
        self.api_key = api_key

    def _headers(self) -> Optional[dict[str, str]]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return None

    def _call(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Any] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        operation = f"{method} {path}"
        try:
            if method == "GET":
                response = self.client.get(url, headers=self._headers())
            else:
                response = self.client.post(url, headers=self._headers(), json=json)
        except HttpError as e:
            raise TransportError(f"Ledger unreachable: {e}", endpoint=url) from e

        self._raise_for_response(response, operation, url)
        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Ledger returned a non-JSON body for {operation}", endpoint=url
            ) from e
        if not isinstance(body, dict):
            raise TransportError(f"Ledger returned an unexpected body for {operation}", endpoint=url)
        return body

    @staticmethod
    def _raise_for_response(response: HttpResponse, operation: str, url: str) -> None:
        if response.ok:
            return
        if response.is_server_error:
            raise TransportError(
                f"Ledger returned HTTP {response.status_code} for {operation}",
                endpoint=url,
                details={"status_code": response.status_code},
            )
        message = response.text
        try:
            body = response.json()
            if isinstance(body, dict):
                message = body.get("error") or body.get("message") or message
        except ValueError:
            pass
        raise LedgerRejectedError(
            str(message),
            operation=operation,
            details={"status_code": response.status_code},
        )

    def current_root(self) -> int:
        body = self._call("GET", "/root")
        return self._decimal(body.get("root"), "/root")

    def is_approved(self, commitment: int) -> bool:
        body = self._call("GET", f"/approved/{commitment}")
        return bool(body.get("approved", False))

    def current_snapshot_id(self) -> Optional[str]:
        body = self._call("GET", "/snapshot")
        return body.get("snapshot_id") or None

    def is_valid_root(self, root: int) -> bool:
        body = self._call("GET", f"/valid-root/{root}")
        return bool(body.get("valid", False))

    def publish_root(
        self,
        root: int,
        approved: Sequence[int],
        snapshot_id: Optional[str] = None,
        revoked: Sequence[int] = (),
    ) -> str:
        body = self._call("POST", "/publish", json={
            "root": str(root),
            "approved": [str(c) for c in approved],
            "revoked": [str(c) for c in revoked],
            "snapshot_id": snapshot_id,
        })
        return str(body.get("tx_ref", ""))

    def submit_proof(
        self,
        proof: dict[str, Any],
        public_signals: Sequence[int],
        identity_commitment: int,
    ) -> str:
        body = self._call("POST", "/proofs", json={
            "proof": proof,
            "public_signals": [str(s) for s in public_signals],
            "identity_commitment": str(identity_commitment),
        })
        return str(body.get("tx_ref", ""))

    def info(self) -> dict[str, Any]:
        body = self._call("GET", "/info")
        return {"backend": self.name, "base_url": self.base_url, **body}

    def _decimal(self, value: Any, path: str) -> int:
        try:
            return decode_decimal(value)
        except CanonicalizationException as e:
            raise TransportError(
                f"Ledger returned a malformed value for {path}: {e.message}",
                endpoint=f"{self.base_url}{path}",
            ) from e


__all__ = [
    "EMPTY_ROOT",
    "LedgerAdapter",
    "LocalLedger",
    "HttpLedger",
]
