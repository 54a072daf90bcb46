"""
Prover Adapters

The proving system is opaque to the registry:

    prove(circuit_id, ProverInput) -> ProverResult(proof, public_signals)

public_signals[0] is the root the proof attests to.

Implementations:
- ReferenceProver: in-process, transparent proof (leaf, salt, path). Used
  for local deployments and tests; it hides nothing.
- HttpProver: delegates to a remote proving service.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from core.crypto.commitments import (
    encode_identity_fields,
    identity_commitment,
    leaf_commitment,
)
from core.http.client import HttpClient, HttpError
from core.merkle.accumulator import compute_root_from_path
from core.schemas.canonical import decode_decimal
from core.schemas.errors import (
    CanonicalizationException,
    EncodingError,
    ProverError,
    TransportError,
)
from core.schemas.identity import IdentityFields, StatusTag


logger = logging.getLogger(__name__)

REFERENCE_PROTOCOL = "reference"


@dataclass
class ProverInput:
    """Witness for the identity membership circuit."""
    identity_fields: IdentityFields
    salt: int
    path_siblings: list[int]
    path_directions: list[int]
    claimed_root: int

    def to_circuit_input(self) -> dict[str, Any]:
        """Circuit input with every wide value as a decimal string."""
        national_id, name, birth_date, key = encode_identity_fields(self.identity_fields)
        return {
            "merkle_root": str(self.claimed_root),
            "national_id": str(national_id),
            "name": str(name),
            "birth_date": str(birth_date),
            "key": str(key),
            "salt": str(self.salt),
            "path_elements": [str(s) for s in self.path_siblings],
            "path_indices": list(self.path_directions),
        }


@dataclass
class ProverResult:
    """Proof plus its public signals (root first)."""
    proof: dict[str, Any]
    public_signals: list[int]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def root(self) -> int:
        if not self.public_signals:
            raise ProverError("Prover returned no public signals")
        return self.public_signals[0]


class Prover(ABC):
    """Abstract proving backend."""

    _name: str = "prover"

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def prove(self, circuit_id: str, prover_input: ProverInput) -> ProverResult:
        """
        Produce a proof for the given witness.

        Raises:
            ProverError: If no proof can be produced
            TransportError: If a remote prover is unreachable
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class ReferenceProver(Prover):
    """
    In-process prover emitting a transparent proof.

    Fails like a real circuit would when the witness does not
    reconstruct the claimed root.
    """

    _name = "reference"

    def prove(self, circuit_id: str, prover_input: ProverInput) -> ProverResult:
        try:
            identity = identity_commitment(prover_input.identity_fields)
            leaf = leaf_commitment(identity, prover_input.salt, StatusTag.ACTIVE)
            root = compute_root_from_path(
                leaf, prover_input.path_siblings, prover_input.path_directions
            )
        except (EncodingError, ValueError) as e:
            raise ProverError(f"Invalid witness: {e}", circuit_id=circuit_id) from e

        if root != prover_input.claimed_root:
            raise ProverError(
                "Witness does not satisfy the circuit: path does not reach the claimed root",
                circuit_id=circuit_id,
                details={"claimed_root": str(prover_input.claimed_root)},
            )

        proof = {
            "protocol": REFERENCE_PROTOCOL,
            "circuit_id": circuit_id,
            "leaf": str(leaf),
            "salt": str(prover_input.salt),
            "path_elements": [str(s) for s in prover_input.path_siblings],
            "path_indices": list(prover_input.path_directions),
        }
        logger.debug(f"Reference proof generated for circuit {circuit_id}")
        return ProverResult(proof=proof, public_signals=[root, identity])


def verify_reference_proof(proof: dict[str, Any], public_signals: Sequence[int]) -> bool:
    """
    Check a reference proof against its public signals.

    The leaf must be the ACTIVE leaf of public_signals[1] under the
    disclosed salt, and its path must reconstruct public_signals[0]. A
    revoked leaf or another member's path therefore never verifies.
    """
    if proof.get("protocol") != REFERENCE_PROTOCOL or len(public_signals) < 2:
        return False
    root, identity = public_signals[0], public_signals[1]
    try:
        leaf = decode_decimal(proof["leaf"])
        salt = decode_decimal(proof["salt"])
        if leaf != leaf_commitment(identity, salt, StatusTag.ACTIVE):
            return False
        siblings = [decode_decimal(s) for s in proof["path_elements"]]
        directions = [int(d) for d in proof["path_indices"]]
        return compute_root_from_path(leaf, siblings, directions) == root
    except (KeyError, TypeError, ValueError, CanonicalizationException, EncodingError):
        return False


class HttpProver(Prover):
    """
    Remote proving service client.

    POST {url} with {"circuit_id", "input"}; expects
    {"proof": {...}, "public_signals": ["<decimal>", ...]}.
    """

    _name = "http"

    def __init__(
        self,
        url: str,
        *,
        client: Optional[HttpClient] = None,
        api_key: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        self.url = url
        self.client = client or HttpClient(timeout=timeout)
        self.api_key = api_key
        self.timeout = timeout

    def prove(self, circuit_id: str, prover_input: ProverInput) -> ProverResult:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
        try:
            response = self.client.post(
                self.url,
                headers=headers,
                json={"circuit_id": circuit_id, "input": prover_input.to_circuit_input()},
                timeout=self.timeout,
            )
        except HttpError as e:
            raise TransportError(f"Prover unreachable: {e}", endpoint=self.url) from e

        if response.is_server_error:
            raise TransportError(
                f"Prover returned HTTP {response.status_code}",
                endpoint=self.url,
                details={"status_code": response.status_code},
            )
        if not response.ok:
            raise ProverError(
                f"Prover refused input: HTTP {response.status_code}: {response.text[:200]}",
                circuit_id=circuit_id,
            )

        try:
            body = response.json()
            return ProverResult(
                proof=body["proof"],
                public_signals=[decode_decimal(s) for s in body["public_signals"]],
            )
        except (ValueError, KeyError, TypeError, CanonicalizationException) as e:
            raise ProverError(
                f"Malformed prover response: {e}", circuit_id=circuit_id
            ) from e


__all__ = [
    "REFERENCE_PROTOCOL",
    "ProverInput",
    "ProverResult",
    "Prover",
    "ReferenceProver",
    "HttpProver",
    "verify_reference_proof",
]
