"""
Module 04 - Ledger and Prover Adapter Unit Tests
Tests for adapters/ledger.py and adapters/prover.py

Tests:
- LocalLedger publish semantics, persistence and proof checks
- HttpLedger status-code mapping (5xx -> transport, 4xx -> rejected)
- ReferenceProver witness checking
- HttpProver status-code mapping and response parsing
"""
import json
from unittest.mock import Mock

import pytest

from adapters.ledger import EMPTY_ROOT, HttpLedger, LocalLedger
from adapters.prover import HttpProver, ProverInput, ReferenceProver, verify_reference_proof
from core.crypto.commitments import identity_commitment, leaf_commitment
from core.http.client import HttpError, HttpResponse
from core.merkle.accumulator import Accumulator
from core.schemas.errors import (
    LedgerRejectedError,
    ProverError,
    StoreCorruptedError,
    TransportError,
)
from core.schemas.identity import StatusTag

from fixtures.common import alice_fields, bob_fields, carol_fields


SALT = 987654321


def response(status_code: int, body=None) -> HttpResponse:
    if body is None:
        content = b""
    elif isinstance(body, bytes):
        content = body
    else:
        content = json.dumps(body).encode()
    return HttpResponse(status_code=status_code, content=content)


def alice_witness(depth: int = 4) -> tuple[Accumulator, ProverInput]:
    """Accumulator holding alice at leaf 1, plus her prover input."""
    fields = alice_fields()
    bob = bob_fields()
    leaves = [
        leaf_commitment(identity_commitment(bob), 1, StatusTag.ACTIVE),
        leaf_commitment(identity_commitment(fields), SALT, StatusTag.ACTIVE),
    ]
    acc = Accumulator.build(leaves, depth)
    path = acc.proof(1)
    return acc, ProverInput(
        identity_fields=fields,
        salt=SALT,
        path_siblings=list(path.siblings),
        path_directions=list(path.directions),
        claimed_root=acc.root(),
    )


# =============================================================================
# LocalLedger
# =============================================================================

class TestLocalLedgerPublish:
    """Tests for LocalLedger.publish_root()."""

    def test_initial_state(self):
        ledger = LocalLedger()
        assert ledger.current_root() == EMPTY_ROOT
        assert ledger.current_snapshot_id() is None
        assert not ledger.is_approved(1)

    def test_publish(self):
        ledger = LocalLedger()
        tx_ref = ledger.publish_root(42, [1, 2], "cid-1", revoked=[3])

        assert tx_ref.startswith("0x") and len(tx_ref) == 66
        assert ledger.current_root() == 42
        assert ledger.current_snapshot_id() == "cid-1"
        assert ledger.is_approved(1) and ledger.is_approved(2)
        assert not ledger.is_approved(3)

    def test_republish_current_root_is_noop(self):
        ledger = LocalLedger()
        first = ledger.publish_root(42, [1], "cid-1")
        second = ledger.publish_root(42, [1], "cid-2")

        assert second == first
        assert len(ledger.root_history()) == 1
        assert ledger.current_snapshot_id() == "cid-1"

    def test_revoked_blocks_previously_approved(self):
        ledger = LocalLedger()
        ledger.publish_root(42, [1, 2])
        ledger.publish_root(43, [2], revoked=[1])

        assert not ledger.is_approved(1)
        assert ledger.is_approved(2)
        assert ledger.info()["blocked"] == 1

    def test_overlap_rejected(self):
        ledger = LocalLedger()
        with pytest.raises(LedgerRejectedError):
            ledger.publish_root(42, [1, 2], revoked=[2])
        assert ledger.current_root() == EMPTY_ROOT

    def test_persisted_across_instances(self, tmp_path):
        path = tmp_path / "ledger.json"
        LocalLedger(path).publish_root(2**200, [2**199], "cid-1")

        reopened = LocalLedger(path)
        assert reopened.current_root() == 2**200
        assert reopened.is_approved(2**199)
        assert reopened.current_snapshot_id() == "cid-1"
        assert len(reopened.root_history()) == 1

    def test_root_history_lookup(self):
        ledger = LocalLedger()
        assert not ledger.is_valid_root(EMPTY_ROOT)

        ledger.publish_root(42, [1])
        ledger.publish_root(43, [1, 2])

        assert ledger.is_valid_root(43)
        assert ledger.is_valid_root(42)
        assert not ledger.is_valid_root(44)
        assert not ledger.is_valid_root(EMPTY_ROOT)

    def test_root_history_survives_reopen(self, tmp_path):
        path = tmp_path / "ledger.json"
        ledger = LocalLedger(path)
        ledger.publish_root(42, [1])
        ledger.publish_root(43, [1, 2])

        reopened = LocalLedger(path)
        assert reopened.is_valid_root(42)
        assert reopened.is_valid_root(43)

    def test_corrupted_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text('{"root": "1"}')
        with pytest.raises(StoreCorruptedError):
            LocalLedger(path)


class TestLocalLedgerProofs:
    """Tests for LocalLedger.submit_proof()."""

    def setup_ledger(self):
        acc, prover_input = alice_witness()
        commitment = identity_commitment(alice_fields())
        ledger = LocalLedger()
        ledger.publish_root(acc.root(), [commitment, identity_commitment(bob_fields())])
        result = ReferenceProver().prove("identity_merkle", prover_input)
        return ledger, result, commitment

    def test_valid_proof_accepted(self):
        ledger, result, commitment = self.setup_ledger()
        tx_ref = ledger.submit_proof(result.proof, result.public_signals, commitment)
        assert tx_ref.startswith("0x")
        assert ledger.info()["verifications"] == 1

    def test_stale_root(self):
        ledger, result, commitment = self.setup_ledger()
        ledger.publish_root(result.root + 1, [commitment])
        with pytest.raises(LedgerRejectedError, match="stale root"):
            ledger.submit_proof(result.proof, result.public_signals, commitment)

    def test_unknown_root(self):
        ledger, result, commitment = self.setup_ledger()
        signals = [123, *result.public_signals[1:]]
        with pytest.raises(LedgerRejectedError, match="unknown root"):
            ledger.submit_proof(result.proof, signals, commitment)

    def test_commitment_not_approved(self):
        ledger, result, commitment = self.setup_ledger()
        with pytest.raises(LedgerRejectedError, match="not approved"):
            ledger.submit_proof(result.proof, result.public_signals, 999)

    def test_proof_bound_to_other_commitment(self):
        ledger, result, _ = self.setup_ledger()
        with pytest.raises(LedgerRejectedError, match="not bound"):
            ledger.submit_proof(
                result.proof, result.public_signals, identity_commitment(bob_fields())
            )

    def test_tampered_proof(self):
        ledger, result, commitment = self.setup_ledger()
        proof = {**result.proof, "leaf": "1"}
        with pytest.raises(LedgerRejectedError, match="Invalid proof"):
            ledger.submit_proof(proof, result.public_signals, commitment)

    def test_no_public_signals(self):
        ledger, result, commitment = self.setup_ledger()
        with pytest.raises(LedgerRejectedError):
            ledger.submit_proof(result.proof, [], commitment)


    def test_revoked_leaf_path_replayed_for_other_identity(self):
        alice, bob, carol = (
            identity_commitment(f) for f in (alice_fields(), bob_fields(), carol_fields())
        )
        leaves = [
            leaf_commitment(alice, SALT, StatusTag.REVOKED),
            leaf_commitment(bob, 2, StatusTag.ACTIVE),
            leaf_commitment(carol, 3, StatusTag.ACTIVE),
        ]
        acc = Accumulator.build(leaves, 4)
        ledger = LocalLedger()
        ledger.publish_root(acc.root(), [bob, carol], revoked=[alice])

        path = acc.proof(0)
        proof = {
            "protocol": "reference",
            "circuit_id": "identity_merkle",
            "leaf": str(leaves[0]),
            "salt": str(SALT),
            "path_elements": [str(s) for s in path.siblings],
            "path_indices": list(path.directions),
        }
        with pytest.raises(LedgerRejectedError, match="Invalid proof"):
            ledger.submit_proof(proof, [acc.root(), carol], carol)

    def test_member_path_replayed_under_other_commitment(self):
        ledger, result, _ = self.setup_ledger()
        bob = identity_commitment(bob_fields())
        with pytest.raises(LedgerRejectedError, match="Invalid proof"):
            ledger.submit_proof(result.proof, [result.root, bob], bob)

# =============================================================================
# HttpLedger
# =============================================================================

class TestHttpLedger:
    """Tests for HttpLedger against a mocked client."""

    def make_ledger(self, client, api_key=None):
        return HttpLedger("https://ledger.example/api/", client=client, api_key=api_key)

    def test_current_root(self):
        client = Mock()
        client.get.return_value = response(200, {"root": str(2**200)})

        assert self.make_ledger(client).current_root() == 2**200
        assert client.get.call_args.args[0] == "https://ledger.example/api/root"

    def test_malformed_root(self):
        client = Mock()
        client.get.return_value = response(200, {"root": 1.5})
        with pytest.raises(TransportError, match="malformed"):
            self.make_ledger(client).current_root()

    def test_snapshot_id_null(self):
        client = Mock()
        client.get.return_value = response(200, {"snapshot_id": None})
        assert self.make_ledger(client).current_snapshot_id() is None

    def test_is_approved(self):
        client = Mock()
        client.get.return_value = response(200, {"approved": True})
        assert self.make_ledger(client).is_approved(7)
        assert client.get.call_args.args[0].endswith("/approved/7")

    def test_publish_payload(self):
        client = Mock()
        client.post.return_value = response(200, {"tx_ref": "0xabc"})

        tx_ref = self.make_ledger(client, api_key="secret").publish_root(
            2**100, [1, 2], "cid-1", revoked=[3]
        )

        assert tx_ref == "0xabc"
        kwargs = client.post.call_args.kwargs
        assert kwargs["json"] == {
            "root": str(2**100),
            "approved": ["1", "2"],
            "revoked": ["3"],
            "snapshot_id": "cid-1",
        }
        assert kwargs["headers"] == {"Authorization": "Bearer secret"}

    def test_is_valid_root(self):
        client = Mock()
        client.get.return_value = response(200, {"valid": True})
        assert self.make_ledger(client).is_valid_root(2**200)
        assert client.get.call_args.args[0].endswith(f"/valid-root/{2**200}")

    def test_submit_proof_payload(self):
        client = Mock()
        client.post.return_value = response(200, {"tx_ref": "0xdef"})
        proof = {"protocol": "reference", "leaf": "5"}

        tx_ref = self.make_ledger(client).submit_proof(proof, [2**200, 7], 7)

        assert tx_ref == "0xdef"
        assert client.post.call_args.args[0] == "https://ledger.example/api/proofs"
        assert client.post.call_args.kwargs["json"] == {
            "proof": proof,
            "public_signals": [str(2**200), "7"],
            "identity_commitment": "7",
        }

    def test_server_error_is_transport(self):
        client = Mock()
        client.post.return_value = response(503, b"unavailable")
        with pytest.raises(TransportError) as exc_info:
            self.make_ledger(client).publish_root(1, [])
        assert exc_info.value.details["status_code"] == 503

    def test_client_error_is_rejection(self):
        client = Mock()
        client.post.return_value = response(403, {"error": "caller is not the owner"})
        with pytest.raises(LedgerRejectedError, match="caller is not the owner") as exc_info:
            self.make_ledger(client).publish_root(1, [])
        assert exc_info.value.details["operation"] == "POST /publish"

    def test_client_error_plain_text(self):
        client = Mock()
        client.post.return_value = response(400, b"bad proof")
        with pytest.raises(LedgerRejectedError, match="bad proof"):
            self.make_ledger(client).submit_proof({}, [1], 2)

    def test_connection_error_is_transport(self):
        client = Mock()
        client.get.side_effect = HttpError("connection refused")
        with pytest.raises(TransportError, match="unreachable"):
            self.make_ledger(client).current_root()

    def test_non_json_body(self):
        client = Mock()
        client.get.return_value = response(200, b"<html>")
        with pytest.raises(TransportError):
            self.make_ledger(client).current_root()


# =============================================================================
# Provers
# =============================================================================

class TestReferenceProver:
    """Tests for ReferenceProver."""

    def test_prove(self):
        acc, prover_input = alice_witness()
        result = ReferenceProver().prove("identity_merkle", prover_input)

        assert result.root == acc.root()
        assert result.public_signals[1] == identity_commitment(alice_fields())
        assert result.proof["circuit_id"] == "identity_merkle"
        assert verify_reference_proof(result.proof, result.public_signals)

    def test_proof_without_salt_or_identity_signal(self):
        _, prover_input = alice_witness()
        result = ReferenceProver().prove("identity_merkle", prover_input)

        unsalted = {k: v for k, v in result.proof.items() if k != "salt"}
        assert not verify_reference_proof(unsalted, result.public_signals)
        assert not verify_reference_proof(result.proof, result.public_signals[:1])

    def test_wrong_salt(self):
        _, prover_input = alice_witness()
        prover_input.salt += 1
        with pytest.raises(ProverError, match="claimed root"):
            ReferenceProver().prove("identity_merkle", prover_input)

    def test_wrong_fields(self):
        _, prover_input = alice_witness()
        prover_input.identity_fields = bob_fields()
        with pytest.raises(ProverError):
            ReferenceProver().prove("identity_merkle", prover_input)

    def test_invalid_direction_bit(self):
        _, prover_input = alice_witness()
        prover_input.path_directions[0] = 2
        with pytest.raises(ProverError, match="Invalid witness"):
            ReferenceProver().prove("identity_merkle", prover_input)

    def test_circuit_input_uses_decimal_strings(self):
        _, prover_input = alice_witness()
        data = prover_input.to_circuit_input()
        assert data["salt"] == str(SALT)
        assert data["national_id"] == "3201012345670001"
        assert all(isinstance(s, str) for s in data["path_elements"])
        assert data["path_indices"] == prover_input.path_directions


class TestHttpProver:
    """Tests for HttpProver against a mocked client."""

    def test_prove(self):
        client = Mock()
        client.post.return_value = response(200, {
            "proof": {"pi_a": ["1"]},
            "public_signals": ["11", "22"],
        })
        _, prover_input = alice_witness()

        result = HttpProver("https://prover.example/prove", client=client).prove(
            "identity_merkle", prover_input
        )

        assert result.root == 11
        assert result.public_signals == [11, 22]
        body = client.post.call_args.kwargs["json"]
        assert body["circuit_id"] == "identity_merkle"
        assert body["input"]["merkle_root"] == str(prover_input.claimed_root)

    def test_client_error_is_prover_error(self):
        client = Mock()
        client.post.return_value = response(422, b"constraint failed")
        _, prover_input = alice_witness()
        with pytest.raises(ProverError, match="422"):
            HttpProver("https://prover.example", client=client).prove("c", prover_input)

    def test_server_error_is_transport(self):
        client = Mock()
        client.post.return_value = response(502)
        _, prover_input = alice_witness()
        with pytest.raises(TransportError):
            HttpProver("https://prover.example", client=client).prove("c", prover_input)

    def test_connection_error_is_transport(self):
        client = Mock()
        client.post.side_effect = HttpError("timeout")
        _, prover_input = alice_witness()
        with pytest.raises(TransportError):
            HttpProver("https://prover.example", client=client).prove("c", prover_input)

    def test_malformed_response(self):
        client = Mock()
        client.post.return_value = response(200, {"proof": {}})
        _, prover_input = alice_witness()
        with pytest.raises(ProverError, match="Malformed"):
            HttpProver("https://prover.example", client=client).prove("c", prover_input)
