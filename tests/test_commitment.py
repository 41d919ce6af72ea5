"""
Unit tests for the batch commitment service.
"""

from unittest.mock import patch
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from accumulator.crypto.merkle import (
    IndexOutOfRangeError,
    InvalidInputError,
    MerkleTree,
    verify_proof,
    verify_proof_against_root,
)
from accumulator.services.commitment import (
    BatchCommitment,
    CommitmentError,
    CommitmentService,
)


def sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestBuildCommitment:
    """Tests for CommitmentService.build_commitment."""

    def test_root_matches_tree(
        self, commitment_service: CommitmentService, batch_256: list[bytes]
    ) -> None:
        commitment = commitment_service.build_commitment(batch_256)

        assert commitment.root_hash == MerkleTree.from_leaves(batch_256).root_hash
        assert commitment.leaf_count == 256
        assert commitment.height == 8

    def test_one_proof_per_leaf(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes, leaf_c: bytes
    ) -> None:
        commitment = commitment_service.build_commitment([leaf_a, leaf_b, leaf_c])

        assert len(commitment.proofs) == 3
        for i, proof in enumerate(commitment.proofs):
            assert proof.leaf_index == i
            assert verify_proof(proof)

    def test_uses_given_batch_id(
        self, commitment_service: CommitmentService, leaf_a: bytes
    ) -> None:
        batch_id = uuid4()
        commitment = commitment_service.build_commitment([leaf_a], batch_id=batch_id)

        assert commitment.batch_id == batch_id

    def test_generates_batch_id(
        self, commitment_service: CommitmentService, leaf_a: bytes
    ) -> None:
        first = commitment_service.build_commitment([leaf_a])
        second = commitment_service.build_commitment([leaf_a])

        assert first.batch_id != second.batch_id
        assert first.root_hash == second.root_hash

    def test_empty_batch_raises(self, commitment_service: CommitmentService) -> None:
        failed_before = sample("accumulator_commitments_total", {"status": "failed"})

        with pytest.raises(InvalidInputError):
            commitment_service.build_commitment([])

        failed_after = sample("accumulator_commitments_total", {"status": "failed"})
        assert failed_after == failed_before + 1

    def test_malformed_leaf_raises(
        self, commitment_service: CommitmentService, leaf_a: bytes
    ) -> None:
        with pytest.raises(InvalidInputError):
            commitment_service.build_commitment([leaf_a, "0x1234"])

    def test_self_check_failure_raises(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes
    ) -> None:
        """Test that a proof failing its self-check aborts the commitment."""
        with patch(
            "accumulator.services.commitment.verify_proof",
            return_value=False,
        ):
            with pytest.raises(CommitmentError, match="leaf 0"):
                commitment_service.build_commitment([leaf_a, leaf_b])

    def test_self_check_can_be_disabled(self, leaf_a: bytes, leaf_b: bytes) -> None:
        service = CommitmentService(verify_on_build=False)

        with patch("accumulator.services.commitment.verify_proof") as mock_verify:
            commitment = service.build_commitment([leaf_a, leaf_b])

        mock_verify.assert_not_called()
        assert commitment.leaf_count == 2

    def test_records_metrics(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes
    ) -> None:
        success_before = sample("accumulator_commitments_total", {"status": "success"})
        builds_before = sample("accumulator_merkle_build_duration_seconds_count")

        commitment_service.build_commitment([leaf_a, leaf_b])

        assert sample("accumulator_commitments_total", {"status": "success"}) == success_before + 1
        assert sample("accumulator_merkle_build_duration_seconds_count") == builds_before + 1

    def test_oversized_batch_is_allowed(
        self, commitment_service: CommitmentService
    ) -> None:
        """Test that exceeding the target size is reported, not rejected."""
        leaves = [i.to_bytes(32, "big") for i in range(5)]
        before = sample("accumulator_oversized_batches_total")

        with patch("accumulator.services.commitment.settings") as mock_settings:
            mock_settings.TARGET_BATCH_SIZE = 4
            commitment = commitment_service.build_commitment(leaves)

        assert commitment.leaf_count == 5
        assert sample("accumulator_oversized_batches_total") == before + 1


class TestBatchCommitment:
    """Tests for BatchCommitment."""

    def test_get_proof(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes, leaf_c: bytes
    ) -> None:
        commitment = commitment_service.build_commitment([leaf_a, leaf_b, leaf_c])

        assert commitment.get_proof(2).leaf == leaf_c

    @pytest.mark.parametrize("index", [3, -1, True])
    def test_get_proof_out_of_range(
        self,
        commitment_service: CommitmentService,
        leaf_a: bytes,
        leaf_b: bytes,
        leaf_c: bytes,
        index: object,
    ) -> None:
        commitment = commitment_service.build_commitment([leaf_a, leaf_b, leaf_c])

        with pytest.raises(IndexOutOfRangeError):
            commitment.get_proof(index)

    def test_to_dict(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes
    ) -> None:
        """Test serialization."""
        commitment = commitment_service.build_commitment([leaf_a, leaf_b])
        data = commitment.to_dict()

        assert data["batch_id"] == str(commitment.batch_id)
        assert data["root_hash"] == commitment.root_hash
        assert data["leaf_count"] == 2
        assert data["height"] == 1
        assert data["proofs"][0]["proof"] == ["0x" + leaf_b.hex()]
        assert data["proofs"][1]["proof"] == ["0x" + leaf_a.hex()]
        assert "created_at" in data

    def test_is_frozen(
        self, commitment_service: CommitmentService, leaf_a: bytes
    ) -> None:
        commitment = commitment_service.build_commitment([leaf_a])

        with pytest.raises(AttributeError):
            commitment.proofs = ()

        assert isinstance(commitment, BatchCommitment)


class TestBuildProof:
    """Tests for single-proof generation."""

    def test_build_proof(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes, leaf_c: bytes, leaf_d: bytes
    ) -> None:
        leaves = [leaf_a, leaf_b, leaf_c, leaf_d]
        proof = commitment_service.build_proof(leaves, 2)

        assert list(proof.siblings) == MerkleTree.from_leaves(leaves).get_proof(2)
        assert verify_proof_against_root(leaf_c, 2, proof.siblings, proof.root)

    def test_build_proof_out_of_range(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes
    ) -> None:
        with pytest.raises(IndexOutOfRangeError):
            commitment_service.build_proof([leaf_a, leaf_b], 2)


class TestVerify:
    """Tests for CommitmentService.verify."""

    def test_verify_valid_and_invalid(
        self, commitment_service: CommitmentService, leaf_a: bytes, leaf_b: bytes
    ) -> None:
        tree = MerkleTree.from_leaves([leaf_a, leaf_b])
        valid_before = sample("accumulator_merkle_verifications_total", {"result": "valid"})
        invalid_before = sample("accumulator_merkle_verifications_total", {"result": "invalid"})

        assert commitment_service.verify(leaf_a, 0, tree.get_proof(0), tree.root)
        assert not commitment_service.verify(leaf_a, 1, tree.get_proof(0), tree.root)

        assert sample("accumulator_merkle_verifications_total", {"result": "valid"}) == valid_before + 1
        assert sample("accumulator_merkle_verifications_total", {"result": "invalid"}) == invalid_before + 1
