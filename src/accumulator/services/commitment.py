"""
Invocation Batch Accumulator - Batch Commitment Service

Turns a finalized batch of leaf commitments into the artifacts the
settlement side needs:
1. Build the Merkle tree over the ordered leaves
2. Self-check every inclusion proof against the root
3. Hand back the root (for on-chain submission) and per-leaf proofs
   (for providers and requesters)
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence
from uuid import UUID, uuid4

import structlog

from accumulator.core.config import settings
from accumulator.crypto.merkle import (
    HashLike,
    IndexOutOfRangeError,
    InvalidInputError,
    MerkleProof,
    MerkleTree,
    verify_proof,
    verify_proof_against_root,
)
from accumulator.metrics import get_accumulator_metrics

logger = structlog.get_logger(__name__)


class CommitmentError(Exception):
    """Raised when a built commitment fails its own consistency check."""

    pass


@dataclass(frozen=True)
class BatchCommitment:
    """Root and proofs for one settled batch."""

    batch_id: UUID
    tree: MerkleTree
    proofs: tuple[MerkleProof, ...]
    build_duration_seconds: float
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def root_hash(self) -> str:
        return self.tree.root_hash

    @property
    def leaf_count(self) -> int:
        return self.tree.leaf_count

    @property
    def height(self) -> int:
        return self.tree.height

    def get_proof(self, index: int) -> MerkleProof:
        """
        Get the stored proof for a leaf.

        Raises:
            IndexOutOfRangeError: If index out of bounds
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRangeError(f"Leaf index must be an integer, got {index!r}")
        if index < 0 or index >= len(self.proofs):
            raise IndexOutOfRangeError(
                f"Leaf index {index} out of bounds for {len(self.proofs)} leaves"
            )
        return self.proofs[index]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "batch_id": str(self.batch_id),
            "root_hash": self.root_hash,
            "leaf_count": self.leaf_count,
            "height": self.height,
            "proofs": [p.to_dict() for p in self.proofs],
            "created_at": self.created_at.isoformat(),
            "build_duration_seconds": round(self.build_duration_seconds, 6),
        }


class CommitmentService:
    """
    Builds batch commitments.

    Stateless apart from process-wide metrics; one instance may be shared
    across threads, and every call builds its own tree.
    """

    def __init__(self, verify_on_build: bool | None = None) -> None:
        """
        Initialize commitment service.

        Args:
            verify_on_build: Self-check proofs after building
                (defaults to settings.VERIFY_PROOFS_ON_BUILD)
        """
        if verify_on_build is None:
            verify_on_build = settings.VERIFY_PROOFS_ON_BUILD
        self._verify_on_build = verify_on_build
        self._metrics = get_accumulator_metrics()

    def build_tree(self, leaves: Sequence[HashLike]) -> MerkleTree:
        """
        Build a Merkle tree and record build metrics.

        Raises:
            InvalidInputError: If leaves is empty or malformed
        """
        started = time.perf_counter()
        tree = MerkleTree.from_leaves(leaves)
        duration = time.perf_counter() - started

        self._metrics.record_merkle_build(duration, tree.leaf_count)
        if tree.leaf_count > settings.TARGET_BATCH_SIZE:
            self._metrics.record_oversized_batch()
            logger.warning(
                "Batch exceeds target size",
                leaf_count=tree.leaf_count,
                target=settings.TARGET_BATCH_SIZE,
            )
        return tree

    def build_commitment(
        self,
        leaves: Sequence[HashLike],
        batch_id: UUID | None = None,
    ) -> BatchCommitment:
        """
        Build the commitment for a finalized batch.

        Args:
            leaves: Ordered 32-byte leaf commitments
            batch_id: Identifier for the batch (generated if omitted)

        Returns:
            BatchCommitment with root and one proof per leaf

        Raises:
            InvalidInputError: If leaves is empty or malformed
            CommitmentError: If a generated proof does not verify
        """
        batch_id = batch_id or uuid4()
        started = time.perf_counter()

        try:
            tree = self.build_tree(leaves)
        except InvalidInputError as e:
            self._metrics.record_commitment(success=False)
            logger.warning(
                "Rejected batch",
                batch_id=str(batch_id),
                error=str(e),
            )
            raise

        proofs = tuple(tree.get_all_proofs())

        if self._verify_on_build:
            for proof in proofs:
                if not verify_proof(proof):
                    self._metrics.record_commitment(success=False)
                    logger.error(
                        "Generated proof failed verification",
                        batch_id=str(batch_id),
                        leaf_index=proof.leaf_index,
                        root=tree.root_hash,
                    )
                    raise CommitmentError(
                        f"Proof for leaf {proof.leaf_index} does not reconstruct root"
                    )

        duration = time.perf_counter() - started
        self._metrics.record_commitment(success=True)

        logger.info(
            "Built batch commitment",
            batch_id=str(batch_id),
            leaf_count=tree.leaf_count,
            height=tree.height,
            root=tree.root_hash[:18] + "...",
            duration_seconds=round(duration, 6),
        )

        return BatchCommitment(
            batch_id=batch_id,
            tree=tree,
            proofs=proofs,
            build_duration_seconds=duration,
        )

    def build_proof(self, leaves: Sequence[HashLike], index: int) -> MerkleProof:
        """
        Rebuild the tree for a batch and return the proof for one leaf.

        Raises:
            InvalidInputError: If leaves is empty or malformed
            IndexOutOfRangeError: If index out of bounds
        """
        tree = self.build_tree(leaves)

        started = time.perf_counter()
        proof = tree.get_inclusion_proof(index)
        self._metrics.record_proof_generation(time.perf_counter() - started)

        logger.debug(
            "Generated inclusion proof",
            leaf_index=index,
            leaf_count=tree.leaf_count,
            root=tree.root_hash[:18] + "...",
        )
        return proof

    def verify(
        self,
        leaf: HashLike,
        index: int,
        proof: Sequence[HashLike],
        root: HashLike,
    ) -> bool:
        """Check a proof against a root and record the outcome."""
        valid = verify_proof_against_root(leaf, index, proof, root)
        self._metrics.record_merkle_verification(valid)
        return valid
