"""
Invocation Batch Accumulator - Metrics

Prometheus metrics for batch commitment building.

Metrics Categories:
- Merkle tree building
- Proof generation
- Proof verification
- Service info
"""

from prometheus_client import Counter, Histogram, Info

import structlog

logger = structlog.get_logger(__name__)


class AccumulatorMetrics:
    """
    Centralized metrics for the accumulator.

    Provides visibility into:
    - Tree build counts, sizes and timings
    - Proof generation timings
    - Verification outcomes
    """

    def __init__(self) -> None:
        """Initialize all accumulator metrics."""
        self._init_merkle_metrics()
        self._init_commitment_metrics()
        self._init_info_metrics()

    def _init_merkle_metrics(self) -> None:
        """Initialize Merkle tree metrics."""
        self.merkle_build_duration = Histogram(
            "accumulator_merkle_build_duration_seconds",
            "Merkle tree build time",
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
        )

        self.merkle_tree_size = Histogram(
            "accumulator_merkle_tree_size",
            "Number of leaves in Merkle tree",
            buckets=[1, 2, 8, 32, 64, 128, 256, 1024, 4096],
        )

        self.merkle_proof_generation = Histogram(
            "accumulator_merkle_proof_duration_seconds",
            "Merkle proof generation time",
            buckets=[0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005],
        )

        self.merkle_verifications = Counter(
            "accumulator_merkle_verifications_total",
            "Merkle proof verifications",
            ["result"],
        )

    def _init_commitment_metrics(self) -> None:
        """Initialize batch commitment metrics."""
        self.commitments_built = Counter(
            "accumulator_commitments_total",
            "Batch commitments built",
            ["status"],
        )

        self.oversized_batches = Counter(
            "accumulator_oversized_batches_total",
            "Batches larger than the configured target size",
        )

    def _init_info_metrics(self) -> None:
        """Initialize info metrics."""
        self.service_info = Info(
            "accumulator_service",
            "Accumulator service information",
        )

    # Convenience methods

    def record_merkle_build(
        self,
        duration: float,
        tree_size: int,
    ) -> None:
        """Record Merkle tree build."""
        self.merkle_build_duration.observe(duration)
        self.merkle_tree_size.observe(tree_size)

    def record_proof_generation(self, duration: float) -> None:
        """Record Merkle proof generation."""
        self.merkle_proof_generation.observe(duration)

    def record_merkle_verification(self, valid: bool) -> None:
        """Record Merkle proof verification."""
        result = "valid" if valid else "invalid"
        self.merkle_verifications.labels(result=result).inc()

    def record_commitment(self, success: bool) -> None:
        """Record a batch commitment attempt."""
        status = "success" if success else "failed"
        self.commitments_built.labels(status=status).inc()

    def record_oversized_batch(self) -> None:
        self.oversized_batches.inc()

    def set_service_info(
        self,
        version: str,
        environment: str,
        hash_function: str = "keccak256",
    ) -> None:
        """Set service info labels."""
        self.service_info.info({
            "version": version,
            "environment": environment,
            "hash_function": hash_function,
        })


# Singleton instance
_accumulator_metrics: AccumulatorMetrics | None = None


def get_accumulator_metrics() -> AccumulatorMetrics:
    """Get global accumulator metrics instance."""
    global _accumulator_metrics
    if _accumulator_metrics is None:
        _accumulator_metrics = AccumulatorMetrics()
        logger.debug("Accumulator metrics registered")
    return _accumulator_metrics
