"""
Invocation Batch Accumulator - Metrics Module

Prometheus metrics for the accumulator.

Exports:
- Merkle tree build times and sizes
- Proof generation timings
- Verification outcomes
"""

from accumulator.metrics.accumulator_metrics import (
    AccumulatorMetrics,
    get_accumulator_metrics,
)

__all__ = [
    "AccumulatorMetrics",
    "get_accumulator_metrics",
]
