"""
Invocation Batch Accumulator - Services Package

Provides batch commitment building on top of the Merkle accumulator.
"""

from accumulator.services.commitment import (
    BatchCommitment,
    CommitmentError,
    CommitmentService,
)

__all__ = [
    "BatchCommitment",
    "CommitmentError",
    "CommitmentService",
]
