"""
Invocation Batch Accumulator - Cryptographic Utilities

Provides Merkle tree construction, proof generation, and verification.
"""

from accumulator.crypto.merkle import (
    IndexOutOfRangeError,
    InvalidInputError,
    MerkleProof,
    MerkleTree,
    MerkleTreeError,
    compute_root_from_proof,
    hash_pair,
    verify_proof,
    verify_proof_against_root,
)

__all__ = [
    "IndexOutOfRangeError",
    "InvalidInputError",
    "MerkleProof",
    "MerkleTree",
    "MerkleTreeError",
    "compute_root_from_proof",
    "hash_pair",
    "verify_proof",
    "verify_proof_against_root",
]
