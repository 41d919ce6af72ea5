"""
Invocation Batch Accumulator API v1

Endpoints:
- POST /commitments - Build root and proofs for a batch
- POST /commitments/proof - Build a single inclusion proof
- POST /verify - Verify inclusion proof
"""

from fastapi import APIRouter

from accumulator.api.v1.endpoints import commitments

router = APIRouter()
router.include_router(commitments.router, tags=["Commitments"])
