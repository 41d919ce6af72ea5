"""
Invocation Batch Accumulator API - Commitment Endpoints

- POST /commitments: Build root and proofs for a finalized batch
- POST /commitments/proof: Build the proof for a single leaf
- POST /verify: Check an inclusion proof against a root
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from accumulator.core.config import settings
from accumulator.crypto.merkle import IndexOutOfRangeError, InvalidInputError
from accumulator.services.commitment import CommitmentError, CommitmentService

logger = structlog.get_logger(__name__)
router = APIRouter()

_service = CommitmentService()

HASH_PATTERN = r"^(0x)?[0-9a-fA-F]{64}$"


# Request/Response Models
class CommitmentRequest(BaseModel):
    """Request to commit a finalized batch."""

    leaves: list[str] = Field(
        ...,
        max_length=settings.MAX_BATCH_SIZE,
        description="Ordered 32-byte leaf hashes, hex-encoded",
    )
    batch_id: UUID | None = Field(
        default=None,
        description="Optional batch identifier (generated if omitted)",
    )


class ProofRequest(BaseModel):
    """Request for a single inclusion proof."""

    leaves: list[str] = Field(
        ...,
        max_length=settings.MAX_BATCH_SIZE,
        description="Ordered leaf hashes of the batch",
    )
    index: int = Field(..., description="Position of the leaf to prove")


class ProofResponse(BaseModel):
    """Inclusion proof for one leaf."""

    leaf_hash: str
    leaf_index: int
    proof: list[str]
    root_hash: str
    tree_size: int


class CommitmentResponse(BaseModel):
    """Root and proofs for a batch."""

    batch_id: UUID
    root_hash: str
    leaf_count: int
    height: int
    proofs: list[ProofResponse]


class VerifyRequest(BaseModel):
    """Request to verify an inclusion proof."""

    leaf: str = Field(..., pattern=HASH_PATTERN, description="Leaf hash")
    index: int = Field(..., ge=0, description="Position of the leaf in its batch")
    proof: list[str] = Field(..., description="Ordered sibling hashes")
    root: str = Field(..., pattern=HASH_PATTERN, description="Claimed Merkle root")


class VerifyResponse(BaseModel):
    """Verification result."""

    verified: bool
    message: str


# Endpoints
# Tree building is CPU-bound, so these handlers are sync and run in the threadpool
@router.post(
    "/commitments",
    response_model=CommitmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Commit batch",
    responses={
        400: {"description": "Empty batch or malformed leaf"},
        422: {"description": "More leaves than MAX_BATCH_SIZE"},
        500: {"description": "Commitment failed its self-check"},
    },
)
def create_commitment(request: CommitmentRequest) -> CommitmentResponse:
    """Build the Merkle root and every inclusion proof for a batch."""
    try:
        commitment = _service.build_commitment(
            request.leaves,
            batch_id=request.batch_id,
        )
    except InvalidInputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except CommitmentError as e:
        logger.error("Commitment self-check failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    return CommitmentResponse(
        batch_id=commitment.batch_id,
        root_hash=commitment.root_hash,
        leaf_count=commitment.leaf_count,
        height=commitment.height,
        proofs=[ProofResponse(**p.to_dict()) for p in commitment.proofs],
    )


@router.post(
    "/commitments/proof",
    response_model=ProofResponse,
    summary="Get inclusion proof",
    responses={
        400: {"description": "Empty batch or malformed leaf"},
        422: {"description": "More leaves than MAX_BATCH_SIZE"},
        404: {"description": "Leaf index outside the batch"},
    },
)
def create_proof(request: ProofRequest) -> ProofResponse:
    """Build the inclusion proof for the leaf at ``index``."""
    try:
        proof = _service.build_proof(request.leaves, request.index)
    except InvalidInputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except IndexOutOfRangeError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return ProofResponse(**proof.to_dict())


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify inclusion proof",
)
async def verify_inclusion(request: VerifyRequest) -> VerifyResponse:
    """Recompute the root from leaf, index and proof and compare."""
    verified = _service.verify(
        request.leaf,
        request.index,
        request.proof,
        request.root,
    )

    logger.info(
        "Verification requested",
        leaf_index=request.index,
        proof_length=len(request.proof),
        verified=verified,
    )

    return VerifyResponse(
        verified=verified,
        message="Verification successful" if verified else "Merkle proof verification failed",
    )
