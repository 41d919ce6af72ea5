"""
Pytest configuration and shared fixtures for accumulator tests.
"""

import pytest
from fastapi.testclient import TestClient

from accumulator.services.commitment import CommitmentService


def make_leaf(n: int) -> bytes:
    """Deterministic 32-byte leaf for position ``n``."""
    return n.to_bytes(32, "big")


@pytest.fixture
def leaf_a() -> bytes:
    return bytes([0xAA]) * 32


@pytest.fixture
def leaf_b() -> bytes:
    return bytes([0xBB]) * 32


@pytest.fixture
def leaf_c() -> bytes:
    return bytes([0xCC]) * 32


@pytest.fixture
def leaf_d() -> bytes:
    return bytes([0xDD]) * 32


@pytest.fixture
def batch_256() -> list[bytes]:
    """A full batch at the target settlement size."""
    return [make_leaf(i) for i in range(256)]


@pytest.fixture
def commitment_service() -> CommitmentService:
    """Create a commitment service with proof self-checks enabled."""
    return CommitmentService(verify_on_build=True)


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the API."""
    from accumulator.main import create_application

    return TestClient(create_application())
