"""
Invocation Batch Accumulator - Merkle Tree Implementation

Provides deterministic Merkle tree construction with Keccak-256 hashing,
inclusion proof generation, and reference proof reconstruction.

Conventions (must match the settlement verifier bit for bit):
- Leaves arrive pre-hashed as 32-byte commitments and are used as-is
- Internal nodes are keccak256(left || right) over the raw 64 bytes,
  with no prefix and no sorting of the pair
- The last node of an odd-length layer is paired with itself
  (duplicated, not promoted and not zero-padded)
- Sibling side is implied by the leaf index bits, so proofs are plain
  ordered lists of sibling hashes
"""

from dataclasses import dataclass
from typing import Any, Sequence

from eth_utils import decode_hex, encode_hex, keccak

HASH_SIZE = 32

HashLike = bytes | str


class MerkleTreeError(Exception):
    """Base exception for Merkle tree errors."""

    pass


class InvalidInputError(MerkleTreeError, ValueError):
    """Raised for an empty batch or a malformed hash."""

    pass


class IndexOutOfRangeError(MerkleTreeError, IndexError):
    """Raised when a leaf index lies outside the batch."""

    pass


def to_hash_bytes(value: HashLike) -> bytes:
    """
    Normalise a 32-byte hash given as bytes or hex string.

    Args:
        value: Raw bytes or hex string (``0x`` prefix optional)

    Returns:
        The 32 raw hash bytes

    Raises:
        InvalidInputError: If the value is not valid hex or not 32 bytes
    """
    if isinstance(value, str):
        try:
            value = decode_hex(value)
        except (ValueError, TypeError) as e:
            raise InvalidInputError(f"Invalid hex hash: {value!r}") from e
    elif isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    elif not isinstance(value, bytes):
        raise InvalidInputError(
            f"Hash must be bytes or hex string, got {type(value).__name__}"
        )

    if len(value) != HASH_SIZE:
        raise InvalidInputError(
            f"Hash must be {HASH_SIZE} bytes, got {len(value)}"
        )
    return value


def to_hex(value: HashLike) -> str:
    """Encode a 32-byte hash as a 0x-prefixed lowercase hex string."""
    return encode_hex(to_hash_bytes(value))


def hash_pair(left: HashLike, right: HashLike) -> bytes:
    """
    Compute the hash of an internal node.

    The pair is hashed positionally; swapping the operands yields a
    different parent.

    Args:
        left: Left child hash (32 bytes or hex)
        right: Right child hash (32 bytes or hex)

    Returns:
        keccak256(left || right) as 32 raw bytes
    """
    return keccak(to_hash_bytes(left) + to_hash_bytes(right))


def proof_length(leaf_count: int) -> int:
    """Number of siblings in any proof of a tree with ``leaf_count`` leaves."""
    if leaf_count < 1:
        raise InvalidInputError("Leaf count must be positive")
    return (leaf_count - 1).bit_length()


@dataclass(frozen=True)
class MerkleProof:
    """
    Merkle inclusion proof for a leaf.

    Attributes:
        leaf: Hash of the leaf being proven
        leaf_index: Position of the leaf in the batch
        siblings: Sibling hashes from the leaf layer up to the root
        root: Expected Merkle root
        tree_size: Total number of leaves in the tree
    """

    leaf: bytes
    leaf_index: int
    siblings: tuple[bytes, ...]
    root: bytes
    tree_size: int

    @property
    def leaf_hash(self) -> str:
        return encode_hex(self.leaf)

    @property
    def root_hash(self) -> str:
        return encode_hex(self.root)

    def to_dict(self) -> dict[str, Any]:
        """Serialize proof to dictionary with hex-encoded hashes."""
        return {
            "leaf_hash": self.leaf_hash,
            "leaf_index": self.leaf_index,
            "proof": self.to_compact(),
            "root_hash": self.root_hash,
            "tree_size": self.tree_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MerkleProof":
        """
        Deserialize proof from dictionary.

        Raises:
            InvalidInputError: If a field is missing or malformed
        """
        try:
            return cls(
                leaf=to_hash_bytes(data["leaf_hash"]),
                leaf_index=int(data["leaf_index"]),
                siblings=tuple(to_hash_bytes(h) for h in data["proof"]),
                root=to_hash_bytes(data["root_hash"]),
                tree_size=int(data["tree_size"]),
            )
        except InvalidInputError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInputError(f"Malformed proof data: {e}") from e

    def to_compact(self) -> list[str]:
        """Serialize to the bare ordered list of hex sibling hashes."""
        return [encode_hex(h) for h in self.siblings]


class MerkleTree:
    """
    Immutable Merkle tree over an ordered batch of 32-byte leaves.

    Every layer is retained so that proofs can be read off without
    recomputing any hashes.

    Example:
        >>> tree = MerkleTree.from_leaves([a, b, c])
        >>> tree.get_proof(2) == [c, hash_pair(a, b)]
        True
    """

    __slots__ = ("_layers",)

    def __init__(self, layers: tuple[tuple[bytes, ...], ...]) -> None:
        """
        Initialize Merkle tree (internal use).

        Use from_leaves() to construct trees.
        """
        self._layers = layers

    @classmethod
    def from_leaves(cls, leaves: Sequence[HashLike]) -> "MerkleTree":
        """
        Construct a Merkle tree from pre-hashed leaves.

        Args:
            leaves: Ordered 32-byte leaf hashes (bytes or hex strings)

        Returns:
            Constructed MerkleTree

        Raises:
            InvalidInputError: If leaves is empty or a leaf is malformed
        """
        if not leaves:
            raise InvalidInputError("Cannot create Merkle tree from empty leaves")

        current = tuple(to_hash_bytes(leaf) for leaf in leaves)
        layers = [current]

        while len(current) > 1:
            current = cls._next_layer(current)
            layers.append(current)

        return cls(tuple(layers))

    @staticmethod
    def _next_layer(layer: tuple[bytes, ...]) -> tuple[bytes, ...]:
        parents = []
        for i in range(0, len(layer), 2):
            left = layer[i]
            # Odd tail pairs with itself
            right = layer[i + 1] if i + 1 < len(layer) else left
            parents.append(keccak(left + right))
        return tuple(parents)

    @property
    def root(self) -> bytes:
        """Get the root hash as raw bytes."""
        return self._layers[-1][0]

    @property
    def root_hash(self) -> str:
        """Get the root hash as 0x-prefixed hex."""
        return encode_hex(self.root)

    @property
    def layers(self) -> tuple[tuple[bytes, ...], ...]:
        """All layers, leaves first and root layer last."""
        return self._layers

    @property
    def leaves(self) -> tuple[bytes, ...]:
        return self._layers[0]

    @property
    def leaf_count(self) -> int:
        return len(self._layers[0])

    @property
    def height(self) -> int:
        """Number of layers above the leaves (equals the proof length)."""
        return len(self._layers) - 1

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRangeError(f"Leaf index must be an integer, got {index!r}")
        if index < 0 or index >= self.leaf_count:
            raise IndexOutOfRangeError(
                f"Leaf index {index} out of bounds for {self.leaf_count} leaves"
            )

    def get_leaf(self, index: int) -> bytes:
        """
        Get a leaf hash by index.

        Raises:
            IndexOutOfRangeError: If index out of bounds
        """
        self._check_index(index)
        return self._layers[0][index]

    def get_proof(self, index: int) -> list[bytes]:
        """
        Generate the ordered sibling path for a leaf.

        Args:
            index: Index of the leaf to prove

        Returns:
            Sibling hashes, one per layer below the root

        Raises:
            IndexOutOfRangeError: If index out of bounds
        """
        self._check_index(index)

        proof = []
        for layer in self._layers[:-1]:
            sibling = index ^ 1
            if sibling < len(layer):
                proof.append(layer[sibling])
            else:
                proof.append(layer[index])
            index //= 2

        return proof

    def get_inclusion_proof(self, index: int) -> MerkleProof:
        """
        Generate a self-describing inclusion proof for a leaf.

        Raises:
            IndexOutOfRangeError: If index out of bounds
        """
        siblings = self.get_proof(index)
        return MerkleProof(
            leaf=self._layers[0][index],
            leaf_index=index,
            siblings=tuple(siblings),
            root=self.root,
            tree_size=self.leaf_count,
        )

    def get_all_proofs(self) -> list[MerkleProof]:
        """Generate proofs for all leaves, in leaf order."""
        return [self.get_inclusion_proof(i) for i in range(self.leaf_count)]

    def __len__(self) -> int:
        return self.leaf_count

    def __repr__(self) -> str:
        return f"MerkleTree(leaf_count={self.leaf_count}, root={self.root_hash})"


def compute_root_from_proof(
    leaf: HashLike,
    index: int,
    proof: Sequence[HashLike],
) -> bytes:
    """
    Recompute the root from a leaf, its index and its sibling path.

    At each step the low bit of ``index`` says which side the running
    hash sits on: 0 means left, 1 means right.

    Args:
        leaf: Hash of the leaf
        index: Position of the leaf in the batch
        proof: Ordered sibling hashes

    Returns:
        Computed root hash

    Raises:
        InvalidInputError: If a hash is malformed or index is negative
    """
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise InvalidInputError(f"Invalid leaf index: {index!r}")
    if isinstance(proof, (str, bytes)):
        raise InvalidInputError("Proof must be a sequence of hashes")
    try:
        siblings = list(proof)
    except TypeError as e:
        raise InvalidInputError(
            f"Proof must be a sequence of hashes, got {type(proof).__name__}"
        ) from e

    current = to_hash_bytes(leaf)
    for sibling in siblings:
        if index & 1:
            current = hash_pair(sibling, current)
        else:
            current = hash_pair(current, sibling)
        index >>= 1

    return current


def verify_proof_against_root(
    leaf: HashLike,
    index: int,
    proof: Sequence[HashLike],
    root: HashLike,
) -> bool:
    """
    Verify a proof against a specific root hash.

    Returns:
        True if the proof reconstructs to ``root``; False otherwise,
        including when any input is malformed
    """
    try:
        return compute_root_from_proof(leaf, index, proof) == to_hash_bytes(root)
    except InvalidInputError:
        return False


def verify_proof(proof: MerkleProof) -> bool:
    """Verify a MerkleProof against its own root."""
    return verify_proof_against_root(
        proof.leaf,
        proof.leaf_index,
        proof.siblings,
        proof.root,
    )
