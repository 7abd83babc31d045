"""Hash-bearing nodes of the Merkle tree."""

from __future__ import annotations

import hashlib
import weakref
from collections.abc import Callable
from typing import Any

DigestFunction = Callable[[Any], str]


def combine_hashes(left_hash: str, right_hash: str) -> str:
    """Compute an internal node hash from its children's hash strings.

    The two hex strings are concatenated without a separator, UTF-8 encoded,
    hashed with SHA-256 and rendered as uppercase hex.
    """
    return hashlib.sha256(f"{left_hash}{right_hash}".encode()).hexdigest().upper()


class MerkleNode:
    """A leaf wrapping one data item, or an internal node wrapping two children.

    Children are owned by their parent. The ``parent`` link is a weak,
    non-owning handle used only to walk ancestors when a leaf changes.
    """

    __slots__ = ("data", "hash", "is_leaf", "left", "right", "_digest_fn", "_parent_ref", "__weakref__")

    def __init__(
        self,
        *,
        is_leaf: bool,
        data: Any = None,
        left: MerkleNode | None = None,
        right: MerkleNode | None = None,
        digest_fn: DigestFunction | None = None,
    ):
        self.is_leaf = is_leaf
        self.data = data
        self.left = left
        self.right = right
        self._digest_fn = digest_fn
        self._parent_ref: weakref.ref[MerkleNode] | None = None
        self.hash = ""

    @classmethod
    def leaf(cls, data: Any, digest_fn: DigestFunction) -> MerkleNode:
        """Create a leaf node. Errors raised by ``digest_fn`` propagate."""
        node = cls(is_leaf=True, data=data, digest_fn=digest_fn)
        node.compute_hash()
        return node

    @classmethod
    def internal(cls, left: MerkleNode, right: MerkleNode) -> MerkleNode:
        """Create an internal node and adopt both children.

        ``left`` and ``right`` may be the same instance (an unpaired trailing
        node duplicated onto itself).
        """
        node = cls(is_leaf=False, left=left, right=right)
        left.parent = node
        right.parent = node
        node.compute_hash()
        return node

    @property
    def parent(self) -> MerkleNode | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, node: MerkleNode | None) -> None:
        self._parent_ref = weakref.ref(node) if node is not None else None

    @property
    def is_duplicated_pair(self) -> bool:
        """True for an internal node whose right child is its left child."""
        return not self.is_leaf and self.left is self.right

    def compute_hash(self) -> str:
        """Recompute this node's hash from its data or its children's current hashes.

        Does not recurse; propagating a change toward the root is the caller's job.
        """
        if self.is_leaf:
            self.hash = self._digest_fn(self.data)
        else:
            self.hash = combine_hashes(self.left.hash, self.right.hash)
        return self.hash

    def expected_hash(self) -> str:
        """Return what ``compute_hash`` would produce, without storing it."""
        if self.is_leaf:
            return self._digest_fn(self.data)
        return combine_hashes(self.left.hash, self.right.hash)

    def replace_data(self, data: Any) -> str:
        """Swap a leaf's payload and refresh its hash.

        The new hash is computed before anything is assigned, so a failing
        digest function leaves the leaf untouched.
        """
        if not self.is_leaf:
            raise ValueError("Internal nodes carry no data")
        new_hash = self._digest_fn(data)
        self.data = data
        self.hash = new_hash
        return new_hash

    def ancestors(self) -> list[MerkleNode]:
        """Parent chain from the immediate parent up to the root."""
        chain = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        return chain

    def __repr__(self) -> str:
        if self.is_leaf:
            return f"MerkleNode(leaf, data={self.data!r}, hash={self.hash[:12]}...)"
        return f"MerkleNode(internal, hash={self.hash[:12]}...)"
