"""Merkle tree over a mutable ordered collection of data items."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from threading import RLock
from typing import TYPE_CHECKING, Any

from .node import DigestFunction, MerkleNode, combine_hashes

if TYPE_CHECKING:
    from .config import TreeConfig

logger = logging.getLogger(__name__)


class MerkleTreeError(Exception):
    """Base exception for Merkle tree errors."""

    pass


class InvalidDigestFunctionError(MerkleTreeError):
    """Raised when a tree is constructed without a usable digest function."""

    pass


@dataclass
class RebuildStats:
    """Statistics from the most recent full rebuild."""

    leaf_count: int = 0
    internal_nodes: int = 0
    duplicated_nodes: int = 0  # Unpaired trailing nodes paired with themselves
    height: int = 0

    @property
    def total_nodes(self) -> int:
        return self.leaf_count + self.internal_nodes


@dataclass
class TreeDiff:
    """Result of comparing two Merkle trees."""

    added: list[Any] = field(default_factory=list)
    removed: list[Any] = field(default_factory=list)
    order_changed: bool = False

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes."""
        return bool(self.added or self.removed or self.order_changed)

    @property
    def total_changes(self) -> int:
        """Total number of added and removed items."""
        return len(self.added) + len(self.removed)


class MerkleTree:
    """Binary hash tree rebuilt from its ordered leaves after each add or remove.

    Every public operation runs under one tree-wide lock, including the visitor
    callback of ``traverse_tree``. The lock is reentrant, so a visitor may call
    read operations on the same tree; mutating it from a visitor raises
    ``MerkleTreeError``.
    """

    def __init__(self, digest_fn: DigestFunction):
        if digest_fn is None or not callable(digest_fn):
            raise InvalidDigestFunctionError("A callable digest function is required")

        self._digest_fn = digest_fn
        self._leaves: list[MerkleNode] = []
        self._root: MerkleNode | None = None
        self._committed_hash: str | None = None
        self._lock = RLock()
        self._traversals = 0
        self.build_stats: RebuildStats | None = None

    @classmethod
    def from_items(cls, items: Iterable[Any], digest_fn: DigestFunction) -> MerkleTree:
        """Build a tree holding ``items`` in order, with a single rebuild."""
        tree = cls(digest_fn)
        tree.add_many(items)
        return tree

    @classmethod
    def from_config(cls, config: TreeConfig) -> MerkleTree:
        """Create an empty tree using the configured digest algorithm."""
        from .digests import get_digest_function

        return cls(get_digest_function(config.digest_algorithm, config.encoding))

    # Mutations

    def add_data(self, item: Any) -> None:
        """Append an item as a new leaf and rebuild."""
        with self._lock:
            self._ensure_mutable()
            leaf = MerkleNode.leaf(item, self._digest_fn)
            self._leaves.append(leaf)
            self._rebuild()

    def add_many(self, items: Iterable[Any]) -> None:
        """Append several items with one rebuild.

        All leaves are hashed before any is appended; if the digest function
        raises for one item, none are added.
        """
        with self._lock:
            self._ensure_mutable()
            new_leaves = [MerkleNode.leaf(item, self._digest_fn) for item in items]
            if not new_leaves:
                return
            self._leaves.extend(new_leaves)
            self._rebuild()

    def remove_data(self, item: Any) -> None:
        """Remove the first leaf equal to ``item`` and rebuild. Absent items are ignored."""
        with self._lock:
            self._ensure_mutable()
            index = self._find_leaf(item)
            if index is None:
                logger.debug("remove_data: %r not present, tree unchanged", item)
                return
            del self._leaves[index]
            self._rebuild()

    def update_data(self, old_item: Any, new_item: Any) -> None:
        """Replace the first leaf equal to ``old_item`` and repair hashes up to the root.

        Only the path from the updated leaf to the root is recomputed; the tree
        shape is unchanged. Absent items are ignored.
        """
        with self._lock:
            self._ensure_mutable()
            index = self._find_leaf(old_item)
            if index is None:
                logger.debug("update_data: %r not present, tree unchanged", old_item)
                return

            leaf = self._leaves[index]
            leaf.replace_data(new_item)

            ancestors = leaf.ancestors()
            for node in ancestors:
                node.compute_hash()

            self._committed_hash = self._root.hash if self._root is not None else None
            logger.debug(
                "update_data: leaf %d rehashed with %d ancestor(s), root=%s",
                index,
                len(ancestors),
                self._committed_hash,
            )

    # Queries

    @property
    def lock(self) -> RLock:
        """The tree-wide lock; hold it to make several reads consistent."""
        return self._lock

    @property
    def root(self) -> MerkleNode | None:
        with self._lock:
            return self._root

    @property
    def committed_hash(self) -> str | None:
        """Root hash captured at the end of the last rebuild or update."""
        with self._lock:
            return self._committed_hash

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return self._root is None

    @property
    def height(self) -> int:
        """Number of internal levels above the leaves (0 for one leaf or none)."""
        with self._lock:
            height = 0
            node = self._root
            while node is not None and not node.is_leaf:
                height += 1
                node = node.left
            return height

    def __len__(self) -> int:
        with self._lock:
            return len(self._leaves)

    def __contains__(self, item: Any) -> bool:
        with self._lock:
            return self._find_leaf(item) is not None

    def items(self) -> list[Any]:
        """Snapshot of the stored items in leaf order."""
        with self._lock:
            return [leaf.data for leaf in self._leaves]

    def leaf_hashes(self) -> list[str]:
        """Snapshot of the leaf hashes in leaf order."""
        with self._lock:
            return [leaf.hash for leaf in self._leaves]

    def compute_root_hash(self) -> str:
        """Return the root hash, or an empty string for an empty tree."""
        with self._lock:
            if self._root is None:
                return ""
            return self._root.hash

    def verify_integrity(self) -> bool:
        """Compare the current root hash with the committed snapshot.

        This is a cheap read; it catches a root hash that changed outside the
        tree API. Use ``audit`` to recompute every node.
        """
        with self._lock:
            current = self.compute_root_hash()
            intact = current == (self._committed_hash or "")
            if not intact:
                logger.warning(
                    "Integrity check failed: root=%s committed=%s", current, self._committed_hash
                )
            return intact

    def audit(self) -> list[MerkleNode]:
        """Recompute every node hash bottom-up without modifying the tree.

        Returns the nodes whose stored hash differs from what their data or
        children imply, children before their parents. Digest function
        errors propagate.
        """
        with self._lock:
            mismatched: list[MerkleNode] = []
            if self._root is not None:
                self._audit_node(self._root, mismatched, {})
            if mismatched:
                logger.warning("Audit found %d inconsistent node(s)", len(mismatched))
            return mismatched

    def traverse_tree(self, visit: Callable[[MerkleNode], None]) -> None:
        """Apply ``visit`` to every node in pre-order (node, left subtree, right subtree).

        A duplicated trailing child is visited once per reference. The visitor
        may read the tree but not mutate it.
        """
        if visit is None:
            raise TypeError("visit must be a callable, not None")

        with self._lock:
            if self._root is None:
                return
            self._traversals += 1
            try:
                _traverse_node(self._root, visit)
            finally:
                self._traversals -= 1

    def iter_nodes(self) -> list[MerkleNode]:
        """Pre-order snapshot of all nodes."""
        nodes: list[MerkleNode] = []
        self.traverse_tree(nodes.append)
        return nodes

    def compare(self, other: MerkleTree) -> TreeDiff:
        """
        Compare this tree (old) with another tree (new) to find changes.

        Args:
            other: The newer tree

        Returns:
            TreeDiff with the items only in ``other`` (added), the items only
            in this tree (removed), and whether shared leaves were reordered
        """
        diff = TreeDiff()

        with self._lock:
            old_leaves = [(leaf.hash, leaf.data) for leaf in self._leaves]
        with other._lock:
            new_leaves = [(leaf.hash, leaf.data) for leaf in other._leaves]

        # Roots alone are not enough: [a, b, c] and [a, b, c, c] share a root
        if [h for h, _ in old_leaves] == [h for h, _ in new_leaves]:
            return diff

        old_counts = Counter(h for h, _ in old_leaves)
        new_counts = Counter(h for h, _ in new_leaves)

        surplus_new = new_counts - old_counts
        for leaf_hash, data in new_leaves:
            if surplus_new[leaf_hash] > 0:
                diff.added.append(data)
                surplus_new[leaf_hash] -= 1

        surplus_old = old_counts - new_counts
        for leaf_hash, data in old_leaves:
            if surplus_old[leaf_hash] > 0:
                diff.removed.append(data)
                surplus_old[leaf_hash] -= 1

        shared = old_counts & new_counts
        diff.order_changed = _shared_order(old_leaves, shared) != _shared_order(new_leaves, shared)

        return diff

    # Internals

    def _ensure_mutable(self) -> None:
        if self._traversals:
            raise MerkleTreeError("Cannot modify the tree from inside traverse_tree")

    def _find_leaf(self, item: Any) -> int | None:
        for index, leaf in enumerate(self._leaves):
            if leaf.data == item:
                return index
        return None

    def _rebuild(self) -> None:
        """Rebuild every internal level from the current leaves."""
        for leaf in self._leaves:
            leaf.parent = None

        if not self._leaves:
            self._root = None
            self._committed_hash = None
            self.build_stats = RebuildStats()
            logger.debug("Rebuilt empty tree")
            return

        stats = RebuildStats(leaf_count=len(self._leaves))
        level = list(self._leaves)

        while len(level) > 1:
            next_level = []
            for i in range(0, len(level), 2):
                left = level[i]
                if i + 1 < len(level):
                    right = level[i + 1]
                else:
                    # Duplicate the unpaired trailing node
                    right = left
                    stats.duplicated_nodes += 1
                next_level.append(MerkleNode.internal(left, right))
            stats.internal_nodes += len(next_level)
            stats.height += 1
            level = next_level

        self._root = level[0]
        self._committed_hash = self._root.hash
        self.build_stats = stats
        logger.debug(
            "Rebuilt tree: %d leaves, %d internal nodes, height %d, root=%s",
            stats.leaf_count,
            stats.internal_nodes,
            stats.height,
            self._committed_hash,
        )

    def _audit_node(
        self, node: MerkleNode, mismatched: list[MerkleNode], expected: dict[int, str]
    ) -> str:
        """Return the hash ``node`` should carry, recording mismatches.

        ``expected`` caches results by node identity so a duplicated child is
        checked once.
        """
        cached = expected.get(id(node))
        if cached is not None:
            return cached

        if node.is_leaf:
            should_be = node.expected_hash()
        else:
            left = self._audit_node(node.left, mismatched, expected)
            right = self._audit_node(node.right, mismatched, expected)
            should_be = combine_hashes(left, right)

        if node.hash != should_be:
            mismatched.append(node)
        expected[id(node)] = should_be
        return should_be


def _traverse_node(node: MerkleNode, visit: Callable[[MerkleNode], None]) -> None:
    """Recursively visit a node and its subtrees depth-first."""
    visit(node)
    if not node.is_leaf:
        _traverse_node(node.left, visit)
        _traverse_node(node.right, visit)


def _shared_order(leaves: list[tuple[str, Any]], shared: Counter) -> list[str]:
    """Leaf hashes in order, restricted to the multiset ``shared``."""
    remaining = Counter(shared)
    order = []
    for leaf_hash, _ in leaves:
        if remaining[leaf_hash] > 0:
            order.append(leaf_hash)
            remaining[leaf_hash] -= 1
    return order
