"""Rich rendering of Merkle tree structure."""

from __future__ import annotations

from rich.text import Text
from rich.tree import Tree

from .node import MerkleNode
from .tree import MerkleTree


def short_hash(value: str, length: int = 12) -> str:
    """Shorten a hex hash for display, eliding the tail."""
    return value if len(value) <= length else f"{value[:length]}…"


def node_label(node: MerkleNode, hash_length: int = 12, duplicate: bool = False) -> Text:
    """Build the label shown for a single node."""
    label = Text()
    label.append(short_hash(node.hash, hash_length), style="cyan")
    if node.is_leaf:
        label.append("  ")
        label.append(repr(node.data), style="green")
    if duplicate:
        label.append("  (duplicate)", style="dim")
    return label


def render_tree(tree: MerkleTree, hash_length: int = 12) -> Tree:
    """
    Render a Merkle tree as a rich Tree in pre-order.

    Args:
        tree: The tree to render
        hash_length: Number of hash characters to show per node

    Returns:
        A rich Tree ready for ``Console.print``
    """
    with tree.lock:
        root = tree.root
        if root is None:
            return Tree(Text("(empty tree)", style="dim"))

        rendered = Tree(node_label(root, hash_length))
        _add_children(rendered, root, hash_length)
        return rendered


def _add_children(branch: Tree, node: MerkleNode, hash_length: int) -> None:
    if node.is_leaf:
        return

    left = branch.add(node_label(node.left, hash_length))
    _add_children(left, node.left, hash_length)

    if node.is_duplicated_pair:
        branch.add(node_label(node.right, hash_length, duplicate=True))
        return

    right = branch.add(node_label(node.right, hash_length))
    _add_children(right, node.right, hash_length)
