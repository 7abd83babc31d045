"""Merkle Guard - tamper and divergence detection over mutable data sets."""

__version__ = "0.1.0"

# File constants
CONFIG_FILE = ".merkle-guard.json"

from .node import MerkleNode, combine_hashes  # noqa: E402
from .tree import (  # noqa: E402
    InvalidDigestFunctionError,
    MerkleTree,
    MerkleTreeError,
    RebuildStats,
    TreeDiff,
)

__all__ = [
    "CONFIG_FILE",
    "InvalidDigestFunctionError",
    "MerkleNode",
    "MerkleTree",
    "MerkleTreeError",
    "RebuildStats",
    "TreeDiff",
    "__version__",
    "combine_hashes",
]
