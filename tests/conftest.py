"""Shared test fixtures for merkle-guard."""

import hashlib
from pathlib import Path

import pytest
from click.testing import CliRunner

from merkle_guard.digests import sha256_hex
from merkle_guard.tree import MerkleTree


def sha256_upper(text: str) -> str:
    """Reference SHA-256 of a string as uppercase hex."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest().upper()


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def empty_tree() -> MerkleTree:
    """A tree with no leaves using the default SHA-256 digest."""
    return MerkleTree(sha256_hex)


@pytest.fixture
def populated_tree() -> MerkleTree:
    """A tree holding five items (odd count, exercises duplication)."""
    return MerkleTree.from_items(["a", "b", "c", "d", "e"], sha256_hex)


def write_items(path: Path, items: list[str]) -> Path:
    """Write items to a file, one per line."""
    path.write_text("\n".join(items) + "\n")
    return path
