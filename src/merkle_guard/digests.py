"""Leaf digest functions producing 256-bit uppercase hex strings."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Callable
from typing import Any

from .node import DigestFunction

DIGEST_HEX_LENGTH = 64

_DIGEST_PATTERN = re.compile(r"^[0-9A-F]{64}$")

# Hash constructors for each supported 256-bit algorithm
DIGEST_ALGORITHMS: dict[str, Callable[[], Any]] = {
    "sha256": hashlib.sha256,
    "sha3_256": hashlib.sha3_256,
    "blake2s": hashlib.blake2s,
    "blake2b-256": lambda: hashlib.blake2b(digest_size=32),
}


def _to_bytes(data: Any, encoding: str) -> bytes:
    if isinstance(data, str):
        return data.encode(encoding)
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Cannot hash value of type {type(data).__name__}; expected str or bytes")


def sha256_hex(data: Any) -> str:
    """SHA-256 of a str (UTF-8) or bytes value, as uppercase hex."""
    return hashlib.sha256(_to_bytes(data, "utf-8")).hexdigest().upper()


def get_digest_function(name: str, encoding: str = "utf-8") -> DigestFunction:
    """
    Factory function to get a leaf digest function by algorithm name.

    Args:
        name: One of the keys of DIGEST_ALGORITHMS
        encoding: Text encoding applied to str items before hashing

    Returns:
        A callable mapping an item to a 64-character uppercase hex digest

    Raises:
        ValueError: If the algorithm is not supported
    """
    if name == "sha256" and encoding == "utf-8":
        return sha256_hex

    constructor = DIGEST_ALGORITHMS.get(name)
    if constructor is None:
        raise ValueError(
            f"Digest algorithm '{name}' not supported. "
            f"Choose one of: {', '.join(sorted(DIGEST_ALGORITHMS))}."
        )

    def digest(data: Any) -> str:
        h = constructor()
        h.update(_to_bytes(data, encoding))
        return h.hexdigest().upper()

    digest.__name__ = f"{name.replace('-', '_')}_hex"
    return digest


def is_digest_string(value: Any) -> bool:
    """Check that a value is a 64-character uppercase hex digest."""
    return isinstance(value, str) and bool(_DIGEST_PATTERN.match(value))
