"""
xdeploy — hashing utilities

Purpose
- Provide deterministic digests used across the pipeline: SHA-256 for payload
  identity and Keccak-256 for everything the factory reproduces on-chain.

Functional requirements
- Digest helpers are pure and accept raw bytes only; callers encode first.
- ``keccak256_words`` packs 32-byte words exactly like ``abi.encodePacked``.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from eth_utils import keccak

from xdeploy.constants import WORD_LENGTH

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "keccak256",
    "keccak256_words",
    "sha256_bytes",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def keccak256(data: bytes) -> bytes:
    """Return the 32-byte Keccak-256 digest used by the EVM."""

    return bytes(keccak(primitive=data))


def keccak256_words(words: Iterable[bytes]) -> bytes:
    """Hash the concatenation of 32-byte words, rejecting anything else."""

    packed = bytearray()
    for index, word in enumerate(words):
        if len(word) != WORD_LENGTH:
            raise ValueError(f"word {index} must be {WORD_LENGTH} bytes, got {len(word)}")
        packed.extend(word)
    return keccak256(bytes(packed))
