"""Utility exports for filesystem and hashing helpers."""

from xdeploy.utils.fs import atomic_write_text
from xdeploy.utils.hashing import keccak256, keccak256_words, sha256_bytes

__all__ = [
    "atomic_write_text",
    "keccak256",
    "keccak256_words",
    "sha256_bytes",
]
