"""
xdeploy — salt derivation and guard replication.

Purpose
- Turn (deployer, version) into the raw 32-byte salt handed to the factory.
- Replicate the factory's internal salt guard bit-for-bit so addresses can be
  predicted without a round trip.

Salt layout
- bytes  0..19  deployer identity
- byte   20     cross-chain flag (0x00 enabled, 0x01 disabled)
- bytes 21..31  keccak256(version)[:11]

Guard rules (sender = declared deployer, never the ambient caller)
- identity == sender: 0x01 -> keccak256(abi.encode(sender, chainid, salt)),
  0x00 -> efficient_hash(bytes32(uint160(sender)), salt), other -> InvalidSalt
- identity == zero:   0x01 -> efficient_hash(bytes32(chainid), salt),
  0x00 -> keccak256(abi.encode(salt)), other -> InvalidSalt
- any other identity: keccak256(abi.encode(salt))
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_abi import encode
from eth_utils import to_canonical_address

from xdeploy.constants import (
    ADDRESS_LENGTH,
    CROSS_CHAIN_DISABLED_FLAG,
    CROSS_CHAIN_ENABLED_FLAG,
    SALT_FLAG_INDEX,
    SALT_LENGTH,
    VERSION_HASH_LENGTH,
    WORD_LENGTH,
    ZERO_ADDRESS,
)
from xdeploy.domain.models import normalize_address, same_address
from xdeploy.errors import InvalidSalt
from xdeploy.utils.hashing import keccak256, keccak256_words

__all__ = [
    "SaltParts",
    "derive_salt",
    "efficient_hash",
    "guard_salt",
    "parse_salt",
]


@dataclass(frozen=True, slots=True)
class SaltParts:
    identity: str
    flag: int
    version_hash: bytes

    @property
    def cross_chain(self) -> bool | None:
        if self.flag == CROSS_CHAIN_ENABLED_FLAG:
            return True
        if self.flag == CROSS_CHAIN_DISABLED_FLAG:
            return False
        return None


def derive_salt(deployer: str, version: str, *, cross_chain: bool = True) -> bytes:
    """Build the raw salt for ``version`` deployed by ``deployer``."""

    identity = to_canonical_address(normalize_address(deployer))
    flag = CROSS_CHAIN_ENABLED_FLAG if cross_chain else CROSS_CHAIN_DISABLED_FLAG
    version_hash = keccak256(version.encode("utf-8"))[:VERSION_HASH_LENGTH]
    return identity + bytes([flag]) + version_hash


def parse_salt(salt: bytes) -> SaltParts:
    _require_word(salt)
    return SaltParts(
        identity=normalize_address(salt[:ADDRESS_LENGTH]),
        flag=salt[SALT_FLAG_INDEX],
        version_hash=salt[SALT_FLAG_INDEX + 1 :],
    )


def efficient_hash(a: bytes, b: bytes) -> bytes:
    """keccak256 of two packed 32-byte words."""

    return keccak256_words((a, b))


def guard_salt(salt: bytes, *, sender: str, chain_id: int) -> bytes:
    """Return the guarded salt the factory will use for ``salt`` sent by ``sender``."""

    parts = parse_salt(salt)
    sender_address = normalize_address(sender)

    if same_address(parts.identity, sender_address):
        if parts.flag == CROSS_CHAIN_DISABLED_FLAG:
            return keccak256(
                encode(["address", "uint256", "bytes32"], [sender_address, chain_id, salt])
            )
        if parts.flag == CROSS_CHAIN_ENABLED_FLAG:
            sender_word = to_canonical_address(sender_address).rjust(WORD_LENGTH, b"\x00")
            return efficient_hash(sender_word, salt)
        raise InvalidSalt(sender_address)

    if same_address(parts.identity, ZERO_ADDRESS):
        if parts.flag == CROSS_CHAIN_DISABLED_FLAG:
            return efficient_hash(chain_id.to_bytes(WORD_LENGTH, "big"), salt)
        if parts.flag == CROSS_CHAIN_ENABLED_FLAG:
            return keccak256(encode(["bytes32"], [salt]))
        raise InvalidSalt(sender_address)

    # Third-party identity: the salt is treated as already random.
    return keccak256(encode(["bytes32"], [salt]))


def _require_word(salt: bytes) -> None:
    if not isinstance(salt, bytes) or len(salt) != SALT_LENGTH:
        raise ValueError(f"salt must be {SALT_LENGTH} bytes")
