"""
xdeploy — offline CREATE3 address prediction.

The factory deploys every artifact through a minimal proxy: the proxy lands
at a CREATE2 address derived from (factory, guarded salt, proxy init code)
and then CREATEs the artifact with nonce 1. The final address therefore
depends only on the factory address and the guarded salt, never on the
artifact's bytecode or constructor arguments.
"""

from __future__ import annotations

from eth_utils import to_canonical_address

from xdeploy.constants import ADDRESS_LENGTH, CREATE3_PROXY_INITCODE_HASH, DEFAULT_FACTORY_ADDRESS
from xdeploy.domain.models import normalize_address
from xdeploy.utils.hashing import keccak256

__all__ = [
    "OfflinePredictor",
    "compute_create2_address",
    "compute_create3_address",
    "compute_proxy_child_address",
]

_CREATE2_PREFIX = b"\xff"
# RLP list header for [20-byte address, nonce 1]: 0xc0 + 22, then 0x80 + 20.
_RLP_PROXY_NONCE_ONE_PREFIX = b"\xd6\x94"
_RLP_NONCE_ONE = b"\x01"


def compute_create2_address(deployer: str, salt: bytes, init_code_hash: bytes) -> str:
    if len(salt) != 32 or len(init_code_hash) != 32:
        raise ValueError("salt and init_code_hash must both be 32 bytes")
    preimage = _CREATE2_PREFIX + to_canonical_address(deployer) + salt + init_code_hash
    return normalize_address(keccak256(preimage)[-ADDRESS_LENGTH:])


def compute_proxy_child_address(proxy: str) -> str:
    """Address of the first contract ``proxy`` CREATEs (account nonce 1)."""

    preimage = _RLP_PROXY_NONCE_ONE_PREFIX + to_canonical_address(proxy) + _RLP_NONCE_ONE
    return normalize_address(keccak256(preimage)[-ADDRESS_LENGTH:])


def compute_create3_address(guarded_salt: bytes, factory: str = DEFAULT_FACTORY_ADDRESS) -> str:
    """Return the address the factory deploys to for ``guarded_salt``."""

    proxy = compute_create2_address(factory, guarded_salt, CREATE3_PROXY_INITCODE_HASH)
    return compute_proxy_child_address(proxy)


class OfflinePredictor:
    """Prediction half of the factory service, computed locally."""

    def __init__(self, address: str = DEFAULT_FACTORY_ADDRESS) -> None:
        self.address = normalize_address(address)

    def predict_address(self, guarded_salt: bytes) -> str:
        return compute_create3_address(guarded_salt, self.address)
