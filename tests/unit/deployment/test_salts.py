"""
xdeploy — unit tests for salt derivation and guard replication

Purpose
- Pin the 32-byte salt layout and the factory guard rules bit-for-bit.

What this test file should cover
- Layout: deployer identity, cross-chain flag byte, truncated version hash.
- Guard branches for sender-owned, zero-identity and third-party salts.
- Determinism and version isolation over many random inputs.
"""

from __future__ import annotations

import pytest
from eth_abi import encode
from eth_utils import keccak, to_canonical_address, to_checksum_address
from hypothesis import given, settings
from hypothesis import strategies as st

from xdeploy.constants import ZERO_ADDRESS
from xdeploy.deployment.salts import derive_salt, efficient_hash, guard_salt, parse_salt
from xdeploy.errors import InvalidSalt

DEPLOYER = "0x" + "11" * 20
OTHER = "0x" + "22" * 20

_addresses = st.binary(min_size=20, max_size=20).map(to_checksum_address)
_versions = st.text(min_size=1, max_size=40)


# keccak256 of 64 zero bytes and of one zero word; both widely published
# (zero-subtree root of the deposit contract, slot hash of a dynamic array at 0).
KECCAK_TWO_ZERO_WORDS = "ad3228b676f7d3cd4284a5443f17f1962b36e491b30a40b2405849e597ba5fb5"
KECCAK_ONE_ZERO_WORD = "290decd9548b62a8d60345a988386fc84ba6bc95484008f6362f93160ef3e563"


def test_salt_known_answers() -> None:
    assert derive_salt(DEPLOYER, "").hex() == "11" * 20 + "00" + "c5d2460186f7233c927e7d"
    assert derive_salt(DEPLOYER, "abc", cross_chain=False).hex() == (
        "11" * 20 + "01" + "4e03657aea45a94fc7d47b"
    )


def test_guard_known_answers_for_zero_salt() -> None:
    zero_salt = bytes(32)

    # identity == sender, cross-chain: efficient_hash(bytes32(uint160(0)), salt)
    assert guard_salt(zero_salt, sender=ZERO_ADDRESS, chain_id=1).hex() == KECCAK_TWO_ZERO_WORDS
    # zero identity from another sender, cross-chain: keccak256(abi.encode(salt))
    assert guard_salt(zero_salt, sender=DEPLOYER, chain_id=1).hex() == KECCAK_ONE_ZERO_WORD


def test_salt_layout_matches_deployer_flag_and_version_hash() -> None:
    salt = derive_salt(DEPLOYER, "1.0.0-Token")

    assert len(salt) == 32
    assert salt[:20] == to_canonical_address(DEPLOYER)
    assert salt[20] == 0x00
    assert salt[21:] == keccak(text="1.0.0-Token")[:11]


def test_cross_chain_disabled_sets_flag_byte() -> None:
    salt = derive_salt(DEPLOYER, "1.0.0-Token", cross_chain=False)

    assert salt[20] == 0x01
    assert parse_salt(salt).cross_chain is False


def test_parse_salt_round_trips_identity() -> None:
    parts = parse_salt(derive_salt(DEPLOYER, "2.1.0-Vault"))

    assert parts.identity == to_checksum_address(DEPLOYER)
    assert parts.flag == 0
    assert parts.cross_chain is True
    assert parts.version_hash == keccak(text="2.1.0-Vault")[:11]


def test_parse_salt_rejects_wrong_length() -> None:
    with pytest.raises(ValueError, match="32 bytes"):
        parse_salt(b"\x00" * 31)


def test_guard_for_sender_owned_cross_chain_salt_is_padded_sender_hash() -> None:
    salt = derive_salt(DEPLOYER, "1.0.0-Token")
    expected = keccak(to_canonical_address(DEPLOYER).rjust(32, b"\x00") + salt)

    assert guard_salt(salt, sender=DEPLOYER, chain_id=1) == expected
    assert guard_salt(salt, sender=DEPLOYER, chain_id=10) == expected


def test_guard_for_sender_owned_chain_bound_salt_encodes_chain_id() -> None:
    salt = derive_salt(DEPLOYER, "1.0.0-Token", cross_chain=False)
    expected = keccak(
        encode(["address", "uint256", "bytes32"], [to_checksum_address(DEPLOYER), 5, salt])
    )

    assert guard_salt(salt, sender=DEPLOYER, chain_id=5) == expected
    assert guard_salt(salt, sender=DEPLOYER, chain_id=6) != expected


def test_guard_for_zero_identity_salts() -> None:
    tail = bytes(11)
    chain_bound = to_canonical_address(ZERO_ADDRESS) + b"\x01" + tail
    shared = to_canonical_address(ZERO_ADDRESS) + b"\x00" + tail

    assert guard_salt(chain_bound, sender=DEPLOYER, chain_id=7) == keccak(
        (7).to_bytes(32, "big") + chain_bound
    )
    assert guard_salt(shared, sender=DEPLOYER, chain_id=7) == keccak(encode(["bytes32"], [shared]))


def test_guard_for_third_party_identity_hashes_salt_only() -> None:
    salt = derive_salt(OTHER, "1.0.0-Token")

    assert guard_salt(salt, sender=DEPLOYER, chain_id=1) == keccak(encode(["bytes32"], [salt]))


@pytest.mark.parametrize("identity", [DEPLOYER, ZERO_ADDRESS])
def test_guard_rejects_unknown_flag_byte(identity: str) -> None:
    salt = to_canonical_address(identity) + b"\x02" + bytes(11)

    with pytest.raises(InvalidSalt):
        guard_salt(salt, sender=DEPLOYER, chain_id=1)


def test_efficient_hash_requires_words() -> None:
    assert efficient_hash(bytes(32), bytes(32)).hex() == KECCAK_TWO_ZERO_WORDS
    with pytest.raises(ValueError, match="word 1"):
        efficient_hash(bytes(32), bytes(31))


@settings(max_examples=25, derandomize=True, deadline=None)
@given(deployer=_addresses, version=_versions)
def test_salt_derivation_is_deterministic(deployer: str, version: str) -> None:
    assert derive_salt(deployer, version) == derive_salt(deployer.lower(), version)


@settings(max_examples=25, derandomize=True, deadline=None)
@given(
    deployer=_addresses,
    version=_versions,
    chain_a=st.integers(1, 2**32),
    chain_b=st.integers(1, 2**32),
)
def test_cross_chain_guard_ignores_chain_id(
    deployer: str, version: str, chain_a: int, chain_b: int
) -> None:
    salt = derive_salt(deployer, version)

    assert guard_salt(salt, sender=deployer, chain_id=chain_a) == guard_salt(
        salt, sender=deployer, chain_id=chain_b
    )


def test_thousand_random_versions_produce_distinct_salts() -> None:
    versions = [f"{major}.{minor}.{patch}-Artifact{major * 100 + minor}"
                for major in range(10) for minor in range(10) for patch in range(10)]

    salts = {derive_salt(DEPLOYER, version) for version in versions}

    assert len(versions) == 1000
    assert len(salts) == 1000
