"""Stable constants shared across the deployment pipeline."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# EVM identity widths.
ADDRESS_LENGTH: Final[int] = 20
WORD_LENGTH: Final[int] = 32
ZERO_ADDRESS: Final[str] = "0x" + "00" * ADDRESS_LENGTH

# Salt layout: deployer (20) | cross-chain flag (1) | keccak256(version)[:11].
SALT_LENGTH: Final[int] = WORD_LENGTH
SALT_FLAG_INDEX: Final[int] = ADDRESS_LENGTH
VERSION_HASH_LENGTH: Final[int] = SALT_LENGTH - ADDRESS_LENGTH - 1

# Flag byte values understood by the factory's salt guard.
CROSS_CHAIN_ENABLED_FLAG: Final[int] = 0x00
CROSS_CHAIN_DISABLED_FLAG: Final[int] = 0x01

# Deterministic-address factory (same address on every supported chain).
DEFAULT_FACTORY_ADDRESS: Final[str] = "0xba5Ed099633D3B313e4D5F7bdc1305d3c28ba5Ed"
# Minimal CREATE3 proxy init code and its keccak256.
CREATE3_PROXY_INITCODE: Final[bytes] = bytes.fromhex("67363d3d37363d34f03d5260086018f3")
CREATE3_PROXY_INITCODE_HASH: Final[bytes] = bytes.fromhex(
    "21c35dbe1b344a2488cf3321d6ce542f8e9f305544ff09e4993a62319a497c1f"
)

# Default runtime paths (relative to the config file unless overridden).
LEDGER_DIR: Final[PurePosixPath] = PurePosixPath("deployments")
LOG_DIR: Final[PurePosixPath] = PurePosixPath("logs")
VERIFICATION_DIR_NAME: Final[str] = "verification"
LATEST_LEDGER_TAG: Final[str] = "latest"
LEDGER_TIMESTAMP_FORMAT: Final[str] = "%Y%m%dT%H%M%SZ"

VERSION_DELIMITER: Final[str] = "-"

__all__ = [
    "ADDRESS_LENGTH",
    "CONFIG_SCHEMA_VERSION",
    "CREATE3_PROXY_INITCODE",
    "CREATE3_PROXY_INITCODE_HASH",
    "CROSS_CHAIN_DISABLED_FLAG",
    "CROSS_CHAIN_ENABLED_FLAG",
    "DEFAULT_FACTORY_ADDRESS",
    "LATEST_LEDGER_TAG",
    "LEDGER_DIR",
    "LEDGER_TIMESTAMP_FORMAT",
    "LOG_DIR",
    "SALT_FLAG_INDEX",
    "SALT_LENGTH",
    "VERIFICATION_DIR_NAME",
    "VERSION_DELIMITER",
    "VERSION_HASH_LENGTH",
    "WORD_LENGTH",
    "ZERO_ADDRESS",
]
