"""Customization points injected into the orchestrator.

A ``DeploymentHooks`` object decides three things per artifact: the raw salt,
the optional post-instantiation call, and where the verification record goes.
``DefaultHooks`` covers the common case; subclasses override single methods.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from eth_abi import encode

from xdeploy.constants import LEDGER_DIR, VERIFICATION_DIR_NAME
from xdeploy.deployment.salts import derive_salt
from xdeploy.domain.models import InitCall, same_address
from xdeploy.utils.hashing import keccak256

if TYPE_CHECKING:
    from xdeploy.domain.models import ArtifactVersion, RunContext

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

__all__ = [
    "DefaultHooks",
    "DeploymentHooks",
    "OwnershipTransferHooks",
    "function_selector",
    "record_file_stem",
]


def record_file_stem(version: str) -> str:
    """File-name-safe form of a version string; never escapes its directory."""

    stem = _UNSAFE_FILENAME_CHARS.sub("_", version).lstrip(".")
    return stem or "_"


def function_selector(signature: str) -> bytes:
    return keccak256(signature.encode("ascii"))[:4]


@runtime_checkable
class DeploymentHooks(Protocol):
    def salt(self, context: RunContext, version: ArtifactVersion) -> bytes: ...

    def init_call(self, context: RunContext, version: ArtifactVersion) -> InitCall: ...

    def verification_path(self, context: RunContext, version: ArtifactVersion) -> Path: ...


class DefaultHooks:
    """Cross-chain salt, no init call, verification records beside the ledger."""

    def __init__(
        self, ledger_root: Path | str = Path(LEDGER_DIR), *, cross_chain: bool = True
    ) -> None:
        self.ledger_root = Path(ledger_root)
        self.cross_chain = cross_chain

    def salt(self, context: RunContext, version: ArtifactVersion) -> bytes:
        return derive_salt(context.deployer, version.raw, cross_chain=self.cross_chain)

    def init_call(self, context: RunContext, version: ArtifactVersion) -> InitCall:
        return InitCall()

    def verification_path(self, context: RunContext, version: ArtifactVersion) -> Path:
        return (
            self.ledger_root
            / context.category
            / VERIFICATION_DIR_NAME
            / str(context.chain_id)
            / f"{record_file_stem(version.raw)}.json"
        )


class OwnershipTransferHooks(DefaultHooks):
    """Hand freshly deployed artifacts to the production owner on production chains."""

    TRANSFER_SIGNATURE = "transferOwnership(address)"

    def init_call(self, context: RunContext, version: ArtifactVersion) -> InitCall:
        owner = context.owner
        if same_address(owner, context.deployer):
            return InitCall()
        data = function_selector(self.TRANSFER_SIGNATURE) + encode(["address"], [owner])
        return InitCall(data=data)
