"""Typed failure taxonomy for the deployment pipeline.

Every fatal condition raised by the orchestrator maps to exactly one class
below. Classes are grouped by ``ErrorCategory`` so the CLI boundary can route
them to deterministic exit codes without string matching. Recoverable I/O
conditions (unreadable prior ledger, verification record failures) are never
raised; they are logged as warnings by the component that hits them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar


class ErrorCategory(StrEnum):
    SETUP = "setup"
    IDENTITY = "identity"
    VERSION_EXTRACTION = "version_extraction"
    CONSISTENCY = "consistency"


class DeploymentError(RuntimeError):
    """Base class for all fatal deployment-pipeline failures."""

    category: ClassVar[ErrorCategory]


# ---------------------------------------------------------------------------
# Setup errors
# ---------------------------------------------------------------------------


class SetupError(DeploymentError):
    category = ErrorCategory.SETUP


class SetupNotOverridden(SetupError):
    def __init__(self) -> None:
        super().__init__(
            "deployment category is not configured; set deployment.category before setup"
        )


class SetupNotCalled(SetupError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}() called before setup()")


class SetupAlreadyCalled(SetupError):
    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"setup() called twice; run is already {state}")


class InvalidAddressSetting(SetupError):
    def __init__(self, setting: str, value: object) -> None:
        self.setting = setting
        self.value = value
        if value in (None, ""):
            message = f"deployment.{setting} is not configured"
        else:
            message = f"deployment.{setting} is not a valid address: {value!r}"
        super().__init__(message)


class RunFinalized(SetupError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}() called after finalize()")


class ZeroProdOwner(SetupError):
    def __init__(self) -> None:
        super().__init__("deployment.prod_owner must not be the zero address")


class EmptyMainnetChainIds(SetupError):
    def __init__(self) -> None:
        super().__init__("chains.production_chain_ids must list at least one chain id")


# ---------------------------------------------------------------------------
# Identity / authorization errors
# ---------------------------------------------------------------------------


class IdentityError(DeploymentError):
    category = ErrorCategory.IDENTITY


class BroadcastSenderMismatch(IdentityError):
    def __init__(self, *, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"broadcast sender {actual} does not match deployer {expected}")


class OwnerNotDeployer(IdentityError):
    def __init__(self, *, owner: str, deployer: str, chain_id: int) -> None:
        self.owner = owner
        self.deployer = deployer
        self.chain_id = chain_id
        super().__init__(
            f"owner {owner} differs from deployer {deployer} on non-production chain {chain_id}"
        )


class InvalidSalt(IdentityError):
    def __init__(self, sender: str) -> None:
        self.sender = sender
        super().__init__(f"salt flag byte is invalid for sender {sender}")


# ---------------------------------------------------------------------------
# Version extraction errors
# ---------------------------------------------------------------------------


class VersionExtractionError(DeploymentError):
    category = ErrorCategory.VERSION_EXTRACTION


class VersionExtractionFailed(VersionExtractionError):
    def __init__(self, *, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            f"trial instantiation needs {required} wei but only {available} is available"
        )


class VersionCallFailed(VersionExtractionError):
    def __init__(self, address: str, reason: str = "") -> None:
        self.address = address
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"version() call failed on trial instance {address}{detail}")


class MockDeploymentFailed(VersionExtractionError):
    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"trial instantiation failed for payload {identity[:16]}")


class SnapshotRevertFailed(VersionExtractionError):
    def __init__(self, snapshot_id: int) -> None:
        self.snapshot_id = snapshot_id
        super().__init__(f"failed to revert trial snapshot {snapshot_id}")


class InvalidVersionFormat(VersionExtractionError):
    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"version {version!r} must look like '<semver>-<Name>[-<suffix>...]'")


# ---------------------------------------------------------------------------
# Deployment consistency errors
# ---------------------------------------------------------------------------


class ConsistencyError(DeploymentError):
    category = ErrorCategory.CONSISTENCY


class AddressMismatch(ConsistencyError):
    def __init__(self, *, predicted: str, actual: str) -> None:
        self.predicted = predicted
        self.actual = actual
        super().__init__(f"factory deployed to {actual}, predicted {predicted}")


class InitAmountWithoutInitData(ConsistencyError):
    def __init__(self, value: int) -> None:
        self.value = value
        super().__init__(f"init value {value} earmarked without init data")


class LedgerConflict(ConsistencyError):
    def __init__(self, *, version: str, recorded: str, incoming: str) -> None:
        self.version = version
        self.recorded = recorded
        self.incoming = incoming
        super().__init__(
            f"ledger already maps {version} to {recorded} in this run, refusing {incoming}"
        )


__all__ = [
    "AddressMismatch",
    "BroadcastSenderMismatch",
    "ConsistencyError",
    "DeploymentError",
    "EmptyMainnetChainIds",
    "ErrorCategory",
    "IdentityError",
    "InitAmountWithoutInitData",
    "InvalidAddressSetting",
    "InvalidSalt",
    "InvalidVersionFormat",
    "LedgerConflict",
    "MockDeploymentFailed",
    "OwnerNotDeployer",
    "RunFinalized",
    "SetupAlreadyCalled",
    "SetupError",
    "SetupNotCalled",
    "SetupNotOverridden",
    "SnapshotRevertFailed",
    "VersionCallFailed",
    "VersionExtractionError",
    "VersionExtractionFailed",
    "ZeroProdOwner",
]
