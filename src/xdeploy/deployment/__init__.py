"""Deterministic-address deployment: salts, identification, ledger, orchestration."""

from xdeploy.deployment.collaborators import (
    AddressPredictor,
    BroadcastSession,
    FactoryService,
    TrialEnvironment,
    VerificationSink,
)
from xdeploy.deployment.factory import (
    OfflinePredictor,
    compute_create2_address,
    compute_create3_address,
)
from xdeploy.deployment.hooks import DefaultHooks, DeploymentHooks, OwnershipTransferHooks
from xdeploy.deployment.identifier import ArtifactIdentifier, artifact_identity
from xdeploy.deployment.ledger import (
    DeploymentLedger,
    FlushResult,
    LedgerLoadResult,
    LoadStatus,
    ledger_paths,
    read_ledger_file,
)
from xdeploy.deployment.orchestrator import DeploymentOrchestrator, RunSettings
from xdeploy.deployment.salts import SaltParts, derive_salt, efficient_hash, guard_salt, parse_salt
from xdeploy.deployment.verification import VerificationRecorder

__all__ = [
    "AddressPredictor",
    "ArtifactIdentifier",
    "BroadcastSession",
    "DefaultHooks",
    "DeploymentHooks",
    "DeploymentLedger",
    "DeploymentOrchestrator",
    "FactoryService",
    "FlushResult",
    "LedgerLoadResult",
    "LoadStatus",
    "OfflinePredictor",
    "OwnershipTransferHooks",
    "RunSettings",
    "SaltParts",
    "TrialEnvironment",
    "VerificationRecorder",
    "VerificationSink",
    "artifact_identity",
    "compute_create2_address",
    "compute_create3_address",
    "derive_salt",
    "efficient_hash",
    "guard_salt",
    "ledger_paths",
    "parse_salt",
    "read_ledger_file",
]
