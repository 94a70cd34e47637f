"""Domain models for deterministic deployments."""

from xdeploy.domain.models import (
    AddressPrediction,
    ArtifactVersion,
    DeploymentOutcome,
    ErrorKind,
    InitCall,
    Outcome,
    RunContext,
    RunState,
    is_zero_address,
    normalize_address,
    parse_version,
    same_address,
)

__all__ = [
    "AddressPrediction",
    "ArtifactVersion",
    "DeploymentOutcome",
    "ErrorKind",
    "InitCall",
    "Outcome",
    "RunContext",
    "RunState",
    "is_zero_address",
    "normalize_address",
    "parse_version",
    "same_address",
]
