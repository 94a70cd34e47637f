"""
xdeploy — collaborator contracts consumed by the orchestrator.

None of these are implemented here for a live chain; transaction signing and
RPC transport belong to the host tooling. The orchestrator only relies on
the behavior documented on each method.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from xdeploy.domain.models import ArtifactVersion, InitCall, Outcome, RunContext


@runtime_checkable
class AddressPredictor(Protocol):
    address: str

    def predict_address(self, guarded_salt: bytes) -> str:
        """Pure view: final address for ``guarded_salt`` on this factory."""


@runtime_checkable
class FactoryService(AddressPredictor, Protocol):
    """Pre-deployed deterministic-address factory."""

    def deploy_create3(self, salt: bytes, payload: bytes) -> str:
        """Instantiate ``payload`` under the raw ``salt``; returns the new address."""

    def deploy_create3_and_init(
        self, salt: bytes, payload: bytes, init_data: bytes, value: int
    ) -> str:
        """Instantiate and call ``init_data`` with ``value`` atomically."""


@runtime_checkable
class TrialEnvironment(Protocol):
    """Execution environment with snapshot/revert used for trial instantiation."""

    chain_id: int
    trial_sender: str

    def snapshot(self) -> int: ...

    def revert_to(self, snapshot_id: int) -> bool: ...

    def create(self, payload: bytes, value: int) -> str:
        """Low-level CREATE; returns the zero address on failure."""

    def call_version(self, address: str) -> Outcome[str]:
        """Call the artifact's no-argument ``version()`` capability."""

    def balance_of(self, address: str) -> int: ...

    def has_code(self, address: str) -> bool: ...


@runtime_checkable
class BroadcastSession(Protocol):
    """Transaction-submission session (broadcast mode) of the host tooling."""

    requires_interactive_signer: bool

    def active_sender(self) -> str | None:
        """Sender of the open session, ``None`` when nothing is being broadcast."""

    def suspend(self) -> None: ...

    def resume(self, sender: str) -> None:
        """Reopen the session for ``sender`` (public address only)."""


@runtime_checkable
class VerificationSink(Protocol):
    """Writes auxiliary verification data for a pending deployment."""

    def prepare(
        self,
        *,
        context: RunContext,
        version: ArtifactVersion,
        address: str,
        payload: bytes,
        init: InitCall,
        guarded_salt: bytes,
        path: Path,
    ) -> Outcome[Path]: ...


__all__ = [
    "AddressPredictor",
    "BroadcastSession",
    "FactoryService",
    "TrialEnvironment",
    "VerificationSink",
]
