"""
xdeploy — artifact version/name extraction.

An artifact declares its version through a mandatory no-argument
``version()`` call. To read it before the real deployment, the identifier
instantiates the payload once inside a snapshot of the trial environment,
calls ``version()``, and reverts the snapshot no matter what happened.

Results are cached per payload content hash (SHA-256). The cache belongs to
the identifier instance, which the orchestrator scopes to one run.

Known limitation: an open broadcast session is suspended around the trial
and resumed for the same sender address afterwards. Only the public address
survives the round trip, so sessions that sign interactively (hardware
wallets, prompts) may not resume cleanly; a warning is logged for those.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from xdeploy.domain.models import ArtifactVersion, is_zero_address, parse_version
from xdeploy.errors import (
    MockDeploymentFailed,
    SnapshotRevertFailed,
    VersionCallFailed,
    VersionExtractionFailed,
)
from xdeploy.utils.hashing import sha256_bytes

if TYPE_CHECKING:
    from collections.abc import Iterator

    from xdeploy.deployment.collaborators import BroadcastSession, TrialEnvironment

__all__ = ["ArtifactIdentifier", "artifact_identity"]


def artifact_identity(payload: bytes) -> str:
    """Content identity of a creation payload."""

    return sha256_bytes(payload)


class ArtifactIdentifier:
    """Discover (name, version) for creation payloads via trial instantiation."""

    def __init__(
        self,
        environment: TrialEnvironment,
        *,
        session: BroadcastSession | None = None,
        logger: Any | None = None,
    ) -> None:
        self._environment = environment
        self._session = session
        self._cache: dict[str, ArtifactVersion] = {}
        self._lock = threading.Lock()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def cached(self, payload: bytes) -> ArtifactVersion | None:
        with self._lock:
            return self._cache.get(artifact_identity(payload))

    def identify(self, payload: bytes, *, value: int = 0) -> ArtifactVersion:
        identity = artifact_identity(payload)
        with self._lock:
            hit = self._cache.get(identity)
        if hit is not None:
            return hit

        raw_version = self._trial_version(payload, identity=identity, value=value)
        version = parse_version(raw_version)

        with self._lock:
            self._cache.setdefault(identity, version)
        self._logger.debug(
            "artifact_identified",
            identity=identity,
            name=version.name,
            version=version.raw,
        )
        return version

    def _trial_version(self, payload: bytes, *, identity: str, value: int) -> str:
        environment = self._environment
        if value > 0:
            available = environment.balance_of(environment.trial_sender)
            if value > available:
                raise VersionExtractionFailed(required=value, available=available)

        with self._suspended_session():
            snapshot_id = environment.snapshot()
            try:
                address = environment.create(payload, value)
                if is_zero_address(address):
                    raise MockDeploymentFailed(identity)
                outcome = environment.call_version(address)
                if not outcome.ok or outcome.value is None:
                    raise VersionCallFailed(address, outcome.message)
                return outcome.value
            finally:
                if not environment.revert_to(snapshot_id):
                    raise SnapshotRevertFailed(snapshot_id)

    @contextmanager
    def _suspended_session(self) -> Iterator[None]:
        session = self._session
        sender = session.active_sender() if session is not None else None
        if session is None or sender is None:
            yield
            return

        if session.requires_interactive_signer:
            self._logger.warning(
                "broadcast_resume_limited",
                sender=sender,
                detail="session will resume by address only; interactive signer state is lost",
            )
        session.suspend()
        try:
            yield
        finally:
            session.resume(sender)
