"""Frozen domain models shared by every deployment component."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, TypeVar

from eth_utils import is_address, to_checksum_address

from xdeploy.constants import LEDGER_TIMESTAMP_FORMAT, VERSION_DELIMITER, ZERO_ADDRESS
from xdeploy.errors import InvalidVersionFormat

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")


class RunState(StrEnum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    PROCESSING = "processing"
    FINALIZED = "finalized"


class ErrorKind(StrEnum):
    """Failure kinds reported by collaborator boundaries instead of raising."""

    CALL_REVERTED = "call_reverted"
    CALL_UNAVAILABLE = "call_unavailable"
    DECODE_FAILED = "decode_failed"
    IO_ERROR = "io_error"


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Explicit success/failure result for fallible collaborator calls."""

    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str = "") -> Outcome[T]:
        return cls(error=error, message=message)


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def normalize_address(value: str | bytes) -> str:
    """Return the EIP-55 checksummed form of ``value`` or raise ``ValueError``."""

    if isinstance(value, bytes):
        if len(value) != 20:
            raise ValueError(f"address bytes must be 20 long, got {len(value)}")
        return to_checksum_address(value)
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"invalid address: {value!r}")
    return to_checksum_address(value)


def same_address(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    return left.lower() == right.lower()


def is_zero_address(value: str) -> bool:
    return same_address(value, ZERO_ADDRESS)


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ArtifactVersion:
    """Self-reported artifact version: ``{semver}-{Name}[-{suffix}...]``."""

    raw: str
    semver: str
    name: str
    suffixes: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.raw

    def with_suffix(self, suffix: str) -> ArtifactVersion:
        """Return a copy tagged with an environment suffix (no-op when empty)."""

        tag = suffix.strip()
        if not tag:
            return self
        return parse_version(f"{self.raw}{VERSION_DELIMITER}{tag}")


def parse_version(raw: str) -> ArtifactVersion:
    segments = raw.split(VERSION_DELIMITER)
    if len(segments) < 2:
        raise InvalidVersionFormat(raw)
    return ArtifactVersion(
        raw=raw,
        semver=segments[0],
        name=segments[1],
        suffixes=tuple(segments[2:]),
    )


# ---------------------------------------------------------------------------
# Run context and per-artifact results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RunContext:
    """Immutable snapshot of everything a component may need about the run.

    Values that would otherwise be looked up from ambient state (who is
    broadcasting, which chain we are on, whether it counts as production)
    are captured here and passed explicitly.
    """

    category: str
    deployer: str
    chain_id: int
    is_production: bool
    factory_address: str
    prod_owner: str | None = None
    version_suffix: str = ""
    allowed_writer: str | None = None
    broadcast_sender: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def owner(self) -> str:
        if self.is_production and self.prod_owner is not None:
            return self.prod_owner
        return self.deployer

    @property
    def timestamp_tag(self) -> str:
        return self.started_at.astimezone(UTC).strftime(LEDGER_TIMESTAMP_FORMAT)

    def with_broadcast_sender(self, sender: str | None) -> RunContext:
        if sender == self.broadcast_sender:
            return self
        return replace(self, broadcast_sender=sender)


@dataclass(frozen=True, slots=True)
class InitCall:
    """Post-instantiation call executed atomically with the deployment."""

    data: bytes = b""
    value: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.data


@dataclass(frozen=True, slots=True)
class AddressPrediction:
    version: ArtifactVersion
    salt: bytes
    guarded_salt: bytes
    address: str


@dataclass(frozen=True, slots=True)
class DeploymentOutcome:
    """Result of one ``deploy`` call; unpacks as ``(deployed, address)``."""

    deployed: bool
    address: str
    version: ArtifactVersion
    salt: bytes

    def __iter__(self) -> Iterator[object]:
        yield self.deployed
        yield self.address


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
