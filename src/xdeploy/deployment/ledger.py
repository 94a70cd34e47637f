"""
xdeploy — deployment ledger.

Tracks version -> address mappings for one (category, chain) pair in two
views:
- ``new``: deployments performed by this run;
- ``all``: every mapping known, seeded from the prior ``latest`` file.

The ledger is an index, not a source of truth: addresses are recomputable
from (deployer, version). Loading is therefore lenient; any problem reading
or parsing the prior file is logged and the run starts from an empty view.

Layout under ``<root>/<category>/``:
- ``<chain_id>-latest.json``       merged ``all`` view, rewritten each run
- ``<chain_id>-<timestamp>.json``  ``new`` view of one run, never rewritten
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog

from xdeploy.constants import LATEST_LEDGER_TAG
from xdeploy.domain.models import normalize_address, same_address
from xdeploy.errors import LedgerConflict
from xdeploy.utils.fs import atomic_write_text

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "DeploymentLedger",
    "FlushResult",
    "LedgerLoadResult",
    "LedgerPaths",
    "LoadStatus",
    "ledger_paths",
    "parse_ledger",
    "read_ledger_file",
    "render_ledger",
]


class LoadStatus(StrEnum):
    LOADED = "loaded"
    MISSING = "missing"
    UNREADABLE = "unreadable"
    EMPTY = "empty"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class LedgerPaths:
    directory: Path
    latest: Path
    run: Path


@dataclass(frozen=True, slots=True)
class LedgerLoadResult:
    status: LoadStatus
    path: Path
    entries: Mapping[str, str]
    detail: str = ""


@dataclass(frozen=True, slots=True)
class FlushResult:
    authorized: bool
    written: tuple[Path, ...] = ()


def ledger_paths(root: Path, category: str, chain_id: int, timestamp_tag: str) -> LedgerPaths:
    directory = Path(root) / category
    return LedgerPaths(
        directory=directory,
        latest=directory / f"{chain_id}-{LATEST_LEDGER_TAG}.json",
        run=directory / f"{chain_id}-{timestamp_tag}.json",
    )


def parse_ledger(text: str) -> dict[str, str]:
    """Parse a flat ``{version: address}`` object, raising ``ValueError`` on any defect."""

    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError(f"ledger root must be an object, got {type(parsed).__name__}")
    entries: dict[str, str] = {}
    for version, address in parsed.items():
        if not isinstance(address, str):
            raise ValueError(f"ledger value for {version!r} must be a string")
        entries[version] = normalize_address(address)
    return entries


def read_ledger_file(path: Path) -> LedgerLoadResult:
    """Read a ledger file without raising; the status says what happened."""

    if not path.exists():
        return LedgerLoadResult(LoadStatus.MISSING, path, {})
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return LedgerLoadResult(LoadStatus.UNREADABLE, path, {}, str(exc))
    if not text.strip():
        return LedgerLoadResult(LoadStatus.EMPTY, path, {})
    try:
        entries = parse_ledger(text)
    except Exception as exc:  # noqa: BLE001 - any parse failure means start fresh.
        return LedgerLoadResult(LoadStatus.MALFORMED, path, {}, str(exc))
    return LedgerLoadResult(LoadStatus.LOADED, path, MappingProxyType(entries))


def render_ledger(entries: Mapping[str, str]) -> str:
    return json.dumps(dict(sorted(entries.items())), indent=2, ensure_ascii=False) + "\n"


class DeploymentLedger:
    """In-memory accumulation of ledger views for one run."""

    def __init__(
        self,
        paths: LedgerPaths,
        *,
        logger: Any | None = None,
    ) -> None:
        self.paths = paths
        self._new: dict[str, str] = {}
        self._all: dict[str, str] = {}
        self._recorded_this_run: set[str] = set()
        self._dirty = False
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def new_entries(self) -> Mapping[str, str]:
        return MappingProxyType(dict(self._new))

    @property
    def all_entries(self) -> Mapping[str, str]:
        return MappingProxyType(dict(self._all))

    def load_prior(self, path: Path | None = None) -> LedgerLoadResult:
        """Merge the prior ``latest`` file into the ``all`` view."""

        result = read_ledger_file(path if path is not None else self.paths.latest)
        if result.status in {LoadStatus.UNREADABLE, LoadStatus.MALFORMED}:
            self._logger.warning(
                "prior_ledger_ignored",
                path=str(result.path),
                status=result.status.value,
                detail=result.detail,
            )
            return result

        for version, address in sorted(result.entries.items()):
            self._all.setdefault(version, address)
        self._logger.info(
            "prior_ledger_loaded",
            path=str(result.path),
            status=result.status.value,
            entries=len(result.entries),
        )
        return result

    def record_new(self, version: str, address: str) -> None:
        normalized = normalize_address(address)
        existing = self._new.get(version)
        if existing is not None and not same_address(existing, normalized):
            raise LedgerConflict(version=version, recorded=existing, incoming=normalized)
        self._new[version] = normalized
        self._dirty = True

    def record_all(self, version: str, address: str) -> None:
        normalized = normalize_address(address)
        existing = self._all.get(version)
        if existing is not None and not same_address(existing, normalized):
            if version in self._recorded_this_run:
                raise LedgerConflict(version=version, recorded=existing, incoming=normalized)
            self._logger.warning(
                "prior_ledger_entry_superseded",
                version=version,
                previous=existing,
                current=normalized,
            )
        self._all[version] = normalized
        self._recorded_this_run.add(version)

    def flush(self, allowed_writer: str | None, actual_writer: str | None) -> FlushResult:
        """Persist both views when ``actual_writer`` is the allowed writer."""

        if not same_address(allowed_writer, actual_writer):
            self._logger.warning(
                "ledger_flush_skipped",
                allowed_writer=allowed_writer,
                actual_writer=actual_writer,
                new_entries=len(self._new),
            )
            return FlushResult(authorized=False)

        written: list[Path] = []
        if self._new:
            atomic_write_text(self.paths.run, render_ledger(self._new))
            written.append(self.paths.run)
        if self._all:
            atomic_write_text(self.paths.latest, render_ledger(self._all))
            written.append(self.paths.latest)

        self._dirty = False
        self._logger.info(
            "ledger_flushed",
            files=[str(item) for item in written],
            new_entries=len(self._new),
            all_entries=len(self._all),
        )
        return FlushResult(authorized=True, written=tuple(written))
