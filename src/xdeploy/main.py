"""Executable CLI entrypoint for ``xdeploy``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from xdeploy.config import ConfigLoadError, ConfigValidationError
from xdeploy.errors import DeploymentError, ErrorCategory

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    FAILURE = 1
    CONFIG_ERROR = 2
    IDENTITY_ERROR = 3
    CONSISTENCY_ERROR = 4
    INTERNAL_ERROR = 5


_CATEGORY_EXIT_CODES: dict[ErrorCategory, ExitCode] = {
    ErrorCategory.SETUP: ExitCode.CONFIG_ERROR,
    ErrorCategory.IDENTITY: ExitCode.IDENTITY_ERROR,
    ErrorCategory.VERSION_EXTRACTION: ExitCode.CONSISTENCY_ERROR,
    ErrorCategory.CONSISTENCY: ExitCode.CONSISTENCY_ERROR,
}


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m xdeploy`` and the ``xdeploy`` script."""

    try:
        from xdeploy.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _normalize_exit_code(exc.code)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = route_exception(exc)
        _emit_failure(exc, exit_code)
        return int(exit_code)


def route_exception(exc: BaseException) -> ExitCode:
    for item in _exception_chain(exc):
        if isinstance(item, DeploymentError):
            return _CATEGORY_EXIT_CODES[item.category]
        if isinstance(item, (ConfigLoadError, ConfigValidationError)):
            return ExitCode.CONFIG_ERROR
        if isinstance(item, (FileNotFoundError, NotADirectoryError, PermissionError)):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _normalize_exit_code(raw_code: object) -> int:
    if isinstance(raw_code, int) and raw_code in {int(code) for code in ExitCode}:
        return raw_code
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` then its explicit causes, falling back to implicit context."""

    visited: set[int] = set()
    node: BaseException | None = exc
    while node is not None and id(node) not in visited:
        visited.add(id(node))
        yield node
        if node.__cause__ is not None or node.__suppress_context__:
            node = node.__cause__
        else:
            node = node.__context__


def _emit_failure(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return
    _write_stderr(str(exc).strip() or exc.__class__.__name__)


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint", "route_exception"]
