"""Plain-text views for the xdeploy CLI.

Each function returns the lines to print so the handlers stay free of
formatting and the views can be checked without capturing stdout.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from xdeploy.deployment.ledger import LedgerLoadResult

SALT_FIELDS: tuple[str, ...] = (
    "version",
    "deployer",
    "chain_id",
    "cross_chain",
    "salt",
    "guarded_salt",
    "address",
)


def field_lines(pairs: Sequence[tuple[str, object]]) -> list[str]:
    return [f"{key}: {value}" for key, value in pairs]


def salt_view(payload: Mapping[str, object]) -> list[str]:
    return field_lines([(key, payload[key]) for key in SALT_FIELDS])


def ledger_view(
    category: str,
    chain_id: int,
    latest: LedgerLoadResult,
    runs: Sequence[LedgerLoadResult],
) -> list[str]:
    lines = field_lines([("Category", category), ("Chain", chain_id)])
    lines.extend(_ledger_block("Latest", latest))
    for item in runs:
        lines.extend(_ledger_block(item.path.name, item))
    return lines


def config_view(profile: str | None, redacted: Mapping[str, Any]) -> list[str]:
    lines = field_lines([("Active profile", profile or "(default)")])
    lines.append(json.dumps(redacted, indent=2, sort_keys=True, ensure_ascii=False))
    return lines


def _ledger_block(title: str, result: LedgerLoadResult) -> list[str]:
    lines = ["", f"{title} ({result.status.value})"]
    if result.detail:
        lines.append(f"  warning: {result.detail}")
    if not result.entries:
        return lines
    width = max(len("version"), *(len(version) for version in result.entries))
    lines.append(f"  {'version':<{width}}  address")
    lines.append(f"  {'-' * width}  {'-' * 42}")
    for version, address in sorted(result.entries.items()):
        lines.append(f"  {version:<{width}}  {address}")
    return lines


__all__ = ["SALT_FIELDS", "config_view", "field_lines", "ledger_view", "salt_view"]
