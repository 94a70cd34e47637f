"""Command-line interface router for xdeploy.

Every command loads the effective config first, then opens the run log
described by ``[observability]`` for the duration of the handler.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from xdeploy.config import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
    redact_config,
)
from xdeploy.constants import LATEST_LEDGER_TAG, LEDGER_TIMESTAMP_FORMAT
from xdeploy.deployment.factory import compute_create3_address
from xdeploy.deployment.ledger import LedgerLoadResult, ledger_paths, read_ledger_file
from xdeploy.deployment.salts import derive_salt, guard_salt
from xdeploy.domain.models import normalize_address, parse_version
from xdeploy.observability import LoggingSettings, configure_logging
from xdeploy.ui.render import config_view, ledger_view, salt_view


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="xdeploy",
        description=(
            "xdeploy — deterministic cross-chain deployment addresses.\n\n"
            "Common workflows:\n"
            "  xdeploy salt 1.0.0-Token --chain-id 1     Predict an artifact address\n"
            "  xdeploy ledger show --chain-id 1          Inspect recorded deployments\n"
            "  xdeploy config show                       Print effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: ./xdeploy.toml if present).",
    )
    common.add_argument(
        "--profile",
        default=None,
        help="Config profile overlay name (builtin: verbose, quiet).",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # salt ----------------------------------------------------------------
    salt_parser = subparsers.add_parser(
        "salt",
        parents=[common],
        help="Derive the salt and predicted address for a version",
        description=(
            "Derive the raw salt, the factory-guarded salt and the CREATE3 address\n"
            "for a deployer and version string, entirely offline.\n\n"
            "Examples:\n"
            "  xdeploy salt 1.0.0-Token --chain-id 1\n"
            "  xdeploy salt 1.0.0-Token --chain-id 5 --deployer 0x...\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    salt_parser.add_argument("version", help="Artifact version string, e.g. 1.0.0-Token")
    salt_parser.add_argument("--chain-id", type=int, required=True, help="Target chain id")
    salt_parser.add_argument(
        "--deployer", default=None, help="Deployer address (default: deployment.deployer)"
    )
    salt_parser.add_argument(
        "--factory", default=None, help="Factory address (default: deployment.factory_address)"
    )
    salt_parser.add_argument(
        "--no-cross-chain",
        action="store_true",
        default=False,
        help="Bind the salt to the chain id instead of sharing it across chains",
    )
    salt_parser.add_argument(
        "--no-suffix",
        action="store_true",
        default=False,
        help="Do not append the chain's configured version suffix",
    )
    salt_parser.set_defaults(handler=_cmd_salt)

    # ledger --------------------------------------------------------------
    ledger_parser = subparsers.add_parser("ledger", help="Inspect deployment ledgers")
    ledger_sub = ledger_parser.add_subparsers(dest="ledger_command", required=True)
    ledger_show = ledger_sub.add_parser(
        "show",
        parents=[common],
        help="Show the latest and per-run ledgers for a category and chain",
    )
    ledger_show.add_argument("--chain-id", type=int, required=True, help="Chain id")
    ledger_show.add_argument(
        "--category", default=None, help="Ledger category (default: deployment.category)"
    )
    ledger_show.set_defaults(handler=_cmd_ledger_show)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser("config", help="Inspect configuration")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)
    config_show = config_sub.add_parser(
        "show",
        parents=[common],
        help="Print the redacted effective configuration",
    )
    config_show.set_defaults(handler=_cmd_config_show)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        config = _load_effective_config(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    run_log = configure_logging(LoggingSettings.from_config(config, run_id=_run_id()))
    log = structlog.get_logger(__name__).bind(command=_command_name(namespace))
    try:
        log.info("command_started", profile=_optional_str(namespace.profile))
        try:
            result = int(handler(namespace, config))
        except CLIError as exc:
            log.warning("command_failed", reason=str(exc), exit_code=exc.exit_code)
            print(f"error: {exc}", file=sys.stderr)
            return exc.exit_code
        except Exception:
            log.exception("command_crashed")
            raise
        log.info("command_finished", exit_code=result)
        return result
    finally:
        run_log.close()


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_salt(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    deployment = _section(config, "deployment")
    chains = _section(config, "chains")

    deployer = _optional_str(args.deployer) or _optional_str(deployment.get("deployer"))
    if deployer is None:
        raise CLIError("no deployer given; pass --deployer or set deployment.deployer", 2)
    factory = _optional_str(args.factory) or str(deployment["factory_address"])
    try:
        deployer = normalize_address(deployer)
        factory = normalize_address(factory)
    except ValueError as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    chain_id = int(args.chain_id)
    version = parse_version(args.version)
    if not args.no_suffix:
        suffixes = chains.get("version_suffixes", {})
        if isinstance(suffixes, Mapping):
            version = version.with_suffix(str(suffixes.get(str(chain_id), "")))

    cross_chain = not args.no_cross_chain
    salt = derive_salt(deployer, version.raw, cross_chain=cross_chain)
    guarded = guard_salt(salt, sender=deployer, chain_id=chain_id)
    address = compute_create3_address(guarded, factory)

    payload: dict[str, object] = {
        "address": address,
        "chain_id": chain_id,
        "cross_chain": cross_chain,
        "deployer": deployer,
        "factory": factory,
        "guarded_salt": "0x" + guarded.hex(),
        "salt": "0x" + salt.hex(),
        "version": version.raw,
    }
    structlog.get_logger(__name__).debug(
        "address_predicted", version=version.raw, chain_id=chain_id, address=address
    )
    if args.json:
        _emit_json(payload)
    else:
        _emit_lines(salt_view(payload))
    return 0


def _cmd_ledger_show(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    category = _optional_str(args.category) or _optional_str(
        _section(config, "deployment").get("category")
    )
    if category is None:
        raise CLIError("no category given; pass --category or set deployment.category", 2)

    chain_id = int(args.chain_id)
    root = Path(str(_section(config, "ledger").get("root", "deployments")))
    paths = ledger_paths(root, category, chain_id, LATEST_LEDGER_TAG)
    latest = read_ledger_file(paths.latest)
    runs = [
        read_ledger_file(path)
        for path in sorted(paths.directory.glob(f"{chain_id}-*.json"))
        if path != paths.latest
    ]

    if args.json:
        _emit_json(
            {
                "category": category,
                "chain_id": chain_id,
                "latest": _ledger_payload(latest),
                "runs": [_ledger_payload(item) for item in runs],
            }
        )
    else:
        _emit_lines(ledger_view(category, chain_id, latest, runs))
    return 0


def _cmd_config_show(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    profile = _optional_str(args.profile)
    redacted = redact_config(config)

    if args.json:
        _emit_json({"active_profile": profile, "config": redacted})
    else:
        _emit_lines(config_view(profile, redacted))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ledger_payload(result: LedgerLoadResult) -> dict[str, object]:
    return {
        "detail": result.detail,
        "entries": dict(sorted(result.entries.items())),
        "path": result.path.as_posix(),
        "status": result.status.value,
    }


def _emit_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _emit_lines(lines: Sequence[str]) -> None:
    for line in lines:
        print(line)


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(args.config_path)
    profile = _optional_str(args.profile)

    try:
        return load_config(config_path, profile=profile)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _run_id() -> str:
    return datetime.now(UTC).strftime(LEDGER_TIMESTAMP_FORMAT)


def _command_name(args: argparse.Namespace) -> str:
    parts = [args.command]
    for attr in ("ledger_command", "config_command"):
        sub = getattr(args, attr, None)
        if sub:
            parts.append(sub)
    return " ".join(parts)


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = config.get(name)
    if isinstance(section, Mapping):
        return section
    return {}


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument", exit_code=2)
    cleaned = value.strip()
    return cleaned or None


__all__ = ["CLIError", "build_parser", "run_cli"]
