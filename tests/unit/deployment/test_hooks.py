"""
xdeploy — unit tests for deployment hooks and verification records
"""

from __future__ import annotations

import json
from pathlib import Path

from eth_utils import keccak

from xdeploy.constants import DEFAULT_FACTORY_ADDRESS
from xdeploy.deployment.hooks import (
    DefaultHooks,
    DeploymentHooks,
    OwnershipTransferHooks,
    function_selector,
)
from xdeploy.deployment.salts import derive_salt, parse_salt
from xdeploy.deployment.verification import VerificationRecorder, build_record
from xdeploy.domain.models import ErrorKind, InitCall, RunContext, parse_version

DEPLOYER = "0x" + "11" * 20
PROD_OWNER = "0x" + "33" * 20


def _context(*, is_production: bool = True, prod_owner: str | None = PROD_OWNER) -> RunContext:
    return RunContext(
        category="prod",
        deployer=DEPLOYER,
        chain_id=1 if is_production else 5,
        is_production=is_production,
        factory_address=DEFAULT_FACTORY_ADDRESS,
        prod_owner=prod_owner,
    )


def test_hooks_satisfy_protocol() -> None:
    assert isinstance(DefaultHooks(), DeploymentHooks)
    assert isinstance(OwnershipTransferHooks(), DeploymentHooks)


def test_function_selector_matches_known_value() -> None:
    assert function_selector("transfer(address,uint256)").hex() == "a9059cbb"
    assert function_selector("transferOwnership(address)") == keccak(
        text="transferOwnership(address)"
    )[:4]


def test_default_hooks_salt_and_empty_init() -> None:
    version = parse_version("1.0.0-Token")
    hooks = DefaultHooks()

    assert hooks.salt(_context(), version) == derive_salt(DEPLOYER, "1.0.0-Token")
    assert hooks.init_call(_context(), version) == InitCall()


def test_chain_bound_hooks_flip_salt_flag() -> None:
    salt = DefaultHooks(cross_chain=False).salt(_context(), parse_version("1.0.0-Token"))

    assert parse_salt(salt).cross_chain is False


def test_verification_path_layout(tmp_path: Path) -> None:
    path = DefaultHooks(tmp_path).verification_path(_context(), parse_version("1.0.0-Token"))

    assert path == tmp_path / "prod" / "verification" / "1" / "1.0.0-Token.json"


def test_ownership_hooks_skip_when_owner_is_deployer() -> None:
    hooks = OwnershipTransferHooks()
    version = parse_version("1.0.0-Token")

    assert hooks.init_call(_context(is_production=False), version).is_empty
    assert hooks.init_call(_context(prod_owner=None), version).is_empty
    assert not hooks.init_call(_context(), version).is_empty


def test_build_record_fields() -> None:
    record = build_record(
        context=_context(),
        version=parse_version("1.0.0-Token"),
        address=DEPLOYER,
        payload=b"\x60\x80",
        init=InitCall(data=b"\xab", value=3),
        guarded_salt=bytes(32),
    )

    assert record["payload_length"] == 2
    assert record["init_data"] == "0xab"
    assert record["init_value"] == 3
    assert record["guarded_salt"] == "0x" + "00" * 32
    assert record["factory"] == DEFAULT_FACTORY_ADDRESS


def test_recorder_writes_json_atomically(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "1.0.0-Token.json"

    outcome = VerificationRecorder().prepare(
        context=_context(),
        version=parse_version("1.0.0-Token"),
        address=DEPLOYER,
        payload=b"\x00",
        init=InitCall(),
        guarded_salt=bytes(32),
        path=target,
    )

    assert outcome.ok
    assert outcome.value == target
    assert json.loads(target.read_text(encoding="utf-8"))["version"] == "1.0.0-Token"


def test_recorder_reports_io_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")

    outcome = VerificationRecorder().prepare(
        context=_context(),
        version=parse_version("1.0.0-Token"),
        address=DEPLOYER,
        payload=b"\x00",
        init=InitCall(),
        guarded_salt=bytes(32),
        path=blocker / "record.json",
    )

    assert not outcome.ok
    assert outcome.error is ErrorKind.IO_ERROR
