"""
xdeploy — shared test fixtures.

In-memory stand-ins for the host tooling: a trial chain with snapshot and
revert, a CREATE3 factory that reproduces the on-chain salt guard, and a
broadcast session. Payloads are ``b"FAKE" + json`` so each test states the
version an artifact reports and the constructor arguments it carries.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from xdeploy.constants import DEFAULT_FACTORY_ADDRESS, ZERO_ADDRESS
from xdeploy.deployment import DeploymentOrchestrator, RunSettings, guard_salt
from xdeploy.deployment.factory import compute_create3_address
from xdeploy.domain.models import ErrorKind, Outcome, normalize_address
from xdeploy.utils.hashing import keccak256

DEPLOYER = "0x" + "11" * 20
OTHER = "0x" + "22" * 20
PROD_OWNER = "0x" + "33" * 20
TRIAL_SENDER = "0x" + "44" * 20
FIXED_START = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

_PAYLOAD_MAGIC = b"FAKE"


def encode_payload(
    version: str | None,
    *,
    args: object = None,
    fail: bool = False,
) -> bytes:
    body: dict[str, object] = {"args": args, "fail": fail}
    if version is not None:
        body["version"] = version
    return _PAYLOAD_MAGIC + json.dumps(body, sort_keys=True).encode("utf-8")


def decode_payload(payload: bytes) -> dict[str, Any]:
    assert payload.startswith(_PAYLOAD_MAGIC)
    return json.loads(payload[len(_PAYLOAD_MAGIC) :].decode("utf-8"))


class FakeChain:
    """Trial environment keeping all mutable state in one snapshot-able dict."""

    def __init__(self, chain_id: int = 1, *, trial_sender: str = TRIAL_SENDER) -> None:
        self.chain_id = chain_id
        self.trial_sender = normalize_address(trial_sender)
        self.state: dict[str, Any] = {"code": {}, "nonce": 0, "balances": {}}
        self.revert_succeeds = True
        self.create_calls = 0
        self.version_calls = 0
        self._snapshots: dict[int, dict[str, Any]] = {}
        self._next_snapshot = 1

    def snapshot(self) -> int:
        snapshot_id = self._next_snapshot
        self._next_snapshot += 1
        self._snapshots[snapshot_id] = copy.deepcopy(self.state)
        return snapshot_id

    def revert_to(self, snapshot_id: int) -> bool:
        if not self.revert_succeeds:
            return False
        saved = self._snapshots.pop(snapshot_id, None)
        if saved is None:
            return False
        self.state = saved
        return True

    def create(self, payload: bytes, value: int) -> str:
        self.create_calls += 1
        if decode_payload(payload)["fail"]:
            return ZERO_ADDRESS
        nonce = self.state["nonce"]
        self.state["nonce"] = nonce + 1
        seed = bytes.fromhex(self.trial_sender[2:]) + nonce.to_bytes(8, "big")
        address = normalize_address(keccak256(seed)[-20:])
        self.install(address, payload)
        return address

    def install(self, address: str, payload: bytes) -> None:
        self.state["code"][normalize_address(address)] = payload

    def call_version(self, address: str) -> Outcome[str]:
        self.version_calls += 1
        payload = self.state["code"].get(normalize_address(address))
        if payload is None:
            return Outcome.failure(ErrorKind.CALL_UNAVAILABLE, "no code at address")
        version = decode_payload(payload).get("version")
        if version is None:
            return Outcome.failure(ErrorKind.CALL_REVERTED, "version() reverted")
        return Outcome.success(version)

    def set_balance(self, address: str, amount: int) -> None:
        self.state["balances"][normalize_address(address)] = amount

    def balance_of(self, address: str) -> int:
        return int(self.state["balances"].get(normalize_address(address), 0))

    def has_code(self, address: str) -> bool:
        return normalize_address(address) in self.state["code"]


@dataclass
class FactoryCall:
    salt: bytes
    payload: bytes
    address: str
    init_data: bytes = b""
    value: int = 0


class FakeFactory:
    """CREATE3 factory that guards salts with the caller's address, like the real one."""

    def __init__(
        self,
        chain: FakeChain,
        *,
        caller: str = DEPLOYER,
        address: str = DEFAULT_FACTORY_ADDRESS,
    ) -> None:
        self.chain = chain
        self.caller = normalize_address(caller)
        self.address = normalize_address(address)
        self.forced_address: str | None = None
        self.calls: list[FactoryCall] = []

    def predict_address(self, guarded_salt: bytes) -> str:
        return compute_create3_address(guarded_salt, self.address)

    def deploy_create3(self, salt: bytes, payload: bytes) -> str:
        return self._deploy(salt, payload, b"", 0)

    def deploy_create3_and_init(
        self, salt: bytes, payload: bytes, init_data: bytes, value: int
    ) -> str:
        return self._deploy(salt, payload, init_data, value)

    def _deploy(self, salt: bytes, payload: bytes, init_data: bytes, value: int) -> str:
        guarded = guard_salt(salt, sender=self.caller, chain_id=self.chain.chain_id)
        address = self.forced_address or self.predict_address(guarded)
        self.chain.install(address, payload)
        self.calls.append(FactoryCall(salt, payload, address, init_data, value))
        return address


@dataclass
class FakeSession:
    sender: str | None = DEPLOYER
    requires_interactive_signer: bool = False
    events: list[str] = field(default_factory=list)

    def active_sender(self) -> str | None:
        return self.sender

    def suspend(self) -> None:
        self.events.append("suspend")
        self.sender = None

    def resume(self, sender: str) -> None:
        self.events.append(f"resume:{sender}")
        self.sender = sender


@pytest.fixture
def make_payload() -> Callable[..., bytes]:
    return encode_payload


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain(chain_id=1)


@pytest.fixture
def factory(chain: FakeChain) -> FakeFactory:
    return FakeFactory(chain)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def settings_for(tmp_path: Path) -> Callable[..., RunSettings]:
    def _build(**overrides: Any) -> RunSettings:
        values: dict[str, Any] = {
            "category": "prod",
            "deployer": DEPLOYER,
            "allowed_writer": DEPLOYER,
            "ledger_root": tmp_path / "deployments",
        }
        values.update(overrides)
        return RunSettings(**values)

    return _build


@pytest.fixture
def make_orchestrator(
    tmp_path: Path,
) -> Callable[..., tuple[DeploymentOrchestrator, FakeChain, FakeFactory]]:
    """Build an orchestrator over a fresh fake chain; extra kwargs go to the constructor."""

    def _build(
        chain_id: int = 1,
        *,
        session: FakeSession | None = None,
        caller: str = DEPLOYER,
        started_at: datetime = FIXED_START,
        **kwargs: Any,
    ) -> tuple[DeploymentOrchestrator, FakeChain, FakeFactory]:
        fake_chain = FakeChain(chain_id=chain_id)
        fake_factory = FakeFactory(fake_chain, caller=caller)
        orchestrator = DeploymentOrchestrator(
            factory=fake_factory,
            environment=fake_chain,
            session=session,
            clock=lambda: started_at,
            **kwargs,
        )
        return orchestrator, fake_chain, fake_factory

    return _build

