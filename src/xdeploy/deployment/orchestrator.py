"""
xdeploy — deterministic-address deployment orchestrator.

Lifecycle
- ``UNINITIALIZED`` -> ``setup()`` -> ``READY``
- ``READY``/``PROCESSING`` -> ``deploy()``/``predict()`` -> ``PROCESSING``
- ``READY``/``PROCESSING`` -> ``finalize()`` -> ``FINALIZED``

Per artifact, ``deploy`` runs: identify (name, version) -> apply the chain's
version suffix -> derive and guard the salt -> ask the factory for the
address -> record it in the ``all`` view -> short-circuit when code already
exists -> write the verification record -> instantiate (optionally with an
atomic init call) -> check the factory landed on the predicted address ->
record the ``new`` entry.

Nothing touches disk until ``finalize``; a failure anywhere before that
aborts the run with both ledger files untouched.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from xdeploy.constants import LEDGER_DIR
from xdeploy.deployment.hooks import DefaultHooks
from xdeploy.deployment.identifier import ArtifactIdentifier
from xdeploy.deployment.ledger import DeploymentLedger, ledger_paths
from xdeploy.deployment.salts import guard_salt
from xdeploy.deployment.verification import VerificationRecorder
from xdeploy.domain.models import (
    AddressPrediction,
    DeploymentOutcome,
    RunContext,
    RunState,
    is_zero_address,
    normalize_address,
    parse_version,
    same_address,
)
from xdeploy.errors import (
    AddressMismatch,
    BroadcastSenderMismatch,
    EmptyMainnetChainIds,
    InitAmountWithoutInitData,
    InvalidAddressSetting,
    OwnerNotDeployer,
    RunFinalized,
    SetupAlreadyCalled,
    SetupNotCalled,
    SetupNotOverridden,
    ZeroProdOwner,
)
from xdeploy.observability.logging import correlation_scope

if TYPE_CHECKING:
    from xdeploy.deployment.collaborators import (
        BroadcastSession,
        FactoryService,
        TrialEnvironment,
        VerificationSink,
    )
    from xdeploy.deployment.hooks import DeploymentHooks
    from xdeploy.deployment.ledger import FlushResult
    from xdeploy.domain.models import ArtifactVersion, InitCall

__all__ = ["DeploymentOrchestrator", "RunSettings"]


@dataclass(frozen=True, slots=True)
class RunSettings:
    """Operator-supplied inputs to ``setup``; normally built from config."""

    category: str
    deployer: str
    allowed_writer: str | None = None
    prod_owner: str | None = None
    owner: str | None = None
    production_chain_ids: tuple[int, ...] = (1,)
    version_suffixes: Mapping[int, str] = field(default_factory=dict)
    ledger_root: Path = Path(LEDGER_DIR)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> RunSettings:
        deployment = config.get("deployment", {})
        chains = config.get("chains", {})
        ledger = config.get("ledger", {})
        suffixes = chains.get("version_suffixes", {})
        return cls(
            category=str(deployment.get("category", "")),
            deployer=str(deployment.get("deployer", "")),
            allowed_writer=deployment.get("allowed_writer"),
            prod_owner=deployment.get("prod_owner"),
            owner=deployment.get("owner"),
            production_chain_ids=tuple(chains.get("production_chain_ids", ())),
            version_suffixes={int(key): str(value) for key, value in suffixes.items()},
            ledger_root=Path(ledger.get("root", str(LEDGER_DIR))),
        )


class DeploymentOrchestrator:
    """Sequence identification, prediction, deployment and ledger updates."""

    def __init__(
        self,
        *,
        factory: FactoryService,
        environment: TrialEnvironment,
        session: BroadcastSession | None = None,
        hooks: DeploymentHooks | None = None,
        verifier: VerificationSink | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: Any | None = None,
    ) -> None:
        self._factory = factory
        self._environment = environment
        self._session = session
        self._hooks = hooks
        self._verifier = verifier if verifier is not None else VerificationRecorder()
        self._clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

        self._state = RunState.UNINITIALIZED
        self._context: RunContext | None = None
        self._ledger: DeploymentLedger | None = None
        self._identifier: ArtifactIdentifier | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def context(self) -> RunContext:
        if self._context is None:
            raise SetupNotCalled("context")
        return self._context

    @property
    def ledger(self) -> DeploymentLedger:
        if self._ledger is None:
            raise SetupNotCalled("ledger")
        return self._ledger

    @property
    def owner(self) -> str:
        return self.context.owner

    def setup(self, settings: RunSettings) -> RunContext:
        if self._state is not RunState.UNINITIALIZED:
            raise SetupAlreadyCalled(self._state.value)
        if not settings.category.strip():
            raise SetupNotOverridden()
        if not settings.production_chain_ids:
            raise EmptyMainnetChainIds()

        deployer = _setting_address("deployer", settings.deployer)
        prod_owner = None
        if settings.prod_owner is not None:
            prod_owner = _setting_address("prod_owner", settings.prod_owner)
            if is_zero_address(prod_owner):
                raise ZeroProdOwner()

        chain_id = int(self._environment.chain_id)
        is_production = chain_id in settings.production_chain_ids
        if settings.owner is not None and not is_production:
            owner = _setting_address("owner", settings.owner)
            if not same_address(owner, deployer):
                raise OwnerNotDeployer(owner=owner, deployer=deployer, chain_id=chain_id)

        allowed_writer = (
            _setting_address("allowed_writer", settings.allowed_writer)
            if settings.allowed_writer
            else None
        )
        context = RunContext(
            category=settings.category.strip(),
            deployer=deployer,
            chain_id=chain_id,
            is_production=is_production,
            factory_address=normalize_address(self._factory.address),
            prod_owner=prod_owner,
            version_suffix=settings.version_suffixes.get(chain_id, ""),
            allowed_writer=allowed_writer,
            started_at=self._clock(),
        )

        paths = ledger_paths(
            settings.ledger_root, context.category, context.chain_id, context.timestamp_tag
        )
        ledger = DeploymentLedger(paths, logger=self._logger)
        ledger.load_prior()

        if self._hooks is None:
            self._hooks = DefaultHooks(settings.ledger_root)
        self._identifier = ArtifactIdentifier(
            self._environment, session=self._session, logger=self._logger
        )
        self._ledger = ledger
        self._context = context
        self._state = RunState.READY
        self._logger.info(
            "run_ready",
            category=context.category,
            chain_id=context.chain_id,
            deployer=context.deployer,
            production=context.is_production,
            version_suffix=context.version_suffix,
        )
        return context

    def finalize(self, writer: str | None = None) -> FlushResult:
        """Flush the ledger; the writer defaults to the open broadcast sender."""

        if self._state is RunState.UNINITIALIZED:
            raise SetupNotCalled("finalize")
        if self._state is RunState.FINALIZED:
            raise RunFinalized("finalize")

        actual_writer = writer if writer is not None else self._active_sender()
        result = self.ledger.flush(self.context.allowed_writer, actual_writer)
        self._state = RunState.FINALIZED
        return result

    # ------------------------------------------------------------------
    # Per-artifact operations
    # ------------------------------------------------------------------

    def predict(self, payload: bytes) -> AddressPrediction:
        context = self._require_active("predict")
        version = self._identify(payload, context)
        return self._predict_version(context, version)

    def predict_version(self, version: str) -> AddressPrediction:
        """Prediction for callers that already know the artifact's version."""

        context = self._require_active("predict_version")
        parsed = parse_version(version).with_suffix(context.version_suffix)
        return self._predict_version(context, parsed)

    def deploy(self, payload: bytes, *, init: InitCall | None = None) -> DeploymentOutcome:
        context = self._require_active("deploy")
        self._state = RunState.PROCESSING

        version = self._identify(payload, context)
        with correlation_scope(
            category=context.category, chain_id=context.chain_id, artifact_version=version.raw
        ):
            return self._deploy_identified(context, payload, version, init)

    def salt_for(self, version: str) -> bytes:
        """Raw salt for ``version`` after the chain's suffix is applied."""

        context = self._require_active("salt_for")
        parsed = parse_version(version).with_suffix(context.version_suffix)
        return self._require_hooks().salt(context, parsed)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _deploy_identified(
        self,
        context: RunContext,
        payload: bytes,
        version: ArtifactVersion,
        init: InitCall | None,
    ) -> DeploymentOutcome:
        prediction = self._predict_version(context, version)
        address = prediction.address
        log = self._logger.bind(address=address)

        self.ledger.record_all(version.raw, address)
        if self._environment.has_code(address):
            log.info("artifact_already_deployed")
            return DeploymentOutcome(
                deployed=False, address=address, version=version, salt=prediction.salt
            )

        init_call = init if init is not None else self._require_hooks().init_call(context, version)
        if init_call.is_empty and init_call.value != 0:
            raise InitAmountWithoutInitData(init_call.value)

        verification = self._verifier.prepare(
            context=context,
            version=version,
            address=address,
            payload=payload,
            init=init_call,
            guarded_salt=prediction.guarded_salt,
            path=self._require_hooks().verification_path(context, version),
        )
        if not verification.ok:
            log.warning(
                "verification_record_skipped",
                error=verification.error.value if verification.error else None,
                detail=verification.message,
            )

        if init_call.is_empty:
            deployed_to = self._factory.deploy_create3(prediction.salt, payload)
        else:
            deployed_to = self._factory.deploy_create3_and_init(
                prediction.salt, payload, init_call.data, init_call.value
            )

        if not same_address(deployed_to, address):
            raise AddressMismatch(predicted=address, actual=deployed_to)

        self.ledger.record_new(version.raw, address)
        log.info("artifact_deployed", init=not init_call.is_empty)
        return DeploymentOutcome(
            deployed=True, address=address, version=version, salt=prediction.salt
        )

    def _require_active(self, operation: str) -> RunContext:
        if self._state is RunState.UNINITIALIZED:
            raise SetupNotCalled(operation)
        if self._state is RunState.FINALIZED:
            raise RunFinalized(operation)

        context = self.context
        sender = self._active_sender()
        if sender is not None and not same_address(sender, context.deployer):
            raise BroadcastSenderMismatch(expected=context.deployer, actual=sender)
        return context.with_broadcast_sender(sender)

    def _active_sender(self) -> str | None:
        if self._session is None:
            return None
        return self._session.active_sender()

    def _identify(self, payload: bytes, context: RunContext) -> ArtifactVersion:
        if self._identifier is None:
            raise SetupNotCalled("identify")
        return self._identifier.identify(payload).with_suffix(context.version_suffix)

    def _predict_version(self, context: RunContext, version: ArtifactVersion) -> AddressPrediction:
        salt = self._require_hooks().salt(context, version)
        guarded = guard_salt(salt, sender=context.deployer, chain_id=context.chain_id)
        address = normalize_address(self._factory.predict_address(guarded))
        return AddressPrediction(version=version, salt=salt, guarded_salt=guarded, address=address)

    def _require_hooks(self) -> DeploymentHooks:
        if self._hooks is None:
            raise SetupNotCalled("hooks")
        return self._hooks


def _setting_address(setting: str, value: str | None) -> str:
    try:
        return normalize_address(value or "")
    except ValueError as exc:
        raise InvalidAddressSetting(setting, value) from exc
