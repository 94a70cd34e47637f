"""Verification records written before each real deployment.

A record captures what an explorer verifier or an auditor needs to tie an
address back to its payload. Writing it is best-effort: failures come back
as an error ``Outcome`` and never abort the deployment.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from xdeploy.domain.models import ErrorKind, Outcome
from xdeploy.utils.fs import atomic_write_text
from xdeploy.utils.hashing import sha256_bytes

if TYPE_CHECKING:
    from pathlib import Path

    from xdeploy.domain.models import ArtifactVersion, InitCall, RunContext

__all__ = ["VerificationRecorder", "build_record"]


def build_record(
    *,
    context: RunContext,
    version: ArtifactVersion,
    address: str,
    payload: bytes,
    init: InitCall,
    guarded_salt: bytes,
) -> dict[str, object]:
    return {
        "address": address,
        "category": context.category,
        "chain_id": context.chain_id,
        "deployer": context.deployer,
        "factory": context.factory_address,
        "guarded_salt": "0x" + guarded_salt.hex(),
        "init_data": "0x" + init.data.hex(),
        "init_value": init.value,
        "name": version.name,
        "payload_length": len(payload),
        "payload_sha256": sha256_bytes(payload),
        "version": version.raw,
    }


class VerificationRecorder:
    """Default ``VerificationSink`` writing one JSON file per pending deployment."""

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
    ) -> Outcome[Path]:
        record = build_record(
            context=context,
            version=version,
            address=address,
            payload=payload,
            init=init,
            guarded_salt=guarded_salt,
        )
        try:
            atomic_write_text(path, json.dumps(record, indent=2, sort_keys=True) + "\n")
        except (OSError, ValueError) as exc:
            # ValueError: path names the OS refuses, e.g. embedded NUL.
            return Outcome.failure(ErrorKind.IO_ERROR, str(exc))
        return Outcome.success(path)
