"""
xdeploy — unit tests for config schema validation

Purpose
- Validate strict config schema behavior, structured errors, profile overlays, and redaction.

What this test file should cover
- Validates the repository's live xdeploy.toml successfully.
- Rejects unknown keys, invalid addresses and invalid chain ids with actionable paths.
- Rejects embedded secrets.
- Ensures redaction is recursive and non-destructive.
- The settings table: env names and which rows are bindable.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from xdeploy.config.schema import (
    SETTINGS,
    ConfigSchemaVersion,
    ConfigValidationError,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
    settings_in,
    validate_config,
)

REPO_ROOT = Path(__file__).resolve().parents[3]
DEPLOYER = "0x" + "11" * 20


def _load_toml(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _with(overlay: dict[str, object]) -> dict[str, object]:
    return merge_config(default_config(), overlay)


def _issue_paths(config: dict[str, object]) -> list[str]:
    return [issue.path for issue in validate_config(config).issues]


def test_repo_xdeploy_toml_validates_successfully() -> None:
    config = merge_config(default_config(), _load_toml(REPO_ROOT / "xdeploy.toml"))

    result = validate_config(config)

    assert result.is_valid, result.issues
    assert result.config is not None
    assert result.config["meta"]["schema_version"] == ConfigSchemaVersion
    assert result.config["chains"]["version_suffixes"] == {"11155111": "sepolia"}


def test_defaults_validate() -> None:
    assert validate_config(default_config()).is_valid


def test_unknown_key_rejection_is_explicit() -> None:
    assert _issue_paths(_with({"deployment": {"gas_price": 5}})) == ["deployment.gas_price"]


def test_addresses_are_checksummed_and_validated() -> None:
    shouted = DEPLOYER.upper().replace("0X", "0x")
    normalized = assert_valid_config(_with({"deployment": {"deployer": shouted}}))

    assert normalized["deployment"]["deployer"] == DEPLOYER
    assert _issue_paths(_with({"deployment": {"prod_owner": "0x1234"}})) == [
        "deployment.prod_owner"
    ]


def test_category_pattern_is_enforced() -> None:
    assert _issue_paths(_with({"deployment": {"category": "../escape"}})) == [
        "deployment.category"
    ]
    normalized = assert_valid_config(_with({"deployment": {"category": ""}}))
    assert normalized["deployment"]["category"] == ""


def test_production_chain_ids_are_sorted_and_deduplicated() -> None:
    normalized = assert_valid_config(_with({"chains": {"production_chain_ids": [10, 1, 10]}}))

    assert normalized["chains"]["production_chain_ids"] == [1, 10]
    assert _issue_paths(_with({"chains": {"production_chain_ids": [0]}})) == [
        "chains.production_chain_ids[0]"
    ]
    assert _issue_paths(_with({"chains": {"production_chain_ids": "1"}})) == [
        "chains.production_chain_ids"
    ]


def test_version_suffix_keys_and_values_are_validated() -> None:
    assert _issue_paths(_with({"chains": {"version_suffixes": {"5": "has-dash"}}})) == [
        "chains.version_suffixes.5"
    ]
    assert _issue_paths(_with({"chains": {"version_suffixes": {"mainnet": "x"}}})) == [
        "chains.version_suffixes.mainnet"
    ]
    normalized = assert_valid_config(_with({"chains": {"version_suffixes": {"05": "goerli"}}}))
    assert normalized["chains"]["version_suffixes"] == {"5": "goerli"}


def test_embedded_secret_is_rejected() -> None:
    result = validate_config(_with({"deployment": {"private_key": "0xdeadbeef"}}))

    assert not result.is_valid
    assert result.issues[0].path == "deployment.private_key"
    assert "secret" in result.issues[0].message


def test_schema_version_mismatch_gives_migration_guidance() -> None:
    result = validate_config(_with({"meta": {"schema_version": 2}}))

    assert "upgrade the xdeploy runtime" in result.issues[0].message


def test_profile_overlay_deep_merges_and_revalidates() -> None:
    merged = apply_profile_overlay(default_config(), "verbose")

    assert merged["observability"]["log_level"] == "DEBUG"
    assert merged["observability"]["log_to_stdout"] is True

    with pytest.raises(ConfigValidationError, match="not defined"):
        apply_profile_overlay(default_config(), "missing")


def test_profile_overlay_sections_are_validated() -> None:
    config = _with({"profiles": {"bad": {"deployment": {"deployer": "nope"}}}})

    assert _issue_paths(config) == ["profiles.bad.deployment.deployer"]


def test_redaction_is_recursive_and_preserves_shape() -> None:
    payload = {"deployment": {"category": "prod", "nested": {"api_key": "x", "ok": 1}}}

    redacted = redact_config(payload)

    assert redacted == {
        "deployment": {"category": "prod", "nested": {"api_key": "<redacted>", "ok": 1}}
    }
    assert payload["deployment"]["nested"]["api_key"] == "x"


def test_env_names_follow_section_and_key() -> None:
    names = {item.dotted: item.env_name for item in SETTINGS if item.env is not None}

    assert names["deployment.deployer"] == "XDEPLOY_DEPLOYMENT_DEPLOYER"
    assert names["chains.production_chain_ids"] == "XDEPLOY_CHAINS_PRODUCTION_CHAIN_IDS"
    assert names["observability.log_to_stdout"] == "XDEPLOY_OBSERVABILITY_LOG_TO_STDOUT"
    assert "meta.schema_version" not in names
    assert "chains.version_suffixes" not in names


def test_default_config_covers_every_defaulted_setting() -> None:
    config = default_config()

    for item in SETTINGS:
        if item.default is None:
            assert item.key not in config[item.section]
        else:
            assert config[item.section][item.key] == item.default
    assert {key for key, item in settings_in("ledger").items() if item.is_path} == {"root"}
