"""
xdeploy — configuration schema.

Every setting is one ``Setting`` row in ``SETTINGS``: its dotted location,
its default, how a raw TOML value is checked and normalized, and whether an
``XDEPLOY_*`` variable may override it. Validation, defaults, env bindings
and path normalization all read the same table, so a new setting is a
one-line change.

Signing material never lives in ``xdeploy.toml``; any unknown key that looks
like a secret is reported as such rather than as a typo.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal

from eth_utils import is_address, to_checksum_address

from xdeploy.constants import CONFIG_SCHEMA_VERSION, DEFAULT_FACTORY_ADDRESS

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

EnvKind = Literal["str", "bool", "int_list"]

_CATEGORY = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_SUFFIX = re.compile(r"^[A-Za-z0-9_.]+$")
_PROFILE_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")
_SECRET_HINT = re.compile(r"(?i)secret|passw|mnemonic|private|credential|api_?key|token|^key$")


class InvalidSetting(ValueError):
    """Raised by a setting parser; ``at`` narrows the path to an item inside it."""

    def __init__(self, message: str, at: str = "") -> None:
        super().__init__(message)
        self.at = at


@dataclass(frozen=True, slots=True)
class Setting:
    section: str
    key: str
    parse: Callable[[object], object]
    default: object = None
    env: EnvKind | None = "str"
    is_path: bool = False

    @property
    def dotted(self) -> str:
        return f"{self.section}.{self.key}"

    @property
    def env_name(self) -> str:
        return f"XDEPLOY_{self.section}_{self.key}".upper()


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when a config fails validation; carries every issue found."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{lines or '- <root>: unknown validation failure'}")


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------


def _text(value: object) -> str:
    if not isinstance(value, str):
        raise InvalidSetting(f"expected string, got {type(value).__name__}")
    return value.strip()


def _non_empty_text(value: object) -> str:
    text = _text(value)
    if not text:
        raise InvalidSetting("must not be empty")
    return text


def _address(value: object) -> str:
    text = _non_empty_text(value)
    if not is_address(text):
        raise InvalidSetting("must be a 0x-prefixed 20-byte address with a valid checksum")
    return to_checksum_address(text)


def _category(value: object) -> str:
    # Empty is representable; setup() refuses to run without a category.
    text = _text(value)
    if text and not _CATEGORY.fullmatch(text):
        raise InvalidSetting("must match ^[A-Za-z0-9][A-Za-z0-9_.-]*$")
    return text


def _schema_version(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSetting(f"expected integer, got {type(value).__name__}")
    if value != ConfigSchemaVersion:
        raise InvalidSetting(migration_guidance(value))
    return value


def _chain_ids(value: object) -> list[int]:
    if not isinstance(value, (list, tuple)):
        raise InvalidSetting(f"expected array, got {type(value).__name__}")
    for index, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, int) or item < 1:
            raise InvalidSetting("must be a positive integer chain id", at=f"[{index}]")
    # Empty is representable; setup() reports it as EmptyMainnetChainIds.
    return sorted(set(value))


def _suffixes(value: object) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise InvalidSetting(f"expected table, got {type(value).__name__}")
    parsed: dict[str, str] = {}
    for chain_key in sorted(value, key=str):
        key = str(chain_key)
        if not key.isdigit() or int(key) < 1:
            raise InvalidSetting("key must be a positive chain id", at=f".{key}")
        suffix = value[chain_key]
        if not isinstance(suffix, str) or not _SUFFIX.fullmatch(suffix):
            raise InvalidSetting("suffix must not contain '-' or whitespace", at=f".{key}")
        parsed[str(int(key))] = suffix
    return parsed


def _path_text(value: object) -> str:
    text = _non_empty_text(value)
    if "\x00" in text:
        raise InvalidSetting("must not contain NUL bytes")
    return text


def _log_level(value: object) -> str:
    text = _non_empty_text(value).upper()
    if text not in LOG_LEVELS:
        raise InvalidSetting(f"expected one of: {', '.join(LOG_LEVELS)}")
    return text


def _flag(value: object) -> bool:
    if not isinstance(value, bool):
        raise InvalidSetting(f"expected boolean, got {type(value).__name__}")
    return value


SETTINGS: Final[tuple[Setting, ...]] = (
    Setting("meta", "schema_version", _schema_version, ConfigSchemaVersion, env=None),
    Setting("deployment", "category", _category, ""),
    Setting("deployment", "factory_address", _address, DEFAULT_FACTORY_ADDRESS),
    Setting("deployment", "deployer", _address),
    Setting("deployment", "allowed_writer", _address),
    Setting("deployment", "prod_owner", _address),
    Setting("deployment", "owner", _address),
    Setting("chains", "production_chain_ids", _chain_ids, [1], env="int_list"),
    Setting("chains", "version_suffixes", _suffixes, {}, env=None),
    Setting("ledger", "root", _path_text, "deployments/", is_path=True),
    Setting("observability", "log_level", _log_level, "INFO"),
    Setting("observability", "log_dir", _path_text, "logs/", is_path=True),
    Setting("observability", "log_to_stdout", _flag, True, env="bool"),
)

SECTIONS: Final[tuple[str, ...]] = tuple(dict.fromkeys(item.section for item in SETTINGS))
_BY_SECTION: Final[dict[str, dict[str, Setting]]] = {
    section: {item.key: item for item in SETTINGS if item.section == section}
    for section in SECTIONS
}
# Sections a profile may overlay; the schema version is not a per-profile choice.
_PROFILE_SECTIONS: Final[tuple[str, ...]] = tuple(s for s in SECTIONS if s != "meta")

BUILTIN_PROFILES: Final[dict[str, dict[str, Any]]] = {
    "verbose": {"observability": {"log_level": "DEBUG"}},
    "quiet": {"observability": {"log_level": "WARNING", "log_to_stdout": False}},
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def default_config() -> dict[str, Any]:
    """Built-in defaults; optional addresses are absent rather than ``None``."""

    config: dict[str, Any] = {section: {} for section in SECTIONS}
    for item in SETTINGS:
        if item.default is not None:
            config[item.section][item.key] = copy.deepcopy(item.default)
    config["profiles"] = copy.deepcopy(BUILTIN_PROFILES)
    return config


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade xdeploy.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the xdeploy runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; tables merge, everything else replaces."""

    merged = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(
    config: Mapping[str, Any], *, active_profile: str | None = None
) -> ConfigValidationResult:
    """Check every section, profile overlays included, and collect all issues."""

    issues: list[ConfigValidationIssue] = []
    normalized: dict[str, Any] = {}

    for key in sorted(config):
        if key not in SECTIONS and key != "profiles":
            issues.append(_unknown_key_issue(key, key))
    for section in SECTIONS:
        normalized[section] = _validate_section(
            config.get(section, {}), section, section, issues, partial=False
        )

    profiles = config.get("profiles", {})
    if not isinstance(profiles, Mapping):
        issues.append(ConfigValidationIssue("profiles", "expected table"))
        profiles = {}
    normalized["profiles"] = {}
    for name in sorted(profiles):
        normalized["profiles"][name] = _validate_profile(name, profiles[name], issues)

    if active_profile and active_profile not in profiles:
        message = f"profile {active_profile!r} is not defined"
        issues.append(ConfigValidationIssue("profiles", message))

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(
    config: Mapping[str, Any], *, active_profile: str | None = None
) -> dict[str, Any]:
    result = validate_config(config, active_profile=active_profile)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def apply_profile_overlay(config: Mapping[str, Any], profile: str) -> dict[str, Any]:
    """Merge the named profile over ``config`` and re-validate the result."""

    profiles = config.get("profiles", {})
    if profile not in profiles:
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", f"profile {profile!r} is not defined"),)
        )
    return assert_valid_config(merge_config(config, profiles[profile]), active_profile=profile)


def redact_config(config: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``config`` with secret-looking keys masked, for display."""

    def _walk(value: object) -> object:
        if isinstance(value, Mapping):
            return {
                str(key): "<redacted>" if _SECRET_HINT.search(str(key)) else _walk(item)
                for key, item in sorted(value.items())
            }
        if isinstance(value, (list, tuple)):
            return [_walk(item) for item in value]
        return value

    walked = _walk(config)
    return walked if isinstance(walked, dict) else {}


def settings_in(section: str) -> Mapping[str, Setting]:
    return _BY_SECTION.get(section, {})


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _validate_section(
    raw: object,
    section: str,
    path: str,
    issues: list[ConfigValidationIssue],
    *,
    partial: bool,
) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        issues.append(ConfigValidationIssue(path, f"expected table, got {type(raw).__name__}"))
        return {}

    known = _BY_SECTION[section]
    out: dict[str, Any] = {}
    for key in sorted(raw, key=str):
        if key not in known:
            issues.append(_unknown_key_issue(f"{path}.{key}", str(key)))
            continue
        try:
            out[key] = known[key].parse(raw[key])
        except InvalidSetting as exc:
            issues.append(ConfigValidationIssue(f"{path}.{key}{exc.at}", str(exc)))

    if not partial:
        for key, item in known.items():
            if key not in raw and item.default is not None:
                issues.append(ConfigValidationIssue(f"{path}.{key}", "missing required field"))
    return out


def _validate_profile(
    name: str, overlay: object, issues: list[ConfigValidationIssue]
) -> dict[str, Any]:
    path = f"profiles.{name}"
    if not _PROFILE_NAME.fullmatch(name):
        issues.append(ConfigValidationIssue(path, "profile name must match ^[a-z][a-z0-9_-]*$"))
        return {}
    if not isinstance(overlay, Mapping):
        issues.append(ConfigValidationIssue(path, "profile overlay must be a table"))
        return {}

    out: dict[str, Any] = {}
    for section in sorted(overlay):
        if section not in _PROFILE_SECTIONS:
            issues.append(_unknown_key_issue(f"{path}.{section}", str(section)))
            continue
        out[section] = _validate_section(
            overlay[section], section, f"{path}.{section}", issues, partial=True
        )
    return out


def _unknown_key_issue(path: str, key: str) -> ConfigValidationIssue:
    if _SECRET_HINT.search(key):
        return ConfigValidationIssue(
            path, "embedded secret values are forbidden; keep signing material out of config"
        )
    return ConfigValidationIssue(path, "unknown field")


__all__ = [
    "BUILTIN_PROFILES",
    "LOG_LEVELS",
    "SECTIONS",
    "SETTINGS",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "EnvKind",
    "InvalidSetting",
    "Setting",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "settings_in",
    "validate_config",
]
