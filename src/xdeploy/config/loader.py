"""
xdeploy — runtime config loader.

Precedence, highest first: CLI overrides, ``XDEPLOY_*`` environment
variables, the selected profile, ``xdeploy.toml``, built-in defaults. Only
settings whose schema row declares an env kind can be set from the
environment; relative paths resolve against the config file's directory.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from xdeploy.config.schema import (
    SETTINGS,
    Setting,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "xdeploy.toml"
ENV_PREFIX: Final[str] = "XDEPLOY_"
PROFILE_ENV: Final[str] = f"{ENV_PREFIX}PROFILE"

_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """The config file is missing or unreadable, or an override cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    ``cli_overrides`` maps dotted setting names (``"ledger.root"``) to values.
    An explicit ``config_path`` must exist; the implicit ``./xdeploy.toml``
    may be absent, in which case defaults apply.
    """

    env = os.environ if environ is None else environ
    path = Path(config_path).expanduser().resolve() if config_path else _default_path()

    config = assert_valid_config(merge_config(default_config(), _read_toml(path, config_path)))

    selected = (profile or env.get(PROFILE_ENV, "")).strip() or None
    if selected is not None:
        config = apply_profile_overlay(config, selected)

    config = merge_config(config, env_overrides(env))
    config = merge_config(config, _nest(cli_overrides or {}))
    config = assert_valid_config(config, active_profile=selected)
    return _resolve_paths(config, path.parent)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Nested overrides for every env-bindable setting present in ``environ``."""

    overrides: dict[str, Any] = {}
    for item in SETTINGS:
        if item.env is None or item.env_name not in environ:
            continue
        value = _coerce(item, environ[item.env_name])
        overrides.setdefault(item.section, {})[item.key] = value
    return overrides


def dump_effective_config(config: Mapping[str, Any]) -> str:
    """Deterministic, redacted JSON rendering of ``config``."""

    return json.dumps(redact_config(config), sort_keys=True, indent=2, ensure_ascii=False)


def _default_path() -> Path:
    return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()


def _read_toml(path: Path, requested: str | Path | None) -> dict[str, Any]:
    if not path.is_file():
        if requested:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _coerce(item: Setting, raw: str) -> object:
    text = raw.strip()
    if item.env == "bool":
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigLoadError(f"{item.env_name} must be one of true/false/yes/no/on/off/1/0")
    if item.env == "int_list":
        try:
            return [int(part) for part in text.split(",") if part.strip()]
        except ValueError as exc:
            raise ConfigLoadError(
                f"{item.env_name} must be a comma-separated list of chain ids"
            ) from exc
    return text


def _nest(flat: Mapping[str, object]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for dotted, value in flat.items():
        section, _, key = dotted.partition(".")
        if not section or not key:
            raise ConfigLoadError(f"override {dotted!r} must look like 'section.key'")
        nested.setdefault(section, {})[key] = value
    return nested


def _resolve_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    for item in SETTINGS:
        raw = config[item.section].get(item.key)
        if not item.is_path or not isinstance(raw, str):
            continue
        candidate = Path(os.path.expandvars(raw)).expanduser()
        if not candidate.is_absolute():
            candidate = base_dir / candidate
        config[item.section][item.key] = Path(os.path.normpath(candidate)).as_posix()
    return config


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PROFILE_ENV",
    "ConfigLoadError",
    "dump_effective_config",
    "env_overrides",
    "load_config",
]
