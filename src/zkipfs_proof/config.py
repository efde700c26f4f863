"""
zkipfs-proof configuration

Loads config from:
  1. Defaults
  2. Global config ($ZKIPFS_HOME/config.yaml or config.json, default ~/.zkipfs)
  3. Explicit config file (CLI --config)
  4. Environment variables

The global layer is skipped under pytest so tests never depend on a user's
home directory.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigurationError
from .policy import rules_from_config
from .types import ProofConfig
from .verifier import DEFAULT_MAX_PROOF_AGE_SECONDS, VerificationConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "proof": {
        "security_level": 128,
        "use_hardware_acceleration": True,
        "prover_type": "local",
        "backend": "dev",
        "max_memory_bytes": None,
        "max_file_size_bytes": 1024 * 1024 * 1024,
        "max_block_size": 256 * 1024,
        "timeout_seconds": 600,
        "compression": "gzip",
        "custom_metadata": {},
        "include_performance_metrics": True,
    },
    "verification": {
        "strict_verification": True,
        "include_verification_steps": False,
        "max_proof_age_seconds": DEFAULT_MAX_PROOF_AGE_SECONDS,
        "verify_metadata": True,
        "expected_proof_system": None,
        "max_workers": 4,
    },
    "policy": {
        "rules": [],
    },
}

_GLOBAL_NAMES = ("config.yaml", "config.yml", "config.json")


def zkipfs_home() -> Path:
    home = os.environ.get("ZKIPFS_HOME")
    return Path(home) if home else Path.home() / ".zkipfs"


def load_config(config_path: Optional[Path | str] = None) -> dict[str, Any]:
    """Return the merged configuration dict."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if not os.environ.get("PYTEST_CURRENT_TEST"):
        for name in _GLOBAL_NAMES:
            candidate = zkipfs_home() / name
            if candidate.exists():
                config = _merge(config, _read_file(candidate))
                LOGGER.debug("loaded global config from %s", candidate)
                break

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"config file not found: {path}")
        config = _merge(config, _read_file(path))
        LOGGER.debug("loaded config from %s", path)

    _apply_env_overrides(config)
    return config


def _read_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text()
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"could not read config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config {path} must contain a mapping")
    return data


def _merge(base: dict, override: dict) -> dict:
    """Deep merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, cast):
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"invalid {name}={raw!r}") from exc


def _apply_env_overrides(config: dict[str, Any]) -> None:
    proof = config.setdefault("proof", {})
    verification = config.setdefault("verification", {})

    security_level = _env_number("ZKIPFS_SECURITY_LEVEL", int)
    if security_level is not None:
        proof["security_level"] = security_level

    timeout = _env_number("ZKIPFS_TIMEOUT_SECONDS", float)
    if timeout is not None:
        proof["timeout_seconds"] = timeout

    compression = os.environ.get("ZKIPFS_COMPRESSION")
    if compression:
        proof["compression"] = compression.strip().lower()

    backend = os.environ.get("ZKIPFS_BACKEND")
    if backend:
        proof["backend"] = backend.strip()

    strict = os.environ.get("ZKIPFS_STRICT")
    if strict is not None:
        verification["strict_verification"] = _to_bool(strict)


def proof_config_from(config: dict[str, Any]) -> ProofConfig:
    return ProofConfig.from_dict(dict(config.get("proof") or {}))


def verification_config_from(config: dict[str, Any]) -> VerificationConfig:
    section = dict(config.get("verification") or {})
    known = set(VerificationConfig.__dataclass_fields__) - {"custom_rules"}
    unknown = set(section) - known
    if unknown:
        raise ConfigurationError(f"unknown verification config keys: {sorted(unknown)}")
    rules = rules_from_config(config.get("policy"))
    try:
        verification = VerificationConfig(custom_rules=rules, **section)
        if verification.max_proof_age_seconds is not None:
            verification.max_proof_age_seconds = int(verification.max_proof_age_seconds)
        verification.max_workers = int(verification.max_workers)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid verification config: {exc}") from exc
    if verification.max_workers < 1:
        raise ConfigurationError("verification.max_workers must be at least 1")
    return verification


__all__ = [
    "DEFAULT_CONFIG",
    "zkipfs_home",
    "load_config",
    "proof_config_from",
    "verification_config_from",
]
