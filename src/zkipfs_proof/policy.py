"""Verification rules and policy files.

A policy file is YAML or JSON with a ``rules`` list::

    rules:
      - type: min_security_level
        bits: 192
      - type: max_proof_size
        bytes: 1048576
      - type: required_proof_system
        system: dev-hmac-sha256
        name: dev-only
        description: proofs must come from the development backend
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import yaml

from .errors import ConfigurationError
from .types import Proof


class PolicyError(ConfigurationError):
    """Raised when a policy file or rule definition is invalid."""

    kind = "policy_error"


@dataclass(frozen=True)
class MinSecurityLevel:
    bits: int
    name: str = "min_security_level"
    description: str = ""

    def __post_init__(self) -> None:
        if not self.description:
            object.__setattr__(self, "description", f"security level must be at least {self.bits} bits")

    def check(self, proof: Proof) -> bool:
        return proof.metadata.security.security_level >= self.bits


@dataclass(frozen=True)
class MaxProofSize:
    bytes: int
    name: str = "max_proof_size"
    description: str = ""

    def __post_init__(self) -> None:
        if not self.description:
            object.__setattr__(self, "description", f"proof must be at most {self.bytes} bytes")

    def check(self, proof: Proof) -> bool:
        return proof.metadata.performance.proof_size_bytes <= self.bytes


@dataclass(frozen=True)
class RequiredProofSystem:
    system: str
    name: str = "required_proof_system"
    description: str = ""

    def __post_init__(self) -> None:
        if not self.description:
            object.__setattr__(self, "description", f"proof system must be {self.system}")

    def check(self, proof: Proof) -> bool:
        return proof.metadata.security.proof_system == self.system


@dataclass(frozen=True)
class CustomRule:
    """Rule backed by an arbitrary predicate over the proof."""

    name: str
    predicate: Callable[[Proof], bool] = field(compare=False)
    description: str = "custom predicate rejected the proof"

    def check(self, proof: Proof) -> bool:
        return bool(self.predicate(proof))


VerificationRule = Union[MinSecurityLevel, MaxProofSize, RequiredProofSystem, CustomRule]


def evaluate_rules(rules: Iterable[VerificationRule], proof: Proof) -> List[str]:
    """Return one warning per failing rule; an empty list means every rule passed."""
    warnings: List[str] = []
    for rule in rules:
        try:
            passed = rule.check(proof)
        except Exception as exc:
            warnings.append(f"Custom rule '{rule.name}' failed: {exc}")
            passed = False
        if not passed:
            warnings.append(f"Custom rule '{rule.name}' failed: {rule.description}")
    return warnings


_RULE_TYPES = {
    "min_security_level": (MinSecurityLevel, "bits"),
    "max_proof_size": (MaxProofSize, "bytes"),
    "required_proof_system": (RequiredProofSystem, "system"),
}


def rule_from_dict(entry: Dict[str, Any]) -> VerificationRule:
    if not isinstance(entry, dict):
        raise PolicyError("policy rule must be a mapping")
    kind = entry.get("type")
    if kind not in _RULE_TYPES:
        raise PolicyError(f"unknown policy rule type {kind!r}")
    cls, param = _RULE_TYPES[kind]
    if param not in entry:
        raise PolicyError(f"policy rule {kind!r} requires '{param}'")
    value = entry[param]
    if param != "system":
        try:
            value = int(value)
        except (TypeError, ValueError) as exc:
            raise PolicyError(f"policy rule {kind!r}: '{param}' must be an integer") from exc
    kwargs: Dict[str, Any] = {param: value}
    if entry.get("name"):
        kwargs["name"] = str(entry["name"])
    if entry.get("description"):
        kwargs["description"] = str(entry["description"])
    return cls(**kwargs)


def rules_from_config(data: Optional[Dict[str, Any]]) -> List[VerificationRule]:
    if not data:
        return []
    raw = data.get("rules", [])
    if not isinstance(raw, list):
        raise PolicyError("policy 'rules' must be a list")
    return [rule_from_dict(entry) for entry in raw]


def _load_document(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text()
    except OSError as exc:
        raise PolicyError(f"cannot read policy file {path}: {exc}") from exc
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise PolicyError(f"policy file is not valid {path.suffix.lstrip('.') or 'YAML'}: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PolicyError(f"policy file must contain a mapping: {path}")
    return data


def load_policy(path: Path | str | None) -> List[VerificationRule]:
    """Load verification rules from a policy file if provided."""
    if path is None:
        return []
    return rules_from_config(_load_document(Path(path)))


__all__ = [
    "PolicyError",
    "MinSecurityLevel",
    "MaxProofSize",
    "RequiredProofSystem",
    "CustomRule",
    "VerificationRule",
    "evaluate_rules",
    "rule_from_dict",
    "rules_from_config",
    "load_policy",
]
