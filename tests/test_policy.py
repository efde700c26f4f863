"""Tests for verification rules and policy files."""
from __future__ import annotations

import json

import pytest

from zkipfs_proof.policy import (
    CustomRule,
    MaxProofSize,
    MinSecurityLevel,
    PolicyError,
    RequiredProofSystem,
    evaluate_rules,
    load_policy,
    rule_from_dict,
)


class TestRuleFromDict:
    def test_builds_each_rule_type(self):
        assert rule_from_dict({"type": "min_security_level", "bits": "192"}) == MinSecurityLevel(192)
        assert rule_from_dict({"type": "max_proof_size", "bytes": 4096}) == MaxProofSize(4096)
        assert rule_from_dict({"type": "required_proof_system", "system": "groth16"}) == RequiredProofSystem(
            "groth16"
        )

    def test_name_and_description_override(self):
        rule = rule_from_dict(
            {"type": "min_security_level", "bits": 256, "name": "high", "description": "needs 256"}
        )
        assert rule.name == "high"
        assert rule.description == "needs 256"

    def test_unknown_type(self):
        with pytest.raises(PolicyError):
            rule_from_dict({"type": "max_age"})

    def test_missing_param(self):
        with pytest.raises(PolicyError, match="requires 'bits'"):
            rule_from_dict({"type": "min_security_level"})

    def test_non_integer_param(self):
        with pytest.raises(PolicyError):
            rule_from_dict({"type": "max_proof_size", "bytes": "lots"})

    def test_non_mapping(self):
        with pytest.raises(PolicyError):
            rule_from_dict(["min_security_level", 128])


class TestLoadPolicy:
    def test_none_means_no_rules(self):
        assert load_policy(None) == []

    def test_yaml(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(
            "rules:\n"
            "  - type: min_security_level\n"
            "    bits: 192\n"
            "  - type: required_proof_system\n"
            "    system: dev-hmac-sha256\n"
        )
        assert load_policy(path) == [MinSecurityLevel(192), RequiredProofSystem("dev-hmac-sha256")]

    def test_json(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"rules": [{"type": "max_proof_size", "bytes": 1024}]}))
        assert load_policy(path) == [MaxProofSize(1024)]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("")
        assert load_policy(path) == []

    def test_rules_must_be_list(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("rules: min_security_level\n")
        with pytest.raises(PolicyError):
            load_policy(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("- type: min_security_level\n")
        with pytest.raises(PolicyError):
            load_policy(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text("{not json")
        with pytest.raises(PolicyError):
            load_policy(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PolicyError):
            load_policy(tmp_path / "absent.yaml")


class TestEvaluateRules:
    def test_all_pass(self, proof):
        assert evaluate_rules([MinSecurityLevel(128), MaxProofSize(10**9)], proof) == []

    def test_failures_are_reported_in_order(self, proof):
        warnings = evaluate_rules([MaxProofSize(1), RequiredProofSystem("groth16")], proof)
        assert warnings == [
            "Custom rule 'max_proof_size' failed: proof must be at most 1 bytes",
            "Custom rule 'required_proof_system' failed: proof system must be groth16",
        ]

    def test_custom_predicate(self, proof):
        rule = CustomRule(name="txt-only", predicate=lambda p: p.metadata.file_info.filename.endswith(".txt"))
        assert evaluate_rules([rule], proof) == []
