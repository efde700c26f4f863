"""Tests for proof document persistence."""
from __future__ import annotations

import json
import os

import pytest

from zkipfs_proof.errors import FileError, SerializationError
from zkipfs_proof.storage import load_proof, save_proof


def _write_doc(path, doc):
    path.write_text(json.dumps(doc))
    return path


class TestSaveLoad:
    def test_round_trip(self, proof, tmp_path):
        path = save_proof(proof, tmp_path / "out" / "notes.proof.json")

        assert path.exists()
        assert load_proof(path) == proof
        assert sorted(p.name for p in path.parent.iterdir()) == ["notes.proof.json"]

    def test_document_shape(self, proof, tmp_path):
        path = save_proof(proof, tmp_path / "p.json")
        doc = json.loads(path.read_text())

        assert doc["schema"] == "zkipfs_proof_v1"
        assert doc["content_hash"] == proof.content_hash.hex()
        assert doc["compression"] == "gzip"
        assert doc["content_selection"]["type"] == "pattern"

    def test_failed_replace_keeps_original(self, proof, tmp_path, monkeypatch):
        path = tmp_path / "p.json"
        path.write_text("original")

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(FileError):
            save_proof(proof, path)

        assert path.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["p.json"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileError):
            load_proof(tmp_path / "absent.json")


class TestMalformedDocuments:
    def test_not_json(self, tmp_path):
        path = tmp_path / "p.json"
        path.write_text("{ this is not json")
        with pytest.raises(SerializationError):
            load_proof(path)

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "p.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(SerializationError):
            load_proof(path)

    def test_wrong_schema(self, proof, tmp_path):
        doc = proof.to_dict()
        doc["schema"] = "something_else_v9"
        with pytest.raises(SerializationError, match="schema"):
            load_proof(_write_doc(tmp_path / "p.json", doc))

    def test_bad_base64(self, proof, tmp_path):
        doc = proof.to_dict()
        doc["backend_receipt"] = "not base64!!"
        with pytest.raises(SerializationError):
            load_proof(_write_doc(tmp_path / "p.json", doc))

    def test_missing_field(self, proof, tmp_path):
        doc = proof.to_dict()
        del doc["root_hash"]
        with pytest.raises(SerializationError):
            load_proof(_write_doc(tmp_path / "p.json", doc))

    def test_array_document(self, tmp_path):
        with pytest.raises(SerializationError):
            load_proof(_write_doc(tmp_path / "p.json", [1, 2, 3]))
