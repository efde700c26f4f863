"""Tests for the receipt model, guest program and development backend."""
from __future__ import annotations

import dataclasses
import hashlib

import pytest

from zkipfs_proof.backends import (
    DevModeBackend,
    Receipt,
    available_backends,
    encode_journal,
    get_backend,
)
from zkipfs_proof.backends.guest import compute_root_hash, run_guest
from zkipfs_proof.blocks import BlockStore, compute_cid
from zkipfs_proof.errors import ConfigurationError, ProvingError, SerializationError, VerificationError
from zkipfs_proof.selection import Pattern
from zkipfs_proof.types import Block, BlockLink, ProofCircuitInput


def _circuit_input(data: bytes = b"alpha beta gamma delta", needle: bytes = b"gamma", block_size: int = 8):
    blocks, _ = BlockStore(block_size).process(data)
    return ProofCircuitInput(
        blocks=tuple(blocks),
        selection=Pattern(needle),
        expected_content_hash=hashlib.sha256(needle).digest(),
    )


class TestRegistry:
    def test_dev_backend_registered(self):
        assert "dev" in available_backends()
        assert isinstance(get_backend("dev"), DevModeBackend)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            get_backend("does-not-exist")


class TestGuest:
    def test_journal_commits_structure_and_content(self):
        circuit_input = _circuit_input()
        output, cycles = run_guest(circuit_input)

        assert output.content_hash == hashlib.sha256(b"gamma").digest()
        assert output.root_hash == compute_root_hash(circuit_input.blocks)
        assert output.block_count == len(circuit_input.blocks)
        assert output.content_size == 5
        assert output.timestamp == cycles
        assert cycles > 0
        assert len(output.inclusion_hashes) >= 1

    def test_wrong_expected_hash(self):
        circuit_input = dataclasses.replace(_circuit_input(), expected_content_hash=b"\x00" * 32)
        with pytest.raises(ProvingError):
            run_guest(circuit_input)

    def test_corrupted_block(self):
        bad = Block(data=b"evil", cid=compute_cid(b"good"))
        circuit_input = ProofCircuitInput(
            blocks=(bad,),
            selection=Pattern(b"evil"),
            expected_content_hash=hashlib.sha256(b"evil").digest(),
        )
        with pytest.raises(ProvingError):
            run_guest(circuit_input)

    def test_root_hash_covers_link_names(self):
        chunk = Block(data=b"x", cid=compute_cid(b"x"))
        link_a = BlockLink(name="chunk_0", cid=chunk.cid, size=1)
        link_b = BlockLink(name="chunk_9", cid=chunk.cid, size=1)
        root_a = Block(data=b"r", cid=compute_cid(b"r"), links=(link_a,))
        root_b = Block(data=b"r", cid=compute_cid(b"r"), links=(link_b,))

        assert compute_root_hash([root_a, chunk]) != compute_root_hash([root_b, chunk])


class TestDevBackend:
    def test_prove_and_verify(self):
        backend = DevModeBackend()
        receipt = backend.prove(_circuit_input())

        assert receipt.program_id == backend.program_id
        assert backend.verify(receipt, backend.program_id)
        assert receipt.decode_journal().content_hash == hashlib.sha256(b"gamma").digest()

    def test_receipt_bytes_round_trip(self):
        receipt = DevModeBackend().prove(_circuit_input())
        assert Receipt.from_bytes(receipt.to_bytes()) == receipt

    def test_tampered_journal_rejected(self):
        backend = DevModeBackend()
        receipt = backend.prove(_circuit_input())
        forged = dataclasses.replace(
            receipt.decode_journal(),
            content_hash=hashlib.sha256(b"forged").digest(),
        )
        tampered = dataclasses.replace(receipt, journal=encode_journal(forged))

        assert not backend.verify(tampered, backend.program_id)

    def test_undecodable_journal_rejected(self):
        backend = DevModeBackend()
        receipt = dataclasses.replace(backend.prove(_circuit_input()), journal=b"\xff\x00")
        assert not backend.verify(receipt, backend.program_id)

    def test_wrong_program_id_rejected(self):
        backend = DevModeBackend()
        receipt = backend.prove(_circuit_input())
        assert not backend.verify(receipt, b"\x01" * 32)

    def test_foreign_program_cannot_be_verified(self):
        foreign = b"\x01" * 32
        receipt = dataclasses.replace(DevModeBackend().prove(_circuit_input()), program_id=foreign)
        with pytest.raises(VerificationError):
            DevModeBackend().verify(receipt, foreign)

    def test_other_seal_key_rejected(self):
        receipt = DevModeBackend(seal_key=b"key-one").prove(_circuit_input())
        other = DevModeBackend(seal_key=b"key-two")
        assert not other.verify(receipt, other.program_id)

    def test_guest_failure_surfaces_as_proving_error(self):
        circuit_input = _circuit_input(needle=b"missing")
        circuit_input = dataclasses.replace(circuit_input, expected_content_hash=b"\x00" * 32)
        with pytest.raises(ProvingError):
            DevModeBackend().prove(circuit_input)


class TestReceiptDecoding:
    def test_garbage(self):
        with pytest.raises(SerializationError):
            Receipt.from_bytes(b"not a receipt")

    def test_claim_root_depends_on_journal(self):
        receipt = DevModeBackend().prove(_circuit_input())
        other = dataclasses.replace(receipt, journal=receipt.journal + b"\x00")
        assert receipt.claim_root != other.claim_root
