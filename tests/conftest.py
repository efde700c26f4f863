"""Pytest configuration and fixtures for zkipfs-proof tests."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))

SECRET = b"secret content"


@pytest.fixture
def sample_text() -> bytes:
    """A small text document holding a secret phrase."""
    return (
        b"Quarterly notes\n"
        b"The quick brown fox jumps over the lazy dog.\n"
        b"Here is some secret content that only the holder can see.\n"
        b"Order #12345 shipped on 2024-03-01.\n"
    )


@pytest.fixture
def sample_file(tmp_path, sample_text) -> Path:
    path = tmp_path / "notes.txt"
    path.write_bytes(sample_text)
    return path


@pytest.fixture
def sample_xml() -> bytes:
    return (
        b"<?xml version='1.0'?>"
        b"<ledger>"
        b"<entry id='1'><amount>100</amount></entry>"
        b"<entry id='2'><amount>250</amount></entry>"
        b"</ledger>"
    )


@pytest.fixture
def generator():
    from zkipfs_proof import ProofConfig, ProofGenerator

    return ProofGenerator(ProofConfig(max_block_size=32))


@pytest.fixture
def proof(generator, sample_file):
    """A proof that ``sample_file`` contains ``SECRET``."""
    from zkipfs_proof import Pattern

    return generator.generate_proof_sync(sample_file, Pattern(SECRET))


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run
