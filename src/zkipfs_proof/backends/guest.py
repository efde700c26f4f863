"""Guest program: the computation a proving backend attests to.

The guest re-derives everything it commits from the private blocks. It
checks every block CID, folds the block structure into a root hash, extracts
the selected content and insists the result hashes to the expected value.
"""
from __future__ import annotations

import hashlib
import struct

from ..blocks import compute_cid
from ..errors import ContentSelectionError, ProvingError, StructuralError
from ..extract import ContentExtractor
from ..types import ProofCircuitInput, ProofCircuitOutput

GUEST_DESCRIPTOR = b"zkipfs-proof/guest/content-inclusion/v1"

# Rough per-operation cost model; only relative sizes matter.
_CYCLES_PER_HASH_BYTE = 4
_CYCLES_PER_BLOCK = 1_000


class CycleCounter:
    def __init__(self) -> None:
        self.cycles = 0

    def charge(self, amount: int) -> None:
        self.cycles += amount

    def hashed(self, nbytes: int) -> None:
        self.cycles += nbytes * _CYCLES_PER_HASH_BYTE


def compute_root_hash(blocks, counter: CycleCounter | None = None) -> bytes:
    hasher = hashlib.sha256()
    for block in blocks:
        hasher.update(block.cid)
        for link in block.links:
            hasher.update(link.cid)
            hasher.update(link.name.encode("utf-8"))
            hasher.update(struct.pack("<Q", link.size))
        if counter is not None:
            counter.charge(_CYCLES_PER_BLOCK)
            counter.hashed(len(block.cid) + sum(len(l.cid) + len(l.name) + 8 for l in block.links))
    return hasher.digest()


def run_guest(circuit_input: ProofCircuitInput) -> tuple[ProofCircuitOutput, int]:
    """Execute the guest natively; returns the journal and the cycle count."""
    counter = CycleCounter()
    blocks = circuit_input.blocks

    for i, block in enumerate(blocks):
        counter.hashed(block.size)
        if compute_cid(block.data) != block.cid:
            raise ProvingError("guest_execution", f"block CID mismatch at index {i}")

    root_hash = compute_root_hash(blocks, counter)

    try:
        extraction = ContentExtractor().extract(blocks, circuit_input.selection)
    except (ContentSelectionError, StructuralError) as exc:
        raise ProvingError("guest_execution", f"content extraction failed: {exc.message}") from exc
    counter.hashed(len(extraction.content))
    content_hash = hashlib.sha256(extraction.content).digest()
    if content_hash != circuit_input.expected_content_hash:
        raise ProvingError("guest_execution", "content hash mismatch")

    for idx in extraction.block_indices:
        counter.hashed(blocks[idx].size)

    output = ProofCircuitOutput(
        root_hash=root_hash,
        content_hash=content_hash,
        inclusion_hashes=extraction.inclusion_hashes,
        block_count=len(blocks),
        content_size=len(extraction.content),
        timestamp=counter.cycles,
    )
    return output, counter.cycles


__all__ = ["GUEST_DESCRIPTOR", "CycleCounter", "compute_root_hash", "run_guest"]
