"""Tests for content extraction across block boundaries."""
from __future__ import annotations

import hashlib

import pytest

from zkipfs_proof.blocks import BlockStore
from zkipfs_proof.errors import ContentSelectionError
from zkipfs_proof.extract import ContentExtractor
from zkipfs_proof.selection import ByteRange, Multiple, Pattern, Regex, StructuredSelector


@pytest.fixture
def chunked():
    """``abcdefghij`` in 4-byte chunks: root at 0, then abcd / efgh / ij."""
    store = BlockStore(max_block_size=4)
    blocks, _ = store.process(b"abcdefghij")
    return ContentExtractor(store), blocks


def _single(data: bytes):
    store = BlockStore()
    blocks, _ = store.process(data)
    return ContentExtractor(store), blocks


class TestByteRange:
    def test_range_across_blocks(self, chunked):
        extractor, blocks = chunked
        result = extractor.extract(blocks, ByteRange(2, 7))

        assert result.content == b"cdefg"
        assert result.block_indices == (1, 2)
        assert result.inclusion_hashes == tuple(
            hashlib.sha256(blocks[i].data).digest() for i in (1, 2)
        )

    def test_range_reads_file_bytes_not_root_metadata(self, chunked):
        extractor, blocks = chunked
        assert extractor.extract(blocks, ByteRange(0, 4)).content == b"abcd"

    def test_full_range(self, chunked):
        extractor, blocks = chunked
        result = extractor.extract(blocks, ByteRange(0, 10))
        assert result.content == b"abcdefghij"
        assert result.block_indices == (1, 2, 3)

    @pytest.mark.parametrize("start, end", [(5, 11), (10, 12), (20, 30)])
    def test_out_of_bounds(self, chunked, start, end):
        extractor, blocks = chunked
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, ByteRange(start, end))

    def test_invalid_selection(self, chunked):
        extractor, blocks = chunked
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, ByteRange(4, 2))


class TestPattern:
    def test_pattern_spanning_boundary(self, chunked):
        extractor, blocks = chunked
        result = extractor.extract(blocks, Pattern(b"def"))

        assert result.content == b"def"
        assert result.block_indices == (1, 2)

    def test_first_occurrence_only(self):
        extractor, blocks = _single(b"xx ab yy ab")
        assert extractor.extract(blocks, Pattern(b"ab")).content == b"ab"

    def test_not_found(self, chunked):
        extractor, blocks = chunked
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, Pattern(b"zzz"))


class TestRegex:
    def test_first_match(self):
        extractor, blocks = _single(b"order #12345 shipped, order #999 pending")
        result = extractor.extract(blocks, Regex(r"#\d+"))

        assert result.content == b"#12345"
        assert result.block_indices == (0,)

    def test_match_after_multibyte_text(self):
        """Block overlap is computed on byte offsets, not character offsets."""
        store = BlockStore(max_block_size=8)
        blocks, _ = store.process("ééééé tail".encode("utf-8"))
        extractor = ContentExtractor(store)

        result = extractor.extract(blocks, Regex("tail"))
        assert result.content == b"tail"
        # "ééééé " is 11 bytes, so "tail" sits at bytes 11..15, inside the second chunk
        assert result.block_indices == (2,)

    def test_invalid_utf8(self):
        extractor, blocks = _single(b"\xff\xfe\xfd")
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, Regex("a"))

    def test_invalid_pattern(self):
        extractor, blocks = _single(b"abc")
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, Regex("("))

    def test_no_match(self):
        extractor, blocks = _single(b"abc")
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, Regex(r"\d"))

    def test_empty_match_is_rejected(self):
        extractor, blocks = _single(b"abc")
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, Regex("x*"))


class TestStructuredSelector:
    def test_element_text(self, sample_xml):
        extractor, blocks = _single(sample_xml)
        result = extractor.extract(blocks, StructuredSelector("//entry[@id='2']/amount"))
        assert result.content == b"250"

    def test_node_set_concatenates_in_document_order(self, sample_xml):
        extractor, blocks = _single(sample_xml)
        assert extractor.extract(blocks, StructuredSelector("//amount")).content == b"100250"

    def test_scalar_results(self, sample_xml):
        extractor, blocks = _single(sample_xml)
        assert extractor.extract(blocks, StructuredSelector("count(//entry)")).content == b"2"
        assert extractor.extract(blocks, StructuredSelector("sum(//amount)")).content == b"350"
        assert extractor.extract(blocks, StructuredSelector("string(//entry/@id)")).content == b"1"

    def test_structured_includes_all_content_blocks(self, sample_xml):
        store = BlockStore(max_block_size=32)
        blocks, _ = store.process(sample_xml)
        result = ContentExtractor(store).extract(blocks, StructuredSelector("//entry[@id='1']"))

        assert result.content == b"100"
        assert result.block_indices == tuple(range(1, len(blocks)))

    def test_html_fallback(self):
        extractor, blocks = _single(b"<html><body><p>Hello <b>there</b></p><br></body></html>")
        assert extractor.extract(blocks, StructuredSelector("//p")).content == b"Hello there"

    def test_empty_result(self, sample_xml):
        extractor, blocks = _single(sample_xml)
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, StructuredSelector("//missing"))

    def test_matched_empty_element_selects_empty_content(self):
        extractor, blocks = _single(b"<root><a/></root>")
        result = extractor.extract(blocks, StructuredSelector("//a"))

        assert result.content == b""
        assert result.block_indices == (0,)
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, StructuredSelector("//missing"))

    def test_invalid_xpath(self, sample_xml):
        extractor, blocks = _single(sample_xml)
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, StructuredSelector("//entry[@id="))


class TestMultiple:
    def test_concatenates_and_unions(self, chunked):
        extractor, blocks = chunked
        result = extractor.extract(blocks, Multiple([Pattern(b"ab"), ByteRange(8, 10)]))

        assert result.content == b"abij"
        assert result.block_indices == (1, 3)

    def test_member_failure_fails_all(self, chunked):
        extractor, blocks = chunked
        with pytest.raises(ContentSelectionError):
            extractor.extract(blocks, Multiple([Pattern(b"ab"), Pattern(b"nope")]))


def test_content_hash(chunked):
    extractor, blocks = chunked
    assert extractor.content_hash(blocks, Pattern(b"efg")) == hashlib.sha256(b"efg").digest()
