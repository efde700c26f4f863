"""Tests for content selections and the selection grammar."""
from __future__ import annotations

import pytest

from zkipfs_proof.errors import InvalidInputError, SerializationError
from zkipfs_proof.selection import (
    ByteRange,
    Multiple,
    Pattern,
    Regex,
    StructuredSelector,
    parse_selection,
    selection_from_dict,
)


class TestValidity:
    @pytest.mark.parametrize(
        "selection, valid",
        [
            (ByteRange(0, 1), True),
            (ByteRange(5, 5), False),
            (ByteRange(7, 3), False),
            (ByteRange(-1, 3), False),
            (Pattern(b"x"), True),
            (Pattern(b""), False),
            (Regex(r"\d+"), True),
            (Regex(""), False),
            (StructuredSelector("//a"), True),
            (StructuredSelector("  "), False),
            (Multiple([Pattern(b"a"), ByteRange(0, 2)]), True),
            (Multiple([]), False),
            (Multiple([Pattern(b"a"), Pattern(b"")]), False),
        ],
    )
    def test_is_valid(self, selection, valid):
        assert selection.is_valid() is valid

    def test_estimated_size(self):
        assert ByteRange(10, 30).estimated_size() == 20
        assert Pattern(b"abc").estimated_size() == 3
        assert Regex("a").estimated_size() is None
        assert Multiple([ByteRange(0, 2), Pattern(b"abc")]).estimated_size() == 5
        assert Multiple([Pattern(b"abc"), Regex("a")]).estimated_size() is None

    def test_descriptions(self):
        assert ByteRange(100, 200).description() == "Bytes 100-200 (100 bytes)"
        assert Pattern(b"hello world").description() == "Pattern: hello world (11 bytes)"
        assert Regex("a+b").description() == "Regex: a+b"
        assert StructuredSelector("//item").description() == "XPath: //item"
        assert Multiple([Pattern(b"a"), Regex("b")]).description() == "Multiple selections (2)"


class TestParseSelection:
    def test_scoped_forms(self):
        assert parse_selection("pattern:hello") == Pattern(b"hello")
        assert parse_selection("regex:[0-9]+") == Regex("[0-9]+")
        assert parse_selection("xpath://a/b") == StructuredSelector("//a/b")
        assert parse_selection("range:10:20") == ByteRange(10, 20)

    def test_unscoped_text_is_pattern(self):
        assert parse_selection("just text") == Pattern(b"just text")

    def test_commas_make_multiple(self):
        parsed = parse_selection("pattern:a, range:0:4")
        assert parsed == Multiple((Pattern(b"a"), ByteRange(0, 4)))

    def test_unscoped_items_keep_their_whitespace(self):
        parsed = parse_selection("  secret ,x")
        assert parsed == Multiple((Pattern(b"  secret "), Pattern(b"x")))
        assert parse_selection("a,  regex:b+") == Multiple((Pattern(b"a"), Regex("b+")))

    @pytest.mark.parametrize("text", ["range:1", "range:a:b", "range:1:2:3", ""])
    def test_malformed(self, text):
        with pytest.raises(InvalidInputError) as excinfo:
            parse_selection(text)
        assert excinfo.value.field == "selection"


class TestSerialization:
    def test_nested_dict_round_trip(self):
        selection = Multiple([ByteRange(1, 9), Pattern(b"\x00\xff"), StructuredSelector("//x")])
        assert selection_from_dict(selection.to_dict()) == selection

    def test_unknown_type(self):
        with pytest.raises(SerializationError):
            selection_from_dict({"type": "glob", "value": "*"})

    def test_bad_hex(self):
        with pytest.raises(SerializationError):
            selection_from_dict({"type": "pattern", "content": "zz"})
