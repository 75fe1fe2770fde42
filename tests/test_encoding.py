"""
Encoding resolution and transcoding: test_encoding.py

encoding.py:
  - must_transcode: equal names (any case) and codec aliases never transcode
  - must_transcode: ASCII ⊂ UTF-8 / cp1252 / ISO-8859-1, ISO-8859-1 ⊂ cp1252
  - must_transcode: every other pair transcodes; unknown file encoding does not
  - candidate_encodings: internal first, then detect order, then common
    encodings, de-duplicated case-insensitively in first-seen order
  - detect_encoding: first candidate that strictly decodes wins; None when none
  - decodes_cleanly tolerates a multi-byte character cut at the sample end
  - transcode converts, honours the error handler, raises DecodeError when strict
  - LineDecoder: strict override, policy for data lines, line number in errors
  - encode_text never emits a BOM
  - resolve_byte_order pins endian-less utf-16 / utf-32 to a matching BOM
"""

from __future__ import annotations

import pytest

from csvstream.configs.exceptions import DecodeError
from csvstream.discovery.encoding import (
    COMMON_FILE_ENCODINGS,
    LineDecoder,
    candidate_encodings,
    decodes_cleanly,
    detect_encoding,
    encode_text,
    is_multibyte,
    must_transcode,
    resolve_byte_order,
    same_encoding,
    statistical_detect_order,
    transcode,
)


# ============================================================================
# Name handling
# ============================================================================

class TestNames:
    def test_same_encoding_case_insensitive(self):
        assert same_encoding("UTF-8", "utf-8")

    def test_same_encoding_by_codec(self):
        assert same_encoding("Windows-1252", "cp1252")
        assert same_encoding("latin-1", "ISO-8859-1")

    def test_different_encodings(self):
        assert not same_encoding("UTF-8", "cp1252")

    def test_unknown_name_never_matches(self):
        assert not same_encoding("bogus-enc", "utf-8")

    @pytest.mark.parametrize("name", ["UTF-16LE", "utf_16_be", "UTF-32", "utf-32-le"])
    def test_multibyte(self, name):
        assert is_multibyte(name)

    @pytest.mark.parametrize("name", ["UTF-8", "cp1252", "ascii", None, "", "bogus-enc"])
    def test_not_multibyte(self, name):
        assert not is_multibyte(name)

    def test_encode_text_strips_bom(self):
        assert encode_text("\r\n", "utf-16-le") == b"\r\x00\n\x00"
        encoded = encode_text("\n", "utf-16")
        assert len(encoded) == 2
        assert encoded in (b"\n\x00", b"\x00\n")

    @pytest.mark.parametrize("configured, bom, expected", [
        ("utf-16", "UTF-16LE", "UTF-16LE"),
        ("UTF16", "UTF-16BE", "UTF-16BE"),
        ("utf-32", "UTF-32LE", "UTF-32LE"),
        ("utf-16", "UTF-8", "utf-16"),
        ("utf-16", "UTF-32LE", "utf-16"),
        ("utf-16-be", "UTF-16LE", "utf-16-be"),
        ("cp1252", "UTF-16LE", "cp1252"),
        ("utf-16", None, "utf-16"),
        (None, "UTF-16LE", None),
        ("bogus-enc", "UTF-16LE", "bogus-enc"),
    ])
    def test_resolve_byte_order(self, configured, bom, expected):
        assert resolve_byte_order(configured, bom) == expected


# ============================================================================
# must_transcode
# ============================================================================

class TestMustTranscode:
    @pytest.mark.parametrize("file_enc, internal", [
        ("UTF-8", "utf-8"),
        ("cp1252", "Windows-1252"),
        ("Windows-1252", "cp1252"),
        ("ASCII", "UTF-8"),
        ("ascii", "cp1252"),
        ("ASCII", "ISO-8859-1"),
        ("ISO-8859-1", "Windows-1252"),
        ("latin-1", "cp1252"),
    ])
    def test_no_transcoding(self, file_enc, internal):
        assert must_transcode(file_enc, internal) is False

    @pytest.mark.parametrize("file_enc, internal", [
        ("UTF-8", "cp1252"),
        ("cp1252", "ISO-8859-1"),
        ("cp1252", "UTF-8"),
        ("UTF-16LE", "UTF-8"),
        ("ISO-8859-1", "UTF-8"),
    ])
    def test_transcoding_required(self, file_enc, internal):
        assert must_transcode(file_enc, internal) is True

    def test_unknown_file_encoding(self):
        assert must_transcode(None, "utf-8") is False


# ============================================================================
# Detection
# ============================================================================

class TestCandidateEncodings:
    def test_order_and_dedupe(self):
        assert candidate_encodings("UTF-8", ["utf-8", "cp1252"]) == [
            "UTF-8",
            "cp1252",
            "UTF-32BE",
            "UTF-32LE",
            "UTF-16BE",
            "UTF-16LE",
            "Windows-1252",
            "ISO-8859-1",
        ]

    def test_no_internal_no_detect_order(self):
        assert candidate_encodings(None, []) == list(COMMON_FILE_ENCODINGS)

    def test_internal_first(self):
        assert candidate_encodings("koi8-r", ["cp1252"])[:2] == ["koi8-r", "cp1252"]


class TestDetectEncoding:
    def test_internal_encoding_wins_for_utf8(self):
        sample = "café,1\n".encode("utf-8")
        assert detect_encoding(sample, candidate_encodings("utf-8", [])) == "utf-8"

    def test_detect_order_before_common_encodings(self):
        sample = "café,x\n".encode("cp1252")
        assert detect_encoding(sample, candidate_encodings("utf-8", ["cp1252"])) == "cp1252"

    def test_none_when_nothing_decodes(self):
        assert detect_encoding(b"\xff\xfe\xfd", ["utf-8", "ascii"]) is None

    def test_truncated_character_tolerated(self):
        sample = "né".encode("utf-8")[:-1]
        assert decodes_cleanly(sample, "utf-8")

    def test_unknown_candidate_skipped(self):
        assert detect_encoding(b"abc", ["bogus-enc", "ascii"]) == "ascii"

    def test_statistical_order_is_list_of_names(self):
        order = statistical_detect_order("Grüße aus Köln, schön\n".encode("utf-8"))
        assert isinstance(order, list)
        assert all(isinstance(name, str) for name in order)


# ============================================================================
# Transcoding
# ============================================================================

class TestTranscode:
    def test_utf8_to_cp1252(self):
        assert transcode("é".encode("utf-8"), "utf-8", "cp1252") == b"\xe9"

    def test_invalid_source_bytes_strict(self):
        with pytest.raises(DecodeError) as exc_info:
            transcode(b"\xff", "utf-8", "cp1252")
        assert exc_info.value.encoding == "utf-8 -> cp1252"

    def test_unrepresentable_ignored(self):
        assert transcode("a€b".encode("utf-8"), "utf-8", "iso8859-1", "ignore") == b"ab"

    def test_unrepresentable_replaced(self):
        assert transcode("a€b".encode("utf-8"), "utf-8", "iso8859-1", "replace") == b"a?b"


class TestLineDecoder:
    def test_transcodes_then_decodes(self):
        decoder = LineDecoder("cp1252", "utf-8")
        assert decoder.must_transcode
        assert decoder.decode(b"caf\xe9") == "café"

    def test_utf16_to_utf8(self):
        decoder = LineDecoder("UTF-16LE", "utf-8")
        assert decoder.decode("a,b".encode("utf-16-le")) == "a,b"

    def test_ignore_policy_drops_bad_bytes(self):
        decoder = LineDecoder("utf-8", "utf-8", errors="ignore")
        assert not decoder.must_transcode
        assert decoder.decode(b"a\xffb") == "ab"

    def test_replace_policy(self):
        decoder = LineDecoder("utf-8", "utf-8", errors="replace")
        assert decoder.decode(b"a\xffb") == "a\ufffdb"

    def test_strict_override(self):
        decoder = LineDecoder("utf-8", "utf-8", errors="ignore", source="in.csv")
        with pytest.raises(DecodeError) as exc_info:
            decoder.decode(b"a\xffb", strict=True, line_number=7)
        assert exc_info.value.line_number == 7
        assert exc_info.value.source == "in.csv"
        assert "line=7" in str(exc_info.value)

    def test_strict_transcode_failure_carries_context(self):
        decoder = LineDecoder("utf-8", "cp1252", errors="strict", source="in.csv")
        with pytest.raises(DecodeError) as exc_info:
            decoder.decode("€ ok ✓".encode("utf-8"), line_number=3)
        assert exc_info.value.encoding == "utf-8 -> cp1252"
        assert exc_info.value.line_number == 3

    def test_unknown_file_encoding_decodes_as_internal(self):
        decoder = LineDecoder(None, "utf-8")
        assert not decoder.must_transcode
        assert decoder.decode("é".encode("utf-8")) == "é"
