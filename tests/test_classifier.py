"""Tests for devwatch_core.classifier."""

import re

import pytest

from devwatch_core.classifier import (
    TIMESTAMP_PATTERN,
    TSC_ERROR_PATTERN,
    ClassifiedLine,
    classify_chunk,
    compile_error_pattern,
    strip_timestamp,
)


def texts(lines):
    return [line.text for line in lines]


class TestClassifyChunk:
    """Cleaning steps applied to one chunk."""

    def test_empty_chunk(self):
        assert classify_chunk("") == []
        assert classify_chunk(b"") == []

    def test_drops_blank_lines(self):
        lines = classify_chunk("one\n\n   \n\t\ntwo\n")
        assert texts(lines) == ["one", "two"]

    def test_drops_noise_marker(self):
        lines = classify_chunk("Child\nbuilding\nChild\n")
        assert texts(lines) == ["building"]

    def test_noise_marker_only_matches_whole_line(self):
        lines = classify_chunk("Child compilation done\n")
        assert texts(lines) == ["Child compilation done"]

    def test_trims_trailing_whitespace(self):
        lines = classify_chunk("  indented   \r\nnext\t\n")
        assert texts(lines) == ["  indented", "next"]

    def test_strips_timestamp(self):
        lines = classify_chunk("10:42:07 PM - Starting compilation in watch mode...\n")
        assert texts(lines) == ["Starting compilation in watch mode..."]

    def test_strips_single_letter_meridiem(self):
        assert strip_timestamp("09:01:02 a - ready") == "ready"

    def test_keeps_non_timestamp_lines(self):
        line = "1:42:07 PM - not a timestamp shape"
        assert strip_timestamp(line) == line
        assert strip_timestamp("message - with hyphen") == "message - with hyphen"

    def test_timestamp_only_line_is_dropped(self):
        assert classify_chunk("10:42:07 PM - \n") == []

    def test_carriage_return_stays_in_line(self):
        lines = classify_chunk("50%\r100%\ndone\r\n")
        assert texts(lines) == ["50%\r100%", "done"]

    def test_decodes_bytes(self):
        lines = classify_chunk("café built\n".encode())
        assert texts(lines) == ["café built"]

    def test_preserves_order(self):
        chunk = "c\nb\na\n"
        assert texts(classify_chunk(chunk)) == ["c", "b", "a"]

    def test_no_pattern_means_no_errors(self):
        lines = classify_chunk("error TS2304: Cannot find name 'x'.\n")
        assert lines == [ClassifiedLine("error TS2304: Cannot find name 'x'.", False)]


class TestErrorHighlighting:
    """Error pattern marks lines without changing them."""

    def test_matching_line_is_error(self):
        chunk = "src/a.ts(1,1): error TS2304: Cannot find name 'x'.\nFound 1 error.\n"
        lines = classify_chunk(chunk, TSC_ERROR_PATTERN)
        assert [line.is_error for line in lines] == [True, False]
        assert lines[0].text.startswith("src/a.ts(1,1)")

    def test_string_pattern(self):
        lines = classify_chunk("ERROR in ./a.js\nok\n", r"^ERROR\b")
        assert [line.is_error for line in lines] == [True, False]

    def test_pattern_applies_after_timestamp_strip(self):
        lines = classify_chunk("10:42:07 PM - ERROR in ./a.js\n", "webpack")
        assert lines == [ClassifiedLine("ERROR in ./a.js", True)]

    def test_known_pattern_names(self):
        assert compile_error_pattern("tsc") is TSC_ERROR_PATTERN
        assert compile_error_pattern(None) is None

    def test_invalid_pattern_raises(self):
        with pytest.raises(re.error):
            compile_error_pattern("(unclosed")


class TestProperties:
    """Invariants that hold for any chunk."""

    CHUNKS = [
        "",
        "\n\n",
        "Child\n   \nhello   \n",
        "10:42:07 PM - File change detected.\n10:42:08 PM - Found 0 errors.\n",
        "mixed\r\nline endings\rhere\n",
        "12:00:00 AM - Child\n  \t  \nlast",
    ]

    @pytest.mark.parametrize("chunk", CHUNKS)
    def test_no_blank_or_noise_lines(self, chunk):
        for line in classify_chunk(chunk):
            assert line.text.strip()
            assert line.text != "Child"
            assert line.text == line.text.rstrip()

    @pytest.mark.parametrize("chunk", CHUNKS)
    def test_idempotent(self, chunk):
        once = classify_chunk(chunk)
        twice = classify_chunk("\n".join(texts(once)))
        assert texts(twice) == texts(once)

    def test_timestamp_pattern_is_anchored(self):
        assert TIMESTAMP_PATTERN.match("x 10:42:07 PM - y") is None
