"""Line classification for output captured from wrapped build tools.

Turns a raw output chunk into display lines:

- blank lines and the ``Child`` noise marker are dropped
- trailing whitespace is trimmed
- ``HH:MM:SS XM - `` timestamps are stripped
- lines matching an error pattern are flagged for error highlighting
"""

import re
from dataclasses import dataclass

# Echoed by some wrapped tools between child compilations.
NOISE_PATTERN = re.compile(r"^Child$")

# "10:42:07 PM - message" -> "message"
TIMESTAMP_PATTERN = re.compile(r"^\d\d:\d\d:\d\d \w{1,2} - ?")

TSC_ERROR_PATTERN = re.compile(r"\berror TS\d+:")
WEBPACK_ERROR_PATTERN = re.compile(r"^ERROR\b")

KNOWN_ERROR_PATTERNS: dict[str, re.Pattern[str]] = {
    "tsc": TSC_ERROR_PATTERN,
    "webpack": WEBPACK_ERROR_PATTERN,
}


@dataclass(frozen=True)
class ClassifiedLine:
    """A cleaned line of tool output."""

    text: str
    """Line content with timestamp and trailing whitespace removed."""

    is_error: bool = False
    """Whether the line should be highlighted as an error."""


def compile_error_pattern(pattern: str | re.Pattern[str] | None) -> re.Pattern[str] | None:
    """Resolve an error pattern given as a known name, a regex string or a compiled regex.

    Raises:
        re.error: If a string pattern is not a valid regex
    """
    if pattern is None or isinstance(pattern, re.Pattern):
        return pattern
    if pattern in KNOWN_ERROR_PATTERNS:
        return KNOWN_ERROR_PATTERNS[pattern]
    return re.compile(pattern)


def strip_timestamp(line: str) -> str:
    """Remove a leading ``HH:MM:SS XM -`` timestamp and the following space."""
    match = TIMESTAMP_PATTERN.match(line)
    if match:
        return line[match.end() :]
    return line


def classify_chunk(
    chunk: str | bytes,
    error_pattern: str | re.Pattern[str] | None = None,
) -> list[ClassifiedLine]:
    """Split a chunk of process output into classified display lines.

    Each chunk is handled on its own; a line split across two chunks comes
    out as two lines.

    Args:
        chunk: Raw output, bytes are decoded as UTF-8
        error_pattern: Optional regex (or known pattern name) marking error lines

    Returns:
        Lines in input order
    """
    if not chunk:
        return []

    if isinstance(chunk, bytes):
        chunk = chunk.decode("utf-8", errors="replace")

    pattern = compile_error_pattern(error_pattern)
    lines: list[ClassifiedLine] = []

    for raw in chunk.split("\n"):
        if not raw.strip():
            continue
        if NOISE_PATTERN.match(raw):
            continue

        text = strip_timestamp(raw.rstrip())
        if not text.strip() or NOISE_PATTERN.match(text):
            continue
        is_error = bool(pattern and pattern.search(text))
        lines.append(ClassifiedLine(text=text, is_error=is_error))

    return lines
