"""Parsing helpers for line-oriented diagnostic tool output.

All knowledge of how external tools lay out their text lives here. The
formats are not versioned: a changed header, column order or delimiter in a
tool's output is a silent break.
"""

import logging
from typing import Iterable

_logger = logging.getLogger(__name__)


def split_lines(text: str, sep: str = "\n") -> list[str]:
    """Split tool output into lines, ignoring the final terminator."""
    lines = text.split(sep)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def drop_header(lines: list[str]) -> list[str]:
    """Drop the first line of a block (the header); one line yields nothing."""
    return lines[1:]


def split_label(line: str) -> tuple[str, str] | None:
    """Split ``"label: value"`` on the first colon into trimmed halves."""
    label, sep, value = line.partition(":")
    if not sep:
        return None
    return label.strip(), value.strip()


def parse_pairs(lines: Iterable[str]) -> list[tuple[str, str]]:
    """Split every line into a (label, value) pair, skipping lines without a colon."""
    pairs = []
    for line in lines:
        pair = split_label(line)
        if pair is None:
            if line.strip():
                _logger.debug("skipping malformed line: %r", line)
            continue
        pairs.append(pair)
    return pairs


def last_field(line: str) -> str | None:
    """Last whitespace-separated token of a line."""
    fields = line.split()
    return fields[-1] if fields else None
