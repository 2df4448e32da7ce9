"""
Tolerant CSV Parsing

Line-oriented parser for spreadsheet CSV exports:
- Double-quoted fields may contain the delimiter
- ``""`` inside a quoted field decodes to a single ``"``
- Unquoted fields are trimmed; quoted content is kept verbatim
- Unterminated quotes close at end of line (never raises)

Field counts are not validated here - short and long rows pass through and
are reconciled by the column resolver.
"""

import re
from typing import Iterator, List

import structlog

from cow_analytics.exceptions import PayloadShapeError

logger = structlog.get_logger(__name__)

QUOTE = '"'

# Markers of an HTML error/login page served in place of the CSV export
_HTML_MARKERS = re.compile(r"<!doctype|<html", re.IGNORECASE)


def parse_line(line: str, delimiter: str = ",") -> List[str]:
    """
    Split one line of delimited text into fields.

    Args:
        line: Raw line without its terminator
        delimiter: Single-character field separator

    Returns:
        Ordered list of field strings
    """
    fields: List[str] = []
    current: List[str] = []
    # Text collected between quotes, kept verbatim
    quoted_parts: List[str] = []
    in_quotes = False
    was_quoted = False
    i = 0
    length = len(line)

    def finish_field() -> None:
        if was_quoted:
            # Text outside the quotes is trimmed, text inside is not
            fields.append("".join(quoted_parts) + "".join(current).rstrip())
        else:
            fields.append("".join(current).strip())

    while i < length:
        char = line[i]

        if in_quotes:
            if char == QUOTE:
                if i + 1 < length and line[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
                quoted_parts.append("".join(current))
                current = []
            else:
                current.append(char)
        elif char == QUOTE:
            if not was_quoted and not "".join(current).strip():
                # Opening quote: leading whitespace before it is dropped
                current = []
                was_quoted = True
            elif was_quoted:
                # Re-opened quote after a closed one ("a""b" style tail)
                quoted_parts.append("".join(current))
                current = []
            else:
                current.append(char)
                i += 1
                continue
            in_quotes = True
        elif char == delimiter:
            finish_field()
            current = []
            quoted_parts = []
            was_quoted = False
        else:
            current.append(char)
        i += 1

    if in_quotes:
        # Unterminated quote: treat end of line as end of field
        quoted_parts.append("".join(current))
        current = []
    finish_field()
    return fields


def ensure_tabular(payload: str) -> None:
    """
    Fail fast when the payload is not tabular text.

    Raises:
        PayloadShapeError: payload is empty or looks like an HTML page
    """
    if not payload or not payload.lstrip("\ufeff").strip():
        raise PayloadShapeError("Snapshot payload is empty")

    if _HTML_MARKERS.search(payload):
        raise PayloadShapeError(
            "Source returned HTML instead of CSV. Check that the sheet is published."
        )


def split_lines(payload: str) -> List[str]:
    """Split a payload into non-blank lines, stripping a BOM and CR terminators"""
    if payload.startswith("\ufeff"):
        payload = payload[1:]
    return [line.rstrip("\r") for line in payload.split("\n") if line.strip()]


def iter_rows(payload: str, delimiter: str = ",") -> Iterator[List[str]]:
    """
    Parse a whole CSV payload into rows.

    The HTML guard runs before any row is produced, so a bad payload yields
    no partial result.

    Yields:
        Parsed rows, header first
    """
    ensure_tabular(payload)
    lines = split_lines(payload)
    logger.debug("Parsing CSV payload", lines=len(lines))
    for line in lines:
        yield parse_line(line, delimiter)
