"""Output format classification and generic tabular parsing."""

import csv
import json
import logging
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ParsedValue = int | float | bool | str
Row = dict[str, ParsedValue]

_BOX_RE = re.compile(r"[─-╿]")
_ASCII_BORDER_RE = re.compile(r"^\s*\+[-+=]+\+\s*$")
# Rows made only of rule characters, with at least one that is not a column delimiter.
_BORDER_RE = re.compile(r"^(?=.*[^\s|│])[\s─-╿+\-=:|]+$")
_MD_SEPARATOR_RE = re.compile(r"^[\s|:\-]*-[\s|:\-]*$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?$|^[+-]?\d+[eE][+-]?\d+$")
_THOUSANDS_RE = re.compile(r"^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d+)?$")
_COLUMN_GAP_RE = re.compile(r"\S+(?: \S+)*")

TABLE_DELIMITERS = "│|"


class FormatKind(str, Enum):
    """Shape of a captured CLI output."""

    JSON = "json"
    TABLE = "table"
    CSV = "csv"
    MARKDOWN = "markdown"
    TEXT = "text"


class ParseResult(BaseModel):
    """Outcome of generic parsing of a CLI output."""

    model_config = ConfigDict(frozen=True)

    format: FormatKind = Field(description="Detected output format")
    data: Any = Field(description="Decoded JSON value, list of rows, or the raw text")
    parse_error: str | None = Field(
        default=None, description="Decoder message when JSON decoding failed"
    )


def is_border_line(line: str) -> bool:
    """Check whether a line is a table rule such as ``+---+``, ``├──┤`` or ``|---|``."""
    return bool(_BORDER_RE.match(line))


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.splitlines() if line.strip()]


def _csv_field_counts(lines: list[str]) -> set[int]:
    return {len(row) for row in csv.reader(lines)}


def _looks_like_csv(lines: list[str]) -> bool:
    content = [line for line in lines if not is_border_line(line)]
    if len(content) < 2:
        return False
    first = content[0]
    if "," not in first or "|" in first:
        return False
    return len(_csv_field_counts(content)) == 1


def _looks_like_markdown(lines: list[str]) -> bool:
    for current, following in zip(lines, lines[1:]):
        if "|" in current and _MD_SEPARATOR_RE.match(following):
            return True
    return False


def classify_format(text: str) -> FormatKind:
    """Classify captured output into one of the known formats.

    The checks run in a fixed order: JSON, bordered table, CSV, markdown
    table, and plain text as the fallback. Never raises.

    Args:
        text: Sanitized CLI output

    Returns:
        The detected FormatKind
    """
    stripped = text.strip()
    if not stripped:
        return FormatKind.TEXT
    if stripped[0] in "{[":
        return FormatKind.JSON

    if _BOX_RE.search(stripped):
        return FormatKind.TABLE
    lines = _non_blank_lines(stripped)
    borders = [line for line in lines if _ASCII_BORDER_RE.match(line)]
    if borders and (len(borders) == len(lines) or any("|" in line for line in lines)):
        return FormatKind.TABLE

    if _looks_like_csv(lines):
        return FormatKind.CSV
    if _looks_like_markdown(stripped.splitlines()):
        return FormatKind.MARKDOWN
    return FormatKind.TEXT


def coerce_value(cell: str) -> ParsedValue:
    """Convert a table cell into an int, float or bool when it is exactly one.

    ``1,234`` becomes ``1234``. Only the lowercase literals ``true`` and
    ``false`` become booleans. Anything else is returned trimmed.
    """
    value = cell.strip()
    numeric = value.replace(",", "") if _THOUSANDS_RE.match(value) else value
    if _INT_RE.match(numeric):
        return int(numeric)
    if _FLOAT_RE.match(numeric):
        return float(numeric)
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def _delimiter_positions(line: str, delimiters: str) -> list[int]:
    positions = []
    for i, ch in enumerate(line):
        if ch in delimiters and not (i > 0 and line[i - 1] == "\\"):
            positions.append(i)
    return positions


def split_pipe_row(line: str, delimiters: str = TABLE_DELIMITERS) -> list[str]:
    """Split a delimited row into trimmed cells.

    The empty fragments outside the outer delimiters are dropped, interior
    empty cells are kept, and escaped pipes (``\\|``) stay inside the cell.
    """
    row = line.strip()
    positions = _delimiter_positions(row, delimiters)
    bounds = [-1, *positions, len(row)]
    cells = [row[start + 1 : end] for start, end in zip(bounds, bounds[1:])]
    if positions and positions[0] == 0:
        cells = cells[1:]
    if positions and positions[-1] == len(row) - 1:
        cells = cells[:-1]
    return [cell.strip().replace("\\|", "|") for cell in cells]


def _header_spans(header: str, delimiters: str) -> list[tuple[str, int, int | None]]:
    positions = _delimiter_positions(header, delimiters)
    bounds = [-1, *positions, None]
    spans = []
    for index, (start, end) in enumerate(zip(bounds, bounds[1:])):
        name = header[start + 1 : end].strip()
        is_edge = index == 0 or index == len(bounds) - 2
        if not name:
            if is_edge:
                continue
            name = f"column{len(spans) + 1}"
        spans.append((name, start + 1, end))
    return spans


def _rows_align(row: str, header_positions: list[int], delimiters: str) -> bool:
    return all(pos < len(row) and row[pos] in delimiters for pos in header_positions)


def _row_from_cells(names: list[str], cells: list[str]) -> Row:
    return {name: coerce_value(cell) for name, cell in zip(names, cells)}


def parse_table(text: str, delimiters: str = TABLE_DELIMITERS) -> list[Row]:
    """Parse a delimited table (box-drawn, ASCII or markdown) into rows.

    The header is the first non-border row holding a delimiter, so titles
    printed above the table are ignored. Rows whose delimiters line up with
    the header's are sliced at the header offsets; other rows are split on
    the delimiters.

    Args:
        text: Text containing the table
        delimiters: Characters that separate columns

    Returns:
        List of rows keyed by header names, empty when there is no data row
    """
    lines = [
        line.replace("\\|", "\0\0")
        for line in text.splitlines()
        if line.strip() and not is_border_line(line) and any(d in line for d in delimiters)
    ]
    if not lines:
        return []

    header, *body = lines
    spans = _header_spans(header, delimiters)
    names = [name for name, _, _ in spans]
    header_positions = _delimiter_positions(header, delimiters)

    rows = []
    for line in body:
        if _rows_align(line, header_positions, delimiters):
            cells = [line[start:end] for _, start, end in spans if start < len(line)]
        else:
            cells = split_pipe_row(line, delimiters)
        cells = [cell.replace("\0\0", "|").strip() for cell in cells]
        if not any(cells):
            continue
        rows.append(_row_from_cells(names, cells))
    return rows


def parse_csv(text: str) -> list[Row]:
    """Parse CSV text with a header row into rows."""
    lines = _non_blank_lines(text)
    if not lines:
        return []
    header, *body = csv.reader(lines)
    names = [name.strip() for name in header]
    return [_row_from_cells(names, cells) for cells in body]


def _column_starts(header: str, headers: list[str] | None) -> list[tuple[str, int]]:
    if headers:
        starts = [(name, header.index(name)) for name in headers]
    else:
        starts = [(m.group(0), m.start()) for m in _COLUMN_GAP_RE.finditer(header)]
    return sorted(starts, key=lambda item: item[1])


def _find_header(lines: list[str], headers: list[str] | None) -> int | None:
    for index, line in enumerate(lines):
        if not line.strip() or is_border_line(line):
            continue
        if headers is None or all(name in line for name in headers):
            return index
    return None


def parse_aligned_table(text: str, headers: list[str] | None = None) -> list[dict[str, str]]:
    """Parse a borderless, whitespace-aligned table.

    The header line is the first line containing every name in ``headers``
    (or the first content line when ``headers`` is None). Columns start at
    the header word offsets. Parsing stops at the first blank line after the
    header. When the header itself is pipe-delimited, rows are split on pipes.

    Args:
        text: Text containing the table
        headers: Column titles expected on the header line

    Returns:
        List of rows mapping header titles to raw cell strings
    """
    lines = [line.expandtabs(8).rstrip() for line in text.splitlines()]
    header_index = _find_header(lines, headers)
    if header_index is None:
        return []

    header = lines[header_index]
    if "|" in header:
        names = split_pipe_row(header, "|")
        if headers:
            names = [next((h for h in headers if h in name), name) for name in names]
        starts = None
    else:
        columns = _column_starts(header, headers)
        names = [name for name, _ in columns]
        starts = [start for _, start in columns]

    rows = []
    for line in lines[header_index + 1 :]:
        if not line.strip():
            break
        if is_border_line(line):
            continue
        if starts is None:
            cells = split_pipe_row(line, "|")
        else:
            bounds = [*starts[1:], None]
            cells = [line[start:end].strip() for start, end in zip(starts, bounds)]
        rows.append(dict(zip(names, cells)))
    return rows


def parse_output(text: str) -> ParseResult:
    """Classify and parse a CLI output without raising.

    Args:
        text: Sanitized CLI output

    Returns:
        ParseResult holding the detected format and parsed data. Invalid JSON
        is downgraded to text with ``parse_error`` set.
    """
    if not text.strip():
        return ParseResult(format=FormatKind.TEXT, data="")

    kind = classify_format(text)
    logger.debug(f"Classified output as {kind.value}")
    if kind is FormatKind.JSON:
        try:
            return ParseResult(format=kind, data=json.loads(text))
        except json.JSONDecodeError as e:
            return ParseResult(format=FormatKind.TEXT, data=text, parse_error=str(e))
    if kind is FormatKind.TABLE:
        return ParseResult(format=kind, data=parse_table(text))
    if kind is FormatKind.CSV:
        return ParseResult(format=kind, data=parse_csv(text))
    if kind is FormatKind.MARKDOWN:
        return ParseResult(format=kind, data=parse_table(text, "|"))
    return ParseResult(format=kind, data=text)
