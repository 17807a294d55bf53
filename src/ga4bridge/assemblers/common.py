"""Extraction helpers shared by several assemblers."""

import json
import re
from collections.abc import Callable
from typing import Any

from ga4bridge.errors import quota_status
from ga4bridge.results import ProjectInfo, QuotaInfo
from ga4bridge.sections import search_group

_LEADING_DECORATION_RE = re.compile(r"^[^\w]+")
_DATE_RE = re.compile(r"Date:\s*(\d{4}-\d{2}-\d{2})")
_COLUMN_GAP_RE = re.compile(r"\t+|\s{2,}")
_TABLE_ROW_RE = re.compile(r"^\s*[|│┃]|[|│┃].*[|│┃]")


def find_project(text: str, pattern: re.Pattern[str]) -> ProjectInfo | None:
    """Extract ``NAME (Property: ID)`` style project headers.

    ``pattern`` must capture the name and the property ID, in that order.
    Leading emoji and glyphs are stripped from the name.
    """
    match = pattern.search(text)
    if match is None:
        return None
    name = _LEADING_DECORATION_RE.sub("", match.group(1)).strip()
    return ProjectInfo(name=name or None, property_id=match.group(2))


def build_quota(
    used: int | None,
    limit: int | None,
    percent: float | None = None,
    remaining: int | None = None,
    date: str | None = None,
    warning: str | None = None,
) -> QuotaInfo:
    if remaining is None and used is not None and limit is not None:
        remaining = limit - used
    if percent is None and used is not None and limit:
        percent = round(used / limit * 100, 1)
    return QuotaInfo(
        used=used,
        limit=limit,
        remaining=remaining,
        percent=percent,
        date=date,
        status=quota_status(percent) if percent is not None else None,
        warning=warning,
    )


def find_quota(
    text: str, usage: re.Pattern[str], default_limit: int | None = None
) -> QuotaInfo | None:
    """Read the daily quota block printed by Search Console commands.

    Args:
        text: Sanitized output
        usage: Pattern capturing used, limit and percent
        default_limit: Limit assumed when only ``Remaining: N`` is printed

    Returns:
        QuotaInfo, or None when no quota figures are present
    """
    date = search_group(_DATE_RE, text)
    match = usage.search(text)
    if match is not None:
        used, limit = int(match.group(1)), int(match.group(2))
        return build_quota(used, limit, percent=float(match.group(3)), date=date)

    remaining = search_group(r"Remaining:\s*(\d+)", text)
    if remaining is not None and default_limit:
        left = int(remaining)
        return build_quota(default_limit - left, default_limit, remaining=left, date=date)
    return None


def balanced_json(text: str, opener: str) -> str | None:
    """Return the first bracket-balanced JSON value starting with ``opener``.

    Brackets inside JSON strings are ignored.
    """
    closer = "]" if opener == "[" else "}"
    start = text.find(opener)
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def decode_json(text: str, opener: str) -> tuple[Any, str | None]:
    """Decode the JSON value embedded in ``text``.

    Returns:
        ``(value, None)`` on success, ``(None, message)`` when the block is
        missing or malformed
    """
    block = balanced_json(text, opener)
    if block is None:
        return None, f"No complete JSON value starting with '{opener}' found"
    try:
        return json.loads(block), None
    except json.JSONDecodeError as e:
        return None, str(e)


def pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among ``keys``.

    Covers outputs that use PascalCase or snake_case keys for the same field.
    """
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def parse_percent(value: Any) -> float:
    """Convert ``"5.0%"`` to ``0.05``; bare numbers are returned as floats.

    Unreadable values count as zero.
    """
    try:
        if isinstance(value, str):
            cleaned = value.strip().replace(",", "")
            if cleaned.endswith("%"):
                return float(cleaned[:-1]) / 100
            return float(cleaned) if cleaned else 0.0
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def to_int(value: Any) -> int:
    try:
        if isinstance(value, str):
            cleaned = value.replace(",", "").strip()
            return int(float(cleaned)) if cleaned else 0
        return int(value or 0)
    except (OverflowError, TypeError, ValueError):
        return 0


def to_float(value: Any) -> float:
    try:
        if isinstance(value, str):
            cleaned = value.replace(",", "").strip()
            return float(cleaned) if cleaned else 0.0
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def split_columns(line: str) -> list[str]:
    """Split a borderless table row on tabs or runs of two or more spaces."""
    return _COLUMN_GAP_RE.split(line.strip())


def wants_json(text: str, output_format: str) -> bool:
    """Whether a report should be decoded as JSON rather than read as text."""
    return text.lstrip().startswith("{") or (output_format == "json" and "{" in text)


def strip_payload(
    text: str, opener: str | None = None, is_header: Callable[[str], bool] | None = None
) -> str:
    """Remove report data so only the tool's own messages are scanned for failures.

    Queries, page URLs and issue messages are user data and may contain
    phrases such as "permission denied". Removed are the JSON document
    opening with ``opener`` at the start of a line (everything after it when
    it is truncated), table rows with column separators, and the rows under
    each ``is_header`` line up to the next blank line or ``===`` banner.
    JSON bodies embedded in ``Error:`` lines are kept.
    """
    if opener is not None:
        match = re.search(rf"^[ \t]*{re.escape(opener)}", text, re.MULTILINE)
        if match is not None:
            start = match.end() - 1
            block = balanced_json(text[start:], opener)
            end = len(text) if block is None else start + len(block)
            text = text[:start] + text[end:]

    kept = []
    in_rows = False
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("==="):
            in_rows = False
        if not in_rows and not _TABLE_ROW_RE.search(line):
            kept.append(line)
        if is_header is not None and is_header(line):
            in_rows = True
    return "\n".join(kept)
