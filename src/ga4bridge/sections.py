"""Marker-delimited section extraction and line pattern helpers."""

import re


def extract_section(
    text: str, start_marker: str, end_marker: str | tuple[str, ...] | None = None
) -> str | None:
    """Return the text from ``start_marker`` up to the next ``end_marker``.

    Args:
        text: Text to search
        start_marker: Literal marker opening the section (included in the result)
        end_marker: Literal marker closing the section (excluded), or a tuple
            of markers where the earliest one after the start wins. When none
            occurs after the start, the section runs to the end.

    Returns:
        The section text, or None when the start marker is absent
    """
    start = text.find(start_marker)
    if start == -1:
        return None
    markers = (end_marker,) if isinstance(end_marker, str) else end_marker or ()
    body = start + len(start_marker)
    ends = [index for marker in markers if (index := text.find(marker, body)) != -1]
    return text[start : min(ends)] if ends else text[start:]


def search_group(pattern: str | re.Pattern[str], text: str, group: int = 1) -> str | None:
    """Return a stripped capture group of the first match, or None."""
    match = re.search(pattern, text, re.MULTILINE) if isinstance(pattern, str) else pattern.search(text)
    if match is None or match.group(group) is None:
        return None
    return match.group(group).strip()


def search_int(pattern: str | re.Pattern[str], text: str, group: int = 1) -> int | None:
    value = search_group(pattern, text, group)
    if value is None:
        return None
    try:
        return int(value.replace(",", ""))
    except ValueError:
        return None


def search_float(pattern: str | re.Pattern[str], text: str, group: int = 1) -> float | None:
    value = search_group(pattern, text, group)
    if value is None:
        return None
    try:
        return float(value.replace(",", ""))
    except ValueError:
        return None


def lines_between(
    text: str, start_marker: str, end_marker: str | tuple[str, ...] | None = None
) -> list[str]:
    """Return the lines of a section after its marker line, or [] when missing."""
    section = extract_section(text, start_marker, end_marker)
    if section is None:
        return []
    return section.splitlines()[1:]
