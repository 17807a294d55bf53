"""Normalizer for single URL inspection output."""

import logging
import re

from ga4bridge.assemblers.common import find_quota, strip_payload
from ga4bridge.errors import LIST_ITEM_LINE, ErrorOutcome, check_errors
from ga4bridge.formats import parse_table
from ga4bridge.params import InspectParams
from ga4bridge.registry import register
from ga4bridge.results import InspectionIssue, InspectUrlResult, QuotaInfo, UrlInspection
from ga4bridge.sections import extract_section, search_group

logger = logging.getLogger(__name__)

URL_RE = re.compile(r"^\s*(?:Inspecting )?URL:\s*(\S+)", re.MULTILINE)
COVERAGE_RE = re.compile(r"^\s*Coverage:\s*(.+)$", re.MULTILINE)
LAST_CRAWL_RE = re.compile(r"^\s*Last Crawl:\s*(.+)$", re.MULTILINE)
GOOGLE_CANONICAL_RE = re.compile(r"^\s*Google Canonical:\s*(\S+)", re.MULTILINE)
USER_CANONICAL_RE = re.compile(r"^\s*User Canonical:\s*(\S+)", re.MULTILINE)
LIST_ITEM_RE = re.compile(r"^\s*-\s+(.+?)\s*$")
INSPECTIONS_RE = re.compile(r"Inspections:\s*(\d+)\s*/\s*(\d+)\s*\(([\d.]+)%[^,]*,\s*(\d+)\s*remaining\)")
QUOTA_WARNING_RE = re.compile(r"^\s*(?:WARNING|CRITICAL):\s*(.+)$", re.MULTILINE)
QUOTA_MARKER = "Daily Quota Status"

# Narrower verdicts first: "Not Indexed (FAIL)" must not read as a pass.
VERDICTS = ("PARTIAL", "FAIL", "PASS", "NEUTRAL")


def _block(text: str, marker: str) -> list[str]:
    """Indented lines under a ``Marker:`` heading."""
    section = extract_section(text, marker)
    if section is None:
        return []
    lines = []
    for line in section.splitlines()[1:]:
        if line.strip() and not line[0].isspace():
            break
        if line.strip():
            lines.append(line.strip())
    return lines


def _verdict(lines: list[str]) -> str | None:
    joined = "\n".join(lines)
    for verdict in VERDICTS:
        if f"({verdict})" in joined:
            return verdict
    return None


def _list_items(lines: list[str], heading: str) -> list[str]:
    if heading not in lines:
        return []
    items = []
    for line in lines[lines.index(heading) + 1 :]:
        match = LIST_ITEM_RE.match(line)
        if match is None:
            break
        items.append(match.group(1))
    return items


def _issues(text: str) -> list[InspectionIssue]:
    section = extract_section(text, "Issues Found:", QUOTA_MARKER)
    if section is None:
        return []
    return [
        InspectionIssue(
            severity=str(row.get("SEVERITY", "")),
            issue_type=str(row.get("ISSUE TYPE", "")),
            message=str(row.get("MESSAGE", "")),
        )
        for row in parse_table(section)
        if row.get("SEVERITY")
    ]


def parse_inspection(text: str, url: str = "") -> UrlInspection:
    """Read the inspection report of one URL.

    Args:
        text: Sanitized output of a single inspection
        url: URL to report when the output does not echo one

    Returns:
        UrlInspection with defaults for sections that were not printed
    """
    index_lines = _block(text, "Index Status:")
    indexing_lines = _block(text, "Indexing Status:")
    mobile_lines = _block(text, "Mobile Usability:")
    rich_lines = _block(text, "Rich Results:")

    indexing_text = "\n".join(indexing_lines)
    coverage = search_group(COVERAGE_RE, text)

    mobile_verdict = None
    if any(line.startswith("Not Mobile Usable") for line in mobile_lines):
        mobile_verdict = "FAIL"
    elif any(line.startswith("Mobile Usable") for line in mobile_lines):
        mobile_verdict = "PASS"

    rich_verdict = None
    if any(line.startswith("Invalid") for line in rich_lines):
        rich_verdict = "FAIL"
    elif any(line.startswith("Valid") for line in rich_lines):
        rich_verdict = "PASS"

    return UrlInspection(
        url=search_group(URL_RE, text) or url,
        verdict=_verdict(index_lines),
        coverage_state=coverage,
        last_crawl_time=search_group(LAST_CRAWL_RE, text),
        google_canonical=search_group(GOOGLE_CANONICAL_RE, text),
        user_canonical=search_group(USER_CANONICAL_RE, text),
        indexing_allowed="Indexing Not Allowed" not in indexing_text,
        robots_blocked="robots.txt" in indexing_text
        or (coverage is not None and "robots.txt" in coverage),
        mobile_usable=mobile_verdict != "FAIL",
        mobile_verdict=mobile_verdict,
        mobile_issues=_list_items(mobile_lines, "Mobile Issues:"),
        rich_results_verdict=rich_verdict,
        rich_results_issues=_list_items(rich_lines, "Rich Results Issues:"),
        issues=_issues(text),
    )


def parse_inspection_quota(text: str) -> QuotaInfo | None:
    quota = find_quota(text, INSPECTIONS_RE)
    if quota is None:
        return None
    section = extract_section(text, QUOTA_MARKER) or ""
    warning = search_group(QUOTA_WARNING_RE, section)
    return quota.model_copy(update={"warning": warning}) if warning else quota


def inspection_failure(text: str, opener: str | None = None) -> ErrorOutcome:
    """Scan for failure banners, skipping reported issues and JSON results."""
    return check_errors(strip_payload(text, opener), exclude=LIST_ITEM_LINE)


@register(name="inspect_url", params=InspectParams, result=InspectUrlResult, tags=["gsc"])
def assemble_inspect_url(text: str, params: InspectParams) -> InspectUrlResult:
    """Read index, crawl, mobile and rich result status of one URL."""
    outcome = inspection_failure(text)
    if outcome.matched:
        return InspectUrlResult.from_error(outcome)
    inspection = parse_inspection(text, params.url)
    logger.debug(f"Inspected {inspection.url}: {inspection.verdict}")
    return InspectUrlResult(
        success=True, inspection=inspection, quota=parse_inspection_quota(text)
    )
