"""Normalizer for the Search Console index coverage estimate."""

import logging
import re
from typing import Any

from ga4bridge.assemblers.common import (
    decode_json,
    find_quota,
    parse_percent,
    pick,
    split_columns,
    strip_payload,
    to_float,
    to_int,
    wants_json,
)
from ga4bridge.errors import ErrorCode, check_errors, failure
from ga4bridge.formats import parse_table
from ga4bridge.params import CoverageParams
from ga4bridge.registry import register
from ga4bridge.results import CoverageIssue, CoveragePreview, CoverageResult, PageSample
from ga4bridge.sections import extract_section, search_float, search_group, search_int

logger = logging.getLogger(__name__)

DRY_RUN_MARKER = "Dry-run mode"
ISSUES_MARKER = "Coverage Issues"
SAMPLES_MARKER = "Page Samples"
SUMMARY_MARKER = "Coverage Report Summary"
SECTION_ENDS = (SAMPLES_MARKER, SUMMARY_MARKER, "Daily Quota Status", "Note:")

GENERATING_RE = re.compile(r"coverage report for\s+(\S+?)(?:\.{3})?\s*$", re.MULTILINE)
SITE_RE = re.compile(r"^\s*(?:-\s*)?Site(?: URL)?:\s*(\S+)", re.MULTILINE)
ANALYZING_RE = re.compile(r"Analyzing last \d+ days \(([^)]+)\)")
PERIOD_RE = re.compile(r"^\s*Period:\s*(.+?)\s*$", re.MULTILINE)
TOTAL_PAGES_RE = re.compile(r"Total Pages(?: Found)?:\s*([\d,]+)")
INDEXED_PAGES_RE = re.compile(r"Indexed Pages:\s*([\d,]+)")
INDEXED_PERCENT_RE = re.compile(r"Indexed(?: %| Percentage):\s*([\d.]+)%")
QUERIES_USED_RE = re.compile(r"Queries Used:\s*(\d+)\s*/\s*(\d+)\s*\(([\d.]+)%\)")


def _percentage(part: int | None, total: int | None) -> float | None:
    if part is None or not total:
        return None
    return round(part / total * 100, 1)


def _opens_table(line: str) -> bool:
    return ISSUES_MARKER in line or SAMPLES_MARKER in line


def _cells(section: str) -> list[list[Any]]:
    """Data rows of a pipe-delimited or tab-padded table, header excluded."""
    if "|" in section:
        return [list(row.values()) for row in parse_table(section, "|")]
    lines = [line for line in section.splitlines()[1:] if line.strip()]
    # The first line after the marker is the header.
    return [split_columns(line) for line in lines[1:]]


def _issues(text: str, total: int | None) -> list[CoverageIssue]:
    section = extract_section(text, ISSUES_MARKER, SECTION_ENDS)
    if section is None:
        return []
    issues = []
    for cells in _cells(section):
        if len(cells) < 2 or not str(cells[0]):
            continue
        count = to_int(cells[1])
        if len(cells) > 2:
            percentage = to_float(str(cells[2]).rstrip("%"))
        else:
            percentage = _percentage(count, total)
        issues.append(CoverageIssue(issue=str(cells[0]), count=count, percentage=percentage))
    return issues


def _samples(text: str) -> list[PageSample]:
    section = extract_section(text, SAMPLES_MARKER, SECTION_ENDS)
    if section is None:
        return []
    samples = []
    for cells in _cells(section):
        if len(cells) < 6 or not str(cells[0]).startswith(("http://", "https://")):
            continue
        url, status, impressions, clicks, ctr, position = cells[:6]
        samples.append(
            PageSample(
                url=str(url),
                status=str(status) or None,
                impressions=to_int(impressions),
                clicks=to_int(clicks),
                ctr=parse_percent(ctr),
                position=to_float(position),
            )
        )
    return samples


def _json_issue(item: dict[str, Any], total: int) -> CoverageIssue:
    count = to_int(pick(item, "Count", "count", default=0))
    return CoverageIssue(
        issue=str(pick(item, "Issue", "issue", default="")),
        count=count,
        percentage=_percentage(count, total),
    )


def _from_json(data: dict[str, Any]) -> CoverageResult:
    total = to_int(pick(data, "TotalPages", "total_pages", default=0))
    indexed = to_int(pick(data, "IndexedPages", "indexed_pages", default=0))
    top_issues = [
        _json_issue(item, total)
        for item in pick(data, "TopIssues", "top_issues", default=[])
        if isinstance(item, dict)
    ]
    samples = [
        PageSample(
            url=str(pick(item, "URL", "url", default="")),
            status=pick(item, "Status", "status"),
            impressions=to_int(pick(item, "Impressions", "impressions", default=0)),
            clicks=to_int(pick(item, "Clicks", "clicks", default=0)),
            ctr=to_float(pick(item, "CTR", "ctr", default=0)),
            position=to_float(pick(item, "Position", "position", default=0)),
        )
        for item in pick(data, "PagesSample", "pages_sample", default=[])
        if isinstance(item, dict)
    ]
    breakdown = pick(data, "IssueBreakdown", "issue_breakdown", default={})
    return CoverageResult(
        success=True,
        site=pick(data, "SiteURL", "site_url", "site"),
        period=pick(data, "Period", "period"),
        total_pages=total,
        indexed_pages=indexed,
        indexed_percentage=_percentage(indexed, total),
        issue_breakdown={str(k): to_int(v) for k, v in breakdown.items()},
        top_issues=top_issues,
        pages_sample=samples,
    )


def _from_text(text: str) -> CoverageResult:
    # Markdown decorates labels with bold markers.
    plain = text.replace("**", "")
    total = search_int(TOTAL_PAGES_RE, plain)
    indexed = search_int(INDEXED_PAGES_RE, plain)
    percentage = search_float(INDEXED_PERCENT_RE, plain)
    if percentage is None:
        percentage = _percentage(indexed, total)
    issues = _issues(plain, total)
    return CoverageResult(
        success=True,
        site=search_group(SITE_RE, plain) or search_group(GENERATING_RE, plain),
        period=search_group(PERIOD_RE, plain) or search_group(ANALYZING_RE, plain),
        total_pages=total,
        indexed_pages=indexed,
        indexed_percentage=percentage,
        issue_breakdown={issue.issue: issue.count for issue in issues},
        top_issues=issues,
        pages_sample=_samples(plain),
    )


def _preview(text: str, params: CoverageParams) -> CoveragePreview:
    start, _, end = (search_group(r"^\s*Date Range:\s*(.+?)\s*$", text) or "").partition(" to ")
    return CoveragePreview(
        site=search_group(SITE_RE, text) or params.site,
        start_date=start or None,
        end_date=end or None,
        state_filter=search_group(r"^\s*State Filter:\s*(\S+)", text) or params.state,
        top_issues=search_int(r"^\s*Top Issues:\s*(\d+)", text) or params.top_issues,
    )


@register(name="coverage", params=CoverageParams, result=CoverageResult, tags=["gsc"])
def assemble_coverage(text: str, params: CoverageParams) -> CoverageResult:
    """Read an index coverage estimate, or the preview of a dry-run query."""
    outcome = check_errors(strip_payload(text, "{", _opens_table))
    if outcome.matched:
        return CoverageResult.from_error(outcome)

    if params.dry_run or DRY_RUN_MARKER in text:
        preview = _preview(text, params)
        period = None
        if preview.start_date and preview.end_date:
            period = f"{preview.start_date} to {preview.end_date}"
        return CoverageResult(
            success=True, dry_run=True, preview=preview, site=preview.site, period=period
        )

    if wants_json(text, params.format):
        data, error = decode_json(text, "{")
        if error is None and not isinstance(data, dict):
            error = "expected a JSON object"
        if error is not None:
            logger.warning(f"Malformed coverage JSON: {error}")
            return CoverageResult.from_error(
                failure(ErrorCode.PARSE, f"Could not parse coverage JSON: {error}")
            )
        result = _from_json(data)
    else:
        logger.debug(f"Reading coverage {params.format} report as text")
        result = _from_text(text)

    quota = find_quota(text, QUERIES_USED_RE)
    return result.model_copy(update={"quota": quota}) if quota else result
