"""Normalizer for batch URL monitoring output."""

import logging
import re
from typing import Any

from ga4bridge.assemblers.common import decode_json, find_quota, pick
from ga4bridge.assemblers.inspect import (
    inspection_failure,
    parse_inspection,
    parse_inspection_quota,
)
from ga4bridge.formats import parse_table
from ga4bridge.params import MonitorParams
from ga4bridge.registry import register
from ga4bridge.results import (
    InspectionIssue,
    MonitorPreview,
    MonitorSummary,
    MonitorUrlsResult,
    QuotaInfo,
    UrlInspection,
)
from ga4bridge.sanitize import sanitize
from ga4bridge.sections import extract_section, search_group, search_int

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 2000
DRY_RUN_MARKERS = ("Dry-Run Mode", "Dry-run mode enabled")
RESULTS_MARKER = "Inspection Results"

SITE_RE = re.compile(r"(?:Site|for)\s*:?\s*(sc-domain:[a-zA-Z0-9.-]+|https?://[a-zA-Z0-9.-]+/?)")
URL_COUNT_RE = re.compile(r"URLs to inspect:\s*(\d+)")
PREVIEW_ROW_RE = re.compile(r"^\|\s*\d+\s*\|\s*(https?://[^\s|]+)\s*\|", re.MULTILINE)
INSPECTIONS_USED_RE = re.compile(r"Inspections Used:\s*(\d+)\s*/\s*(\d+)\s*\(([\d.]+)%\)")
QUOTA_WARNING_RE = re.compile(r"(?:WARNING|CRITICAL):\s*(.+)$", re.MULTILINE)
MOBILE_COUNT_RE = re.compile(r"\((\d+)\)")

MD_HEADING_RE = re.compile(r"^###\s*\d+\.\s*(\S+)\s*$", re.MULTILINE)
MD_FIELD_RE = r"^-\s*\*\*{label}\*\*:\s*(.+)$"
MD_ISSUE_RE = re.compile(r"^\s+-\s*\[(\w+)\]\s*([^:]+):\s*(.+)$", re.MULTILINE)

MOBILE_PLACEHOLDER = "Mobile issue detected"
ISSUE_PLACEHOLDER = InspectionIssue(severity="WARNING", issue_type="UNKNOWN", message="Issue detected")


def _site(text: str, params: MonitorParams) -> str | None:
    site = search_group(SITE_RE, text)
    if site is not None:
        # Progress lines end the site with an ellipsis.
        return site.rstrip(".")
    return params.site


def _preview(text: str, params: MonitorParams, site: str | None) -> MonitorPreview:
    urls = PREVIEW_ROW_RE.findall(text) or list(params.urls)
    count = search_int(URL_COUNT_RE, text)
    if count is None:
        count = len(urls)
    return MonitorPreview(
        site=search_group(r"^\s*Site:\s*(\S+)", text) or site,
        urls=urls,
        url_count=count,
        estimated_quota_usage=count,
    )


def _issue(data: Any) -> InspectionIssue | None:
    if not isinstance(data, dict):
        return None
    return InspectionIssue(
        severity=str(pick(data, "Severity", "severity", default="")),
        issue_type=str(pick(data, "IssueType", "issue_type", default="")),
        message=str(pick(data, "Message", "message", default="")),
    )


def inspection_from_json(item: dict[str, Any]) -> UrlInspection:
    """Map one inspection object, PascalCase or snake_case keyed."""
    raw_issues = pick(item, "IndexingIssues", "indexing_issues", default=[])
    issues = [issue for raw in raw_issues if (issue := _issue(raw)) is not None]
    return UrlInspection(
        url=str(pick(item, "URL", "url", default="")),
        verdict=pick(item, "IndexStatus", "index_status"),
        coverage_state=pick(item, "CoverageState", "coverage_state"),
        last_crawl_time=pick(item, "LastCrawlTime", "last_crawl_time"),
        google_canonical=pick(item, "GoogleCanonical", "google_canonical"),
        user_canonical=pick(item, "UserCanonical", "user_canonical"),
        indexing_allowed=bool(pick(item, "IndexingAllowed", "indexing_allowed", default=True)),
        robots_blocked=bool(pick(item, "RobotsBlocked", "robots_blocked", default=False)),
        mobile_usable=bool(pick(item, "MobileUsable", "mobile_usable", default=True)),
        mobile_issues=[str(i) for i in pick(item, "MobileIssues", "mobile_issues", default=[])],
        rich_results_verdict=pick(item, "RichResultsStatus", "rich_results_status"),
        rich_results_issues=[
            str(i) for i in pick(item, "RichResultsIssues", "rich_results_issues", default=[])
        ],
        issues=issues,
    )


def _table_verdict(status: str) -> str:
    status = status.upper()
    if "PARTIAL" in status:
        return "PARTIAL"
    if "NOT INDEXED" in status or "FAIL" in status:
        return "FAIL"
    if "INDEXED" in status or "PASS" in status:
        return "PASS"
    return "NEUTRAL"


def _from_table(text: str) -> list[UrlInspection]:
    section = extract_section(text, RESULTS_MARKER) or text
    results = []
    for row in parse_table(section):
        cells = {str(key).upper(): str(value) for key, value in row.items()}
        url = cells.get("URL", "")
        if not url.startswith(("http://", "https://")):
            continue
        verdict = _table_verdict(cells.get("INDEX STATUS", ""))
        mobile = cells.get("MOBILE", "")
        mobile_count = MOBILE_COUNT_RE.search(mobile)
        issue_count = search_int(r"(\d+)", cells.get("ISSUES", "")) or 0
        mobile_issues = int(mobile_count.group(1)) if mobile_count else 0
        # The table only prints counts, so issues are placeholders.
        results.append(
            UrlInspection(
                url=url.removesuffix("..."),
                verdict=verdict,
                coverage_state=cells.get("COVERAGE") or None,
                indexing_allowed=verdict != "FAIL",
                mobile_usable="✗" not in mobile and "Issues" not in mobile,
                mobile_issues=[MOBILE_PLACEHOLDER] * mobile_issues,
                issues=[ISSUE_PLACEHOLDER] * issue_count,
            )
        )
    return results


def _from_markdown(text: str) -> list[UrlInspection]:
    headings = list(MD_HEADING_RE.finditer(text))
    results = []
    for heading, following in zip(headings, [*headings[1:], None]):
        block = text[heading.end() : following.start() if following else None]
        mobile = search_group(MD_FIELD_RE.format(label="Mobile Usable"), block)
        results.append(
            UrlInspection(
                url=heading.group(1),
                verdict=search_group(MD_FIELD_RE.format(label="Index Status"), block),
                coverage_state=search_group(MD_FIELD_RE.format(label="Coverage State"), block),
                mobile_usable=mobile != "false",
                issues=[
                    InspectionIssue(severity=severity, issue_type=kind.strip(), message=message.strip())
                    for severity, kind, message in MD_ISSUE_RE.findall(block)
                ],
            )
        )
    return results


def _from_json(text: str) -> tuple[list[UrlInspection], str | None]:
    data, error = decode_json(text, "[")
    if error is not None:
        return [], error
    return [inspection_from_json(item) for item in data if isinstance(item, dict)], None


def summarize(results: list[UrlInspection]) -> MonitorSummary:
    return MonitorSummary(
        total_urls=len(results),
        indexed=sum(1 for r in results if r.verdict == "PASS"),
        not_indexed=sum(1 for r in results if r.verdict == "FAIL"),
        partial=sum(1 for r in results if r.verdict == "PARTIAL"),
        total_issues=sum(len(r.issues) for r in results),
        urls_with_issues=sum(1 for r in results if r.issues),
        mobile_issues_count=sum(1 for r in results if r.mobile_issues),
    )


def _quota(text: str) -> QuotaInfo | None:
    quota = find_quota(text, INSPECTIONS_USED_RE, DEFAULT_DAILY_LIMIT)
    if quota is None:
        return None
    warning = search_group(QUOTA_WARNING_RE, extract_section(text, "Daily Quota Status") or "")
    return quota.model_copy(update={"warning": warning}) if warning else quota


@register(name="monitor_urls", params=MonitorParams, result=MonitorUrlsResult, tags=["gsc"])
def assemble_monitor_urls(text: str, params: MonitorParams) -> MonitorUrlsResult:
    """Read a batch inspection of priority URLs.

    The ``format`` parameter picks the decoder. JSON results may use
    PascalCase or snake_case keys; a malformed array is reported in
    ``parse_error`` rather than failing the call. Table output only prints
    issue counts, so its issues are placeholders.
    """
    outcome = inspection_failure(text, "[")
    if outcome.matched:
        return MonitorUrlsResult.from_error(outcome, format=params.format)

    site = _site(text, params)
    if params.dry_run or any(marker in text for marker in DRY_RUN_MARKERS):
        preview = _preview(text, params, site)
        return MonitorUrlsResult(
            success=True,
            dry_run=True,
            format=params.format,
            site=site or preview.site,
            preview=preview,
        )

    parse_error = None
    if params.format == "json":
        results, parse_error = _from_json(text)
    elif params.format == "markdown":
        results = _from_markdown(text)
        site = search_group(r"\*\*Site\*\*:\s*(\S+)", text) or site
    else:
        results = _from_table(text)
        if not results and "[" in text:
            logger.debug("No table rows in monitor output, trying JSON")
            results, parse_error = _from_json(text)

    if parse_error is not None:
        logger.warning(f"Malformed monitor results: {parse_error}")

    return MonitorUrlsResult(
        success=True,
        format=params.format,
        site=site,
        results=results,
        summary=summarize(results),
        quota=_quota(text),
        parse_error=parse_error,
    )


def combine_inspections(params: MonitorParams, outputs: list[str]) -> MonitorUrlsResult:
    """Fold per-URL inspection outputs into one monitor result.

    URL-array mode runs one inspection per entry of ``params.urls``;
    ``outputs`` holds their raw output in the same order. A failed inspection
    becomes an ERROR issue on that URL. The call only fails when every
    inspection failed.

    Args:
        params: Monitor parameters with ``site`` and ``urls``
        outputs: Raw output of each inspection

    Returns:
        MonitorUrlsResult for the whole batch

    Raises:
        ValueError: When the number of outputs differs from the number of URLs
    """
    if params.dry_run:
        preview = MonitorPreview(
            site=params.site,
            urls=list(params.urls),
            url_count=len(params.urls),
            estimated_quota_usage=len(params.urls),
        )
        return MonitorUrlsResult(
            success=True, dry_run=True, format=params.format, site=params.site, preview=preview
        )

    if len(outputs) != len(params.urls):
        raise ValueError(f"Expected {len(params.urls)} inspection outputs, got {len(outputs)}")

    results = []
    failures = []
    quota = None
    for url, raw in zip(params.urls, outputs):
        text = sanitize(raw)
        outcome = inspection_failure(text)
        if outcome.matched:
            failures.append(outcome)
            issue = InspectionIssue(
                severity="ERROR", issue_type=outcome.code.value, message=outcome.message or ""
            )
            results.append(UrlInspection(url=url, issues=[issue]))
            continue
        results.append(parse_inspection(text, url))
        quota = parse_inspection_quota(text) or quota

    if results and len(failures) == len(results):
        return MonitorUrlsResult.from_error(failures[0], format=params.format, site=params.site)

    return MonitorUrlsResult(
        success=True,
        format=params.format,
        site=params.site,
        results=results,
        summary=summarize(results),
        quota=quota,
    )
