"""Normalizers for Search Console sitemap commands."""

import logging
import re

from ga4bridge.assemblers.common import to_int
from ga4bridge.errors import ErrorCode, check_errors, failure
from ga4bridge.formats import parse_table
from ga4bridge.params import SiteParams, SitemapParams
from ga4bridge.registry import register
from ga4bridge.results import (
    SitemapContent,
    SitemapEntry,
    SitemapsDeleteResult,
    SitemapsGetResult,
    SitemapsListResult,
    SitemapsSubmitResult,
)
from ga4bridge.sections import extract_section, search_group, search_int

logger = logging.getLogger(__name__)

LISTING_RE = re.compile(r"Listing sitemaps for\s+(\S+)")
NO_SITEMAPS = "No sitemaps found"
INDEX_SUFFIX_RE = re.compile(r"\s*\(Index\)\s*$", re.IGNORECASE)
SITE_RE = re.compile(r"^\s*Site:\s*(\S+)", re.MULTILINE)
SITEMAP_RE = re.compile(r"^\s*Sitemap:\s*(\S+)", re.MULTILINE)
SUBMITTED = "submitted successfully"
DELETED = "deleted successfully"
CONTENT_MARKER = "Content Breakdown"
LEADING_INT_RE = re.compile(r"^\s*([\d,]+)")


def _entry(row: dict) -> SitemapEntry:
    url = str(row.get("SITEMAP URL", ""))
    is_index = INDEX_SUFFIX_RE.search(url) is not None
    status = str(row.get("STATUS", "")) or None
    return SitemapEntry(
        url=INDEX_SUFFIX_RE.sub("", url),
        url_count=to_int(row.get("URLS")),
        errors=to_int(row.get("ERRORS")),
        warnings=to_int(row.get("WARNINGS")),
        last_submitted=str(row.get("LAST SUBMITTED", "")) or None,
        status=status,
        is_index=is_index,
        is_pending=status is not None and "pending" in status.lower(),
    )


@register(name="sitemaps_list", params=SiteParams, result=SitemapsListResult, tags=["gsc"])
def assemble_sitemaps_list(text: str, params: SiteParams) -> SitemapsListResult:
    """Read the sitemap table printed for a site."""
    site = search_group(LISTING_RE, text) or params.site or None
    outcome = check_errors(text)
    if outcome.matched:
        return SitemapsListResult.from_error(outcome, site=site)
    if NO_SITEMAPS in text:
        return SitemapsListResult(success=True, site=site)

    sitemaps = [_entry(row) for row in parse_table(text) if row.get("SITEMAP URL")]
    logger.debug(f"Parsed {len(sitemaps)} sitemaps for {site}")
    return SitemapsListResult(success=True, site=site, sitemaps=sitemaps)


def _echo(text: str, params: SitemapParams) -> dict:
    return {
        "site": search_group(SITE_RE, text) or params.site or None,
        "sitemap_url": search_group(SITEMAP_RE, text) or params.url or None,
    }


@register(
    name="sitemaps_submit",
    params=SitemapParams,
    result=SitemapsSubmitResult,
    description="Confirm a sitemap submission.",
    tags=["gsc"],
)
def assemble_sitemaps_submit(text: str, params: SitemapParams) -> SitemapsSubmitResult:
    echo = _echo(text, params)
    outcome = check_errors(text)
    if outcome.matched:
        return SitemapsSubmitResult.from_error(outcome, **echo)
    if SUBMITTED not in text:
        outcome = failure(ErrorCode.GENERIC, "Sitemap submission was not confirmed")
        return SitemapsSubmitResult.from_error(outcome, **echo)
    return SitemapsSubmitResult(success=True, message="Sitemap submitted successfully", **echo)


@register(
    name="sitemaps_delete",
    params=SitemapParams,
    result=SitemapsDeleteResult,
    description="Confirm a sitemap deletion.",
    tags=["gsc"],
)
def assemble_sitemaps_delete(text: str, params: SitemapParams) -> SitemapsDeleteResult:
    echo = _echo(text, params)
    outcome = check_errors(text)
    if outcome.matched:
        return SitemapsDeleteResult.from_error(outcome, **echo)
    if DELETED not in text:
        outcome = failure(ErrorCode.GENERIC, "Sitemap deletion was not confirmed")
        return SitemapsDeleteResult.from_error(outcome, **echo)
    return SitemapsDeleteResult(success=True, message="Sitemap deleted successfully", **echo)


def _contents(text: str) -> list[SitemapContent]:
    section = extract_section(text, CONTENT_MARKER)
    if section is None:
        return []
    contents = []
    for row in parse_table(section):
        kind = str(row.get("TYPE", ""))
        if not kind:
            continue
        submitted = to_int(row.get("SUBMITTED"))
        indexed = search_group(LEADING_INT_RE, str(row.get("INDEXED", "")))
        indexed_count = to_int(indexed) if indexed is not None else None
        percent = None
        if indexed_count is not None and submitted:
            percent = round(indexed_count / submitted * 100, 1)
        contents.append(
            SitemapContent(
                type=kind, submitted=submitted, indexed=indexed_count, indexed_percent=percent
            )
        )
    return contents


@register(name="sitemaps_get", params=SitemapParams, result=SitemapsGetResult, tags=["gsc"])
def assemble_sitemaps_get(text: str, params: SitemapParams) -> SitemapsGetResult:
    """Read the detail block and content breakdown of one sitemap."""
    url = search_group(r"^\s*URL:\s*(\S+)", text) or params.url or None
    outcome = check_errors(text)
    if outcome.matched:
        return SitemapsGetResult.from_error(outcome, url=url)

    kind = search_group(r"^\s*Type:\s*(.+)$", text)
    status = search_group(r"^\s*Status:\s*(.+)$", text)
    return SitemapsGetResult(
        success=True,
        url=url,
        type=kind,
        is_index=kind is not None and "index" in kind.lower(),
        is_pending=status is not None and "pending" in status.lower(),
        last_submitted=search_group(r"^\s*Last Submitted:\s*(.+)$", text),
        last_downloaded=search_group(r"^\s*Last Downloaded:\s*(.+)$", text),
        status=status,
        errors=search_int(r"^\s*Errors:\s*([\d,]+)", text) or 0,
        warnings=search_int(r"^\s*Warnings:\s*([\d,]+)", text) or 0,
        contents=_contents(text),
    )
