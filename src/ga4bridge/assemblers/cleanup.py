"""Normalizer for GA4 cleanup output (dry-run preview and execution)."""

import logging
import re
from typing import NamedTuple

from ga4bridge.assemblers.common import find_project
from ga4bridge.errors import ITEM_FAILURE_LINE, ErrorCode, check_errors, failure
from ga4bridge.formats import parse_table
from ga4bridge.params import CleanupParams
from ga4bridge.registry import register
from ga4bridge.results import CleanupCategory, CleanupItem, CleanupResult, CleanupStatus
from ga4bridge.sections import extract_section

logger = logging.getLogger(__name__)

PROJECT_RE = re.compile(r"Project:\s*([^(\n]+?)\s*\(Property:\s*(\d+)\)")
NOTHING_CONFIGURED = "No cleanup configured for this project"
CANCELLED = "Cleanup cancelled"
DRY_RUN_BANNERS = ("Dry-run mode enabled", "Dry-run complete")

DONE_RE = re.compile(r"^\s*✓\s+(.+?)\s*$")
ALREADY_RE = re.compile(r"^\s*○\s+(.+?)\s*\((?:already removed|already archived)\)")
ITEM_ERROR_RE = re.compile(r"^\s*✗\s+(.+?):\s+(.+?)\s*$")


class CategoryLayout(NamedTuple):
    """Where one category starts in each rendering and which statuses it uses."""

    name: str
    preview_start: str
    preview_status: CleanupStatus
    execute_start: str
    done_status: CleanupStatus


CATEGORIES = (
    CategoryLayout(
        "conversions",
        "Conversion Events to Remove",
        "will_delete",
        "Removing conversion events",
        "deleted",
    ),
    CategoryLayout(
        "dimensions",
        "Custom Dimensions to Remove",
        "will_archive",
        "Archiving custom dimensions",
        "archived",
    ),
    CategoryLayout(
        "metrics",
        "Custom Metrics to Remove",
        "will_archive",
        "Archiving custom metrics",
        "archived",
    ),
)

# Each section ends at the earliest marker of any category or closing banner.
SECTION_ENDS = (
    *(layout.preview_start for layout in CATEGORIES),
    *(layout.execute_start for layout in CATEGORIES),
    *DRY_RUN_BANNERS,
    "Cleanup complete",
)


def _preview_items(section: str, status: CleanupStatus) -> list[CleanupItem]:
    items = []
    for row in parse_table(section, "|"):
        # The first column holds the event or parameter name.
        name = next(iter(row.values()), "")
        if name != "":
            items.append(CleanupItem(name=str(name), status=status))
    return items


def _execute_items(section: str, done_status: CleanupStatus) -> list[CleanupItem]:
    items = []
    for line in section.splitlines()[1:]:
        if match := ALREADY_RE.match(line):
            items.append(CleanupItem(name=match.group(1), status="already_removed"))
        elif match := ITEM_ERROR_RE.match(line):
            items.append(
                CleanupItem(name=match.group(1), status="error", error=match.group(2))
            )
        elif match := DONE_RE.match(line):
            items.append(CleanupItem(name=match.group(1), status=done_status))
    return items


def _category(items: list[CleanupItem], dry_run: bool) -> CleanupCategory:
    if dry_run:
        removed = len(items)
    else:
        removed = sum(1 for item in items if item.status in ("deleted", "archived"))
    return CleanupCategory(
        items=items,
        removed=removed,
        already_removed=sum(1 for item in items if item.status == "already_removed"),
        errors=sum(1 for item in items if item.status == "error"),
    )


@register(name="cleanup", params=CleanupParams, result=CleanupResult, tags=["ga4"])
def assemble_cleanup(text: str, params: CleanupParams) -> CleanupResult:
    """Read removed, already removed and failed items per category.

    The caller's ``dry_run`` flag decides which rendering is parsed: preview
    tables with ``will_delete`` / ``will_archive`` statuses, or execution
    lines with ``deleted`` / ``archived`` / ``already_removed`` / ``error``.
    """
    outcome = check_errors(text, exclude=ITEM_FAILURE_LINE)
    if outcome.matched:
        return CleanupResult.from_error(outcome, dry_run=params.dry_run)
    if CANCELLED in text:
        cancelled = failure(ErrorCode.GENERIC, "Cleanup cancelled by user")
        return CleanupResult.from_error(cancelled, dry_run=params.dry_run)

    banner = any(phrase in text for phrase in DRY_RUN_BANNERS)
    if banner != params.dry_run:
        logger.debug(f"Dry-run flag {params.dry_run} disagrees with output banner")
    project = find_project(text, PROJECT_RE)

    if NOTHING_CONFIGURED in text:
        return CleanupResult(
            success=True,
            dry_run=params.dry_run,
            dry_run_banner=banner,
            project=project,
            message=NOTHING_CONFIGURED,
        )

    categories: dict[str, CleanupCategory] = {}
    for layout in CATEGORIES:
        if params.dry_run:
            section = extract_section(text, layout.preview_start, SECTION_ENDS)
            items = _preview_items(section, layout.preview_status) if section else None
        else:
            section = extract_section(text, layout.execute_start, SECTION_ENDS)
            items = _execute_items(section, layout.done_status) if section else None
        if items is not None:
            categories[layout.name] = _category(items, params.dry_run)

    return CleanupResult(
        success=True,
        dry_run=params.dry_run,
        dry_run_banner=banner,
        project=project,
        total_removed=sum(c.removed for c in categories.values()),
        **categories,
    )
