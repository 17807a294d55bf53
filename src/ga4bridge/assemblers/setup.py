"""Normalizer for unified GA4 / Search Console setup output."""

import logging
import re
from pathlib import PurePath

from ga4bridge.errors import ITEM_FAILURE_LINE, check_errors
from ga4bridge.params import SetupParams
from ga4bridge.registry import register
from ga4bridge.results import Ga4SetupSummary, GscSetupSummary, ProjectInfo, SetupResult
from ga4bridge.sections import extract_section

logger = logging.getLogger(__name__)

GA4_MARKER = "Google Analytics 4 Setup"
GSC_MARKER = "Google Search Console Setup"
CONVERSIONS_MARKER = "Creating conversions"
DIMENSIONS_MARKER = "Creating custom dimensions"
METRICS_MARKER = "Creating custom metrics"
DRY_RUN_BANNER = "Dry-run mode enabled"
COMPLETION_BANNERS = ("Setup completed successfully", "Dry-run complete")

PROPERTY_RE = re.compile(r"Property access verified \((\d+)\)")
CONFIG_RE = re.compile(r"Configuration loaded \(([^)]+)\)")
CREATED_RE = re.compile(r"Created:\s*(\d+),?\s*Skipped:\s*(\d+)")
SUBMITTED_RE = re.compile(r"Submitted:\s*(\d+),?\s*Skipped:\s*(\d+)")
ITEM_ERROR_RE = re.compile(r"^\s*✗\s+(.+?):\s+(.+?)\s*$", re.MULTILINE)


def _counts(section: str | None, pattern: re.Pattern[str]) -> tuple[int, int]:
    if section is None:
        return 0, 0
    match = pattern.search(section)
    if match is None:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


def _item_errors(section: str | None) -> list[str]:
    if section is None:
        return []
    return [f"{name}: {reason}" for name, reason in ITEM_ERROR_RE.findall(section)]


def _project(text: str) -> tuple[ProjectInfo | None, str | None]:
    config_file = None
    name = None
    match = CONFIG_RE.search(text)
    if match:
        config_file = match.group(1).strip()
        name = PurePath(config_file).stem
    property_match = PROPERTY_RE.search(text)
    property_id = property_match.group(1) if property_match else None
    if name is None and property_id is None:
        return None, None
    return ProjectInfo(name=name, property_id=property_id), config_file


@register(name="setup", params=SetupParams, result=SetupResult, tags=["ga4", "gsc"])
def assemble_setup(text: str, params: SetupParams) -> SetupResult:
    """Summarize what a setup run created, skipped or failed to create."""
    outcome = check_errors(text, exclude=ITEM_FAILURE_LINE)
    if outcome.matched:
        return SetupResult.from_error(outcome, dry_run=params.dry_run)

    dry_run = params.dry_run or DRY_RUN_BANNER in text
    project, config_file = _project(text)

    ga4 = None
    conversions = extract_section(text, CONVERSIONS_MARKER, DIMENSIONS_MARKER)
    dimensions = extract_section(text, DIMENSIONS_MARKER, METRICS_MARKER)
    metrics = extract_section(text, METRICS_MARKER, GSC_MARKER)
    if GA4_MARKER in text or any(s is not None for s in (conversions, dimensions, metrics)):
        conv_created, conv_skipped = _counts(conversions, CREATED_RE)
        dim_created, dim_skipped = _counts(dimensions, CREATED_RE)
        metric_created, metric_skipped = _counts(metrics, CREATED_RE)
        ga4 = Ga4SetupSummary(
            conversions_created=conv_created,
            conversions_skipped=conv_skipped,
            dimensions_created=dim_created,
            dimensions_skipped=dim_skipped,
            metrics_created=metric_created,
            metrics_skipped=metric_skipped,
            errors=_item_errors(text.split(GSC_MARKER, 1)[0]),
        )

    gsc = None
    gsc_section = extract_section(text, GSC_MARKER)
    if gsc_section is not None:
        submitted, skipped = _counts(gsc_section, SUBMITTED_RE)
        gsc = GscSetupSummary(
            sitemaps_submitted=submitted,
            sitemaps_skipped=skipped,
            errors=_item_errors(gsc_section),
        )
    else:
        logger.debug("No Search Console section in setup output")

    return SetupResult(
        success=True,
        dry_run=dry_run,
        project=project,
        config_file=config_file,
        ga4=ga4,
        gsc=gsc,
        completed=any(banner in text for banner in COMPLETION_BANNERS),
    )
