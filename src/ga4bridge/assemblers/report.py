"""Normalizer for GA4 property report output."""

import logging
import re

from ga4bridge.assemblers.common import find_project
from ga4bridge.errors import check_errors
from ga4bridge.formats import parse_aligned_table
from ga4bridge.params import ReportParams
from ga4bridge.registry import register
from ga4bridge.results import (
    AudienceRow,
    CalculatedMetricRow,
    ConversionRow,
    DataRetention,
    DimensionRow,
    MetricRow,
    ReportResult,
)
from ga4bridge.sections import extract_section, search_group, search_int

logger = logging.getLogger(__name__)

CONVERSIONS_MARKER = "Conversions"
DIMENSIONS_MARKER = "Custom Dimensions"
METRICS_MARKER = "Custom Metrics"
CALCULATED_MARKER = "Calculated Metrics"
AUDIENCES_MARKER = "Configured Audiences"
RETENTION_MARKER = "Data Retention"
ENHANCED_MARKER = "Enhanced Measurement"

PROJECT_RE = re.compile(r"^([^\n]+?)\s*\(Property:\s*(\d+)\)", re.MULTILINE)
RETENTION_RE = re.compile(r"Event Data Retention:\s*(\d+)\s*months")
RESET_RE = re.compile(r"Reset on New Activity:\s*(true|false)", re.IGNORECASE)
ENHANCED_RE = re.compile(r"Enhanced Measurement (enabled|disabled)", re.IGNORECASE)
FIRST_INT_RE = re.compile(r"\d+")


def _rows(text: str, start: str, end: str, headers: list[str]) -> list[dict[str, str]]:
    section = extract_section(text, start, end)
    if section is None:
        logger.debug(f"Report section {start!r} not found")
        return []
    rows = parse_aligned_table(section, headers)
    # A row needs every column; wrapped continuation lines are dropped.
    return [row for row in rows if all(row.get(h) for h in headers)]


def _duration_days(value: str) -> int | None:
    match = FIRST_INT_RE.search(value)
    return int(match.group(0)) if match else None


@register(name="report", params=ReportParams, result=ReportResult, tags=["ga4"])
def assemble_report(text: str, params: ReportParams) -> ReportResult:
    """Read the configuration tables of a GA4 property report."""
    outcome = check_errors(text)
    if outcome.matched:
        return ReportResult.from_error(outcome)

    conversions = [
        ConversionRow(name=row["EVENT NAME"], counting_method=row["COUNTING METHOD"])
        for row in _rows(
            text, CONVERSIONS_MARKER, DIMENSIONS_MARKER, ["EVENT NAME", "COUNTING METHOD"]
        )
    ]
    dimensions = [
        DimensionRow(display_name=row["DISPLAY NAME"], parameter=row["PARAMETER"], scope=row["SCOPE"])
        for row in _rows(
            text, DIMENSIONS_MARKER, METRICS_MARKER, ["DISPLAY NAME", "PARAMETER", "SCOPE"]
        )
    ]
    metrics = [
        MetricRow(
            display_name=row["DISPLAY NAME"],
            parameter=row["PARAMETER"],
            unit=row["UNIT"],
            scope=row["SCOPE"],
        )
        for row in _rows(
            text, METRICS_MARKER, CALCULATED_MARKER, ["DISPLAY NAME", "PARAMETER", "UNIT", "SCOPE"]
        )
    ]
    calculated = [
        CalculatedMetricRow(display_name=row["DISPLAY NAME"], formula=row["FORMULA"], unit=row["UNIT"])
        for row in _rows(
            text, CALCULATED_MARKER, AUDIENCES_MARKER, ["DISPLAY NAME", "FORMULA", "UNIT"]
        )
    ]
    audiences = [
        AudienceRow(
            name=row["NAME"],
            category=row["CATEGORY"],
            duration_days=_duration_days(row["DURATION"]),
        )
        for row in _rows(text, AUDIENCES_MARKER, RETENTION_MARKER, ["NAME", "CATEGORY", "DURATION"])
    ]

    retention = None
    retention_section = extract_section(text, RETENTION_MARKER, ENHANCED_MARKER)
    if retention_section is not None:
        reset = search_group(RESET_RE, retention_section)
        retention = DataRetention(
            event_data_retention_months=search_int(RETENTION_RE, retention_section),
            reset_on_new_activity=reset.lower() == "true" if reset else None,
        )

    enhanced = search_group(ENHANCED_RE, text)

    return ReportResult(
        success=True,
        project=find_project(text, PROJECT_RE),
        conversions=conversions,
        dimensions=dimensions,
        metrics=metrics,
        calculated_metrics=calculated,
        audiences=audiences,
        data_retention=retention,
        enhanced_measurement=enhanced.lower() == "enabled" if enhanced else None,
    )
