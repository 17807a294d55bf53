"""Normalizer for Search Console search analytics output."""

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
from ga4bridge.formats import parse_csv, parse_table
from ga4bridge.params import AnalyticsParams
from ga4bridge.registry import register
from ga4bridge.results import (
    AnalyticsAggregates,
    AnalyticsPreview,
    AnalyticsResult,
    AnalyticsRow,
    QueryFilter,
)
from ga4bridge.sections import extract_section, search_float, search_group, search_int

logger = logging.getLogger(__name__)

DRY_RUN_MARKER = "Dry-run mode"
NO_DATA = "No data found for this query"
MARKDOWN_RESULTS = "## Results"
METRIC_COLUMNS = 4

QUERYING_RE = re.compile(r"Querying search analytics for\s+(\S+?)(?:\.{3})?\s*$", re.MULTILINE)
SITE_RE = re.compile(r"^\s*Site(?: URL)?:\s*(\S+)", re.MULTILINE)
DATE_RANGE_RE = re.compile(
    r"Date range:\s*(\d{4}-\d{2}-\d{2})\s+to\s+(\d{4}-\d{2}-\d{2})(?:\s*\((\d+) days\))?",
    re.IGNORECASE,
)
PERIOD_RE = re.compile(r"^\s*Period:\s*(.+?)\s*$", re.MULTILINE)
DIMENSIONS_RE = re.compile(r"^\s*Dimensions:\s*(.+?)\s*$", re.MULTILINE)
FILTER_RE = re.compile(r"^\s*\d+\.\s*(\w+)\s+(\w+)\s+'([^']*)'", re.MULTILINE)
TOTAL_ROWS_RE = re.compile(r"Total Rows:\s*([\d,]+)")
TOTAL_CLICKS_RE = re.compile(r"Total Clicks:\s*([\d,]+)")
TOTAL_IMPRESSIONS_RE = re.compile(r"Total Impressions:\s*([\d,]+)")
AVERAGE_CTR_RE = re.compile(r"Average CTR:\s*([\d.]+)%")
AVERAGE_POSITION_RE = re.compile(r"Av(?:g|erage) Position:\s*([\d.]+)")
QUERIES_USED_RE = re.compile(r"Queries Used:\s*(\d+)\s*/\s*(\d+)\s*\(([\d.]+)%\)")
REPORT_BANNER_RE = re.compile(r"^\s*===")


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _dates(period: str | None) -> tuple[str | None, str | None]:
    if period is None or " to " not in period:
        return None, None
    start, end = period.split(" to ", 1)
    return start.strip(), end.strip()


def _preview(text: str) -> AnalyticsPreview:
    start, end = _dates(search_group(r"^\s*Date Range:\s*(.+?)\s*$", text))
    return AnalyticsPreview(
        site=search_group(SITE_RE, text),
        start_date=start,
        end_date=end,
        dimensions=_split_list(search_group(DIMENSIONS_RE, text)),
        row_limit=search_int(r"^\s*Row Limit:\s*([\d,]+)", text),
        data_state=search_group(r"^\s*Data State:\s*(\S+)", text) or "final",
        filters=[
            QueryFilter(dimension=dimension, operator=operator, expression=expression)
            for dimension, operator, expression in FILTER_RE.findall(text)
        ],
    )


def _row(keys: list[Any], metrics: list[Any]) -> AnalyticsRow:
    clicks, impressions, ctr, position = metrics
    return AnalyticsRow(
        keys=[str(key) for key in keys],
        clicks=to_int(clicks),
        impressions=to_int(impressions),
        ctr=parse_percent(ctr),
        position=to_float(position),
    )


def _rows_from_cells(records: list[list[Any]]) -> list[AnalyticsRow]:
    """Dimension cells first, then clicks, impressions, CTR and position."""
    rows = []
    for cells in records:
        if len(cells) <= METRIC_COLUMNS:
            continue
        rows.append(_row(cells[:-METRIC_COLUMNS], cells[-METRIC_COLUMNS:]))
    return rows


def _is_metric_header(line: str) -> bool:
    return "Clicks" in line and "Impressions" in line and "|" not in line


def _opens_rows(line: str) -> bool:
    """Column header of a text or CSV report."""
    return _is_metric_header(line) or "Clicks," in line


def _text_rows(text: str) -> list[AnalyticsRow]:
    lines = text.splitlines()
    header = next((i for i, line in enumerate(lines) if _is_metric_header(line)), None)
    if header is None:
        return []
    records = []
    for line in lines[header + 1 :]:
        if not line.strip() or REPORT_BANNER_RE.match(line):
            break
        cells = split_columns(line)
        # Summary lines below the table have no numeric clicks column.
        if len(cells) > METRIC_COLUMNS and cells[-METRIC_COLUMNS].replace(",", "").isdigit():
            records.append(cells)
    return _rows_from_cells(records)


def _markdown_rows(text: str) -> list[AnalyticsRow]:
    section = extract_section(text, MARKDOWN_RESULTS)
    if section is None:
        return []
    return _rows_from_cells([list(row.values()) for row in parse_table(section, "|")])


def _csv_rows(text: str) -> list[AnalyticsRow]:
    start = next((i for i, line in enumerate(text.splitlines()) if "Clicks," in line), None)
    if start is None:
        return []
    body = "\n".join(text.splitlines()[start:])
    return _rows_from_cells([list(row.values()) for row in parse_csv(body)])


def _from_json(data: dict[str, Any], params: AnalyticsParams) -> AnalyticsResult:
    aggregates = pick(data, "Aggregates", "aggregates", default={})
    metadata = pick(data, "Metadata", "metadata", default={})
    period = pick(data, "Period", "period")
    start, end = _dates(period)
    rows = [
        _row(
            pick(row, "Keys", "keys", default=[]),
            [
                pick(row, "Clicks", "clicks", default=0),
                pick(row, "Impressions", "impressions", default=0),
                pick(row, "CTR", "ctr", default=0),
                pick(row, "Position", "position", default=0),
            ],
        )
        for row in pick(data, "Rows", "rows", default=[])
        if isinstance(row, dict)
    ]
    return AnalyticsResult(
        success=True,
        site=pick(data, "SiteURL", "site_url"),
        period=period,
        start_date=pick(metadata, "StartDate", "start_date", default=start),
        end_date=pick(metadata, "EndDate", "end_date", default=end),
        total_rows=to_int(pick(data, "TotalRows", "total_rows", default=len(rows))),
        aggregates=AnalyticsAggregates(
            total_clicks=to_int(pick(aggregates, "TotalClicks", "total_clicks", default=0)),
            total_impressions=to_int(
                pick(aggregates, "TotalImpressions", "total_impressions", default=0)
            ),
            average_ctr=to_float(pick(aggregates, "AverageCTR", "average_ctr", default=0)),
            average_position=to_float(
                pick(aggregates, "AveragePosition", "average_position", default=0)
            ),
        ),
        rows=rows,
        dimensions=pick(metadata, "Dimensions", "dimensions", default=params.dimension_list),
    )


def _from_text(text: str, params: AnalyticsParams) -> AnalyticsResult:
    # Markdown decorates labels with bold markers.
    plain = text.replace("**", "")
    site = search_group(QUERYING_RE, plain) or search_group(SITE_RE, plain)
    date_range = DATE_RANGE_RE.search(plain)
    if date_range is not None:
        start, end = date_range.group(1), date_range.group(2)
        period = f"{start} to {end}"
        days = int(date_range.group(3)) if date_range.group(3) else None
    else:
        period = search_group(PERIOD_RE, plain)
        start, end = _dates(period)
        days = None

    if NO_DATA in plain:
        return AnalyticsResult(
            success=True,
            site=site,
            period=period,
            start_date=start,
            end_date=end,
            days=days,
            total_rows=0,
            aggregates=AnalyticsAggregates(),
            dimensions=params.dimension_list,
        )

    if params.format == "csv":
        rows = _csv_rows(text)
    elif MARKDOWN_RESULTS in text:
        rows = _markdown_rows(text)
    else:
        rows = _text_rows(text)

    clicks = search_int(TOTAL_CLICKS_RE, plain)
    impressions = search_int(TOTAL_IMPRESSIONS_RE, plain)
    ctr = search_float(AVERAGE_CTR_RE, plain)
    position = search_float(AVERAGE_POSITION_RE, plain)
    aggregates = None
    if any(value is not None for value in (clicks, impressions, ctr, position)):
        aggregates = AnalyticsAggregates(
            total_clicks=clicks or 0,
            total_impressions=impressions or 0,
            average_ctr=round(ctr / 100, 6) if ctr is not None else 0.0,
            average_position=position or 0.0,
        )

    total_rows = search_int(TOTAL_ROWS_RE, plain)
    return AnalyticsResult(
        success=True,
        site=site,
        period=period,
        start_date=start,
        end_date=end,
        days=days,
        total_rows=total_rows if total_rows is not None else len(rows),
        aggregates=aggregates,
        rows=rows,
        dimensions=_split_list(search_group(DIMENSIONS_RE, plain)) or params.dimension_list,
    )


@register(name="analytics", params=AnalyticsParams, result=AnalyticsResult, tags=["gsc"])
def assemble_analytics(text: str, params: AnalyticsParams) -> AnalyticsResult:
    """Read a search analytics report, or the preview of a dry-run query.

    JSON reports may use PascalCase or snake_case keys. Text, markdown and
    CSV reports put the dimension cells first and the four metrics (clicks,
    impressions, CTR, position) last. Percent CTR values are scaled to
    fractions.
    """
    outcome = check_errors(strip_payload(text, "{", _opens_rows), exclude=FILTER_RE)
    if outcome.matched:
        return AnalyticsResult.from_error(outcome)

    if params.dry_run or DRY_RUN_MARKER in text:
        preview = _preview(text)
        period = None
        if preview.start_date and preview.end_date:
            period = f"{preview.start_date} to {preview.end_date}"
        return AnalyticsResult(
            success=True,
            dry_run=True,
            preview=preview,
            site=preview.site,
            period=period,
            start_date=preview.start_date,
            end_date=preview.end_date,
            dimensions=preview.dimensions,
        )

    if wants_json(text, params.format):
        data, error = decode_json(text, "{")
        if error is None and not isinstance(data, dict):
            error = "expected a JSON object"
        if error is not None:
            logger.warning(f"Malformed analytics JSON: {error}")
            return AnalyticsResult.from_error(
                failure(ErrorCode.PARSE, f"Could not parse analytics JSON: {error}")
            )
        result = _from_json(data, params)
    else:
        logger.debug(f"Reading analytics {params.format} report as text")
        result = _from_text(text, params)

    quota = find_quota(text, QUERIES_USED_RE)
    return result.model_copy(update={"quota": quota}) if quota else result
