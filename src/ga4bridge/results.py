"""Typed result variants, one per normalized operation."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ga4bridge.errors import ErrorCode, ErrorOutcome, QuotaStatus


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class ResultBase(Record):
    """Fields shared by every result variant."""

    success: bool = Field(description="Whether the wrapped command succeeded")
    error: str | None = Field(default=None, description="Failure message")
    error_code: ErrorCode | None = Field(default=None, description="Failure category")
    suggestion: str | None = Field(default=None, description="How to fix the failure")

    @classmethod
    def from_error(cls, outcome: ErrorOutcome, **fields: Any):
        """Build a failure result carrying only the outcome and invocation echoes."""
        return cls(
            success=False,
            error=outcome.message,
            error_code=outcome.code,
            suggestion=outcome.suggestion,
            **fields,
        )


class ProjectInfo(Record):
    name: str | None = None
    property_id: str | None = None


class QuotaInfo(Record):
    """Daily quota figures printed after Search Console calls."""

    used: int | None = None
    limit: int | None = None
    remaining: int | None = None
    percent: float | None = None
    date: str | None = None
    status: QuotaStatus | None = None
    warning: str | None = None


# setup


class Ga4SetupSummary(Record):
    conversions_created: int = 0
    conversions_skipped: int = 0
    dimensions_created: int = 0
    dimensions_skipped: int = 0
    metrics_created: int = 0
    metrics_skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class GscSetupSummary(Record):
    sitemaps_submitted: int = 0
    sitemaps_skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class SetupResult(ResultBase):
    """Outcome of a unified GA4 / Search Console setup run."""

    operation: Literal["setup"] = "setup"
    dry_run: bool = Field(default=False, description="Whether the run only previewed changes")
    project: ProjectInfo | None = None
    config_file: str | None = Field(default=None, description="Configuration file that was loaded")
    ga4: Ga4SetupSummary | None = None
    gsc: GscSetupSummary | None = None
    completed: bool = Field(default=False, description="Whether the completion banner was printed")


# report


class ConversionRow(Record):
    name: str
    counting_method: str


class DimensionRow(Record):
    display_name: str
    parameter: str
    scope: str


class MetricRow(Record):
    display_name: str
    parameter: str
    unit: str
    scope: str


class CalculatedMetricRow(Record):
    display_name: str
    formula: str
    unit: str


class AudienceRow(Record):
    name: str
    category: str
    duration_days: int | None = None


class DataRetention(Record):
    event_data_retention_months: int | None = None
    reset_on_new_activity: bool | None = None


class ReportResult(ResultBase):
    """Current configuration of a GA4 property."""

    operation: Literal["report"] = "report"
    project: ProjectInfo | None = None
    conversions: list[ConversionRow] = Field(default_factory=list)
    dimensions: list[DimensionRow] = Field(default_factory=list)
    metrics: list[MetricRow] = Field(default_factory=list)
    calculated_metrics: list[CalculatedMetricRow] = Field(default_factory=list)
    audiences: list[AudienceRow] = Field(default_factory=list)
    data_retention: DataRetention | None = None
    enhanced_measurement: bool | None = None


# cleanup

CleanupStatus = Literal[
    "will_delete", "will_archive", "deleted", "archived", "already_removed", "error"
]


class CleanupItem(Record):
    name: str
    status: CleanupStatus
    error: str | None = None


class CleanupCategory(Record):
    """Items of one category plus derived counters."""

    items: list[CleanupItem] = Field(default_factory=list)
    removed: int = 0
    already_removed: int = 0
    errors: int = 0


class CleanupResult(ResultBase):
    """Removal (or preview) of unused conversions, dimensions and metrics."""

    operation: Literal["cleanup"] = "cleanup"
    dry_run: bool = Field(default=False, description="Mode requested by the caller")
    dry_run_banner: bool = Field(
        default=False, description="Whether the output announced dry-run mode"
    )
    project: ProjectInfo | None = None
    message: str | None = None
    conversions: CleanupCategory | None = None
    dimensions: CleanupCategory | None = None
    metrics: CleanupCategory | None = None
    total_removed: int = 0


# link


class SearchConsoleLinkStatus(Record):
    status: str
    message: str


class BigQueryLink(Record):
    name: str
    project: str
    daily_export: bool = False
    streaming_export: bool = False


class ChannelGroup(Record):
    name: str
    display_name: str
    system_defined: bool = False


class LinkResult(ResultBase):
    """Listing, creation or removal of GA4 links to external services."""

    operation: Literal["link"] = "link"
    action: Literal["list", "link", "unlink", "guide"] = "list"
    service: str | None = None
    project: ProjectInfo | None = None
    message: str | None = None
    details: str | None = None
    search_console: SearchConsoleLinkStatus | None = None
    bigquery_links: list[BigQueryLink] = Field(default_factory=list)
    channel_groups: list[ChannelGroup] = Field(default_factory=list)


# validate

CheckStatus = Literal["ok", "failed", "warnings", "skipped"]


class ConfigSummary(Record):
    """Verbose configuration summary printed for a valid file."""

    project: str | None = None
    property_id: str | None = None
    tier: str | None = None
    conversions: int | None = None
    conversions_limit: int | None = None
    dimensions: int | None = None
    dimensions_limit: int | None = None
    metrics: int | None = None
    metrics_limit: int | None = None
    calculated_metrics: int | None = None
    audiences: int | None = None
    cleanup_conversions: int | None = None
    cleanup_dimensions: int | None = None


class FileValidation(Record):
    file: str
    valid: bool
    yaml_syntax: CheckStatus = "skipped"
    config_structure: CheckStatus = "skipped"
    tier_limits: CheckStatus = "skipped"
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: ConfigSummary | None = None


class ValidateResult(ResultBase):
    """Per-file results of configuration validation."""

    operation: Literal["validate"] = "validate"
    total_files: int = 0
    valid_files: int = 0
    invalid_files: int = 0
    files: list[FileValidation] = Field(default_factory=list)


# sitemaps


class SitemapEntry(Record):
    url: str
    url_count: int | None = None
    errors: int = 0
    warnings: int = 0
    last_submitted: str | None = None
    status: str | None = None
    is_index: bool = False
    is_pending: bool = False


class SitemapContent(Record):
    type: str
    submitted: int
    indexed: int | None = None
    indexed_percent: float | None = None


class SitemapsListResult(ResultBase):
    operation: Literal["sitemaps_list"] = "sitemaps_list"
    site: str | None = None
    sitemaps: list[SitemapEntry] = Field(default_factory=list)


class SitemapsSubmitResult(ResultBase):
    operation: Literal["sitemaps_submit"] = "sitemaps_submit"
    site: str | None = None
    sitemap_url: str | None = None
    message: str | None = None


class SitemapsDeleteResult(ResultBase):
    operation: Literal["sitemaps_delete"] = "sitemaps_delete"
    site: str | None = None
    sitemap_url: str | None = None
    message: str | None = None


class SitemapsGetResult(ResultBase):
    """Details of a single sitemap."""

    operation: Literal["sitemaps_get"] = "sitemaps_get"
    url: str | None = None
    type: str | None = None
    is_index: bool = False
    is_pending: bool = False
    last_submitted: str | None = None
    last_downloaded: str | None = None
    status: str | None = None
    errors: int = 0
    warnings: int = 0
    contents: list[SitemapContent] = Field(default_factory=list)


# URL inspection


class InspectionIssue(Record):
    severity: str
    issue_type: str
    message: str


class UrlInspection(Record):
    """Index status of one URL."""

    url: str
    verdict: str | None = None
    coverage_state: str | None = None
    last_crawl_time: str | None = None
    google_canonical: str | None = None
    user_canonical: str | None = None
    indexing_allowed: bool = True
    robots_blocked: bool = False
    mobile_usable: bool = True
    mobile_verdict: str | None = None
    mobile_issues: list[str] = Field(default_factory=list)
    rich_results_verdict: str | None = None
    rich_results_issues: list[str] = Field(default_factory=list)
    issues: list[InspectionIssue] = Field(default_factory=list)


class InspectUrlResult(ResultBase):
    operation: Literal["inspect_url"] = "inspect_url"
    inspection: UrlInspection | None = None
    quota: QuotaInfo | None = None


class MonitorSummary(Record):
    total_urls: int = 0
    indexed: int = 0
    not_indexed: int = 0
    partial: int = 0
    total_issues: int = 0
    urls_with_issues: int = 0
    mobile_issues_count: int = 0


class MonitorPreview(Record):
    site: str | None = None
    urls: list[str] = Field(default_factory=list)
    url_count: int = 0
    estimated_quota_usage: int = 0


class MonitorUrlsResult(ResultBase):
    """Batch index status of priority URLs."""

    operation: Literal["monitor_urls"] = "monitor_urls"
    dry_run: bool = False
    format: str = "table"
    site: str | None = None
    preview: MonitorPreview | None = None
    results: list[UrlInspection] = Field(default_factory=list)
    summary: MonitorSummary = Field(default_factory=MonitorSummary)
    quota: QuotaInfo | None = None
    parse_error: str | None = Field(
        default=None, description="Decoder message when the JSON result list was malformed"
    )


# search analytics


class QueryFilter(Record):
    dimension: str
    operator: str
    expression: str


class AnalyticsPreview(Record):
    site: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    dimensions: list[str] = Field(default_factory=list)
    row_limit: int | None = None
    data_state: str = "final"
    filters: list[QueryFilter] = Field(default_factory=list)


class AnalyticsAggregates(Record):
    total_clicks: int = 0
    total_impressions: int = 0
    average_ctr: float = 0.0
    average_position: float = 0.0


class AnalyticsRow(Record):
    keys: list[str]
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float = 0.0


class AnalyticsResult(ResultBase):
    """Search analytics query results."""

    operation: Literal["analytics"] = "analytics"
    dry_run: bool = False
    preview: AnalyticsPreview | None = None
    site: str | None = None
    period: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    days: int | None = None
    total_rows: int | None = None
    aggregates: AnalyticsAggregates | None = None
    rows: list[AnalyticsRow] = Field(default_factory=list)
    dimensions: list[str] = Field(default_factory=list)
    quota: QuotaInfo | None = None


# index coverage


class CoveragePreview(Record):
    site: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    state_filter: str = "all"
    top_issues: int = 10


class CoverageIssue(Record):
    issue: str
    count: int
    percentage: float | None = None


class PageSample(Record):
    url: str
    status: str | None = None
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    position: float = 0.0


class CoverageResult(ResultBase):
    """Index coverage estimate derived from search performance."""

    operation: Literal["coverage"] = "coverage"
    dry_run: bool = False
    preview: CoveragePreview | None = None
    site: str | None = None
    period: str | None = None
    total_pages: int | None = None
    indexed_pages: int | None = None
    indexed_percentage: float | None = None
    issue_breakdown: dict[str, int] = Field(default_factory=dict)
    top_issues: list[CoverageIssue] = Field(default_factory=list)
    pages_sample: list[PageSample] = Field(default_factory=list)
    quota: QuotaInfo | None = None


ToolResult = Annotated[
    SetupResult
    | ReportResult
    | CleanupResult
    | LinkResult
    | ValidateResult
    | SitemapsListResult
    | SitemapsSubmitResult
    | SitemapsDeleteResult
    | SitemapsGetResult
    | InspectUrlResult
    | MonitorUrlsResult
    | AnalyticsResult
    | CoverageResult,
    Field(discriminator="operation"),
]
