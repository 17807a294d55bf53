"""Invocation parameters the assemblers need to interpret CLI output."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OutputFormat = Literal["json", "csv", "table", "markdown"]

VALID_DIMENSIONS = ("query", "page", "country", "device", "searchAppearance", "date")
MAX_DIMENSIONS = 3
MAX_MONITOR_URLS = 50


class Params(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ProjectParams(Params):
    """Selects which GA4 project config the command ran against."""

    config_path: str | None = Field(default=None, description="Path to the YAML config file")
    project_name: str | None = Field(default=None, description="Config file name without .yaml")
    all: bool = Field(default=False, description="Run against every available config")


class SetupParams(ProjectParams):
    dry_run: bool = Field(default=False, description="Preview changes without applying them")


class ReportParams(ProjectParams):
    pass


class CleanupParams(ProjectParams):
    type: Literal["conversions", "dimensions", "metrics", "all"] = Field(
        default="all", description="Which category was cleaned up"
    )
    dry_run: bool = Field(default=False, description="Preview removals without applying them")
    yes: bool = Field(default=False, description="Confirmation prompt was skipped")


class LinkParams(Params):
    """Link, list or unlink external services for a GA4 property."""

    project_name: str = Field(default="", description="Config file name without .yaml")
    service: Literal["search-console", "bigquery", "channels"] | None = Field(
        default=None, description="Service to link"
    )
    url: str | None = Field(default=None, description="Site URL for Search Console linking")
    gcp_project: str | None = Field(default=None, description="GCP project for BigQuery export")
    dataset: str | None = Field(default=None, description="BigQuery dataset ID")
    list: bool = Field(default=False, description="List existing links")
    unlink: Literal["bigquery", "channels"] | None = Field(
        default=None, description="Service to unlink"
    )

    @property
    def action(self) -> Literal["list", "link", "unlink"]:
        if self.list:
            return "list"
        if self.unlink:
            return "unlink"
        return "link"

    @model_validator(mode="after")
    def check_service_arguments(self) -> "LinkParams":
        if self.service == "search-console" and not self.url and not self.list:
            raise ValueError("url is required when service is search-console")
        if self.service == "bigquery" and not (self.gcp_project and self.dataset):
            raise ValueError("gcp_project and dataset are required when service is bigquery")
        return self


class ValidateParams(Params):
    config_file: str | None = Field(default=None, description="Config file that was validated")
    all: bool = Field(default=False, description="Every config file was validated")
    verbose: bool = Field(default=False, description="Detailed summaries were printed")


class SiteParams(Params):
    site: str = Field(default="", description="sc-domain:example.com or https://example.com/")


class SitemapParams(SiteParams):
    url: str = Field(default="", description="Sitemap URL")


class InspectParams(SiteParams):
    url: str = Field(default="", description="URL that was inspected")


class MonitorParams(Params):
    """Config mode (``config``) or URL-array mode (``site`` plus ``urls``)."""

    config: str | None = Field(default=None, description="Config file with priority URLs")
    site: str | None = Field(default=None, description="Site for URL-array mode")
    urls: list[str] = Field(default_factory=list, description="URLs to monitor (max 50)")
    dry_run: bool = Field(default=False, description="Preview without API calls")
    format: OutputFormat = Field(default="json", description="Output format of the command")

    @field_validator("urls")
    @classmethod
    def check_urls(cls, urls: list[str]) -> list[str]:
        if len(urls) > MAX_MONITOR_URLS:
            raise ValueError(f"Maximum {MAX_MONITOR_URLS} URLs allowed")
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Invalid URL: {url}")
        return urls

    @model_validator(mode="after")
    def check_mode(self) -> "MonitorParams":
        if self.urls and not self.site:
            raise ValueError("site is required when urls are given")
        return self


class QueryParams(Params):
    site: str | None = Field(default=None, description="Site URL")
    config: str | None = Field(default=None, description="Config file (alternative to site)")
    days: int = Field(default=30, ge=1, le=180, description="Number of days queried")
    format: OutputFormat = Field(default="json", description="Output format of the command")
    dry_run: bool = Field(default=False, description="Preview the query without an API call")


class AnalyticsParams(QueryParams):
    dimensions: str = Field(
        default="query,page", description="Comma-separated dimensions (max 3)"
    )
    limit: int = Field(default=100, ge=1, le=25000, description="Maximum rows returned")

    @field_validator("dimensions")
    @classmethod
    def check_dimensions(cls, value: str) -> str:
        dims = [dim.strip() for dim in value.split(",") if dim.strip()]
        if len(dims) > MAX_DIMENSIONS:
            raise ValueError(f"At most {MAX_DIMENSIONS} dimensions are allowed")
        invalid = [dim for dim in dims if dim not in VALID_DIMENSIONS]
        if invalid:
            raise ValueError(f"Invalid dimensions: {', '.join(invalid)}")
        return ",".join(dims)

    @property
    def dimension_list(self) -> list[str]:
        return self.dimensions.split(",") if self.dimensions else []


class CoverageParams(QueryParams):
    state: Literal["all", "indexed", "low_impressions", "no_impressions"] = Field(
        default="all", description="Page state filter"
    )
    top_issues: int = Field(default=10, ge=1, le=50, description="Number of top issues shown")
