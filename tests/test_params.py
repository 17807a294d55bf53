"""Tests for invocation parameter models."""

import pytest
from pydantic import ValidationError

from ga4bridge.params import (
    AnalyticsParams,
    CleanupParams,
    CoverageParams,
    LinkParams,
    MonitorParams,
    QueryParams,
    SetupParams,
)


class TestParams:
    """Test shared parameter behavior."""

    def test_defaults(self):
        """Test models build with no arguments."""
        assert SetupParams().dry_run is False
        assert CleanupParams().type == "all"
        assert QueryParams().days == 30
        assert CoverageParams().top_issues == 10

    def test_unknown_fields_rejected(self):
        """Test extra keys fail validation."""
        with pytest.raises(ValidationError):
            SetupParams(dryrun=True)

    def test_frozen(self):
        """Test parameter models are immutable."""
        params = SetupParams(dry_run=True)
        with pytest.raises(ValidationError):
            params.dry_run = False


class TestLinkParams:
    """Test link parameter validation."""

    def test_action(self):
        """Test the action derived from the flags."""
        assert LinkParams(list=True).action == "list"
        assert LinkParams(unlink="bigquery").action == "unlink"
        assert LinkParams(service="channels").action == "link"

    def test_search_console_needs_url(self):
        """Test search-console linking requires a URL."""
        with pytest.raises(ValidationError, match="url is required"):
            LinkParams(service="search-console")
        assert LinkParams(service="search-console", url="https://example.com").url

    def test_bigquery_needs_project_and_dataset(self):
        """Test bigquery linking requires both GCP project and dataset."""
        with pytest.raises(ValidationError):
            LinkParams(service="bigquery", gcp_project="p")
        params = LinkParams(service="bigquery", gcp_project="p", dataset="d")
        assert params.dataset == "d"


class TestMonitorParams:
    """Test monitor parameter validation."""

    def test_urls_require_site(self):
        """Test URL-array mode needs a site."""
        with pytest.raises(ValidationError, match="site is required"):
            MonitorParams(urls=["https://example.com/"])

    def test_url_scheme(self):
        """Test URLs must be http or https."""
        with pytest.raises(ValidationError, match="Invalid URL"):
            MonitorParams(site="sc-domain:example.com", urls=["ftp://example.com/"])

    def test_max_urls(self):
        """Test at most 50 URLs are accepted."""
        urls = [f"https://example.com/{i}" for i in range(51)]
        with pytest.raises(ValidationError, match="Maximum 50"):
            MonitorParams(site="sc-domain:example.com", urls=urls)
        assert len(MonitorParams(site="sc-domain:example.com", urls=urls[:50]).urls) == 50

    def test_format(self):
        """Test the output format is restricted."""
        assert MonitorParams(format="table").format == "table"
        with pytest.raises(ValidationError):
            MonitorParams(format="xml")


class TestQueryParams:
    """Test analytics and coverage parameters."""

    def test_days_bounds(self):
        """Test days must be between 1 and 180."""
        assert QueryParams(days=180).days == 180
        with pytest.raises(ValidationError):
            QueryParams(days=0)
        with pytest.raises(ValidationError):
            QueryParams(days=181)

    def test_dimensions(self):
        """Test dimension parsing and validation."""
        params = AnalyticsParams(dimensions="query, device")
        assert params.dimension_list == ["query", "device"]
        assert AnalyticsParams().dimension_list == ["query", "page"]
        with pytest.raises(ValidationError, match="Invalid dimensions"):
            AnalyticsParams(dimensions="query,browser")
        with pytest.raises(ValidationError, match="At most 3"):
            AnalyticsParams(dimensions="query,page,country,device")

    def test_limit_and_top_issues_bounds(self):
        """Test row limit and top issue bounds."""
        with pytest.raises(ValidationError):
            AnalyticsParams(limit=25001)
        with pytest.raises(ValidationError):
            CoverageParams(top_issues=51)
        with pytest.raises(ValidationError):
            CoverageParams(state="broken")
