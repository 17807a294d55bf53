"""Tests for the link normalizer."""

import pytest
from pydantic import ValidationError

from ga4bridge import ErrorCode, normalize

HEADER = """
🔗 GA4 Manager - Link External Services
═══════════════════════════════════════════════
📦 Project: MyProject (Property: 123456789)
───────────────────────────────────────────────
"""

LIST_OUTPUT = (
    HEADER
    + """
🔍 Existing Links and Configurations

Search Console:
  ○ Manual check required. The Admin API cannot list Search Console links.

BigQuery Export:
  ✓ Project: my-gcp-project
    Daily: true, Streaming: false
  ✓ Project: backup-project
    Daily: false, Streaming: true

Channel Groups:
  ✓ Custom Campaign Channel
  ✓ Paid Social Ads
"""
)

EMPTY_LIST_OUTPUT = (
    HEADER
    + """
Search Console:
  ○ Manual check required. The Admin API cannot list Search Console links.

BigQuery Export:
  ○ No BigQuery export configured.

Channel Groups:
  ○ No custom channel groups found.
"""
)

BIGQUERY_PARAMS = {"service": "bigquery", "gcp_project": "my-project", "dataset": "analytics"}


class TestLinkList:
    """Test listing existing links."""

    def test_list(self):
        """Test BigQuery links and channel groups are collected."""
        result = normalize("link", LIST_OUTPUT, {"project_name": "test", "list": True})
        assert result.success
        assert result.operation == "link"
        assert result.action == "list"
        assert result.project.name == "MyProject"
        assert result.project.property_id == "123456789"
        assert result.search_console.status == "manual_check_required"
        assert [(b.project, b.daily_export, b.streaming_export) for b in result.bigquery_links] == [
            ("my-gcp-project", True, False),
            ("backup-project", False, True),
        ]
        assert [c.display_name for c in result.channel_groups] == [
            "Custom Campaign Channel",
            "Paid Social Ads",
        ]

    def test_empty_list(self):
        """Test placeholder lines give empty collections."""
        result = normalize("link", EMPTY_LIST_OUTPUT, {"list": True})
        assert result.success
        assert result.bigquery_links == []
        assert result.channel_groups == []


class TestLinkCreate:
    """Test creating links."""

    def test_bigquery_created(self):
        """Test a created BigQuery link."""
        text = HEADER + "\n📊 Linking BigQuery...\n✓ Successfully created BigQuery link: properties/123456789/bigQueryLinks/xyz123\n"
        result = normalize("link", text, BIGQUERY_PARAMS)
        assert result.success
        assert result.action == "link"
        assert result.service == "bigquery"
        assert result.message == "BigQuery link created successfully"
        assert result.details == "properties/123456789/bigQueryLinks/xyz123"

    def test_bigquery_already_exists(self):
        """Test an existing BigQuery link is a success."""
        text = HEADER + "\n📊 Linking BigQuery...\n✓ A BigQuery link already exists for this property. No action taken.\n"
        result = normalize("link", text, BIGQUERY_PARAMS)
        assert result.success
        assert "already exists" in result.message

    def test_bigquery_failed(self):
        """Test a reported BigQuery link failure."""
        text = HEADER + "\n📊 Linking BigQuery...\n⚠ Could not create BigQuery link: dataset is in another region\n"
        result = normalize("link", text, BIGQUERY_PARAMS)
        assert not result.success
        assert result.error_code == ErrorCode.GENERIC
        assert result.error == "Failed to create BigQuery link: dataset is in another region"

    def test_search_console_guide(self):
        """Test the manual setup guide."""
        text = (
            HEADER
            + "\n🔗 Search Console Link Setup Guide\n...guide content...\n"
            + "ℹ The GA4 Admin API does not support programmatic Search Console linking.\n"
        )
        result = normalize(
            "link", text, {"service": "search-console", "url": "https://example.com"}
        )
        assert result.success
        assert result.action == "guide"
        assert result.service == "search-console"
        assert "Manual steps required" in result.details

    def test_channels_completed(self):
        """Test channel group setup completion."""
        text = (
            HEADER
            + "\n📡 Setting up default Channel Groups...\n"
            + "✓ Channel group setup process completed.\n"
        )
        result = normalize("link", text, {"service": "channels"})
        assert result.success
        assert result.service == "channels"
        assert "completed" in result.message

    def test_missing_service(self):
        """Test a link call with nothing to do."""
        result = normalize("link", HEADER, {})
        assert not result.success
        assert result.error_code == ErrorCode.VALIDATION

    def test_invalid_params(self):
        """Test BigQuery params without dataset are rejected."""
        with pytest.raises(ValidationError):
            normalize("link", HEADER, {"service": "bigquery", "gcp_project": "p"})


class TestLinkUnlink:
    """Test removing links."""

    def test_unlink_bigquery(self):
        """Test a deleted BigQuery link."""
        text = (
            HEADER
            + "\n🔓 Unlinking service: bigquery\n"
            + "Deleting link: properties/123456789/bigQueryLinks/xyz123\n"
            + "✓ Successfully deleted properties/123456789/bigQueryLinks/xyz123\n"
        )
        result = normalize("link", text, {"project_name": "test", "unlink": "bigquery"})
        assert result.success
        assert result.action == "unlink"
        assert result.service == "bigquery"
        assert result.message == "Successfully unlinked bigquery"
        assert result.details == "Deleted: properties/123456789/bigQueryLinks/xyz123"

    def test_nothing_to_unlink(self):
        """Test no links to remove is a success."""
        text = HEADER + "\n🔓 Unlinking service: channels\nNo custom channel groups found to unlink.\n"
        result = normalize("link", text, {"unlink": "channels"})
        assert result.success
        assert result.message == "No channels links found to unlink"


class TestLinkErrors:
    """Test failure banners."""

    def test_credential_error(self):
        """Test a client creation failure."""
        text = (
            "🔗 GA4 Manager - Link External Services\n"
            "Error: failed to create GA4 client: missing credentials\n"
        )
        result = normalize("link", text, {"service": "channels"})
        assert not result.success
        assert result.error_code == ErrorCode.CREDENTIAL
        assert "missing credentials" in result.error
        assert result.service == "channels"
