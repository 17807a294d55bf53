"""Tests for the cleanup normalizer."""

from ga4bridge import ErrorCode, normalize

DRY_RUN_ALL = """
GA4 Manager - Cleanup
===============================================

Project: MyWebsite (Property: 123456789)
-----------------------------------------------

Conversion Events to Remove:
| EVENT NAME   | STATUS          |
|--------------|-----------------|
| event1       | Will be deleted |
| event2       | Will be deleted |

Custom Dimensions to Remove:
| PARAMETER NAME | STATUS           |
|----------------|------------------|
| dim1           | Will be archived |

Custom Metrics to Remove:
| PARAMETER NAME | STATUS           |
|----------------|------------------|
| metric1        | Will be archived |

Dry-run mode enabled - no changes applied

===============================================
Dry-run complete! No changes were applied.
"""

EXECUTE = """
GA4 Manager - Cleanup
===============================================

Project: MyWebsite (Property: 123456789)
-----------------------------------------------

Removing conversion events...
  ✓ old_conversion_event
  ✓ deprecated_tracking

Archiving custom dimensions...
  ✓ unused_dimension
  ○ old_parameter (already archived)

Archiving custom metrics...
  ✓ deprecated_metric

===============================================
Cleanup complete!
"""

BOTH_RENDERINGS = """
Project: MyWebsite (Property: 123456789)

Conversion Events to Remove:
| EVENT NAME | STATUS          |
|------------|-----------------|
| event1     | Will be deleted |

Removing conversion events...
  ✓ event1
  ○ event2 (already removed)
  ✗ event3: API error occurred

Cleanup complete!
"""


class TestCleanupDryRun:
    """Test preview table parsing."""

    def test_all_categories(self):
        """Test every category preview with planned statuses."""
        result = normalize("cleanup", DRY_RUN_ALL, {"dry_run": True})
        assert result.success
        assert result.dry_run
        assert result.dry_run_banner
        assert result.project.name == "MyWebsite"
        assert result.project.property_id == "123456789"
        assert [i.name for i in result.conversions.items] == ["event1", "event2"]
        assert {i.status for i in result.conversions.items} == {"will_delete"}
        assert result.dimensions.items[0].name == "dim1"
        assert result.dimensions.items[0].status == "will_archive"
        assert result.metrics.items[0].name == "metric1"
        assert result.metrics.items[0].status == "will_archive"
        assert result.total_removed == 4

    def test_single_category(self):
        """Test absent categories stay unset."""
        text = (
            "Project: MyWebsite (Property: 123456789)\n\n"
            "Custom Metrics to Remove:\n"
            "| PARAMETER NAME     | STATUS          |\n"
            "|--------------------|-----------------|\n"
            "| deprecated_metric  | Will be archived|\n\n"
            "Dry-run mode enabled - no changes applied\n"
        )
        result = normalize("cleanup", text, {"dry_run": True})
        assert result.conversions is None
        assert result.dimensions is None
        assert len(result.metrics.items) == 1

    def test_missing_middle_category(self):
        """Test a category that was not printed does not absorb the next one."""
        text = (
            "Project: MyWebsite (Property: 123456789)\n\n"
            "Conversion Events to Remove:\n"
            "| EVENT NAME | STATUS          |\n"
            "|------------|-----------------|\n"
            "| old_event  | Will be deleted |\n\n"
            "Custom Metrics to Remove:\n"
            "| PARAMETER NAME | STATUS           |\n"
            "|----------------|------------------|\n"
            "| old_metric     | Will be archived |\n\n"
            "Dry-run mode enabled - no changes applied\n"
        )
        result = normalize("cleanup", text, {"dry_run": True})
        assert [i.name for i in result.conversions.items] == ["old_event"]
        assert result.dimensions is None
        assert [i.name for i in result.metrics.items] == ["old_metric"]
        assert result.total_removed == 2


class TestCleanupExecute:
    """Test execution line parsing."""

    def test_execute(self):
        """Test removed and already removed counters."""
        result = normalize("cleanup", EXECUTE, {"yes": True})
        assert result.success
        assert not result.dry_run
        assert not result.dry_run_banner
        assert result.conversions.removed == 2
        assert result.conversions.items[0].status == "deleted"
        assert result.dimensions.removed == 1
        assert result.dimensions.already_removed == 1
        assert result.dimensions.items[0].status == "archived"
        assert result.metrics.removed == 1
        assert result.total_removed == 4

    def test_item_errors(self):
        """Test a failed item is reported without failing the call."""
        text = (
            "Project: MyWebsite (Property: 123456789)\n\n"
            "Removing conversion events...\n"
            "  ✓ old_conversion_event\n"
            "  ✗ bad_event: API error occurred\n\n"
            "Cleanup complete!\n"
        )
        result = normalize("cleanup", text)
        assert result.success
        assert result.conversions.removed == 1
        assert result.conversions.errors == 1
        assert result.conversions.items[1].status == "error"
        assert result.conversions.items[1].error == "API error occurred"

    def test_missing_middle_category(self):
        """Test executed categories stay apart when one was not printed."""
        text = (
            "Project: MyWebsite (Property: 123456789)\n\n"
            "Removing conversion events...\n"
            "  ✓ old_event\n\n"
            "Archiving custom metrics...\n"
            "  ✓ old_metric\n\n"
            "Cleanup complete!\n"
        )
        result = normalize("cleanup", text)
        assert [i.name for i in result.conversions.items] == ["old_event"]
        assert result.conversions.removed == 1
        assert result.dimensions is None
        assert [i.name for i in result.metrics.items] == ["old_metric"]
        assert result.total_removed == 2


class TestCleanupModes:
    """Test mode selection and special outcomes."""

    def test_flag_selects_rendering(self):
        """Test the caller's dry_run flag decides which rendering is read."""
        preview = normalize("cleanup", BOTH_RENDERINGS, {"dry_run": True})
        assert [(i.name, i.status) for i in preview.conversions.items] == [
            ("event1", "will_delete")
        ]

        executed = normalize("cleanup", BOTH_RENDERINGS, {"dry_run": False})
        assert [(i.name, i.status) for i in executed.conversions.items] == [
            ("event1", "deleted"),
            ("event2", "already_removed"),
            ("event3", "error"),
        ]
        assert executed.conversions.removed == 1

    def test_nothing_configured(self):
        """Test the no-cleanup message leaves categories unset."""
        text = (
            "Project: SnapCompress (Property: 513421535)\n"
            "No cleanup configured for this project\n\n"
            "Dry-run complete! No changes were applied.\n"
        )
        result = normalize("cleanup", text, {"dry_run": True})
        assert result.success
        assert result.message == "No cleanup configured for this project"
        assert result.conversions is None
        assert result.dimensions is None
        assert result.metrics is None
        assert result.total_removed == 0

    def test_cancelled(self):
        """Test a declined confirmation is a failure."""
        text = (
            "Conversion Events to Remove:\n"
            "| EVENT NAME     | STATUS          |\n"
            "| old_conversion | Will be deleted |\n\n"
            "Cleanup cancelled.\n"
        )
        result = normalize("cleanup", text)
        assert not result.success
        assert result.error == "Cleanup cancelled by user"
        assert result.error_code == ErrorCode.GENERIC

    def test_config_not_found(self):
        """Test a missing config file."""
        text = "Error: config file not found: personal (use --config to specify a YAML config file)\n"
        result = normalize("cleanup", text, {"dry_run": True})
        assert not result.success
        assert result.error_code == ErrorCode.NOT_FOUND
        assert "config file not found" in result.error
        assert result.dry_run

    def test_error_wins_over_dry_run_banner(self):
        """Test a failure banner beats the dry-run banner."""
        text = "Dry-run mode enabled - no changes applied\nError: failed to create GA4 client: permission denied\n"
        result = normalize("cleanup", text, {"dry_run": True})
        assert not result.success
        assert result.error_code == ErrorCode.PERMISSION
