"""Tests for shared extraction helpers."""

from ga4bridge.assemblers.common import balanced_json, strip_payload


class TestBalancedJson:
    """Test embedded JSON extraction."""

    def test_brackets_in_strings(self):
        """Test brackets inside strings do not close the value."""
        text = 'prefix {"a": "}", "b": [1, 2]} suffix'
        assert balanced_json(text, "{") == '{"a": "}", "b": [1, 2]}'

    def test_unbalanced(self):
        """Test a truncated value gives None."""
        assert balanced_json('[{"a": 1}', "[") is None


class TestStripPayload:
    """Test removal of report data before the failure scan."""

    def test_json_document(self):
        """Test a document opening on its own line is removed."""
        text = 'Querying...\n{"Rows": [{"Keys": ["access denied"]}]}\nDone\n'
        assert strip_payload(text, "{") == "Querying...\n\nDone"

    def test_truncated_document(self):
        """Test everything after a truncated document is removed."""
        assert strip_payload('Start\n[{"URL": "x"', "[") == "Start"

    def test_embedded_error_body_kept(self):
        """Test JSON inside an error line is not treated as data."""
        text = 'Error: googleapi: {"status": "NOT_FOUND"}\n'
        assert strip_payload(text, "{") == text.rstrip("\n")

    def test_table_rows(self):
        """Test bordered and pipe-separated rows are removed."""
        text = "Issues\n| MESSAGE |\n| Permission denied |\nName | Count | Pct\nEnd"
        assert strip_payload(text) == "Issues\nEnd"

    def test_rows_under_header(self):
        """Test borderless rows run until a blank line or banner."""
        text = "Head  Clicks\nfile not found  3\n\n=== Summary ===\nHead  Clicks\nrow  1\n=== Quota ==="
        result = strip_payload(text, is_header=lambda line: "Clicks" in line)
        assert result == "Head  Clicks\n\n=== Summary ===\nHead  Clicks\n=== Quota ==="
