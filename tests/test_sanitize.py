"""Tests for output sanitization."""

from ga4bridge.sanitize import drop_log_lines, sanitize, strip_ansi


class TestStripAnsi:
    """Test escape sequence removal."""

    def test_removes_color_codes(self):
        """Test SGR color sequences are removed."""
        assert strip_ansi("\x1b[32m✓ Created\x1b[0m") == "✓ Created"

    def test_removes_cursor_and_clear_sequences(self):
        """Test cursor movement, screen clear and private modes are removed."""
        text = "\x1b[2J\x1b[H\x1b[?25lProgress\x1b[1A\x1b[K done\x1b[?25h"
        assert strip_ansi(text) == "Progress done"

    def test_removes_osc_hyperlinks(self):
        """Test OSC sequences terminated by BEL or ST are removed."""
        text = "\x1b]8;;https://example.com\x07link\x1b]8;;\x1b\\"
        assert strip_ansi(text) == "link"

    def test_preserves_emoji_and_box_drawing(self):
        """Test unicode survives untouched."""
        text = "🚀 GA4 Manager ═══ ┌──┐ ✗ ⚠"
        assert strip_ansi(text) == text


class TestDropLogLines:
    """Test structured log line removal."""

    def test_drops_key_value_log_lines(self):
        """Test lines starting with time= are dropped."""
        text = 'Listing sitemaps\ntime=2024-01-15T10:30:00Z level=INFO msg="request"\nDone'
        assert drop_log_lines(text) == "Listing sitemaps\nDone"

    def test_preserves_blank_lines_and_order(self):
        """Test blank lines are kept in place."""
        text = "a\n\n  time=x level=DEBUG msg=y\nb\n"
        assert drop_log_lines(text) == "a\n\nb\n"


class TestSanitize:
    """Test the full sanitizer."""

    def test_combined(self):
        """Test colors and log lines are removed together."""
        raw = "\x1b[36m═══ Results ═══\x1b[0m\ntime=now level=WARN msg=slow\n\x1b[31m✗ Failed\x1b[0m"
        assert sanitize(raw) == "═══ Results ═══\n✗ Failed"

    def test_idempotent(self):
        """Test sanitizing twice equals sanitizing once."""
        samples = [
            "",
            "plain text",
            "\x1b[1m\x1b[31mbold red\x1b[0m\n\ntime=1 level=INFO\n",
            "\x1b\x1b[31m[nested]\x1b[0m",
            "🚀 emoji │ table │\n",
        ]
        for sample in samples:
            once = sanitize(sample)
            assert sanitize(once) == once

    def test_escape_exposed_by_removal(self):
        """Test a sequence revealed by removing another one is removed too."""
        assert sanitize("\x1b[\x1b[0m31mtext") == "text"
