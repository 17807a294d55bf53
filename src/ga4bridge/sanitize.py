"""Strip terminal control sequences and log noise from captured output."""

import re

# CSI: ESC [ params intermediates final, including private modes like ESC[?25l
_CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
# OSC: ESC ] ... terminated by BEL or ESC \
_OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
_ESC2_RE = re.compile(r"\x1b[@-Z\\-_]")
_LOG_PREFIX = "time="


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences, leaving Unicode text untouched."""
    while True:
        cleaned = _ESC2_RE.sub("", _CSI_RE.sub("", _OSC_RE.sub("", text)))
        # Removing one sequence can expose another.
        if cleaned == text:
            return cleaned
        text = cleaned


def drop_log_lines(text: str) -> str:
    """Remove structured log lines (``time=... level=...``) from the output."""
    lines = text.split("\n")
    return "\n".join(line for line in lines if not line.strip().startswith(_LOG_PREFIX))


def sanitize(text: str) -> str:
    """Clean raw CLI output before classification and parsing.

    Applying it twice gives the same result as applying it once.

    Args:
        text: Captured stdout/stderr of the CLI

    Returns:
        The text without escape sequences or log lines
    """
    return drop_log_lines(strip_ansi(text))
