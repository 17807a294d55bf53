"""Normalize GA4 / Search Console CLI output into typed results."""

from ga4bridge.errors import ErrorCode, ErrorOutcome, check_errors, quota_status
from ga4bridge.formats import FormatKind, ParseResult, classify_format, parse_output
from ga4bridge.registry import REGISTRY, normalize
from ga4bridge.results import ToolResult
from ga4bridge.sanitize import sanitize
from ga4bridge.sections import extract_section

# Populate the registry.
import ga4bridge.assemblers  # noqa: E402,F401

__all__ = [
    "REGISTRY",
    "ErrorCode",
    "ErrorOutcome",
    "FormatKind",
    "ParseResult",
    "ToolResult",
    "check_errors",
    "classify_format",
    "extract_section",
    "normalize",
    "parse_output",
    "quota_status",
    "sanitize",
]
