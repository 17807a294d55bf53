"""Error precedence engine: classify failure banners in CLI output."""

import logging
import re
from enum import Enum
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

QuotaStatus = Literal["healthy", "warning", "critical"]

QUOTA_WARNING_PERCENT = 75.0
QUOTA_CRITICAL_PERCENT = 95.0


class ErrorCode(str, Enum):
    """Closed set of failure categories reported to callers."""

    CREDENTIAL = "credential_missing_or_invalid"
    PERMISSION = "permission_denied"
    VALIDATION = "validation_failed"
    QUOTA = "quota_exceeded"
    NOT_FOUND = "not_found"
    GENERIC = "generic_tool_failure"
    PARSE = "parse_failure"


SUGGESTIONS: dict[ErrorCode, str] = {
    ErrorCode.CREDENTIAL: (
        "Set GOOGLE_APPLICATION_CREDENTIALS to the path of a valid service account JSON key file."
    ),
    ErrorCode.PERMISSION: (
        "Verify the service account has the required permissions on the GA4 property "
        "or Search Console site."
    ),
    ErrorCode.VALIDATION: "Check the input parameters and try again.",
    ErrorCode.QUOTA: (
        "Daily quota exhausted. Wait for the reset at midnight Pacific Time "
        "or request a quota increase."
    ),
    ErrorCode.NOT_FOUND: "Verify the config file, property or site exists and is spelled correctly.",
    ErrorCode.GENERIC: "Review the error message and the command output for details.",
    ErrorCode.PARSE: "The command output could not be parsed. Retry or inspect the raw output.",
}


class ErrorSignature(NamedTuple):
    code: ErrorCode
    pattern: re.Pattern[str]


class ErrorOutcome(BaseModel):
    """Result of scanning output for failure banners."""

    model_config = ConfigDict(frozen=True)

    matched: bool = Field(description="Whether any failure signature matched")
    code: ErrorCode | None = Field(default=None, description="Category of the failure")
    message: str | None = Field(default=None, description="The failure line without decorations")
    suggestion: str | None = Field(default=None, description="Actionable remediation hint")


def _signature(code: ErrorCode, *patterns: str) -> ErrorSignature:
    return ErrorSignature(code, re.compile("|".join(f"(?:{p})" for p in patterns), re.IGNORECASE))


CREDENTIAL_SIGNATURE = _signature(
    ErrorCode.CREDENTIAL,
    r"GOOGLE_APPLICATION_CREDENTIALS",
    r"credentials?\s+(?:are\s+|is\s+)?(?:invalid|missing|not found|expired)",
    r"(?:missing|invalid|no valid)\s+credentials",
    r"could not find default credentials",
    r"unauthenticated",
    r"invalid_grant",
    r"authentication failed",
)
PERMISSION_SIGNATURE = _signature(
    ErrorCode.PERMISSION,
    r"permission denied",
    r"access denied",
    r"insufficient permission",
    r"PERMISSION_DENIED",
    r"does not have (?:sufficient )?permission",
    r"error\s*403",
)
VALIDATION_SIGNATURE = _signature(
    ErrorCode.VALIDATION,
    r"^\s*(?:[✗❌]\s*)?validation failed:",
    r"must be provided",
    r"pre-flight validation failed",
    r"INVALID_ARGUMENT",
    r"^\s*(?:[✗❌]\s*)?(?:error:\s*)?invalid (?:argument|value|date|site url|dimension|filter|format|input)",
    r"must be between",
)
QUOTA_SIGNATURE = _signature(
    ErrorCode.QUOTA,
    r"quota (?:exceeded|exhausted)",
    r"critical threshold reached",
    r"rate limit exceeded",
    r"RESOURCE_EXHAUSTED",
    r"too many requests",
)
NOT_FOUND_SIGNATURE = _signature(
    ErrorCode.NOT_FOUND,
    r"failed to load config",
    r"no such file or directory",
    r"\b(?:property|site|sitemap|project|resource|config(?:uration)?(?: file)?|file)\s+not found\b",
    r"error\s*404",
    r"\"status\":\s*\"NOT_FOUND\"",
    r"missing search_console config",
    r"no search_console configuration found",
    r"no url_inspection configuration found",
    r"no priority urls configured",
)
GENERIC_SIGNATURE = _signature(
    ErrorCode.GENERIC,
    r"^\s*(?:[✗❌]\s*)?error:\s*",
    r"^\s*(?:[✗❌]\s*)?failed to .+",
)

DEFAULT_SIGNATURES: tuple[ErrorSignature, ...] = (
    CREDENTIAL_SIGNATURE,
    PERMISSION_SIGNATURE,
    VALIDATION_SIGNATURE,
    QUOTA_SIGNATURE,
    NOT_FOUND_SIGNATURE,
    GENERIC_SIGNATURE,
)

# Per-item failure rows such as "✗ old_event: not found" are data, not call failures.
ITEM_FAILURE_LINE = re.compile(
    r"^\s*✗\s+(?!(?:failed to|error|validation failed|pre-flight|daily quota)\b)\S.*?:\s+\S",
    re.IGNORECASE,
)

# Bulleted entries such as reported mobile or rich result issues are data.
LIST_ITEM_LINE = re.compile(r"^\s*-\s")

_GLYPHS_RE = re.compile(r"^[\s✗❌⚠✓○🛑️️]+")
_ERROR_PREFIX_RE = re.compile(r"^error:\s*", re.IGNORECASE)
_FAILED_PREFIX_RE = re.compile(r"^failed to [^:]+:\s*(?=\S)", re.IGNORECASE)


def clean_message(line: str) -> str:
    """Strip status glyphs and ``Error:`` / ``Failed to X:`` prefixes from a line."""
    message = _GLYPHS_RE.sub("", line).strip()
    message = _ERROR_PREFIX_RE.sub("", message)
    return _FAILED_PREFIX_RE.sub("", message).strip()


def failure(code: ErrorCode, message: str) -> ErrorOutcome:
    return ErrorOutcome(matched=True, code=code, message=message, suggestion=SUGGESTIONS[code])


def check_errors(
    text: str,
    signatures: tuple[ErrorSignature, ...] = DEFAULT_SIGNATURES,
    exclude: re.Pattern[str] | None = None,
) -> ErrorOutcome:
    """Find the highest-precedence failure banner in the output.

    Signatures are checked in order; the first one matching any line wins,
    regardless of where that line sits in the output.

    Args:
        text: Sanitized CLI output
        signatures: Ordered catalogue of failure signatures
        exclude: Lines matching this pattern are never scanned

    Returns:
        ErrorOutcome with ``matched=False`` when nothing matched
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if exclude is not None:
        lines = [line for line in lines if not exclude.search(line)]

    for signature in signatures:
        for line in lines:
            if signature.pattern.search(line):
                logger.debug(f"Matched {signature.code.value} on line: {line.strip()}")
                return failure(signature.code, clean_message(line))
    return ErrorOutcome(matched=False)


def quota_status(percent: float) -> QuotaStatus:
    """Map a quota usage percentage to healthy / warning / critical."""
    if percent >= QUOTA_CRITICAL_PERCENT:
        return "critical"
    if percent >= QUOTA_WARNING_PERCENT:
        return "warning"
    return "healthy"
