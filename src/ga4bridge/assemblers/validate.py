"""Normalizer for configuration validation output."""

import logging
import re

from ga4bridge.errors import (
    CREDENTIAL_SIGNATURE,
    GENERIC_SIGNATURE,
    PERMISSION_SIGNATURE,
    ErrorCode,
    check_errors,
    failure,
)
from ga4bridge.params import ValidateParams
from ga4bridge.registry import register
from ga4bridge.results import CheckStatus, ConfigSummary, FileValidation, ValidateResult
from ga4bridge.sections import search_group, search_int

logger = logging.getLogger(__name__)

# Per-file failures are the payload here, so only call-level signatures apply.
SIGNATURES = (CREDENTIAL_SIGNATURE, PERMISSION_SIGNATURE, GENERIC_SIGNATURE)

SUMMARY_RE = re.compile(r"Validation Results:\s*(\d+)\s*total,\s*(\d+)\s*valid,\s*(\d+)\s*invalid")
FILE_RE = re.compile(r"^Validating:\s*(.+?)\s*$", re.MULTILINE)
YAML_CHECK_RE = re.compile(r"Checking YAML syntax\.*\s*(OK|FAILED)")
STRUCTURE_CHECK_RE = re.compile(r"Checking config structure\.*\s*(OK|FAILED)")
TIER_CHECK_RE = re.compile(r"Checking tier limits\.*\s*(OK|WARNINGS)")
FULL_ERROR_RE = re.compile(r"Full error:\s*(.+)")
ERROR_LINE_RE = re.compile(r"Error at line (\d+):")
WARNING_MARK_RE = re.compile(r"^\s*[!⚠️]+\s*")
VALID_BANNER = "Valid configuration"
FILE_NOT_FOUND = "File not found"
NO_FILES = "No YAML config files found"
SUMMARY_MARKER = "Configuration Summary:"

LIMIT_RE = r"{label}:\s*(\d+)\s*/\s*(\d+)"
CLEANUP_RE = re.compile(r"Cleanup Items:\s*(\d+)\s*conversions?,\s*(\d+)\s*dimensions?")


def _status(pattern: re.Pattern[str], block: str) -> CheckStatus:
    value = search_group(pattern, block)
    if value is None:
        return "skipped"
    return {"OK": "ok", "FAILED": "failed", "WARNINGS": "warnings"}[value]


def _lines_after(block: str, pattern: re.Pattern[str]) -> list[str]:
    """Lines following the check line, up to the next blank line."""
    match = pattern.search(block)
    if match is None:
        return []
    following = block[match.end() :].split("\n")[1:]
    lines = []
    for line in following:
        if not line.strip():
            break
        lines.append(line.strip())
    return lines


def _yaml_error(block: str) -> str:
    if full := search_group(FULL_ERROR_RE, block):
        return full
    if line := search_group(ERROR_LINE_RE, block):
        return f"YAML syntax error at line {line}"
    return "YAML syntax error"


def _limit(label: str, block: str) -> tuple[int | None, int | None]:
    match = re.search(LIMIT_RE.format(label=label), block, re.MULTILINE)
    if match is None:
        return None, None
    return int(match.group(1)), int(match.group(2))


def _summary(block: str) -> ConfigSummary | None:
    start = block.find(SUMMARY_MARKER)
    if start == -1:
        return None
    section = block[start:]
    conversions, conversions_limit = _limit(r"^\s*Conversions", section)
    dimensions, dimensions_limit = _limit(r"^\s*Dimensions", section)
    metrics, metrics_limit = _limit(r"^\s*Metrics", section)
    cleanup = CLEANUP_RE.search(section)
    return ConfigSummary(
        project=search_group(r"^\s*Project:\s*(.+)$", section),
        property_id=search_group(r"Property ID:\s*(\S+)", section),
        tier=search_group(r"Tier:\s*(.+)$", section),
        conversions=conversions,
        conversions_limit=conversions_limit,
        dimensions=dimensions,
        dimensions_limit=dimensions_limit,
        metrics=metrics,
        metrics_limit=metrics_limit,
        calculated_metrics=search_int(r"Calculated Metrics:\s*(\d+)", section),
        audiences=search_int(r"Audiences:\s*(\d+)", section),
        cleanup_conversions=int(cleanup.group(1)) if cleanup else None,
        cleanup_dimensions=int(cleanup.group(2)) if cleanup else None,
    )


def _validate_file(path: str, block: str) -> FileValidation:
    if FILE_NOT_FOUND in block:
        return FileValidation(file=path, valid=False, errors=[FILE_NOT_FOUND])

    yaml_syntax = _status(YAML_CHECK_RE, block)
    config_structure = _status(STRUCTURE_CHECK_RE, block)
    tier_limits = _status(TIER_CHECK_RE, block)

    errors = []
    if yaml_syntax == "failed":
        errors.append(_yaml_error(block))
    if config_structure == "failed":
        details = _lines_after(block, STRUCTURE_CHECK_RE)
        errors.append(details[0] if details else "Invalid configuration structure")

    warnings = []
    if tier_limits == "warnings":
        warnings = [WARNING_MARK_RE.sub("", line) for line in _lines_after(block, TIER_CHECK_RE)]

    return FileValidation(
        file=path,
        valid=VALID_BANNER in block and not errors,
        yaml_syntax=yaml_syntax,
        config_structure=config_structure,
        tier_limits=tier_limits,
        errors=errors,
        warnings=warnings,
        summary=_summary(block),
    )


def _file_blocks(text: str) -> list[tuple[str, str]]:
    matches = list(FILE_RE.finditer(text))
    blocks = []
    for match, following in zip(matches, [*matches[1:], None]):
        block = text[match.end() : following.start() if following else None]
        # The results banner closes the last file.
        block = block.split("Validation Results:")[0]
        blocks.append((match.group(1), block))
    return blocks


@register(name="validate", params=ValidateParams, result=ValidateResult, tags=["ga4"])
def assemble_validate(text: str, params: ValidateParams) -> ValidateResult:
    """Collect per-file validation checks, warnings and summaries."""
    outcome = check_errors(text, SIGNATURES)
    if outcome.matched:
        return ValidateResult.from_error(outcome)

    if NO_FILES in text:
        logger.debug("Validator found no config files")
        return ValidateResult(success=True)

    files = [_validate_file(path, block) for path, block in _file_blocks(text)]
    summary = SUMMARY_RE.search(text)
    if summary is not None:
        total, valid, invalid = (int(g) for g in summary.groups())
    else:
        total = len(files)
        valid = sum(1 for f in files if f.valid)
        invalid = total - valid

    result = {
        "total_files": total,
        "valid_files": valid,
        "invalid_files": invalid,
        "files": files,
    }
    if invalid:
        verdict = failure(ErrorCode.VALIDATION, f"{invalid} of {total} configuration files are invalid")
        return ValidateResult.from_error(verdict, **result)
    return ValidateResult(success=True, **result)
