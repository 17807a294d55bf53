"""Normalizer for GA4 external service link output."""

import re

from ga4bridge.assemblers.common import find_project
from ga4bridge.errors import ErrorCode, check_errors, failure
from ga4bridge.params import LinkParams
from ga4bridge.registry import register
from ga4bridge.results import (
    BigQueryLink,
    ChannelGroup,
    LinkResult,
    ProjectInfo,
    SearchConsoleLinkStatus,
)
from ga4bridge.sections import extract_section, search_group

PROJECT_RE = re.compile(r"Project:\s*([^\n]+?)\s*\(Property:\s*(\d+)\)")
BIGQUERY_MARKER = "BigQuery Export:"
CHANNELS_MARKER = "Channel Groups:"

BQ_PROJECT_RE = re.compile(r"Project:\s*([^\n]+)")
DAILY_RE = re.compile(r"Daily:\s*(true|false)")
STREAMING_RE = re.compile(r"Streaming:\s*(true|false)")
CHANNEL_RE = re.compile(r"✓\s+(.+)")
DELETED_RE = re.compile(r"Successfully deleted\s+([^\n]+)")
NOTHING_TO_UNLINK_RE = re.compile(r"No\b.*found to unlink", re.IGNORECASE)
BQ_CREATED_RE = re.compile(r"Successfully created BigQuery link:?\s*([^\n]*)")
BQ_FAILED_RE = re.compile(r"could not create BigQuery link:?\s*([^\n]*)", re.IGNORECASE)
CHANNELS_DONE = "Channel group setup process completed"
CHANNELS_FAILED_RE = re.compile(
    r"error occurred during channel group setup:?\s*([^\n]*)", re.IGNORECASE
)

SEARCH_CONSOLE_STATUS = SearchConsoleLinkStatus(
    status="manual_check_required",
    message="Manual check required. The Admin API cannot list Search Console links.",
)
SEARCH_CONSOLE_GUIDE = (
    "The GA4 Admin API does not support programmatic Search Console linking. "
    "Manual steps required."
)


def _bigquery_links(section: str) -> list[BigQueryLink]:
    links = []
    matches = list(BQ_PROJECT_RE.finditer(section))
    for match, following in zip(matches, [*matches[1:], None]):
        # Flags belong to the lines between this project and the next one.
        block = section[match.end() : following.start() if following else None]
        links.append(
            BigQueryLink(
                name="properties/*/bigQueryLinks/*",
                project=match.group(1).strip(),
                daily_export=search_group(DAILY_RE, block) == "true",
                streaming_export=search_group(STREAMING_RE, block) == "true",
            )
        )
    return links


def _channel_groups(section: str) -> list[ChannelGroup]:
    return [
        ChannelGroup(name="properties/*/channelGroups/*", display_name=match.group(1).strip())
        for match in CHANNEL_RE.finditer(section)
    ]


def _list(text: str, project: ProjectInfo | None, base: dict) -> LinkResult:
    bigquery = extract_section(text, BIGQUERY_MARKER, CHANNELS_MARKER)
    channels = extract_section(text, CHANNELS_MARKER)
    return LinkResult(
        success=True,
        search_console=SEARCH_CONSOLE_STATUS,
        bigquery_links=_bigquery_links(bigquery) if bigquery else [],
        channel_groups=_channel_groups(channels) if channels else [],
        project=project,
        **base,
    )


def _unlink(text: str, service: str, project: ProjectInfo | None, base: dict) -> LinkResult:
    deleted = [item.strip() for item in DELETED_RE.findall(text)]
    if deleted:
        return LinkResult(
            success=True,
            project=project,
            message=f"Successfully unlinked {service}",
            details=f"Deleted: {', '.join(deleted)}",
            **base,
        )
    if NOTHING_TO_UNLINK_RE.search(text):
        return LinkResult(
            success=True, project=project, message=f"No {service} links found to unlink", **base
        )
    outcome = failure(ErrorCode.GENERIC, f"Unlink operation completed for {service}")
    return LinkResult.from_error(outcome, **base)


def _link(text: str, service: str, project: ProjectInfo | None, base: dict) -> LinkResult:
    if service == "search-console":
        return LinkResult(
            success=True,
            project=project,
            message="Search Console setup guide generated",
            details=SEARCH_CONSOLE_GUIDE,
            **{**base, "action": "guide"},
        )

    if service == "bigquery":
        if (created := BQ_CREATED_RE.search(text)) is not None:
            return LinkResult(
                success=True,
                project=project,
                message="BigQuery link created successfully",
                details=created.group(1).strip() or None,
                **base,
            )
        if "already exists" in text:
            return LinkResult(
                success=True, project=project, message="BigQuery link already exists", **base
            )
        if (failed := BQ_FAILED_RE.search(text)) is not None:
            reason = failed.group(1).strip()
            message = "Failed to create BigQuery link"
            if reason:
                message = f"{message}: {reason}"
            return LinkResult.from_error(failure(ErrorCode.GENERIC, message), **base)

    if service == "channels":
        if CHANNELS_DONE in text:
            return LinkResult(
                success=True, project=project, message="Channel groups setup completed", **base
            )
        if (failed := CHANNELS_FAILED_RE.search(text)) is not None:
            reason = failed.group(1).strip()
            message = "Channel group setup failed"
            if reason:
                message = f"{message}: {reason}"
            return LinkResult.from_error(failure(ErrorCode.GENERIC, message), **base)

    outcome = failure(ErrorCode.GENERIC, f"No result reported for linking {service}")
    return LinkResult.from_error(outcome, **base)


@register(name="link", params=LinkParams, result=LinkResult, tags=["ga4"])
def assemble_link(text: str, params: LinkParams) -> LinkResult:
    """List, create or remove links between a GA4 property and external services."""
    service = params.unlink or params.service
    base = {"action": params.action, "service": service}
    outcome = check_errors(text)
    if outcome.matched:
        return LinkResult.from_error(outcome, **base)

    project = find_project(text, PROJECT_RE)
    if params.action == "list":
        return _list(text, project, base)
    if params.action == "unlink":
        return _unlink(text, params.unlink, project, base)
    if service is None:
        outcome = failure(ErrorCode.VALIDATION, "One of service, list or unlink must be given")
        return LinkResult.from_error(outcome, **base)
    return _link(text, service, project, base)
