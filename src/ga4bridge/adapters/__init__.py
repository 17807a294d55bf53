"""Adapters exposing the normalizers through a CLI and an MCP server."""

import logging

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname).1s %(asctime)s %(filename)s:%(lineno)d - %(message)s"


def clip_output(text: str, limit: int) -> str:
    """Keep the first ``limit`` characters of captured output."""
    if len(text) <= limit:
        return text
    logger.warning(f"Output of {len(text)} characters clipped to {limit}")
    return text[:limit]
