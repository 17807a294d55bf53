"""FastMCP adapter exposing every registered normalizer as a tool."""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from fastmcp.server import FastMCP

from ga4bridge.adapters import LOG_FORMAT, clip_output
from ga4bridge.assemblers import combine_inspections
from ga4bridge.config import Settings
from ga4bridge.params import MonitorParams
from ga4bridge.registry import REGISTRY, NormalizerDescription

logger = logging.getLogger(__name__)


def make_tool(desc: NormalizerDescription, settings: Settings) -> Callable[..., dict[str, Any]]:
    """Build the ``normalize_<operation>`` tool function for one registry entry.

    The signature is rewritten so FastMCP derives the tool schema from the
    operation's params model.
    """

    def tool(output: str, params: Any = None) -> dict[str, Any]:
        result = REGISTRY.normalize(
            desc.name, clip_output(output, settings.max_output_chars), params
        )
        return result.model_dump(mode="json")

    params_type = desc.params_model | None
    tool.__name__ = f"normalize_{desc.name}"
    tool.__qualname__ = tool.__name__
    tool.__doc__ = (
        f"{desc.description}\n\n"
        "Args:\n"
        f"  output: Captured stdout/stderr of the {desc.name} command\n"
        "  params: Parameters the command was invoked with"
    )
    tool.__annotations__ = {"output": str, "params": params_type, "return": dict[str, Any]}
    tool.__signature__ = inspect.Signature(
        [
            inspect.Parameter("output", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=str),
            inspect.Parameter(
                "params",
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                default=None,
                annotation=params_type,
            ),
        ],
        return_annotation=dict[str, Any],
    )
    return tool


def create_fastmcp_server(settings: Settings | None = None, name: str | None = None):
    """Create a FastMCP server that exposes the ga4bridge normalizers.

    Args:
        settings: Settings instance, read from the environment when omitted
        name: Server name, defaults to ``settings.server_name``

    Returns:
        FastMCP server with one tool per registered operation

    Example:
        from ga4bridge.adapters.fastmcp_adapter import create_fastmcp_server

        server = create_fastmcp_server()
        server.run()
    """
    settings = settings or Settings()
    server = FastMCP(name or settings.server_name)

    @server.tool
    def normalize_monitor_urls_batch(outputs: list[str], params: MonitorParams) -> dict[str, Any]:
        """Combine per-URL inspection outputs of a URL-array monitor run.

        Args:
          outputs: Captured output of each URL inspection, in the order of params.urls
          params: Monitor parameters with site and urls
        """
        clipped = [clip_output(output, settings.max_output_chars) for output in outputs]
        return combine_inspections(params, clipped).model_dump(mode="json")

    for desc in REGISTRY.normalizers:
        fn = make_tool(desc, settings)

        try:
            server.tool()(fn)
        except Exception:
            logger.exception(f"Failed to register {fn.__name__}")

    return server


def main():
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler()],
    )
    create_fastmcp_server(settings).run()


if __name__ == "__main__":
    main()
