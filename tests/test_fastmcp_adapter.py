"""Tests for FastMCP adapter."""

import asyncio
import inspect
import json

import pytest
from fastmcp import Client

from ga4bridge.adapters.fastmcp_adapter import create_fastmcp_server, make_tool
from ga4bridge.config import Settings
from ga4bridge.params import SitemapParams
from ga4bridge.registry import REGISTRY

SUBMITTED = (
    "   Site: sc-domain:example.com\n"
    "   Sitemap: https://example.com/sitemap.xml\n"
    "Sitemap submitted successfully\n"
)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


async def _list_tools(server) -> list[str]:
    async with Client(server) as client:
        return [tool.name for tool in await client.list_tools()]


async def _call(server, name: str, arguments: dict) -> dict:
    async with Client(server) as client:
        result = await client.call_tool(name, arguments)
        return json.loads(result.content[0].text)


class TestMakeTool:
    """Test tool functions built from registry entries."""

    def test_name_and_signature(self, settings):
        """Test the tool is named after the operation and typed by its params model."""
        tool = make_tool(REGISTRY.get_description("sitemaps_submit"), settings)
        assert tool.__name__ == "normalize_sitemaps_submit"
        params = inspect.signature(tool).parameters
        assert list(params) == ["output", "params"]
        assert params["params"].default is None
        assert "Captured stdout/stderr" in tool.__doc__

    def test_call(self, settings):
        """Test calling the tool returns the serialized result."""
        tool = make_tool(REGISTRY.get_description("sitemaps_submit"), settings)
        data = tool(SUBMITTED, SitemapParams(site="sc-domain:example.com"))
        assert data["operation"] == "sitemaps_submit"
        assert data["success"] is True
        assert data["sitemap_url"] == "https://example.com/sitemap.xml"

    def test_clips_output(self):
        """Test the output limit applies to tool input."""
        tool = make_tool(
            REGISTRY.get_description("sitemaps_submit"), Settings(_env_file=None, max_output_chars=5)
        )
        assert tool(SUBMITTED)["success"] is False


class TestServer:
    """Test the FastMCP server."""

    def test_create_server(self, settings):
        """Test basic server creation."""
        server = create_fastmcp_server(settings, name="Test Server")
        assert server is not None
        assert server.name == "Test Server"

    def test_default_name(self, settings):
        """Test the server name comes from settings."""
        assert create_fastmcp_server(settings).name == settings.server_name

    def test_tools_registered(self, settings):
        """Test one tool per operation plus the batch monitor tool."""
        names = asyncio.run(_list_tools(create_fastmcp_server(settings)))
        expected = {f"normalize_{name}" for name in REGISTRY.operations}
        assert expected <= set(names)
        assert "normalize_monitor_urls_batch" in names
        assert len(names) == len(expected) + 1

    def test_call_tool(self, settings):
        """Test a tool call through the MCP client."""
        server = create_fastmcp_server(settings)
        data = asyncio.run(
            _call(
                server,
                "normalize_sitemaps_delete",
                {"output": "Failed to delete sitemap: sitemap not found\n"},
            )
        )
        assert data["success"] is False
        assert data["error_code"] == "not_found"
        assert data["error"] == "sitemap not found"

    def test_call_batch_tool(self, settings):
        """Test the URL-array monitor tool."""
        server = create_fastmcp_server(settings)
        arguments = {
            "outputs": [
                "Index Status:\n  Indexed (PASS)\n",
                "Failed to inspect URL: site not verified\n",
            ],
            "params": {
                "site": "sc-domain:example.com",
                "urls": ["https://example.com/", "https://example.com/blog"],
            },
        }
        data = asyncio.run(_call(server, "normalize_monitor_urls_batch", arguments))
        assert data["success"] is True
        assert data["summary"]["total_urls"] == 2
        assert data["results"][1]["issues"][0]["severity"] == "ERROR"
