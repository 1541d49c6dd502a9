"""Roadmap MCP Server - Expose roadmap progression to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any, Optional

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    TextContent,
    ImageContent,
    EmbeddedResource,
)

from roadmap_core.config import get_settings

from . import tools
from . import handlers


# Configure logging to stderr; stdout carries the MCP protocol
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("roadmap-mcp")

settings = get_settings()

logger.info(f"MCP Server starting with API base URL: {settings.api_base_url}")
if settings.api_token:
    logger.info("MCP Server configured with API token authentication")
else:
    logger.info("MCP Server running without authentication (local development mode)")


# MCP Server instance
app = Server("roadmap-mcp")

# Per-connection project scope (each stdio connection is its own process)
_session_project_scope: Optional[dict] = None


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools for roadmap progression."""
    return tools.get_tools()


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent | ImageContent | EmbeddedResource]:
    """Handle MCP tool calls by delegating to the handlers."""
    global _session_project_scope

    logger.info(f"Tool call: {name} with arguments: {arguments}")
    arguments = handlers.apply_project_scope_defaults(name, dict(arguments or {}), _session_project_scope)

    headers = {}
    if settings.api_token:
        headers["X-API-Key"] = settings.api_token

    async with httpx.AsyncClient(base_url=settings.api_base_url, timeout=30.0, headers=headers) as client:
        try:
            handler = handlers.HANDLERS.get(name)
            if not handler:
                logger.warning(f"Unknown tool requested: {name}")
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

            content, scope_update = await handler(arguments, client, _session_project_scope)
            if scope_update is not None and scope_update is not _session_project_scope:
                _session_project_scope = scope_update
                logger.info(f"Updated session project scope to: {scope_update['project_id']}")

            return content

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during {name} call:")
            logger.error(f"  Status: {e.response.status_code}")
            logger.error(f"  URL: {e.request.url}")
            try:
                response_body = e.response.json()
                logger.error(f"  Response body: {response_body}")
                error_detail = response_body.get("detail", str(e))
            except ValueError:
                error_detail = e.response.text or str(e)
                logger.error(f"  Response text: {error_detail}")
            if isinstance(error_detail, dict):
                error_detail = error_detail.get("message", str(error_detail))
            return [TextContent(type="text", text=f"Error: {error_detail}")]

        except httpx.RequestError as e:
            logger.error(f"Request error during {name} call: {type(e).__name__}: {e}")
            return [TextContent(type="text", text=f"Error: Connection failed - {str(e)}")]

        except Exception as e:
            logger.error(f"Unexpected error during {name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Arguments: {arguments}")
            logger.error(f"  Traceback:\n{traceback.format_exc()}")
            return [TextContent(type="text", text=f"Error: {type(e).__name__}: {str(e)}")]


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
