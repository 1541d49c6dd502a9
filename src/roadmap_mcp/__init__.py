"""Roadmap MCP Server - Model Context Protocol integration.

Lets AI assistants follow and advance project roadmaps through the
Roadmap Engine HTTP API.

Modules:
- server: stdio MCP server implementation
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
