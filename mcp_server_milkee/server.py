"""MCP server for MILKEE integration.

Exposes the MILKEE accounting API (customers, projects, tasks, time
tracking, bookkeeping, products, accounts, tags, tax rates, contacts,
invoices and proposals) as MCP tools over stdio.

CONFIGURATION:
-------------
- MILKEE_API_TOKEN: API token (required)
- MILKEE_COMPANY_ID: company identifier (required)
- MILKEE_READ_ONLY: only advertise and allow list/get tools (default: false)
- MILKEE_API_URL, MILKEE_TIMEOUT, MILKEE_LOG_LEVEL: optional overrides

Variables may also come from a .env file.

RESULTS:
-------
Every tool call returns a single text item holding JSON: the API response,
a reduced list for customers/entries/invoices/proposals, or
{"error": "..."} when the call was rejected or failed.
"""

import asyncio
import logging
import os
import sys
from typing import Any, Dict, List

from dotenv import find_dotenv, load_dotenv
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from mcp_server_milkee import __version__
from mcp_server_milkee.config import MilkeeConfig
from mcp_server_milkee.exceptions import ConfigurationError
from mcp_server_milkee.handlers import ToolDispatcher
from mcp_server_milkee.milkee_client import MilkeeClient

logger = logging.getLogger(__name__)


def build_server(dispatcher: ToolDispatcher) -> Server:
    """Create the MCP server and register the tool handlers."""
    server = Server("milkee-mcp-server", version=__version__)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        """List available tools."""
        return dispatcher.list_tools()

    # Arguments are validated by the dispatcher so errors keep the {"error"} shape
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        """Handle tool calls."""
        text = await dispatcher.handle(name, arguments)
        return [TextContent(type="text", text=text)]

    return server


def configure_logging() -> None:
    level = os.getenv("MILKEE_LOG_LEVEL", "INFO").upper()
    known = isinstance(logging.getLevelName(level), int)
    # stdout carries the MCP stream, so logs go to stderr
    logging.basicConfig(
        level=level if known else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    if not known:
        logger.warning("Unknown MILKEE_LOG_LEVEL %r, using INFO", level)


async def serve(config: MilkeeConfig) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    async with MilkeeClient(config) as client:
        dispatcher = ToolDispatcher(client, config)
        server = build_server(dispatcher)
        logger.info(
            "Starting MILKEE MCP server for company %s (%s mode, %d tools)",
            config.company_id,
            "read-only" if config.read_only else "read-write",
            len(dispatcher.list_tools()),
        )
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
        logger.info("MILKEE MCP server stopped")


async def main() -> int:
    """Main entry point for the server. Returns the process exit code."""
    configure_logging()
    env_file = find_dotenv(usecwd=True)
    if env_file:
        load_dotenv(env_file)
        logger.debug("Loaded environment from %s", env_file)

    try:
        config = MilkeeConfig.from_env()
    except ConfigurationError as e:
        logger.error("Error: %s", e)
        return 1

    await serve(config)
    return 0


def run() -> None:
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        exit_code = 0
    except Exception:
        logger.exception("MILKEE MCP server crashed with an unhandled exception")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
