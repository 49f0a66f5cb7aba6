"""MCP server exposing the MILKEE accounting API as tools."""

__version__ = "0.1.0"
