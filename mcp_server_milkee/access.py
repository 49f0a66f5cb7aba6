"""Read-only access mode."""

from typing import Iterable, List

from mcp.types import Tool

# Side-effect-free reads that are always allowed, whatever their name says.
READ_ONLY_TOOLS = frozenset({
    "milkee_get_timer",
    "milkee_get_tag_colors",
    "milkee_get_next_entry_number",
    "milkee_get_customer_statistics",
    "milkee_get_product_count",
    "milkee_get_company_summary",
})


def is_read_only_tool(name: str) -> bool:
    """Return True if calling ``name`` cannot change remote data."""
    if name in READ_ONLY_TOOLS:
        return True
    return name.startswith(("milkee_list_", "milkee_get_"))


def filter_tools(tools: Iterable[Tool], read_only: bool) -> List[Tool]:
    if not read_only:
        return list(tools)
    return [tool for tool in tools if is_read_only_tool(tool.name)]
