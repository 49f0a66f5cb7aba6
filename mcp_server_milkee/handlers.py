"""Tool call dispatch.

Each tool name maps to one handler coroutine ``(client, args) -> result``.
``ToolDispatcher.handle`` validates the arguments against the tool's schema,
runs the handler and serializes the result, or the error, to JSON text.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp.types import Tool
from pydantic import ValidationError

from mcp_server_milkee.access import filter_tools, is_read_only_tool
from mcp_server_milkee.config import MilkeeConfig
from mcp_server_milkee.exceptions import (
    InvalidArgumentsError,
    MilkeeError,
    ReadOnlyModeError,
    UnknownToolError,
)
from mcp_server_milkee.milkee_client import MilkeeClient
from mcp_server_milkee.projections import (
    records,
    slim_customer,
    slim_entry,
    slim_invoice,
    slim_list,
    slim_proposal,
    summarize_company,
)
from mcp_server_milkee.tools import TOOLS, TOOLS_BY_NAME, argument_model

logger = logging.getLogger(__name__)

Handler = Callable[[MilkeeClient, Dict[str, Any]], Awaitable[Any]]

HANDLERS: Dict[str, Handler] = {}

SUMMARY_PAGE_SIZE = 100


def handler(name: str) -> Callable[[Handler], Handler]:
    """Register the decorated coroutine as the handler of tool ``name``."""
    def decorator(func: Handler) -> Handler:
        if name in HANDLERS:
            raise ValueError(f"Duplicate handler for {name}")
        HANDLERS[name] = func
        return func
    return decorator


def _without(args: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    # Path identifiers never go into the request body
    return {key: value for key, value in args.items() if key not in keys}


def _done(message: str) -> Dict[str, Any]:
    return {"success": True, "message": message}


# Customers
@handler("milkee_list_customers")
async def list_customers(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return slim_list(await client.list_customers(**args), slim_customer)


@handler("milkee_get_customer")
async def get_customer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_customer(**args)


@handler("milkee_create_customer")
async def create_customer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_customer(args)


@handler("milkee_update_customer")
async def update_customer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_customer(args["id"], _without(args, "id"))


@handler("milkee_delete_customer")
async def delete_customer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_customer(args["id"])
    return _done("Customer deleted")


@handler("milkee_get_customer_statistics")
async def get_customer_statistics(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_customer_statistics(args["id"])


# Projects
@handler("milkee_list_projects")
async def list_projects(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_projects(**args)


@handler("milkee_get_project")
async def get_project(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_project(**args)


@handler("milkee_create_project")
async def create_project(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_project(args)


@handler("milkee_update_project")
async def update_project(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_project(args["id"], _without(args, "id"))


@handler("milkee_delete_project")
async def delete_project(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_project(args["id"])
    return _done("Project deleted")


@handler("milkee_bulk_archive_projects")
async def bulk_archive_projects(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.bulk_archive_projects(args["ids"], args["archive"])
    action = "archived" if args["archive"] else "unarchived"
    return _done(f"{len(args['ids'])} projects {action}")


# Tasks
@handler("milkee_list_tasks")
async def list_tasks(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_tasks(**args)


@handler("milkee_get_task")
async def get_task(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_task(**args)


@handler("milkee_create_task")
async def create_task(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_task(args)


@handler("milkee_update_task")
async def update_task(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_task(args["id"], _without(args, "id"))


@handler("milkee_delete_task")
async def delete_task(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_task(args["id"])
    return _done("Task deleted")


# Time entries
@handler("milkee_list_times")
async def list_times(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_times(**args)


@handler("milkee_get_time")
async def get_time(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_time(**args)


@handler("milkee_create_time")
async def create_time(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_time(args)


@handler("milkee_update_time")
async def update_time(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_time(args["id"], _without(args, "id"))


@handler("milkee_delete_time")
async def delete_time(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_time(args["id"])
    return _done("Time entry deleted")


# Timer
@handler("milkee_get_timer")
async def get_timer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_timer()


@handler("milkee_start_timer")
async def start_timer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.start_timer(**args)


@handler("milkee_stop_timer")
async def stop_timer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.stop_timer()


@handler("milkee_update_timer_description")
async def update_timer_description(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_timer_description(args["description"])


@handler("milkee_discard_timer")
async def discard_timer(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.discard_timer()
    return _done("Timer discarded")


# Entries (bookkeeping)
@handler("milkee_list_entries")
async def list_entries(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return slim_list(await client.list_entries(**args), slim_entry)


@handler("milkee_get_entry")
async def get_entry(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_entry(**args)


@handler("milkee_create_entry")
async def create_entry(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_entry(args)


@handler("milkee_update_entry")
async def update_entry(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_entry(args["id"], _without(args, "id"))


@handler("milkee_delete_entry")
async def delete_entry(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_entry(args["id"])
    return _done("Entry deleted")


@handler("milkee_get_next_entry_number")
async def get_next_entry_number(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_next_entry_number(**args)


@handler("milkee_bulk_delete_entries")
async def bulk_delete_entries(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.bulk_delete_entries(args["ids"])
    return _done(f"{len(args['ids'])} entries deleted")


@handler("milkee_bulk_update_entries")
async def bulk_update_entries(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    updates = _without(args["updates"], "id", "ids")
    await client.bulk_update_entries(args["ids"], updates)
    return _done(f"{len(args['ids'])} entries updated")


# Products
@handler("milkee_list_products")
async def list_products(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_products(**args)


@handler("milkee_get_product")
async def get_product(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_product(args["id"])


@handler("milkee_create_product")
async def create_product(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_product(args)


@handler("milkee_update_product")
async def update_product(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_product(args["id"], _without(args, "id"))


@handler("milkee_delete_product")
async def delete_product(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_product(args["id"])
    return _done("Product deleted")


@handler("milkee_get_product_count")
async def get_product_count(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    count = await client.get_product_count()
    if isinstance(count, dict):
        return count
    return {"count": count}


# Accounts
@handler("milkee_list_accounts")
async def list_accounts(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_accounts(**args)


@handler("milkee_get_account")
async def get_account(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_account(args["id"])


@handler("milkee_create_account")
async def create_account(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_account(args)


@handler("milkee_update_account")
async def update_account(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_account(args["id"], _without(args, "id"))


@handler("milkee_delete_account")
async def delete_account(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_account(args["id"])
    return _done("Account deleted")


@handler("milkee_reset_accounts")
async def reset_accounts(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.reset_accounts()
    return _done("Chart of accounts reset")


# Tags
@handler("milkee_list_tags")
async def list_tags(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_tags(**args)


@handler("milkee_get_tag")
async def get_tag(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_tag(args["id"])


@handler("milkee_create_tag")
async def create_tag(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_tag(args)


@handler("milkee_update_tag")
async def update_tag(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_tag(args["id"], _without(args, "id"))


@handler("milkee_delete_tag")
async def delete_tag(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_tag(args["id"])
    return _done("Tag deleted")


@handler("milkee_get_tag_colors")
async def get_tag_colors(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_tag_colors()


# Tax rates
@handler("milkee_list_tax_rates")
async def list_tax_rates(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_tax_rates()


@handler("milkee_get_tax_rate")
async def get_tax_rate(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_tax_rate(args["id"])


# Contacts
@handler("milkee_list_contacts")
async def list_contacts(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.list_contacts(**args)


@handler("milkee_create_contact")
async def create_contact(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_contact(args["customer_id"], _without(args, "customer_id", "id"))


@handler("milkee_update_contact")
async def update_contact(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    data = _without(args, "customer_id", "contact_id", "id")
    return await client.update_contact(args["customer_id"], args["contact_id"], data)


@handler("milkee_delete_contact")
async def delete_contact(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_contact(args["customer_id"], args["contact_id"])
    return _done("Contact deleted")


# Invoices
@handler("milkee_list_invoices")
async def list_invoices(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return slim_list(await client.list_invoices(**args), slim_invoice)


@handler("milkee_get_invoice")
async def get_invoice(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_invoice(**args)


@handler("milkee_create_invoice")
async def create_invoice(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_invoice(args)


@handler("milkee_update_invoice")
async def update_invoice(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_invoice(args["id"], _without(args, "id"))


@handler("milkee_delete_invoice")
async def delete_invoice(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_invoice(args["id"])
    return _done("Invoice deleted")


@handler("milkee_mark_invoice_paid")
async def mark_invoice_paid(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.mark_invoice_paid(**args)


@handler("milkee_send_invoice")
async def send_invoice(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.send_invoice(**args)


# Proposals
@handler("milkee_list_proposals")
async def list_proposals(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return slim_list(await client.list_proposals(**args), slim_proposal)


@handler("milkee_get_proposal")
async def get_proposal(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.get_proposal(**args)


@handler("milkee_create_proposal")
async def create_proposal(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.create_proposal(args)


@handler("milkee_update_proposal")
async def update_proposal(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.update_proposal(args["id"], _without(args, "id"))


@handler("milkee_delete_proposal")
async def delete_proposal(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    await client.delete_proposal(args["id"])
    return _done("Proposal deleted")


@handler("milkee_convert_proposal_to_invoice")
async def convert_proposal_to_invoice(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.convert_proposal_to_invoice(args["id"])


@handler("milkee_send_proposal")
async def send_proposal(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    return await client.send_proposal(**args)


# Summary
@handler("milkee_get_company_summary")
async def get_company_summary(client: MilkeeClient, args: Dict[str, Any]) -> Any:
    """Fetch invoices, proposals, income, expenses and accounts concurrently.

    Any failing request fails the whole summary.
    """
    invoices, proposals, income, expenses, accounts = await asyncio.gather(
        client.list_invoices(per_page=SUMMARY_PAGE_SIZE),
        client.list_proposals(per_page=SUMMARY_PAGE_SIZE),
        client.list_entries(type="income", per_page=SUMMARY_PAGE_SIZE),
        client.list_entries(type="expense", per_page=SUMMARY_PAGE_SIZE),
        client.list_accounts(per_page=SUMMARY_PAGE_SIZE),
    )
    return summarize_company(
        records(invoices),
        records(proposals),
        records(income),
        records(expenses),
        records(accounts),
    )


def _describe(error: ValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "arguments"
        problems.append(f"{location}: {detail['msg']}")
    return "; ".join(problems)


class ToolDispatcher:
    """Routes tool calls to their handlers and renders results as text."""

    def __init__(self, client: MilkeeClient, config: MilkeeConfig) -> None:
        unmatched = set(TOOLS_BY_NAME) ^ set(HANDLERS)
        if unmatched:
            raise RuntimeError(f"Tools and handlers out of sync: {sorted(unmatched)}")
        self.client = client
        self.read_only = config.read_only

    def list_tools(self) -> List[Tool]:
        return filter_tools(TOOLS, self.read_only)

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Run tool ``name`` and return its raw result. Raises ``MilkeeError``."""
        tool_handler = HANDLERS.get(name)
        if tool_handler is None:
            raise UnknownToolError(name)
        if self.read_only and not is_read_only_tool(name):
            raise ReadOnlyModeError(name)

        try:
            validated = argument_model(name).model_validate(arguments or {})
        except ValidationError as e:
            raise InvalidArgumentsError(f"Invalid arguments for {name}: {_describe(e)}") from e

        logger.debug("Calling tool %s", name)
        return await tool_handler(self.client, validated.model_dump(exclude_unset=True))

    async def handle(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Run tool ``name`` and return the JSON result or ``{"error": ...}``.

        Never raises for a rejected or failing call.
        """
        try:
            result = await self.call(name, arguments)
        except MilkeeError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return json.dumps({"error": str(e)})
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return json.dumps({"error": f"Unexpected error: {e}"})
        return json.dumps(result, indent=2, default=str)
