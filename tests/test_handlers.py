"""Tests for mcp_server_milkee.handlers: tool dispatch and result envelopes."""

import asyncio
import itertools
import json

import httpx
import pytest

from mcp_server_milkee.handlers import HANDLERS, ToolDispatcher
from mcp_server_milkee.milkee_client import MilkeeClient
from mcp_server_milkee.tools import TOOLS
from tests.conftest import API_PREFIX, body_of

SAMPLE_VALUES = {
    "string": "2024-01-31",
    "integer": 1,
    "number": 12.5,
    "boolean": True,
    "array": [1],
    "object": {},
}


def minimal_arguments(tool):
    """Only the required arguments, with a plausible value for each."""
    schema = tool.inputSchema
    arguments = {}
    for name in schema.get("required", []):
        prop = schema["properties"][name]
        arguments[name] = prop["enum"][0] if "enum" in prop else SAMPLE_VALUES[prop["type"]]
    return arguments


def call(dispatcher, name, arguments=None):
    return json.loads(asyncio.run(dispatcher.handle(name, arguments)))


class TestEveryTool:
    @pytest.mark.parametrize("tool", TOOLS, ids=lambda tool: tool.name)
    def test_minimal_arguments_produce_json(self, dispatcher, tool):
        text = asyncio.run(dispatcher.handle(tool.name, minimal_arguments(tool)))
        result = json.loads(text)
        assert "error" not in result

    @pytest.mark.parametrize("tool", TOOLS, ids=lambda tool: tool.name)
    def test_api_failure_becomes_error_envelope(self, config, tool):
        def fail(request):
            return httpx.Response(500, text="Server Error")

        milkee = MilkeeClient(config, transport=httpx.MockTransport(fail))
        dispatcher = ToolDispatcher(milkee, config)
        result = json.loads(asyncio.run(dispatcher.handle(tool.name, minimal_arguments(tool))))
        asyncio.run(milkee.aclose())
        assert result == {"error": "MILKEE API Error 500: Server Error"}


class TestDispatchErrors:
    def test_unknown_tool(self, dispatcher, fake_api):
        assert call(dispatcher, "milkee_fly_to_moon", {}) == {"error": "Unknown tool: milkee_fly_to_moon"}
        assert fake_api.requests == []

    def test_error_text_is_compact_json(self, dispatcher):
        text = asyncio.run(dispatcher.handle("milkee_fly_to_moon", {}))
        assert text == '{"error": "Unknown tool: milkee_fly_to_moon"}'

    def test_missing_required_argument(self, dispatcher, fake_api):
        result = call(dispatcher, "milkee_get_customer", {})
        assert result["error"].startswith("Invalid arguments for milkee_get_customer")
        assert "id" in result["error"]
        assert fake_api.requests == []

    def test_enum_violation(self, dispatcher, fake_api):
        result = call(dispatcher, "milkee_create_tag", {"name": "VIP", "color": "black"})
        assert "color" in result["error"]
        assert fake_api.requests == []

    def test_wrong_type(self, dispatcher):
        result = call(dispatcher, "milkee_bulk_delete_entries", {"ids": "all"})
        assert result["error"].startswith("Invalid arguments for milkee_bulk_delete_entries")

    def test_none_arguments_are_treated_as_empty(self, dispatcher):
        assert call(dispatcher, "milkee_get_timer", None) == {"data": {"id": 1}}

    def test_api_error_message_is_preserved(self, dispatcher, fake_api):
        fake_api.route("GET", "/customers/9", status=404, text="Not Found")
        assert call(dispatcher, "milkee_get_customer", {"id": 9}) == {"error": "MILKEE API Error 404: Not Found"}

    def test_handlers_match_registry(self):
        assert set(HANDLERS) == {tool.name for tool in TOOLS}


class TestReadOnlyMode:
    def test_lists_only_read_tools(self, read_only_dispatcher):
        names = {tool.name for tool in read_only_dispatcher.list_tools()}
        assert "milkee_list_customers" in names
        assert "milkee_get_company_summary" in names
        assert "milkee_create_customer" not in names
        assert "milkee_stop_timer" not in names

    def test_write_tool_rejected_without_http_call(self, read_only_dispatcher, fake_api):
        result = call(read_only_dispatcher, "milkee_delete_customer", {"id": 1})
        assert result == {"error": "Tool milkee_delete_customer is not available in read-only mode"}
        assert fake_api.requests == []

    def test_rejected_regardless_of_arguments(self, read_only_dispatcher):
        result = call(read_only_dispatcher, "milkee_create_invoice", {"nonsense": True})
        assert "read-only mode" in result["error"]

    def test_read_tool_allowed(self, read_only_dispatcher, fake_api):
        call(read_only_dispatcher, "milkee_get_timer")
        assert len(fake_api.requests) == 1

    def test_full_mode_lists_everything(self, dispatcher):
        assert len(dispatcher.list_tools()) == len(TOOLS)


class TestPayloads:
    def test_update_strips_id_from_body(self, dispatcher, fake_api):
        call(dispatcher, "milkee_update_customer", {"id": 5, "name": "Acme AG"})
        assert fake_api.last.method == "PUT"
        assert fake_api.last.url.path == f"{API_PREFIX}/customers/5"
        assert body_of(fake_api.last) == {"name": "Acme AG"}

    def test_create_ignores_stray_id(self, dispatcher, fake_api):
        call(dispatcher, "milkee_create_product", {"id": 99, "name": "Hosting", "price": 20})
        assert body_of(fake_api.last) == {"name": "Hosting", "price": 20}

    def test_create_sends_only_given_fields(self, dispatcher, fake_api):
        call(dispatcher, "milkee_create_task", {"title": "Write docs", "project_id": 3})
        assert body_of(fake_api.last) == {"title": "Write docs", "project_id": 3}

    def test_explicit_null_is_forwarded(self, dispatcher, fake_api):
        call(dispatcher, "milkee_update_task", {"id": 4, "due_date": None})
        assert body_of(fake_api.last) == {"due_date": None}

    def test_contact_path_ids_stay_out_of_body(self, dispatcher, fake_api):
        call(dispatcher, "milkee_update_contact", {"customer_id": 3, "contact_id": 9, "email": "a@b.ch"})
        assert fake_api.last.url.path == f"{API_PREFIX}/customers/3/contacts/9"
        assert body_of(fake_api.last) == {"email": "a@b.ch"}

    def test_positions_pass_through_unchanged(self, dispatcher, fake_api):
        positions = '[{"description": "Design", "amount": 3, "price": 120, "unit": "h"}]'
        call(dispatcher, "milkee_create_invoice", {
            "customer_id": 1,
            "title": "January",
            "date": "2024-01-31",
            "payable_until": "2024-02-29",
            "positions": positions,
        })
        assert body_of(fake_api.last)["positions"] == positions

    def test_list_filters_are_bracketed(self, dispatcher, fake_api):
        call(dispatcher, "milkee_list_customers", {"name": "Acme", "archived": True})
        assert dict(fake_api.last.url.params) == {"filter[name]": "Acme", "filter[archived]": "true"}

    def test_bulk_update_keeps_ids_authoritative(self, dispatcher, fake_api):
        call(dispatcher, "milkee_bulk_update_entries", {"ids": [1, 2], "updates": {"ids": [7], "billable": True}})
        assert body_of(fake_api.last) == {"ids": [1, 2], "billable": True}


class TestDeleteEnvelope:
    def test_204_delete_reports_success(self, dispatcher, fake_api):
        fake_api.route("DELETE", "/invoices/3", status=204)
        assert call(dispatcher, "milkee_delete_invoice", {"id": 3}) == {"success": True, "message": "Invoice deleted"}

    def test_discard_timer(self, dispatcher, fake_api):
        fake_api.route("DELETE", "/times/timer", status=204)
        assert call(dispatcher, "milkee_discard_timer")["success"] is True

    def test_bulk_archive_message(self, dispatcher):
        result = call(dispatcher, "milkee_bulk_archive_projects", {"ids": [1, 2, 3], "archive": False})
        assert result == {"success": True, "message": "3 projects unarchived"}

    def test_second_delete_fails(self, config):
        store = {1: {"id": 1, "name": "Acme"}}

        def api(request):
            customer_id = int(request.url.path.rsplit("/", 1)[-1])
            if customer_id not in store:
                return httpx.Response(404, text='{"message":"Not found"}')
            del store[customer_id]
            return httpx.Response(204)

        milkee = MilkeeClient(config, transport=httpx.MockTransport(api))
        dispatcher = ToolDispatcher(milkee, config)
        first = call(dispatcher, "milkee_delete_customer", {"id": 1})
        second = call(dispatcher, "milkee_delete_customer", {"id": 1})
        asyncio.run(milkee.aclose())
        assert first["success"] is True
        assert second == {"error": 'MILKEE API Error 404: {"message":"Not found"}'}


class TestRoundTrip:
    def test_created_customer_can_be_fetched(self, config):
        store = {}
        ids = itertools.count(1)

        def api(request):
            if request.method == "POST":
                record = {"id": next(ids), **json.loads(request.content), "archived": False}
                store[record["id"]] = record
                return httpx.Response(201, json={"data": record})
            customer_id = int(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(200, json={"data": store[customer_id]})

        milkee = MilkeeClient(config, transport=httpx.MockTransport(api))
        dispatcher = ToolDispatcher(milkee, config)
        created = call(dispatcher, "milkee_create_customer", {"name": "Acme", "city": "Bern"})
        fetched = call(dispatcher, "milkee_get_customer", {"id": created["data"]["id"]})
        asyncio.run(milkee.aclose())
        assert fetched["data"]["name"] == "Acme"
        assert fetched["data"]["city"] == "Bern"


class TestResponseShaping:
    def test_invoice_list_is_slimmed(self, dispatcher, fake_api):
        fake_api.route("GET", "/invoices", json_body={
            "data": [{
                "id": 1,
                "number": 1001,
                "status": "sent",
                "final_value": 540.0,
                "positions": "[...]",
                "remarks": "Thanks",
                "customer": {"id": 2, "name": "Acme"},
            }],
            "meta": {"current_page": 1, "last_page": 1, "per_page": 15, "total": 1},
        })
        result = call(dispatcher, "milkee_list_invoices")
        assert result["data"] == [{
            "id": 1, "number": 1001, "status": "sent", "final_value": 540.0, "customer_name": "Acme",
        }]
        assert result["meta"]["total"] == 1

    def test_customer_list_is_slimmed(self, dispatcher, fake_api):
        fake_api.route("GET", "/customers", json_body={
            "data": [{"id": 1, "name": "Acme", "street": "Main 1", "website": "acme.ch", "archived": False}],
        })
        assert call(dispatcher, "milkee_list_customers")["data"] == [{"id": 1, "name": "Acme", "archived": False}]

    def test_get_returns_full_record(self, dispatcher, fake_api):
        record = {"id": 1, "name": "Acme", "street": "Main 1", "website": "acme.ch"}
        fake_api.route("GET", "/customers/1", json_body={"data": record})
        assert call(dispatcher, "milkee_get_customer", {"id": 1}) == {"data": record}

    def test_project_list_is_not_slimmed(self, dispatcher, fake_api):
        record = {"id": 1, "name": "Website", "budget": 5000, "kanban_status": "doing"}
        fake_api.route("GET", "/projects", json_body={"data": [record]})
        assert call(dispatcher, "milkee_list_projects")["data"] == [record]

    def test_product_count_is_wrapped(self, dispatcher, fake_api):
        fake_api.route("GET", "/products/count", json_body=12)
        assert call(dispatcher, "milkee_get_product_count") == {"count": 12}


class TestCompanySummary:
    def route_summary(self, fake_api, invoices=(), proposals=(), accounts=()):
        fake_api.route("GET", "/invoices", json_body={"data": list(invoices)})
        fake_api.route("GET", "/proposals", json_body={"data": list(proposals)})
        fake_api.route("GET", "/accounts", json_body={"data": list(accounts)})
        fake_api.route("GET", "/entries", json_body={"data": []})

    def test_invoice_values(self, dispatcher, fake_api):
        self.route_summary(fake_api, invoices=[
            {"status": "paid", "final_value": 100},
            {"status": "sent", "final_value": 50},
        ])
        summary = call(dispatcher, "milkee_get_company_summary")
        assert summary["invoices"]["paid_value"] == 100
        assert summary["invoices"]["open_value"] == 50
        assert summary["invoices"]["total_value"] == 150
        assert summary["invoices"]["by_status"] == {"paid": 1, "sent": 1}

    def test_issues_five_capped_requests(self, dispatcher, fake_api):
        self.route_summary(fake_api)
        call(dispatcher, "milkee_get_company_summary")
        assert len(fake_api.requests) == 5
        assert all(request.url.params["per_page"] == "100" for request in fake_api.requests)
        entry_types = sorted(
            request.url.params["filter[type]"]
            for request in fake_api.requests
            if request.url.path.endswith("/entries")
        )
        assert entry_types == ["expense", "income"]

    def test_income_and_expenses_are_split_by_type(self, config):
        def api(request):
            path = request.url.path
            if path.endswith("/entries"):
                amount = 1000 if request.url.params["filter[type]"] == "income" else 250
                return httpx.Response(200, json={"data": [{"sum": amount}]})
            return httpx.Response(200, json={"data": []})

        milkee = MilkeeClient(config, transport=httpx.MockTransport(api))
        summary = call(ToolDispatcher(milkee, config), "milkee_get_company_summary")
        asyncio.run(milkee.aclose())
        assert summary["bookkeeping"] == {
            "total_income": 1000,
            "total_expenses": 250,
            "net_profit": 750,
            "profit_margin": "75.0%",
        }

    def test_one_failure_fails_the_summary(self, dispatcher, fake_api):
        self.route_summary(fake_api)
        fake_api.route("GET", "/accounts", status=500, text="boom")
        assert call(dispatcher, "milkee_get_company_summary") == {"error": "MILKEE API Error 500: boom"}

    def test_bank_balance(self, dispatcher, fake_api):
        self.route_summary(fake_api, accounts=[
            {"id": 1, "name": "Cash", "number": "1000", "balance": 10},
            {"id": 2, "name": "Bank", "number": "1020", "balance": "2500.50"},
        ])
        summary = call(dispatcher, "milkee_get_company_summary")
        assert summary["bank_account"] == {"id": 2, "name": "Bank", "number": "1020", "balance": 2500.5}
