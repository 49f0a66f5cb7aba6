"""MILKEE REST API client for API communication."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from mcp_server_milkee import __version__
from mcp_server_milkee.config import MilkeeConfig
from mcp_server_milkee.exceptions import MilkeeApiError, MilkeeRequestError

logger = logging.getLogger(__name__)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in data.items() if value is not None}


class MilkeeClient:
    """Client for interacting with MILKEE via REST API.

    Every path is relative to ``/companies/{company_id}`` under the
    configured API URL.
    """

    def __init__(
        self,
        config: MilkeeConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize MILKEE client with configuration."""
        self.config = config
        self.base_url = f"{config.api_url.rstrip('/')}/companies/{config.company_id}"

        # Initialize HTTP client
        self.client = httpx.AsyncClient(
            timeout=config.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {config.api_token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": f"mcp-server-milkee/{__version__}",
            },
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make a request to the MILKEE API.

        ``None``-valued query parameters are omitted, the rest are sent as
        strings. A 204 (or otherwise empty) response yields ``{}``.
        """
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        url = f"{self.base_url}{path}"
        query = {
            key: _query_value(value)
            for key, value in (params or {}).items()
            if value is not None
        }

        logger.debug("%s %s params=%s", method, path, query)
        try:
            response = await self.client.request(
                method=method,
                url=url,
                params=query or None,
                json=body,
            )
        except httpx.HTTPError as e:
            raise MilkeeRequestError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.warning("MILKEE API returned %s for %s %s", response.status_code, method, path)
            raise MilkeeApiError(response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a GET request."""
        return await self._request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Optional[Any] = None) -> Any:
        """Make a POST request."""
        return await self._request("POST", endpoint, body=data)

    async def put(self, endpoint: str, data: Optional[Any] = None) -> Any:
        """Make a PUT request."""
        return await self._request("PUT", endpoint, body=data)

    async def delete(self, endpoint: str, data: Optional[Any] = None) -> Any:
        """Make a DELETE request."""
        return await self._request("DELETE", endpoint, body=data)

    # Customer methods
    async def list_customers(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        name: Optional[str] = None,
        archived: Optional[bool] = None,
        include: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of customers."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[name]": name,
            "filter[archived]": archived,
            "include": include,
        }
        return await self.get("/customers", params=params)

    async def get_customer(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific customer."""
        return await self.get(f"/customers/{id}", params={"include": include})

    async def create_customer(self, customer_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new customer."""
        return await self.post("/customers", customer_data)

    async def update_customer(self, id: int, customer_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing customer."""
        return await self.put(f"/customers/{id}", customer_data)

    async def delete_customer(self, id: int) -> None:
        """Delete a customer."""
        await self.delete(f"/customers/{id}")

    async def get_customer_statistics(self, id: int) -> Dict[str, Any]:
        """Fetch income, expenses and hours for a customer."""
        return await self.get(f"/customers/{id}/statistics")

    # Project methods
    async def list_projects(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        archived: Optional[bool] = None,
        customer_id: Optional[int] = None,
        include: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of projects."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[archived]": archived,
            "filter[customer_id]": customer_id,
            "include": include,
        }
        return await self.get("/projects", params=params)

    async def get_project(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific project."""
        return await self.get(f"/projects/{id}", params={"include": include})

    async def create_project(self, project_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new project.

        Either ``customer_id`` or ``newCustomerName`` links the project to a
        customer; the latter creates the customer on the fly.
        """
        return await self.post("/projects", project_data)

    async def update_project(self, id: int, project_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing project."""
        return await self.put(f"/projects/{id}", project_data)

    async def delete_project(self, id: int) -> None:
        """Delete a project."""
        await self.delete(f"/projects/{id}")

    async def bulk_archive_projects(self, ids: List[int], archive: bool) -> None:
        """Archive or unarchive several projects in one request."""
        await self.post("/projects/multiple", {"ids": ids, "archive": archive})

    # Task methods
    async def list_tasks(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        status: Optional[str] = None,
        project_id: Optional[int] = None,
        include: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of tasks."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[status]": status,
            "filter[project_id]": project_id,
            "include": include,
        }
        return await self.get("/tasks", params=params)

    async def get_task(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific task."""
        return await self.get(f"/tasks/{id}", params={"include": include})

    async def create_task(self, task_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new task."""
        return await self.post("/tasks", task_data)

    async def update_task(self, id: int, task_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing task."""
        return await self.put(f"/tasks/{id}", task_data)

    async def delete_task(self, id: int) -> None:
        """Delete a task."""
        await self.delete(f"/tasks/{id}")

    # Time entry methods
    async def list_times(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        user_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        project_id: Optional[int] = None,
        billable: Optional[bool] = None,
        status: Optional[str] = None,
        date: Optional[str] = None,
        group_by: Optional[str] = None,
        include: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of time entries."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[user_id]": user_id,
            "filter[customer_id]": customer_id,
            "filter[project_id]": project_id,
            "filter[billable]": billable,
            "filter[status]": status,
            "filter[date]": date,
            "group_by": group_by,
            "include": include,
        }
        return await self.get("/times", params=params)

    async def get_time(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific time entry."""
        return await self.get(f"/times/{id}", params={"include": include})

    async def create_time(self, time_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new time entry.

        Required fields:
        - project_id: Project ID
        - date: Date of the entry (YYYY-MM-DD)
        - hours, minutes: Duration
        """
        return await self.post("/times", time_data)

    async def update_time(self, id: int, time_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing time entry."""
        return await self.put(f"/times/{id}", time_data)

    async def delete_time(self, id: int) -> None:
        """Delete a time entry."""
        await self.delete(f"/times/{id}")

    # Timer methods
    async def get_timer(self) -> Dict[str, Any]:
        """Fetch the running timer; ``data`` is null when none is running."""
        return await self.get("/times/timer")

    async def start_timer(
        self,
        project_id: int,
        task_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a timer for a project (and optionally a task)."""
        data = _compact({"project_id": project_id, "task_id": task_id, "description": description})
        return await self.post("/times/timer", data)

    async def stop_timer(self) -> Dict[str, Any]:
        """Stop the running timer, turning it into a time entry."""
        return await self.post("/times/timer", {"action": "stop"})

    async def update_timer_description(self, description: str) -> Dict[str, Any]:
        """Change the description of the running timer."""
        return await self.put("/times/timer/description", {"description": description})

    async def discard_timer(self) -> None:
        """Abandon the running timer without creating a time entry."""
        await self.delete("/times/timer")

    # Entry (bookkeeping) methods
    async def list_entries(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        date: Optional[str] = None,
        type: Optional[str] = None,
        customer_id: Optional[int] = None,
        project_id: Optional[int] = None,
        billable: Optional[bool] = None,
        account_id: Optional[int] = None,
        tag_id: Optional[int] = None,
        include: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of bookkeeping entries."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[date]": date,
            "filter[type]": type,
            "filter[customer_id]": customer_id,
            "filter[project_id]": project_id,
            "filter[billable]": billable,
            "filter[account_id]": account_id,
            "filter[tag_id]": tag_id,
            "include": include,
            "sort": sort,
        }
        return await self.get("/entries", params=params)

    async def get_entry(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific bookkeeping entry."""
        return await self.get(f"/entries/{id}", params={"include": include})

    async def create_entry(self, entry_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new bookkeeping entry.

        Required fields:
        - date: Booking date (YYYY-MM-DD format)
        - debit_account_id: Debit account ID
        - credit_account_id: Credit account ID

        Optional fields:
        - sum, description, customer_id, project_id, tax_rate_id,
          tag_ids, billable
        """
        return await self.post("/entries", entry_data)

    async def update_entry(self, id: int, entry_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing entry. Locked entries are rejected by the API."""
        return await self.put(f"/entries/{id}", entry_data)

    async def delete_entry(self, id: int) -> None:
        """Delete a bookkeeping entry."""
        await self.delete(f"/entries/{id}")

    async def get_next_entry_number(self, type: str, year: Optional[int] = None) -> Dict[str, Any]:
        """Get the next booking number for an entry type."""
        return await self.get(f"/entries/number/{type}", params={"year": year})

    async def bulk_delete_entries(self, ids: List[int]) -> None:
        """Delete several entries in one request."""
        await self.delete("/entries/multiple", {"ids": ids})

    async def bulk_update_entries(self, ids: List[int], updates: Dict[str, Any]) -> None:
        """Apply the same field updates to several entries."""
        await self.put("/entries/multiple", {"ids": ids, **updates})

    # Product methods
    async def list_products(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        name: Optional[str] = None,
        archived: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of products."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[name]": name,
            "filter[archived]": archived,
        }
        return await self.get("/products", params=params)

    async def get_product(self, id: int) -> Dict[str, Any]:
        """Fetch a specific product."""
        return await self.get(f"/products/{id}")

    async def create_product(self, product_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new product."""
        return await self.post("/products", product_data)

    async def update_product(self, id: int, product_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing product."""
        return await self.put(f"/products/{id}", product_data)

    async def delete_product(self, id: int) -> None:
        """Delete a product."""
        await self.delete(f"/products/{id}")

    async def get_product_count(self) -> Any:
        """Fetch the number of products."""
        return await self.get("/products/count")

    # Account methods (chart of accounts)
    async def list_accounts(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch accounts from the chart of accounts."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[type]": type,
        }
        return await self.get("/accounts", params=params)

    async def get_account(self, id: int) -> Dict[str, Any]:
        """Fetch a specific account."""
        return await self.get(f"/accounts/{id}")

    async def create_account(self, account_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new account.

        Required fields:
        - name, number, type
        """
        return await self.post("/accounts", account_data)

    async def update_account(self, id: int, account_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing account."""
        return await self.put(f"/accounts/{id}", account_data)

    async def delete_account(self, id: int) -> None:
        """Delete an account."""
        await self.delete(f"/accounts/{id}")

    async def reset_accounts(self) -> None:
        """Reset the chart of accounts to the MILKEE default."""
        await self.post("/accounts/reset")

    # Tag methods
    async def list_tags(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of tags."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[name]": name,
            "filter[color]": color,
        }
        return await self.get("/tags", params=params)

    async def get_tag(self, id: int) -> Dict[str, Any]:
        """Fetch a specific tag."""
        return await self.get(f"/tags/{id}")

    async def create_tag(self, tag_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new tag."""
        return await self.post("/tags", tag_data)

    async def update_tag(self, id: int, tag_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing tag."""
        return await self.put(f"/tags/{id}", tag_data)

    async def delete_tag(self, id: int) -> None:
        """Delete a tag."""
        await self.delete(f"/tags/{id}")

    async def get_tag_colors(self) -> Dict[str, Any]:
        """Fetch the colors a tag may use."""
        return await self.get("/tags/colors")

    # Tax rate methods
    async def list_tax_rates(self) -> Dict[str, Any]:
        """Fetch all tax rates."""
        return await self.get("/tax-rates")

    async def get_tax_rate(self, id: int) -> Dict[str, Any]:
        """Fetch a specific tax rate."""
        return await self.get(f"/tax-rates/{id}")

    # Contact methods (nested under a customer)
    async def list_contacts(
        self,
        customer_id: int,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Fetch the contacts of a customer."""
        params = {"page": page, "per_page": per_page}
        return await self.get(f"/customers/{customer_id}/contacts", params=params)

    async def create_contact(self, customer_id: int, contact_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a contact for a customer."""
        return await self.post(f"/customers/{customer_id}/contacts", contact_data)

    async def update_contact(
        self, customer_id: int, contact_id: int, contact_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update a customer's contact."""
        return await self.put(f"/customers/{customer_id}/contacts/{contact_id}", contact_data)

    async def delete_contact(self, customer_id: int, contact_id: int) -> None:
        """Delete a customer's contact."""
        await self.delete(f"/customers/{customer_id}/contacts/{contact_id}")

    # Invoice methods
    async def list_invoices(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        project_id: Optional[int] = None,
        date: Optional[str] = None,
        overdue: Optional[bool] = None,
        include: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of invoices."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[status]": status,
            "filter[customer_id]": customer_id,
            "filter[project_id]": project_id,
            "filter[date]": date,
            "filter[overdue]": overdue,
            "include": include,
            "sort": sort,
        }
        return await self.get("/invoices", params=params)

    async def get_invoice(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific invoice."""
        return await self.get(f"/invoices/{id}", params={"include": include})

    async def create_invoice(self, invoice_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new invoice.

        ``positions`` is a JSON string of ``{description, amount, price, unit}``
        records and is sent unchanged.
        """
        return await self.post("/invoices", invoice_data)

    async def update_invoice(self, id: int, invoice_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing invoice."""
        return await self.put(f"/invoices/{id}", invoice_data)

    async def delete_invoice(self, id: int) -> None:
        """Delete an invoice."""
        await self.delete(f"/invoices/{id}")

    async def mark_invoice_paid(self, id: int, payment_date: Optional[str] = None) -> Dict[str, Any]:
        """Mark an invoice as paid."""
        return await self.post(f"/invoices/{id}/paid", _compact({"payment_date": payment_date}))

    async def send_invoice(self, id: int, email: Optional[str] = None) -> Dict[str, Any]:
        """Send an invoice by e-mail."""
        return await self.post(f"/invoices/{id}/send", _compact({"email": email}))

    # Proposal methods
    async def list_proposals(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        project_id: Optional[int] = None,
        date: Optional[str] = None,
        include: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a page of proposals."""
        params = {
            "page": page,
            "per_page": per_page,
            "filter[status]": status,
            "filter[customer_id]": customer_id,
            "filter[project_id]": project_id,
            "filter[date]": date,
            "include": include,
            "sort": sort,
        }
        return await self.get("/proposals", params=params)

    async def get_proposal(self, id: int, include: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a specific proposal."""
        return await self.get(f"/proposals/{id}", params={"include": include})

    async def create_proposal(self, proposal_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new proposal."""
        return await self.post("/proposals", proposal_data)

    async def update_proposal(self, id: int, proposal_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing proposal."""
        return await self.put(f"/proposals/{id}", proposal_data)

    async def delete_proposal(self, id: int) -> None:
        """Delete a proposal."""
        await self.delete(f"/proposals/{id}")

    async def convert_proposal_to_invoice(self, id: int) -> Dict[str, Any]:
        """Convert a proposal into a new invoice."""
        return await self.post(f"/proposals/{id}/convert")

    async def send_proposal(self, id: int, email: Optional[str] = None) -> Dict[str, Any]:
        """Send a proposal by e-mail."""
        return await self.post(f"/proposals/{id}/send", _compact({"email": email}))
