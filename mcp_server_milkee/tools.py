"""Tool descriptors advertised to MCP clients.

Every MILKEE client operation has one tool here, plus the
``milkee_get_company_summary`` aggregate. Descriptors are pure metadata;
``argument_model`` turns a descriptor's ``inputSchema`` into a pydantic
model used to validate arguments before dispatch.
"""

from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, Type, Union

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, create_model

TASK_STATUSES = ["open", "in-progress", "done"]
ENTRY_TYPES = ["income", "expense", "swap"]
PROJECT_TYPES = ["byHour", "fixedBudget", "fixedPrice"]
ACCOUNT_TYPES = ["bank", "deprecations", "income", "expense", "assets", "liabilities", "balance_sheet"]
TAG_COLORS = [
    "orange", "blue", "lime", "yellow", "turquoise", "marine",
    "purple", "pink", "green", "red", "gray",
]
INVOICE_STATUSES = ["draft", "sent", "paid", "overdue", "cancelled"]
PROPOSAL_STATUSES = ["draft", "sent", "accepted", "declined", "expired"]
TIME_GROUPINGS = ["date", "project", "weeks"]

PAGE = {"type": "integer", "description": "Page number (default: 1)"}
PER_PAGE = {"type": "integer", "description": "Items per page (default: 15, max: 100)"}
INCLUDE = {"type": "string", "description": "Comma-separated relations to include"}
SORT = {"type": "string", "description": "Sort field, prefix with '-' for descending (e.g. -date)"}
NO_ARGUMENTS = {"type": "object", "properties": {}}


def _id(label: str) -> Dict[str, Any]:
    return {"type": "integer", "description": f"{label} ID"}


def _by_id(label: str, include: bool = False) -> Dict[str, Any]:
    properties: Dict[str, Any] = {"id": _id(label)}
    if include:
        properties["include"] = INCLUDE
    return {"type": "object", "properties": properties, "required": ["id"]}


CUSTOMER_FIELDS = {
    "name": {"type": "string", "description": "Customer name (max 255 chars)"},
    "contact_name": {"type": "string", "description": "Contact person name"},
    "street": {"type": "string", "description": "Street address"},
    "zip": {"type": "string", "description": "ZIP/postal code"},
    "city": {"type": "string", "description": "City"},
    "country": {"type": "string", "description": "Country"},
    "email": {"type": "string", "description": "Email address"},
    "phone": {"type": "string", "description": "Phone number"},
    "website": {"type": "string", "description": "Website URL"},
    "default_hourly_rate": {"type": "number", "description": "Default hourly rate"},
    "tax_rate_id": {"type": "integer", "description": "Tax rate ID"},
}

TIME_FIELDS = {
    "project_id": {"type": "integer", "description": "Project ID"},
    "date": {"type": "string", "description": "Date (YYYY-MM-DD)"},
    "hours": {"type": "integer", "description": "Hours"},
    "minutes": {"type": "integer", "description": "Minutes"},
    "description": {"type": "string", "description": "Description"},
    "hourly_rate": {"type": "number", "description": "Hourly rate"},
    "billable": {"type": "boolean", "description": "Is billable"},
    "task_id": {"type": "integer", "description": "Task ID"},
    "start": {"type": "string", "description": "Start time (HH:MM)"},
    "end": {"type": "string", "description": "End time (HH:MM)"},
}

ENTRY_FIELDS = {
    "date": {"type": "string", "description": "Booking date (YYYY-MM-DD)"},
    "debit_account_id": {"type": "integer", "description": "Debit account ID"},
    "credit_account_id": {"type": "integer", "description": "Credit account ID"},
    "description": {"type": "string", "description": "Entry description"},
    "sum": {"type": "number", "description": "Amount"},
    "customer_id": {"type": "integer", "description": "Customer ID"},
    "project_id": {"type": "integer", "description": "Project ID"},
    "tax_rate_id": {"type": "integer", "description": "Tax rate ID"},
    "tag_ids": {"type": "array", "items": {"type": "integer"}, "description": "Tag IDs"},
    "billable": {"type": "boolean", "description": "Is billable"},
}

PRODUCT_FIELDS = {
    "name": {"type": "string", "description": "Product name"},
    "description": {"type": "string", "description": "Product description"},
    "price": {"type": "number", "description": "Product price"},
    "unit": {"type": "string", "description": "Unit (e.g. hour, piece)"},
}

CONTACT_FIELDS = {
    "name": {"type": "string", "description": "Contact name"},
    "email": {"type": "string", "description": "Email address"},
    "phone": {"type": "string", "description": "Phone number"},
    "position": {"type": "string", "description": "Job position"},
}

# Shared by invoices and proposals
DOCUMENT_FIELDS = {
    "customer_id": {"type": "integer", "description": "Customer ID"},
    "title": {"type": "string", "description": "Document title"},
    "date": {"type": "string", "description": "Document date (YYYY-MM-DD)"},
    "positions": {
        "type": "string",
        "description": (
            "Line items as a JSON string, e.g. "
            '[{"description": "Consulting", "amount": 2, "price": 150, "unit": "h"}]'
        ),
    },
    "contact_id": {"type": "integer", "description": "Contact ID"},
    "project_id": {"type": "integer", "description": "Project ID"},
    "lang": {"type": "string", "description": "Language code (de, fr, it, en)"},
    "remarks_top": {"type": "string", "description": "Text above the positions"},
    "remarks": {"type": "string", "description": "Text below the positions"},
    "currency": {"type": "string", "description": "Currency code (default: CHF)"},
    "discount_rate": {"type": "number", "description": "Discount in percent"},
    "discount_amount": {"type": "number", "description": "Discount as fixed amount"},
    "vat_active": {"type": "boolean", "description": "Apply VAT"},
    "vat_rate": {"type": "number", "description": "VAT rate in percent"},
    "tax_rate_id": {"type": "integer", "description": "Tax rate ID"},
}

INVOICE_FIELDS = {
    **DOCUMENT_FIELDS,
    "payable_until": {"type": "string", "description": "Due date (YYYY-MM-DD)"},
    "bank_account_id": {"type": "integer", "description": "Bank account ID printed on the invoice"},
}

PROPOSAL_FIELDS = {
    **DOCUMENT_FIELDS,
    "valid_until": {"type": "string", "description": "Valid until (YYYY-MM-DD)"},
    "with_signature": {"type": "boolean", "description": "Add a signature field"},
    "signature_remark": {"type": "string", "description": "Text next to the signature field"},
}


TOOLS: List[Tool] = [
    # ==================== CUSTOMERS ====================
    Tool(
        name="milkee_list_customers",
        description="List customers with optional filtering and pagination. Returns a reduced field set; use milkee_get_customer for full details.",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "name": {"type": "string", "description": "Filter by name (partial match)"},
                "archived": {"type": "boolean", "description": "Filter by archived status"},
                "include": {"type": "string", "description": "Include relations: contacts, taxRate"},
            },
        },
    ),
    Tool(
        name="milkee_get_customer",
        description="Get details of a specific customer",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Customer"),
                "include": {"type": "string", "description": "Include relations: taxRate, contacts, proposals, invoices, activeProjects"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_create_customer",
        description="Create a new customer. REQUIRED: name.",
        inputSchema={"type": "object", "properties": CUSTOMER_FIELDS, "required": ["name"]},
    ),
    Tool(
        name="milkee_update_customer",
        description="Update an existing customer. REQUIRED: id.",
        inputSchema={"type": "object", "properties": {"id": _id("Customer"), **CUSTOMER_FIELDS}, "required": ["id"]},
    ),
    Tool(
        name="milkee_delete_customer",
        description="Delete a customer (only if no linked projects or invoices)",
        inputSchema=_by_id("Customer"),
    ),
    Tool(
        name="milkee_get_customer_statistics",
        description="Get financial statistics for a customer (income, expenses, profit, hours, billability)",
        inputSchema=_by_id("Customer"),
    ),

    # ==================== PROJECTS ====================
    Tool(
        name="milkee_list_projects",
        description="List projects with optional filtering",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "archived": {"type": "boolean", "description": "Filter by archived status"},
                "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                "include": INCLUDE,
            },
        },
    ),
    Tool(
        name="milkee_get_project",
        description="Get details of a specific project",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Project"),
                "include": {"type": "string", "description": "Include relations: customer, invoices, tasks"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_create_project",
        description="Create a new project. REQUIRED: name. Link it with customer_id, or pass newCustomerName to create the customer too.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Project name"},
                "customer_id": {"type": "integer", "description": "Customer ID (or use newCustomerName)"},
                "newCustomerName": {"type": "string", "description": "Create a new customer with this name"},
                "project_type": {"type": "string", "enum": PROJECT_TYPES, "description": "Project billing type"},
                "budget": {"type": "number", "description": "Project budget"},
                "hourly_rate": {"type": "number", "description": "Hourly rate"},
            },
            "required": ["name"],
        },
    ),
    Tool(
        name="milkee_update_project",
        description="Update an existing project. REQUIRED: id.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Project"),
                "name": {"type": "string", "description": "Project name"},
                "budget": {"type": "number", "description": "Project budget"},
                "start_date": {"type": "string", "description": "Start date (YYYY-MM-DD)"},
                "end_date": {"type": "string", "description": "End date (YYYY-MM-DD)"},
                "kanban_status": {"type": "string", "description": "Kanban status"},
                "archived": {"type": "boolean", "description": "Archive status"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_delete_project",
        description="Delete a project (only if it has no billable time entries)",
        inputSchema=_by_id("Project"),
    ),
    Tool(
        name="milkee_bulk_archive_projects",
        description="Archive or unarchive multiple projects in one request",
        inputSchema={
            "type": "object",
            "properties": {
                "ids": {"type": "array", "items": {"type": "integer"}, "description": "Project IDs"},
                "archive": {"type": "boolean", "description": "True to archive, false to unarchive"},
            },
            "required": ["ids", "archive"],
        },
    ),

    # ==================== TASKS ====================
    Tool(
        name="milkee_list_tasks",
        description="List tasks with optional filtering",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "status": {"type": "string", "enum": TASK_STATUSES, "description": "Filter by status"},
                "project_id": {"type": "integer", "description": "Filter by project ID"},
                "include": INCLUDE,
            },
        },
    ),
    Tool(
        name="milkee_get_task",
        description="Get details of a specific task",
        inputSchema=_by_id("Task", include=True),
    ),
    Tool(
        name="milkee_create_task",
        description="Create a new task. REQUIRED: title, project_id.",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Task title"},
                "project_id": {"type": "integer", "description": "Project ID"},
                "status": {"type": "string", "enum": TASK_STATUSES, "description": "Task status"},
                "due_date": {"type": "string", "description": "Due date (YYYY-MM-DD)"},
            },
            "required": ["title", "project_id"],
        },
    ),
    Tool(
        name="milkee_update_task",
        description="Update an existing task. REQUIRED: id.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Task"),
                "title": {"type": "string", "description": "Task title"},
                "status": {"type": "string", "enum": TASK_STATUSES, "description": "Task status"},
                "due_date": {"type": "string", "description": "Due date (YYYY-MM-DD)"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_delete_task",
        description="Delete a task",
        inputSchema=_by_id("Task"),
    ),

    # ==================== TIME ENTRIES ====================
    Tool(
        name="milkee_list_times",
        description="List time entries with optional filtering",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "user_id": {"type": "integer", "description": "Filter by user ID"},
                "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                "project_id": {"type": "integer", "description": "Filter by project ID"},
                "billable": {"type": "boolean", "description": "Filter by billable status"},
                "status": {"type": "string", "description": "Filter by status"},
                "date": {"type": "string", "description": "Filter by date (YYYY-MM-DD or range)"},
                "group_by": {"type": "string", "enum": TIME_GROUPINGS, "description": "Group results by"},
                "include": {"type": "string", "description": "Include relations: project, task, user"},
            },
        },
    ),
    Tool(
        name="milkee_get_time",
        description="Get details of a specific time entry",
        inputSchema=_by_id("Time entry", include=True),
    ),
    Tool(
        name="milkee_create_time",
        description="Create a new time entry. REQUIRED: project_id, date, hours, minutes.",
        inputSchema={
            "type": "object",
            "properties": TIME_FIELDS,
            "required": ["project_id", "date", "hours", "minutes"],
        },
    ),
    Tool(
        name="milkee_update_time",
        description="Update an existing time entry. REQUIRED: id.",
        inputSchema={"type": "object", "properties": {"id": _id("Time entry"), **TIME_FIELDS}, "required": ["id"]},
    ),
    Tool(
        name="milkee_delete_time",
        description="Delete a time entry (invoiced entries cannot be deleted)",
        inputSchema=_by_id("Time entry"),
    ),

    # ==================== TIMER ====================
    Tool(
        name="milkee_get_timer",
        description="Get the currently running timer, if any",
        inputSchema=NO_ARGUMENTS,
    ),
    Tool(
        name="milkee_start_timer",
        description="Start a new timer for time tracking. REQUIRED: project_id.",
        inputSchema={
            "type": "object",
            "properties": {
                "project_id": {"type": "integer", "description": "Project ID"},
                "task_id": {"type": "integer", "description": "Task ID"},
                "description": {"type": "string", "description": "Timer description"},
            },
            "required": ["project_id"],
        },
    ),
    Tool(
        name="milkee_stop_timer",
        description="Stop the running timer and turn it into a time entry",
        inputSchema=NO_ARGUMENTS,
    ),
    Tool(
        name="milkee_update_timer_description",
        description="Update the description of the running timer",
        inputSchema={
            "type": "object",
            "properties": {"description": {"type": "string", "description": "New description"}},
            "required": ["description"],
        },
    ),
    Tool(
        name="milkee_discard_timer",
        description="Discard the running timer without creating a time entry",
        inputSchema=NO_ARGUMENTS,
    ),

    # ==================== ENTRIES (BOOKKEEPING) ====================
    Tool(
        name="milkee_list_entries",
        description="List bookkeeping entries with optional filtering. Returns a reduced field set; use milkee_get_entry for full details.",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "date": {"type": "string", "description": "Filter by date (YYYY-MM-DD or range)"},
                "type": {"type": "string", "enum": ENTRY_TYPES, "description": "Filter by entry type"},
                "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                "project_id": {"type": "integer", "description": "Filter by project ID"},
                "account_id": {"type": "integer", "description": "Filter by account ID"},
                "tag_id": {"type": "integer", "description": "Filter by tag ID"},
                "billable": {"type": "boolean", "description": "Filter by billable status"},
                "sort": SORT,
                "include": {"type": "string", "description": "Include relations: customer, project, tags, tax_rate, accounts"},
            },
        },
    ),
    Tool(
        name="milkee_get_entry",
        description="Get details of a specific bookkeeping entry",
        inputSchema=_by_id("Entry", include=True),
    ),
    Tool(
        name="milkee_create_entry",
        description="Create a new bookkeeping entry. REQUIRED: date, debit_account_id, credit_account_id.",
        inputSchema={
            "type": "object",
            "properties": ENTRY_FIELDS,
            "required": ["date", "debit_account_id", "credit_account_id"],
        },
    ),
    Tool(
        name="milkee_update_entry",
        description="Update an existing bookkeeping entry (locked entries cannot be changed). REQUIRED: id.",
        inputSchema={"type": "object", "properties": {"id": _id("Entry"), **ENTRY_FIELDS}, "required": ["id"]},
    ),
    Tool(
        name="milkee_delete_entry",
        description="Delete a bookkeeping entry (entries in locked years cannot be deleted)",
        inputSchema=_by_id("Entry"),
    ),
    Tool(
        name="milkee_get_next_entry_number",
        description="Get the next available booking number for an entry type",
        inputSchema={
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": ENTRY_TYPES, "description": "Entry type"},
                "year": {"type": "integer", "description": "Year (defaults to the current year)"},
            },
            "required": ["type"],
        },
    ),
    Tool(
        name="milkee_bulk_delete_entries",
        description="Delete multiple bookkeeping entries at once",
        inputSchema={
            "type": "object",
            "properties": {
                "ids": {"type": "array", "items": {"type": "integer"}, "description": "Entry IDs to delete"},
            },
            "required": ["ids"],
        },
    ),
    Tool(
        name="milkee_bulk_update_entries",
        description="Apply the same field updates to multiple bookkeeping entries",
        inputSchema={
            "type": "object",
            "properties": {
                "ids": {"type": "array", "items": {"type": "integer"}, "description": "Entry IDs to update"},
                "updates": {
                    "type": "object",
                    "description": "Fields to set on every entry (e.g. date, customer_id, project_id, tag_ids, billable)",
                },
            },
            "required": ["ids", "updates"],
        },
    ),

    # ==================== PRODUCTS ====================
    Tool(
        name="milkee_list_products",
        description="List products",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "name": {"type": "string", "description": "Filter by name"},
                "archived": {"type": "boolean", "description": "Filter by archived status"},
            },
        },
    ),
    Tool(
        name="milkee_get_product",
        description="Get details of a specific product",
        inputSchema=_by_id("Product"),
    ),
    Tool(
        name="milkee_create_product",
        description="Create a new product. REQUIRED: name, price.",
        inputSchema={"type": "object", "properties": PRODUCT_FIELDS, "required": ["name", "price"]},
    ),
    Tool(
        name="milkee_update_product",
        description="Update an existing product. REQUIRED: id.",
        inputSchema={"type": "object", "properties": {"id": _id("Product"), **PRODUCT_FIELDS}, "required": ["id"]},
    ),
    Tool(
        name="milkee_delete_product",
        description="Delete a product",
        inputSchema=_by_id("Product"),
    ),
    Tool(
        name="milkee_get_product_count",
        description="Get the number of products",
        inputSchema=NO_ARGUMENTS,
    ),

    # ==================== ACCOUNTS ====================
    Tool(
        name="milkee_list_accounts",
        description="List accounts (bank, income, expense, assets, etc.)",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "type": {"type": "string", "enum": ACCOUNT_TYPES, "description": "Filter by account type"},
            },
        },
    ),
    Tool(
        name="milkee_get_account",
        description="Get details of a specific account",
        inputSchema=_by_id("Account"),
    ),
    Tool(
        name="milkee_create_account",
        description="Create a new account. REQUIRED: name, number, type.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Account name"},
                "number": {"type": "string", "description": "Account number"},
                "type": {"type": "string", "enum": ACCOUNT_TYPES, "description": "Account type"},
                "iban": {"type": "string", "description": "IBAN (for bank accounts)"},
                "is_primary_bank": {"type": "boolean", "description": "Set as primary bank account"},
            },
            "required": ["name", "number", "type"],
        },
    ),
    Tool(
        name="milkee_update_account",
        description="Update an existing account. REQUIRED: id.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Account"),
                "name": {"type": "string", "description": "Account name"},
                "number": {"type": "string", "description": "Account number"},
                "iban": {"type": "string", "description": "IBAN"},
                "is_primary_bank": {"type": "boolean", "description": "Set as primary bank account"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_delete_account",
        description="Delete an account (only if it has no entries)",
        inputSchema=_by_id("Account"),
    ),
    Tool(
        name="milkee_reset_accounts",
        description="Reset the chart of accounts to the MILKEE default. Custom accounts are removed.",
        inputSchema=NO_ARGUMENTS,
    ),

    # ==================== TAGS ====================
    Tool(
        name="milkee_list_tags",
        description="List tags",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "name": {"type": "string", "description": "Filter by name"},
                "color": {"type": "string", "enum": TAG_COLORS, "description": "Filter by color"},
            },
        },
    ),
    Tool(
        name="milkee_get_tag",
        description="Get details of a specific tag",
        inputSchema=_by_id("Tag"),
    ),
    Tool(
        name="milkee_create_tag",
        description="Create a new tag. REQUIRED: name, color.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Tag name"},
                "color": {"type": "string", "enum": TAG_COLORS, "description": "Tag color"},
            },
            "required": ["name", "color"],
        },
    ),
    Tool(
        name="milkee_update_tag",
        description="Update an existing tag. REQUIRED: id.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Tag"),
                "name": {"type": "string", "description": "Tag name"},
                "color": {"type": "string", "enum": TAG_COLORS, "description": "Tag color"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_delete_tag",
        description="Delete a tag",
        inputSchema=_by_id("Tag"),
    ),
    Tool(
        name="milkee_get_tag_colors",
        description="Get the available tag colors",
        inputSchema=NO_ARGUMENTS,
    ),

    # ==================== TAX RATES ====================
    Tool(
        name="milkee_list_tax_rates",
        description="List all available tax rates",
        inputSchema=NO_ARGUMENTS,
    ),
    Tool(
        name="milkee_get_tax_rate",
        description="Get details of a specific tax rate",
        inputSchema=_by_id("Tax rate"),
    ),

    # ==================== CONTACTS ====================
    Tool(
        name="milkee_list_contacts",
        description="List the contacts of a customer. REQUIRED: customer_id.",
        inputSchema={
            "type": "object",
            "properties": {
                "customer_id": {"type": "integer", "description": "Customer ID"},
                "page": PAGE,
                "per_page": PER_PAGE,
            },
            "required": ["customer_id"],
        },
    ),
    Tool(
        name="milkee_create_contact",
        description="Create a new contact for a customer. REQUIRED: customer_id, name.",
        inputSchema={
            "type": "object",
            "properties": {"customer_id": {"type": "integer", "description": "Customer ID"}, **CONTACT_FIELDS},
            "required": ["customer_id", "name"],
        },
    ),
    Tool(
        name="milkee_update_contact",
        description="Update an existing contact. REQUIRED: customer_id, contact_id.",
        inputSchema={
            "type": "object",
            "properties": {
                "customer_id": {"type": "integer", "description": "Customer ID"},
                "contact_id": {"type": "integer", "description": "Contact ID"},
                **CONTACT_FIELDS,
            },
            "required": ["customer_id", "contact_id"],
        },
    ),
    Tool(
        name="milkee_delete_contact",
        description="Delete a contact. REQUIRED: customer_id, contact_id.",
        inputSchema={
            "type": "object",
            "properties": {
                "customer_id": {"type": "integer", "description": "Customer ID"},
                "contact_id": {"type": "integer", "description": "Contact ID"},
            },
            "required": ["customer_id", "contact_id"],
        },
    ),

    # ==================== INVOICES ====================
    Tool(
        name="milkee_list_invoices",
        description="List invoices with optional filtering. Returns a reduced field set; use milkee_get_invoice for full details.",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "status": {"type": "string", "enum": INVOICE_STATUSES, "description": "Filter by status"},
                "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                "project_id": {"type": "integer", "description": "Filter by project ID"},
                "date": {"type": "string", "description": "Filter by date (YYYY-MM-DD or range)"},
                "overdue": {"type": "boolean", "description": "Only overdue invoices"},
                "include": {"type": "string", "description": "Include relations: customer, contact, project"},
                "sort": SORT,
            },
        },
    ),
    Tool(
        name="milkee_get_invoice",
        description="Get details of a specific invoice, including its positions",
        inputSchema=_by_id("Invoice", include=True),
    ),
    Tool(
        name="milkee_create_invoice",
        description="Create a new invoice. REQUIRED: customer_id, title, date, payable_until, positions (JSON string).",
        inputSchema={
            "type": "object",
            "properties": INVOICE_FIELDS,
            "required": ["customer_id", "title", "date", "payable_until", "positions"],
        },
    ),
    Tool(
        name="milkee_update_invoice",
        description="Update an existing invoice. REQUIRED: id.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Invoice"),
                **INVOICE_FIELDS,
                "status": {"type": "string", "enum": INVOICE_STATUSES, "description": "Invoice status"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_delete_invoice",
        description="Delete an invoice",
        inputSchema=_by_id("Invoice"),
    ),
    Tool(
        name="milkee_mark_invoice_paid",
        description="Mark an invoice as paid",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Invoice"),
                "payment_date": {"type": "string", "description": "Payment date (YYYY-MM-DD, defaults to today)"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_send_invoice",
        description="Send an invoice by email",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Invoice"),
                "email": {"type": "string", "description": "Recipient (defaults to the customer's email)"},
            },
            "required": ["id"],
        },
    ),

    # ==================== PROPOSALS ====================
    Tool(
        name="milkee_list_proposals",
        description="List proposals with optional filtering. Returns a reduced field set; use milkee_get_proposal for full details.",
        inputSchema={
            "type": "object",
            "properties": {
                "page": PAGE,
                "per_page": PER_PAGE,
                "status": {"type": "string", "enum": PROPOSAL_STATUSES, "description": "Filter by status"},
                "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                "project_id": {"type": "integer", "description": "Filter by project ID"},
                "date": {"type": "string", "description": "Filter by date (YYYY-MM-DD or range)"},
                "include": {"type": "string", "description": "Include relations: customer, contact, project"},
                "sort": SORT,
            },
        },
    ),
    Tool(
        name="milkee_get_proposal",
        description="Get details of a specific proposal, including its positions",
        inputSchema=_by_id("Proposal", include=True),
    ),
    Tool(
        name="milkee_create_proposal",
        description="Create a new proposal. REQUIRED: customer_id, title, date, valid_until, positions (JSON string).",
        inputSchema={
            "type": "object",
            "properties": PROPOSAL_FIELDS,
            "required": ["customer_id", "title", "date", "valid_until", "positions"],
        },
    ),
    Tool(
        name="milkee_update_proposal",
        description="Update an existing proposal. REQUIRED: id.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Proposal"),
                **PROPOSAL_FIELDS,
                "status": {"type": "string", "enum": PROPOSAL_STATUSES, "description": "Proposal status"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="milkee_delete_proposal",
        description="Delete a proposal",
        inputSchema=_by_id("Proposal"),
    ),
    Tool(
        name="milkee_convert_proposal_to_invoice",
        description="Convert a proposal into a new invoice",
        inputSchema=_by_id("Proposal"),
    ),
    Tool(
        name="milkee_send_proposal",
        description="Send a proposal by email",
        inputSchema={
            "type": "object",
            "properties": {
                "id": _id("Proposal"),
                "email": {"type": "string", "description": "Recipient (defaults to the customer's email)"},
            },
            "required": ["id"],
        },
    ),

    # ==================== SUMMARY ====================
    Tool(
        name="milkee_get_company_summary",
        description=(
            "Get a financial overview of the company: invoice and proposal totals by status, "
            "income, expenses, profit margin and bank balance (based on up to 100 records each)"
        ),
        inputSchema=NO_ARGUMENTS,
    ),
]

TOOLS_BY_NAME: Dict[str, Tool] = {tool.name: tool for tool in TOOLS}

_JSON_TYPES: Dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": Union[int, float],
    "boolean": bool,
    "object": Dict[str, Any],
}


def _annotation(prop: Dict[str, Any]) -> Any:
    if "enum" in prop:
        return Literal[tuple(prop["enum"])]
    if prop.get("type") == "array":
        return List[_annotation(prop.get("items", {}))]
    return _JSON_TYPES.get(prop.get("type"), Any)


@lru_cache(maxsize=None)
def argument_model(name: str) -> Type[BaseModel]:
    """Build the pydantic model validating arguments of tool ``name``.

    Required schema properties become required fields, enums become
    ``Literal`` types and unknown keys are ignored.
    """
    schema = TOOLS_BY_NAME[name].inputSchema
    required = set(schema.get("required", []))
    fields: Dict[str, Any] = {}
    for prop_name, prop in schema.get("properties", {}).items():
        annotation = _annotation(prop)
        if prop_name in required:
            fields[prop_name] = (annotation, ...)
        else:
            fields[prop_name] = (Optional[annotation], None)

    model_name = "".join(part.title() for part in name.split("_")) + "Arguments"
    return create_model(model_name, __config__=ConfigDict(extra="ignore"), **fields)
