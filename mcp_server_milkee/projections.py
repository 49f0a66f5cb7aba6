"""Response shaping for list tools and the company summary.

List responses for high-cardinality resources are narrowed to a summary
field set; the full record stays available through the matching get tool.
"""

from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional

Record = Dict[str, Any]

CUSTOMER_SUMMARY_FIELDS = (
    "id", "name", "contact_name", "email", "phone", "city", "archived",
)
ENTRY_SUMMARY_FIELDS = (
    "id", "date", "description", "sum", "type", "debit_account_id",
    "credit_account_id", "customer_id", "project_id", "billable", "locked",
)
INVOICE_SUMMARY_FIELDS = (
    "id", "number", "title", "customer_id", "project_id", "date",
    "payable_until", "status", "currency", "final_value", "open_total", "overdue",
)
PROPOSAL_SUMMARY_FIELDS = (
    "id", "number", "title", "customer_id", "project_id", "date",
    "valid_until", "status", "currency", "final_value", "invoice_id",
)

# Account conventions of the default Swiss chart of accounts
BANK_ACCOUNT_NAME = "Bank"
BANK_ACCOUNT_NUMBER = "1020"


def _pick(record: Record, fields: Iterable[str]) -> Record:
    return {field: record[field] for field in fields if field in record}


def _with_customer_name(record: Record, slim: Record) -> Record:
    customer = record.get("customer")
    if isinstance(customer, dict) and customer.get("name"):
        slim["customer_name"] = customer["name"]
    return slim


def slim_customer(record: Record) -> Record:
    return _pick(record, CUSTOMER_SUMMARY_FIELDS)


def slim_entry(record: Record) -> Record:
    return _pick(record, ENTRY_SUMMARY_FIELDS)


def slim_invoice(record: Record) -> Record:
    return _with_customer_name(record, _pick(record, INVOICE_SUMMARY_FIELDS))


def slim_proposal(record: Record) -> Record:
    return _with_customer_name(record, _pick(record, PROPOSAL_SUMMARY_FIELDS))


def slim_list(result: Any, projection: Callable[[Record], Record]) -> Any:
    """Apply ``projection`` to every record of a ``{data: [...], meta}`` response.

    Anything that is not a list response is returned unchanged.
    """
    if not isinstance(result, dict) or not isinstance(result.get("data"), list):
        return result
    shaped = dict(result)
    shaped["data"] = [
        projection(item) if isinstance(item, dict) else item
        for item in result["data"]
    ]
    return shaped


def records(result: Any) -> List[Record]:
    """Return the records of a list response (or a bare list)."""
    if isinstance(result, dict):
        result = result.get("data")
    if not isinstance(result, list):
        return []
    return [item for item in result if isinstance(item, dict)]


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _total(items: Iterable[Record], field: str) -> float:
    return round(sum(_amount(item.get(field)) for item in items), 2)


def find_bank_account(accounts: List[Record]) -> Optional[Record]:
    """Pick the account whose balance the summary reports.

    An account flagged ``is_primary_bank`` wins; otherwise the first one
    named "Bank" or numbered 1020.
    """
    for account in accounts:
        if account.get("is_primary_bank"):
            return account
    for account in accounts:
        if account.get("name") == BANK_ACCOUNT_NAME or str(account.get("number")) == BANK_ACCOUNT_NUMBER:
            return account
    return None


def summarize_company(
    invoices: List[Record],
    proposals: List[Record],
    income_entries: List[Record],
    expense_entries: List[Record],
    accounts: List[Record],
) -> Record:
    """Fold the five list results into the company summary report."""
    total_income = _total(income_entries, "sum")
    total_expenses = _total(expense_entries, "sum")
    net_profit = round(total_income - total_expenses, 2)
    if total_income:
        profit_margin = f"{net_profit / total_income * 100:.1f}%"
    else:
        profit_margin = "N/A"

    bank = find_bank_account(accounts)
    bank_account = None
    if bank is not None:
        bank_account = {
            "id": bank.get("id"),
            "name": bank.get("name"),
            "number": bank.get("number"),
            "balance": round(_amount(bank.get("balance")), 2),
        }

    return {
        "invoices": {
            "count": len(invoices),
            "by_status": dict(Counter(item.get("status", "unknown") for item in invoices)),
            "total_value": _total(invoices, "final_value"),
            "open_value": _total((i for i in invoices if i.get("status") == "sent"), "final_value"),
            "paid_value": _total((i for i in invoices if i.get("status") == "paid"), "final_value"),
        },
        "proposals": {
            "count": len(proposals),
            "by_status": dict(Counter(item.get("status", "unknown") for item in proposals)),
            "total_value": _total(proposals, "final_value"),
        },
        "bookkeeping": {
            "total_income": total_income,
            "total_expenses": total_expenses,
            "net_profit": net_profit,
            "profit_margin": profit_margin,
        },
        "bank_account": bank_account,
    }
