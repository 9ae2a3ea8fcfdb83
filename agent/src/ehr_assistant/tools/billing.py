"""Billing tools — invoices, receipts and billing visits.

API endpoints used:
- GET  /billing/invoices              — Search invoices (paginated)
- GET  /billing/invoices/{invoiceId}  — Invoice with line items
- GET  /billing/receipts              — Search payment receipts
- GET  /billing/receipts/{receiptId}  — Receipt details
- GET  /billing/visits                — Visits with invoice/receipt summaries
- POST /billing/invoices              — Create an invoice
- POST /billing/receipts              — Record a payment
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client, unwrap
from ehr_assistant.tools.base import (
    TOOL_ERRORS,
    PageArgs,
    compact,
    failure,
    listing,
    make_tool,
    paging,
    success,
)


class SearchInvoicesArgs(PageArgs):
    patient_id: int | None = Field(default=None, description="Filter by patient ID")
    visit_id: int | None = Field(default=None, description="Filter by visit ID")
    status: str | None = Field(
        default=None, description="Invoice status: draft, sent, paid, cancelled"
    )
    from_date: str | None = Field(default=None, description="From date (YYYY-MM-DD)")
    to_date: str | None = Field(default=None, description="To date (YYYY-MM-DD)")
    search: str | None = Field(default=None, description="Search term")


class InvoiceDetailsArgs(BaseModel):
    invoice_id: int = Field(description="Invoice ID")


class SearchReceiptsArgs(PageArgs):
    patient_id: int | None = Field(default=None, description="Filter by patient ID")
    invoice_id: int | None = Field(default=None, description="Filter by invoice ID")
    payment_method: str | None = Field(
        default=None, description="Filter: cash, card, upi, bank_transfer, other"
    )
    from_date: str | None = Field(default=None, description="From date (YYYY-MM-DD)")
    to_date: str | None = Field(default=None, description="To date (YYYY-MM-DD)")
    search: str | None = None


class ReceiptDetailsArgs(BaseModel):
    receipt_id: int = Field(description="Receipt ID")


class BillingVisitsArgs(PageArgs):
    search: str | None = Field(default=None, description="Search by patient name/MRN")
    status: str | None = Field(default=None, description="Filter by billing status")


class InvoiceItem(BaseModel):
    item_type: str = Field(description="Type: drug, procedure, package, custom")
    item_name: str = Field(description="Item name")
    quantity: float | None = Field(default=None, description="Quantity (default 1)")
    unit_amount: float | None = Field(default=None, description="Unit amount (default 0)")
    discount_type: str | None = Field(
        default=None, description="percentage or fixed (default percentage)"
    )
    discount_value: float | None = Field(default=None, description="Discount value (default 0)")
    tax_applicable: bool | None = Field(default=None, description="Is tax applicable (default true)")
    notes: str | None = None


class CreateInvoiceArgs(BaseModel):
    patient_id: int = Field(description="Patient ID")
    visit_id: int = Field(description="Visit ID")
    items: list[InvoiceItem] = Field(description="Invoice line items")
    discount_type: str | None = Field(default=None, description="Overall discount: percentage or fixed")
    discount_value: float | None = Field(default=None, description="Overall discount value")
    coupon_code: str | None = Field(default=None, description="Coupon code (e.g., CC100)")
    notes: str | None = None


class CreateReceiptArgs(BaseModel):
    invoice_id: int = Field(description="Invoice ID")
    patient_id: int = Field(description="Patient ID")
    amount: float = Field(description="Payment amount")
    payment_method: str = Field(description="Payment method: cash, card, upi, bank_transfer, other")
    payment_date: str | None = Field(default=None, description="Payment date (YYYY-MM-DD)")
    notes: str | None = None


async def search_invoices(
    patient_id: int | None = None,
    visit_id: int | None = None,
    status: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    """Search invoices with filters. Use for billing queries like "unpaid
    invoices", "revenue this month" or "invoices for patient X". Returns a
    paginated list."""
    params = compact(
        patient_id=patient_id,
        visit_id=visit_id,
        status=status,
        from_date=from_date,
        to_date=to_date,
        search=search,
    )
    params.update(paging(page, limit))

    try:
        client = await get_client()
        data = listing(unwrap(await client.get("/billing/invoices", params=params)), "invoices")
    except TOOL_ERRORS as e:
        return failure(e)

    return success(
        total=data.get("total", 0),
        page=data.get("page", 1),
        totalPages=data.get("totalPages", 1),
        invoices=data.get("invoices", []),
    )


async def get_invoice_details(invoice_id: int) -> str:
    """Get full details of a specific invoice including line items, totals
    and payment status."""
    try:
        client = await get_client()
        data = unwrap(await client.get(f"/billing/invoices/{invoice_id}"))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(invoice=data)


async def search_receipts(
    patient_id: int | None = None,
    invoice_id: int | None = None,
    payment_method: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    """Search payment receipts. Use for questions about payments received
    and collection summaries."""
    params = compact(
        patient_id=patient_id,
        invoice_id=invoice_id,
        payment_method=payment_method,
        from_date=from_date,
        to_date=to_date,
        search=search,
    )
    params.update(paging(page, limit))

    try:
        client = await get_client()
        data = listing(unwrap(await client.get("/billing/receipts", params=params)), "receipts")
    except TOOL_ERRORS as e:
        return failure(e)

    return success(total=data.get("total", 0), receipts=data.get("receipts", []))


async def get_receipt_details(receipt_id: int) -> str:
    """Get full details of a specific payment receipt."""
    try:
        client = await get_client()
        data = unwrap(await client.get(f"/billing/receipts/{receipt_id}"))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(receipt=data)


async def get_billing_visits(
    search: str | None = None,
    status: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    """Get consolidated billing visits: visits with their invoice and
    receipt summaries. Useful for billing overviews and outstanding amount
    queries."""
    params = compact(search=search, status=status)
    params.update(paging(page, limit))

    try:
        client = await get_client()
        data = unwrap(await client.get("/billing/visits", params=params))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(data=data)


async def create_invoice(items: list[Any], **fields: Any) -> str:
    """Create a new invoice for a patient visit with one or more line items.
    Confirm the items and amounts with the user before calling this."""
    body = compact(**fields)
    body["items"] = [
        item.model_dump(exclude_none=True) if isinstance(item, BaseModel) else item
        for item in items
    ]
    try:
        client = await get_client()
        data = await client.post("/billing/invoices", json_data=body)
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Invoice created successfully", data=data)


async def create_receipt(**fields: Any) -> str:
    """Record a payment receipt against an invoice. Confirm the amount and
    payment method with the user before calling this."""
    try:
        client = await get_client()
        data = await client.post("/billing/receipts", json_data=compact(**fields))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Receipt created successfully", data=data)


billing_tools = [
    make_tool(search_invoices, SearchInvoicesArgs),
    make_tool(get_invoice_details, InvoiceDetailsArgs),
    make_tool(search_receipts, SearchReceiptsArgs),
    make_tool(get_receipt_details, ReceiptDetailsArgs),
    make_tool(get_billing_visits, BillingVisitsArgs),
    make_tool(create_invoice, CreateInvoiceArgs),
    make_tool(create_receipt, CreateReceiptArgs),
]
