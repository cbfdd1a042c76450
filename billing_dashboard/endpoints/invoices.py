"""Invoice endpoints module.

Listing and edit-form reads return JSON; create and update accept form posts
and answer with a redirect or the form's error state.
"""
import asyncio
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Form, Query, Response, status

from billing_dashboard.database.database import ConnectionPool, get_pool
from billing_dashboard.endpoints.responses import form_response
from billing_dashboard.exceptions.api_exception import NotFoundError
from billing_dashboard.schemas.customer import CustomerField
from billing_dashboard.schemas.invoice import InvoiceEditForm, InvoicesPage
from billing_dashboard.services.auth_service import require_user
from billing_dashboard.services.customer_service import fetch_customers
from billing_dashboard.services.invoice_service import (
    create_invoice,
    delete_invoice,
    fetch_filtered_invoices,
    fetch_invoice_by_id,
    fetch_invoices_pages,
    update_invoice,
)

router = APIRouter(
    prefix="/dashboard/invoices",
    tags=["invoices"],
    dependencies=[Depends(require_user)],
)


@router.get("", response_model=InvoicesPage)
async def list_invoices(
    query: str = Query("", description="Free-text search"),
    page: int = Query(1, ge=1, description="Page number"),
    pool: ConnectionPool = Depends(get_pool),
) -> InvoicesPage:
    """
    Search invoices and return one page of results.

    Matches customer name, email, amount, date and status.
    """
    items, total_pages = await asyncio.gather(
        fetch_filtered_invoices(pool, query, page),
        fetch_invoices_pages(pool, query),
    )
    return InvoicesPage(items=items, page=page, total_pages=total_pages)


@router.get("/create", response_model=list[CustomerField])
async def get_create_form(pool: ConnectionPool = Depends(get_pool)) -> list[CustomerField]:
    """Customer options for the create form."""
    return await fetch_customers(pool)


@router.post("")
async def submit_create_form(
    customer_id: Optional[str] = Form(None, alias="customerId"),
    amount: Optional[str] = Form(None),
    invoice_status: Optional[str] = Form(None, alias="status"),
    pool: ConnectionPool = Depends(get_pool),
):
    """Create an invoice from the submitted form."""
    outcome = await create_invoice(
        pool,
        {"customerId": customer_id, "amount": amount, "status": invoice_status},
    )
    return form_response(outcome)


@router.get("/{invoice_id}/edit")
async def get_edit_form(
    invoice_id: UUID,
    pool: ConnectionPool = Depends(get_pool),
) -> dict:
    """Current invoice values plus the customer options."""
    invoice, customers = await asyncio.gather(
        fetch_invoice_by_id(pool, invoice_id),
        fetch_customers(pool),
    )
    if invoice is None:
        raise NotFoundError(f"Invoice with id {invoice_id} not found")
    return {"invoice": invoice, "customers": customers}


@router.post("/{invoice_id}")
async def submit_edit_form(
    invoice_id: UUID,
    customer_id: Optional[str] = Form(None, alias="customerId"),
    amount: Optional[str] = Form(None),
    invoice_status: Optional[str] = Form(None, alias="status"),
    pool: ConnectionPool = Depends(get_pool),
):
    """Update an invoice from the submitted form."""
    outcome = await update_invoice(
        pool,
        invoice_id,
        {"customerId": customer_id, "amount": amount, "status": invoice_status},
    )
    return form_response(outcome)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_invoice(
    invoice_id: UUID,
    pool: ConnectionPool = Depends(get_pool),
) -> Response:
    """Delete an invoice."""
    await delete_invoice(pool, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
