"""Customer endpoints module."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Form, Query, Response, status

from billing_dashboard.database.database import ConnectionPool, get_pool
from billing_dashboard.endpoints.responses import form_response
from billing_dashboard.exceptions.api_exception import NotFoundError
from billing_dashboard.schemas.customer import CustomerTableRow
from billing_dashboard.services.auth_service import require_user
from billing_dashboard.services.customer_service import (
    create_customer,
    delete_customer,
    fetch_customer_by_id,
    fetch_filtered_customers,
    update_customer,
)

router = APIRouter(
    prefix="/dashboard/customers",
    tags=["customers"],
    dependencies=[Depends(require_user)],
)


@router.get("", response_model=list[CustomerTableRow])
async def list_customers(
    query: str = Query("", description="Match against name or email"),
    pool: ConnectionPool = Depends(get_pool),
) -> list[CustomerTableRow]:
    """Customers with their invoice count and pending/paid totals."""
    return await fetch_filtered_customers(pool, query)


@router.post("")
async def submit_create_form(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    pool: ConnectionPool = Depends(get_pool),
):
    """Create a customer from the submitted form."""
    outcome = await create_customer(pool, {"name": name, "email": email})
    return form_response(outcome)


@router.get("/{customer_id}", response_model=CustomerTableRow)
async def get_customer(
    customer_id: UUID,
    pool: ConnectionPool = Depends(get_pool),
) -> CustomerTableRow:
    """Customer profile."""
    customer = await fetch_customer_by_id(pool, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer with id {customer_id} not found")
    return customer


@router.post("/{customer_id}")
async def submit_edit_form(
    customer_id: UUID,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    pool: ConnectionPool = Depends(get_pool),
):
    """Update a customer's name and email."""
    outcome = await update_customer(pool, customer_id, {"name": name, "email": email})
    return form_response(outcome)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_customer(
    customer_id: UUID,
    pool: ConnectionPool = Depends(get_pool),
) -> Response:
    """Delete a customer."""
    await delete_customer(pool, customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
