"""Customer service module.

Customer listing with invoice totals, the customer profile, and the
create / update / delete actions behind the customer forms.
"""
import logging
from typing import Any, Mapping, Optional, Union
from uuid import UUID

from sqlalchemy import case, delete, func, insert, or_, select, update

from billing_dashboard.database.database import DB_ERRORS, ConnectionPool
from billing_dashboard.exceptions.api_exception import DatabaseError
from billing_dashboard.models.customer import Customer
from billing_dashboard.models.invoice import Invoice, InvoiceStatus
from billing_dashboard.schemas.customer import CustomerField, CustomerForm, CustomerTableRow
from billing_dashboard.schemas.form import FormState, Redirect, validate_form
from billing_dashboard.services.cache import cached, revalidate_path
from billing_dashboard.services.dashboard_service import DASHBOARD_PATH
from billing_dashboard.settings import settings
from billing_dashboard.utils import format_currency, like_pattern

logger = logging.getLogger(__name__)

CUSTOMERS_PATH = "/dashboard/customers"


def _customer_totals_query():
    """Customers left-joined to their invoices, one row per customer."""
    return (
        select(
            Customer.id,
            Customer.name,
            Customer.email,
            Customer.image_url,
            func.count(Invoice.id).label("total_invoices"),
            func.sum(
                case((Invoice.status == InvoiceStatus.PENDING.value, Invoice.amount), else_=0)
            ).label("total_pending"),
            func.sum(
                case((Invoice.status == InvoiceStatus.PAID.value, Invoice.amount), else_=0)
            ).label("total_paid"),
        )
        .select_from(Customer)
        .outerjoin(Invoice, Customer.id == Invoice.customer_id)
        .group_by(Customer.id, Customer.name, Customer.email, Customer.image_url)
    )


def _to_table_row(row) -> CustomerTableRow:
    return CustomerTableRow(
        id=row.id,
        name=row.name,
        email=row.email,
        image_url=row.image_url,
        total_invoices=row.total_invoices or 0,
        total_pending=format_currency(row.total_pending),
        total_paid=format_currency(row.total_paid),
    )


# =============================================================================
# READS
# =============================================================================

async def fetch_customers(pool: ConnectionPool) -> list[CustomerField]:
    """All customers ordered by name, for the invoice form's select box."""
    stmt = select(Customer.id, Customer.name).order_by(Customer.name.asc())
    try:
        async with pool.connection() as conn:
            rows = (await conn.execute(stmt)).all()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch all customers.") from exc

    return [CustomerField.model_validate(row) for row in rows]


@cached(CUSTOMERS_PATH)
async def fetch_filtered_customers(pool: ConnectionPool, query: str) -> list[CustomerTableRow]:
    """
    Customers whose name or email contains ``query`` (case-insensitive).

    Customers without invoices are included with zero totals.
    """
    pattern = like_pattern(query)
    stmt = (
        _customer_totals_query()
        .where(
            or_(
                Customer.name.ilike(pattern, escape="\\"),
                Customer.email.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Customer.name.asc())
    )
    try:
        async with pool.connection() as conn:
            rows = (await conn.execute(stmt)).all()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch customer table.") from exc

    return [_to_table_row(row) for row in rows]


@cached(CUSTOMERS_PATH)
async def fetch_customer_by_id(pool: ConnectionPool, customer_id: UUID) -> Optional[CustomerTableRow]:
    """Customer profile with invoice totals, or None if it does not exist."""
    stmt = _customer_totals_query().where(Customer.id == customer_id)
    try:
        async with pool.connection() as conn:
            row = (await conn.execute(stmt)).first()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch customer.") from exc

    return _to_table_row(row) if row is not None else None


# =============================================================================
# ACTIONS
# =============================================================================

async def create_customer(
    pool: ConnectionPool,
    form: Mapping[str, Any],
    image_url: Optional[str] = None,
) -> Union[FormState, Redirect]:
    """Create a customer. The avatar is assigned here, not taken from the form."""
    validated = validate_form(CustomerForm, form)
    if not validated.success:
        return FormState(
            errors=validated.field_errors,
            message="Missing Fields. Failed to Create Customer.",
        )

    data: CustomerForm = validated.data

    try:
        async with pool.connection() as conn:
            await conn.execute(
                insert(Customer).values(
                    name=data.name,
                    email=data.email,
                    image_url=image_url or settings.DEFAULT_CUSTOMER_IMAGE_URL,
                )
            )
            await conn.commit()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to create customer.") from exc

    # customer names and avatars are also rendered in the invoice listing
    revalidate_path(DASHBOARD_PATH)
    return Redirect(location=CUSTOMERS_PATH)


async def update_customer(
    pool: ConnectionPool,
    customer_id: UUID,
    form: Mapping[str, Any],
) -> Union[FormState, Redirect]:
    """Update name and email, then go to the customer's profile."""
    validated = validate_form(CustomerForm, form)
    if not validated.success:
        return FormState(
            errors=validated.field_errors,
            message="Missing Fields. Failed to Update Customer.",
        )

    data: CustomerForm = validated.data

    try:
        async with pool.connection() as conn:
            await conn.execute(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(name=data.name, email=data.email)
            )
            await conn.commit()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to update customer.") from exc

    revalidate_path(DASHBOARD_PATH)
    return Redirect(location=f"{CUSTOMERS_PATH}/{customer_id}")


async def delete_customer(pool: ConnectionPool, customer_id: UUID) -> None:
    """Delete a customer.

    Fails with ``DatabaseError`` while invoices still reference the customer.
    """
    try:
        async with pool.connection() as conn:
            await conn.execute(delete(Customer).where(Customer.id == customer_id))
            await conn.commit()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to delete customer.") from exc

    revalidate_path(DASHBOARD_PATH)
