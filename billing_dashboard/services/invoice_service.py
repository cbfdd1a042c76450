"""Invoice service module.

Read paths for the invoices table and the create / update / delete actions
behind the invoice forms.

Every action runs in the same order: validate, transform, persist,
revalidate the dashboard routes, redirect. A failed validation returns a
``FormState`` before any connection is borrowed. A database fault is logged
and re-raised as a generic ``DatabaseError``; the redirect is only produced
once the statement has been committed and the connection released.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union
from uuid import UUID

from sqlalchemy import String, cast, delete, func, insert, or_, select, update

from billing_dashboard.database.database import DB_ERRORS, ConnectionPool
from billing_dashboard.exceptions.api_exception import DatabaseError
from billing_dashboard.models.customer import Customer
from billing_dashboard.models.invoice import Invoice
from billing_dashboard.schemas.form import FormState, Redirect, validate_form
from billing_dashboard.schemas.invoice import (
    InvoiceEditForm,
    InvoiceForm,
    InvoiceTableRow,
)
from billing_dashboard.services.cache import cached, revalidate_path
from billing_dashboard.services.dashboard_service import DASHBOARD_PATH
from billing_dashboard.utils import like_pattern, to_cents

logger = logging.getLogger(__name__)

INVOICES_PATH = "/dashboard/invoices"
ITEMS_PER_PAGE = 6


def _search_filter(query: str):
    """Match the search term against customer and invoice columns."""
    pattern = like_pattern(query)
    return or_(
        Customer.name.ilike(pattern, escape="\\"),
        Customer.email.ilike(pattern, escape="\\"),
        cast(Invoice.amount, String).ilike(pattern, escape="\\"),
        cast(Invoice.date, String).ilike(pattern, escape="\\"),
        Invoice.status.ilike(pattern, escape="\\"),
    )


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


# =============================================================================
# READS
# =============================================================================

@cached(INVOICES_PATH)
async def fetch_filtered_invoices(
    pool: ConnectionPool,
    query: str,
    current_page: int,
) -> list[InvoiceTableRow]:
    """
    Return one page of invoices matching ``query``, newest first.

    Pages hold ``ITEMS_PER_PAGE`` rows; page 1 starts at offset 0.
    """
    offset = (current_page - 1) * ITEMS_PER_PAGE
    stmt = (
        select(
            Invoice.id,
            Invoice.amount,
            Invoice.date,
            Invoice.status,
            Customer.name,
            Customer.email,
            Customer.image_url,
        )
        .join(Customer, Invoice.customer_id == Customer.id)
        .where(_search_filter(query))
        .order_by(Invoice.date.desc())
        .limit(ITEMS_PER_PAGE)
        .offset(offset)
    )
    try:
        async with pool.connection() as conn:
            result = await conn.execute(stmt)
            rows = result.all()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch invoices.") from exc

    return [InvoiceTableRow.model_validate(row) for row in rows]


@cached(INVOICES_PATH)
async def fetch_invoices_pages(pool: ConnectionPool, query: str) -> int:
    """Number of pages needed to list every invoice matching ``query``."""
    stmt = (
        select(func.count())
        .select_from(Invoice)
        .join(Customer, Invoice.customer_id == Customer.id)
        .where(_search_filter(query))
    )
    try:
        async with pool.connection() as conn:
            total = (await conn.execute(stmt)).scalar() or 0
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch total number of invoices.") from exc

    return (total + ITEMS_PER_PAGE - 1) // ITEMS_PER_PAGE


async def fetch_invoice_by_id(pool: ConnectionPool, invoice_id: UUID) -> Optional[InvoiceEditForm]:
    """Load an invoice for the edit form, with ``amount`` converted to dollars."""
    stmt = select(
        Invoice.id,
        Invoice.customer_id,
        Invoice.amount,
        Invoice.status,
    ).where(Invoice.id == invoice_id)
    try:
        async with pool.connection() as conn:
            row = (await conn.execute(stmt)).first()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch invoice.") from exc

    if row is None:
        return None
    return InvoiceEditForm(
        id=row.id,
        customer_id=row.customer_id,
        amount=row.amount / 100,
        status=row.status,
    )


# =============================================================================
# ACTIONS
# =============================================================================

async def create_invoice(
    pool: ConnectionPool,
    form: Mapping[str, Any],
) -> Union[FormState, Redirect]:
    """Create an invoice dated now from the submitted form."""
    validated = validate_form(InvoiceForm, form)
    if not validated.success:
        return FormState(
            errors=validated.field_errors,
            message="Missing Fields. Failed to Create Invoice.",
        )

    data: InvoiceForm = validated.data
    amount_in_cents = to_cents(data.amount)
    date = _now()

    try:
        async with pool.connection() as conn:
            await conn.execute(
                insert(Invoice).values(
                    customer_id=data.customer_id,
                    amount=amount_in_cents,
                    status=data.status.value,
                    date=date,
                )
            )
            await conn.commit()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to create invoice.") from exc

    # invoice rows feed the customer totals and the overview too
    revalidate_path(DASHBOARD_PATH)
    return Redirect(location=INVOICES_PATH)


async def update_invoice(
    pool: ConnectionPool,
    invoice_id: UUID,
    form: Mapping[str, Any],
) -> Union[FormState, Redirect]:
    """Update customer, amount and status. ``id`` and ``date`` are left as-is."""
    validated = validate_form(InvoiceForm, form)
    if not validated.success:
        return FormState(
            errors=validated.field_errors,
            message="Missing Fields. Failed to Update Invoice.",
        )

    data: InvoiceForm = validated.data
    amount_in_cents = to_cents(data.amount)

    try:
        async with pool.connection() as conn:
            await conn.execute(
                update(Invoice)
                .where(Invoice.id == invoice_id)
                .values(
                    customer_id=data.customer_id,
                    amount=amount_in_cents,
                    status=data.status.value,
                )
            )
            await conn.commit()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to update invoice.") from exc

    revalidate_path(DASHBOARD_PATH)
    return Redirect(location=INVOICES_PATH)


async def delete_invoice(pool: ConnectionPool, invoice_id: UUID) -> None:
    """Delete an invoice. Called from the listing page, so no redirect."""
    try:
        async with pool.connection() as conn:
            await conn.execute(delete(Invoice).where(Invoice.id == invoice_id))
            await conn.commit()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to delete invoice.") from exc

    revalidate_path(DASHBOARD_PATH)
