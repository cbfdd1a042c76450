"""Dashboard service module.

Provides the revenue chart, latest invoices and summary cards shown on the
overview page.

The overview aggregates every invoice and customer. It is cached under
``/dashboard``, which every invoice and customer action revalidates.
"""
import asyncio
import logging

from sqlalchemy import case, func, select

from billing_dashboard.database.database import DB_ERRORS, ConnectionPool
from billing_dashboard.exceptions.api_exception import DatabaseError
from billing_dashboard.models.customer import Customer
from billing_dashboard.models.invoice import Invoice, InvoiceStatus
from billing_dashboard.models.revenue import Revenue
from billing_dashboard.schemas.dashboard import CardData, RevenueItem
from billing_dashboard.schemas.invoice import LatestInvoice
from billing_dashboard.services.cache import cached
from billing_dashboard.utils import format_currency

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"
LATEST_INVOICES_LIMIT = 5


@cached(DASHBOARD_PATH)
async def fetch_revenue(pool: ConnectionPool) -> list[RevenueItem]:
    """All monthly revenue rows."""
    try:
        async with pool.connection() as conn:
            rows = (await conn.execute(select(Revenue.month, Revenue.revenue))).all()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch revenue data.") from exc

    return [RevenueItem.model_validate(row) for row in rows]


@cached(DASHBOARD_PATH)
async def fetch_latest_invoices(pool: ConnectionPool) -> list[LatestInvoice]:
    """The most recent invoices with their customer, amounts formatted."""
    stmt = (
        select(
            Invoice.id,
            Invoice.amount,
            Invoice.status,
            Customer.name,
            Customer.email,
            Customer.image_url,
        )
        .join(Customer, Invoice.customer_id == Customer.id)
        .order_by(Invoice.date.desc())
        .limit(LATEST_INVOICES_LIMIT)
    )
    try:
        async with pool.connection() as conn:
            rows = (await conn.execute(stmt)).all()
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch the latest invoices.") from exc

    return [
        LatestInvoice(
            id=row.id,
            name=row.name,
            email=row.email,
            image_url=row.image_url,
            amount=format_currency(row.amount),
            status=row.status,
        )
        for row in rows
    ]


async def _fetch_one(pool: ConnectionPool, stmt):
    async with pool.connection() as conn:
        return (await conn.execute(stmt)).one()


async def _gather_all(*aws):
    """Run awaitables concurrently; re-raise the first failure once all have finished."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


@cached(DASHBOARD_PATH)
async def fetch_card_data(pool: ConnectionPool) -> CardData:
    """
    Compute the summary cards.

    The three aggregates are independent, so they run concurrently, each on
    its own pooled connection.
    """
    status_totals = select(
        func.sum(
            case((Invoice.status == InvoiceStatus.PAID.value, Invoice.amount), else_=0)
        ).label("paid"),
        func.sum(
            case((Invoice.status == InvoiceStatus.PENDING.value, Invoice.amount), else_=0)
        ).label("pending"),
    )
    try:
        invoice_count, customer_count, totals = await _gather_all(
            _fetch_one(pool, select(func.count()).select_from(Invoice)),
            _fetch_one(pool, select(func.count()).select_from(Customer)),
            _fetch_one(pool, status_totals),
        )
    except DB_ERRORS as exc:
        logger.exception("Database Error: %s", exc)
        raise DatabaseError("Failed to fetch card data.") from exc

    return CardData(
        number_of_invoices=int(invoice_count[0]),
        number_of_customers=int(customer_count[0]),
        total_paid_invoices=format_currency(totals.paid),
        total_pending_invoices=format_currency(totals.pending),
    )
