"""Tests for invoice reads and actions."""
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from billing_dashboard.exceptions.api_exception import DatabaseError
from billing_dashboard.models.invoice import Invoice
from billing_dashboard.schemas.form import FormState, Redirect
from billing_dashboard.services.cache import get_cache_stats
from billing_dashboard.services.customer_service import fetch_customer_by_id, fetch_filtered_customers
from billing_dashboard.services.dashboard_service import fetch_card_data
from billing_dashboard.services.invoice_service import (
    ITEMS_PER_PAGE,
    create_invoice,
    delete_invoice,
    fetch_filtered_invoices,
    fetch_invoice_by_id,
    fetch_invoices_pages,
    update_invoice,
)


async def _invoice_count(pool) -> int:
    async with pool.connection() as conn:
        return (await conn.execute(select(func.count()).select_from(Invoice))).scalar()


@pytest.mark.asyncio
class TestFetchFilteredInvoices:
    """Tests for the paginated invoice search."""

    async def test_first_page_is_full_and_newest_first(self, pool, sample_data):
        rows = await fetch_filtered_invoices(pool, "", 1)
        assert len(rows) == ITEMS_PER_PAGE
        dates = [row.date for row in rows]
        assert dates == sorted(dates, reverse=True)
        assert rows[0].date == datetime(2024, 6, 11, 9, 0)
        assert rows[0].name == "Lee Robinson"
        assert rows[0].amount == 32545

    async def test_second_page_holds_the_remainder(self, pool, sample_data):
        rows = await fetch_filtered_invoices(pool, "", 2)
        assert [row.date for row in rows] == [
            datetime(2024, 1, 5, 9, 0),
            datetime(2024, 1, 1, 9, 0),
        ]

    async def test_matches_customer_name_case_insensitively(self, pool, sample_data):
        rows = await fetch_filtered_invoices(pool, "ROBINSON", 1)
        assert len(rows) == 2
        assert {row.email for row in rows} == {"lee@robinson.com"}

    async def test_matches_status_amount_and_date(self, pool, sample_data):
        paid = await fetch_filtered_invoices(pool, "paid", 1)
        assert {row.amount for row in paid} == {3040, 44800, 32545}

        by_amount = await fetch_filtered_invoices(pool, "666", 1)
        assert [row.amount for row in by_amount] == [666]

        by_date = await fetch_filtered_invoices(pool, "2024-03", 1)
        assert {row.amount for row in by_date} == {44800, 34577}

    async def test_search_term_is_bound_not_interpolated(self, pool, sample_data):
        """Quotes and wildcards are matched literally."""
        assert await fetch_filtered_invoices(pool, "' OR '1'='1", 1) == []
        assert await fetch_filtered_invoices(pool, "%", 1) == []
        assert await _invoice_count(pool) == 8

    async def test_connection_is_returned(self, pool, sample_data):
        await fetch_filtered_invoices(pool, "", 1)
        assert pool.acquired == pool.released == 1


@pytest.mark.asyncio
class TestFetchInvoicesPages:

    async def test_page_count(self, pool, sample_data):
        assert await fetch_invoices_pages(pool, "") == 2
        assert await fetch_invoices_pages(pool, "acme") == 1
        assert await fetch_invoices_pages(pool, "no such invoice") == 0


@pytest.mark.asyncio
class TestFetchInvoiceById:

    async def test_amount_in_dollars(self, pool, sample_data):
        invoice_row = sample_data["invoices"][0]
        invoice = await fetch_invoice_by_id(pool, invoice_row["id"])
        assert invoice.amount == 157.95
        assert invoice.status == "pending"
        assert invoice.customer_id == sample_data["customers"]["acme"]

    async def test_unknown_id(self, pool, sample_data):
        assert await fetch_invoice_by_id(pool, uuid4()) is None


@pytest.mark.asyncio
class TestCreateInvoice:
    """Tests for the create action."""

    async def test_create_persists_cents_and_redirects(self, pool, sample_data):
        customer_id = sample_data["customers"]["acme"]
        outcome = await create_invoice(
            pool,
            {"customerId": str(customer_id), "amount": "42.50", "status": "pending"},
        )
        assert outcome == Redirect(location="/dashboard/invoices")

        async with pool.connection() as conn:
            row = (await conn.execute(select(Invoice).where(Invoice.amount == 4250))).one()
        assert row.status == "pending"
        assert row.customer_id == customer_id
        assert row.date.date() == datetime.now(timezone.utc).date()

        invoice = await fetch_invoice_by_id(pool, row.id)
        assert invoice.amount == 42.5

    async def test_invalid_form_returns_errors_without_touching_db(self, unusable_pool):
        outcome = await create_invoice(
            unusable_pool,
            {"customerId": None, "amount": "0", "status": "overdue"},
        )
        assert isinstance(outcome, FormState)
        assert outcome.message == "Missing Fields. Failed to Create Invoice."
        assert outcome.errors == {
            "customerId": ["Please select a customer."],
            "amount": ["Please enter an amount greater than $0."],
            "status": ["Please select an invoice status."],
        }

    async def test_invalid_form_writes_nothing(self, pool, sample_data):
        await create_invoice(pool, {"customerId": "", "amount": "-1", "status": "paid"})
        assert await _invoice_count(pool) == 8

    async def test_listing_is_revalidated(self, pool, sample_data):
        before = await fetch_filtered_invoices(pool, "", 1)
        assert before[0].amount == 32545

        await create_invoice(
            pool,
            {"customerId": str(sample_data["customers"]["lee"]), "amount": "1", "status": "paid"},
        )

        after = await fetch_filtered_invoices(pool, "", 1)
        assert after[0].amount == 100
        assert await fetch_invoices_pages(pool, "") == 2
        assert get_cache_stats()["entries"] == 2

    async def test_customer_totals_and_overview_are_revalidated(self, pool, sample_data):
        labs_id = sample_data["customers"]["acme_labs"]
        labs = (await fetch_filtered_customers(pool, "acme"))[1]
        assert (labs.total_invoices, labs.total_pending) == (0, "$0.00")
        assert (await fetch_customer_by_id(pool, labs_id)).total_invoices == 0
        assert (await fetch_card_data(pool)).number_of_invoices == 8

        await create_invoice(
            pool, {"customerId": str(labs_id), "amount": "42.50", "status": "pending"}
        )

        labs = (await fetch_filtered_customers(pool, "acme"))[1]
        assert (labs.total_invoices, labs.total_pending) == (1, "$42.50")
        assert (await fetch_customer_by_id(pool, labs_id)).total_pending == "$42.50"
        assert (await fetch_card_data(pool)).number_of_invoices == 9

    async def test_database_fault_is_generic_and_connection_released(self, pool, sample_data):
        async with pool.engine.begin() as conn:
            await conn.run_sync(Invoice.__table__.drop)
        pool.acquired = pool.released = 0

        with pytest.raises(DatabaseError) as exc_info:
            await create_invoice(
                pool,
                {"customerId": str(sample_data["customers"]["lee"]), "amount": "5", "status": "paid"},
            )
        assert exc_info.value.detail == "Failed to create invoice."
        assert exc_info.value.status_code == 500
        assert pool.acquired == pool.released == 1


@pytest.mark.asyncio
class TestUpdateInvoice:

    async def test_update_changes_only_mutable_fields(self, pool, sample_data):
        original = sample_data["invoices"][0]
        new_customer = sample_data["customers"]["delba"]
        outcome = await update_invoice(
            pool,
            original["id"],
            {"customerId": str(new_customer), "amount": "99.99", "status": "paid"},
        )
        assert outcome == Redirect(location="/dashboard/invoices")

        async with pool.connection() as conn:
            row = (await conn.execute(select(Invoice).where(Invoice.id == original["id"]))).one()
        assert row.customer_id == new_customer
        assert row.amount == 9999
        assert row.status == "paid"
        assert row.date == original["date"]

    async def test_invalid_update_returns_errors(self, pool, sample_data):
        original = sample_data["invoices"][0]
        outcome = await update_invoice(
            pool,
            original["id"],
            {"customerId": str(original["customer_id"]), "amount": "abc", "status": "paid"},
        )
        assert outcome.message == "Missing Fields. Failed to Update Invoice."
        assert outcome.errors == {"amount": ["Please enter an amount greater than $0."]}

        invoice = await fetch_invoice_by_id(pool, original["id"])
        assert invoice.amount == 157.95


@pytest.mark.asyncio
class TestDeleteInvoice:

    async def test_deleted_invoice_leaves_listing(self, pool, sample_data):
        target = sample_data["invoices"][-1]
        before = await fetch_filtered_invoices(pool, "", 1)
        assert target["id"] in {row.id for row in before}

        assert await delete_invoice(pool, target["id"]) is None

        after = await fetch_filtered_invoices(pool, "", 1)
        assert target["id"] not in {row.id for row in after}
        assert await _invoice_count(pool) == 7
        assert pool.acquired == pool.released
