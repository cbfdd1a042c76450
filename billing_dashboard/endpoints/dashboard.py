"""Dashboard endpoint module.

Overview page data: revenue chart, latest invoices and summary cards.
"""
import asyncio

from fastapi import APIRouter, Depends

from billing_dashboard.database.database import ConnectionPool, get_pool
from billing_dashboard.schemas.dashboard import DashboardOverview
from billing_dashboard.services.auth_service import require_user
from billing_dashboard.services.dashboard_service import (
    fetch_card_data,
    fetch_latest_invoices,
    fetch_revenue,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(require_user)])


@router.get("", response_model=DashboardOverview)
async def get_overview(pool: ConnectionPool = Depends(get_pool)) -> DashboardOverview:
    """
    Get the overview page data.

    - **revenue**: monthly revenue totals
    - **latest_invoices**: the five most recent invoices
    - **cards**: invoice/customer counts and paid/pending totals
    """
    revenue, latest_invoices, cards = await asyncio.gather(
        fetch_revenue(pool),
        fetch_latest_invoices(pool),
        fetch_card_data(pool),
    )
    return DashboardOverview(revenue=revenue, latest_invoices=latest_invoices, cards=cards)
