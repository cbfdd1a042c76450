"""Dashboard schemas module.

Response schemas for the overview page: revenue chart, latest invoices and
summary cards.
"""
from pydantic import BaseModel, ConfigDict, Field

from billing_dashboard.schemas.invoice import LatestInvoice


class RevenueItem(BaseModel):
    """Revenue total for one month."""

    model_config = ConfigDict(from_attributes=True)

    month: str
    revenue: int


class CardData(BaseModel):
    """Summary cards."""

    number_of_invoices: int = Field(..., description="Total invoice count")
    number_of_customers: int = Field(..., description="Total customer count")
    total_paid_invoices: str = Field(..., description="Formatted sum of paid invoices")
    total_pending_invoices: str = Field(..., description="Formatted sum of pending invoices")


class DashboardOverview(BaseModel):
    """Response schema for the overview page."""

    revenue: list[RevenueItem] = Field(default_factory=list)
    latest_invoices: list[LatestInvoice] = Field(default_factory=list)
    cards: CardData
