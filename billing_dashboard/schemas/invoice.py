"""Invoice schemas module."""
from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from billing_dashboard.models.invoice import InvoiceStatus
from billing_dashboard.schemas.form import FormSchema


class InvoiceForm(FormSchema):
    """Fields accepted when creating or editing an invoice.

    ``id`` and ``date`` are assigned by the server and never read from the form.
    """

    customer_id: UUID = Field(..., alias="customerId")
    amount: Decimal = Field(..., gt=0, allow_inf_nan=False, description="Amount in dollars")
    status: InvoiceStatus

    error_messages: ClassVar[dict[str, str]] = {
        "customerId": "Please select a customer.",
        "amount": "Please enter an amount greater than $0.",
        "status": "Please select an invoice status.",
    }


class InvoiceTableRow(BaseModel):
    """Row of the paginated invoices table. ``amount`` is in cents."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    amount: int
    date: datetime
    status: str
    name: str
    email: str
    image_url: str


class InvoicesPage(BaseModel):
    """Response schema for the invoices listing."""

    items: list[InvoiceTableRow] = Field(default_factory=list)
    page: int = Field(..., description="Current page number")
    total_pages: int = Field(..., description="Number of pages matching the query")


class LatestInvoice(BaseModel):
    """Recent invoice shown on the overview page."""

    id: UUID
    name: str
    email: str
    image_url: str
    amount: str = Field(..., description="Formatted amount, e.g. $1,234.56")
    status: str


class InvoiceEditForm(BaseModel):
    """Current values used to pre-fill the edit form. ``amount`` is in dollars."""

    id: UUID
    customer_id: UUID
    amount: float
    status: str
