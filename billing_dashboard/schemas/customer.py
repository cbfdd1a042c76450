"""Customer schemas module."""
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from billing_dashboard.schemas.form import FormSchema


class CustomerForm(FormSchema):
    """Fields accepted when creating or editing a customer.

    ``id`` and ``image_url`` are assigned by the server.
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

    error_messages: ClassVar[dict[str, str]] = {
        "name": "Please enter a name.",
        "email": "Please enter an email.",
    }


class CustomerField(BaseModel):
    """Customer option for the invoice form's select box."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class CustomerTableRow(BaseModel):
    """Customer with invoice totals (formatted as currency)."""

    id: UUID
    name: str
    email: str
    image_url: str
    total_invoices: int
    total_pending: str
    total_paid: str
