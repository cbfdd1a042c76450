"""Customer model module."""
import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from billing_dashboard.database.database import Base


class Customer(Base):
    """Customer billed by invoices."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Assigned on creation, never edited afterwards
    image_url: Mapped[str] = mapped_column(String(255), nullable=False)
