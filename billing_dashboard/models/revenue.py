"""Revenue model module."""
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_dashboard.database.database import Base


class Revenue(Base):
    """Monthly revenue total, maintained outside this application."""

    __tablename__ = "revenue"

    month: Mapped[str] = mapped_column(String(4), primary_key=True)
    revenue: Mapped[int] = mapped_column(Integer, nullable=False)
