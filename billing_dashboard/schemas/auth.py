"""Authentication schemas module."""
from pydantic import BaseModel, EmailStr, Field


class LoginCredentials(BaseModel):
    """Shape check applied before any credential lookup."""

    email: EmailStr
    password: str = Field(..., min_length=6)


class SessionUser(BaseModel):
    """Identity stored in the session after a successful sign-in."""

    id: str
    name: str
    email: str
