"""Authentication service module.

Credential sign-in against the ``users`` table. Every rejection (malformed
credentials, unknown email, wrong password) produces the same outcome so the
caller cannot tell which check failed.
"""
import asyncio
import logging
from functools import lru_cache
from typing import Any, Mapping, Optional

import bcrypt
from fastapi import Request
from pydantic import ValidationError
from sqlalchemy import select

from billing_dashboard.database.database import DB_ERRORS, ConnectionPool
from billing_dashboard.exceptions.api_exception import DatabaseError, LoginRequiredError
from billing_dashboard.models.user import User
from billing_dashboard.schemas.auth import LoginCredentials, SessionUser

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user"
INVALID_CREDENTIALS = "Invalid credentials."


async def get_user(pool: ConnectionPool, email: str):
    """Fetch the user row for ``email``, or None."""
    stmt = select(User.id, User.name, User.email, User.password).where(User.email == email)
    try:
        async with pool.connection() as conn:
            return (await conn.execute(stmt)).first()
    except DB_ERRORS as exc:
        logger.exception("Failed to fetch user: %s", exc)
        raise DatabaseError("Failed to fetch user.") from exc


def _passwords_match(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt()).decode("utf-8")


def _reject_unknown_user(password: str) -> bool:
    """Spend the same bcrypt work as a real comparison, then reject."""
    _passwords_match(password, _dummy_hash())
    return False


async def authorize(pool: ConnectionPool, email: Any, password: Any) -> Optional[SessionUser]:
    """Return the signed-in identity, or None when the credentials are rejected."""
    try:
        credentials = LoginCredentials(email=email, password=password)
    except ValidationError:
        logger.info("Invalid credentials")
        return None

    user = await get_user(pool, credentials.email)
    if user is None:
        logger.info("User not found")
        await asyncio.to_thread(_reject_unknown_user, credentials.password)
        return None

    # bcrypt is CPU-bound
    matches = await asyncio.to_thread(_passwords_match, credentials.password, user.password)
    if not matches:
        logger.info("Passwords do not match")
        return None

    return SessionUser(id=str(user.id), name=user.name, email=user.email)


async def authenticate(
    pool: ConnectionPool,
    session: dict,
    form: Mapping[str, Any],
) -> Optional[str]:
    """Sign-in action.

    Stores the identity in ``session`` and returns None on success; returns the
    error message to show on the login form otherwise.
    """
    user = await authorize(pool, form.get("email"), form.get("password"))
    if user is None:
        return INVALID_CREDENTIALS

    session[SESSION_USER_KEY] = user.model_dump()
    return None


def sign_out(session: dict) -> None:
    session.pop(SESSION_USER_KEY, None)


def require_user(request: Request) -> SessionUser:
    """Dependency guarding dashboard routes."""
    user = request.session.get(SESSION_USER_KEY)
    if not user:
        raise LoginRequiredError()
    return SessionUser(**user)
