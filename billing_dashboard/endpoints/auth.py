"""Sign-in and sign-out endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from billing_dashboard.database.database import ConnectionPool, get_pool
from billing_dashboard.services.auth_service import authenticate, sign_out

router = APIRouter(tags=["auth"])


@router.post("/login")
async def login(
    request: Request,
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    redirect_to: str = Form("/dashboard", alias="redirectTo"),
    pool: ConnectionPool = Depends(get_pool),
):
    """Sign in with email and password."""
    error_message = await authenticate(
        pool, request.session, {"email": email, "password": password}
    )
    if error_message:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": error_message},
        )
    # Only same-site paths
    if not redirect_to.startswith("/") or redirect_to.startswith("//"):
        redirect_to = "/dashboard"
    return RedirectResponse(redirect_to, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/logout")
async def logout(request: Request):
    """Clear the session."""
    sign_out(request.session)
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
