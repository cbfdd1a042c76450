"""Turns form action outcomes into HTTP responses."""
from typing import Union

from fastapi import status
from fastapi.responses import JSONResponse, RedirectResponse

from billing_dashboard.schemas.form import FormState, Redirect


def form_response(outcome: Union[FormState, Redirect]):
    """303 to the target page on success, 422 with the field errors otherwise."""
    if isinstance(outcome, Redirect):
        return RedirectResponse(outcome.location, status_code=status.HTTP_303_SEE_OTHER)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=outcome.model_dump(),
    )
