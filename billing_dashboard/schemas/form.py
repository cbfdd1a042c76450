"""Form handling schemas module.

A form action either returns a ``FormState`` describing what went wrong, so the
form can be re-rendered with inline errors, or a ``Redirect`` once the
submission has been persisted.
"""
from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class FormSchema(BaseModel):
    """Base class for submitted-form schemas.

    ``error_messages`` maps a form field name to the single message shown for
    any failure on that field.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    error_messages: ClassVar[dict[str, str]] = {}


class ValidationResult(BaseModel):
    """Outcome of validating a submitted form."""

    success: bool
    data: Optional[Any] = None
    field_errors: dict[str, list[str]] = Field(default_factory=dict)


class FormState(BaseModel):
    """Error state handed back to the form on a failed submission."""

    errors: dict[str, list[str]] = Field(default_factory=dict)
    message: Optional[str] = None


class Redirect(BaseModel):
    """Instruction to leave the current page after a successful action."""

    location: str


def validate_form(schema: type[FormSchema], raw: Mapping[str, Any]) -> ValidationResult:
    """Validate raw form values against ``schema`` without raising."""
    try:
        data = schema.model_validate(dict(raw))
    except ValidationError as exc:
        field_errors: dict[str, list[str]] = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "form"
            message = schema.error_messages.get(field, error["msg"])
            messages = field_errors.setdefault(field, [])
            if message not in messages:
                messages.append(message)
        return ValidationResult(success=False, field_errors=field_errors)
    return ValidationResult(success=True, data=data)
