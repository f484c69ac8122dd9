"""
Shared schema primitives used across the API.

Wire names are camelCase (`momentumScore`, `habitKey`, ...); Python
attributes stay snake_case. Requests accept either spelling.
"""
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Toast(BaseModel):
    """Short user-facing message; every response carries one."""
    message: str
    type: Literal["success", "error", "info"] = "success"


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    toast: Optional[Toast] = None


def success_toast(message: str) -> Toast:
    return Toast(message=message, type="success")
