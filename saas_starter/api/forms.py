# saas_starter/api/forms.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, TypeVar

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from saas_starter.core.errors import FormValidationError

M = TypeVar("M", bound=BaseModel)

# never echoed back to the browser
SECRET_FIELDS = {"password", "currentPassword", "newPassword", "confirmPassword"}


async def read_form(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        data = await request.json()
        return data if isinstance(data, dict) else {}
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def echo_values(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in SECRET_FIELDS}


def _field_errors(exc: ValidationError) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "__root__"
        ctx_error = (err.get("ctx") or {}).get("error")
        msg = str(ctx_error) if ctx_error is not None else err.get("msg", "Invalid value")
        out.setdefault(field, []).append(msg)
    return out


def parse_form(schema: Type[M], data: Dict[str, Any]) -> M:
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise FormValidationError(_field_errors(e), echo_values(data)) from e


def validated_form(schema: Type[M]):
    """Dependency: the request body validated against `schema`, or a 422 with field errors."""

    async def _dependency(request: Request) -> M:
        data = await read_form(request)
        request.state.form_values = echo_values(data)
        return parse_form(schema, data)

    return Depends(_dependency)


def action_error(message: str, request: Optional[Request] = None, status_code: int = 400) -> JSONResponse:
    """A business-rule failure: one message plus the submitted non-secret values."""
    body: Dict[str, Any] = {"error": message}
    if request is not None:
        body.update(getattr(request.state, "form_values", None) or {})
    return JSONResponse(status_code=status_code, content=body)


def action_success(message: str) -> JSONResponse:
    return JSONResponse(status_code=200, content={"success": message})
