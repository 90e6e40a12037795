from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from billed.api.schemas.common import err
from billed.domain.errors import DomainError
from billed.logger import get_logger

_HTTP_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    422: "validation_error",
}


def _respond(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=err(code, message, details), headers=headers)


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    # pydantic errors may carry exception objects in "ctx"; keep the JSON-safe parts.
    return [
        {"loc": list(item.get("loc", ())), "msg": str(item.get("msg", "")), "type": str(item.get("type", ""))}
        for item in exc.errors()
    ]


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _on_domain_error(_: Request, exc: DomainError) -> JSONResponse:
        return _respond(exc.status_code, exc.code, exc.message, exc.details)

    # Starlette's base class also covers routing misses (404) and wrong methods (405, with Allow).
    @app.exception_handler(StarletteHTTPException)
    async def _on_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _HTTP_CODES.get(exc.status_code, "http_error")
        return _respond(exc.status_code, code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _on_invalid_request(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _respond(422, "validation_error", "request validation failed", _validation_details(exc))

    @app.exception_handler(Exception)
    async def _on_unexpected(_: Request, exc: Exception) -> JSONResponse:
        get_logger().opt(exception=exc).error("unhandled error")
        return _respond(500, "internal_error", "internal server error")
