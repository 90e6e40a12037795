from __future__ import annotations

from typing import Any

from billed.logger import current_request_id


def ok(payload: Any, **meta: Any) -> dict[str, Any]:
    """Success envelope: ``{"data": ..., "meta": {"request_id": ..., **meta}}``."""
    return {"data": payload, "meta": {"request_id": current_request_id(), **meta}}


def err(code: str, message: str, details: Any | None = None) -> dict[str, Any]:
    return {
        "error": {"code": code, "message": message, "details": details},
        "request_id": current_request_id(),
    }
