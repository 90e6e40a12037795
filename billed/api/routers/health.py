from __future__ import annotations

from fastapi import APIRouter

from billed.api.schemas.common import ok

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return ok({"ok": True})
