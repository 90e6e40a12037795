from __future__ import annotations

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from billed.api.dependencies import ApiContext, get_ctx, get_principal
from billed.api.schemas.bills import BillPayload
from billed.api.schemas.common import ok
from billed.domain.models.blob import IncomingFile
from billed.domain.models.principal import Principal

router = APIRouter(tags=["bills"])

Caller = Annotated[Principal | None, Depends(get_principal)]
Ctx = Annotated[ApiContext, Depends(get_ctx)]


def _check_content_length(request: Request, max_bytes: int) -> None:
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"payload too large: {content_length} > {max_bytes}",
        )


def _parse_fields(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="bill payload must be a JSON object")
    try:
        return BillPayload.model_validate(raw).to_fields()
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


async def _read_create_request(
    request: Request, max_bytes: int
) -> tuple[dict[str, Any], IncomingFile | None]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        _check_content_length(request, max_bytes)
        form = await request.form()
        raw = {key: value for key, value in form.items() if isinstance(value, str)}
        upload = form.get("file")
        incoming = None
        if isinstance(upload, UploadFile) and upload.filename:
            data = await upload.read()
            if len(data) > max_bytes:
                raise HTTPException(
                    status_code=413,
                    detail=f"payload too large: {len(data)} > {max_bytes}",
                )
            incoming = IncomingFile(
                filename=upload.filename,
                content_type=upload.content_type or "",
                data=data,
            )
        return _parse_fields(raw), incoming

    body = await request.body()
    if not body.strip():
        return {}, None
    try:
        raw = json.loads(body)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"invalid JSON body: {exc.msg}") from exc
    return _parse_fields(raw), None


@router.post("/bills", status_code=201)
async def create_bill(request: Request, principal: Caller, ctx: Ctx) -> dict:
    fields, incoming = await _read_create_request(request, ctx.settings.max_upload_bytes)
    created = await ctx.bills.create(principal, fields, incoming)
    return ok(created)


@router.get("/bills")
async def list_bills(principal: Caller, ctx: Ctx) -> dict:
    bills = await ctx.bills.list(principal)
    return ok(bills, count=len(bills))


@router.get("/bills/{bill_id}")
async def get_bill(bill_id: str, principal: Caller, ctx: Ctx) -> dict:
    return ok(await ctx.bills.get(principal, bill_id))


@router.api_route("/bills/{bill_id}", methods=["PUT", "PATCH"])
async def update_bill(bill_id: str, payload: BillPayload, principal: Caller, ctx: Ctx) -> dict:
    updated = await ctx.bills.update(principal, bill_id, payload.to_fields())
    return ok(updated)


@router.delete("/bills/{bill_id}")
async def remove_bill(bill_id: str, principal: Caller, ctx: Ctx) -> dict:
    return ok(await ctx.bills.remove(principal, bill_id))
