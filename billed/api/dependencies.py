from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request

from billed.application.services.access_gate import AccessGate
from billed.application.services.attachment_uploader import AttachmentUploader
from billed.application.services.bill_lifecycle import BillLifecycle
from billed.application.services.bill_presenter import BillPresenter
from billed.domain.models.principal import Principal
from billed.infrastructure.auth.jwt_verifier import JwtTokenVerifier
from billed.infrastructure.persistence.sqla import SqlBillStore, SqlUserDirectory, get_engine
from billed.infrastructure.storage.files.blob_store import LocalBlobStore
from billed.settings import Settings, load_settings


@dataclass(slots=True)
class ApiContext:
    settings: Settings
    db_path: Path
    upload_dir: Path
    users: SqlUserDirectory
    tokens: JwtTokenVerifier
    gate: AccessGate
    bills: BillLifecycle


def _under_root(root: Path, configured: str) -> Path:
    p = Path(configured)
    return p if p.is_absolute() else root / p


def build_context(root: Path, settings: Settings | None = None) -> ApiContext:
    settings = settings or load_settings()
    db_path = _under_root(root, settings.db_path)
    upload_dir = _under_root(root, settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    engine = get_engine(db_path)
    users = SqlUserDirectory(engine)
    tokens = JwtTokenVerifier(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.jwt_expire_minutes,
    )
    blob_store = LocalBlobStore(upload_dir, settings.public_base_url)
    bills = BillLifecycle(
        store=SqlBillStore(engine),
        uploader=AttachmentUploader(blob_store, settings.public_base_url),
        presenter=BillPresenter(settings.public_base_url),
    )
    return ApiContext(
        settings=settings,
        db_path=db_path,
        upload_dir=upload_dir,
        users=users,
        tokens=tokens,
        gate=AccessGate(tokens, users),
        bills=bills,
    )


def get_ctx(request: Request) -> ApiContext:
    return request.app.state.ctx


async def get_principal(
    request: Request,
    ctx: Annotated[ApiContext, Depends(get_ctx)],
) -> Principal | None:
    return await ctx.gate.resolve_header(request.headers.get("authorization"))
