from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import Any, TypeVar
from uuid import uuid4

from billed.application.services.access_gate import (
    can_read,
    can_write,
    check_editable,
    check_fields,
    require_principal,
)
from billed.application.services.attachment_uploader import AttachmentUploader
from billed.application.services.attachment_validator import validate_attachment
from billed.application.services.bill_presenter import BillPresenter
from billed.domain.enums import BillStatus
from billed.domain.errors import DomainError, StoreFailure, Unauthorized
from billed.domain.models.bill import (
    NO_ATTACHMENT,
    WRITABLE_FIELDS,
    Bill,
    UploadedAttachment,
    normalize_pct,
)
from billed.domain.models.blob import IncomingFile
from billed.domain.models.principal import Principal
from billed.domain.ports.bill_store import BillStorePort
from billed.logger import get_logger

T = TypeVar("T")


def _writable_changes(principal: Principal, fields: Mapping[str, Any]) -> dict[str, Any]:
    changes = {key: fields[key] for key in WRITABLE_FIELDS if fields.get(key) is not None}
    if not principal.is_admin:
        # a blank commentAdmin from an employee must not erase the reviewer's note
        changes.pop("comment_admin", None)
    if "pct" in changes:
        changes["pct"] = normalize_pct(changes["pct"])
    return changes


class BillLifecycle:
    """
    Create, read, list, update and remove bills on behalf of a principal.

    Employees only ever see their own bills, admins see all of them. A bill
    that does not exist and a bill owned by someone else are rejected the
    same way, so callers cannot probe for ids.
    """

    def __init__(
        self,
        store: BillStorePort,
        uploader: AttachmentUploader,
        presenter: BillPresenter,
    ) -> None:
        self.store = store
        self.uploader = uploader
        self.presenter = presenter
        self.logger = get_logger()

    async def _store_call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except DomainError:
            raise
        except Exception as exc:
            self.logger.opt(exception=True).error(f"store {operation} failed: {exc}")
            raise StoreFailure(str(exc) or f"store {operation} failed") from exc

    async def _load_in_scope(self, principal: Principal, bill_id: str, *, write: bool) -> Bill:
        bill = await self._store_call("get", self.store.get(bill_id))
        check = can_write if write else can_read
        if bill is None or not check(principal, bill):
            reason = "bill not found" if bill is None else "bill owned by another user"
            self.logger.bind(principal=principal.email, bill_id=bill_id).warning(
                f"scope check refused: {reason}"
            )
            # Missing and foreign bills get the same answer on purpose.
            raise Unauthorized(reason)
        return bill

    async def create(
        self,
        principal: Principal | None,
        fields: Mapping[str, Any],
        file: IncomingFile | None = None,
    ) -> dict[str, Any]:
        principal = require_principal(principal)
        check_fields(principal, fields)

        changes = _writable_changes(principal, fields)
        changes.setdefault("status", BillStatus.PENDING.value)

        attachment: UploadedAttachment | None = None
        if file is not None:
            accepted = validate_attachment(file)
            attachment = await self.uploader.upload(accepted)

        bill = Bill(id=attachment.key if attachment else uuid4().hex, email=principal.email, **changes)
        if attachment is not None:
            bill.file_name = attachment.file_name
            bill.file_path = attachment.file_url
        elif fields.get("file_url") and fields.get("file_name"):
            bill.file_name = str(fields["file_name"])
            bill.file_path = str(fields["file_url"])
        else:
            bill.file_name = NO_ATTACHMENT
            bill.file_path = NO_ATTACHMENT

        created = await self._store_call("insert", self.store.insert(bill))
        self.logger.bind(principal=principal.email, bill_id=created.id).info("bill created")

        if attachment is not None:
            # Two-phase submission: the client finalizes the draft with update(key, ...).
            return {
                "fileUrl": attachment.file_url,
                "key": created.id,
                "fileName": attachment.file_name,
            }
        return self.presenter.to_payload(created)

    async def get(self, principal: Principal | None, bill_id: str) -> dict[str, Any]:
        principal = require_principal(principal)
        bill = await self._load_in_scope(principal, bill_id, write=False)
        return self.presenter.present(bill)

    async def list(self, principal: Principal | None) -> list[dict[str, Any]]:
        principal = require_principal(principal)
        email = None if principal.is_admin else principal.email
        bills = await self._store_call("list", self.store.list(email=email))
        # the store filters already; this keeps the guarantee if it does not
        visible = [bill for bill in bills if can_read(principal, bill)]
        return self.presenter.present_many(visible)

    async def update(
        self,
        principal: Principal | None,
        bill_id: str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        principal = require_principal(principal)
        check_fields(principal, fields)
        bill = await self._load_in_scope(principal, bill_id, write=True)
        check_editable(principal, bill)

        changes = _writable_changes(principal, fields)
        if not changes:
            return self.presenter.to_payload(bill)

        updated = await self._store_call("update", self.store.update(bill.id, changes))
        self.logger.bind(principal=principal.email, bill_id=bill.id).info(
            f"bill updated fields={sorted(changes)}"
        )
        return self.presenter.to_payload(updated)

    async def remove(self, principal: Principal | None, bill_id: str) -> dict[str, Any]:
        principal = require_principal(principal)
        bill = await self._load_in_scope(principal, bill_id, write=True)
        await self._store_call("delete", self.store.delete(bill.id))
        self.logger.bind(principal=principal.email, bill_id=bill.id).info("bill removed")
        return {"id": bill.id, "removed": True}
