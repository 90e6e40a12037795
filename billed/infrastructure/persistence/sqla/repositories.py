from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import anyio
from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine

from billed.domain.enums import Role
from billed.domain.errors import ConflictError
from billed.domain.models.bill import Bill
from billed.domain.models.principal import Principal

from .engine import connection_scope
from .mappers import bill_from_row, bill_to_row, principal_from_row
from .models import bills, users


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SqlBillStore:
    """
    Bill persistence on SQLAlchemy Core.

    The engine is blocking; each call runs in a worker thread so the event
    loop is never held across I/O. Per-record atomicity is the database's.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _insert(self, bill: Bill) -> Bill:
        now = _now_iso()
        row = bill_to_row(bill)
        row.update(created_at=now, updated_at=now)
        with connection_scope(self.engine) as conn:
            conn.execute(insert(bills).values(**row))
        return bill

    def _get(self, bill_id: str) -> Bill | None:
        with connection_scope(self.engine) as conn:
            row = conn.execute(select(bills).where(bills.c.id == bill_id)).first()
        return bill_from_row(row)

    def _list(self, email: str | None) -> list[Bill]:
        stmt = select(bills).order_by(bills.c.created_at, bills.c.id)
        if email is not None:
            stmt = stmt.where(bills.c.email == email)
        with connection_scope(self.engine) as conn:
            rows = conn.execute(stmt).all()
        return [bill for bill in (bill_from_row(row) for row in rows) if bill is not None]

    def _update(self, bill_id: str, changes: dict[str, Any]) -> Bill:
        values = {k: v for k, v in changes.items() if k not in {"id", "email"}}
        values["updated_at"] = _now_iso()
        with connection_scope(self.engine) as conn:
            result = conn.execute(update(bills).where(bills.c.id == bill_id).values(**values))
            if result.rowcount == 0:
                raise LookupError(f"bill {bill_id} vanished during update")
            row = conn.execute(select(bills).where(bills.c.id == bill_id)).first()
        bill = bill_from_row(row)
        if bill is None:
            raise LookupError(f"bill {bill_id} vanished during update")
        return bill

    def _delete(self, bill_id: str) -> None:
        with connection_scope(self.engine) as conn:
            conn.execute(delete(bills).where(bills.c.id == bill_id))

    async def insert(self, bill: Bill) -> Bill:
        return await anyio.to_thread.run_sync(self._insert, bill)

    async def get(self, bill_id: str) -> Bill | None:
        return await anyio.to_thread.run_sync(self._get, bill_id)

    async def list(self, *, email: str | None = None) -> list[Bill]:
        return await anyio.to_thread.run_sync(self._list, email)

    async def update(self, bill_id: str, changes: dict[str, Any]) -> Bill:
        return await anyio.to_thread.run_sync(self._update, bill_id, changes)

    async def delete(self, bill_id: str) -> None:
        await anyio.to_thread.run_sync(self._delete, bill_id)


class SqlUserDirectory:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def lookup(self, email: str) -> Principal | None:
        with connection_scope(self.engine) as conn:
            row = conn.execute(select(users).where(users.c.email == email)).first()
        return principal_from_row(row)

    def add_user(self, email: str, role: Role) -> Principal:
        email = email.strip()
        if not email:
            raise ValueError("email is required")
        with connection_scope(self.engine) as conn:
            row = conn.execute(select(users).where(users.c.email == email)).first()
            existing = principal_from_row(row)
            if existing is not None:
                if existing.role != role:
                    raise ConflictError(
                        f"user {email} already registered as {existing.role}",
                        details={"email": email, "role": existing.role.value},
                    )
                return existing
            conn.execute(insert(users).values(email=email, role=role.value, created_at=_now_iso()))
        return Principal(email=email, role=role)

    async def find(self, email: str) -> Principal | None:
        return await anyio.to_thread.run_sync(self.lookup, email)
