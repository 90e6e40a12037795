from __future__ import annotations

from typing import Any, Protocol

from billed.domain.models.bill import Bill


class BillStorePort(Protocol):
    async def insert(self, bill: Bill) -> Bill: ...

    async def get(self, bill_id: str) -> Bill | None: ...

    async def list(self, *, email: str | None = None) -> list[Bill]: ...

    async def update(self, bill_id: str, changes: dict[str, Any]) -> Bill: ...

    async def delete(self, bill_id: str) -> None: ...
