from __future__ import annotations

from typing import Protocol

from billed.domain.models.principal import Principal


class UserDirectoryPort(Protocol):
    async def find(self, email: str) -> Principal | None: ...
