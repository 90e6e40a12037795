from __future__ import annotations

from typing import Protocol

from billed.domain.models.blob import StoredBlob


class BlobStorePort(Protocol):
    async def put(self, data: bytes, *, filename: str, content_type: str) -> StoredBlob: ...
