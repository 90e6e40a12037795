from __future__ import annotations

from pathlib import Path
from urllib.parse import quote
from uuid import uuid4

import anyio

from billed.domain.models.blob import StoredBlob
from billed.files import safe_filename


class LocalBlobStore:
    """
    Path-addressable store on the local disk.

    ``<directory>/<key>/<name>`` is served by the app under the public base URL.
    """

    def __init__(self, directory: Path, public_base_url: str) -> None:
        self.directory = directory
        self.public_base_url = public_base_url.rstrip("/")

    def relative_path(self, key: str, filename: str) -> str:
        return f"{key}/{safe_filename(filename, default='attachment')}"

    def _write(self, rel_path: str, data: bytes) -> None:
        target = self.directory / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def put(self, data: bytes, *, filename: str, content_type: str) -> StoredBlob:
        key = uuid4().hex
        rel_path = self.relative_path(key, filename)
        await anyio.to_thread.run_sync(self._write, rel_path, data)
        return StoredBlob(key=key, url=f"{self.public_base_url}/{quote(rel_path)}")
