from __future__ import annotations

from urllib.parse import quote

from billed.domain.errors import DomainError, UploadFailure
from billed.domain.models.bill import UploadedAttachment
from billed.domain.models.blob import IncomingFile
from billed.domain.ports.blob_store import BlobStorePort
from billed.logger import get_logger


class AttachmentUploader:
    def __init__(self, blob_store: BlobStorePort, public_base_url: str) -> None:
        self.blob_store = blob_store
        self.public_base_url = public_base_url.rstrip("/")
        self.logger = get_logger()

    def fallback_url(self, file_name: str) -> str:
        return f"{self.public_base_url}/{quote(file_name)}"

    async def upload(self, file: IncomingFile) -> UploadedAttachment:
        try:
            blob = await self.blob_store.put(
                file.data,
                filename=file.filename,
                content_type=file.content_type,
            )
        except DomainError:
            raise
        except Exception as exc:
            self.logger.opt(exception=True).error(f"attachment upload failed name={file.filename!r}")
            raise UploadFailure(str(exc) or "upload failed") from exc

        # A store may legitimately answer with a key only.
        url = blob.url or self.fallback_url(file.filename)
        self.logger.bind(bill_id=blob.key).info(
            f"attachment stored name={file.filename!r} bytes={len(file.data)}"
        )
        return UploadedAttachment(key=blob.key, file_url=url, file_name=file.filename)
