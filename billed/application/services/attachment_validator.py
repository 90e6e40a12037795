from __future__ import annotations

from billed.domain.errors import ValidationFailure
from billed.domain.models.blob import IncomingFile

# gif receipts on older records still display, but gif is never accepted for new uploads.
UPLOAD_MEDIA_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})

REJECTION_MESSAGE = "Please upload file having extensions .jpeg/.jpg/.png only."


def normalize_media_type(content_type: str | None) -> str:
    return str(content_type or "").split(";", 1)[0].strip().lower()


def validate_attachment(file: IncomingFile) -> IncomingFile:
    """
    Reject anything that is not an uploadable image.

    Runs before any storage call; the returned file carries the normalized
    media type that is handed to the blob store.
    """
    media_type = normalize_media_type(file.content_type)
    if media_type not in UPLOAD_MEDIA_TYPES:
        raise ValidationFailure(
            REJECTION_MESSAGE,
            details={"file_name": file.filename, "content_type": media_type or None},
        )
    if not file.data:
        raise ValidationFailure("uploaded file is empty", details={"file_name": file.filename})
    return IncomingFile(filename=file.filename, content_type=media_type, data=file.data)
