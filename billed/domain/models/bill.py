from __future__ import annotations

from dataclasses import dataclass

from billed.domain.enums import BillStatus

NO_ATTACHMENT = "no attachment"
DEFAULT_PCT = 20

# Fields a caller may write; id and email belong to the record itself.
WRITABLE_FIELDS = (
    "name",
    "type",
    "commentary",
    "date",
    "amount",
    "vat",
    "pct",
    "status",
    "comment_admin",
)


@dataclass(slots=True)
class Bill:
    id: str
    email: str
    name: str = ""
    type: str = ""
    commentary: str = ""
    date: str = ""
    amount: int = 0
    vat: str = ""
    pct: int = DEFAULT_PCT
    status: str = BillStatus.PENDING.value
    comment_admin: str = ""
    file_name: str = NO_ATTACHMENT
    file_path: str = NO_ATTACHMENT


@dataclass(frozen=True, slots=True)
class UploadedAttachment:
    """Result of the upload step, threaded into the finalize step of a two-phase create."""

    key: str
    file_url: str
    file_name: str


def normalize_pct(value: object) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_PCT
    try:
        pct = int(str(value).strip())
    except ValueError:
        return DEFAULT_PCT
    return pct or DEFAULT_PCT


def file_url(file_path: str | None, public_base_url: str) -> str | None:
    path = str(file_path or "").strip()
    # "null" is what older records carry instead of the sentinel.
    if not path or path in {NO_ATTACHMENT, "null"}:
        return None
    if path.startswith(("http://", "https://")):
        return path
    return f"{public_base_url.rstrip('/')}/{path.lstrip('/')}"
