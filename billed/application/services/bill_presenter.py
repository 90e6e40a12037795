from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from billed.domain.enums import BillStatus
from billed.domain.models.bill import Bill, file_url
from billed.logger import get_logger

# First three letters of the French short month names, capitalized.
_MONTHS = ("Jan", "Fév", "Mar", "Avr", "Mai", "Jui", "Jui", "Aoû", "Sep", "Oct", "Nov", "Déc")

STATUS_LABELS = {
    BillStatus.PENDING.value: "En attente",
    BillStatus.ACCEPTED.value: "Accepté",
    BillStatus.REFUSED.value: "Refusé",
}


def parse_date(raw: object) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def format_date(raw: Any) -> Any:
    """Render "2021-01-01" as "1 Jan. 21"; anything unparsable comes back untouched."""
    parsed = parse_date(raw)
    if parsed is None:
        get_logger().warning(f"unparsable bill date kept as-is: {raw!r}")
        return raw
    return f"{parsed.day} {_MONTHS[parsed.month - 1]}. {parsed.year % 100:02d}"


def format_status(raw: Any) -> Any:
    return STATUS_LABELS.get(raw, raw) if isinstance(raw, str) else raw


def display_sort_key(bill: Bill) -> str:
    # ISO dates order the same as strings, so parsed and unparsed values share one total order.
    parsed = parse_date(bill.date)
    if parsed is not None:
        return parsed.isoformat()
    return str(bill.date or "")


def sort_for_display(bills: Iterable[Bill]) -> list[Bill]:
    """Most recent first; stable for equal keys."""
    return sorted(bills, key=display_sort_key, reverse=True)


class BillPresenter:
    def __init__(self, public_base_url: str) -> None:
        self.public_base_url = public_base_url

    def to_payload(self, bill: Bill) -> dict[str, Any]:
        return {
            "id": bill.id,
            "email": bill.email,
            "name": bill.name,
            "type": bill.type,
            "date": bill.date,
            "vat": bill.vat,
            "pct": bill.pct,
            "commentary": bill.commentary,
            "status": bill.status,
            "commentAdmin": bill.comment_admin,
            "amount": bill.amount,
            "fileName": bill.file_name,
            "fileUrl": file_url(bill.file_path, self.public_base_url),
        }

    def present(self, bill: Bill) -> dict[str, Any]:
        payload = self.to_payload(bill)
        payload["date"] = format_date(bill.date)
        payload["status"] = format_status(bill.status)
        return payload

    def present_many(self, bills: Iterable[Bill]) -> list[dict[str, Any]]:
        return [self.present(bill) for bill in sort_for_display(bills)]
