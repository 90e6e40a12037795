from __future__ import annotations

from dataclasses import asdict
from typing import Any

from sqlalchemy.engine import Row

from billed.domain.enums import Role
from billed.domain.models.bill import Bill
from billed.domain.models.principal import Principal

_BILL_COLUMNS = tuple(Bill.__dataclass_fields__)


def row_to_dict(row: Row[Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return dict(row._mapping)


def bill_from_row(row: Row[Any] | None) -> Bill | None:
    data = row_to_dict(row)
    if data is None:
        return None
    return Bill(**{key: data[key] for key in _BILL_COLUMNS})


def bill_to_row(bill: Bill) -> dict[str, Any]:
    return asdict(bill)


def principal_from_row(row: Row[Any] | None) -> Principal | None:
    data = row_to_dict(row)
    if data is None:
        return None
    return Principal(email=str(data["email"]), role=Role(str(data["role"])))
