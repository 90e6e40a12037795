from __future__ import annotations

from enum import StrEnum


class BillStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REFUSED = "refused"


class Role(StrEnum):
    EMPLOYEE = "Employee"
    ADMIN = "Admin"
