from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Unauthenticated and Unauthorized share one public face so a caller cannot
# tell a missing record from someone else's record.
NOT_ALLOWED_CODE = "unauthorized"
NOT_ALLOWED_MESSAGE = "not allowed"


@dataclass(slots=True)
class DomainError(Exception):
    code: str
    message: str
    details: Any = None
    status_code: int = 400

    def __str__(self) -> str:
        return self.message


class ValidationFailure(DomainError):
    """Unacceptable input, reported to the user before anything is stored."""

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__("validation_error", message, details, 400)


class Unauthenticated(DomainError):
    def __init__(self, reason: str = "no principal") -> None:
        super().__init__(NOT_ALLOWED_CODE, NOT_ALLOWED_MESSAGE, None, 401)
        self.reason = reason


class Unauthorized(DomainError):
    """Principal known, bill out of its scope (or absent)."""

    def __init__(self, reason: str = "out of scope") -> None:
        super().__init__(NOT_ALLOWED_CODE, NOT_ALLOWED_MESSAGE, None, 401)
        self.reason = reason


class UploadFailure(DomainError):
    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__("upload_failed", message, details, 502)


class StoreFailure(DomainError):
    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__("store_failure", message, details, 500)


class ConflictError(DomainError):
    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__("conflict", message, details, 409)
