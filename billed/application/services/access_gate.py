from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from billed.domain.enums import BillStatus
from billed.domain.errors import DomainError, StoreFailure, Unauthenticated, Unauthorized
from billed.domain.models.bill import Bill
from billed.domain.models.principal import Principal
from billed.domain.ports.token_verifier import TokenVerifierPort
from billed.domain.ports.user_directory import UserDirectoryPort
from billed.logger import get_logger


def require_principal(principal: Principal | None) -> Principal:
    if principal is None:
        raise Unauthenticated("operation requires an authenticated principal")
    return principal


def can_read(principal: Principal, bill: Bill) -> bool:
    return principal.is_admin or bill.email == principal.email


def can_write(principal: Principal, bill: Bill) -> bool:
    # Deleting and editing follow the same ownership rule as reading.
    return can_read(principal, bill)


def check_fields(principal: Principal, fields: Mapping[str, Any]) -> None:
    """Only admins review: they alone may annotate or move a bill away from pending."""
    if principal.is_admin:
        return
    if str(fields.get("comment_admin") or "").strip():
        raise Unauthorized("employees cannot write commentAdmin")
    status = fields.get("status")
    if status is not None and status != BillStatus.PENDING.value:
        raise Unauthorized(f"employees cannot set status {status!r}")


def check_editable(principal: Principal, bill: Bill) -> None:
    if not principal.is_admin and bill.status != BillStatus.PENDING.value:
        raise Unauthorized(f"bill already reviewed: {bill.status!r}")


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization`` header; ``None`` when the header is absent."""
    if authorization is None or not authorization.strip():
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("malformed authorization header")
    return token.strip()


class AccessGate:
    def __init__(self, verifier: TokenVerifierPort, directory: UserDirectoryPort) -> None:
        self.verifier = verifier
        self.directory = directory
        self.logger = get_logger()

    async def resolve(self, credential: str) -> Principal:
        try:
            email = self.verifier.verify(credential)
        except ValueError as exc:
            self.logger.warning(f"rejected credential: {exc}")
            raise Unauthenticated("invalid credential") from exc

        try:
            principal = await self.directory.find(email)
        except DomainError:
            raise
        except Exception as exc:
            raise StoreFailure(str(exc)) from exc

        if principal is None:
            self.logger.bind(principal=email).warning("credential names an unknown user")
            raise Unauthenticated("unknown user")
        return principal

    async def resolve_header(self, authorization: str | None) -> Principal | None:
        """Anonymous requests resolve to ``None``; a bad credential is rejected outright."""
        try:
            token = bearer_token(authorization)
        except Unauthenticated as exc:
            self.logger.warning(f"rejected credential: {exc.reason}")
            raise
        if token is None:
            return None
        return await self.resolve(token)
