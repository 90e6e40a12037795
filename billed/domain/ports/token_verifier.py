from __future__ import annotations

from typing import Protocol


class TokenVerifierPort(Protocol):
    def verify(self, token: str) -> str:
        """Return the email claimed by a valid token, raise ValueError otherwise."""
        ...
