from __future__ import annotations

from dataclasses import dataclass

from billed.domain.enums import Role


@dataclass(frozen=True, slots=True)
class Principal:
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
