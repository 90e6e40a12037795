from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from billed.domain.models.bill import normalize_pct


class BillPayload(BaseModel):
    """
    Bill fields as the client sends them.

    Clients post the whole form, owner email and file fields included, so
    unknown keys are ignored rather than refused. ``email`` is accepted and
    dropped: the owner always comes from the authenticated principal.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = Field(default=None, max_length=200)
    type: str | None = Field(default=None, max_length=80)
    email: str | None = None
    date: str | None = Field(default=None, max_length=40)
    vat: str | None = Field(default=None, max_length=20)
    pct: int | None = None
    commentary: str | None = None
    status: str | None = Field(default=None, max_length=20)
    comment_admin: str | None = Field(default=None, alias="commentAdmin")
    amount: int | None = None
    file_url: str | None = Field(default=None, alias="fileUrl")
    file_name: str | None = Field(default=None, alias="fileName")

    @field_validator("pct", mode="before")
    @classmethod
    def _coerce_pct(cls, value: Any) -> int | None:
        if value is None or value == "":
            return None
        return normalize_pct(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _blank_amount(cls, value: Any) -> Any:
        return None if value == "" else value

    def to_fields(self) -> dict[str, Any]:
        dumped = self.model_dump(exclude_unset=True, exclude={"email"})
        return {key: value for key, value in dumped.items() if value is not None}
