"""Audit trail entry."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from inkwell.content.models import format_timestamp, parse_timestamp


def new_entry_id() -> str:
    return uuid.uuid4().hex


class AuditEntry(BaseModel):
    """One administrative action: who did what to which resource."""

    id: str = Field(default_factory=new_entry_id)
    username: str
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("details", mode="before")
    @classmethod
    def _decode_details(cls, value: Any) -> Any:
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            return json.loads(value)
        return value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        return parse_timestamp(value)

    def to_row(self) -> dict[str, Any]:
        row = self.model_dump(mode="python")
        for name in ("created_at", "updated_at"):
            value = getattr(self, name)
            row[name] = format_timestamp(value) if value is not None else None
        return row
