"""Inbound change records and their per-record outcomes."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PushProperties(BaseModel):
    """Attribute set carried by a change notification."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    callsign: str = "Unknown"
    remarks: str = ""
    type: str | None = None
    how: str | None = None
    time: str | int | None = None
    start: str | int | None = None
    stale: str | int | None = None

    @field_validator("callsign", mode="before")
    @classmethod
    def _default_callsign(cls, value: Any) -> Any:
        if value is None or value == "":
            return "Unknown"
        return value

    @field_validator("remarks", mode="before")
    @classmethod
    def _default_remarks(cls, value: Any) -> Any:
        return "" if value is None else value


class PushRecord(BaseModel):
    """One change notification (a GeoJSON Feature with a correlation id)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    geometry: dict[str, Any]
    properties: PushProperties = Field(default_factory=PushProperties)

    @field_validator("id", mode="before")
    @classmethod
    def _id_non_empty(cls, value: Any) -> str:
        record_id = "" if value is None else str(value).strip()
        if not record_id:
            raise ValueError("id must be non-empty")
        return record_id

    @classmethod
    def from_message(cls, message: str | bytes | dict[str, Any]) -> PushRecord:
        """Parse a queue message body (JSON text or an already decoded dict)."""
        if isinstance(message, (str, bytes)):
            return cls.model_validate(json.loads(message))
        return cls.model_validate(message)

    @property
    def geometry_type(self) -> str | None:
        value = self.geometry.get("type")
        return value if isinstance(value, str) else None


class RecordStatus(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class RecordOutcome(BaseModel):
    """Result of processing one record; never raised, always returned."""

    model_config = ConfigDict(frozen=True)

    record_id: str | None
    status: RecordStatus
    object_id: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != RecordStatus.FAILED
