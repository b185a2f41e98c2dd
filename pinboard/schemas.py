"""Wire models shared by the backend and the client."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

PIN_TYPE = "pin"


class Position(BaseModel):
    x: float
    y: float
    z: float


class Pin(BaseModel):
    """A text annotation fixed at a point of the scan.

    ``time`` is the creation time in epoch milliseconds and doubles as the
    last-writer-wins clock; a missing value counts as 0.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    author: str = ""
    time: int = 0
    pos: Position
    text: str = ""

    @field_validator("time", mode="before")
    @classmethod
    def _missing_time_is_zero(cls, value):
        return value or 0

    @field_validator("author", "text", mode="before")
    @classmethod
    def _missing_text_is_empty(cls, value):
        return value or ""

    def to_document(self) -> dict:
        doc = self.model_dump()
        doc["_id"] = self.id
        doc["type"] = PIN_TYPE
        return doc
