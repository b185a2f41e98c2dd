from __future__ import annotations
import json
import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, func, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base

# keys managed by the store, never kept in the body
RESERVED_KEYS = ("_id", "_rev")

class Document(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    # type: pin | anything else the backend stores alongside
    doc_type: Mapped[str | None] = mapped_column(String(32), index=True, nullable=True)
    body_json: Mapped[str] = mapped_column(Text)

    # bumped by SQLAlchemy on every UPDATE; a concurrent writer raises StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    rev_hash: Mapped[str] = mapped_column(String(32))

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    @property
    def rev(self) -> str:
        return f"{self.version}-{self.rev_hash}"

    @property
    def body(self) -> dict:
        return json.loads(self.body_json)

    def set_body(self, doc: dict) -> None:
        body = {k: v for k, v in doc.items() if k not in RESERVED_KEYS}
        self.body_json = json.dumps(body, sort_keys=True)
        self.doc_type = body.get("type")
        self.rev_hash = uuid.uuid4().hex

    def to_dict(self) -> dict:
        out = self.body
        out["_id"] = self.doc_id
        out["_rev"] = self.rev
        return out
