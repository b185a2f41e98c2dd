from __future__ import annotations
from datetime import datetime

from sqlalchemy import DateTime, func, Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base

class SyncRun(Base):
    __tablename__ = "sync_runs"

    id: Mapped[int] = mapped_column(primary_key=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, default=False)
    error_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # documents changed on each side by the replication
    pulled: Mapped[int] = mapped_column(Integer, default=0)
    pushed: Mapped[int] = mapped_column(Integer, default=0)

    local_doc_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cloud_doc_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
