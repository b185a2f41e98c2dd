from __future__ import annotations

from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import settings

SQLITE_PREFIX = "sqlite:///"

def _connect_args(url: str) -> dict:
    # FastAPI runs sync endpoints in a threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

class Base(DeclarativeBase):
    pass

def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind: Engine | None = None) -> None:
    bind = bind or engine
    url = str(bind.url)
    if url.startswith(SQLITE_PREFIX):
        path = url[len(SQLITE_PREFIX):]
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    # register tables on Base.metadata
    from .models import document, sync_run  # noqa: F401

    Base.metadata.create_all(bind=bind)
