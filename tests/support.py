from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pinboard.db import get_db, init_db
from pinboard.schemas import Pin, Position


def make_pin(pin_id: str, time: int, text: str = "", author: str = "pi-test") -> Pin:
    return Pin(id=pin_id, author=author, time=time, pos=Position(x=1.0, y=2.0, z=3.0), text=text)


def memory_session_factory():
    # one shared in-memory database across threads and sessions
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def override_db(app, session_factory) -> None:
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
