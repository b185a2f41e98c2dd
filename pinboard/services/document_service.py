from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..config import settings
from ..merge import MergeResult, item_id, merge_with_changes
from ..models.document import Document
from ..schemas import Pin

logger = logging.getLogger(__name__)


class ConflictError(Exception):
    """A write lost against a concurrent writer or a stale revision."""


def _row(db: Session, doc_id: str) -> Optional[Document]:
    return db.query(Document).filter(Document.doc_id == doc_id).first()

def document_key(doc: dict, doc_id: str | None = None) -> str:
    return str(doc_id or doc.get("_id") or doc.get("id") or uuid.uuid4().hex)

def list_documents(db: Session) -> list[dict]:
    return [row.to_dict() for row in db.query(Document).order_by(Document.id).all()]

def get_document(db: Session, doc_id: str) -> Optional[dict]:
    row = _row(db, doc_id)
    return row.to_dict() if row else None

def count_documents(db: Session) -> int:
    return db.query(func.count(Document.id)).scalar() or 0

def list_pins(db: Session) -> list[Pin]:
    pins = []
    for doc in list_documents(db):
        if not doc.get("pos"):
            continue
        try:
            pins.append(Pin.model_validate({**doc, "id": doc["_id"]}))
        except ValidationError as exc:
            logger.warning("Skipping malformed pin document %s: %s", doc["_id"], exc)
    return pins


def put_document(db: Session, doc: dict, doc_id: str | None = None, expected_rev: str | None = None) -> Document:
    """Create or replace one document.

    ``expected_rev`` turns the write into a compare-and-swap against the stored
    revision; a mismatch (or a missing document) raises ConflictError.
    """
    key = document_key(doc, doc_id)
    row = _row(db, key)
    if expected_rev is not None and (row is None or row.rev != expected_rev):
        raise ConflictError(f"document {key!r} revision conflict")

    if row is None:
        row = Document(doc_id=key)
        db.add(row)
    row.set_body(doc)
    try:
        db.commit()
    except (IntegrityError, StaleDataError) as exc:
        db.rollback()
        raise ConflictError(f"document {key!r} was written concurrently") from exc
    return row

def delete_document(db: Session, doc_id: str) -> Optional[str]:
    """Delete by id; returns the deleted revision, or None if absent."""
    row = _row(db, doc_id)
    if row is None:
        return None
    rev = row.rev
    db.delete(row)
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConflictError(f"document {doc_id!r} was written concurrently") from exc
    return rev


def _merge_once(db: Session, incoming: list[dict]) -> MergeResult:
    rows = {row.doc_id: row for row in db.query(Document).all()}
    stored = [row.to_dict() for row in rows.values()]

    result = merge_with_changes(stored, incoming)
    winners = result.by_id
    for key in result.changed:
        row = rows.get(key)
        if row is None:
            row = Document(doc_id=key)
            db.add(row)
        row.set_body(winners[key])
    db.flush()
    return result

def merge_documents(db: Session, incoming: Iterable[dict], retries: int | None = None) -> MergeResult:
    """Merge a batch into the store (newest ``time`` wins per id) in one transaction.

    Losing a write race re-reads and re-merges from scratch.
    """
    batch = [doc for doc in incoming if isinstance(doc, dict) and item_id(doc)]
    attempts = max(1, retries if retries is not None else settings.MERGE_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            result = _merge_once(db, batch)
            db.commit()
            return result
        except (IntegrityError, StaleDataError) as exc:
            db.rollback()
            logger.warning("Merge attempt %d/%d lost a write race: %s", attempt, attempts, exc)
    raise ConflictError(f"merge not applied after {attempts} attempts")

def merge_pins(db: Session, pins: Iterable[Pin]) -> MergeResult:
    return merge_documents(db, [pin.to_document() for pin in pins])
