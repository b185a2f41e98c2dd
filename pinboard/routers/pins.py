from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import Pin
from ..services import document_service
from ..services.document_service import ConflictError

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/pins", name="list_pins")
def list_pins(db: Session = Depends(get_db)):
    return [pin.model_dump() for pin in document_service.list_pins(db)]

@router.post("/pins", name="push_pins")
def push_pins(payload: Any = Body(None), db: Session = Depends(get_db)):
    """Merge a batch of pins into the store, newest ``time`` wins per id."""
    incoming = payload if isinstance(payload, list) else []
    pins = []
    for raw in incoming:
        try:
            pins.append(Pin.model_validate(raw))
        except ValidationError as e:
            logger.warning("Dropping malformed pin from batch: %s", e)

    try:
        document_service.merge_pins(db, pins)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "count": len(document_service.list_pins(db))}
