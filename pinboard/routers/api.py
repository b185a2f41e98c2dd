from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..services import document_service
from ..services.cloud_service import CloudReplica, get_replica
from ..services.document_service import ConflictError
from ..services.sync_service import replicate, sync_status

router = APIRouter(prefix="/api")

def get_cloud_replica() -> Optional[CloudReplica]:
    return get_replica()

def _saved(row) -> dict:
    return {"ok": True, "id": row.doc_id, "rev": row.rev}

# -------- documents --------

@router.get("/documents", name="list_documents")
def list_documents(db: Session = Depends(get_db)):
    return document_service.list_documents(db)

@router.get("/documents/{doc_id}", name="get_document")
def get_document(doc_id: str, db: Session = Depends(get_db)):
    doc = document_service.get_document(db, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="not_found")
    return doc

@router.post("/documents", name="create_document")
def create_document(payload: dict = Body(...), db: Session = Depends(get_db)):
    # create or replace, keyed by _id
    try:
        row = document_service.put_document(db, payload)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _saved(row)

@router.put("/documents/{doc_id}", name="update_document")
def update_document(doc_id: str, payload: dict = Body(...), db: Session = Depends(get_db)):
    try:
        row = document_service.put_document(db, payload, doc_id=doc_id, expected_rev=payload.get("_rev"))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _saved(row)

@router.delete("/documents/{doc_id}", name="delete_document")
def delete_document(doc_id: str, db: Session = Depends(get_db)):
    try:
        rev = document_service.delete_document(db, doc_id)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if rev is None:
        raise HTTPException(status_code=404, detail="not_found")
    return {"ok": True, "id": doc_id, "rev": rev}

# -------- cloud sync --------

@router.post("/sync", name="trigger_sync")
def trigger_sync(db: Session = Depends(get_db), replica: Optional[CloudReplica] = Depends(get_cloud_replica)):
    if replica is None:
        raise HTTPException(status_code=503, detail="cloud sync is not configured")
    run = replicate(db, replica)
    if not run.success:
        raise HTTPException(status_code=502, detail=run.error_text or "cloud sync failed")
    return {
        "ok": True,
        "runId": run.id,
        "pulled": run.pulled,
        "pushed": run.pushed,
        "localDocCount": run.local_doc_count,
        "cloudDocCount": run.cloud_doc_count,
    }

@router.get("/sync/status", name="sync_status")
def get_sync_status(db: Session = Depends(get_db), replica: Optional[CloudReplica] = Depends(get_cloud_replica)):
    return sync_status(db, replica)
