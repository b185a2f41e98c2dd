from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..merge import merge_with_changes
from ..models.sync_run import SyncRun
from . import document_service
from .cloud_service import CloudReplica, CloudSyncError
from .document_service import ConflictError

logger = logging.getLogger(__name__)

def _now() -> datetime:
    return datetime.now(timezone.utc)

def replicate(db: Session, replica: CloudReplica) -> SyncRun:
    """Bidirectional last-writer-wins replication with the cloud replica.

    Pull: cloud documents are merged into the local store.
    Push: the merged local collection is merged into the cloud copy, which is
    rewritten only when something changed. Every attempt is recorded.
    """
    run = SyncRun(success=False)
    db.add(run)
    db.commit()
    db.refresh(run)

    try:
        cloud_docs = replica.fetch()
        pulled = document_service.merge_documents(db, cloud_docs)

        local_docs = document_service.list_documents(db)
        pushed = merge_with_changes(cloud_docs, local_docs)
        if pushed.changed:
            replica.store(pushed.pins)

        run.success = True
        run.error_text = None
        run.pulled = len(pulled.changed)
        run.pushed = len(pushed.changed)
        run.local_doc_count = len(local_docs)
        run.cloud_doc_count = len(pushed.pins)
        logger.info(
            "Replicated with %s: pulled=%d pushed=%d local=%d cloud=%d",
            replica.uri, run.pulled, run.pushed, run.local_doc_count, run.cloud_doc_count,
        )
    except (CloudSyncError, ConflictError) as e:
        db.rollback()
        run.success = False
        run.error_text = str(e)
        logger.error("Replication with %s failed: %s", replica.uri, e)

    run.finished_at = _now()
    db.commit()
    db.refresh(run)
    return run

def last_successful_run(db: Session) -> Optional[SyncRun]:
    return (
        db.query(SyncRun)
        .filter(SyncRun.success.is_(True))
        .order_by(SyncRun.id.desc())
        .first()
    )

def sync_status(db: Session, replica: Optional[CloudReplica]) -> dict:
    cloud_count = None
    if replica is not None:
        # best-effort: an unreachable cloud only blanks the count
        try:
            cloud_count = replica.count()
        except CloudSyncError as e:
            logger.warning("Cloud status unavailable: %s", e)

    last = last_successful_run(db)
    return {
        "localDocCount": document_service.count_documents(db),
        "cloudDocCount": cloud_count,
        "cloudEnabled": replica is not None,
        "lastSync": last.finished_at.isoformat() if last and last.finished_at else None,
    }
