"""
Audits API
==========

Endpoints:
- POST /api/audits/{document_id}         - Audit a gazette document (or return the existing audit)
- POST /api/audits/{document_id}/shared  - Mark an audit as shared
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from radar.errors import AnalysisError, LocalCommitError, RecordValidationError
from services.container import AuditServices

from api.dependencies import analysis_http_error, get_services, validation_http_error
from api.history import HistoryItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audits", tags=["Audits"])


class AuditResponse(BaseModel):
    item: HistoryItem
    findings: Dict[str, Any]
    cached: bool
    synthetic: bool
    remote_warning: Optional[str] = None


@router.post("/{document_id}", response_model=AuditResponse)
async def run_audit(
    document_id: str,
    lang: Optional[str] = Query(None, pattern="^(es|en)$"),
    wait_remote: bool = Query(False, description="Wait for the remote save and report its warning"),
    services: AuditServices = Depends(get_services),
):
    """
    Audit one document.

    Analysis failures map to 401 (credential), 503 (unavailable) or
    502 (malformed); history is left untouched in every case.
    """
    if not services.reconciler.view:
        await services.reconciler.reconcile()

    try:
        outcome = await services.audits.audit(document_id, lang)
    except AnalysisError as e:
        logger.warning(f"⚠️  Audit of {document_id} failed ({e.category}): {e}")
        raise analysis_http_error(e)
    except RecordValidationError as e:
        raise validation_http_error(e)
    except LocalCommitError as e:
        raise HTTPException(status_code=500, detail=str(e))

    remote_warning = None
    if outcome.write is not None and wait_remote:
        remote_warning = await outcome.write.remote_warning()
    if not outcome.cached:
        await services.reconciler.reconcile()

    return AuditResponse(
        item=HistoryItem.from_record(outcome.record),
        findings=outcome.record.findings,
        cached=outcome.cached,
        synthetic=outcome.synthetic,
        remote_warning=remote_warning,
    )


@router.post("/{document_id}/shared", response_model=HistoryItem)
async def mark_shared(
    document_id: str,
    services: AuditServices = Depends(get_services),
):
    try:
        record = await services.audits.mark_shared(document_id)
    except LocalCommitError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if record is None:
        raise HTTPException(status_code=404, detail=f"No local audit for {document_id}")
    return HistoryItem.from_record(record)
