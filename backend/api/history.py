"""
Audit History API
=================

Endpoints over the reconciled history (remote > bundled snapshot > local cache).

Endpoints:
- GET    /api/history          - Filtered, paginated history
- GET    /api/history/tags     - Selectable tag universe (categories, regions)
- GET    /api/history/export   - Index or full export
- POST   /api/history/import   - Import a full export or a single report
- DELETE /api/history/local    - Clear the local cache tier
"""
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel

from radar.errors import RecordValidationError
from radar.filters import HistoryQuery, distinct_tags
from radar.pagination import BrowseState, PageWindow
from radar.types import AuditRecord
from services.container import AuditServices

from api.dependencies import get_services


router = APIRouter(prefix="/api/history", tags=["History"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class HistoryItem(BaseModel):
    document_id: str
    title: str
    score: Optional[float] = None
    category: Optional[str] = None
    region: Optional[str] = None
    flags: List[str] = []
    recorded_at: int
    shared_at: Optional[int] = None

    @classmethod
    def from_record(cls, record: AuditRecord) -> 'HistoryItem':
        try:
            view = record.view
        except RecordValidationError:
            view = None
        return cls(
            document_id=record.document_id,
            title=record.title,
            score=view.transparency_score if view else None,
            category=view.category if view else None,
            region=view.region if view else None,
            flags=list(view.flags) if view else [],
            recorded_at=record.recorded_at,
            shared_at=record.shared_at,
        )


class HistoryPage(BaseModel):
    items: List[HistoryItem]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    start_index: int
    end_index: int
    show_controls: bool


class ImportResult(BaseModel):
    accepted: int
    rejected: int
    errors: List[str] = []


class ClearResult(BaseModel):
    cleared: bool
    total_items: int


def page_response(window: PageWindow) -> HistoryPage:
    return HistoryPage(
        items=[HistoryItem.from_record(r) for r in window.items],
        page=window.page,
        page_size=window.page_size,
        total_items=window.total_items,
        total_pages=window.total_pages,
        start_index=window.start_index,
        end_index=window.end_index,
        show_controls=window.show_controls,
    )


def build_query(
    q: Optional[str] = Query(None, description="Substring of title or document id"),
    min_score: Optional[float] = Query(None, ge=0, le=100),
    max_score: Optional[float] = Query(None, ge=0, le=100),
    tags: List[str] = Query(default=[]),
) -> HistoryQuery:
    return HistoryQuery.build(text=q, min_score=min_score, max_score=max_score, tags=tags)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=HistoryPage)
async def list_history(
    query: HistoryQuery = Depends(build_query),
    page: int = Query(1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    services: AuditServices = Depends(get_services),
):
    """
    Reconciled history, filtered then paginated.

    Out-of-range pages are clamped, never an error.
    """
    records = await services.reconciler.reconcile()
    state = BrowseState(query=query, page=page, page_size=page_size or services.page_size)
    return page_response(state.window(records))


@router.get("/tags", response_model=List[str])
async def list_tags(services: AuditServices = Depends(get_services)):
    """Sorted categories and regions across the history."""
    records = await services.reconciler.reconcile()
    return distinct_tags(records)


@router.get("/export")
async def export_history(
    format: str = Query("index", pattern="^(index|full|summary)$"),
    query: HistoryQuery = Depends(build_query),
    services: AuditServices = Depends(get_services),
) -> List[dict]:
    return await services.exchange.export(format, query)


@router.post("/import", response_model=ImportResult)
async def import_history(
    payload: Any = Body(...),
    services: AuditServices = Depends(get_services),
):
    """Import a full export (array) or a single report object."""
    summary = await services.exchange.import_payload(payload)
    if summary.accepted == 0 and summary.rejected > 0:
        raise HTTPException(
            status_code=422,
            detail={'accepted': 0, 'rejected': summary.rejected, 'errors': summary.errors},
        )
    await services.reconciler.reconcile()
    return ImportResult(accepted=summary.accepted, rejected=summary.rejected, errors=summary.errors)


@router.delete("/local", response_model=ClearResult)
async def clear_local(services: AuditServices = Depends(get_services)):
    """Clear the local cache tier. Remote and bundled data are untouched."""
    await services.reconciler.clear_local()
    records = await services.reconciler.reconcile()
    return ClearResult(cleared=True, total_items=len(records))
