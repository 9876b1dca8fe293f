"""
Gazette Radar API
=================

Endpoints:
- GET /api/gazette/latest - Items of the latest daily summary, flagged when already audited
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from services.container import AuditServices
from services.gazette_client import mark_audited
from utils.url_utils import official_document_url

from api.dependencies import get_services


router = APIRouter(prefix="/api/gazette", tags=["Gazette"])


class GazetteEntry(BaseModel):
    document_id: str
    title: str
    url: str
    department: Optional[str] = None
    section: Optional[str] = None
    already_audited: bool = False


@router.get("/latest", response_model=List[GazetteEntry])
async def latest(
    date: Optional[str] = Query(None, pattern=r"^\d{8}$", description="YYYYMMDD"),
    services: AuditServices = Depends(get_services),
):
    items = await services.gazette.fetch_latest(date)
    await services.reconciler.reconcile()
    items = mark_audited(items, services.reconciler.contains)
    return [
        GazetteEntry(
            document_id=item.document_id,
            title=item.title,
            url=official_document_url(item.document_id, services.gazette_base_url),
            department=item.department,
            section=item.section,
            already_audited=item.already_audited,
        )
        for item in items
    ]
