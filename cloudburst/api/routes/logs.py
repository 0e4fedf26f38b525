"""
Activity Log Endpoints
GET /api/v1/logs - Filtered, paginated activity log (newest first)
GET /api/v1/logs/export - Filtered entries as CSV
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from cloudburst.api.dependencies import ServiceContainer, get_container
from cloudburst.core.timeutils import current_millis
from cloudburst.services.activity.activity_log import LogQuery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["logs"])


def log_query(
    type_group: str = Query("all", alias="type", description="Log type group filter"),
    date_range: str = Query("all", alias="range", description="24h, 7d, 30d or all"),
    search: str = Query("", description="Case-insensitive message filter"),
) -> LogQuery:
    return LogQuery(type_group=type_group, date_range=date_range, search=search)


@router.get("/logs", summary="List activity log entries")
async def list_logs(
    limit: int = Query(100, ge=1, le=1000),
    cursor: Optional[str] = Query(None, description="nextCursor of the previous page"),
    query: LogQuery = Depends(log_query),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    page = container.activity_log.page(limit=limit, cursor=cursor, query=query)
    return page.to_dict()


@router.get("/logs/export", summary="Export activity log as CSV", response_class=PlainTextResponse)
async def export_logs(
    limit: int = Query(1000, ge=1, le=10000),
    query: LogQuery = Depends(log_query),
    container: ServiceContainer = Depends(get_container),
) -> PlainTextResponse:
    page = container.activity_log.page(limit=limit, query=query, now=current_millis())
    logger.info(f"Exporting {len(page.entries)} log entries")
    return PlainTextResponse(
        container.activity_log.to_csv(page.entries),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=system_logs.csv"},
    )
