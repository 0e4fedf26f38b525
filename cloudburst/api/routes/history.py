"""
History Endpoints
GET /api/v1/nodes/{node_id}/history - Readings within a time window
GET /api/v1/nodes/{node_id}/history/export - Same window as CSV
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from cloudburst.api.dependencies import ServiceContainer, get_container
from cloudburst.services.history.history_service import DEFAULT_WINDOW

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["history"])


@router.get("/nodes/{node_id}/history", summary="Node history")
async def node_history(
    node_id: str,
    window: str = Query(DEFAULT_WINDOW, description="1h, 6h, 24h or 7d"),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    rows = container.history.series(node_id, window)
    return {
        "nodeId": node_id,
        "window": window,
        "count": len(rows),
        "readings": [row.to_document() for row in rows],
    }


@router.get(
    "/nodes/{node_id}/history/export",
    summary="Export node history as CSV",
    response_class=PlainTextResponse,
)
async def export_history(
    node_id: str,
    window: str = Query(DEFAULT_WINDOW),
    container: ServiceContainer = Depends(get_container),
) -> PlainTextResponse:
    rows = container.history.series(node_id, window)
    logger.info(f"Exporting {len(rows)} history rows for {node_id} ({window})")
    return PlainTextResponse(
        container.history.to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={node_id}_{window}.csv"},
    )
