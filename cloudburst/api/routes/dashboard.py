"""
Dashboard Endpoint
GET /api/v1/dashboard - Totals, node table, active alerts and map layers
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from cloudburst.api.dependencies import ServiceContainer, get_container
from cloudburst.services.status.classifier import resolve_thresholds

router = APIRouter(prefix="/api/v1", tags=["dashboard"])


@router.get("/dashboard", summary="Dashboard snapshot")
async def dashboard(
    thresholds: str = Query("dashboard", pattern="^(tiered|dashboard)$"),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.dashboard.summary(thresholds=resolve_thresholds(thresholds))
