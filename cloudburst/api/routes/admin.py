"""
Administration Endpoints
GET  /api/v1/admin/export - Dump nodes, alerts, contacts and logs
POST /api/v1/admin/import - Restore nodes, alerts and contacts
POST /api/v1/admin/reset - Remove everything (requires "DELETE")
POST /api/v1/admin/cleanup - Delete history older than N days
POST /api/v1/admin/simulator/start - Start the reading simulator
POST /api/v1/admin/simulator/stop - Stop the reading simulator
POST /api/v1/admin/simulator/generate-history - Backfill history
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, ConfigDict, Field

from cloudburst.api.dependencies import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


class ResetRequest(BaseModel):
    confirmation: str = Field("", description="Must be DELETE")


class CleanupRequest(BaseModel):
    days: Optional[int] = Field(None, description="Age in days; defaults to the retention setting")


class SimulatorStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    interval_seconds: Optional[float] = Field(None, alias="intervalSeconds", gt=0)


class HistoryBackfillRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: Optional[str] = Field(None, alias="nodeId", description="Omit for every node")
    hours_back: int = Field(24, alias="hoursBack", ge=1, le=24 * 30)
    interval_minutes: int = Field(10, alias="intervalMinutes", ge=1, le=24 * 60)


@router.get("/export", summary="Export all data")
async def export_data(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.admin.export_all()


@router.post("/import", summary="Import data")
async def import_data(
    payload: Dict[str, Any] = Body(...),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return {"imported": container.admin.import_data(payload)}


@router.post("/reset", summary="Reset system")
async def reset_system(
    request: ResetRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    await container.simulator.stop()
    container.admin.reset_system(request.confirmation)
    return {"status": "reset"}


@router.post("/cleanup", summary="Delete old history")
async def cleanup(
    request: CleanupRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    days = request.days
    if days is None:
        days = container.settings.load().system.data_retention
    deleted = container.history.cleanup_old_data(days)
    return {"deleted": deleted, "days": days}


@router.post("/simulator/start", summary="Start simulator")
async def start_simulator(
    request: Optional[SimulatorStartRequest] = None,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    interval = container.config.simulator_interval_seconds
    if request and request.interval_seconds:
        interval = request.interval_seconds
    await container.simulator.start(interval)
    return {"running": container.simulator.running, "intervalSeconds": interval}


@router.post("/simulator/stop", summary="Stop simulator")
async def stop_simulator(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    await container.simulator.stop()
    return {"running": container.simulator.running}


@router.post("/simulator/generate-history", summary="Backfill history")
async def generate_history(
    request: HistoryBackfillRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    simulator = container.simulator
    if request.node_id:
        written = {
            request.node_id: simulator.generate_historical_data(
                request.node_id, request.hours_back, request.interval_minutes
            )
        }
    else:
        written = simulator.generate_historical_data_for_all(
            request.hours_back, request.interval_minutes
        )
    logger.info(f"History backfill wrote {sum(written.values())} rows")
    return {"written": written}
