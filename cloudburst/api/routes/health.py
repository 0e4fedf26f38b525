"""
Health Check Endpoint
GET /api/v1/health - Store, SMS provider and host resource status
"""
import asyncio
import logging
import os
import time
from typing import Dict, List, Optional

import psutil
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cloudburst.api.dependencies import ServiceContainer, get_container
from cloudburst.store import RealtimeStore, SQLiteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])

API_VERSION = "1.0.0"
RESOURCE_LIMIT_PERCENT = 90.0
_STARTED_AT = time.time()


class StoreHealth(BaseModel):
    connected: bool
    backend: str
    node_count: Optional[int] = None
    size_mb: Optional[float] = None
    error: Optional[str] = None


class SystemHealth(BaseModel):
    """Host usage of the machine running the API"""
    cpu_percent: float
    memory_percent: float
    disk_percent: float
    uptime_seconds: float


class ComponentHealth(BaseModel):
    status: str = Field(..., description="healthy or degraded")
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy, degraded or unhealthy")
    timestamp: float
    version: str = API_VERSION
    uptime_seconds: float
    store: StoreHealth
    system: SystemHealth
    components: Dict[str, ComponentHealth] = Field(default_factory=dict)


def _probe_store(store: RealtimeStore) -> StoreHealth:
    """Read the nodes collection once; any failure means disconnected"""
    backend = type(store).__name__
    try:
        node_count = len(store.get("nodes") or {})
    except Exception as e:
        logger.error(f"Store probe failed on {backend}: {e}")
        return StoreHealth(connected=False, backend=backend, error=str(e))

    size_mb = store.db_manager.get_size_mb() if isinstance(store, SQLiteStore) else None
    return StoreHealth(connected=True, backend=backend, node_count=node_count, size_mb=size_mb)


def _probe_host() -> SystemHealth:
    return SystemHealth(
        cpu_percent=psutil.cpu_percent(interval=0.1),
        memory_percent=psutil.virtual_memory().percent,
        disk_percent=psutil.disk_usage(os.getcwd()).percent,
        uptime_seconds=round(time.time() - _STARTED_AT, 1),
    )


def _overloaded(system: SystemHealth) -> List[str]:
    usage = {
        "cpu": system.cpu_percent,
        "memory": system.memory_percent,
        "disk": system.disk_percent,
    }
    return [name for name, percent in usage.items() if percent > RESOURCE_LIMIT_PERCENT]


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check(container: ServiceContainer = Depends(get_container)) -> HealthResponse:
    """
    Monitoring backend health.

    `unhealthy` when the store cannot be read, `degraded` when the host is
    above 90% CPU, memory or disk, otherwise `healthy`. SMS and simulator
    state are reported as components and never change the overall status.
    """
    store_health, system_health = await asyncio.gather(
        asyncio.to_thread(_probe_store, container.store),
        asyncio.to_thread(_probe_host),
    )

    if not store_health.connected:
        overall = "unhealthy"
    elif _overloaded(system_health):
        overall = "degraded"
        logger.warning(f"Host resources above limit: {', '.join(_overloaded(system_health))}")
    else:
        overall = "healthy"

    sms = container.sms_client.status()
    components = {
        "sms": ComponentHealth(status="healthy" if sms.configured else "degraded", message=sms.status),
        "simulator": ComponentHealth(
            status="healthy", message="Running" if container.simulator.running else "Stopped"
        ),
    }

    return HealthResponse(
        status=overall,
        timestamp=time.time(),
        uptime_seconds=system_health.uptime_seconds,
        store=store_health,
        system=system_health,
        components=components,
    )


@router.get("/health/fast", summary="Liveness")
async def fast_health():
    """Answers without touching the store or the host counters."""
    return {"status": "healthy", "timestamp": time.time(), "version": API_VERSION}
