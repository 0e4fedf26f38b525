"""
Settings Endpoints
GET /api/v1/settings - Thresholds and system settings
PUT /api/v1/settings/thresholds - Replace alert thresholds
PUT /api/v1/settings/system - Replace system settings
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from cloudburst.api.dependencies import ServiceContainer, get_container

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("", summary="Get settings")
async def get_settings(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.settings.load().model_dump(by_alias=True)


@router.put("/thresholds", summary="Save alert thresholds")
async def save_thresholds(
    thresholds: Dict[str, Any] = Body(...),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.settings.save_thresholds(thresholds).model_dump(by_alias=True)


@router.put("/system", summary="Save system settings")
async def save_system(
    system: Dict[str, Any] = Body(...),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.settings.save_system(system).model_dump(by_alias=True)
