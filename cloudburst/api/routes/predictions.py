"""
Prediction Endpoints
GET /api/v1/predictions - Cloudburst probability per forecast row
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cloudburst.api.dependencies import ServiceContainer, get_container

router = APIRouter(prefix="/api/v1/predictions", tags=["predictions"])


class PredictionResponse(BaseModel):
    success: bool
    predictions: List[Dict[str, Any]]
    date: Optional[str] = None
    message: str = ""


@router.get("", response_model=PredictionResponse, summary="Cloudburst forecast")
async def get_predictions(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.predictions.forecast()
