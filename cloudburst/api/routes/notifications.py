"""
SMS Notification Endpoints
POST /api/v1/notifications/sms - Send an SMS fan-out through the provider
GET  /api/v1/notifications/sms/status - Provider readiness
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from cloudburst.api.dependencies import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


class SMSRequest(BaseModel):
    """Request model for the SMS dispatch endpoint"""

    model_config = ConfigDict(populate_by_name=True)

    recipients: List[str] = Field(default_factory=list, description="E.164 phone numbers")
    message: Optional[str] = None
    alert_id: Optional[str] = Field(None, alias="alertId")
    severity: Optional[str] = None


@router.post(
    "/sms",
    summary="Send SMS",
    description="Send to every recipient once; configured=false when the provider is not set up"
)
async def send_sms(
    request: SMSRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    logger.info(
        f"SMS request: {len(request.recipients)} recipient(s), "
        f"alert={request.alert_id}, severity={request.severity}"
    )
    response = await container.sms_client.send_async(request.recipients, request.message)
    return response.model_dump(by_alias=True, exclude_none=True)


@router.get("/sms/status", summary="SMS provider status")
async def sms_status(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.sms_client.status().model_dump(by_alias=True)
