"""
Alert Endpoints
POST /api/v1/alerts - Create and dispatch a manual alert
GET  /api/v1/alerts - List alerts (all, active, acknowledged)
GET  /api/v1/alerts/{alert_id} - Alert detail
POST /api/v1/alerts/{alert_id}/acknowledge - Acknowledge an alert
GET  /api/v1/alerts/{alert_id}/notifications - Notification history
POST /api/v1/alerts/recipients - Preview recipients for a node selection
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status as http_status
from pydantic import BaseModel, ConfigDict, Field

from cloudburst.api.dependencies import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["alerts"])


# Request models
class CreateAlertRequest(BaseModel):
    """Request model for a manual alert"""

    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = Field(None, description="Alert text, at most 500 characters")
    severity: str = Field("warning", description="warning or critical")
    affected_nodes: List[str] = Field(
        default_factory=list, alias="affectedNodes", description="Affected node ids"
    )
    send_sms: bool = Field(False, alias="sendSMS", description="Text associated contacts")


class AcknowledgeAlertRequest(BaseModel):
    """Request model for acknowledging an alert"""

    model_config = ConfigDict(populate_by_name=True)

    acknowledged_by: str = Field("analytical", alias="acknowledgedBy")


@router.post(
    "/alerts",
    status_code=http_status.HTTP_201_CREATED,
    summary="Create alert",
    description="Write the alert, link affected nodes, notify contacts"
)
async def create_alert(
    request: CreateAlertRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    result = await container.alert_dispatcher.create_alert(
        message=request.message,
        severity=request.severity,
        affected_node_ids=request.affected_nodes,
        send_sms=request.send_sms,
    )
    return result.to_dict()


@router.get("/alerts", summary="List alerts")
async def list_alerts(
    status: str = Query("all", description="all, active or acknowledged"),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    alerts = container.alert_dispatcher.list_alerts(status)
    return {
        "total": len(alerts),
        "alerts": [alert.to_document() for alert in alerts],
    }


@router.post("/alerts/recipients", summary="Preview alert recipients")
async def preview_recipients(
    affected_nodes: List[str] = Body(..., embed=True, alias="affectedNodes"),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    contacts = container.contact_registry.recipients_for_nodes(affected_nodes)
    return {
        "recipients": [contact.phone for contact in contacts],
        "contacts": [contact.to_document() for contact in contacts],
    }


@router.get("/alerts/{alert_id}", summary="Get alert")
async def get_alert(
    alert_id: str,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return container.alert_dispatcher.get_alert(alert_id).to_document()


@router.post("/alerts/{alert_id}/acknowledge", summary="Acknowledge alert")
async def acknowledge_alert(
    alert_id: str,
    request: Optional[AcknowledgeAlertRequest] = None,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    acknowledged_by = request.acknowledged_by if request else "analytical"
    alert = container.alert_dispatcher.acknowledge_alert(alert_id, acknowledged_by)
    return alert.to_document()


@router.get("/alerts/{alert_id}/notifications", summary="Alert notification history")
async def alert_notifications(
    alert_id: str,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    container.alert_dispatcher.get_alert(alert_id)
    notifications = container.notifications.get_alert_notifications(alert_id)
    return {"alertId": alert_id, "notifications": notifications}
