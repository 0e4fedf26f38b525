"""
Node Endpoints
POST   /api/v1/nodes - Register a node
GET    /api/v1/nodes - List nodes (search, sort, status)
GET    /api/v1/nodes/{node_id} - Node detail
PATCH  /api/v1/nodes/{node_id} - Edit node metadata
DELETE /api/v1/nodes/{node_id} - Delete a node
POST   /api/v1/nodes/{node_id}/readings - Sensor write path
"""
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, Query, status as http_status
from pydantic import BaseModel, ConfigDict, Field

from cloudburst.api.dependencies import ServiceContainer, get_container
from cloudburst.core.timeutils import current_millis, format_relative_time
from cloudburst.models.node import Node
from cloudburst.services.status.classifier import (
    StatusThresholds,
    classify_status,
    resolve_thresholds,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["nodes"])


# Request models
class NodeRegistrationRequest(BaseModel):
    """Request model for registering a node"""

    model_config = ConfigDict(populate_by_name=True)

    node_id: Optional[str] = Field(None, alias="nodeId", description="Unique node identifier")
    name: Optional[str] = Field(None, description="Display name")
    type: Optional[str] = Field("sensor", description="sensor or gateway")
    latitude: Union[float, str, None] = Field(None, description="Latitude in [-90, 90]")
    longitude: Union[float, str, None] = Field(None, description="Longitude in [-180, 180]")
    altitude: Union[float, str, None] = Field(None, description="Altitude in metres")
    installed_by: Optional[str] = Field(None, alias="installedBy")
    description: Optional[str] = ""
    nearby_nodes: Union[List[str], str, None] = Field(
        None, alias="nearbyNodes", description="Node ids, list or comma-separated"
    )


def threshold_set(
    thresholds: str = Query("tiered", pattern="^(tiered|dashboard)$", description="Status threshold set")
) -> StatusThresholds:
    return resolve_thresholds(thresholds)


def node_to_dict(node: Node, now: int, thresholds: StatusThresholds) -> Dict[str, Any]:
    last_update = node.realtime.last_update
    return {
        "nodeId": node.node_id,
        "name": node.name,
        "type": node.node_type.value,
        "status": classify_status(last_update, now=now, thresholds=thresholds).value,
        "lastSeen": format_relative_time(last_update, now),
        "metadata": node.metadata,
        "realtime": node.realtime.to_document(),
        "alerts": node.alerts,
    }


@router.post(
    "/nodes",
    status_code=http_status.HTTP_201_CREATED,
    summary="Register node",
    description="Create a node; fails with 409 if the id exists"
)
async def register_node(
    request: NodeRegistrationRequest,
    container: ServiceContainer = Depends(get_container),
    thresholds: StatusThresholds = Depends(threshold_set),
) -> Dict[str, Any]:
    metadata = request.model_dump(by_alias=True, exclude={"node_id"})
    node = container.node_registry.register_node(request.node_id, metadata)
    return node_to_dict(node, current_millis(), thresholds)


@router.get(
    "/nodes",
    summary="List nodes",
    description="Nodes filtered by id/name and sorted by name, status or lastSeen"
)
async def list_nodes(
    search: str = Query("", description="Case-insensitive id/name filter"),
    sort_by: Optional[str] = Query(None, pattern="^(name|status|lastSeen)$"),
    container: ServiceContainer = Depends(get_container),
    thresholds: StatusThresholds = Depends(threshold_set),
) -> Dict[str, Any]:
    now = current_millis()
    nodes = container.node_registry.list_nodes(
        search=search, sort_by=sort_by, now=now, thresholds=thresholds
    )
    return {
        "total": len(nodes),
        "nodes": [node_to_dict(node, now, thresholds) for node in nodes],
    }


@router.get("/nodes/{node_id}", summary="Get node")
async def get_node(
    node_id: str,
    container: ServiceContainer = Depends(get_container),
    thresholds: StatusThresholds = Depends(threshold_set),
) -> Dict[str, Any]:
    node = container.node_registry.get_node(node_id)
    return node_to_dict(node, current_millis(), thresholds)


@router.patch("/nodes/{node_id}", summary="Edit node metadata")
async def edit_node(
    node_id: str,
    changes: Dict[str, Any] = Body(..., description="Metadata fields to overwrite"),
    container: ServiceContainer = Depends(get_container),
    thresholds: StatusThresholds = Depends(threshold_set),
) -> Dict[str, Any]:
    node = container.node_registry.edit_node(node_id, changes)
    return node_to_dict(node, current_millis(), thresholds)


@router.delete("/nodes/{node_id}", summary="Delete node")
async def delete_node(
    node_id: str,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    container.node_registry.delete_node(node_id)
    return {"status": "deleted", "nodeId": node_id}


@router.post(
    "/nodes/{node_id}/readings",
    status_code=http_status.HTTP_201_CREATED,
    summary="Record sensor reading",
    description="Update the node's realtime values and append a history row"
)
async def record_reading(
    node_id: str,
    reading: Dict[str, Any] = Body(...),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    row = container.node_registry.record_reading(node_id, reading)
    return row.to_document()
