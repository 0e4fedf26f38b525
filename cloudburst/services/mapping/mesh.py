"""
Map Projection
Node markers and mesh-connection lines computed from node records
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from cloudburst.models.node import Node, NodeType, is_number
from cloudburst.services.status.classifier import (
    DASHBOARD_THRESHOLDS,
    NodeStatus,
    StatusThresholds,
    classify_status,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Default map center (Delhi) when no node is plottable
DEFAULT_CENTER = (28.6139, 77.2090)

STATUS_COLORS = {
    NodeStatus.ONLINE: "#10b981",
    NodeStatus.WARNING: "#f59e0b",
    NodeStatus.OFFLINE: "#ef4444",
}


@dataclass
class MapMarker:
    node_id: str
    name: str
    latitude: float
    longitude: float
    status: str
    color: str
    is_gateway: bool
    last_update: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status,
            "color": self.color,
            "isGateway": self.is_gateway,
            "lastUpdate": self.last_update,
        }


@dataclass
class MeshConnection:
    source: str
    target: str
    distance_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target, "distanceKm": self.distance_km}


def haversine_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Great-circle distance in kilometres between two (lat, lon) points"""
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def exclusion_reason(node: Node) -> Optional[str]:
    """Why a node cannot be plotted, or None if it can"""
    if not node.metadata:
        return "Missing metadata"

    for field, low, high in (("latitude", -90, 90), ("longitude", -180, 180)):
        value = node.metadata.get(field)
        if value is None or value == "":
            return f"Missing {field}"
        if not is_number(value):
            return f"{field.capitalize()} is {type(value).__name__}, not number"
        if not low <= value <= high:
            return f"{field.capitalize()} out of range"
    return None


def build_markers(
    nodes: Dict[str, Node],
    now: Optional[int] = None,
    thresholds: StatusThresholds = DASHBOARD_THRESHOLDS,
) -> Tuple[List[MapMarker], List[Dict[str, Any]]]:
    """
    Project nodes onto map markers.

    Nodes with missing, non-numeric or out-of-range coordinates are left
    out (not repaired) and reported in the second list.

    Returns:
        (markers, excluded) where excluded items are ``{nodeId, reason}``
    """
    markers = []
    excluded = []

    for node_id, node in nodes.items():
        reason = exclusion_reason(node)
        if reason:
            excluded.append({"nodeId": node_id, "reason": reason})
            continue

        latitude, longitude = node.coordinates()
        status = classify_status(node.realtime.last_update, now=now, thresholds=thresholds)
        markers.append(MapMarker(
            node_id=node_id,
            name=node.name,
            latitude=latitude,
            longitude=longitude,
            status=status.value,
            color=STATUS_COLORS[status],
            is_gateway=node.node_type == NodeType.GATEWAY,
            last_update=node.realtime.last_update,
        ))

    if excluded:
        logger.warning(f"{len(excluded)} node(s) not plottable: {excluded}")
    return markers, excluded


def build_connections(nodes: Dict[str, Node], markers: List[MapMarker]) -> List[MeshConnection]:
    """
    Mesh lines from each plotted node to the plotted nodes in its ``nearbyNodes``.

    A pair listed from both ends yields one connection; references to
    unknown or unplottable nodes are ignored.
    """
    positions = {marker.node_id: (marker.latitude, marker.longitude) for marker in markers}
    seen = set()
    connections = []

    for marker in markers:
        for nearby_id in nodes[marker.node_id].nearby_nodes:
            if nearby_id == marker.node_id or nearby_id not in positions:
                continue
            pair = tuple(sorted((marker.node_id, nearby_id)))
            if pair in seen:
                continue
            seen.add(pair)
            connections.append(MeshConnection(
                source=marker.node_id,
                target=nearby_id,
                distance_km=round(haversine_km(positions[marker.node_id], positions[nearby_id]), 3),
            ))
    return connections


def map_center(markers: List[MapMarker]) -> Tuple[float, float]:
    """Mean position of the markers, or the default center"""
    if not markers:
        return DEFAULT_CENTER
    return (
        sum(marker.latitude for marker in markers) / len(markers),
        sum(marker.longitude for marker in markers) / len(markers),
    )
