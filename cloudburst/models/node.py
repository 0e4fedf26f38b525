"""
Node Models
Sensor/gateway metadata, latest readings and history rows
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cloudburst.core.timeutils import normalize_timestamp


class NodeType(str, Enum):
    """Kind of device behind a node record"""
    SENSOR = "sensor"
    GATEWAY = "gateway"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        # Early registrations stored plain sensors as "node"
        if value in (None, "", "node"):
            return cls.SENSOR
        return cls(value)


def is_number(value: Any) -> bool:
    """True for int/float values (bool excluded)"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class NodeMetadata(BaseModel):
    """Registration metadata stored under ``nodes/{id}/metadata``"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    node_id: str = Field(..., alias="nodeId")
    name: str
    type: NodeType = NodeType.SENSOR
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    description: str = ""
    installed_by: str = Field("Unknown", alias="installedBy")
    installed_date: str = Field(..., alias="installedDate")
    created_at: int = Field(..., alias="createdAt")
    nearby_nodes: List[str] = Field(default_factory=list, alias="nearbyNodes")
    status: str = "active"

    @staticmethod
    def installed_now() -> str:
        """Current UTC time in the ISO-8601 form used for ``installedDate``"""
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class NodeRealtime(BaseModel):
    """Latest-known readings under ``nodes/{id}/realtime``"""

    model_config = ConfigDict(populate_by_name=True)

    temperature: Optional[float] = None
    pressure: Optional[float] = None
    altitude: Optional[float] = None
    humidity: Optional[float] = None
    rssi: Optional[float] = None
    last_update: Optional[int] = Field(None, alias="lastUpdate")
    status: str = "offline"

    @field_validator("last_update", mode="before")
    @classmethod
    def _normalize_last_update(cls, value):
        return normalize_timestamp(value)

    @classmethod
    def zeroed(cls, node_type: NodeType, altitude: Optional[float] = None) -> "NodeRealtime":
        """
        Defaults written at registration.

        Gateways carry humidity but no RSSI; sensors the other way round.
        ``last_update`` stays empty so a fresh node reports offline.
        """
        is_gateway = node_type == NodeType.GATEWAY
        return cls(
            temperature=0,
            pressure=0,
            altitude=altitude or 0,
            humidity=0 if is_gateway else None,
            rssi=None if is_gateway else 0,
            last_update=None,
            status="offline",
        )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class HistoryReading(BaseModel):
    """One row of ``nodes/{id}/history``"""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: int
    temperature: Optional[float] = None
    pressure: Optional[float] = None
    altitude: Optional[float] = None
    humidity: Optional[float] = None
    rainfall: Optional[float] = None
    rssi: Optional[float] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value):
        return normalize_timestamp(value)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()


class Node(BaseModel):
    """
    A node as read back from the store.

    ``metadata`` stays a raw mapping: the store enforces nothing, so a record
    written around the service may carry strings or gaps where numbers belong.
    """

    node_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    realtime: NodeRealtime = Field(default_factory=NodeRealtime)
    alerts: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, node_id: str, document: Optional[Dict[str, Any]]) -> "Node":
        document = document or {}
        realtime = document.get("realtime") or {}
        return cls(
            node_id=node_id,
            metadata=document.get("metadata") or {},
            realtime=NodeRealtime.model_validate(realtime),
            alerts=document.get("alerts") or {},
        )

    @property
    def name(self) -> str:
        return self.metadata.get("name") or self.node_id

    @property
    def node_type(self) -> NodeType:
        try:
            return NodeType.parse(self.metadata.get("type"))
        except ValueError:
            return NodeType.SENSOR

    @property
    def nearby_nodes(self) -> List[str]:
        nearby = self.metadata.get("nearbyNodes") or []
        return [str(node_id) for node_id in nearby] if isinstance(nearby, list) else []

    def coordinates(self) -> Optional[Tuple[float, float]]:
        """(lat, lon) if both are numeric and in range, else None"""
        latitude = self.metadata.get("latitude")
        longitude = self.metadata.get("longitude")
        if not (is_number(latitude) and is_number(longitude)):
            return None
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            return None
        return float(latitude), float(longitude)
