"""
Node Registry
Registration, editing and removal of sensor/gateway nodes, plus the sensor
write path (realtime update and history append)
"""
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Optional

from cloudburst.core.error_handling import (
    DuplicateIdError,
    ResourceNotFoundError,
    ValidationError,
    VerificationError,
)
from cloudburst.core.timeutils import current_millis, normalize_timestamp
from cloudburst.models.log_entry import LogType
from cloudburst.models.node import (
    HistoryReading,
    Node,
    NodeMetadata,
    NodeRealtime,
    NodeType,
    is_number,
)
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.status.classifier import (
    TIERED_THRESHOLDS,
    NodeStatus,
    StatusThresholds,
    classify_status,
)
from cloudburst.store.base import FORBIDDEN_KEY_CHARS, RealtimeStore

logger = logging.getLogger(__name__)

NODES_PATH = "nodes"

EDITABLE_FIELDS = (
    "name",
    "type",
    "description",
    "latitude",
    "longitude",
    "altitude",
    "installedBy",
    "nearbyNodes",
)

READING_FIELDS = ("temperature", "pressure", "altitude", "humidity", "rssi", "rainfall")

SORT_KEYS = ("name", "status", "lastSeen")


def parse_coordinate(value: Any, label: str, low: float, high: float) -> float:
    """
    Parse a latitude/longitude (numbers or numeric strings) and range-check it.

    Raises:
        ValidationError: Missing, non-numeric, non-finite or out of range
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a valid number", details={label.lower(): value})

    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{label} must be a valid number", details={label.lower(): value}
        ) from None

    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a valid number", details={label.lower(): value})

    if not low <= number <= high:
        raise ValidationError(
            f"{label} {number} is out of range. Must be between {low:g} and {high:g}.",
            details={label.lower(): number}
        )
    return number


def parse_altitude(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        altitude = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Altitude must be a valid number", details={"altitude": value}) from None
    if isinstance(value, bool) or not math.isfinite(altitude):
        raise ValidationError("Altitude must be a valid number", details={"altitude": value})
    return altitude


def parse_nearby_nodes(value: Any) -> List[str]:
    """Accept a list of ids or a comma-separated string"""
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ValidationError("nearbyNodes must be a list of node ids")
    return [str(item).strip() for item in items if str(item).strip()]


def parse_node_type(value: Any) -> NodeType:
    try:
        return NodeType.parse(value)
    except ValueError:
        raise ValidationError(
            f"Invalid node type: {value}",
            details={"allowed": [t.value for t in NodeType]}
        ) from None


def validate_node_id(node_id: Any) -> str:
    if not isinstance(node_id, str) or not node_id.strip():
        raise ValidationError("Node ID is required")
    node_id = node_id.strip()
    if "/" in node_id or FORBIDDEN_KEY_CHARS & set(node_id):
        raise ValidationError(
            "Node ID cannot contain / . # $ [ ]", details={"nodeId": node_id}
        )
    return node_id


class NodeRegistry:
    """
    Node records under ``nodes/{id}``

    Registration is a conditional create, so two concurrent registrations of
    the same id cannot both succeed. Edits merge into the metadata subtree
    with last-write-wins semantics. Deleting a node leaves alerts and
    contacts that reference it untouched.
    """

    def __init__(self, store: RealtimeStore, activity_log: Optional[ActivityLog] = None):
        self.store = store
        self.activity_log = activity_log

    def _node_path(self, node_id: str) -> str:
        return f"{NODES_PATH}/{node_id}"

    def _log(self, log_type: LogType, message: str, **metadata):
        if self.activity_log:
            self.activity_log.record(log_type, message, metadata=metadata)

    # -- registration ------------------------------------------------------

    def register_node(self, node_id: str, metadata: Dict[str, Any]) -> Node:
        """
        Validate and create a node.

        Args:
            node_id: Unique node identifier
            metadata: ``name``, ``latitude``, ``longitude`` and optionally
                ``type``, ``altitude``, ``installedBy``, ``description``,
                ``nearbyNodes`` (list or comma-separated string)

        Returns:
            The node as read back from the store

        Raises:
            ValidationError: Bad id, name or coordinates (nothing written)
            DuplicateIdError: A node with this id already exists (untouched)
            VerificationError: The read-back did not return numeric coordinates
        """
        node_id = validate_node_id(node_id)
        metadata = metadata or {}

        name = metadata.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Node name is required")

        latitude = parse_coordinate(metadata.get("latitude"), "Latitude", -90, 90)
        longitude = parse_coordinate(metadata.get("longitude"), "Longitude", -180, 180)
        altitude = parse_altitude(metadata.get("altitude"))
        node_type = parse_node_type(metadata.get("type"))

        now = current_millis()
        node_metadata = NodeMetadata(
            node_id=node_id,
            name=name.strip(),
            type=node_type,
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            description=metadata.get("description") or "",
            installed_by=metadata.get("installedBy") or "Unknown",
            installed_date=NodeMetadata.installed_now(),
            created_at=now,
            nearby_nodes=parse_nearby_nodes(metadata.get("nearbyNodes")),
        )

        document = {
            "metadata": node_metadata.to_document(),
            "realtime": NodeRealtime.zeroed(node_type, altitude).to_document(),
            "history": {},
        }

        if not self.store.create(self._node_path(node_id), document):
            raise DuplicateIdError(
                f"Node ID {node_id} already exists", details={"nodeId": node_id}
            )

        saved = self.store.get(self._node_path(node_id))
        if not isinstance(saved, dict) or not isinstance(saved.get("metadata"), dict):
            raise VerificationError(
                "Failed to verify saved data", details={"nodeId": node_id}
            )

        saved_metadata = saved["metadata"]
        if not (is_number(saved_metadata.get("latitude")) and is_number(saved_metadata.get("longitude"))):
            raise VerificationError(
                "Data saved but coordinates are not in correct format",
                details={
                    "nodeId": node_id,
                    "latitude": saved_metadata.get("latitude"),
                    "longitude": saved_metadata.get("longitude"),
                }
            )

        logger.info(
            f"Node {node_id} registered at ({latitude:.4f}, {longitude:.4f}) as {node_type.value}"
        )
        self._log(
            LogType.NODE_REGISTRATION,
            f"Node {node_id} ({node_metadata.name}) was registered",
            nodeId=node_id,
            type=node_type.value,
        )
        return Node.from_document(node_id, saved)

    # -- edit / delete -----------------------------------------------------

    def edit_node(self, node_id: str, changes: Dict[str, Any]) -> Node:
        """
        Merge ``changes`` into the node metadata (no concurrency check).

        Raises:
            ResourceNotFoundError: Unknown node
            ValidationError: Unknown field, empty name or bad coordinates
        """
        if not self.store.exists(f"{self._node_path(node_id)}/metadata"):
            raise ResourceNotFoundError(f"Node {node_id} not found")

        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(unknown)}",
                details={"editable": list(EDITABLE_FIELDS)}
            )

        values: Dict[str, Any] = {}
        for key, value in changes.items():
            if key == "name":
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError("Node name is required")
                values[key] = value.strip()
            elif key == "latitude":
                values[key] = parse_coordinate(value, "Latitude", -90, 90)
            elif key == "longitude":
                values[key] = parse_coordinate(value, "Longitude", -180, 180)
            elif key == "altitude":
                values[key] = parse_altitude(value)
            elif key == "type":
                values[key] = parse_node_type(value).value
            elif key == "nearbyNodes":
                values[key] = parse_nearby_nodes(value)
            else:
                values[key] = value or ""

        if values:
            self.store.update(f"{self._node_path(node_id)}/metadata", values)

        logger.info(f"Node {node_id} edited: {sorted(values)}")
        self._log(LogType.NODE_EDIT, f"Node {node_id} was edited", nodeId=node_id)
        return self.get_node(node_id)

    def delete_node(self, node_id: str) -> None:
        """
        Remove metadata, realtime and history of a node.

        Raises:
            ResourceNotFoundError: Unknown node
        """
        if not self.store.exists(self._node_path(node_id)):
            raise ResourceNotFoundError(f"Node {node_id} not found")

        self.store.remove(self._node_path(node_id))
        logger.info(f"Node {node_id} deleted")
        self._log(LogType.NODE_DELETION, f"Node {node_id} was deleted", nodeId=node_id)

    # -- reads -------------------------------------------------------------

    def get_node(self, node_id: str) -> Node:
        document = self.store.get(self._node_path(node_id))
        if not isinstance(document, dict):
            raise ResourceNotFoundError(f"Node {node_id} not found")
        return Node.from_document(node_id, document)

    def node_exists(self, node_id: str) -> bool:
        return isinstance(self.store.get(self._node_path(node_id)), dict)

    def get_all(self) -> Dict[str, Node]:
        return self._parse_nodes(self.store.get(NODES_PATH))

    def list_nodes(
        self,
        search: str = "",
        sort_by: Optional[str] = None,
        now: Optional[int] = None,
        thresholds: StatusThresholds = TIERED_THRESHOLDS,
    ) -> List[Node]:
        """
        Nodes matching ``search`` (id or name, case-insensitive).

        Args:
            search: Substring filter
            sort_by: ``name``, ``status`` (warning, online, offline) or
                ``lastSeen`` (newest first); None keeps key order
            now: Reference time for status sorting (epoch ms)
            thresholds: Threshold set for status sorting
        """
        if sort_by is not None and sort_by not in SORT_KEYS:
            raise ValidationError(
                f"Invalid sort key: {sort_by}", details={"allowed": list(SORT_KEYS)}
            )

        needle = (search or "").lower()
        nodes = [
            node for node in self.get_all().values()
            if needle in node.node_id.lower() or needle in node.name.lower()
        ]

        if sort_by == "name":
            nodes.sort(key=lambda node: node.name.lower())
        elif sort_by == "status":
            now = now if now is not None else current_millis()
            nodes.sort(
                key=lambda node: self.status_of(node, now, thresholds).value, reverse=True
            )
        elif sort_by == "lastSeen":
            nodes.sort(key=lambda node: node.realtime.last_update or 0, reverse=True)
        return nodes

    @staticmethod
    def status_of(
        node: Node,
        now: Optional[int] = None,
        thresholds: StatusThresholds = TIERED_THRESHOLDS,
    ) -> NodeStatus:
        return classify_status(node.realtime.last_update, now=now, thresholds=thresholds)

    def on_nodes_changed(self, handler: Callable[[Dict[str, Node]], None]) -> Callable[[], None]:
        """
        Subscribe to the whole ``nodes`` subtree.

        ``handler`` receives ``{node_id: Node}`` immediately and after every
        change. Returns the unsubscribe callable.
        """
        return self.store.subscribe(NODES_PATH, lambda value: handler(self._parse_nodes(value)))

    @staticmethod
    def _parse_nodes(value: Any) -> Dict[str, Node]:
        if not isinstance(value, dict):
            return {}
        nodes = {}
        for node_id, document in value.items():
            if not isinstance(document, dict):
                continue
            try:
                nodes[node_id] = Node.from_document(node_id, document)
            except ValueError as e:
                logger.warning(f"Skipping malformed node {node_id}: {e}")
        return nodes

    # -- sensor write path -------------------------------------------------

    def record_reading(
        self,
        node_id: str,
        reading: Dict[str, Any],
        timestamp: Optional[int] = None,
    ) -> HistoryReading:
        """
        Apply a sensor reading: merge into ``realtime`` and append to ``history``.

        Args:
            node_id: Reporting node
            reading: Any of temperature, pressure, altitude, humidity, rssi,
                rainfall; ``lastUpdate``/``timestamp`` in either stored form
            timestamp: Write time (epoch ms); defaults to now

        Returns:
            The history row written

        Raises:
            ResourceNotFoundError: Unknown node
        """
        if not self.node_exists(node_id):
            raise ResourceNotFoundError(f"Node {node_id} not found")

        write_time = timestamp if timestamp is not None else current_millis()
        seen_at = (
            normalize_timestamp(reading.get("lastUpdate"))
            or normalize_timestamp(reading.get("timestamp"))
            or write_time
        )

        values = {key: reading.get(key) for key in READING_FIELDS if key in reading}
        try:
            history = HistoryReading(timestamp=seen_at, **values)
        except ValueError as e:
            raise ValidationError(
                f"Invalid reading for node {node_id}", details={"errors": str(e)}
            ) from None

        realtime = {key: getattr(history, key) for key in values if key != "rainfall"}
        realtime.update({"lastUpdate": seen_at, "status": NodeStatus.ONLINE.value})

        self.store.update(self._node_path(node_id), {
            **{f"realtime/{key}": value for key, value in realtime.items()},
            f"history/{write_time}": history.to_document(),
        })

        logger.debug(f"Reading recorded for {node_id} at {write_time}")
        return history
