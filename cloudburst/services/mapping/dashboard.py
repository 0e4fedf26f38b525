"""
Dashboard Service
Status counts, active alerts and the map projection in one snapshot
"""
import logging
from typing import Any, Dict, Optional

from cloudburst.core.timeutils import current_millis, format_relative_time
from cloudburst.models.node import NodeType
from cloudburst.services.alerts.alert_dispatcher import AlertDispatcher
from cloudburst.services.mapping.mesh import build_connections, build_markers, map_center
from cloudburst.services.registry.node_registry import NodeRegistry
from cloudburst.services.status.classifier import (
    DASHBOARD_THRESHOLDS,
    NodeStatus,
    StatusThresholds,
    classify_status,
)

logger = logging.getLogger(__name__)


class DashboardService:
    """Read-only aggregation over nodes and alerts"""

    def __init__(self, node_registry: NodeRegistry, alert_dispatcher: AlertDispatcher):
        self.nodes = node_registry
        self.alerts = alert_dispatcher

    def summary(
        self,
        now: Optional[int] = None,
        thresholds: StatusThresholds = DASHBOARD_THRESHOLDS,
    ) -> Dict[str, Any]:
        """
        Dashboard snapshot.

        Args:
            now: Reference time (epoch ms)
            thresholds: Status threshold set; the main dashboard uses the
                online/offline set, pass ``TIERED_THRESHOLDS`` for warnings
        """
        now = now if now is not None else current_millis()
        nodes = self.nodes.get_all()

        counts = {status.value: 0 for status in NodeStatus}
        node_rows = []
        for node_id, node in nodes.items():
            status = classify_status(node.realtime.last_update, now=now, thresholds=thresholds)
            counts[status.value] += 1
            node_rows.append({
                "nodeId": node_id,
                "name": node.name,
                "type": node.node_type.value,
                "status": status.value,
                "lastUpdate": node.realtime.last_update,
                "lastSeen": format_relative_time(node.realtime.last_update, now),
                "realtime": node.realtime.to_document(),
            })

        markers, excluded = build_markers(nodes, now=now, thresholds=thresholds)
        connections = build_connections(nodes, markers)
        active_alerts = self.alerts.list_alerts("active")
        center = map_center(markers)

        return {
            "totals": {
                "nodes": len(nodes),
                "gateways": sum(1 for node in nodes.values() if node.node_type == NodeType.GATEWAY),
                "sensors": sum(1 for node in nodes.values() if node.node_type == NodeType.SENSOR),
                **counts,
                "activeAlerts": len(active_alerts),
            },
            "nodes": node_rows,
            "activeAlerts": [alert.to_document() for alert in active_alerts],
            "map": {
                "center": {"latitude": center[0], "longitude": center[1]},
                "markers": [marker.to_dict() for marker in markers],
                "connections": [connection.to_dict() for connection in connections],
                "excluded": excluded,
            },
            "generatedAt": now,
        }
