"""
Unit tests for the map projection and the dashboard snapshot
"""
import pytest
from unittest.mock import Mock

from cloudburst.core.timeutils import MINUTE_MS
from cloudburst.models.node import Node
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.alerts.alert_dispatcher import AlertDispatcher
from cloudburst.services.contacts.contact_registry import ContactRegistry
from cloudburst.services.mapping.dashboard import DashboardService
from cloudburst.services.mapping.mesh import (
    DEFAULT_CENTER,
    build_connections,
    build_markers,
    exclusion_reason,
    haversine_km,
    map_center,
)
from cloudburst.services.registry.node_registry import NodeRegistry
from cloudburst.services.status.classifier import TIERED_THRESHOLDS
from cloudburst.store import InMemoryStore

NOW = 1_700_000_000_000


def make_node(node_id, latitude=30.0, longitude=79.0, nearby=None, last_update=None, **metadata):
    metadata.update({"name": node_id.title(), "latitude": latitude, "longitude": longitude})
    if nearby is not None:
        metadata["nearbyNodes"] = nearby
    realtime = {"lastUpdate": last_update} if last_update else {}
    return Node.from_document(node_id, {"metadata": metadata, "realtime": realtime})


class TestHaversine:

    @pytest.mark.unit
    def test_one_degree_of_latitude(self):
        assert haversine_km((30.0, 79.0), (31.0, 79.0)) == pytest.approx(111.195, abs=0.01)

    @pytest.mark.unit
    def test_same_point(self):
        assert haversine_km((30.0, 79.0), (30.0, 79.0)) == 0


class TestMarkers:

    @pytest.mark.unit
    @pytest.mark.parametrize("latitude,longitude,reason", [
        (None, 79.0, "Missing latitude"),
        ("", 79.0, "Missing latitude"),
        ("30.1", 79.0, "Latitude is str, not number"),
        (30.0, 200.0, "Longitude out of range"),
        (-95.0, 79.0, "Latitude out of range"),
    ])
    def test_unplottable_nodes_are_reported(self, latitude, longitude, reason):
        node = make_node("node1", latitude=latitude, longitude=longitude)
        assert exclusion_reason(node) == reason

        markers, excluded = build_markers({"node1": node}, now=NOW)
        assert markers == []
        assert excluded == [{"nodeId": "node1", "reason": reason}]

    @pytest.mark.unit
    def test_missing_metadata(self):
        assert exclusion_reason(Node(node_id="bare")) == "Missing metadata"

    @pytest.mark.unit
    def test_marker_status_and_color(self):
        nodes = {
            "gw1": make_node("gw1", type="gateway", last_update=NOW - MINUTE_MS),
            "node1": make_node("node1", last_update=NOW - 10 * MINUTE_MS),
        }

        markers, excluded = build_markers(nodes, now=NOW)
        by_id = {marker.node_id: marker for marker in markers}

        assert excluded == []
        assert by_id["gw1"].status == "online"
        assert by_id["gw1"].is_gateway is True
        assert by_id["gw1"].color == "#10b981"
        assert by_id["node1"].status == "offline"
        assert by_id["node1"].to_dict()["isGateway"] is False

        tiered, _ = build_markers(nodes, now=NOW, thresholds=TIERED_THRESHOLDS)
        assert {marker.node_id: marker.status for marker in tiered}["node1"] == "warning"


class TestConnections:

    @pytest.mark.unit
    def test_mutual_listing_yields_one_line(self):
        nodes = {
            "node1": make_node("node1", 30.0, 79.0, nearby=["node2", "node1", "ghost"]),
            "node2": make_node("node2", 31.0, 79.0, nearby=["node1"]),
        }
        markers, _ = build_markers(nodes, now=NOW)

        connections = build_connections(nodes, markers)
        assert len(connections) == 1
        assert connections[0].to_dict() == {"source": "node1", "target": "node2", "distanceKm": 111.195}

    @pytest.mark.unit
    def test_unplottable_neighbour_skipped(self):
        nodes = {
            "node1": make_node("node1", nearby=["node2"]),
            "node2": make_node("node2", latitude="bad", nearby=["node1"]),
        }
        markers, _ = build_markers(nodes, now=NOW)
        assert build_connections(nodes, markers) == []

    @pytest.mark.unit
    def test_map_center(self):
        nodes = {"a": make_node("a", 30.0, 78.0), "b": make_node("b", 32.0, 80.0)}
        markers, _ = build_markers(nodes, now=NOW)

        assert map_center(markers) == (31.0, 79.0)
        assert map_center([]) == DEFAULT_CENTER


class TestDashboard:

    @pytest.fixture
    def store(self):
        return InMemoryStore()

    @pytest.fixture
    def dashboard(self, store):
        activity_log = ActivityLog(store)
        nodes = NodeRegistry(store, activity_log)
        nodes.register_node("gw1", {"name": "Gateway", "type": "gateway", "latitude": 30.0, "longitude": 79.0,
                                    "nearbyNodes": ["node1"]})
        nodes.register_node("node1", {"name": "Ridge", "latitude": 30.1, "longitude": 79.0})
        dispatcher = AlertDispatcher(store, nodes, ContactRegistry(store, activity_log), Mock(), activity_log)
        return DashboardService(nodes, dispatcher)

    @pytest.mark.unit
    def test_summary_counts(self, dashboard, store):
        store.set("nodes/gw1/realtime/lastUpdate", NOW - MINUTE_MS)
        store.set("alerts/alert_1", {"id": "alert_1", "message": "Rain", "severity": "warning",
                                     "affectedNodes": ["node1"], "timestamp": NOW, "acknowledged": False})

        summary = dashboard.summary(now=NOW)

        assert summary["totals"] == {
            "nodes": 2,
            "gateways": 1,
            "sensors": 1,
            "online": 1,
            "warning": 0,
            "offline": 1,
            "activeAlerts": 1,
        }
        rows = {row["nodeId"]: row for row in summary["nodes"]}
        assert rows["gw1"]["lastSeen"] == "1 minute ago"
        assert rows["node1"]["lastSeen"] == "Never"
        assert len(summary["map"]["markers"]) == 2
        assert len(summary["map"]["connections"]) == 1
        assert summary["generatedAt"] == NOW
