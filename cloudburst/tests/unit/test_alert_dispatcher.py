"""
Unit tests for manual alert creation, acknowledgement and listing
"""
import pytest
from unittest.mock import AsyncMock, Mock

from cloudburst.core.error_handling import (
    ResourceNotFoundError,
    StoreError,
    ValidationError,
    VerificationError,
)
from cloudburst.models.notification import DeliveryOutcome, SMSNotificationResult
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.alerts.alert_dispatcher import AlertDispatcher
from cloudburst.services.contacts.contact_registry import ContactRegistry
from cloudburst.services.registry.node_registry import NodeRegistry
from cloudburst.store import InMemoryStore


class FlakyStore(InMemoryStore):
    """Hides reads or refuses writes under chosen path prefixes"""

    def __init__(self):
        super().__init__()
        self.unreadable = ()
        self.unwritable = ()

    def get(self, path):
        if path.startswith(self.unreadable):
            return None
        return super().get(path)

    def set(self, path, value):
        if path.startswith(self.unwritable):
            raise StoreError(f"Failed to write {path!r}: permission denied")
        super().set(path, value)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def activity_log(store):
    return ActivityLog(store)


@pytest.fixture
def nodes(store, activity_log):
    registry = NodeRegistry(store, activity_log)
    for node_id, latitude in (("node1", 30.1), ("node2", 30.2), ("node3", 30.3)):
        registry.register_node(node_id, {"name": node_id.title(), "latitude": latitude, "longitude": 79.0})
    return registry


@pytest.fixture
def contacts(store, activity_log):
    return ContactRegistry(store, activity_log)


@pytest.fixture
def mock_notifications():
    notifications = Mock()
    notifications.send_sms_notification = AsyncMock(return_value=SMSNotificationResult(
        success=False,
        configured=False,
        outcome=DeliveryOutcome.NOT_CONFIGURED,
        notification_id="notification_1",
        recipients=1,
    ))
    notifications.send_in_app_notification = Mock(return_value="notification_2")
    return notifications


@pytest.fixture
def dispatcher(store, nodes, contacts, mock_notifications, activity_log):
    return AlertDispatcher(store, nodes, contacts, mock_notifications, activity_log)


class TestCreateAlert:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_alert_stored_with_back_references(self, dispatcher, store):
        result = await dispatcher.create_alert("River rising fast", "critical", ["node1", "node2"])

        alert_id = result.alert.id
        saved = store.get(f"alerts/{alert_id}")
        assert saved["affectedNodes"] == ["node1", "node2"]
        assert saved["severity"] == "critical"
        assert saved["acknowledged"] is False
        assert saved["type"] == "manual"

        for node_id in ("node1", "node2"):
            reference = store.get(f"nodes/{node_id}/alerts/{alert_id}")
            assert reference["alertId"] == alert_id
            assert reference["severity"] == "critical"
        assert store.get("nodes/node3/alerts") is None
        assert result.unlinked_nodes == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_node_list_rejected(self, dispatcher, store, mock_notifications):
        with pytest.raises(ValidationError) as exc_info:
            await dispatcher.create_alert("Heavy rain", "warning", [])

        assert exc_info.value.message == "Please select at least one node"
        assert store.get("alerts") is None
        mock_notifications.send_in_app_notification.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("message,severity,node_ids", [
        ("", "warning", ["node1"]),
        ("x" * 501, "warning", ["node1"]),
        ("Heavy rain", "apocalyptic", ["node1"]),
        ("Heavy rain", "warning", ["node1", "ghost"]),
    ])
    async def test_invalid_alerts_write_nothing(self, dispatcher, store, message, severity, node_ids):
        with pytest.raises(ValidationError):
            await dispatcher.create_alert(message, severity, node_ids)
        assert store.get("alerts") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_message_at_limit_accepted(self, dispatcher):
        result = await dispatcher.create_alert("x" * 500, "warning", ["node1"])
        assert len(result.alert.message) == 500

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sms_sent_to_associated_contacts(self, dispatcher, contacts, mock_notifications):
        contacts.add_contact("Asha", "9876543210", associated_node_ids=["node1"])
        contacts.add_contact("Ravi", "9123456780", associated_node_ids=["node3"])

        result = await dispatcher.create_alert("Evacuate low ground", "critical", ["node1"], send_sms=True)

        assert result.recipients == ["+919876543210"]
        assert result.alert.recipients == ["+919876543210"]
        mock_notifications.send_sms_notification.assert_awaited_once_with(
            recipients=["+919876543210"],
            message="[CRITICAL] Evacuate low ground",
            alert_id=result.alert.id,
            severity="critical",
        )
        assert result.to_dict()["sms"]["outcome"] == "not_configured"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_sms_without_recipients(self, dispatcher, mock_notifications):
        result = await dispatcher.create_alert("Heavy rain", "warning", ["node2"], send_sms=True)

        mock_notifications.send_sms_notification.assert_not_awaited()
        assert result.sms is None
        assert result.notification_id == "notification_2"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_creation_is_logged(self, dispatcher, activity_log):
        await dispatcher.create_alert("Heavy rain", "warning", ["node1", "node2"])
        entries = [entry for entry in activity_log.recent() if entry.type == "alert_triggered"]
        assert len(entries) == 1
        assert entries[0].message == 'Manual alert created affecting 2 node(s): "Heavy rain"'

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sms_flag_stays_false_without_recipients(self, dispatcher, store):
        result = await dispatcher.create_alert("Heavy rain", "warning", ["node2"], send_sms=True)

        saved = store.get(f"alerts/{result.alert.id}")
        assert saved["sentSMS"] is False
        assert "smsSentAt" not in saved
        assert result.alert.sms_sent_at is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sms_flag_stays_false_when_not_configured(self, dispatcher, contacts, store):
        contacts.add_contact("Asha", "9876543210", associated_node_ids=["node1"])

        result = await dispatcher.create_alert("Heavy rain", "warning", ["node1"], send_sms=True)

        saved = store.get(f"alerts/{result.alert.id}")
        assert saved["sentSMS"] is False
        assert "smsSentAt" not in saved

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [DeliveryOutcome.SENT, DeliveryOutcome.PARTIAL])
    async def test_sms_flag_set_after_delivery(self, dispatcher, contacts, store, mock_notifications, outcome):
        contacts.add_contact("Asha", "9876543210", associated_node_ids=["node1"])
        mock_notifications.send_sms_notification.return_value = SMSNotificationResult(
            success=outcome == DeliveryOutcome.SENT, configured=True, outcome=outcome, recipients=1,
        )

        result = await dispatcher.create_alert("Heavy rain", "warning", ["node1"], send_sms=True)

        saved = store.get(f"alerts/{result.alert.id}")
        assert saved["sentSMS"] is True
        assert saved["smsSentAt"] == result.alert.sms_sent_at
        assert result.alert.sent_sms is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_alert_read_back_failure(self, dispatcher, store, mock_notifications):
        store.unreadable = ("alerts/",)

        with pytest.raises(VerificationError) as exc_info:
            await dispatcher.create_alert("Heavy rain", "warning", ["node1"])

        assert exc_info.value.message == "Alert created but verification failed"
        assert store.get("nodes/node1/alerts") is None
        mock_notifications.send_in_app_notification.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_back_reference_failure_keeps_other_links(self, dispatcher, store, mock_notifications):
        store.unwritable = ("nodes/node2/alerts/",)

        result = await dispatcher.create_alert("Heavy rain", "critical", ["node1", "node2", "node3"])

        alert_id = result.alert.id
        assert result.unlinked_nodes == ["node2"]
        assert store.get(f"alerts/{alert_id}/affectedNodes") == ["node1", "node2", "node3"]
        assert store.get(f"nodes/node1/alerts/{alert_id}/alertId") == alert_id
        assert store.get(f"nodes/node3/alerts/{alert_id}/alertId") == alert_id
        assert store.get("nodes/node2/alerts") is None
        mock_notifications.send_in_app_notification.assert_called_once()


class TestAcknowledge:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_acknowledge_marks_alert_and_references(self, dispatcher, store):
        result = await dispatcher.create_alert("Heavy rain", "warning", ["node1"])
        alert = dispatcher.acknowledge_alert(result.alert.id, "control-room")

        assert alert.acknowledged is True
        assert alert.acknowledged_by == "control-room"
        assert alert.acknowledged_at is not None
        assert store.get(f"nodes/node1/alerts/{alert.id}/acknowledged") is True

    @pytest.mark.unit
    def test_acknowledge_unknown_alert(self, dispatcher):
        with pytest.raises(ResourceNotFoundError):
            dispatcher.acknowledge_alert("alert_missing")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_acknowledge_survives_deleted_node(self, dispatcher, nodes):
        result = await dispatcher.create_alert("Heavy rain", "warning", ["node1", "node2"])
        nodes.delete_node("node2")

        alert = dispatcher.acknowledge_alert(result.alert.id)
        assert alert.acknowledged is True
        assert nodes.node_exists("node2") is False


class TestListAlerts:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_filters(self, dispatcher, store):
        first = await dispatcher.create_alert("First", "warning", ["node1"])
        second = await dispatcher.create_alert("Second", "critical", ["node2"])
        store.set(f"alerts/{first.alert.id}/timestamp", 1)
        dispatcher.acknowledge_alert(first.alert.id)

        assert [alert.id for alert in dispatcher.list_alerts()] == [second.alert.id, first.alert.id]
        assert [alert.id for alert in dispatcher.list_alerts("active")] == [second.alert.id]
        assert [alert.id for alert in dispatcher.list_alerts("acknowledged")] == [first.alert.id]

    @pytest.mark.unit
    def test_invalid_filter(self, dispatcher):
        with pytest.raises(ValidationError):
            dispatcher.list_alerts("snoozed")
