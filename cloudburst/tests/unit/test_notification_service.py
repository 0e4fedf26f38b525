"""
Unit tests for SMS and in-app notification records
"""
import pytest
from unittest.mock import AsyncMock, Mock

from cloudburst.models.notification import DeliveryOutcome, DeliveryResult, SMSDispatchResponse
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.notification.notification_service import NotificationService
from cloudburst.store import InMemoryStore

RECIPIENTS = ["+919876543210", "+919123456780"]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def activity_log(store):
    return ActivityLog(store)


@pytest.fixture
def mock_sms():
    sms = Mock()
    sms.provider = "twilio"
    sms.configured = True
    sms.send_async = AsyncMock()
    return sms


@pytest.fixture
def service(store, mock_sms, activity_log):
    return NotificationService(store, mock_sms, activity_log)


def dispatch_response(successes, failures):
    results = [DeliveryResult(to=to, success=True, status="queued", sid=f"SM{i}") for i, to in enumerate(successes)]
    results += [DeliveryResult(to=to, success=False, status="failed", error="unreachable") for to in failures]
    return SMSDispatchResponse(
        success=not failures,
        partial_success=bool(successes) and bool(failures),
        configured=True,
        recipients=len(successes) + len(failures),
        success_count=len(successes),
        failure_count=len(failures),
        message="summary",
        delivery_results=results,
        errors=[{"to": to, "error": "unreachable", "code": None} for to in failures],
    )


def stored_notifications(store):
    return list((store.get("notifications") or {}).values())


def log_types(activity_log):
    return [entry.type for entry in activity_log.recent()]


class TestSMSNotification:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_not_configured_is_logged_as_pending(self, service, mock_sms, store, activity_log):
        mock_sms.send_async.return_value = SMSDispatchResponse(
            success=False, configured=False, recipients=2, message="not configured"
        )

        result = await service.send_sms_notification(RECIPIENTS, "[WARNING] Heavy rain", "alert_1", "warning")

        assert result.success is False
        assert result.configured is False
        assert result.outcome == DeliveryOutcome.NOT_CONFIGURED.value
        [record] = stored_notifications(store)
        assert record["status"] == "pending"
        assert record["deliveryStatus"] == "not_configured"
        assert record["note"] == "SMS service not configured. Would send to: +919876543210, +919123456780"
        assert log_types(activity_log) == ["sms_pending"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_all_delivered(self, service, mock_sms, store, activity_log):
        mock_sms.send_async.return_value = dispatch_response(RECIPIENTS, [])

        result = await service.send_sms_notification(RECIPIENTS, "msg", "alert_1", "critical")

        assert result.success is True
        assert result.outcome == "sent"
        [record] = stored_notifications(store)
        assert record["status"] == "sent"
        assert record["deliveryStatus"] == "delivered"
        assert record["successCount"] == 2
        assert record["method"] == "twilio"
        assert log_types(activity_log) == ["sms_sent"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_partial_delivery(self, service, mock_sms, store, activity_log):
        mock_sms.send_async.return_value = dispatch_response(RECIPIENTS[:1], RECIPIENTS[1:])

        result = await service.send_sms_notification(RECIPIENTS, "msg", "alert_1", "critical")

        assert result.success is False
        assert result.outcome == "partial"
        [record] = stored_notifications(store)
        assert record["status"] == "partial"
        assert record["failureCount"] == 1
        assert record["errors"] == [{"to": "+919123456780", "error": "unreachable"}]
        assert log_types(activity_log) == ["sms_partial"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_all_failed(self, service, mock_sms, activity_log):
        mock_sms.send_async.return_value = dispatch_response([], RECIPIENTS)

        result = await service.send_sms_notification(RECIPIENTS, "msg")

        assert result.outcome == "failed"
        assert log_types(activity_log) == ["sms_failed"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_provider_exception_never_raises(self, service, mock_sms, store, activity_log):
        mock_sms.send_async.side_effect = RuntimeError("network down")

        result = await service.send_sms_notification(RECIPIENTS, "msg", "alert_1")

        assert result.success is False
        assert result.outcome == "failed"
        assert result.error == "network down"
        assert stored_notifications(store) == []
        assert log_types(activity_log) == ["sms_failed"]


class TestInAppNotification:

    @pytest.mark.unit
    def test_in_app_record(self, service, store):
        notification_id = service.send_in_app_notification("alert_1", "Heavy rain", "warning", ["node1"])

        record = store.get(f"notifications/{notification_id}")
        assert record["type"] == "in_app"
        assert record["status"] == "unread"
        assert record["expiresAt"] - record["timestamp"] == 7 * 24 * 60 * 60 * 1000
        assert record["readBy"] == []

    @pytest.mark.unit
    def test_store_failure_returns_none(self, service, store, monkeypatch):
        def failing_set(path, value):
            raise OSError("read-only")

        monkeypatch.setattr(store, "set", failing_set)
        assert service.send_in_app_notification("alert_1", "m", "warning", []) is None

    @pytest.mark.unit
    def test_alert_notifications_newest_first(self, service, store):
        store.set("notifications/n1", {"alertId": "alert_1", "timestamp": 100})
        store.set("notifications/n2", {"alertId": "alert_2", "timestamp": 200})
        store.set("notifications/n3", {"alertId": "alert_1", "timestamp": 300})

        records = service.get_alert_notifications("alert_1")
        assert [record["timestamp"] for record in records] == [300, 100]
