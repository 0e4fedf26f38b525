"""
Notification Service
Records SMS fan-outs and in-app notifications under ``notifications/{id}``
"""
import logging
from typing import Any, Dict, List, Optional

from cloudburst.core.error_handling import handle_errors
from cloudburst.core.timeutils import current_millis, generate_id
from cloudburst.models.log_entry import LogType
from cloudburst.models.notification import (
    IN_APP_TTL_MS,
    DeliveryOutcome,
    SMSNotificationResult,
)
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.notification.sms_client import SMSClient
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

NOTIFICATIONS_PATH = "notifications"

_NOTIFICATION_STATUS = {
    DeliveryOutcome.SENT: "sent",
    DeliveryOutcome.PARTIAL: "partial",
    DeliveryOutcome.FAILED: "failed",
}

_DELIVERY_STATUS = {
    DeliveryOutcome.SENT: "delivered",
    DeliveryOutcome.PARTIAL: "partial",
    DeliveryOutcome.FAILED: "failed",
}

_LOG_TYPES = {
    DeliveryOutcome.SENT: LogType.SMS_SENT,
    DeliveryOutcome.PARTIAL: LogType.SMS_PARTIAL,
    DeliveryOutcome.FAILED: LogType.SMS_FAILED,
}


class NotificationService:
    """
    Deliver alert notifications and keep a record of every attempt

    SMS: one provider call per fan-out, no retry. The outcome is written to
    ``notifications`` and the system log whether or not anything was sent.
    In-app: a single unread record expiring after seven days (nothing sweeps
    expired records).
    """

    def __init__(self, store: RealtimeStore, sms_client: SMSClient, activity_log: ActivityLog):
        self.store = store
        self.sms = sms_client
        self.activity_log = activity_log

    async def send_sms_notification(
        self,
        recipients: List[str],
        message: str,
        alert_id: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> SMSNotificationResult:
        """
        Send an SMS fan-out and record the outcome

        Never raises: provider or store failures are reported through the
        returned result and an ``sms_failed`` log entry.
        """
        notification_id = generate_id("notification")
        timestamp = current_millis()

        logger.info(
            f"SMS notification {notification_id}: {len(recipients)} recipient(s), "
            f"alert={alert_id}, severity={severity}"
        )

        try:
            response = await self.sms.send_async(recipients, message)

            record: Dict[str, Any] = {
                "id": notification_id,
                "type": "sms",
                "alertId": alert_id,
                "severity": severity,
                "message": message,
                "recipients": recipients,
                "timestamp": timestamp,
                "method": self.sms.provider,
            }

            if not response.configured:
                record.update({
                    "status": "pending",
                    "deliveryStatus": DeliveryOutcome.NOT_CONFIGURED.value,
                    "note": "SMS service not configured. Would send to: " + ", ".join(recipients),
                })
                self.store.set(f"{NOTIFICATIONS_PATH}/{notification_id}", record)
                self.activity_log.record(
                    LogType.SMS_PENDING,
                    f"SMS notification logged (not sent - SMS provider not configured). "
                    f"Recipients: {len(recipients)}",
                    metadata={
                        "notificationId": notification_id,
                        "alertId": alert_id,
                        "recipients": len(recipients),
                    },
                    timestamp=timestamp,
                )
                logger.warning(f"SMS provider not configured, notification {notification_id} logged")

                return SMSNotificationResult(
                    success=False,
                    configured=False,
                    outcome=DeliveryOutcome.NOT_CONFIGURED,
                    notification_id=notification_id,
                    recipients=len(recipients),
                    message="SMS service not configured. Notification logged for future delivery.",
                )

            outcome = response.outcome
            record.update({
                "status": _NOTIFICATION_STATUS[outcome],
                "deliveryStatus": _DELIVERY_STATUS[outcome],
                "deliveryResults": [
                    result.model_dump(exclude_none=True) for result in response.delivery_results
                ],
                "successCount": response.success_count,
                "failureCount": response.failure_count,
                "errors": response.errors,
            })
            self.store.set(f"{NOTIFICATIONS_PATH}/{notification_id}", record)

            self.activity_log.record(
                _LOG_TYPES[outcome],
                response.message,
                metadata={
                    "notificationId": notification_id,
                    "alertId": alert_id,
                    "recipients": len(recipients),
                    "successCount": response.success_count,
                    "failureCount": response.failure_count,
                },
                timestamp=timestamp,
            )

            return SMSNotificationResult(
                success=response.success,
                configured=True,
                outcome=outcome,
                notification_id=notification_id,
                recipients=len(recipients),
                message=response.message,
            )

        except Exception as e:
            logger.error(f"SMS notification failed: {e}", exc_info=True)
            self.activity_log.record(
                LogType.SMS_FAILED,
                f"SMS notification failed: {e}",
                metadata={"alertId": alert_id, "recipients": len(recipients), "error": str(e)},
                timestamp=timestamp,
            )
            return SMSNotificationResult(
                success=False,
                configured=self.sms.configured,
                outcome=DeliveryOutcome.FAILED,
                recipients=len(recipients),
                message="Failed to send SMS notification",
                error=str(e),
            )

    @handle_errors(default_return=None)
    def send_in_app_notification(
        self,
        alert_id: str,
        message: str,
        severity: str,
        affected_nodes: List[str],
    ) -> Optional[str]:
        """
        Create an unread in-app notification

        Returns:
            Notification id, or None if the write failed
        """
        notification_id = generate_id("notification")
        timestamp = current_millis()

        self.store.set(f"{NOTIFICATIONS_PATH}/{notification_id}", {
            "id": notification_id,
            "type": "in_app",
            "status": "unread",
            "alertId": alert_id,
            "severity": severity,
            "message": message,
            "affectedNodes": list(affected_nodes),
            "timestamp": timestamp,
            "expiresAt": timestamp + IN_APP_TTL_MS,
            "readBy": [],
        })

        logger.info(f"In-app notification created: {notification_id}")
        return notification_id

    def get_alert_notifications(self, alert_id: str) -> List[Dict[str, Any]]:
        """All notification records for an alert, newest first"""
        notifications = self.store.get(NOTIFICATIONS_PATH) or {}
        matching = [
            record for record in notifications.values()
            if isinstance(record, dict) and record.get("alertId") == alert_id
        ]
        return sorted(matching, key=lambda record: record.get("timestamp") or 0, reverse=True)
