"""
Alert Dispatcher
Creates manual alerts and fans them out to nodes, the system log, SMS
recipients and in-app notifications
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cloudburst.core.error_handling import (
    ResourceNotFoundError,
    ValidationError,
    VerificationError,
)
from cloudburst.core.timeutils import current_millis, generate_id
from cloudburst.models.alert import MAX_MESSAGE_LENGTH, Alert, AlertBackReference, Severity
from cloudburst.models.log_entry import LogType
from cloudburst.models.notification import DeliveryOutcome, SMSNotificationResult
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.contacts.contact_registry import ContactRegistry
from cloudburst.services.notification.notification_service import NotificationService
from cloudburst.services.registry.node_registry import NodeRegistry
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

ALERTS_PATH = "alerts"

ALERT_FILTERS = ("all", "active", "acknowledged")


@dataclass
class AlertCreationResult:
    """Outcome of ``create_alert``; the alert exists whatever the SMS outcome"""
    alert: Alert
    recipients: List[str] = field(default_factory=list)
    sms: Optional[SMSNotificationResult] = None
    notification_id: Optional[str] = None
    unlinked_nodes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert": self.alert.to_document(),
            "recipients": self.recipients,
            "sms": self.sms.model_dump(by_alias=True) if self.sms else None,
            "notificationId": self.notification_id,
            "unlinkedNodes": self.unlinked_nodes,
        }


def _log_summary(message: str, node_count: int) -> str:
    preview = message[:50] + ("..." if len(message) > 50 else "")
    return f'Manual alert created affecting {node_count} node(s): "{preview}"'


class AlertDispatcher:
    """
    Manual alert workflow

    Steps after the alert write are independent writes with no rollback:
    a failed back-reference leaves the other nodes linked, a failed SMS
    leaves the alert in place.
    """

    def __init__(
        self,
        store: RealtimeStore,
        node_registry: NodeRegistry,
        contact_registry: ContactRegistry,
        notification_service: NotificationService,
        activity_log: ActivityLog,
    ):
        self.store = store
        self.nodes = node_registry
        self.contacts = contact_registry
        self.notifications = notification_service
        self.activity_log = activity_log

    def _validate(self, message: str, severity: str, affected_node_ids: List[str]) -> Severity:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Alert message is required")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message must be {MAX_MESSAGE_LENGTH} characters or less",
                details={"length": len(message)}
            )
        if not affected_node_ids:
            raise ValidationError("Please select at least one node")

        try:
            severity = Severity(severity)
        except ValueError:
            raise ValidationError(
                f"Invalid severity: {severity}",
                details={"allowed": [s.value for s in Severity]}
            ) from None

        missing = [node_id for node_id in affected_node_ids if not self.nodes.node_exists(node_id)]
        if missing:
            raise ValidationError(
                f"Unknown node(s): {', '.join(missing)}", details={"missing": missing}
            )
        return severity

    async def create_alert(
        self,
        message: str,
        severity: str,
        affected_node_ids: List[str],
        send_sms: bool = False,
    ) -> AlertCreationResult:
        """
        Create and dispatch a manual alert.

        Args:
            message: Alert text (at most 500 characters)
            severity: ``warning`` or ``critical``
            affected_node_ids: Existing node ids, at least one
            send_sms: Text the associated contacts

        Returns:
            AlertCreationResult

        Raises:
            ValidationError: Bad message, severity or node list (nothing written)
            VerificationError: The alert could not be read back
        """
        affected_node_ids = list(affected_node_ids or [])
        severity = self._validate(message, severity, affected_node_ids)

        recipients = self.compute_recipients(affected_node_ids)
        alert_id = generate_id("alert")
        now = current_millis()

        alert = Alert(
            id=alert_id,
            severity=severity,
            message=message,
            affected_nodes=affected_node_ids,
            timestamp=now,
            sent_sms=False,
            recipients=recipients,
        )

        self.store.set(f"{ALERTS_PATH}/{alert_id}", alert.to_document())
        if not self.store.exists(f"{ALERTS_PATH}/{alert_id}"):
            raise VerificationError(
                "Alert created but verification failed", details={"alertId": alert_id}
            )
        logger.info(f"Alert {alert_id} ({severity.value}) saved for {len(affected_node_ids)} node(s)")

        back_reference = AlertBackReference(
            alert_id=alert_id, severity=severity, timestamp=now
        ).to_document()
        unlinked = []
        for node_id in affected_node_ids:
            try:
                self.store.set(f"nodes/{node_id}/alerts/{alert_id}", back_reference)
            except Exception as e:
                logger.error(f"Failed to link alert {alert_id} to node {node_id}: {e}")
                unlinked.append(node_id)

        self.activity_log.record(
            LogType.ALERT_TRIGGERED,
            _log_summary(message, len(affected_node_ids)),
            metadata={
                "alertId": alert_id,
                "affectedNodes": affected_node_ids,
                "severity": severity.value,
                "recipients": len(recipients),
            },
            timestamp=now,
        )

        sms_result = None
        if send_sms and recipients:
            sms_result = await self.notifications.send_sms_notification(
                recipients=recipients,
                message=f"[{severity.value.upper()}] {message}",
                alert_id=alert_id,
                severity=severity.value,
            )
            logger.info(f"Alert {alert_id} SMS outcome: {sms_result.outcome}")
            if sms_result.outcome in (DeliveryOutcome.SENT, DeliveryOutcome.PARTIAL):
                alert.sent_sms = True
                alert.sms_sent_at = current_millis()
                try:
                    self.store.update(f"{ALERTS_PATH}/{alert_id}", {
                        "sentSMS": True, "smsSentAt": alert.sms_sent_at,
                    })
                except Exception as e:
                    logger.error(f"Failed to mark SMS sent on alert {alert_id}: {e}")
        elif send_sms:
            logger.info(f"Alert {alert_id}: no contacts associated with the affected nodes")

        notification_id = self.notifications.send_in_app_notification(
            alert_id=alert_id,
            message=message,
            severity=severity.value,
            affected_nodes=affected_node_ids,
        )

        return AlertCreationResult(
            alert=alert,
            recipients=recipients,
            sms=sms_result,
            notification_id=notification_id,
            unlinked_nodes=unlinked,
        )

    def acknowledge_alert(self, alert_id: str, acknowledged_by: str = "analytical") -> Alert:
        """
        Mark an alert acknowledged (overwrites any earlier acknowledgement).

        Node back-references are updated best-effort.

        Raises:
            ResourceNotFoundError: Unknown alert
        """
        alert = self.get_alert(alert_id)
        now = current_millis()

        self.store.update(f"{ALERTS_PATH}/{alert_id}", {
            "acknowledged": True,
            "acknowledgedBy": acknowledged_by,
            "acknowledgedAt": now,
        })

        for node_id in alert.affected_nodes:
            reference_path = f"nodes/{node_id}/alerts/{alert_id}"
            try:
                if self.store.exists(reference_path):
                    self.store.update(reference_path, {"acknowledged": True})
            except Exception as e:
                logger.warning(f"Failed to mark back-reference {reference_path}: {e}")

        logger.info(f"Alert {alert_id} acknowledged by {acknowledged_by}")
        self.activity_log.record(
            LogType.ALERT_ACKNOWLEDGED,
            f"Alert {alert_id} was acknowledged",
            metadata={"alertId": alert_id, "acknowledgedBy": acknowledged_by},
            timestamp=now,
        )
        return self.get_alert(alert_id)

    def get_alert(self, alert_id: str) -> Alert:
        alert = self._to_alert(alert_id, self.store.get(f"{ALERTS_PATH}/{alert_id}"))
        if alert is None:
            raise ResourceNotFoundError(f"Alert {alert_id} not found")
        return alert

    def list_alerts(self, status_filter: str = "all") -> List[Alert]:
        """Alerts newest first; ``active`` = unacknowledged"""
        if status_filter not in ALERT_FILTERS:
            raise ValidationError(
                f"Invalid alert filter: {status_filter}",
                details={"allowed": list(ALERT_FILTERS)}
            )

        alerts = []
        for alert_id, document in (self.store.get(ALERTS_PATH) or {}).items():
            alert = self._to_alert(alert_id, document)
            if alert is None:
                continue
            if status_filter == "active" and alert.acknowledged:
                continue
            if status_filter == "acknowledged" and not alert.acknowledged:
                continue
            alerts.append(alert)

        return sorted(alerts, key=lambda alert: alert.timestamp, reverse=True)

    def compute_recipients(self, affected_node_ids: List[str]) -> List[str]:
        """Phones of contacts associated with any affected node"""
        return self.contacts.recipient_phones(affected_node_ids)

    @staticmethod
    def _to_alert(alert_id: str, document: Any) -> Optional[Alert]:
        if not isinstance(document, dict):
            return None
        try:
            return Alert.model_validate({"id": alert_id, **document})
        except ValueError as e:
            logger.warning(f"Skipping malformed alert {alert_id}: {e}")
            return None
