"""
System Log Model
Append-only event records under ``logs/{id}``
"""
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class LogType(str, Enum):
    NODE_REGISTRATION = "node_registration"
    NODE_EDIT = "node_edit"
    NODE_DELETION = "node_deletion"
    ALERT_TRIGGERED = "alert_triggered"
    ALERT_ACKNOWLEDGED = "alert_acknowledged"
    SMS_SENT = "sms_sent"
    SMS_PENDING = "sms_pending"
    SMS_PARTIAL = "sms_partial"
    SMS_FAILED = "sms_failed"
    SYSTEM_ERROR = "system_error"
    DATA_RECEIVED = "data_received"
    DATA_CLEANUP = "data_cleanup"
    DATA_IMPORT = "data_import"
    SYSTEM_RESET = "system_reset"
    CONTACT_ADDED = "contact_added"
    CONTACT_DELETED = "contact_deleted"

    @property
    def label(self) -> str:
        return LOG_TYPE_LABELS.get(self, "System Event")


LOG_TYPE_LABELS = {
    LogType.NODE_REGISTRATION: "Node Registration",
    LogType.ALERT_TRIGGERED: "Alert Triggered",
    LogType.SMS_SENT: "SMS Sent",
    LogType.SYSTEM_ERROR: "System Error",
    LogType.DATA_RECEIVED: "Data Received",
    LogType.NODE_EDIT: "Node Edited",
    LogType.NODE_DELETION: "Node Deleted",
}

# Filter groups offered by the log view
LOG_FILTER_GROUPS = {
    "registrations": LogType.NODE_REGISTRATION,
    "alerts": LogType.ALERT_TRIGGERED,
    "sms": LogType.SMS_SENT,
    "errors": LogType.SYSTEM_ERROR,
}


def label_for(log_type: str) -> str:
    try:
        return LogType(log_type).label
    except ValueError:
        return "System Event"


class LogEntry(BaseModel):
    id: str
    type: str
    message: str
    timestamp: int
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()
