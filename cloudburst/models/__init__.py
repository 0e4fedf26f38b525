"""
Cloudburst Models
Pydantic documents for the realtime store and the SQLAlchemy store table
"""
from .node import Node, NodeMetadata, NodeRealtime, NodeType, HistoryReading
from .alert import Alert, AlertBackReference, Severity
from .contact import Contact, NotificationPreference
from .log_entry import LogEntry, LogType
from .settings import AlertThresholds, SystemSettings, SettingsSnapshot
from .store_entry import StoreEntry

__all__ = [
    "Node",
    "NodeMetadata",
    "NodeRealtime",
    "NodeType",
    "HistoryReading",
    "Alert",
    "AlertBackReference",
    "Severity",
    "Contact",
    "NotificationPreference",
    "LogEntry",
    "LogType",
    "AlertThresholds",
    "SystemSettings",
    "SettingsSnapshot",
    "StoreEntry",
]
