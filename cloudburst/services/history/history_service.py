"""
History Service
Windowed time series, CSV export and retention cleanup of node history
"""
import logging
from typing import Any, Dict, List, Optional

from cloudburst.core.error_handling import ResourceNotFoundError, ValidationError
from cloudburst.core.timeutils import DAY_MS, HOUR_MS, current_millis, normalize_timestamp, to_iso
from cloudburst.models.log_entry import LogType
from cloudburst.models.node import HistoryReading
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

TIME_WINDOWS = {
    "1h": HOUR_MS,
    "6h": 6 * HOUR_MS,
    "24h": 24 * HOUR_MS,
    "7d": 7 * DAY_MS,
}

DEFAULT_WINDOW = "24h"

HISTORY_CSV_HEADER = "Timestamp,Temperature,Pressure,Altitude,Humidity,RSSI"
_CSV_FIELDS = ("temperature", "pressure", "altitude", "humidity", "rssi")


def _history_path(node_id: str) -> str:
    return f"nodes/{node_id}/history"


def _csv_value(value: Any) -> str:
    return "" if value is None else str(value)


class HistoryService:
    """Read side of ``nodes/{id}/history`` plus the retention cleanup"""

    def __init__(self, store: RealtimeStore, activity_log: Optional[ActivityLog] = None):
        self.store = store
        self.activity_log = activity_log

    def series(
        self,
        node_id: str,
        window: str = DEFAULT_WINDOW,
        now: Optional[int] = None,
    ) -> List[HistoryReading]:
        """
        History rows of a node within a rolling window, oldest first.

        Row timestamps may be stored as string seconds or numeric
        milliseconds; rows without a usable timestamp fall back to their
        write-time key and are skipped if that is not numeric either.

        Raises:
            ValidationError: Unknown window
            ResourceNotFoundError: Unknown node
        """
        if window not in TIME_WINDOWS:
            raise ValidationError(
                f"Invalid time range: {window}", details={"allowed": list(TIME_WINDOWS)}
            )
        if not isinstance(self.store.get(f"nodes/{node_id}/metadata"), dict):
            raise ResourceNotFoundError(f"Node {node_id} not found")

        now = now if now is not None else current_millis()
        cutoff = now - TIME_WINDOWS[window]

        rows = []
        for key, values in (self.store.get(_history_path(node_id)) or {}).items():
            row = self._to_reading(key, values)
            if row is not None and row.timestamp >= cutoff:
                rows.append(row)

        return sorted(rows, key=lambda row: row.timestamp)

    @staticmethod
    def _to_reading(key: str, values: Any) -> Optional[HistoryReading]:
        if not isinstance(values, dict):
            return None
        timestamp = normalize_timestamp(values.get("timestamp"))
        if timestamp is None and key.isdigit():
            timestamp = int(key)
        if timestamp is None:
            return None
        try:
            return HistoryReading.model_validate({**values, "timestamp": timestamp})
        except ValueError as e:
            logger.warning(f"Skipping malformed history row {key}: {e}")
            return None

    @staticmethod
    def to_csv(rows: List[HistoryReading]) -> str:
        """``Timestamp,Temperature,Pressure,Altitude,Humidity,RSSI`` rows; empty cells for nulls"""
        lines = [HISTORY_CSV_HEADER]
        for row in rows:
            cells = [to_iso(row.timestamp)]
            cells.extend(_csv_value(getattr(row, name)) for name in _CSV_FIELDS)
            lines.append(",".join(cells))
        return "\n".join(lines)

    def cleanup_old_data(self, days: int, now: Optional[int] = None) -> int:
        """
        Delete history rows whose write-time key is older than ``days``.

        Deletes run one at a time; a store failure aborts the remainder and
        propagates (rows already deleted stay deleted).

        Returns:
            Number of rows deleted
        """
        if not isinstance(days, int) or isinstance(days, bool) or days < 1:
            raise ValidationError("Cleanup age must be at least 1 day", details={"days": days})

        now = now if now is not None else current_millis()
        cutoff = now - days * DAY_MS
        deleted = 0

        nodes: Dict[str, Any] = self.store.get("nodes") or {}
        for node_id, node in nodes.items():
            history = node.get("history") if isinstance(node, dict) else None
            if not isinstance(history, dict):
                continue
            for key in history:
                if key.isdigit() and int(key) < cutoff:
                    self.store.remove(f"{_history_path(node_id)}/{key}")
                    deleted += 1

        logger.info(f"History cleanup removed {deleted} rows older than {days} days")
        if self.activity_log:
            self.activity_log.record(
                LogType.DATA_CLEANUP,
                f"Cleaned up {deleted} data points older than {days} days",
                metadata={"deletedCount": deleted, "cleanupDays": days},
            )
        return deleted
