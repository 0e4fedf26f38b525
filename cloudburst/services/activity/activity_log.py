"""
Activity Log
Append-only system log under ``logs/{id}`` with a paginated, filtered read side
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cloudburst.core.error_handling import ValidationError, handle_errors
from cloudburst.core.timeutils import DAY_MS, current_millis, generate_id, to_iso
from cloudburst.models.log_entry import LOG_FILTER_GROUPS, LogEntry, LogType, label_for
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

LOGS_PATH = "logs"

DATE_RANGES = {
    "24h": DAY_MS,
    "7d": 7 * DAY_MS,
    "30d": 30 * DAY_MS,
    "all": None,
}

LOG_CSV_HEADER = "Timestamp,Type,Message"


@dataclass
class LogQuery:
    """Filters applied by the log view"""
    type_group: str = "all"  # all, registrations, alerts, sms, errors
    date_range: str = "all"  # 24h, 7d, 30d, all
    search: str = ""

    def __post_init__(self):
        if self.type_group != "all" and self.type_group not in LOG_FILTER_GROUPS:
            raise ValidationError(
                f"Unknown log filter: {self.type_group}",
                details={"allowed": ["all"] + sorted(LOG_FILTER_GROUPS)}
            )
        if self.date_range not in DATE_RANGES:
            raise ValidationError(
                f"Unknown date range: {self.date_range}",
                details={"allowed": list(DATE_RANGES)}
            )

    def matches(self, entry: LogEntry, now: int) -> bool:
        if self.type_group != "all" and entry.type != LOG_FILTER_GROUPS[self.type_group].value:
            return False

        window = DATE_RANGES[self.date_range]
        if window is not None and entry.timestamp < now - window:
            return False

        if self.search and self.search.lower() not in entry.message.lower():
            return False

        return True


@dataclass
class LogPage:
    """One page of log entries, newest first"""
    entries: List[LogEntry] = field(default_factory=list)
    next_cursor: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [entry.to_document() for entry in self.entries],
            "nextCursor": self.next_cursor,
        }


class ActivityLog:
    """
    System log writer and reader.

    Writes go through ``record`` which never raises: a failed log write is
    logged locally and dropped so it can't fail the operation being logged.
    Reads walk the key-ordered ``logs`` subtree backwards in fixed-size
    batches instead of loading the whole collection.
    """

    def __init__(self, store: RealtimeStore, batch_size: int = 100):
        self.store = store
        self.batch_size = batch_size

    def append(
        self,
        log_type: LogType,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[int] = None,
    ) -> LogEntry:
        """Write a log entry; store failures propagate"""
        log_id = generate_id("log")
        entry = LogEntry(
            id=log_id,
            type=LogType(log_type).value,
            message=message,
            timestamp=timestamp if timestamp is not None else current_millis(),
            metadata=metadata or {},
        )
        self.store.set(f"{LOGS_PATH}/{log_id}", entry.to_document())
        logger.debug(f"Log entry {log_id} ({entry.type}): {message}")
        return entry

    @handle_errors(default_return=None)
    def record(
        self,
        log_type: LogType,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[int] = None,
    ) -> Optional[LogEntry]:
        """Best-effort ``append``; returns None when the write failed"""
        return self.append(log_type, message, metadata, timestamp)

    def page(
        self,
        limit: int = 100,
        cursor: Optional[str] = None,
        query: Optional[LogQuery] = None,
        now: Optional[int] = None,
    ) -> LogPage:
        """
        Read matching log entries, newest first.

        Args:
            limit: Maximum entries returned
            cursor: ``next_cursor`` of the previous page; None starts at the newest
            query: Optional filters
            now: Reference time for date-range filters (epoch ms)

        Returns:
            LogPage; ``next_cursor`` is None when older entries are exhausted
        """
        if limit <= 0:
            raise ValidationError("limit must be positive", details={"limit": limit})

        query = query or LogQuery()
        now = now if now is not None else current_millis()

        matched: List[LogEntry] = []
        end_before = cursor

        while len(matched) < limit:
            batch = self.store.children(
                LOGS_PATH, limit_to_last=self.batch_size, end_before=end_before
            )
            if not batch:
                return LogPage(entries=matched, next_cursor=None)

            for key, document in reversed(batch):
                end_before = key
                entry = self._to_entry(key, document)
                if entry is not None and query.matches(entry, now):
                    matched.append(entry)
                    if len(matched) == limit:
                        break

            if len(batch) < self.batch_size and len(matched) < limit:
                return LogPage(entries=matched, next_cursor=None)

        return LogPage(entries=matched, next_cursor=end_before)

    def recent(self, limit: int = 100) -> List[LogEntry]:
        """The newest ``limit`` entries, newest first"""
        return self.page(limit=limit).entries

    @staticmethod
    def _to_entry(key: str, document: Any) -> Optional[LogEntry]:
        if not isinstance(document, dict):
            return None
        try:
            return LogEntry(
                id=document.get("id") or key,
                type=str(document.get("type", "")),
                message=str(document.get("message", "")),
                timestamp=int(document.get("timestamp") or 0),
                metadata=document.get("metadata") or {},
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed log entry {key}: {e}")
            return None

    @staticmethod
    def to_csv(entries: List[LogEntry]) -> str:
        """
        Render entries as CSV (``Timestamp,Type,Message``).

        Only the message is quoted; embedded quotes are not escaped.
        """
        lines = [LOG_CSV_HEADER]
        for entry in entries:
            lines.append(",".join([
                to_iso(entry.timestamp),
                label_for(entry.type),
                f'"{entry.message}"',
            ]))
        return "\n".join(lines)
