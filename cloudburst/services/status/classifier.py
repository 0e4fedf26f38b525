"""
Node Status Classifier
Maps a node's last-seen timestamp to online / warning / offline
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from cloudburst.core.timeutils import MINUTE_MS, current_millis, normalize_timestamp


class NodeStatus(str, Enum):
    ONLINE = "online"
    WARNING = "warning"
    OFFLINE = "offline"


@dataclass(frozen=True)
class StatusThresholds:
    """
    Age limits for each status.

    Args:
        online_ms: ages strictly below this are online
        warning_ms: ages strictly below this (and not online) are warning;
            None means the set never produces warning
    """
    online_ms: int
    warning_ms: Optional[int] = None

    def __post_init__(self):
        if self.online_ms <= 0:
            raise ValueError("online_ms must be positive")
        if self.warning_ms is not None and self.warning_ms <= self.online_ms:
            raise ValueError("warning_ms must be greater than online_ms")


# online < 5 min <= warning < 15 min <= offline
TIERED_THRESHOLDS = StatusThresholds(online_ms=5 * MINUTE_MS, warning_ms=15 * MINUTE_MS)

# Main dashboard: online < 5 min <= offline, never warning
DASHBOARD_THRESHOLDS = StatusThresholds(online_ms=5 * MINUTE_MS)

THRESHOLD_SETS = {
    "tiered": TIERED_THRESHOLDS,
    "dashboard": DASHBOARD_THRESHOLDS,
}


def classify_status(
    last_update: Any,
    now: Optional[int] = None,
    thresholds: StatusThresholds = TIERED_THRESHOLDS,
) -> NodeStatus:
    """
    Classify a node by the age of its last update.

    Args:
        last_update: Epoch milliseconds, or any raw stored form accepted by
            ``normalize_timestamp`` (string seconds included)
        now: Epoch milliseconds (defaults to the current time)
        thresholds: Threshold set; pick ``TIERED_THRESHOLDS`` or
            ``DASHBOARD_THRESHOLDS`` explicitly

    Returns:
        NodeStatus
    """
    last_update_ms = normalize_timestamp(last_update)
    if last_update_ms is None:
        return NodeStatus.OFFLINE

    now = now if now is not None else current_millis()
    age = now - last_update_ms

    if age < thresholds.online_ms:
        return NodeStatus.ONLINE
    if thresholds.warning_ms is not None and age < thresholds.warning_ms:
        return NodeStatus.WARNING
    return NodeStatus.OFFLINE


def resolve_thresholds(name: str) -> StatusThresholds:
    """Look up a named threshold set (``tiered`` or ``dashboard``)"""
    try:
        return THRESHOLD_SETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown status threshold set {name!r}; expected one of {sorted(THRESHOLD_SETS)}"
        ) from None
