"""
Realtime Store Interface
Hierarchical key-path store with point writes and change subscriptions
"""
import copy
import logging
import threading
from abc import ABC, abstractmethod
from itertools import count
from typing import Any, Callable, Dict, List, Optional, Tuple

from cloudburst.core.error_handling import (
    CloudburstError,
    ErrorCode,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[Any], None]

# Characters the hosted realtime database refuses in keys
FORBIDDEN_KEY_CHARS = set(".#$[]")


def split_path(path: str) -> List[str]:
    """
    Split ``"nodes/node1/metadata"`` into its segments.

    Leading/trailing slashes are ignored; ``""`` and ``"/"`` address the root.
    """
    if path is None:
        raise ValidationError("Store path is required")

    segments = [segment for segment in str(path).strip("/").split("/")]
    if segments == [""]:
        return []

    for segment in segments:
        if not segment:
            raise ValidationError(f"Invalid store path: {path!r}")
        if FORBIDDEN_KEY_CHARS & set(segment):
            raise ValidationError(
                f"Invalid key {segment!r}: keys cannot contain . # $ [ ]",
                details={"path": path}
            )
    return segments


def join_path(*parts: str) -> str:
    """Join path segments with ``/``"""
    return "/".join(str(part).strip("/") for part in parts if str(part).strip("/"))


def key_sort_order(key: str) -> Tuple[int, Any]:
    """Integer-looking keys first in numeric order, then strings"""
    if key.isdigit() and (key == "0" or not key.startswith("0")):
        return (0, int(key))
    return (1, key)


def prune(value: Any) -> Any:
    """
    Drop ``None`` leaves and empty objects, the way the hosted store does.

    Returns None when nothing is left to store.
    """
    if isinstance(value, dict):
        pruned = {}
        for key, child in value.items():
            child = prune(child)
            if child is not None:
                pruned[str(key)] = child
        return pruned or None
    if isinstance(value, list):
        # items are pruned too; an item that prunes away is dropped
        return [item for item in map(prune, value) if item is not None]
    return value


class RealtimeStore(ABC):
    """
    Base class for store backends.

    Subclasses implement ``_read``/``_write``; this class owns path parsing,
    write serialization, conditional create and change notification.
    Subscribers of a path are notified when that path, one of its ancestors
    or one of its descendants is written. Handlers run synchronously after
    the write, outside the write lock.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._subscribers: Dict[int, Tuple[List[str], ChangeHandler]] = {}
        self._subscription_ids = count(1)

    # -- backend hooks -----------------------------------------------------

    @abstractmethod
    def _read(self, segments: List[str]) -> Any:
        """Return the (copied) value at ``segments`` or None"""

    @abstractmethod
    def _write(self, segments: List[str], value: Any) -> None:
        """Replace the subtree at ``segments``; ``None`` removes it"""

    def _child_keys(self, segments: List[str]) -> List[str]:
        """Keys directly under ``segments`` (unordered)"""
        node = self._read(segments)
        return list(node.keys()) if isinstance(node, dict) else []

    def close(self) -> None:
        """Release backend resources"""

    # -- reads -------------------------------------------------------------

    def get(self, path: str) -> Any:
        """Point read; None when the path is absent"""
        segments = split_path(path)
        try:
            return self._read(segments)
        except CloudburstError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to read {path!r}: {e}",
                details={"path": path},
                error_code=ErrorCode.STORE_READ_ERROR
            ) from e

    def exists(self, path: str) -> bool:
        return self.get(path) is not None

    def children(
        self,
        path: str,
        limit_to_last: Optional[int] = None,
        end_before: Optional[str] = None,
    ) -> List[Tuple[str, Any]]:
        """
        Key-ordered children of ``path``.

        Args:
            path: Parent path
            limit_to_last: Keep only the last N children after filtering
            end_before: Only children whose key sorts strictly before this key

        Returns:
            List of (key, value) tuples in ascending key order
        """
        segments = split_path(path)
        try:
            keys = sorted(self._child_keys(segments), key=key_sort_order)
            if end_before is not None:
                boundary = key_sort_order(end_before)
                keys = [key for key in keys if key_sort_order(key) < boundary]
            if limit_to_last is not None:
                keys = keys[-limit_to_last:] if limit_to_last > 0 else []
            return [(key, self._read(segments + [key])) for key in keys]
        except CloudburstError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to query children of {path!r}: {e}",
                details={"path": path},
                error_code=ErrorCode.STORE_READ_ERROR
            ) from e

    # -- writes ------------------------------------------------------------

    def set(self, path: str, value: Any) -> None:
        """Replace the subtree at ``path``"""
        segments = split_path(path)
        with self._lock:
            self._guarded_write(path, segments, prune(copy.deepcopy(value)))
        self._notify(segments)

    def update(self, path: str, values: Dict[str, Any]) -> None:
        """
        Multi-location update relative to ``path``.

        Keys of ``values`` may themselves be paths (``"metadata/name"``).
        Children not named in ``values`` are left untouched.
        """
        base = split_path(path)
        targets = [(base + split_path(key), value) for key, value in values.items()]
        with self._lock:
            for segments, value in targets:
                self._guarded_write(path, segments, prune(copy.deepcopy(value)))
        for segments, _ in targets:
            self._notify(segments)

    def remove(self, path: str) -> None:
        """Delete the subtree at ``path`` (no-op when absent)"""
        segments = split_path(path)
        with self._lock:
            self._guarded_write(path, segments, None)
        self._notify(segments)

    def create(self, path: str, value: Any) -> bool:
        """
        Conditional create: write ``value`` only if ``path`` is absent.

        Returns:
            True if written, False if something already existed at ``path``
        """
        segments = split_path(path)
        with self._lock:
            if self._read(segments) is not None:
                return False
            self._guarded_write(path, segments, prune(copy.deepcopy(value)))
        self._notify(segments)
        return True

    def _guarded_write(self, path: str, segments: List[str], value: Any) -> None:
        try:
            self._write(segments, value)
        except CloudburstError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to write {path!r}: {e}", details={"path": path}) from e

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, path: str, handler: ChangeHandler) -> Callable[[], None]:
        """
        Register ``handler`` for changes under ``path``.

        The handler is called once immediately with the current value, then
        after every write that touches the subtree.

        Returns:
            Callable that removes the subscription
        """
        segments = split_path(path)
        subscription_id = next(self._subscription_ids)
        self._subscribers[subscription_id] = (segments, handler)
        self._deliver(segments, handler)

        def unsubscribe():
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def _notify(self, written: List[str]) -> None:
        for segments, handler in list(self._subscribers.values()):
            depth = min(len(segments), len(written))
            if segments[:depth] == written[:depth]:
                self._deliver(segments, handler)

    def _deliver(self, segments: List[str], handler: ChangeHandler) -> None:
        try:
            handler(self._read(segments))
        except Exception as e:
            logger.error(
                f"Subscriber for {'/'.join(segments) or '/'} failed: {e}",
                exc_info=True
            )
