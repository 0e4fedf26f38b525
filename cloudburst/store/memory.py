"""
In-memory realtime store, used by tests and the ``memory`` backend
"""
import copy
import logging
from typing import Any, List

from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)


class InMemoryStore(RealtimeStore):
    """Nested-dict implementation of RealtimeStore"""

    def __init__(self, initial: dict = None):
        super().__init__()
        self._root: dict = copy.deepcopy(initial) if initial else {}

    def _read(self, segments: List[str]) -> Any:
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        if isinstance(node, dict) and not node:
            return None
        return copy.deepcopy(node)

    def _write(self, segments: List[str], value: Any) -> None:
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return

        if value is None:
            self._delete(segments)
            return

        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value

    def _delete(self, segments: List[str]) -> None:
        trail = [self._root]
        node = self._root
        for segment in segments[:-1]:
            node = node.get(segment)
            if not isinstance(node, dict):
                return
            trail.append(node)

        node.pop(segments[-1], None)

        # Drop parents left empty by the delete
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(segments[depth - 1], None)

    def snapshot(self) -> dict:
        """Deep copy of the whole tree"""
        return copy.deepcopy(self._root)
