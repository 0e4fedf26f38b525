"""
SQLite-backed realtime store
Persists the key-path tree as one row per leaf through SQLAlchemy
"""
import logging
from typing import Any, Dict, Iterator, List, Tuple

from sqlalchemy import and_, or_, true

from cloudburst.database.manager import DatabaseManager
from cloudburst.models.store_entry import Base, StoreEntry
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)


def flatten(prefix: str, value: Any) -> Iterator[Tuple[str, Any]]:
    """Yield ``(path, leaf)`` pairs for a pruned value"""
    if isinstance(value, dict):
        for key, child in value.items():
            yield from flatten(f"{prefix}/{key}" if prefix else key, child)
    else:
        yield prefix, value


def _subtree_filter(path: str):
    """Rows at ``path`` or below it (``/`` + 1 == ``0`` bounds the range)"""
    if not path:
        return true()
    return or_(
        StoreEntry.path == path,
        and_(StoreEntry.path >= f"{path}/", StoreEntry.path < f"{path}0"),
    )


class SQLiteStore(RealtimeStore):
    """
    RealtimeStore persisted in SQLite.

    Writes replace the subtree inside one session (commit or rollback as a
    whole); the base-class lock serializes writers within the process.
    """

    def __init__(self, db_manager: DatabaseManager):
        super().__init__()
        self.db_manager = db_manager
        self.db_manager.create_tables(Base)
        logger.info(f"SQLiteStore ready: {db_manager.db_path}")

    @classmethod
    def from_path(cls, db_path: str) -> "SQLiteStore":
        return cls(DatabaseManager(db_path))

    def _read(self, segments: List[str]) -> Any:
        path = "/".join(segments)
        with self.db_manager.get_session() as session:
            rows = session.query(StoreEntry).filter(_subtree_filter(path)).all()
            leaves = [(row.path, row.decoded()) for row in rows]

        if not leaves:
            return None

        tree: Dict[str, Any] = {}
        offset = len(path) + 1 if path else 0
        for leaf_path, value in leaves:
            if leaf_path == path:
                return value
            parts = leaf_path[offset:].split("/")
            node = tree
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = value
        return tree

    def _write(self, segments: List[str], value: Any) -> None:
        path = "/".join(segments)
        with self.db_manager.get_session() as session:
            session.query(StoreEntry).filter(_subtree_filter(path)).delete(
                synchronize_session=False
            )

            # A leaf at an ancestor path would shadow the new subtree
            ancestors = ["/".join(segments[:depth]) for depth in range(1, len(segments))]
            if ancestors and value is not None:
                session.query(StoreEntry).filter(StoreEntry.path.in_(ancestors)).delete(
                    synchronize_session=False
                )

            if value is not None:
                session.add_all(
                    StoreEntry.leaf(leaf_path, leaf) for leaf_path, leaf in flatten(path, value)
                )

    def _child_keys(self, segments: List[str]) -> List[str]:
        path = "/".join(segments)
        offset = len(path) + 1 if path else 0
        with self.db_manager.get_session() as session:
            paths = [
                row.path
                for row in session.query(StoreEntry.path).filter(_subtree_filter(path))
            ]
        return list({leaf[offset:].split("/", 1)[0] for leaf in paths if leaf != path})

    def close(self) -> None:
        self.db_manager.close()
