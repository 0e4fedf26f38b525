"""
Store Entry Model
One row per leaf value of the key-path tree (SQLite store backend)
"""
import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, Float, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class StoreEntry(Base):
    """
    A leaf of the realtime tree.

    ``path`` is the full slash-separated key path (``nodes/node1/metadata/name``)
    and ``value`` the JSON-encoded leaf. Interior objects are implicit: a
    subtree is every row whose path starts with ``<prefix>/``.
    """

    __tablename__ = "store_entries"

    path = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(Float, default=lambda: datetime.now(timezone.utc).timestamp())

    def decoded(self) -> Any:
        """Decoded leaf value"""
        return json.loads(self.value)

    @classmethod
    def leaf(cls, path: str, value: Any) -> "StoreEntry":
        return cls(path=path, value=json.dumps(value))

    def __repr__(self) -> str:
        return f"<StoreEntry(path={self.path!r})>"
