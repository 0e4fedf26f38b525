"""
SQLite engine and session handling for the persistent realtime store
"""
import logging
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

SQLITE_PRAGMAS = ("PRAGMA journal_mode=WAL", "PRAGMA synchronous=NORMAL")


def _apply_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


class DatabaseManager:
    """
    Owns one SQLite file and the SQLAlchemy engine over it.

    The engine is created on first use. Every connection runs in WAL mode so
    the API can read node data while the simulator loop is writing.
    """

    def __init__(self, db_path: str = "data/cloudburst.db"):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._engine = None
        self._session_factory = None

    def get_engine(self):
        if self._engine is None:
            engine = create_engine(
                f"sqlite:///{self.db_path}",
                connect_args={"check_same_thread": False, "timeout": 30.0},
            )
            event.listen(engine, "connect", _apply_pragmas)
            self._engine = engine
            self._session_factory = sessionmaker(
                bind=engine, autoflush=False, expire_on_commit=False
            )
            logger.info(f"Opened store database {self.db_path} (WAL)")
        return self._engine

    def create_tables(self, base) -> None:
        """Create the tables of a declarative base that do not exist yet"""
        base.metadata.create_all(self.get_engine())

    @contextmanager
    def get_session(self):
        """
        Session scoped to a ``with`` block: committed when the block exits
        normally, rolled back and re-raised otherwise.
        """
        self.get_engine()
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_size_mb(self) -> float:
        """Size of the database file in megabytes (0.0 if not yet created)"""
        path = Path(self.db_path)
        if not path.exists():
            return 0.0
        return round(path.stat().st_size / (1024 * 1024), 3)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info(f"Closed store database {self.db_path}")
