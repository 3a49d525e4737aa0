"""Подключение к БД."""
import logging
import threading
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from apps.storefront.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class StoreUninitializedError(RuntimeError):
    """Raised when the activity store is used before initialize() succeeded."""


class StoreInitializationError(RuntimeError):
    """Directory, file or schema setup of the activity store failed."""


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in SQLite DATETIME columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enable_wal(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


class ActivityStore:
    """
    Owns the SQLite file with recorded activities.

    initialize() is idempotent: the directory, engine and schema are set up
    once, later calls return the same engine. If setup fails nothing is kept
    and handle() keeps raising StoreUninitializedError.
    """

    def __init__(self, data_dir: str | Path, filename: str = "activities.db"):
        self.data_dir = Path(data_dir)
        self.filename = filename
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self.data_dir / self.filename

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def initialize(self) -> Engine:
        with self._lock:
            if self._engine is not None:
                return self._engine
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreInitializationError(f"create data dir {self.data_dir}: {e}") from e

            engine = create_engine(
                f"sqlite:///{self.path}",
                connect_args={"check_same_thread": False},
            )
            event.listen(engine, "connect", _enable_wal)
            try:
                # models register their tables on Base.metadata
                from apps.storefront import models  # noqa: F401

                Base.metadata.create_all(engine)
            except SQLAlchemyError as e:
                engine.dispose()
                raise StoreInitializationError(f"apply schema to {self.path}: {e}") from e

            self._engine = engine
            self._session_factory = sessionmaker(
                autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
            )
            logger.info("Activity logging database initialized at: %s", self.path)
            return engine

    def handle(self) -> Engine:
        engine = self._engine
        if engine is None:
            raise StoreUninitializedError("activity store is not initialized")
        return engine

    def session(self) -> Session:
        self.handle()
        return self._session_factory()

    def shutdown(self) -> None:
        with self._lock:
            if self._engine is None:
                return
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Activity logging database closed: %s", self.path)


@lru_cache
def get_activity_store() -> ActivityStore:
    s = get_settings()
    return ActivityStore(s.activity_data_dir, s.activity_db_filename)
