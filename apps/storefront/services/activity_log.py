"""Activity logging helpers."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, desc, func
from sqlalchemy.exc import SQLAlchemyError

from apps.storefront.database import ActivityStore, utcnow
from apps.storefront.models.activity_log import ActivityLog

DEFAULT_RECENT_LIMIT = 100
DEFAULT_SESSION_LIMIT = 50

_COLUMNS = (
    "id",
    "session_id",
    "request_id",
    "activity_type",
    "path",
    "method",
    "status_code",
    "user_currency",
    "details",
    "created_at",
)


class PersistenceError(Exception):
    """A single read or write against the activity store failed."""

    def __init__(self, op: str, cause: Exception):
        super().__init__(f"{op}: {cause}")
        self.op = op


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _check_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    return limit


def serialize_activity(row: ActivityLog) -> dict:
    out = {k: getattr(row, k) for k in _COLUMNS}
    out["details"] = row.details or ""
    out["status_code"] = row.status_code or 0
    out["created_at"] = (
        row.created_at.replace(tzinfo=timezone.utc).isoformat() if row.created_at else None
    )
    return out


class ActivityRepository:
    """Parameterized reads and the single write against an ActivityStore."""

    def __init__(self, store: ActivityStore):
        self.store = store

    def record(self, activity: ActivityLog) -> int:
        """Insert a copy of one activity stamped with created_at; the argument is left untouched."""
        values = {
            column.name: getattr(activity, column.name)
            for column in ActivityLog.__table__.columns
            if column.name not in ("id", "created_at")
        }
        row = ActivityLog(**{k: v for k, v in values.items() if v is not None})
        row.created_at = utcnow()
        with self.store.session() as db:
            try:
                db.add(row)
                db.commit()
                return row.id
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError("record activity", e) from e

    def list_by_session(self, session_id: str, limit: int) -> list[dict]:
        q = (
            select(ActivityLog)
            .where(ActivityLog.session_id == session_id)
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
            .limit(_check_limit(limit))
        )
        return self._query(q, "list session activities")

    def list_recent(self, limit: int) -> list[dict]:
        q = (
            select(ActivityLog)
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
            .limit(_check_limit(limit))
        )
        return self._query(q, "list recent activities")

    def stats_by_type(self, start: datetime, end: datetime) -> dict[str, int]:
        """Count per activity type with created_at in [start, end]."""
        q = (
            select(ActivityLog.activity_type, func.count())
            .where(ActivityLog.created_at.between(_naive_utc(start), _naive_utc(end)))
            .group_by(ActivityLog.activity_type)
        )
        with self.store.session() as db:
            try:
                rows = db.execute(q).all()
            except SQLAlchemyError as e:
                raise PersistenceError("activity stats", e) from e
        return {activity_type: count for activity_type, count in rows}

    def _query(self, q, op: str) -> list[dict]:
        with self.store.session() as db:
            try:
                rows = db.execute(q).scalars().all()
                return [serialize_activity(r) for r in rows]
            except SQLAlchemyError as e:
                raise PersistenceError(op, e) from e
