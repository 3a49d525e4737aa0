"""Activity query endpoints: recent, per session, stats."""
import logging
import re
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query, Request

from apps.storefront.database import StoreUninitializedError
from apps.storefront.deps import get_activity_repository, get_session_id
from apps.storefront.middleware.request_context import get_request_id
from apps.storefront.services.activity_log import (
    DEFAULT_RECENT_LIMIT,
    DEFAULT_SESSION_LIMIT,
    ActivityRepository,
    PersistenceError,
)
from apps.storefront.utils.api_errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter()

STATS_WINDOW = timedelta(hours=24)


def parse_limit(raw: str | None, default: int) -> int:
    """Positive int from the query string; anything else gives the default."""
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


_FRACTION = re.compile(r"\.(\d+)")


def parse_rfc3339(raw: str | None) -> datetime | None:
    if not raw:
        return None
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    # fromisoformat before 3.11 takes only 3 or 6 fraction digits
    value = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], value, count=1)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None or "T" not in value.upper():
        return None
    return parsed


def _query_failed(request: Request, message: str, exc: Exception):
    trace_id = get_request_id(request.scope)
    logger.error("activity query failed op=%s trace_id=%s error=%s", message, trace_id, exc)
    return error_response(
        code="internal_error",
        message=message,
        trace_id=trace_id,
        detail=str(exc),
    )


@router.get("")
def list_activities(
    request: Request,
    limit: str | None = Query(None),
    repo: ActivityRepository = Depends(get_activity_repository),
):
    try:
        return repo.list_recent(parse_limit(limit, DEFAULT_RECENT_LIMIT))
    except (PersistenceError, StoreUninitializedError) as e:
        return _query_failed(request, "failed to get activities", e)


@router.get("/session")
def session_activities(
    request: Request,
    limit: str | None = Query(None),
    session_id: str = Depends(get_session_id),
    repo: ActivityRepository = Depends(get_activity_repository),
):
    try:
        return repo.list_by_session(session_id, parse_limit(limit, DEFAULT_SESSION_LIMIT))
    except (PersistenceError, StoreUninitializedError) as e:
        return _query_failed(request, "failed to get session activities", e)


@router.get("/stats")
def activity_stats(
    request: Request,
    start: str | None = Query(None),
    end: str | None = Query(None),
    repo: ActivityRepository = Depends(get_activity_repository),
):
    end_time = datetime.now(timezone.utc)
    start_time = end_time - STATS_WINDOW
    start_time = parse_rfc3339(start) or start_time
    end_time = parse_rfc3339(end) or end_time
    try:
        return repo.stats_by_type(start_time, end_time)
    except (PersistenceError, StoreUninitializedError) as e:
        return _query_failed(request, "failed to get activity stats", e)
