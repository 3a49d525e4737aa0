"""Middleware: activity logging for every storefront request. ASGI: observes status, classifies and records after the handler."""
import json
import logging
import time

from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection, Request

from apps.storefront.database import StoreUninitializedError
from apps.storefront.middleware.request_context import (
    MissingRequestContextError,
    get_request_id,
    get_session_id,
)
from apps.storefront.models.activity_log import ActivityLog
from apps.storefront.services.activity_classifier import (
    classify,
    extract_details,
    needs_form,
    resolve_route,
)
from apps.storefront.services.activity_log import ActivityRepository, PersistenceError

logger = logging.getLogger("uvicorn.error")

CURRENCY_COOKIE = "currency"
DEFAULT_CURRENCY = "USD"


def current_currency(scope: dict) -> str:
    return HTTPConnection(scope).cookies.get(CURRENCY_COOKIE) or DEFAULT_CURRENCY


async def _read_body(receive) -> bytes:
    chunks = []
    more_body = True
    while more_body:
        message = await receive()
        if message.get("type") == "http.disconnect":
            break
        if message.get("type") == "http.request":
            chunks.append(message.get("body") or b"")
            more_body = message.get("more_body", False)
        else:
            more_body = False
    return b"".join(chunks)


def _replay(body: bytes, receive=None):
    sent = []

    async def replay_receive():
        if not sent:
            sent.append(True)
            return {"type": "http.request", "body": body, "more_body": False}
        if receive is not None:
            return await receive()
        return {"type": "http.disconnect"}

    return replay_receive


_FORM_METHODS = frozenset({"POST", "PUT", "PATCH"})
_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _has_form_body(scope: dict, method: str) -> bool:
    if method not in _FORM_METHODS:
        return False
    content_type = HTTPConnection(scope).headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() in _FORM_CONTENT_TYPES


async def _form_values(scope: dict, body: bytes | None) -> dict:
    """First value per field: body fields win, the query string fills the gaps."""
    values = {}
    if body is not None:
        form_request = Request(scope, _replay(body))
        try:
            form = await form_request.form()
            for key, value in form.multi_items():
                values.setdefault(key, value)
        finally:
            await form_request.close()
    for key, value in HTTPConnection(scope).query_params.multi_items():
        values.setdefault(key, value)
    return values


class ActivityMiddleware:
    """
    ASGI middleware: one ActivityLog row per HTTP request.
    The row is classified from the route the router dispatched to, so it is
    finished after the handler. Form bodies are read once and replayed to the
    handler. A handler exception is recorded with its status (500 when no
    response started) and re-raised. Recording failures are logged and never
    touch the response.
    """

    def __init__(self, app, repository: ActivityRepository | None = None, enabled: bool = True):
        self.app = app
        self.repository = repository
        self.enabled = enabled

    def _repository(self, scope: dict) -> ActivityRepository | None:
        if self.repository is not None:
            return self.repository
        app = scope.get("app")
        state = getattr(app, "state", None)
        return getattr(state, "activity_repository", None)

    async def __call__(self, scope: dict, receive, send):
        if scope.get("type") != "http" or not self.enabled:
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        session_id = get_session_id(scope)
        request_id = get_request_id(scope)
        if session_id is None or request_id is None:
            raise MissingRequestContextError(
                "session_id and request_id must be bound before ActivityMiddleware "
                "(install SessionContextMiddleware outside it)"
            )

        method = (scope.get("method") or "GET").upper()
        activity = ActivityLog(
            session_id=session_id,
            request_id=request_id,
            path=scope.get("path") or "",
            method=method,
            status_code=0,
            user_currency=current_currency(scope),
        )

        body = None
        if _has_form_body(scope, method):
            try:
                body = await _read_body(receive)
            except Exception as e:
                logger.warning("activity read body failed request_id=%s error=%s", request_id, e)
            else:
                receive = _replay(body, receive)

        status = {"code": 0}

        async def send_observed(message):
            if message["type"] == "http.response.start":
                if not status["code"]:
                    status["code"] = int(message["status"])
            elif message["type"] == "http.response.body" and not status["code"]:
                status["code"] = 200
            await send(message)

        try:
            await self.app(scope, receive, send_observed)
        except Exception:
            await self._finish(scope, activity, body, status["code"] or 500, start)
            raise
        await self._finish(scope, activity, body, status["code"], start)

    async def _finish(
        self, scope: dict, activity: ActivityLog, body: bytes | None, status_code: int, start: float
    ):
        template, path_params = resolve_route(scope)
        activity_type = classify(activity.method, template)
        activity.activity_type = activity_type.value
        activity.status_code = status_code

        form = {}
        if needs_form(activity_type):
            try:
                form = await _form_values(scope, body)
            except Exception as e:
                logger.warning("activity form parse failed request_id=%s error=%s", activity.request_id, e)
        details = extract_details(activity_type, form, path_params)
        if details:
            activity.details = json.dumps(details)

        repository = self._repository(scope)
        if repository is None:
            logger.warning("Failed to log activity: no activity repository configured")
            return
        try:
            activity_id = await run_in_threadpool(repository.record, activity)
        except (PersistenceError, StoreUninitializedError) as e:
            logger.warning("Failed to log activity: %s", e)
            return
        logger.debug(
            "activity recorded id=%s type=%s path=%s status=%s latency_ms=%d",
            activity_id, activity.activity_type, activity.path, activity.status_code,
            int((time.perf_counter() - start) * 1000),
        )
