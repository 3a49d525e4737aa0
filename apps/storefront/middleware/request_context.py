"""Session and request ids for activity logging. The host binds them on the ASGI scope."""

SESSION_ID_KEY = "activity.session_id"
REQUEST_ID_KEY = "activity.request_id"


class MissingRequestContextError(RuntimeError):
    """Session or request id was not bound before the activity middleware ran."""


def bind_request_context(scope: dict, session_id: str, request_id: str) -> None:
    scope[SESSION_ID_KEY] = session_id
    scope[REQUEST_ID_KEY] = request_id


def get_session_id(scope: dict) -> str | None:
    sid = scope.get(SESSION_ID_KEY)
    return sid if isinstance(sid, str) else None


def get_request_id(scope: dict) -> str | None:
    rid = scope.get(REQUEST_ID_KEY)
    return rid if isinstance(rid, str) else None
