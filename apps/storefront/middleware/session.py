"""Middleware: session cookie and request id for every HTTP request."""
import uuid

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection

from apps.storefront.middleware.request_context import bind_request_context

REQUEST_ID_HEADER = "X-Request-Id"


class SessionContextMiddleware:
    """
    ASGI middleware: reuses the session cookie or issues a new session id,
    assigns a request id, and binds both for activity logging.
    Must wrap ActivityMiddleware (added after it).
    """

    def __init__(self, app, cookie_name: str = "shop_session-id", max_age: int = 60 * 60 * 48):
        self.app = app
        self.cookie_name = cookie_name
        self.max_age = max_age

    async def __call__(self, scope: dict, receive, send):
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        conn = HTTPConnection(scope)
        session_id = conn.cookies.get(self.cookie_name) or ""
        new_session = not session_id
        if new_session:
            session_id = str(uuid.uuid4())
        request_id = (conn.headers.get(REQUEST_ID_HEADER) or "").strip()[:64] or str(uuid.uuid4())
        bind_request_context(scope, session_id, request_id)

        async def send_with_session(message):
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
                if new_session:
                    headers.append(
                        "set-cookie",
                        f"{self.cookie_name}={session_id}; Max-Age={self.max_age}; Path=/; HttpOnly; SameSite=lax",
                    )
            await send(message)

        await self.app(scope, receive, send_with_session)
