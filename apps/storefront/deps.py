"""Зависимости FastAPI."""
from fastapi import Request

from apps.storefront.config import get_settings
from apps.storefront.middleware import request_context
from apps.storefront.services.activity_log import ActivityRepository


def get_activity_repository(request: Request) -> ActivityRepository:
    return request.app.state.activity_repository


def get_session_id(request: Request) -> str:
    sid = request_context.get_session_id(request.scope)
    if sid:
        return sid
    return request.cookies.get(get_settings().session_cookie_name, "")
