"""Request classification for activity logging."""
from __future__ import annotations

from enum import Enum
from typing import Any, Mapping


class ActivityType(str, Enum):
    PAGE_VIEW = "page_view"
    ADD_TO_CART = "add_to_cart"
    EMPTY_CART = "empty_cart"
    CHECKOUT = "checkout"
    CURRENCY_CHANGE = "currency_change"
    PRODUCT_VIEW = "product_view"
    OTHER = "other"
    UNKNOWN = "unknown"


# (path, method, activity type), checked top to bottom
_EXACT_RULES: tuple[tuple[str, str, ActivityType], ...] = (
    ("/", "GET", ActivityType.PAGE_VIEW),
    ("/cart", "POST", ActivityType.ADD_TO_CART),
    ("/cart/empty", "POST", ActivityType.EMPTY_CART),
    ("/cart/checkout", "POST", ActivityType.CHECKOUT),
    ("/setCurrency", "POST", ActivityType.CURRENCY_CHANGE),
)
_PRODUCT_PREFIX = "/product/"

_FORM_TYPES = frozenset({ActivityType.ADD_TO_CART, ActivityType.CURRENCY_CHANGE})


def classify(method: str, route_template: str | None) -> ActivityType:
    """Map method + route template to an activity type.

    None means the request did not resolve to any route: "unknown".
    A resolved route that matches no rule is "other".
    """
    if route_template is None:
        return ActivityType.UNKNOWN
    method = (method or "").upper()
    for path, rule_method, activity_type in _EXACT_RULES:
        if route_template == path and method == rule_method:
            return activity_type
    if route_template.startswith(_PRODUCT_PREFIX) and method == "GET":
        return ActivityType.PRODUCT_VIEW
    return ActivityType.OTHER


def resolve_route(scope: dict) -> tuple[str | None, dict[str, Any]]:
    """Path template and path params of the route the router dispatched to.

    Read once the app has run: the router leaves the matched route in
    scope["route"] and its params in scope["path_params"]. An unset route,
    or one that does not accept the method (405), resolves to None.
    """
    route = scope.get("route")
    template = getattr(route, "path", None)
    if not isinstance(template, str):
        return None, {}
    methods = getattr(route, "methods", None)
    if methods and (scope.get("method") or "GET").upper() not in methods:
        return None, {}
    return template, dict(scope.get("path_params") or {})


def needs_form(activity_type: ActivityType) -> bool:
    return activity_type in _FORM_TYPES


def _field(values: Mapping[str, Any], key: str) -> str:
    v = values.get(key)
    return v if isinstance(v, str) else ""


def extract_details(
    activity_type: ActivityType,
    form: Mapping[str, Any],
    path_params: Mapping[str, Any],
) -> dict[str, str]:
    """Type-specific context for the record. Missing fields become ""."""
    if activity_type == ActivityType.ADD_TO_CART:
        return {
            "product_id": _field(form, "product_id"),
            "quantity": _field(form, "quantity"),
        }
    if activity_type == ActivityType.PRODUCT_VIEW:
        return {"product_id": str(path_params.get("id", ""))}
    if activity_type == ActivityType.CURRENCY_CHANGE:
        return {"new_currency": _field(form, "currency_code")}
    return {}
