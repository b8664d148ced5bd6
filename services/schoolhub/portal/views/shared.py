"""Helpers shared by the JSON API views: responses, decorators, body parsing."""

from __future__ import annotations

import json
import logging
from functools import wraps

from django.conf import settings
from django.http import JsonResponse

from common.request_safety import client_ip_from_request, fixed_window_allow

from ..http.headers import apply_no_store
from ..services.audit import log_audit_event
from ..services.org_access import is_superuser, user_role

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1", "yes", "on"}


def _json_no_store_response(payload: dict, *, status: int = 200, private: bool = True) -> JsonResponse:
    response = JsonResponse(payload, status=status)
    apply_no_store(response, private=private, pragma=True)
    return response


def _json_error(error: str, *, status: int, message: str = "", **extra) -> JsonResponse:
    payload = {"error": error}
    if message:
        payload["message"] = message
    payload.update(extra)
    return _json_no_store_response(payload, status=status)


def _not_found(message: str = "Not found") -> JsonResponse:
    return _json_error("not_found", status=404, message=message)


def _bad_request(message: str, **extra) -> JsonResponse:
    return _json_error("bad_request", status=400, message=message, **extra)


def _forbidden(message: str = "Access denied") -> JsonResponse:
    return _json_error("forbidden", status=403, message=message)


def _form_error_response(form) -> JsonResponse:
    errors = {field: [str(m) for m in messages] for field, messages in form.errors.items()}
    return _json_error("validation_error", status=400, message="Invalid input", errors=errors)


def _read_json_body(request) -> dict | None:
    """Decode a JSON object body. Empty body -> {}; malformed -> None."""
    raw = request.body or b""
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _bad_json() -> JsonResponse:
    return _json_error("bad_json", status=400, message="Request body must be a JSON object")


def _parse_bool(raw, *, default: bool = False) -> bool:
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUE_STRINGS


def _parse_positive_int(raw) -> int | None:
    if raw is None or raw == "" or isinstance(raw, bool):
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def _client_ip(request) -> str | None:
    ip = client_ip_from_request(
        request,
        trust_proxy_headers=getattr(settings, "REQUEST_SAFETY_TRUST_PROXY_HEADERS", False),
        xff_index=getattr(settings, "REQUEST_SAFETY_XFF_INDEX", 0),
    )
    return None if ip == "unknown" else ip


def api_login_required(view_func):
    """Reject requests without a valid bearer token with a 401 JSON response."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if getattr(request, "api_user", None) is None:
            return _json_error("unauthorized", status=401, message="Token is not valid")
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def api_role_required(*roles: str):
    """Allow only the listed roles; implies api_login_required."""
    allowed = set(roles)

    def decorator(view_func):
        @wraps(view_func)
        @api_login_required
        def _wrapped_view(request, *args, **kwargs):
            if user_role(request.api_user) not in allowed:
                return _forbidden()
            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorator


def api_superuser_required(view_func):
    @wraps(view_func)
    @api_login_required
    def _wrapped_view(request, *args, **kwargs):
        if not is_superuser(request.api_user):
            return _json_error("forbidden", status=403, message="Superuser access required")
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def api_rate_limit(limit: int = 120, window_seconds: int = 60, *, scope: str = "api"):
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            user = getattr(request, "api_user", None)
            if user is None:
                return view_func(request, *args, **kwargs)
            client_ip = _client_ip(request) or "unknown"
            key = f"api_rate:{scope}:{user.id}:ip:{client_ip}"
            request_id = (request.headers.get("X-Request-ID") or "").strip()
            if not fixed_window_allow(key, limit=limit, window_seconds=window_seconds, request_id=request_id):
                return _json_error("rate_limited", status=429, message="Too many requests")
            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorator


def _audit(request, *, action: str, target_type: str = "", target_id="", summary: str = "", metadata=None):
    return log_audit_event(
        request,
        action=action,
        target_type=target_type,
        target_id=str(target_id or ""),
        summary=summary,
        metadata=metadata or {},
    )


__all__ = [
    "_audit",
    "_bad_json",
    "_bad_request",
    "_client_ip",
    "_forbidden",
    "_form_error_response",
    "_json_error",
    "_json_no_store_response",
    "_not_found",
    "_parse_bool",
    "_parse_positive_int",
    "_read_json_body",
    "api_login_required",
    "api_rate_limit",
    "api_role_required",
    "api_superuser_required",
]
