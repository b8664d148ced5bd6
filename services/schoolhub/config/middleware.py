import json
import logging
import re

from django.conf import settings
from django.http import JsonResponse
from common.request_safety import client_ip_from_request, fixed_window_allow

logger = logging.getLogger(__name__)


class AuthRateLimitMiddleware:
    """Throttle the public login and register endpoints."""

    _LOGIN_PATH = "/api/auth/login"
    _REGISTER_PATH = "/api/auth/register"

    def __init__(self, get_response):
        self.get_response = get_response

    @staticmethod
    def _key_part(raw: str, *, fallback: str = "unknown") -> str:
        value = (raw or "").strip().lower()
        if not value:
            return fallback
        return re.sub(r"[^a-z0-9_.@+-]", "_", value)[:96] or fallback

    @staticmethod
    def _body_email(request) -> str:
        try:
            payload = json.loads(request.body or b"{}")
        except (ValueError, UnicodeDecodeError):
            return ""
        if not isinstance(payload, dict):
            return ""
        return str(payload.get("email") or "")

    @staticmethod
    def _rate_limited_response(*, path: str, window_seconds: int):
        if path == AuthRateLimitMiddleware._LOGIN_PATH:
            message = "Too many login attempts. Wait a minute and try again."
        else:
            message = "Too many registration attempts. Wait a minute and try again."
        response = JsonResponse({"error": "rate_limited", "message": message}, status=429)
        response["Retry-After"] = str(max(int(window_seconds), 1))
        response["Cache-Control"] = "no-store"
        response["Pragma"] = "no-cache"
        return response

    def __call__(self, request):
        if (request.method or "").upper() != "POST":
            return self.get_response(request)

        path = (request.path or "").rstrip("/")
        if path not in {self._LOGIN_PATH, self._REGISTER_PATH}:
            return self.get_response(request)

        window_seconds = max(int(getattr(settings, "SCHOOLHUB_AUTH_RATE_LIMIT_WINDOW_SECONDS", 60) or 60), 1)
        if path == self._LOGIN_PATH:
            limit = int(getattr(settings, "SCHOOLHUB_LOGIN_RATE_LIMIT_PER_MINUTE", 20) or 0)
            namespace = "login"
        else:
            limit = int(getattr(settings, "SCHOOLHUB_REGISTER_RATE_LIMIT_PER_MINUTE", 10) or 0)
            namespace = "register"
        if limit <= 0:
            return self.get_response(request)

        request_id = (request.headers.get("X-Request-ID") or "").strip()
        client_ip = client_ip_from_request(
            request,
            trust_proxy_headers=getattr(settings, "REQUEST_SAFETY_TRUST_PROXY_HEADERS", False),
            xff_index=getattr(settings, "REQUEST_SAFETY_XFF_INDEX", 0),
        )
        keys = [f"auth_rate:{namespace}:ip:{client_ip}"]
        if path == self._LOGIN_PATH:
            email = self._key_part(self._body_email(request), fallback="")
            if email:
                keys.append(f"auth_rate:{namespace}:email:{email}")

        for key in keys:
            if fixed_window_allow(
                key,
                limit=limit,
                window_seconds=window_seconds,
                request_id=request_id,
            ):
                continue
            logger.warning(
                "auth_rate_limited request_id=%s path=%s key=%s",
                request_id or "unknown",
                path,
                key,
            )
            return self._rate_limited_response(path=path, window_seconds=window_seconds)

        return self.get_response(request)


class ApiErrorMiddleware:
    """Turn unhandled exceptions under /api/ into a JSON 500."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not (request.path or "").startswith("/api/"):
            return None
        logger.exception(
            "api_unhandled_error method=%s path=%s",
            request.method,
            request.path,
        )
        response = JsonResponse({"error": "server_error", "message": "Server error"}, status=500)
        response["Cache-Control"] = "no-store"
        return response
