"""Bearer-token middleware for the JSON API.

The portals are static clients: they log in once, keep the signed token and
send `Authorization: Bearer <token>` on every /api/ call. This middleware
turns that header into `request.api_user` (or None). Views decide whether a
user is required; the middleware never rejects a request by itself.
"""

import logging

from django.contrib.auth import get_user_model

from .services.api_tokens import verify_user_token

logger = logging.getLogger(__name__)

_API_PREFIX = "/api/"


def _bearer_token(request) -> str:
    auth_header = request.META.get("HTTP_AUTHORIZATION", "")
    if not auth_header.startswith("Bearer "):
        return ""
    return auth_header[7:].strip()


def resolve_api_user(request):
    """Return the active user named by the request's bearer token, or None."""
    token = _bearer_token(request)
    if not token:
        return None
    payload = verify_user_token(token)
    if payload is None:
        return None
    uid = payload.get("uid")
    if not uid:
        return None
    User = get_user_model()
    user = (
        User.objects.select_related("profile", "profile__organization", "profile__classroom")
        .filter(id=uid, is_active=True)
        .first()
    )
    if user is None or not hasattr(user, "profile"):
        return None
    if payload.get("oid") != user.profile.organization_id:
        return None
    return user


class ApiTokenMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.api_user = None
        if (request.path or "").startswith(_API_PREFIX):
            # Token-authenticated calls carry no session cookie to protect.
            request._dont_enforce_csrf_checks = True
            request.api_user = resolve_api_user(request)
        return self.get_response(request)
