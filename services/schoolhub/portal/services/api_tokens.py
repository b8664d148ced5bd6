"""Stateless bearer tokens for the portal clients.

Tokens carry {uid, role, oid} signed with a dedicated key and expire after
SCHOOLHUB_API_TOKEN_MAX_AGE_SECONDS. They are resolved into
`request.api_user` by ApiTokenMiddleware for /api/ paths.
"""

from django.conf import settings
from django.core import signing

_SALT = "schoolhub.api-token.v1"


def _signing_key() -> str:
    return getattr(settings, "SCHOOLHUB_API_TOKEN_SIGNING_KEY", None) or settings.SECRET_KEY


def _max_age() -> int:
    return int(getattr(settings, "SCHOOLHUB_API_TOKEN_MAX_AGE_SECONDS", 24 * 60 * 60) or 24 * 60 * 60)


def issue_user_token(*, user_id: int, role: str, organization_id: int) -> str:
    """Create a signed bearer token for a logged-in user."""
    return signing.dumps(
        {"uid": user_id, "role": role, "oid": organization_id},
        key=_signing_key(),
        salt=_SALT,
    )


def verify_user_token(token: str) -> dict | None:
    """Verify and decode a bearer token.

    Returns the payload dict on success, or None when the token is tampered
    with or older than the configured max age.
    """
    try:
        return signing.loads(token, key=_signing_key(), salt=_SALT, max_age=_max_age())
    except signing.BadSignature:
        return None
