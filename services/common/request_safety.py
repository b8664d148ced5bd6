"""Request safety helpers shared by the API views and middleware.

- `client_ip_from_request` resolves the caller IP, optionally trusting a
  reverse proxy's X-Forwarded-For chain.
- `fixed_window_allow` is a cache-backed fixed-window counter used for rate
  limits. It fails open: a broken cache must never lock users out.
"""

from __future__ import annotations

import ipaddress
import logging

from django.core.cache import cache

logger = logging.getLogger(__name__)


def _valid_ip(raw: str) -> str:
    value = (raw or "").strip()
    if not value:
        return ""
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return ""


def client_ip_from_request(request, *, trust_proxy_headers: bool = False, xff_index: int = 0) -> str:
    """Return the best-known client IP, or "unknown"."""
    if trust_proxy_headers:
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "") or ""
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            try:
                candidate = hops[int(xff_index)]
            except (IndexError, ValueError):
                candidate = hops[0]
            ip = _valid_ip(candidate)
            if ip:
                return ip
    return _valid_ip(request.META.get("REMOTE_ADDR", "")) or "unknown"


def _coerce_int(value, *, key: str, request_id: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("request_safety coerce_int failed request_id=%s key=%s", request_id or "unknown", key)
        return 0


def fixed_window_allow(
    key: str,
    *,
    limit: int,
    window_seconds: int,
    cache_backend=None,
    request_id: str = "",
) -> bool:
    """Count one hit for `key` and report whether it stays within `limit`."""
    if limit <= 0:
        return True
    backend = cache_backend or cache
    window_seconds = max(int(window_seconds), 1)
    try:
        added = backend.add(key, 1, timeout=window_seconds)
        if added:
            return True
        current = backend.incr(key)
    except ValueError:
        # Key expired between add() and incr().
        try:
            backend.set(key, 1, timeout=window_seconds)
        except Exception:
            logger.warning("request_safety cache_unavailable request_id=%s key=%s", request_id or "unknown", key)
        return True
    except Exception:
        logger.warning("request_safety cache_unavailable request_id=%s key=%s", request_id or "unknown", key)
        return True
    return _coerce_int(current, key=key, request_id=request_id) <= limit
