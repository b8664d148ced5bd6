"""Audit trail writes for staff mutations."""

from __future__ import annotations

import logging

from django.conf import settings

from common.request_safety import client_ip_from_request

from ..models import AuditEvent

logger = logging.getLogger(__name__)


def log_audit_event(
    request,
    *,
    action: str,
    summary: str = "",
    target_type: str = "",
    target_id: str = "",
    metadata: dict | None = None,
) -> AuditEvent | None:
    """Record one staff action. Returns None when there is no actor."""
    actor = getattr(request, "api_user", None)
    if actor is None:
        return None
    profile = getattr(actor, "profile", None)
    ip = client_ip_from_request(
        request,
        trust_proxy_headers=getattr(settings, "REQUEST_SAFETY_TRUST_PROXY_HEADERS", False),
        xff_index=getattr(settings, "REQUEST_SAFETY_XFF_INDEX", 0),
    )
    event = AuditEvent.objects.create(
        actor_user=actor,
        organization_id=getattr(profile, "organization_id", None),
        action=action[:80],
        target_type=(target_type or "")[:80],
        target_id=str(target_id or "")[:64],
        summary=(summary or "")[:255],
        metadata=metadata or {},
        ip_address=None if ip == "unknown" else ip,
    )
    logger.info("audit action=%s actor=%s target=%s:%s", action, actor.id, target_type, target_id)
    return event
