"""Account, organization and classroom helpers for the auth endpoints."""

from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..models import Classroom, Organization, UserProfile, UserSession, account_username

logger = logging.getLogger(__name__)

# Login-form organization values -> stored organization code.
ORG_CODE_ALIASES = {
    "pbs": "PBS",
    "hospital": "HOSPITAL",
    "coding-school": "CODING",
}
FALLBACK_ORG_CODE = "PBS"


class AccountError(ValueError):
    """A registration or profile change the caller must fix (HTTP 400)."""


def resolve_organization(raw_code: str | None) -> Organization:
    """Find (or create) the organization named by a login-form value.

    An existing organization whose code matches the raw value wins, so
    organizations created by a superuser are reachable by their own code.
    Otherwise the value goes through ORG_CODE_ALIASES (unknown values fall
    back to PBS) and the target organization is created on first use.
    """
    raw = (raw_code or getattr(settings, "SCHOOLHUB_DEFAULT_ORG_CODE", "pbs") or "pbs").strip()
    direct = Organization.objects.filter(code__iexact=raw).first()
    if direct is not None:
        return direct
    code = ORG_CODE_ALIASES.get(raw.lower(), FALLBACK_ORG_CODE)
    org = Organization.objects.filter(code=code).first()
    if org is not None:
        return org
    try:
        with transaction.atomic():
            org = Organization.objects.create(name=code, code=code, domain=f"{raw.lower()}.yourdomain.com")
    except IntegrityError:
        # Concurrent first login for the same code.
        return Organization.objects.get(code=code)
    logger.info("organization_created code=%s", code)
    return org


def get_or_create_classroom(organization_id: int, year_level: str, class_num: int | None = None) -> Classroom:
    class_num = int(class_num or 1)
    classroom, created = Classroom.objects.get_or_create(
        organization_id=organization_id,
        year_level=year_level,
        class_num=class_num,
        defaults={"name": Classroom.default_name(year_level, class_num)},
    )
    if created:
        logger.info("classroom_created org=%s level=%s num=%s", organization_id, year_level, class_num)
    return classroom


def email_taken(organization_id: int, email: str, *, exclude_user_id: int | None = None) -> bool:
    User = get_user_model()
    qs = User.objects.filter(username=account_username(organization_id, email))
    if exclude_user_id is not None:
        qs = qs.exclude(id=exclude_user_id)
    return qs.exists()


def create_account(
    *,
    organization: Organization,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str,
    classroom: Classroom | None = None,
):
    User = get_user_model()
    email = email.strip().lower()
    if email_taken(organization.id, email):
        raise AccountError("User already exists in this organization")
    with transaction.atomic():
        user = User.objects.create_user(
            username=account_username(organization.id, email),
            email=email,
            password=password,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
        )
        UserProfile.objects.create(
            user=user,
            organization=organization,
            role=role,
            classroom=classroom if role == UserProfile.ROLE_STUDENT else None,
        )
    logger.info("account_created user=%s org=%s role=%s", user.id, organization.id, role)
    return user


def change_email(user, email: str) -> None:
    """Update email and the derived username. Caller checks for duplicates."""
    email = email.strip().lower()
    user.email = email
    user.username = account_username(user.profile.organization_id, email)


def authenticate_member(request, *, organization: Organization, email: str, password: str):
    """Return the active user for (organization, email, password), else None."""
    user = authenticate(request, username=account_username(organization.id, email), password=password)
    if user is None or not hasattr(user, "profile"):
        return None
    return user


def open_user_session(user, *, ip_address: str | None, user_agent: str) -> UserSession:
    now = timezone.now()
    return UserSession.objects.create(
        user=user,
        login_time=now,
        last_active=now,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255],
    )


def close_latest_session(user) -> UserSession | None:
    session = UserSession.objects.filter(user=user, logout_time__isnull=True).order_by("-login_time", "-id").first()
    if session is None:
        return None
    now = timezone.now()
    session.logout_time = now
    session.duration_seconds = max(0, int((now - session.login_time).total_seconds()))
    session.save(update_fields=["logout_time", "duration_seconds"])
    return session


def touch_open_sessions(user) -> int:
    return UserSession.objects.filter(user=user, logout_time__isnull=True).update(last_active=timezone.now())


def move_students(source: Classroom, target: Classroom) -> int:
    return UserProfile.objects.filter(
        classroom=source,
        role=UserProfile.ROLE_STUDENT,
    ).update(classroom=target)
