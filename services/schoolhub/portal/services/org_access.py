"""Organization-scoped lookups for API callers.

Every lookup takes the calling user and returns None for rows outside the
caller's organization, so views answer 404 without leaking existence.
Curriculum rows are scoped through `course.subject.organization`.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import QuerySet

from ..models import (
    Assessment,
    ChatRoom,
    Classroom,
    Course,
    Organization,
    Resource,
    Subject,
    Unit,
    UserProfile,
)


def _parse_id(raw) -> int | None:
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def user_org_id(user) -> int | None:
    profile = getattr(user, "profile", None)
    return getattr(profile, "organization_id", None)


def user_role(user) -> str:
    profile = getattr(user, "profile", None)
    return getattr(profile, "role", "") or ""


def is_superuser(user) -> bool:
    """ADMIN accounts, plus any email listed in SCHOOLHUB_SUPERUSER_EMAILS."""
    if user is None:
        return False
    if user_role(user) == UserProfile.ROLE_ADMIN:
        return True
    allowed = {e.lower() for e in getattr(settings, "SCHOOLHUB_SUPERUSER_EMAILS", []) or []}
    return bool(user.email) and user.email.lower() in allowed


def org_or_none(org_id) -> Organization | None:
    parsed = _parse_id(org_id)
    if parsed is None:
        return None
    return Organization.objects.filter(id=parsed).first()


def org_members_queryset(user) -> QuerySet:
    User = get_user_model()
    org_id = user_org_id(user)
    if org_id is None:
        return User.objects.none()
    return User.objects.filter(profile__organization_id=org_id).select_related("profile", "profile__classroom")


def org_member_or_none(user, member_id, *, role: str | None = None):
    parsed = _parse_id(member_id)
    if parsed is None:
        return None
    qs = org_members_queryset(user).filter(id=parsed)
    if role:
        qs = qs.filter(profile__role=role)
    return qs.first()


def org_subjects_queryset(user) -> QuerySet[Subject]:
    return Subject.objects.filter(organization_id=user_org_id(user))


def org_subject_or_none(user, subject_id) -> Subject | None:
    parsed = _parse_id(subject_id)
    if parsed is None:
        return None
    return org_subjects_queryset(user).filter(id=parsed).first()


def org_courses_queryset(user) -> QuerySet[Course]:
    return Course.objects.filter(subject__organization_id=user_org_id(user)).select_related("subject")


def org_course_or_none(user, course_id) -> Course | None:
    parsed = _parse_id(course_id)
    if parsed is None:
        return None
    return org_courses_queryset(user).filter(id=parsed).first()


def org_units_queryset(user) -> QuerySet[Unit]:
    return Unit.objects.filter(organization_id=user_org_id(user)).select_related("course", "course__subject")


def org_unit_or_none(user, unit_id) -> Unit | None:
    parsed = _parse_id(unit_id)
    if parsed is None:
        return None
    return org_units_queryset(user).filter(id=parsed).first()


def org_assessments_queryset(user) -> QuerySet[Assessment]:
    return Assessment.objects.filter(organization_id=user_org_id(user)).select_related(
        "course", "course__subject", "unit"
    )


def org_assessment_or_none(user, assessment_id) -> Assessment | None:
    parsed = _parse_id(assessment_id)
    if parsed is None:
        return None
    return org_assessments_queryset(user).filter(id=parsed).first()


def org_resources_queryset(user) -> QuerySet[Resource]:
    return Resource.objects.filter(organization_id=user_org_id(user)).select_related(
        "course", "unit", "subject", "created_by"
    )


def org_resource_or_none(user, resource_id) -> Resource | None:
    parsed = _parse_id(resource_id)
    if parsed is None:
        return None
    return org_resources_queryset(user).filter(id=parsed).first()


def org_classroom_or_none(user, classroom_id) -> Classroom | None:
    parsed = _parse_id(classroom_id)
    if parsed is None:
        return None
    return Classroom.objects.filter(id=parsed, organization_id=user_org_id(user)).first()


def org_chat_room_or_none(user, room_id) -> ChatRoom | None:
    parsed = _parse_id(room_id)
    if parsed is None:
        return None
    return ChatRoom.objects.filter(id=parsed, organization_id=user_org_id(user), is_active=True).first()


def enrolled_course_ids(user) -> list[int]:
    return list(user.enrollments.values_list("course_id", flat=True))
