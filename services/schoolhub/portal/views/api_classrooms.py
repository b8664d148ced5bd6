"""`/api/classrooms/...`: staff view of homerooms and their courses."""

from __future__ import annotations

from django.views.decorators.http import require_GET, require_POST

from ..models import Classroom, UserProfile
from ..services.org_access import org_classroom_or_none, org_courses_queryset, user_org_id
from ..services.payloads import classroom_payload
from .api_auth import classroom_with_students, progress_classroom
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _json_no_store_response,
    _not_found,
    _parse_positive_int,
    _read_json_body,
    api_role_required,
)

_STAFF = (UserProfile.ROLE_ADMIN, UserProfile.ROLE_TEACHER)


def _course_brief(course) -> dict:
    return {"id": course.id, "name": course.name, "subject": {"id": course.subject.id, "name": course.subject.name}}


def _classroom_detail(classroom: Classroom) -> dict:
    data = classroom_with_students(classroom)
    data["courses"] = [_course_brief(c) for c in classroom.courses.select_related("subject").order_by("name", "id")]
    return data


@require_GET
@api_role_required(*_STAFF)
def api_classroom_list(request):
    classrooms = Classroom.objects.filter(organization_id=user_org_id(request.api_user), is_active=True).order_by(
        "year_level", "class_num", "id"
    )
    return _json_no_store_response({"classrooms": [_classroom_detail(c) for c in classrooms]})


@require_GET
@api_role_required(*_STAFF)
def api_classroom_detail_students(request, classroom_id: int):
    classroom = org_classroom_or_none(request.api_user, classroom_id)
    if classroom is None:
        return _not_found("Classroom not found")
    return _json_no_store_response({"classroom": _classroom_detail(classroom)})


@require_POST
@api_role_required(*_STAFF)
def api_classroom_progress_all(request, classroom_id: int):
    return progress_classroom(request, classroom_id)


@require_POST
@api_role_required(*_STAFF)
def api_classroom_courses(request, classroom_id: int):
    """POST {courseIds:[...]}: attach organization courses to a classroom."""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    raw_ids = payload.get("courseIds")
    if not isinstance(raw_ids, list):
        return _bad_request("Course IDs must be an array")
    classroom = org_classroom_or_none(request.api_user, classroom_id)
    if classroom is None:
        return _not_found("Classroom not found")
    course_ids = {_parse_positive_int(c) for c in raw_ids}
    if None in course_ids:
        return _bad_request("One or more courses not found")
    courses = list(org_courses_queryset(request.api_user).filter(id__in=course_ids))
    if len(courses) != len(course_ids):
        return _bad_request("One or more courses not found")

    classroom.courses.add(*courses)
    _audit(
        request,
        action="classroom.courses",
        target_type="Classroom",
        target_id=classroom.id,
        summary=f"Assigned {len(courses)} courses",
        metadata={"course_ids": sorted(course_ids)},
    )
    return _json_no_store_response(
        {
            "message": (
                f"Successfully assigned {len(courses)} courses to "
                f"{classroom.year_level}/{classroom.class_num}"
            ),
            "classroom": classroom_payload(classroom),
            "courses": [_course_brief(c) for c in courses],
        }
    )


__all__ = [
    "api_classroom_courses",
    "api_classroom_detail_students",
    "api_classroom_list",
    "api_classroom_progress_all",
]
