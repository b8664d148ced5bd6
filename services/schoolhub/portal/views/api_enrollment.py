"""`/api/enrollment/...`: student self-enrollment in courses."""

from __future__ import annotations

from django.db import IntegrityError, transaction
from django.db.models import Prefetch
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..models import Course, StudentCourse, UserProfile
from ..services.org_access import org_course_or_none, org_courses_queryset, org_subject_or_none, org_subjects_queryset
from .shared import _bad_json, _bad_request, _json_no_store_response, _not_found, _read_json_body, api_role_required

_STUDENT = UserProfile.ROLE_STUDENT


def _course_brief(course: Course) -> dict:
    return {
        "id": course.id,
        "name": course.name,
        "description": course.description,
        "subject": {"id": course.subject.id, "name": course.subject.name},
    }


def _enrollment_payload(enrollment: StudentCourse) -> dict:
    return {
        "id": enrollment.id,
        "studentId": enrollment.student_id,
        "courseId": enrollment.course_id,
        "enrolledAt": enrollment.enrolled_at,
        "course": _course_brief(enrollment.course),
    }


@require_GET
@api_role_required(_STUDENT)
def api_enrollment_subjects(request):
    open_courses = Prefetch("courses", queryset=Course.objects.filter(is_archived=False).order_by("name", "id"))
    subjects = (
        org_subjects_queryset(request.api_user)
        .filter(is_archived=False)
        .order_by("name", "id")
        .prefetch_related(open_courses)
    )
    return _json_no_store_response(
        {
            "subjects": [
                {
                    "id": s.id,
                    "name": s.name,
                    "description": s.description,
                    "courses": [{"id": c.id, "name": c.name, "description": c.description} for c in s.courses.all()],
                }
                for s in subjects
            ]
        }
    )


@require_GET
@api_role_required(_STUDENT)
def api_enrollment_courses(request, subject_id: int):
    subject = org_subject_or_none(request.api_user, subject_id)
    if subject is None:
        return _json_no_store_response({"courses": []})
    enrolled = set(request.api_user.enrollments.values_list("course_id", flat=True))
    courses = org_courses_queryset(request.api_user).filter(subject=subject, is_archived=False).order_by("name", "id")
    return _json_no_store_response(
        {"courses": [{**_course_brief(c), "isEnrolled": c.id in enrolled} for c in courses]}
    )


@require_POST
@api_role_required(_STUDENT)
def api_enroll(request):
    """POST {courseId}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if payload.get("courseId") in (None, ""):
        return _bad_request("Course ID is required")
    course = org_course_or_none(request.api_user, payload.get("courseId"))
    if course is None or course.is_archived:
        return _not_found("Course not found")
    try:
        with transaction.atomic():
            enrollment = StudentCourse.objects.create(student=request.api_user, course=course)
    except IntegrityError:
        return _bad_request("Already enrolled in this course")
    return _json_no_store_response(
        {"message": "Successfully enrolled in course", "enrollment": _enrollment_payload(enrollment)},
        status=201,
    )


@require_http_methods(["DELETE"])
@api_role_required(_STUDENT)
def api_unenroll(request, course_id: int):
    deleted, _ = StudentCourse.objects.filter(student=request.api_user, course_id=course_id).delete()
    if not deleted:
        return _not_found("Enrollment not found")
    return _json_no_store_response({"message": "Successfully unenrolled from course"})


@require_GET
@api_role_required(_STUDENT)
def api_my_courses(request):
    enrollments = (
        request.api_user.enrollments.select_related("course", "course__subject")
        .order_by("course__subject__name", "course__name", "id")
    )
    return _json_no_store_response({"enrollments": [_enrollment_payload(e) for e in enrollments]})


__all__ = [
    "api_enroll",
    "api_enrollment_courses",
    "api_enrollment_subjects",
    "api_my_courses",
    "api_unenroll",
]
