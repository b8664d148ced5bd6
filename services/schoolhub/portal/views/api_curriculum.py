"""`/api/subjects/...` and `/api/courses/...` (teacher only, organization scoped)."""

from __future__ import annotations

from django.db.models import Prefetch
from django.views.decorators.http import require_GET, require_http_methods

from ..models import Course, Part, Subject, Unit, UserProfile
from ..services.org_access import (
    org_course_or_none,
    org_courses_queryset,
    org_subject_or_none,
    org_subjects_queryset,
    user_org_id,
)
from ..services.payloads import course_payload, subject_payload, unit_payload
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _json_no_store_response,
    _not_found,
    _read_json_body,
    api_role_required,
)

_TEACHER = UserProfile.ROLE_TEACHER


def _nested_courses():
    units = Unit.objects.order_by("order", "id").prefetch_related(
        Prefetch("parts", queryset=Part.objects.prefetch_related("sections"))
    )
    return Prefetch(
        "courses",
        queryset=Course.objects.select_related("subject")
        .order_by("name", "id")
        .prefetch_related(Prefetch("units", queryset=units), "topics"),
    )


def _subject_tree(subject_id: int) -> dict:
    subject = Subject.objects.prefetch_related(_nested_courses()).get(id=subject_id)
    return subject_payload(subject, nested=True)


def _clean_name(raw) -> str:
    return str(raw or "").strip()[:200]


# Subjects


def _create_subject(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    name = _clean_name(payload.get("name"))
    if not name:
        return _bad_request("Subject name is required")
    org_id = user_org_id(request.api_user)
    if Subject.objects.filter(organization_id=org_id, name=name).exists():
        return _bad_request("Subject with this name already exists")
    subject = Subject.objects.create(
        organization_id=org_id,
        name=name,
        description=str(payload.get("description") or ""),
        created_by=request.api_user,
    )
    _audit(request, action="subject.create", target_type="Subject", target_id=subject.id, summary=name)
    return _json_no_store_response(
        {"message": "Subject created successfully", "subject": _subject_tree(subject.id)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@api_role_required(_TEACHER)
def api_subjects(request):
    if request.method == "POST":
        return _create_subject(request)
    subjects = org_subjects_queryset(request.api_user).order_by("name", "id").prefetch_related(_nested_courses())
    return _json_no_store_response({"subjects": [subject_payload(s, nested=True) for s in subjects]})


def _update_subject(request, subject: Subject):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if "name" in payload:
        name = _clean_name(payload.get("name"))
        if not name:
            return _bad_request("Subject name cannot be empty")
        if name != subject.name and Subject.objects.filter(
            organization_id=subject.organization_id, name=name
        ).exclude(id=subject.id).exists():
            return _bad_request("Subject with this name already exists")
        subject.name = name
    if "description" in payload:
        subject.description = str(payload.get("description") or "")
    if "isArchived" in payload:
        subject.is_archived = bool(payload.get("isArchived"))
    subject.save()
    _audit(request, action="subject.update", target_type="Subject", target_id=subject.id, summary=subject.name)
    return _json_no_store_response(
        {"message": "Subject updated successfully", "subject": _subject_tree(subject.id)}
    )


def _delete_subject(request, subject: Subject):
    if subject.courses.exists():
        return _bad_request("Cannot delete subject that contains courses. Please remove all courses first.")
    subject_id, name = subject.id, subject.name
    subject.delete()
    _audit(request, action="subject.delete", target_type="Subject", target_id=subject_id, summary=name)
    return _json_no_store_response({"message": "Subject deleted successfully"})


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_role_required(_TEACHER)
def api_subject_detail(request, subject_id: int):
    subject = org_subject_or_none(request.api_user, subject_id)
    if subject is None:
        return _not_found("Subject not found")
    if request.method == "PATCH":
        return _update_subject(request, subject)
    if request.method == "DELETE":
        return _delete_subject(request, subject)
    return _json_no_store_response({"subject": _subject_tree(subject.id)})


# Courses


def _course_detail(course_id: int) -> dict:
    course = (
        Course.objects.select_related("subject")
        .prefetch_related(
            Prefetch(
                "units",
                queryset=Unit.objects.order_by("order", "id").prefetch_related(
                    Prefetch("parts", queryset=Part.objects.prefetch_related("sections"))
                ),
            ),
            "topics",
        )
        .get(id=course_id)
    )
    return course_payload(course, nested=True)


def _create_course(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    name = _clean_name(payload.get("name"))
    if not name:
        return _bad_request("Course name is required")
    subject = org_subject_or_none(request.api_user, payload.get("subjectId"))
    if subject is None:
        return _not_found("Subject not found")
    if Course.objects.filter(subject=subject, name=name).exists():
        return _bad_request("Course with this name already exists in this subject")
    course = Course.objects.create(
        subject=subject,
        name=name,
        description=str(payload.get("description") or ""),
        created_by=request.api_user,
    )
    _audit(
        request,
        action="course.create",
        target_type="Course",
        target_id=course.id,
        summary=name,
        metadata={"subject_id": subject.id},
    )
    return _json_no_store_response(
        {"message": "Course created successfully", "course": _course_detail(course.id)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@api_role_required(_TEACHER)
def api_courses(request):
    if request.method == "POST":
        return _create_course(request)
    qs = org_courses_queryset(request.api_user)
    subject_id = request.GET.get("subjectId")
    if subject_id:
        subject = org_subject_or_none(request.api_user, subject_id)
        if subject is None:
            return _json_no_store_response({"courses": []})
        qs = qs.filter(subject=subject)
    qs = qs.order_by("subject__name", "name", "id").prefetch_related(
        Prefetch("units", queryset=Unit.objects.order_by("order", "id")), "topics"
    )
    return _json_no_store_response({"courses": [course_payload(c, nested=True) for c in qs]})


def _update_course(request, course: Course):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    target_subject = course.subject
    if payload.get("subjectId") not in (None, ""):
        target_subject = org_subject_or_none(request.api_user, payload.get("subjectId"))
        if target_subject is None:
            return _not_found("Subject not found")
    name = course.name
    if "name" in payload:
        name = _clean_name(payload.get("name"))
        if not name:
            return _bad_request("Course name cannot be empty")
    if (name != course.name or target_subject.id != course.subject_id) and Course.objects.filter(
        subject=target_subject, name=name
    ).exclude(id=course.id).exists():
        return _bad_request("Course with this name already exists in this subject")

    course.name = name
    course.subject = target_subject
    if "description" in payload:
        course.description = str(payload.get("description") or "")
    if "isArchived" in payload:
        course.is_archived = bool(payload.get("isArchived"))
    course.save()
    _audit(request, action="course.update", target_type="Course", target_id=course.id, summary=course.name)
    return _json_no_store_response({"message": "Course updated successfully", "course": _course_detail(course.id)})


def _delete_course(request, course: Course):
    if course.units.exists():
        return _bad_request("Cannot delete course that contains units. Please remove all units first.")
    course_id, name = course.id, course.name
    course.delete()
    _audit(request, action="course.delete", target_type="Course", target_id=course_id, summary=name)
    return _json_no_store_response({"message": "Course deleted successfully"})


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_role_required(_TEACHER)
def api_course_detail(request, course_id: int):
    course = org_course_or_none(request.api_user, course_id)
    if course is None:
        return _not_found("Course not found")
    if request.method == "PATCH":
        return _update_course(request, course)
    if request.method == "DELETE":
        return _delete_course(request, course)
    return _json_no_store_response({"course": _course_detail(course.id)})


@require_GET
@api_role_required(_TEACHER)
def api_course_units(request, course_id: int):
    course = org_course_or_none(request.api_user, course_id)
    if course is None:
        return _not_found("Course not found")
    units = course.units.select_related("course").order_by("order", "id")
    return _json_no_store_response({"units": [unit_payload(u) for u in units]})


__all__ = [
    "api_course_detail",
    "api_course_units",
    "api_courses",
    "api_subject_detail",
    "api_subjects",
]
