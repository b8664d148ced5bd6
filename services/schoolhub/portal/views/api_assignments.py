"""`/api/assignments/...`: assessment authoring (teacher) and taking (student)."""

from __future__ import annotations

from django.db.models import Prefetch, Q
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..models import Assessment, Submission, UserProfile
from ..services.assignments import (
    LinkError,
    SubmissionRefused,
    parse_assignment_fields,
    resolve_links,
    submit_answers,
)
from ..services.org_access import (
    enrolled_course_ids,
    org_assessment_or_none,
    org_assessments_queryset,
    org_resources_queryset,
    user_org_id,
    user_role,
)
from ..services.payloads import assessment_payload, submission_payload
from ..services.question_payload import PayloadError
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _forbidden,
    _json_no_store_response,
    _not_found,
    _parse_positive_int,
    _read_json_body,
    api_rate_limit,
    api_role_required,
)

_TEACHER = UserProfile.ROLE_TEACHER
_STUDENT = UserProfile.ROLE_STUDENT


def _student_visible(user):
    """Published assessments in the student's courses, inside their window."""
    now = timezone.now()
    return (
        org_assessments_queryset(user)
        .filter(course_id__in=enrolled_course_ids(user), published=True)
        .filter(Q(available_from__isnull=True) | Q(available_from__lte=now))
        .filter(Q(available_to__isnull=True) | Q(available_to__gte=now))
    )


def _own_submissions(user):
    return Prefetch("submissions", queryset=Submission.objects.filter(student=user), to_attr="own_submissions")


def _list_for_student(request):
    user = request.api_user
    qs = (
        _student_visible(user)
        .order_by("course__name", "unit__order", "created_at", "id")
        .prefetch_related("resources", _own_submissions(user))
    )
    return _json_no_store_response(
        {"assignments": [assessment_payload(a, submissions=a.own_submissions) for a in qs]}
    )


def _detail_payload(assessment_id: int, *, with_submissions: bool = True) -> dict:
    assessment = (
        Assessment.objects.select_related("course", "unit")
        .prefetch_related("resources", Prefetch("submissions", queryset=Submission.objects.select_related("student__profile")))
        .get(id=assessment_id)
    )
    submissions = list(assessment.submissions.all()) if with_submissions else None
    return assessment_payload(assessment, submissions=submissions, with_students=True)


def _create_assignment(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    try:
        fields = parse_assignment_fields(payload)
        links = resolve_links(request.api_user, payload)
    except PayloadError as exc:
        return _bad_request(str(exc))
    except LinkError as exc:
        return _not_found(str(exc))

    assessment = Assessment.objects.create(
        organization_id=user_org_id(request.api_user),
        created_by=request.api_user,
        **fields,
        **links,
    )
    _audit(
        request,
        action="assignment.create",
        target_type="Assessment",
        target_id=assessment.id,
        summary=f"Created {assessment.type} assignment {assessment.title}",
        metadata={"course_id": assessment.course_id, "unit_id": assessment.unit_id},
    )
    return _json_no_store_response(
        {"message": "Assignment created successfully", "assignment": _detail_payload(assessment.id)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@api_role_required(_STUDENT, _TEACHER)
@api_rate_limit(limit=120, window_seconds=60, scope="assignments")
def api_assignments(request):
    """GET (student): available assignments. POST (teacher): create one."""
    role = user_role(request.api_user)
    if request.method == "POST":
        if role != _TEACHER:
            return _forbidden()
        return _create_assignment(request)
    if role != _STUDENT:
        return _forbidden()
    return _list_for_student(request)


@require_GET
@api_role_required(_TEACHER)
def api_teacher_assignments(request):
    qs = (
        org_assessments_queryset(request.api_user)
        .order_by("-created_at", "-id")
        .prefetch_related(
            "resources",
            Prefetch(
                "submissions",
                queryset=Submission.objects.select_related("student__profile").order_by("-submitted_at"),
            ),
        )
    )
    return _json_no_store_response(
        {
            "assignments": [
                assessment_payload(a, submissions=list(a.submissions.all()), with_students=True) for a in qs
            ]
        }
    )


def _update_assignment(request, assessment: Assessment):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    try:
        fields = parse_assignment_fields(payload, existing=assessment)
        links = resolve_links(request.api_user, payload)
    except PayloadError as exc:
        return _bad_request(str(exc))
    except LinkError as exc:
        return _not_found(str(exc))

    for attr, value in {**fields, **links}.items():
        setattr(assessment, attr, value)
    assessment.save()
    _audit(
        request,
        action="assignment.update",
        target_type="Assessment",
        target_id=assessment.id,
        summary=f"Updated assignment {assessment.title}",
        metadata={"fields": sorted(payload.keys())},
    )
    return _json_no_store_response(
        {"message": "Assignment updated successfully", "assignment": _detail_payload(assessment.id)}
    )


def _delete_assignment(request, assessment: Assessment):
    assessment_id, title = assessment.id, assessment.title
    assessment.delete()
    _audit(request, action="assignment.delete", target_type="Assessment", target_id=assessment_id, summary=title)
    return _json_no_store_response({"message": "Assignment deleted successfully"})


def _get_for_student(request, assessment_id: int):
    user = request.api_user
    assessment = (
        _student_visible(user)
        .filter(id=assessment_id)
        .prefetch_related("resources", _own_submissions(user))
        .first()
    )
    if assessment is None:
        return _not_found("Assignment not found")
    return _json_no_store_response(
        {"assignment": assessment_payload(assessment, submissions=assessment.own_submissions)}
    )


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_role_required(_STUDENT, _TEACHER)
@api_rate_limit(limit=120, window_seconds=60, scope="assignments")
def api_assignment_detail(request, assessment_id: int):
    if user_role(request.api_user) == _STUDENT:
        if request.method != "GET":
            return _forbidden()
        return _get_for_student(request, assessment_id)

    assessment = org_assessment_or_none(request.api_user, assessment_id)
    if assessment is None:
        return _not_found("Assignment not found")
    if request.method == "PATCH":
        return _update_assignment(request, assessment)
    if request.method == "DELETE":
        return _delete_assignment(request, assessment)
    return _json_no_store_response({"assignment": _detail_payload(assessment.id)})


@require_POST
@api_role_required(_STUDENT)
@api_rate_limit(limit=30, window_seconds=60, scope="assignment_submit")
def api_assignment_submit(request, assessment_id: int):
    """POST {answers}: grade (when auto-graded) and record a submission."""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    assessment = _student_visible(request.api_user).filter(id=assessment_id).first()
    if assessment is None:
        return _not_found("Assignment not found")
    try:
        submission, score = submit_answers(
            assessment=assessment,
            student=request.api_user,
            answers=payload.get("answers"),
        )
    except SubmissionRefused as exc:
        return _bad_request(str(exc))
    return _json_no_store_response(
        {
            "message": "Assignment submitted successfully",
            "score": score,
            "submission": submission_payload(submission),
        },
        status=201,
    )


@require_POST
@api_role_required(_TEACHER)
def api_assignment_add_resources(request):
    """POST {assignmentId, resourceIds:[...]}: attach organization resources."""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    assessment = org_assessment_or_none(request.api_user, payload.get("assignmentId"))
    if assessment is None:
        return _not_found("Assignment not found")
    raw_ids = payload.get("resourceIds")
    if not isinstance(raw_ids, list) or not raw_ids:
        return _bad_request("resourceIds must be a non-empty array")
    resource_ids = {_parse_positive_int(r) for r in raw_ids}
    if None in resource_ids:
        return _bad_request("resourceIds must contain positive integers")
    resources = list(org_resources_queryset(request.api_user).filter(id__in=resource_ids))
    if len(resources) != len(resource_ids):
        return _bad_request("Some resources not found or not accessible")

    assessment.resources.add(*resources)
    _audit(
        request,
        action="assignment.resources_add",
        target_type="Assessment",
        target_id=assessment.id,
        summary=f"Attached {len(resources)} resources",
        metadata={"resource_ids": sorted(resource_ids)},
    )
    return _json_no_store_response(
        {"message": "Resources added successfully", "assignment": _detail_payload(assessment.id)}
    )


@require_http_methods(["DELETE"])
@api_role_required(_TEACHER)
def api_assignment_remove_resource(request, assessment_id: int, resource_id: int):
    assessment = org_assessment_or_none(request.api_user, assessment_id)
    if assessment is None:
        return _not_found("Assignment not found")
    if not assessment.resources.filter(id=resource_id).exists():
        return _not_found("Resource not attached to this assignment")
    assessment.resources.remove(resource_id)
    _audit(
        request,
        action="assignment.resource_remove",
        target_type="Assessment",
        target_id=assessment.id,
        summary=f"Detached resource {resource_id}",
        metadata={"resource_id": resource_id},
    )
    return _json_no_store_response({"message": "Resource removed successfully"})


__all__ = [
    "api_assignment_add_resources",
    "api_assignment_detail",
    "api_assignment_remove_resource",
    "api_assignment_submit",
    "api_assignments",
    "api_teacher_assignments",
]
