"""`/api/analytics/...`: study-session and attempt tracking plus staff reports."""

from __future__ import annotations

from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..forms import ActivityForm, AttemptCompleteForm
from ..models import AssignmentAttempt, StudentActivity, StudentSession, UserProfile
from ..services import analytics
from ..services.org_access import (
    org_assessment_or_none,
    org_course_or_none,
    org_member_or_none,
    org_resource_or_none,
    user_org_id,
)
from ..services.payloads import activity_payload, attempt_payload, study_session_payload
from .shared import (
    _bad_json,
    _bad_request,
    _client_ip,
    _form_error_response,
    _json_no_store_response,
    _not_found,
    _read_json_body,
    api_rate_limit,
    api_role_required,
)

_STUDENT = UserProfile.ROLE_STUDENT
_ADMIN = UserProfile.ROLE_ADMIN
_TEACHER = UserProfile.ROLE_TEACHER


@require_POST
@api_role_required(_STUDENT)
def api_analytics_session_start(request):
    session = analytics.start_session(
        request.api_user,
        user_agent=request.META.get("HTTP_USER_AGENT", ""),
        ip_address=_client_ip(request),
    )
    return _json_no_store_response({"message": "Session started", "sessionId": session.id}, status=201)


@require_http_methods(["PATCH", "POST"])
@api_role_required(_STUDENT)
def api_analytics_session_end(request, session_id: int):
    session = StudentSession.objects.filter(id=session_id, student=request.api_user, ended_at__isnull=True).first()
    if session is None:
        return _not_found("Active session not found")
    analytics.end_session(session)
    return _json_no_store_response({"message": "Session ended", "session": study_session_payload(session)})


@require_POST
@api_role_required(_STUDENT)
@api_rate_limit(limit=600, window_seconds=60, scope="analytics_activity")
def api_analytics_activity(request):
    """POST {activityType, sessionId?, assignmentId?, resourceId?, courseId?, page?, questionId?, metadata?}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = ActivityForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    data = form.cleaned_data
    user = request.api_user

    links = {}
    if data["sessionId"]:
        links["session"] = StudentSession.objects.filter(id=data["sessionId"], student=user).first()
        if links["session"] is None:
            return _not_found("Session not found")
    lookups = {
        "assignmentId": ("assessment", org_assessment_or_none, "Assignment not found"),
        "resourceId": ("resource", org_resource_or_none, "Resource not found"),
        "courseId": ("course", org_course_or_none, "Course not found"),
    }
    for key, (attr, lookup, missing) in lookups.items():
        if data[key]:
            links[attr] = lookup(user, data[key])
            if links[attr] is None:
                return _not_found(missing)

    metadata = payload.get("metadata")
    details = dict(metadata) if isinstance(metadata, dict) else {}
    if data["page"]:
        details["page"] = data["page"]
    if data["questionId"]:
        details["questionId"] = data["questionId"]

    activity = StudentActivity.objects.create(
        student=user,
        activity_type=data["activityType"].strip(),
        details=details,
        duration_seconds=data["duration"],
        **links,
    )
    return _json_no_store_response({"message": "Activity tracked", "activityId": activity.id}, status=201)


@require_POST
@api_role_required(_STUDENT)
def api_analytics_attempt_start(request):
    """POST {assignmentId}: open a new attempt or resume the latest one."""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if payload.get("assignmentId") in (None, ""):
        return _bad_request("Assignment ID is required")
    assessment = org_assessment_or_none(request.api_user, payload.get("assignmentId"))
    if assessment is None:
        return _not_found("Assignment not found")
    attempt, created = analytics.start_attempt(request.api_user, assessment)
    if created:
        return _json_no_store_response(
            {"message": "Assignment attempt started", "attemptId": attempt.id},
            status=201,
        )
    return _json_no_store_response({"message": "Assignment attempt resumed", "attemptId": attempt.id})


@require_http_methods(["PATCH", "POST"])
@api_role_required(_STUDENT)
def api_analytics_attempt_complete(request, attempt_id: int):
    """PATCH {answers?, score?, feedback?}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = AttemptCompleteForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    attempt = AssignmentAttempt.objects.filter(id=attempt_id, student=request.api_user).first()
    if attempt is None:
        return _not_found("Assignment attempt not found")
    analytics.complete_attempt(
        attempt,
        answers=payload.get("answers"),
        score=form.cleaned_data["score"],
        feedback=form.cleaned_data["feedback"],
    )
    return _json_no_store_response({"message": "Assignment completed", "attempt": attempt_payload(attempt)})


@require_GET
@api_role_required(_TEACHER, _ADMIN)
def api_analytics_student(request, student_id: int):
    """Engagement for one student over `period` (7d, 30d or 90d; default 30d)."""
    student = org_member_or_none(request.api_user, student_id, role=_STUDENT)
    if student is None:
        return _not_found("Student not found")
    now = timezone.now()
    since = analytics.period_start(request.GET.get("period"), now=now)
    report = analytics.student_report(student, since=since)
    return _json_no_store_response(
        {
            "analytics": {
                "student": {
                    "id": student.id,
                    "firstName": student.first_name,
                    "lastName": student.last_name,
                    "email": student.email,
                },
                "period": {"start": since, "end": now},
                "sessions": report["sessionTotals"],
                "assignments": report["assignments"],
                "activities": {"total": len(report["activities"]), "breakdown": report["activityBreakdown"]},
                "recentActivity": [activity_payload(a) for a in report["activities"][:10]],
                "recentSessions": [study_session_payload(s) for s in report["sessions"][:5]],
                "recentAttempts": [attempt_payload(a) for a in report["attempts"][:5]],
            }
        }
    )


@require_GET
@api_role_required(_ADMIN)
def api_analytics_school(request):
    now = timezone.now()
    since = analytics.period_start(request.GET.get("period"), now=now)
    report = analytics.organization_report(user_org_id(request.api_user), since=since, until=now)
    report["period"] = {"start": since, "end": now}
    return _json_no_store_response({"analytics": report})


__all__ = [
    "api_analytics_activity",
    "api_analytics_attempt_complete",
    "api_analytics_attempt_start",
    "api_analytics_school",
    "api_analytics_session_end",
    "api_analytics_session_start",
    "api_analytics_student",
]
