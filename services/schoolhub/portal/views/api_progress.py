"""`/api/progress/...`: daily progress recording and roll-up reads."""

from __future__ import annotations

from datetime import timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from ..forms import DailyProgressForm
from ..models import DailyProgress, UserProfile
from ..services import progress
from ..services.org_access import org_assessment_or_none, org_course_or_none, org_member_or_none, user_role
from ..services.payloads import (
    daily_progress_payload,
    learning_pattern_payload,
    user_brief,
    weekly_progress_payload,
)
from .shared import (
    _bad_json,
    _bad_request,
    _forbidden,
    _form_error_response,
    _json_no_store_response,
    _not_found,
    _read_json_body,
    api_role_required,
)

_STUDENT = UserProfile.ROLE_STUDENT
_TEACHER = UserProfile.ROLE_TEACHER
_WEEKS_SHOWN = 12
_AVERAGE_WINDOW_DAYS = 30


def _date_range(request):
    """(start, end, error). Both bounds are needed for the filter to apply."""
    raw_start, raw_end = request.GET.get("startDate"), request.GET.get("endDate")
    if not (raw_start and raw_end):
        return None, None, None
    start, end = parse_date(raw_start[:10]), parse_date(raw_end[:10])
    if start is None or end is None:
        return None, None, _bad_request("startDate and endDate must be YYYY-MM-DD dates")
    return start, end, None


@require_POST
@api_role_required(_STUDENT, _TEACHER)
def api_progress_daily(request):
    """POST {assignmentId, score?, timeSpentMinutes?, completed?}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = DailyProgressForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    data = form.cleaned_data
    assessment = org_assessment_or_none(request.api_user, data["assignmentId"])
    if assessment is None:
        return _not_found("Assignment not found")
    row = progress.record_daily_progress(
        student=request.api_user,
        assessment=assessment,
        score=data["score"],
        time_spent_minutes=data["timeSpentMinutes"],
        completed=data["completed"],
    )
    return _json_no_store_response(
        {"message": "Progress recorded successfully", "progress": daily_progress_payload(row)}
    )


@require_GET
@api_role_required(_STUDENT, _TEACHER)
def api_progress_student(request, student_id: int):
    if user_role(request.api_user) == _STUDENT:
        if request.api_user.id != student_id:
            return _forbidden()
        student = request.api_user
    else:
        student = org_member_or_none(request.api_user, student_id, role=_STUDENT)
        if student is None:
            return _not_found("Student not found")

    start, end, error = _date_range(request)
    if error is not None:
        return error
    rows = DailyProgress.objects.filter(student=student).select_related(
        "assessment", "assessment__course", "assessment__course__subject"
    )
    if start is not None:
        rows = rows.filter(date__gte=start, date__lte=end)
    rows = list(rows.order_by("-date", "-id"))
    weekly = student.weekly_progress.order_by("-week_start")[:_WEEKS_SHOWN]
    patterns = student.learning_patterns.order_by("pattern_type")
    since = timezone.localdate() - timedelta(days=_AVERAGE_WINDOW_DAYS)

    return _json_no_store_response(
        {
            "dailyProgress": [daily_progress_payload(r, with_assessment=True) for r in rows],
            "weeklyProgress": [weekly_progress_payload(w) for w in weekly],
            "learningPatterns": [learning_pattern_payload(p) for p in patterns],
            "summary": progress.summarize(rows),
            "dailyAverages": progress.daily_averages(rows, since=since),
        }
    )


@require_GET
@api_role_required(_TEACHER)
def api_progress_class(request, course_id: int):
    course = org_course_or_none(request.api_user, course_id)
    if course is None:
        return _not_found("Course not found")
    start, end, error = _date_range(request)
    if error is not None:
        return error

    students = [e.student for e in course.enrollments.select_related("student__profile").order_by("id")]
    rows = DailyProgress.objects.filter(student__in=students).select_related("student", "assessment")
    if start is not None:
        rows = rows.filter(date__gte=start, date__lte=end)
    rows = list(rows.order_by("-date", "-id"))

    class_rows = []
    for r in rows:
        data = daily_progress_payload(r)
        data["student"] = {"id": r.student.id, "firstName": r.student.first_name, "lastName": r.student.last_name}
        data["assignment"] = {"id": r.assessment.id, "title": r.assessment.title, "type": r.assessment.type}
        class_rows.append(data)
    return _json_no_store_response(
        {
            "classProgress": class_rows,
            "classStats": progress.class_stats(rows, student_count=len(students)),
            "students": [user_brief(s) for s in students],
        }
    )


__all__ = ["api_progress_class", "api_progress_daily", "api_progress_student"]
