"""Study-session, activity and attempt tracking plus the report aggregates."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from ..models import AssignmentAttempt, StudentActivity, StudentSession, UserProfile

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD_DAYS = 30
TOP_STUDENTS_LIMIT = 10


def period_start(period: str | None, *, now: datetime | None = None) -> datetime:
    now = now or timezone.now()
    return now - timedelta(days=PERIOD_DAYS.get((period or "").strip(), DEFAULT_PERIOD_DAYS))


def elapsed_seconds(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds()))


def engagement_score(*, completed: int, average_score: float, total_seconds: int) -> float:
    raw = completed * 0.4 + (average_score / 100) * 0.4 + (total_seconds / 3600) * 0.2
    return round(raw * 100) / 100


def completion_rate(completed: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    return round(completed / denominator * 100)


def session_totals(sessions) -> dict:
    sessions = list(sessions)
    total_time = sum(s.duration_seconds for s in sessions if s.duration_seconds)
    return {
        "total": len(sessions),
        "totalTime": total_time,
        "averageTime": round(total_time / len(sessions)) if sessions else 0,
    }


def start_session(student, *, user_agent: str = "", ip_address: str | None = None) -> StudentSession:
    return StudentSession.objects.create(
        student=student,
        user_agent=(user_agent or "")[:255],
        ip_address=ip_address,
    )


def end_session(session: StudentSession) -> StudentSession:
    now = timezone.now()
    session.ended_at = now
    session.duration_seconds = elapsed_seconds(session.started_at, now)
    session.save(update_fields=["ended_at", "duration_seconds"])
    return session


def start_attempt(student, assessment) -> tuple[AssignmentAttempt, bool]:
    """Resume the latest attempt for the assessment, or open a new one.

    Returns (attempt, created).
    """
    attempt = AssignmentAttempt.objects.filter(student=student, assessment=assessment).first()
    if attempt is not None:
        attempt.status = AssignmentAttempt.STATUS_IN_PROGRESS
        attempt.started_at = timezone.now()
        attempt.save(update_fields=["status", "started_at"])
        return attempt, False
    attempt = AssignmentAttempt.objects.create(
        student=student,
        assessment=assessment,
        status=AssignmentAttempt.STATUS_STARTED,
    )
    return attempt, True


def complete_attempt(attempt: AssignmentAttempt, *, answers=None, score=None, feedback: str = "") -> AssignmentAttempt:
    now = timezone.now()
    attempt.status = AssignmentAttempt.STATUS_COMPLETED
    attempt.completed_at = now
    attempt.total_time_seconds = elapsed_seconds(attempt.started_at, now)
    attempt.answers = answers if answers is not None else {}
    attempt.score = score
    attempt.feedback = feedback or ""
    attempt.save()
    logger.info(
        "attempt_completed attempt=%s student=%s seconds=%s",
        attempt.id,
        attempt.student_id,
        attempt.total_time_seconds,
    )
    return attempt


def student_report(student, *, since: datetime) -> dict:
    sessions = list(StudentSession.objects.filter(student=student, started_at__gte=since))
    activities = list(
        StudentActivity.objects.filter(student=student, created_at__gte=since).select_related(
            "assessment", "resource"
        )
    )
    attempts = list(
        AssignmentAttempt.objects.filter(student=student, started_at__gte=since).select_related("assessment")
    )
    completed = sum(1 for a in attempts if a.status == AssignmentAttempt.STATUS_COMPLETED)
    started = sum(1 for a in attempts if a.status in AssignmentAttempt.OPEN_STATUSES)
    abandoned = sum(1 for a in attempts if a.status == AssignmentAttempt.STATUS_ABANDONED)
    return {
        "sessions": sessions,
        "activities": activities,
        "attempts": attempts,
        "sessionTotals": session_totals(sessions),
        "assignments": {
            "completed": completed,
            "started": started,
            "abandoned": abandoned,
            "completionRate": completion_rate(completed, completed + started),
        },
        "activityBreakdown": dict(Counter(a.activity_type for a in activities)),
    }


def top_students(students, *, since: datetime, until: datetime) -> list[dict]:
    """Rank students by engagement score over the window, best first."""
    rows = []
    for student in students:
        scores = list(
            AssignmentAttempt.objects.filter(
                student=student,
                status=AssignmentAttempt.STATUS_COMPLETED,
                started_at__gte=since,
                started_at__lte=until,
            ).values_list("score", flat=True)
        )
        average = (sum((s or 0) for s in scores) / len(scores)) if scores else 0.0
        total_time = sum(
            d
            for d in StudentSession.objects.filter(
                student=student, started_at__gte=since, started_at__lte=until
            ).values_list("duration_seconds", flat=True)
            if d
        )
        rows.append(
            {
                "id": student.id,
                "name": f"{student.first_name} {student.last_name}".strip(),
                "completedAssignments": len(scores),
                "averageScore": round(average * 100) / 100,
                "totalTime": total_time,
                "engagementScore": engagement_score(
                    completed=len(scores), average_score=average, total_seconds=total_time
                ),
            }
        )
    rows.sort(key=lambda r: r["engagementScore"], reverse=True)
    return rows[:TOP_STUDENTS_LIMIT]


def organization_report(organization_id: int, *, since: datetime, until: datetime) -> dict:
    User = get_user_model()
    students = list(
        User.objects.filter(
            profile__organization_id=organization_id,
            profile__role=UserProfile.ROLE_STUDENT,
        ).order_by("id")
    )
    scope = {"student__profile__organization_id": organization_id}
    sessions = list(StudentSession.objects.filter(started_at__gte=since, **scope))
    activity_count = StudentActivity.objects.filter(created_at__gte=since, **scope).count()
    attempts = list(AssignmentAttempt.objects.filter(started_at__gte=since, **scope))

    completed = sum(1 for a in attempts if a.status == AssignmentAttempt.STATUS_COMPLETED)
    active_students = len({s.student_id for s in sessions})
    return {
        "school": {
            "id": organization_id,
            "totalStudents": len(students),
            "activeStudents": active_students,
            "engagementRate": completion_rate(active_students, len(students)),
        },
        "sessions": session_totals(sessions),
        "assignments": {
            "total": len(attempts),
            "completed": completed,
            "completionRate": completion_rate(completed, len(attempts)),
        },
        "activities": {"total": activity_count},
        "topStudents": top_students(students, since=since, until=until),
    }


def prunable_activity(*, cutoff: datetime):
    """Activity, session and attempt rows older than `cutoff`."""
    return {
        "activities": StudentActivity.objects.filter(created_at__lt=cutoff),
        "attempts": AssignmentAttempt.objects.filter(started_at__lt=cutoff).exclude(
            status__in=AssignmentAttempt.OPEN_STATUSES
        ),
        "sessions": StudentSession.objects.filter(started_at__lt=cutoff, ended_at__isnull=False),
    }
