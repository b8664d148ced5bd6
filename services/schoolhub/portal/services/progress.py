"""Student progress roll-ups.

Daily rows are upserted per (student, assessment, date). Each write
recomputes the current week's WeeklyProgress row (weeks start on Sunday) and
the student's `improvement_rate` LearningPattern from that week's rows.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta

from django.db import transaction
from django.utils import timezone

from ..models import Assessment, DailyProgress, LearningPattern, WeeklyProgress

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def week_bounds(day: date) -> tuple[date, date]:
    """Sunday..Saturday week containing `day`."""
    # date.weekday(): Monday=0 .. Sunday=6
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


@dataclass(frozen=True)
class WeekStats:
    total_score: float
    assignments_completed: int
    average_score: float
    best_day: str
    worst_day: str


def compute_week_stats(rows) -> WeekStats:
    """Aggregate (date, score, completed) rows of one week.

    Missing scores count as zero in the total and the average. Best day is
    the weekday with the highest average score; worst day only considers
    weekdays that have at least one score.
    """
    rows = list(rows)
    total = sum((r.score or 0) for r in rows)
    completed = sum(1 for r in rows if r.completed)
    average = total / len(rows) if rows else 0.0

    per_day: dict[str, list[float]] = {}
    for r in rows:
        bucket = per_day.setdefault(WEEKDAY_NAMES[r.date.weekday()], [])
        if r.score is not None:
            bucket.append(r.score)

    best_day, worst_day = "", ""
    best_avg, worst_avg = -1.0, 101.0
    for day_name, scores in per_day.items():
        avg = sum(scores) / len(scores) if scores else 0.0
        if avg > best_avg:
            best_avg, best_day = avg, day_name
        if scores and avg < worst_avg:
            worst_avg, worst_day = avg, day_name
    return WeekStats(
        total_score=total,
        assignments_completed=completed,
        average_score=average,
        best_day=best_day,
        worst_day=worst_day,
    )


def compute_learning_pattern(rows) -> dict:
    """improvementRate and consistencyScore for a set of daily rows.

    Rows are sorted by date and split at ceil(n/2); improvementRate is the
    second half's mean score minus the first half's. consistencyScore is
    100 minus the population standard deviation of the scores, floored at 0.
    """
    ordered = sorted(rows, key=lambda r: (r.date, getattr(r, "id", 0) or 0))
    improvement = 0.0
    if len(ordered) >= 2:
        cut = math.ceil(len(ordered) / 2)
        first, second = ordered[:cut], ordered[cut:]
        first_avg = sum((r.score or 0) for r in first) / len(first)
        second_avg = sum((r.score or 0) for r in second) / len(second)
        improvement = second_avg - first_avg

    scores = [r.score for r in ordered if r.score is not None]
    if scores:
        mean = sum(scores) / len(scores)
        variance = sum((s - mean) ** 2 for s in scores) / len(scores)
    else:
        variance = 0.0
    consistency = max(0.0, 100 - math.sqrt(variance))
    return {"improvementRate": improvement, "consistencyScore": consistency}


def recalculate_week(student, day: date | None = None) -> WeeklyProgress | None:
    day = day or timezone.localdate()
    start, end = week_bounds(day)
    rows = list(DailyProgress.objects.filter(student=student, date__gte=start, date__lte=end))
    if not rows:
        return None
    stats = compute_week_stats(rows)
    weekly, _created = WeeklyProgress.objects.update_or_create(
        student=student,
        week_start=start,
        defaults={
            "week_end": end,
            "total_score": stats.total_score,
            "assignments_completed": stats.assignments_completed,
            "average_score": stats.average_score,
            "best_day": stats.best_day,
            "worst_day": stats.worst_day,
        },
    )
    LearningPattern.objects.update_or_create(
        student=student,
        pattern_type=LearningPattern.PATTERN_IMPROVEMENT_RATE,
        defaults={"pattern_data": compute_learning_pattern(rows)},
    )
    return weekly


def record_daily_progress(
    *,
    student,
    assessment: Assessment,
    score: float | None = None,
    time_spent_minutes: int | None = None,
    completed: bool = False,
) -> DailyProgress:
    """Upsert today's row for (student, assessment) and refresh the week."""
    today = timezone.localdate()
    with transaction.atomic():
        row = (
            DailyProgress.objects.select_for_update()
            .filter(student=student, assessment=assessment, date=today)
            .first()
        )
        if row is None:
            row = DailyProgress.objects.create(
                student=student,
                assessment=assessment,
                date=today,
                score=score,
                time_spent_minutes=time_spent_minutes or 0,
                completed=completed,
                attempts=1,
            )
        else:
            if score is not None:
                row.score = score
            if time_spent_minutes is not None:
                row.time_spent_minutes = time_spent_minutes
            row.completed = completed
            row.attempts += 1
            row.save()
        recalculate_week(student, today)
    logger.info(
        "progress_recorded student=%s assessment=%s attempts=%s",
        student.id,
        assessment.id,
        row.attempts,
    )
    return row


def summarize(rows) -> dict:
    rows = list(rows)
    total = sum((r.score or 0) for r in rows)
    completed = sum(1 for r in rows if r.completed)
    average = total / len(rows) if rows else 0.0
    return {
        "totalScore": total,
        "completedAssignments": completed,
        "averageScore": round(average, 2),
        "totalAssignments": len(rows),
    }


def daily_averages(rows, *, since: date) -> list[dict]:
    """Per-date mean of non-null scores for rows on or after `since`."""
    buckets: dict[date, list[float]] = {}
    for r in rows:
        if r.date < since:
            continue
        bucket = buckets.setdefault(r.date, [])
        if r.score is not None:
            bucket.append(r.score)
    return [
        {"date": day.isoformat(), "averageScore": (sum(scores) / len(scores)) if scores else 0}
        for day, scores in sorted(buckets.items(), reverse=True)
    ]


def class_stats(rows, *, student_count: int) -> dict:
    rows = list(rows)
    stats = {
        "totalStudents": student_count,
        "totalAssignments": len(rows),
        "averageScore": 0,
        "completionRate": 0,
    }
    if rows:
        total = sum((r.score or 0) for r in rows)
        completed = sum(1 for r in rows if r.completed)
        stats["averageScore"] = round(total / len(rows), 2)
        stats["completionRate"] = round(completed / len(rows) * 100)
    return stats


__all__ = [
    "WEEKDAY_NAMES",
    "WeekStats",
    "class_stats",
    "compute_learning_pattern",
    "compute_week_stats",
    "daily_averages",
    "recalculate_week",
    "record_daily_progress",
    "summarize",
    "week_bounds",
]
