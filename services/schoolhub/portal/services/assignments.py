"""Assignment field parsing, curriculum links and student submissions."""

from __future__ import annotations

import logging
from datetime import datetime, time

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..models import Assessment, Part, Section, Submission, Topic
from . import progress
from .org_access import org_course_or_none, org_unit_or_none, user_org_id
from .question_payload import PayloadError, grade_answers, normalize_questions, normalize_subtype

logger = logging.getLogger(__name__)

_TYPES = {value for value, _label in Assessment.TYPE_CHOICES}
_SUBTYPES = {value for value, _label in Assessment.SUBTYPE_CHOICES}
_DIFFICULTIES = {value for value, _label in Assessment.DIFFICULTY_CHOICES}
_QUARTERS = {value for value, _label in Assessment.QUARTER_CHOICES}

_BOOL_FIELDS = {
    "autoGrade": "auto_grade",
    "showFeedback": "show_feedback",
    "shuffleQuestions": "shuffle_questions",
    "allowReview": "allow_review",
    "published": "published",
}
_TEXT_FIELDS = {
    "description": "description",
    "category": "category",
    "instructions": "instructions",
}
_DATE_FIELDS = {
    "dueDate": "due_date",
    "availableFrom": "available_from",
    "availableTo": "available_to",
}
_CREATE_DEFAULTS = {
    "points": 1,
    "quarter": "Q1",
    "auto_grade": True,
    "show_feedback": True,
    "shuffle_questions": False,
    "allow_review": True,
    "published": True,
    "tags": [],
}


class SubmissionRefused(ValueError):
    """A submit the student cannot make right now (HTTP 400)."""


def _parse_bool(name: str, raw) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw in (0, 1):
        return bool(raw)
    text = str(raw).strip().lower()
    if text in {"true", "1"}:
        return True
    if text in {"false", "0"}:
        return False
    raise PayloadError(f"{name} must be a boolean")


def _parse_positive(name: str, raw, *, nullable: bool) -> int | None:
    if raw is None or raw == "":
        if nullable:
            return None
        raise PayloadError(f"{name} must be a positive integer")
    if isinstance(raw, bool):
        raise PayloadError(f"{name} must be a positive integer")
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise PayloadError(f"{name} must be a positive integer") from None
    if value < 1:
        raise PayloadError(f"{name} must be a positive integer")
    return value


def parse_when(name: str, raw) -> datetime | None:
    """ISO-8601 datetime or date. Naive values are read in the current zone."""
    if raw is None or raw == "":
        return None
    text = str(raw).strip()
    value = parse_datetime(text.replace("Z", "+00:00"))
    if value is None:
        day = parse_date(text)
        if day is None:
            raise PayloadError(f"{name} must be a valid date")
        value = datetime.combine(day, time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def parse_assignment_fields(payload: dict, *, existing: Assessment | None = None) -> dict:
    """Validate the scalar assignment fields present in `payload`.

    Returns model attribute values. On create (`existing` is None) title and
    type are required and defaults are filled in.
    """
    fields: dict = {}
    if existing is None:
        fields.update(_CREATE_DEFAULTS)

    if "title" in payload or existing is None:
        title = str(payload.get("title") or "").strip()
        if not title:
            raise PayloadError("Assignment title is required")
        fields["title"] = title[:255]
    if "type" in payload or existing is None:
        kind = str(payload.get("type") or "").strip()
        if kind not in _TYPES:
            raise PayloadError("Valid assessment type is required")
        fields["type"] = kind
    if "subtype" in payload:
        subtype = normalize_subtype(payload.get("subtype"))
        if subtype and subtype not in _SUBTYPES:
            raise PayloadError("Valid subtype is required for drag-and-drop")
        fields["subtype"] = subtype
    if "difficulty" in payload:
        difficulty = str(payload.get("difficulty") or "").strip()
        if difficulty and difficulty not in _DIFFICULTIES:
            raise PayloadError("Difficulty must be beginner, intermediate, or advanced")
        fields["difficulty"] = difficulty
    if "quarter" in payload:
        quarter = str(payload.get("quarter") or "").strip().upper()
        if quarter not in _QUARTERS:
            raise PayloadError("Quarter must be Q1, Q2, Q3, or Q4")
        fields["quarter"] = quarter
    if "timeLimit" in payload:
        fields["time_limit"] = _parse_positive("Time limit", payload.get("timeLimit"), nullable=True)
    if "points" in payload:
        fields["points"] = _parse_positive("Points", payload.get("points"), nullable=False)
    if "maxAttempts" in payload:
        fields["max_attempts"] = _parse_positive("Max attempts", payload.get("maxAttempts"), nullable=True)
    for key, attr in _TEXT_FIELDS.items():
        if key in payload:
            fields[attr] = str(payload.get(key) or "")
    for key, attr in _BOOL_FIELDS.items():
        if key in payload and payload.get(key) is not None:
            fields[attr] = _parse_bool(key, payload.get(key))
    for key, attr in _DATE_FIELDS.items():
        if key in payload:
            fields[attr] = parse_when(key, payload.get(key))
    if "criteria" in payload:
        criteria = payload.get("criteria")
        fields["criteria"] = {} if criteria is None else criteria
    if "tags" in payload:
        tags = payload.get("tags")
        if tags is None:
            tags = []
        if not isinstance(tags, list):
            raise PayloadError("Tags must be an array")
        fields["tags"] = [str(t) for t in tags]

    available_from = fields.get("available_from", getattr(existing, "available_from", None))
    available_to = fields.get("available_to", getattr(existing, "available_to", None))
    if available_from and available_to and available_from > available_to:
        raise PayloadError("availableFrom must be before availableTo")

    kind = fields.get("type", getattr(existing, "type", ""))
    subtype = fields.get("subtype", getattr(existing, "subtype", ""))
    if "questions" in payload:
        fields["questions"] = normalize_questions(kind, subtype, payload.get("questions"))
    elif existing is None:
        fields["questions"] = normalize_questions(kind, subtype, None)
    elif "type" in fields or "subtype" in fields:
        # Stored questions must still make sense under the new type.
        fields["questions"] = normalize_questions(kind, subtype, existing.questions)
    return fields


class LinkError(LookupError):
    """A referenced curriculum row is outside the caller's organization (404)."""


def resolve_links(user, payload: dict) -> dict:
    """Resolve courseId/unitId/partId/sectionId/topicId present in `payload`.

    An explicit null or "" clears the link.
    """
    links: dict = {}
    org_id = user_org_id(user)
    if "courseId" in payload:
        raw = payload.get("courseId")
        course = None
        if raw not in (None, ""):
            course = org_course_or_none(user, raw)
            if course is None:
                raise LinkError("Course not found or not accessible")
        links["course"] = course
    if "unitId" in payload:
        raw = payload.get("unitId")
        unit = None
        if raw not in (None, ""):
            unit = org_unit_or_none(user, raw)
            if unit is None:
                raise LinkError("Unit not found or not accessible")
        links["unit"] = unit
    scoped = {
        "partId": ("part", Part.objects.filter(unit__organization_id=org_id)),
        "sectionId": ("section", Section.objects.filter(part__unit__organization_id=org_id)),
        "topicId": ("topic", Topic.objects.filter(course__subject__organization_id=org_id)),
    }
    for key, (attr, qs) in scoped.items():
        if key not in payload:
            continue
        raw = payload.get(key)
        row = None
        if raw not in (None, ""):
            try:
                row = qs.filter(id=int(raw)).first()
            except (TypeError, ValueError):
                row = None
            if row is None:
                raise LinkError(f"{attr.capitalize()} not found or not accessible")
        links[attr] = row
    return links


def submit_answers(*, assessment: Assessment, student, answers, now: datetime | None = None) -> tuple[Submission, float | None]:
    """Record one submit. Returns (submission, score of this attempt).

    The stored submission keeps the latest answers and the best score seen.
    A scored attempt also lands in the student's daily progress.
    """
    now = now or timezone.now()
    if not assessment.published:
        raise SubmissionRefused("Assignment is not published")
    if not assessment.is_available(now):
        raise SubmissionRefused("Assignment is not available right now")

    with transaction.atomic():
        # get_or_create absorbs a concurrent first submit; the row lock orders the rest.
        row, _ = Submission.objects.get_or_create(assessment=assessment, student=student)
        submission = Submission.objects.select_for_update().get(pk=row.pk)
        if assessment.max_attempts and submission.attempts >= assessment.max_attempts:
            raise SubmissionRefused("Maximum attempts reached")

        result = grade_answers(assessment.type, assessment.questions, answers) if assessment.auto_grade else None
        score = result.score if result is not None else None
        feedback = {}
        if result is not None and assessment.show_feedback:
            feedback = {"perQuestion": result.per_question, "needsReview": result.needs_review}
        elif result is None:
            feedback = {"needsReview": True}
        submission.answers = answers if answers is not None else {}
        submission.attempts += 1
        submission.submitted_at = now
        submission.feedback = feedback
        if score is not None and (submission.score is None or score > submission.score):
            submission.score = score
        submission.save()

    progress.record_daily_progress(student=student, assessment=assessment, score=score, completed=True)
    logger.info(
        "assignment_submitted assessment=%s student=%s attempt=%s score=%s",
        assessment.id,
        student.id,
        submission.attempts,
        score,
    )
    return submission, score
