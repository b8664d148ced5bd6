"""Assignment question payloads: normalization, validation, auto-grading.

Authoring clients send questions in three shapes: a single question object,
a list of question objects, or a wrapper `{"type": ..., "questions": [...]}`
(listening tasks add keys such as `audioFile` to the wrapper). All of them are
stored as the wrapper form:

    {"type": "<assessment type>", "subtype": "<drag-and-drop subtype>",
     "questions": [ {...}, ... ], ...extra wrapper keys}

Student answers are a list (one entry per question) or a dict keyed by the
question index. Objective types are scored 0..100; free-response types return
no score and wait for a teacher.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from ..models import Assessment

BLANK_MARKER = "[BLANK]"

FREE_RESPONSE_TYPES = {
    Assessment.TYPE_WRITING,
    Assessment.TYPE_WRITING_LONG,
    Assessment.TYPE_SPEAKING,
    Assessment.TYPE_ASSIGNMENT,
}

# Authoring tools have used these names for the labeling subtype.
_SUBTYPE_ALIASES = {
    "image-caption": Assessment.SUBTYPE_LABELING,
    "fill-in-blank": Assessment.SUBTYPE_FILL_BLANK,
    "sortable": Assessment.SUBTYPE_ORDERING,
}

_TRUE_VALUES = {"true", "t", "yes", "1"}
_FALSE_VALUES = {"false", "f", "no", "0"}


class PayloadError(ValueError):
    """Raised when a question payload cannot be stored (HTTP 400)."""


def normalize_subtype(raw: str | None) -> str:
    value = (raw or "").strip().lower()
    return _SUBTYPE_ALIASES.get(value, value)


def _as_bool(value) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value or "").strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None


def _as_index(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value if value is not None else "").strip()
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    return None


def _text(item: dict, *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _non_empty_list(item: dict, *keys: str) -> list | None:
    for key in keys:
        value = item.get(key)
        if isinstance(value, list) and value:
            return value
    return None


def _infer_drag_subtype(item: dict) -> str:
    if "sentence" in item:
        return Assessment.SUBTYPE_FILL_BLANK
    if "images" in item:
        return Assessment.SUBTYPE_LABELING
    if "categories" in item:
        return Assessment.SUBTYPE_CATEGORIZATION
    if "items" in item:
        return Assessment.SUBTYPE_ORDERING
    return ""


def _validate_multiple_choice(item: dict, where: str) -> dict:
    if not _text(item, "question", "content"):
        raise PayloadError(f"{where}: question text is required")
    options = item.get("options")
    if not isinstance(options, list) or len(options) < 2:
        raise PayloadError(f"{where}: at least two options are required")
    options = [str(o) for o in options]
    index = _as_index(item.get("correctAnswerIndex"))
    answer = item.get("correctAnswer")
    if answer is not None and str(answer) in options:
        index = options.index(str(answer))
    elif index is None or not (0 <= index < len(options)):
        raise PayloadError(f"{where}: correct answer must be one of the options")
    return {**item, "options": options, "correctAnswer": options[index], "correctAnswerIndex": index}


def _validate_true_false(item: dict, where: str) -> dict:
    if not _text(item, "question", "content", "statement"):
        raise PayloadError(f"{where}: question text is required")
    value = _as_bool(item.get("correctAnswer"))
    if value is None:
        raise PayloadError(f"{where}: correct answer must be true or false")
    return {**item, "correctAnswer": value}


def _validate_matching(item: dict, where: str) -> dict:
    left = _non_empty_list(item, "leftItems", "left")
    right = _non_empty_list(item, "rightItems", "right")
    if left is None or right is None:
        raise PayloadError(f"{where}: leftItems and rightItems are required")
    if len(left) != len(right):
        raise PayloadError(f"{where}: leftItems and rightItems must have the same length")
    return {**item, "leftItems": left, "rightItems": right}


def _validate_ordering(item: dict, where: str) -> dict:
    items = item.get("items")
    if not isinstance(items, list) or len(items) < 2:
        raise PayloadError(f"{where}: at least two items are required to order")
    order = item.get("correctOrder")
    if order is None:
        order = list(range(len(items)))
    order = [_as_index(i) for i in order] if isinstance(order, list) else None
    if order is None or sorted(order) != list(range(len(items))):
        raise PayloadError(f"{where}: correctOrder must be a permutation of item positions")
    return {**item, "correctOrder": order}


def _validate_categorization(item: dict, where: str) -> dict:
    categories = item.get("categories")
    items = item.get("items")
    if not isinstance(categories, list) or not categories:
        raise PayloadError(f"{where}: categories are required")
    if not isinstance(items, list) or not items:
        raise PayloadError(f"{where}: items are required")
    names = {str(c) for c in categories}
    for pos, entry in enumerate(items):
        if not isinstance(entry, dict) or str(entry.get("category")) not in names:
            raise PayloadError(f"{where}: item {pos} must name one of the categories")
    return item


def _validate_fill_blank(item: dict, where: str) -> dict:
    sentence = _text(item, "sentence")
    blanks = sentence.count(BLANK_MARKER)
    if blanks < 1:
        raise PayloadError(f"{where}: sentence must contain at least one {BLANK_MARKER}")
    word_bank = item.get("wordBank")
    if not isinstance(word_bank, list) or len(word_bank) < blanks:
        raise PayloadError(f"{where}: wordBank needs at least one word per blank")
    answers = item.get("answers")
    if answers is not None:
        if not isinstance(answers, list) or len(answers) != blanks:
            raise PayloadError(f"{where}: answers must list one word per blank")
    return {**item, "blankCount": blanks}


def _validate_labeling(item: dict, where: str) -> dict:
    images = _non_empty_list(item, "images")
    labels = _non_empty_list(item, "labels", "captions")
    if images is None or labels is None:
        raise PayloadError(f"{where}: images and labels are required")
    if len(images) != len(labels):
        raise PayloadError(f"{where}: each image needs exactly one label")
    return {**item, "labels": labels}


_DRAG_VALIDATORS = {
    Assessment.SUBTYPE_ORDERING: _validate_ordering,
    Assessment.SUBTYPE_CATEGORIZATION: _validate_categorization,
    Assessment.SUBTYPE_FILL_BLANK: _validate_fill_blank,
    Assessment.SUBTYPE_LABELING: _validate_labeling,
}


def _validate_item(assessment_type: str, subtype: str, item, where: str) -> dict:
    if not isinstance(item, dict):
        raise PayloadError(f"{where}: each question must be an object")
    if assessment_type == Assessment.TYPE_MULTIPLE_CHOICE:
        return _validate_multiple_choice(item, where)
    if assessment_type == Assessment.TYPE_TRUE_FALSE:
        return _validate_true_false(item, where)
    if assessment_type == Assessment.TYPE_MATCHING:
        return _validate_matching(item, where)
    if assessment_type == Assessment.TYPE_DRAG_AND_DROP:
        effective = subtype or _infer_drag_subtype(item)
        validator = _DRAG_VALIDATORS.get(effective)
        if validator is None:
            raise PayloadError(f"{where}: drag-and-drop questions need a subtype")
        return validator(item, where)
    if assessment_type == Assessment.TYPE_LISTENING and "options" in item:
        return _validate_multiple_choice(item, where)
    return item


def normalize_questions(assessment_type: str, subtype: str | None, raw) -> dict:
    """Validate `raw` for the given type and return the stored wrapper form."""
    subtype = normalize_subtype(subtype)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raw = None
        else:
            try:
                raw = json.loads(text)
            except ValueError:
                raise PayloadError("questions must be valid JSON") from None

    extras: dict = {}
    if raw is None or raw == {} or raw == []:
        items: list = []
    elif isinstance(raw, list):
        items = raw
    elif isinstance(raw, dict) and isinstance(raw.get("questions"), list):
        items = raw["questions"]
        extras = {k: v for k, v in raw.items() if k not in {"type", "subtype", "questions"}}
        if not subtype:
            subtype = normalize_subtype(raw.get("subtype"))
    elif isinstance(raw, dict):
        items = [raw]
    else:
        raise PayloadError("questions must be an object or a list")

    validated = [
        _validate_item(assessment_type, subtype, item, f"question {pos + 1}")
        for pos, item in enumerate(items)
    ]
    payload = {"type": assessment_type, "questions": validated, **extras}
    if subtype:
        payload["subtype"] = subtype
    return payload


# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------


@dataclass
class GradeResult:
    score: float | None
    gradable: int = 0
    per_question: list = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return self.score is None


def _answer_for(answers, index: int):
    if isinstance(answers, list):
        return answers[index] if index < len(answers) else None
    if isinstance(answers, dict):
        if str(index) in answers:
            return answers[str(index)]
        return answers.get(index)
    # A bare value answers a single-question task.
    return answers if index == 0 else None


def _as_index_list(value) -> list[int | None]:
    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]
    if not isinstance(value, list):
        return []
    return [_as_index(v) for v in value]


def _fraction(hits: int, total: int) -> float:
    return hits / total if total else 0.0


def _grade_multiple_choice(item: dict, answer) -> float:
    if answer is None:
        return 0.0
    # Option text wins over an index reading ("1" may be an option).
    if isinstance(answer, str) and answer in (item.get("options") or []):
        return 1.0 if answer == item.get("correctAnswer") else 0.0
    idx = _as_index(answer)
    return 1.0 if idx is not None and idx == item.get("correctAnswerIndex") else 0.0


def _grade_true_false(item: dict, answer) -> float:
    value = _as_bool(answer)
    return 1.0 if value is not None and value == item.get("correctAnswer") else 0.0


def _grade_pairs(expected_len: int, answer, expected: list[int] | None = None) -> float:
    chosen = _as_index_list(answer)
    expected = expected if expected is not None else list(range(expected_len))
    hits = sum(1 for pos, want in enumerate(expected) if pos < len(chosen) and chosen[pos] == want)
    return _fraction(hits, len(expected))


def _grade_categorization(item: dict, answer) -> float:
    entries = item.get("items") or []
    if not isinstance(answer, (dict, list)):
        return 0.0
    hits = 0
    for pos, entry in enumerate(entries):
        picked = _answer_for(answer, pos)
        if picked is not None and str(picked) == str(entry.get("category")):
            hits += 1
    return _fraction(hits, len(entries))


def _grade_fill_blank(item: dict, answer) -> float | None:
    expected = item.get("answers")
    if not expected:
        return None
    if isinstance(answer, str):
        answer = [answer]
    if not isinstance(answer, list):
        return 0.0
    hits = sum(
        1
        for pos, want in enumerate(expected)
        if pos < len(answer) and str(answer[pos]).strip().lower() == str(want).strip().lower()
    )
    return _fraction(hits, len(expected))


def _grade_item(assessment_type: str, subtype: str, item: dict, answer) -> float | None:
    if assessment_type == Assessment.TYPE_MULTIPLE_CHOICE:
        return _grade_multiple_choice(item, answer)
    if assessment_type == Assessment.TYPE_TRUE_FALSE:
        return _grade_true_false(item, answer)
    if assessment_type == Assessment.TYPE_MATCHING:
        return _grade_pairs(len(item.get("leftItems") or []), answer, item.get("correctMatches"))
    if assessment_type == Assessment.TYPE_DRAG_AND_DROP:
        effective = subtype or _infer_drag_subtype(item)
        if effective == Assessment.SUBTYPE_ORDERING:
            return _grade_pairs(len(item.get("items") or []), answer, item.get("correctOrder"))
        if effective == Assessment.SUBTYPE_CATEGORIZATION:
            return _grade_categorization(item, answer)
        if effective == Assessment.SUBTYPE_FILL_BLANK:
            return _grade_fill_blank(item, answer)
        if effective == Assessment.SUBTYPE_LABELING:
            return _grade_pairs(len(item.get("labels") or []), answer)
        return None
    if assessment_type == Assessment.TYPE_LISTENING and "options" in item:
        return _grade_multiple_choice(item, answer)
    return None


def grade_answers(assessment_type: str, payload, answers) -> GradeResult:
    """Score `answers` against a stored payload.

    The score is the mean of the per-question fractions, times 100, rounded
    to two places. Questions that cannot be machine-checked are skipped; when
    none can be, the score is None.
    """
    if assessment_type in FREE_RESPONSE_TYPES or not isinstance(payload, dict):
        return GradeResult(score=None)
    subtype = normalize_subtype(payload.get("subtype"))
    items = payload.get("questions") or []
    per_question = []
    fractions = []
    for pos, item in enumerate(items):
        if not isinstance(item, dict):
            per_question.append(None)
            continue
        fraction = _grade_item(assessment_type, subtype, item, _answer_for(answers, pos))
        per_question.append(None if fraction is None else round(fraction * 100, 2))
        if fraction is not None:
            fractions.append(fraction)
    if not fractions:
        return GradeResult(score=None, per_question=per_question)
    score = round(sum(fractions) / len(fractions) * 100, 2)
    return GradeResult(score=score, gradable=len(fractions), per_question=per_question)


__all__ = [
    "BLANK_MARKER",
    "FREE_RESPONSE_TYPES",
    "GradeResult",
    "PayloadError",
    "grade_answers",
    "normalize_questions",
    "normalize_subtype",
]
