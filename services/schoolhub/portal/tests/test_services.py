"""Database-free tests for the service helpers (ordering, grading, roll-ups, uploads)."""

from datetime import datetime
from types import SimpleNamespace

from ._shared import *  # noqa: F401,F403

from ..services import analytics, progress
from ..services.question_payload import PayloadError, grade_answers, normalize_questions, normalize_subtype
from ..services.unit_ordering import OrderingError, ShiftPlan, parse_bump, parse_unit_number, plan_move, resolve_create_order
from ..services.upload_validation import (
    PROFILE_PICTURE_MIME_TYPES,
    RESOURCE_MIME_TYPES,
    UploadRejected,
    resource_type_for_mime,
    validate_upload,
)


class UnitOrderingHelperTests(SimpleTestCase):
    def test_parse_bump_accepts_only_true_forms(self):
        for raw in (True, "true", "TRUE", 1, "1"):
            self.assertTrue(parse_bump(raw), raw)
        for raw in (False, 0, 2, "yes", "", None, [1]):
            self.assertFalse(parse_bump(raw), raw)

    def test_parse_unit_number(self):
        self.assertIsNone(parse_unit_number(None))
        self.assertIsNone(parse_unit_number("  "))
        self.assertEqual(parse_unit_number("3"), 3)
        self.assertEqual(parse_unit_number(4.0), 4)
        for raw in (0, -1, "abc", 2.5, True):
            with self.assertRaises(OrderingError):
                parse_unit_number(raw)
        with self.assertRaises(OrderingError):
            parse_unit_number(None, required=True)

    def test_resolve_create_order_auto_advances(self):
        self.assertEqual(resolve_create_order(None, []), 1)
        self.assertEqual(resolve_create_order(None, [1, 2, 3]), 4)
        self.assertEqual(resolve_create_order(2, [1, 2, 3]), 4)
        self.assertEqual(resolve_create_order(7, [1, 2, 3]), 7)

    def test_plan_move(self):
        self.assertEqual(plan_move(5, 2), ShiftPlan(low=2, high=4, delta=1))
        self.assertEqual(plan_move(2, 5), ShiftPlan(low=3, high=5, delta=-1))
        self.assertIsNone(plan_move(3, 3))


class QuestionPayloadTests(SimpleTestCase):
    def test_subtype_aliases(self):
        self.assertEqual(normalize_subtype("image-caption"), "labeling")
        self.assertEqual(normalize_subtype(" Fill-In-Blank "), "fill-blank")
        self.assertEqual(normalize_subtype(None), "")

    def test_single_question_is_wrapped(self):
        payload = normalize_questions(
            "multiple-choice", None, {"question": "2+2?", "options": ["3", "4"], "correctAnswer": "4"}
        )
        self.assertEqual(payload["type"], "multiple-choice")
        self.assertEqual(payload["questions"][0]["correctAnswerIndex"], 1)

    def test_json_string_and_wrapper_extras_are_kept(self):
        payload = normalize_questions(
            "listening",
            None,
            '{"type": "listening", "audioFile": "/uploads/a.mp3", "questions": [{"question": "Q", "options": ["a", "b"], "correctAnswerIndex": 0}]}',
        )
        self.assertEqual(payload["audioFile"], "/uploads/a.mp3")
        self.assertEqual(len(payload["questions"]), 1)

    def test_invalid_payloads_are_rejected(self):
        with self.assertRaises(PayloadError):
            normalize_questions("multiple-choice", None, [{"question": "Q", "options": ["only"]}])
        with self.assertRaises(PayloadError):
            normalize_questions("true-false", None, [{"question": "Q", "correctAnswer": "maybe"}])
        with self.assertRaises(PayloadError):
            normalize_questions("matching", None, [{"leftItems": ["a", "b"], "rightItems": ["x"]}])
        with self.assertRaises(PayloadError):
            normalize_questions("drag-and-drop", "fill-blank", [{"sentence": "No blanks here", "wordBank": ["a"]}])
        with self.assertRaises(PayloadError):
            normalize_questions("drag-and-drop", "", [{"prompt": "unknown shape"}])
        with self.assertRaises(PayloadError):
            normalize_questions("multiple-choice", None, "{not json")

    def test_drag_subtype_is_inferred(self):
        payload = normalize_questions(
            "drag-and-drop",
            None,
            [{"categories": ["Fruit", "Veg"], "items": [{"text": "Apple", "category": "Fruit"}]}],
        )
        self.assertEqual(payload["questions"][0]["items"][0]["category"], "Fruit")

    def test_grade_multiple_choice(self):
        payload = normalize_questions(
            "multiple-choice",
            None,
            [
                {"question": "A", "options": ["x", "y"], "correctAnswerIndex": 1},
                {"question": "B", "options": ["x", "y"], "correctAnswerIndex": 0},
            ],
        )
        result = grade_answers("multiple-choice", payload, [1, 1])
        self.assertEqual(result.score, 50.0)
        self.assertEqual(result.per_question, [100.0, 0.0])
        self.assertEqual(grade_answers("multiple-choice", payload, {"0": "y", "1": "x"}).score, 100.0)

    def test_grade_true_false_accepts_text(self):
        payload = normalize_questions("true-false", None, [{"question": "Sky is blue", "correctAnswer": "true"}])
        self.assertEqual(grade_answers("true-false", payload, ["yes"]).score, 100.0)
        self.assertEqual(grade_answers("true-false", payload, [False]).score, 0.0)

    def test_grade_matching_and_ordering(self):
        matching = normalize_questions("matching", None, [{"leftItems": ["a", "b"], "rightItems": ["1", "2"]}])
        self.assertEqual(grade_answers("matching", matching, [[0, 0]]).score, 50.0)
        ordering = normalize_questions(
            "drag-and-drop", "ordering", [{"items": ["a", "b", "c"], "correctOrder": [2, 0, 1]}]
        )
        self.assertEqual(grade_answers("drag-and-drop", ordering, ["2,0,1"]).score, 100.0)

    def test_grade_fill_blank_is_case_insensitive(self):
        payload = normalize_questions(
            "drag-and-drop",
            "fill-blank",
            [{"sentence": "The [BLANK] is [BLANK].", "wordBank": ["sky", "blue", "red"], "answers": ["sky", "blue"]}],
        )
        self.assertEqual(payload["questions"][0]["blankCount"], 2)
        self.assertEqual(grade_answers("drag-and-drop", payload, [["Sky", "red"]]).score, 50.0)

    def test_free_response_needs_review(self):
        result = grade_answers("writing", {"type": "writing", "questions": [{"prompt": "Essay"}]}, ["text"])
        self.assertIsNone(result.score)
        self.assertTrue(result.needs_review)


def _row(day, score, completed=True, pk=0):
    return SimpleNamespace(date=day, score=score, completed=completed, id=pk)


class ProgressMathTests(SimpleTestCase):
    def test_week_bounds_start_on_sunday(self):
        self.assertEqual(progress.week_bounds(date(2024, 5, 15)), (date(2024, 5, 12), date(2024, 5, 18)))
        self.assertEqual(progress.week_bounds(date(2024, 5, 12)), (date(2024, 5, 12), date(2024, 5, 18)))

    def test_week_stats(self):
        stats = progress.compute_week_stats(
            [
                _row(date(2024, 5, 13), 80),
                _row(date(2024, 5, 13), None, completed=False),
                _row(date(2024, 5, 14), 60),
            ]
        )
        self.assertEqual(stats.total_score, 140)
        self.assertEqual(stats.assignments_completed, 2)
        self.assertAlmostEqual(stats.average_score, 46.6667, places=3)
        self.assertEqual(stats.best_day, "Monday")
        self.assertEqual(stats.worst_day, "Tuesday")

    def test_learning_pattern(self):
        pattern = progress.compute_learning_pattern(
            [_row(date(2024, 5, 15), 90, pk=3), _row(date(2024, 5, 13), 50, pk=1), _row(date(2024, 5, 14), 70, pk=2)]
        )
        self.assertAlmostEqual(pattern["improvementRate"], 30.0)
        self.assertAlmostEqual(pattern["consistencyScore"], 83.67, places=2)

    def test_learning_pattern_with_one_row(self):
        pattern = progress.compute_learning_pattern([_row(date(2024, 5, 13), 40)])
        self.assertEqual(pattern["improvementRate"], 0.0)
        self.assertEqual(pattern["consistencyScore"], 100.0)

    def test_daily_averages_and_class_stats(self):
        rows = [_row(date(2024, 5, 13), 80), _row(date(2024, 5, 13), 60), _row(date(2024, 5, 1), 10)]
        self.assertEqual(
            progress.daily_averages(rows, since=date(2024, 5, 10)),
            [{"date": "2024-05-13", "averageScore": 70.0}],
        )
        stats = progress.class_stats(rows + [_row(date(2024, 5, 14), None, completed=False)], student_count=2)
        self.assertEqual(stats["totalAssignments"], 4)
        self.assertEqual(stats["averageScore"], 37.5)
        self.assertEqual(stats["completionRate"], 75)


class AnalyticsMathTests(SimpleTestCase):
    def test_engagement_score(self):
        self.assertEqual(analytics.engagement_score(completed=2, average_score=50, total_seconds=3600), 1.2)
        self.assertEqual(analytics.engagement_score(completed=0, average_score=0, total_seconds=0), 0)

    def test_completion_rate(self):
        self.assertEqual(analytics.completion_rate(1, 3), 33)
        self.assertEqual(analytics.completion_rate(0, 0), 0)

    def test_period_start(self):
        now = timezone.make_aware(datetime(2024, 5, 31, 12, 0))
        self.assertEqual(analytics.period_start("7d", now=now), now - timedelta(days=7))
        self.assertEqual(analytics.period_start("bogus", now=now), now - timedelta(days=30))


class UploadValidationTests(SimpleTestCase):
    def test_accepts_matching_content(self):
        upload = SimpleUploadedFile("a.png", _PNG_BYTES, content_type="image/png")
        self.assertEqual(validate_upload(upload, allowed_mime_types=PROFILE_PICTURE_MIME_TYPES, max_bytes=1024), "image/png")

    def test_rejects_disguised_content(self):
        upload = SimpleUploadedFile("a.png", _PDF_BYTES, content_type="image/png")
        with self.assertRaises(UploadRejected) as ctx:
            validate_upload(upload, allowed_mime_types=PROFILE_PICTURE_MIME_TYPES, max_bytes=1024)
        self.assertEqual(ctx.exception.status, 400)

    def test_rejects_oversize_with_413(self):
        upload = SimpleUploadedFile("a.pdf", _PDF_BYTES * 100, content_type="application/pdf")
        with self.assertRaises(UploadRejected) as ctx:
            validate_upload(upload, allowed_mime_types=RESOURCE_MIME_TYPES, max_bytes=64)
        self.assertEqual(ctx.exception.status, 413)

    def test_rejects_unknown_type_and_missing_file(self):
        upload = SimpleUploadedFile("a.exe", b"MZ", content_type="application/x-msdownload")
        with self.assertRaises(UploadRejected):
            validate_upload(upload, allowed_mime_types=RESOURCE_MIME_TYPES, max_bytes=1024)
        with self.assertRaises(UploadRejected):
            validate_upload(None, allowed_mime_types=RESOURCE_MIME_TYPES, max_bytes=1024)

    def test_resource_type_for_mime(self):
        self.assertEqual(resource_type_for_mime("audio/mpeg"), "AUDIO")
        self.assertEqual(resource_type_for_mime("video/quicktime"), "VIDEO")
        self.assertEqual(resource_type_for_mime("application/pdf"), "PDF")
        self.assertEqual(resource_type_for_mime("image/svg+xml"), "IMAGE")
        self.assertEqual(resource_type_for_mime("text/plain"), "OTHER")
