"""Tests for /api/assignments: authoring, visibility, submission and resources."""

from ._shared import *  # noqa: F401,F403

from django.db.models.query import QuerySet

_MC_QUESTIONS = [
    {"question": "2+2?", "options": ["3", "4"], "correctAnswer": "4"},
    {"question": "3+3?", "options": ["6", "7"], "correctAnswerIndex": 0},
]


class _AssignmentBase(_Base):
    def setUp(self):
        super().setUp()
        StudentCourse.objects.create(student=self.student, course=self.course)

    def _create(self, **overrides):
        payload = {
            "title": "Quiz 1",
            "type": "multiple-choice",
            "courseId": self.course.id,
            "questions": _MC_QUESTIONS,
        }
        payload.update(overrides)
        return self._post("/api/assignments", payload, self.teacher)

    def _assessment(self, **fields) -> Assessment:
        resp = self._create(**fields)
        self.assertEqual(resp.status_code, 201, resp.content)
        return Assessment.objects.get(id=resp.json()["assignment"]["id"])


class AssignmentAuthoringTests(_AssignmentBase):
    def test_create_fills_defaults_and_normalizes_questions(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 201)
        assignment = resp.json()["assignment"]
        self.assertEqual(assignment["points"], 1)
        self.assertEqual(assignment["quarter"], "Q1")
        self.assertTrue(assignment["published"])
        self.assertEqual(assignment["questions"]["type"], "multiple-choice")
        self.assertEqual(assignment["questions"]["questions"][0]["correctAnswerIndex"], 1)
        self.assertEqual(assignment["course"]["name"], "Math P4")
        self.assertEqual(assignment["submissions"], [])

    def test_create_requires_title_and_valid_type(self):
        self.assertEqual(self._create(title="").status_code, 400)
        resp = self._create(type="essay")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Valid assessment type is required")

    def test_create_rejects_bad_fields(self):
        self.assertEqual(self._create(quarter="Q5").status_code, 400)
        self.assertEqual(self._create(difficulty="impossible").status_code, 400)
        self.assertEqual(self._create(points=0).status_code, 400)
        self.assertEqual(self._create(tags="a,b").status_code, 400)
        self.assertEqual(self._create(dueDate="not a date").status_code, 400)
        resp = self._create(availableFrom="2024-05-10", availableTo="2024-05-01")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "availableFrom must be before availableTo")

    def test_create_rejects_invalid_questions(self):
        resp = self._create(questions=[{"question": "Q", "options": ["a"]}])
        self.assertEqual(resp.status_code, 400)

    def test_drag_and_drop_subtype_alias(self):
        resp = self._create(
            type="drag-and-drop",
            subtype="image-caption",
            questions=[{"images": ["/a.png", "/b.png"], "captions": ["A", "B"]}],
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["assignment"]["subtype"], "labeling")

    def test_create_with_foreign_course_is_404(self):
        foreign_subject = Subject.objects.create(organization=self.other_org, name="Art")
        foreign = Course.objects.create(subject=foreign_subject, name="Art 1")
        resp = self._create(courseId=foreign.id)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Course not found or not accessible")

    def test_student_cannot_create(self):
        resp = self._post("/api/assignments", {"title": "X", "type": "writing"}, self.student)
        self.assertEqual(resp.status_code, 403)

    def test_teacher_cannot_use_student_list(self):
        self.assertEqual(self._get("/api/assignments", self.teacher).status_code, 403)

    def test_update_type_renormalizes_questions(self):
        assessment = self._assessment()
        resp = self._patch(
            f"/api/assignments/{assessment.id}",
            {"type": "true-false", "questions": [{"question": "Sky is blue", "correctAnswer": "true"}]},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["assignment"]["questions"]["type"], "true-false")

    def test_update_can_clear_course_link(self):
        assessment = self._assessment()
        resp = self._patch(f"/api/assignments/{assessment.id}", {"courseId": None}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json()["assignment"]["courseId"])

    def test_teacher_list_includes_submissions_with_students(self):
        assessment = self._assessment()
        Submission.objects.create(assessment=assessment, student=self.student, score=50, attempts=1)
        resp = self._get("/api/assignments/teacher", self.teacher)
        self.assertEqual(resp.status_code, 200)
        submission = resp.json()["assignments"][0]["submissions"][0]
        self.assertEqual(submission["student"]["firstName"], "Ada")

    def test_delete_assignment(self):
        assessment = self._assessment()
        resp = self._delete(f"/api/assignments/{assessment.id}", self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Assessment.objects.filter(id=assessment.id).exists())

    def test_other_org_teacher_gets_404(self):
        assessment = self._assessment()
        self.assertEqual(self._get(f"/api/assignments/{assessment.id}", self.outsider).status_code, 404)


class StudentAssignmentTests(_AssignmentBase):
    def test_student_sees_only_published_available_enrolled(self):
        visible = self._assessment(title="Visible")
        self._assessment(title="Draft", published=False)
        self._assessment(title="Later", availableFrom=(timezone.now() + timedelta(days=3)).isoformat())
        other_course = Course.objects.create(subject=self.subject, name="Math P5")
        self._assessment(title="Not enrolled", courseId=other_course.id)

        resp = self._get("/api/assignments", self.student)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([a["id"] for a in resp.json()["assignments"]], [visible.id])

    def test_student_detail_and_forbidden_writes(self):
        assessment = self._assessment()
        self.assertEqual(self._get(f"/api/assignments/{assessment.id}", self.student).status_code, 200)
        self.assertEqual(self._patch(f"/api/assignments/{assessment.id}", {"title": "x"}, self.student).status_code, 403)
        draft = self._assessment(published=False)
        self.assertEqual(self._get(f"/api/assignments/{draft.id}", self.student).status_code, 404)

    def test_submit_grades_and_records_progress(self):
        assessment = self._assessment()
        resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["4", 1]}, self.student)
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["score"], 50.0)
        self.assertEqual(body["submission"]["attempts"], 1)
        self.assertEqual(body["submission"]["feedback"]["perQuestion"], [100.0, 0.0])

        row = DailyProgress.objects.get(student=self.student, assessment=assessment)
        self.assertEqual(row.score, 50.0)
        self.assertTrue(row.completed)
        self.assertTrue(WeeklyProgress.objects.filter(student=self.student).exists())

    def test_best_score_is_kept(self):
        assessment = self._assessment()
        self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["4", 0]}, self.student)
        resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["3", 1]}, self.student)
        self.assertEqual(resp.json()["score"], 0.0)
        submission = Submission.objects.get(assessment=assessment, student=self.student)
        self.assertEqual(submission.score, 100.0)
        self.assertEqual(submission.attempts, 2)

    def test_first_submit_reuses_row_inserted_by_concurrent_submit(self):
        assessment = self._assessment()
        real_get = QuerySet.get
        raced = []

        def racing_get(qs, *args, **kwargs):
            if qs.model is Submission and not raced:
                raced.append(True)
                Submission.objects.create(assessment=assessment, student=self.student)
                raise Submission.DoesNotExist
            return real_get(qs, *args, **kwargs)

        with patch.object(QuerySet, "get", racing_get):
            resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["4", 1]}, self.student)
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(raced)
        submission = Submission.objects.get(assessment=assessment, student=self.student)
        self.assertEqual(submission.attempts, 1)
        self.assertEqual(submission.score, 50.0)

    def test_max_attempts_is_enforced(self):
        assessment = self._assessment(maxAttempts=1)
        self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["4", 0]}, self.student)
        resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["4", 0]}, self.student)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Maximum attempts reached")

    def test_free_response_waits_for_review(self):
        assessment = self._assessment(type="writing", questions={"prompt": "Describe your weekend"})
        resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["It rained."]}, self.student)
        self.assertEqual(resp.status_code, 201)
        self.assertIsNone(resp.json()["score"])
        self.assertTrue(resp.json()["submission"]["feedback"]["needsReview"])

    def test_hidden_feedback(self):
        assessment = self._assessment(showFeedback=False)
        resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": ["4", 0]}, self.student)
        self.assertEqual(resp.json()["submission"]["feedback"], {})

    def test_submit_unpublished_is_404(self):
        assessment = self._assessment(published=False)
        resp = self._post(f"/api/assignments/{assessment.id}/submit", {"answers": []}, self.student)
        self.assertEqual(resp.status_code, 404)


class AssignmentResourceTests(_AssignmentBase):
    def setUp(self):
        super().setUp()
        self.assessment = self._assessment()
        self.resource = Resource.objects.create(
            organization=self.org, title="Worksheet", file="resources/sheet.pdf", created_by=self.teacher
        )

    def test_attach_and_detach_resources(self):
        resp = self._post(
            "/api/assignments/resources",
            {"assignmentId": self.assessment.id, "resourceIds": [self.resource.id]},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([r["id"] for r in resp.json()["assignment"]["resources"]], [self.resource.id])

        resp = self._delete(f"/api/assignments/{self.assessment.id}/resources/{self.resource.id}", self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(self.assessment.resources.exists())

    def test_attach_foreign_resource_is_rejected(self):
        foreign = Resource.objects.create(organization=self.other_org, title="Other", file="resources/o.pdf")
        resp = self._post(
            "/api/assignments/resources",
            {"assignmentId": self.assessment.id, "resourceIds": [self.resource.id, foreign.id]},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Some resources not found or not accessible")

    def test_detach_unattached_is_404(self):
        resp = self._delete(f"/api/assignments/{self.assessment.id}/resources/{self.resource.id}", self.teacher)
        self.assertEqual(resp.status_code, 404)
