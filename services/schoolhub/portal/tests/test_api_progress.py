"""Tests for /api/progress: daily recording and the student/class roll-ups."""

from ._shared import *  # noqa: F401,F403

from ..services.progress import week_bounds


class _ProgressBase(_Base):
    def setUp(self):
        super().setUp()
        self.quiz = Assessment.objects.create(
            organization=self.org, course=self.course, title="Quiz", type="multiple-choice", created_by=self.teacher
        )
        StudentCourse.objects.create(student=self.student, course=self.course)

    def _record(self, user=None, **payload):
        body = {"assignmentId": self.quiz.id}
        body.update(payload)
        return self._post("/api/progress/daily", body, user or self.student)


class DailyProgressTests(_ProgressBase):
    def test_first_write_creates_todays_row(self):
        resp = self._record(score=80, timeSpentMinutes=12, completed=True)
        self.assertEqual(resp.status_code, 200)
        row = resp.json()["progress"]
        self.assertEqual(row["score"], 80)
        self.assertEqual(row["attempts"], 1)
        self.assertEqual(row["date"], timezone.localdate().isoformat())

    def test_second_write_updates_same_row(self):
        self._record(score=40, timeSpentMinutes=5)
        resp = self._record(score=90, completed=True)
        row = resp.json()["progress"]
        self.assertEqual(row["attempts"], 2)
        self.assertEqual(row["score"], 90)
        self.assertEqual(row["timeSpentMinutes"], 5)
        self.assertEqual(DailyProgress.objects.count(), 1)

    def test_write_refreshes_week_and_pattern(self):
        self._record(score=70, completed=True)
        start, end = week_bounds(timezone.localdate())
        week = WeeklyProgress.objects.get(student=self.student, week_start=start)
        self.assertEqual(week.week_end, end)
        self.assertEqual(week.assignments_completed, 1)
        self.assertEqual(week.total_score, 70)
        pattern = LearningPattern.objects.get(student=self.student, pattern_type="improvement_rate")
        self.assertEqual(pattern.pattern_data["improvementRate"], 0.0)

    def test_score_out_of_range_is_rejected(self):
        resp = self._record(score=101)
        self.assertEqual(resp.status_code, 400)
        self.assertIn("score", resp.json()["errors"])

    def test_foreign_assignment_is_404(self):
        foreign = Assessment.objects.create(organization=self.other_org, title="Elsewhere", type="writing")
        resp = self._record(assignmentId=foreign.id)
        self.assertEqual(resp.status_code, 404)


class StudentProgressTests(_ProgressBase):
    def setUp(self):
        super().setUp()
        today = timezone.localdate()
        DailyProgress.objects.create(student=self.student, assessment=self.quiz, date=today, score=80, completed=True)
        DailyProgress.objects.create(
            student=self.student, assessment=self.quiz, date=today - timedelta(days=60), score=20, completed=True
        )

    def test_student_sees_own_progress(self):
        resp = self._get(f"/api/progress/student/{self.student.id}", self.student)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(len(body["dailyProgress"]), 2)
        self.assertEqual(body["dailyProgress"][0]["assignment"]["course"]["subject"]["name"], "Math")
        self.assertEqual(body["summary"]["totalScore"], 100)
        self.assertEqual(body["summary"]["averageScore"], 50.0)
        self.assertEqual(len(body["dailyAverages"]), 1)

    def test_date_range_filter(self):
        today = timezone.localdate()
        resp = self._get(
            f"/api/progress/student/{self.student.id}",
            self.teacher,
            startDate=(today - timedelta(days=1)).isoformat(),
            endDate=today.isoformat(),
        )
        self.assertEqual([r["score"] for r in resp.json()["dailyProgress"]], [80])

    def test_bad_date_range_is_rejected(self):
        resp = self._get(f"/api/progress/student/{self.student.id}", self.teacher, startDate="soon", endDate="later")
        self.assertEqual(resp.status_code, 400)

    def test_student_cannot_read_someone_else(self):
        classmate = _make_user(self.org, "classmate@example.org", classroom=self.classroom)
        resp = self._get(f"/api/progress/student/{classmate.id}", self.student)
        self.assertEqual(resp.status_code, 403)

    def test_teacher_in_other_org_gets_404(self):
        resp = self._get(f"/api/progress/student/{self.student.id}", self.outsider)
        self.assertEqual(resp.status_code, 404)


class ClassProgressTests(_ProgressBase):
    def test_class_rollup(self):
        classmate = _make_user(self.org, "classmate@example.org", classroom=self.classroom)
        StudentCourse.objects.create(student=classmate, course=self.course)
        today = timezone.localdate()
        DailyProgress.objects.create(student=self.student, assessment=self.quiz, date=today, score=90, completed=True)
        DailyProgress.objects.create(student=classmate, assessment=self.quiz, date=today, score=None, completed=False)

        resp = self._get(f"/api/progress/class/{self.course.id}", self.teacher)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(len(body["students"]), 2)
        self.assertEqual(body["classStats"]["totalAssignments"], 2)
        self.assertEqual(body["classStats"]["completionRate"], 50)
        self.assertEqual(body["classProgress"][0]["assignment"]["title"], "Quiz")

    def test_students_cannot_read_class_progress(self):
        self.assertEqual(self._get(f"/api/progress/class/{self.course.id}", self.student).status_code, 403)

    def test_foreign_course_is_404(self):
        self.assertEqual(self._get(f"/api/progress/class/{self.course.id}", self.outsider).status_code, 404)
