"""Tests for /api/subjects, /api/courses and /api/organizations."""

from ._shared import *  # noqa: F401,F403


class SubjectTests(_Base):
    def test_list_subjects_nests_courses_and_units(self):
        Unit.objects.create(organization=self.org, course=self.course, name="Numbers", order=1)
        resp = self._get("/api/subjects", self.teacher)
        self.assertEqual(resp.status_code, 200)
        subjects = resp.json()["subjects"]
        self.assertEqual(len(subjects), 1)
        self.assertEqual(subjects[0]["courses"][0]["name"], "Math P4")
        self.assertEqual(subjects[0]["courses"][0]["units"][0]["title"], "Numbers")

    def test_subjects_are_org_scoped(self):
        resp = self._get("/api/subjects", self.outsider)
        self.assertEqual(resp.json()["subjects"], [])
        resp = self._get(f"/api/subjects/{self.subject.id}", self.outsider)
        self.assertEqual(resp.status_code, 404)

    def test_create_subject_rejects_duplicate_name(self):
        resp = self._post("/api/subjects", {"name": "Science"}, self.teacher)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["subject"]["courses"], [])
        resp = self._post("/api/subjects", {"name": "Science"}, self.teacher)
        self.assertEqual(resp.status_code, 400)

    def test_same_subject_name_allowed_in_other_org(self):
        resp = self._post("/api/subjects", {"name": "Math"}, self.outsider)
        self.assertEqual(resp.status_code, 201)

    def test_create_subject_requires_name(self):
        resp = self._post("/api/subjects", {"name": "  "}, self.teacher)
        self.assertEqual(resp.status_code, 400)

    def test_update_subject(self):
        resp = self._patch(f"/api/subjects/{self.subject.id}", {"name": "Mathematics", "isArchived": True}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["subject"]["name"], "Mathematics")
        self.assertTrue(resp.json()["subject"]["isArchived"])

    def test_delete_subject_with_courses_is_refused(self):
        resp = self._delete(f"/api/subjects/{self.subject.id}", self.teacher)
        self.assertEqual(resp.status_code, 400)
        self.course.delete()
        resp = self._delete(f"/api/subjects/{self.subject.id}", self.teacher)
        self.assertEqual(resp.status_code, 200)

    def test_student_cannot_list_subjects(self):
        self.assertEqual(self._get("/api/subjects", self.student).status_code, 403)


class CourseTests(_Base):
    def test_create_course(self):
        resp = self._post("/api/courses", {"name": "Math P5", "subjectId": self.subject.id}, self.teacher)
        self.assertEqual(resp.status_code, 201)
        course = resp.json()["course"]
        self.assertEqual(course["subject"]["name"], "Math")
        self.assertEqual(course["units"], [])

    def test_create_course_duplicate_in_subject(self):
        resp = self._post("/api/courses", {"name": "Math P4", "subjectId": self.subject.id}, self.teacher)
        self.assertEqual(resp.status_code, 400)

    def test_create_course_in_foreign_subject_is_404(self):
        resp = self._post("/api/courses", {"name": "X", "subjectId": self.subject.id}, self.outsider)
        self.assertEqual(resp.status_code, 404)

    def test_filter_courses_by_subject(self):
        other = Subject.objects.create(organization=self.org, name="Science")
        Course.objects.create(subject=other, name="Sci P4")
        resp = self._get("/api/courses", self.teacher, subjectId=other.id)
        self.assertEqual([c["name"] for c in resp.json()["courses"]], ["Sci P4"])

    def test_move_course_to_other_subject(self):
        other = Subject.objects.create(organization=self.org, name="Science")
        resp = self._patch(f"/api/courses/{self.course.id}", {"subjectId": other.id}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["course"]["subjectId"], other.id)

    def test_delete_course_with_units_is_refused(self):
        Unit.objects.create(organization=self.org, course=self.course, name="U", order=1)
        resp = self._delete(f"/api/courses/{self.course.id}", self.teacher)
        self.assertEqual(resp.status_code, 400)

    def test_course_units(self):
        Unit.objects.create(organization=self.org, course=self.course, name="B", order=2)
        Unit.objects.create(organization=self.org, course=self.course, name="A", order=1)
        resp = self._get(f"/api/courses/{self.course.id}/units", self.teacher)
        self.assertEqual([u["name"] for u in resp.json()["units"]], ["A", "B"])


class OrganizationTests(_Base):
    def setUp(self):
        super().setUp()
        self.admin = _make_user(self.org, "admin@example.org", role=UserProfile.ROLE_ADMIN)

    def test_public_list_needs_no_token(self):
        resp = self.client.get("/api/organizations")
        self.assertEqual(resp.status_code, 200)
        codes = [o["code"] for o in resp.json()["organizations"]]
        self.assertEqual(sorted(codes), ["HOSPITAL", "PBS"])

    def test_teacher_cannot_create_organization(self):
        resp = self._post("/api/organizations", {"name": "New", "code": "NEW"}, self.teacher)
        self.assertEqual(resp.status_code, 403)

    def test_admin_creates_organization(self):
        resp = self._post("/api/organizations", {"name": "Coding School", "code": "CODING"}, self.admin)
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(Organization.objects.filter(code="CODING").exists())

    @override_settings(SCHOOLHUB_SUPERUSER_EMAILS=["teacher@example.org"])
    def test_listed_email_acts_as_superuser(self):
        resp = self._post("/api/organizations", {"name": "Coding School", "code": "CODING"}, self.teacher)
        self.assertEqual(resp.status_code, 201)
