"""Tests for /api/enrollment and /api/classrooms."""

from ._shared import *  # noqa: F401,F403


class EnrollmentTests(_Base):
    def test_subjects_hide_archived_courses(self):
        Course.objects.create(subject=self.subject, name="Old Math", is_archived=True)
        resp = self._get("/api/enrollment/subjects", self.student)
        self.assertEqual(resp.status_code, 200)
        courses = resp.json()["subjects"][0]["courses"]
        self.assertEqual([c["name"] for c in courses], ["Math P4"])

    def test_teacher_cannot_use_enrollment(self):
        self.assertEqual(self._get("/api/enrollment/subjects", self.teacher).status_code, 403)

    def test_enroll_then_list_and_unenroll(self):
        resp = self._post("/api/enrollment/enroll", {"courseId": self.course.id}, self.student)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["enrollment"]["course"]["subject"]["name"], "Math")

        resp = self._get(f"/api/enrollment/courses/{self.subject.id}", self.student)
        self.assertTrue(resp.json()["courses"][0]["isEnrolled"])

        resp = self._get("/api/enrollment/my-courses", self.student)
        self.assertEqual([e["courseId"] for e in resp.json()["enrollments"]], [self.course.id])

        resp = self._delete(f"/api/enrollment/unenroll/{self.course.id}", self.student)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(StudentCourse.objects.exists())

    def test_enroll_twice_is_rejected(self):
        self._post("/api/enrollment/enroll", {"courseId": self.course.id}, self.student)
        resp = self._post("/api/enrollment/enroll", {"courseId": self.course.id}, self.student)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Already enrolled in this course")

    def test_enroll_requires_course_in_own_org(self):
        resp = self._post("/api/enrollment/enroll", {}, self.student)
        self.assertEqual(resp.status_code, 400)
        foreign_subject = Subject.objects.create(organization=self.other_org, name="Art")
        foreign = Course.objects.create(subject=foreign_subject, name="Art 1")
        resp = self._post("/api/enrollment/enroll", {"courseId": foreign.id}, self.student)
        self.assertEqual(resp.status_code, 404)

    def test_unenroll_without_enrollment_is_404(self):
        resp = self._delete(f"/api/enrollment/unenroll/{self.course.id}", self.student)
        self.assertEqual(resp.status_code, 404)

    def test_courses_for_foreign_subject_is_empty(self):
        foreign_subject = Subject.objects.create(organization=self.other_org, name="Art")
        resp = self._get(f"/api/enrollment/courses/{foreign_subject.id}", self.student)
        self.assertEqual(resp.json()["courses"], [])


class ClassroomTests(_Base):
    def test_classroom_list_includes_students_and_courses(self):
        self.classroom.courses.add(self.course)
        resp = self._get("/api/classrooms", self.teacher)
        self.assertEqual(resp.status_code, 200)
        classroom = resp.json()["classrooms"][0]
        self.assertEqual(classroom["students"][0]["firstName"], "Ada")
        self.assertEqual(classroom["courses"][0]["name"], "Math P4")

    def test_classroom_detail_other_org_is_404(self):
        resp = self._get(f"/api/classrooms/{self.classroom.id}/students", self.outsider)
        self.assertEqual(resp.status_code, 404)

    def test_assign_courses(self):
        resp = self._post(
            f"/api/classrooms/{self.classroom.id}/courses", {"courseIds": [self.course.id]}, self.teacher
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(list(self.classroom.courses.values_list("id", flat=True)), [self.course.id])

    def test_assign_unknown_course_is_rejected(self):
        resp = self._post(
            f"/api/classrooms/{self.classroom.id}/courses", {"courseIds": [self.course.id, 99999]}, self.teacher
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "One or more courses not found")
        self.assertFalse(self.classroom.courses.exists())

    def test_progress_via_classrooms_route(self):
        resp = self._post(
            f"/api/classrooms/{self.classroom.id}/progress",
            {"newYearLevel": "P5", "newClassNum": 2},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["updatedStudents"], 1)
        self.student.profile.refresh_from_db()
        self.assertEqual(self.student.profile.classroom.name, "P5 Class 2")

    def test_students_cannot_list_classrooms(self):
        self.assertEqual(self._get("/api/classrooms", self.student).status_code, 403)
