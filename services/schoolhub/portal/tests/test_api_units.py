"""Tests for /api/units: numbering, bump placement and bulk import."""

from ._shared import *  # noqa: F401,F403


class _UnitBase(_Base):
    def _unit(self, name: str, order: int, course=None) -> Unit:
        return Unit.objects.create(
            organization=self.org,
            course=course or self.course,
            name=name,
            order=order,
            created_by=self.teacher,
        )

    def _orders(self, course=None) -> list[tuple[str, int]]:
        return list((course or self.course).units.order_by("order", "id").values_list("name", "order"))


class UnitCreateTests(_UnitBase):
    def test_students_cannot_manage_units(self):
        resp = self._post("/api/units", {"title": "U1", "courseId": self.course.id}, self.student)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "Access denied")

    def test_create_without_number_appends(self):
        self._unit("One", 1)
        self._unit("Two", 2)
        resp = self._post("/api/units", {"title": "Three", "courseId": self.course.id}, self.teacher)
        self.assertEqual(resp.status_code, 201)
        unit = resp.json()["unit"]
        self.assertEqual(unit["order"], 3)
        self.assertEqual(unit["number"], 3)
        self.assertEqual(unit["parts"], [])

    def test_create_with_free_number_uses_it(self):
        self._unit("One", 1)
        resp = self._post("/api/units", {"title": "Five", "number": 5, "courseId": self.course.id}, self.teacher)
        self.assertEqual(resp.json()["unit"]["order"], 5)

    def test_create_with_taken_number_auto_advances(self):
        self._unit("One", 1)
        self._unit("Two", 2)
        resp = self._post("/api/units", {"title": "Dup", "number": 1, "courseId": self.course.id}, self.teacher)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["unit"]["order"], 3)

    def test_create_with_bump_shifts_later_units(self):
        self._unit("One", 1)
        self._unit("Two", 2)
        self._unit("Three", 3)
        resp = self._post(
            "/api/units",
            {"title": "Inserted", "number": 2, "bump": "true", "courseId": self.course.id},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(
            self._orders(),
            [("One", 1), ("Inserted", 2), ("Two", 3), ("Three", 4)],
        )
        self.assertTrue(AuditEvent.objects.filter(action="unit.create").exists())

    def test_invalid_number_is_rejected(self):
        for bad in (0, -2, "abc", 1.5):
            resp = self._post("/api/units", {"title": "X", "number": bad, "courseId": self.course.id}, self.teacher)
            self.assertEqual(resp.status_code, 400, bad)
            self.assertEqual(resp.json()["message"], "Unit number must be a positive integer")

    def test_missing_title_is_rejected(self):
        resp = self._post("/api/units", {"courseId": self.course.id}, self.teacher)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Unit title is required")

    def test_course_in_other_org_is_404(self):
        other_subject = Subject.objects.create(organization=self.other_org, name="Art")
        other_course = Course.objects.create(subject=other_subject, name="Art 1")
        resp = self._post("/api/units", {"title": "X", "courseId": other_course.id}, self.teacher)
        self.assertEqual(resp.status_code, 404)

    def test_list_units_is_org_scoped(self):
        self._unit("Mine", 1)
        resp = self._get("/api/units", self.outsider)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["units"], [])


class UnitUpdateTests(_UnitBase):
    def setUp(self):
        super().setUp()
        self.u1 = self._unit("One", 1)
        self.u2 = self._unit("Two", 2)
        self.u3 = self._unit("Three", 3)
        self.u4 = self._unit("Four", 4)

    def test_bump_move_up(self):
        resp = self._patch(f"/api/units/{self.u4.id}", {"number": 2, "bump": True}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._orders(), [("One", 1), ("Four", 2), ("Two", 3), ("Three", 4)])

    def test_bump_move_down(self):
        resp = self._patch(f"/api/units/{self.u1.id}", {"number": 3, "bump": 1}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._orders(), [("Two", 1), ("Three", 2), ("One", 3), ("Four", 4)])

    def test_bump_move_past_the_end_lands_last(self):
        resp = self._patch(f"/api/units/{self.u1.id}", {"number": 10, "bump": True}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["unit"]["number"], 4)
        self.assertEqual(self._orders(), [("Two", 1), ("Three", 2), ("Four", 3), ("One", 4)])

    def test_plain_update_to_taken_number_is_rejected(self):
        resp = self._patch(f"/api/units/{self.u1.id}", {"number": 2}, self.teacher)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Unit number 2 already exists in this course")

    def test_plain_update_to_free_number(self):
        resp = self._patch(f"/api/units/{self.u1.id}", {"number": 9, "title": "Renamed"}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        unit = resp.json()["unit"]
        self.assertEqual(unit["order"], 9)
        self.assertEqual(unit["title"], "Renamed")

    def test_blank_title_is_rejected(self):
        resp = self._patch(f"/api/units/{self.u1.id}", {"title": "  "}, self.teacher)
        self.assertEqual(resp.status_code, 400)

    def test_null_number_leaves_order_alone(self):
        resp = self._patch(f"/api/units/{self.u2.id}", {"number": None, "description": "d"}, self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["unit"]["order"], 2)
        self.assertEqual(resp.json()["unit"]["description"], "d")

    def test_delete_unit_with_parts_is_refused(self):
        Part.objects.create(unit=self.u1, name="Part A")
        resp = self._delete(f"/api/units/{self.u1.id}", self.teacher)
        self.assertEqual(resp.status_code, 400)
        resp = self._delete(f"/api/units/{self.u2.id}", self.teacher)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Unit.objects.filter(id=self.u2.id).exists())

    def test_units_for_course_and_debug_listing(self):
        resp = self._get(f"/api/units/course/{self.course.id}", self.teacher)
        self.assertEqual([u["order"] for u in resp.json()["units"]], [1, 2, 3, 4])
        resp = self._get(f"/api/units/debug/course/{self.course.id}", self.teacher)
        self.assertEqual(resp.json()["course"]["unitsCount"], 4)

    def test_detail_in_other_org_is_404(self):
        resp = self._get(f"/api/units/{self.u1.id}", self.outsider)
        self.assertEqual(resp.status_code, 404)


class UnitBulkImportTests(_UnitBase):
    def test_bulk_import_creates_units(self):
        resp = self._post(
            "/api/units/bulk",
            {
                "courseId": self.course.id,
                "units": [{"title": "A", "number": 1}, {"title": "B", "number": "2", "description": "b"}],
            },
            self.teacher,
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual([r["status"] for r in body["results"]], ["success", "success"])
        self.assertEqual(len(body["createdUnits"]), 2)
        self.assertEqual(self._orders(), [("A", 1), ("B", 2)])

    def test_bulk_import_rejects_existing_numbers(self):
        self._unit("Existing", 2)
        resp = self._post(
            "/api/units/bulk",
            {"courseId": self.course.id, "units": [{"title": "A", "number": 1}, {"title": "B", "number": 2}]},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["duplicates"], [2])
        self.assertEqual(self._orders(), [("Existing", 2)])

    def test_bulk_import_rejects_repeated_numbers(self):
        resp = self._post(
            "/api/units/bulk",
            {"courseId": self.course.id, "units": [{"title": "A", "number": 1}, {"title": "B", "number": 1}]},
            self.teacher,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Unit.objects.exists())

    def test_bulk_import_requires_numbers_and_titles(self):
        resp = self._post(
            "/api/units/bulk", {"courseId": self.course.id, "units": [{"title": "A"}]}, self.teacher
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Unit 0: Unit number must be a positive integer")
        resp = self._post("/api/units/bulk", {"courseId": self.course.id, "units": []}, self.teacher)
        self.assertEqual(resp.status_code, 400)
        resp = self._post("/api/units/bulk", {"units": [{"title": "A", "number": 1}]}, self.teacher)
        self.assertEqual(resp.json()["message"], "Course ID is required")
