"""Tests for the portal management commands."""

from ._shared import *  # noqa: F401,F403


class CreateStaffUserCommandTests(TestCase):
    def setUp(self):
        self.org = _make_org("PBS", "Prathom Bilingual School")
        self.other = _make_org("HOSPITAL")

    def _staff(self, email="new.teacher@example.org", org=None):
        return User.objects.get(username=account_username((org or self.org).id, email))

    def test_creates_teacher_in_default_organization(self):
        out = StringIO()
        call_command(
            "create_staff_user",
            email="New.Teacher@example.org",
            password="s3cret-pass",
            first_name="Nia",
            stdout=out,
        )
        self.assertIn("Created teacher 'new.teacher@example.org' in PBS", out.getvalue())
        user = self._staff()
        self.assertEqual(user.profile.role, UserProfile.ROLE_TEACHER)
        self.assertEqual(user.first_name, "Nia")
        self.assertTrue(user.check_password("s3cret-pass"))

    def test_creates_inactive_admin_in_named_organization(self):
        call_command(
            "create_staff_user",
            email="boss@example.org",
            organization="hospital",
            role=UserProfile.ROLE_ADMIN,
            password="s3cret-pass",
            inactive=True,
            stdout=StringIO(),
        )
        user = self._staff("boss@example.org", self.other)
        self.assertEqual(user.profile.role, UserProfile.ROLE_ADMIN)
        self.assertFalse(user.is_active)

    def test_existing_user_requires_update_flag(self):
        call_command("create_staff_user", email="t@example.org", password="s3cret-pass", stdout=StringIO())
        with self.assertRaisesMessage(CommandError, "Re-run with --update"):
            call_command("create_staff_user", email="t@example.org", password="s3cret-pass", stdout=StringIO())

    def test_update_missing_user_fails(self):
        with self.assertRaisesMessage(CommandError, "Remove --update to create"):
            call_command("create_staff_user", email="ghost@example.org", update=True, stdout=StringIO())

    def test_password_required_for_new_user(self):
        with self.assertRaisesMessage(CommandError, "--password is required"):
            call_command("create_staff_user", email="t@example.org", stdout=StringIO())

    def test_update_changes_role_and_password(self):
        call_command("create_staff_user", email="t@example.org", password="first-pass", stdout=StringIO())
        out = StringIO()
        call_command(
            "create_staff_user",
            email="t@example.org",
            role=UserProfile.ROLE_ADMIN,
            password="second-pass",
            update=True,
            stdout=out,
        )
        self.assertIn("changed: role, password", out.getvalue())
        user = self._staff("t@example.org")
        self.assertEqual(user.profile.role, UserProfile.ROLE_ADMIN)
        self.assertTrue(user.check_password("second-pass"))

    def test_update_without_changes_warns(self):
        call_command("create_staff_user", email="t@example.org", password="first-pass", stdout=StringIO())
        out = StringIO()
        call_command("create_staff_user", email="t@example.org", update=True, stdout=out)
        self.assertIn("No changes for 't@example.org'", out.getvalue())

    def test_same_email_in_two_organizations(self):
        call_command("create_staff_user", email="t@example.org", password="first-pass", stdout=StringIO())
        call_command(
            "create_staff_user", email="t@example.org", organization="HOSPITAL", password="other-pass", stdout=StringIO()
        )
        self.assertEqual(User.objects.filter(email="t@example.org").count(), 2)


class PruneStudentActivityCommandTests(TestCase):
    def setUp(self):
        org = _make_org("PBS")
        self.student = _make_user(org, "student@example.org")
        course = Course.objects.create(subject=Subject.objects.create(organization=org, name="Math"), name="Math P4")
        quiz = Assessment.objects.create(organization=org, course=course, title="Quiz", type="writing")
        old = timezone.now() - timedelta(days=120)

        self.old_session = StudentSession.objects.create(
            student=self.student, started_at=old, ended_at=old, duration_seconds=60
        )
        self.open_session = StudentSession.objects.create(student=self.student, started_at=old)
        self.old_activity = StudentActivity.objects.create(
            student=self.student, activity_type="view", created_at=old, details={"page": "/quiz"}
        )
        self.new_activity = StudentActivity.objects.create(student=self.student, activity_type="view")
        self.old_attempt = AssignmentAttempt.objects.create(
            student=self.student, assessment=quiz, status="COMPLETED", started_at=old
        )
        self.open_attempt = AssignmentAttempt.objects.create(
            student=self.student, assessment=quiz, status="IN_PROGRESS", started_at=old
        )

    def test_dry_run_keeps_rows(self):
        out = StringIO()
        call_command("prune_student_activity", older_than_days=90, dry_run=True, stdout=out)
        output = out.getvalue()
        self.assertIn("Matched activities: 1", output)
        self.assertIn("Matched sessions: 1", output)
        self.assertIn("Matched attempts: 1", output)
        self.assertIn("[dry-run] Would delete rows: 3", output)
        self.assertEqual(StudentActivity.objects.count(), 2)

    def test_deletes_only_closed_old_rows(self):
        call_command("prune_student_activity", older_than_days=90, stdout=StringIO())
        self.assertEqual(list(StudentActivity.objects.values_list("id", flat=True)), [self.new_activity.id])
        self.assertEqual(list(StudentSession.objects.values_list("id", flat=True)), [self.open_session.id])
        self.assertEqual(list(AssignmentAttempt.objects.values_list("id", flat=True)), [self.open_attempt.id])

    def test_export_csv_before_delete(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "exports" / "activity.csv"
            call_command("prune_student_activity", older_than_days=90, export_csv=str(out), stdout=StringIO())
            with out.open("r", encoding="utf-8", newline="") as fh:
                rows = list(csv.DictReader(fh))

        self.assertEqual(len(rows), 1)
        self.assertEqual(int(rows[0]["id"]), self.old_activity.id)
        self.assertEqual(json.loads(rows[0]["details_json"]), {"page": "/quiz"})
        self.assertFalse(StudentActivity.objects.filter(id=self.old_activity.id).exists())

    @override_settings(SCHOOLHUB_ACTIVITY_RETENTION_DAYS=0)
    def test_requires_positive_retention(self):
        with self.assertRaises(CommandError):
            call_command("prune_student_activity", older_than_days=0, stdout=StringIO())


class DeleteAssignmentsCommandTests(TestCase):
    def setUp(self):
        self.org = _make_org("PBS")
        other = _make_org("HOSPITAL")
        student = _make_user(self.org, "student@example.org")
        self.keep = Assessment.objects.create(organization=self.org, title="Final exam", type="writing")
        self.drop = Assessment.objects.create(organization=self.org, title="Test quiz", type="writing")
        self.foreign = Assessment.objects.create(organization=other, title="Test quiz", type="writing")
        Submission.objects.create(assessment=self.drop, student=student, attempts=1)

    def test_requires_a_filter(self):
        with self.assertRaisesMessage(CommandError, "Pass --organization"):
            call_command("delete_assignments", stdout=StringIO())

    def test_unknown_organization(self):
        with self.assertRaisesMessage(CommandError, "Organization 'NOPE' not found."):
            call_command("delete_assignments", organization="NOPE", stdout=StringIO())

    def test_dry_run_reports_matches(self):
        out = StringIO()
        call_command("delete_assignments", organization="pbs", title_contains="test", dry_run=True, stdout=out)
        output = out.getvalue()
        self.assertIn("Matched assignments: 1", output)
        self.assertIn("Matched submissions: 1", output)
        self.assertIn(" - Test quiz", output)
        self.assertEqual(Assessment.objects.count(), 3)

    def test_deletes_matches_with_submissions(self):
        out = StringIO()
        call_command("delete_assignments", organization="PBS", title_contains="test", stdout=out)
        self.assertIn("Deleted assignments: 1", out.getvalue())
        self.assertEqual(
            set(Assessment.objects.values_list("id", flat=True)), {self.keep.id, self.foreign.id}
        )
        self.assertFalse(Submission.objects.exists())


class OrphanUploadScavengerCommandTests(TestCase):
    def setUp(self):
        self.org = _make_org("PBS")

    def test_report_only_does_not_delete(self):
        with tempfile.TemporaryDirectory() as media_root:
            with override_settings(MEDIA_ROOT=media_root):
                Resource.objects.create(
                    organization=self.org, title="Kept", file=SimpleUploadedFile("kept.pdf", _PDF_BYTES)
                )
                orphan = Path(media_root) / "resources/orphan.pdf"
                orphan.write_bytes(_PDF_BYTES)

                out = StringIO()
                call_command("scavenge_orphan_uploads", stdout=out)
                output = out.getvalue()

                self.assertIn("Scanned files: 2", output)
                self.assertIn("Orphan files: 1", output)
                self.assertIn(" - resources/orphan.pdf", output)
                self.assertTrue(orphan.exists())

    def test_delete_removes_only_orphans(self):
        with tempfile.TemporaryDirectory() as media_root:
            with override_settings(MEDIA_ROOT=media_root):
                kept = Resource.objects.create(
                    organization=self.org, title="Kept", file=SimpleUploadedFile("kept.pdf", _PDF_BYTES)
                )
                orphan = Path(media_root) / "logos/old.png"
                orphan.parent.mkdir(parents=True, exist_ok=True)
                orphan.write_bytes(_PNG_BYTES)

                out = StringIO()
                call_command("scavenge_orphan_uploads", delete=True, stdout=out)

                self.assertIn("Deleted orphan files: 1; errors: 0", out.getvalue())
                self.assertFalse(orphan.exists())
                self.assertTrue((Path(media_root) / kept.file.name).exists())
