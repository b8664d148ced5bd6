from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _audit_fields():
    return [
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def _created_by(related_name):
    return (
        "created_by",
        models.ForeignKey(
            blank=True,
            null=True,
            on_delete=django.db.models.deletion.SET_NULL,
            related_name=related_name,
            to=settings.AUTH_USER_MODEL,
        ),
    )


def _id():
    return ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID"))


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200, unique=True)),
                ("code", models.CharField(max_length=32, unique=True)),
                ("domain", models.CharField(blank=True, default="", max_length=255)),
                ("logo", models.FileField(blank=True, upload_to="logos/")),
                ("primary_color", models.CharField(blank=True, default="", max_length=16)),
                ("secondary_color", models.CharField(blank=True, default="", max_length=16)),
                ("is_active", models.BooleanField(default=True)),
                *_audit_fields(),
            ],
            options={"ordering": ["name", "id"]},
        ),
        migrations.CreateModel(
            name="Classroom",
            fields=[
                _id(),
                (
                    "year_level",
                    models.CharField(
                        choices=[
                            ("P1", "P1"), ("P2", "P2"), ("P3", "P3"), ("P4", "P4"), ("P5", "P5"), ("P6", "P6"),
                            ("M1", "M1"), ("M2", "M2"), ("M3", "M3"), ("M4", "M4"), ("M5", "M5"), ("M6", "M6"),
                            ("ADULT", "ADULT"), ("ADVANCED", "ADVANCED"), ("IN_HOUSE", "IN_HOUSE"),
                        ],
                        max_length=16,
                    ),
                ),
                ("class_num", models.PositiveSmallIntegerField()),
                ("name", models.CharField(max_length=200)),
                ("is_active", models.BooleanField(default=True)),
                *_audit_fields(),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="classrooms",
                        to="portal.organization",
                    ),
                ),
            ],
            options={"ordering": ["year_level", "class_num", "id"]},
        ),
        migrations.AddConstraint(
            model_name="classroom",
            constraint=models.UniqueConstraint(
                fields=("organization", "year_level", "class_num"),
                name="uniq_classroom_org_level_num",
            ),
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                _id(),
                (
                    "role",
                    models.CharField(
                        choices=[("ADMIN", "Admin"), ("TEACHER", "Teacher"), ("STUDENT", "Student")],
                        default="STUDENT",
                        max_length=16,
                    ),
                ),
                ("nickname", models.CharField(blank=True, default="", max_length=100)),
                ("student_number", models.CharField(blank=True, default="", max_length=32)),
                ("profile_picture", models.FileField(blank=True, upload_to="profile-pictures/")),
                *_audit_fields(),
                (
                    "classroom",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="students",
                        to="portal.classroom",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="members",
                        to="portal.organization",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["organization_id", "user_id"],
                "indexes": [models.Index(fields=["organization", "role"], name="portal_prof_org_role_idx")],
            },
        ),
        migrations.CreateModel(
            name="UserSession",
            fields=[
                _id(),
                ("login_time", models.DateTimeField(default=django.utils.timezone.now)),
                ("logout_time", models.DateTimeField(blank=True, null=True)),
                ("last_active", models.DateTimeField(default=django.utils.timezone.now)),
                ("duration_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=255)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="login_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-login_time", "-id"],
                "indexes": [models.Index(fields=["user", "logout_time"], name="portal_usess_user_out_idx")],
            },
        ),
        migrations.CreateModel(
            name="Subject",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("is_archived", models.BooleanField(default=False)),
                *_audit_fields(),
                _created_by("subjects_created"),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subjects",
                        to="portal.organization",
                    ),
                ),
            ],
            options={"ordering": ["name", "id"]},
        ),
        migrations.AddConstraint(
            model_name="subject",
            constraint=models.UniqueConstraint(fields=("organization", "name"), name="uniq_subject_org_name"),
        ),
        migrations.CreateModel(
            name="Course",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("is_archived", models.BooleanField(default=False)),
                *_audit_fields(),
                _created_by("courses_created"),
                (
                    "subject",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="courses",
                        to="portal.subject",
                    ),
                ),
            ],
            options={"ordering": ["subject__name", "name", "id"]},
        ),
        migrations.AddConstraint(
            model_name="course",
            constraint=models.UniqueConstraint(fields=("subject", "name"), name="uniq_course_subject_name"),
        ),
        migrations.AddField(
            model_name="classroom",
            name="courses",
            field=models.ManyToManyField(blank=True, related_name="classrooms", to="portal.course"),
        ),
        migrations.CreateModel(
            name="Unit",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("order", models.PositiveIntegerField(default=1)),
                *_audit_fields(),
                (
                    "course",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="units",
                        to="portal.course",
                    ),
                ),
                _created_by("units_created"),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="units",
                        to="portal.organization",
                    ),
                ),
            ],
            options={
                "ordering": ["order", "id"],
                "indexes": [models.Index(fields=["course", "order"], name="portal_unit_course_ord_idx")],
            },
        ),
        migrations.CreateModel(
            name="Part",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("order", models.PositiveIntegerField(default=1)),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="parts",
                        to="portal.unit",
                    ),
                ),
            ],
            options={"ordering": ["order", "id"]},
        ),
        migrations.CreateModel(
            name="Section",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("order", models.PositiveIntegerField(default=1)),
                (
                    "part",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sections",
                        to="portal.part",
                    ),
                ),
            ],
            options={"ordering": ["order", "id"]},
        ),
        migrations.CreateModel(
            name="Topic",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("order", models.PositiveIntegerField(default=1)),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="topics",
                        to="portal.course",
                    ),
                ),
                (
                    "section",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="topics",
                        to="portal.section",
                    ),
                ),
            ],
            options={"ordering": ["order", "id"]},
        ),
        migrations.CreateModel(
            name="Resource",
            fields=[
                _id(),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("AUDIO", "Audio"),
                            ("VIDEO", "Video"),
                            ("PDF", "PDF"),
                            ("IMAGE", "Image"),
                            ("OTHER", "Other"),
                        ],
                        default="OTHER",
                        max_length=8,
                    ),
                ),
                ("file", models.FileField(upload_to="resources/%Y/%m/")),
                ("original_filename", models.CharField(blank=True, default="", max_length=255)),
                ("file_size", models.PositiveBigIntegerField(default=0)),
                ("mime_type", models.CharField(blank=True, default="", max_length=100)),
                ("is_public", models.BooleanField(default=False)),
                ("is_shared", models.BooleanField(default=False)),
                ("tags", models.JSONField(blank=True, default=list)),
                *_audit_fields(),
                (
                    "course",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resources",
                        to="portal.course",
                    ),
                ),
                _created_by("resources_created"),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="resources",
                        to="portal.organization",
                    ),
                ),
                (
                    "part",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resources",
                        to="portal.part",
                    ),
                ),
                (
                    "section",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resources",
                        to="portal.section",
                    ),
                ),
                (
                    "subject",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resources",
                        to="portal.subject",
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="allocations",
                        to="portal.resource",
                    ),
                ),
                (
                    "topic",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resources",
                        to="portal.topic",
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resources",
                        to="portal.unit",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "is_shared", "type"], name="portal_res_org_shr_typ_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Assessment",
            fields=[
                _id(),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("multiple-choice", "Multiple choice"),
                            ("true-false", "True/false"),
                            ("matching", "Matching"),
                            ("drag-and-drop", "Drag and drop"),
                            ("writing", "Writing"),
                            ("writing-long", "Long writing"),
                            ("speaking", "Speaking"),
                            ("assignment", "Assignment"),
                            ("listening", "Listening"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "subtype",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("ordering", "Ordering"),
                            ("categorization", "Categorization"),
                            ("fill-blank", "Fill in the blank"),
                            ("labeling", "Labeling"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                (
                    "difficulty",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("beginner", "Beginner"),
                            ("intermediate", "Intermediate"),
                            ("advanced", "Advanced"),
                        ],
                        default="",
                        max_length=16,
                    ),
                ),
                ("time_limit", models.PositiveIntegerField(blank=True, help_text="Minutes", null=True)),
                ("points", models.PositiveIntegerField(default=1)),
                ("questions", models.JSONField(blank=True, default=dict)),
                ("instructions", models.TextField(blank=True, default="")),
                ("criteria", models.JSONField(blank=True, default=dict)),
                ("auto_grade", models.BooleanField(default=True)),
                ("show_feedback", models.BooleanField(default=True)),
                ("due_date", models.DateTimeField(blank=True, null=True)),
                ("available_from", models.DateTimeField(blank=True, null=True)),
                ("available_to", models.DateTimeField(blank=True, null=True)),
                (
                    "quarter",
                    models.CharField(
                        choices=[("Q1", "Q1"), ("Q2", "Q2"), ("Q3", "Q3"), ("Q4", "Q4")],
                        default="Q1",
                        max_length=2,
                    ),
                ),
                ("max_attempts", models.PositiveIntegerField(blank=True, null=True)),
                ("shuffle_questions", models.BooleanField(default=False)),
                ("allow_review", models.BooleanField(default=True)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("published", models.BooleanField(default=True)),
                *_audit_fields(),
                (
                    "course",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assessments",
                        to="portal.course",
                    ),
                ),
                _created_by("assessments_created"),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assessments",
                        to="portal.organization",
                    ),
                ),
                (
                    "part",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assessments",
                        to="portal.part",
                    ),
                ),
                ("resources", models.ManyToManyField(blank=True, related_name="assessments", to="portal.resource")),
                (
                    "section",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assessments",
                        to="portal.section",
                    ),
                ),
                (
                    "topic",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assessments",
                        to="portal.topic",
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assessments",
                        to="portal.unit",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["organization", "published"], name="portal_asmt_org_pub_idx"),
                    models.Index(fields=["course", "published"], name="portal_asmt_course_pub_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Submission",
            fields=[
                _id(),
                ("answers", models.JSONField(blank=True, default=dict)),
                ("score", models.FloatField(blank=True, null=True)),
                ("feedback", models.JSONField(blank=True, default=dict)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("submitted_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "assessment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submissions",
                        to="portal.assessment",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submissions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-submitted_at", "-id"]},
        ),
        migrations.AddConstraint(
            model_name="submission",
            constraint=models.UniqueConstraint(
                fields=("assessment", "student"),
                name="uniq_submission_assessment_student",
            ),
        ),
        migrations.CreateModel(
            name="StudentCourse",
            fields=[
                _id(),
                ("enrolled_at", models.DateTimeField(auto_now_add=True)),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="enrollments",
                        to="portal.course",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="enrollments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-enrolled_at", "-id"]},
        ),
        migrations.AddConstraint(
            model_name="studentcourse",
            constraint=models.UniqueConstraint(fields=("student", "course"), name="uniq_enrollment_student_course"),
        ),
        migrations.CreateModel(
            name="ChatRoom",
            fields=[
                _id(),
                ("name", models.CharField(blank=True, default="", max_length=200)),
                (
                    "type",
                    models.CharField(
                        choices=[("direct", "Direct"), ("group", "Group"), ("class", "Class")],
                        default="direct",
                        max_length=8,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                *_audit_fields(),
                _created_by("chat_rooms_created"),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_rooms",
                        to="portal.organization",
                    ),
                ),
            ],
            options={"ordering": ["-updated_at", "-id"]},
        ),
        migrations.CreateModel(
            name="ChatParticipant",
            fields=[
                _id(),
                ("is_active", models.BooleanField(default=True)),
                ("joined_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("left_at", models.DateTimeField(blank=True, null=True)),
                (
                    "room",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="portal.chatroom",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_participations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["joined_at", "id"]},
        ),
        migrations.AddConstraint(
            model_name="chatparticipant",
            constraint=models.UniqueConstraint(fields=("room", "user"), name="uniq_chat_participant_room_user"),
        ),
        migrations.CreateModel(
            name="ChatMessage",
            fields=[
                _id(),
                ("content", models.TextField()),
                (
                    "message_type",
                    models.CharField(
                        choices=[("text", "Text"), ("file", "File"), ("image", "Image"), ("system", "System")],
                        default="text",
                        max_length=8,
                    ),
                ),
                ("file_url", models.CharField(blank=True, default="", max_length=500)),
                ("file_name", models.CharField(blank=True, default="", max_length=255)),
                ("file_size", models.PositiveBigIntegerField(blank=True, null=True)),
                ("is_read", models.BooleanField(default=False)),
                ("is_edited", models.BooleanField(default=False)),
                ("edited_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "reply_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="replies",
                        to="portal.chatmessage",
                    ),
                ),
                (
                    "room",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="portal.chatroom",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["room", "created_at"], name="portal_chmsg_room_crt_idx"),
                    models.Index(fields=["room", "is_read"], name="portal_chmsg_room_read_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DailyProgress",
            fields=[
                _id(),
                ("date", models.DateField()),
                ("score", models.FloatField(blank=True, null=True)),
                ("time_spent_minutes", models.PositiveIntegerField(default=0)),
                ("completed", models.BooleanField(default=False)),
                ("attempts", models.PositiveIntegerField(default=1)),
                *_audit_fields(),
                (
                    "assessment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_progress",
                        to="portal.assessment",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_progress",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-date", "-id"]},
        ),
        migrations.AddConstraint(
            model_name="dailyprogress",
            constraint=models.UniqueConstraint(
                fields=("student", "assessment", "date"),
                name="uniq_daily_progress_student_assessment_date",
            ),
        ),
        migrations.CreateModel(
            name="WeeklyProgress",
            fields=[
                _id(),
                ("week_start", models.DateField(help_text="Sunday that starts the week")),
                ("week_end", models.DateField()),
                ("total_score", models.FloatField(default=0)),
                ("assignments_completed", models.PositiveIntegerField(default=0)),
                ("average_score", models.FloatField(default=0)),
                ("best_day", models.CharField(blank=True, default="", max_length=10)),
                ("worst_day", models.CharField(blank=True, default="", max_length=10)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="weekly_progress",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-week_start", "-id"]},
        ),
        migrations.AddConstraint(
            model_name="weeklyprogress",
            constraint=models.UniqueConstraint(
                fields=("student", "week_start"),
                name="uniq_weekly_progress_student_week",
            ),
        ),
        migrations.CreateModel(
            name="LearningPattern",
            fields=[
                _id(),
                ("pattern_type", models.CharField(max_length=40)),
                ("pattern_data", models.JSONField(blank=True, default=dict)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="learning_patterns",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["pattern_type", "id"]},
        ),
        migrations.AddConstraint(
            model_name="learningpattern",
            constraint=models.UniqueConstraint(
                fields=("student", "pattern_type"),
                name="uniq_learning_pattern_student_type",
            ),
        ),
        migrations.CreateModel(
            name="StudentSession",
            fields=[
                _id(),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("duration_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=255)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="study_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-started_at", "-id"],
                "indexes": [models.Index(fields=["student", "started_at"], name="portal_ssess_stu_start_idx")],
            },
        ),
        migrations.CreateModel(
            name="StudentActivity",
            fields=[
                _id(),
                ("activity_type", models.CharField(max_length=60)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("duration_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "assessment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activities",
                        to="portal.assessment",
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activities",
                        to="portal.course",
                    ),
                ),
                (
                    "resource",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activities",
                        to="portal.resource",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activities",
                        to="portal.studentsession",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activities",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["student", "created_at"], name="portal_sact_stu_crt_idx"),
                    models.Index(fields=["activity_type", "created_at"], name="portal_sact_type_crt_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AssignmentAttempt",
            fields=[
                _id(),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("STARTED", "Started"),
                            ("IN_PROGRESS", "In progress"),
                            ("COMPLETED", "Completed"),
                            ("ABANDONED", "Abandoned"),
                        ],
                        default="STARTED",
                        max_length=12,
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("total_time_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("answers", models.JSONField(blank=True, default=dict)),
                ("score", models.FloatField(blank=True, null=True)),
                ("feedback", models.TextField(blank=True, default="")),
                (
                    "assessment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attempts",
                        to="portal.assessment",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="attempts",
                        to="portal.studentsession",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assignment_attempts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-started_at", "-id"],
                "indexes": [
                    models.Index(fields=["student", "assessment", "status"], name="portal_attempt_stu_asm_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditEvent",
            fields=[
                _id(),
                ("action", models.CharField(max_length=80)),
                ("target_type", models.CharField(blank=True, default="", max_length=80)),
                ("target_id", models.CharField(blank=True, default="", max_length=64)),
                ("summary", models.CharField(blank=True, default="", max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor_user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="portal_audit_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_events",
                        to="portal.organization",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["created_at"], name="portal_audit_created_idx"),
                    models.Index(fields=["action", "created_at"], name="portal_audit_action_idx"),
                    models.Index(fields=["organization", "created_at"], name="portal_audit_org_idx"),
                ],
            },
        ),
    ]
