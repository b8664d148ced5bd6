"""Data model for SchoolHub.

Tenancy:
- Every school/program is one Organization; users, subjects, classrooms and
  chat rooms hang off it directly, everything else through a course.
- Accounts are plain Django auth users plus a UserProfile carrying the
  organization, role and (for students) the classroom. The same email may
  exist once per organization, so the auth username is derived from both.

Curriculum tree: Subject -> Course -> Unit -> Part -> Section, plus Topics on
a course. Assignments and Resources can attach at any level of that tree.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone


def account_username(organization_id: int, email: str) -> str:
    """Auth username for an (organization, email) pair."""
    return f"{organization_id}:{(email or '').strip().lower()}"[:150]


class Organization(models.Model):
    """Top-level tenant boundary (one school or program)."""

    name = models.CharField(max_length=200, unique=True)
    code = models.CharField(max_length=32, unique=True)
    domain = models.CharField(max_length=255, blank=True, default="")
    logo = models.FileField(upload_to="logos/", blank=True)
    primary_color = models.CharField(max_length=16, blank=True, default="")
    secondary_color = models.CharField(max_length=16, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Classroom(models.Model):
    """One homeroom: a year level plus a class number inside an organization."""

    YEAR_LEVELS = [
        "P1", "P2", "P3", "P4", "P5", "P6",
        "M1", "M2", "M3", "M4", "M5", "M6",
    ]
    # Extra levels used by non-school programs.
    PROGRAM_LEVELS = ["ADULT", "ADVANCED", "IN_HOUSE"]
    YEAR_LEVEL_CHOICES = [(level, level) for level in YEAR_LEVELS + PROGRAM_LEVELS]
    CLASS_NUMBERS = [1, 2, 3, 4, 5, 6]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="classrooms")
    year_level = models.CharField(max_length=16, choices=YEAR_LEVEL_CHOICES)
    class_num = models.PositiveSmallIntegerField()
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)
    courses = models.ManyToManyField("Course", blank=True, related_name="classrooms")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["year_level", "class_num", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "year_level", "class_num"],
                name="uniq_classroom_org_level_num",
            ),
        ]

    @staticmethod
    def default_name(year_level: str, class_num: int | str) -> str:
        return f"{year_level} Class {class_num}"

    def __str__(self) -> str:
        return self.name


class UserProfile(models.Model):
    """Organization membership and role for one auth user."""

    ROLE_ADMIN = "ADMIN"
    ROLE_TEACHER = "TEACHER"
    ROLE_STUDENT = "STUDENT"
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_TEACHER, "Teacher"),
        (ROLE_STUDENT, "Student"),
    ]
    STAFF_ROLES = {ROLE_ADMIN, ROLE_TEACHER}

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="members")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_STUDENT)
    classroom = models.ForeignKey(
        Classroom,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="students",
    )
    nickname = models.CharField(max_length=100, blank=True, default="")
    student_number = models.CharField(max_length=32, blank=True, default="")
    profile_picture = models.FileField(upload_to="profile-pictures/", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["organization_id", "user_id"]
        indexes = [
            models.Index(fields=["organization", "role"], name="portal_prof_org_role_idx"),
        ]

    @property
    def is_staff_role(self) -> bool:
        return self.role in self.STAFF_ROLES

    def __str__(self) -> str:
        return f"{self.user.email} ({self.role})"


class UserSession(models.Model):
    """One login-to-logout span, used for activity reporting."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="login_sessions")
    login_time = models.DateTimeField(default=timezone.now)
    logout_time = models.DateTimeField(null=True, blank=True)
    last_active = models.DateTimeField(default=timezone.now)
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-login_time", "-id"]
        indexes = [
            models.Index(fields=["user", "logout_time"], name="portal_usess_user_out_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} @ {self.login_time.isoformat()}"


class Subject(models.Model):
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="subjects")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    is_archived = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subjects_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.UniqueConstraint(fields=["organization", "name"], name="uniq_subject_org_name"),
        ]

    def __str__(self) -> str:
        return self.name


class Course(models.Model):
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="courses")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    is_archived = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="courses_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["subject__name", "name", "id"]
        constraints = [
            models.UniqueConstraint(fields=["subject", "name"], name="uniq_course_subject_name"),
        ]

    def __str__(self) -> str:
        return f"{self.subject.name}: {self.name}"


class Unit(models.Model):
    """An ordered division of a course.

    `order` is 1-based and kept dense per course by the shift-insert helpers in
    `portal.services.unit_ordering`. It is deliberately not unique in the
    database: shifting a range with one UPDATE passes through duplicate values.
    """

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="units")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, null=True, blank=True, related_name="units")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    order = models.PositiveIntegerField(default=1)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="units_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["order", "id"]
        indexes = [
            models.Index(fields=["course", "order"], name="portal_unit_course_ord_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order}. {self.name}"


class Part(models.Model):
    unit = models.ForeignKey(Unit, on_delete=models.CASCADE, related_name="parts")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    order = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self) -> str:
        return self.name


class Section(models.Model):
    part = models.ForeignKey(Part, on_delete=models.CASCADE, related_name="sections")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    order = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self) -> str:
        return self.name


class Topic(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="topics")
    section = models.ForeignKey(Section, on_delete=models.SET_NULL, null=True, blank=True, related_name="topics")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    order = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self) -> str:
        return self.name


class Resource(models.Model):
    """An uploaded file usable in lessons and attachable to assignments.

    Shared resources are organization-wide templates; `allocate` copies one
    into a course/unit and the copy points back through `template` while
    reusing the same stored file.
    """

    TYPE_AUDIO = "AUDIO"
    TYPE_VIDEO = "VIDEO"
    TYPE_PDF = "PDF"
    TYPE_IMAGE = "IMAGE"
    TYPE_OTHER = "OTHER"
    TYPE_CHOICES = [
        (TYPE_AUDIO, "Audio"),
        (TYPE_VIDEO, "Video"),
        (TYPE_PDF, "PDF"),
        (TYPE_IMAGE, "Image"),
        (TYPE_OTHER, "Other"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="resources")
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    type = models.CharField(max_length=8, choices=TYPE_CHOICES, default=TYPE_OTHER)
    file = models.FileField(upload_to="resources/%Y/%m/")
    original_filename = models.CharField(max_length=255, blank=True, default="")
    file_size = models.PositiveBigIntegerField(default=0)
    mime_type = models.CharField(max_length=100, blank=True, default="")
    is_public = models.BooleanField(default=False)
    is_shared = models.BooleanField(default=False)
    tags = models.JSONField(default=list, blank=True)
    subject = models.ForeignKey(Subject, on_delete=models.SET_NULL, null=True, blank=True, related_name="resources")
    course = models.ForeignKey(Course, on_delete=models.SET_NULL, null=True, blank=True, related_name="resources")
    unit = models.ForeignKey(Unit, on_delete=models.SET_NULL, null=True, blank=True, related_name="resources")
    part = models.ForeignKey(Part, on_delete=models.SET_NULL, null=True, blank=True, related_name="resources")
    section = models.ForeignKey(Section, on_delete=models.SET_NULL, null=True, blank=True, related_name="resources")
    topic = models.ForeignKey(Topic, on_delete=models.SET_NULL, null=True, blank=True, related_name="resources")
    template = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="allocations",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resources_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["organization", "is_shared", "type"], name="portal_res_org_shr_typ_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.type})"


class Assessment(models.Model):
    """A gradable task. `questions` holds a type-dependent payload."""

    TYPE_MULTIPLE_CHOICE = "multiple-choice"
    TYPE_TRUE_FALSE = "true-false"
    TYPE_MATCHING = "matching"
    TYPE_DRAG_AND_DROP = "drag-and-drop"
    TYPE_WRITING = "writing"
    TYPE_WRITING_LONG = "writing-long"
    TYPE_SPEAKING = "speaking"
    TYPE_ASSIGNMENT = "assignment"
    TYPE_LISTENING = "listening"
    TYPE_CHOICES = [
        (TYPE_MULTIPLE_CHOICE, "Multiple choice"),
        (TYPE_TRUE_FALSE, "True/false"),
        (TYPE_MATCHING, "Matching"),
        (TYPE_DRAG_AND_DROP, "Drag and drop"),
        (TYPE_WRITING, "Writing"),
        (TYPE_WRITING_LONG, "Long writing"),
        (TYPE_SPEAKING, "Speaking"),
        (TYPE_ASSIGNMENT, "Assignment"),
        (TYPE_LISTENING, "Listening"),
    ]

    SUBTYPE_ORDERING = "ordering"
    SUBTYPE_CATEGORIZATION = "categorization"
    SUBTYPE_FILL_BLANK = "fill-blank"
    SUBTYPE_LABELING = "labeling"
    SUBTYPE_CHOICES = [
        (SUBTYPE_ORDERING, "Ordering"),
        (SUBTYPE_CATEGORIZATION, "Categorization"),
        (SUBTYPE_FILL_BLANK, "Fill in the blank"),
        (SUBTYPE_LABELING, "Labeling"),
    ]

    DIFFICULTY_CHOICES = [
        ("beginner", "Beginner"),
        ("intermediate", "Intermediate"),
        ("advanced", "Advanced"),
    ]
    QUARTER_CHOICES = [("Q1", "Q1"), ("Q2", "Q2"), ("Q3", "Q3"), ("Q4", "Q4")]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="assessments")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    subtype = models.CharField(max_length=20, choices=SUBTYPE_CHOICES, blank=True, default="")
    category = models.CharField(max_length=100, blank=True, default="")
    difficulty = models.CharField(max_length=16, choices=DIFFICULTY_CHOICES, blank=True, default="")
    time_limit = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes")
    points = models.PositiveIntegerField(default=1)
    questions = models.JSONField(default=dict, blank=True)
    instructions = models.TextField(blank=True, default="")
    criteria = models.JSONField(default=dict, blank=True)
    auto_grade = models.BooleanField(default=True)
    show_feedback = models.BooleanField(default=True)
    due_date = models.DateTimeField(null=True, blank=True)
    available_from = models.DateTimeField(null=True, blank=True)
    available_to = models.DateTimeField(null=True, blank=True)
    quarter = models.CharField(max_length=2, choices=QUARTER_CHOICES, default="Q1")
    max_attempts = models.PositiveIntegerField(null=True, blank=True)
    shuffle_questions = models.BooleanField(default=False)
    allow_review = models.BooleanField(default=True)
    tags = models.JSONField(default=list, blank=True)
    published = models.BooleanField(default=True)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, null=True, blank=True, related_name="assessments")
    unit = models.ForeignKey(Unit, on_delete=models.SET_NULL, null=True, blank=True, related_name="assessments")
    part = models.ForeignKey(Part, on_delete=models.SET_NULL, null=True, blank=True, related_name="assessments")
    section = models.ForeignKey(Section, on_delete=models.SET_NULL, null=True, blank=True, related_name="assessments")
    topic = models.ForeignKey(Topic, on_delete=models.SET_NULL, null=True, blank=True, related_name="assessments")
    resources = models.ManyToManyField(Resource, blank=True, related_name="assessments")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assessments_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["organization", "published"], name="portal_asmt_org_pub_idx"),
            models.Index(fields=["course", "published"], name="portal_asmt_course_pub_idx"),
        ]

    def is_available(self, now=None) -> bool:
        now = now or timezone.now()
        if self.available_from and self.available_from > now:
            return False
        if self.available_to and self.available_to < now:
            return False
        return True

    def __str__(self) -> str:
        return f"{self.title} ({self.type})"


class Submission(models.Model):
    """A student's latest answers for one assessment (best score kept)."""

    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name="submissions")
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="submissions")
    answers = models.JSONField(default=dict, blank=True)
    score = models.FloatField(null=True, blank=True)
    feedback = models.JSONField(default=dict, blank=True)
    attempts = models.PositiveIntegerField(default=0)
    submitted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-submitted_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["assessment", "student"], name="uniq_submission_assessment_student"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} -> {self.assessment_id}: {self.score}"


class StudentCourse(models.Model):
    """Self-enrollment of a student in a course."""

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="enrollments")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrollments")
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-enrolled_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["student", "course"], name="uniq_enrollment_student_course"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} in {self.course_id}"


class ChatRoom(models.Model):
    TYPE_DIRECT = "direct"
    TYPE_GROUP = "group"
    TYPE_CLASS = "class"
    TYPE_CHOICES = [
        (TYPE_DIRECT, "Direct"),
        (TYPE_GROUP, "Group"),
        (TYPE_CLASS, "Class"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="chat_rooms")
    name = models.CharField(max_length=200, blank=True, default="")
    type = models.CharField(max_length=8, choices=TYPE_CHOICES, default=TYPE_DIRECT)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="chat_rooms_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "-id"]

    def __str__(self) -> str:
        return self.name or f"{self.type} room {self.pk}"


class ChatParticipant(models.Model):
    room = models.ForeignKey(ChatRoom, on_delete=models.CASCADE, related_name="participants")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_participations")
    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(default=timezone.now)
    left_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["room", "user"], name="uniq_chat_participant_room_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} in {self.room_id}"


class ChatMessage(models.Model):
    TYPE_TEXT = "text"
    TYPE_FILE = "file"
    TYPE_IMAGE = "image"
    TYPE_SYSTEM = "system"
    TYPE_CHOICES = [
        (TYPE_TEXT, "Text"),
        (TYPE_FILE, "File"),
        (TYPE_IMAGE, "Image"),
        (TYPE_SYSTEM, "System"),
    ]

    room = models.ForeignKey(ChatRoom, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_messages")
    content = models.TextField()
    message_type = models.CharField(max_length=8, choices=TYPE_CHOICES, default=TYPE_TEXT)
    file_url = models.CharField(max_length=500, blank=True, default="")
    file_name = models.CharField(max_length=255, blank=True, default="")
    file_size = models.PositiveBigIntegerField(null=True, blank=True)
    reply_to = models.ForeignKey("self", on_delete=models.SET_NULL, null=True, blank=True, related_name="replies")
    is_read = models.BooleanField(default=False)
    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["room", "created_at"], name="portal_chmsg_room_crt_idx"),
            models.Index(fields=["room", "is_read"], name="portal_chmsg_room_read_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.room_id}/{self.sender_id}: {self.content[:40]}"


class DailyProgress(models.Model):
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="daily_progress")
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name="daily_progress")
    date = models.DateField()
    score = models.FloatField(null=True, blank=True)
    time_spent_minutes = models.PositiveIntegerField(default=0)
    completed = models.BooleanField(default=False)
    attempts = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["student", "assessment", "date"],
                name="uniq_daily_progress_student_assessment_date",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} {self.date}: {self.score}"


class WeeklyProgress(models.Model):
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="weekly_progress")
    week_start = models.DateField(help_text="Sunday that starts the week")
    week_end = models.DateField()
    total_score = models.FloatField(default=0)
    assignments_completed = models.PositiveIntegerField(default=0)
    average_score = models.FloatField(default=0)
    best_day = models.CharField(max_length=10, blank=True, default="")
    worst_day = models.CharField(max_length=10, blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-week_start", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["student", "week_start"], name="uniq_weekly_progress_student_week"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} week {self.week_start}"


class LearningPattern(models.Model):
    PATTERN_IMPROVEMENT_RATE = "improvement_rate"

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="learning_patterns")
    pattern_type = models.CharField(max_length=40)
    pattern_data = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["pattern_type", "id"]
        constraints = [
            models.UniqueConstraint(fields=["student", "pattern_type"], name="uniq_learning_pattern_student_type"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} {self.pattern_type}"


class StudentSession(models.Model):
    """A tracked study session reported by the student client."""

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="study_sessions")
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")
    ip_address = models.GenericIPAddressField(blank=True, null=True)

    class Meta:
        ordering = ["-started_at", "-id"]
        indexes = [
            models.Index(fields=["student", "started_at"], name="portal_ssess_stu_start_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} session {self.started_at.isoformat()}"


class StudentActivity(models.Model):
    """Append-only activity event (page view, resource open, quiz start...)."""

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="activities")
    session = models.ForeignKey(
        StudentSession,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activities",
    )
    activity_type = models.CharField(max_length=60)
    assessment = models.ForeignKey(Assessment, on_delete=models.SET_NULL, null=True, blank=True, related_name="activities")
    resource = models.ForeignKey(Resource, on_delete=models.SET_NULL, null=True, blank=True, related_name="activities")
    course = models.ForeignKey(Course, on_delete=models.SET_NULL, null=True, blank=True, related_name="activities")
    details = models.JSONField(default=dict, blank=True)
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["student", "created_at"], name="portal_sact_stu_crt_idx"),
            models.Index(fields=["activity_type", "created_at"], name="portal_sact_type_crt_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} {self.activity_type}"


class AssignmentAttempt(models.Model):
    STATUS_STARTED = "STARTED"
    STATUS_IN_PROGRESS = "IN_PROGRESS"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_ABANDONED = "ABANDONED"
    STATUS_CHOICES = [
        (STATUS_STARTED, "Started"),
        (STATUS_IN_PROGRESS, "In progress"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_ABANDONED, "Abandoned"),
    ]
    OPEN_STATUSES = {STATUS_STARTED, STATUS_IN_PROGRESS}

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="assignment_attempts")
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name="attempts")
    session = models.ForeignKey(
        StudentSession,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="attempts",
    )
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_STARTED)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    total_time_seconds = models.PositiveIntegerField(null=True, blank=True)
    answers = models.JSONField(default=dict, blank=True)
    score = models.FloatField(null=True, blank=True)
    feedback = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-started_at", "-id"]
        indexes = [
            models.Index(fields=["student", "assessment", "status"], name="portal_attempt_stu_asm_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} {self.assessment_id} {self.status}"


class AuditEvent(models.Model):
    """Immutable staff-action record for operations and incident review."""

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="portal_audit_events",
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_events",
    )
    action = models.CharField(max_length=80)
    target_type = models.CharField(max_length=80, blank=True, default="")
    target_id = models.CharField(max_length=64, blank=True, default="")
    summary = models.CharField(max_length=255, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["created_at"], name="portal_audit_created_idx"),
            models.Index(fields=["action", "created_at"], name="portal_audit_action_idx"),
            models.Index(fields=["organization", "created_at"], name="portal_audit_org_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.created_at.isoformat()} {self.action} {self.target_type}:{self.target_id}"
