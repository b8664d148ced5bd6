import csv
import json
import tempfile
from datetime import date, timedelta
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import Client, SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from ..models import (
    Assessment,
    AssignmentAttempt,
    AuditEvent,
    ChatMessage,
    ChatParticipant,
    ChatRoom,
    Classroom,
    Course,
    DailyProgress,
    LearningPattern,
    Organization,
    Part,
    Resource,
    StudentActivity,
    StudentCourse,
    StudentSession,
    Subject,
    Submission,
    Unit,
    UserProfile,
    UserSession,
    WeeklyProgress,
    account_username,
)
from ..services import accounts
from ..services.api_tokens import issue_user_token

User = get_user_model()

_PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)
_PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def _make_org(code: str = "PBS", name: str = "") -> Organization:
    return Organization.objects.create(name=name or code, code=code)


def _make_user(
    org: Organization,
    email: str,
    *,
    role: str = UserProfile.ROLE_STUDENT,
    classroom: Classroom | None = None,
    first_name: str = "Test",
    last_name: str = "User",
    password: str = "testpass123",
):
    return accounts.create_account(
        organization=org,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        role=role,
        classroom=classroom,
    )


def _auth(user) -> dict:
    """Client kwargs carrying a bearer token for `user`."""
    token = issue_user_token(
        user_id=user.id,
        role=user.profile.role,
        organization_id=user.profile.organization_id,
    )
    return {"HTTP_AUTHORIZATION": f"Bearer {token}"}


class _Base(TestCase):
    """One organization with a teacher, a student in P4/1 and a course."""

    def setUp(self):
        cache.clear()
        self.org = _make_org("PBS")
        self.classroom = accounts.get_or_create_classroom(self.org.id, "P4", 1)
        self.teacher = _make_user(
            self.org, "teacher@example.org", role=UserProfile.ROLE_TEACHER, first_name="Tess", last_name="Teacher"
        )
        self.student = _make_user(
            self.org, "student@example.org", classroom=self.classroom, first_name="Ada", last_name="Lovelace"
        )
        self.subject = Subject.objects.create(organization=self.org, name="Math", created_by=self.teacher)
        self.course = Course.objects.create(subject=self.subject, name="Math P4", created_by=self.teacher)

        self.other_org = _make_org("HOSPITAL")
        self.outsider = _make_user(self.other_org, "outsider@example.org", role=UserProfile.ROLE_TEACHER)

    def _get(self, path: str, user=None, **params):
        kwargs = _auth(user) if user is not None else {}
        return self.client.get(path, params, **kwargs)

    def _send(self, method: str, path: str, payload=None, user=None):
        kwargs = _auth(user) if user is not None else {}
        body = json.dumps(payload if payload is not None else {})
        return getattr(self.client, method)(path, data=body, content_type="application/json", **kwargs)

    def _post(self, path: str, payload=None, user=None):
        return self._send("post", path, payload, user)

    def _patch(self, path: str, payload=None, user=None):
        return self._send("patch", path, payload, user)

    def _delete(self, path: str, user=None):
        kwargs = _auth(user) if user is not None else {}
        return self.client.delete(path, **kwargs)


__all__ = [name for name in globals() if not name.startswith("__")]
