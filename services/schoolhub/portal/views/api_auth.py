"""`/api/auth/...`: login, registration, profile, sessions and roster tools."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction
from django.http import FileResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..forms import ClassroomPlacementForm, ClassroomProgressForm, LoginForm, ProfileForm, RegisterForm, StudentUpdateForm
from ..http.headers import apply_download_safety
from ..models import Classroom, UserProfile
from ..services import accounts
from ..services.api_tokens import issue_user_token
from ..services.org_access import org_classroom_or_none, org_member_or_none, org_members_queryset, user_org_id
from ..services.payloads import classroom_payload, media_url, user_payload
from ..services.upload_validation import PROFILE_PICTURE_MIME_TYPES, UploadRejected, validate_upload
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _client_ip,
    _form_error_response,
    _json_error,
    _json_no_store_response,
    _not_found,
    _read_json_body,
    api_login_required,
    api_rate_limit,
    api_role_required,
)

logger = logging.getLogger(__name__)

_STAFF = (UserProfile.ROLE_ADMIN, UserProfile.ROLE_TEACHER)
_PROFILE_PICTURE_DIR = "profile-pictures"


@require_POST
def api_login(request):
    """POST /api/auth/login {email, password, organization?} -> {token, user}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = LoginForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)

    org = accounts.resolve_organization(form.cleaned_data["organization"])
    user = accounts.authenticate_member(
        request,
        organization=org,
        email=form.cleaned_data["email"],
        password=form.cleaned_data["password"],
    )
    if user is None:
        logger.info("login_failed org=%s", org.code)
        return _json_error("invalid_credentials", status=401, message="Invalid credentials")

    accounts.open_user_session(
        user,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("User-Agent", ""),
    )
    token = issue_user_token(user_id=user.id, role=user.profile.role, organization_id=org.id)
    logger.info("login_ok user=%s org=%s", user.id, org.code)
    return _json_no_store_response({"token": token, "user": user_payload(user, include_org=True)})


@require_POST
def api_register(request):
    """POST /api/auth/register -> 201 {message, user}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = RegisterForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    data = form.cleaned_data

    org = accounts.resolve_organization(data["organization"])
    classroom = None
    if data["role"] == UserProfile.ROLE_STUDENT and data["yearLevel"] and data["classNum"]:
        classroom = accounts.get_or_create_classroom(org.id, data["yearLevel"], data["classNum"])
    try:
        user = accounts.create_account(
            organization=org,
            email=data["email"],
            password=data["password"],
            first_name=data["firstName"],
            last_name=data["lastName"],
            role=data["role"],
            classroom=classroom,
        )
    except accounts.AccountError as exc:
        return _bad_request(str(exc))
    return _json_no_store_response(
        {"message": "User created successfully", "user": user_payload(user, include_org=True)},
        status=201,
    )


@require_GET
@api_login_required
def api_me(request):
    return _json_no_store_response({"user": user_payload(request.api_user, include_org=True)})


def _apply_profile_changes(user, data: dict, raw: dict) -> None:
    """Copy cleaned ProfileForm fields that the caller actually sent."""
    if raw.get("firstName"):
        user.first_name = data["firstName"].strip()
    if raw.get("lastName"):
        user.last_name = data["lastName"].strip()
    if raw.get("email"):
        accounts.change_email(user, data["email"])
    if raw.get("password"):
        user.set_password(data["password"])
    user.save()
    profile = user.profile
    if "nickname" in raw:
        profile.nickname = (data.get("nickname") or "").strip()
    if "profilePicture" in raw and not raw.get("profilePicture"):
        # New pictures go through POST /profile-picture; here a falsy value clears it.
        profile.profile_picture = ""
    profile.save()


def _email_conflict(user, raw_email) -> bool:
    if not raw_email:
        return False
    email = str(raw_email).strip().lower()
    if email == (user.email or "").lower():
        return False
    return accounts.email_taken(user.profile.organization_id, email, exclude_user_id=user.id)


@require_http_methods(["PATCH"])
@api_login_required
def api_update_profile(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = ProfileForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    user = request.api_user
    if _email_conflict(user, payload.get("email")):
        return _bad_request("Email already exists in this organization")
    with transaction.atomic():
        _apply_profile_changes(user, form.cleaned_data, payload)
    return _json_no_store_response(
        {"message": "Profile updated successfully", "user": user_payload(user, include_org=True)}
    )


@require_POST
@api_login_required
@api_rate_limit(limit=20, window_seconds=60, scope="profile_picture")
def api_upload_profile_picture(request):
    upload = request.FILES.get("profilePicture")
    max_bytes = int(getattr(settings, "SCHOOLHUB_IMAGE_MAX_UPLOAD_MB", 5)) * 1024 * 1024
    try:
        validate_upload(upload, allowed_mime_types=PROFILE_PICTURE_MIME_TYPES, max_bytes=max_bytes)
    except UploadRejected as exc:
        return _json_error("upload_rejected", status=exc.status, message=str(exc))

    profile = request.api_user.profile
    ext = Path(upload.name or "").suffix.lower()[:10]
    profile.profile_picture.save(f"profile-{uuid.uuid4().hex}{ext}", upload, save=True)
    name = Path(profile.profile_picture.name).name
    return _json_no_store_response(
        {
            "message": "Profile picture uploaded successfully",
            "user": user_payload(request.api_user, include_org=True),
            "profilePicture": name,
        }
    )


@require_GET
def api_profile_picture_file(request, filename: str):
    """Serve one stored profile picture by file name."""
    safe_name = Path(filename).name
    stored = f"{_PROFILE_PICTURE_DIR}/{safe_name}"
    if not safe_name or safe_name != filename or not default_storage.exists(stored):
        return _not_found("Profile picture not found")
    response = FileResponse(default_storage.open(stored, "rb"))
    return apply_download_safety(response)


@require_POST
@api_login_required
def api_logout(request):
    session = accounts.close_latest_session(request.api_user)
    if session is not None:
        logger.info("logout user=%s duration=%s", request.api_user.id, session.duration_seconds)
    return _json_no_store_response({"success": True, "message": "Logged out successfully"})


@require_POST
@api_login_required
def api_session_ping(request):
    accounts.touch_open_sessions(request.api_user)
    return _json_no_store_response({"success": True})


def _students_queryset(user):
    return org_members_queryset(user).filter(profile__role=UserProfile.ROLE_STUDENT)


@require_GET
@api_role_required(*_STAFF)
def api_students(request):
    students = _students_queryset(request.api_user).order_by(
        "profile__classroom__year_level",
        "profile__classroom__class_num",
        "last_name",
        "first_name",
    )
    return _json_no_store_response({"students": [user_payload(s) for s in students]})


def _update_student(request, student):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = StudentUpdateForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    if _email_conflict(student, payload.get("email")):
        return _bad_request("Email already exists in this organization")

    grade_level = form.cleaned_data.get("gradeLevel")
    with transaction.atomic():
        _apply_profile_changes(student, form.cleaned_data, payload)
        current = student.profile.classroom
        if grade_level and grade_level != getattr(current, "year_level", None):
            student.profile.classroom = accounts.get_or_create_classroom(
                student.profile.organization_id, grade_level
            )
            student.profile.save(update_fields=["classroom", "updated_at"])
    _audit(
        request,
        action="student.update",
        target_type="User",
        target_id=student.id,
        summary=f"Updated student {student.email}",
        metadata={"fields": sorted(k for k in payload.keys() if k != "password")},
    )
    return _json_no_store_response(
        {"message": "Student profile updated successfully", "student": user_payload(student, include_org=True)}
    )


def _delete_student(request, student):
    email = student.email
    student_id = student.id
    student.delete()
    _audit(
        request,
        action="student.delete",
        target_type="User",
        target_id=student_id,
        summary=f"Deleted student {email}",
    )
    return _json_no_store_response({"message": "Student deleted successfully"})


@require_http_methods(["PATCH", "DELETE"])
@api_role_required(*_STAFF)
def api_student_detail(request, student_id: int):
    student = org_member_or_none(request.api_user, student_id, role=UserProfile.ROLE_STUDENT)
    if student is None:
        return _not_found("Student not found")
    if request.method == "DELETE":
        return _delete_student(request, student)
    return _update_student(request, student)


@require_http_methods(["PATCH"])
@api_role_required(*_STAFF)
def api_user_classroom(request, user_id: int):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = ClassroomPlacementForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    member = org_member_or_none(request.api_user, user_id)
    if member is None:
        return _not_found("User not found")
    if member.profile.role != UserProfile.ROLE_STUDENT:
        return _bad_request("Can only update classroom for students")

    classroom = accounts.get_or_create_classroom(
        member.profile.organization_id,
        form.cleaned_data["yearLevel"],
        form.cleaned_data["classNum"],
    )
    member.profile.classroom = classroom
    member.profile.save(update_fields=["classroom", "updated_at"])
    _audit(
        request,
        action="student.set_classroom",
        target_type="User",
        target_id=member.id,
        summary=f"Moved {member.email} to {classroom.name}",
        metadata={"classroom_id": classroom.id},
    )
    return _json_no_store_response(
        {"message": "Student classroom updated successfully", "user": user_payload(member, include_org=True)}
    )


def classroom_with_students(classroom: Classroom) -> dict:
    data = classroom_payload(classroom)
    students = (
        classroom.students.filter(role=UserProfile.ROLE_STUDENT)
        .select_related("user")
        .order_by("user__last_name", "user__first_name")
    )
    data["students"] = [
        {
            "id": p.user.id,
            "firstName": p.user.first_name,
            "lastName": p.user.last_name,
            "email": p.user.email,
            "profilePicture": media_url(p.profile_picture),
            "lastLogin": p.user.last_login,
        }
        for p in students
    ]
    return data


@require_GET
@api_role_required(*_STAFF)
def api_auth_classrooms(request):
    classrooms = Classroom.objects.filter(organization_id=user_org_id(request.api_user)).order_by(
        "year_level", "class_num", "id"
    )
    return _json_no_store_response({"classrooms": [classroom_with_students(c) for c in classrooms]})


@require_GET
@api_role_required(*_STAFF)
def api_classroom_students(request, classroom_id: int):
    classroom = org_classroom_or_none(request.api_user, classroom_id)
    if classroom is None:
        return _not_found("Classroom not found")
    students = _students_queryset(request.api_user).filter(profile__classroom=classroom).order_by(
        "last_name", "first_name"
    )
    summary = classroom_payload(classroom)
    summary["name"] = f"{classroom.year_level}/{classroom.class_num}"
    return _json_no_store_response(
        {"students": [user_payload(s, include_org=True) for s in students], "classroom": summary}
    )


def progress_classroom(request, classroom_id: int):
    """Move every student of a classroom to another year level/class number.

    Shared by /api/auth/classroom/<id>/progress and
    /api/classrooms/<id>/progress.
    """
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = ClassroomProgressForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    classroom = org_classroom_or_none(request.api_user, classroom_id)
    if classroom is None:
        return _not_found("Classroom not found")

    new_level = form.cleaned_data["newYearLevel"]
    new_num = form.cleaned_data["newClassNum"] or classroom.class_num
    with transaction.atomic():
        target = accounts.get_or_create_classroom(classroom.organization_id, new_level, new_num)
        moved = accounts.move_students(classroom, target)
    _audit(
        request,
        action="classroom.progress",
        target_type="Classroom",
        target_id=classroom.id,
        summary=f"Progressed {moved} students to {target.name}",
        metadata={"from": classroom.id, "to": target.id, "moved": moved},
    )
    return _json_no_store_response(
        {
            "message": (
                f"Successfully progressed {moved} students from "
                f"{classroom.year_level}/{classroom.class_num} to {new_level}/{new_num}"
            ),
            "previousClassroom": classroom_payload(classroom),
            "newClassroom": classroom_payload(target),
            "updatedStudents": moved,
        }
    )


@require_POST
@api_role_required(*_STAFF)
def api_classroom_progress(request, classroom_id: int):
    return progress_classroom(request, classroom_id)


__all__ = [
    "api_auth_classrooms",
    "api_classroom_progress",
    "api_classroom_students",
    "api_login",
    "api_logout",
    "api_me",
    "api_profile_picture_file",
    "api_register",
    "api_session_ping",
    "api_student_detail",
    "api_students",
    "api_update_profile",
    "api_upload_profile_picture",
    "api_user_classroom",
    "progress_classroom",
]
