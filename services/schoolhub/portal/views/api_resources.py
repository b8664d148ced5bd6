"""`/api/resources/...`: teacher uploads, shared templates and allocation."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path

from django.conf import settings
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..forms import ResourceUploadForm
from ..models import Resource, UserProfile
from ..services.org_access import (
    org_course_or_none,
    org_resource_or_none,
    org_resources_queryset,
    org_unit_or_none,
    user_org_id,
)
from ..services.payloads import resource_payload
from ..services.upload_validation import (
    RESOURCE_MIME_TYPES,
    UploadRejected,
    resource_type_for_mime,
    validate_upload,
)
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _form_error_response,
    _json_error,
    _json_no_store_response,
    _not_found,
    _parse_bool,
    _parse_positive_int,
    _read_json_body,
    api_rate_limit,
    api_role_required,
)

logger = logging.getLogger(__name__)

_TEACHER = UserProfile.ROLE_TEACHER
_LIST_FILTERS = {
    "courseId": "course_id",
    "unitId": "unit_id",
    "partId": "part_id",
    "sectionId": "section_id",
    "topicId": "topic_id",
}
_TYPES = {value for value, _label in Resource.TYPE_CHOICES}


def _parse_tags(raw) -> list[str] | None:
    """Tags arrive as a JSON array string (multipart) or a list (JSON)."""
    if raw in (None, ""):
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, list):
        return None
    return [str(t) for t in raw]


@api_rate_limit(limit=30, window_seconds=60, scope="resource_upload")
def _upload_resource(request):
    form = ResourceUploadForm(data=request.POST, files=request.FILES)
    if not form.is_valid():
        if "file" in form.errors:
            return _bad_request("File is required")
        return _form_error_response(form)
    data = form.cleaned_data
    upload = data["file"]
    max_bytes = int(getattr(settings, "SCHOOLHUB_RESOURCE_MAX_UPLOAD_MB", 100)) * 1024 * 1024
    try:
        mime_type = validate_upload(upload, allowed_mime_types=RESOURCE_MIME_TYPES, max_bytes=max_bytes)
    except UploadRejected as exc:
        return _json_error("upload_rejected", status=exc.status, message=str(exc))

    tags = _parse_tags(data["tags"])
    if tags is None:
        return _bad_request("Tags must be a JSON array")
    is_shared = _parse_bool(data["isShared"])

    course = unit = subject = None
    if not is_shared:
        if data["courseId"]:
            course = org_course_or_none(request.api_user, data["courseId"])
            if course is None:
                return _not_found("Course not found")
            subject = course.subject
        if data["unitId"]:
            unit = org_unit_or_none(request.api_user, data["unitId"])
            if unit is None or (course is not None and unit.course_id != course.id):
                return _not_found("Unit not found")

    original_name = Path(upload.name or "").name
    ext = Path(original_name).suffix.lower()[:10]
    resource = Resource(
        organization_id=user_org_id(request.api_user),
        title=data["title"].strip(),
        description=data["description"] or "",
        type=resource_type_for_mime(mime_type),
        original_filename=original_name[:255],
        file_size=int(upload.size or 0),
        mime_type=mime_type,
        is_public=_parse_bool(data["isPublic"]),
        is_shared=is_shared,
        tags=tags,
        subject=subject,
        course=course,
        unit=unit,
        created_by=request.api_user,
    )
    resource.file.save(f"{uuid.uuid4().hex}{ext}", upload, save=False)
    resource.save()
    logger.info(
        "resource_uploaded id=%s org=%s type=%s size=%s shared=%s",
        resource.id,
        resource.organization_id,
        resource.type,
        resource.file_size,
        resource.is_shared,
    )
    _audit(
        request,
        action="resource.upload",
        target_type="Resource",
        target_id=resource.id,
        summary=resource.title,
        metadata={"mime_type": mime_type, "size": resource.file_size, "shared": is_shared},
    )
    return _json_no_store_response(
        {"message": "Resource created successfully", "resource": resource_payload(resource)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@api_role_required(_TEACHER)
def api_resources(request):
    """GET lists organization resources, newest first (filters: course/unit/part/section/topic id, type).

    POST is a multipart upload.
    """
    if request.method == "POST":
        return _upload_resource(request)
    qs = org_resources_queryset(request.api_user)
    for param, field in _LIST_FILTERS.items():
        raw = request.GET.get(param)
        if raw:
            parsed = _parse_positive_int(raw)
            if parsed is None:
                return _json_no_store_response({"resources": []})
            qs = qs.filter(**{field: parsed})
    kind = (request.GET.get("type") or "").strip().upper()
    if kind:
        qs = qs.filter(type=kind) if kind in _TYPES else qs.none()
    return _json_no_store_response({"resources": [resource_payload(r) for r in qs.order_by("-created_at", "-id")]})


@require_GET
@api_role_required(_TEACHER)
def api_shared_resources(request):
    qs = org_resources_queryset(request.api_user).filter(is_shared=True)
    kind = (request.GET.get("type") or "").strip().upper()
    if kind:
        qs = qs.filter(type=kind) if kind in _TYPES else qs.none()
    return _json_no_store_response({"resources": [resource_payload(r) for r in qs.order_by("-created_at", "-id")]})


def _update_resource(request, resource: Resource):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if "title" in payload:
        title = str(payload.get("title") or "").strip()
        if not title:
            return _bad_request("Title cannot be empty")
        resource.title = title[:200]
    if "description" in payload:
        resource.description = str(payload.get("description") or "")
    if "tags" in payload:
        tags = _parse_tags(payload.get("tags"))
        if tags is None:
            return _bad_request("Tags must be an array")
        resource.tags = tags
    if "isPublic" in payload:
        resource.is_public = _parse_bool(payload.get("isPublic"))
    if "courseId" in payload:
        course = None
        if payload.get("courseId") not in (None, ""):
            course = org_course_or_none(request.api_user, payload.get("courseId"))
            if course is None:
                return _not_found("Course not found")
        resource.course = course
        resource.subject = course.subject if course is not None else None
    if "unitId" in payload:
        unit = None
        if payload.get("unitId") not in (None, ""):
            unit = org_unit_or_none(request.api_user, payload.get("unitId"))
            if unit is None:
                return _not_found("Unit not found")
        resource.unit = unit
    resource.save()
    _audit(
        request,
        action="resource.update",
        target_type="Resource",
        target_id=resource.id,
        summary=resource.title,
        metadata={"fields": sorted(payload.keys())},
    )
    return _json_no_store_response({"message": "Resource updated successfully", "resource": resource_payload(resource)})


def _delete_resource(request, resource: Resource):
    resource_id, title = resource.id, resource.title
    # Stored file cleanup happens in the post_delete signal.
    resource.delete()
    _audit(request, action="resource.delete", target_type="Resource", target_id=resource_id, summary=title)
    return _json_no_store_response({"message": "Resource deleted successfully"})


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_role_required(_TEACHER)
def api_resource_detail(request, resource_id: int):
    resource = org_resource_or_none(request.api_user, resource_id)
    if resource is None:
        return _not_found("Resource not found")
    if request.method == "GET":
        return _json_no_store_response({"resource": resource_payload(resource)})
    if resource.created_by_id != request.api_user.id:
        # Only the uploader may change or remove a resource.
        return _not_found("Resource not found")
    if request.method == "PATCH":
        return _update_resource(request, resource)
    return _delete_resource(request, resource)


@require_POST
@api_role_required(_TEACHER)
def api_resource_allocate(request):
    """POST {resourceId, courseId, unitId?}: copy a shared template into a course."""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if payload.get("resourceId") in (None, ""):
        return _bad_request("Resource ID is required")
    if payload.get("courseId") in (None, ""):
        return _bad_request("Course ID is required")
    template = org_resource_or_none(request.api_user, payload.get("resourceId"))
    if template is None or not template.is_shared:
        return _not_found("Shared resource template not found")
    course = org_course_or_none(request.api_user, payload.get("courseId"))
    if course is None:
        return _not_found("Course not found")
    unit = None
    if payload.get("unitId") not in (None, ""):
        unit = org_unit_or_none(request.api_user, payload.get("unitId"))
        if unit is None or unit.course_id != course.id:
            return _not_found("Unit not found")

    allocated = Resource.objects.create(
        organization_id=template.organization_id,
        title=template.title,
        description=template.description,
        type=template.type,
        file=template.file.name,
        original_filename=template.original_filename,
        file_size=template.file_size,
        mime_type=template.mime_type,
        is_public=template.is_public,
        is_shared=False,
        tags=list(template.tags or []),
        template=template,
        subject=course.subject,
        course=course,
        unit=unit,
        created_by=request.api_user,
    )
    _audit(
        request,
        action="resource.allocate",
        target_type="Resource",
        target_id=allocated.id,
        summary=f"Allocated {template.title} to {course.name}",
        metadata={"template_id": template.id, "course_id": course.id, "unit_id": getattr(unit, "id", None)},
    )
    return _json_no_store_response(
        {"message": "Resource allocated successfully", "resource": resource_payload(allocated)},
        status=201,
    )


__all__ = [
    "api_resource_allocate",
    "api_resource_detail",
    "api_resources",
    "api_shared_resources",
]
