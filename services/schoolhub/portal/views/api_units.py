"""`/api/units/...`: unit CRUD, bump placement and bulk import."""

from __future__ import annotations

import logging

from django.db import DatabaseError, transaction
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..models import Unit, UserProfile
from ..services import unit_ordering
from ..services.org_access import org_course_or_none, org_unit_or_none, org_units_queryset, user_org_id
from ..services.payloads import unit_payload
from ..services.unit_ordering import OrderingError
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _json_no_store_response,
    _not_found,
    _read_json_body,
    api_rate_limit,
    api_role_required,
)

logger = logging.getLogger(__name__)

_TEACHER = UserProfile.ROLE_TEACHER


def _unit_response(unit_id: int) -> dict:
    unit = Unit.objects.select_related("course", "course__subject").prefetch_related("parts__sections").get(id=unit_id)
    return unit_payload(unit, nested=True)


def _create_unit(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    title = str(payload.get("title") or "").strip()
    if not title:
        return _bad_request("Unit title is required")
    try:
        number = unit_ordering.parse_unit_number(payload.get("number"))
    except OrderingError as exc:
        return _bad_request(str(exc))
    bump = unit_ordering.parse_bump(payload.get("bump"))

    course = None
    if payload.get("courseId") not in (None, ""):
        course = org_course_or_none(request.api_user, payload.get("courseId"))
        if course is None:
            return _not_found("Course not found")

    unit = unit_ordering.create_unit(
        organization=request.api_user.profile.organization,
        course=course,
        title=title[:200],
        description=str(payload.get("description") or ""),
        number=number,
        bump=bump,
        created_by=request.api_user,
    )
    _audit(
        request,
        action="unit.create",
        target_type="Unit",
        target_id=unit.id,
        summary=f"Created unit {unit.order}. {unit.name}",
        metadata={"course_id": unit.course_id, "requested": number, "bump": bump, "order": unit.order},
    )
    return _json_no_store_response(
        {"message": "Unit created successfully", "unit": _unit_response(unit.id)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@api_role_required(_TEACHER)
@api_rate_limit(limit=120, window_seconds=60, scope="units")
def api_units(request):
    if request.method == "POST":
        return _create_unit(request)
    units = org_units_queryset(request.api_user).order_by("course__subject__name", "order", "id")
    return _json_no_store_response({"units": [unit_payload(u) for u in units]})


def _update_unit(request, unit: Unit):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if "title" in payload and not str(payload.get("title") or "").strip():
        return _bad_request("Unit title cannot be empty")
    title = str(payload["title"]).strip()[:200] if payload.get("title") else None
    description = str(payload.get("description") or "") if "description" in payload else None
    try:
        number = unit_ordering.parse_unit_number(payload.get("number"))
    except OrderingError as exc:
        return _bad_request(str(exc))
    bump = unit_ordering.parse_bump(payload.get("bump"))

    target_course = unit.course
    if payload.get("courseId") not in (None, ""):
        target_course = org_course_or_none(request.api_user, payload.get("courseId"))
        if target_course is None:
            return _not_found("Course not found")
    course_changed = getattr(target_course, "id", None) != unit.course_id
    old_order = unit.order

    if bump and number is not None and not course_changed:
        unit_ordering.move_unit(unit, number, title=title, description=description)
    else:
        if number is not None and number != unit.order and unit_ordering.number_taken(
            organization_id=unit.organization_id,
            course_id=getattr(target_course, "id", None),
            number=number,
            exclude_id=unit.id,
        ):
            return _bad_request(f"Unit number {number} already exists in this course")
        if title is not None:
            unit.name = title
        if description is not None:
            unit.description = description
        if number is not None:
            unit.order = number
        unit.course = target_course
        unit.save()

    _audit(
        request,
        action="unit.update",
        target_type="Unit",
        target_id=unit.id,
        summary=f"Updated unit {unit.name}",
        metadata={"from": old_order, "to": unit.order, "bump": bump, "course_id": unit.course_id},
    )
    return _json_no_store_response({"message": "Unit updated successfully", "unit": _unit_response(unit.id)})


def _delete_unit(request, unit: Unit):
    if unit.parts.exists():
        return _bad_request("Cannot delete unit that contains content. Please remove all parts and sections first.")
    unit_id, name = unit.id, unit.name
    unit.delete()
    _audit(request, action="unit.delete", target_type="Unit", target_id=unit_id, summary=name)
    return _json_no_store_response({"message": "Unit deleted successfully"})


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_role_required(_TEACHER)
@api_rate_limit(limit=120, window_seconds=60, scope="units")
def api_unit_detail(request, unit_id: int):
    unit = org_unit_or_none(request.api_user, unit_id)
    if unit is None:
        return _not_found("Unit not found")
    if request.method == "PATCH":
        return _update_unit(request, unit)
    if request.method == "DELETE":
        return _delete_unit(request, unit)
    return _json_no_store_response({"unit": _unit_response(unit.id)})


@require_GET
@api_role_required(_TEACHER)
def api_units_for_course(request, course_id: int):
    course = org_course_or_none(request.api_user, course_id)
    if course is None:
        return _not_found("Course not found")
    units = course.units.select_related("course").order_by("order", "id")
    return _json_no_store_response({"units": [unit_payload(u) for u in units]})


@require_GET
@api_role_required(_TEACHER)
def api_units_debug_course(request, course_id: int):
    """Raw order listing for one course, used to inspect numbering problems."""
    course = org_course_or_none(request.api_user, course_id)
    if course is None:
        return _not_found("Course not found")
    units = list(course.units.order_by("order", "id"))
    return _json_no_store_response(
        {
            "course": {
                "id": course.id,
                "name": course.name,
                "unitsCount": len(units),
                "units": [
                    {"id": u.id, "name": u.name, "order": u.order, "description": u.description}
                    for u in units
                ],
            }
        }
    )


def _parse_bulk_items(raw_units) -> tuple[list[dict], str]:
    if not isinstance(raw_units, list) or not raw_units:
        return [], "Units must be a non-empty array"
    items = []
    for index, raw in enumerate(raw_units):
        if not isinstance(raw, dict):
            return [], f"Unit {index} must be an object"
        title = str(raw.get("title") or "").strip()
        if not title:
            return [], f"Unit {index}: title is required"
        try:
            number = unit_ordering.parse_unit_number(raw.get("number"), required=True)
        except OrderingError as exc:
            return [], f"Unit {index}: {exc}"
        items.append({"title": title[:200], "number": number, "description": str(raw.get("description") or "")})
    return items, ""


@require_POST
@api_role_required(_TEACHER)
@api_rate_limit(limit=30, window_seconds=60, scope="units_bulk")
def api_units_bulk(request):
    """POST /api/units/bulk {courseId, units:[{title, number, description?}]}"""
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    if payload.get("courseId") in (None, ""):
        return _bad_request("Course ID is required")
    items, error = _parse_bulk_items(payload.get("units"))
    if error:
        return _bad_request(error)
    course = org_course_or_none(request.api_user, payload.get("courseId"))
    if course is None:
        return _not_found("Course not found")

    numbers = [item["number"] for item in items]
    repeated = sorted({n for n in numbers if numbers.count(n) > 1})
    if repeated:
        return _bad_request(f"Unit numbers repeated in request: {', '.join(map(str, repeated))}")
    duplicates = unit_ordering.bulk_conflicts(course, numbers)
    if duplicates:
        return _bad_request(
            f"Unit numbers already exist: {', '.join(map(str, duplicates))}",
            duplicates=duplicates,
        )

    organization_id = user_org_id(request.api_user)
    results, created = [], []
    for index, item in enumerate(items):
        try:
            with transaction.atomic():
                unit = Unit.objects.create(
                    organization_id=organization_id,
                    course=course,
                    name=item["title"],
                    description=item["description"],
                    order=item["number"],
                    created_by=request.api_user,
                )
        except DatabaseError as exc:
            logger.warning("unit_bulk_item_failed course=%s index=%s err=%s", course.id, index, exc)
            results.append({"status": "error", "index": index, "error": str(exc)})
            continue
        data = unit_payload(unit)
        created.append(data)
        results.append({"status": "success", "index": index, "unit": data})

    _audit(
        request,
        action="unit.bulk_import",
        target_type="Course",
        target_id=course.id,
        summary=f"Imported {len(created)} units",
        metadata={"numbers": numbers},
    )
    return _json_no_store_response(
        {"message": "Bulk import completed", "results": results, "createdUnits": created},
        status=201,
    )


__all__ = [
    "api_unit_detail",
    "api_units",
    "api_units_bulk",
    "api_units_debug_course",
    "api_units_for_course",
]
