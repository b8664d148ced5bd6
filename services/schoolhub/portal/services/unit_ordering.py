"""Unit numbering inside a course.

Units carry a 1-based `order`. Two placement modes exist:

- auto-advance: a requested number that is free is used as-is; a missing or
  taken number falls through to `max(order) + 1`.
- bump: the unit is placed exactly at the requested number and the units in
  the way are shifted by one inside a single transaction, so a dense
  1..N ordering stays dense and keeps its relative order.

The pure helpers (`parse_*`, `resolve_create_order`, `plan_move`) carry the
arithmetic and are tested without a database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F, Max

from ..models import Course, Organization, Unit

logger = logging.getLogger(__name__)


class OrderingError(ValueError):
    """Raised for a unit number the caller must fix (HTTP 400)."""


_BUMP_TRUE_STRINGS = {"true", "1"}


def parse_bump(raw) -> bool:
    """Accept true, "true", 1 and "1" as a bump request; anything else is off."""
    if raw is True:
        return True
    if isinstance(raw, bool):
        return False
    if isinstance(raw, int):
        return raw == 1
    if isinstance(raw, str):
        return raw.strip().lower() in _BUMP_TRUE_STRINGS
    return False


def parse_unit_number(raw, *, required: bool = False) -> int | None:
    """Return a positive int, None when absent, or raise OrderingError."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            raise OrderingError("Unit number must be a positive integer")
        return None
    if isinstance(raw, bool):
        raise OrderingError("Unit number must be a positive integer")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise OrderingError("Unit number must be a positive integer")
        raw = int(raw)
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise OrderingError("Unit number must be a positive integer") from None
    if value < 1:
        raise OrderingError("Unit number must be a positive integer")
    return value


def resolve_create_order(number: int | None, existing_orders) -> int:
    """Auto-advance rule for a new unit in a course."""
    orders = set(existing_orders)
    next_order = (max(orders) if orders else 0) + 1
    if number is None or number < 1:
        return next_order
    if number in orders:
        return next_order
    return number


@dataclass(frozen=True)
class ShiftPlan:
    low: int
    high: int
    delta: int


def plan_move(old_order: int, new_order: int) -> ShiftPlan | None:
    """Range of sibling orders to shift when a unit moves from old to new.

    Moving up (new < old) pushes [new, old-1] down the list by +1; moving
    down (new > old) pulls [old+1, new] up by -1. None when nothing moves.
    """
    if new_order == old_order:
        return None
    if new_order < old_order:
        return ShiftPlan(low=new_order, high=old_order - 1, delta=1)
    return ShiftPlan(low=old_order + 1, high=new_order, delta=-1)


def _siblings(*, organization_id: int, course_id: int | None):
    return Unit.objects.filter(organization_id=organization_id, course_id=course_id)


def course_orders(course: Course) -> list[int]:
    return list(Unit.objects.filter(course=course).values_list("order", flat=True))


def next_order(course: Course) -> int:
    current = Unit.objects.filter(course=course).aggregate(max_order=Max("order"))["max_order"]
    return int(current or 0) + 1


def create_unit(
    *,
    organization: Organization,
    course: Course | None,
    title: str,
    description: str = "",
    number: int | None = None,
    bump: bool = False,
    created_by=None,
) -> Unit:
    """Create a unit, honoring bump (shift-insert) or auto-advance placement."""
    with transaction.atomic():
        if course is not None:
            # Serialize concurrent writers on the same course.
            Course.objects.select_for_update().filter(id=course.id).first()
        if course is not None and bump and number is not None:
            shifted = Unit.objects.filter(course=course, order__gte=number).update(order=F("order") + 1)
            order = number
            logger.info("unit_bump_insert course=%s at=%s shifted=%s", course.id, number, shifted)
        elif course is not None:
            order = resolve_create_order(number, course_orders(course))
        else:
            order = number if number is not None else 1
        return Unit.objects.create(
            organization=organization,
            course=course,
            name=title,
            description=description or "",
            order=order,
            created_by=created_by,
        )


def move_unit(unit: Unit, new_order: int, *, title: str | None = None, description: str | None = None) -> Unit:
    """Move a unit to `new_order` inside its own course, shifting siblings."""
    with transaction.atomic():
        if unit.course_id is not None:
            Course.objects.select_for_update().filter(id=unit.course_id).first()
        unit.refresh_from_db(fields=["order"])
        # A move past the last unit lands on the last slot so orders stay dense.
        last = _siblings(organization_id=unit.organization_id, course_id=unit.course_id).aggregate(
            last=Max("order")
        )["last"]
        new_order = min(new_order, max(last or 1, unit.order))
        plan = plan_move(unit.order, new_order)
        if plan is not None:
            (
                _siblings(organization_id=unit.organization_id, course_id=unit.course_id)
                .filter(order__gte=plan.low, order__lte=plan.high)
                .exclude(id=unit.id)
                .update(order=F("order") + plan.delta)
            )
            logger.info(
                "unit_move unit=%s course=%s from=%s to=%s",
                unit.id,
                unit.course_id,
                unit.order,
                new_order,
            )
            unit.order = new_order
        if title is not None:
            unit.name = title
        if description is not None:
            unit.description = description
        unit.save()
    return unit


def number_taken(*, organization_id: int, course_id: int | None, number: int, exclude_id: int | None = None) -> bool:
    qs = _siblings(organization_id=organization_id, course_id=course_id).filter(order=number)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


def bulk_conflicts(course: Course, numbers: list[int]) -> list[int]:
    """Requested numbers that already exist in the course, in request order."""
    existing = set(course_orders(course))
    return [n for n in numbers if n in existing]


__all__ = [
    "OrderingError",
    "ShiftPlan",
    "bulk_conflicts",
    "course_orders",
    "create_unit",
    "move_unit",
    "next_order",
    "number_taken",
    "parse_bump",
    "parse_unit_number",
    "plan_move",
    "resolve_create_order",
]
