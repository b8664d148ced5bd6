"""Chat rooms, participation and message reads."""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from ..models import ChatMessage, ChatParticipant, ChatRoom, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def active_participation(room_id, user) -> ChatParticipant | None:
    return ChatParticipant.objects.filter(room_id=room_id, user=user, is_active=True).first()


def rooms_for_user(user):
    return (
        ChatRoom.objects.filter(
            is_active=True,
            organization_id=user.profile.organization_id,
            participants__user=user,
            participants__is_active=True,
        )
        .distinct()
        .order_by("-updated_at", "-id")
    )


def unread_counts_by_room(user, room_ids) -> dict[int, int]:
    rows = (
        ChatMessage.objects.filter(room_id__in=list(room_ids), is_read=False)
        .exclude(sender=user)
        .values("room_id")
        .annotate(n=Count("id"))
    )
    return {row["room_id"]: row["n"] for row in rows}


def total_unread(user) -> int:
    return (
        ChatMessage.objects.filter(
            is_read=False,
            room__participants__user=user,
            room__participants__is_active=True,
        )
        .exclude(sender=user)
        .distinct()
        .count()
    )


def find_direct_room(organization_id: int, user_ids: set[int]) -> ChatRoom | None:
    """An active direct room whose active participants are exactly `user_ids`."""
    candidates = (
        ChatRoom.objects.filter(organization_id=organization_id, type=ChatRoom.TYPE_DIRECT, is_active=True)
        .annotate(
            n_active=Count("participants", filter=Q(participants__is_active=True), distinct=True),
            n_match=Count(
                "participants",
                filter=Q(participants__is_active=True, participants__user_id__in=user_ids),
                distinct=True,
            ),
        )
        .filter(n_active=len(user_ids), n_match=len(user_ids))
        .order_by("id")
    )
    return candidates.first()


def create_room(*, creator, room_type: str, participant_ids: list[int], name: str = "") -> tuple[ChatRoom, bool]:
    """Create a room with the creator plus `participant_ids`.

    Returns (room, created); a direct room between the same two users is
    reused instead of duplicated.
    """
    org_id = creator.profile.organization_id
    all_ids = {creator.id, *participant_ids}
    if room_type == ChatRoom.TYPE_DIRECT and len(all_ids) == 2:
        existing = find_direct_room(org_id, all_ids)
        if existing is not None:
            return existing, False
    with transaction.atomic():
        room = ChatRoom.objects.create(
            organization_id=org_id,
            name=(name or "").strip(),
            type=room_type,
            created_by=creator,
        )
        ChatParticipant.objects.bulk_create(
            [ChatParticipant(room=room, user_id=uid) for uid in sorted(all_ids)]
        )
    logger.info("chat_room_created room=%s type=%s participants=%s", room.id, room_type, len(all_ids))
    return room, True


def message_page(room: ChatRoom, *, page: int, limit: int) -> tuple[list[ChatMessage], bool]:
    """Newest-first page of messages, returned oldest-first, plus hasMore."""
    offset = (page - 1) * limit
    newest_first = list(
        ChatMessage.objects.filter(room=room)
        .select_related("sender__profile", "reply_to__sender")
        .order_by("-created_at", "-id")[offset : offset + limit]
    )
    has_more = len(newest_first) == limit
    newest_first.reverse()
    return newest_first, has_more


def mark_read(room: ChatRoom, reader) -> int:
    return ChatMessage.objects.filter(room=room, is_read=False).exclude(sender=reader).update(is_read=True)


def send_message(room: ChatRoom, *, sender, content: str, message_type: str, reply_to=None) -> ChatMessage:
    with transaction.atomic():
        message = ChatMessage.objects.create(
            room=room,
            sender=sender,
            content=content,
            message_type=message_type,
            reply_to=reply_to,
        )
        ChatRoom.objects.filter(id=room.id).update(updated_at=timezone.now())
    return message


def edit_message(message: ChatMessage, content: str) -> ChatMessage:
    message.content = content
    message.is_edited = True
    message.edited_at = timezone.now()
    message.save(update_fields=["content", "is_edited", "edited_at"])
    return message


def add_participant(room: ChatRoom, user) -> bool:
    """Add or reactivate `user`. Returns False if already an active participant."""
    existing = ChatParticipant.objects.filter(room=room, user=user).first()
    if existing is None:
        ChatParticipant.objects.create(room=room, user=user)
        return True
    if existing.is_active:
        return False
    existing.is_active = True
    existing.left_at = None
    existing.save(update_fields=["is_active", "left_at"])
    return True


def remove_participant(participant: ChatParticipant) -> None:
    participant.is_active = False
    participant.left_at = timezone.now()
    participant.save(update_fields=["is_active", "left_at"])


def available_users(user, *, role: str = ""):
    """Other active members a user may start a chat with.

    Students only see staff; staff see every role, optionally filtered.
    """
    User = get_user_model()
    qs = (
        User.objects.filter(profile__organization_id=user.profile.organization_id, is_active=True)
        .exclude(id=user.id)
        .select_related("profile", "profile__classroom")
    )
    if user.profile.role == UserProfile.ROLE_STUDENT:
        qs = qs.filter(profile__role__in=UserProfile.STAFF_ROLES)
    elif role:
        qs = qs.filter(profile__role=role)
    return qs.order_by("profile__role", "first_name", "last_name")
