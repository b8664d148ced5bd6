"""`/api/chat/...`: rooms, messages and participants for any signed-in member."""

from __future__ import annotations

from django.db.models import OuterRef, Prefetch, Subquery
from django.views.decorators.http import require_GET, require_http_methods

from ..models import ChatMessage, ChatParticipant, ChatRoom
from ..services import chat
from ..services.org_access import org_chat_room_or_none, org_member_or_none, org_members_queryset
from ..services.payloads import message_payload, room_payload, user_payload
from .shared import (
    _bad_json,
    _bad_request,
    _forbidden,
    _json_no_store_response,
    _not_found,
    _parse_positive_int,
    _read_json_body,
    api_login_required,
    api_rate_limit,
)

_ROOM_TYPES = {value for value, _label in ChatRoom.TYPE_CHOICES}
_MESSAGE_TYPES = {value for value, _label in ChatMessage.TYPE_CHOICES}


def _active_participants():
    return Prefetch(
        "participants",
        queryset=ChatParticipant.objects.filter(is_active=True).select_related("user__profile"),
        to_attr="active_participants",
    )


def _latest_message_id():
    return Subquery(
        ChatMessage.objects.filter(room=OuterRef("pk")).order_by("-created_at", "-id").values("id")[:1]
    )


def _list_rooms(request):
    user = request.api_user
    rooms = list(
        chat.rooms_for_user(user)
        .annotate(last_message_id=_latest_message_id())
        .prefetch_related(_active_participants())
    )
    last_messages = ChatMessage.objects.select_related("sender__profile").in_bulk(
        [r.last_message_id for r in rooms if r.last_message_id is not None]
    )
    unread = chat.unread_counts_by_room(user, [r.id for r in rooms])
    return _json_no_store_response(
        {
            "chatRooms": [
                room_payload(
                    room,
                    viewer=user,
                    participants=[p.user for p in room.active_participants],
                    last_message=last_messages.get(room.last_message_id),
                    unread_count=unread.get(room.id, 0),
                )
                for room in rooms
            ]
        }
    )


def _create_room(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    room_type = str(payload.get("type") or "")
    if room_type not in _ROOM_TYPES:
        return _bad_request("Invalid chat type")
    raw_ids = payload.get("participantIds")
    if not isinstance(raw_ids, list):
        return _bad_request("Participant IDs must be an array")
    name = payload.get("name") or ""
    if not isinstance(name, str):
        return _bad_request("Name must be a string")

    participant_ids = {_parse_positive_int(p) for p in raw_ids}
    participant_ids.discard(request.api_user.id)
    if None in participant_ids:
        return _bad_request("Some participants not found")
    found = org_members_queryset(request.api_user).filter(id__in=participant_ids, is_active=True).count()
    if found != len(participant_ids):
        return _bad_request("Some participants not found")

    room, created = chat.create_room(
        creator=request.api_user,
        room_type=room_type,
        participant_ids=sorted(participant_ids),
        name=name,
    )
    message = "Chat room created successfully" if created else "Direct chat room already exists"
    return _json_no_store_response(
        {"message": message, "chatRoom": room_payload(room, viewer=request.api_user)},
        status=201 if created else 200,
    )


@require_http_methods(["GET", "POST"])
@api_login_required
@api_rate_limit(limit=120, window_seconds=60, scope="chat")
def api_chat_rooms(request):
    if request.method == "POST":
        return _create_room(request)
    return _list_rooms(request)


def _room_for_participant(request, room_id: int):
    """(room, None) for an active participant, else (None, error response)."""
    room = org_chat_room_or_none(request.api_user, room_id)
    if room is None or chat.active_participation(room.id, request.api_user) is None:
        return None, _forbidden()
    return room, None


def _list_messages(request, room: ChatRoom):
    page = _parse_positive_int(request.GET.get("page")) or 1
    limit = min(_parse_positive_int(request.GET.get("limit")) or chat.DEFAULT_PAGE_SIZE, chat.MAX_PAGE_SIZE)
    messages, has_more = chat.message_page(room, page=page, limit=limit)
    chat.mark_read(room, request.api_user)
    return _json_no_store_response(
        {
            "messages": [message_payload(m) for m in messages],
            "pagination": {"page": page, "limit": limit, "hasMore": has_more},
        }
    )


def _send_message(request, room: ChatRoom):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    content = str(payload.get("content") or "")
    if not content.strip():
        return _bad_request("Message content is required")
    message_type = str(payload.get("messageType") or ChatMessage.TYPE_TEXT)
    if message_type not in _MESSAGE_TYPES:
        return _bad_request("Invalid message type")
    reply_to = None
    if payload.get("replyToId") not in (None, ""):
        reply_id = _parse_positive_int(payload.get("replyToId"))
        reply_to = ChatMessage.objects.filter(id=reply_id, room=room).first() if reply_id else None
        if reply_to is None:
            return _bad_request("Reply message not found")

    message = chat.send_message(
        room,
        sender=request.api_user,
        content=content,
        message_type=message_type,
        reply_to=reply_to,
    )
    return _json_no_store_response(
        {"message": "Message sent successfully", "chatMessage": message_payload(message)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@api_login_required
@api_rate_limit(limit=240, window_seconds=60, scope="chat_messages")
def api_chat_messages(request, room_id: int):
    room, error = _room_for_participant(request, room_id)
    if error is not None:
        return error
    if request.method == "POST":
        return _send_message(request, room)
    return _list_messages(request, room)


@require_http_methods(["PATCH", "DELETE"])
@api_login_required
def api_chat_message_detail(request, message_id: int):
    """Edit or delete one of the caller's own messages."""
    message = (
        ChatMessage.objects.select_related("sender__profile", "reply_to__sender")
        .filter(id=message_id, sender=request.api_user)
        .first()
    )
    if message is None:
        return _not_found("Message not found or access denied")
    if request.method == "DELETE":
        message.delete()
        return _json_no_store_response({"message": "Message deleted successfully"})

    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    content = str(payload.get("content") or "")
    if not content.strip():
        return _bad_request("Message content is required")
    chat.edit_message(message, content)
    return _json_no_store_response({"message": "Message updated successfully", "chatMessage": message_payload(message)})


@require_http_methods(["POST"])
@api_login_required
def api_chat_add_participant(request, room_id: int):
    """POST {userId}"""
    room, error = _room_for_participant(request, room_id)
    if error is not None:
        return error
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    member = org_member_or_none(request.api_user, payload.get("userId"))
    if member is None or not member.is_active:
        return _bad_request("User not found")
    if not chat.add_participant(room, member):
        return _bad_request("User is already a participant")
    return _json_no_store_response({"message": "Participant added successfully"})


@require_http_methods(["DELETE"])
@api_login_required
def api_chat_remove_participant(request, room_id: int, user_id: int):
    room, error = _room_for_participant(request, room_id)
    if error is not None:
        return error
    participant = ChatParticipant.objects.filter(room=room, user_id=user_id, is_active=True).first()
    if participant is None:
        return _not_found("Participant not found")
    chat.remove_participant(participant)
    return _json_no_store_response({"message": "Participant removed successfully"})


@require_GET
@api_login_required
def api_chat_unread_count(request):
    return _json_no_store_response({"unreadCount": chat.total_unread(request.api_user)})


@require_GET
@api_login_required
def api_chat_available_users(request):
    role = (request.GET.get("role") or "").strip().upper()
    users = chat.available_users(request.api_user, role=role)
    return _json_no_store_response({"users": [user_payload(u) for u in users]})


__all__ = [
    "api_chat_add_participant",
    "api_chat_available_users",
    "api_chat_message_detail",
    "api_chat_messages",
    "api_chat_remove_participant",
    "api_chat_rooms",
    "api_chat_unread_count",
]
