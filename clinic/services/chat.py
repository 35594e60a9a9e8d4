from typing import Optional

import bleach
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from clinic.exceptions import InvalidArgument, NotFound
from clinic.models import ChatMessage
from clinic.services.lookups import get_user, parse_id

User = get_user_model()


def conversation_id(user_a, user_b) -> str:
    """Thread id shared by both participants, whoever writes first."""
    return '_'.join(sorted([str(user_a), str(user_b)]))


def clean_text(text) -> str:
    if not isinstance(text, str):
        raise InvalidArgument('text must be a string')
    text = bleach.clean(text.strip(), strip=True).strip()
    if not text:
        raise InvalidArgument('text must not be empty')
    if len(text) > settings.CHAT_MAX_MESSAGE_LENGTH:
        raise InvalidArgument('message too long')
    return text


def _user_ref(user: User) -> dict:
    return {'id': user.id, 'username': user.username}


def serialize_message(msg: ChatMessage) -> dict:
    return {
        'id': msg.id,
        'sender': _user_ref(msg.sender),
        'receiver': _user_ref(msg.receiver),
        'message': msg.message,
        'timestamp': msg.timestamp.isoformat(),
        'conversationId': msg.conversation_id,
        'read': msg.read,
        'createdAt': msg.created_at.isoformat(),
        'updatedAt': msg.updated_at.isoformat(),
    }


def store_message(sender: User, receiver_id, text) -> ChatMessage:
    """Validate and persist a message from ``sender``.

    Raises :class:`InvalidArgument` for bad input and :class:`NotFound`
    when the receiver does not exist.  Delivery is the caller's job.
    """
    if receiver_id in (None, '') or text in (None, ''):
        raise InvalidArgument('receiverId and text are required')
    body = clean_text(text)
    try:
        receiver = get_user(receiver_id)
    except NotFound:
        raise NotFound('Receiver not found') from None
    return ChatMessage.objects.create(
        sender=sender,
        receiver=receiver,
        message=body,
        timestamp=timezone.now(),
        conversation_id=conversation_id(sender.id, receiver.id),
    )


def list_history(user: User, other_user_id, page: int=1, page_size: int=50):
    other = get_user(other_user_id)
    page = max(1, int(page or 1))
    page_size = min(100, max(1, int(page_size or 50)))
    start = (page-1)*page_size
    qs = ChatMessage.objects.filter(conversation_id=conversation_id(user.id, other.id))
    msgs = qs.select_related('sender', 'receiver').order_by('-timestamp', '-id')[start:start+page_size]
    items = [serialize_message(m) for m in reversed(list(msgs))]
    return items, qs.count()


def mark_read(user: User, other_user_id, up_to_message_id: Optional[int]=None) -> int:
    other = get_user(other_user_id)
    qs = ChatMessage.objects.filter(sender=other, receiver=user, read=False)
    if up_to_message_id is not None:
        qs = qs.filter(id__lte=parse_id(up_to_message_id, 'message id'))
    return qs.update(read=True, updated_at=timezone.now())
