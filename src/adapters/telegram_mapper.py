"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional

from telethon.tl.custom import Message

from core.models import ContentType, ConversationKind, InboundMessage


def _topic_id_from_message(message: Message) -> Optional[int]:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "forum_topic", False):
        return None
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None)


def _reply_reference(message: Message) -> Optional[str]:
    """Return the id of the quoted message, ignoring forum topic headers.

    Inside a forum topic every message points at the topic root through
    ``reply_to_msg_id``; only when ``reply_to_top_id`` is also set does it
    quote another message.
    """

    reply_to = getattr(message, "reply_to", None)
    if not reply_to:
        return None
    msg_id = getattr(reply_to, "reply_to_msg_id", None)
    if not msg_id:
        return None
    if getattr(reply_to, "forum_topic", False) and not getattr(reply_to, "reply_to_top_id", None):
        return None
    return str(msg_id)


def conversation_kind(message: Message) -> ConversationKind:
    if getattr(message, "is_private", False):
        return ConversationKind.DIRECT
    return ConversationKind.GROUP


def build_inbound_message(message: Message) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    text = message.raw_text or ""
    reference = _reply_reference(message)

    if getattr(message, "action", None) is not None:
        # Service messages (joins, title changes) carry no user text.
        content_type = ContentType.OTHER
        payload: object = ""
    elif reference is not None and text:
        content_type = ContentType.REPLY
        payload = {"content": text}
    elif text:
        content_type = ContentType.TEXT
        payload = text
    else:
        # Media without caption
        content_type = ContentType.OTHER
        payload = ""

    return InboundMessage(
        message_id=str(message.id),
        sender_id=str(message.sender_id),
        conversation_id=str(message.chat_id),
        content_type=content_type,
        payload=payload,
        reply_reference=reference,
        conversation_kind=conversation_kind(message),
        thread_id=_topic_id_from_message(message),
    )
