"""Telegram transport adapter.

Implements the core TransportPort on top of a connected Telethon client:
identity, conversation lookup, bounded history and sending.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from telethon.tl.types import User

from core.models import ConversationContext, ConversationKind, ConversationSummary, HistoryEntry

LOGGER = logging.getLogger(__name__)

CONSENT_ALLOWED = "allowed"
CONSENT_UNKNOWN = "unknown"
CONSENT_DENIED = "denied"

# Telegram has no per-chat consent; the main dialog list stands for chats the
# account has accepted, the archive folder for ones it has not engaged with.
_CONSENT_FOLDERS = {CONSENT_ALLOWED: False, CONSENT_UNKNOWN: True}


def dialog_kind(dialog: Any) -> ConversationKind:
    if getattr(dialog, "is_user", False):
        return ConversationKind.DIRECT
    return ConversationKind.GROUP


def dialog_title(dialog: Any) -> str:
    entity = getattr(dialog, "entity", None)
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    name = getattr(dialog, "name", None)
    if name:
        return str(name)
    first = getattr(entity, "first_name", None)
    last = getattr(entity, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    entity_id = getattr(entity, "id", None)
    return str(entity_id or "unknown")


def _peer_id(conversation_id: str) -> int:
    return int(conversation_id)


class TelegramTransport:
    """TransportPort backed by a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client
        self._me_id: Optional[str] = None
        self._is_bot = False
        self._kinds: dict[str, ConversationKind] = {}

    async def _load_me(self) -> None:
        me = await self._client.get_me()
        self._me_id = str(me.id)
        self._is_bot = bool(getattr(me, "bot", False))

    async def agent_id(self) -> str:
        if self._me_id is None:
            await self._load_me()
        return self._me_id  # type: ignore[return-value]

    async def is_bot(self) -> bool:
        if self._me_id is None:
            await self._load_me()
        return self._is_bot

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationContext]:
        kind = self._kinds.get(conversation_id)
        if kind is None:
            try:
                entity = await self._client.get_entity(_peer_id(conversation_id))
            except (ValueError, TypeError):
                LOGGER.warning("Unknown conversation %s", conversation_id)
                return None
            kind = ConversationKind.DIRECT if isinstance(entity, User) else ConversationKind.GROUP
            self._kinds[conversation_id] = kind
        return ConversationContext(conversation_id=conversation_id, kind=kind)

    async def recent_messages(self, conversation_id: str, limit: int) -> list[HistoryEntry]:
        """Newest first. Bot accounts cannot read chat history and get an empty list."""

        if await self.is_bot():
            LOGGER.debug("Bot account, no history for %s", conversation_id)
            return []
        entries: list[HistoryEntry] = []
        async for message in self._client.iter_messages(_peer_id(conversation_id), limit=limit):
            entries.append(HistoryEntry(message_id=str(message.id), sender_id=str(message.sender_id)))
        return entries

    async def find_message(
        self, conversation_id: str, message_id: str, window: int
    ) -> Optional[HistoryEntry]:
        """Look up a quoted message.

        User accounts scan the newest ``window`` messages. Bots may not call
        messages.getHistory, so they fetch the message by id instead and the
        window is not applied.
        """

        if not await self.is_bot():
            for entry in await self.recent_messages(conversation_id, window):
                if entry.message_id == message_id:
                    return entry
            return None

        try:
            ids = int(message_id)
        except ValueError:
            return None
        message = await self._client.get_messages(_peer_id(conversation_id), ids=ids)
        if message is None:
            return None
        return HistoryEntry(message_id=str(message.id), sender_id=str(message.sender_id))

    async def send(self, conversation_id: str, text: str, thread_id: Optional[int] = None) -> None:
        await self._client.send_message(_peer_id(conversation_id), text, reply_to=thread_id)

    async def list_conversations(
        self,
        kinds: Sequence[ConversationKind],
        consent_states: Sequence[str],
    ) -> list[ConversationSummary]:
        summaries: list[ConversationSummary] = []
        for consent in consent_states:
            archived = _CONSENT_FOLDERS.get(consent)
            if archived is None:
                continue
            async for dialog in self._client.iter_dialogs(archived=archived):
                kind = dialog_kind(dialog)
                if kind not in kinds:
                    continue
                conversation_id = str(dialog.id)
                self._kinds[conversation_id] = kind
                summaries.append(
                    ConversationSummary(
                        conversation_id=conversation_id,
                        kind=kind,
                        title=dialog_title(dialog),
                        consent_state=consent,
                    )
                )
        return summaries
