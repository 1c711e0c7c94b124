"""Trigger detection (core domain).

Matching logic:
- Empty or whitespace-only text never triggers.
- A quoted reply to one of the agent's own messages always triggers.
- Otherwise any configured trigger substring is sufficient (case-insensitive,
  substring rather than whole-word).
"""

from __future__ import annotations

import logging
from typing import Iterable

from core.config import TriggerConfig
from core.content import extract_text
from core.models import ContentType, InboundMessage
from core.ports import HistoryPort

LOGGER = logging.getLogger(__name__)


def normalize_keywords(keywords: Iterable[str]) -> tuple[str, ...]:
    """Lower-case and drop blank keywords, longest first.

    Longest-first ordering lets ``strip_triggers`` remove "@squabble.base.eth"
    before its "@squabble" prefix.
    """

    cleaned = {k.strip().lower() for k in keywords if k and k.strip()}
    return tuple(sorted(cleaned, key=len, reverse=True))


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower().strip()
    return any(keyword in lowered for keyword in keywords)


def strip_triggers(text: str, triggers: Iterable[str]) -> str:
    """Remove every trigger occurrence and collapse the leftover whitespace."""

    lowered = text.lower()
    for trigger in triggers:
        lowered = lowered.replace(trigger, " ")
    return " ".join(lowered.split())


class TriggerClassifier:
    """Decides whether an inbound message deserves the agent's attention."""

    def __init__(self, config: TriggerConfig) -> None:
        self._triggers = normalize_keywords(config.triggers)
        self._mentions = normalize_keywords(config.bot_mentions)
        self._window = config.history_window

    @property
    def triggers(self) -> tuple[str, ...]:
        return self._triggers

    def has_trigger(self, text: str) -> bool:
        return contains_any(text, self._triggers)

    def wants_help_hint(self, text: str) -> bool:
        """True when a bot-style mention was used without a real trigger."""

        return contains_any(text, self._mentions) and not self.has_trigger(text)

    async def is_reply_to_agent(
        self,
        message: InboundMessage,
        agent_id: str,
        history: HistoryPort,
    ) -> bool:
        """Resolve the reply reference inside the bounded history window."""

        if message.content_type != ContentType.REPLY or not message.reply_reference:
            return False

        try:
            entry = await history.find_message(
                message.conversation_id, message.reply_reference, self._window
            )
        except Exception:
            LOGGER.warning(
                "History lookup failed for conversation %s", message.conversation_id, exc_info=True
            )
            return False

        if entry is None:
            return False
        return entry.sender_id.lower() == agent_id.lower()

    async def should_respond(
        self,
        message: InboundMessage,
        agent_id: str,
        history: HistoryPort,
    ) -> bool:
        text = extract_text(message)
        if not text.strip():
            return False

        if await self.is_reply_to_agent(message, agent_id, history):
            return True

        return self.has_trigger(text)
