"""Core message dispatch pipeline.

This module is integration-agnostic. It only relies on ports for the
transport and on injected core components, so any chat network adapter can
feed it.

The pipeline enforces a strict order per message, with everything after
the reaction filter running under the sender's lock:
1) Drop self-authored and reaction messages
2) Resolve the conversation (abort if it cannot be found)
3) Trigger classification, with the help-hint and DM-intro side paths
4) Interpret, execute, update the session
5) Send at most one reply, and only if the executor has not already spoken
"""

from __future__ import annotations

import logging
from typing import Optional

from core import messages
from core.config import DispatchConfig
from core.content import extract_text
from core.executor import ActionExecutor
from core.interpreter import Interpreter
from core.models import (
    ContentType,
    ConversationContext,
    ConversationKind,
    DirectlySent,
    InboundMessage,
    ReplyText,
)
from core.ports import TransportPort
from core.sessions import SessionStore
from core.triggers import TriggerClassifier

LOGGER = logging.getLogger(__name__)


class MessageDispatcher:
    """Orchestrates classification, interpretation, execution and replies."""

    def __init__(
        self,
        transport: TransportPort,
        classifier: TriggerClassifier,
        interpreter: Interpreter,
        executor: ActionExecutor,
        sessions: SessionStore,
        config: Optional[DispatchConfig] = None,
        history_window: int = 100,
    ) -> None:
        self._transport = transport
        self._classifier = classifier
        self._interpreter = interpreter
        self._executor = executor
        self._sessions = sessions
        self._config = config or DispatchConfig()
        self._history_window = history_window
        self._agent_id: Optional[str] = None

    async def agent_id(self) -> str:
        if self._agent_id is None:
            self._agent_id = await self._transport.agent_id()
        return self._agent_id

    async def handle(self, message: InboundMessage) -> None:
        """Process one inbound message; never raises.

        The sender's lock is taken before the first await, so one user's
        messages are handled strictly in arrival order.
        """

        if message.content_type == ContentType.REACTION:
            return
        async with self._sessions.serialized(message.sender_id):
            await self._handle_in_order(message)

    async def _handle_in_order(self, message: InboundMessage) -> None:
        context: Optional[ConversationContext] = None
        try:
            agent_id = await self.agent_id()
            if message.sender_id.lower() == agent_id.lower():
                return

            context = await self._transport.get_conversation(message.conversation_id)
            if context is None:
                LOGGER.error("Could not find conversation for ID: %s", message.conversation_id)
                return
            if message.thread_id is not None:
                context = ConversationContext(
                    conversation_id=context.conversation_id,
                    kind=context.kind,
                    thread_id=message.thread_id,
                )

            text = extract_text(message)
            LOGGER.info(
                "Message %s from %s in %s: %r",
                message.message_id,
                message.sender_id,
                message.conversation_id,
                text,
            )

            if not await self._classifier.should_respond(message, agent_id, self._transport):
                await self._handle_untriggered(text, context)
                return

            await self._dispatch(message, text, context)
        except Exception:
            LOGGER.exception("Error handling message %s", message.message_id)
            if context is not None:
                await self._send_quietly(context, messages.GENERAL_ERROR)

    async def _handle_untriggered(self, text: str, context: ConversationContext) -> None:
        if self._classifier.wants_help_hint(text):
            await self._send(context, messages.HELP_HINT_MESSAGE)
            return
        if context.kind == ConversationKind.DIRECT and self._config.dm_intro and text.strip():
            await self._send(context, messages.DM_INTRO_MESSAGE)

    async def _dispatch(self, message: InboundMessage, text: str, context: ConversationContext) -> None:
        session = self._sessions.get(message.sender_id, message.conversation_id)
        intent = await self._interpreter.interpret(text, session)
        LOGGER.info("Interpreted %r as %s", text, intent)
        result = await self._executor.execute(intent, context)
        session.advance(intent)

        if isinstance(result, DirectlySent):
            LOGGER.debug("Executor already replied: %s", result.note)
            return
        if isinstance(result, ReplyText) and result.text.strip():
            session.record_turn("assistant", result.text)
            await self._send(context, result.text)

    async def welcome(self, conversation_id: str) -> None:
        """Greet a group the agent was just added to, unless it spoke there before."""

        if not self._config.welcome:
            return
        try:
            context = await self._transport.get_conversation(conversation_id)
            if context is None or context.kind != ConversationKind.GROUP:
                return
            agent_id = await self.agent_id()
            recent = await self._transport.recent_messages(conversation_id, self._history_window)
            if any(entry.sender_id.lower() == agent_id.lower() for entry in recent):
                return
            await self._send(context, messages.WELCOME_MESSAGE)
        except Exception:
            LOGGER.exception("Error sending welcome message to %s", conversation_id)

    async def _send(self, context: ConversationContext, text: str) -> None:
        await self._transport.send(context.conversation_id, text, context.thread_id)
        LOGGER.info("Message sent to %s: %r", context.conversation_id, text[:80])

    async def _send_quietly(self, context: ConversationContext, text: str) -> None:
        try:
            await self._send(context, text)
        except Exception:
            LOGGER.exception("Failed to send error message to %s", context.conversation_id)
