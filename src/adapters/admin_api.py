"""Administrative HTTP API.

Thin FastAPI surface over the transport: health, direct sends, conversation
listing and broadcasts. Every route requires the shared ``x-agent-secret``
header. No interpreter logic lives here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query, Request

from core.models import ConversationKind
from core.ports import TransportPort

LOGGER = logging.getLogger(__name__)

DEFAULT_CONSENT_STATES = ("allowed",)
_KINDS_BY_TYPE = {
    "dm": (ConversationKind.DIRECT,),
    "group": (ConversationKind.GROUP,),
    "all": (ConversationKind.DIRECT, ConversationKind.GROUP),
}


def get_transport(request: Request) -> TransportPort:
    return request.app.state.transport  # type: ignore[no-any-return]


def require_secret(request: Request, x_agent_secret: str = Header(default="")) -> None:
    expected = request.app.state.secret
    if not expected:
        raise HTTPException(
            status_code=500,
            detail="Server configuration error: RECEIVE_AGENT_SECRET not set",
        )
    if not x_agent_secret or x_agent_secret != expected:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized: Invalid or missing x-agent-secret header",
        )


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _required_string(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} is required")
    return value


def _parse_consent_states(raw: Any) -> list[str]:
    if raw is None or raw == "" or raw == []:
        return list(DEFAULT_CONSENT_STATES)
    if isinstance(raw, str):
        values = [part.strip().lower() for part in raw.split(",")]
    elif isinstance(raw, list):
        values = [str(part).strip().lower() for part in raw]
    else:
        raise ValueError("consentStates must be a list or comma-separated string")
    return [value for value in values if value]


def _parse_kinds(raw: Optional[str]) -> tuple[ConversationKind, ...]:
    key = (raw or "all").strip().lower()
    if key not in _KINDS_BY_TYPE:
        raise ValueError(f"type must be one of: {sorted(_KINDS_BY_TYPE)}")
    return _KINDS_BY_TYPE[key]


def create_admin_app(transport: TransportPort, secret: str) -> FastAPI:
    """Build the admin API bound to a transport and shared secret."""

    app = FastAPI(title="squabble-agent admin")
    app.state.transport = transport
    app.state.secret = secret

    guarded = [Depends(require_secret)]

    @app.get("/health", dependencies=guarded)
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/api/send-message", dependencies=guarded)
    async def send_message(
        data: dict[str, Any] = Body(...),
        transport: TransportPort = Depends(get_transport),
    ) -> dict[str, Any]:
        try:
            conversation_id = _required_string(data, "conversationId")
            message = _required_string(data, "message")
        except ValueError:
            raise HTTPException(status_code=400, detail="conversationId and message are required")

        context = await transport.get_conversation(conversation_id)
        if context is None:
            raise HTTPException(status_code=404, detail="Conversation not found")

        try:
            await transport.send(conversation_id, message)
        except Exception:
            LOGGER.exception("API send to %s failed", conversation_id)
            raise HTTPException(status_code=500, detail="Failed to send message")

        return {
            "success": True,
            "message": "Message sent successfully",
            "conversationId": conversation_id,
            "sentMessage": message,
        }

    @app.get("/api/conversations", dependencies=guarded)
    async def list_conversations(
        consent_states: Optional[str] = Query(default=None, alias="consentStates"),
        conversation_type: Optional[str] = Query(default=None, alias="type"),
        transport: TransportPort = Depends(get_transport),
    ) -> dict[str, Any]:
        try:
            kinds = _parse_kinds(conversation_type)
            consents = _parse_consent_states(consent_states)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        summaries = await transport.list_conversations(kinds, consents)
        return {
            "count": len(summaries),
            "conversations": [
                {
                    "id": summary.conversation_id,
                    "type": summary.kind.value,
                    "title": summary.title,
                    "consentState": summary.consent_state,
                }
                for summary in summaries
            ],
        }

    @app.post("/api/broadcast", dependencies=guarded)
    async def broadcast(
        data: dict[str, Any] = Body(...),
        transport: TransportPort = Depends(get_transport),
    ) -> dict[str, Any]:
        try:
            message = _required_string(data, "message")
            consents = _parse_consent_states(data.get("consentStates"))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        raw_ids = data.get("conversationIds")
        if raw_ids:
            if not isinstance(raw_ids, list):
                raise HTTPException(status_code=400, detail="conversationIds must be a list")
            targets = [str(conversation_id) for conversation_id in raw_ids]
        else:
            try:
                kinds = _parse_kinds(data.get("broadcastType"))
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc))
            summaries = await transport.list_conversations(kinds, consents)
            targets = [summary.conversation_id for summary in summaries]

        sent: list[str] = []
        failed: list[dict[str, str]] = []
        for conversation_id in targets:
            try:
                await transport.send(conversation_id, message)
                sent.append(conversation_id)
            except Exception as exc:
                LOGGER.exception("Broadcast to %s failed", conversation_id)
                failed.append({"conversationId": conversation_id, "error": type(exc).__name__})

        LOGGER.info("Broadcast sent=%s failed=%s", len(sent), len(failed))
        return {
            "success": not failed,
            "total": len(targets),
            "sent": sent,
            "failed": failed,
        }

    return app
