"""Canonical text extraction (core domain).

Quoted-reply envelopes come in several shapes depending on the sending
client, so extraction walks an ordered list of places the user's words may
live. The first hit wins.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from core.models import ContentType, InboundMessage

FALLBACK_PATTERN = re.compile(r'Replied with "(.+)" to an earlier message')

_PAYLOAD_KEYS = ("content", "text", "message")
_PARAMETER_KEYS = ("content", "text")


def _first_field(payload: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = payload.get(key)
        if value:
            return str(value)
    return ""


def _extract_reply(payload: Any) -> str:
    if isinstance(payload, Mapping):
        found = _first_field(payload, _PAYLOAD_KEYS)
        if found:
            return found

        fallback = payload.get("fallback")
        if isinstance(fallback, str) and fallback:
            match = FALLBACK_PATTERN.search(fallback)
            if match:
                return match.group(1)
            return fallback

        parameters = payload.get("parameters")
        if isinstance(parameters, Mapping):
            found = _first_field(parameters, _PARAMETER_KEYS)
            if found:
                return found
    elif isinstance(payload, str):
        # Some clients only ship the human-readable fallback line.
        match = FALLBACK_PATTERN.search(payload)
        return match.group(1) if match else payload

    if payload is None:
        return ""
    return json.dumps(payload, default=str)


def extract_text(message: InboundMessage) -> str:
    """Return the user-visible text of a message as a single string."""

    if message.content_type == ContentType.REPLY:
        return _extract_reply(message.payload)

    if message.payload is None:
        return ""
    return str(message.payload)
