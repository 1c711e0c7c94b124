from __future__ import annotations

from core.content import extract_text
from core.models import ContentType, InboundMessage


def _reply(payload) -> InboundMessage:
    return InboundMessage(
        message_id="2",
        sender_id="1",
        conversation_id="100",
        content_type=ContentType.REPLY,
        payload=payload,
        reply_reference="1",
    )


def test_plain_text_is_returned_as_is() -> None:
    message = InboundMessage(
        message_id="1",
        sender_id="1",
        conversation_id="100",
        content_type=ContentType.TEXT,
        payload="@squabble help",
    )

    assert extract_text(message) == "@squabble help"


def test_missing_payload_is_empty() -> None:
    message = InboundMessage(
        message_id="1",
        sender_id="1",
        conversation_id="100",
        content_type=ContentType.OTHER,
        payload=None,
    )

    assert extract_text(message) == ""
    assert extract_text(_reply(None)) == ""


def test_reply_fields_in_priority_order() -> None:
    assert extract_text(_reply({"content": "a", "text": "b", "message": "c"})) == "a"
    assert extract_text(_reply({"text": "b", "message": "c"})) == "b"
    assert extract_text(_reply({"message": "c"})) == "c"


def test_reply_fallback_line_is_unwrapped() -> None:
    payload = {"fallback": 'Replied with "0.5 USDC" to an earlier message'}

    assert extract_text(_reply(payload)) == "0.5 USDC"


def test_reply_fallback_without_pattern_is_used_whole() -> None:
    assert extract_text(_reply({"fallback": "no buy-in"})) == "no buy-in"


def test_reply_parameters_are_checked_last() -> None:
    assert extract_text(_reply({"parameters": {"text": "leaderboard"}})) == "leaderboard"


def test_reply_string_payload() -> None:
    assert extract_text(_reply('Replied with "hi" to an earlier message')) == "hi"
    assert extract_text(_reply("hi there")) == "hi there"


def test_unknown_reply_shape_is_serialized() -> None:
    assert extract_text(_reply({"other": 1})) == '{"other": 1}'


def test_extraction_is_stable() -> None:
    message = _reply({"fallback": 'Replied with "start game" to an earlier message'})

    assert extract_text(message) == extract_text(message)
