"""Envelope tagged union: wire format and decode-time validation."""

import pytest
from pydantic import ValidationError

from notifyhub.realtime.envelopes import (
    CHANNELS,
    SOCKET_EVENT_EMIT_ALL,
    SOCKET_EVENT_EMIT_AUTHENTICATED,
    SOCKET_EVENT_SEND,
    EmitAllEnvelope,
    EmitAuthenticatedEnvelope,
    SendEnvelope,
    decode_envelope,
)


def test_channels_are_static_names():
    assert set(CHANNELS) == {
        "SOCKET_EVENT_SEND",
        "SOCKET_EVENT_EMIT_ALL",
        "SOCKET_EVENT_EMIT_AUTHENTICATED",
    }


def test_send_envelope_wire_uses_camel_case():
    envelope = SendEnvelope(event="x", data={"a": 1}, user_id="u1", socket_id="s1")
    assert envelope.to_wire() == {
        "event": "x",
        "data": {"a": 1},
        "userId": "u1",
        "socketId": "s1",
    }


def test_send_envelope_omits_unset_socket_id():
    wire = SendEnvelope(event="x", data=None, user_id="u1").to_wire()
    assert "socketId" not in wire
    assert wire["userId"] == "u1"


def test_decode_picks_variant_by_channel():
    payload = {"event": "x", "data": "d"}
    assert isinstance(decode_envelope(SOCKET_EVENT_EMIT_ALL, payload), EmitAllEnvelope)
    assert isinstance(
        decode_envelope(SOCKET_EVENT_EMIT_AUTHENTICATED, payload),
        EmitAuthenticatedEnvelope,
    )

    send = decode_envelope(SOCKET_EVENT_SEND, {**payload, "userId": "u1"})
    assert isinstance(send, SendEnvelope)
    assert send.user_id == "u1"
    assert send.socket_id is None


def test_decode_send_without_user_id_is_rejected():
    with pytest.raises(ValidationError):
        decode_envelope(SOCKET_EVENT_SEND, {"event": "x", "data": "d"})

    with pytest.raises(ValidationError):
        decode_envelope(SOCKET_EVENT_SEND, {"event": "x", "data": "d", "userId": ""})


def test_decode_rejects_non_object_and_missing_event():
    with pytest.raises(ValidationError):
        decode_envelope(SOCKET_EVENT_EMIT_ALL, "just a string")
    with pytest.raises(ValidationError):
        decode_envelope(SOCKET_EVENT_EMIT_ALL, {"data": "d"})


def test_decode_ignores_unknown_keys():
    # The notification service historically tagged broadcasts with userId
    envelope = decode_envelope(
        SOCKET_EVENT_EMIT_ALL, {"event": "x", "data": 1, "userId": "u1"}
    )
    assert envelope == EmitAllEnvelope(event="x", data=1)


def test_decode_unknown_channel():
    with pytest.raises(KeyError):
        decode_envelope("SOMETHING_ELSE", {"event": "x"})


def test_wire_round_trip():
    envelope = SendEnvelope(
        event="POST_LIKE:7", data={"id": 7, "tags": ["a", None]}, user_id="u1"
    )
    assert decode_envelope(SOCKET_EVENT_SEND, envelope.to_wire()) == envelope
