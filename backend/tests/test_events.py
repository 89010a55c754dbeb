"""Validation of collaboration frames."""

from __future__ import annotations

import pytest

from wayfarer.realtime import InboundEvent, InvalidPayload
from wayfarer.realtime.events import (
    INBOUND_MODELS,
    ActivityChange,
    FieldChange,
    FieldUpdate,
    UserTyping,
    parse_inbound,
)


def test_every_inbound_event_has_a_model():
    assert set(INBOUND_MODELS) == set(InboundEvent)


def test_parse_inbound_accepts_camel_case_payload():
    kind, payload = parse_inbound(
        {"type": "field-change", "data": {"itineraryId": 42, "field": "budget", "value": 1200}}
    )

    assert kind is InboundEvent.FIELD_CHANGE
    assert isinstance(payload, FieldChange)
    assert payload.itinerary_id == 42
    assert payload.value == 1200


def test_parse_inbound_ignores_unknown_keys():
    _, payload = parse_inbound(
        {"type": "join-room", "data": {"itineraryId": 42, "clientVersion": "3.1"}}
    )

    assert payload.itinerary_id == 42


@pytest.mark.parametrize(
    ("frame", "message"),
    [
        ("join-room", "Message payload must be a JSON object"),
        ({"data": {"itineraryId": 1}}, "Unsupported event type"),
        ({"type": "chat-message", "data": {"itineraryId": 1}}, "Unsupported event type"),
        ({"type": "join-room", "data": None}, "Invalid payload"),
        ({"type": "field-focus", "data": {"itineraryId": 1, "field": ""}}, "Invalid payload"),
        ({"type": "cursor-move", "data": {"itineraryId": 1, "field": "notes"}}, "Invalid payload"),
    ],
)
def test_parse_inbound_rejects_malformed_frames(frame, message):
    with pytest.raises(InvalidPayload) as excinfo:
        parse_inbound(frame)

    assert excinfo.value.message == message


def test_activity_change_rejects_unknown_action():
    with pytest.raises(InvalidPayload):
        parse_inbound({"type": "activity-change", "data": {"itineraryId": 1, "action": "move"}})

    _, payload = parse_inbound(
        {"type": "activity-change", "data": {"itineraryId": 1, "action": "delete", "index": 2}}
    )
    assert isinstance(payload, ActivityChange)
    assert payload.index == 2


def test_outbound_models_serialize_in_camel_case():
    typing = UserTyping(user_id=7, user_name="Asha", is_typing=True)

    assert typing.to_wire() == {"userId": 7, "userName": "Asha", "isTyping": True}


def test_field_update_keeps_null_value():
    update = FieldUpdate(field="notes", value=None, user_id=7, user_name="Asha", timestamp=1)

    assert update.to_wire() == {
        "field": "notes",
        "value": None,
        "userId": 7,
        "userName": "Asha",
        "timestamp": 1,
    }
