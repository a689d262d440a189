from __future__ import annotations

import pytest
from pydantic import ValidationError

from backend.app.schemas import (
    CheerCardMessage,
    CreateRaidRequest,
    PlayerAttackMessage,
    RequestStateMessage,
    parse_inbound_message,
)


def test_attack_message_defaults_to_active_slot() -> None:
    message = parse_inbound_message({"type": "player_attack", "attack_name": "Basic Attack"})

    assert isinstance(message, PlayerAttackMessage)
    assert message.to_action() == {"type": "player_attack", "pokemon": "active", "attack_name": "Basic Attack"}


def test_cheer_message_carries_target() -> None:
    message = parse_inbound_message({"type": "cheer_card", "card_number": 3, "target": {"player_id": "p2", "pokemon": "bench"}})

    assert isinstance(message, CheerCardMessage)
    assert message.to_action()["target"] == {"player_id": "p2", "pokemon": "bench"}


def test_request_state_is_recognised() -> None:
    assert isinstance(parse_inbound_message({"type": "request_state"}), RequestStateMessage)


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "launch_rocket"},
        {"attack_name": "Basic Attack"},
        {"type": "player_attack"},
        {"type": "player_attack", "pokemon": "sideboard", "attack_name": "x"},
        {"type": "cheer_card", "card_number": 6},
        {"type": "spectator_chat", "message": ""},
    ],
)
def test_invalid_messages_raise(payload) -> None:
    with pytest.raises(ValidationError):
        parse_inbound_message(payload)


def test_create_request_requires_participants() -> None:
    with pytest.raises(ValidationError):
        CreateRaidRequest(participants=[])

    request = CreateRaidRequest(
        difficulty="hard",
        participants=[{"id": "p1", "username": "Ash", "active": {"name": "Pika", "hp": 90, "attacks": [{"name": "Zap", "damage": 70}]}}],
    )
    engine_player = request.participants[0].to_engine()
    assert engine_player["pokemon"]["active"]["hp"] == 90
    assert "bench" not in engine_player["pokemon"]
