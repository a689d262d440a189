from __future__ import annotations

from raid_core.actions import RaidActionHandler
from raid_core.models import GamePhase, PlayerStatus
from tests.helpers.raid_builders import make_players, make_raid


def _handler(players: int = 2):
    raid = make_raid(make_players(players))
    return raid, RaidActionHandler(raid)


def test_unknown_and_malformed_actions_are_rejected() -> None:
    _, handler = _handler()

    assert handler.process_action("p1", {"type": "dance"}) == {"success": False, "error": "Unknown action: dance"}
    missing = handler.process_action("p1", {"type": "player_attack", "pokemon": "active"})
    assert missing == {"success": False, "error": "Missing required field: attack_name"}


def test_attack_dispatches_and_logs_player_action() -> None:
    raid, handler = _handler()

    result = handler.process_action("p1", {"type": "player_attack", "pokemon": "active", "attack_name": "Basic Attack"})

    assert result["success"] is True
    assert raid.boss.current_hp == 740
    last = raid.spectator_manager.event_log[-1]
    assert (last["type"], last["user_id"], last["action_type"]) == ("player_action", "p1", "player_attack")


def test_failed_actions_do_not_log_player_action() -> None:
    raid, handler = _handler()

    result = handler.process_action("p2", {"type": "player_attack", "pokemon": "active", "attack_name": "Basic Attack"})

    assert result == {"success": False, "error": "Not your turn"}
    assert all(e["type"] != "player_action" for e in raid.spectator_manager.event_log)


def test_player_actions_require_active_player_and_running_game() -> None:
    raid, handler = _handler()

    assert handler.process_action("stranger", {"type": "player_retreat"})["error"] == "Player not active"
    raid.players["p2"].status = PlayerStatus.SPECTATOR
    assert handler.process_action("p2", {"type": "player_retreat"})["error"] == "Player not active"
    raid.game_phase = GamePhase.VICTORY
    assert handler.process_action("p1", {"type": "player_retreat"})["error"] == "Game not active"


def test_cheer_with_target_dispatches() -> None:
    raid, handler = _handler()
    raid.players["p1"].can_use_cheer = True
    raid.players["p2"].pokemon.active.hp = 1

    result = handler.process_action("p1", {
        "type": "cheer_card",
        "card_number": 3,
        "target": {"player_id": "p2", "pokemon": "active"},
    })

    assert result["effect"] == "full_heal"
    assert raid.players["p2"].pokemon.active.hp == 120


def test_spectator_only_actions_require_spectator() -> None:
    _, handler = _handler()

    assert handler.process_action("p1", {"type": "spectator_chat", "message": "hi"})["error"] == "Spectator not found"


def test_stranger_joins_and_chats_as_spectator() -> None:
    raid, handler = _handler()

    joined = handler.process_action("fan", {"type": "join_as_spectator", "username": "Fan"})
    chat = handler.process_action("fan", {"type": "spectator_chat", "message": "go!"})
    suggestion = handler.process_action("fan", {"type": "spectator_suggestion", "suggestion": "heal"})

    assert joined["success"] is True
    assert raid.spectator_manager.spectators["fan"].username == "Fan"
    assert chat["success"] is True
    assert suggestion == {"success": False, "error": "Permission denied"}


def test_active_player_joining_spectators_leaves_the_fight() -> None:
    raid, handler = _handler(3)

    result = handler.process_action("p2", {"type": "join_as_spectator"})

    assert result["success"] is True
    assert raid.players["p2"].status == PlayerStatus.ELIMINATED
    assert raid.spectator_manager.spectators["p2"].was_player is True
    assert [e.player_id for e in raid.turn_manager.turn_order] == ["p1", "p3"]


def test_join_as_spectator_with_full_gallery_keeps_player_in_the_fight() -> None:
    raid = make_raid(make_players(3), max_spectators=1)
    handler = RaidActionHandler(raid)
    handler.process_action("fan", {"type": "join_as_spectator"})

    result = handler.process_action("p2", {"type": "join_as_spectator"})

    assert result == {"success": False, "error": "Maximum spectators reached"}
    p2 = raid.players["p2"]
    assert p2.status == PlayerStatus.ACTIVE
    assert not p2.pokemon.active.is_ko
    assert [e.player_id for e in raid.turn_manager.turn_order] == ["p1", "p2", "p3"]
    assert set(raid.spectator_manager.spectators) == {"fan"}


def test_leave_spectators() -> None:
    raid, handler = _handler()
    handler.process_action("fan", {"type": "join_as_spectator"})

    assert handler.process_action("fan", {"type": "leave_spectators"})["success"] is True
    assert "fan" not in raid.spectator_manager.spectators


def test_boss_turn_action_runs_the_boss_turn() -> None:
    raid, handler = _handler()

    assert handler.process_action("p1", {"type": "boss_turn"}) == {"success": False, "error": "Not boss turn"}
    for pid in ("p1", "p2"):
        handler.process_action(pid, {"type": "player_attack", "pokemon": "active", "attack_name": "Basic Attack"})

    result = handler.process_action("p1", {"type": "boss_turn"})

    assert result["success"] is True
    assert raid.turn_manager.current_phase.value in ("player_turns", "end_phase")
