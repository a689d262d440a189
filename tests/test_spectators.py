from __future__ import annotations

from raid_core.models import SpectatorPermissions
from tests.helpers.raid_builders import FakeClock, make_players, make_raid


def _spectator_queue(raid, spectator_id: str) -> list:
    return [e for e in raid.drain_events() if e.get("spectator_id") == spectator_id]


def test_add_spectator_returns_view_and_recent_history() -> None:
    raid = make_raid()
    sm = raid.spectator_manager

    result = sm.add_spectator("s1", "Watcher")

    assert result["success"] is True
    assert result["spectator"]["was_player"] is False
    assert result["game_state"]["spectator_mode"] is True
    assert "hidden_info" not in result["game_state"]
    assert result["event_history"][-1]["type"] == "spectator_joined"
    assert len(result["event_history"]) <= 10


def test_spectator_cap() -> None:
    raid = make_raid(max_spectators=2)
    sm = raid.spectator_manager
    sm.add_spectator("s1", "A")
    sm.add_spectator("s2", "B")

    result = sm.add_spectator("s3", "C")

    assert result == {"success": False, "error": "Maximum spectators reached"}
    assert len(sm.spectators) == 2


def test_remove_spectator() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("s1", "A")

    assert sm.remove_spectator("s1")["success"] is True
    assert sm.remove_spectator("s1") == {"success": False, "error": "Spectator not found"}
    assert sm.event_log[-1]["type"] == "spectator_left"


def test_ex_player_permissions() -> None:
    fresh = SpectatorPermissions.for_spectator(False)
    veteran = SpectatorPermissions.for_spectator(True)

    assert not fresh.can_see_hidden_info and not fresh.can_suggest_actions
    assert veteran.can_see_hidden_info and veteran.priority_updates and veteran.can_suggest_actions
    assert not veteran.can_see_boss_attack_deck
    assert fresh.can_use_spectator_chat and fresh.can_see_player_actions


def test_convert_player_to_spectator_logs_elimination_with_hidden_view() -> None:
    raid = make_raid()
    sm = raid.spectator_manager

    result = sm.convert_player_to_spectator("p1")

    assert result["success"] is True
    assert sm.spectators["p1"].was_player is True
    hidden = result["game_state"]["hidden_info"]
    assert hidden["boss_attack_deck_size"] == raid.attack_deck.remaining()
    assert len(hidden["upcoming_boss_attacks"]) == 3
    assert sm.event_log[-1]["type"] == "player_eliminated"
    assert sm.convert_player_to_spectator("ghost") == {"success": False, "error": "Player not found"}


def test_event_log_is_bounded_and_reindexed() -> None:
    raid = make_raid(event_log_size=5)
    sm = raid.spectator_manager

    for i in range(12):
        sm.log_event({"type": "probe", "i": i})

    assert len(sm.event_log) == 5
    assert [e["id"] for e in sm.event_log] == [0, 1, 2, 3, 4]
    assert [e["i"] for e in sm.event_log] == [7, 8, 9, 10, 11]


def test_events_fan_out_per_spectator_with_filtering() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("fan", "Fan")
    sm.convert_player_to_spectator("p2")
    raid.drain_events()

    sm.log_event({"type": "boss_ai_decision"})
    sm.log_event({"type": "hidden_action"})
    sm.log_event({"type": "player_intention"})
    events = raid.drain_events()

    by_spectator = {}
    for e in events:
        by_spectator.setdefault(e["spectator_id"], []).append(e["event"]["type"])
    assert by_spectator["fan"] == ["player_intention"]
    assert by_spectator["p2"] == ["boss_ai_decision", "hidden_action", "player_intention"]


def test_priority_events_reach_priority_spectators() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("fan", "Fan")
    sm.convert_player_to_spectator("p2")
    raid.drain_events()

    sm.log_event({"type": "hidden_action", "priority": True})

    recipients = [e["spectator_id"] for e in raid.drain_events()]
    assert recipients == ["p2"]


def test_chat_is_logged_and_relayed_to_other_spectators() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("s1", "A")
    sm.add_spectator("s2", "B")
    raid.drain_events()

    assert sm.process_spectator_chat("s1", "go team")["success"] is True

    relayed = [e for e in raid.drain_events() if e["type"] == "spectator_chat_message"]
    assert [e["spectator_id"] for e in relayed] == ["s2"]
    assert relayed[0]["event"]["message"] == "go team"
    assert sm.event_log[-1]["type"] == "spectator_chat"


def test_chat_requires_permission_and_membership() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("s1", "A")
    sm.spectators["s1"].permissions.can_use_spectator_chat = False

    assert sm.process_spectator_chat("s1", "hi") == {"success": False, "error": "Chat permission denied"}
    assert sm.process_spectator_chat("nobody", "hi") == {"success": False, "error": "Spectator not found"}


def test_suggestions_require_ex_player_permission() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("fan", "Fan")
    sm.convert_player_to_spectator("p1")

    assert sm.process_spectator_suggestion("fan", "attack!") == {"success": False, "error": "Permission denied"}
    result = sm.process_spectator_suggestion("p1", "retreat now")
    assert result == {"success": True, "message": "Suggestion logged"}
    assert sm.event_log[-1]["suggestion"] == "retreat now"


def test_events_for_spectator_respect_filters() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("fan", "Fan")
    sm.log_event({"type": "boss_ai_decision"})
    sm.log_event({"type": "player_attack"})

    events = sm.get_events_for_spectator("fan")

    types = [e["type"] for e in events]
    assert "boss_ai_decision" not in types
    assert "player_attack" in types
    assert sm.spectators["fan"].last_event_index == len(sm.event_log) - 1
    assert sm.get_events_for_spectator("nobody") == []


def test_cleanup_drops_idle_non_players_only() -> None:
    clock = FakeClock()
    raid = make_raid(make_players(3), clock=clock)
    sm = raid.spectator_manager
    sm.add_spectator("fan", "Fan")
    sm.convert_player_to_spectator("p1")

    clock.advance(29 * 60)
    assert sm.cleanup() == []

    clock.advance(2 * 60)
    assert sm.cleanup() == ["fan"]
    assert list(sm.spectators) == ["p1"]


def test_manager_state_and_settings() -> None:
    raid = make_raid()
    sm = raid.spectator_manager
    sm.add_spectator("fan", "Fan")

    sm.update_spectator_settings(max_spectators=1)
    state = sm.get_spectator_manager_state()

    assert state["settings"]["max_spectators"] == 1
    assert state["spectators"][0]["id"] == "fan"
    assert sm.add_spectator("other", "Other")["error"] == "Maximum spectators reached"
