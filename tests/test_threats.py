from __future__ import annotations

from raid_core.models import PlayerStatus
from raid_core.state import RaidGameState
from raid_core.threats import ThreatAssessment, threat_score
from tests.helpers.raid_builders import make_player, make_raid


def _raid() -> RaidGameState:
    return make_raid([make_player("p1", active_hp=120, active_damage=60), make_player("p2", active_hp=40, active_damage=90)])


def test_threat_score_combines_damage_hp_and_cheer() -> None:
    raid = _raid()
    p1, p2 = raid.players["p1"], raid.players["p2"]

    assert threat_score(p1) == 60 + 60
    p2.can_use_cheer = True
    assert threat_score(p2) == 90 + 20 + 50


def test_last_attack_adds_thirty_percent_of_its_damage() -> None:
    raid = _raid()
    p1 = raid.players["p1"]
    p1.last_action = {"type": "attack", "damage": 100}

    assert threat_score(p1) == 60 + 60 + 30

    p1.last_action = {"type": "retreat"}
    assert threat_score(p1) == 120


def test_inactive_players_score_zero() -> None:
    raid = _raid()
    raid.players["p2"].status = PlayerStatus.SPECTATOR
    threats = ThreatAssessment()

    scores = threats.update(raid.players.values())

    assert scores["p2"] == 0
    assert threats.overall() == scores["p1"]


def test_tactical_score_rewards_low_hp_and_cheer() -> None:
    raid = _raid()
    threats = ThreatAssessment()
    threats.update(raid.players.values())
    p2 = raid.players["p2"]

    assert threats.tactical_score(p2) == threats.score_for("p2") + 100
    p2.can_use_cheer = True
    assert threats.tactical_score(p2) == threats.score_for("p2") + 150
