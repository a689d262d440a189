from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from raid_core.models import AttackCard, RaidConfig, TargetPriority
from raid_core.state import RaidGameState


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_players(count: int) -> List[Dict[str, Any]]:
    return [{"id": f"p{i}", "username": f"Player {i}"} for i in range(1, count + 1)]


def make_player(
    player_id: str,
    active_hp: int = 120,
    bench_hp: int = 100,
    active_damage: int = 60,
    bench_damage: int = 40,
) -> Dict[str, Any]:
    return {
        "id": player_id,
        "username": player_id.upper(),
        "pokemon": {
            "active": {"name": f"{player_id}-a", "hp": active_hp, "max_hp": max(active_hp, 120), "attacks": [{"name": "Basic Attack", "damage": active_damage}]},
            "bench": {"name": f"{player_id}-b", "hp": bench_hp, "max_hp": max(bench_hp, 100), "attacks": [{"name": "Quick Strike", "damage": bench_damage}]},
        },
    }


def make_raid(
    players: Optional[List[Dict[str, Any]]] = None,
    seed: int = 7,
    start: bool = True,
    clock: Optional[FakeClock] = None,
    **config: Any,
) -> RaidGameState:
    config.setdefault("target_priority", TargetPriority.DECK_BASED)
    raid = RaidGameState(
        RaidConfig(raid_id="raid-test", **config),
        players if players is not None else make_players(2),
        rng=random.Random(seed),
        clock=clock or FakeClock(),
    )
    if start:
        raid.start()
    return raid


def stack_deck(raid: RaidGameState, cards: List[AttackCard]) -> None:
    """Replace the boss deck so ``cards`` are drawn in list order."""
    raid.attack_deck.cards = list(reversed(cards))
    raid.attack_deck.discard = []


def card(attack_number: int = 1, target: int = 1, damage: int = 30, draw_another: bool = False) -> AttackCard:
    return AttackCard(attack_number=attack_number, target_player=target, draw_another=draw_another, damage=damage)


def play_round_of_attacks(raid: RaidGameState) -> None:
    """Every player in turn order attacks once with their active Pokemon."""
    for entry in list(raid.turn_manager.turn_order):
        player = raid.players[entry.player_id]
        attack = player.pokemon.active.attacks[0].name
        result = raid.process_player_attack(entry.player_id, "active", attack)
        assert result["success"], result
