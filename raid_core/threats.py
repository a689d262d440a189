from typing import Any, Dict, Iterable

from .models import RaidPlayer

LOW_HP_THRESHOLD = 50
LOW_HP_BONUS = 100
CHEER_BONUS = 50


def threat_score(player: RaidPlayer) -> float:
    """How dangerous a player looks to the boss right now."""
    if not player.is_active:
        return 0.0
    active = player.pokemon.active
    score = float(active.max_attack_damage)
    score += active.hp * 0.5
    if player.can_use_cheer:
        score += CHEER_BONUS
    last = player.last_action or {}
    if last.get("type") == "attack":
        score += float(last.get("damage", 0)) * 0.3
    return score


class ThreatAssessment:
    """Per-player threat map rebuilt before every boss turn."""

    def __init__(self):
        self.scores: Dict[str, float] = {}

    def update(self, players: Iterable[RaidPlayer]) -> Dict[str, float]:
        self.scores = {p.id: threat_score(p) for p in players}
        return self.scores

    def score_for(self, player_id: str) -> float:
        return self.scores.get(player_id, 0.0)

    def tactical_score(self, player: RaidPlayer) -> float:
        score = self.score_for(player.id)
        if player.pokemon.active.hp <= LOW_HP_THRESHOLD:
            score += LOW_HP_BONUS
        if player.can_use_cheer:
            score += CHEER_BONUS
        return score

    def overall(self) -> float:
        return sum(self.scores.values())

    def to_public_dict(self) -> Dict[str, Any]:
        return dict(self.scores)
