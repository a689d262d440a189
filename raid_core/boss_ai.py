import logging
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .models import AIMode, AttackCard, AttackPattern, Difficulty, RaidPlayer, TargetPriority
from .threats import ThreatAssessment

if TYPE_CHECKING:
    from .state import RaidGameState

logger = logging.getLogger(__name__)

DECISION_HISTORY_SIZE = 20
PLAYER_CONTROL_TIME_LIMIT = 30.0
STRATEGIC_LOW_HP = 40


@dataclass
class BehaviorSettings:
    target_priority: TargetPriority = TargetPriority.WEAKEST
    attack_pattern: AttackPattern = AttackPattern.DECK_BASED
    use_advanced_tactics: bool = False
    adapt_to_player_behavior: bool = False

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "target_priority": self.target_priority.value,
            "attack_pattern": self.attack_pattern.value,
            "use_advanced_tactics": self.use_advanced_tactics,
            "adapt_to_player_behavior": self.adapt_to_player_behavior,
        }


@dataclass
class PlayerControlSettings:
    controlling_player_id: Optional[str] = None
    allow_target_override: bool = True
    allow_attack_selection: bool = True
    time_limit: float = PLAYER_CONTROL_TIME_LIMIT

    def to_public_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class BossAI:
    """
    Decides what the boss does on its turn.

    Cards come from the raid's attack deck; each drawn card is copied and then
    passed through targeting, difficulty and behaviour modifiers before the
    raid resolves it. Every decision is kept in a short history and mirrored
    to the spectator event log.
    """

    def __init__(
        self,
        state: "RaidGameState",
        mode: AIMode = AIMode.SCRIPTED,
        difficulty: Difficulty = Difficulty.NORMAL,
        behavior: Optional[BehaviorSettings] = None,
    ):
        self.state = state
        self.rng = state.rng
        self.mode = mode
        self.difficulty = difficulty
        self.behavior = behavior or BehaviorSettings()
        self.player_control = PlayerControlSettings()
        self.threats = ThreatAssessment()
        self.decision_history: List[Dict[str, Any]] = []

    # --- Turn generation ---

    def generate_boss_actions(self) -> List[AttackCard]:
        self.threats.update(self.state.players.values())
        if self.mode == AIMode.PLAYER_CONTROLLED:
            return self._player_controlled_turn()
        return self._scripted_turn()

    def _scripted_turn(self) -> List[AttackCard]:
        actions: List[AttackCard] = []
        boss = self.state.boss
        while len(actions) < boss.max_attacks_per_turn and self.state.attack_deck.has_cards():
            drawn = self.draw_boss_attack_card()
            if drawn is None:
                break
            card = self.apply_ai_modifications(drawn)
            actions.append(card)
            if not card.draw_another:
                break

        self.log_decision(
            "scripted_turn",
            {
                "actions_generated": len(actions),
                "threat_level": self.threats.overall(),
                "targeting_strategy": self.behavior.target_priority.value,
            },
        )
        return actions

    def _player_controlled_turn(self) -> List[AttackCard]:
        # No interactive window yet; the controlling player's slot is reserved.
        self.log_decision(
            "player_control_fallback",
            {
                "controlling_player_id": self.player_control.controlling_player_id,
                "time_limit": self.player_control.time_limit,
            },
        )
        return self._scripted_turn()

    def draw_boss_attack_card(self) -> Optional[AttackCard]:
        return self.state.attack_deck.draw()

    def reshuffle_boss_attack_deck(self) -> int:
        return self.state.attack_deck.reshuffle()

    # --- Card modifiers ---

    def apply_ai_modifications(self, card: AttackCard) -> AttackCard:
        modified = replace(card)
        modified = self.apply_smart_targeting(modified)
        modified = self.apply_difficulty_modifications(modified)
        modified = self.apply_behavioral_modifications(modified)
        return modified

    def apply_smart_targeting(self, card: AttackCard) -> AttackCard:
        priority = self.behavior.target_priority
        active_players = self.state.get_active_players()
        if priority == TargetPriority.DECK_BASED or not active_players:
            return card

        target: Optional[RaidPlayer] = None
        if priority == TargetPriority.WEAKEST:
            target = self.find_weakest_player(active_players)
        elif priority == TargetPriority.STRONGEST:
            target = self.find_strongest_player(active_players)
        elif priority == TargetPriority.TACTICAL:
            target = self.find_tactical_target(active_players)
        elif priority == TargetPriority.RANDOM:
            target = self.rng.choice(active_players)

        if target is None:
            return card
        card.original_target = card.target_player
        card.target_player = active_players.index(target) + 1
        card.targeting_reason = priority.value
        return card

    def find_weakest_player(self, players: List[RaidPlayer]) -> Optional[RaidPlayer]:
        if not players:
            return None
        # min() keeps the first of equal values, i.e. join order breaks ties.
        return min(players, key=lambda p: p.pokemon.active.hp)

    def find_strongest_player(self, players: List[RaidPlayer]) -> Optional[RaidPlayer]:
        if not players:
            return None
        best = max(players, key=lambda p: p.pokemon.active.hp)
        return best if best.pokemon.active.hp > 0 else None

    def find_tactical_target(self, players: List[RaidPlayer]) -> Optional[RaidPlayer]:
        best: Optional[RaidPlayer] = None
        highest = 0.0
        for player in players:
            score = self.threats.tactical_score(player)
            if score > highest:
                highest = score
                best = player
        return best or self.find_weakest_player(players)

    def apply_difficulty_modifications(self, card: AttackCard) -> AttackCard:
        if self.difficulty == Difficulty.EASY:
            card.damage = math.floor(card.damage * 0.8)
            if self.rng.random() < 0.3:
                card.draw_another = False
        elif self.difficulty == Difficulty.HARD:
            card.damage = math.floor(card.damage * 1.2)
            if card.attack_number <= 2 and self.rng.random() < 0.7:
                card.draw_another = True
        return card

    def apply_behavioral_modifications(self, card: AttackCard) -> AttackCard:
        pattern = self.behavior.attack_pattern
        if pattern == AttackPattern.AGGRESSIVE:
            if card.attack_number == 1 and self.rng.random() < 0.4:
                card.attack_number = 2
                card.damage = 60
        elif pattern == AttackPattern.STRATEGIC:
            low_hp = [
                p for p in self.state.get_active_players()
                if p.pokemon.active.hp <= STRATEGIC_LOW_HP
            ]
            if len(low_hp) >= 2 and card.attack_number == 3:
                card.attack_number = 1
                card.damage = 30
                card.draw_another = True
        return card

    # --- Decision log ---

    def log_decision(self, decision_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        entry = {
            "type": decision_type,
            "data": data,
            "timestamp": self.state.clock(),
            "game_state": {
                "boss_hp": self.state.boss.current_hp,
                "total_kos": self.state.total_ko_count,
                "active_players": len(self.state.get_active_players()),
            },
            "threat_assessment": self.threats.to_public_dict(),
        }
        self.decision_history.append(entry)
        if len(self.decision_history) > DECISION_HISTORY_SIZE:
            self.decision_history = self.decision_history[-DECISION_HISTORY_SIZE:]
        logger.debug("Raid %s boss decision: %s %s", self.state.raid_id, decision_type, data)
        self.state.log_event({"type": "boss_ai_decision", "decision": entry})
        return entry

    # --- Configuration ---

    def set_ai_mode(self, mode: AIMode):
        old = self.mode
        self.mode = mode
        self.log_decision("mode_change", {"old_mode": old.value, "new_mode": mode.value})

    def set_difficulty(self, difficulty: Difficulty):
        old = self.difficulty
        self.difficulty = difficulty
        self.log_decision("difficulty_change", {"old_difficulty": old.value, "new_difficulty": difficulty.value})

    def update_behavior_settings(self, **changes: Any):
        old = self.behavior.to_public_dict()
        for key, value in changes.items():
            if not hasattr(self.behavior, key):
                raise ValueError(f"Unknown behaviour setting: {key}")
            if key == "target_priority":
                value = TargetPriority(value)
            elif key == "attack_pattern":
                value = AttackPattern(value)
            setattr(self.behavior, key, value)
        self.log_decision("behavior_change", {"old_settings": old, "new_settings": self.behavior.to_public_dict()})

    def enable_player_control(self, player_id: str):
        self.mode = AIMode.PLAYER_CONTROLLED
        self.player_control.controlling_player_id = player_id
        self.log_decision("player_control_enabled", {"controlling_player_id": player_id})

    def disable_player_control(self):
        self.mode = AIMode.SCRIPTED
        self.player_control.controlling_player_id = None
        self.log_decision("player_control_disabled", {})

    def get_boss_ai_state(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "difficulty": self.difficulty.value,
            "behavior_settings": self.behavior.to_public_dict(),
            "player_control_settings": self.player_control.to_public_dict(),
            "threat_assessment": self.threats.to_public_dict(),
            "recent_decisions": self.decision_history[-5:],
        }
