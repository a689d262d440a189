from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class GamePhase(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    VICTORY = "victory"
    DEFEAT = "defeat"


class TurnPhase(str, Enum):
    PLAYER_TURNS = "player_turns"
    BOSS_TURN = "boss_turn"
    END_PHASE = "end_phase"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    SPECTATOR = "spectator"
    ELIMINATED = "eliminated"


class PokemonStatus(str, Enum):
    ACTIVE = "active"
    BENCHED = "benched"
    KO = "ko"


class PokemonSlot(str, Enum):
    ACTIVE = "active"
    BENCH = "bench"


class BossStatus(str, Enum):
    ACTIVE = "active"
    DEFEATED = "defeated"


class AIMode(str, Enum):
    SCRIPTED = "scripted"
    PLAYER_CONTROLLED = "player_controlled"


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


class TargetPriority(str, Enum):
    WEAKEST = "weakest"
    STRONGEST = "strongest"
    TACTICAL = "tactical"
    RANDOM = "random"
    DECK_BASED = "deck_based"


class AttackPattern(str, Enum):
    DECK_BASED = "deck_based"
    STRATEGIC = "strategic"
    AGGRESSIVE = "aggressive"


DEFAULT_BOSS_HP: Dict[int, int] = {1: 800, 2: 1200, 3: 1600}
BOSS_ATTACKS_BY_LEVEL: Dict[int, int] = {1: 2, 2: 3, 3: 4}
CHEER_CARD_NUMBERS = (1, 2, 3, 4, 5)

DEFAULT_ACTIVE_POKEMON: Dict[str, Any] = {
    "name": "Pokemon 1",
    "hp": 120,
    "attacks": [{"name": "Basic Attack", "damage": 60}],
}
DEFAULT_BENCH_POKEMON: Dict[str, Any] = {
    "name": "Pokemon 2",
    "hp": 100,
    "attacks": [{"name": "Quick Strike", "damage": 40}],
}


def boss_level_for_damage(total_damage: int) -> int:
    """Tier the boss from the party's combined best attacks."""
    if total_damage <= 390:
        return 1
    if total_damage <= 590:
        return 2
    return 3


@dataclass
class Attack:
    name: str
    damage: int

    def to_public_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "damage": self.damage}


@dataclass
class Pokemon:
    name: str
    hp: int
    max_hp: int
    attacks: List[Attack] = field(default_factory=list)
    status: PokemonStatus = PokemonStatus.ACTIVE
    status_conditions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]], defaults: Dict[str, Any], status: PokemonStatus) -> "Pokemon":
        raw = raw or {}
        max_hp = int(raw.get("max_hp") or defaults["hp"])
        hp = min(int(raw.get("hp") or max_hp), max_hp)
        attacks_raw = raw.get("attacks") or defaults["attacks"]
        return cls(
            name=str(raw.get("name") or defaults["name"]),
            hp=hp,
            max_hp=max_hp,
            attacks=[Attack(name=str(a["name"]), damage=int(a["damage"])) for a in attacks_raw],
            status=status,
        )

    @property
    def is_ko(self) -> bool:
        return self.status == PokemonStatus.KO

    @property
    def max_attack_damage(self) -> int:
        return max((a.damage for a in self.attacks), default=0)

    def find_attack(self, name: str) -> Optional[Attack]:
        return next((a for a in self.attacks if a.name == name), None)

    def take_damage(self, amount: int) -> bool:
        """Apply damage; returns True when this hit knocked the Pokemon out."""
        self.hp -= amount
        if self.hp <= 0:
            self.hp = 0
            self.status = PokemonStatus.KO
            return True
        return False

    def heal(self, amount: int):
        self.hp = min(self.max_hp, self.hp + amount)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "attacks": [a.to_public_dict() for a in self.attacks],
            "status": self.status.value,
            "status_conditions": list(self.status_conditions),
        }


@dataclass
class PokemonPair:
    active: Pokemon
    bench: Pokemon

    def get(self, slot: PokemonSlot) -> Pokemon:
        return self.active if slot == PokemonSlot.ACTIVE else self.bench

    def swap(self):
        self.active, self.bench = self.bench, self.active

    @property
    def all_ko(self) -> bool:
        return self.active.is_ko and self.bench.is_ko

    def to_public_dict(self) -> Dict[str, Any]:
        return {"active": self.active.to_public_dict(), "bench": self.bench.to_public_dict()}


@dataclass
class RaidPlayer:
    id: str
    username: str
    pokemon: PokemonPair
    status: PlayerStatus = PlayerStatus.ACTIVE
    ko_count: int = 0
    has_used_gx: bool = False
    can_use_cheer: bool = False
    last_action: Optional[Dict[str, Any]] = None

    @property
    def is_active(self) -> bool:
        return self.status == PlayerStatus.ACTIVE

    @property
    def offense(self) -> int:
        # Fall back to the stock attack values when a Pokemon brings none.
        active = self.pokemon.active.max_attack_damage or 60
        bench = self.pokemon.bench.max_attack_damage or 40
        return max(active, bench)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "status": self.status.value,
            "pokemon": self.pokemon.to_public_dict(),
            "ko_count": self.ko_count,
            "has_used_gx": self.has_used_gx,
            "can_use_cheer": self.can_use_cheer,
            "last_action": self.last_action,
        }


@dataclass
class BossCard:
    id: str
    name: str
    hp: Dict[int, int] = field(default_factory=lambda: dict(DEFAULT_BOSS_HP))
    image: Optional[str] = None

    def hp_for_level(self, level: int) -> int:
        return self.hp.get(level, DEFAULT_BOSS_HP[level])

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "hp": {str(k): v for k, v in self.hp.items()},
            "image": self.image,
        }


DEFAULT_BOSS_CARD = BossCard(id="mysterious_boss", name="Mysterious Boss")


@dataclass
class Boss:
    card: BossCard
    level: int
    current_hp: int
    max_hp: int
    max_attacks_per_turn: int
    attacks_this_turn: int = 0
    status: BossStatus = BossStatus.ACTIVE

    @classmethod
    def for_level(cls, card: BossCard, level: int) -> "Boss":
        hp = card.hp_for_level(level)
        return cls(
            card=card,
            level=level,
            current_hp=hp,
            max_hp=hp,
            max_attacks_per_turn=BOSS_ATTACKS_BY_LEVEL[level],
        )

    @property
    def is_defeated(self) -> bool:
        return self.status == BossStatus.DEFEATED

    @property
    def attacks_remaining(self) -> int:
        return max(0, self.max_attacks_per_turn - self.attacks_this_turn)

    def take_damage(self, amount: int) -> int:
        """Reduce HP (floored at 0) and return the HP actually removed."""
        before = self.current_hp
        self.current_hp = max(0, self.current_hp - amount)
        if self.current_hp <= 0 and self.status == BossStatus.ACTIVE:
            self.status = BossStatus.DEFEATED
        return before - self.current_hp

    def reset_attack_allowance(self):
        self.max_attacks_per_turn = BOSS_ATTACKS_BY_LEVEL[self.level]

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "card": self.card.to_public_dict(),
            "level": self.level,
            "current_hp": self.current_hp,
            "max_hp": self.max_hp,
            "max_attacks_per_turn": self.max_attacks_per_turn,
            "attacks_this_turn": self.attacks_this_turn,
            "status": self.status.value,
        }


@dataclass
class AttackCard:
    attack_number: int
    target_player: int
    draw_another: bool
    damage: int
    original_target: Optional[int] = None
    targeting_reason: Optional[str] = None

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "attack_number": self.attack_number,
            "target_player": self.target_player,
            "draw_another": self.draw_another,
            "damage": self.damage,
            "original_target": self.original_target,
            "targeting_reason": self.targeting_reason,
        }


@dataclass
class TurnOrderEntry:
    player_id: str
    username: str
    color: str
    turns_completed: int = 0

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "username": self.username,
            "color": self.color,
            "turns_completed": self.turns_completed,
        }


@dataclass
class SpectatorPermissions:
    can_see_hidden_info: bool = False
    can_see_player_hands: bool = False
    can_see_boss_attack_deck: bool = False
    can_see_upcoming_events: bool = False
    can_see_player_actions: bool = True
    can_use_spectator_chat: bool = True
    can_suggest_actions: bool = False
    priority_updates: bool = False

    @classmethod
    def for_spectator(cls, was_player: bool) -> "SpectatorPermissions":
        # Ex-players keep insight into the table they just left.
        return cls(
            can_see_hidden_info=was_player,
            can_see_player_hands=was_player,
            can_see_upcoming_events=was_player,
            can_suggest_actions=was_player,
            priority_updates=was_player,
        )

    def to_public_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class SpectatorRecord:
    id: str
    username: str
    joined_at: float
    was_player: bool
    permissions: SpectatorPermissions
    last_event_index: int = -1

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "joined_at": self.joined_at,
            "was_player": self.was_player,
            "permissions": self.permissions.to_public_dict(),
            "last_event_index": self.last_event_index,
        }


@dataclass
class RaidConfig:
    """Per-raid tunables; the host builds one from its settings."""
    raid_id: str
    boss_card: Optional[BossCard] = None
    difficulty: Difficulty = Difficulty.NORMAL
    target_priority: TargetPriority = TargetPriority.WEAKEST
    attack_pattern: AttackPattern = AttackPattern.DECK_BASED
    ai_mode: AIMode = AIMode.SCRIPTED
    max_ko_count: int = 4
    max_cheer_cards: int = 3
    max_spectators: int = 10
    event_log_size: int = 50
    spectator_inactivity_seconds: float = 30 * 60
