"""
Core raid engine package.

Decoupled from FastAPI/backend concerns so any host (server, CLI, tests) can
drive a raid. The backend only manages transport and the raid registry and
calls into this package for game rules.
"""

from .actions import RaidActionHandler
from .attack_deck import AttackDeck
from .boss_ai import BossAI
from .data_loader import BossCatalog
from .errors import InvalidActionError
from .models import (
    AIMode,
    AttackCard,
    AttackPattern,
    Boss,
    BossCard,
    Difficulty,
    GamePhase,
    PlayerStatus,
    PokemonSlot,
    PokemonStatus,
    RaidConfig,
    RaidPlayer,
    TargetPriority,
    TurnPhase,
)
from .spectators import SpectatorManager
from .state import RaidGameState
from .threats import ThreatAssessment
from .turns import TurnManager

__all__ = [
    "AIMode",
    "AttackCard",
    "AttackDeck",
    "AttackPattern",
    "Boss",
    "BossAI",
    "BossCard",
    "BossCatalog",
    "Difficulty",
    "GamePhase",
    "InvalidActionError",
    "PlayerStatus",
    "PokemonSlot",
    "PokemonStatus",
    "RaidActionHandler",
    "RaidConfig",
    "RaidGameState",
    "RaidPlayer",
    "SpectatorManager",
    "TargetPriority",
    "ThreatAssessment",
    "TurnManager",
    "TurnPhase",
]
