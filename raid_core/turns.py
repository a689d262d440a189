import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .models import TurnOrderEntry, TurnPhase

if TYPE_CHECKING:
    from .state import RaidGameState

logger = logging.getLogger(__name__)

PLAYER_COLORS = ("#3498db", "#e74c3c", "#2ecc71", "#f39c12")
BOSS_COLOR = "#e74c3c"
STAGE_DESCRIPTIONS: Dict[int, str] = {1: "Choose Action", 2: "Resolve Action", 3: "End Turn"}
FINAL_STAGE = 3
TURN_HISTORY_SIZE = 20

PLAYER_OPACITY = {"current": 1.0, "previous": 0.7, "next": 0.5, "waiting": 0.3}


@dataclass
class IndicatorSettings:
    show_next_player: bool = True
    show_previous_player: bool = True
    show_stage_details: bool = True
    auto_advance_speed: int = 1000
    player_colors: List[str] = field(default_factory=lambda: list(PLAYER_COLORS))

    def to_public_dict(self) -> Dict[str, Any]:
        data = dict(self.__dict__)
        data["player_colors"] = list(self.player_colors)
        return data


class TurnManager:
    """
    Round-robin turn order over the raid's active players.

    Each player turn walks three stages before handing on to the next player;
    once the order wraps, the boss takes a turn and the cycle restarts.
    """

    def __init__(self, state: "RaidGameState"):
        self.state = state
        self.turn_order: List[TurnOrderEntry] = []
        self.current_turn_index = 0
        self.current_stage = 1
        self.current_phase = TurnPhase.PLAYER_TURNS
        self.settings = IndicatorSettings()
        self.turn_history: List[Dict[str, Any]] = []
        self.initialize_turn_order()

    def _color_for(self, player_id: str) -> str:
        ids = list(self.state.players.keys())
        position = ids.index(player_id) if player_id in ids else len(self.turn_order)
        colors = self.settings.player_colors or list(PLAYER_COLORS)
        return colors[position % len(colors)]

    def initialize_turn_order(self):
        self.turn_order = [
            TurnOrderEntry(player_id=p.id, username=p.username, color=self._color_for(p.id))
            for p in self.state.get_active_players()
        ]
        self.current_turn_index = 0
        self.current_stage = 1
        self.current_phase = TurnPhase.PLAYER_TURNS if self.turn_order else TurnPhase.END_PHASE
        self.log_turn_event("turn_order_initialized", {
            "turn_order": [e.to_public_dict() for e in self.turn_order],
        })

    # --- Lookups ---

    def get_current_player(self) -> Optional[TurnOrderEntry]:
        if self.current_phase != TurnPhase.PLAYER_TURNS or not self.turn_order:
            return None
        return self.turn_order[self.current_turn_index]

    def _entry_at(self, offset: int) -> Optional[TurnOrderEntry]:
        if not self.turn_order:
            return None
        return self.turn_order[(self.current_turn_index + offset) % len(self.turn_order)]

    def get_next_player(self) -> Optional[TurnOrderEntry]:
        return self._entry_at(1)

    def get_previous_player(self) -> Optional[TurnOrderEntry]:
        return self._entry_at(-1)

    # --- Progression ---

    def advance_turn(self) -> Dict[str, Any]:
        if self.current_phase == TurnPhase.PLAYER_TURNS:
            if self.current_stage < FINAL_STAGE:
                self.current_stage += 1
                self.log_turn_event("stage_advanced", {"new_stage": self.current_stage})
            else:
                self.advance_to_next_player()
        elif self.current_phase == TurnPhase.BOSS_TURN:
            self.current_phase = TurnPhase.PLAYER_TURNS
            self.current_turn_index = 0
            self.current_stage = 1
            self.log_turn_event("phase_change", {"new_phase": self.current_phase.value})
        return self.get_current_turn_info()

    def advance_to_next_player(self):
        if not self.turn_order:
            self.current_phase = TurnPhase.END_PHASE
            return
        current = self.turn_order[self.current_turn_index]
        current.turns_completed += 1
        self.current_turn_index = (self.current_turn_index + 1) % len(self.turn_order)
        self.current_stage = 1
        if self.current_turn_index == 0:
            self.current_phase = TurnPhase.BOSS_TURN
            self.log_turn_event("phase_change", {"new_phase": self.current_phase.value})
        else:
            self.log_turn_event("player_change", {
                "previous_player": current.username,
                "current_player": self.turn_order[self.current_turn_index].username,
            })

    def complete_player_turn(self) -> Dict[str, Any]:
        """Run the acting player's remaining stages and pass the turn on."""
        if self.current_phase != TurnPhase.PLAYER_TURNS:
            return self.get_current_turn_info()
        while self.current_stage < FINAL_STAGE:
            self.advance_turn()
        return self.advance_turn()

    def remove_from_turn_order(self, player_id: str) -> bool:
        index = next((i for i, e in enumerate(self.turn_order) if e.player_id == player_id), None)
        if index is None:
            return False
        removed = self.turn_order.pop(index)

        if index < self.current_turn_index:
            self.current_turn_index -= 1
        elif index == self.current_turn_index and self.turn_order:
            self.current_turn_index %= len(self.turn_order)

        if not self.turn_order:
            self.current_turn_index = 0
            self.current_phase = TurnPhase.END_PHASE

        self.log_turn_event("player_removed", {
            "player_id": player_id,
            "username": removed.username,
            "remaining_players": len(self.turn_order),
        })
        return True

    def add_to_turn_order(self, player_id: str, username: str) -> TurnOrderEntry:
        entry = TurnOrderEntry(player_id=player_id, username=username, color=self._color_for(player_id))
        self.turn_order.append(entry)
        if self.current_phase == TurnPhase.END_PHASE:
            self.current_phase = TurnPhase.PLAYER_TURNS
            self.current_turn_index = 0
            self.current_stage = 1
        self.log_turn_event("player_added", {
            "player_id": player_id,
            "username": username,
            "total_players": len(self.turn_order),
        })
        return entry

    # --- Projections ---

    def get_current_turn_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "phase": self.current_phase.value,
            "stage": self.current_stage,
            "turn_index": self.current_turn_index,
            "total_players": len(self.turn_order),
            "timestamp": self.state.clock(),
        }
        current = self.get_current_player()
        if current:
            info["current_player"] = dict(
                current.to_public_dict(),
                stage_description=STAGE_DESCRIPTIONS[self.current_stage],
            )
            if len(self.turn_order) > 1:
                info["next_player"] = self.get_next_player().to_public_dict()
                info["previous_player"] = self.get_previous_player().to_public_dict()
            else:
                info["next_phase"] = TurnPhase.BOSS_TURN.value
        if self.current_phase == TurnPhase.BOSS_TURN:
            info["boss_attacks_remaining"] = self.state.boss.attacks_remaining
        info["indicator"] = self.generate_turn_indicator()
        return info

    def generate_turn_indicator(self) -> Dict[str, Any]:
        indicator: Dict[str, Any] = {
            "phase": self.current_phase.value,
            "settings": self.settings.to_public_dict(),
            "elements": [],
        }
        if self.current_phase == TurnPhase.PLAYER_TURNS:
            indicator["elements"] = self._player_indicator_elements()
        elif self.current_phase == TurnPhase.BOSS_TURN:
            indicator["elements"] = self._boss_indicator_elements()
        return indicator

    def _player_indicator_elements(self) -> List[Dict[str, Any]]:
        elements: List[Dict[str, Any]] = []
        count = len(self.turn_order)
        for index, entry in enumerate(self.turn_order):
            if index == self.current_turn_index:
                status = "current"
            elif count > 1 and index == (self.current_turn_index - 1) % count:
                status = "previous"
            elif count > 1 and index == (self.current_turn_index + 1) % count:
                status = "next"
            else:
                status = "waiting"
            elements.append({
                "type": "player",
                "player_id": entry.player_id,
                "username": entry.username,
                "color": entry.color,
                "status": status,
                "opacity": PLAYER_OPACITY[status],
                "turns_completed": entry.turns_completed,
            })

        if self.settings.show_stage_details:
            for stage, description in STAGE_DESCRIPTIONS.items():
                if stage < self.current_stage:
                    stage_status = "completed"
                elif stage == self.current_stage:
                    stage_status = "current"
                else:
                    stage_status = "upcoming"
                elements.append({
                    "type": "stage",
                    "stage": stage,
                    "description": description,
                    "status": stage_status,
                })

        if count and self.current_turn_index == count - 1 and self.current_stage == FINAL_STAGE:
            elements.append({"type": "transition", "to": TurnPhase.BOSS_TURN.value, "color": BOSS_COLOR})
        return elements

    def _boss_indicator_elements(self) -> List[Dict[str, Any]]:
        boss = self.state.boss
        elements: List[Dict[str, Any]] = [{
            "type": "boss",
            "name": boss.card.name,
            "color": BOSS_COLOR,
            "status": "current",
            "attacks_remaining": boss.attacks_remaining,
            "max_attacks": boss.max_attacks_per_turn,
        }]
        if self.turn_order:
            elements.append({
                "type": "transition",
                "to": TurnPhase.PLAYER_TURNS.value,
                "first_player": self.turn_order[0].username,
            })
        return elements

    # --- History / settings ---

    def log_turn_event(self, event_type: str, data: Dict[str, Any]):
        current = self.get_current_player()
        event = {
            "type": event_type,
            "data": data,
            "timestamp": self.state.clock(),
            "turn_info": {
                "phase": self.current_phase.value,
                "stage": self.current_stage,
                "player": current.username if current else None,
            },
        }
        self.turn_history.append(event)
        if len(self.turn_history) > TURN_HISTORY_SIZE:
            self.turn_history = self.turn_history[-TURN_HISTORY_SIZE:]
        logger.debug("Raid %s turn event: %s", self.state.raid_id, event_type)
        self.state.log_event({
            "type": "turn_change",
            "turn_event": event_type,
            "data": data,
            "turn_info": event["turn_info"],
            "timestamp": event["timestamp"],
        })
        self.state.queue_event({
            "type": "turn_event",
            "event": event,
            "turn_indicator": self.generate_turn_indicator(),
        })

    def get_turn_history(self, count: int = 10) -> List[Dict[str, Any]]:
        if count <= 0:
            return []
        return self.turn_history[-count:]

    def update_indicator_settings(self, **changes: Any):
        for key, value in changes.items():
            if not hasattr(self.settings, key):
                raise ValueError(f"Unknown indicator setting: {key}")
            setattr(self.settings, key, value)
        self.log_turn_event("settings_changed", {"settings": self.settings.to_public_dict()})

    def get_turn_manager_state(self) -> Dict[str, Any]:
        return {
            "turn_order": [e.to_public_dict() for e in self.turn_order],
            "current_turn_index": self.current_turn_index,
            "current_stage": self.current_stage,
            "current_phase": self.current_phase.value,
            "indicator_settings": self.settings.to_public_dict(),
            "recent_history": self.get_turn_history(5),
        }
