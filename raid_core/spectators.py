import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .models import PlayerStatus, SpectatorPermissions, SpectatorRecord
from .utils import failure, success

if TYPE_CHECKING:
    from .state import RaidGameState

logger = logging.getLogger(__name__)

HISTORY_ON_JOIN = 10
UPCOMING_ATTACKS_SHOWN = 3


@dataclass
class SpectatorSettings:
    can_see_hidden_info: bool = False
    can_see_player_actions: bool = True
    receive_real_time_updates: bool = True
    max_spectators: int = 10

    def to_public_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class SpectatorManager:
    """
    Spectators of a raid and the event log they watch.

    Every logged event is fanned out to the raid's event queue once per
    spectator allowed to see it.
    """

    def __init__(
        self,
        state: "RaidGameState",
        max_spectators: int = 10,
        event_log_size: int = 50,
        inactivity_timeout: float = 30 * 60,
    ):
        self.state = state
        self.settings = SpectatorSettings(max_spectators=max_spectators)
        self.event_log_size = event_log_size
        self.inactivity_timeout = inactivity_timeout
        self.spectators: Dict[str, SpectatorRecord] = {}
        self.event_log: List[Dict[str, Any]] = []

    # --- Membership ---

    def add_spectator(self, spectator_id: str, username: str, was_player: bool = False) -> Dict[str, Any]:
        if not self.has_room_for(spectator_id):
            return failure("Maximum spectators reached")

        record = SpectatorRecord(
            id=spectator_id,
            username=username,
            joined_at=self.state.clock(),
            was_player=was_player,
            permissions=SpectatorPermissions.for_spectator(was_player),
            last_event_index=len(self.event_log) - 1,
        )
        self.spectators[spectator_id] = record
        self.log_event({
            "type": "spectator_joined",
            "spectator_id": spectator_id,
            "username": username,
            "was_player": was_player,
        })
        logger.info("Raid %s: %s joined as spectator (was_player=%s)", self.state.raid_id, username, was_player)
        return success(
            spectator=record.to_public_dict(),
            game_state=self.get_spectator_game_state(record),
            event_history=self.event_log[-HISTORY_ON_JOIN:],
        )

    def remove_spectator(self, spectator_id: str) -> Dict[str, Any]:
        record = self.spectators.pop(spectator_id, None)
        if record is None:
            return failure("Spectator not found")
        self.log_event({
            "type": "spectator_left",
            "spectator_id": spectator_id,
            "username": record.username,
        })
        logger.info("Raid %s: spectator %s left", self.state.raid_id, record.username)
        return success()

    def convert_player_to_spectator(self, player_id: str) -> Dict[str, Any]:
        player = self.state.players.get(player_id)
        if player is None:
            return failure("Player not found")
        result = self.add_spectator(player_id, player.username, was_player=True)
        if result["success"]:
            self.log_event({
                "type": "player_eliminated",
                "player_id": player_id,
                "username": player.username,
                "elimination_reason": "all_pokemon_ko" if player.pokemon.all_ko else "left_game",
                "priority": True,
            })
        return result

    def is_spectator(self, user_id: str) -> bool:
        return user_id in self.spectators

    def has_room_for(self, user_id: str) -> bool:
        return user_id in self.spectators or len(self.spectators) < self.settings.max_spectators

    # --- Event log ---

    def log_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        entry = dict(event)
        entry.setdefault("timestamp", self.state.clock())
        entry["id"] = len(self.event_log)
        self.event_log.append(entry)
        if len(self.event_log) > self.event_log_size:
            self.event_log = self.event_log[-self.event_log_size:]
            for index, logged in enumerate(self.event_log):
                logged["id"] = index
        self.broadcast_to_spectators(entry)
        return entry

    def broadcast_to_spectators(self, event: Dict[str, Any]):
        for record in self.spectators.values():
            if self.should_receive_event(record, event):
                self.state.queue_event({
                    "type": "spectator_event",
                    "spectator_id": record.id,
                    "event": event,
                })

    def should_receive_event(self, record: SpectatorRecord, event: Dict[str, Any]) -> bool:
        permissions = record.permissions
        if event.get("priority") and permissions.priority_updates:
            return True
        event_type = event.get("type")
        if event_type == "hidden_action":
            return permissions.can_see_hidden_info
        if event_type == "player_intention":
            return permissions.can_see_player_actions
        if event_type == "boss_ai_decision":
            return permissions.can_see_upcoming_events
        return True

    def get_events_for_spectator(self, spectator_id: str, since_index: int = 0) -> List[Dict[str, Any]]:
        record = self.spectators.get(spectator_id)
        if record is None:
            return []
        events = [
            e for e in self.event_log[since_index:]
            if self.should_receive_event(record, e)
        ]
        if self.event_log:
            record.last_event_index = len(self.event_log) - 1
        return events

    # --- Spectator actions ---

    def process_spectator_chat(self, spectator_id: str, message: str) -> Dict[str, Any]:
        record = self.spectators.get(spectator_id)
        if record is None:
            return failure("Spectator not found")
        if not record.permissions.can_use_spectator_chat:
            return failure("Chat permission denied")

        chat = {
            "type": "spectator_chat",
            "spectator_id": spectator_id,
            "username": record.username,
            "message": message,
            "timestamp": self.state.clock(),
        }
        self.log_event(chat)
        for other in self.spectators.values():
            if other.id != spectator_id:
                self.state.queue_event({
                    "type": "spectator_chat_message",
                    "spectator_id": other.id,
                    "event": chat,
                })
        return success()

    def process_spectator_suggestion(self, spectator_id: str, suggestion: str) -> Dict[str, Any]:
        record = self.spectators.get(spectator_id)
        if record is None:
            return failure("Spectator not found")
        if not record.permissions.can_suggest_actions:
            return failure("Permission denied")
        self.log_event({
            "type": "spectator_suggestion",
            "spectator_id": spectator_id,
            "username": record.username,
            "suggestion": suggestion,
        })
        return success(message="Suggestion logged")

    # --- Views / housekeeping ---

    def get_spectator_game_state(self, record: SpectatorRecord) -> Dict[str, Any]:
        view = self.state.get_game_state()
        view["spectator_mode"] = True
        view["spectator_info"] = {
            "was_player": record.was_player,
            "permissions": record.permissions.to_public_dict(),
            "spectator_count": len(self.spectators),
        }
        if record.permissions.can_see_hidden_info:
            view["hidden_info"] = self.get_hidden_info()
        return view

    def get_hidden_info(self) -> Dict[str, Any]:
        deck = self.state.attack_deck
        return {
            "boss_attack_deck_size": deck.remaining(),
            "upcoming_boss_attacks": [c.to_public_dict() for c in deck.peek(UPCOMING_ATTACKS_SHOWN)],
            "player_intentions": {
                p.id: p.last_action for p in self.state.players.values()
                if p.status == PlayerStatus.ACTIVE
            },
        }

    def cleanup(self, now: Optional[float] = None) -> List[str]:
        """Drop idle spectators who never played. Returns the removed ids."""
        now = self.state.clock() if now is None else now
        stale = [
            r.id for r in self.spectators.values()
            if not r.was_player and now - r.joined_at > self.inactivity_timeout
        ]
        for spectator_id in stale:
            self.remove_spectator(spectator_id)
        return stale

    def update_spectator_settings(self, **changes: Any):
        for key, value in changes.items():
            if not hasattr(self.settings, key):
                raise ValueError(f"Unknown spectator setting: {key}")
            setattr(self.settings, key, value)

    def get_spectator_manager_state(self) -> Dict[str, Any]:
        return {
            "spectators": [r.to_public_dict() for r in self.spectators.values()],
            "settings": self.settings.to_public_dict(),
            "event_log_size": len(self.event_log),
            "recent_events": self.event_log[-5:],
        }
