import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Tuple

from .errors import InvalidActionError
from .models import GamePhase
from .utils import failure

if TYPE_CHECKING:
    from .state import RaidGameState

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: Dict[str, Tuple[str, ...]] = {
    "player_attack": ("pokemon", "attack_name"),
    "player_retreat": (),
    "cheer_card": ("card_number",),
    "boss_turn": (),
    "join_as_spectator": (),
    "spectator_chat": ("message",),
    "spectator_suggestion": ("suggestion",),
    "leave_spectators": (),
}
SPECTATOR_ACTIONS = {"spectator_chat", "spectator_suggestion", "leave_spectators"}
OPEN_ACTIONS = {"join_as_spectator"}


class RaidActionHandler:
    """
    Dispatches tagged actions (``{"type": ..., ...}``) to a raid.

    Validation failures surface as ``InvalidActionError`` inside the handler
    and leave it as ``{"success": False, "error": ...}``.
    """

    def __init__(self, state: "RaidGameState"):
        self.state = state
        self.handlers: Dict[str, Callable[[str, Dict[str, Any]], Dict[str, Any]]] = {
            "player_attack": self._handle_attack,
            "player_retreat": self._handle_retreat,
            "cheer_card": self._handle_cheer,
            "boss_turn": self._handle_boss_turn,
            "join_as_spectator": self._handle_join_spectators,
            "spectator_chat": self._handle_chat,
            "spectator_suggestion": self._handle_suggestion,
            "leave_spectators": self._handle_leave_spectators,
        }

    def process_action(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        try:
            action_type = self.validate_action(action)
            self.check_permissions(user_id, action_type)
        except InvalidActionError as exc:
            logger.debug("Raid %s rejected %s from %s: %s", self.state.raid_id, action.get("type"), user_id, exc)
            return failure(str(exc))

        result = self.handlers[action_type](user_id, action)
        if result.get("success"):
            self.state.log_event({
                "type": "player_action",
                "user_id": user_id,
                "action_type": action_type,
            })
        return result

    def validate_action(self, action: Dict[str, Any]) -> str:
        if not isinstance(action, dict):
            raise InvalidActionError("Action must be an object")
        action_type = action.get("type")
        if action_type not in REQUIRED_FIELDS:
            raise InvalidActionError(f"Unknown action: {action_type}")
        for field_name in REQUIRED_FIELDS[action_type]:
            if action.get(field_name) in (None, ""):
                raise InvalidActionError(f"Missing required field: {field_name}")
        return action_type

    def check_permissions(self, user_id: str, action_type: str):
        if action_type in OPEN_ACTIONS:
            return
        if action_type in SPECTATOR_ACTIONS:
            if not self.state.spectator_manager.is_spectator(user_id):
                raise InvalidActionError("Spectator not found")
            return
        player = self.state.players.get(user_id)
        if player is None or not player.is_active:
            raise InvalidActionError("Player not active")
        if self.state.game_phase != GamePhase.PLAYING:
            raise InvalidActionError("Game not active")

    # --- Handlers ---

    def _handle_attack(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.process_player_attack(user_id, action["pokemon"], action["attack_name"])

    def _handle_retreat(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.process_player_retreat(user_id)

    def _handle_cheer(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.process_cheer_card(user_id, action["card_number"], action.get("target"))

    def _handle_boss_turn(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.process_boss_turn()

    def _handle_join_spectators(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        player = self.state.players.get(user_id)
        if player is not None and player.is_active:
            return self.state.convert_to_spectator(user_id)
        username = action.get("username") or (player.username if player else user_id)
        was_player = player is not None
        return self.state.spectator_manager.add_spectator(user_id, username, was_player=was_player)

    def _handle_chat(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.spectator_manager.process_spectator_chat(user_id, action["message"])

    def _handle_suggestion(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.spectator_manager.process_spectator_suggestion(user_id, action["suggestion"])

    def _handle_leave_spectators(self, user_id: str, action: Dict[str, Any]) -> Dict[str, Any]:
        return self.state.spectator_manager.remove_spectator(user_id)
