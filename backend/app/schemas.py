from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from raid_core.models import AttackPattern, Difficulty, PokemonSlot, TargetPriority


# --- REST payloads ---

class AttackIn(BaseModel):
    name: str = Field(min_length=1)
    damage: int = Field(ge=0)


class PokemonIn(BaseModel):
    name: str = Field(min_length=1)
    hp: int = Field(gt=0)
    max_hp: Optional[int] = Field(default=None, gt=0)
    attacks: List[AttackIn] = Field(default_factory=list)


class ParticipantIn(BaseModel):
    """A player seated at raid creation. Omitted Pokemon use the stock pair."""
    id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    active: Optional[PokemonIn] = None
    bench: Optional[PokemonIn] = None

    def to_engine(self) -> Dict[str, Any]:
        pokemon: Dict[str, Any] = {}
        if self.active:
            pokemon["active"] = self.active.model_dump()
        if self.bench:
            pokemon["bench"] = self.bench.model_dump()
        return {"id": self.id, "username": self.username, "pokemon": pokemon}


class CreateRaidRequest(BaseModel):
    raid_id: Optional[str] = None
    boss_id: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    target_priority: Optional[TargetPriority] = None
    attack_pattern: Optional[AttackPattern] = None
    seed: Optional[int] = None
    auto_start: bool = True
    participants: List[ParticipantIn] = Field(min_length=1)


class RaidSummary(BaseModel):
    raid_id: str
    game_phase: str
    boss_name: str
    boss_level: int
    boss_hp: int
    boss_max_hp: int
    players: int
    active_players: int
    spectators: int


# --- WebSocket messages ---

class PlayerAttackMessage(BaseModel):
    type: Literal["player_attack"]
    pokemon: PokemonSlot = PokemonSlot.ACTIVE
    attack_name: str = Field(min_length=1)

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type, "pokemon": self.pokemon.value, "attack_name": self.attack_name}


class PlayerRetreatMessage(BaseModel):
    type: Literal["player_retreat"]

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type}


class CheerTarget(BaseModel):
    player_id: str
    pokemon: PokemonSlot = PokemonSlot.ACTIVE


class CheerCardMessage(BaseModel):
    type: Literal["cheer_card"]
    card_number: int = Field(ge=1, le=5)
    target: Optional[CheerTarget] = None

    def to_action(self) -> Dict[str, Any]:
        action: Dict[str, Any] = {"type": self.type, "card_number": self.card_number}
        if self.target:
            action["target"] = {"player_id": self.target.player_id, "pokemon": self.target.pokemon.value}
        return action


class BossTurnMessage(BaseModel):
    type: Literal["boss_turn"]

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type}


class JoinAsSpectatorMessage(BaseModel):
    type: Literal["join_as_spectator"]
    username: Optional[str] = None

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type, "username": self.username}


class SpectatorChatMessage(BaseModel):
    type: Literal["spectator_chat"]
    message: str = Field(min_length=1, max_length=500)

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type, "message": self.message}


class SpectatorSuggestionMessage(BaseModel):
    type: Literal["spectator_suggestion"]
    suggestion: str = Field(min_length=1, max_length=500)

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type, "suggestion": self.suggestion}


class LeaveSpectatorsMessage(BaseModel):
    type: Literal["leave_spectators"]

    def to_action(self) -> Dict[str, Any]:
        return {"type": self.type}


class RequestStateMessage(BaseModel):
    type: Literal["request_state"]


InboundMessage = Annotated[
    Union[
        PlayerAttackMessage,
        PlayerRetreatMessage,
        CheerCardMessage,
        BossTurnMessage,
        JoinAsSpectatorMessage,
        SpectatorChatMessage,
        SpectatorSuggestionMessage,
        LeaveSpectatorsMessage,
        RequestStateMessage,
    ],
    Field(discriminator="type"),
]

inbound_message_adapter: TypeAdapter = TypeAdapter(InboundMessage)


def parse_inbound_message(data: Any) -> Any:
    """Validate a raw socket payload. Raises pydantic.ValidationError."""
    return inbound_message_adapter.validate_python(data)
