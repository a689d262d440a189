"""
The RaidManager singleton and the raid repository it owns.
"""

import logging
import random
import uuid
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket
from pydantic import ValidationError

from raid_core import (
    AttackPattern,
    BossCatalog,
    Difficulty,
    GamePhase,
    RaidActionHandler,
    RaidConfig,
    RaidGameState,
    TargetPriority,
    TurnPhase,
)

from .config import Settings
from .connection_manager import ConnectionManager
from .schemas import CreateRaidRequest, RaidSummary, RequestStateMessage, parse_inbound_message

logger = logging.getLogger(__name__)


class RaidNotFoundError(KeyError):
    """Raised when a raid id is not in the repository."""


class RaidRepository:
    """In-memory registry of live raids."""

    def __init__(self):
        self._raids: Dict[str, RaidGameState] = {}

    def create(self, config: RaidConfig, players: List[Dict[str, Any]], rng: Optional[random.Random] = None) -> RaidGameState:
        if config.raid_id in self._raids:
            raise ValueError(f"Raid {config.raid_id} already exists.")
        raid = RaidGameState(config, players, rng=rng)
        self._raids[config.raid_id] = raid
        return raid

    def get(self, raid_id: str) -> Optional[RaidGameState]:
        return self._raids.get(raid_id)

    def remove(self, raid_id: str) -> bool:
        return self._raids.pop(raid_id, None) is not None

    def list(self) -> List[RaidGameState]:
        return list(self._raids.values())

    def __contains__(self, raid_id: str) -> bool:
        return raid_id in self._raids

    def __len__(self) -> int:
        return len(self._raids)


def summarize_raid(raid: RaidGameState) -> RaidSummary:
    return RaidSummary(
        raid_id=raid.raid_id,
        game_phase=raid.game_phase.value,
        boss_name=raid.boss.card.name,
        boss_level=raid.boss.level,
        boss_hp=raid.boss.current_hp,
        boss_max_hp=raid.boss.max_hp,
        players=len(raid.players),
        active_players=len(raid.get_active_players()),
        spectators=len(raid.spectator_manager.spectators),
    )


class RaidManager:
    """Manages the lifecycle of all raids and their socket traffic."""

    def __init__(self, conn_manager: ConnectionManager, settings: Settings, catalog: Optional[BossCatalog] = None):
        self.conn_manager = conn_manager
        self.settings = settings
        self.catalog = catalog or BossCatalog()
        self.repository = RaidRepository()
        self.handlers: Dict[str, RaidActionHandler] = {}
        # raid_id -> user ids with an open socket on that raid
        self.members: Dict[str, Set[str]] = {}

    # --- Lifecycle ---

    def build_config(self, raid_id: str, request: CreateRaidRequest) -> RaidConfig:
        boss_card = self.catalog.get_boss(request.boss_id)
        if boss_card is None:
            raise ValueError(f"Unknown boss: {request.boss_id}")
        s = self.settings
        return RaidConfig(
            raid_id=raid_id,
            boss_card=boss_card,
            difficulty=request.difficulty or Difficulty(s.DEFAULT_DIFFICULTY),
            target_priority=request.target_priority or TargetPriority(s.DEFAULT_TARGET_PRIORITY),
            attack_pattern=request.attack_pattern or AttackPattern(s.DEFAULT_ATTACK_PATTERN),
            max_ko_count=s.MAX_KO_COUNT,
            max_cheer_cards=s.MAX_CHEER_CARDS,
            max_spectators=s.MAX_SPECTATORS,
            event_log_size=s.EVENT_LOG_SIZE,
            spectator_inactivity_seconds=s.SPECTATOR_INACTIVITY_MINUTES * 60,
        )

    def create_raid(self, request: CreateRaidRequest) -> RaidGameState:
        raid_id = request.raid_id or f"raid_{uuid.uuid4().hex[:8]}"
        config = self.build_config(raid_id, request)
        rng = random.Random(request.seed) if request.seed is not None else None
        raid = self.repository.create(config, [p.to_engine() for p in request.participants], rng=rng)
        self.handlers[raid_id] = RaidActionHandler(raid)
        self.members.setdefault(raid_id, set())
        if request.auto_start:
            raid.start()
        logger.info("Raid %s created with %s players.", raid_id, len(raid.players))
        return raid

    def get_raid(self, raid_id: str) -> RaidGameState:
        raid = self.repository.get(raid_id)
        if raid is None:
            raise RaidNotFoundError(raid_id)
        return raid

    def list_raids(self) -> List[RaidSummary]:
        return [summarize_raid(r) for r in self.repository.list()]

    async def remove_raid(self, raid_id: str):
        if not self.repository.remove(raid_id):
            raise RaidNotFoundError(raid_id)
        self.handlers.pop(raid_id, None)
        members = self.members.pop(raid_id, set())
        await self.conn_manager.broadcast_to_users(members, {
            "type": "raid_closed",
            "payload": {"raid_id": raid_id},
        })
        logger.info("Raid %s removed.", raid_id)

    # --- Connections ---

    async def connect(self, raid_id: str, user_id: str, websocket: WebSocket):
        raid = self.get_raid(raid_id)
        await self.conn_manager.add_connection(user_id, websocket)
        self.members.setdefault(raid_id, set()).add(user_id)
        await self.send_state(raid, user_id)

    def disconnect(self, raid_id: str, user_id: str):
        self.members.get(raid_id, set()).discard(user_id)
        self.conn_manager.disconnect(user_id)

    # --- Messages ---

    async def handle_message(self, raid_id: str, user_id: str, data: Any):
        raid = self.get_raid(raid_id)
        try:
            message = parse_inbound_message(data)
        except ValidationError as exc:
            await self.conn_manager.send_to_user(user_id, {
                "type": "error",
                "payload": {"message": "Invalid message.", "details": exc.errors(include_url=False)},
            })
            return

        raid.spectator_manager.cleanup()
        if isinstance(message, RequestStateMessage):
            await self.send_state(raid, user_id)
            await self.flush_events(raid_id)
            return

        result = self.handlers[raid_id].process_action(user_id, message.to_action())
        await self.conn_manager.send_to_user(user_id, {"type": "action_result", "payload": result})

        if result.get("success") and self._boss_turn_pending(raid):
            boss_result = raid.process_boss_turn()
            await self.conn_manager.broadcast_to_users(self.members.get(raid_id, set()), {
                "type": "boss_turn_result",
                "payload": boss_result,
            })

        await self.flush_events(raid_id)
        if result.get("success"):
            await self.broadcast_state(raid_id)

    def _boss_turn_pending(self, raid: RaidGameState) -> bool:
        return raid.game_phase == GamePhase.PLAYING and raid.turn_manager.current_phase == TurnPhase.BOSS_TURN

    async def flush_events(self, raid_id: str):
        """Deliver everything the raid queued since the last flush."""
        raid = self.get_raid(raid_id)
        members = self.members.get(raid_id, set())
        for event in raid.drain_events():
            message = {"type": event["type"], "payload": event}
            target = event.get("spectator_id")
            if target:
                if target in members:
                    await self.conn_manager.send_to_user(target, message)
            else:
                await self.conn_manager.broadcast_to_users(members, message)

    def state_for_user(self, raid: RaidGameState, user_id: str) -> Dict[str, Any]:
        record = raid.spectator_manager.spectators.get(user_id)
        if record is not None:
            return raid.spectator_manager.get_spectator_game_state(record)
        return raid.get_game_state()

    async def send_state(self, raid: RaidGameState, user_id: str):
        await self.conn_manager.send_to_user(user_id, {
            "type": "raid_state",
            "payload": self.state_for_user(raid, user_id),
        })

    async def broadcast_state(self, raid_id: str):
        raid = self.get_raid(raid_id)
        for user_id in list(self.members.get(raid_id, set())):
            await self.send_state(raid, user_id)
