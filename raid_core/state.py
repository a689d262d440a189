import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional

from .attack_deck import AttackDeck
from .boss_ai import BehaviorSettings, BossAI
from .errors import InvalidActionError
from .models import (
    CHEER_CARD_NUMBERS,
    DEFAULT_ACTIVE_POKEMON,
    DEFAULT_BENCH_POKEMON,
    DEFAULT_BOSS_CARD,
    AttackCard,
    Boss,
    GamePhase,
    PlayerStatus,
    Pokemon,
    PokemonPair,
    PokemonSlot,
    PokemonStatus,
    RaidConfig,
    RaidPlayer,
    TurnPhase,
    boss_level_for_damage,
)
from .spectators import SpectatorManager
from .turns import TurnManager
from .utils import failure, parse_enum, success

logger = logging.getLogger(__name__)

LOG_LINES_EXPOSED = 100
CHEER_HEAL_AMOUNT = 80
CHEER_DAMAGE_BOOST = 50


class RaidGameState:
    """
    Authoritative state of one raid.

    Owns the boss, the players and the boss attack deck, and exposes the
    player-facing operations. Rule violations never raise: every public
    ``process_*`` call returns ``{"success": bool, ...}``.
    """

    def __init__(
        self,
        config: RaidConfig,
        players: List[Dict[str, Any]],
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config
        self.raid_id = config.raid_id
        self.rng = rng or random.Random()
        self.clock = clock or time.time
        self.log: List[str] = []
        self.event_queue: List[Dict[str, Any]] = []

        self.players: Dict[str, RaidPlayer] = {}
        for p in players:
            self.players[p["id"]] = self._build_player(p)

        self.boss = self._initialize_boss()
        self.game_phase = GamePhase.SETUP
        self.total_ko_count = 0
        self.max_ko_count = config.max_ko_count
        self.cheer_cards_used = 0
        self.max_cheer_cards = config.max_cheer_cards
        self.available_cheer_cards: List[int] = list(CHEER_CARD_NUMBERS)
        self.double_damage_pending = False
        self.damage_boost = 0

        self.attack_deck = AttackDeck(len(self.players), self.rng, on_reshuffle=self._on_deck_reshuffled)
        self.spectator_manager = SpectatorManager(
            self,
            max_spectators=config.max_spectators,
            event_log_size=config.event_log_size,
            inactivity_timeout=config.spectator_inactivity_seconds,
        )
        self.turn_manager = TurnManager(self)
        self.boss_ai = BossAI(
            self,
            mode=config.ai_mode,
            difficulty=config.difficulty,
            behavior=BehaviorSettings(
                target_priority=config.target_priority,
                attack_pattern=config.attack_pattern,
            ),
        )
        self.last_update = self.clock()
        self.add_log(f"Raid created against {self.boss.card.name} (level {self.boss.level}).")

    # --- Setup ---

    @staticmethod
    def _build_player(raw: Dict[str, Any]) -> RaidPlayer:
        pokemon = raw.get("pokemon") or {}
        return RaidPlayer(
            id=raw["id"],
            username=raw.get("username") or raw["id"],
            pokemon=PokemonPair(
                active=Pokemon.from_dict(pokemon.get("active"), DEFAULT_ACTIVE_POKEMON, PokemonStatus.ACTIVE),
                bench=Pokemon.from_dict(pokemon.get("bench"), DEFAULT_BENCH_POKEMON, PokemonStatus.BENCHED),
            ),
        )

    def _initialize_boss(self) -> Boss:
        total = sum(p.offense for p in self.players.values())
        level = boss_level_for_damage(total)
        card = self.config.boss_card or DEFAULT_BOSS_CARD
        return Boss.for_level(card, level)

    def _on_deck_reshuffled(self, moved: int):
        self.add_log(f"The boss reshuffles {moved} attack cards.")
        self.boss_ai.log_decision("deck_reshuffled", {"cards_reshuffled": moved})

    def start(self) -> Dict[str, Any]:
        if self.game_phase != GamePhase.SETUP:
            return failure("Raid already started")
        self.game_phase = GamePhase.PLAYING
        self.add_log("Raid started.")
        self.log_event({"type": "game_started", "boss": self.boss.to_public_dict()})
        self._touch()
        return success(game_phase=self.game_phase.value, turn_info=self.turn_manager.get_current_turn_info())

    def reset(self) -> Dict[str, Any]:
        for player in self.players.values():
            pokemon = player.pokemon
            for mon, status in ((pokemon.active, PokemonStatus.ACTIVE), (pokemon.bench, PokemonStatus.BENCHED)):
                mon.hp = mon.max_hp
                mon.status = status
                mon.status_conditions = []
            if player.status != PlayerStatus.ACTIVE:
                self.spectator_manager.spectators.pop(player.id, None)
            player.status = PlayerStatus.ACTIVE
            player.ko_count = 0
            player.has_used_gx = False
            player.can_use_cheer = False
            player.last_action = None

        self.boss = self._initialize_boss()
        self.total_ko_count = 0
        self.cheer_cards_used = 0
        self.available_cheer_cards = list(CHEER_CARD_NUMBERS)
        self.double_damage_pending = False
        self.damage_boost = 0
        self.attack_deck = AttackDeck(len(self.players), self.rng, on_reshuffle=self._on_deck_reshuffled)
        self.turn_manager.initialize_turn_order()
        self.game_phase = GamePhase.PLAYING
        self.add_log("Raid reset.")
        self.log_event({"type": "game_reset"})
        self._touch()
        return success(game_state=self.get_game_state())

    # --- Helpers ---

    def add_log(self, message: str):
        self.log.append(message)
        logger.info("Raid %s: %s", self.raid_id, message)

    def log_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        return self.spectator_manager.log_event(event)

    def queue_event(self, event: Dict[str, Any]):
        self.event_queue.append(event)

    def drain_events(self) -> List[Dict[str, Any]]:
        events, self.event_queue = self.event_queue, []
        return events

    def get_active_players(self) -> List[RaidPlayer]:
        return [p for p in self.players.values() if p.is_active]

    def _touch(self):
        self.last_update = self.clock()

    def _require_playing(self):
        if self.game_phase != GamePhase.PLAYING:
            raise InvalidActionError("Game not active")

    def _require_active_player(self, player_id: str) -> RaidPlayer:
        player = self.players.get(player_id)
        if player is None or not player.is_active:
            raise InvalidActionError("Player not active")
        return player

    # --- Player actions ---

    def process_player_attack(self, player_id: str, pokemon: Any = PokemonSlot.ACTIVE, attack_name: str = "") -> Dict[str, Any]:
        try:
            self._require_playing()
            player = self._require_active_player(player_id)
            current = self.turn_manager.get_current_player()
            if current is None or current.player_id != player_id:
                raise InvalidActionError("Not your turn")
            slot = parse_enum(PokemonSlot, pokemon)
            attacker = player.pokemon.get(slot)
            if attacker.is_ko:
                raise InvalidActionError("Pokemon is KO'd")
            attack = attacker.find_attack(attack_name)
            if attack is None:
                raise InvalidActionError("Attack not found")
        except InvalidActionError as exc:
            return failure(str(exc))

        damage = attack.damage
        if self.double_damage_pending:
            damage *= 2
            self.double_damage_pending = False
        damage += self.damage_boost

        self.boss.take_damage(damage)
        player.last_action = {
            "type": "attack",
            "pokemon": slot.value,
            "attack": attack.name,
            "damage": damage,
            "timestamp": self.clock(),
        }
        self.add_log(f"{player.username}'s {attacker.name} used {attack.name} for {damage} damage.")
        self.log_event({
            "type": "player_attack",
            "player_id": player_id,
            "username": player.username,
            "pokemon": attacker.name,
            "attack": attack.name,
            "damage": damage,
            "boss_hp": self.boss.current_hp,
        })

        win = self.check_win_condition()
        if not win["has_won"]:
            self.turn_manager.complete_player_turn()
        self._touch()
        return success(
            damage=damage,
            new_boss_hp=self.boss.current_hp,
            boss_defeated=self.boss.is_defeated,
            game_phase=self.game_phase.value,
            next_turn=self.turn_manager.get_current_turn_info(),
        )

    def process_player_retreat(self, player_id: str) -> Dict[str, Any]:
        try:
            self._require_playing()
            player = self._require_active_player(player_id)
        except InvalidActionError as exc:
            return failure(str(exc))

        pokemon = player.pokemon
        pokemon.swap()
        # KO'd Pokemon keep their status through a swap.
        if not pokemon.active.is_ko:
            pokemon.active.status = PokemonStatus.ACTIVE
        if not pokemon.bench.is_ko:
            pokemon.bench.status = PokemonStatus.BENCHED
        player.last_action = {"type": "retreat", "timestamp": self.clock()}
        self.add_log(f"{player.username} retreated {pokemon.bench.name} for {pokemon.active.name}.")
        self.log_event({
            "type": "player_retreat",
            "player_id": player_id,
            "username": player.username,
            "new_active": pokemon.active.name,
        })
        self._touch()
        return success(
            new_active=pokemon.active.to_public_dict(),
            new_bench=pokemon.bench.to_public_dict(),
        )

    def process_cheer_card(self, player_id: str, card_number: int, target: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            self._require_playing()
            player = self._require_active_player(player_id)
            if not player.can_use_cheer:
                raise InvalidActionError("Cannot use cheer card")
            if self.cheer_cards_used >= self.max_cheer_cards:
                raise InvalidActionError("Maximum cheer cards used")
            if card_number not in self.available_cheer_cards:
                raise InvalidActionError("Cheer card not available")
            heal_target = self._resolve_heal_target(target) if card_number == 3 else None
        except InvalidActionError as exc:
            return failure(str(exc))

        effect = self._apply_cheer_effect(card_number, heal_target)
        self.available_cheer_cards.remove(card_number)
        self.cheer_cards_used += 1
        player.can_use_cheer = False
        player.last_action = {"type": "cheer", "card_number": card_number, "timestamp": self.clock()}
        self.add_log(f"{player.username} played cheer card {card_number}: {effect}.")
        self.log_event({
            "type": "cheer_card_used",
            "player_id": player_id,
            "username": player.username,
            "card_number": card_number,
            "effect": effect,
        })
        self._touch()
        return success(
            cheer_card=card_number,
            effect=effect,
            cheer_cards_remaining=self.max_cheer_cards - self.cheer_cards_used,
        )

    def _resolve_heal_target(self, target: Optional[Dict[str, Any]]) -> Pokemon:
        if not target or not target.get("player_id"):
            raise InvalidActionError("Full heal requires a target")
        owner = self.players.get(target["player_id"])
        if owner is None or not owner.is_active:
            raise InvalidActionError("Invalid heal target")
        slot = parse_enum(PokemonSlot, target.get("pokemon") or PokemonSlot.ACTIVE)
        mon = owner.pokemon.get(slot)
        if mon.is_ko:
            raise InvalidActionError("Invalid heal target")
        return mon

    def _apply_cheer_effect(self, card_number: int, heal_target: Optional[Pokemon]) -> str:
        if card_number == 1:
            self.double_damage_pending = True
            return "double_damage"
        if card_number == 2:
            for p in self.get_active_players():
                if not p.pokemon.active.is_ko:
                    p.pokemon.active.heal(CHEER_HEAL_AMOUNT)
            return "heal_all"
        if card_number == 3:
            heal_target.hp = heal_target.max_hp
            return "full_heal"
        if card_number == 4:
            self.boss.max_attacks_per_turn = 1
            return "boss_limited"
        self.damage_boost = CHEER_DAMAGE_BOOST
        return "damage_boost"

    # --- Boss turn ---

    def process_boss_turn(self) -> Dict[str, Any]:
        if self.game_phase != GamePhase.PLAYING:
            return failure("Game not active")
        if self.turn_manager.current_phase != TurnPhase.BOSS_TURN:
            return failure("Not boss turn")

        self.boss.attacks_this_turn = 0
        actions = self.boss_ai.generate_boss_actions()
        results: List[Dict[str, Any]] = []
        for card in actions:
            if self.boss.attacks_this_turn >= self.boss.max_attacks_per_turn:
                break
            results.append(self.execute_boss_attack(card))
            self.boss.attacks_this_turn += 1

        eliminated = self.check_player_eliminations()
        self.boss.reset_attack_allowance()
        self.damage_boost = 0

        loss = self.check_loss_condition()
        self.check_win_condition()
        if self.game_phase == GamePhase.PLAYING:
            self.turn_manager.advance_turn()
        self._touch()
        return success(
            boss_actions=results,
            eliminated_players=eliminated,
            game_phase=self.game_phase.value,
            loss=loss,
            next_turn=self.turn_manager.get_current_turn_info(),
        )

    def execute_boss_attack(self, card: AttackCard) -> Dict[str, Any]:
        active_players = self.get_active_players()
        if not active_players:
            return failure("No active players", attack_number=card.attack_number)
        target = active_players[(card.target_player - 1) % len(active_players)]
        mon = target.pokemon.active
        if mon.is_ko:
            return failure("Invalid target", attack_number=card.attack_number, target_player=target.id)

        ko = mon.take_damage(card.damage)
        self.add_log(f"Boss attack {card.attack_number} hits {target.username}'s {mon.name} for {card.damage}.")
        if ko:
            target.ko_count += 1
            self.total_ko_count += 1
            target.can_use_cheer = True
            self.add_log(f"{target.username}'s {mon.name} was knocked out!")
            self.log_event({
                "type": "pokemon_ko",
                "player_id": target.id,
                "username": target.username,
                "pokemon": mon.name,
                "total_ko_count": self.total_ko_count,
                "priority": True,
            })
        self.log_event({
            "type": "boss_attack",
            "attack_number": card.attack_number,
            "target_player": target.id,
            "damage": card.damage,
            "ko_occurred": ko,
        })
        return success(
            attack_number=card.attack_number,
            target_player=target.id,
            damage=card.damage,
            ko_occurred=ko,
            total_ko_count=self.total_ko_count,
        )

    # --- Eliminations / departures ---

    def check_player_eliminations(self) -> List[str]:
        eliminated: List[str] = []
        for player in self.get_active_players():
            if player.pokemon.all_ko:
                self._retire_player(player, PlayerStatus.SPECTATOR)
                self.add_log(f"{player.username} has no Pokemon left and now spectates.")
                eliminated.append(player.id)
        return eliminated

    def convert_to_spectator(self, player_id: str) -> Dict[str, Any]:
        """
        An active player leaves the fight but keeps watching.

        Only a full KO makes a player a ``spectator``; leaving by choice counts
        as ``eliminated`` and the player watches from an ex-player seat.
        """
        try:
            player = self._require_active_player(player_id)
        except InvalidActionError as exc:
            return failure(str(exc))
        if not self.spectator_manager.has_room_for(player_id):
            return failure("Maximum spectators reached")
        result = self._retire_player(player, PlayerStatus.ELIMINATED)
        self.add_log(f"{player.username} left the fight to spectate.")
        self.check_loss_condition()
        self._touch()
        return result

    def remove_player(self, player_id: str) -> Dict[str, Any]:
        """An active player leaves the raid entirely."""
        try:
            player = self._require_active_player(player_id)
        except InvalidActionError as exc:
            return failure(str(exc))
        player.status = PlayerStatus.ELIMINATED
        self.turn_manager.remove_from_turn_order(player_id)
        self.add_log(f"{player.username} left the raid.")
        self.log_event({"type": "player_left", "player_id": player_id, "username": player.username, "priority": True})
        self.check_loss_condition()
        self._touch()
        return success()

    def _retire_player(self, player: RaidPlayer, status: PlayerStatus) -> Dict[str, Any]:
        player.status = status
        self.turn_manager.remove_from_turn_order(player.id)
        result = self.spectator_manager.convert_player_to_spectator(player.id)
        if not result["success"]:
            logger.warning("Raid %s: could not seat %s as spectator: %s", self.raid_id, player.username, result["error"])
        return result

    # --- Win / loss ---

    def check_win_condition(self) -> Dict[str, Any]:
        if self.boss.current_hp <= 0:
            if self.game_phase == GamePhase.PLAYING:
                self.game_phase = GamePhase.VICTORY
                self.add_log(f"{self.boss.card.name} was defeated!")
                self.log_event({"type": "game_ended", "result": "victory", "reason": "Boss defeated!", "priority": True})
            return {"has_won": True, "reason": "Boss defeated!"}
        return {"has_won": False}

    def check_loss_condition(self) -> Dict[str, Any]:
        reason = None
        if self.total_ko_count >= self.max_ko_count:
            reason = "Too many Pokemon KO'd"
        elif not self.get_active_players():
            reason = "All players eliminated"
        if reason is None:
            return {"has_lost": False}
        if self.game_phase == GamePhase.PLAYING:
            self.game_phase = GamePhase.DEFEAT
            self.add_log(f"The raid was lost: {reason}.")
            self.log_event({"type": "game_ended", "result": "defeat", "reason": reason, "priority": True})
        return {"has_lost": True, "reason": reason}

    # --- Projections ---

    def get_game_state(self) -> Dict[str, Any]:
        return {
            "raid_id": self.raid_id,
            "game_phase": self.game_phase.value,
            "boss": self.boss.to_public_dict(),
            "players": {pid: p.to_public_dict() for pid, p in self.players.items()},
            "spectators": [r.to_public_dict() for r in self.spectator_manager.spectators.values()],
            "turn_info": self.turn_manager.get_current_turn_info(),
            "ko_tracking": {
                "total_ko_count": self.total_ko_count,
                "max_ko_count": self.max_ko_count,
            },
            "cheer_system": {
                "cheer_cards_used": self.cheer_cards_used,
                "max_cheer_cards": self.max_cheer_cards,
                "available_cheer_cards": list(self.available_cheer_cards),
            },
            "buffs": {
                "double_damage_pending": self.double_damage_pending,
                "damage_boost": self.damage_boost,
            },
            "boss_ai": self.boss_ai.get_boss_ai_state(),
            "attack_deck": {
                "remaining": self.attack_deck.remaining(),
                "discard": self.attack_deck.discard_count(),
            },
            "last_update": self.last_update,
            "log": self.log[-LOG_LINES_EXPOSED:],
        }

    def generate_turn_indicator(self) -> Dict[str, Any]:
        return self.turn_manager.generate_turn_indicator()
