import logging
import random
from typing import Callable, List, Optional, Sequence, Tuple

from .models import AttackCard

logger = logging.getLogger(__name__)

# (attack number, copies, damage, chance the card chains into another draw)
DeckLayout = Sequence[Tuple[int, int, int, float]]
DEFAULT_DECK_LAYOUT: DeckLayout = (
    (1, 6, 30, 1.0),
    (2, 8, 60, 0.5),
    (3, 6, 100, 0.25),
)
MAX_TARGET_SLOTS = 4


class AttackDeck:
    """
    The boss's 20-card attack deck.

    Cards are drawn from the end of ``cards`` and go to ``discard``. When the
    deck runs dry the discard pile is shuffled back in, so the two piles
    together always hold the cards built at setup.
    """

    def __init__(
        self,
        player_count: int,
        rng: random.Random,
        layout: DeckLayout = DEFAULT_DECK_LAYOUT,
        on_reshuffle: Optional[Callable[[int], None]] = None,
    ):
        self.rng = rng
        self.player_count = player_count
        self.layout = layout
        self.on_reshuffle = on_reshuffle
        self.cards: List[AttackCard] = []
        self.discard: List[AttackCard] = []
        self.reset()

    @staticmethod
    def build_cards(player_count: int, rng: random.Random, layout: DeckLayout = DEFAULT_DECK_LAYOUT) -> List[AttackCard]:
        slots = max(1, min(MAX_TARGET_SLOTS, player_count))
        cards: List[AttackCard] = []
        for attack_number, copies, damage, chain_chance in layout:
            for i in range(copies):
                # A certain chain never consumes a random roll.
                draw_another = chain_chance >= 1.0 or rng.random() < chain_chance
                cards.append(
                    AttackCard(
                        attack_number=attack_number,
                        target_player=(i % slots) + 1,
                        draw_another=draw_another,
                        damage=damage,
                    )
                )
        return cards

    def reset(self):
        self.cards = self.build_cards(self.player_count, self.rng, self.layout)
        self.rng.shuffle(self.cards)
        self.discard = []

    def __len__(self) -> int:
        return len(self.cards)

    def remaining(self) -> int:
        return len(self.cards)

    def discard_count(self) -> int:
        return len(self.discard)

    @property
    def total_cards(self) -> int:
        return len(self.cards) + len(self.discard)

    def has_cards(self) -> bool:
        return self.total_cards > 0

    def draw(self) -> Optional[AttackCard]:
        if not self.cards:
            self.reshuffle()
        if not self.cards:
            return None
        card = self.cards.pop()
        self.discard.append(card)
        return card

    def reshuffle(self) -> int:
        """Move the discard pile back into the deck. Returns cards moved."""
        if not self.discard:
            return 0
        moved = len(self.discard)
        self.cards.extend(self.discard)
        self.discard = []
        self.rng.shuffle(self.cards)
        logger.debug("Boss attack deck reshuffled (%s cards)", moved)
        if self.on_reshuffle:
            self.on_reshuffle(moved)
        return moved

    def peek(self, count: int) -> List[AttackCard]:
        """The next ``count`` cards in draw order, without drawing them."""
        if count <= 0:
            return []
        return list(reversed(self.cards[-count:]))
