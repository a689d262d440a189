from __future__ import annotations

import random
from collections import Counter

from raid_core.attack_deck import AttackDeck


def _signature(cards) -> Counter:
    return Counter((c.attack_number, c.target_player, c.draw_another, c.damage) for c in cards)


def test_default_deck_has_twenty_cards_with_fixed_groups() -> None:
    deck = AttackDeck(3, random.Random(1))

    assert len(deck) == 20
    counts = Counter(c.attack_number for c in deck.cards)
    assert counts == {1: 6, 2: 8, 3: 6}
    damage = {c.attack_number: c.damage for c in deck.cards}
    assert damage == {1: 30, 2: 60, 3: 100}
    assert all(c.draw_another for c in deck.cards if c.attack_number == 1)


def test_targets_cycle_over_at_most_four_players() -> None:
    deck = AttackDeck(6, random.Random(2))
    assert {c.target_player for c in deck.cards} == {1, 2, 3, 4}

    solo = AttackDeck(1, random.Random(2))
    assert {c.target_player for c in solo.cards} == {1}


def test_build_is_deterministic_for_a_seed() -> None:
    first = AttackDeck(2, random.Random(42))
    second = AttackDeck(2, random.Random(42))

    assert [c.to_public_dict() for c in first.cards] == [c.to_public_dict() for c in second.cards]


def test_draw_moves_card_to_discard() -> None:
    deck = AttackDeck(2, random.Random(3))
    top = deck.cards[-1]

    drawn = deck.draw()

    assert drawn is top
    assert deck.remaining() == 19
    assert deck.discard_count() == 1
    assert deck.discard[-1] is drawn


def test_peek_returns_cards_in_draw_order_without_drawing() -> None:
    deck = AttackDeck(2, random.Random(4))

    upcoming = deck.peek(3)

    assert deck.remaining() == 20
    assert [deck.draw() for _ in range(3)] == upcoming
    assert deck.peek(0) == []


def test_empty_deck_reshuffles_discard_and_conserves_cards() -> None:
    deck = AttackDeck(4, random.Random(5))
    original = _signature(deck.cards)
    reshuffles = []
    deck.on_reshuffle = reshuffles.append

    for _ in range(25):
        assert deck.draw() is not None
        assert deck.total_cards == 20
        assert _signature(deck.cards + deck.discard) == original

    assert reshuffles == [20]


def test_draw_returns_none_when_both_piles_are_empty() -> None:
    deck = AttackDeck(2, random.Random(6))
    deck.cards = []
    deck.discard = []

    assert not deck.has_cards()
    assert deck.draw() is None
    assert deck.reshuffle() == 0


def test_chaining_is_frozen_at_build_time() -> None:
    deck = AttackDeck(2, random.Random(9))
    before = [(id(c), c.draw_another) for c in deck.cards]

    for _ in range(20):
        deck.draw()
    deck.reshuffle()

    after = {id(c): c.draw_another for c in deck.cards}
    assert all(after[key] == flag for key, flag in before)


def test_reset_rebuilds_full_deck() -> None:
    deck = AttackDeck(2, random.Random(10))
    for _ in range(7):
        deck.draw()

    deck.reset()

    assert deck.remaining() == 20
    assert deck.discard_count() == 0
