"""Deck creation utilities for Carioca."""

from __future__ import annotations

from random import Random
from typing import List, Optional, Sequence, Tuple

from .cards import KING, NATURAL_SUITS, Card, Suit

DECKS_PER_GAME = 2
JOKERS_PER_DECK = 2


def build_deck(num_decks: int = DECKS_PER_GAME, jokers_per_deck: int = JOKERS_PER_DECK) -> List[Card]:
    """Return the ordered multi-deck: 52 naturals plus jokers per physical deck."""
    cards: List[Card] = []
    for deck_index in range(num_decks):
        for suit in NATURAL_SUITS:
            for value in range(1, KING + 1):
                cards.append(Card(f"{suit.value[0]}{value}-{deck_index}", suit, value))
        for joker_index in range(jokers_per_deck):
            cards.append(Card(f"JOKER-{deck_index}-{joker_index}", Suit.JOKER, 0))
    return cards


def shuffle_deck(cards: Sequence[Card], rng: Optional[Random] = None) -> List[Card]:
    shuffled = list(cards)
    (rng or Random()).shuffle(shuffled)
    return shuffled


def deal(
    deck: Sequence[Card],
    *,
    players: int,
    hand_size: int,
) -> Tuple[List[List[Card]], List[Card], List[Card]]:
    """Deal hands off the top of the deck and flip one card to seed the discard pile.

    Returns (hands, remaining deck, discard pile).
    """
    cards = list(deck)
    needed = players * hand_size + 1
    if len(cards) < needed:
        raise ValueError(f"Deck must contain at least {needed} cards to deal {players} hands.")

    hands = []
    for _ in range(players):
        hands.append(cards[:hand_size])
        cards = cards[hand_size:]
    discard_pile = [cards.pop()]
    return hands, cards, discard_pile
