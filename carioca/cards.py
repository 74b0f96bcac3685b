"""Card-related data structures and helpers for Carioca."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping


class Suit(Enum):
    HEART = "HEART"
    DIAMOND = "DIAMOND"
    CLUB = "CLUB"
    SPADE = "SPADE"
    JOKER = "JOKER"

    def __str__(self) -> str:
        return self.name.lower()


NATURAL_SUITS: tuple[Suit, ...] = (Suit.HEART, Suit.DIAMOND, Suit.CLUB, Suit.SPADE)

ACE = 1
JACK = 11
QUEEN = 12
KING = 13

JOKER_POINTS = 20
ACE_POINTS = 15
FACE_POINTS = 10

FACE_LABELS: dict[int, str] = {ACE: "A", JACK: "J", QUEEN: "Q", KING: "K"}


@dataclass(frozen=True)
class Card:
    """Immutable playing card. Identity is the id; suit/value pairs repeat across decks."""

    id: str
    suit: Suit
    value: int

    @property
    def is_joker(self) -> bool:
        return self.suit is Suit.JOKER or self.value == 0


def card_points(card: Card) -> int:
    """Return the penalty points a card is worth when left in hand."""
    if card.is_joker:
        return JOKER_POINTS
    if card.value == ACE:
        return ACE_POINTS
    if JACK <= card.value <= KING:
        return FACE_POINTS
    return card.value


def calculate_hand_points(hand: Iterable[Card]) -> int:
    return sum(card_points(card) for card in hand)


def display_value(value: int) -> str:
    return FACE_LABELS.get(value, str(value))


def serialize_card(card: Card) -> dict:
    return {"id": card.id, "suit": card.suit.value, "value": card.value}


def deserialize_card(payload: Mapping) -> Card:
    suit_name = str(payload["suit"]).upper()
    return Card(id=str(payload["id"]), suit=Suit[suit_name], value=int(payload["value"]))


def card_label(card: Card) -> str:
    if card.is_joker:
        return "Joker"
    return f"{display_value(card.value)} of {card.suit.name.title()}s"
