"""Adding cards to table melds and stealing jokers out of them."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from .cards import Card, Suit
from .melds import (
    MeldKind,
    RUN_CYCLE,
    escala_layout,
    escala_slot_values,
    is_escala,
    joker_ratio_ok,
    jokers_of,
    meld_kind,
    naturals_of,
    positional_window,
)


class MeldError(ValueError):
    """Raised when a card cannot be placed into a meld."""


def _open_ends(meld: Sequence[Card]) -> Tuple[Optional[int], Optional[int]]:
    """Values that would extend an escala at its low and high ends."""
    values = escala_slot_values(meld)
    if values is None or len(values) >= RUN_CYCLE:
        return None, None
    low = ((values[0] - 2) % RUN_CYCLE) + 1
    high = (values[-1] % RUN_CYCLE) + 1
    return low, high


def can_add_to_meld(card: Card, meld: Sequence[Card]) -> bool:
    kind = meld_kind(meld)
    if kind is None:
        return False
    naturals = naturals_of(meld)
    if card.is_joker:
        if not joker_ratio_ok(len(naturals), len(jokers_of(meld)) + 1):
            return False
        return kind is MeldKind.TRIO or is_escala(list(meld) + [card])

    if kind is MeldKind.TRIO:
        return card.value == naturals[0].value

    if card.suit is not naturals[0].suit:
        return False
    low, high = _open_ends(meld)
    if card.value not in (low, high):
        return False
    return is_escala(list(meld) + [card])


def add_to_meld(card: Card, meld: Sequence[Card]) -> List[Card]:
    """Return a new meld with ``card`` placed where it extends the group."""
    if not can_add_to_meld(card, meld):
        raise MeldError("The card does not fit this meld.")
    if meld_kind(meld) is MeldKind.TRIO:
        return list(meld) + [card]

    arranged = list(meld)
    if positional_window(arranged) is None:
        arranged = _rearranged(arranged)
    low, high = _open_ends(arranged)
    if card.is_joker:
        extended = arranged + [card]
        if positional_window(extended) is not None:
            return extended
        return [card] + arranged
    if card.value == low and card.value != high:
        return [card] + arranged
    extended = arranged + [card]
    if positional_window(extended) is not None:
        return extended
    return [card] + arranged


def _rearranged(meld: List[Card]) -> List[Card]:
    layout = escala_layout(meld)
    return layout if layout is not None else meld


def joker_stand_ins(meld: Sequence[Card]) -> Dict[int, Tuple[Suit, int]]:
    """Map each joker slot of an escala to the natural card it represents."""
    if meld_kind(meld) is not MeldKind.ESCALA:
        return {}
    values = escala_slot_values(meld)
    if values is None:
        return {}
    suit = naturals_of(meld)[0].suit
    return {index: (suit, values[index]) for index, card in enumerate(meld) if card.is_joker}


def find_stealable_joker(card: Card, meld: Sequence[Card]) -> Optional[int]:
    """Return the index of the joker ``card`` can replace, or None."""
    if card.is_joker:
        return None
    joker_slots = [index for index, c in enumerate(meld) if c.is_joker]
    if not joker_slots:
        return None
    naturals = naturals_of(meld)
    if len(naturals) < 2:
        return None

    kind = meld_kind(meld)
    if kind is MeldKind.TRIO:
        if card.value != naturals[0].value:
            return None
        if card.suit in {c.suit for c in naturals}:
            return None
        return joker_slots[0]
    if kind is MeldKind.ESCALA:
        for index, (suit, value) in joker_stand_ins(meld).items():
            if suit is card.suit and value == card.value:
                return index
    return None


def can_steal_joker(card: Card, meld: Sequence[Card], hand: Optional[Sequence[Card]] = None) -> bool:
    """Return True when ``card`` may displace a joker in ``meld``.

    When ``hand`` is given the card must also be held by the stealer.
    """
    if hand is not None and all(held.id != card.id for held in hand):
        return False
    return find_stealable_joker(card, meld) is not None


def steal_joker(card: Card, meld: Sequence[Card]) -> Tuple[List[Card], Card]:
    """Swap ``card`` into the joker's slot; returns (new meld, freed joker)."""
    index = find_stealable_joker(card, meld)
    if index is None:
        raise MeldError("This joker cannot be stolen with that card.")
    new_meld = list(meld)
    joker = new_meld[index]
    new_meld[index] = card
    return new_meld, joker
