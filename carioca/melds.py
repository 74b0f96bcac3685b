"""Meld shape validation: trios (same value) and escalas (same-suit runs)."""

from __future__ import annotations

from enum import Enum, auto
from typing import Dict, List, Optional, Sequence

from .cards import ACE, KING, Card

MIN_MELD_SIZE = 3
MIN_NATURALS = 2
RUN_CYCLE = KING
# An Ace inside a run (K-A-2 style wrap) needs this many cards to show direction.
MIN_WRAP_SIZE = 4


class MeldKind(Enum):
    TRIO = auto()
    ESCALA = auto()


def naturals_of(cards: Sequence[Card]) -> List[Card]:
    return [card for card in cards if not card.is_joker]


def jokers_of(cards: Sequence[Card]) -> List[Card]:
    return [card for card in cards if card.is_joker]


def joker_ratio_ok(naturals: int, jokers: int) -> bool:
    """A meld carries at least two naturals and never more jokers than naturals."""
    return naturals >= MIN_NATURALS and jokers <= naturals


def _size_ok(size: int, target_size: Optional[int], minimum: bool) -> bool:
    if size < MIN_MELD_SIZE:
        return False
    if target_size is None:
        return True
    return size >= target_size if minimum else size == target_size


def is_trio(cards: Sequence[Card], target_size: Optional[int] = None, minimum: bool = True) -> bool:
    """Return True for a group of same-valued cards (suits may repeat).

    ``target_size`` is a minimum ("4+") unless ``minimum`` is False, in which
    case the group must have exactly that many cards.
    """
    cards = list(cards)
    if not _size_ok(len(cards), target_size, minimum):
        return False
    naturals = naturals_of(cards)
    if not joker_ratio_ok(len(naturals), len(cards) - len(naturals)):
        return False
    first_value = naturals[0].value
    return all(card.value == first_value for card in naturals)


def run_window(start: int, length: int) -> List[int]:
    """Values of a run of ``length`` starting at ``start`` on the 13-value cycle."""
    return [((start - 1 + offset) % RUN_CYCLE) + 1 for offset in range(length)]


def window_allowed(window: Sequence[int]) -> bool:
    if len(window) > RUN_CYCLE:
        return False
    if ACE in window[1:-1]:
        return len(window) >= MIN_WRAP_SIZE
    return True


def escala_layout(cards: Sequence[Card]) -> Optional[List[Card]]:
    """Return the cards in run order with jokers in the slots they stand for.

    Returns None when the cards cannot form a single legal run.
    """
    cards = list(cards)
    size = len(cards)
    if size < MIN_MELD_SIZE or size > RUN_CYCLE:
        return None
    naturals = naturals_of(cards)
    jokers = jokers_of(cards)
    if not joker_ratio_ok(len(naturals), len(jokers)):
        return None
    if len({card.suit for card in naturals}) != 1:
        return None
    by_value: Dict[int, Card] = {card.value: card for card in naturals}
    if len(by_value) != len(naturals):
        return None

    best_key = None
    best_window: Optional[List[int]] = None
    for start in range(1, RUN_CYCLE + 1):
        window = run_window(start, size)
        if not window_allowed(window) or not set(by_value).issubset(window):
            continue
        leading_jokers = next(index for index, value in enumerate(window) if value in by_value)
        key = (ACE in window[1:-1], leading_jokers, start)
        if best_key is None or key < best_key:
            best_key = key
            best_window = window

    if best_window is None:
        return None
    spare = iter(jokers)
    return [by_value[value] if value in by_value else next(spare) for value in best_window]


def is_escala(cards: Sequence[Card], target_size: Optional[int] = None, minimum: bool = True) -> bool:
    """Return True for a same-suit run, jokers filling gaps, Ace low or high."""
    cards = list(cards)
    if not _size_ok(len(cards), target_size, minimum):
        return False
    return escala_layout(cards) is not None


def positional_window(meld: Sequence[Card]) -> Optional[List[int]]:
    """Values each slot of an already-arranged escala represents, or None."""
    naturals = [(index, card) for index, card in enumerate(meld) if not card.is_joker]
    if not naturals:
        return None
    index, card = naturals[0]
    start = ((card.value - 1 - index) % RUN_CYCLE) + 1
    window = run_window(start, len(meld))
    if not window_allowed(window):
        return None
    if any(window[i] != c.value for i, c in naturals):
        return None
    return window


def escala_slot_values(meld: Sequence[Card]) -> Optional[List[int]]:
    """Values aligned with ``meld`` order; falls back to the canonical layout."""
    window = positional_window(meld)
    if window is not None:
        return window
    layout = escala_layout(meld)
    if layout is None:
        return None
    start = next(
        ((c.value - 1 - i) % RUN_CYCLE) + 1 for i, c in enumerate(layout) if not c.is_joker
    )
    values_by_id = {c.id: v for c, v in zip(layout, run_window(start, len(layout)))}
    return [values_by_id[card.id] for card in meld]


def meld_kind(cards: Sequence[Card]) -> Optional[MeldKind]:
    """Classify a legal meld; a meld with two naturals is never ambiguous."""
    if is_trio(cards):
        return MeldKind.TRIO
    if is_escala(cards):
        return MeldKind.ESCALA
    return None


def arrange_meld(cards: Sequence[Card]) -> List[Card]:
    """Return the table order for a meld: run order for escalas, as given for trios."""
    if meld_kind(cards) is MeldKind.ESCALA:
        layout = escala_layout(cards)
        assert layout is not None
        return layout
    return list(cards)
