"""Hand analysis: candidate groups and contract search for advice and bots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .cards import NATURAL_SUITS, Card, Suit
from .contracts import contract_for_round
from .melds import (
    MIN_MELD_SIZE,
    MeldKind,
    RUN_CYCLE,
    arrange_meld,
    joker_ratio_ok,
    jokers_of,
    naturals_of,
    run_window,
    window_allowed,
)

SUIT_ORDER: Dict[Suit, int] = {suit: index for index, suit in enumerate(NATURAL_SUITS)}
# Same-suit neighbours closer than this count as a partial escala.
ESCALA_REACH = 2


@dataclass
class PotentialGroups:
    trios: List[List[Card]] = field(default_factory=list)
    escalas: List[List[Card]] = field(default_factory=list)


@dataclass
class DownPlan:
    can_down: bool
    groups: List[List[Card]] = field(default_factory=list)


def sort_cards(hand: Sequence[Card]) -> List[Card]:
    """Jokers first, then suit order, then value. Ties keep their hand order."""
    return sorted(hand, key=lambda card: (not card.is_joker, SUIT_ORDER.get(card.suit, -1), card.value))


def _trio_candidates(cards: Sequence[Card], min_size: int) -> List[List[Card]]:
    naturals = naturals_of(cards)
    jokers = jokers_of(cards)
    by_value: Dict[int, List[Card]] = {}
    for card in naturals:
        by_value.setdefault(card.value, []).append(card)

    candidates = []
    for value, same in sorted(by_value.items()):
        for n_naturals in range(2, len(same) + 1):
            for n_jokers in range(0, min(len(jokers), n_naturals) + 1):
                if n_naturals + n_jokers < min_size:
                    continue
                candidates.append(same[:n_naturals] + jokers[:n_jokers])
    return candidates


def _escala_candidates(cards: Sequence[Card], min_size: int) -> List[List[Card]]:
    naturals = naturals_of(cards)
    jokers = jokers_of(cards)
    candidates = []
    seen: Set[Tuple[str, ...]] = set()
    for suit in NATURAL_SUITS:
        by_value: Dict[int, Card] = {}
        for card in naturals:
            if card.suit is suit:
                by_value.setdefault(card.value, card)
        if len(by_value) < 2:
            continue
        for length in range(max(min_size, MIN_MELD_SIZE), RUN_CYCLE + 1):
            for start in range(1, RUN_CYCLE + 1):
                window = run_window(start, length)
                if not window_allowed(window):
                    continue
                present = [by_value[value] for value in window if value in by_value]
                missing = length - len(present)
                if missing > len(jokers) or not joker_ratio_ok(len(present), missing):
                    continue
                group = arrange_meld(present + jokers[:missing])
                key = tuple(sorted(card.id for card in group))
                if key in seen:
                    continue
                seen.add(key)
                candidates.append(group)
    return candidates


def _ranked(candidates: List[List[Card]]) -> List[List[Card]]:
    """Fewest jokers first, then the largest group."""
    return sorted(candidates, key=lambda group: (len(jokers_of(group)), -len(group)))


def _drop_contained(groups: List[List[Card]]) -> List[List[Card]]:
    id_sets = [frozenset(card.id for card in group) for group in groups]
    kept = []
    for index, group in enumerate(groups):
        if any(index != other and id_sets[index] < id_sets[other] for other in range(len(groups))):
            continue
        kept.append(group)
    return kept


def find_potential_contract_groups(hand: Sequence[Card], round_number: int) -> PotentialGroups:
    """Maximal same-value clusters and same-suit runs, jokers filling in where allowed."""
    contract = contract_for_round(round_number)
    trio_size = contract.trio_size if contract and contract.trios else MIN_MELD_SIZE
    escala_size = contract.escala_size if contract and contract.escalas else MIN_MELD_SIZE
    return PotentialGroups(
        trios=_ranked(_drop_contained(_trio_candidates(hand, trio_size))),
        escalas=_ranked(_drop_contained(_escala_candidates(hand, escala_size))),
    )


def _contract_slots(round_number: int) -> List[Tuple[MeldKind, int]]:
    contract = contract_for_round(round_number)
    if contract is None:
        return []
    slots = [(MeldKind.ESCALA, contract.escala_size)] * contract.escalas
    slots += [(MeldKind.TRIO, contract.trio_size)] * contract.trios
    return slots


def _candidates_for(kind: MeldKind, cards: Sequence[Card], size: int) -> List[List[Card]]:
    if kind is MeldKind.TRIO:
        return _ranked(_trio_candidates(cards, size))
    return _ranked(_escala_candidates(cards, size))


def can_do_initial_down(hand: Sequence[Card], round_number: int) -> DownPlan:
    """Search for disjoint groups that satisfy the round's contract.

    Backtracks over the contract slots in order; dead ends are memoized by the
    set of cards still in hand, and branches that cannot both fill the
    remaining slots and keep one card for the discard are pruned.
    """
    slots = _contract_slots(round_number)
    if not slots:
        return DownPlan(False)
    failed: Set[Tuple[int, FrozenSet[str]]] = set()

    def search(slot: int, remaining: List[Card]) -> Optional[List[List[Card]]]:
        if slot == len(slots):
            return [] if remaining else None
        needed = sum(size for _, size in slots[slot:]) + 1
        if len(remaining) < needed:
            return None
        key = (slot, frozenset(card.id for card in remaining))
        if key in failed:
            return None
        kind, size = slots[slot]
        for group in _candidates_for(kind, remaining, size):
            used = {card.id for card in group}
            rest = [card for card in remaining if card.id not in used]
            found = search(slot + 1, rest)
            if found is not None:
                return [group] + found
        failed.add(key)
        return None

    groups = search(0, list(hand))
    if groups is None:
        return DownPlan(False)
    return DownPlan(True, groups)


def can_do_additional_down(hand: Sequence[Card], min_group_size: int = MIN_MELD_SIZE) -> DownPlan:
    """Greedily pick disjoint trios or escalas, always keeping one card back."""
    min_size = max(MIN_MELD_SIZE, min_group_size)
    remaining = list(hand)
    groups: List[List[Card]] = []
    while True:
        candidates = _ranked(_trio_candidates(remaining, min_size) + _escala_candidates(remaining, min_size))
        chosen = next((group for group in candidates if len(group) < len(remaining)), None)
        if chosen is None:
            break
        groups.append(chosen)
        used = {card.id for card in chosen}
        remaining = [card for card in remaining if card.id not in used]
    return DownPlan(bool(groups), groups)


def organize_hand_auto(hand: Sequence[Card], round_number: int) -> List[Card]:
    """Order a hand so that candidate groups sit together, loose cards last."""
    plan = can_do_initial_down(hand, round_number)
    groups = plan.groups if plan.can_down else []
    if not groups:
        potential = find_potential_contract_groups(hand, round_number)
        used: Set[str] = set()
        for group in potential.trios + potential.escalas:
            if any(card.id in used for card in group):
                continue
            groups.append(group)
            used.update(card.id for card in group)

    ordered: List[Card] = []
    placed: Set[str] = set()
    for group in groups:
        for card in group:
            ordered.append(card)
            placed.add(card.id)
    ordered.extend(sort_cards([card for card in hand if card.id not in placed]))
    return ordered


def _cycle_distance(a: int, b: int) -> int:
    gap = abs(a - b) % RUN_CYCLE
    return min(gap, RUN_CYCLE - gap)


def is_card_useful(card: Card, hand: Sequence[Card], round_number: int) -> bool:
    """True when ``card`` pairs with the hand towards the round's kind of group."""
    if card.is_joker:
        return True
    others = [held for held in naturals_of(hand) if held.id != card.id]
    if any(held.value == card.value for held in others):
        return True
    contract = contract_for_round(round_number)
    if contract is None or not contract.escalas:
        return False
    return any(
        held.suit is card.suit and 0 < _cycle_distance(held.value, card.value) <= ESCALA_REACH
        for held in others
    )
