import pytest

from carioca.cards import Card, Suit
from carioca.steal import (
    MeldError,
    add_to_meld,
    can_add_to_meld,
    can_steal_joker,
    find_stealable_joker,
    joker_stand_ins,
    steal_joker,
)

SUITS = {"H": Suit.HEART, "D": Suit.DIAMOND, "C": Suit.CLUB, "S": Suit.SPADE}
FACES = {"A": 1, "J": 11, "Q": 12, "K": 13}


def c(code: str, deck: int = 0) -> Card:
    raw = code[1:]
    value = FACES[raw] if raw in FACES else int(raw)
    return Card(f"{code[0]}{value}-{deck}", SUITS[code[0]], value)


def joker(n: int = 0) -> Card:
    return Card(f"JOKER-{n // 2}-{n % 2}", Suit.JOKER, 0)


def ids(cards):
    return [card.id for card in cards]


def test_add_to_trio_matches_value():
    trio = [c("H5"), c("D5"), c("C5")]
    assert can_add_to_meld(c("S5"), trio)
    assert can_add_to_meld(c("H5", 1), trio)
    assert not can_add_to_meld(c("H6"), trio)
    assert ids(add_to_meld(c("S5"), trio)) == ["H5-0", "D5-0", "C5-0", "S5-0"]


def test_add_to_escala_open_ends():
    run = [c("H4"), c("H5"), c("H6")]
    assert can_add_to_meld(c("H7"), run)
    assert can_add_to_meld(c("H3"), run)
    assert not can_add_to_meld(c("D7"), run)
    assert not can_add_to_meld(c("H9"), run)
    assert ids(add_to_meld(c("H7"), run))[-1] == "H7-0"
    assert ids(add_to_meld(c("H3"), run))[0] == "H3-0"


def test_add_ace_after_king():
    run = [c("HJ"), c("HQ"), c("HK")]
    assert can_add_to_meld(c("HA"), run)
    assert ids(add_to_meld(c("HA"), run)) == ["H11-0", "H12-0", "H13-0", "H1-0"]
    assert can_add_to_meld(c("H2"), [c("HQ"), c("HK"), c("HA")])


def test_add_joker_respects_ratio():
    run = [c("H4"), c("H5"), c("H6")]
    assert can_add_to_meld(joker(), run)
    assert len(add_to_meld(joker(), run)) == 4

    crowded = [c("H5"), c("D5"), joker(0), joker(1)]
    assert not can_add_to_meld(joker(2), crowded)


def test_add_rejects_with_error():
    with pytest.raises(MeldError):
        add_to_meld(c("H9"), [c("H4"), c("H5"), c("H6")])


def test_steal_from_trio_needs_missing_suit():
    meld = [c("S10"), c("H10"), joker()]
    assert can_steal_joker(c("C10"), meld)
    assert can_steal_joker(c("D10"), meld)
    assert not can_steal_joker(c("S10", 1), meld)
    assert not can_steal_joker(c("C9"), meld)

    new_meld, freed = steal_joker(c("C10"), meld)
    assert ids(new_meld) == ["S10-0", "H10-0", "C10-0"]
    assert freed.is_joker


def test_steal_from_escala_needs_exact_card():
    meld = [c("D4"), joker(), c("D6")]
    assert joker_stand_ins(meld) == {1: (Suit.DIAMOND, 5)}
    assert find_stealable_joker(c("D5"), meld) == 1
    assert not can_steal_joker(c("H5"), meld)
    assert not can_steal_joker(c("D7"), meld)


def test_steal_requires_two_naturals_and_a_held_card():
    assert not can_steal_joker(c("D5"), [c("D4"), joker(0), joker(1)])
    meld = [c("S10"), c("H10"), joker()]
    assert not can_steal_joker(c("C10"), meld, hand=[c("H2")])
    assert can_steal_joker(c("C10"), meld, hand=[c("H2"), c("C10")])
    with pytest.raises(MeldError):
        steal_joker(c("S10", 1), meld)
