"""Buy allowance bookkeeping."""

from __future__ import annotations

MAX_BUYS = 7
BUY_PENALTY = 10
BUY_EXTRAS_CURRENT = 3
BUY_EXTRAS_OTHER = 2


def get_remaining_buys(buys_used: int, max_buys: int = MAX_BUYS) -> int:
    return max(0, max_buys - (buys_used or 0))


def get_buy_penalty(buys_used: int, max_buys: int = MAX_BUYS, penalty: int = BUY_PENALTY) -> int:
    return penalty if get_remaining_buys(buys_used, max_buys) > 0 else 0


def apply_remaining_buys_penalty(
    score: int,
    buys_used: int,
    max_buys: int = MAX_BUYS,
    penalty: int = BUY_PENALTY,
) -> int:
    """Final-score adjustment for players who finish with buys left over."""
    return score - get_buy_penalty(buys_used, max_buys, penalty)


def get_buy_extras_count(is_current_player: bool) -> int:
    return BUY_EXTRAS_CURRENT if is_current_player else BUY_EXTRAS_OTHER


def get_buy_total_cards(is_current_player: bool) -> int:
    """The bought discard plus the extra cards from the deck."""
    return 1 + get_buy_extras_count(is_current_player)
