"""Seat traversal helpers."""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence


class Direction(Enum):
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter-clockwise"

    @property
    def step(self) -> int:
        return 1 if self is Direction.CLOCKWISE else -1


def get_next_turn_index(direction: Direction, current_turn: int, player_count: int) -> int:
    return (current_turn + direction.step + player_count) % player_count


def round_starter(round_number: int, player_count: int, direction: Direction) -> int:
    """Seat that opens ``round_number``; the opener moves one seat per round."""
    return (direction.step * (round_number - 1)) % player_count


def priority_distance(direction: Direction, current_turn: int, seat: int, player_count: int) -> int:
    """How many seats after the current player ``seat`` plays; 0 for the current player."""
    return (direction.step * (seat - current_turn)) % player_count


def move_turn_order(order: Sequence[str], player_id: str, direction: str) -> List[str]:
    """Swap ``player_id`` one place up or down; invalid moves return the order unchanged."""
    order = list(order)
    if player_id not in order:
        return order
    index = order.index(player_id)
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(order):
        return order
    order[index], order[target] = order[target], order[index]
    return order
