from carioca.buys import (
    MAX_BUYS,
    apply_remaining_buys_penalty,
    get_buy_extras_count,
    get_buy_penalty,
    get_buy_total_cards,
    get_remaining_buys,
)
from carioca.turn import Direction, get_next_turn_index, move_turn_order, priority_distance, round_starter


def test_remaining_buys_clamped():
    assert MAX_BUYS == 7
    assert get_remaining_buys(0) == 7
    assert get_remaining_buys(5) == 2
    assert get_remaining_buys(7) == 0
    assert get_remaining_buys(9) == 0


def test_unused_buys_penalty():
    assert get_buy_penalty(0) == 10
    assert get_buy_penalty(6) == 10
    assert get_buy_penalty(7) == 0
    assert apply_remaining_buys_penalty(50, 0) == 40
    assert apply_remaining_buys_penalty(50, 7) == 50


def test_buy_card_counts():
    assert get_buy_extras_count(True) == 3
    assert get_buy_extras_count(False) == 2
    assert get_buy_total_cards(True) == 4
    assert get_buy_total_cards(False) == 3


def test_next_turn_wraps_both_ways():
    assert get_next_turn_index(Direction.CLOCKWISE, 3, 4) == 0
    assert get_next_turn_index(Direction.CLOCKWISE, 1, 4) == 2
    assert get_next_turn_index(Direction.COUNTER_CLOCKWISE, 0, 4) == 3
    assert get_next_turn_index(Direction.COUNTER_CLOCKWISE, 2, 4) == 1


def test_round_starter_rotates():
    assert round_starter(1, 3, Direction.CLOCKWISE) == 0
    assert round_starter(2, 3, Direction.CLOCKWISE) == 1
    assert round_starter(4, 3, Direction.CLOCKWISE) == 0
    assert round_starter(2, 3, Direction.COUNTER_CLOCKWISE) == 2


def test_priority_follows_play_direction():
    assert priority_distance(Direction.CLOCKWISE, 1, 2, 4) == 1
    assert priority_distance(Direction.CLOCKWISE, 1, 0, 4) == 3
    assert priority_distance(Direction.COUNTER_CLOCKWISE, 1, 0, 4) == 1
    assert priority_distance(Direction.CLOCKWISE, 1, 1, 4) == 0


def test_move_turn_order():
    order = ["a", "b", "c"]
    assert move_turn_order(order, "b", "up") == ["b", "a", "c"]
    assert move_turn_order(order, "b", "down") == ["a", "c", "b"]
    assert move_turn_order(order, "a", "up") == order
    assert move_turn_order(order, "c", "down") == order
    assert move_turn_order(order, "zed", "up") == order
    assert order == ["a", "b", "c"]
