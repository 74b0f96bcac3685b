import json

import pytest
from pydantic import ValidationError

from carioca.cards import Card, Suit
from carioca.rules_schema import RuleSet, load_rules
from carioca.scoring import apply_final_penalties, determine_winners, score_round
from carioca.state import Player
from carioca.turn import Direction


def make_player(player_id: str, hand=(), score: int = 0, buys_used: int = 0) -> Player:
    return Player(id=player_id, name=player_id.upper(), hand=list(hand), score=score, buys_used=buys_used)


def test_round_scores_hand_points_for_everyone_but_the_winner():
    players = [
        make_player("a"),
        make_player("b", [Card("H1-0", Suit.HEART, 1), Card("JOKER-0-0", Suit.JOKER, 0)]),
        make_player("c", [Card("S7-0", Suit.SPADE, 7)]),
    ]
    result = score_round(players, "a")
    assert result.round_points == {"a": 0, "b": 35, "c": 7}

    exhausted = score_round(players, None)
    assert exhausted.winner_id is None
    assert exhausted.round_points["c"] == 7


def test_final_penalty_only_with_buys_left():
    players = [make_player("a", score=50), make_player("b", score=50, buys_used=7)]
    assert apply_final_penalties(players) == {"a": 40, "b": 50}


def test_lowest_score_wins_with_ties():
    players = [make_player("a", score=30), make_player("b", score=12), make_player("c", score=12)]
    assert determine_winners(players) == ["b", "c"]
    assert determine_winners([]) == []


def test_rule_defaults():
    rules = RuleSet()
    assert rules.deck_size == 108
    assert (rules.hand_size, rules.max_buys, rules.total_rounds) == (11, 7, 8)
    assert rules.turn_direction is Direction.CLOCKWISE


def test_rules_reject_bad_tables():
    with pytest.raises(ValidationError):
        RuleSet(max_players=10)
    with pytest.raises(ValidationError):
        RuleSet(hand_size=0)
    with pytest.raises(ValidationError):
        RuleSet(min_players=6, max_players=5)
    with pytest.raises(ValidationError):
        RuleSet(direction="sideways")


def test_load_rules_from_json(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"max_buys": 5, "direction": "counter-clockwise"}), encoding="utf-8")
    rules = load_rules(path)
    assert rules.max_buys == 5
    assert rules.turn_direction is Direction.COUNTER_CLOCKWISE
