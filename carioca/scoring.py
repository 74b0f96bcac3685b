"""Round and game scoring for Carioca."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .buys import BUY_PENALTY, MAX_BUYS, apply_remaining_buys_penalty
from .cards import calculate_hand_points
from .state import Player


@dataclass(frozen=True)
class RoundScoreResult:
    winner_id: Optional[str]
    round_points: Dict[str, int]


def score_round(players: Sequence[Player], winner_id: Optional[str]) -> RoundScoreResult:
    """Everyone except the player who went out scores the cards left in hand.

    ``winner_id`` is None when the round ended because the deck ran dry.
    """
    points = {
        player.id: 0 if player.id == winner_id else calculate_hand_points(player.hand)
        for player in players
    }
    return RoundScoreResult(winner_id=winner_id, round_points=points)


def apply_final_penalties(
    players: Sequence[Player],
    *,
    max_buys: int = MAX_BUYS,
    penalty: int = BUY_PENALTY,
) -> Dict[str, int]:
    """Return each player's final score after the unused-buys adjustment."""
    return {
        player.id: apply_remaining_buys_penalty(player.score, player.buys_used, max_buys, penalty)
        for player in players
    }


def determine_winners(players: Sequence[Player]) -> List[str]:
    """Lowest cumulative score wins; ties share the win."""
    if not players:
        return []
    best = min(player.score for player in players)
    return [player.id for player in players if player.score == best]
