"""Baseline greedy bot."""

from __future__ import annotations

from random import Random
from typing import List, Optional, Sequence

from carioca.actions import ActionType
from carioca.analyzer import can_do_additional_down, can_do_initial_down, is_card_useful
from carioca.buys import MAX_BUYS, get_remaining_buys
from carioca.cards import Card, card_points
from carioca.state import BotDifficulty, GameSession, Player
from carioca.steal import can_add_to_meld, can_steal_joker

from .base import BotMove, BotStrategy

# Chance of taking a useful discard instead of drawing blind.
DISCARD_APPETITE = {
    BotDifficulty.EASY: 0.1,
    BotDifficulty.MEDIUM: 0.5,
    BotDifficulty.HARD: 0.8,
}
# Buys a bot keeps in reserve before it stops buying out of turn.
BUY_RESERVE = {
    BotDifficulty.MEDIUM: 3,
    BotDifficulty.HARD: 1,
}


def choose_discard(hand: Sequence[Card], round_number: int) -> Card:
    """Highest-point natural that does not help the hand; jokers only as a last resort."""
    naturals = [card for card in hand if not card.is_joker]
    if not naturals:
        return hand[0]
    loose = [card for card in naturals if not is_card_useful(card, hand, round_number)]
    pool = loose or naturals
    return max(pool, key=lambda card: (card_points(card), card.id))


def _ids(groups: List[List[Card]]) -> List[List[str]]:
    return [[card.id for card in group] for group in groups]


class GreedyBot(BotStrategy):
    name = "Greedy"

    def __init__(
        self,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        seed: Optional[int] = None,
        max_buys: int = MAX_BUYS,
    ) -> None:
        self.difficulty = difficulty
        self.max_buys = max_buys
        self.rng = Random(seed)

    def choose_move(self, session: GameSession, player_id: str) -> Optional[BotMove]:
        player = session.player(player_id)
        if not player.has_drawn:
            return self._choose_draw(session, player)
        return (
            self._choose_down(session, player)
            or self._choose_add(session, player)
            or self._choose_steal(session, player)
            or BotMove(ActionType.DISCARD, {"cardId": choose_discard(player.hand, session.current_round).id})
        )

    def wants_to_buy(self, session: GameSession, player_id: str) -> bool:
        reserve = BUY_RESERVE.get(self.difficulty)
        if reserve is None:
            return False
        player = session.player(player_id)
        top = session.top_discard()
        if top is None or get_remaining_buys(player.buys_used, self.max_buys) <= reserve:
            return False
        return top.is_joker or is_card_useful(top, player.hand + [top], session.current_round)

    def _choose_draw(self, session: GameSession, player: Player) -> BotMove:
        top = session.top_discard()
        if top is not None and not session.top_discard_claimed:
            if top.is_joker and self.difficulty is BotDifficulty.HARD:
                return BotMove(ActionType.DRAW_DISCARD)
            useful = is_card_useful(top, player.hand + [top], session.current_round)
            if useful and self.rng.random() < DISCARD_APPETITE[self.difficulty]:
                return BotMove(ActionType.DRAW_DISCARD)
        return BotMove(ActionType.DRAW_DECK)

    def _choose_down(self, session: GameSession, player: Player) -> Optional[BotMove]:
        if player.has_melded():
            plan = can_do_additional_down(player.hand)
        else:
            plan = can_do_initial_down(player.hand, session.current_round)
        if not plan.can_down:
            return None
        return BotMove(ActionType.DOWN, {"groups": _ids(plan.groups)})

    def _choose_add(self, session: GameSession, player: Player) -> Optional[BotMove]:
        if not player.has_melded() or len(player.hand) <= 1:
            return None
        for card in player.hand:
            if card.is_joker:
                continue
            for owner in session.players:
                for index, meld in enumerate(owner.melds):
                    if can_add_to_meld(card, meld):
                        return BotMove(
                            ActionType.ADD_TO_MELD,
                            {"cardId": card.id, "targetPlayerId": owner.id, "meldIndex": index},
                        )
        return None

    def _choose_steal(self, session: GameSession, player: Player) -> Optional[BotMove]:
        if self.difficulty is BotDifficulty.EASY:
            return None
        for card in player.hand:
            if card.is_joker:
                continue
            for owner in session.players:
                for index, meld in enumerate(owner.melds):
                    if can_steal_joker(card, meld, player.hand):
                        return BotMove(
                            ActionType.STEAL_JOKER,
                            {"cardId": card.id, "targetPlayerId": owner.id, "meldIndex": index},
                        )
        return None
