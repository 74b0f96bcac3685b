"""Drive bot seats through their turns."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from carioca.actions import ActionRequest, ActionType
from carioca.buys import get_remaining_buys
from carioca.errors import Forbidden, IllegalMove
from carioca.game import GameEngine
from carioca.state import BotDifficulty, GameSession, Player, SessionStatus

from .base import BotStrategy
from .baseline_greedy import GreedyBot, choose_discard

logger = logging.getLogger(__name__)

MAX_ACTIONS_PER_TURN = 30


class BotController:
    """Plays consecutive bot turns after a human action.

    At most N-1 bot turns are chained per call so that control always comes
    back to the caller; a bot whose policy fails is forced to draw and discard.
    """

    def __init__(
        self,
        engine: GameEngine,
        strategies: Optional[Dict[BotDifficulty, BotStrategy]] = None,
        *,
        max_actions_per_turn: int = MAX_ACTIONS_PER_TURN,
        seed: Optional[int] = None,
    ) -> None:
        self.engine = engine
        self.strategies: Dict[BotDifficulty, BotStrategy] = strategies or {
            difficulty: GreedyBot(difficulty, seed=seed, max_buys=engine.rules.max_buys) for difficulty in BotDifficulty
        }
        self.max_actions_per_turn = max_actions_per_turn

    def strategy_for(self, player: Player) -> BotStrategy:
        strategy = self.strategies.get(player.difficulty or BotDifficulty.MEDIUM)
        return strategy or GreedyBot(max_buys=self.engine.rules.max_buys)

    def after_action(self, session: GameSession) -> GameSession:
        session = self.offer_buys(session)
        return self.run(session)

    def run(self, session: GameSession) -> GameSession:
        turns = 0
        limit = max(1, len(session.players) - 1)
        while turns < limit and session.status is SessionStatus.PLAYING and session.current_player.is_bot:
            session = self.play_turn(session, session.current_player.id)
            session = self.offer_buys(session)
            turns += 1
        return session

    def offer_buys(self, session: GameSession) -> GameSession:
        """Let bots queue buy intents for the current top discard."""
        if session.status is not SessionStatus.PLAYING or session.current_player.has_drawn:
            return session
        if not session.discard_pile or session.top_discard_claimed:
            return session
        for player in session.players:
            if not player.is_bot or player.id == session.current_player.id:
                continue
            if player.id in session.pending_buy_intents:
                continue
            if get_remaining_buys(player.buys_used, self.engine.rules.max_buys) <= 0:
                continue
            if not self.strategy_for(player).wants_to_buy(session, player.id):
                continue
            request = ActionRequest(player_id=player.id, action=ActionType.INTEND_BUY)
            outcome = self.engine.process_move(session, request)
            if outcome.result.success:
                session = outcome.session
        return session

    def play_turn(self, session: GameSession, player_id: str) -> GameSession:
        strategy = self.strategy_for(session.player(player_id))
        round_number = session.current_round
        for _ in range(self.max_actions_per_turn):
            move = strategy.choose_move(session, player_id)
            if move is None:
                break
            outcome = self.engine.process_move(
                session, ActionRequest(player_id=player_id, action=move.action, payload=move.payload)
            )
            if not outcome.result.success:
                logger.warning(
                    "Bot %s failed %s in session %s: %s", player_id, move.action.value, session.id, outcome.result.error
                )
                break
            session = outcome.session
            if self._turn_over(session, player_id, round_number):
                return session
        return self.force_move(session, player_id)

    @staticmethod
    def _turn_over(session: GameSession, player_id: str, round_number: int) -> bool:
        return (
            session.status is not SessionStatus.PLAYING
            or session.current_round != round_number
            or session.current_player.id != player_id
        )

    def force_move(self, session: GameSession, player_id: str) -> GameSession:
        """Draw if needed and throw away the highest natural card."""
        logger.warning("Forcing a move for bot %s in session %s", player_id, session.id)
        round_number = session.current_round
        player = session.player(player_id)
        if not player.has_drawn:
            outcome = self.engine.process_move(session, ActionRequest(player_id=player_id, action=ActionType.DRAW_DECK))
            if not outcome.result.success:
                logger.error("Forced draw failed for bot %s: %s", player_id, outcome.result.error)
                return session
            session = outcome.session
            if self._turn_over(session, player_id, round_number):
                return session
        player = session.player(player_id)
        card = choose_discard(player.hand, session.current_round)
        outcome = self.engine.process_move(
            session, ActionRequest(player_id=player_id, action=ActionType.DISCARD, payload={"cardId": card.id})
        )
        if not outcome.result.success:
            logger.error("Forced discard failed for bot %s: %s", player_id, outcome.result.error)
            return session
        return outcome.session

    def force_skip(self, session: GameSession, requester_id: str) -> GameSession:
        """Host operation: push a stuck bot through its turn, then resume bot play."""
        if requester_id != session.creator_id:
            raise Forbidden("Only the host can skip a bot's turn.")
        if session.status is not SessionStatus.PLAYING:
            raise IllegalMove("The round is not in progress.")
        if not session.current_player.is_bot:
            raise IllegalMove("It is not a bot's turn.")
        session = self.force_move(session, session.current_player.id)
        return self.after_action(session)
