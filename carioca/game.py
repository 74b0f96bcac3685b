"""Turn and buy state machine for Carioca."""

from __future__ import annotations

import copy
import logging
from random import Random
from typing import Any, Callable, Dict, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .actions import (
    ActionRequest,
    ActionType,
    CardPayload,
    DownPayload,
    MeldTargetPayload,
    MoveOutcome,
    MoveResult,
)
from .buys import get_remaining_buys
from .cards import Card, card_label
from .contracts import validate_additional_down, validate_contract
from .deck import build_deck, deal, shuffle_deck
from .errors import EngineError, Forbidden, IllegalMove, NotFound
from .melds import arrange_meld
from .rules_schema import RuleSet
from .scoring import apply_final_penalties, determine_winners, score_round
from .state import GameSession, Player, SessionStatus, TurnPhase
from .steal import add_to_meld, can_add_to_meld, can_steal_joker, steal_joker
from .turn import get_next_turn_index, priority_distance, round_starter

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)
Handler = Callable[[GameSession, Player, Dict[str, Any]], Optional[Dict[str, Any]]]


class GameEngine:
    """Apply one action at a time to a session, all or nothing."""

    def __init__(
        self, rules: Optional[RuleSet] = None, *, rng: Optional[Random] = None, seed: Optional[int] = None
    ) -> None:
        self.rules = rules or RuleSet()
        self.rng = rng or Random(seed)
        self._handlers: Dict[ActionType, Handler] = {
            ActionType.DRAW_DECK: self._draw_deck,
            ActionType.DRAW_DISCARD: self._draw_discard,
            ActionType.DOWN: self._down,
            ActionType.ADD_TO_MELD: self._add_to_meld,
            ActionType.STEAL_JOKER: self._steal_joker,
            ActionType.DISCARD: self._discard,
            ActionType.INTEND_BUY: self._intend_buy,
            ActionType.INTEND_DRAW_DISCARD: self._intend_draw_discard,
            ActionType.READY_FOR_NEXT_ROUND: self._ready_for_next_round,
            ActionType.START_NEXT_ROUND: self._start_next_round,
        }
        missing = set(ActionType) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler registered for {sorted(a.value for a in missing)}.")

    # Entry point -------------------------------------------------------

    def process_move(self, session: GameSession, request: ActionRequest) -> MoveOutcome:
        """Validate and apply ``request`` to a copy of ``session``.

        On rejection the original session is returned untouched together with
        the reason; on success the returned session is the updated copy.
        """
        working = copy.deepcopy(session)
        try:
            player = working.player(request.player_id)
            data = self._handlers[request.action](working, player, request.payload) or {}
        except EngineError as exc:
            return MoveOutcome(
                session,
                MoveResult(False, error=exc.message, status=exc.status, game_status=session.status.value),
            )
        except Exception:
            logger.exception("Unexpected failure applying %s in session %s", request.action.value, session.id)
            return MoveOutcome(
                session,
                MoveResult(False, error="Internal server error", status=500, game_status=session.status.value),
            )
        working.touch()
        return MoveOutcome(
            working,
            MoveResult(True, status=200, game_status=working.status.value, data=data),
        )

    # Round lifecycle ---------------------------------------------------

    def start_round(self, session: GameSession) -> None:
        """Shuffle, deal a fresh round and seed the discard pile."""
        deck = shuffle_deck(build_deck(self.rules.num_decks, self.rules.jokers_per_deck), self.rng)
        hands, session.deck, session.discard_pile = deal(
            deck, players=len(session.players), hand_size=self.rules.hand_size
        )
        for player, hand in zip(session.players, hands):
            player.hand = hand
            player.melds = []
            player.bought_cards = []
            player.has_drawn = False
            player.round_buys.append(0)
        session.status = SessionStatus.PLAYING
        session.reshuffle_count = 0
        session.pending_buy_intents = []
        session.pending_discard_intents = []
        session.ready_for_next_round = []
        session.top_discard_claimed = False
        session.round_winner_id = None
        session.turn_phase = TurnPhase.AWAITING_DRAW
        session.current_turn = round_starter(session.current_round, len(session.players), session.direction)
        logger.info(
            "Session %s: round %d dealt to %d players, %s opens",
            session.id,
            session.current_round,
            len(session.players),
            session.current_player.name,
        )

    def _finish_round(self, session: GameSession, winner_id: Optional[str]) -> Dict[str, Any]:
        result = score_round(session.players, winner_id)
        for player in session.players:
            points = result.round_points[player.id]
            player.score += points
            player.round_scores.append(points)
            player.has_drawn = False
        session.round_winner_id = winner_id
        session.pending_buy_intents = []
        session.pending_discard_intents = []
        session.turn_phase = TurnPhase.AWAITING_DRAW
        logger.info("Session %s: round %d ended, winner=%s", session.id, session.current_round, winner_id)

        if session.current_round >= self.rules.total_rounds:
            self._finish_game(session)
        else:
            session.status = SessionStatus.ROUND_ENDED
            session.ready_for_next_round = [player.id for player in session.players if player.is_bot]
        return {"roundEnded": True, "roundPoints": result.round_points, "roundWinnerId": winner_id}

    def _finish_game(self, session: GameSession) -> None:
        final = apply_final_penalties(session.players, max_buys=self.rules.max_buys, penalty=self.rules.buy_penalty)
        for player in session.players:
            player.score = final[player.id]
        session.winner_ids = determine_winners(session.players)
        session.status = SessionStatus.FINISHED
        logger.info("Session %s finished, winners=%s", session.id, session.winner_ids)

    # Guards ------------------------------------------------------------

    @staticmethod
    def _parse(model: Type[PayloadT], payload: Dict[str, Any]) -> PayloadT:
        try:
            return model.model_validate(payload or {})
        except ValidationError as exc:
            raise IllegalMove(f"Invalid payload: {exc.errors()[0]['msg']}") from exc

    @staticmethod
    def _require_playing(session: GameSession) -> None:
        if session.status is not SessionStatus.PLAYING:
            raise IllegalMove("The round is not in progress.")

    def _require_turn(self, session: GameSession, player: Player) -> None:
        self._require_playing(session)
        if session.current_player.id != player.id:
            raise Forbidden("It is not your turn.")

    def _require_drawn(self, session: GameSession, player: Player) -> None:
        self._require_turn(session, player)
        if not player.has_drawn:
            raise IllegalMove("You must draw a card first.")

    @staticmethod
    def _card_in_hand(player: Player, card_id: str) -> Card:
        card = player.find_card(card_id)
        if card is None:
            raise IllegalMove(f"Card {card_id} is not in your hand.")
        return card

    @staticmethod
    def _target_meld(session: GameSession, target_player_id: str, meld_index: int) -> List[Card]:
        target = session.player(target_player_id)
        if meld_index >= len(target.melds):
            raise NotFound(f"{target.name} has no meld #{meld_index}.")
        return target.melds[meld_index]

    def _buy_window_open(self, session: GameSession) -> None:
        if session.current_player.has_drawn:
            raise IllegalMove("The buy window is closed.")
        if not session.discard_pile:
            raise IllegalMove("The discard pile is empty.")
        if session.top_discard_claimed:
            raise IllegalMove("The top discard has already been bought.")

    def _require_buys_left(self, player: Player) -> None:
        if get_remaining_buys(player.buys_used, self.rules.max_buys) <= 0:
            raise IllegalMove("You have no buys remaining.")

    # Deck handling -----------------------------------------------------

    def _reshuffle(self, session: GameSession) -> bool:
        if session.reshuffle_count >= self.rules.max_reshuffles or len(session.discard_pile) <= 1:
            return False
        top = session.discard_pile[-1]
        session.deck = shuffle_deck(session.discard_pile[:-1], self.rng)
        session.discard_pile = [top]
        session.reshuffle_count += 1
        logger.info(
            "Session %s: reshuffled discard pile (%d/%d)",
            session.id,
            session.reshuffle_count,
            self.rules.max_reshuffles,
        )
        return True

    def _draw_card(self, session: GameSession) -> Optional[Card]:
        if not session.deck and not self._reshuffle(session):
            return None
        return session.deck.pop()

    def _execute_buy(self, session: GameSession, buyer: Player, extras: int) -> List[Card]:
        """Give ``buyer`` the top discard plus up to ``extras`` deck cards."""
        received = [session.discard_pile.pop()]
        for _ in range(extras):
            card = self._draw_card(session)
            if card is None:
                logger.warning("Session %s: deck ran dry while paying a buy to %s", session.id, buyer.name)
                break
            received.append(card)
        buyer.hand.extend(received)
        buyer.bought_cards.extend(received)
        buyer.buys_used += 1
        if buyer.round_buys:
            buyer.round_buys[-1] += 1
        session.top_discard_claimed = True
        logger.info(
            "Session %s: %s bought %d cards (%d buys used)", session.id, buyer.name, len(received), buyer.buys_used
        )
        return received

    def _priority_buyer(self, session: GameSession) -> Optional[Player]:
        eligible = [
            session.player(player_id)
            for player_id in session.pending_buy_intents
            if player_id != session.current_player.id
        ]
        eligible = [p for p in eligible if get_remaining_buys(p.buys_used, self.rules.max_buys) > 0]
        if not eligible:
            return None
        count = len(session.players)
        return min(
            eligible,
            key=lambda p: priority_distance(session.direction, session.current_turn, session.seat_of(p.id), count),
        )

    def _mark_drawn(self, session: GameSession, player: Player) -> None:
        player.has_drawn = True
        session.turn_phase = TurnPhase.AWAITING_ACTION
        session.pending_buy_intents = []
        session.pending_discard_intents = []

    # Handlers ----------------------------------------------------------

    def _draw_deck(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_turn(session, player)
        if player.has_drawn:
            raise IllegalMove("You have already drawn this turn.")

        data: Dict[str, Any] = {}
        buyer = None
        if session.discard_pile and not session.top_discard_claimed:
            buyer = self._priority_buyer(session)
        if buyer is not None:
            bought = self._execute_buy(session, buyer, self.rules.buy_extras_other)
            data["buy"] = {"playerId": buyer.id, "cards": len(bought)}

        card = self._draw_card(session)
        if card is None:
            session.record(player.id, ActionType.DRAW_DECK.value, "The deck is exhausted; the round ends.")
            data.update(self._finish_round(session, winner_id=None))
            return data
        player.hand.append(card)
        self._mark_drawn(session, player)
        session.record(player.id, ActionType.DRAW_DECK.value, f"{player.name} drew from the deck.")
        data["drawn"] = 1
        return data

    def _draw_discard(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_playing(session)
        if session.current_player.id != player.id:
            return self._buy_now(session, player)
        if player.has_drawn:
            raise IllegalMove("You have already drawn this turn.")
        if not session.discard_pile:
            raise IllegalMove("The discard pile is empty.")
        if session.top_discard_claimed:
            raise IllegalMove("The top discard has already been bought; draw from the deck.")

        declared = player.id in session.pending_discard_intents
        if declared and get_remaining_buys(player.buys_used, self.rules.max_buys) > 0:
            received = self._execute_buy(session, player, self.rules.buy_extras_current)
            description = f"{player.name} took the discard and bought {len(received) - 1} extra cards."
        else:
            card = session.discard_pile.pop()
            player.hand.append(card)
            received = [card]
            description = f"{player.name} took {card_label(card)} from the discard pile."
        self._mark_drawn(session, player)
        session.record(player.id, ActionType.DRAW_DISCARD.value, description)
        return {"drawn": len(received)}

    def _buy_now(self, session: GameSession, player: Player) -> Dict[str, Any]:
        self._buy_window_open(session)
        self._require_buys_left(player)
        rival = self._priority_buyer(session)
        if session.pending_discard_intents:
            raise IllegalMove(f"{session.current_player.name} has claimed this discard.")
        if rival is not None and rival.id != player.id:
            count = len(session.players)
            mine = priority_distance(session.direction, session.current_turn, session.seat_of(player.id), count)
            theirs = priority_distance(session.direction, session.current_turn, session.seat_of(rival.id), count)
            if theirs < mine:
                raise IllegalMove(f"{rival.name} has priority for this discard.")
        received = self._execute_buy(session, player, self.rules.buy_extras_other)
        if player.id in session.pending_buy_intents:
            session.pending_buy_intents.remove(player.id)
        session.record(player.id, ActionType.DRAW_DISCARD.value, f"{player.name} bought the discard.")
        return {"bought": len(received)}

    def _intend_buy(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_playing(session)
        if session.current_player.id == player.id:
            raise IllegalMove("On your own turn, declare INTEND_DRAW_DISCARD instead.")
        self._buy_window_open(session)
        self._require_buys_left(player)
        if player.id in session.pending_buy_intents:
            raise IllegalMove("You have already asked to buy this discard.")
        session.pending_buy_intents.append(player.id)
        session.record(player.id, ActionType.INTEND_BUY.value, f"{player.name} wants to buy the discard.")
        return {"queued": True}

    def _intend_draw_discard(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_turn(session, player)
        self._buy_window_open(session)
        self._require_buys_left(player)
        if player.id not in session.pending_discard_intents:
            session.pending_discard_intents.append(player.id)
        session.record(player.id, ActionType.INTEND_DRAW_DISCARD.value, f"{player.name} will buy with the discard.")
        return {"queued": True}

    def _down(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_drawn(session, player)
        request = self._parse(DownPayload, payload)

        used: Set[str] = set()
        groups: List[List[Card]] = []
        for group_ids in request.groups:
            group = []
            for card_id in group_ids:
                if card_id in used:
                    raise IllegalMove(f"Card {card_id} is used more than once.")
                used.add(card_id)
                group.append(self._card_in_hand(player, card_id))
            groups.append(group)
        if len(used) >= len(player.hand):
            raise IllegalMove("You must keep at least one card to discard.")

        initial = not player.has_melded()
        check = validate_contract(groups, session.current_round) if initial else validate_additional_down(groups)
        if not check.valid:
            raise IllegalMove(check.error or "Those groups cannot be laid down.")

        player.hand = [card for card in player.hand if card.id not in used]
        player.melds.extend(arrange_meld(group) for group in groups)
        session.turn_phase = TurnPhase.AWAITING_DISCARD
        kind = "contract" if initial else f"{len(groups)} more group(s)"
        session.record(player.id, ActionType.DOWN.value, f"{player.name} laid down {kind}.")
        return {"initial": initial, "groups": len(groups)}

    def _add_to_meld(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_drawn(session, player)
        if not player.has_melded():
            raise IllegalMove("Lay down your contract before adding to melds.")
        request = self._parse(MeldTargetPayload, payload)
        card = self._card_in_hand(player, request.card_id)
        meld = self._target_meld(session, request.target_player_id, request.meld_index)
        if len(player.hand) <= 1:
            raise IllegalMove("You must keep at least one card to discard.")
        if not can_add_to_meld(card, meld):
            raise IllegalMove(f"{card_label(card)} does not fit that meld.")

        target = session.player(request.target_player_id)
        target.melds[request.meld_index] = add_to_meld(card, meld)
        player.hand.remove(card)
        session.turn_phase = TurnPhase.AWAITING_DISCARD
        session.record(player.id, ActionType.ADD_TO_MELD.value, f"{player.name} added {card_label(card)} to a meld.")
        return {"meldSize": len(target.melds[request.meld_index])}

    def _steal_joker(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_drawn(session, player)
        request = self._parse(MeldTargetPayload, payload)
        card = self._card_in_hand(player, request.card_id)
        meld = self._target_meld(session, request.target_player_id, request.meld_index)
        if not can_steal_joker(card, meld, player.hand):
            raise IllegalMove(f"{card_label(card)} cannot replace a joker in that meld.")

        new_meld, joker = steal_joker(card, meld)
        session.player(request.target_player_id).melds[request.meld_index] = new_meld
        player.hand.remove(card)
        player.hand.append(joker)
        session.turn_phase = TurnPhase.AWAITING_DISCARD
        session.record(player.id, ActionType.STEAL_JOKER.value, f"{player.name} stole a joker with {card_label(card)}.")
        return {"jokerId": joker.id}

    def _discard(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._require_drawn(session, player)
        request = self._parse(CardPayload, payload)
        card = self._card_in_hand(player, request.card_id)
        if len(player.hand) == 1 and not player.has_melded():
            raise IllegalMove("You cannot go out before laying down your contract.")

        player.hand.remove(card)
        session.discard_pile.append(card)
        player.has_drawn = False
        session.top_discard_claimed = False
        session.pending_buy_intents = []
        session.pending_discard_intents = []
        session.record(player.id, ActionType.DISCARD.value, f"{player.name} discarded {card_label(card)}.")

        if not player.hand:
            return self._finish_round(session, winner_id=player.id)
        session.current_turn = get_next_turn_index(session.direction, session.current_turn, len(session.players))
        session.current_player.has_drawn = False
        session.turn_phase = TurnPhase.AWAITING_DRAW
        return {"nextPlayerId": session.current_player.id}

    def _ready_for_next_round(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        if session.status is not SessionStatus.ROUND_ENDED:
            raise IllegalMove("The round has not ended.")
        if player.id not in session.ready_for_next_round:
            session.ready_for_next_round.append(player.id)
        session.record(player.id, ActionType.READY_FOR_NEXT_ROUND.value, f"{player.name} is ready.")
        return {"ready": len(session.ready_for_next_round), "players": len(session.players)}

    def _start_next_round(self, session: GameSession, player: Player, payload: Dict[str, Any]) -> Dict[str, Any]:
        if session.status is not SessionStatus.ROUND_ENDED:
            raise IllegalMove("The round has not ended.")
        if player.id != session.creator_id:
            raise Forbidden("Only the host can start the next round.")
        waiting = [p.name for p in session.players if p.id not in session.ready_for_next_round]
        if waiting:
            raise IllegalMove(f"Waiting for {', '.join(waiting)} to be ready.")
        session.current_round += 1
        self.start_round(session)
        session.record(player.id, ActionType.START_NEXT_ROUND.value, f"Round {session.current_round} started.")
        return {"round": session.current_round}
