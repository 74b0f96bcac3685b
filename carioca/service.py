"""Service layer: per-session serialization, lobby operations, moves and views."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Sequence

from . import lobby
from .actions import ActionRequest, MoveResult
from .buys import MAX_BUYS, get_remaining_buys
from .cards import Card, card_label, serialize_card
from .contracts import contract_for_round
from .errors import EngineError, IllegalMove, InternalError, NotFound
from .game import GameEngine
from .state import BotDifficulty, GameSession
from .storage import InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)


class BotRunner(Protocol):
    def after_action(self, session: GameSession) -> GameSession:
        ...

    def force_skip(self, session: GameSession, requester_id: str) -> GameSession:
        ...


@dataclass
class PlayerView:
    id: str
    name: str
    is_bot: bool
    is_host: bool
    difficulty: Optional[str]
    turn_order: int
    hand: Optional[list[dict]]
    hand_count: int
    melds: list[list[dict]]
    bought_cards: list[dict]
    score: int
    round_scores: list[int]
    round_buys: list[int]
    buys_used: int
    remaining_buys: int
    has_drawn: bool


@dataclass
class SessionView:
    id: str
    status: str
    creator_id: str
    current_round: int
    current_turn: int
    current_player_id: Optional[str]
    contract: Optional[str]
    direction: str
    turn_phase: str
    players: list[PlayerView]
    deck: Optional[list[dict]]
    deck_count: int
    discard_pile: list[dict]
    top_discard_label: Optional[str]
    reshuffle_count: int
    pending_buy_intents: list[str]
    pending_discard_intents: list[str]
    ready_for_next_round: list[str]
    top_discard_claimed: bool
    last_action: Optional[dict]
    round_winner_id: Optional[str]
    winner_ids: list[str]
    updated_at: float


def _cards(cards: Sequence[Card]) -> list[dict]:
    return [serialize_card(card) for card in cards]


class GameService:
    """Facade used by the HTTP layer. One lock per session id serializes access."""

    def __init__(
        self,
        engine: Optional[GameEngine] = None,
        store: Optional[SessionStore] = None,
        bot_runner: Optional[BotRunner] = None,
    ) -> None:
        self.engine = engine or GameEngine()
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self.bot_runner = bot_runner
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # Plumbing ----------------------------------------------------------

    def _lock_for(self, session_id: str) -> threading.Lock:
        """Per-session lock, created only for sessions that exist in the store."""
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                self._load(session_id)
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def _drop_lock(self, session_id: str) -> None:
        with self._locks_guard:
            self._locks.pop(session_id, None)

    def _load(self, session_id: str) -> GameSession:
        try:
            session = self.store.load_session(session_id)
        except Exception as exc:
            logger.exception("Failed to load session %s", session_id)
            raise InternalError("Internal server error") from exc
        if session is None:
            raise NotFound(f"Game {session_id} not found.")
        return session

    def _save(self, session: GameSession) -> None:
        try:
            self.store.save_session(session)
        except Exception as exc:
            logger.exception("Failed to save session %s", session.id)
            raise InternalError("Internal server error") from exc

    def _mutate(self, session_id: str, operation: Callable[[GameSession], object]) -> GameSession:
        """Run ``operation`` on a working copy and save it only if it succeeds."""
        with self._lock_for(session_id):
            working = copy.deepcopy(self._load(session_id))
            operation(working)
            working.touch()
            self._save(working)
            return working

    # Lobby -------------------------------------------------------------

    def create_game(self, creator_id: str, name: str) -> SessionView:
        session = lobby.create_session(creator_id, name)
        self._save(session)
        return self.get_view(session.id, perspective=creator_id)

    def join_game(self, session_id: str, player_id: str, name: str) -> SessionView:
        self._mutate(session_id, lambda s: lobby.join_session(s, player_id, name, self.engine.rules))
        return self.get_view(session_id, perspective=player_id)

    def add_bot(
        self,
        session_id: str,
        requester_id: str,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        name: Optional[str] = None,
    ) -> SessionView:
        self._mutate(session_id, lambda s: lobby.add_bot(s, requester_id, self.engine.rules, difficulty, name))
        return self.get_view(session_id, perspective=requester_id)

    def leave_game(self, session_id: str, player_id: str) -> bool:
        """Returns True when the session was deleted because it emptied."""
        with self._lock_for(session_id):
            session = self._load(session_id)
            empty = lobby.leave_session(session, player_id)
            try:
                if empty:
                    self.store.delete_session(session_id)
                else:
                    session.touch()
                    self.store.save_session(session)
            except Exception as exc:
                logger.exception("Failed to persist departure from session %s", session_id)
                raise InternalError("Internal server error") from exc
        if empty:
            self._drop_lock(session_id)
        return empty

    def remove_player(self, session_id: str, requester_id: str, player_id: str) -> SessionView:
        self._mutate(session_id, lambda s: lobby.remove_player(s, requester_id, player_id))
        return self.get_view(session_id, perspective=requester_id)

    def reorder_players(self, session_id: str, requester_id: str, order: Sequence[str]) -> SessionView:
        self._mutate(session_id, lambda s: lobby.reorder_players(s, requester_id, order))
        return self.get_view(session_id, perspective=requester_id)

    def move_player(self, session_id: str, requester_id: str, player_id: str, direction: str) -> SessionView:
        self._mutate(session_id, lambda s: lobby.move_player(s, requester_id, player_id, direction))
        return self.get_view(session_id, perspective=requester_id)

    def rename_player(self, session_id: str, requester_id: str, player_id: str, name: str) -> SessionView:
        self._mutate(session_id, lambda s: lobby.rename_player(s, requester_id, player_id, name))
        return self.get_view(session_id, perspective=requester_id)

    def start_game(self, session_id: str, requester_id: str) -> SessionView:
        with self._lock_for(session_id):
            session = copy.deepcopy(self._load(session_id))
            lobby.start_game(session, requester_id, self.engine)
            session = self._run_bots(session)
            session.touch()
            self._save(session)
        return self.get_view(session_id, perspective=requester_id)

    def end_game(self, session_id: str, requester_id: str) -> SessionView:
        self._mutate(session_id, lambda s: lobby.end_game(s, requester_id))
        return self.get_view(session_id, perspective=requester_id)

    # Play --------------------------------------------------------------

    def make_move(self, session_id: str, request: ActionRequest) -> MoveResult:
        with self._lock_for(session_id):
            session = self._load(session_id)
            outcome = self.engine.process_move(session, request)
            if not outcome.result.success:
                return outcome.result
            updated = self._run_bots(outcome.session)
            self._save(updated)
            outcome.result.game_status = updated.status.value
            return outcome.result

    def skip_bot_turn(self, session_id: str, requester_id: str) -> SessionView:
        if self.bot_runner is None:
            raise IllegalMove("Bots are not enabled on this server.")
        with self._lock_for(session_id):
            session = self._load(session_id)
            updated = self.bot_runner.force_skip(session, requester_id)
            updated.touch()
            self._save(updated)
        return self.get_view(session_id, perspective=requester_id)

    def _run_bots(self, session: GameSession) -> GameSession:
        if self.bot_runner is None:
            return session
        try:
            return self.bot_runner.after_action(session)
        except EngineError:
            raise
        except Exception:
            logger.exception("Bot turns failed in session %s; keeping the human move", session.id)
            return session

    # Views -------------------------------------------------------------

    def get_view(self, session_id: str, perspective: Optional[str] = None) -> SessionView:
        return self.build_view(self._load(session_id), perspective, max_buys=self.engine.rules.max_buys)

    @staticmethod
    def build_view(
        session: GameSession, perspective: Optional[str] = None, *, max_buys: int = MAX_BUYS
    ) -> SessionView:
        """Snapshot for the UI. With a perspective, other hands and the deck are hidden."""
        hidden = perspective is not None
        players = [
            PlayerView(
                id=player.id,
                name=player.name,
                is_bot=player.is_bot,
                is_host=player.id == session.creator_id,
                difficulty=player.difficulty.value if player.difficulty else None,
                turn_order=player.turn_order,
                hand=None if hidden and player.id != perspective else _cards(player.hand),
                hand_count=len(player.hand),
                melds=[_cards(meld) for meld in player.melds],
                bought_cards=_cards(player.bought_cards),
                score=player.score,
                round_scores=list(player.round_scores),
                round_buys=list(player.round_buys),
                buys_used=player.buys_used,
                remaining_buys=get_remaining_buys(player.buys_used, max_buys),
                has_drawn=player.has_drawn,
            )
            for player in session.players
        ]
        contract = contract_for_round(session.current_round)
        top = session.top_discard()
        last = session.last_action
        return SessionView(
            id=session.id,
            status=session.status.value,
            creator_id=session.creator_id,
            current_round=session.current_round,
            current_turn=session.current_turn,
            current_player_id=session.players[session.current_turn].id if session.players else None,
            contract=contract.name if contract else None,
            direction=session.direction.value,
            turn_phase=session.turn_phase.name,
            players=players,
            deck=None if hidden else _cards(session.deck),
            deck_count=len(session.deck),
            discard_pile=_cards(session.discard_pile),
            top_discard_label=card_label(top) if top else None,
            reshuffle_count=session.reshuffle_count,
            pending_buy_intents=list(session.pending_buy_intents),
            pending_discard_intents=list(session.pending_discard_intents),
            ready_for_next_round=list(session.ready_for_next_round),
            top_discard_claimed=session.top_discard_claimed,
            last_action=(
                {
                    "player_id": last.player_id,
                    "type": last.type,
                    "description": last.description,
                    "timestamp": last.timestamp,
                }
                if last
                else None
            ),
            round_winner_id=session.round_winner_id,
            winner_ids=list(session.winner_ids),
            updated_at=session.updated_at,
        )
