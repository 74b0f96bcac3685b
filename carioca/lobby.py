"""Lobby and host operations on a session."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence

from .errors import Conflict, Forbidden, IllegalMove
from .rules_schema import RuleSet
from .scoring import determine_winners
from .state import BotDifficulty, GameSession, Player, SessionStatus
from .turn import move_turn_order

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 30
BOT_NAMES = ("Ana", "Benja", "Coni", "Diego", "Eli", "Feña")


def _require_host(session: GameSession, requester_id: str) -> None:
    if requester_id != session.creator_id:
        raise Forbidden("Only the host can do that.")


def _require_waiting(session: GameSession) -> None:
    if session.status is not SessionStatus.WAITING:
        raise IllegalMove("The game has already started.")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise IllegalMove("Name cannot be empty.")
    if len(name) > MAX_NAME_LENGTH:
        raise IllegalMove(f"Name cannot exceed {MAX_NAME_LENGTH} characters.")
    return name


def create_session(
    creator_id: str,
    creator_name: str,
    *,
    session_id: Optional[str] = None,
    is_bot: bool = False,
    difficulty: Optional[BotDifficulty] = None,
) -> GameSession:
    host = Player(id=creator_id, name=_clean_name(creator_name), is_bot=is_bot, difficulty=difficulty)
    session = GameSession(id=session_id or uuid.uuid4().hex, creator_id=creator_id, players=[host])
    logger.info("Session %s created by %s", session.id, host.name)
    return session


def join_session(session: GameSession, player_id: str, name: str, rules: RuleSet) -> Player:
    """Seat a human player; joining twice returns the existing seat."""
    if session.has_player(player_id):
        return session.player(player_id)
    _require_waiting(session)
    if len(session.players) >= rules.max_players:
        raise IllegalMove("The table is full.")
    player = Player(id=player_id, name=_clean_name(name), turn_order=len(session.players))
    session.players.append(player)
    return player


def add_bot(
    session: GameSession,
    requester_id: str,
    rules: RuleSet,
    difficulty: BotDifficulty = BotDifficulty.MEDIUM,
    name: Optional[str] = None,
) -> Player:
    _require_host(session, requester_id)
    _require_waiting(session)
    if len(session.players) >= rules.max_players:
        raise IllegalMove("The table is full.")
    taken = {player.name for player in session.players}
    if name is None:
        name = next((n for n in BOT_NAMES if n not in taken), f"Bot {len(session.players)}")
    bot = Player(
        id=f"bot-{uuid.uuid4().hex[:8]}",
        name=_clean_name(name),
        is_bot=True,
        difficulty=difficulty,
        turn_order=len(session.players),
    )
    session.players.append(bot)
    return bot


def leave_session(session: GameSession, player_id: str) -> bool:
    """Remove ``player_id`` from the lobby. Returns True when nobody is left.

    A departing host hands the table to the next seated player.
    """
    _require_waiting(session)
    player = session.player(player_id)
    session.players.remove(player)
    session.reindex()
    if not session.players:
        return True
    if player_id == session.creator_id:
        session.creator_id = session.players[0].id
        logger.info("Session %s: host left, %s is the new host", session.id, session.players[0].name)
    return False


def remove_player(session: GameSession, requester_id: str, player_id: str) -> None:
    _require_host(session, requester_id)
    _require_waiting(session)
    if player_id == requester_id:
        raise IllegalMove("Use leave to remove yourself.")
    session.players.remove(session.player(player_id))
    session.reindex()


def reorder_players(session: GameSession, requester_id: str, order: Sequence[str]) -> None:
    _require_host(session, requester_id)
    _require_waiting(session)
    current = [player.id for player in session.players]
    if len(order) != len(current) or set(order) != set(current):
        raise Conflict("The new order does not match the seated players.")
    session.players = [session.player(player_id) for player_id in order]
    session.reindex()


def move_player(session: GameSession, requester_id: str, player_id: str, direction: str) -> None:
    if direction not in ("up", "down"):
        raise IllegalMove("Direction must be 'up' or 'down'.")
    session.player(player_id)
    order = move_turn_order([player.id for player in session.players], player_id, direction)
    reorder_players(session, requester_id, order)


def rename_player(session: GameSession, requester_id: str, player_id: str, name: str) -> None:
    """Players rename themselves; the host may also rename bots."""
    player = session.player(player_id)
    if requester_id != player_id and not (player.is_bot and requester_id == session.creator_id):
        raise Forbidden("You can only rename yourself or your bots.")
    player.name = _clean_name(name)


def start_game(session: GameSession, requester_id: str, engine) -> None:
    _require_host(session, requester_id)
    _require_waiting(session)
    rules = engine.rules
    if len(session.players) < rules.min_players:
        raise IllegalMove(f"At least {rules.min_players} players are needed to start.")
    if len(session.players) > rules.max_players:
        raise IllegalMove(f"At most {rules.max_players} players can play.")
    session.current_round = 1
    session.direction = rules.turn_direction
    session.winner_ids = []
    for player in session.players:
        player.score = 0
        player.round_scores = []
        player.round_buys = []
        player.buys_used = 0
    engine.start_round(session)
    logger.info("Session %s started with %d players", session.id, len(session.players))


def end_game(session: GameSession, requester_id: str) -> List[str]:
    """Close the table early; the current leaders are recorded as winners."""
    _require_host(session, requester_id)
    if session.status is SessionStatus.FINISHED:
        raise IllegalMove("The game is already over.")
    session.status = SessionStatus.FINISHED
    session.winner_ids = determine_winners(session.players)
    logger.info("Session %s ended by the host", session.id)
    return session.winner_ids
