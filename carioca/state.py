"""Session and player state for a Carioca table."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from .cards import Card
from .errors import NotFound
from .turn import Direction


class SessionStatus(Enum):
    WAITING = "WAITING"
    PLAYING = "PLAYING"
    ROUND_ENDED = "ROUND_ENDED"
    FINISHED = "FINISHED"


class BotDifficulty(Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class TurnPhase(Enum):
    AWAITING_DRAW = auto()
    AWAITING_ACTION = auto()
    AWAITING_DISCARD = auto()


@dataclass
class Player:
    id: str
    name: str
    is_bot: bool = False
    difficulty: Optional[BotDifficulty] = None
    turn_order: int = 0
    hand: List[Card] = field(default_factory=list)
    melds: List[List[Card]] = field(default_factory=list)
    bought_cards: List[Card] = field(default_factory=list)
    score: int = 0
    round_scores: List[int] = field(default_factory=list)
    round_buys: List[int] = field(default_factory=list)
    buys_used: int = 0
    has_drawn: bool = False

    def has_melded(self) -> bool:
        """True once the player's initial down is on the table this round."""
        return bool(self.melds)

    def find_card(self, card_id: str) -> Optional[Card]:
        return next((card for card in self.hand if card.id == card_id), None)


@dataclass
class LastAction:
    player_id: str
    type: str
    description: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class GameSession:
    id: str
    creator_id: str
    players: List[Player] = field(default_factory=list)
    status: SessionStatus = SessionStatus.WAITING
    current_turn: int = 0
    current_round: int = 1
    direction: Direction = Direction.CLOCKWISE
    turn_phase: TurnPhase = TurnPhase.AWAITING_DRAW
    deck: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    reshuffle_count: int = 0
    pending_buy_intents: List[str] = field(default_factory=list)
    pending_discard_intents: List[str] = field(default_factory=list)
    ready_for_next_round: List[str] = field(default_factory=list)
    top_discard_claimed: bool = False
    last_action: Optional[LastAction] = None
    round_winner_id: Optional[str] = None
    winner_ids: List[str] = field(default_factory=list)
    updated_at: float = field(default_factory=time.time)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_turn]

    def player(self, player_id: str) -> Player:
        for player in self.players:
            if player.id == player_id:
                return player
        raise NotFound(f"Player {player_id} is not part of this game.")

    def has_player(self, player_id: str) -> bool:
        return any(player.id == player_id for player in self.players)

    def seat_of(self, player_id: str) -> int:
        return self.players.index(self.player(player_id))

    def top_discard(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    def reindex(self) -> None:
        for index, player in enumerate(self.players):
            player.turn_order = index

    def record(self, player_id: str, action_type: str, description: str) -> None:
        self.last_action = LastAction(player_id=player_id, type=action_type, description=description)

    def touch(self) -> None:
        self.updated_at = time.time()

    def card_counts(self) -> Counter[str]:
        """Card ids across deck, discard pile, hands and melds."""
        counts: Counter[str] = Counter(card.id for card in self.deck)
        counts.update(card.id for card in self.discard_pile)
        for player in self.players:
            counts.update(card.id for card in player.hand)
            for meld in player.melds:
                counts.update(card.id for card in meld)
        return counts
