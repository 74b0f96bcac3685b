"""Common bot strategy interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from carioca.actions import ActionType
from carioca.state import GameSession


@dataclass
class BotMove:
    action: ActionType
    payload: Dict[str, Any] = field(default_factory=dict)


class BotStrategy:
    """Base class for bot policies."""

    name: str = "BaseBot"

    def choose_move(self, session: GameSession, player_id: str) -> Optional[BotMove]:
        """Return the next action for ``player_id`` on its own turn, or None to give up."""
        player = session.player(player_id)
        if not player.has_drawn:
            return BotMove(ActionType.DRAW_DECK)
        return BotMove(ActionType.DISCARD, {"cardId": player.hand[-1].id})

    def wants_to_buy(self, session: GameSession, player_id: str) -> bool:
        """Return True to queue a buy for the top discard out of turn."""
        return False
