"""Action requests, payload models and move results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from .state import GameSession


class ActionType(str, Enum):
    DRAW_DECK = "DRAW_DECK"
    DRAW_DISCARD = "DRAW_DISCARD"
    DOWN = "DOWN"
    ADD_TO_MELD = "ADD_TO_MELD"
    STEAL_JOKER = "STEAL_JOKER"
    DISCARD = "DISCARD"
    INTEND_BUY = "INTEND_BUY"
    INTEND_DRAW_DISCARD = "INTEND_DRAW_DISCARD"
    READY_FOR_NEXT_ROUND = "READY_FOR_NEXT_ROUND"
    START_NEXT_ROUND = "START_NEXT_ROUND"


def _card_id(value: Any) -> Any:
    """Accept either a bare card id or a serialized card."""
    if isinstance(value, dict):
        return value.get("id")
    return value


class ActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: str = Field(alias="playerId")
    action: ActionType
    payload: Dict[str, Any] = Field(default_factory=dict)


class DownPayload(BaseModel):
    groups: List[List[str]] = Field(min_length=1)

    @field_validator("groups", mode="before")
    @classmethod
    def coerce_cards(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [[_card_id(card) for card in group] if isinstance(group, list) else group for group in value]


class CardPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_id: str = Field(alias="cardId")

    @model_validator(mode="before")
    @classmethod
    def accept_card_object(cls, data: Any) -> Any:
        if isinstance(data, dict) and "card" in data and "cardId" not in data and "card_id" not in data:
            data = dict(data)
            data["card_id"] = _card_id(data.pop("card"))
        return data


class MeldTargetPayload(CardPayload):
    target_player_id: str = Field(alias="targetPlayerId")
    meld_index: int = Field(alias="meldIndex", ge=0)


@dataclass
class MoveResult:
    success: bool
    error: Optional[str] = None
    status: int = 200
    game_status: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success, "status": self.status}
        if self.error is not None:
            payload["error"] = self.error
        if self.game_status is not None:
            payload["gameStatus"] = self.game_status
        payload.update(self.data)
        return payload


@dataclass
class MoveOutcome:
    """The session to persist and the result to return to the caller."""

    session: "GameSession"
    result: MoveResult
