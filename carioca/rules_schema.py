"""Validation schema for Carioca rules configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .cards import KING
from .turn import Direction

NATURALS_PER_DECK = 4 * KING


class RuleSet(BaseModel):
    num_decks: int = Field(2, description="Physical 52-card decks shuffled together.")
    jokers_per_deck: int = Field(2, ge=0, description="Jokers added per physical deck.")
    hand_size: int = Field(11, description="Cards dealt to each player every round.")
    max_buys: int = Field(7, ge=0, description="Buys allowed per player per game.")
    buy_penalty: int = Field(10, ge=0, description="Final-score adjustment when buys are left over.")
    buy_extras_current: int = Field(3, ge=0, description="Extra deck cards when the current player buys.")
    buy_extras_other: int = Field(2, ge=0, description="Extra deck cards when another player buys.")
    max_reshuffles: int = Field(3, ge=0, description="Discard-pile reshuffles before the round is called.")
    min_players: int = Field(3, description="Players required to start.")
    max_players: int = Field(5, description="Seats available at the table.")
    total_rounds: int = Field(8, ge=1, le=8, description="Rounds played; round 8 is the escala contract.")
    direction: Literal["clockwise", "counter-clockwise"] = "clockwise"

    @field_validator("num_decks", "hand_size", "min_players", "max_players")
    @classmethod
    def ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be positive.")
        return value

    @model_validator(mode="after")
    def check_table_fits_deck(self) -> "RuleSet":
        if self.min_players > self.max_players:
            raise ValueError("min_players cannot exceed max_players.")
        needed = self.max_players * self.hand_size + 1
        if needed > self.deck_size:
            raise ValueError(f"A {self.deck_size}-card deck cannot deal {self.max_players} hands of {self.hand_size}.")
        return self

    @property
    def deck_size(self) -> int:
        return self.num_decks * (NATURALS_PER_DECK + self.jokers_per_deck)

    @property
    def turn_direction(self) -> Direction:
        return Direction(self.direction)


def load_rules(path: Union[str, Path]) -> RuleSet:
    return RuleSet.model_validate_json(Path(path).read_text(encoding="utf-8"))
