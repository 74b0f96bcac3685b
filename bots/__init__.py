"""Bot strategies for Carioca."""

from .base import BotMove, BotStrategy
from .baseline_greedy import GreedyBot
from .controller import BotController

__all__ = ["BotMove", "BotStrategy", "GreedyBot", "BotController"]
