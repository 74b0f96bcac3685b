"""Core engine package for Carioca."""

__all__ = [
    "cards",
    "deck",
    "melds",
    "contracts",
    "analyzer",
    "steal",
    "buys",
    "turn",
    "state",
    "scoring",
    "actions",
    "game",
    "lobby",
    "errors",
    "rules_schema",
    "storage",
    "service",
]
