"""Simple bot arena for Carioca."""

from __future__ import annotations

import argparse
from typing import Iterable, Optional, Sequence

from carioca import lobby
from carioca.actions import ActionRequest, ActionType
from carioca.game import GameEngine
from carioca.rules_schema import RuleSet
from carioca.state import BotDifficulty, GameSession, SessionStatus

from .controller import BotController

MAX_CYCLES = 20_000


def _table(engine: GameEngine, difficulties: Sequence[BotDifficulty]) -> GameSession:
    host_id = "bot-host"
    session = lobby.create_session(host_id, "Host", is_bot=True, difficulty=difficulties[0])
    for difficulty in difficulties[1:]:
        lobby.add_bot(session, host_id, engine.rules, difficulty)
    lobby.start_game(session, host_id, engine)
    return session


def run_match(
    difficulties: Sequence[BotDifficulty] = (BotDifficulty.MEDIUM,) * 3,
    *,
    seed: Optional[int] = None,
    rules: Optional[RuleSet] = None,
) -> dict:
    engine = GameEngine(rules, seed=seed)
    controller = BotController(engine, seed=seed)
    session = _table(engine, list(difficulties))

    for _ in range(MAX_CYCLES):
        if session.status is SessionStatus.FINISHED:
            break
        if session.status is SessionStatus.ROUND_ENDED:
            outcome = engine.process_move(
                session, ActionRequest(player_id=session.creator_id, action=ActionType.START_NEXT_ROUND)
            )
            if not outcome.result.success:
                raise RuntimeError(f"Could not start the next round: {outcome.result.error}")
            session = outcome.session
            continue
        session = controller.run(session)
    else:
        raise RuntimeError("Match did not finish.")

    return {
        "scores": {player.name: player.score for player in session.players},
        "round_scores": {player.name: list(player.round_scores) for player in session.players},
        "buys_used": {player.name: player.buys_used for player in session.players},
        "winners": [session.player(player_id).name for player_id in session.winner_ids],
        "rounds": session.current_round,
    }


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run an all-bot Carioca match.")
    parser.add_argument("--players", type=int, default=3)
    parser.add_argument("--difficulty", default="MEDIUM", choices=[d.value for d in BotDifficulty])
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args(argv)

    difficulties = [BotDifficulty(args.difficulty)] * args.players
    results = run_match(difficulties, seed=args.seed)

    print(f"Final scores after {results['rounds']} rounds: {results['scores']}")
    print(f"Buys used: {results['buys_used']}")
    print(f"Winner(s): {', '.join(results['winners'])}")


if __name__ == "__main__":
    main()
