import pytest

from bots.baseline_greedy import GreedyBot, choose_discard
from bots.bot_arena import run_match
from bots.controller import BotController
from carioca import lobby
from carioca.actions import ActionRequest, ActionType
from carioca.cards import Card, Suit
from carioca.errors import Forbidden, IllegalMove
from carioca.game import GameEngine
from carioca.rules_schema import RuleSet
from carioca.state import BotDifficulty, SessionStatus

SUITS = {"H": Suit.HEART, "D": Suit.DIAMOND, "C": Suit.CLUB, "S": Suit.SPADE}
FACES = {"A": 1, "J": 11, "Q": 12, "K": 13}
JOKER = Card("JOKER-9-0", Suit.JOKER, 0)


def c(code: str, deck: int = 9) -> Card:
    raw = code[1:]
    value = FACES[raw] if raw in FACES else int(raw)
    return Card(f"{code[0]}{value}-{deck}", SUITS[code[0]], value)


def bot_table(seed: int = 5):
    engine = GameEngine(seed=seed)
    session = lobby.create_session("p0", "Ana", session_id="bots")
    lobby.add_bot(session, "p0", engine.rules, BotDifficulty.MEDIUM)
    lobby.add_bot(session, "p0", engine.rules, BotDifficulty.HARD)
    lobby.start_game(session, "p0", engine)
    return engine, session


def test_run_match_executes():
    results = run_match((BotDifficulty.MEDIUM,) * 3, seed=7)
    assert results["rounds"] == 8
    assert len(results["scores"]) == 3
    assert results["winners"]
    assert all(len(scores) == 8 for scores in results["round_scores"].values())


def test_greedy_draws_from_deck_unless_the_discard_helps():
    _, session = bot_table()
    player = session.player("p0")
    player.hand = [c("H5"), c("D5"), c("C5"), c("S9"), c("D2")]
    session.discard_pile.append(c("CQ"))
    move = GreedyBot(BotDifficulty.EASY, seed=1).choose_move(session, "p0")
    assert move.action is ActionType.DRAW_DECK

    session.discard_pile.append(JOKER)
    move = GreedyBot(BotDifficulty.HARD, seed=1).choose_move(session, "p0")
    assert move.action is ActionType.DRAW_DISCARD


def test_greedy_lays_down_its_contract():
    _, session = bot_table()
    player = session.player("p0")
    player.hand = [c("H5"), c("D5"), c("C5"), c("S9"), c("D2")]
    player.has_drawn = True
    move = GreedyBot().choose_move(session, "p0")
    assert move.action is ActionType.DOWN
    groups = move.payload["groups"]
    assert len(groups) == 1
    assert sorted(groups[0]) == ["C5-9", "D5-9", "H5-9"]


def test_greedy_discards_highest_loose_natural():
    hand = [JOKER, c("HK"), c("H5"), c("D5"), c("S9")]
    assert choose_discard(hand, 1) == c("HK")
    assert choose_discard([JOKER], 1) == JOKER


def test_easy_bots_never_buy():
    _, session = bot_table()
    bot_id = session.players[1].id
    assert not GreedyBot(BotDifficulty.EASY).wants_to_buy(session, bot_id)


def test_bots_respect_the_configured_buy_allowance():
    _, session = bot_table()
    bot = session.players[1]
    bot.buys_used = 2
    session.discard_pile.append(JOKER)
    assert GreedyBot(BotDifficulty.HARD).wants_to_buy(session, bot.id)
    assert not GreedyBot(BotDifficulty.HARD, max_buys=3).wants_to_buy(session, bot.id)

    controller = BotController(GameEngine(RuleSet(max_buys=3)))
    assert controller.strategy_for(bot).max_buys == 3


def test_controller_returns_control_to_the_human():
    engine, session = bot_table()
    controller = BotController(engine, seed=3)
    outcome = engine.process_move(session, ActionRequest(player_id="p0", action=ActionType.DRAW_DECK))
    session = outcome.session
    card = session.player("p0").hand[0]
    outcome = engine.process_move(
        session, ActionRequest(player_id="p0", action=ActionType.DISCARD, payload={"cardId": card.id})
    )
    session = controller.after_action(outcome.session)

    assert session.status is not SessionStatus.PLAYING or session.current_player.id == "p0"
    counts = session.card_counts()
    assert sum(counts.values()) == 108


def test_force_skip_checks_host_and_seat():
    engine, session = bot_table()
    controller = BotController(engine)
    with pytest.raises(Forbidden):
        controller.force_skip(session, session.players[1].id)
    with pytest.raises(IllegalMove):
        controller.force_skip(session, "p0")


def test_force_skip_moves_a_stuck_bot():
    engine, session = bot_table()
    controller = BotController(engine)
    session.current_turn = 1
    before = len(session.discard_pile)

    session = controller.force_skip(session, "p0")
    assert session.current_player.id == "p0" or session.status is not SessionStatus.PLAYING
    assert session.last_action is not None
    assert len(session.discard_pile) >= before
    assert sum(session.card_counts().values()) == 108
