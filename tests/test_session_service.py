import pytest

from bots.controller import BotController
from carioca.actions import ActionRequest, ActionType
from carioca.errors import Conflict, Forbidden, IllegalMove, InternalError, NotFound
from carioca.game import GameEngine
from carioca.rules_schema import RuleSet
from carioca.service import GameService
from carioca.storage import InMemorySessionStore


class FailingStore(InMemorySessionStore):
    def save_session(self, session) -> None:
        raise OSError("disk full")


def make_service(seed: int = 4, store=None) -> GameService:
    engine = GameEngine(seed=seed)
    return GameService(engine=engine, store=store, bot_runner=BotController(engine, seed=seed))


def lobby_with_bots(service: GameService) -> str:
    view = service.create_game("p0", "Ana")
    service.add_bot(view.id, "p0")
    service.add_bot(view.id, "p0")
    return view.id


def test_create_join_and_start():
    service = make_service()
    game_id = service.create_game("p0", "Ana").id
    service.join_game(game_id, "p1", "Beto")
    service.add_bot(game_id, "p0")
    view = service.start_game(game_id, "p0")

    assert view.status == "PLAYING"
    assert view.current_round == 1
    assert view.contract == "1 trio of 3+"
    assert view.current_player_id == "p0"
    assert view.deck is None
    assert view.deck_count == 74
    mine, other, bot = view.players
    assert len(mine.hand) == 11
    assert other.hand is None and other.hand_count == 11
    assert bot.is_bot and bot.difficulty == "MEDIUM"
    assert mine.is_host and mine.remaining_buys == 7

    full = service.get_view(game_id)
    assert len(full.deck) == 74
    assert all(player.hand is not None for player in full.players)


def test_joining_twice_keeps_one_seat():
    service = make_service()
    game_id = service.create_game("p0", "Ana").id
    service.join_game(game_id, "p1", "Beto")
    view = service.join_game(game_id, "p1", "Beto")
    assert [player.id for player in view.players] == ["p0", "p1"]


def test_moves_run_bots_and_return_to_the_human():
    service = make_service()
    game_id = lobby_with_bots(service)
    service.start_game(game_id, "p0")

    result = service.make_move(game_id, ActionRequest(player_id="p0", action=ActionType.DRAW_DECK))
    assert result.success and result.status == 200
    card = service.get_view(game_id, "p0").players[0].hand[0]
    result = service.make_move(
        game_id, ActionRequest(player_id="p0", action=ActionType.DISCARD, payload={"cardId": card["id"]})
    )
    assert result.success
    assert result.game_status in ("PLAYING", "ROUND_ENDED", "FINISHED")

    view = service.get_view(game_id)
    if view.status == "PLAYING":
        assert view.current_player_id == "p0"
    total = len(view.deck) + len(view.discard_pile)
    total += sum(len(p.hand) + sum(len(meld) for meld in p.melds) for p in view.players)
    assert total == 108


def test_rejected_moves_do_not_touch_the_store():
    service = make_service()
    game_id = lobby_with_bots(service)
    service.start_game(game_id, "p0")
    before = service.get_view(game_id)

    result = service.make_move(game_id, ActionRequest(player_id="p0", action=ActionType.DISCARD, payload={}))
    assert not result.success
    assert result.status == 400
    assert result.error == "You must draw a card first."
    assert service.get_view(game_id) == before


def test_lobby_errors():
    service = make_service()
    game_id = service.create_game("p0", "Ana").id
    service.join_game(game_id, "p1", "Beto")

    with pytest.raises(IllegalMove, match="At least 3 players"):
        service.start_game(game_id, "p0")
    with pytest.raises(Forbidden):
        service.start_game(game_id, "p1")
    with pytest.raises(NotFound):
        service.start_game("nope", "p0")
    with pytest.raises(Conflict):
        service.reorder_players(game_id, "p0", ["p0"])
    with pytest.raises(IllegalMove):
        service.remove_player(game_id, "p0", "p0")
    with pytest.raises(Forbidden):
        service.rename_player(game_id, "p1", "p0", "Hacker")


def test_turn_order_and_names():
    service = make_service()
    game_id = service.create_game("p0", "Ana").id
    service.join_game(game_id, "p1", "Beto")
    bot_id = service.add_bot(game_id, "p0").players[2].id

    view = service.reorder_players(game_id, "p0", ["p1", "p0", bot_id])
    assert [player.id for player in view.players] == ["p1", "p0", bot_id]
    assert [player.turn_order for player in view.players] == [0, 1, 2]

    view = service.move_player(game_id, "p0", bot_id, "up")
    assert [player.id for player in view.players] == ["p1", bot_id, "p0"]

    view = service.rename_player(game_id, "p0", bot_id, "Robotina")
    assert view.players[1].name == "Robotina"


def test_leaving_last_player_deletes_session():
    store = InMemorySessionStore()
    service = make_service(store=store)
    game_id = service.create_game("p0", "Ana").id
    service.join_game(game_id, "p1", "Beto")

    assert service.store is store
    assert len(store) == 1
    assert store.load_session(game_id).players[1].id == "p1"

    assert service.leave_game(game_id, "p0") is False
    assert store.load_session(game_id).creator_id == "p1"
    assert service.leave_game(game_id, "p1") is True
    assert len(store) == 0
    assert store.load_session(game_id) is None
    with pytest.raises(NotFound):
        service.get_view(game_id)


def test_storage_failures_become_internal_errors():
    service = make_service(store=FailingStore())
    with pytest.raises(InternalError) as info:
        service.create_game("p0", "Ana")
    assert info.value.status == 500


def test_skip_requires_bots():
    service = GameService(engine=GameEngine(seed=1))
    game_id = service.create_game("p0", "Ana").id
    with pytest.raises(IllegalMove, match="Bots are not enabled"):
        service.skip_bot_turn(game_id, "p0")


def test_end_game_records_leaders():
    service = make_service()
    game_id = lobby_with_bots(service)
    service.start_game(game_id, "p0")
    view = service.end_game(game_id, "p0")
    assert view.status == "FINISHED"
    assert set(view.winner_ids) == {"p0", view.players[1].id, view.players[2].id}
    with pytest.raises(IllegalMove):
        service.end_game(game_id, "p0")


def test_locks_exist_only_for_live_sessions():
    service = make_service()
    for index in range(5):
        with pytest.raises(NotFound):
            service.make_move(f"ghost-{index}", ActionRequest(player_id="p0", action=ActionType.DRAW_DECK))
    assert service._locks == {}

    game_id = service.create_game("p0", "Ana").id
    service.join_game(game_id, "p1", "Beto")
    assert set(service._locks) == {game_id}

    service.leave_game(game_id, "p1")
    service.leave_game(game_id, "p0")
    assert service._locks == {}


def test_views_use_the_configured_buy_allowance():
    store = InMemorySessionStore()
    service = GameService(engine=GameEngine(RuleSet(max_buys=3), seed=2), store=store)
    game_id = service.create_game("p0", "Ana").id
    assert service.get_view(game_id).players[0].remaining_buys == 3

    session = store.load_session(game_id)
    session.players[0].buys_used = 3
    store.save_session(session)
    assert service.get_view(game_id).players[0].remaining_buys == 0
