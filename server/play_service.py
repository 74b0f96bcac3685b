"""REST service to play Carioca with humans and bots."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from bots.controller import BotController
from carioca.actions import ActionRequest
from carioca.errors import EngineError
from carioca.game import GameEngine
from carioca.rules_schema import RuleSet, load_rules
from carioca.service import GameService
from carioca.state import BotDifficulty

logger = logging.getLogger(__name__)


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateGameRequest(_Body):
    player_id: str = Field(alias="playerId")
    name: str


class JoinRequest(_Body):
    player_id: str = Field(alias="playerId")
    name: str


class AddBotRequest(_Body):
    requester_id: str = Field(alias="requesterId")
    difficulty: BotDifficulty = BotDifficulty.MEDIUM
    name: Optional[str] = None


class HostRequest(_Body):
    requester_id: str = Field(alias="requesterId")


class LeaveRequest(_Body):
    player_id: str = Field(alias="playerId")


class RemovePlayerRequest(_Body):
    requester_id: str = Field(alias="requesterId")
    player_id: str = Field(alias="playerId")


class TurnOrderRequest(_Body):
    requester_id: str = Field(alias="requesterId")
    order: Optional[List[str]] = None
    player_id: Optional[str] = Field(default=None, alias="playerId")
    direction: Optional[Literal["up", "down"]] = None


class UpdateNameRequest(_Body):
    requester_id: str = Field(alias="requesterId")
    player_id: str = Field(alias="playerId")
    name: str


def rules_from_env() -> RuleSet:
    path = os.getenv("CARIOCA_RULES")
    if path:
        logger.info("Loading rules from %s", path)
        return load_rules(path)
    return RuleSet()


def build_service(rules: Optional[RuleSet] = None, *, seed: Optional[int] = None) -> GameService:
    engine = GameEngine(rules, seed=seed)
    return GameService(engine=engine, bot_runner=BotController(engine, seed=seed))


def create_app(service: Optional[GameService] = None) -> FastAPI:
    service = service or build_service(rules_from_env())
    app = FastAPI(title="Carioca Play Service")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = service

    @app.exception_handler(EngineError)
    async def engine_error(request: Request, exc: EngineError) -> JSONResponse:
        if exc.status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status, content={"success": False, "error": exc.message})

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/games")
    def create_game(body: CreateGameRequest) -> Dict[str, Any]:
        view = service.create_game(body.player_id, body.name)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/join")
    def join_game(game_id: str, body: JoinRequest) -> Dict[str, Any]:
        view = service.join_game(game_id, body.player_id, body.name)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/add-bot")
    def add_bot(game_id: str, body: AddBotRequest) -> Dict[str, Any]:
        view = service.add_bot(game_id, body.requester_id, body.difficulty, body.name)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/start")
    def start_game(game_id: str, body: HostRequest) -> Dict[str, Any]:
        view = service.start_game(game_id, body.requester_id)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/move")
    def make_move(game_id: str, body: ActionRequest) -> JSONResponse:
        result = service.make_move(game_id, body)
        return JSONResponse(status_code=result.status, content=result.to_dict())

    @app.post("/games/{game_id}/leave")
    def leave_game(game_id: str, body: LeaveRequest) -> Dict[str, Any]:
        deleted = service.leave_game(game_id, body.player_id)
        return {"success": True, "deleted": deleted}

    @app.post("/games/{game_id}/remove-player")
    def remove_player(game_id: str, body: RemovePlayerRequest) -> Dict[str, Any]:
        view = service.remove_player(game_id, body.requester_id, body.player_id)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/turn-order")
    def turn_order(game_id: str, body: TurnOrderRequest) -> JSONResponse:
        if body.order is not None:
            view = service.reorder_players(game_id, body.requester_id, body.order)
        elif body.player_id and body.direction:
            view = service.move_player(game_id, body.requester_id, body.player_id, body.direction)
        else:
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Provide either order or playerId with direction."},
            )
        return JSONResponse(content={"success": True, "game": asdict(view)})

    @app.post("/games/{game_id}/update-name")
    def update_name(game_id: str, body: UpdateNameRequest) -> Dict[str, Any]:
        view = service.rename_player(game_id, body.requester_id, body.player_id, body.name)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/end")
    def end_game(game_id: str, body: HostRequest) -> Dict[str, Any]:
        view = service.end_game(game_id, body.requester_id)
        return {"success": True, "game": asdict(view)}

    @app.post("/games/{game_id}/skip-bot-turn")
    def skip_bot_turn(game_id: str, body: HostRequest) -> Dict[str, Any]:
        view = service.skip_bot_turn(game_id, body.requester_id)
        return {"success": True, "game": asdict(view)}

    @app.get("/games/{game_id}/state")
    def game_state(game_id: str, player_id: Optional[str] = None) -> Dict[str, Any]:
        view = service.get_view(game_id, perspective=player_id)
        return {"success": True, "game": asdict(view)}

    return app


app = create_app()


def main() -> None:
    import uvicorn

    level = os.getenv("LOG_LEVEL", "info").lower()
    logging.basicConfig(level=level.upper())
    uvicorn.run(
        "server.play_service:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8000)),
        log_level=level,
    )


if __name__ == "__main__":
    main()
