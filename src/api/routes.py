"""
HTTP interface of the backgammon service.

Every route is a thin wrapper around BackgammonService. Domain exceptions are turned into JSON error responses
by the exception handlers registered on the app.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api.models import (
    ClaimTimeoutRequest,
    ConfirmTurnRequest,
    CreateGameRequest,
    DeleteGameRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    MoveRequest,
    OfferDoubleRequest,
    PlayerRequest,
    ReadyRequest,
    ResignRequest,
    RespondToDoubleRequest,
    RollDiceRequest,
    UndoMoveRequest,
)
from src.core.config import configure_logging, get_settings
from src.core.exceptions import (
    GameError,
    GameNotFoundError,
    InvalidRequestError,
    NotAPlayerError,
    StaleStateError,
    UnauthorizedActionError,
)
from src.db.database import get_db, init_db
from src.db.sql_repository import SQLGameRepository
from src.services.backgammon_service import BackgammonService

logger = logging.getLogger(__name__)


class PlayerBody(PlayerRequest):
    """Body of the player action routes: the game id comes from the path."""

    game_id: UUID | None = None  # type: ignore[assignment]


class MoveBody(MoveRequest):
    game_id: UUID | None = None  # type: ignore[assignment]


class DoubleResponseBody(RespondToDoubleRequest):
    game_id: UUID | None = None  # type: ignore[assignment]


def get_service(db: Session = Depends(get_db)) -> BackgammonService:
    return BackgammonService(SQLGameRepository(db))


router = APIRouter(prefix="/games", tags=["games"])


@router.post("", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
def create_game(
    body: CreateGameRequest, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.create_new_game(body)


@router.get("/{game_id}", response_model=GameResponse)
def get_game(game_id: UUID, service: BackgammonService = Depends(get_service)) -> GameResponse:
    return service.get_game_state(GetGameRequest(game_id=game_id))


@router.delete("/{game_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_game(game_id: UUID, service: BackgammonService = Depends(get_service)) -> None:
    service.delete_game(DeleteGameRequest(game_id=game_id))


@router.post("/{game_id}/join", response_model=GameResponse)
def join_game(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.join_game(JoinGameRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/ready", response_model=GameResponse)
def set_ready(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.set_ready(ReadyRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/roll", response_model=GameResponse)
def roll_dice(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.roll_dice(RollDiceRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/moves", response_model=GameResponse)
def make_move(
    game_id: UUID, body: MoveBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.make_move(MoveRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/undo", response_model=GameResponse)
def undo_move(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.undo_move(UndoMoveRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/confirm", response_model=GameResponse)
def confirm_turn(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.confirm_turn(ConfirmTurnRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/double", response_model=GameResponse)
def offer_double(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.offer_double(OfferDoubleRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/double/response", response_model=GameResponse)
def respond_to_double(
    game_id: UUID,
    body: DoubleResponseBody,
    service: BackgammonService = Depends(get_service),
) -> GameResponse:
    return service.respond_to_double(
        RespondToDoubleRequest(**_with_game_id(body, game_id))
    )


@router.post("/{game_id}/resign", response_model=GameResponse)
def resign(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.resign(ResignRequest(**_with_game_id(body, game_id)))


@router.post("/{game_id}/timeout", response_model=GameResponse)
def claim_timeout(
    game_id: UUID, body: PlayerBody, service: BackgammonService = Depends(get_service)
) -> GameResponse:
    return service.claim_timeout(ClaimTimeoutRequest(**_with_game_id(body, game_id)))


def _with_game_id(body: PlayerRequest, game_id: UUID) -> dict:
    return {**body.model_dump(), "game_id": game_id}


# --- ERROR HANDLING ---
def status_code_for(exc: GameError) -> int:
    """Most specific match first: not a participant is forbidden, acting out of turn is a conflict."""
    if isinstance(exc, GameNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, NotAPlayerError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, (UnauthorizedActionError, StaleStateError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, InvalidRequestError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_400_BAD_REQUEST


async def game_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, GameError)
    status_code = status_code_for(exc)
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Backgammon Match Service",
        description="Authoritative match / turn / doubling cube state for backgammon games",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GameError, game_error_handler)
    app.include_router(router)
    return app


app = create_app()
