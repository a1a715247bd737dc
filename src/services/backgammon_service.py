"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
import random
import time
from typing import Any, Callable, Optional
from uuid import UUID

from src.api.models import (
    ClaimTimeoutRequest,
    ClockResponse,
    ConfirmTurnRequest,
    CreateGameRequest,
    DeleteGameRequest,
    DieResponse,
    GameResponse,
    GameResultResponse,
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
from src.backgammon.game import Game
from src.backgammon.rating import DEFAULT_RATING, rate_match
from src.backgammon.rules import RulesEngine
from src.core.config import Settings, get_settings
from src.core.exceptions import GameError, GameNotFoundError, StaleStateError
from src.core.models import GameModel, PlayerStatsModel
from src.core.shared_types import Status
from src.db.repository import GameRepository

logger = logging.getLogger(__name__)

GameAction = Callable[[Game, float], Any]


class BackgammonService:
    """Orchestration of layers for a backgammon match."""

    def __init__(
        self,
        repository: GameRepository,
        rng: Optional[random.Random] = None,
        rules: Optional[RulesEngine] = None,
        clock: Callable[[], float] = time.time,
        settings: Optional[Settings] = None,
    ) -> None:
        self.repo = repository
        self.rng = rng or random.Random()
        self.rules = rules
        self.clock = clock
        self.settings = settings or get_settings()

    # -- API routes logic ---
    def create_new_game(self, request: CreateGameRequest) -> GameResponse:
        """First player requested to open a new match."""

        # Use info in CreateGameRequest to create a new Game, and convert into GameModel
        new_game = Game.new_game(
            player=request.player_name,
            color=request.color,
            target_score=request.target_score or self.settings.default_target_score,
            is_rated=request.is_rated,
            use_clock=request.use_clock,
            use_video_chat=request.use_video_chat,
            clock_seconds=self.settings.clock_seconds,
            delay_seconds=self.settings.delay_seconds,
        )
        created_game_data = new_game.to_model()

        # Store the GameModel in the repository
        stored_game, game_id = self.repo.create_game(created_game_data)
        logger.info(
            "Game %s created by %s (target %s)",
            game_id,
            request.player_name,
            new_game.match.target_score,
        )

        # Return a GameResponse
        return self._create_game_response(game_id, self._rebuild(stored_game))

    def join_game(self, request: JoinGameRequest) -> GameResponse:
        """Second player requested to join a game."""
        return self._mutate(
            request, "join", lambda game, _: game.register_player(request.player_name)
        )

    def set_ready(self, request: ReadyRequest) -> GameResponse:
        """Once both players are ready, the opening roll is made and the first game starts."""
        return self._mutate(
            request, "ready", lambda game, now: game.set_ready(request.player_name, now)
        )

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        # Retrieve persisted GameModel from repository
        game_model = self._fetch_game(request.game_id)
        return self._create_game_response(request.game_id, self._rebuild(game_model))

    def roll_dice(self, request: RollDiceRequest) -> GameResponse:
        return self._mutate(
            request, "roll", lambda game, now: game.roll_dice(request.player_name, now)
        )

    def make_move(self, request: MoveRequest) -> GameResponse:
        """Move a single checker (possibly using several dice)."""
        return self._mutate(
            request,
            f"move {request.notation}",
            lambda game, now: game.apply_move(request.player_name, request.notation, now),
        )

    def undo_move(self, request: UndoMoveRequest) -> GameResponse:
        return self._mutate(
            request,
            "undo",
            lambda game, now: game.undo_last_move(request.player_name, now),
        )

    def confirm_turn(self, request: ConfirmTurnRequest) -> GameResponse:
        return self._mutate(
            request,
            "confirm turn",
            lambda game, now: game.confirm_turn(request.player_name, now),
        )

    def offer_double(self, request: OfferDoubleRequest) -> GameResponse:
        return self._mutate(
            request,
            "offer double",
            lambda game, now: game.offer_double(request.player_name, now),
        )

    def respond_to_double(self, request: RespondToDoubleRequest) -> GameResponse:
        action = "take" if request.accept else "pass"
        return self._mutate(
            request,
            action,
            lambda game, now: game.respond_to_double(
                request.player_name, request.accept, now
            ),
        )

    def resign(self, request: ResignRequest) -> GameResponse:
        return self._mutate(
            request, "resign", lambda game, now: game.resign(request.player_name, now)
        )

    def claim_timeout(self, request: ClaimTimeoutRequest) -> GameResponse:
        return self._mutate(
            request,
            "claim timeout",
            lambda game, now: game.claim_timeout(request.player_name, now),
        )

    def delete_game(self, request: DeleteGameRequest) -> None:
        """Handle a request to delete a Game record."""
        if self.repo.delete_game(request.game_id) is None:
            raise GameNotFoundError(f"Game with game_id={request.game_id} not found.")
        logger.info("Game %s deleted", request.game_id)

    # -- Internal helpers --
    def _mutate(
        self, request: PlayerRequest, description: str, action: GameAction
    ) -> GameResponse:
        """
        Shared flow of every state changing request
        ----

        1. Retrieve persisted GameModel from repository (and reject stale clients)
        2. Create a new Game instance from the retrieved GameModel
        3. Attempt the action. Nothing gets stored if the Game rejects it.
        4. Bump the version, compute ratings if the match just ended
        5. Store game and ratings in one compare-and-set write: a concurrent writer that read
           the same version makes it fail with StaleStateError
        6. Return a GameResponse
        """
        stored_model = self._fetch_game(request.game_id)
        self._check_version(request, stored_model)

        game = self._rebuild(stored_model)
        now = self.clock()
        try:
            action(game, now)
        except GameError as exc:
            logger.warning(
                "Rejected %s by %s in game %s: %s",
                description,
                request.player_name,
                request.game_id,
                exc.message,
            )
            raise

        expected_version = stored_model.version
        game.version = expected_version + 1
        player_stats: list[PlayerStatsModel] = []
        if stored_model.status != Status.COMPLETED and game.status == Status.COMPLETED:
            logger.info("Game %s completed, winner: %s", request.game_id, game.winner)
            player_stats = self._rate_match(game)

        try:
            updated = self.repo.update_game(
                request.game_id, game.to_model(), expected_version, player_stats
            )
        except StaleStateError:
            logger.warning(
                "Lost write race for %s by %s in game %s (read version %s)",
                description,
                request.player_name,
                request.game_id,
                expected_version,
            )
            raise
        if updated is None:
            raise GameNotFoundError(f"Game with game_id={request.game_id} was deleted.")

        for stats in player_stats:
            logger.info(
                "Rating of %s is now %s (%s games)",
                stats.player_name,
                stats.rating,
                stats.games_played,
            )
        logger.info(
            "Game %s: %s by %s (version %s, phase %s)",
            request.game_id,
            description,
            request.player_name,
            game.version,
            game.phase,
        )
        return self._create_game_response(request.game_id, game, now)

    def _check_version(self, request: PlayerRequest, stored_model: GameModel) -> None:
        if (
            request.expected_version is not None
            and request.expected_version != stored_model.version
        ):
            raise StaleStateError(
                "Game state changed since it was last fetched. Refresh and try again.",
                context={
                    "expected_version": request.expected_version,
                    "current_version": stored_model.version,
                },
            )

    def _rate_match(self, game: Game) -> list[PlayerStatsModel]:
        """
        New Elo ratings and game counts of both players, for a rated match that just ended.
        They are only stored together with the completed game.
        """
        if not game.match.is_rated or game.match.winner is None:
            return []

        winner_name = game.players[game.match.winner]
        loser_name = game.players[game.match.winner.opponent]
        winner_stats = self._player_stats(winner_name)
        loser_stats = self._player_stats(loser_name)

        new_winner_rating, new_loser_rating = rate_match(
            winner_stats.rating, loser_stats.rating
        )
        return [
            PlayerStatsModel(
                player_name=winner_name,
                rating=new_winner_rating,
                games_played=winner_stats.games_played + 1,
                games_won=winner_stats.games_won + 1,
            ),
            PlayerStatsModel(
                player_name=loser_name,
                rating=new_loser_rating,
                games_played=loser_stats.games_played + 1,
                games_won=loser_stats.games_won,
            ),
        ]

    def _player_stats(self, player_name: str) -> PlayerStatsModel:
        return self.repo.get_player_stats(player_name) or PlayerStatsModel(
            player_name=player_name, rating=DEFAULT_RATING
        )

    def _rebuild(self, model: GameModel) -> Game:
        return Game.from_model(model, rules=self.rules, rng=self.rng)

    def _create_game_response(
        self, game_id: UUID, game: Game, now: Optional[float] = None
    ) -> GameResponse:
        """Convert the Game into a GameResponse (for game with given ID.)"""
        timestamp = self.clock() if now is None else now
        return GameResponse(
            game_id=game_id,
            version=game.version,
            players={color.value: name for color, name in game.players.items()},
            status=game.status,
            phase=game.phase,
            turn=game.turn,
            board=game.board.to_dict(),
            dice=[DieResponse(**die) for die in game.dice.to_list()] if game.dice else [],
            moves=game.ledger.to_notation(),
            legal_moves=game.legal_moves(),
            pip_counts={color.value: pips for color, pips in game.pip_counts().items()},
            match=game.match.to_dict(),
            cube=game.cube.to_dict(),
            clock=ClockResponse(**game.clock.snapshot(timestamp)) if game.clock else None,
            history=[GameResultResponse(**result.to_dict()) for result in game.history],
            opening_rolls=(
                {color.value: value for color, value in game.opening_rolls.items()}
                if game.opening_rolls
                else None
            ),
            undo_ready=game.undo_ready,
            end_turn_ready=game.end_turn_ready,
            can_offer_double=game.can_offer_double,
            winner=game.winner,
        )

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise GameNotFoundError(f"Game with {game_id=} not found.")
        return game_model
