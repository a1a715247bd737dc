"""
The Game class will be the entrypoint into the domain layer for the service layer.
It is the match state machine: it owns whose turn it is and drives a turn through its phases

    awaiting_roll --> rolled --> moves_pending --> (confirm) --> awaiting_roll for the opponent
          |
          +--> double_offered --> (take) awaiting_roll / (pass) next game or match over

while consulting the doubling cube, the dice, the move ledger, the score keeping and (optionally) the clock.

Every public method validates everything it needs before touching the state, so an operation either
fully succeeds or raises without changing anything.
"""

import random
import time
from copy import deepcopy
from dataclasses import dataclass, field
from itertools import permutations
from typing import Any, Optional, Self

from src.backgammon.board import BoardPosition
from src.backgammon.clock import MatchClock
from src.backgammon.cube import DoublingCube
from src.backgammon.dice import DiceRoll, opening_roll
from src.backgammon.match import MatchState
from src.backgammon.moves import OFF, LedgerEntry, Move, MoveLedger, destination
from src.backgammon.rules import RulesEngine, StandardRules
from src.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    NotAPlayerError,
    NotYourTurnError,
    UnauthorizedActionError,
)
from src.core.models import GameModel
from src.core.shared_types import (
    RESULT_MULTIPLIER,
    Color,
    ResultType,
    Status,
    TurnPhase,
)

MOVING_PHASES = (TurnPhase.ROLLED, TurnPhase.MOVES_PENDING)


@dataclass
class GameResult:
    """Outcome of a single game within the match"""

    game_number: int
    winner: Color
    result_type: ResultType
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_number": self.game_number,
            "winner": self.winner.value,
            "result_type": self.result_type.value,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            game_number=int(data["game_number"]),
            winner=Color(data["winner"]),
            result_type=ResultType(data["result_type"]),
            points=int(data["points"]),
        )


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    board: BoardPosition
    dice: Optional[DiceRoll]
    ledger: MoveLedger
    match: MatchState
    cube: DoublingCube
    clock: Optional[MatchClock]
    players: dict[Color, str]
    status: Status
    phase: TurnPhase
    turn: Optional[Color]
    history: list[GameResult] = field(default_factory=list)
    opening_rolls: Optional[dict[Color, int]] = None
    version: int = 0
    rules: RulesEngine = field(default_factory=StandardRules, repr=False, compare=False)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @classmethod
    def from_model(
        cls,
        model: GameModel,
        rules: Optional[RulesEngine] = None,
        rng: Optional[random.Random] = None,
    ) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""

        # Validation
        try:
            status = Status(model.status)
            phase = TurnPhase(model.phase)
            turn = Color(model.turn) if model.turn else None
            players = {
                Color(color): name for color, name in model.registered_players.items()
            }
        except ValueError as exc:
            raise GameStateError(f"Invalid game record: {exc}") from exc

        return cls(
            board=BoardPosition.from_dict(model.board),
            dice=DiceRoll.from_list(turn, model.dice) if turn else None,
            ledger=MoveLedger.from_list(model.moves),
            match=MatchState.from_dict(model.match),
            cube=DoublingCube.from_dict(model.cube),
            clock=MatchClock.from_dict(model.clock),
            players=players,
            status=status,
            phase=phase,
            turn=turn,
            history=[GameResult.from_dict(item) for item in model.history],
            opening_rolls=(
                {Color(color): value for color, value in model.opening_rolls.items()}
                if model.opening_rolls
                else None
            ),
            version=model.version,
            rules=rules or StandardRules(),
            rng=rng or random.Random(),
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""

        return GameModel(
            registered_players={
                color.value: name for color, name in self.players.items()
            },
            status=self.status.value,
            phase=self.phase.value,
            turn=self.turn.value if self.turn else None,
            board=self.board.to_dict(),
            dice=self.dice.to_list() if self.dice else [],
            moves=self.ledger.to_list(),
            match=self.match.to_dict(),
            cube=self.cube.to_dict(),
            clock=self.clock.to_dict() if self.clock else {},
            history=[result.to_dict() for result in self.history],
            opening_rolls=(
                {color.value: value for color, value in self.opening_rolls.items()}
                if self.opening_rolls
                else None
            ),
            version=self.version,
        )

    @classmethod
    def new_game(
        cls,
        player: str,
        color: str,
        target_score: int = 7,
        is_rated: bool = False,
        use_clock: bool = False,
        use_video_chat: bool = False,
        clock_seconds: float = 600.0,
        delay_seconds: float = 12.0,
    ) -> Self:
        """To open a new match with the player using the checkers with the indicated color."""

        if color.lower() not in [c.value for c in Color]:
            raise GameStateError(
                f"Cannot create new game. Color {color} not in {','.join(c.value for c in Color)}."
            )
        return cls(
            board=BoardPosition.starting_position(),
            dice=None,
            ledger=MoveLedger(),
            match=MatchState(
                target_score=target_score,
                is_rated=is_rated,
                use_clock=use_clock,
                use_video_chat=use_video_chat,
            ),
            cube=DoublingCube(),
            clock=MatchClock.create(clock_seconds, delay_seconds) if use_clock else None,
            players={Color(color.lower()): player},
            status=Status.WAITING_FOR_START,
            phase=TurnPhase.AWAITING_ROLL,
            turn=None,
        )

    # --- STATE QUERIES (used by clients to enable / disable actions) ---
    @property
    def winner(self) -> Optional[str]:
        if self.match.winner is None:
            return None
        return self.players[self.match.winner]

    @property
    def undo_ready(self) -> bool:
        return self.phase == TurnPhase.MOVES_PENDING and len(self.ledger) > 0

    @property
    def end_turn_ready(self) -> bool:
        """All dice used, or none of the remaining dice can be played."""
        if self.phase not in MOVING_PHASES or self.dice is None or self.turn is None:
            return False
        if self.dice.all_used:
            return True
        return not self.rules.has_legal_move(
            self.board, self.turn, self.dice.unused_values()
        )

    @property
    def can_offer_double(self) -> bool:
        if self.status != Status.IN_PROGRESS or self.phase != TurnPhase.AWAITING_ROLL:
            return False
        assert self.turn is not None
        reason = self.cube.offer_block_reason(
            self.turn, self.match.target_score, self.match.is_crawford_game
        )
        return reason is None

    def legal_moves(self) -> list[str]:
        """Single checker moves available to the player on turn (hints for the UI)."""
        if self.phase not in MOVING_PHASES or self.dice is None or self.turn is None:
            return []
        return [
            move.to_notation()
            for move in self.rules.legal_moves(
                self.board, self.turn, self.dice.unused_values()
            )
        ]

    def pip_counts(self) -> dict[Color, int]:
        return {color: self.board.pip_count(color) for color in Color}

    # --- MATCH SETUP ---
    def register_player(self, player: str) -> None:
        """Registering the 2nd player to an open match"""
        if self.status != Status.WAITING_FOR_START:
            raise GameStateError(
                f"Cannot join this game. Game is not accepting new players. status: {self.status}"
            )
        if len(self.players) == 2:
            raise GameStateError("Cannot join this game. Both seats are taken.")
        if player in self.players.values():
            raise GameStateError(f"Player {player} is already registered to this game.")

        opponent_color = list(self.players.keys())[0]
        self.players[opponent_color.opponent] = player

    def set_ready(self, player: str, now: Optional[float] = None) -> None:
        """Mark a player ready. Once both are, the first game starts with the opening roll."""
        color = self._get_player_color(player)
        if self.status == Status.IN_PROGRESS:
            return
        if self.status != Status.WAITING_FOR_START:
            raise GameStateError(f"Game is in an invalid state: {self.status}")

        self.match.set_ready(color)
        if self.match.both_ready and len(self.players) == 2:
            self.status = Status.IN_PROGRESS
            self._start_next_game(_resolve(now))

    # --- TURN CONTROLLER ---
    def roll_dice(self, player: str, now: Optional[float] = None) -> DiceRoll:
        self._assert_in_progress()
        color = self._assert_your_turn(player)
        if self.phase == TurnPhase.DOUBLE_OFFERED:
            raise GameStateError("Cannot roll while a double is waiting for a response.")
        if self.phase != TurnPhase.AWAITING_ROLL:
            raise GameStateError("Dice have already been rolled for this turn.")
        self._assert_time_left(color, _resolve(now))

        self.dice = DiceRoll.roll(color, self.rng)
        self.phase = TurnPhase.ROLLED
        return self.dice

    def apply_move(
        self, player: str, move_notation: str, now: Optional[float] = None
    ) -> list[LedgerEntry]:
        """
        Attempt a checker move
        -----

        1. check it is your turn and the dice are rolled
        2. find the die (or dice) that carry the checker to its destination, checking each step with the rules engine
        3. update the board, mark the dice used, record the moves in the ledger
        """
        self._assert_in_progress()
        color = self._assert_your_turn(player)
        if self.phase not in MOVING_PHASES:
            raise GameStateError(f"Cannot move checkers now. phase: {self.phase}")
        self._assert_time_left(color, _resolve(now))
        assert self.dice is not None

        move = Move.from_notation(move_notation)
        steps = self._plan_move(color, move)

        entries: list[LedgerEntry] = []
        for step in steps:
            assert step.die_used is not None
            hit = self.board.move_checker(color, step)
            self.dice.use(step.die_used)
            entry = LedgerEntry(step, hit)
            self.ledger.push(entry)
            entries.append(entry)

        self.phase = TurnPhase.MOVES_PENDING
        return entries

    def undo_last_move(self, player: str, now: Optional[float] = None) -> LedgerEntry:
        self._assert_in_progress()
        color = self._assert_your_turn(player)
        if not self.undo_ready:
            raise GameStateError("There is no move to undo.")
        self._assert_time_left(color, _resolve(now))
        assert self.dice is not None

        entry = self.ledger.pop()
        self.board.revert_checker(color, entry.move, entry.hit)
        assert entry.move.die_used is not None
        self.dice.restore(entry.move.die_used)
        if len(self.ledger) == 0:
            self.phase = TurnPhase.ROLLED
        return entry

    def confirm_turn(self, player: str, now: Optional[float] = None) -> Optional[GameResult]:
        """Commit the moves and hand the turn over. Returns the result if this turn won the game."""
        self._assert_in_progress()
        color = self._assert_your_turn(player)
        if self.phase not in MOVING_PHASES:
            raise GameStateError(f"Cannot end the turn now. phase: {self.phase}")
        timestamp = _resolve(now)
        self._assert_time_left(color, timestamp)
        if not self.end_turn_ready:
            raise GameStateError("You still have dice that can be played.")

        if self.board.is_bearing_off_complete(color):
            result_type = self._bear_off_result(color)
            points = RESULT_MULTIPLIER[result_type] * self.cube.value
            return self._finish_game(color, result_type, points, timestamp)

        self.turn = color.opponent
        self.dice = None
        self.ledger.clear()
        self.phase = TurnPhase.AWAITING_ROLL
        if self.clock:
            self.clock.start_turn(self.turn, timestamp)
        return None

    def resign(self, player: str, now: Optional[float] = None) -> GameResult:
        """Give up the match. The opponent gets the current stake and wins the match."""
        self._assert_in_progress()
        color = self._get_player_color(player)
        winner = color.opponent

        result = GameResult(
            self.match.game_number, winner, ResultType.RESIGNATION, self.cube.value
        )
        self.history.append(result)
        self.match.award_match(winner, self.cube.value)
        self._end_match(_resolve(now))
        return result

    def claim_timeout(self, player: str, now: Optional[float] = None) -> GameResult:
        """Either player can settle a game where the player on turn ran out of time."""
        self._assert_in_progress()
        self._get_player_color(player)
        if self.clock is None:
            raise GameStateError("This match is played without a clock.")
        timestamp = _resolve(now)
        loser = self.clock.expired(timestamp)
        if loser is None:
            raise GameStateError("No player has run out of time.")
        return self._finish_game(
            loser.opponent, ResultType.TIMEOUT, self.cube.value, timestamp
        )

    # --- DOUBLING CUBE CONTROLLER ---
    def offer_double(self, player: str, now: Optional[float] = None) -> None:
        self._assert_in_progress()
        color = self._assert_your_turn(player)
        if self.phase != TurnPhase.AWAITING_ROLL:
            raise GameStateError("A double can only be offered before rolling the dice.")
        timestamp = _resolve(now)
        self._assert_time_left(color, timestamp)

        self.cube.offer(color, self.match.target_score, self.match.is_crawford_game)
        self.phase = TurnPhase.DOUBLE_OFFERED
        if self.clock:
            self.clock.pause(timestamp)

    def respond_to_double(
        self, player: str, accept: bool, now: Optional[float] = None
    ) -> Optional[GameResult]:
        """
        Take: the cube doubles, the taker owns it and the offering player continues the turn by rolling.
        Pass: the offering player wins the current game at the stake before the double.
        """
        self._assert_in_progress()
        color = self._get_player_color(player)
        if self.phase != TurnPhase.DOUBLE_OFFERED or self.cube.offered_by is None:
            raise GameStateError("No double is being offered.")
        if color == self.cube.offered_by:
            raise UnauthorizedActionError(
                "Only the opponent of the offering player can respond to a double."
            )
        timestamp = _resolve(now)

        if accept:
            self.cube.accept()
            self.phase = TurnPhase.AWAITING_ROLL
            if self.clock:
                self.clock.resume(timestamp)
            return None

        offering_color = self.cube.offered_by
        stake = self.cube.decline()
        return self._finish_game(
            offering_color, ResultType.DOUBLE_DECLINED, stake, timestamp
        )

    # -- PRIVATE HELPERS ---
    def _get_player_color(self, player: str) -> Color:
        color = next(
            (color for color, name in self.players.items() if name == player), None
        )
        if color is None:
            raise NotAPlayerError(f"Player {player} is not registered to this game.")
        return color

    def _assert_in_progress(self) -> None:
        if self.status != Status.IN_PROGRESS:
            raise GameStateError(f"Game is not in progress. status: {self.status}")

    def _assert_your_turn(self, player: str) -> Color:
        """You must wait for your turn before rolling / moving / doubling."""
        color = self._get_player_color(player)
        if color != self.turn:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for player {self.players[color.opponent]} to play first."
            )
        return color

    def _assert_time_left(self, color: Color, now: float) -> None:
        if self.clock and self.clock.expired(now) == color:
            raise GameStateError(
                f"Player {self.players[color]} has run out of time.",
                context={"expired": color.value},
            )

    def _plan_move(self, color: Color, move: Move) -> list[Move]:
        """
        Figure out which die (or dice) the move uses
        ----

        1. a single unused die matching the distance
        2. bearing off with a larger die (smallest such die first)
        3. one checker travelling with several dice: split into single-die steps, each one checked
        """
        assert self.dice is not None
        distance = move.distance(color)
        if distance <= 0:
            raise IllegalMoveError(f"Checkers can only move forward: {move.to_notation()}")

        unused = self.dice.unused_values()
        if distance in unused and self.rules.is_legal(self.board, color, move, distance):
            return [move.with_die(distance)]

        if move.to_point == OFF:
            for die in sorted(set(unused)):
                if die > distance and self.rules.is_legal(self.board, color, move, die):
                    return [move.with_die(die)]

        for dice_order in _dice_orders(unused):
            steps = self._plan_combined_move(color, move, dice_order)
            if steps:
                return steps

        raise IllegalMoveError(
            f"Move not allowed: {move.to_notation()} with dice {sorted(unused, reverse=True)}"
        )

    def _plan_combined_move(
        self, color: Color, move: Move, dice_order: tuple[int, ...]
    ) -> Optional[list[Move]]:
        """Walk the checker die by die on a scratch board. None if any intermediate step is not allowed."""
        board = deepcopy(self.board)
        source = move.from_point
        steps: list[Move] = []
        for die in dice_order:
            if source == OFF:
                return None
            step = Move(source, destination(color, source, die), die)
            if not self.rules.is_legal(board, color, step, die):
                return None
            board.move_checker(color, step)
            steps.append(step)
            source = step.to_point
        return steps if source == move.to_point else None

    def _bear_off_result(self, winner: Color) -> ResultType:
        """Gammon if the loser bore off nothing, backgammon if they also still have a checker on the bar / in the winner's home board."""
        loser = winner.opponent
        if self.board.borne_off[loser] > 0:
            return ResultType.SINGLE
        if self.board.bar[loser] > 0 or self.board.has_checker_in_home_of(loser, winner):
            return ResultType.BACKGAMMON
        return ResultType.GAMMON

    def _finish_game(
        self, winner: Color, result_type: ResultType, points: int, now: float
    ) -> GameResult:
        """Record the game in the match score. Either the match is over or the next game starts."""
        result = GameResult(self.match.game_number, winner, result_type, points)
        self.history.append(result)
        if self.match.record_game_result(winner, points):
            self._end_match(now)
        else:
            self._start_next_game(now)
        return result

    def _start_next_game(self, now: float) -> None:
        """Fresh board and cube; the opening roll decides who starts, and that player plays both opening dice."""
        rolls = opening_roll(self.rng)
        starter = max(rolls, key=lambda color: rolls[color])

        self.board = BoardPosition.starting_position()
        self.cube = DoublingCube()
        self.ledger.clear()
        self.opening_rolls = rolls
        self.turn = starter
        self.dice = DiceRoll.from_values(starter, rolls[Color.TEAL], rolls[Color.BONE])
        self.phase = TurnPhase.ROLLED
        if self.clock:
            self.clock.start_turn(starter, now)

    def _end_match(self, now: float) -> None:
        self.status = Status.COMPLETED
        self.phase = TurnPhase.GAME_OVER
        self.dice = None
        self.ledger.clear()
        self.cube.offered_by = None
        if self.clock:
            self.clock.stop(now)


def _resolve(now: Optional[float]) -> float:
    return time.time() if now is None else now


def _dice_orders(unused: list[int]) -> list[tuple[int, ...]]:
    """Every order in which two or more of the unused dice can be played by a single checker."""
    orders: list[tuple[int, ...]] = []
    for length in range(2, len(unused) + 1):
        for order in permutations(unused, length):
            if order not in orders:
                orders.append(order)
    return orders
