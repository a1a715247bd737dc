"""
Client side view of a single game session.

The server holds the authoritative game. A client keeps the last snapshot it saw and
* lets only one state changing request be in flight at a time,
* shows checker moves optimistically and rolls them back if the server rejects them,
* treats timeouts / network failures as "outcome unknown" and refetches before the next action,
* only adopts snapshots that are at least as new as the one it has, and notifies subscribers when it does.
"""

import logging
import threading
import time
from typing import Callable, Optional, Protocol
from uuid import UUID

from src.api.models import (
    ClaimTimeoutRequest,
    ConfirmTurnRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    MoveRequest,
    OfferDoubleRequest,
    ReadyRequest,
    ResignRequest,
    RespondToDoubleRequest,
    RollDiceRequest,
    UndoMoveRequest,
)
from src.backgammon.board import BoardPosition
from src.backgammon.moves import Move
from src.core.config import get_settings
from src.core.exceptions import (
    ActionInProgressError,
    GameError,
    RemoteCallError,
    StaleStateError,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[GameResponse], None]
RemoteCall = Callable[[Optional[int]], GameResponse]
Preview = Callable[[], Optional[GameResponse]]

NETWORK_ERRORS = (RemoteCallError, TimeoutError, ConnectionError)


class GameTransport(Protocol):
    """The calls a client makes. BackgammonService implements it in-process; an HTTP client would too."""

    def get_game_state(self, request: GetGameRequest) -> GameResponse: ...
    def join_game(self, request: JoinGameRequest) -> GameResponse: ...
    def set_ready(self, request: ReadyRequest) -> GameResponse: ...
    def roll_dice(self, request: RollDiceRequest) -> GameResponse: ...
    def make_move(self, request: MoveRequest) -> GameResponse: ...
    def undo_move(self, request: UndoMoveRequest) -> GameResponse: ...
    def confirm_turn(self, request: ConfirmTurnRequest) -> GameResponse: ...
    def offer_double(self, request: OfferDoubleRequest) -> GameResponse: ...
    def respond_to_double(self, request: RespondToDoubleRequest) -> GameResponse: ...
    def resign(self, request: ResignRequest) -> GameResponse: ...
    def claim_timeout(self, request: ClaimTimeoutRequest) -> GameResponse: ...


class GameSessionClient:
    def __init__(
        self,
        transport: GameTransport,
        game_id: UUID,
        player_name: str,
        refresh_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.game_id = game_id
        self.player_name = player_name
        self.refresh_interval = (
            get_settings().refresh_interval_seconds
            if refresh_interval is None
            else refresh_interval
        )
        self.clock = clock

        self.snapshot: Optional[GameResponse] = None
        self.last_fetch: Optional[float] = None
        self.needs_resync = True
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()
        self._action_in_progress = False

    @property
    def action_in_progress(self) -> bool:
        return self._action_in_progress

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback for new snapshots. Returns a function that unsubscribes again."""
        self._subscribers.append(subscriber)
        return lambda: self._subscribers.remove(subscriber)

    # --- SYNCHRONISATION ---
    def refresh(self, force: bool = False) -> GameResponse:
        """
        Fetch the authoritative state, unless the cached one is recent enough.
        A resync that is pending (after a failed call) always goes to the server.
        """
        now = self.clock()
        if (
            not force
            and not self.needs_resync
            and self.snapshot is not None
            and self.last_fetch is not None
            and now - self.last_fetch < self.refresh_interval
        ):
            return self.snapshot

        try:
            incoming = self.transport.get_game_state(GetGameRequest(game_id=self.game_id))
        except NETWORK_ERRORS as exc:
            self.needs_resync = True
            raise RemoteCallError(
                f"Could not fetch game {self.game_id}: {exc}"
            ) from exc

        self.last_fetch = now
        self.needs_resync = False
        self.reconcile(incoming)
        assert self.snapshot is not None
        return self.snapshot

    def reconcile(self, incoming: GameResponse) -> bool:
        """Adopt an incoming snapshot unless it is older than the one we have. Returns True if anything changed."""
        if self.snapshot is not None and incoming.version < self.snapshot.version:
            logger.debug(
                "Discarding snapshot version %s of game %s (have %s)",
                incoming.version,
                self.game_id,
                self.snapshot.version,
            )
            return False
        if incoming == self.snapshot:
            return False
        self._show(incoming)
        return True

    # --- PLAYER ACTIONS ---
    def join(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.join_game(
                JoinGameRequest(**self._request_fields(version))
            )
        )

    def set_ready(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.set_ready(
                ReadyRequest(**self._request_fields(version))
            )
        )

    def roll_dice(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.roll_dice(
                RollDiceRequest(**self._request_fields(version))
            )
        )

    def make_move(self, from_point: str, to_point: str) -> GameResponse:
        """The checker is shown on its new point right away; the server's answer replaces (or reverts) it."""
        request_fields = {"from_point": from_point, "to_point": to_point}
        return self._perform(
            lambda version: self.transport.make_move(
                MoveRequest(**self._request_fields(version), **request_fields)
            ),
            preview=lambda: self._preview_move(f"{from_point}/{to_point}"),
        )

    def undo_move(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.undo_move(
                UndoMoveRequest(**self._request_fields(version))
            )
        )

    def confirm_turn(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.confirm_turn(
                ConfirmTurnRequest(**self._request_fields(version))
            )
        )

    def offer_double(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.offer_double(
                OfferDoubleRequest(**self._request_fields(version))
            )
        )

    def respond_to_double(self, accept: bool) -> GameResponse:
        return self._perform(
            lambda version: self.transport.respond_to_double(
                RespondToDoubleRequest(**self._request_fields(version), accept=accept)
            )
        )

    def resign(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.resign(
                ResignRequest(**self._request_fields(version))
            )
        )

    def claim_timeout(self) -> GameResponse:
        return self._perform(
            lambda version: self.transport.claim_timeout(
                ClaimTimeoutRequest(**self._request_fields(version))
            )
        )

    # -- Internal helpers --
    def _perform(
        self, call: RemoteCall, preview: Optional[Preview] = None
    ) -> GameResponse:
        """
        One mutation at a time
        ----

        1. refuse if another action is in flight
        2. resync first if the last call ended with an unknown outcome
        3. build the optimistic preview (if any) from the snapshot we now have, show it and make the call
        4. success: adopt the server's snapshot. Failure: put back what we showed before.
        """
        with self._lock:
            if self._action_in_progress:
                raise ActionInProgressError("Another action is still being processed.")
            self._action_in_progress = True

        try:
            if self.needs_resync:
                self.refresh(force=True)
            previous = self.snapshot
            shown = preview() if preview is not None else None
            if shown is not None:
                self._show(shown)

            try:
                response = call(previous.version if previous else None)
            except StaleStateError:
                self._rollback(previous)
                logger.info("Game %s changed on the server, refetching", self.game_id)
                self.refresh(force=True)
                raise
            except NETWORK_ERRORS as exc:
                self._rollback(previous)
                self.needs_resync = True
                logger.warning(
                    "Outcome of the last action on game %s is unknown: %s", self.game_id, exc
                )
                if isinstance(exc, RemoteCallError):
                    raise
                raise RemoteCallError(f"Call to the game server failed: {exc}") from exc
            except GameError:
                self._rollback(previous)
                raise

            self.reconcile(response)
            return response
        finally:
            self._action_in_progress = False

    def _request_fields(self, version: Optional[int]) -> dict:
        return {
            "game_id": self.game_id,
            "player_name": self.player_name,
            "expected_version": version,
        }

    def _preview_move(self, notation: str) -> Optional[GameResponse]:
        """Local board after the move, or None if it cannot even be shown (the server will reject it anyway)."""
        if self.snapshot is None or self.snapshot.turn is None:
            return None
        board = BoardPosition.from_dict(self.snapshot.board)
        try:
            board.move_checker(self.snapshot.turn, Move.from_notation(notation))
        except GameError:
            return None
        return self.snapshot.model_copy(
            update={"board": board.to_dict(), "moves": [*self.snapshot.moves, notation]}
        )

    def _rollback(self, previous: Optional[GameResponse]) -> None:
        if previous is not None and self.snapshot is not previous:
            self._show(previous)

    def _show(self, snapshot: GameResponse) -> None:
        self.snapshot = snapshot
        for subscriber in list(self._subscribers):
            subscriber(snapshot)
