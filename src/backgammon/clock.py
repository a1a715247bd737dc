"""
Chess clock with a delay.

Each player has a time bank. When it becomes a player's turn, a delay countdown runs first; only after the
delay is spent does the bank start draining. The clock is stored as timestamps so no background task is
needed: the remaining time is computed from `now` whenever somebody asks.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.core.shared_types import Color


def _full_banks(seconds: float) -> dict[Color, float]:
    return {color: seconds for color in Color}


@dataclass
class MatchClock:
    time_left: dict[Color, float] = field(default_factory=lambda: _full_banks(600.0))
    delay_seconds: float = 12.0
    active: Optional[Color] = None
    running_since: Optional[float] = None
    delay_remaining: float = 0.0

    @classmethod
    def create(cls, seconds: float, delay_seconds: float) -> Self:
        return cls(time_left=_full_banks(seconds), delay_seconds=delay_seconds)

    @property
    def is_running(self) -> bool:
        return self.active is not None and self.running_since is not None

    def start_turn(self, color: Color, now: float) -> None:
        """Hand the clock over: bank the time of the previous player and start a fresh delay."""
        self._commit(now)
        self.active = color
        self.delay_remaining = self.delay_seconds
        self.running_since = now

    def pause(self, now: float) -> None:
        self._commit(now)
        self.running_since = None

    def resume(self, now: float) -> None:
        if self.active is not None and self.running_since is None:
            self.running_since = now

    def stop(self, now: float) -> None:
        self._commit(now)
        self.active = None
        self.running_since = None
        self.delay_remaining = 0.0

    def remaining(self, color: Color, now: float) -> float:
        if color != self.active or self.running_since is None:
            return self.time_left[color]
        _, drained = self._split_elapsed(now - self.running_since)
        return max(0.0, self.time_left[color] - drained)

    def delay_seconds_remaining(self, now: float) -> float:
        if self.running_since is None:
            return self.delay_remaining
        spent_delay, _ = self._split_elapsed(now - self.running_since)
        return self.delay_remaining - spent_delay

    def expired(self, now: float) -> Optional[Color]:
        """The player whose bank ran out, if any."""
        if self.active is not None and self.remaining(self.active, now) <= 0:
            return self.active
        return None

    def _split_elapsed(self, elapsed: float) -> tuple[float, float]:
        """Elapsed time goes into the delay first and into the bank after that."""
        elapsed = max(0.0, elapsed)
        spent_delay = min(elapsed, self.delay_remaining)
        return spent_delay, elapsed - spent_delay

    def _commit(self, now: float) -> None:
        if not self.is_running:
            return
        assert self.active is not None and self.running_since is not None
        spent_delay, drained = self._split_elapsed(now - self.running_since)
        self.delay_remaining -= spent_delay
        self.time_left[self.active] = max(0.0, self.time_left[self.active] - drained)
        self.running_since = now

    def snapshot(self, now: float) -> dict[str, Any]:
        """What a client needs to render the clocks."""
        return {
            "time_left": {color.value: self.remaining(color, now) for color in Color},
            "delay_seconds_remaining": self.delay_seconds_remaining(now),
            "active": self.active.value if self.active else None,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_left": {color.value: seconds for color, seconds in self.time_left.items()},
            "delay_seconds": self.delay_seconds,
            "active": self.active.value if self.active else None,
            "running_since": self.running_since,
            "delay_remaining": self.delay_remaining,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Optional[Self]:
        """An empty dict means the match is played without a clock."""
        if not data:
            return None
        active = data.get("active")
        return cls(
            time_left={color: float(data["time_left"][color.value]) for color in Color},
            delay_seconds=float(data["delay_seconds"]),
            active=Color(active) if active else None,
            running_since=data.get("running_since"),
            delay_remaining=float(data.get("delay_remaining", 0.0)),
        )
