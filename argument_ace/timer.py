"""Resumable countdown timer for preparation and speech phases.

Remaining time is derived from wall-clock arithmetic on every
observation, never by decrementing per tick, so a blocked event loop or
a process restart cannot make it drift.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace

from pydantic import ValidationError as SchemaError

from argument_ace.models import TimerState
from argument_ace.serialization import timer_state_from_record, to_record
from argument_ace.store import TIMERS, KeyValueStore

logger = logging.getLogger(__name__)


class ClockTimer:
    """idle -> running <-> paused -> completed; reset() returns to idle."""

    def __init__(
        self,
        total_duration: float,
        on_complete: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.time,
        store: KeyValueStore | None = None,
        key: str | None = None,
    ) -> None:
        if total_duration <= 0:
            raise ValueError(f"Timer duration must be positive, got {total_duration}")
        self._clock = clock
        self._on_complete = on_complete
        self._store = store
        self._key = key
        self._state = TimerState(total_duration=total_duration, remaining=total_duration)

    @classmethod
    async def restore(
        cls,
        store: KeyValueStore,
        key: str,
        total_duration: float,
        on_complete: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "ClockTimer":
        """Rehydrate a timer saved under ``key``, catching up on elapsed wall-clock time.

        A timer that ran out while nobody was watching completes here and
        fires ``on_complete``. A saved state with a different duration is
        discarded and the timer starts idle.
        """
        timer = cls(total_duration, on_complete=on_complete, clock=clock, store=store, key=key)
        record = await store.get(TIMERS, key)
        if record is None:
            return timer
        try:
            state = timer_state_from_record(record)
        except SchemaError as exc:
            logger.warning("Ignoring unreadable timer state %s: %s", key, exc)
            return timer
        if state.total_duration != total_duration:
            logger.info("Timer %s duration changed (%s -> %s), starting fresh",
                        key, state.total_duration, total_duration)
            return timer
        timer._state = state
        timer.tick()
        logger.debug("Restored timer %s with %.1fs remaining", key, timer.remaining)
        return timer

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def completed(self) -> bool:
        return self._state.completed

    @property
    def remaining(self) -> float:
        return self.tick()

    @property
    def time_used(self) -> float:
        return self._state.total_duration - self.tick()

    def _elapsed(self) -> float:
        s = self._state
        elapsed = s.paused_accumulated_seconds
        if s.running and s.started_at is not None:
            elapsed += max(0.0, self._clock() - s.started_at)
        return elapsed

    def tick(self) -> float:
        """Recompute remaining time; completes the timer when it reaches zero."""
        s = self._state
        if not s.running:
            return s.remaining
        remaining = min(s.total_duration, max(0.0, s.total_duration - self._elapsed()))
        if remaining <= 0:
            self._state = replace(
                s,
                remaining=0.0,
                started_at=None,
                paused_accumulated_seconds=s.total_duration,
                running=False,
                paused=False,
                completed=True,
            )
            logger.info("Timer %s completed", self._key or "(unsaved)")
            if self._on_complete:
                self._on_complete()
        else:
            self._state = replace(s, remaining=remaining)
        return self._state.remaining

    def start(self) -> None:
        """Start from idle or resume from pause. No-op while running or completed."""
        s = self._state
        if s.running or s.completed:
            return
        self._state = replace(s, started_at=self._clock(), running=True, paused=False)

    def pause(self) -> None:
        s = self._state
        if not s.running:
            return
        remaining = self.tick()
        if self._state.completed:
            return
        self._state = replace(
            self._state,
            remaining=remaining,
            paused_accumulated_seconds=self._state.total_duration - remaining,
            started_at=None,
            running=False,
            paused=True,
        )

    def reset(self) -> None:
        total = self._state.total_duration
        self._state = TimerState(total_duration=total, remaining=total)

    async def save(self) -> None:
        """Checkpoint the current state under the timer's key."""
        if self._store is None or self._key is None:
            raise ValueError("Timer has no store/key to save to")
        self.tick()
        await self._store.put(TIMERS, self._key, to_record(self._state))

    async def discard(self) -> None:
        if self._store is not None and self._key is not None:
            await self._store.delete(TIMERS, self._key)

    async def run(
        self,
        interval: float = 1.0,
        on_tick: Callable[[float], None] | None = None,
    ) -> None:
        """Tick every ``interval`` seconds until the timer stops running."""
        while self._state.running:
            remaining = self.tick()
            if on_tick:
                on_tick(remaining)
            if not self._state.running:
                break
            await asyncio.sleep(min(interval, remaining))
