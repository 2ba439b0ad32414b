"""Cancellable countdown modelling the opponent's thinking time."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import random

from duel_app.constants.duel_constants import (
    BASE_DURATION_MS,
    DURATION_JITTER_MS,
    EXPERT_DURATION_MS,
    MAX_PROGRESS,
    NOVICE_DURATION_MS,
    TICK_INTERVAL_MS,
)
from duel_app.core.models import Difficulty

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class ClockHandle:
    """State of one armed countdown."""

    generation: int
    duration_ms: float
    step: float
    progress: float = 0.0
    expired: bool = False
    cancelled: bool = False
    _task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def running(self) -> bool:
        return not (self.expired or self.cancelled)


class RoundClock:
    """Ticks progress from 0 to 100 and reports expiry exactly once per arm.

    Each ``arm`` bumps a generation counter. A tick only touches its handle
    while that handle is still the current generation and not cancelled, so a
    countdown superseded by a newer one can never report expiry.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        tick_interval_ms: float = TICK_INTERVAL_MS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._rng = rng or random.Random()
        self._tick_interval_ms = tick_interval_ms
        self._sleep = sleep
        self._generation = 0
        self._handle: ClockHandle | None = None

    @staticmethod
    def base_duration_ms(difficulty: Difficulty) -> float:
        if difficulty is Difficulty.NOVICE:
            return NOVICE_DURATION_MS
        if difficulty is Difficulty.EXPERT:
            return EXPERT_DURATION_MS
        return BASE_DURATION_MS

    def compute_duration_ms(self, difficulty: Difficulty) -> float:
        jitter = self._rng.uniform(-DURATION_JITTER_MS, DURATION_JITTER_MS)
        return self.base_duration_ms(difficulty) + jitter

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def handle(self) -> ClockHandle | None:
        return self._handle

    @property
    def progress(self) -> float:
        return self._handle.progress if self._handle else 0.0

    def arm(
        self,
        difficulty: Difficulty,
        on_expired: Callable[[], None],
        on_tick: Callable[[float], None] | None = None,
    ) -> ClockHandle:
        """Start a fresh countdown, cancelling any previous one first."""
        self.cancel()
        self._generation += 1
        duration_ms = self.compute_duration_ms(difficulty)
        handle = ClockHandle(
            generation=self._generation,
            duration_ms=duration_ms,
            step=MAX_PROGRESS / (duration_ms / self._tick_interval_ms),
        )
        self._handle = handle
        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle, on_expired, on_tick),
            name=f"round-clock-{handle.generation}",
        )
        logger.debug(
            "Armed clock generation %s for %.0f ms (%s)",
            handle.generation,
            duration_ms,
            difficulty.value,
        )
        return handle

    def cancel(self, handle: ClockHandle | None = None) -> None:
        """Stop ticking. Safe to repeat and safe after expiry."""
        target = handle or self._handle
        if target is None or not target.running:
            return
        target.cancelled = True
        task = target._task
        if task is not None and not task.done():
            task.cancel()

    def reset(self) -> None:
        """Cancel the current countdown and drop its progress."""
        self.cancel()
        self._handle = None

    def _is_current(self, handle: ClockHandle) -> bool:
        return not handle.cancelled and handle.generation == self._generation

    async def _run(
        self,
        handle: ClockHandle,
        on_expired: Callable[[], None],
        on_tick: Callable[[float], None] | None,
    ) -> None:
        interval_seconds = self._tick_interval_ms / 1000
        while True:
            await self._sleep(interval_seconds)
            if not self._is_current(handle):
                return
            next_progress = handle.progress + handle.step
            if next_progress >= MAX_PROGRESS:
                handle.progress = MAX_PROGRESS
                handle.expired = True
                if on_tick is not None:
                    on_tick(handle.progress)
                logger.debug("Clock generation %s expired", handle.generation)
                on_expired()
                return
            handle.progress = next_progress
            if on_tick is not None:
                on_tick(handle.progress)
