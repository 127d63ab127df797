"""
Tick Scheduler

Discrete logical clock for the model. One tick is `minutes_per_tick`
simulated minutes (5 by default, so a day is 288 ticks).

Callbacks are held in a heap keyed by (tick, order, registration number):
everything due at tick T runs before anything at T+1, lower `order` runs
first within a tick, and ties run in registration order. Repeating events
keep their registration number, so their relative order is stable across
ticks.
"""

import heapq
import logging
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)


class ScheduledEvent:
    """
    Handle for a registered callback.

    Attributes:
        callback: Zero-argument callable
        tick: Next tick at which the callback fires
        order: Ordering within a tick (lower first)
        interval: Ticks between firings, None for one-shot events
        cancelled: True once stop() has been called
    """

    def __init__(self, callback: Callable[[], None], tick: int, order: int, seq: int,
                 interval: Optional[int] = None):
        self.callback = callback
        self.tick = tick
        self.order = order
        self.seq = seq
        self.interval = interval
        self.cancelled = False

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def stop(self):
        """Prevent any further firing of this event."""
        self.cancelled = True

    def __repr__(self):
        kind = f"every {self.interval}" if self.repeating else "once"
        return f"ScheduledEvent({getattr(self.callback, '__qualname__', self.callback)!r}, tick={self.tick}, {kind})"


class Scheduler:
    """
    Fixed-step discrete event clock.

    The clock starts before tick 0; each call to step() advances it by one
    tick and fires the callbacks due at the new tick. Events can only be
    registered for ticks strictly after the current one.
    """

    def __init__(self, ticks_per_day: int = 288, minutes_per_tick: int = 5):
        if ticks_per_day * minutes_per_tick != 24 * 60:
            raise ValueError("ticks_per_day and minutes_per_tick do not make a 24 hour day")
        self.ticks_per_day = ticks_per_day
        self.minutes_per_tick = minutes_per_tick
        self.current_tick = -1
        self._queue = []
        self._seq = 0

    # -- registration -------------------------------------------------------

    def _push(self, event: ScheduledEvent):
        heapq.heappush(self._queue, (event.tick, event.order, event.seq, event))

    def _register(self, callback, tick, order, interval) -> ScheduledEvent:
        if tick <= self.current_tick:
            raise ValueError(f"Cannot schedule at tick {tick}: clock is already at {self.current_tick}")
        event = ScheduledEvent(callback, int(tick), int(order), self._seq, interval)
        self._seq += 1
        self._push(event)
        return event

    def schedule_once(self, callback: Callable[[], None], at_tick: int, order: int = 0) -> ScheduledEvent:
        """
        Fire `callback` once at `at_tick`.

        Returns:
            ScheduledEvent handle (call stop() to cancel)
        """
        return self._register(callback, at_tick, order, None)

    def schedule_repeating(self, callback: Callable[[], None], start_tick: int = 0,
                           every: int = 1, order: int = 0) -> ScheduledEvent:
        """
        Fire `callback` at start_tick and every `every` ticks after.

        Returns:
            ScheduledEvent handle (call stop() to cancel)
        """
        if every < 1:
            raise ValueError(f"Repeat interval must be at least one tick, got {every}")
        return self._register(callback, max(start_tick, self.current_tick + 1), order, int(every))

    # -- clock --------------------------------------------------------------

    def step(self) -> int:
        """
        Advance the clock one tick and fire every callback due at that tick.

        Returns:
            Number of callbacks fired
        """
        self.current_tick += 1
        fired = 0
        while self._queue and self._queue[0][0] <= self.current_tick:
            tick, order, seq, event = heapq.heappop(self._queue)
            if event.cancelled:
                continue
            event.callback()
            fired += 1
            if event.repeating and not event.cancelled:
                event.tick = tick + event.interval
                self._push(event)
        return fired

    def run(self, until_tick: int) -> int:
        """Step until the clock reaches `until_tick` (inclusive)."""
        steps = 0
        while self.current_tick < until_tick:
            self.step()
            steps += 1
        return steps

    def pending(self) -> int:
        """Number of live events still queued."""
        return sum(1 for _, _, _, e in self._queue if not e.cancelled)

    def clear(self):
        """Cancel and drop every queued event."""
        logger.debug("Dropping %d scheduled events", self.pending())
        for _, _, _, event in self._queue:
            event.stop()
        self._queue.clear()

    # -- wall clock ---------------------------------------------------------

    @property
    def ticks_per_hour(self) -> int:
        return self.ticks_per_day // 24

    def time_of_day(self, tick: Optional[int] = None) -> Tuple[int, int, int]:
        """(day, hour, minute) of a tick (default: current tick)."""
        tick = max(self.current_tick if tick is None else tick, 0)
        day, in_day = divmod(tick, self.ticks_per_day)
        hour, block = divmod(in_day, self.ticks_per_hour)
        return day, hour, block * self.minutes_per_tick

    def get_next_occurrence(self, hour: int, minute: int = 0, from_tick: Optional[int] = None) -> int:
        """
        Tick of the next occurrence of a wall-clock time.

        If the time has already passed today the result falls on the next
        day; a time equal to `from_tick`'s time of day returns `from_tick`.

        Args:
            hour: Hour of day (0-23)
            minute: Minute of the hour, rounded down to the tick size
            from_tick: Reference tick (default: current tick)

        Returns:
            Absolute tick number
        """
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Invalid time of day {hour}:{minute:02d}")
        time = max(self.current_tick if from_tick is None else from_tick, 0)
        days_so_far, current = divmod(time, self.ticks_per_day)
        goal = hour * self.ticks_per_hour + minute // self.minutes_per_tick
        if goal < current:
            return self.ticks_per_day * (days_so_far + 1) + goal
        return self.ticks_per_day * days_so_far + goal
