"""
Broadcast Scheduler - subscription-driven sampling cadence.

State machine:

    IDLE    no subscribers, no timer
    ACTIVE  >= 1 subscriber, exactly one periodic timer task

    IDLE --attach--> ACTIVE     timer task created
    ACTIVE --detach(last)--> IDLE   timer task cancelled once

Every attach also schedules one immediate cycle delivered only to the new
subscriber, so nobody waits a full interval for a first snapshot.

On every tick one ScanAggregator cycle runs, its result is serialized
once, and the same string goes to every attached subscriber. A failed
cycle is delivered as an error payload and the timer keeps running.

Concurrency:
    _state_lock serializes attach/detach/tick access to the subscriber set
    and timer handle. _cycle_lock keeps cycles (periodic, immediate and
    on-demand via run_cycle) from overlapping anywhere in the process.
    Ticks are scheduled against absolute deadlines so the cadence does
    not drift by the cycle duration. Cycles run outside _state_lock so attach/detach are
    never held up by a slow scanner.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Dict, Optional, Set

from ..interfaces.errors import ScannerFailure
from ..interfaces.measurement_result import ScanSnapshot, error_payload
from .subscribers import Subscriber

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Scheduler lifecycle state."""
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"


class BroadcastScheduler:
    """
    Owns the subscriber set and the single shared sampling timer.

    Must be started from inside a running event loop before the first
    attach. All public coroutines must be awaited on that loop.
    """

    def __init__(self, aggregator, interval: float = 3.0):
        """
        Args:
            aggregator: Object with an async run_cycle() -> ScanSnapshot
            interval: Seconds between periodic cycles
        """
        self.aggregator = aggregator
        self.interval = interval

        self._subscribers: Set[Subscriber] = set()
        self._timer: Optional[asyncio.Task] = None
        self._initial_tasks: Dict[Subscriber, asyncio.Task] = {}
        self._state_lock: Optional[asyncio.Lock] = None
        self._cycle_lock: Optional[asyncio.Lock] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = False

        self.stats: Dict[str, Any] = {
            'start_time': time.time(),
            'ticks_total': 0,
            'ticks_skipped': 0,
            'cycles_total': 0,
            'cycle_failures_total': 0,
            'deliveries_total': 0,
            'timer_starts': 0,
            'timer_stops': 0,
            'last_cycle_duration_s': 0.0,
        }

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.ACTIVE if self._timer is not None else SchedulerState.IDLE

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def timer_running(self) -> bool:
        return self._timer is not None

    @property
    def started(self) -> bool:
        return self._started

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self):
        """Bind to the running event loop and begin accepting subscribers."""
        if self._started:
            logger.warning("Scheduler already started")
            return
        self._loop = asyncio.get_running_loop()
        self._state_lock = asyncio.Lock()
        self._cycle_lock = asyncio.Lock()
        self._started = True
        self.stats['start_time'] = time.time()
        logger.info(f"Broadcast scheduler started (interval {self.interval:.1f}s)")

    async def stop(self):
        """Detach every subscriber, cancel the timer and pending cycles."""
        if not self._started:
            return
        async with self._state_lock:
            subscribers = list(self._subscribers)
            self._subscribers.clear()
            pending = list(self._initial_tasks.values())
            if self._timer is not None:
                pending.append(self._timer)
            self._stop_timer()
            self._initial_tasks.clear()
            self._started = False

        for subscriber in subscribers:
            subscriber.close()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("Broadcast scheduler stopped")
        logger.info(f"  Cycles: {self.stats['cycles_total']}")
        logger.info(f"  Failures: {self.stats['cycle_failures_total']}")

    # =========================================================================
    # Subscription
    # =========================================================================

    async def attach(self, subscriber: Subscriber) -> bool:
        """
        Register a subscriber.

        Starts the timer if this is the first subscriber and schedules an
        immediate cycle for this subscriber alone.

        Returns:
            False if the subscriber was already attached

        Raises:
            RuntimeError: If the scheduler has not been started
        """
        if not self._started:
            raise RuntimeError("Scheduler not started")

        async with self._state_lock:
            if subscriber in self._subscribers:
                return False
            self._subscribers.add(subscriber)
            if self._timer is None:
                self._timer = self._loop.create_task(self._run_timer())
                self.stats['timer_starts'] += 1
                logger.debug("Sampling timer started")
            self._initial_tasks[subscriber] = self._loop.create_task(
                self._deliver_initial(subscriber)
            )
            count = len(self._subscribers)

        logger.info(f"Client connected ({count} total)")
        return True

    async def detach(self, subscriber: Subscriber) -> bool:
        """
        Unregister a subscriber. Safe to call more than once.

        The subscriber is removed before the empty check, so the last
        detach always stops the timer.

        Returns:
            False if the subscriber was not attached
        """
        if not self._started:
            return False

        async with self._state_lock:
            if subscriber not in self._subscribers:
                return False
            self._subscribers.discard(subscriber)
            initial = self._initial_tasks.pop(subscriber, None)
            if initial is not None and initial is not asyncio.current_task():
                initial.cancel()
            if not self._subscribers:
                self._stop_timer()
            count = len(self._subscribers)

        logger.info(f"Client disconnected ({count} total)")
        return True

    def _stop_timer(self):
        """Cancel the periodic timer. Caller holds _state_lock."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self.stats['timer_stops'] += 1
        logger.debug("Sampling timer stopped")

    # =========================================================================
    # Cycles and delivery
    # =========================================================================

    async def run_cycle(self) -> ScanSnapshot:
        """
        One on-demand cycle, serialized with the periodic and immediate ones.

        Returns:
            The snapshot, delivered to nobody

        Raises:
            RuntimeError: If the scheduler has not been started
            ScannerFailure: If the base scan is unusable
        """
        if not self._started:
            raise RuntimeError("Scheduler not started")
        async with self._cycle_lock:
            return await self._timed_cycle()

    async def _run_timer(self):
        """
        Fire ticks on a fixed grid of interval-spaced deadlines.

        Cycle time is absorbed by the grid. A tick that runs past one or
        more deadlines skips those slots rather than firing back to back.
        """
        next_at = self._loop.time() + self.interval
        while True:
            await asyncio.sleep(max(0.0, next_at - self._loop.time()))
            await self._tick()
            next_at += self.interval
            now = self._loop.time()
            missed = 0
            while next_at <= now:
                next_at += self.interval
                missed += 1
            if missed:
                self.stats['ticks_skipped'] += missed
                logger.debug(f"Cycle overran the interval; skipped {missed} tick(s)")

    async def _tick(self):
        """One periodic cycle, fanned out to every subscriber."""
        async with self._state_lock:
            if not self._subscribers:
                return
        self.stats['ticks_total'] += 1

        message = await self._produce_message()

        async with self._state_lock:
            targets = list(self._subscribers)
        for subscriber in targets:
            await self._deliver(subscriber, message)

    async def _deliver_initial(self, subscriber: Subscriber):
        """Immediate cycle for a newly attached subscriber only."""
        try:
            message = await self._produce_message()
            async with self._state_lock:
                attached = subscriber in self._subscribers
            if attached:
                await self._deliver(subscriber, message)
        finally:
            if self._initial_tasks.get(subscriber) is asyncio.current_task():
                del self._initial_tasks[subscriber]

    async def _produce_message(self) -> str:
        """Run one cycle and serialize it (or its failure) exactly once."""
        async with self._cycle_lock:
            try:
                snapshot = await self._timed_cycle()
                return snapshot.to_json()
            except ScannerFailure as e:
                logger.error(f"Scan error: {e}")
                return error_payload(str(e))
            except Exception as e:
                logger.exception(f"Unexpected error in sampling cycle: {e}")
                return error_payload(str(e))

    async def _timed_cycle(self) -> ScanSnapshot:
        """Run the aggregator once and record counters. Caller holds _cycle_lock."""
        start = time.monotonic()
        try:
            return await self.aggregator.run_cycle()
        except Exception:
            self.stats['cycle_failures_total'] += 1
            raise
        finally:
            self.stats['cycles_total'] += 1
            self.stats['last_cycle_duration_s'] = time.monotonic() - start

    async def _deliver(self, subscriber: Subscriber, message: str):
        if subscriber.closed:
            return
        try:
            subscriber.send(message)
            self.stats['deliveries_total'] += 1
        except Exception as e:
            logger.warning(f"Delivery failed, detaching subscriber: {e}")
            await self.detach(subscriber)
