# src/eventtracker/scheduler.py
"""Flush scheduler driving the periodic drain-and-deliver cycle.

The scheduler owns one dedicated background thread:
1. Runs the first cycle immediately on start()
2. Drains the buffer fully, delivers each event sequentially in drain order
3. Waits flush_interval seconds after the cycle ends, then repeats
4. Exits when stop() sets the stop signal (the wait is interruptible)

Thread Safety:
    - Cycles never overlap: a lock serializes the background cycle with any
      host-triggered run_cycle()
    - Producers admit into the buffer at any time regardless of state
    - The background thread never dies on delivery errors; every exception
      raised by the deliver callable is logged and counted as a failure
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from eventtracker.buffer import BoundedBuffer
from eventtracker.events import Event

logger = structlog.get_logger(__name__)

DeliverCallback = Callable[[Event], bool]


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Outcome summary of one flush cycle."""

    drained: int
    delivered: int
    failed: int


class FlushScheduler:
    """Recurring timer that drains the buffer and delivers what it drained.

    Example:
        scheduler = FlushScheduler(buffer, deliver, flush_interval=10.0)
        scheduler.start()        # first cycle runs immediately
        ...
        scheduler.stop()         # stop worker, then one final drain
    """

    def __init__(
        self,
        buffer: BoundedBuffer,
        deliver: DeliverCallback,
        *,
        flush_interval: float = 10.0,
        thread_name: str = "eventtracker-flush",
    ) -> None:
        """Initialize the scheduler without starting it.

        Args:
            buffer: Buffer to drain each cycle
            deliver: Callable making one delivery attempt, returning success
            flush_interval: Seconds between the end of one cycle and the
                start of the next
            thread_name: Name of the background thread

        Raises:
            ValueError: If flush_interval is not positive
        """
        if flush_interval <= 0:
            raise ValueError(f"flush_interval must be > 0, got {flush_interval}")
        self._buffer = buffer
        self._deliver = deliver
        self._flush_interval = flush_interval
        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()
        self._cycles_completed = 0
        self._stopped = False
        # Daemon so a host that never calls stop() can still exit
        self._thread = threading.Thread(target=self._run, name=thread_name, daemon=True)
        self._started = False

    def start(self) -> None:
        """Start the background thread. The first cycle runs immediately.

        Raises:
            RuntimeError: If the scheduler was already started
        """
        if self._started:
            raise RuntimeError("FlushScheduler already started")
        self._started = True
        self._thread.start()
        logger.debug("Flush scheduler started", flush_interval=self._flush_interval)

    def _run(self) -> None:
        """Background thread: cycle, wait, repeat until stopped."""
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                # Buffer drain itself failed; keep the worker alive
                logger.error("Flush cycle failed unexpectedly", error=str(e), exc_info=True)
            if self._stop_event.wait(self._flush_interval):
                break

    def run_cycle(self) -> CycleResult:
        """Drain the buffer and deliver each event in drain order.

        Returns:
            Summary of the cycle
        """
        with self._cycle_lock:
            events = self._buffer.drain_all()
            delivered = 0
            failed = 0
            for event in events:
                try:
                    ok = self._deliver(event)
                except Exception as e:
                    logger.error(
                        "Deliver callback raised",
                        category=event.category,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    ok = False
                if ok:
                    delivered += 1
                else:
                    failed += 1
            self._cycles_completed += 1

        if events:
            logger.debug("Flush cycle completed", drained=len(events), delivered=delivered, failed=failed)
        return CycleResult(drained=len(events), delivered=delivered, failed=failed)

    def stop(self, *, final_flush: bool = True, timeout: float = 5.0) -> None:
        """Stop the background thread, optionally flushing once more.

        The final flush runs in the calling thread after the worker has
        exited. Safe to call multiple times, and before start().

        Args:
            final_flush: Run one last drain-and-deliver cycle
            timeout: Seconds to wait for the worker thread to exit
        """
        if self._stopped:
            return
        self._stopped = True
        self._stop_event.set()

        if self._started:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.error("Flush thread did not exit cleanly within timeout")

        if final_flush:
            result = self.run_cycle()
            logger.debug("Final flush completed", drained=result.drained, failed=result.failed)

    @property
    def is_running(self) -> bool:
        """True while the background thread is alive."""
        return self._thread.is_alive()

    @property
    def cycles_completed(self) -> int:
        """Number of cycles run (background and host-triggered)."""
        return self._cycles_completed

    @property
    def flush_interval(self) -> float:
        return self._flush_interval
