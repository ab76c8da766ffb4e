"""
Simulated processing completion.

There is no real normalization job yet; completion is a one-shot timer that
fires a fixed delay after processing starts.
"""
import logging
import threading
from typing import Callable, Dict
from uuid import UUID

from synlitics.services.collaborators import CompletionScheduler

logger = logging.getLogger(__name__)


class TimerCompletionScheduler(CompletionScheduler):
    """One ``threading.Timer`` per record id."""

    def __init__(self, delay_seconds: float):
        self.delay_seconds = delay_seconds
        self._timers: Dict[UUID, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule(self, record_id: UUID, callback: Callable[[], None]) -> None:
        timer = threading.Timer(self.delay_seconds, self._fire, args=(record_id, callback))
        timer.daemon = True

        with self._lock:
            previous = self._timers.pop(record_id, None)
            if previous is not None:
                previous.cancel()
            self._timers[record_id] = timer

        timer.start()
        logger.debug(f"Completion for {record_id} scheduled in {self.delay_seconds}s")

    def cancel(self, record_id: UUID) -> bool:
        with self._lock:
            timer = self._timers.pop(record_id, None)
        if timer is None:
            return False
        timer.cancel()
        logger.info(f"Cancelled pending completion for {record_id}")
        return True

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.items())
            self._timers.clear()
        for record_id, timer in timers:
            timer.cancel()
            logger.info(f"Cancelled pending completion for {record_id}")

    def pending(self, record_id: UUID) -> bool:
        with self._lock:
            return record_id in self._timers

    def _fire(self, record_id: UUID, callback: Callable[[], None]) -> None:
        with self._lock:
            timer = self._timers.get(record_id)
            if timer is None or timer is not threading.current_thread():
                # Cancelled or replaced after the timer went off
                return
            del self._timers[record_id]

        try:
            callback()
        except Exception:
            logger.exception(f"Completion callback for {record_id} failed")
