from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Optional

from keen.constants import DEFAULT_SHUTDOWN_DELAY

from .callbacks import FlushCallbacks
from .log_codes import (
    SCHEDULER_DISABLED,
    SCHEDULER_DRAINING,
    SCHEDULER_SHUTDOWN_TIMEOUT,
    SCHEDULER_STARTED,
    SCHEDULER_STOPPED,
    SCHEDULER_TICK_FAILED,
)
from .sender import BatchSender

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    DRAINING = "draining"


class Scheduler:
    """
    Periodically flushes the queue from a background thread and drains it
    on shutdown.

    Lifecycle: STOPPED -> RUNNING -> DRAINING -> STOPPED. With a zero
    interval no thread is started, but ``shutdown`` still drains.
    """

    def __init__(
        self,
        sender: BatchSender,
        interval: float,
        shutdown_delay: float = DEFAULT_SHUTDOWN_DELAY,
        callbacks: Optional[FlushCallbacks] = None,
    ):
        self.sender = sender
        self.interval = interval
        self.shutdown_delay = shutdown_delay
        self.callbacks = callbacks or sender.callbacks

        # Cancellation token for the timer thread
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._state = SchedulerState.STOPPED
        self._shut_down = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    def __enter__(self) -> "Scheduler":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    def start(self) -> None:
        with self._lock:
            if self._shut_down or self._thread is not None:
                return

            if self.interval <= 0:
                logger.debug(SCHEDULER_DISABLED)
                return

            self._thread = threading.Thread(
                target=self._run, name="keen-queue-scheduler", daemon=True
            )
            self._state = SchedulerState.RUNNING
            self._thread.start()

        logger.info(SCHEDULER_STARTED, extra={"interval": self.interval})

    def _run(self) -> None:
        # Fixed delay between the end of one tick and the start of the next
        while not self._stop.wait(self.interval):
            self._tick()

    def _tick(self) -> None:
        try:
            self.sender.flush()
        except Exception as e:
            logger.exception(
                "Failed to send queued events", extra={"code": SCHEDULER_TICK_FAILED}
            )
            try:
                self.callbacks.tick_failed(e)
            except Exception:
                logger.debug("tick_failed callback raised", exc_info=True)

    def shutdown(self) -> bool:
        """
        Stop the timer, wait for in-flight flushes, then drain the queue.

        Only the first call does anything; later calls return True.

        Returns:
            bool: False if in-flight work outlived ``shutdown_delay`` or the
            final flush raised. Neither case is raised to the caller.
        """
        with self._lock:
            if self._shut_down:
                return True
            self._shut_down = True
            self._state = SchedulerState.DRAINING
            thread = self._thread

        # No tick may start once draining has begun
        self._stop.set()
        logger.info(SCHEDULER_DRAINING, extra={"pending": self.sender.store.size})

        deadline = time.monotonic() + self.shutdown_delay
        completed = True

        if thread is not None:
            thread.join(self.shutdown_delay)
            completed = not thread.is_alive()

        remaining = max(0.0, deadline - time.monotonic())
        completed = self.sender.wait_idle(remaining) and completed

        if not completed:
            logger.error(
                "Failed to shutdown scheduled flushes within %ss",
                self.shutdown_delay,
                extra={"code": SCHEDULER_SHUTDOWN_TIMEOUT},
            )

        try:
            self.sender.flush()
        except Exception:
            logger.exception("Final flush of queued events failed")
            completed = False
        finally:
            with self._lock:
                self._state = SchedulerState.STOPPED
                self._thread = None

        logger.info(SCHEDULER_STOPPED, extra={"pending": self.sender.store.size})
        return completed
