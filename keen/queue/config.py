from __future__ import annotations

from dataclasses import dataclass

from keen.constants import (
    BATCH_SIZE_KEY,
    BATCH_TIMEOUT_KEY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BATCH_TIMEOUT,
    DEFAULT_MAX_EVENTS_PER_COLLECTION,
    DEFAULT_SEND_INTERVAL_DURATION,
    DEFAULT_SEND_INTERVAL_EVENTS,
    DEFAULT_SHUTDOWN_DELAY,
    MAX_EVENTS_PER_COLLECTION_KEY,
    MAX_SEND_INTERVAL_DURATION,
    MAX_SEND_INTERVAL_EVENTS,
    MIN_SEND_INTERVAL_DURATION,
    MIN_SEND_INTERVAL_EVENTS,
    SEND_INTERVAL_DURATION_KEY,
    SEND_INTERVAL_EVENTS_KEY,
    SHUTDOWN_DELAY_KEY,
)
from keen.errors import ConfigValidationError


@dataclass
class QueueConfig:
    batch_size: int = DEFAULT_BATCH_SIZE  # Events per write call
    batch_timeout: float = DEFAULT_BATCH_TIMEOUT  # Seconds to wait for one batch send
    send_interval_events: int = DEFAULT_SEND_INTERVAL_EVENTS  # 0 disables the threshold trigger
    send_interval_duration: float = DEFAULT_SEND_INTERVAL_DURATION  # 0 disables the timer
    max_events_per_collection: int = DEFAULT_MAX_EVENTS_PER_COLLECTION
    shutdown_delay: float = DEFAULT_SHUTDOWN_DELAY  # Grace period for in-flight flushes

    def validate(self, bypass_bounds: bool = False) -> None:
        """
        Check the queue settings.

        The send interval bounds are skipped when ``bypass_bounds`` is set
        (test environment), the structural checks never are.

        Raises:
            ConfigValidationError: If a value is unusable.
        """
        if self.batch_size <= 0:
            raise ConfigValidationError(BATCH_SIZE_KEY, "must be a positive integer")

        if self.max_events_per_collection <= 0:
            raise ConfigValidationError(
                MAX_EVENTS_PER_COLLECTION_KEY, "must be a positive integer"
            )

        for key, value in (
            (BATCH_TIMEOUT_KEY, self.batch_timeout),
            (SEND_INTERVAL_DURATION_KEY, self.send_interval_duration),
            (SHUTDOWN_DELAY_KEY, self.shutdown_delay),
        ):
            if value < 0:
                raise ConfigValidationError(key, "must not be negative")

        if self.send_interval_events < 0:
            raise ConfigValidationError(SEND_INTERVAL_EVENTS_KEY, "must not be negative")

        if bypass_bounds:
            return

        if self.send_interval_events and not (
            MIN_SEND_INTERVAL_EVENTS
            <= self.send_interval_events
            <= MAX_SEND_INTERVAL_EVENTS
        ):
            raise ConfigValidationError(
                SEND_INTERVAL_EVENTS_KEY,
                f"send events interval must be between {MIN_SEND_INTERVAL_EVENTS} "
                f"and {MAX_SEND_INTERVAL_EVENTS}",
            )

        if self.send_interval_duration and not (
            MIN_SEND_INTERVAL_DURATION
            <= self.send_interval_duration
            <= MAX_SEND_INTERVAL_DURATION
        ):
            raise ConfigValidationError(
                SEND_INTERVAL_DURATION_KEY,
                f"send interval must be between {MIN_SEND_INTERVAL_DURATION:g}s "
                f"and {MAX_SEND_INTERVAL_DURATION:g}s",
            )
