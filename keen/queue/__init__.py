from .config import QueueConfig
from .store import EventStore, StoredEvent
from .sender import BatchSender
from .scheduler import Scheduler, SchedulerState
from .callbacks import (
    BatchOutcome,
    BatchStatus,
    FlushCallbacks,
    FlushResult,
    NullFlushCallbacks,
)

__all__ = [
    "QueueConfig",
    "EventStore",
    "StoredEvent",
    "BatchSender",
    "Scheduler",
    "SchedulerState",
    "BatchOutcome",
    "BatchStatus",
    "FlushCallbacks",
    "FlushResult",
    "NullFlushCallbacks",
]
