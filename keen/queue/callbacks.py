"""Callback interface for queue flush outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol


class BatchStatus(Enum):
    """Outcome of sending one batch."""

    SENT = "sent"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class BatchOutcome:
    collection: str
    status: BatchStatus
    sent: int  # Events in the payload
    removed: int = 0  # Events removed from the store afterwards
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is BatchStatus.SENT


@dataclass
class FlushResult:
    outcomes: List[BatchOutcome] = field(default_factory=list)

    @property
    def batches(self) -> int:
        return len(self.outcomes)

    @property
    def sent(self) -> int:
        return sum(o.removed for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(o.sent for o in self.outcomes if not o.ok)


class FlushCallbacks(Protocol):
    def batch_sent(self, outcome: BatchOutcome) -> None: ...
    def batch_failed(self, outcome: BatchOutcome, exc: Exception) -> None: ...
    def tick_failed(self, exc: Exception) -> None: ...


class NullFlushCallbacks:
    def batch_sent(self, outcome: BatchOutcome) -> None:
        pass

    def batch_failed(self, outcome: BatchOutcome, exc: Exception) -> None:
        pass

    def tick_failed(self, exc: Exception) -> None:
        pass
