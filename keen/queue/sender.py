from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from keen.constants import DEFAULT_BATCH_SIZE, DEFAULT_BATCH_TIMEOUT
from keen.errors import HttpError, TransportError
from keen.transport.base import Transport

from .callbacks import (
    BatchOutcome,
    BatchStatus,
    FlushCallbacks,
    FlushResult,
    NullFlushCallbacks,
)
from .log_codes import (
    FLUSH_BATCH_FAILED,
    FLUSH_BATCH_SENT,
    FLUSH_BATCH_SKIPPED,
    FLUSH_COMPLETED,
    FLUSH_STARTED,
)
from .store import EventStore

logger = logging.getLogger(__name__)


def chunked(handles: Sequence[int], size: int) -> List[Sequence[int]]:
    return [handles[i : i + size] for i in range(0, len(handles), size)]


def build_payload(collection: str, bodies: Sequence[str]) -> str:
    """
    Wrap already serialized event bodies into a multi-event write payload.
    """
    return f"{{{json.dumps(collection)}: [{','.join(bodies)}]}}"


class BatchSender:
    """
    Ships queued events in size-bounded batches.

    ``flush`` may run concurrently from the scheduler thread and from
    producers crossing the send threshold. Each batch is claimed in the
    store before it is sent, so overlapping flushes never ship the same
    handle twice, and a handle is only removed once its batch got a 2xx.
    """

    def __init__(
        self,
        store: EventStore,
        transport: Transport,
        project_id: str,
        write_key: str,
        path: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_timeout: Optional[float] = DEFAULT_BATCH_TIMEOUT,
        callbacks: Optional[FlushCallbacks] = None,
    ):
        self.store = store
        self.transport = transport
        self.project_id = project_id
        self.write_key = write_key
        self.path = path
        self.batch_size = batch_size
        self.batch_timeout = batch_timeout
        self.callbacks = callbacks or NullFlushCallbacks()

        self._idle = threading.Condition()
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def flush(self) -> FlushResult:
        """
        Send every event queued at the time of the call.

        Returns:
            FlushResult: One outcome per batch that was attempted.
        """
        with self._tracked():
            return self._flush()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until no flush is running.

        Returns:
            bool: False if ``timeout`` elapsed first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    @contextmanager
    def _tracked(self) -> Iterator[None]:
        with self._idle:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._idle:
                self._in_flight -= 1
                self._idle.notify_all()

    def _flush(self) -> FlushResult:
        result = FlushResult()
        snapshot = self.store.handles_by_collection(self.project_id)

        if not snapshot:
            return result

        logger.debug(
            FLUSH_STARTED,
            extra={
                "collections": len(snapshot),
                "events": sum(len(handles) for handles in snapshot.values()),
            },
        )

        for collection, handles in snapshot.items():
            for group in chunked(handles, self.batch_size):
                outcome = self._send_group(collection, group)
                if outcome is not None:
                    result.outcomes.append(outcome)

        logger.debug(
            FLUSH_COMPLETED,
            extra={
                "batches": result.batches,
                "sent": result.sent,
                "failed": result.failed,
            },
        )
        return result

    def _send_group(
        self, collection: str, handles: Sequence[int]
    ) -> Optional[BatchOutcome]:
        events = self.store.claim(handles)

        if not events:
            # Removed or being shipped by a concurrent flush
            logger.debug(
                FLUSH_BATCH_SKIPPED,
                extra={"collection": collection, "handles": len(handles)},
            )
            return None

        claimed = [event.handle for event in events]
        payload = build_payload(collection, [event.body for event in events])

        try:
            response = self.transport.send(
                "POST",
                self.path,
                self.write_key,
                body=payload,
                timeout=self.batch_timeout,
            )
        except TransportError as e:
            self.store.release(claimed)
            outcome = BatchOutcome(
                collection=collection,
                status=BatchStatus.TRANSPORT_ERROR,
                sent=len(events),
                error=str(e),
            )
            return self._failed(outcome, e)
        except Exception:
            self.store.release(claimed)
            raise

        if not response.is_success:
            self.store.release(claimed)
            error = HttpError(response.status_code, response.body)
            outcome = BatchOutcome(
                collection=collection,
                status=BatchStatus.HTTP_ERROR,
                sent=len(events),
                status_code=response.status_code,
                error=str(error),
            )
            return self._failed(outcome, error)

        logger.info(
            f"{response.status_code} {response.body} | Sent {len(events)} queued events"
        )

        for handle in claimed:
            self.store.remove(handle)

        logger.info(
            f"Removed {len(claimed)} events from the queue",
            extra={"code": FLUSH_BATCH_SENT, "collection": collection},
        )

        outcome = BatchOutcome(
            collection=collection,
            status=BatchStatus.SENT,
            sent=len(events),
            removed=len(claimed),
            status_code=response.status_code,
        )
        self._notify(self.callbacks.batch_sent, outcome)
        return outcome

    def _failed(self, outcome: BatchOutcome, exc: Exception) -> BatchOutcome:
        # Handles stay queued; the next flush retries them
        logger.error(
            f"{outcome.error} | Failed to send {outcome.sent} queued events",
            extra={
                "code": FLUSH_BATCH_FAILED,
                "collection": outcome.collection,
                "status_code": outcome.status_code,
            },
        )
        self._notify(self.callbacks.batch_failed, outcome, exc)
        return outcome

    def _notify(self, callback, *args) -> None:
        try:
            callback(*args)
        except Exception:
            # Never let callback errors crash a flush
            logger.debug("Flush callback %r failed", callback, exc_info=True)
