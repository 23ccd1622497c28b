"""
In-memory event store backing the local queue.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple

from keen.constants import DEFAULT_MAX_EVENTS_PER_COLLECTION
from keen.errors import CapacityExceededError, EventNotFoundError

from .log_codes import STORE_CAPACITY_EXCEEDED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredEvent:
    handle: int
    project_id: str
    collection: str
    body: str


class EventStore:
    """
    Thread-safe buffer of queued events.

    Keeps a primary ``handle -> StoredEvent`` map and a per
    ``(project_id, collection)`` index of handles in insertion order.
    Every mutation goes through ``store``, ``remove``, ``claim`` and
    ``release``, all of which hold the store lock, so the two maps never
    disagree.

    Claimed handles belong to a flush that is currently shipping them.
    They stay live (counted by ``size`` and capacity) until removed or
    released.
    """

    def __init__(
        self, max_events_per_collection: int = DEFAULT_MAX_EVENTS_PER_COLLECTION
    ):
        self.max_events_per_collection = max_events_per_collection

        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._events: Dict[int, StoredEvent] = {}
        # dict keys keep insertion order and give O(1) removal
        self._index: Dict[Tuple[str, str], "OrderedDict[int, None]"] = {}
        self._claimed: Set[int] = set()

    def store(self, project_id: str, collection: str, body: str) -> int:
        """
        Queue one event body.

        Args:
            project_id: The project the event belongs to.
            collection: The target event collection.
            body: The serialized event.

        Returns:
            The handle identifying the queued event.

        Raises:
            CapacityExceededError: If the collection already holds
                ``max_events_per_collection`` events.
        """
        key = (project_id, collection)

        with self._lock:
            handles = self._index.setdefault(key, OrderedDict())

            if len(handles) >= self.max_events_per_collection:
                logger.warning(
                    STORE_CAPACITY_EXCEEDED,
                    extra={
                        "project_id": project_id,
                        "collection": collection,
                        "limit": self.max_events_per_collection,
                    },
                )
                raise CapacityExceededError(
                    project_id, collection, self.max_events_per_collection
                )

            handle = next(self._counter)
            self._events[handle] = StoredEvent(handle, project_id, collection, body)
            handles[handle] = None

        return handle

    def handles_by_collection(self, project_id: str) -> Dict[str, List[int]]:
        """
        Snapshot the queued handles of a project, grouped by collection.
        """
        with self._lock:
            return {
                collection: list(handles)
                for (pid, collection), handles in self._index.items()
                if pid == project_id and handles
            }

    def collections(self, project_id: str) -> List[str]:
        return list(self.handles_by_collection(project_id))

    def get(self, handle: int) -> str:
        """
        Return the body of a queued event.

        Raises:
            EventNotFoundError: If the handle was already removed.
        """
        with self._lock:
            event = self._events.get(handle)

        if event is None:
            raise EventNotFoundError(handle)

        return event.body

    def remove(self, handle: int) -> None:
        """
        Drop a queued event. Removing a missing handle is a no-op.
        """
        with self._lock:
            self._remove_locked(handle)

    def claim(self, handles: Iterable[int]) -> List[StoredEvent]:
        """
        Take exclusive ownership of the given handles for shipping.

        Handles that were removed, or that another flush already claimed,
        are skipped.

        Returns:
            The claimed events, in the order the handles were given.
        """
        claimed = []

        with self._lock:
            for handle in handles:
                event = self._events.get(handle)
                if event is None or handle in self._claimed:
                    continue
                self._claimed.add(handle)
                claimed.append(event)

        return claimed

    def release(self, handles: Iterable[int]) -> None:
        """
        Give claimed handles back so a later flush can retry them.
        """
        with self._lock:
            for handle in handles:
                self._claimed.discard(handle)

    @property
    def size(self) -> int:
        return len(self._events)

    def __len__(self) -> int:
        return self.size

    def _remove_locked(self, handle: int) -> None:
        event = self._events.pop(handle, None)
        self._claimed.discard(handle)

        if event is None:
            return

        key = (event.project_id, event.collection)
        handles = self._index.get(key)
        if handles is not None:
            handles.pop(handle, None)
            if not handles:
                del self._index[key]
