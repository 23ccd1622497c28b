"""
Keen API client.

A ``Client`` only knows its project and transport. Access levels are mixed
in as subclasses so that a missing key fails at construction instead of at
the first call that needs it::

    class AppClient(Reader, Writer):
        pass

    keen = AppClient()          # raises MissingCredentialError without both keys
    keen.queue_event("logs", {"level": "info"})
    keen.count("logs", timeframe="this_week")
    keen.shutdown()             # drains the queue

``Master`` implies ``Reader`` and ``Writer`` and uses the master key for all
of them.
"""

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Mapping, Optional, Sequence, Union
from urllib.parse import quote

from keen.config import Settings, load_settings
from keen.errors import MissingCredentialError
from keen.queue import BatchSender, EventStore, FlushCallbacks, FlushResult, Scheduler
from keen.queue.log_codes import FLUSH_INLINE_FAILED
from keen.transport import HttpxTransport, Response, Transport

logger = logging.getLogger(__name__)

Event = Union[str, Mapping[str, Any]]
Filters = Union[str, Sequence[Mapping[str, Any]]]


def serialize(value: Any) -> Optional[str]:
    """
    JSON-encode ``value`` unless it is already text. ``None`` stays absent.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return json.dumps(value)


def _require(value: Optional[str], credential: str) -> str:
    if not value:
        raise MissingCredentialError(credential)
    return value


class Client:
    """
    Base client holding settings, project id and transport.

    Args:
        settings: Resolved settings; ``load_settings()`` when omitted.
        transport: HTTP transport; an ``HttpxTransport`` owned by the
            client when omitted.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[Transport] = None,
    ):
        self.settings = settings or load_settings()
        self.project_id = _require(self.settings.project_id, "Project id")
        self.api_version = self.settings.api_version

        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport(
            base_url=self.settings.base_url, timeout=self.settings.request_timeout
        )
        self._closed = False

        try:
            self._resolve_credentials()
            self._start()
        except Exception:
            self._close_transport()
            raise

    @property
    def environment(self) -> Optional[str]:
        return self.settings.environment

    def _resolve_credentials(self) -> None:
        """Hook for access levels to check their keys."""

    def _start(self) -> None:
        """Hook for access levels to start background resources."""

    def _api_path(self, *segments: Any) -> str:
        return "/".join(
            quote(str(segment), safe="") for segment in (self.api_version, *segments)
        )

    def _project_path(self, *segments: Any) -> str:
        return self._api_path("projects", self.project_id, *segments)

    def _request(
        self,
        method: str,
        path: str,
        key: str,
        body: Optional[str] = None,
        params: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Response:
        return self.transport.send(method, path, key, body=body, params=params)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()

    def shutdown(self) -> None:
        """
        Disconnects any remaining connections. Safe to call more than once.
        """
        self._close_transport()

    def _close_transport(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_transport:
            self.transport.close()


class Reader(Client):
    """
    Access level for queries. Requires a read key.
    """

    def _resolve_credentials(self) -> None:
        super()._resolve_credentials()
        self.read_key = self._read_key()

    def _read_key(self) -> str:
        return _require(self.settings.read_key, "Read key")

    def average(
        self,
        collection: str,
        target_property: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        Average across all numeric values of ``target_property`` in the
        events matching the criteria.

        Args:
            collection: The event collection to analyze.
            target_property: The numeric property to average.
            filters: Filter list, as JSON text or a list of filter mappings.
            timeframe: Window of time, e.g. ``this_week``. All events when absent.
            timezone: Timezone applied to relative timeframes.
            group_by: Property to group results by.
        """
        return self._query(
            "average",
            collection,
            target_property=target_property,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def count(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        Number of events in the collection matching the criteria.
        """
        return self._query(
            "count",
            collection,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def count_unique(
        self,
        collection: str,
        target_property: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        Number of unique values of ``target_property`` in the matching events.
        """
        return self._query(
            "count_unique",
            collection,
            target_property=target_property,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def extraction(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        email: Optional[str] = None,
        latest: Optional[int] = None,
        property_names: Optional[Union[str, Sequence[str]]] = None,
    ) -> Response:
        """
        Raw events matching the criteria.

        Args:
            email: Deliver the extraction by email instead of in the response.
            latest: Only the most recent N events.
            property_names: Restrict the returned properties.
        """
        return self._query(
            "extraction",
            collection,
            filters=filters,
            timeframe=timeframe,
            email=email,
            latest=latest,
            property_names=property_names,
        )

    def maximum(
        self,
        collection: str,
        target_property: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        Maximum numeric value of ``target_property`` in the matching events.
        """
        return self._query(
            "maximum",
            collection,
            target_property=target_property,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def minimum(
        self,
        collection: str,
        target_property: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        Minimum numeric value of ``target_property`` in the matching events.
        """
        return self._query(
            "minimum",
            collection,
            target_property=target_property,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def select_unique(
        self,
        collection: str,
        target_property: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        List of unique values of ``target_property`` in the matching events.
        """
        return self._query(
            "select_unique",
            collection,
            target_property=target_property,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def sum(
        self,
        collection: str,
        target_property: str,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Response:
        """
        Sum of all numeric values of ``target_property`` in the matching events.
        """
        return self._query(
            "sum",
            collection,
            target_property=target_property,
            filters=filters,
            timeframe=timeframe,
            timezone=timezone,
            group_by=group_by,
        )

    def _query(
        self,
        analysis_type: str,
        collection: str,
        target_property: Optional[str] = None,
        filters: Optional[Filters] = None,
        timeframe: Optional[str] = None,
        timezone: Optional[str] = None,
        group_by: Optional[str] = None,
        email: Optional[str] = None,
        latest: Optional[int] = None,
        property_names: Optional[Union[str, Sequence[str]]] = None,
    ) -> Response:
        # None means absent; the transport leaves absent parameters out
        params = {
            "event_collection": collection,
            "target_property": target_property,
            "filters": serialize(filters),
            "timeframe": timeframe,
            "timezone": timezone,
            "group_by": group_by,
            "email": email,
            "latest": None if latest is None else str(latest),
            "property_names": serialize(property_names),
        }

        return self._request(
            "GET",
            self._project_path("queries", analysis_type),
            self.read_key,
            params=params,
        )


class Writer(Client):
    """
    Access level for event ingestion. Requires a write key.

    Besides direct writes, a writer owns the local queue: ``queue_event``
    buffers events that are shipped in batches by the threshold trigger,
    the periodic scheduler, ``send_queued_events`` or ``shutdown``.

    Args:
        flush_callbacks: Observer notified of every batch outcome.
    """

    def __init__(
        self,
        *args: Any,
        flush_callbacks: Optional[FlushCallbacks] = None,
        **kwargs: Any,
    ):
        self._flush_callbacks = flush_callbacks
        self._async_pool: Optional[ThreadPoolExecutor] = None
        # Guards the closing flag against producers storing during shutdown
        self._queue_lock = threading.Lock()
        self._closing = False
        super().__init__(*args, **kwargs)

    def _resolve_credentials(self) -> None:
        super()._resolve_credentials()
        self.write_key = self._write_key()

    def _write_key(self) -> str:
        return _require(self.settings.write_key, "Write key")

    def _start(self) -> None:
        super()._start()

        config = self.settings.queue
        config.validate(bypass_bounds=self.settings.is_test_environment)

        self.event_store = EventStore(config.max_events_per_collection)
        self.batch_sender = BatchSender(
            self.event_store,
            self.transport,
            project_id=self.project_id,
            write_key=self.write_key,
            path=self._project_path("events"),
            batch_size=config.batch_size,
            batch_timeout=config.batch_timeout,
            callbacks=self._flush_callbacks,
        )
        self.scheduler = Scheduler(
            self.batch_sender,
            interval=config.send_interval_duration,
            shutdown_delay=config.shutdown_delay,
        )
        self.scheduler.start()

    def add_event(self, collection: str, event: Event) -> Response:
        """
        Publish a single event immediately.

        Args:
            collection: The collection to which the event will be added.
            event: The event, as JSON text or a mapping.
        """
        return self._request(
            "POST",
            self._project_path("events", collection),
            self.write_key,
            body=serialize(event),
        )

    def add_events(self, events: Union[str, Mapping[str, Sequence[Any]]]) -> Response:
        """
        Publish events for several collections in one request.

        Args:
            events: ``{"collection": [event, ...], ...}`` as JSON text or a mapping.
        """
        return self._request(
            "POST", self._project_path("events"), self.write_key, body=serialize(events)
        )

    def queue_event(self, collection: str, event: Event) -> int:
        """
        Queue an event locally for batched publishing.

        When the queue holds ``send_interval_events`` or more events, the
        queue is flushed on the calling thread before returning.

        Returns:
            int: The handle of the queued event.

        Raises:
            CapacityExceededError: If the collection's queue is full.
            RuntimeError: If the writer has been shut down.
        """
        body = serialize(event)

        with self._queue_lock:
            if self._closing:
                raise RuntimeError("Writer has been shut down")
            handle = self.event_store.store(self.project_id, collection, body)

        threshold = self.settings.queue.send_interval_events
        if threshold and self.event_store.size >= threshold:
            logger.debug("Queue reached %s events, flushing inline", threshold)
            # TODO: hand the flush to the scheduler thread so producers never wait on the network
            self._flush_inline()

        return handle

    def _flush_inline(self) -> None:
        # Never raised to the producer; failed batches stay queued
        try:
            self.batch_sender.flush()
        except Exception as e:
            logger.exception(
                "Failed to send queued events", extra={"code": FLUSH_INLINE_FAILED}
            )
            try:
                self.batch_sender.callbacks.tick_failed(e)
            except Exception:
                logger.debug("tick_failed callback raised", exc_info=True)

    def send_queued_events(self) -> FlushResult:
        """
        Send all queued events, removing them as their batches succeed.
        """
        return self.batch_sender.flush()

    def send_queued_events_async(self) -> "Future[FlushResult]":
        """
        Send all queued events from a worker thread.
        """
        if self._async_pool is None:
            self._async_pool = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="keen-flush"
            )
        return self._async_pool.submit(self.batch_sender.flush)

    @property
    def queued(self) -> int:
        return self.event_store.size

    def shutdown(self) -> bool:
        """
        Stop the scheduler, drain the queue, then close connections.

        Returns:
            bool: False if in-flight flushes did not finish within the
            shutdown delay (the final drain still ran).
        """
        with self._queue_lock:
            self._closing = True

        drained = self.scheduler.shutdown()
        if not drained:
            logger.warning(
                "Writer for project %s shut down before the queue drained",
                self.project_id,
            )

        # Inline or async flushes that started before closing still hold the transport
        self.batch_sender.wait_idle(self.settings.queue.shutdown_delay)

        if self._async_pool is not None:
            self._async_pool.shutdown(wait=False)

        super().shutdown()
        return drained


class Master(Reader, Writer):
    """
    Access level for administrative calls. Requires a master key, which
    also serves as read and write key.
    """

    def _resolve_credentials(self) -> None:
        self.master_key = _require(self.settings.master_key, "Master key")
        super()._resolve_credentials()

    def _read_key(self) -> str:
        return self.master_key

    def _write_key(self) -> str:
        return self.master_key

    def delete_collection(self, collection: str) -> Response:
        """
        Deletes the entire event collection. This is irreversible.
        """
        return self._request(
            "DELETE", self._project_path("events", collection), self.master_key
        )

    def delete_property(self, collection: str, name: str) -> Response:
        """
        Removes a property and deletes all values stored under it.
        """
        return self._request(
            "DELETE",
            self._project_path("events", collection, "properties", name),
            self.master_key,
        )

    def get_events(self) -> Response:
        """
        Schema information for all event collections in the project.
        """
        return self._request("GET", self._project_path("events"), self.master_key)

    def get_collection(self, collection: str) -> Response:
        return self._request(
            "GET", self._project_path("events", collection), self.master_key
        )

    def get_projects(self) -> Response:
        """
        Projects accessible with the master key.
        """
        return self._request("GET", self._api_path("projects"), self.master_key)

    def get_project(self) -> Response:
        return self._request("GET", self._project_path(), self.master_key)

    def get_property(self, collection: str, name: str) -> Response:
        return self._request(
            "GET",
            self._project_path("events", collection, "properties", name),
            self.master_key,
        )

    def get_queries(self) -> Response:
        """
        Available queries and links to them.
        """
        return self._request("GET", self._project_path("queries"), self.master_key)
