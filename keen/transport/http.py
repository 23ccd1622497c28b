from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from keen.constants import DEFAULT_BASE_URL, REQUEST_RETRIES, REQUEST_TIMEOUT
from keen.errors import TransportError
from keen.meta import get_meta_http_headers

from .base import Response

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "DELETE")

# The request never reached the server, so resending cannot duplicate events
RETRYABLE_EXCEPTIONS = (httpx.ConnectError,)


class HttpxTransport:
    """Sync HTTP transport for the Keen API with connect retries."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(timeout=httpx.Timeout(timeout))
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _get_headers(self, auth_key: str) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        headers.update(get_meta_http_headers())
        headers["Authorization"] = auth_key

        return headers

    def send(
        self,
        method: str,
        path: str,
        auth_key: str,
        body: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Response:
        """
        Perform one request against the API.

        Args:
            method: GET, POST or DELETE.
            path: Path relative to the base URL, already percent-encoded.
            auth_key: Project key sent in the Authorization header.
            body: Optional JSON body.
            params: Query parameters; ``None`` values are left out.
            timeout: Per-request timeout overriding the client default.

        Returns:
            Response: Status code and body, for any HTTP status.

        Raises:
            ValueError: If the method is not supported.
            TransportError: If no usable response could be obtained.
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unknown HTTP method: {method}")

        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {
            key: value for key, value in (params or {}).items() if value is not None
        }

        logger.debug("%s: %s", method, url)

        try:
            resp = self._request(method, url, auth_key, body, query, timeout)
        except httpx.RequestError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(reason=str(e) or e.__class__.__name__) from e

        return Response(status_code=resp.status_code, body=resp.text)

    @retry(
        reraise=True,
        stop=stop_after_attempt(REQUEST_RETRIES),
        wait=wait_exponential_jitter(initial=0.2, max=4.0),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    def _request(
        self,
        method: str,
        url: str,
        auth_key: str,
        body: Optional[str],
        query: Dict[str, Any],
        timeout: Optional[float],
    ) -> httpx.Response:
        kwargs: Dict[str, Any] = {
            "headers": self._get_headers(auth_key),
            "params": query,
        }
        if body is not None:
            kwargs["content"] = body.encode("utf-8")
        if timeout is not None:
            kwargs["timeout"] = timeout

        return self.client.request(method, url, **kwargs)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Don't close an injected client - let the caller manage its lifecycle
        if self._owns_client:
            self.client.close()
