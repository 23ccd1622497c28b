from typing import Callable, List
from unittest.mock import patch

import httpx
import pytest

from keen.errors import TransportError
from keen.transport import HttpxTransport, Response


@pytest.fixture
def recorded() -> List[httpx.Request]:
    return []


@pytest.fixture
def transport_factory(recorded: List[httpx.Request]):
    """
    Build an HttpxTransport whose client answers through ``handler``.
    """
    created = []

    def _create(
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> HttpxTransport:
        def _record(request: httpx.Request) -> httpx.Response:
            recorded.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(_record))
        transport = HttpxTransport(
            base_url="https://api.keen.io/", http_client=client
        )
        created.append(client)
        return transport

    yield _create

    for client in created:
        client.close()


def ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(201, text='{"created": true}')


@pytest.mark.unit
class TestSend:
    def test_builds_url_and_headers(self, transport_factory, recorded) -> None:
        transport = transport_factory(ok)

        response = transport.send(
            "post", "3.0/projects/pid/events/logs", "write-key", body='{"a": 1}'
        )

        assert response == Response(201, '{"created": true}')
        assert response.is_success

        request = recorded[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.keen.io/3.0/projects/pid/events/logs"
        assert request.headers["Authorization"] == "write-key"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["User-Agent"].startswith("keen-python/")
        assert request.content == b'{"a": 1}'

    def test_absent_params_are_dropped(self, transport_factory, recorded) -> None:
        transport = transport_factory(ok)

        transport.send(
            "GET",
            "3.0/projects/pid/queries/count",
            "read-key",
            params={"event_collection": "logs", "timeframe": None},
        )

        assert dict(recorded[0].url.params) == {"event_collection": "logs"}

    def test_get_has_no_body(self, transport_factory, recorded) -> None:
        transport = transport_factory(ok)

        transport.send("GET", "3.0/projects", "master-key")

        assert recorded[0].content == b""

    def test_timeout_override(self, transport_factory, recorded) -> None:
        transport = transport_factory(ok)

        transport.send("POST", "3.0/projects/pid/events", "key", body="{}", timeout=5.0)

        assert recorded[0].extensions["timeout"]["read"] == 5.0

    def test_error_status_is_returned(self, transport_factory) -> None:
        transport = transport_factory(
            lambda request: httpx.Response(401, text='{"error_code": "InvalidApiKeyError"}')
        )

        response = transport.send("GET", "3.0/projects", "bad-key")

        assert response.status_code == 401
        assert not response.is_success
        assert "InvalidApiKeyError" in response.body

    def test_undecodable_response_raises_transport_error(
        self, transport_factory, recorded
    ) -> None:
        def bad_gzip(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, headers={"Content-Encoding": "gzip"}, content=b"not gzip"
            )

        transport = transport_factory(bad_gzip)

        with pytest.raises(TransportError) as exc_info:
            transport.send("POST", "3.0/projects/pid/events", "key", body="{}")

        assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
        assert len(recorded) == 1

    def test_unknown_method(self, transport_factory) -> None:
        transport = transport_factory(ok)

        with pytest.raises(ValueError, match="Unknown HTTP method: PATCH"):
            transport.send("patch", "3.0/projects", "key")


@pytest.mark.unit
class TestRetries:
    @patch("time.sleep")
    def test_connect_errors_are_retried(
        self, mock_sleep, transport_factory, recorded
    ) -> None:
        attempts = []

        def flaky(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return ok(request)

        transport = transport_factory(flaky)

        response = transport.send("POST", "3.0/projects/pid/events", "key", body="{}")

        assert response.status_code == 201
        assert len(recorded) == 3
        assert mock_sleep.call_count == 2

    @patch("time.sleep")
    def test_persistent_connect_error_raises(
        self, mock_sleep, transport_factory, recorded
    ) -> None:
        def down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = transport_factory(down)

        with pytest.raises(TransportError) as exc_info:
            transport.send("POST", "3.0/projects/pid/events", "key", body="{}")

        assert "connection refused" in exc_info.value.reason
        assert len(recorded) == 3

    @patch("time.sleep")
    def test_read_timeout_is_not_retried(
        self, mock_sleep, transport_factory, recorded
    ) -> None:
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport = transport_factory(slow)

        with pytest.raises(TransportError):
            transport.send("POST", "3.0/projects/pid/events", "key", body="{}")

        assert len(recorded) == 1
        mock_sleep.assert_not_called()


@pytest.mark.unit
class TestClose:
    def test_injected_client_is_left_open(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(ok))
        transport = HttpxTransport(http_client=client)

        transport.close()

        assert not client.is_closed
        client.close()

    def test_owned_client_is_closed_once(self) -> None:
        with HttpxTransport() as transport:
            pass

        assert transport.client.is_closed
        transport.close()
