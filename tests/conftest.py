import threading
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Union

import pytest

from keen.config import Settings
from keen.queue import QueueConfig
from keen.transport import Response


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "slow: tests relying on real timer threads")


class SentRequest(NamedTuple):
    method: str
    path: str
    auth_key: str
    body: Optional[str]
    params: Optional[Mapping[str, Any]]
    timeout: Optional[float]


Scripted = Union[Response, Exception, Callable[[SentRequest], Response]]


class FakeTransport:
    """
    Records every request and answers from a scripted list, falling back to
    ``default`` once the script runs out.
    """

    def __init__(self, default: Response = Response(200, '{"created": true}')):
        self.default = default
        self.script: List[Scripted] = []
        self.requests: List[SentRequest] = []
        self.closed = False
        self._lock = threading.Lock()

    def send(self, method, path, auth_key, body=None, params=None, timeout=None):
        request = SentRequest(method, path, auth_key, body, params, timeout)

        with self._lock:
            self.requests.append(request)
            answer = self.script.pop(0) if self.script else self.default

        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(request)
        return answer

    def close(self):
        self.closed = True


@pytest.fixture
def fake_transport() -> FakeTransport:
    """
    A transport that succeeds unless told otherwise.
    """
    return FakeTransport()


@pytest.fixture
def settings_factory():
    """
    Factory fixture for fully keyed test-environment settings.
    """

    def _create(**queue_overrides: Any) -> Settings:
        return Settings(
            project_id="5011efa95f546f2ce2000000",
            read_key="read-key",
            write_key="write-key",
            master_key="master-key",
            environment="test",
            queue=QueueConfig(**queue_overrides),
        )

    return _create
