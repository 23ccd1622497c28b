from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Optional, Protocol


class Response(NamedTuple):
    status_code: int
    body: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    """
    What the client needs from an HTTP layer.

    ``send`` returns a ``Response`` for every HTTP status and raises
    ``keen.errors.TransportError`` when no response could be obtained.
    """

    def send(
        self,
        method: str,
        path: str,
        auth_key: str,
        body: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Response: ...

    def close(self) -> None: ...
