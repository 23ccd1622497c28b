from .base import Response, Transport
from .http import HttpxTransport

__all__ = [
    "Response",
    "Transport",
    "HttpxTransport",
]
