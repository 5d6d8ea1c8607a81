"""HTTP request executors and the clients behind them."""

from __future__ import annotations

import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class Request:
    """An outgoing HTTP request."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout: float | None = None


@dataclass
class Response:
    """A received HTTP response with its whole body."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


class HTTPClient:
    """A small HTTP client that returns responses for every status code."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def do(self, request: Request) -> Response:
        """Send the request and return the response; network failures raise."""
        outgoing = urllib.request.Request(
            request.url,
            data=request.body,
            headers=dict(request.headers),
            method=request.method,
        )
        timeout = request.timeout if request.timeout is not None else self.timeout
        kwargs = {} if timeout is None else {"timeout": timeout}
        try:
            with urllib.request.urlopen(outgoing, **kwargs) as raw:
                return Response(
                    status_code=raw.status,
                    headers=dict(raw.headers.items()),
                    body=raw.read(),
                )
        except urllib.error.HTTPError as exc:
            with exc:
                return Response(
                    status_code=exc.code,
                    headers=dict(exc.headers.items()) if exc.headers else {},
                    body=exc.read(),
                )


HTTPClientFactory = Callable[[], HTTPClient]
HTTPRequestExecutor = Callable[[Request], Response]

_DEFAULT_HTTP_CLIENT = HTTPClient()


def new_http_client() -> HTTPClient:
    """Return the shared default client."""
    return _DEFAULT_HTTP_CLIENT


def default_http_request_executor(client_factory: HTTPClientFactory) -> HTTPRequestExecutor:
    """Build an executor that sends each request with a client from the factory."""

    def execute(request: Request) -> Response:
        return client_factory().do(request)

    return execute