"""Handlers deciding how backend response status codes are treated."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from lura.client.executor import Response
from lura.sd.subscriber import Backend

NAMESPACE = "github.com/devopsfaith/krakend/http"

HTTPStatusHandler = Callable[[Response], Response]


class InvalidStatusCodeError(Exception):
    """Raised when the backend answered with neither 200 nor 201."""

    def __init__(self, message: str = "Invalid status code") -> None:
        super().__init__(message)


class HTTPResponseError(Exception):
    """A backend error carrying its status code, body and a name."""

    def __init__(
        self,
        status_code: int,
        message: str,
        name: str,
        response: Response | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.name = name
        self.response = response

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Return the serialisable form of the error."""
        data: dict[str, Any] = {"http_status_code": self.status_code}
        if self.message:
            data["http_body"] = self.message
        return data


def default_http_status_handler(resp: Response) -> Response:
    """Accept only 200 and 201 responses."""
    if resp.status_code not in (200, 201):
        raise InvalidStatusCodeError()
    return resp


def noop_http_status_handler(resp: Response) -> Response:
    """Accept every response, whatever its status code."""
    if not isinstance(resp, Response):
        raise TypeError(f"expected a Response, got {type(resp).__name__}")
    return resp


def detailed_http_status_handler(next_handler: HTTPStatusHandler, name: str) -> HTTPStatusHandler:
    """Wrap a handler so rejected responses raise an HTTPResponseError with details."""

    def handle(resp: Response) -> Response:
        try:
            return next_handler(resp)
        except Exception:
            body = resp.body or b""
            raise HTTPResponseError(
                status_code=resp.status_code,
                message=body.decode("utf-8", errors="replace"),
                name=name,
                response=resp,
            ) from None

    return handle


def get_http_status_handler(remote: Backend) -> HTTPStatusHandler:
    """Pick the detailed handler when the backend asks for error details."""
    extra = remote.extra_config.get(NAMESPACE)
    if isinstance(extra, dict):
        name = extra.get("return_error_details")
        if isinstance(name, str) and name:
            return detailed_http_status_handler(default_http_status_handler, name)
    return default_http_status_handler