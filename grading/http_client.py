"""
Thin httpx wrapper returning explicit results instead of raising.

Every request yields either an ``HttpResponse`` (any status code, including
4xx/5xx) or a ``NetworkError`` describing why no response arrived. Callers
inspect the result rather than relying on exceptions for status handling.
"""
import json
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: Any
    text: str
    headers: httpx.Headers


@dataclass(frozen=True)
class NetworkError:
    kind: str  # connection_refused, connection_reset, timeout, protocol, other
    message: str

    @property
    def is_connection_failure(self) -> bool:
        return self.kind in ("connection_refused", "connection_reset")


HttpResult = Union[HttpResponse, NetworkError]


def _classify(exc: httpx.HTTPError) -> NetworkError:
    if isinstance(exc, httpx.ConnectError):
        return NetworkError(kind="connection_refused", message=str(exc) or "connection refused")
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(kind="timeout", message=str(exc) or "timed out")
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return NetworkError(kind="connection_reset", message=str(exc) or "connection reset")
    if isinstance(exc, httpx.ProtocolError):
        return NetworkError(kind="protocol", message=str(exc))
    return NetworkError(kind="other", message=str(exc))


def _decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type or response.text[:1] in ("{", "["):
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            pass
    return response.text


class ApiClient:
    """Issues requests against one base URL and never raises on transport errors."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def request(self, method: str, path: str, **kwargs: Any) -> HttpResult:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            return _classify(e)
        return HttpResponse(
            status=response.status_code,
            body=_decode_body(response),
            text=response.text,
            headers=response.headers,
        )

    def get(self, path: str, **kwargs: Any) -> HttpResult:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, payload: Any = None, **kwargs: Any) -> HttpResult:
        return self.request("POST", path, json=payload, **kwargs)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def describe(result: HttpResult) -> str:
    if isinstance(result, NetworkError):
        if result.kind == "connection_refused":
            return "cannot connect to server"
        return f"{result.kind}: {result.message}"
    return f"HTTP {result.status}"
