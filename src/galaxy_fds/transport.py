"""HTTP transport protocol and the default httpx-backed implementation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx


@dataclass(frozen=True)
class HttpResponse:
    """A transport response.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers (lower-cased names).
        body: Raw response body.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON; an empty body decodes to None."""
        if not self.body:
            return None
        return json.loads(self.body)


class Transport(Protocol):
    """Protocol for the component that actually sends requests.

    Implementations own connection management, TLS, timeouts and retries.
    """

    def send(
        self,
        method: str,
        uri: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> HttpResponse:
        """Send one request.

        Args:
            method: HTTP method.
            uri: Absolute request URI.
            headers: Fully signed request headers.
            body: Optional request body.

        Returns:
            The response.
        """
        ...


class HttpxTransport:
    """Transport backed by an :class:`httpx.Client`.

    A preconfigured client may be injected (e.g. one built around
    :class:`httpx.MockTransport`); otherwise one is created and owned by
    the transport.
    """

    def __init__(self, client: httpx.Client | None = None, timeout: float = 30.0) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    def send(
        self,
        method: str,
        uri: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> HttpResponse:
        response = self._client.request(method, uri, headers=headers, content=body)
        return HttpResponse(
            status_code=response.status_code,
            headers={name.lower(): value for name, value in response.headers.items()},
            body=response.content,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
