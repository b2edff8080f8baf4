"""HTTP transport built on requests.

Redirects are never followed: a 3xx response is returned as-is. Non-2xx
statuses are responses, not errors; only connection-level problems raise
TransportError.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from .encoding import EncodedBody

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "httpfanout/0.1"


@dataclass
class TransportResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


class TransportError(Exception):
    """Transport-level failure, optionally carrying whatever response was received."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        partial_response: TransportResponse | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.partial_response = partial_response


class RequestsTransport:
    """
    Synchronous transport over a requests.Session.

    One instance per worker unit: sessions are not shared across threads.

    Example:
        >>> transport = RequestsTransport(timeout=10.0)
        >>> response = transport.send("GET", "https://httpbin.org/get")
        >>> response.status
        200
    """

    def __init__(
        self,
        timeout: float | None = 30.0,
        user_agent: str | None = None,
        verify: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.verify = verify
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent or DEFAULT_USER_AGENT})

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        encoded: EncodedBody | None = None,
    ) -> TransportResponse:
        """Send one request and return its response without following redirects."""
        encoded = encoded or EncodedBody(headers=dict(headers or {}))
        data = encoded.data
        with contextlib.ExitStack() as stack:
            parts: List[Tuple[str, Tuple[Any, Any]]] = []
            if encoded.multipart:
                # every field is its own part, attachments or not
                parts.extend((name, (None, _field_value(value))) for name, value in (data or {}).items())
                data = None
            try:
                parts.extend(
                    (name, (os.path.basename(path), stack.enter_context(open(path, "rb"))))
                    for name, path in encoded.files.items()
                )
            except OSError as e:
                raise TransportError(f"Cannot open upload file: {e}") from e

            try:
                response = self.session.request(
                    method,
                    url,
                    headers=encoded.headers if encoded.headers else dict(headers or {}),
                    params=dict(params) if params else None,
                    data=data,
                    json=encoded.json,
                    files=parts or None,
                    timeout=self.timeout,
                    verify=self.verify,
                    allow_redirects=False,
                )
            except requests.RequestException as e:
                partial = _to_response(e.response) if e.response is not None else None
                raise TransportError(
                    f"{type(e).__name__}: {e}",
                    status=partial.status if partial else None,
                    partial_response=partial,
                ) from e

        return _to_response(response)

    def close(self) -> None:
        self.session.close()


def _to_response(response: requests.Response) -> TransportResponse:
    return TransportResponse(
        status=response.status_code,
        headers=dict(response.headers),
        body=decode_body(response),
    )


def decode_body(response: requests.Response) -> Any:
    """JSON for JSON responses, text for textual ones, bytes otherwise."""
    content_type = response.headers.get("Content-Type", "").lower()
    if not response.content:
        return None
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    if content_type.startswith("text/") or "charset=" in content_type or "xml" in content_type:
        return response.text
    if "form-urlencoded" in content_type:
        return response.text
    return response.content


def _field_value(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value)
    return str(value)
