"""
Request Executor for httpfanout.

Runs one RequestDescriptor through the body encoder and the transport and
normalizes whatever happens into an OutcomeRecord. The executor never
raises: transport errors, encoding errors and unexpected exceptions all end
up in the record's ``error`` field.

Semantics:
    - Any HTTP status (including 3xx, 4xx, 5xx) is a successful outcome
    - Only transport-level failures produce success=False
    - Duration covers the transport call only, not body encoding
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Optional, Protocol

from ..transport.client import TransportError, TransportResponse
from ..transport.encoding import EncodedBody, FileProbe, encode_body, is_upload_file
from ..types import OutcomeRecord, RequestDescriptor

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        encoded: EncodedBody | None = None,
    ) -> TransportResponse:
        ...


class RequestExecutor:
    """
    Executes single requests against a transport.

    Example:
        >>> executor = RequestExecutor(RequestsTransport())
        >>> record = executor.execute(RequestDescriptor(url="https://httpbin.org/get"))
        >>> record.success, record.status_code
        (True, 200)
    """

    def __init__(self, transport: Transport, probe: FileProbe = is_upload_file) -> None:
        """
        Args:
            transport: Object implementing ``send``
            probe: File probe handed to the multipart encoder
        """
        self._transport = transport
        self._probe = probe

    def execute(self, descriptor: RequestDescriptor) -> OutcomeRecord:
        """Execute one request; always returns a record."""
        try:
            encoded = encode_body(descriptor.headers, descriptor.body, probe=self._probe)
        except Exception as e:
            logger.warning("Cannot encode body for %s %s: %s", descriptor.method, descriptor.url, e)
            return self._failure(descriptor, f"Body encoding failed: {e}", 0.0)

        start_time = time.perf_counter()
        try:
            response = self._transport.send(
                descriptor.method,
                descriptor.url,
                headers=encoded.headers,
                params=descriptor.query,
                encoded=encoded,
            )
        except TransportError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "%s %s failed after %.0f ms: %s",
                descriptor.method,
                descriptor.url,
                duration_ms,
                e.message,
            )
            return self._failure(descriptor, e.message, duration_ms, status_code=e.status)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "%s %s raised unexpected error: %s",
                descriptor.method,
                descriptor.url,
                str(e)[:200],
            )
            return self._failure(descriptor, f"Unexpected error: {e}", duration_ms)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "%s %s -> %d in %.0f ms",
            descriptor.method,
            descriptor.url,
            response.status,
            duration_ms,
        )
        return OutcomeRecord(
            success=True,
            status_code=response.status,
            duration_ms=duration_ms,
            headers=dict(response.headers),
            body=response.body,
            correlation_id=descriptor.correlation_id,
            url=descriptor.url,
            method=descriptor.method,
        )

    @staticmethod
    def _failure(
        descriptor: RequestDescriptor,
        error: str,
        duration_ms: float,
        status_code: int | None = None,
    ) -> OutcomeRecord:
        return OutcomeRecord(
            success=False,
            status_code=status_code,
            duration_ms=duration_ms,
            error=error,
            correlation_id=descriptor.correlation_id,
            url=descriptor.url,
            method=descriptor.method,
        )
