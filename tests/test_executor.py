"""
Unit tests for RequestExecutor.

Covers outcome normalization for successful responses, non-2xx statuses,
transport failures and unexpected errors.
"""

from __future__ import annotations

from typing import Any

import pytest

from httpfanout.parallel.executor import RequestExecutor
from httpfanout.transport.client import TransportError, TransportResponse
from httpfanout.types import RequestDescriptor


class RecordingTransport:
    """Returns a canned response and remembers what it was asked to send."""

    def __init__(self, response: TransportResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or TransportResponse(status=200, headers={"Content-Type": "application/json"}, body={"ok": True})
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def send(self, method, url, headers=None, params=None, encoded=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "params": params, "encoded": encoded})
        if self.error is not None:
            raise self.error
        return self.response


class TestRequestExecutor:
    """Tests for RequestExecutor.execute."""

    def test_success_record(self) -> None:
        transport = RecordingTransport()
        executor = RequestExecutor(transport)
        record = executor.execute(
            RequestDescriptor(
                url="https://example.test/anything",
                method="post",
                headers={"Content-Type": "application/json"},
                body={"message": "Hello JSON"},
                query={"id": "1"},
                correlation_id="req-1",
            )
        )

        assert record.success
        assert record.status_code == 200
        assert record.body == {"ok": True}
        assert record.error is None
        assert record.correlation_id == "req-1"
        assert record.method == "POST"
        assert record.duration_ms >= 0

        call = transport.calls[0]
        assert call["method"] == "POST"
        assert call["params"] == {"id": "1"}
        assert call["encoded"].json == {"message": "Hello JSON"}

    @pytest.mark.parametrize("status", [301, 404, 500])
    def test_non_2xx_is_not_failure(self, status: int) -> None:
        """Redirects and error statuses are terminal, successful outcomes."""
        transport = RecordingTransport(TransportResponse(status=status, headers={}, body="nope"))
        record = RequestExecutor(transport).execute(RequestDescriptor(url="https://example.test/x"))

        assert record.success
        assert record.status_code == status
        assert record.error is None

    def test_transport_error_captured(self) -> None:
        """A connection-refused failure becomes a failed record, not an exception."""
        transport = RecordingTransport(error=TransportError("ConnectionError: Connection refused"))
        record = RequestExecutor(transport).execute(
            RequestDescriptor(url="http://127.0.0.1:9/", correlation_id="down")
        )

        assert not record.success
        assert record.status_code is None
        assert "Connection refused" in record.error
        assert record.body is None
        assert record.headers is None
        assert record.correlation_id == "down"

    def test_transport_error_with_status(self) -> None:
        partial = TransportResponse(status=502, headers={}, body="bad gateway")
        transport = RecordingTransport(error=TransportError("broken", status=502, partial_response=partial))
        record = RequestExecutor(transport).execute(RequestDescriptor(url="https://example.test/"))

        assert not record.success
        assert record.status_code == 502

    def test_unexpected_error_captured(self) -> None:
        transport = RecordingTransport(error=KeyError("boom"))
        record = RequestExecutor(transport).execute(RequestDescriptor(url="https://example.test/"))

        assert not record.success
        assert record.error.startswith("Unexpected error")

    def test_encoding_error_captured(self) -> None:
        """Encoding problems fail the record before the transport is called."""
        transport = RecordingTransport()
        record = RequestExecutor(transport).execute(
            RequestDescriptor(
                url="https://example.test/",
                method="POST",
                headers={"Content-Type": "multipart/form-data"},
                body="not a mapping",
            )
        )

        assert not record.success
        assert "Body encoding failed" in record.error
        assert transport.calls == []

    def test_injected_probe_used_for_multipart(self) -> None:
        transport = RecordingTransport()
        executor = RequestExecutor(transport, probe=lambda value: value == "/tmp/upload.bin")
        executor.execute(
            RequestDescriptor(
                url="https://example.test/upload",
                method="POST",
                headers={"Content-Type": "multipart/form-data"},
                body={"file": "/tmp/upload.bin", "name": "upload"},
            )
        )

        encoded = transport.calls[0]["encoded"]
        assert encoded.files == {"file": "/tmp/upload.bin"}
        assert encoded.data == {"name": "upload"}
