"""
HTTP transport and body encoding collaborators.

Key Components:
    - RequestsTransport: requests-based transport with redirects disabled
    - TransportError: transport-level failure with optional partial response
    - encode_body: content-type driven body encoding
"""

from .client import RequestsTransport, TransportError, TransportResponse
from .encoding import EncodedBody, encode_body, is_upload_file

__all__ = [
    "RequestsTransport",
    "TransportError",
    "TransportResponse",
    "EncodedBody",
    "encode_body",
    "is_upload_file",
]
