"""
Request body encoding by content type.

The declared ``Content-Type`` media type picks one strategy:

    application/json                   -> JSON serialization
    application/x-www-form-urlencoded  -> form fields
    multipart/form-data                -> fields plus file attachments
    anything else                      -> pass-through (structures as JSON)

Only the multipart branch touches the filesystem, and it does so through an
injectable ``probe`` so tests can decide which values count as files.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping

from requests.structures import CaseInsensitiveDict

logger = logging.getLogger(__name__)

JSON = "application/json"
FORM = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"

FileProbe = Callable[[Any], bool]


@dataclass
class EncodedBody:
    """Request payload ready to hand to a transport.

    Attributes:
        headers: Headers to send (may differ from the descriptor's)
        data: Raw body or form fields
        json: Structure to serialize as JSON
        files: Field name -> path of a file to attach
        multipart: Send ``data`` fields and ``files`` as multipart parts
    """

    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    json: Any = None
    files: Dict[str, str] = field(default_factory=dict)
    multipart: bool = False


def is_upload_file(value: Any) -> bool:
    """True if value is a path to an existing regular file."""
    if not isinstance(value, (str, os.PathLike)):
        return False
    try:
        return os.path.isfile(value)
    except (OSError, ValueError):
        return False


def media_type(headers: Mapping[str, str]) -> str:
    """Lower-cased media type of the Content-Type header, parameters stripped."""
    value = CaseInsensitiveDict(headers).get("Content-Type") or ""
    return value.split(";", 1)[0].strip().lower()


def encode_body(
    headers: Mapping[str, str],
    body: Any,
    probe: FileProbe = is_upload_file,
) -> EncodedBody:
    """
    Encode ``body`` according to the Content-Type in ``headers``.

    Args:
        headers: Request headers (case-insensitive lookup)
        body: Opaque payload from the request descriptor
        probe: Decides whether a multipart field value is a file to attach

    Returns:
        EncodedBody for the transport
    """
    out_headers = CaseInsensitiveDict(headers)
    if body is None:
        return EncodedBody(headers=dict(out_headers))

    kind = media_type(out_headers)

    if kind == JSON:
        if isinstance(body, (str, bytes)):
            return EncodedBody(headers=dict(out_headers), data=body)
        return EncodedBody(headers=dict(out_headers), json=body)

    if kind == FORM:
        return EncodedBody(headers=dict(out_headers), data=_as_form(body))

    if kind == MULTIPART:
        if not isinstance(body, Mapping):
            raise ValueError("multipart/form-data body must be a mapping of fields")
        fields: Dict[str, Any] = {}
        files: Dict[str, str] = {}
        for name, value in body.items():
            if probe(value):
                files[name] = os.fspath(value)
            else:
                fields[name] = value
        logger.debug("Multipart body: %d fields, %d files", len(fields), len(files))
        # the transport generates its own boundary
        out_headers.pop("Content-Type", None)
        return EncodedBody(headers=dict(out_headers), data=fields, files=files, multipart=True)

    if isinstance(body, (str, bytes)):
        return EncodedBody(headers=dict(out_headers), data=body)
    return EncodedBody(headers=dict(out_headers), json=body)


def _as_form(body: Any) -> Any:
    if isinstance(body, (str, bytes)):
        return body
    if isinstance(body, Mapping):
        return dict(body)
    raise ValueError(f"Form body must be a mapping or string, got {type(body).__name__}")
