"""Partition a request list into contiguous chunks for worker units."""

from __future__ import annotations

from typing import List, Sequence

from ..types import Chunk, RequestDescriptor


def chunk_size(total: int, width: int) -> int:
    """
    Number of requests per chunk for ``total`` requests at ``width``.

    Width is clamped to at least 1. A width larger than the request count
    collapses to a single chunk holding every request.
    """
    width = max(1, int(width))
    if width > total:
        return max(total, 1)
    return width


def split(requests: Sequence[RequestDescriptor], width: int) -> List[Chunk]:
    """
    Split requests into contiguous chunks of ``width`` requests each.

    Order is preserved within and across chunks; the last chunk may be short.

    Args:
        requests: Ordered request descriptors
        width: Requested concurrency width

    Returns:
        List of chunks (empty for empty input)

    Example:
        >>> [len(c) for c in split(five_requests, 2)]
        [2, 2, 1]
        >>> [len(c) for c in split(three_requests, 8)]
        [3]
    """
    total = len(requests)
    if total == 0:
        return []

    size = chunk_size(total, width)
    return [
        Chunk(index=idx, start=start, requests=tuple(requests[start : start + size]))
        for idx, start in enumerate(range(0, total, size))
    ]
