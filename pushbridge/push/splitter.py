"""
Batch splitting for gateways that accept several recipients per request.
"""

import math
from typing import Iterator, List, Sequence


class EndpointBatches:
    """
    Lazy, restartable view of an endpoint list as fixed-size batches.

    Each iteration yields contiguous, non-overlapping slices of at most
    batch_size endpoints, preserving order. The final slice may be shorter.

    Usage:
        for batch in EndpointBatches(tokens, 1000):
            ...
    """

    def __init__(self, endpoints: Sequence[str], batch_size: int):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self._endpoints = list(endpoints)
        self.batch_size = batch_size

    def __iter__(self) -> Iterator[List[str]]:
        for start in range(0, len(self._endpoints), self.batch_size):
            yield self._endpoints[start:start + self.batch_size]

    def __len__(self) -> int:
        return math.ceil(len(self._endpoints) / self.batch_size)

    def __repr__(self) -> str:
        return f"EndpointBatches(endpoints={len(self._endpoints)}, batch_size={self.batch_size})"


def chunk_endpoints(endpoints: Sequence[str], batch_size: int) -> EndpointBatches:
    """Split endpoints into batches of at most batch_size."""
    return EndpointBatches(endpoints, batch_size)
