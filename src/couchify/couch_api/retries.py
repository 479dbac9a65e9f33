"""Retry policy for CouchDB requests.

CouchDB answers ``503`` while a node is starting or a cluster is
rebalancing, and ``429`` when a request quota is configured.  Those and
the gateway-style ``5xx`` codes are transient.  Every other ``4xx``
describes the request itself and is final: a ``409`` means the revision
was already stale when the server checked it, so resending the same body
cannot succeed.
"""

from __future__ import annotations

import random

import httpx

RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Failures before a complete response arrived.  ``RemoteProtocolError``
# is raised when the server drops a keep-alive connection mid-request.
RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUSES


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Decide whether attempt number *attempt* (0-indexed) gets a successor.

    Exactly one of *status_code* and *exception* describes the outcome of
    the attempt; with neither there is nothing to retry.
    """
    if attempt + 1 >= max_attempts:
        return False
    if exception is not None:
        return isinstance(exception, RETRYABLE_EXCEPTIONS)
    return status_code is not None and is_retryable_status(status_code)


def compute_backoff(
    attempt: int,
    base: float = 0.5,
    maximum: float = 30.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Seconds to wait before the attempt after *attempt*.

    A ``Retry-After`` value is used as sent.  Otherwise the wait doubles
    from *base* with every attempt, up to *maximum*.  With *jitter* the
    wait is drawn uniformly from the upper half of that value so that
    several processes seeding the same server spread out.
    """
    delay = retry_after if retry_after is not None else min(base * 2 ** attempt, maximum)
    if jitter:
        delay = random.uniform(delay / 2, delay)
    return delay
