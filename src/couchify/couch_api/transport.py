"""Sync and async HTTP transports for the CouchDB API.

Each transport handles the full request lifecycle:

1. Send the HTTP request with JSON headers.
2. On ``2xx`` -- return the parsed JSON response (``{}`` when empty,
   the headers for ``HEAD``).
3. On ``429`` / ``5xx`` / network error -- exponential backoff and retry.
4. On non-retryable ``4xx`` -- raise the typed error for the status,
   carrying CouchDB's ``error`` / ``reason`` pair.
5. On max attempts exceeded -- raise :class:`CouchifyRetryExhaustedError`.
"""

from __future__ import annotations

import json as _json
import sys
import time
from typing import Any

import httpx

from couchify.config import CouchifyConfig
from couchify.errors import (
    CouchifyAuthError,
    CouchifyConflictError,
    CouchifyHTTPError,
    CouchifyNetworkError,
    CouchifyNotFoundError,
    CouchifyPermissionError,
    CouchifyPreconditionFailedError,
    CouchifyRetryExhaustedError,
    CouchifyValidationError,
)
from couchify.observability import NoopMetricsHook, get_logger
from couchify.utils.redact import redact, redact_url

from .retries import RETRYABLE_EXCEPTIONS, compute_backoff, is_retryable_status, should_retry

log = get_logger("couchify.transport")

_DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

_STATUS_ERRORS: dict[int, type[CouchifyHTTPError]] = {
    cls.status: cls
    for cls in (
        CouchifyValidationError,
        CouchifyAuthError,
        CouchifyPermissionError,
        CouchifyNotFoundError,
        CouchifyConflictError,
        CouchifyPreconditionFailedError,
    )
}

_STATUS_LABELS: dict[int, str] = {
    400: "Bad request",
    401: "Authentication failed",
    403: "Permission denied",
    404: "Not found",
    409: "Document update conflict",
    412: "Precondition failed",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`CouchifyError` subclass matching a 4xx response."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    error = body.get("error", "")
    reason = body.get("reason", response.text[:500])
    context = {
        "method": method,
        "path": path,
        "status_code": status,
        "error": error,
        "reason": reason,
    }

    error_cls = _STATUS_ERRORS.get(status, CouchifyValidationError)
    label = _STATUS_LABELS.get(status, f"Client error {status}")
    raise error_cls(
        message=f"{label} on {method} {path}: {error or status} ({reason})",
        context=context,
    )


def _decode(response: httpx.Response, method: str = "GET") -> Any:
    # HEAD carries no body; its answer is the headers (ETag holds the rev).
    if method == "HEAD":
        return dict(response.headers)
    if response.status_code == 204 or not response.content:
        return {}
    return response.json()


def _dump_payload(
    method: str,
    url: str,
    payload: Any | None,
    response_status: int | None,
    response_body: Any | None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    dump: dict[str, Any] = {
        "method": method,
        "url": redact_url(url),
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump), indent=2, default=str),
        file=sys.stderr,
    )


def _emit_debug_dump(
    config: CouchifyConfig,
    method: str,
    response: httpx.Response,
    json_payload: Any,
) -> None:
    if not config.debug_dump_payload:
        return
    try:
        resp_body = response.json()
    except ValueError:
        resp_body = response.text[:1000]
    _dump_payload(
        method, str(response.url), json_payload,
        response.status_code, resp_body,
    )


def _handle_network_exception(
    config: CouchifyConfig,
    metrics: Any,
    method: str,
    path: str,
    exc: Exception,
    attempt: int,
) -> float:
    """Return the backoff delay for a retryable network error.

    Raises :class:`CouchifyNetworkError` once retries are exhausted.
    """
    metrics.increment(
        "couchify.requests_total",
        tags={"method": method, "status": "error"},
    )
    log.warning(
        "Request network error",
        extra={
            "extra_fields": {
                "op": "request",
                "method": method,
                "path": path,
                "attempt": attempt + 1,
                "error": redact_url(str(exc)),
            }
        },
    )
    if should_retry(None, exc, attempt, config.retry_max_attempts):
        metrics.increment(
            "couchify.retries_total",
            tags={"method": method, "reason": "network_error"},
        )
        return compute_backoff(
            attempt,
            base=config.retry_base_delay,
            maximum=config.retry_max_delay,
            jitter=config.retry_jitter,
        )
    raise CouchifyNetworkError(
        message=f"Network error on {method} {path}: {exc}",
        context={"path": path, "attempt": attempt + 1},
        cause=exc,
    ) from exc


def _retry_delay(
    config: CouchifyConfig,
    metrics: Any,
    response: httpx.Response,
    method: str,
    path: str,
    attempt: int,
) -> float:
    """Log a retryable response and compute the wait before resending."""
    retry_after = _parse_retry_after(response) if response.status_code == 429 else None
    reason = "rate_limited" if response.status_code == 429 else "server_error"
    log.warning(
        "Retryable response from CouchDB",
        extra={
            "extra_fields": {
                "op": "request",
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "retry_after": retry_after,
                "attempt": attempt + 1,
            }
        },
    )
    metrics.increment(
        "couchify.retries_total",
        tags={"method": method, "reason": reason},
    )
    return compute_backoff(
        attempt,
        base=config.retry_base_delay,
        maximum=config.retry_max_delay,
        jitter=config.retry_jitter,
        retry_after=retry_after,
    )


def _exhausted(
    method: str,
    path: str,
    max_attempts: int,
    last_status: int | None,
    last_exception: Exception | None,
) -> CouchifyRetryExhaustedError:
    ctx: dict[str, Any] = {
        "attempts": max_attempts,
        "last_status_code": last_status,
    }
    if last_exception is not None:
        return CouchifyRetryExhaustedError(
            message=(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last error: {last_exception})"
            ),
            context=ctx,
            cause=last_exception,
        )
    return CouchifyRetryExhaustedError(
        message=(
            f"All {max_attempts} attempts exhausted for {method} {path} "
            f"(last status: {last_status})"
        ),
        context=ctx,
    )


def _client_kwargs(config: CouchifyConfig) -> dict[str, Any]:
    return {
        "base_url": config.base_url,
        "headers": dict(_DEFAULT_HEADERS),
        "timeout": httpx.Timeout(config.timeout_seconds),
        "proxy": config.http_proxy,
    }


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class CouchTransport:
    """Synchronous HTTP transport with retries and typed errors.

    Parameters
    ----------
    config:
        A :class:`CouchifyConfig` instance controlling all transport
        behaviour.
    """

    def __init__(self, config: CouchifyConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = httpx.Client(**_client_kwargs(config))

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Execute an HTTP request against CouchDB.

        Parameters
        ----------
        method:
            HTTP method (``GET``, ``PUT``, ``POST``, ``DELETE``, ``HEAD``).
        path:
            Path relative to ``base_url`` (e.g. ``/players/_all_docs``).
        **kwargs:
            Forwarded to :meth:`httpx.Client.request` (``json=``,
            ``params=``, ``headers=``).

        Returns
        -------
        dict | list
            Parsed JSON response body, ``{}`` for empty responses.  For
            ``HEAD`` the response headers, keyed by lower-case name.

        Raises
        ------
        CouchifyNotFoundError
            On 404 responses.
        CouchifyConflictError
            On 409 responses (stale or missing revision).
        CouchifyPreconditionFailedError
            On 412 responses.
        CouchifyAuthError, CouchifyPermissionError
            On 401 / 403 responses.
        CouchifyValidationError
            On 400 and other non-retryable 4xx responses.
        CouchifyRetryExhaustedError
            When all retry attempts have been exhausted.
        CouchifyNetworkError
            On transport-level failures after exhausting retries.
        """
        max_attempts = self._config.retry_max_attempts
        last_exception: Exception | None = None
        last_status: int | None = None
        json_payload = kwargs.get("json")

        for attempt in range(max_attempts):
            t0 = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except RETRYABLE_EXCEPTIONS as exc:
                last_exception = exc
                last_status = None
                delay = _handle_network_exception(
                    self._config, self._metrics, method, path, exc, attempt,
                )
                time.sleep(delay)
                continue
            elapsed_ms = (time.monotonic() - t0) * 1000

            last_status = response.status_code
            last_exception = None
            tags = {"method": method, "status": str(response.status_code)}
            self._metrics.increment("couchify.requests_total", tags=tags)
            self._metrics.timing("couchify.request_duration_ms", elapsed_ms, tags=tags)

            _emit_debug_dump(self._config, method, response, json_payload)

            if 200 <= response.status_code < 300:
                return _decode(response, method)

            if not is_retryable_status(response.status_code):
                _raise_for_status(response, method, path)

            if not should_retry(response.status_code, None, attempt, max_attempts):
                break

            time.sleep(_retry_delay(self._config, self._metrics, response, method, path, attempt))

        raise _exhausted(method, path, max_attempts, last_status, last_exception)

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> CouchTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncCouchTransport:
    """Asynchronous HTTP transport with retries and typed errors.

    Mirrors :class:`CouchTransport` on top of ``httpx.AsyncClient``.
    """

    def __init__(self, config: CouchifyConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = httpx.AsyncClient(**_client_kwargs(config))

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Execute an HTTP request against CouchDB (async).

        See :meth:`CouchTransport.request`; only the blocking calls differ.
        """
        import asyncio

        max_attempts = self._config.retry_max_attempts
        last_exception: Exception | None = None
        last_status: int | None = None
        json_payload = kwargs.get("json")

        for attempt in range(max_attempts):
            t0 = time.monotonic()
            try:
                response = await self._client.request(method, path, **kwargs)
            except RETRYABLE_EXCEPTIONS as exc:
                last_exception = exc
                last_status = None
                delay = _handle_network_exception(
                    self._config, self._metrics, method, path, exc, attempt,
                )
                await asyncio.sleep(delay)
                continue
            elapsed_ms = (time.monotonic() - t0) * 1000

            last_status = response.status_code
            last_exception = None
            tags = {"method": method, "status": str(response.status_code)}
            self._metrics.increment("couchify.requests_total", tags=tags)
            self._metrics.timing("couchify.request_duration_ms", elapsed_ms, tags=tags)

            _emit_debug_dump(self._config, method, response, json_payload)

            if 200 <= response.status_code < 300:
                return _decode(response, method)

            if not is_retryable_status(response.status_code):
                _raise_for_status(response, method, path)

            if not should_retry(response.status_code, None, attempt, max_attempts):
                break

            await asyncio.sleep(
                _retry_delay(self._config, self._metrics, response, method, path, attempt)
            )

        raise _exhausted(method, path, max_attempts, last_status, last_exception)

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncCouchTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
