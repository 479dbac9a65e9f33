"""Metrics hook for couchify.

Pass any object with ``increment`` and ``timing`` methods as
``CouchifyConfig(metrics=...)`` to forward data points to StatsD,
Prometheus or similar.  Without one, :class:`NoopMetricsHook` is used.

Emitted metrics and their tags:

* ``couchify.requests_total`` (counter): ``method``, ``status``
* ``couchify.request_duration_ms`` (timing): ``method``, ``status``
* ``couchify.retries_total`` (counter): ``method``, ``reason``
* ``couchify.seed_ops_total`` (counter): ``op_type``
* ``couchify.seed_duration_ms`` (timing): ``database``

``status`` is the HTTP status code, or ``"error"`` when no response
arrived.  ``op_type`` is one of ``additions``, ``changes`` or
``deletions`` and the counter is incremented by the size of that bucket.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Structural type of a metrics backend."""

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        ...


class NoopMetricsHook:
    """Discards every data point."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        return None

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        return None
