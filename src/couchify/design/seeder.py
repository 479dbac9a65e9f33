"""Seeder: bring a database's design documents in line with the desired set.

Takes the plan produced by :func:`~couchify.design.differ.diff` and applies
it through :class:`DatabaseAPI` (sync) or :class:`AsyncDatabaseAPI`
(async) in three strictly ordered phases:

1. **Deletions**, using the revision read for the diff.
2. **Changes**, each preceded by a fresh read of the stored document so
   the write carries its current revision.
3. **Additions**, written without a revision.

The first error aborts the run and propagates unchanged.  Nothing is
rolled back: the database keeps whatever prefix of the plan completed, and
re-running the seed converges it.
"""

from __future__ import annotations

import json
import sys
import time
from collections.abc import Iterable
from typing import Any

from couchify.config import CouchifyConfig
from couchify.errors import CouchifyValidationError
from couchify.models import DESIGN_PREFIX, DesignDiff, DesignDocument, SeedResult
from couchify.observability import NoopMetricsHook, get_logger

from .differ import diff

log = get_logger("couchify.seed")


def _validate_desired(database: str, desired: Iterable[DesignDocument]) -> list[DesignDocument]:
    """Reject desired sets the differ cannot reason about."""
    docs = list(desired)
    seen: set[str] = set()
    for doc in docs:
        if not doc.id.startswith(DESIGN_PREFIX) or doc.id == DESIGN_PREFIX:
            raise CouchifyValidationError(
                message=f"Design document id must start with {DESIGN_PREFIX!r}: {doc.id!r}",
                context={"database": database, "id": doc.id},
            )
        if doc.id in seen:
            raise CouchifyValidationError(
                message=f"Duplicate design document id {doc.id!r}",
                context={"database": database, "id": doc.id},
            )
        seen.add(doc.id)
    return docs


def _emit_plan(config: CouchifyConfig, metrics: Any, database: str, plan: DesignDiff) -> None:
    summary = plan.summary()
    for op_type, ids in summary.items():
        if ids:
            metrics.increment(
                "couchify.seed_ops_total", len(ids), tags={"op_type": op_type},
            )
    log.debug(
        "seed plan computed",
        extra={"extra_fields": {"op": "seed", "database": database, **summary}},
    )
    if config.debug_dump_diff:
        print(
            json.dumps({"database": database, **summary}, indent=2),
            file=sys.stderr,
        )


def _log_done(metrics: Any, database: str, result: SeedResult, started: float) -> None:
    elapsed_ms = (time.monotonic() - started) * 1000
    metrics.timing("couchify.seed_duration_ms", elapsed_ms, tags={"database": database})
    log.info(
        "seed complete",
        extra={
            "extra_fields": {
                "op": "seed",
                "database": database,
                "deleted": len(result.deleted),
                "updated": len(result.updated),
                "added": len(result.added),
                "duration_ms": round(elapsed_ms, 1),
            }
        },
    )


class Seeder:
    """Synchronous design-document reconciler.

    Parameters
    ----------
    database_api:
        A :class:`DatabaseAPI` bound to the target database.
    config:
        SDK configuration.
    """

    def __init__(self, database_api: Any, config: CouchifyConfig) -> None:
        self._api = database_api
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    def plan(self, desired: Iterable[DesignDocument]) -> DesignDiff:
        """Fetch the stored design documents and diff them against *desired*.

        Nothing is written.
        """
        docs = _validate_desired(self._api.name, desired)
        observed = self._api.all_design_documents()
        return diff(docs, observed)

    def seed(self, desired: Iterable[DesignDocument]) -> SeedResult:
        """Reconcile the database with *desired*.

        Returns
        -------
        SeedResult
            Ids written per phase and their new revisions.  Empty when the
            database already matched.

        Raises
        ------
        CouchifyError
            The first error raised by the database API, unchanged.
        """
        started = time.monotonic()
        plan = self.plan(desired)
        _emit_plan(self._config, self._metrics, self._api.name, plan)

        result = SeedResult()
        for doc in plan.deletions:
            self._api.delete(doc.id, doc.rev)
            result.deleted.append(doc.id)

        for doc in plan.changes:
            current = self._api.get_design_document(doc.id)
            response = self._api.put_design_document(doc.with_rev(current.rev))
            result.updated.append(doc.id)
            result.revisions[doc.id] = response.rev

        for doc in plan.additions:
            response = self._api.put_design_document(doc.with_rev(""))
            result.added.append(doc.id)
            result.revisions[doc.id] = response.rev

        _log_done(self._metrics, self._api.name, result, started)
        return result


class AsyncSeeder:
    """Asynchronous design-document reconciler.

    Mirrors :class:`Seeder`; documents are still processed one at a time.
    """

    def __init__(self, database_api: Any, config: CouchifyConfig) -> None:
        self._api = database_api
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    async def plan(self, desired: Iterable[DesignDocument]) -> DesignDiff:
        docs = _validate_desired(self._api.name, desired)
        observed = await self._api.all_design_documents()
        return diff(docs, observed)

    async def seed(self, desired: Iterable[DesignDocument]) -> SeedResult:
        started = time.monotonic()
        plan = await self.plan(desired)
        _emit_plan(self._config, self._metrics, self._api.name, plan)

        result = SeedResult()
        for doc in plan.deletions:
            await self._api.delete(doc.id, doc.rev)
            result.deleted.append(doc.id)

        for doc in plan.changes:
            current = await self._api.get_design_document(doc.id)
            response = await self._api.put_design_document(doc.with_rev(current.rev))
            result.updated.append(doc.id)
            result.revisions[doc.id] = response.rev

        for doc in plan.additions:
            response = await self._api.put_design_document(doc.with_rev(""))
            result.added.append(doc.id)
            result.revisions[doc.id] = response.rev

        _log_done(self._metrics, self._api.name, result, started)
        return result
