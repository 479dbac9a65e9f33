"""Differ: split desired vs stored design documents into three buckets.

Equivalence is defined over ``views`` only.  Revisions always differ
between a desired and a stored copy, and ``filters`` / ``language`` are
not compared, so a filter-only edit is not reported as a change.
"""

from __future__ import annotations

from collections.abc import Iterable

from couchify.models import DESIGN_PREFIX, DesignDiff, DesignDocument, DesignDocumentView


def design_id(name: str) -> str:
    """Return the document id for design document *name*."""
    return name if name.startswith(DESIGN_PREFIX) else DESIGN_PREFIX + name


def design_name(doc_id: str) -> str:
    """Return *doc_id* without its ``_design/`` prefix."""
    return doc_id.removeprefix(DESIGN_PREFIX)


def is_internal(doc_id: str) -> bool:
    """``True`` when *doc_id* names a server-owned design document."""
    return design_name(doc_id).startswith("_")


def views_equal(
    a: dict[str, DesignDocumentView],
    b: dict[str, DesignDocumentView],
) -> bool:
    """Structural equality of two view maps.

    Function bodies are compared byte for byte; a view with a reduce
    function never equals the same view without one.
    """
    return a == b


def diff(
    desired: Iterable[DesignDocument],
    observed: Iterable[DesignDocument],
) -> DesignDiff:
    """Compute additions, changes and deletions.

    * A desired document with no stored counterpart is an addition.
    * A desired document whose stored counterpart has different views is
      a change.  The desired copy (without revision) is reported.
    * A stored document with no desired counterpart is a deletion, unless
      it is internal (``_design/_auth``), in which case it is left out of
      every bucket.

    Neither input is mutated.  Bucket order follows input order.
    """
    desired = list(desired)
    observed = list(observed)
    stored = {doc.id: doc for doc in observed}
    wanted = {doc.id for doc in desired}

    result = DesignDiff()
    for doc in desired:
        current = stored.get(doc.id)
        if current is None:
            result.additions.append(doc)
        elif not views_equal(current.views, doc.views):
            result.changes.append(doc)

    for doc in observed:
        if doc.id not in wanted and not doc.is_internal:
            result.deletions.append(doc)

    return result
