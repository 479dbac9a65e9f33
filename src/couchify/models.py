"""Public data models for the couchify SDK.

This module contains the design-document types the reconciliation engine
operates on, the diff and seed result types, and the response types
returned by the CouchDB binding.  All types are plain dataclasses with no
behaviour beyond (de)serialisation and structural equality.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any

DESIGN_PREFIX = "_design/"
"""Id prefix shared by every design document."""

DEFAULT_LANGUAGE = "javascript"


# ---------------------------------------------------------------------------
# Design documents
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DesignDocumentView:
    """A map function plus an optional reduce function.

    Attributes
    ----------
    map:
        Source of the map function.
    reduce:
        Source of the reduce function (or a built-in such as ``"_count"``),
        ``None`` when the view has no reduce step.  An empty string is
        normalised to ``None``: CouchDB treats both the same, and neither
        is sent on the wire.
    """

    map: str
    reduce: str | None = None

    def __post_init__(self) -> None:
        if not self.reduce:
            object.__setattr__(self, "reduce", None)

    def to_dict(self) -> dict[str, str]:
        body = {"map": self.map}
        if self.reduce is not None:
            body["reduce"] = self.reduce
        return body

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> DesignDocumentView:
        return cls(map=body.get("map", ""), reduce=body.get("reduce"))


@dataclass
class DesignDocument:
    """A CouchDB design document: named views and filters.

    A desired document is built by the application (usually through
    :meth:`create`) and has an empty ``rev``.  An observed document is
    parsed from the server with :meth:`from_dict` and carries the
    revision the server assigned on its last write.

    Attributes
    ----------
    id:
        Always ``"_design/" + name``.
    rev:
        Opaque revision token.  Empty for documents not yet persisted.
    language:
        Language of the function bodies.  Informational only.
    views:
        View name to :class:`DesignDocumentView`.
    filters:
        Filter name to function source.
    """

    id: str
    rev: str = ""
    language: str = DEFAULT_LANGUAGE
    views: dict[str, DesignDocumentView] = field(default_factory=dict)
    filters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        name: str,
        views: dict[str, DesignDocumentView | dict[str, Any]] | None = None,
        filters: dict[str, str] | None = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> DesignDocument:
        """Build a revision-less design document from its logical name.

        *name* may also be the full ``_design/...`` id; the prefix is not
        doubled.

        *views* values may be :class:`DesignDocumentView` instances or
        plain ``{"map": ..., "reduce": ...}`` dicts.
        """
        parsed = {
            view_name: view if isinstance(view, DesignDocumentView) else DesignDocumentView.from_dict(view)
            for view_name, view in (views or {}).items()
        }
        doc_id = name if name.startswith(DESIGN_PREFIX) else DESIGN_PREFIX + name
        return cls(
            id=doc_id,
            language=language,
            views=parsed,
            filters=dict(filters or {}),
        )

    @property
    def name(self) -> str:
        """The document id without the ``_design/`` prefix."""
        return self.id.removeprefix(DESIGN_PREFIX)

    @property
    def is_internal(self) -> bool:
        """``True`` for server-owned documents such as ``_design/_auth``."""
        return self.name.startswith("_")

    def with_rev(self, rev: str) -> DesignDocument:
        """Return a copy of this document carrying *rev*."""
        return dataclasses.replace(
            self,
            rev=rev,
            views=dict(self.views),
            filters=dict(self.filters),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the CouchDB JSON body."""
        body: dict[str, Any] = {"_id": self.id}
        if self.rev:
            body["_rev"] = self.rev
        if self.language:
            body["language"] = self.language
        if self.views:
            body["views"] = {name: view.to_dict() for name, view in self.views.items()}
        if self.filters:
            body["filters"] = dict(self.filters)
        return body

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> DesignDocument:
        """Parse a CouchDB design document body.  Unknown keys are ignored."""
        return cls(
            id=body.get("_id", ""),
            rev=body.get("_rev", ""),
            language=body.get("language", DEFAULT_LANGUAGE),
            views={
                name: DesignDocumentView.from_dict(view)
                for name, view in (body.get("views") or {}).items()
            },
            filters=dict(body.get("filters") or {}),
        )


# ---------------------------------------------------------------------------
# Reconciliation results
# ---------------------------------------------------------------------------

@dataclass
class DesignDiff:
    """Three-way split between desired and observed design documents.

    Every list follows the iteration order of the input it was built from.
    No id appears in more than one list.
    """

    additions: list[DesignDocument] = field(default_factory=list)
    changes: list[DesignDocument] = field(default_factory=list)
    deletions: list[DesignDocument] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.additions or self.changes or self.deletions)

    def __len__(self) -> int:
        return len(self.additions) + len(self.changes) + len(self.deletions)

    def summary(self) -> dict[str, list[str]]:
        """Ids per bucket, for logging and debug dumps."""
        return {
            "additions": [doc.id for doc in self.additions],
            "changes": [doc.id for doc in self.changes],
            "deletions": [doc.id for doc in self.deletions],
        }


@dataclass
class SeedResult:
    """Summary of a completed seed run.

    Attributes
    ----------
    deleted:
        Ids removed in the deletion phase.
    updated:
        Ids rewritten in the change phase.
    added:
        Ids created in the addition phase.
    revisions:
        New revision per written id, as reported by the server.
    """

    deleted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    revisions: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.deleted or self.updated or self.added)


# ---------------------------------------------------------------------------
# Binding responses
# ---------------------------------------------------------------------------

@dataclass
class ServerInfo:
    """Welcome document served at the server root."""

    couchdb: str = ""
    version: str = ""
    uuid: str = ""
    vendor: dict[str, Any] = field(default_factory=dict)
    features: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> ServerInfo:
        return cls(
            couchdb=body.get("couchdb", ""),
            version=body.get("version", ""),
            uuid=body.get("uuid", ""),
            vendor=dict(body.get("vendor") or {}),
            features=list(body.get("features") or []),
        )


@dataclass
class DatabaseInfo:
    """Metadata returned by ``GET /{db}``."""

    db_name: str
    doc_count: int = 0
    doc_del_count: int = 0
    update_seq: Any = None
    purge_seq: Any = None
    compact_running: bool = False
    disk_size: int = 0
    data_size: int = 0
    instance_start_time: str = ""

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> DatabaseInfo:
        sizes = body.get("sizes") or {}
        return cls(
            db_name=body.get("db_name", ""),
            doc_count=body.get("doc_count", 0),
            doc_del_count=body.get("doc_del_count", 0),
            update_seq=body.get("update_seq"),
            purge_seq=body.get("purge_seq"),
            compact_running=body.get("compact_running", False),
            disk_size=sizes.get("file", body.get("disk_size", 0)),
            data_size=sizes.get("active", body.get("data_size", 0)),
            instance_start_time=str(body.get("instance_start_time", "")),
        )


@dataclass
class DocumentResponse:
    """Outcome of a single document write.

    ``_bulk_docs`` reports per-document failures inline, in which case
    ``ok`` is ``False`` and ``error`` / ``reason`` are set.
    """

    id: str
    rev: str = ""
    ok: bool = True
    error: str | None = None
    reason: str | None = None

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> DocumentResponse:
        error = body.get("error")
        return cls(
            id=body.get("id", ""),
            rev=body.get("rev", ""),
            ok=body.get("ok", error is None),
            error=error,
            reason=body.get("reason"),
        )


@dataclass
class SecurityMembers:
    """User names and roles of one ``_security`` section."""

    names: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {"names": list(self.names), "roles": list(self.roles)}

    @classmethod
    def from_dict(cls, body: dict[str, Any] | None) -> SecurityMembers:
        body = body or {}
        return cls(names=list(body.get("names") or []), roles=list(body.get("roles") or []))


@dataclass
class SecurityDocument:
    """The ``_security`` object of a database.

    A database whose ``members`` section is empty is readable by anyone.
    """

    admins: SecurityMembers = field(default_factory=SecurityMembers)
    members: SecurityMembers = field(default_factory=SecurityMembers)

    def to_dict(self) -> dict[str, Any]:
        return {"admins": self.admins.to_dict(), "members": self.members.to_dict()}

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> SecurityDocument:
        return cls(
            admins=SecurityMembers.from_dict(body.get("admins")),
            members=SecurityMembers.from_dict(body.get("members")),
        )


@dataclass
class PurgeResult:
    """Response of ``POST /{db}/_purge``.

    ``purged`` maps each document id to the revisions actually removed.
    ``purge_seq`` is an integer on CouchDB 1.x and ``None`` on clustered
    servers.
    """

    purge_seq: Any = None
    purged: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> PurgeResult:
        return cls(
            purge_seq=body.get("purge_seq"),
            purged={doc_id: list(revs) for doc_id, revs in (body.get("purged") or {}).items()},
        )


@dataclass
class ActiveTask:
    """One entry of ``GET /_active_tasks``.

    Only the fields common to every task type are lifted; the full entry
    stays available in ``details``.
    """

    type: str = ""
    database: str = ""
    pid: str = ""
    progress: int | None = None
    changes_done: int | None = None
    total_changes: int | None = None
    started_on: int = 0
    updated_on: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> ActiveTask:
        return cls(
            type=body.get("type", ""),
            database=body.get("database", ""),
            pid=body.get("pid", ""),
            progress=body.get("progress"),
            changes_done=body.get("changes_done"),
            total_changes=body.get("total_changes"),
            started_on=body.get("started_on", 0),
            updated_on=body.get("updated_on", 0),
            details=dict(body),
        )


@dataclass
class ViewRow:
    """One row of a view or ``_all_docs`` response."""

    id: str | None = None
    key: Any = None
    value: Any = None
    doc: dict[str, Any] | None = None


@dataclass
class ViewResult:
    """Response of a view or ``_all_docs`` query."""

    rows: list[ViewRow] = field(default_factory=list)
    total_rows: int | None = None
    offset: int | None = None
    update_seq: Any = None

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> ViewResult:
        return cls(
            rows=[
                ViewRow(
                    id=row.get("id"),
                    key=row.get("key"),
                    value=row.get("value"),
                    doc=row.get("doc"),
                )
                for row in body.get("rows", [])
            ],
            total_rows=body.get("total_rows"),
            offset=body.get("offset"),
            update_seq=body.get("update_seq"),
        )

    def docs(self) -> list[dict[str, Any]]:
        """Included documents, skipping rows without one."""
        return [row.doc for row in self.rows if row.doc is not None]
