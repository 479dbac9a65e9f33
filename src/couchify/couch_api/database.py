"""Database-level API wrappers: documents, bulk writes, purge, security and views.

Provides :class:`DatabaseAPI` (sync) and :class:`AsyncDatabaseAPI`
(async), each bound to one database.  The design-document helpers
(:meth:`DatabaseAPI.all_design_documents`,
:meth:`DatabaseAPI.get_design_document`,
:meth:`DatabaseAPI.put_design_document` and :meth:`DatabaseAPI.delete`)
are the operations the seeder consumes.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from couchify.errors import CouchifyValidationError
from couchify.models import (
    DESIGN_PREFIX,
    DesignDocument,
    DocumentResponse,
    PurgeResult,
    SecurityDocument,
    ViewResult,
)

from .query import encode_query
from .server import db_path
from .transport import AsyncCouchTransport, CouchTransport

# ``_all_docs`` key range covering every design document: ``0`` is the
# character after ``/``.
DESIGN_RANGE: dict[str, Any] = {
    "startkey": DESIGN_PREFIX,
    "endkey": "_design0",
    "include_docs": True,
}


def doc_path(database: str, doc_id: str) -> str:
    """Return the escaped path of *doc_id* inside *database*.

    Design document ids keep their ``_design/`` slash literal; everything
    else is percent-encoded.
    """
    if not doc_id:
        raise CouchifyValidationError(
            message="Document id must not be empty",
            context={"database": database},
        )
    if doc_id.startswith(DESIGN_PREFIX):
        escaped = "_design/" + quote(doc_id[len(DESIGN_PREFIX):], safe="")
    else:
        escaped = quote(doc_id, safe="")
    return f"{db_path(database)}/{escaped}"


def view_path(database: str, design: str, view: str) -> str:
    design_name = design.removeprefix(DESIGN_PREFIX)
    return (
        f"{db_path(database)}/_design/{quote(design_name, safe='')}"
        f"/_view/{quote(view, safe='')}"
    )


def _etag_rev(headers: dict[str, str]) -> str:
    return headers.get("etag", "").strip('"')


def _bulk_body(docs: list[dict[str, Any]], all_or_nothing: bool) -> dict[str, Any]:
    body: dict[str, Any] = {"docs": docs}
    if all_or_nothing:
        body["all_or_nothing"] = True
    return body


class DatabaseAPI:
    """Synchronous wrapper for one CouchDB database.

    Parameters
    ----------
    transport:
        A configured :class:`CouchTransport` instance.
    name:
        Database name.
    """

    def __init__(self, transport: CouchTransport, name: str) -> None:
        self._transport = transport
        self.name = name

    # -- generic documents ------------------------------------------------

    def head(self, doc_id: str) -> str:
        """Return the current revision of *doc_id* without fetching its body.

        Raises :class:`CouchifyNotFoundError` when the document does not
        exist or is deleted.
        """
        headers = self._transport.request("HEAD", doc_path(self.name, doc_id))
        return _etag_rev(headers)

    def get(self, doc_id: str, **options: Any) -> dict[str, Any]:
        """Fetch document *doc_id* as a JSON dict."""
        params = encode_query(options) if options else None
        return self._transport.request("GET", doc_path(self.name, doc_id), params=params)

    def post(self, doc: dict[str, Any]) -> DocumentResponse:
        """Create *doc*, letting the server assign an id when it has none."""
        body = self._transport.request("POST", db_path(self.name), json=doc)
        return DocumentResponse.from_dict(body)

    def put(self, doc: dict[str, Any]) -> DocumentResponse:
        """Create or update *doc*, which must carry an ``_id``.

        Updates must carry the current ``_rev``; a stale or missing one
        raises :class:`CouchifyConflictError`.
        """
        doc_id = doc.get("_id", "")
        body = self._transport.request("PUT", doc_path(self.name, doc_id), json=doc)
        return DocumentResponse.from_dict(body)

    def delete(self, doc_id: str, rev: str) -> DocumentResponse:
        """Delete revision *rev* of document *doc_id*."""
        body = self._transport.request(
            "DELETE", doc_path(self.name, doc_id), params={"rev": rev},
        )
        return DocumentResponse.from_dict(body)

    def bulk(
        self,
        docs: list[dict[str, Any]],
        all_or_nothing: bool = False,
    ) -> list[DocumentResponse]:
        """Write *docs* in one ``_bulk_docs`` request.

        Per-document failures (e.g. conflicts) are reported inline in the
        returned list rather than raised.
        """
        rows = self._transport.request(
            "POST",
            f"{db_path(self.name)}/_bulk_docs",
            json=_bulk_body(docs, all_or_nothing),
        )
        return [DocumentResponse.from_dict(row) for row in rows]

    def purge(self, revisions: dict[str, list[str]]) -> PurgeResult:
        """Permanently remove *revisions* (id to revision list) from the database.

        Unlike :meth:`delete` no tombstone is left and the removal does
        not replicate.
        """
        body = self._transport.request(
            "POST", f"{db_path(self.name)}/_purge", json=revisions,
        )
        return PurgeResult.from_dict(body)

    # -- security ---------------------------------------------------------

    def get_security(self) -> SecurityDocument:
        """Return the database's ``_security`` object."""
        return SecurityDocument.from_dict(
            self._transport.request("GET", f"{db_path(self.name)}/_security"),
        )

    def put_security(self, security: SecurityDocument) -> bool:
        """Replace the database's ``_security`` object.  Needs admin rights."""
        body = self._transport.request(
            "PUT", f"{db_path(self.name)}/_security", json=security.to_dict(),
        )
        return bool(body.get("ok", False))

    # -- queries ----------------------------------------------------------

    def all_docs(self, **options: Any) -> ViewResult:
        """Query ``_all_docs`` with view *options* (``startkey``, ``limit`` ...)."""
        body = self._transport.request(
            "GET", f"{db_path(self.name)}/_all_docs", params=encode_query(options),
        )
        return ViewResult.from_dict(body)

    def view(
        self,
        design: str,
        view: str,
        keys: list[Any] | None = None,
        **options: Any,
    ) -> ViewResult:
        """Query view *view* of design document *design*.

        With *keys* the request becomes a ``POST`` carrying
        ``{"keys": [...]}``, which CouchDB requires for explicit key sets.
        """
        path = view_path(self.name, design, view)
        params = encode_query(options)
        if keys is not None:
            body = self._transport.request("POST", path, params=params, json={"keys": keys})
        else:
            body = self._transport.request("GET", path, params=params)
        return ViewResult.from_dict(body)

    # -- design documents -------------------------------------------------

    def all_design_documents(self) -> list[DesignDocument]:
        """Fetch every design document, revisions included."""
        result = self.all_docs(**DESIGN_RANGE)
        return [DesignDocument.from_dict(doc) for doc in result.docs()]

    def get_design_document(self, doc_id: str) -> DesignDocument:
        """Fetch one design document with its current revision."""
        return DesignDocument.from_dict(self.get(doc_id))

    def put_design_document(self, doc: DesignDocument) -> DocumentResponse:
        """Write *doc*; it must be revision-less when new."""
        return self.put(doc.to_dict())


class AsyncDatabaseAPI:
    """Asynchronous wrapper for one CouchDB database.

    Mirrors :class:`DatabaseAPI` but all methods are coroutines.
    """

    def __init__(self, transport: AsyncCouchTransport, name: str) -> None:
        self._transport = transport
        self.name = name

    async def head(self, doc_id: str) -> str:
        headers = await self._transport.request("HEAD", doc_path(self.name, doc_id))
        return _etag_rev(headers)

    async def get(self, doc_id: str, **options: Any) -> dict[str, Any]:
        params = encode_query(options) if options else None
        return await self._transport.request("GET", doc_path(self.name, doc_id), params=params)

    async def post(self, doc: dict[str, Any]) -> DocumentResponse:
        body = await self._transport.request("POST", db_path(self.name), json=doc)
        return DocumentResponse.from_dict(body)

    async def put(self, doc: dict[str, Any]) -> DocumentResponse:
        doc_id = doc.get("_id", "")
        body = await self._transport.request("PUT", doc_path(self.name, doc_id), json=doc)
        return DocumentResponse.from_dict(body)

    async def delete(self, doc_id: str, rev: str) -> DocumentResponse:
        body = await self._transport.request(
            "DELETE", doc_path(self.name, doc_id), params={"rev": rev},
        )
        return DocumentResponse.from_dict(body)

    async def bulk(
        self,
        docs: list[dict[str, Any]],
        all_or_nothing: bool = False,
    ) -> list[DocumentResponse]:
        rows = await self._transport.request(
            "POST",
            f"{db_path(self.name)}/_bulk_docs",
            json=_bulk_body(docs, all_or_nothing),
        )
        return [DocumentResponse.from_dict(row) for row in rows]

    async def purge(self, revisions: dict[str, list[str]]) -> PurgeResult:
        body = await self._transport.request(
            "POST", f"{db_path(self.name)}/_purge", json=revisions,
        )
        return PurgeResult.from_dict(body)

    async def get_security(self) -> SecurityDocument:
        return SecurityDocument.from_dict(
            await self._transport.request("GET", f"{db_path(self.name)}/_security"),
        )

    async def put_security(self, security: SecurityDocument) -> bool:
        body = await self._transport.request(
            "PUT", f"{db_path(self.name)}/_security", json=security.to_dict(),
        )
        return bool(body.get("ok", False))

    async def all_docs(self, **options: Any) -> ViewResult:
        body = await self._transport.request(
            "GET", f"{db_path(self.name)}/_all_docs", params=encode_query(options),
        )
        return ViewResult.from_dict(body)

    async def view(
        self,
        design: str,
        view: str,
        keys: list[Any] | None = None,
        **options: Any,
    ) -> ViewResult:
        path = view_path(self.name, design, view)
        params = encode_query(options)
        if keys is not None:
            body = await self._transport.request("POST", path, params=params, json={"keys": keys})
        else:
            body = await self._transport.request("GET", path, params=params)
        return ViewResult.from_dict(body)

    async def all_design_documents(self) -> list[DesignDocument]:
        result = await self.all_docs(**DESIGN_RANGE)
        return [DesignDocument.from_dict(doc) for doc in result.docs()]

    async def get_design_document(self, doc_id: str) -> DesignDocument:
        return DesignDocument.from_dict(await self.get(doc_id))

    async def put_design_document(self, doc: DesignDocument) -> DocumentResponse:
        return await self.put(doc.to_dict())
