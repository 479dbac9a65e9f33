"""Shared test fixtures for the couchify test suite."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from couchify.config import CouchifyConfig
from couchify.errors import CouchifyConflictError, CouchifyNotFoundError
from couchify.models import DesignDocument, DocumentResponse


@pytest.fixture
def config() -> CouchifyConfig:
    """Default test configuration with fast, deterministic retries."""
    return CouchifyConfig(
        base_url="http://localhost:5984",
        retry_max_attempts=3,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
    )


class FakeDesignStore:
    """In-memory stand-in for the design-document surface of ``DatabaseAPI``.

    Revisions follow CouchDB's ``<generation>-<suffix>`` shape and a write
    carrying a stale revision raises the same conflict error the transport
    would.
    """

    def __init__(self, docs: list[DesignDocument] | None = None, name: str = "game") -> None:
        self.name = name
        self.docs: dict[str, DesignDocument] = {d.id: d for d in (docs or [])}
        self.calls: list[tuple[str, str]] = []
        self._counter = 0

    def _next_rev(self, doc_id: str) -> str:
        current = self.docs.get(doc_id)
        generation = int(current.rev.split("-")[0]) + 1 if current and current.rev else 1
        self._counter += 1
        return f"{generation}-{self._counter:06x}"

    def all_design_documents(self) -> list[DesignDocument]:
        self.calls.append(("all", ""))
        return [d.with_rev(d.rev) for d in self.docs.values()]

    def get_design_document(self, doc_id: str) -> DesignDocument:
        self.calls.append(("get", doc_id))
        if doc_id not in self.docs:
            raise CouchifyNotFoundError("missing", context={"status_code": 404})
        return self.docs[doc_id].with_rev(self.docs[doc_id].rev)

    def put_design_document(self, doc: DesignDocument) -> DocumentResponse:
        self.calls.append(("put", doc.id))
        current = self.docs.get(doc.id)
        if (current.rev if current else "") != doc.rev:
            raise CouchifyConflictError("conflict", context={"status_code": 409})
        rev = self._next_rev(doc.id)
        self.docs[doc.id] = doc.with_rev(rev)
        return DocumentResponse(id=doc.id, rev=rev)

    def delete(self, doc_id: str, rev: str) -> DocumentResponse:
        self.calls.append(("delete", doc_id))
        if doc_id not in self.docs or self.docs[doc_id].rev != rev:
            raise CouchifyConflictError("conflict", context={"status_code": 409})
        del self.docs[doc_id]
        return DocumentResponse(id=doc_id, rev=rev)

    def bump(self, doc_id: str) -> None:
        """Simulate another writer touching *doc_id*."""
        doc = self.docs[doc_id]
        self.docs[doc_id] = doc.with_rev(self._next_rev(doc_id))


@pytest.fixture
def store_factory() -> Callable[..., FakeDesignStore]:
    return FakeDesignStore


@pytest.fixture
def async_api_factory() -> Callable[[FakeDesignStore], MagicMock]:
    """Wrap a store so every design-document method is awaitable."""

    def _wrap(store: FakeDesignStore) -> MagicMock:
        api = MagicMock()
        api.name = store.name
        api.all_design_documents = AsyncMock(side_effect=store.all_design_documents)
        api.get_design_document = AsyncMock(side_effect=store.get_design_document)
        api.put_design_document = AsyncMock(side_effect=store.put_design_document)
        api.delete = AsyncMock(side_effect=store.delete)
        return api

    return _wrap
