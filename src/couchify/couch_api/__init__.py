"""couchify.couch_api -- CouchDB transport and endpoint wrappers.

This sub-package provides:

* :mod:`.retries` -- Retry decision logic and exponential backoff.
* :mod:`.transport` -- HTTP transport with retries and typed errors.
* :mod:`.query` -- View option encoding.
* :mod:`.server` -- Server info and database lifecycle.
* :mod:`.database` -- Documents, bulk writes, ``_all_docs`` and views.
"""

from __future__ import annotations

from .database import AsyncDatabaseAPI, DatabaseAPI
from .query import encode_query
from .retries import compute_backoff, should_retry
from .server import AsyncServerAPI, ServerAPI
from .transport import AsyncCouchTransport, CouchTransport

__all__ = [
    "AsyncCouchTransport",
    "AsyncDatabaseAPI",
    "AsyncServerAPI",
    "CouchTransport",
    "DatabaseAPI",
    "ServerAPI",
    "compute_backoff",
    "encode_query",
    "should_retry",
]
