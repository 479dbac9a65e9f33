"""Server-level API wrappers: welcome info, active tasks and database lifecycle.

Provides :class:`ServerAPI` (sync) and :class:`AsyncServerAPI` (async).
Both delegate all HTTP concerns to the underlying transport.
"""

from __future__ import annotations

from urllib.parse import quote

from couchify.models import ActiveTask, DatabaseInfo, ServerInfo

from .transport import AsyncCouchTransport, CouchTransport


def db_path(name: str) -> str:
    """Return the escaped root path of database *name*.

    Database names may contain ``/`` (``team/players``), which CouchDB
    expects percent-encoded.
    """
    return "/" + quote(name, safe="")


class ServerAPI:
    """Synchronous wrapper for the CouchDB server endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`CouchTransport` instance.
    """

    def __init__(self, transport: CouchTransport) -> None:
        self._transport = transport

    def info(self) -> ServerInfo:
        """Return the welcome document served at ``/``."""
        return ServerInfo.from_dict(self._transport.request("GET", "/"))

    def all_databases(self) -> list[str]:
        """Return the names of every database on the server."""
        return list(self._transport.request("GET", "/_all_dbs"))

    def active_tasks(self) -> list[ActiveTask]:
        """Return the tasks (compaction, indexing, replication) running now."""
        return [
            ActiveTask.from_dict(task)
            for task in self._transport.request("GET", "/_active_tasks")
        ]

    def create_database(self, name: str) -> bool:
        """Create database *name*.

        Raises :class:`CouchifyPreconditionFailedError` if it already
        exists.
        """
        return bool(self._transport.request("PUT", db_path(name)).get("ok", False))

    def get_database(self, name: str) -> DatabaseInfo:
        """Return metadata for database *name*."""
        return DatabaseInfo.from_dict(self._transport.request("GET", db_path(name)))

    def delete_database(self, name: str) -> bool:
        """Delete database *name* and all of its documents."""
        return bool(self._transport.request("DELETE", db_path(name)).get("ok", False))


class AsyncServerAPI:
    """Asynchronous wrapper for the CouchDB server endpoints.

    Mirrors :class:`ServerAPI` but all methods are coroutines.
    """

    def __init__(self, transport: AsyncCouchTransport) -> None:
        self._transport = transport

    async def info(self) -> ServerInfo:
        return ServerInfo.from_dict(await self._transport.request("GET", "/"))

    async def all_databases(self) -> list[str]:
        return list(await self._transport.request("GET", "/_all_dbs"))

    async def active_tasks(self) -> list[ActiveTask]:
        tasks = await self._transport.request("GET", "/_active_tasks")
        return [ActiveTask.from_dict(task) for task in tasks]

    async def create_database(self, name: str) -> bool:
        body = await self._transport.request("PUT", db_path(name))
        return bool(body.get("ok", False))

    async def get_database(self, name: str) -> DatabaseInfo:
        return DatabaseInfo.from_dict(await self._transport.request("GET", db_path(name)))

    async def delete_database(self, name: str) -> bool:
        body = await self._transport.request("DELETE", db_path(name))
        return bool(body.get("ok", False))
