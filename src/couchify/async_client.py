"""Asynchronous CouchDB SDK client.

:class:`AsyncCouchifyClient` mirrors :class:`CouchifyClient` but every
I/O method is an ``async def`` coroutine.

Usage::

    import asyncio
    from couchify import AsyncCouchifyClient

    async def main():
        async with AsyncCouchifyClient("http://localhost:5984") as client:
            result = await client.seed("game", design_docs)
            print(result.changed)

    asyncio.run(main())
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from couchify.config import DEFAULT_BASE_URL, CouchifyConfig
from couchify.couch_api.database import AsyncDatabaseAPI
from couchify.couch_api.server import AsyncServerAPI
from couchify.couch_api.transport import AsyncCouchTransport
from couchify.design.seeder import AsyncSeeder
from couchify.models import (
    ActiveTask,
    DatabaseInfo,
    DesignDiff,
    DesignDocument,
    SeedResult,
    ServerInfo,
)


class AsyncCouchifyClient:
    """Asynchronous CouchDB SDK client.

    Parameters
    ----------
    base_url:
        Server root URL, optionally with embedded credentials.
    **kwargs:
        All remaining keyword arguments are forwarded to
        :class:`CouchifyConfig`.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, **kwargs: Any) -> None:
        self._config = CouchifyConfig(base_url=base_url, **kwargs)
        self._transport = AsyncCouchTransport(self._config)
        self._server = AsyncServerAPI(self._transport)

    async def info(self) -> ServerInfo:
        return await self._server.info()

    async def all_databases(self) -> list[str]:
        return await self._server.all_databases()

    async def active_tasks(self) -> list[ActiveTask]:
        return await self._server.active_tasks()

    async def create_database(self, name: str) -> bool:
        return await self._server.create_database(name)

    async def get_database(self, name: str) -> DatabaseInfo:
        return await self._server.get_database(name)

    async def delete_database(self, name: str) -> bool:
        return await self._server.delete_database(name)

    def database(self, name: str) -> AsyncDatabaseAPI:
        """Return an async handle for documents and views of *name*."""
        return AsyncDatabaseAPI(self._transport, name)

    async def plan_seed(
        self, database: str, design_docs: Iterable[DesignDocument],
    ) -> DesignDiff:
        """See :meth:`CouchifyClient.plan_seed`."""
        return await AsyncSeeder(self.database(database), self._config).plan(design_docs)

    async def seed(
        self, database: str, design_docs: Iterable[DesignDocument],
    ) -> SeedResult:
        """See :meth:`CouchifyClient.seed`."""
        return await AsyncSeeder(self.database(database), self._config).seed(design_docs)

    async def close(self) -> None:
        """Close the HTTP transport."""
        await self._transport.close()

    async def __aenter__(self) -> AsyncCouchifyClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
