"""Background search worker and its latest-request-wins client.

The worker owns one inbound and one outbound queue. It keeps the catalog
from the first request that carries one, runs each scan in a thread so the
event loop stays responsive, and handles one request at a time. The client
numbers its requests and drops any result that a newer request has
superseded; the stale scan still runs to completion.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from jukebox.models import CatalogRecord, Dialect, SearchRequest, SearchResponse
from jukebox.search import search

logger = logging.getLogger("jukebox.worker")


class SearchWorker:
    """Consumes :class:`SearchRequest` messages and produces :class:`SearchResponse`."""

    def __init__(self) -> None:
        self.inbox: asyncio.Queue[SearchRequest | None] = asyncio.Queue()
        self.outbox: asyncio.Queue[SearchResponse] = asyncio.Queue()
        self._catalog: list[CatalogRecord] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def has_catalog(self) -> bool:
        return self._catalog is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="jukebox-search-worker")

    async def stop(self) -> None:
        """Finish queued requests, then stop."""
        if self._task is None:
            return
        await self.inbox.put(None)
        await self._task
        self._task = None

    async def __aenter__(self) -> SearchWorker:
        self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    # -- processing ---------------------------------------------------------

    async def _run(self) -> None:
        while True:
            request = await self.inbox.get()
            if request is None:
                break
            response = await self.handle(request)
            await self.outbox.put(response)

    async def handle(self, request: SearchRequest) -> SearchResponse:
        """Scan the retained catalog for one request."""
        if request.catalog is not None:
            self._catalog = request.catalog
            logger.info("Worker received catalog of %d records", len(request.catalog))

        if self._catalog is None:
            logger.warning("Request %d arrived before any catalog; no hits", request.request_id)
            return SearchResponse(request_id=request.request_id)

        try:
            hits = await asyncio.to_thread(search, self._catalog, request.query, request.dialect)
        except Exception:
            logger.exception("Search for request %d failed", request.request_id)
            hits = []
        return SearchResponse(request_id=request.request_id, hits=hits)


class SearchClient:
    """Issues searches to a :class:`SearchWorker`, keeping only the newest result.

    The catalog payload is sent with the first request only.
    """

    def __init__(
        self, catalog: Sequence[CatalogRecord], worker: SearchWorker | None = None
    ) -> None:
        self.catalog = list(catalog)
        self.worker = worker or SearchWorker()
        self._next_id = 0
        self._latest = -1
        self._catalog_sent = False
        self._pending: dict[int, asyncio.Future[list[int]]] = {}
        self._reader: asyncio.Task[None] | None = None

    @property
    def latest_request_id(self) -> int:
        return self._latest

    def _ensure_started(self) -> None:
        self.worker.start()
        if self._reader is None or self._reader.done():
            self._reader = asyncio.create_task(self._read(), name="jukebox-search-reader")

    async def _read(self) -> None:
        while True:
            response = await self.worker.outbox.get()
            future = self._pending.pop(response.request_id, None)
            if future is not None and not future.done():
                future.set_result(response.hits)

    async def search(self, query: str, dialect: Dialect = "terms") -> list[int] | None:
        """Search the catalog; returns ``None`` if a newer search superseded this one."""
        self._ensure_started()

        request_id = self._next_id
        self._next_id += 1
        self._latest = request_id

        future: asyncio.Future[list[int]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload = None if self._catalog_sent else self.catalog
        self._catalog_sent = True
        await self.worker.inbox.put(
            SearchRequest(request_id=request_id, query=query, dialect=dialect, catalog=payload)
        )

        hits = await future
        if request_id != self._latest:
            logger.debug("Discarding stale result for request %d", request_id)
            return None
        return hits

    async def close(self) -> None:
        await self.worker.stop()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        for future in self._pending.values():
            future.cancel()
        self._pending.clear()

    async def __aenter__(self) -> SearchClient:
        self._ensure_started()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
