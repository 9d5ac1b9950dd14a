"""Query cache and synchronization layer.

This module provides:
- QueryClient: keyed cache of async read results with request
  de-duplication, staleness windows, invalidation and offline pausing
- QueryObserver: subscription to one query key
- Mutation: write operation that invalidates query keys on success
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, Generic, ParamSpec, TypeVar

from catalog_browser.duration import parse_duration
from catalog_browser.network import NetworkStatus
from catalog_browser.types import (
    Duration,
    MutationResult,
    MutationStatus,
    QueryKey,
    QueryOptions,
    QueryResult,
    QueryState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")
R = TypeVar("R")

QueryListener = Callable[[QueryResult[Any]], None]


def matches_key(prefix: QueryKey, key: QueryKey, *, exact: bool = False) -> bool:
    """Check if prefix selects key. An empty prefix selects every key."""
    if exact:
        return prefix == key
    if len(prefix) > len(key):
        return False
    return key[: len(prefix)] == prefix


class Query(Generic[T]):
    """Cache entry for one key, shared by all of its observers."""

    def __init__(self, client: QueryClient, key: QueryKey, gc_time: float) -> None:
        self.key = key
        self.state: QueryState[T] = QueryState()
        self.gc_time = gc_time
        self.observers: list[QueryObserver[Any]] = []
        # Bumped on every invalidation; a fetch started before the latest one
        # leaves the entry invalidated
        self.invalidations = 0
        self._client = client
        self._gc_handle: asyncio.TimerHandle | None = None

    def __repr__(self) -> str:
        return f"Query({self.key!r}, {self.state.status}/{self.state.fetch_status})"

    def set_state(self, **changes: Any) -> None:
        self.state = replace(self.state, **changes)
        for observer in list(self.observers):
            observer._on_query_update()

    def is_stale_by_time(self, stale_time: float, now: int) -> bool:
        """A value is stale when absent, invalidated, or at/past its window."""
        if self.state.data_updated_at == 0 or self.state.is_invalidated:
            return True
        return now - self.state.data_updated_at >= stale_time

    def add_observer(self, observer: QueryObserver[Any]) -> None:
        if observer not in self.observers:
            self.observers.append(observer)
            self._cancel_gc()

    def remove_observer(self, observer: QueryObserver[Any]) -> None:
        if observer in self.observers:
            self.observers.remove(observer)
            if not self.observers:
                self.schedule_gc()

    def schedule_gc(self) -> None:
        """Evict this entry once its retention window passes unobserved."""
        self._cancel_gc()
        if math.isinf(self.gc_time):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._gc_handle = loop.call_later(self.gc_time / 1000, self._optional_remove)

    def _cancel_gc(self) -> None:
        if self._gc_handle is not None:
            self._gc_handle.cancel()
            self._gc_handle = None

    def _optional_remove(self) -> None:
        self._gc_handle = None
        if not self.observers and not self._client.is_fetching(self.key):
            self._client._remove(self)


class QueryClient:
    """Keyed cache of async query results.

    Usage:
        async with QueryClient(network) as client:
            observer = client.observe(QueryOptions(key=("products",), fn=api.list_products))
            unsubscribe = observer.subscribe(render)
            ...
            client.invalidate_queries(("products",))
    """

    def __init__(
        self,
        network: NetworkStatus | None = None,
        *,
        default_stale_time: Duration = "0ms",
        default_gc_time: Duration = "5m",
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._network = network if network is not None else NetworkStatus()
        self._default_stale_time = parse_duration(default_stale_time)
        self._default_gc_time = parse_duration(default_gc_time)
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._queries: dict[QueryKey, Query[Any]] = {}
        self._in_flight: dict[QueryKey, asyncio.Task[Any]] = {}
        self._unsubscribe_network: Callable[[], None] | None = None
        self._was_online = self._network.is_online

    @property
    def network(self) -> NetworkStatus:
        return self._network

    def now(self) -> int:
        """Current time in ms, from the configured clock."""
        return self._clock()

    def stale_time_of(self, options: QueryOptions[Any]) -> float:
        if options.stale_time is None:
            return self._default_stale_time
        return parse_duration(options.stale_time)

    def gc_time_of(self, options: QueryOptions[Any]) -> float:
        if options.gc_time is None:
            return self._default_gc_time
        return parse_duration(options.gc_time)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def mount(self) -> None:
        """Start following network transitions (refetch on reconnect)."""
        if self._unsubscribe_network is None:
            self._was_online = self._network.is_online
            self._unsubscribe_network = self._network.subscribe(self._on_network_change)

    async def unmount(self) -> None:
        """Stop following the network and cancel in-flight fetches."""
        if self._unsubscribe_network is not None:
            self._unsubscribe_network()
            self._unsubscribe_network = None
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
        for query in self._queries.values():
            query._cancel_gc()

    async def __aenter__(self) -> QueryClient:
        self.mount()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unmount()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def observe(self, options: QueryOptions[T]) -> QueryObserver[T]:
        """Create an observer for a query. Nothing is fetched until it is subscribed."""
        return QueryObserver(self, options)

    async def fetch_query(self, options: QueryOptions[T]) -> T:
        """Return the cached value if fresh, otherwise fetch (or join a fetch) for it.

        Unlike observers this ignores ``enabled``. Raises the fetch error.
        """
        query = self._build_query(options)
        if not query.is_stale_by_time(self.stale_time_of(options), self.now()):
            logger.debug("Cache hit for %r", options.key)
            return query.state.data  # type: ignore[return-value]
        task = self._fetch(query, options)
        result: T = await asyncio.shield(task)
        return result

    def get_query_data(self, key: QueryKey) -> Any | None:
        query = self._queries.get(key)
        return query.state.data if query is not None else None

    def get_query_state(self, key: QueryKey) -> QueryState[Any] | None:
        query = self._queries.get(key)
        return query.state if query is not None else None

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        """Seed or overwrite a cached value. It counts as freshly fetched."""
        query = self._queries.get(key)
        if query is None:
            query = Query(self, key, self._default_gc_time)
            self._queries[key] = query
            query.schedule_gc()
        query.set_state(
            data=data,
            error=None,
            status="success",
            data_updated_at=self.now(),
            is_invalidated=False,
        )

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._in_flight

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight. Paused fetches keep this waiting."""
        while self._in_flight:
            await asyncio.wait(list(self._in_flight.values()))

    def invalidate_queries(self, key: QueryKey = (), *, exact: bool = False) -> None:
        """Mark matching queries stale and refetch those with an enabled observer.

        By default (exact=False) the key is a prefix: invalidating ("product",)
        also invalidates ("product", 7). Refetches run in the background; while
        offline they wait in the paused state.
        """
        matched = self._find(key, exact=exact)
        logger.debug("Invalidating %d queries for %r", len(matched), key)
        for query in matched:
            query.invalidations += 1
            query.set_state(is_invalidated=True)
        for query in matched:
            active = _active_options(query)
            if active is not None:
                self._fetch(query, active)

    def remove_queries(self, key: QueryKey = (), *, exact: bool = False) -> None:
        for query in self._find(key, exact=exact):
            self._remove(query)

    def clear(self) -> None:
        """Drop every cached entry."""
        for query in list(self._queries.values()):
            self._remove(query)

    def mutation(
        self, fn: Callable[P, Awaitable[MutationResult[R]]]
    ) -> Mutation[P, R]:
        """Decorator that runs fn, then invalidates the keys it names on success."""
        return Mutation(self, fn)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _find(self, key: QueryKey, *, exact: bool) -> list[Query[Any]]:
        return [q for k, q in self._queries.items() if matches_key(key, k, exact=exact)]

    def _build_query(self, options: QueryOptions[T]) -> Query[T]:
        gc_time = self.gc_time_of(options)
        query = self._queries.get(options.key)
        if query is None:
            query = Query(self, options.key, gc_time)
            self._queries[options.key] = query
            query.schedule_gc()
        else:
            query.gc_time = max(query.gc_time, gc_time)
        return query

    def _remove(self, query: Query[Any]) -> None:
        query._cancel_gc()
        if self._queries.get(query.key) is query:
            logger.debug("Evicting %r", query.key)
            del self._queries[query.key]

    def _fetch(self, query: Query[T], options: QueryOptions[T]) -> asyncio.Task[T]:
        """Start a fetch for the query, or return the one already in flight."""
        existing = self._in_flight.get(query.key)
        if existing is not None:
            logger.debug("Joining in-flight fetch for %r", query.key)
            return existing

        task = asyncio.create_task(self._execute(query, options.fn))
        self._in_flight[query.key] = task
        task.add_done_callback(lambda t: self._on_fetch_done(query, t))
        online = self._network.is_online
        query.set_state(fetch_status="fetching" if online else "paused")
        return task

    async def _execute(self, query: Query[T], fn: Callable[[], Awaitable[T]]) -> T:
        try:
            if not self._network.is_online:
                logger.debug("Offline, pausing fetch for %r", query.key)
                # Connectivity may drop again before this task resumes
                while not self._network.is_online:
                    await self._network.wait_until_online()
                query.set_state(fetch_status="fetching")
            logger.debug("Fetching %r", query.key)
            invalidations = query.invalidations
            data = await fn()
        except asyncio.CancelledError:
            query.set_state(fetch_status="idle")
            raise
        except Exception as e:
            logger.warning("Fetch for %r failed: %s", query.key, e)
            query.set_state(
                error=e,
                status="error",
                fetch_status="idle",
                error_updated_at=self.now(),
                fetch_count=query.state.fetch_count + 1,
            )
            raise

        query.set_state(
            data=data,
            error=None,
            status="success",
            fetch_status="idle",
            data_updated_at=self.now(),
            is_invalidated=query.invalidations != invalidations,
            fetch_count=query.state.fetch_count + 1,
        )
        return data

    def _on_fetch_done(self, query: Query[Any], task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(query.key) is task:
            del self._in_flight[query.key]
        if task.cancelled():
            # Cancelled before its first step, _execute never saw it
            if query.state.fetch_status != "idle":
                query.set_state(fetch_status="idle")
        elif task.exception() is None and query.state.is_invalidated:
            # Invalidated while the request was on the wire
            active = _active_options(query)
            if active is not None:
                logger.debug("Refetching %r invalidated mid-fetch", query.key)
                self._fetch(query, active)
                return
        if not query.observers:
            query.schedule_gc()

    def _on_network_change(self, online: bool) -> None:
        reconnected = online and not self._was_online
        self._was_online = online
        if not reconnected:
            return
        now = self.now()
        for query in list(self._queries.values()):
            active = _active_options(query)
            if active is None:
                continue
            if query.is_stale_by_time(self.stale_time_of(active), now):
                self._fetch(query, active)


def _active_options(query: Query[Any]) -> QueryOptions[Any] | None:
    """Options of the first enabled, subscribed observer, if any."""
    for observer in query.observers:
        if observer.options.enabled:
            return observer.options
    return None


class QueryObserver(Generic[T]):
    """A subscription to one query key.

    The observer attaches to its query when the first listener subscribes and
    detaches when the last one leaves. Listeners receive a QueryResult on every
    state change of the query.
    """

    def __init__(self, client: QueryClient, options: QueryOptions[T]) -> None:
        self._client = client
        self._options = options
        self._query: Query[T] = client._build_query(options)
        self._listeners: dict[int, QueryListener] = {}
        self._next_id = 0

    @property
    def options(self) -> QueryOptions[T]:
        return self._options

    @property
    def key(self) -> QueryKey:
        return self._options.key

    @property
    def is_subscribed(self) -> bool:
        return bool(self._listeners)

    def subscribe(self, listener: QueryListener) -> Callable[[], None]:
        """Register a listener. Returns an idempotent unsubscribe function."""
        listener_id = self._next_id
        self._next_id += 1
        first = not self._listeners
        self._listeners[listener_id] = listener
        if first:
            self._mount()

        def unsubscribe() -> None:
            if self._listeners.pop(listener_id, None) is not None and not self._listeners:
                self._query.remove_observer(self)

        return unsubscribe

    def set_options(self, options: QueryOptions[T]) -> None:
        """Swap options, e.g. to enable a deferred query or change its key."""
        previous = self._options
        self._options = options
        if options.key != previous.key:
            if self.is_subscribed:
                self._query.remove_observer(self)
                self._mount()
                self._notify()
            else:
                self._query = self._client._build_query(options)
            return

        self._query.gc_time = max(self._query.gc_time, self._client.gc_time_of(options))
        if self.is_subscribed:
            if options.enabled and not previous.enabled:
                self._fetch_if_stale()
            self._notify()

    def get_current_result(self) -> QueryResult[Any]:
        state = self._query.state
        data: Any = state.data
        if data is not None and self._options.select is not None:
            data = self._options.select(data)
        return QueryResult(
            data=data,
            error=state.error,
            status=state.status,
            fetch_status=state.fetch_status,
            is_stale=self._query.is_stale_by_time(
                self._client.stale_time_of(self._options), self._client.now()
            ),
            data_updated_at=state.data_updated_at,
        )

    async def refetch(self) -> QueryResult[Any]:
        """Fetch now regardless of staleness and return the settled result.

        A disabled observer does not fetch. Errors are reported in the result,
        not raised.
        """
        if not self._options.enabled:
            logger.debug("Refetch of disabled query %r skipped", self.key)
            return self.get_current_result()
        task = self._client._fetch(self._query, self._options)
        await asyncio.wait({task})
        return self.get_current_result()

    def _mount(self) -> None:
        # An unobserved entry may have been evicted since this observer was created
        self._query = self._client._build_query(self._options)
        self._query.add_observer(self)
        if self._options.enabled:
            self._fetch_if_stale()

    def _fetch_if_stale(self) -> None:
        stale = self._query.is_stale_by_time(
            self._client.stale_time_of(self._options), self._client.now()
        )
        if stale:
            self._client._fetch(self._query, self._options)
        else:
            logger.debug("Serving fresh %r from cache", self.key)

    def _on_query_update(self) -> None:
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        result = self.get_current_result()
        for listener_id, listener in list(self._listeners.items()):
            # Skip listeners removed by an earlier callback in this round
            if listener_id in self._listeners:
                listener(result)


class Mutation(Generic[P, R]):
    """A write that invalidates query keys when it succeeds.

    Usage:
        @client.mutation
        async def create(request) -> MutationResult[Product]:
            created = await api.create_product(request)
            return MutationResult(result=created, invalidates=[("products",)])

        product = await create(request)
    """

    def __init__(
        self,
        client: QueryClient,
        fn: Callable[P, Awaitable[MutationResult[R]]],
    ) -> None:
        self._client = client
        self._fn = fn
        self.status: MutationStatus = "idle"
        self.data: R | None = None
        self.error: BaseException | None = None

    @property
    def is_idle(self) -> bool:
        return self.status == "idle"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    async def mutate(self, *args: P.args, **kwargs: P.kwargs) -> R:
        """Run the mutation. Raises its error; nothing is invalidated on failure."""
        self.status = "pending"
        self.error = None
        try:
            outcome = await self._fn(*args, **kwargs)
        except Exception as e:
            logger.warning("Mutation failed: %s", e)
            self.status = "error"
            self.error = e
            raise

        self.status = "success"
        self.data = outcome.result
        for key in outcome.invalidates:
            self._client.invalidate_queries(key)
        return outcome.result

    async def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R:
        return await self.mutate(*args, **kwargs)

    def reset(self) -> None:
        self.status = "idle"
        self.data = None
        self.error = None
