"""Network status monitoring.

Provides:
- NetworkStatus: shared online/offline flag with subscribers
- ConnectivityWatcher: probes the catalog host and feeds a NetworkStatus
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from catalog_browser.duration import parse_duration
from catalog_browser.types import Duration

logger = logging.getLogger(__name__)

NetworkListener = Callable[[bool], None]


class NetworkStatus:
    """Online/offline state shared by everything holding this instance.

    Usage:
        network = NetworkStatus()
        unsubscribe = network.subscribe(lambda online: print(online))
        network.set_online(False)
        unsubscribe()
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: dict[int, NetworkListener] = {}
        self._next_id = 0
        self._waiters: set[asyncio.Future[None]] = set()

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """Record a connectivity signal. Listeners only hear about transitions."""
        if online == self._online:
            return
        self._online = online
        logger.info("Network is %s", "online" if online else "offline")

        if online:
            for waiter in self._waiters:
                if not waiter.done():
                    waiter.set_result(None)
            self._waiters.clear()

        # Copy: listeners may unsubscribe while being notified
        for listener_id, listener in list(self._listeners.items()):
            if listener_id in self._listeners and self._online == online:
                listener(online)

    def subscribe(self, listener: NetworkListener) -> Callable[[], None]:
        """Call listener now with the current value, then on every transition.

        Returns an unsubscribe function. Calling it more than once is a no-op.
        """
        listener_id = self._next_id
        self._next_id += 1
        self._listeners[listener_id] = listener
        listener(self._online)

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    async def wait_until_online(self) -> None:
        """Return once the network is online."""
        if self._online:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.add(waiter)
        try:
            await waiter
        finally:
            self._waiters.discard(waiter)


class ConnectivityWatcher:
    """Periodically probe a URL and report the outcome to a NetworkStatus.

    Any HTTP response counts as online; a transport error counts as offline.
    """

    def __init__(
        self,
        network: NetworkStatus,
        url: str,
        *,
        interval: Duration = "30s",
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
    ) -> None:
        self._network = network
        self._url = url
        self._interval = parse_duration(interval) / 1000
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._task: asyncio.Task[None] | None = None

    async def check(self) -> bool:
        """Run one probe and update the network status."""
        try:
            await self._client.head(self._url)
        except httpx.TransportError as e:
            logger.debug("Connectivity probe to %s failed: %s", self._url, e)
            online = False
        else:
            online = True
        self._network.set_online(online)
        return online

    async def _run(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """Start probing in a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop probing and release the HTTP client if owned."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_client:
            await self._client.aclose()
