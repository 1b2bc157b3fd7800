"""Request lifecycle for dashboard widgets.

A ``DataFetcher`` owns one logical request against one resource. Every new
dispatch (first start, resource change, poll tick or manual ``refetch``)
cancels the request before it, so only the most recent dispatch can ever
write to ``state``. ``FilteredFetcher`` binds a fetcher to a ``FilterStore``
and re-targets it whenever the filters change.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .api_client import CancelToken, RequestCancelled, unwrap_envelope
from .filters import FilterState, FilterStore, build_resource_url, use_filters

logger = logging.getLogger(__name__)

FetchFunction = Callable[[str, CancelToken], Awaitable[Any]]


@dataclass(frozen=True)
class FetchState:
    data: Any = None
    loading: bool = True
    error: Optional[str] = None
    last_updated: Optional[datetime] = None


FetchListener = Callable[[FetchState], None]


class DataFetcher:
    """Single-flight fetch of ``resource`` with optional polling."""

    def __init__(
        self,
        resource: str,
        fetch: FetchFunction,
        refresh_interval: Optional[float] = None,
    ) -> None:
        self._resource = resource
        self._fetch = fetch
        self.refresh_interval = refresh_interval
        self._state = FetchState()
        self._listeners: List[FetchListener] = []
        self._generation = 0
        self._token: Optional[CancelToken] = None
        self._task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._started = False
        self._closed = False

    @property
    def resource(self) -> str:
        return self._resource

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._state.last_updated

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: FetchListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        """Issue the first request and start polling. Must run inside the event loop."""
        if self._started or self._closed:
            return
        self._started = True
        self._dispatch()
        if self.refresh_interval and self.refresh_interval > 0:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    def refetch(self) -> None:
        self._dispatch()

    def set_resource(self, resource: str) -> None:
        if resource == self._resource:
            return
        self._resource = resource
        if self._started:
            self._dispatch()

    def close(self) -> None:
        """Cancel the in-flight request and the poll timer; no state changes afterwards."""
        if self._closed:
            return
        self._closed = True
        self._cancel_inflight()
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        self._listeners.clear()

    def _cancel_inflight(self) -> None:
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _dispatch(self) -> None:
        if self._closed:
            return
        self._cancel_inflight()
        self._generation += 1
        token = CancelToken()
        self._token = token
        self._set_state(loading=True, error=None)
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation, token, self._resource)
        )

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def _run(self, generation: int, token: CancelToken, resource: str) -> None:
        try:
            body = await self._fetch(resource, token)
        except (asyncio.CancelledError, RequestCancelled):
            logger.debug("Request for %s superseded", resource)
            return
        except Exception as exc:
            if not self._is_current(generation):
                return
            logger.warning("Fetch of %s failed: %s", resource, exc)
            self._set_state(loading=False, error=str(exc) or exc.__class__.__name__)
            return

        if token.cancelled or not self._is_current(generation):
            return
        self._set_state(data=unwrap_envelope(body), loading=False, last_updated=datetime.now())

    async def _poll(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.refresh_interval)
            self._dispatch()

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)


class FilteredFetcher:
    """``DataFetcher`` whose resource follows the shared filter state."""

    def __init__(
        self,
        base_resource: str,
        fetch: FetchFunction,
        refresh_interval: Optional[float] = None,
        store: Optional[FilterStore] = None,
    ) -> None:
        self.base_resource = base_resource
        self._store = store or use_filters()
        self._fetcher = DataFetcher(
            build_resource_url(base_resource, self._store.get_filters()),
            fetch,
            refresh_interval,
        )
        self._unsubscribe = self._store.subscribe(self._on_filters_changed)

    def _on_filters_changed(self, filters: FilterState) -> None:
        self._fetcher.set_resource(build_resource_url(self.base_resource, filters))

    @property
    def resource(self) -> str:
        return self._fetcher.resource

    @property
    def state(self) -> FetchState:
        return self._fetcher.state

    @property
    def data(self) -> Any:
        return self._fetcher.data

    @property
    def loading(self) -> bool:
        return self._fetcher.loading

    @property
    def error(self) -> Optional[str]:
        return self._fetcher.error

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._fetcher.last_updated

    @property
    def closed(self) -> bool:
        return self._fetcher.closed

    def subscribe(self, listener: FetchListener) -> Callable[[], None]:
        return self._fetcher.subscribe(listener)

    def start(self) -> None:
        self._fetcher.start()

    def refetch(self) -> None:
        self._fetcher.refetch()

    def close(self) -> None:
        self._unsubscribe()
        self._fetcher.close()


def close_when_deleted(client: Any, fetchers: Sequence[FilteredFetcher]) -> None:
    """Close ``fetchers`` once the UI client is deleted.

    A dropped socket that reconnects keeps the same client, so fetchers stay
    alive until the client is actually discarded.
    """

    def teardown() -> None:
        for fetcher in fetchers:
            fetcher.close()
        logger.debug("Closed %d fetchers for deleted client", len(fetchers))

    client.on_delete(teardown)


__all__ = ["DataFetcher", "FetchFunction", "FetchState", "FilteredFetcher", "close_when_deleted"]
