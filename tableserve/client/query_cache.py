"""
In-memory query cache.

A small async re-implementation of the stale-while-revalidate pattern used
by dashboard clients:

    - ``fetch_query`` returns cached data while it is fresh, otherwise
      calls the fetcher (with retries) and stores the result.
    - Concurrent fetches of the same key share one in-flight call.
    - ``invalidate_queries`` marks entries stale by key prefix so the next
      fetch goes to the server.
    - ``mutate`` runs a write with optimistic update and rollback hooks.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from tableserve.client.api import ApiError
from tableserve.client.query_keys import QueryKey

logger = logging.getLogger(__name__)

NO_RETRY_STATUS_CODES = (401, 403, 404)
MAX_RETRIES = 2
MAX_RETRY_DELAY = 30.0

Fetcher = Callable[[], Awaitable[Any]]
RetryPolicy = Union[bool, int, Callable[[int, BaseException], bool]]


def default_retry(failure_count: int, error: BaseException) -> bool:
    """
    Retry transient failures.

    ``failure_count`` is the number of failures before this one, so the
    first failure is 0.
    """
    if isinstance(error, ApiError) and error.status_code in NO_RETRY_STATUS_CODES:
        return False
    return failure_count < MAX_RETRIES


def default_retry_delay(failure_count: int) -> float:
    """Exponential backoff: 1s, 2s, 4s ... capped at 30s."""
    return min(2 ** failure_count, MAX_RETRY_DELAY)


def _should_retry(retry: RetryPolicy, failure_count: int, error: BaseException) -> bool:
    if callable(retry):
        return bool(retry(failure_count, error))
    if isinstance(retry, bool):
        return retry
    return failure_count < retry


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _matches(key: QueryKey, prefix: QueryKey, exact: bool) -> bool:
    if exact:
        return key == prefix
    return key[:len(prefix)] == prefix


@dataclass
class QueryEntry:
    data: Any = None
    error: Optional[BaseException] = None
    updated_at: Optional[float] = None
    stale_time: float = 0.0
    invalidated: bool = False

    def is_stale(self, now: float) -> bool:
        if self.updated_at is None or self.invalidated:
            return True
        return now - self.updated_at >= self.stale_time


class QueryClient:
    """Cache of query results addressed by tuple keys."""

    def __init__(
        self,
        retry_delay: Callable[[int], float] = default_retry_delay,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: dict[QueryKey, QueryEntry] = {}
        self._in_flight: dict[QueryKey, asyncio.Task] = {}
        self._retry_delay = retry_delay
        self._clock = clock

    # =========================================================================
    # READS
    # =========================================================================

    async def fetch_query(
        self,
        key: QueryKey,
        fn: Fetcher,
        stale_time: float = 0.0,
        retry: RetryPolicy = default_retry,
    ) -> Any:
        entry = self._entries.get(key)
        if entry is not None and entry.error is None and not entry.is_stale(self._clock()):
            return entry.data

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, fn, stale_time, retry))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))

        # Shielded so one waiter being cancelled does not cancel the others
        return await asyncio.shield(task)

    async def _run(self, key: QueryKey, fn: Fetcher, stale_time: float, retry: RetryPolicy) -> Any:
        failure_count = 0
        while True:
            try:
                data = await fn()
            except Exception as e:
                if not _should_retry(retry, failure_count, e):
                    entry = self._entries.setdefault(key, QueryEntry(stale_time=stale_time))
                    entry.error = e
                    logger.debug(f"Query {key} failed after {failure_count + 1} attempt(s): {e}")
                    raise
                delay = self._retry_delay(failure_count)
                failure_count += 1
                logger.debug(f"Retrying query {key} in {delay}s ({failure_count}/{MAX_RETRIES})")
                await asyncio.sleep(delay)
                continue

            self._entries[key] = QueryEntry(
                data=data,
                updated_at=self._clock(),
                stale_time=stale_time,
            )
            return data

    def _forget(self, key: QueryKey, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def get_query_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def get_queries_data(self, prefix: QueryKey) -> dict[QueryKey, Any]:
        return {
            key: entry.data
            for key, entry in self._entries.items()
            if _matches(key, prefix, exact=False)
        }

    def get_error(self, key: QueryKey) -> Optional[BaseException]:
        entry = self._entries.get(key)
        return entry.error if entry else None

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.is_stale(self._clock())

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._in_flight

    # =========================================================================
    # WRITES
    # =========================================================================

    def set_query_data(self, key: QueryKey, value: Any) -> Any:
        """
        Store data for a key. ``value`` may be an updater taking the
        current data and returning the new data.
        """
        entry = self._entries.get(key)
        if callable(value):
            value = value(entry.data if entry else None)

        if entry is None:
            entry = self._entries[key] = QueryEntry()
        entry.data = value
        entry.error = None
        entry.invalidated = False
        entry.updated_at = self._clock()
        return value

    def set_queries_data(self, prefix: QueryKey, updater: Callable[[Any], Any]) -> None:
        for key in [k for k in self._entries if _matches(k, prefix, exact=False)]:
            self._entries[key].data = updater(self._entries[key].data)

    def invalidate_queries(
        self,
        prefix: QueryKey = (),
        exact: bool = False,
        predicate: Optional[Callable[[QueryKey], bool]] = None,
    ) -> int:
        count = 0
        for key, entry in self._entries.items():
            if not _matches(key, prefix, exact):
                continue
            if predicate is not None and not predicate(key):
                continue
            entry.invalidated = True
            count += 1
        return count

    def remove_queries(self, prefix: QueryKey = (), exact: bool = False) -> int:
        keys = [k for k in self._entries if _matches(k, prefix, exact)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def cancel_queries(self, prefix: QueryKey = (), exact: bool = False) -> int:
        tasks = [t for k, t in self._in_flight.items() if _matches(k, prefix, exact)]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
        return len(tasks)

    def clear(self) -> None:
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        self._entries.clear()

    # =========================================================================
    # INFINITE QUERIES
    # =========================================================================

    async def fetch_infinite_query(
        self,
        key: QueryKey,
        fn: Callable[[Any], Awaitable[Any]],
        initial_page_param: Any = 1,
        stale_time: float = 0.0,
        retry: RetryPolicy = default_retry,
    ) -> dict[str, list]:
        """First page of a paged query, as ``{"pages": [...], "page_params": [...]}``."""

        async def first_page() -> dict[str, list]:
            page = await fn(initial_page_param)
            return {"pages": [page], "page_params": [initial_page_param]}

        return await self.fetch_query(key, first_page, stale_time=stale_time, retry=retry)

    async def fetch_next_page(
        self,
        key: QueryKey,
        fn: Callable[[Any], Awaitable[Any]],
        get_next_page_param: Callable[[Any], Any],
        retry: RetryPolicy = default_retry,
    ) -> Optional[dict[str, list]]:
        data = self.get_query_data(key)
        if not data or not data["pages"]:
            return data

        next_param = get_next_page_param(data["pages"][-1])
        if next_param is None:
            return data

        failure_count = 0
        while True:
            try:
                page = await fn(next_param)
                break
            except Exception as e:
                if not _should_retry(retry, failure_count, e):
                    raise
                delay = self._retry_delay(failure_count)
                failure_count += 1
                await asyncio.sleep(delay)

        return self.set_query_data(key, lambda old: {
            "pages": [*old["pages"], page],
            "page_params": [*old["page_params"], next_param],
        })

    def has_next_page(self, key: QueryKey, get_next_page_param: Callable[[Any], Any]) -> bool:
        data = self.get_query_data(key)
        if not data or not data["pages"]:
            return False
        return get_next_page_param(data["pages"][-1]) is not None

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def mutate(
        self,
        fn: Callable[[Any], Awaitable[Any]],
        variables: Any = None,
        *,
        on_mutate: Optional[Callable] = None,
        on_success: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
        on_settled: Optional[Callable] = None,
    ) -> Any:
        """
        Run a write.

        ``on_mutate(variables)`` runs first and returns a context (usually a
        snapshot for rollback). Then exactly one of
        ``on_success(result, variables, context)`` or
        ``on_error(error, variables, context)`` runs, followed by
        ``on_settled(result, error, variables, context)``. The original
        error is re-raised after the hooks.
        """
        context = await _resolve(on_mutate(variables)) if on_mutate else None

        try:
            result = await fn(variables)
        except Exception as e:
            if on_error:
                await _resolve(on_error(e, variables, context))
            if on_settled:
                await _resolve(on_settled(None, e, variables, context))
            raise

        if on_success:
            await _resolve(on_success(result, variables, context))
        if on_settled:
            await _resolve(on_settled(result, None, variables, context))
        return result
