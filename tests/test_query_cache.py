import asyncio

import pytest

from tableserve.client.api import ApiError
from tableserve.client.query_cache import QueryClient, default_retry, default_retry_delay


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queries(clock):
    return QueryClient(retry_delay=lambda failures: 0, clock=clock)


class Counter:
    """Fetcher that fails ``failures`` times before returning its call count."""

    def __init__(self, failures=0, error=None):
        self.calls = 0
        self.failures = failures
        self.error = error or ApiError(500, "boom")

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.calls


class TestRetryPolicy:
    def test_default_retry(self):
        assert default_retry(0, ApiError(500, "x"))
        assert default_retry(1, ApiError(0, "offline"))
        assert not default_retry(2, ApiError(500, "x"))

    @pytest.mark.parametrize("status", [401, 403, 404])
    def test_client_errors_are_not_retried(self, status):
        assert not default_retry(0, ApiError(status, "x"))

    def test_backoff(self):
        assert [default_retry_delay(n) for n in range(7)] == [1, 2, 4, 8, 16, 30, 30]


class TestFetchQuery:
    async def test_retries_transient_failures(self, queries):
        fetcher = Counter(failures=2)
        assert await queries.fetch_query(("orders",), fetcher) == 3

    async def test_gives_up_after_two_retries(self, queries):
        fetcher = Counter(failures=5)
        with pytest.raises(ApiError):
            await queries.fetch_query(("orders",), fetcher)
        assert fetcher.calls == 3
        assert queries.get_error(("orders",)).message == "boom"

    async def test_not_found_is_not_retried(self, queries):
        fetcher = Counter(failures=5, error=ApiError(404, "missing"))
        with pytest.raises(ApiError):
            await queries.fetch_query(("orders", "detail", "x"), fetcher)
        assert fetcher.calls == 1

    async def test_concurrent_fetches_share_one_call(self, queries):
        release = asyncio.Event()
        calls = []

        async def slow():
            calls.append(1)
            await release.wait()
            return "menu"

        first = asyncio.ensure_future(queries.fetch_query(("menus",), slow))
        second = asyncio.ensure_future(queries.fetch_query(("menus",), slow))
        await asyncio.sleep(0)
        assert queries.is_fetching(("menus",))

        release.set()
        assert await asyncio.gather(first, second) == ["menu", "menu"]
        assert len(calls) == 1
        assert not queries.is_fetching(("menus",))

    async def test_cancel_in_flight_fetch(self, queries):
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "data"

        order = asyncio.ensure_future(queries.fetch_query(("orders", "detail", "o1"), slow))
        menu = asyncio.ensure_future(queries.fetch_query(("menus", "detail", "m1"), slow))
        await asyncio.sleep(0)

        assert await queries.cancel_queries(("orders",)) == 1
        assert not queries.is_fetching(("orders", "detail", "o1"))
        with pytest.raises(asyncio.CancelledError):
            await order
        assert queries.get_query_data(("orders", "detail", "o1")) is None

        assert queries.is_fetching(("menus", "detail", "m1"))
        release.set()
        assert await menu == "data"

    async def test_fresh_data_is_served_from_cache(self, queries, clock):
        fetcher = Counter()
        assert await queries.fetch_query(("plans",), fetcher, stale_time=60) == 1
        clock.now += 30
        assert await queries.fetch_query(("plans",), fetcher, stale_time=60) == 1

        clock.now += 31
        assert queries.is_stale(("plans",))
        assert await queries.fetch_query(("plans",), fetcher, stale_time=60) == 2

    async def test_invalidate_by_prefix(self, queries):
        fetcher = Counter()
        await queries.fetch_query(("orders", "list", ()), fetcher, stale_time=60)
        await queries.fetch_query(("orders", "detail", "o1"), fetcher, stale_time=60)
        await queries.fetch_query(("menus", "list", ()), fetcher, stale_time=60)

        assert queries.invalidate_queries(("orders",)) == 2
        assert queries.is_stale(("orders", "detail", "o1"))
        assert not queries.is_stale(("menus", "list", ()))

    async def test_remove_queries(self, queries):
        queries.set_query_data(("orders", "detail", "o1"), {"id": "o1"})
        queries.set_query_data(("orders", "detail", "o2"), {"id": "o2"})
        assert queries.remove_queries(("orders", "detail", "o1"), exact=True) == 1
        assert queries.get_queries_data(("orders",)) == {("orders", "detail", "o2"): {"id": "o2"}}


class TestSetQueryData:
    def test_updater_receives_current_value(self, queries):
        queries.set_query_data(("count",), 1)
        assert queries.set_query_data(("count",), lambda old: old + 1) == 2

    def test_set_queries_data(self, queries):
        queries.set_query_data(("orders", "list", "a"), [1])
        queries.set_query_data(("orders", "list", "b"), [2])
        queries.set_queries_data(("orders", "list"), lambda old: [*old, 0])
        assert queries.get_query_data(("orders", "list", "b")) == [2, 0]


class TestInfiniteQueries:
    async def test_pages_accumulate(self, queries):
        async def page(number):
            return {"data": [number], "has_next_page": number < 2, "page": number}

        def next_param(last):
            return last["page"] + 1 if last["has_next_page"] else None

        key = ("orders", "list", "infinite", ())
        first = await queries.fetch_infinite_query(key, page)
        assert first["page_params"] == [1]
        assert queries.has_next_page(key, next_param)

        second = await queries.fetch_next_page(key, page, next_param)
        assert [p["page"] for p in second["pages"]] == [1, 2]
        assert not queries.has_next_page(key, next_param)
        assert await queries.fetch_next_page(key, page, next_param) == second


class TestMutate:
    async def test_rollback_on_error(self, queries):
        key = ("orders", "detail", "o1")
        queries.set_query_data(key, {"status": "PENDING"})
        settled = []

        def on_mutate(variables):
            previous = queries.get_query_data(key)
            queries.set_query_data(key, {"status": variables})
            return previous

        def on_error(error, variables, previous):
            queries.set_query_data(key, previous)

        async def fail(variables):
            assert queries.get_query_data(key) == {"status": "CONFIRMED"}
            raise ApiError(400, "Cannot change order status")

        with pytest.raises(ApiError):
            await queries.mutate(
                fail,
                "CONFIRMED",
                on_mutate=on_mutate,
                on_error=on_error,
                on_settled=lambda result, error, *_: settled.append((result, error.status_code)),
            )

        assert queries.get_query_data(key) == {"status": "PENDING"}
        assert settled == [(None, 400)]

    async def test_success_hooks(self, queries):
        seen = []

        async def on_success(result, variables, context):
            seen.append((result, variables, context))

        async def double(value):
            return value * 2

        assert await queries.mutate(double, 21, on_mutate=lambda v: "ctx", on_success=on_success) == 42
        assert seen == [(42, 21, "ctx")]
