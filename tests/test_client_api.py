import httpx
import pytest
from httpx import ASGITransport

from tableserve.client import (
    ApiClient,
    ApiError,
    CheckoutFlow,
    OrderService,
    PublicMenuService,
    PublicOrderService,
    QueryClient,
)
from tableserve.client.queries import OrderQueries
from tableserve.main import app


def mock_client(handler, token="secret") -> ApiClient:
    return ApiClient("http://api.test", token=token, transport=httpx.MockTransport(handler))


class TestApiClient:
    async def test_sends_bearer_token_and_params(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["query"] = dict(request.url.params)
            return httpx.Response(200, json={"ok": True})

        async with mock_client(handler) as api:
            assert await api.get("/api/orders", params={"status": "READY", "venue_id": None, "paid": True}) == {
                "ok": True
            }

        assert seen["auth"] == "Bearer secret"
        assert seen["query"] == {"status": "READY", "paid": "true"}

    async def test_public_calls_skip_the_token(self):
        def handler(request):
            assert "Authorization" not in request.headers
            return httpx.Response(204)

        async with mock_client(handler) as api:
            assert await api.delete("/x", auth=False) is None

    async def test_error_detail_becomes_the_message(self):
        def handler(request):
            return httpx.Response(409, json={"success": False, "error": "Conflict", "detail": "Already paid"})

        async with mock_client(handler) as api:
            with pytest.raises(ApiError) as info:
                await api.post("/pay", {})

        assert info.value.status_code == 409
        assert info.value.message == "Already paid"
        assert info.value.data["error"] == "Conflict"

    async def test_validation_errors_are_joined(self):
        def handler(request):
            return httpx.Response(422, json={"detail": [{"msg": "field required"}, {"msg": "too short"}]})

        async with mock_client(handler) as api:
            with pytest.raises(ApiError) as info:
                await api.post("/orders", {})
        assert info.value.message == "field required, too short"

    async def test_non_json_error(self):
        def handler(request):
            return httpx.Response(502, text="<html>bad gateway</html>")

        async with mock_client(handler) as api:
            with pytest.raises(ApiError) as info:
                await api.get("/x")
        assert info.value.status_code == 502
        assert info.value.message == "Bad Gateway"

    async def test_transport_errors_have_status_zero(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as api:
            with pytest.raises(ApiError) as info:
                await api.get("/x")
        assert info.value.is_network_error
        assert info.value.status_code == 0

    async def test_raw_body(self):
        def handler(request):
            return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})

        async with mock_client(handler) as api:
            assert await api.get("/img", raw=True) == b"\x89PNG"


class TestAgainstTheApp:
    """The client services driven against the real application."""

    @pytest.fixture
    def api(self, client, seeded):
        return ApiClient("http://test", token=seeded["token"], transport=ASGITransport(app=app))

    async def test_guest_checkout_then_staff_workflow(self, api, seeded):
        flow = CheckoutFlow(PublicMenuService(api), PublicOrderService(api))
        menu = await flow.load_menu(seeded["slug"], seeded["venue_id"], seeded["table_id"])
        curry = next(i for c in flow.categories for i in c["items"] if i["name"] == "Paneer Curry")
        assert menu["table"]["name"] == "T1"

        flow.add_to_cart(curry, 2)
        confirmed = await flow.place_order({"customer_name": "Alex Guest", "customer_phone": "555-123-4567"})
        assert confirmed is not None, flow.error
        assert confirmed.total_amount == 20.0

        queries = OrderQueries(OrderService(api), QueryClient(), seeded["org_id"])
        order = await queries.detail(confirmed.id)
        assert order["total_amount"] == 21.0
        assert order["source"] == "PUBLIC"

        updated = await queries.update_status(confirmed.id, "CONFIRMED")
        assert updated["status"] == "CONFIRMED"

        with pytest.raises(ApiError) as info:
            await queries.update_status(confirmed.id, "SERVED")
        assert info.value.status_code == 400
        assert queries.cache.get_query_data(("orders", "detail", confirmed.id))["status"] == "CONFIRMED"

        tracked = await flow.track_order()
        assert tracked["status"] == "CONFIRMED"
        await api.aclose()
