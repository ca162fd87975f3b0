"""Integration tests for PostgrestOrderStore against a mocked PostgREST backend."""

import json
from datetime import UTC, datetime
from decimal import Decimal

import httpx
import pytest
from ordering.errors import OrderNotFound, TransientFetchError
from ordering.store.base import OrderCodeTaken
from ordering.store.postgrest import ORDER_COLUMNS, PostgrestOrderStore
from ordering.store.records import OrderHeader, OrderLineDraft, VariationSnapshotRecord
from ordering.tracking.tracker import OrderTracker
from protean.exceptions import ValidationError
from shared.postgrest import PostgrestClient

ORDER_ROW = {
    "id": "8f14e45f-ceea-4d6a-9a2c-6b3f4c1a0001",
    "order_code": "LX2K9A1B-7QF3ZP0M",
    "customer_id": "2b1c0a4e-1111-4c2d-8e3f-000000000001",
    "status": "preparing",
    "total_price": 33.49,
    "ordering_location_id": 7,
    "hospitality_center_id": 1,
    "merchant_id": 10,
    "instructions": None,
    "payment_method": None,
    "ordered_at": "2026-07-01T12:00:00+00:00",
    "user_rating": None,
    "user_feedback": None,
    "tip": None,
    "merchant": {"id": 10, "name": "Pool Bar", "image_url": None},
    "ordering_location": {"id": 7, "name": "Cabana 7", "type": "cabana"},
    "hospitality_center": {"id": 1, "name": "Azure Bay Resort"},
    "order_products": [
        {
            "id": 41,
            "order_id": "8f14e45f-ceea-4d6a-9a2c-6b3f4c1a0001",
            "product_id": 102,
            "quantity": 1,
            "price": 12.49,
            "customizations": "less ice",
            "product_variation_json": {"id": 501, "name": "Large", "price": 2.5},
            "product": {"name": "Daiquiri"},
        }
    ],
}


class Backend:
    """Records requests and answers them from a queue of (status, body) pairs."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.pop(0)
        return httpx.Response(status, json=body)


def _store(backend):
    client = PostgrestClient("https://backend.test", "anon-key", transport=httpx.MockTransport(backend))
    return PostgrestOrderStore(client)


def _header():
    return OrderHeader(
        order_code="LX2K9A1B-7QF3ZP0M",
        customer_id="2b1c0a4e-1111-4c2d-8e3f-000000000001",
        ordering_location_id=7,
        total_price=Decimal("33.49"),
        hospitality_center_id="1",
        merchant_id="10",
        ordered_at=datetime(2026, 7, 1, 12, 0, tzinfo=UTC),
    )


class TestReads:
    @pytest.mark.asyncio
    async def test_get_order_maps_nested_rows(self):
        backend = Backend((200, [ORDER_ROW]))

        record = await _store(backend).get_order(ORDER_ROW["id"])

        assert record.status == "preparing"
        assert record.total_price == Decimal("33.49")
        assert record.merchant_id == "10"
        assert record.venue.name == "Pool Bar"
        assert record.location.kind == "cabana"
        assert record.hospitality_center.name == "Azure Bay Resort"
        line = record.lines[0]
        assert line.name == "Daiquiri"
        assert line.customization_note == "less ice"
        assert line.variation.price == Decimal("2.50")

        request = backend.requests[0]
        assert request.url.path == "/rest/v1/order"
        assert request.url.params["id"] == f"eq.{ORDER_ROW['id']}"
        assert request.url.params["select"] == ORDER_COLUMNS
        assert request.headers["apikey"] == "anon-key"

    @pytest.mark.asyncio
    async def test_no_rows_is_not_found(self):
        with pytest.raises(OrderNotFound):
            await _store(Backend((200, []))).get_order("missing")

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        with pytest.raises(TransientFetchError):
            await _store(Backend((503, {"message": "unavailable"}))).get_order("any")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, body",
        [
            (400, {"code": "22P02", "message": 'invalid input syntax for type uuid: "abc"'}),
            (401, {"code": "PGRST301", "message": "JWT expired"}),
            (403, {"code": "42501", "message": "permission denied for table order"}),
        ],
        ids=["malformed_id", "expired_token", "row_level_security"],
    )
    async def test_unreadable_order_is_not_found(self, status, body):
        with pytest.raises(OrderNotFound):
            await _store(Backend((status, body))).get_order("abc")

    @pytest.mark.asyncio
    async def test_other_rejections_are_fetch_errors(self):
        backend = Backend((400, {"code": "PGRST100", "message": "failed to parse filter"}))

        with pytest.raises(TransientFetchError):
            await _store(backend).get_order(ORDER_ROW["id"])

    @pytest.mark.asyncio
    async def test_unreadable_customer_has_no_orders(self):
        backend = Backend((400, {"code": "22P02", "message": "invalid input syntax for type uuid"}))
        assert await _store(backend).list_orders_by_customer("not-a-uuid") == []

    @pytest.mark.asyncio
    async def test_tracker_reports_malformed_id_as_not_found(self):
        tracker = OrderTracker(_store(Backend((400, {"code": "22P02", "message": "bad uuid"}))))

        with pytest.raises(OrderNotFound):
            await tracker.fetch("abc")

    @pytest.mark.asyncio
    async def test_subscription_ends_typed_when_token_expires(self):
        backend = Backend((200, [ORDER_ROW]), (401, {"code": "PGRST301", "message": "JWT expired"}))

        async def no_sleep(delay):
            return None

        tracker = OrderTracker(_store(backend), sleep=no_sleep)
        seen = []

        with pytest.raises(OrderNotFound):
            async for record in tracker.subscribe(ORDER_ROW["id"]):
                seen.append(record.status)

        assert seen == ["preparing"]

    @pytest.mark.asyncio
    async def test_subscription_survives_rejected_request(self):
        rejected = (400, {"code": "PGRST100", "message": "failed to parse filter"})
        delivered = dict(ORDER_ROW, status="delivered")
        backend = Backend(rejected, rejected, (200, [delivered]))

        async def no_sleep(delay):
            return None

        errors = []
        tracker = OrderTracker(_store(backend), max_fetch_attempts=2, sleep=no_sleep)

        seen = [record.status async for record in tracker.subscribe(ORDER_ROW["id"], on_error=errors.append)]

        assert seen == ["delivered"]
        assert len(errors) == 1
        assert isinstance(errors[0], TransientFetchError)

    @pytest.mark.asyncio
    async def test_unknown_status_passes_through(self):
        row = dict(ORDER_ROW, status="status_2")

        record = await _store(Backend((200, [row]))).get_order(row["id"])

        assert record.status_display.is_unknown

    @pytest.mark.asyncio
    async def test_list_orders_by_customer(self):
        backend = Backend((200, [ORDER_ROW, dict(ORDER_ROW, id="other", status="delivered")]))

        records = await _store(backend).list_orders_by_customer(ORDER_ROW["customer_id"])

        assert [r.id for r in records] == [ORDER_ROW["id"], "other"]
        assert backend.requests[0].url.params["order"] == "ordered_at.desc"


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_order(self):
        row = dict(ORDER_ROW, status="received", order_products=[])
        backend = Backend((201, [row]))

        record = await _store(backend).create_order(_header())

        assert record.id == ORDER_ROW["id"]
        assert record.is_being_created
        payload = json.loads(backend.requests[0].content)
        assert payload["order_code"] == "LX2K9A1B-7QF3ZP0M"
        assert payload["status"] == "received"
        assert payload["total_price"] == 33.49
        assert backend.requests[0].headers["Prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_unique_violation_is_code_taken(self):
        backend = Backend((409, {"code": "23505", "message": "duplicate key value"}))

        with pytest.raises(OrderCodeTaken):
            await _store(backend).create_order(_header())

    @pytest.mark.asyncio
    async def test_create_lines_in_one_call(self):
        backend = Backend((201, ORDER_ROW["order_products"]))
        drafts = [
            OrderLineDraft(
                product_id="102",
                quantity=1,
                price=Decimal("12.49"),
                customization_note="less ice",
                variation=VariationSnapshotRecord(variation_id="501", name="Large", price=Decimal("2.50")),
            )
        ]

        lines = await _store(backend).create_order_lines(ORDER_ROW["id"], drafts)

        assert len(backend.requests) == 1
        payload = json.loads(backend.requests[0].content)
        assert payload == [
            {
                "order_id": ORDER_ROW["id"],
                "product_id": "102",
                "quantity": 1,
                "price": 12.49,
                "customizations": "less ice",
                "product_variation_json": {"id": "501", "name": "Large", "price": 2.5},
            }
        ]
        assert lines[0].id == "41"

    @pytest.mark.asyncio
    async def test_update_status(self):
        backend = Backend((200, [{"id": ORDER_ROW["id"]}]), (200, [dict(ORDER_ROW, status="on-delivery")]))

        record = await _store(backend).update_order_status(ORDER_ROW["id"], "delivering")

        assert json.loads(backend.requests[0].content) == {"status": "on-delivery"}
        assert record.status == "on-delivery"

    @pytest.mark.asyncio
    async def test_update_unknown_status_sends_nothing(self):
        backend = Backend()

        with pytest.raises(ValidationError):
            await _store(backend).update_order_status(ORDER_ROW["id"], "teleported")
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_feedback_is_guarded_by_filters(self):
        delivered = dict(ORDER_ROW, status="delivered", user_rating=5, tip=3.0)
        backend = Backend((200, [{"id": ORDER_ROW["id"]}]), (200, [delivered]))

        record = await _store(backend).record_feedback(ORDER_ROW["id"], 5, tip=Decimal("3"))

        params = backend.requests[0].url.params
        assert params["status"] == "eq.delivered"
        assert params["user_rating"] == "is.null"
        assert record.rating == 5
        assert record.tip == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_feedback_twice_is_rejected(self):
        rated = dict(ORDER_ROW, status="delivered", user_rating=4)
        backend = Backend((200, []), (200, [rated]))

        with pytest.raises(ValidationError) as exc:
            await _store(backend).record_feedback(ORDER_ROW["id"], 5)
        assert "feedback" in exc.value.messages

    @pytest.mark.asyncio
    async def test_feedback_before_delivery_is_rejected(self):
        backend = Backend((200, []), (200, [ORDER_ROW]))

        with pytest.raises(ValidationError) as exc:
            await _store(backend).record_feedback(ORDER_ROW["id"], 5)
        assert "status" in exc.value.messages
