"""Unit tests for the Supabase (PostgreSQL) adapter with a mocked client."""

import pytest
from unittest.mock import MagicMock

from klarolink.core.exceptions import ConflictError, DatabaseError
from klarolink.database.memory import MemoryDatabaseAdapter
from klarolink.database.supabase_adapter import SupabaseDatabaseAdapter, _row_to_product
from klarolink.models.schemas import FormField

BUSINESS_ROW = {
    "id": 7,
    "name": "Cafe Luna",
    "email": "hi@luna.cafe",
    "password_hash": "hash",
    "slug": "cafe-luna",
    "background_type": "color",
    "background_value": "#6366f1",
    "created_at": "2026-01-01T00:00:00+00:00",
    "updated_at": "2026-01-01T00:00:00+00:00",
}


class UniqueViolation(Exception):
    """Shape of a PostgREST error for a unique-key violation."""

    code = "23505"
    details = "Key (email)=(hi@luna.cafe) already exists."


def make_query(data=None):
    """Query builder mock whose chained calls all return itself."""
    query = MagicMock()
    for method in ("select", "eq", "in_", "limit", "order", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query


@pytest.fixture
def client():
    """Supabase client mock returning an empty result for any table."""
    client = MagicMock()
    client.table.return_value = make_query()
    return client


class TestReads:
    """Test row mapping on reads."""

    @pytest.mark.asyncio
    async def test_business_by_slug(self, client):
        query = make_query([BUSINESS_ROW])
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)

        business = await db.get_business_by_slug("cafe-luna")

        assert business.id == 7
        assert business.slug == "cafe-luna"
        client.table.assert_called_with("businesses")
        query.eq.assert_called_with("slug", "cafe-luna")

    @pytest.mark.asyncio
    async def test_missing_row_is_none(self, client):
        db = SupabaseDatabaseAdapter(client)

        assert await db.get_business(1) is None
        assert await db.get_feedback_form(1) is None

    @pytest.mark.asyncio
    async def test_submissions_without_limit(self, client):
        query = make_query([])
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)

        await db.get_feedback_submissions(1, limit=None)

        query.order.assert_called_with("submitted_at", desc=True)
        query.limit.assert_not_called()

    def test_active_price_mapped_onto_product(self):
        product = _row_to_product({
            "id": 3,
            "business_id": 7,
            "name": "Latte",
            "product_pricing": [
                {"price": 3.0, "currency": "USD", "is_active": False},
                {"price": 3.5, "currency": "EUR", "is_active": True},
            ],
        })

        assert product.price == 3.5
        assert product.currency == "EUR"

    def test_product_without_pricing(self):
        product = _row_to_product({"id": 3, "business_id": 7, "name": "Latte", "product_pricing": []})

        assert product.price is None
        assert product.currency == "USD"


class TestWrites:
    """Test inserts and updates."""

    @pytest.mark.asyncio
    async def test_create_business_checks_email_first(self, client):
        client.table.return_value = make_query([BUSINESS_ROW])
        db = SupabaseDatabaseAdapter(client)

        with pytest.raises(ConflictError) as exc_info:
            await db.create_business({**BUSINESS_ROW, "id": None})

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_form_created_when_missing(self, client):
        query = make_query([])
        query.execute.side_effect = [
            MagicMock(data=[]),
            MagicMock(data=[{"id": 1, "business_id": 7, "fields": [{"id": "rating", "type": "rating", "label": "Rating"}]}]),
        ]
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)

        form = await db.update_feedback_form(7, [FormField(id="rating", type="rating", label="Rating")])

        assert form.id == 1
        inserted = query.insert.call_args[0][0]
        assert inserted["business_id"] == 7
        assert inserted["preview_enabled"] is False
        assert inserted["fields"] == [{"id": "rating", "type": "rating", "label": "Rating", "required": False}]

    @pytest.mark.asyncio
    async def test_social_links_replaced_in_order(self, client):
        query = make_query()
        query.execute.side_effect = [
            MagicMock(data=[{"id": 1}, {"id": 2}]),
            MagicMock(data=[]),
            MagicMock(data=[]),
        ]
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)

        await db.update_social_links(7, [
            {"platform": "website", "url": "https://luna.cafe"},
            {"platform": "instagram", "url": "https://instagram.com/luna"},
        ])

        rows = query.insert.call_args[0][0]
        assert [row["display_order"] for row in rows] == [0, 1]
        assert all(row["business_id"] == 7 for row in rows)
        query.in_.assert_called_once_with("id", [1, 2])

        calls = [name for name, _, _ in query.method_calls]
        assert calls.index("insert") < calls.index("delete")

    @pytest.mark.asyncio
    async def test_failed_link_insert_keeps_old_links(self, client):
        query = make_query()
        query.execute.side_effect = [
            MagicMock(data=[{"id": 1}]),
            RuntimeError("insert failed"),
        ]
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)

        with pytest.raises(DatabaseError):
            await db.update_social_links(7, [{"platform": "website", "url": "https://luna.cafe"}])

        query.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_price_insert_removes_product(self, client):
        products = make_query()
        products.execute.side_effect = [MagicMock(data=[{"id": 5}]), MagicMock(data=[])]
        pricing = make_query()
        pricing.execute.side_effect = RuntimeError("pricing unavailable")
        client.table.side_effect = lambda name: {"products": products, "product_pricing": pricing}[name]
        db = SupabaseDatabaseAdapter(client)

        with pytest.raises(DatabaseError):
            await db.create_product({"business_id": 7, "name": "Latte", "price": 3.5})

        products.delete.assert_called_once()
        products.eq.assert_called_with("id", 5)


class TestProductReviews:
    """Test product review queries."""

    REVIEW_ROW = {
        "id": 3,
        "product_id": 5,
        "business_id": 7,
        "customer_id": None,
        "rating": 4,
        "comment": "Smooth",
        "created_at": "2026-01-02T00:00:00+00:00",
        "updated_at": "2026-01-02T00:00:00+00:00",
    }

    @pytest.mark.asyncio
    async def test_create(self, client):
        query = make_query([self.REVIEW_ROW])
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)
        data = {"product_id": 5, "business_id": 7, "rating": 4, "comment": "Smooth"}

        review = await db.create_product_review(data)

        assert (review.id, review.rating) == (3, 4)
        client.table.assert_called_with("product_reviews")
        query.insert.assert_called_once_with(data)

    @pytest.mark.asyncio
    async def test_list_newest_first(self, client):
        query = make_query([self.REVIEW_ROW])
        client.table.return_value = query
        db = SupabaseDatabaseAdapter(client)

        reviews = await db.get_product_reviews(5)

        assert [r.comment for r in reviews] == ["Smooth"]
        query.eq.assert_called_with("product_id", 5)
        query.order.assert_called_with("created_at", desc=True)


class TestErrorHandling:
    """Test error translation and mock fallback."""

    @pytest.mark.asyncio
    async def test_query_failure_raises_database_error(self, client):
        client.table.return_value.execute.side_effect = RuntimeError("connection refused")
        db = SupabaseDatabaseAdapter(client)

        with pytest.raises(DatabaseError) as exc_info:
            await db.get_business_by_slug("cafe-luna")

        assert exc_info.value.operation == "get_business_by_slug"

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_conflict(self, client):
        client.table.return_value.execute.side_effect = UniqueViolation("duplicate key")
        db = SupabaseDatabaseAdapter(client)

        with pytest.raises(ConflictError):
            await db.create_analytics_event({"business_id": 1, "event_type": "page_view"})

    @pytest.mark.asyncio
    async def test_fallback_serves_mock_data(self, client):
        client.table.return_value.execute.side_effect = RuntimeError("connection refused")
        db = SupabaseDatabaseAdapter(client, fallback=MemoryDatabaseAdapter())

        business = await db.get_business_by_slug("demo-business")

        assert business.name == "Demo Business"

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        db = SupabaseDatabaseAdapter(client)

        assert await db.health_check() is True

        client.table.return_value.execute.side_effect = RuntimeError("down")

        assert await db.health_check() is False
