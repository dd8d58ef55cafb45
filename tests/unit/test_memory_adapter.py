"""Unit tests for the in-memory database adapter."""

import pytest

from klarolink.core.exceptions import ConflictError, NotFoundError
from klarolink.database import create_database, get_database, reset_database, set_database
from klarolink.database.memory import MemoryDatabaseAdapter
from klarolink.models.schemas import FormField


def business_row(**overrides) -> dict:
    return {
        "name": "Cafe Luna",
        "email": "hi@luna.cafe",
        "password_hash": "hash",
        "slug": "cafe-luna",
        **overrides,
    }


class TestSeedData:
    """Test the demo data the mock store starts with."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter()

    @pytest.mark.asyncio
    async def test_demo_business(self, db):
        business = await db.get_business_by_slug("demo-business")

        assert business.id == 1
        assert business.email == "demo@klarolink.com"
        assert await db.get_business_by_email("contact@acme-restaurant.com") is not None

    @pytest.mark.asyncio
    async def test_demo_stats(self, db):
        stats = await db.get_analytics_stats(1)

        assert stats.total_feedback == 3
        assert stats.page_views == 1
        assert stats.completion_rate == 100
        assert stats.average_rating == 4.0

    @pytest.mark.asyncio
    async def test_demo_profiles(self, db):
        """Mike left no email, so only Sarah and John have profiles."""
        profiles = await db.get_customer_profiles(1)

        assert [p.email for p in profiles] == ["sarah@example.com", "john@example.com"]
        assert profiles[0].name == "Sarah Johnson"
        assert all("promoter" in p.segments for p in profiles)

    @pytest.mark.asyncio
    async def test_demo_insights(self, db):
        insights = await db.get_detailed_insights(1)

        assert insights.total_submissions == 3
        assert [f.field_id for f in insights.field_analytics] == ["name", "email", "rating", "feedback"]

    @pytest.mark.asyncio
    async def test_unseeded_store_is_empty(self):
        db = MemoryDatabaseAdapter(seed=False)

        assert await db.get_business(1) is None
        assert (await db.get_analytics_stats(1)).total_feedback == 0


class TestBusinesses:
    """Test business storage."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter(seed=False)

    @pytest.mark.asyncio
    async def test_create_assigns_id(self, db):
        first = await db.create_business(business_row())
        second = await db.create_business(business_row(email="b@luna.cafe", slug="cafe-luna-2"))

        assert (first.id, second.id) == (1, 2)

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db):
        await db.create_business(business_row())

        with pytest.raises(ConflictError) as exc_info:
            await db.create_business(business_row(slug="other"))

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, db):
        await db.create_business(business_row())

        with pytest.raises(ConflictError) as exc_info:
            await db.create_business(business_row(email="other@luna.cafe"))

        assert exc_info.value.field == "slug"

    @pytest.mark.asyncio
    async def test_update(self, db):
        business = await db.create_business(business_row())

        updated = await db.update_business(business.id, {"location": "Lisbon"})

        assert updated.location == "Lisbon"
        assert (await db.get_business(business.id)).location == "Lisbon"

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, db):
        assert await db.update_business(99, {"name": "Ghost"}) is None


class TestForms:
    """Test feedback form storage."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter()

    @pytest.mark.asyncio
    async def test_update_creates_form(self, db):
        """Acme has no form until one is saved."""
        assert await db.get_feedback_form(2) is None

        form = await db.update_feedback_form(2, [FormField(id="rating", type="rating", label="Rating")])

        assert form.business_id == 2
        assert form.title == "Customer Feedback"
        assert form.description == "We value your feedback!"
        assert form.preview_enabled is False

    @pytest.mark.asyncio
    async def test_update_keeps_title_and_publish_state(self, db):
        await db.set_form_published(1, True)

        form = await db.update_feedback_form(1, [FormField(id="q", type="text", label="Q")])

        assert form.id == 1
        assert form.title == "Customer Feedback"
        assert form.preview_enabled is True
        assert [f.id for f in form.fields] == ["q"]

    @pytest.mark.asyncio
    async def test_publish_keeps_fields(self, db):
        form = await db.set_form_published(1, True)

        assert form.preview_enabled is True
        assert len(form.fields) == 4

    @pytest.mark.asyncio
    async def test_publish_without_form_raises(self, db):
        with pytest.raises(NotFoundError):
            await db.set_form_published(2, True)


class TestSocialLinks:
    """Test social link replacement."""

    @pytest.mark.asyncio
    async def test_replace_sets_display_order(self):
        db = MemoryDatabaseAdapter()

        await db.update_social_links(1, [
            {"platform": "facebook", "url": "https://facebook.com/demo"},
            {"platform": "website", "url": "https://demo.example", "is_active": False},
            {"platform": "tiktok", "url": "https://tiktok.com/@demo"},
        ])
        links = await db.get_social_links(1)

        assert [link.platform for link in links] == ["facebook", "tiktok"]
        assert [link.display_order for link in links] == [0, 2]


class TestSubmissionsAndEvents:
    """Test submission and event storage."""

    @pytest.mark.asyncio
    async def test_submissions_newest_first_with_limit(self):
        db = MemoryDatabaseAdapter()
        new = await db.create_feedback_submission(
            {"business_id": 1, "form_id": 1, "submission_data": {"rating": 2}}
        )

        latest = await db.get_feedback_submissions(1)
        everything = await db.get_feedback_submissions(1, limit=None)
        two = await db.get_feedback_submissions(1, limit=2)

        assert latest[0].id == new.id
        assert len(everything) == 4
        assert len(two) == 2

    @pytest.mark.asyncio
    async def test_events_scoped_to_business(self):
        db = MemoryDatabaseAdapter()
        await db.create_analytics_event({"business_id": 2, "event_type": "page_view"})

        assert len(await db.get_analytics_events(1)) == 2
        assert len(await db.get_analytics_events(2)) == 1


class TestCustomersAndUsers:
    """Test customer and platform user storage."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter()

    @pytest.fixture
    def customer_row(self):
        return {
            "business_id": 1,
            "email": "ana@example.com",
            "password_hash": "hash",
            "first_name": "Ana",
            "last_name": "Silva",
        }

    @pytest.mark.asyncio
    async def test_customer_email_unique_per_business(self, db, customer_row):
        await db.create_customer(customer_row)
        other_business = await db.create_customer({**customer_row, "business_id": 2})

        with pytest.raises(ConflictError):
            await db.create_customer(customer_row)

        assert other_business.business_id == 2
        assert (await db.get_customer_by_email("ana@example.com", 2)).id == other_business.id

    @pytest.mark.asyncio
    async def test_user_email_unique(self, db):
        row = {"email": "u@example.com", "password_hash": "h", "first_name": "U", "last_name": "Ser"}
        await db.create_user(row)

        with pytest.raises(ConflictError):
            await db.create_user(row)


class TestProducts:
    """Test product storage."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter()

    @pytest.mark.asyncio
    async def test_create_appends_display_order(self, db):
        first = await db.create_product({"business_id": 1, "name": "Latte", "price": 3.5})
        second = await db.create_product({"business_id": 1, "name": "Mocha"})

        assert (first.display_order, second.display_order) == (0, 1)
        assert first.price == 3.5
        assert first.currency == "USD"

    @pytest.mark.asyncio
    async def test_enabled_only(self, db):
        await db.create_product({"business_id": 1, "name": "Latte"})
        await db.create_product({"business_id": 1, "name": "Retired", "is_enabled": False})

        assert len(await db.get_products(1)) == 2
        assert [p.name for p in await db.get_products(1, enabled_only=True)] == ["Latte"]

    @pytest.mark.asyncio
    async def test_reorder(self, db):
        latte = await db.create_product({"business_id": 1, "name": "Latte"})
        mocha = await db.create_product({"business_id": 1, "name": "Mocha"})
        tea = await db.create_product({"business_id": 1, "name": "Tea"})

        products = await db.reorder_products(1, [tea.id, latte.id, mocha.id])

        assert [p.name for p in products] == ["Tea", "Latte", "Mocha"]

    @pytest.mark.asyncio
    async def test_update(self, db):
        latte = await db.create_product({"business_id": 1, "name": "Latte"})

        updated = await db.update_product(latte.id, {"price": 4.0, "currency": "EUR"})

        assert (updated.price, updated.currency) == (4.0, "EUR")
        assert await db.update_product(999, {"name": "Ghost"}) is None


class TestProductReviews:
    """Test product review storage."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter()

    @pytest.mark.asyncio
    async def test_newest_first_per_product(self, db):
        latte = await db.create_product({"business_id": 1, "name": "Latte"})
        mocha = await db.create_product({"business_id": 1, "name": "Mocha"})
        first = await db.create_product_review(
            {"product_id": latte.id, "business_id": 1, "rating": 4, "comment": "Smooth"}
        )
        second = await db.create_product_review(
            {"product_id": latte.id, "business_id": 1, "rating": 2, "comment": "Too sweet"}
        )
        await db.create_product_review(
            {"product_id": mocha.id, "business_id": 1, "rating": 5, "comment": "Rich"}
        )

        reviews = await db.get_product_reviews(latte.id)

        assert [r.id for r in reviews] == [second.id, first.id]
        assert first.created_at is not None
        assert first.customer_id is None

    @pytest.mark.asyncio
    async def test_unknown_product_has_no_reviews(self, db):
        assert await db.get_product_reviews(999) == []


class TestIssueAnalysis:
    """Test issue analysis over stored feedback."""

    @pytest.mark.asyncio
    async def test_demo_issues(self):
        """Only Mike's 3-star feedback is negative, and it mentions service."""
        db = MemoryDatabaseAdapter()

        report = await db.get_issue_analysis(1)

        assert report.total_submissions == 3
        assert report.negative_submissions == 1
        assert [(i.key, i.count, i.severity) for i in report.issues] == [("service", 1, "high")]
        assert report.issues[0].recent_submissions[0].submitter == "Mike Wilson"

    @pytest.mark.asyncio
    async def test_empty_store(self):
        db = MemoryDatabaseAdapter(seed=False)

        report = await db.get_issue_analysis(1)

        assert report.issues == []
        assert report.total_submissions == 0


class TestDatabaseFactory:
    """Test adapter selection."""

    def test_memory_without_supabase(self, settings):
        db = create_database(settings)

        assert isinstance(db, MemoryDatabaseAdapter)

    def test_get_database_is_cached(self, settings):
        assert get_database(settings) is get_database(settings)

    def test_set_and_reset(self):
        db = MemoryDatabaseAdapter(seed=False)
        set_database(db)

        assert get_database() is db

        reset_database()

        assert get_database() is not db
