"""PostgreSQL store reached through the Supabase client.

Queries use the PostgREST query builder, so every filter value is sent as a
parameter rather than interpolated into SQL.

Failure handling:
    Unique-key violations (Postgres code 23505) become ConflictError. Any other
    failure raises DatabaseError, unless a fallback adapter was supplied
    (DATABASE_FALLBACK_TO_MOCK=true), in which case the same call is answered
    by the mock store and a warning is logged.
"""

import functools
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import structlog
from supabase import Client

from klarolink.core.exceptions import ConflictError, DatabaseError, PermanentError
from klarolink.database.base import (
    DEFAULT_FORM_DESCRIPTION,
    DEFAULT_FORM_TITLE,
    DEFAULT_SUBMISSION_LIMIT,
    DatabaseAdapter,
)
from klarolink.models.schemas import (
    AnalyticsEvent,
    Business,
    Customer,
    FeedbackForm,
    FeedbackSubmission,
    FormField,
    Product,
    ProductReview,
    SocialLink,
    User,
    utc_now,
)

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

UNIQUE_VIOLATION = "23505"
PRODUCT_COLUMNS = {
    "business_id", "name", "description", "product_image",
    "category", "display_order", "is_enabled",
}
PRODUCT_SELECT = "*, product_pricing(price, currency, is_active)"


def _first(rows: Optional[list[dict[str, Any]]]) -> Optional[dict[str, Any]]:
    return rows[0] if rows else None


def _row_to_product(row: dict[str, Any]) -> Product:
    row = dict(row)
    pricing = [p for p in (row.pop("product_pricing", None) or []) if p.get("is_active", True)]
    if pricing:
        row["price"] = pricing[0].get("price")
        row["currency"] = pricing[0].get("currency") or "USD"
    return Product.from_db_row(row)


def db_operation(resource: str) -> Callable[[F], F]:
    """Wrap an adapter method with error translation and optional mock fallback."""

    def decorator(func: F) -> F:
        operation = func.__name__

        @functools.wraps(func)
        async def wrapper(self: "SupabaseDatabaseAdapter", *args: Any, **kwargs: Any) -> Any:
            try:
                return await func(self, *args, **kwargs)
            except (PermanentError, DatabaseError):
                raise
            except Exception as e:
                if getattr(e, "code", None) == UNIQUE_VIOLATION:
                    logger.warning("database_unique_violation", operation=operation, error=str(e))
                    raise ConflictError(resource, "unique key", getattr(e, "details", None)) from e

                logger.error(
                    "database_query_failed",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                if self.fallback is None:
                    raise DatabaseError(operation, str(e)) from e

                logger.warning("database_fallback_to_mock", operation=operation)
                return await getattr(self.fallback, operation)(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


class SupabaseDatabaseAdapter(DatabaseAdapter):
    """DatabaseAdapter backed by Supabase (PostgreSQL)."""

    backend = "supabase"

    def __init__(self, client: Client, fallback: Optional[DatabaseAdapter] = None):
        self.client = client
        self.fallback = fallback

    # -------------------------------------------------------------------------
    # Businesses
    # -------------------------------------------------------------------------

    @db_operation("Business")
    async def get_business(self, business_id: int) -> Optional[Business]:
        result = self.client.table("businesses").select("*").eq("id", business_id).limit(1).execute()
        row = _first(result.data)
        return Business.from_db_row(row) if row else None

    @db_operation("Business")
    async def get_business_by_email(self, email: str) -> Optional[Business]:
        result = self.client.table("businesses").select("*").eq("email", email).limit(1).execute()
        row = _first(result.data)
        return Business.from_db_row(row) if row else None

    @db_operation("Business")
    async def get_business_by_slug(self, slug: str) -> Optional[Business]:
        result = self.client.table("businesses").select("*").eq("slug", slug).limit(1).execute()
        row = _first(result.data)
        return Business.from_db_row(row) if row else None

    @db_operation("Business")
    async def create_business(self, data: dict[str, Any]) -> Business:
        if await self.get_business_by_email(data["email"]):
            raise ConflictError("Business", "email", data["email"])
        if await self.get_business_by_slug(data["slug"]):
            raise ConflictError("Business", "slug", data["slug"])

        result = self.client.table("businesses").insert(data).execute()
        business = Business.from_db_row(result.data[0])
        logger.info("business_created", business_id=business.id, slug=business.slug)
        return business

    @db_operation("Business")
    async def update_business(self, business_id: int, data: dict[str, Any]) -> Optional[Business]:
        if not data:
            return await self.get_business(business_id)

        payload = {**data, "updated_at": utc_now().isoformat()}
        result = self.client.table("businesses").update(payload).eq("id", business_id).execute()
        row = _first(result.data)
        return Business.from_db_row(row) if row else None

    # -------------------------------------------------------------------------
    # Feedback forms
    # -------------------------------------------------------------------------

    @db_operation("FeedbackForm")
    async def get_feedback_form(self, business_id: int) -> Optional[FeedbackForm]:
        result = (
            self.client.table("feedback_forms")
            .select("*")
            .eq("business_id", business_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        row = _first(result.data)
        return FeedbackForm.from_db_row(row) if row else None

    @db_operation("FeedbackForm")
    async def update_feedback_form(
        self,
        business_id: int,
        fields: Sequence[FormField],
        title: Optional[str] = None,
        description: Optional[str] = None,
        preview_enabled: Optional[bool] = None,
    ) -> FeedbackForm:
        field_rows = [f.model_dump(mode="json", exclude_none=True) for f in fields]
        existing = await self.get_feedback_form(business_id)

        if existing:
            payload: dict[str, Any] = {
                "fields": field_rows,
                "title": title or existing.title,
                "description": description or existing.description,
                "updated_at": utc_now().isoformat(),
            }
            if preview_enabled is not None:
                payload["preview_enabled"] = preview_enabled
            result = (
                self.client.table("feedback_forms")
                .update(payload)
                .eq("id", existing.id)
                .execute()
            )
        else:
            result = (
                self.client.table("feedback_forms")
                .insert({
                    "business_id": business_id,
                    "title": title or DEFAULT_FORM_TITLE,
                    "description": description or DEFAULT_FORM_DESCRIPTION,
                    "fields": field_rows,
                    "is_active": True,
                    "preview_enabled": bool(preview_enabled),
                })
                .execute()
            )

        logger.info("feedback_form_saved", business_id=business_id, field_count=len(field_rows))
        return FeedbackForm.from_db_row(result.data[0])

    # -------------------------------------------------------------------------
    # Social links
    # -------------------------------------------------------------------------

    @db_operation("SocialLink")
    async def get_social_links(self, business_id: int) -> list[SocialLink]:
        result = (
            self.client.table("social_links")
            .select("*")
            .eq("business_id", business_id)
            .eq("is_active", True)
            .order("display_order")
            .execute()
        )
        return [SocialLink.from_db_row(row) for row in (result.data or [])]

    @db_operation("SocialLink")
    async def update_social_links(
        self, business_id: int, links: Sequence[dict[str, Any]]
    ) -> list[SocialLink]:
        """Replace a business's links.

        New rows go in before the old ones are deleted, so a failed insert
        leaves the previous links untouched.
        """
        existing = (
            self.client.table("social_links")
            .select("id")
            .eq("business_id", business_id)
            .execute()
        )
        old_ids = [row["id"] for row in (existing.data or [])]

        created: list[SocialLink] = []
        if links:
            rows = [
                {
                    "business_id": business_id,
                    "platform": link["platform"],
                    "url": link["url"],
                    "display_order": index,
                    "is_active": link.get("is_active", True),
                }
                for index, link in enumerate(links)
            ]
            result = self.client.table("social_links").insert(rows).execute()
            created = [SocialLink.from_db_row(row) for row in (result.data or [])]

        if old_ids:
            self.client.table("social_links").delete().in_("id", old_ids).execute()
        return created

    # -------------------------------------------------------------------------
    # Submissions & analytics events
    # -------------------------------------------------------------------------

    @db_operation("FeedbackSubmission")
    async def create_feedback_submission(self, data: dict[str, Any]) -> FeedbackSubmission:
        result = self.client.table("feedback_submissions").insert(data).execute()
        return FeedbackSubmission.from_db_row(result.data[0])

    @db_operation("FeedbackSubmission")
    async def get_feedback_submissions(
        self, business_id: int, limit: Optional[int] = DEFAULT_SUBMISSION_LIMIT
    ) -> list[FeedbackSubmission]:
        query = (
            self.client.table("feedback_submissions")
            .select("*")
            .eq("business_id", business_id)
            .order("submitted_at", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        result = query.execute()
        return [FeedbackSubmission.from_db_row(row) for row in (result.data or [])]

    @db_operation("AnalyticsEvent")
    async def create_analytics_event(self, data: dict[str, Any]) -> AnalyticsEvent:
        result = self.client.table("analytics_events").insert(data).execute()
        return AnalyticsEvent.from_db_row(result.data[0])

    @db_operation("AnalyticsEvent")
    async def get_analytics_events(self, business_id: int) -> list[AnalyticsEvent]:
        result = (
            self.client.table("analytics_events")
            .select("*")
            .eq("business_id", business_id)
            .execute()
        )
        return [AnalyticsEvent.from_db_row(row) for row in (result.data or [])]

    # -------------------------------------------------------------------------
    # Users & customers
    # -------------------------------------------------------------------------

    @db_operation("User")
    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = self.client.table("users").select("*").eq("email", email).limit(1).execute()
        row = _first(result.data)
        return User.from_db_row(row) if row else None

    @db_operation("User")
    async def create_user(self, data: dict[str, Any]) -> User:
        if await self.get_user_by_email(data["email"]):
            raise ConflictError("User", "email", data["email"])
        result = self.client.table("users").insert(data).execute()
        return User.from_db_row(result.data[0])

    @db_operation("Customer")
    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        result = self.client.table("customers").select("*").eq("id", customer_id).limit(1).execute()
        row = _first(result.data)
        return Customer.from_db_row(row) if row else None

    @db_operation("Customer")
    async def get_customer_by_email(self, email: str, business_id: int) -> Optional[Customer]:
        result = (
            self.client.table("customers")
            .select("*")
            .eq("email", email)
            .eq("business_id", business_id)
            .limit(1)
            .execute()
        )
        row = _first(result.data)
        return Customer.from_db_row(row) if row else None

    @db_operation("Customer")
    async def create_customer(self, data: dict[str, Any]) -> Customer:
        if await self.get_customer_by_email(data["email"], data["business_id"]):
            raise ConflictError("Customer", "email", data["email"])
        result = self.client.table("customers").insert(data).execute()
        return Customer.from_db_row(result.data[0])

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    @db_operation("Product")
    async def get_products(self, business_id: int, enabled_only: bool = False) -> list[Product]:
        query = self.client.table("products").select(PRODUCT_SELECT).eq("business_id", business_id)
        if enabled_only:
            query = query.eq("is_enabled", True)
        result = query.order("display_order").execute()
        return [_row_to_product(row) for row in (result.data or [])]

    @db_operation("Product")
    async def get_product(self, product_id: int) -> Optional[Product]:
        result = (
            self.client.table("products")
            .select(PRODUCT_SELECT)
            .eq("id", product_id)
            .limit(1)
            .execute()
        )
        row = _first(result.data)
        return _row_to_product(row) if row else None

    def _insert_price(self, product_id: int, price: float, currency: str) -> None:
        self.client.table("product_pricing").insert({
            "product_id": product_id,
            "price": price,
            "currency": currency,
            "is_active": True,
        }).execute()

    @db_operation("Product")
    async def create_product(self, data: dict[str, Any]) -> Product:
        """Insert a product and its price; the product row is removed if pricing fails."""
        row = {key: value for key, value in data.items() if key in PRODUCT_COLUMNS}
        result = self.client.table("products").insert(row).execute()
        product_id = result.data[0]["id"]

        if data.get("price") is not None:
            try:
                self._insert_price(product_id, data["price"], data.get("currency") or "USD")
            except Exception:
                logger.warning("product_create_rolled_back", product_id=product_id)
                self.client.table("products").delete().eq("id", product_id).execute()
                raise

        logger.info("product_created", product_id=product_id, business_id=data.get("business_id"))
        return await self.get_product(product_id)

    @db_operation("Product")
    async def update_product(self, product_id: int, data: dict[str, Any]) -> Optional[Product]:
        row = {key: value for key, value in data.items() if key in PRODUCT_COLUMNS}
        row["updated_at"] = utc_now().isoformat()
        result = self.client.table("products").update(row).eq("id", product_id).execute()
        if not result.data:
            return None

        if "price" in data:
            self.client.table("product_pricing").update({"is_active": False}).eq(
                "product_id", product_id
            ).execute()
            if data["price"] is not None:
                self._insert_price(product_id, data["price"], data.get("currency") or "USD")

        return await self.get_product(product_id)

    @db_operation("Product")
    async def reorder_products(self, business_id: int, product_ids: Sequence[int]) -> list[Product]:
        for index, product_id in enumerate(product_ids):
            (
                self.client.table("products")
                .update({"display_order": index})
                .eq("id", product_id)
                .eq("business_id", business_id)
                .execute()
            )
        return await self.get_products(business_id)

    # -------------------------------------------------------------------------
    # Product reviews
    # -------------------------------------------------------------------------

    @db_operation("ProductReview")
    async def create_product_review(self, data: dict[str, Any]) -> ProductReview:
        result = self.client.table("product_reviews").insert(data).execute()
        review = ProductReview.from_db_row(result.data[0])
        logger.info("product_review_created", review_id=review.id, product_id=review.product_id)
        return review

    @db_operation("ProductReview")
    async def get_product_reviews(self, product_id: int) -> list[ProductReview]:
        result = (
            self.client.table("product_reviews")
            .select("*")
            .eq("product_id", product_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [ProductReview.from_db_row(row) for row in (result.data or [])]

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def health_check(self) -> bool:
        try:
            self.client.table("businesses").select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.error("supabase_health_check_failed", error=str(e))
            return False
