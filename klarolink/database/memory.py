"""In-memory mock store.

Used when no database is configured (local development, previews, tests) and
as the opt-in fallback for the PostgreSQL adapter. Seeded with a demo
business so the public page and dashboard have something to show.

WARNING: Does not persist across restarts and does not share state between
multiple application instances.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence, TypeVar

import structlog

from klarolink.core.exceptions import ConflictError
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

T = TypeVar("T")

# bcrypt hash shared by the demo accounts
DEMO_PASSWORD_HASH = "$2a$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/LewdBPj/RK.PqhEIu"


def _seed_businesses(now: datetime) -> list[Business]:
    return [
        Business(
            id=1,
            name="Demo Business",
            email="demo@klarolink.com",
            password_hash=DEMO_PASSWORD_HASH,
            profile_image="/placeholder.svg?height=100&width=100",
            slug="demo-business",
            background_type="color",
            background_value="#6366f1",
            created_at=now,
            updated_at=now,
        ),
        Business(
            id=2,
            name="Acme Restaurant",
            email="contact@acme-restaurant.com",
            password_hash=DEMO_PASSWORD_HASH,
            profile_image="/placeholder.svg?height=100&width=100",
            slug="acme-restaurant",
            background_type="color",
            background_value="#dc2626",
            created_at=now,
            updated_at=now,
        ),
    ]


def _seed_forms(now: datetime) -> list[FeedbackForm]:
    return [
        FeedbackForm(
            id=1,
            business_id=1,
            title="Customer Feedback",
            description="We value your feedback! Please share your experience with us.",
            fields=[
                FormField(id="name", type="text", label="Your Name", required=True,
                          placeholder="Enter your name"),
                FormField(id="email", type="email", label="Email Address", required=False,
                          placeholder="your@email.com"),
                FormField(id="rating", type="rating", label="Overall Rating", required=True),
                FormField(id="feedback", type="textarea", label="Your Feedback", required=True,
                          placeholder="Tell us about your experience..."),
            ],
            is_active=True,
            preview_enabled=False,
            created_at=now,
            updated_at=now,
        ),
    ]


def _seed_social_links(now: datetime) -> list[SocialLink]:
    links = [
        ("website", "https://demo-business.com"),
        ("instagram", "https://instagram.com/demobusiness"),
        ("twitter", "https://twitter.com/demobusiness"),
    ]
    return [
        SocialLink(id=index, business_id=1, platform=platform, url=url,
                   display_order=index, is_active=True, created_at=now)
        for index, (platform, url) in enumerate(links, start=1)
    ]


def _seed_submissions(now: datetime) -> list[FeedbackSubmission]:
    answers = [
        (
            {
                "name": "John Smith",
                "email": "john@example.com",
                "rating": 5,
                "feedback": "Excellent service! Very satisfied with the experience.",
            },
            timedelta(days=2),
        ),
        (
            {
                "name": "Sarah Johnson",
                "email": "sarah@example.com",
                "rating": 4,
                "feedback": "Good overall experience, but there is room for improvement in delivery time.",
            },
            timedelta(days=1),
        ),
        (
            {
                "name": "Mike Wilson",
                "rating": 3,
                "feedback": "Average experience. The product was okay but customer service could be better.",
            },
            timedelta(hours=3),
        ),
    ]
    return [
        FeedbackSubmission(
            id=index,
            business_id=1,
            form_id=1,
            submission_data=data,
            submitted_at=now - age,
            ip_address=f"192.168.1.{index}",
            user_agent="Mozilla/5.0",
        )
        for index, (data, age) in enumerate(answers, start=1)
    ]


def _seed_events(now: datetime) -> list[AnalyticsEvent]:
    return [
        AnalyticsEvent(
            id=1,
            business_id=1,
            event_type="page_view",
            event_data={"page": "feedback_form"},
            created_at=now - timedelta(hours=1),
            ip_address="192.168.1.1",
            user_agent="Mozilla/5.0",
        ),
        AnalyticsEvent(
            id=2,
            business_id=1,
            event_type="form_submit",
            event_data={"form_id": 1, "completion_time": 120},
            created_at=now - timedelta(minutes=30),
            ip_address="192.168.1.2",
            user_agent="Mozilla/5.0",
        ),
    ]


def _next_id(rows: Sequence[Any]) -> int:
    return max((row.id for row in rows), default=0) + 1


def _find(rows: Sequence[T], **criteria: Any) -> Optional[T]:
    for row in rows:
        if all(getattr(row, key) == value for key, value in criteria.items()):
            return row
    return None


class MemoryDatabaseAdapter(DatabaseAdapter):
    """Mock store backed by Python lists of models."""

    backend = "memory"

    def __init__(self, seed: bool = True):
        now = datetime.now(timezone.utc)
        self.businesses: list[Business] = _seed_businesses(now) if seed else []
        self.feedback_forms: list[FeedbackForm] = _seed_forms(now) if seed else []
        self.social_links: list[SocialLink] = _seed_social_links(now) if seed else []
        self.feedback_submissions: list[FeedbackSubmission] = _seed_submissions(now) if seed else []
        self.analytics_events: list[AnalyticsEvent] = _seed_events(now) if seed else []
        self.users: list[User] = []
        self.customers: list[Customer] = []
        self.products: list[Product] = []
        self.product_reviews: list[ProductReview] = []

    # -------------------------------------------------------------------------
    # Businesses
    # -------------------------------------------------------------------------

    async def get_business(self, business_id: int) -> Optional[Business]:
        return _find(self.businesses, id=business_id)

    async def get_business_by_email(self, email: str) -> Optional[Business]:
        return _find(self.businesses, email=email)

    async def get_business_by_slug(self, slug: str) -> Optional[Business]:
        return _find(self.businesses, slug=slug)

    async def create_business(self, data: dict[str, Any]) -> Business:
        if _find(self.businesses, email=data.get("email")):
            raise ConflictError("Business", "email", data.get("email"))
        if _find(self.businesses, slug=data.get("slug")):
            raise ConflictError("Business", "slug", data.get("slug"))

        now = utc_now()
        business = Business(
            **{**data, "id": _next_id(self.businesses), "created_at": now, "updated_at": now}
        )
        self.businesses.append(business)
        logger.debug("mock_business_created", business_id=business.id, slug=business.slug)
        return business

    async def update_business(self, business_id: int, data: dict[str, Any]) -> Optional[Business]:
        for index, business in enumerate(self.businesses):
            if business.id != business_id:
                continue

            new_slug = data.get("slug")
            if new_slug and new_slug != business.slug and _find(self.businesses, slug=new_slug):
                raise ConflictError("Business", "slug", new_slug)

            updated = Business(**{**business.model_dump(), **data, "updated_at": utc_now()})
            self.businesses[index] = updated
            return updated
        return None

    # -------------------------------------------------------------------------
    # Feedback forms
    # -------------------------------------------------------------------------

    async def get_feedback_form(self, business_id: int) -> Optional[FeedbackForm]:
        return _find(self.feedback_forms, business_id=business_id, is_active=True)

    async def update_feedback_form(
        self,
        business_id: int,
        fields: Sequence[FormField],
        title: Optional[str] = None,
        description: Optional[str] = None,
        preview_enabled: Optional[bool] = None,
    ) -> FeedbackForm:
        now = utc_now()
        for index, form in enumerate(self.feedback_forms):
            if form.business_id != business_id:
                continue
            updated = form.model_copy(
                update={
                    "fields": list(fields),
                    "title": title or form.title,
                    "description": description or form.description,
                    "preview_enabled": (
                        preview_enabled if preview_enabled is not None else form.preview_enabled
                    ),
                    "updated_at": now,
                }
            )
            self.feedback_forms[index] = updated
            return updated

        form = FeedbackForm(
            id=_next_id(self.feedback_forms),
            business_id=business_id,
            title=title or DEFAULT_FORM_TITLE,
            description=description or DEFAULT_FORM_DESCRIPTION,
            fields=list(fields),
            is_active=True,
            preview_enabled=bool(preview_enabled),
            created_at=now,
            updated_at=now,
        )
        self.feedback_forms.append(form)
        return form

    # -------------------------------------------------------------------------
    # Social links
    # -------------------------------------------------------------------------

    async def get_social_links(self, business_id: int) -> list[SocialLink]:
        links = [
            link for link in self.social_links
            if link.business_id == business_id and link.is_active
        ]
        return sorted(links, key=lambda link: link.display_order)

    async def update_social_links(
        self, business_id: int, links: Sequence[dict[str, Any]]
    ) -> list[SocialLink]:
        self.social_links = [link for link in self.social_links if link.business_id != business_id]

        next_id = _next_id(self.social_links)
        now = utc_now()
        created = []
        for index, link in enumerate(links):
            social_link = SocialLink(
                id=next_id + index,
                business_id=business_id,
                platform=link["platform"],
                url=link["url"],
                display_order=index,
                is_active=link.get("is_active", True),
                created_at=now,
            )
            self.social_links.append(social_link)
            created.append(social_link)
        return created

    # -------------------------------------------------------------------------
    # Submissions & analytics events
    # -------------------------------------------------------------------------

    async def create_feedback_submission(self, data: dict[str, Any]) -> FeedbackSubmission:
        submission = FeedbackSubmission(
            **{**data, "id": _next_id(self.feedback_submissions), "submitted_at": utc_now()}
        )
        self.feedback_submissions.append(submission)
        return submission

    async def get_feedback_submissions(
        self, business_id: int, limit: Optional[int] = DEFAULT_SUBMISSION_LIMIT
    ) -> list[FeedbackSubmission]:
        submissions = sorted(
            (s for s in self.feedback_submissions if s.business_id == business_id),
            key=lambda s: s.submitted_at,
            reverse=True,
        )
        return submissions if limit is None else submissions[:limit]

    async def create_analytics_event(self, data: dict[str, Any]) -> AnalyticsEvent:
        event = AnalyticsEvent(
            **{**data, "id": _next_id(self.analytics_events), "created_at": utc_now()}
        )
        self.analytics_events.append(event)
        return event

    async def get_analytics_events(self, business_id: int) -> list[AnalyticsEvent]:
        return [e for e in self.analytics_events if e.business_id == business_id]

    # -------------------------------------------------------------------------
    # Users & customers
    # -------------------------------------------------------------------------

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return _find(self.users, email=email)

    async def create_user(self, data: dict[str, Any]) -> User:
        if _find(self.users, email=data.get("email")):
            raise ConflictError("User", "email", data.get("email"))
        user = User(**{**data, "id": _next_id(self.users), "created_at": utc_now()})
        self.users.append(user)
        return user

    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        return _find(self.customers, id=customer_id)

    async def get_customer_by_email(self, email: str, business_id: int) -> Optional[Customer]:
        return _find(self.customers, email=email, business_id=business_id)

    async def create_customer(self, data: dict[str, Any]) -> Customer:
        if _find(self.customers, email=data.get("email"), business_id=data.get("business_id")):
            raise ConflictError("Customer", "email", data.get("email"))
        customer = Customer(
            **{**data, "id": _next_id(self.customers), "registration_date": utc_now()}
        )
        self.customers.append(customer)
        return customer

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    async def get_products(self, business_id: int, enabled_only: bool = False) -> list[Product]:
        products = [
            p for p in self.products
            if p.business_id == business_id and (p.is_enabled or not enabled_only)
        ]
        return sorted(products, key=lambda p: (p.display_order, p.id))

    async def get_product(self, product_id: int) -> Optional[Product]:
        return _find(self.products, id=product_id)

    async def create_product(self, data: dict[str, Any]) -> Product:
        now = utc_now()
        existing = [p for p in self.products if p.business_id == data.get("business_id")]
        product = Product(
            **{
                "display_order": len(existing),
                **data,
                "id": _next_id(self.products),
                "created_at": now,
                "updated_at": now,
            }
        )
        self.products.append(product)
        return product

    async def update_product(self, product_id: int, data: dict[str, Any]) -> Optional[Product]:
        for index, product in enumerate(self.products):
            if product.id == product_id:
                updated = Product(**{**product.model_dump(), **data, "updated_at": utc_now()})
                self.products[index] = updated
                return updated
        return None

    async def reorder_products(self, business_id: int, product_ids: Sequence[int]) -> list[Product]:
        positions = {product_id: index for index, product_id in enumerate(product_ids)}
        for index, product in enumerate(self.products):
            if product.business_id == business_id and product.id in positions:
                self.products[index] = product.model_copy(
                    update={"display_order": positions[product.id], "updated_at": utc_now()}
                )
        return await self.get_products(business_id)

    # -------------------------------------------------------------------------
    # Product reviews
    # -------------------------------------------------------------------------

    async def create_product_review(self, data: dict[str, Any]) -> ProductReview:
        now = utc_now()
        review = ProductReview(
            **{**data, "id": _next_id(self.product_reviews), "created_at": now, "updated_at": now}
        )
        self.product_reviews.append(review)
        return review

    async def get_product_reviews(self, product_id: int) -> list[ProductReview]:
        reviews = [r for r in self.product_reviews if r.product_id == product_id]
        return sorted(reviews, key=lambda r: (r.created_at, r.id), reverse=True)

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def health_check(self) -> bool:
        return True
