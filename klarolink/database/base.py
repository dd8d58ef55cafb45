"""Database adapter interface.

All storage goes through one async interface so the API can run against the
in-memory mock store or PostgreSQL (via Supabase) unchanged. Lookups return
``None`` or an empty list when nothing matches; failed queries raise
``DatabaseError`` so the two cases never look the same to callers.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from klarolink.analytics.insights import (
    DetailedInsights,
    IssueReport,
    build_customer_profiles,
    build_detailed_insights,
    build_issue_analysis,
    compute_analytics_stats,
)
from klarolink.core.exceptions import NotFoundError
from klarolink.models.schemas import (
    AnalyticsEvent,
    AnalyticsStats,
    Business,
    Customer,
    CustomerProfile,
    FeedbackForm,
    FeedbackSubmission,
    FormField,
    Product,
    ProductReview,
    SocialLink,
    User,
)

DEFAULT_FORM_TITLE = "Customer Feedback"
DEFAULT_FORM_DESCRIPTION = "We value your feedback!"
DEFAULT_SUBMISSION_LIMIT = 5


class DatabaseAdapter(ABC):
    """Storage interface shared by the mock and PostgreSQL backends."""

    backend: str = "abstract"

    # -------------------------------------------------------------------------
    # Businesses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_business(self, business_id: int) -> Optional[Business]:
        ...

    @abstractmethod
    async def get_business_by_email(self, email: str) -> Optional[Business]:
        ...

    @abstractmethod
    async def get_business_by_slug(self, slug: str) -> Optional[Business]:
        ...

    @abstractmethod
    async def create_business(self, data: dict[str, Any]) -> Business:
        """Insert a business. Raises ConflictError on duplicate email or slug."""

    @abstractmethod
    async def update_business(self, business_id: int, data: dict[str, Any]) -> Optional[Business]:
        """Apply a partial update. Returns None when the business does not exist."""

    # -------------------------------------------------------------------------
    # Feedback forms
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_feedback_form(self, business_id: int) -> Optional[FeedbackForm]:
        """The business's active form."""

    @abstractmethod
    async def update_feedback_form(
        self,
        business_id: int,
        fields: Sequence[FormField],
        title: Optional[str] = None,
        description: Optional[str] = None,
        preview_enabled: Optional[bool] = None,
    ) -> FeedbackForm:
        """Replace the active form's fields, creating the form if needed."""

    # -------------------------------------------------------------------------
    # Social links
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_social_links(self, business_id: int) -> list[SocialLink]:
        """Active links ordered by display_order."""

    @abstractmethod
    async def update_social_links(
        self, business_id: int, links: Sequence[dict[str, Any]]
    ) -> list[SocialLink]:
        """Replace all links; display_order follows list position."""

    # -------------------------------------------------------------------------
    # Submissions & analytics events
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_feedback_submission(self, data: dict[str, Any]) -> FeedbackSubmission:
        ...

    @abstractmethod
    async def get_feedback_submissions(
        self, business_id: int, limit: Optional[int] = DEFAULT_SUBMISSION_LIMIT
    ) -> list[FeedbackSubmission]:
        """Newest first. ``limit=None`` returns every submission."""

    @abstractmethod
    async def create_analytics_event(self, data: dict[str, Any]) -> AnalyticsEvent:
        ...

    @abstractmethod
    async def get_analytics_events(self, business_id: int) -> list[AnalyticsEvent]:
        ...

    # -------------------------------------------------------------------------
    # Users & customers
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def create_user(self, data: dict[str, Any]) -> User:
        """Raises ConflictError on duplicate email."""

    @abstractmethod
    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        ...

    @abstractmethod
    async def get_customer_by_email(self, email: str, business_id: int) -> Optional[Customer]:
        ...

    @abstractmethod
    async def create_customer(self, data: dict[str, Any]) -> Customer:
        """Raises ConflictError when the email is already registered with the business."""

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_products(self, business_id: int, enabled_only: bool = False) -> list[Product]:
        """Products ordered by display_order."""

    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[Product]:
        ...

    @abstractmethod
    async def create_product(self, data: dict[str, Any]) -> Product:
        ...

    @abstractmethod
    async def update_product(self, product_id: int, data: dict[str, Any]) -> Optional[Product]:
        ...

    @abstractmethod
    async def reorder_products(self, business_id: int, product_ids: Sequence[int]) -> list[Product]:
        """Set display_order from the given id order."""

    # -------------------------------------------------------------------------
    # Product reviews
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_product_review(self, data: dict[str, Any]) -> ProductReview:
        ...

    @abstractmethod
    async def get_product_reviews(self, product_id: int) -> list[ProductReview]:
        """Newest first."""

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @abstractmethod
    async def health_check(self) -> bool:
        ...

    # -------------------------------------------------------------------------
    # Derived reads
    # -------------------------------------------------------------------------

    async def set_form_published(self, business_id: int, is_published: bool) -> FeedbackForm:
        """Toggle whether the feedback page is live, keeping the current fields."""
        form = await self.get_feedback_form(business_id)
        if form is None:
            raise NotFoundError("FeedbackForm", business_id)
        return await self.update_feedback_form(
            business_id,
            fields=form.fields,
            preview_enabled=is_published,
        )

    async def _form_fields(self, business_id: int) -> list[FormField]:
        form = await self.get_feedback_form(business_id)
        return list(form.fields) if form else []

    async def get_analytics_stats(self, business_id: int) -> AnalyticsStats:
        """Totals, completion rate and average rating for a business."""
        submissions = await self.get_feedback_submissions(business_id, limit=None)
        events = await self.get_analytics_events(business_id)
        fields = await self._form_fields(business_id)
        return compute_analytics_stats(submissions, events, fields)

    async def get_detailed_insights(self, business_id: int) -> DetailedInsights:
        submissions = await self.get_feedback_submissions(business_id, limit=None)
        fields = await self._form_fields(business_id)
        return build_detailed_insights(submissions, fields)

    async def get_customer_profiles(self, business_id: int) -> list[CustomerProfile]:
        submissions = await self.get_feedback_submissions(business_id, limit=None)
        fields = await self._form_fields(business_id)
        return build_customer_profiles(submissions, fields)

    async def get_issue_analysis(self, business_id: int) -> IssueReport:
        """Recurring issues in the business's negative feedback."""
        submissions = await self.get_feedback_submissions(business_id, limit=None)
        fields = await self._form_fields(business_id)
        return build_issue_analysis(submissions, fields)
