"""Pydantic models for KlaroLink core entities."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class FieldCategory(str, Enum):
    """Semantic role of a form field for analytics extraction."""
    RATING = "rating"
    FEEDBACK_TEXT = "feedback_text"
    PERSONAL_INFO = "personal_info"
    CONTACT = "contact"
    DEMOGRAPHIC = "demographic"
    SATISFACTION = "satisfaction"
    RECOMMENDATION = "recommendation"
    CUSTOM = "custom"


class EventType(str, Enum):
    """Analytics events emitted by the public feedback page."""
    PAGE_VIEW = "page_view"
    FORM_VIEW = "form_view"
    FORM_SUBMIT = "form_submit"
    LINK_CLICK = "link_click"


FieldType = Literal["text", "email", "textarea", "rating", "select", "checkbox"]
BackgroundType = Literal["color", "image"]

DEFAULT_SUBMIT_BUTTON_COLOR = "#CC79F0"
DEFAULT_SUBMIT_BUTTON_TEXT_COLOR = "#FDFFFA"
DEFAULT_SUBMIT_BUTTON_HOVER_COLOR = "#3E7EF7"


def utc_now() -> datetime:
    """Timezone-aware current time used for created/updated stamps."""
    return datetime.now(timezone.utc)


# =============================================================================
# Base Models
# =============================================================================


class BaseEntity(BaseModel):
    """Base model with common fields and conversion methods."""

    class Config:
        from_attributes = True
        populate_by_name = True

    def to_db_row(self, exclude: Optional[set[str]] = None) -> dict[str, Any]:
        """Convert model to a JSON-safe row for the database.

        Datetimes become ISO strings and enums their values; ``None`` values
        are dropped so column defaults apply.
        """
        data = self.model_dump(mode="json", exclude=exclude)
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_db_row(cls, row: dict[str, Any]):
        """Create model instance from a database row."""
        return cls.model_validate(row)


# =============================================================================
# Business & Users
# =============================================================================


class Business(BaseEntity):
    """Tenant account owning a feedback page, form and submissions."""

    id: int
    name: str
    email: str
    password_hash: str
    profile_image: Optional[str] = None
    slug: str
    background_type: BackgroundType = "color"
    background_value: str = "#6366f1"
    location: Optional[str] = None
    submit_button_color: str = DEFAULT_SUBMIT_BUTTON_COLOR
    submit_button_text_color: str = DEFAULT_SUBMIT_BUTTON_TEXT_COLOR
    submit_button_hover_color: str = DEFAULT_SUBMIT_BUTTON_HOVER_COLOR
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def public_view(self) -> dict[str, Any]:
        """Fields safe to expose on the public feedback page."""
        return self.model_dump(mode="json", exclude={"password_hash", "email"})


class User(BaseEntity):
    """Platform user account (dashboard login separate from businesses)."""

    id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str
    role: str = "user"
    created_at: datetime = Field(default_factory=utc_now)


class Customer(BaseEntity):
    """End customer registered against a single business."""

    id: int
    business_id: int
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    preferred_contact_method: str = "email"
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    customer_status: str = "active"
    registration_date: datetime = Field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.customer_status == "active"


# =============================================================================
# Feedback Forms
# =============================================================================


class FormField(BaseModel):
    """A single question on a feedback form."""

    id: str = Field(..., min_length=1)
    type: FieldType
    label: str
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[list[str]] = None
    field_category: Optional[FieldCategory] = None


class FeedbackForm(BaseEntity):
    """Ordered list of fields shown to customers on the feedback page."""

    id: int
    business_id: int
    title: str = "Customer Feedback"
    description: Optional[str] = None
    fields: list[FormField] = Field(default_factory=list)
    is_active: bool = True
    preview_enabled: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class SocialLink(BaseEntity):
    """Link shown below the feedback form."""

    id: int
    business_id: int
    platform: str
    url: str
    display_order: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Submissions & Events
# =============================================================================


class FeedbackSubmission(BaseEntity):
    """A customer's answer set keyed by field id."""

    id: int
    business_id: int
    form_id: int
    submission_data: dict[str, Any] = Field(default_factory=dict)
    submitted_at: datetime = Field(default_factory=utc_now)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    customer_id: Optional[int] = None
    product_id: Optional[int] = None


class AnalyticsEvent(BaseEntity):
    """Page interaction recorded for a business."""

    id: int
    business_id: int
    event_type: EventType
    event_data: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utc_now)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# =============================================================================
# Products
# =============================================================================


class Product(BaseEntity):
    """Product a customer can pick when leaving feedback."""

    id: int
    business_id: int
    name: str
    description: Optional[str] = None
    product_image: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    currency: str = "USD"
    display_order: int = 0
    is_enabled: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProductReview(BaseEntity):
    """Star rating and comment left on one product."""

    id: int
    product_id: int
    business_id: int
    customer_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=5)
    comment: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Analytics Aggregates
# =============================================================================


class AnalyticsStats(BaseModel):
    """Headline dashboard numbers for a business."""

    total_feedback: int = 0
    completion_rate: int = 0
    average_rating: float = 0.0
    page_views: int = 0


class CustomerProfile(BaseModel):
    """Per-customer rollup of submissions."""

    id: str
    name: Optional[str] = None
    email: str
    average_rating: float = 0.0
    total_submissions: int = 0
    engagement_score: int = 0
    segments: list[str] = Field(default_factory=list)
    last_submission_at: Optional[datetime] = None


class CustomerSegment(BaseModel):
    """Named group of customer profiles."""

    id: str
    name: str
    description: str
    customer_count: int = 0
