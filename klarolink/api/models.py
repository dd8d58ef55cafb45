"""Pydantic models for API requests and responses.

This module defines all the request/response schemas for the KlaroLink API.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from klarolink.analytics.insights import AudienceOverview, DetailedInsights, RecentSubmission
from klarolink.models.schemas import (
    AnalyticsStats,
    BackgroundType,
    CustomerProfile,
    CustomerSegment,
    EventType,
    FeedbackForm,
    FormField,
    Product,
    ProductReview,
    SocialLink,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Business Models
# =============================================================================


class BusinessResponse(BaseModel):
    """A business as returned to its owner (never includes the password hash)."""

    id: int = Field(..., description="Business ID")
    name: str = Field(..., description="Business name")
    email: str = Field(..., description="Login email")
    slug: str = Field(..., description="Public page slug")
    profile_image: Optional[str] = Field(None, description="Logo URL")
    background_type: BackgroundType = Field(..., description="Page background kind")
    background_value: str = Field(..., description="Hex colour or image URL")
    location: Optional[str] = Field(None, description="Business location")
    submit_button_color: Optional[str] = Field(None, description="Submit button colour")
    submit_button_text_color: Optional[str] = Field(None, description="Submit button text colour")
    submit_button_hover_color: Optional[str] = Field(None, description="Submit button hover colour")
    created_at: Optional[datetime] = Field(None, description="Registration time")

    class Config:
        from_attributes = True


class PublicBusiness(BaseModel):
    """Business fields shown on the public feedback page."""

    id: int
    name: str
    slug: str
    profile_image: Optional[str] = None
    background_type: BackgroundType
    background_value: str
    location: Optional[str] = None
    submit_button_color: Optional[str] = None
    submit_button_text_color: Optional[str] = None
    submit_button_hover_color: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# Auth Models
# =============================================================================


class RegisterBusinessRequest(BaseModel):
    """Request model for registering a business."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Business name (the page slug is derived from it)",
        json_schema_extra={"example": "Cafe Luna"},
    )
    email: EmailStr = Field(
        ...,
        description="Login email",
        json_schema_extra={"example": "owner@cafeluna.com"},
    )
    password: str = Field(..., description="At least 6 characters")
    profile_image: Optional[str] = Field(None, description="Logo URL")


class LoginRequest(BaseModel):
    """Request model for business login."""

    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Password")


class AuthResponse(BaseModel):
    """Token issued on business registration or login."""

    message: str = Field(..., description="Outcome message")
    token: str = Field(..., description="Bearer token for dashboard endpoints")
    business: BusinessResponse = Field(..., description="The authenticated business")


class RegisterUserRequest(BaseModel):
    """Request model for registering a platform user."""

    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., description="At least 6 characters")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    """A platform user (no password hash)."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: str

    class Config:
        from_attributes = True


class RegisterCustomerRequest(BaseModel):
    """Request model for registering a customer with a business."""

    business_slug: str = Field(..., min_length=1, description="Slug of the business page")
    email: EmailStr = Field(..., description="Customer email")
    password: str = Field(..., description="At least 6 characters")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    preferred_contact_method: Literal["email", "phone", "sms"] = Field(
        default="email",
        description="How the business should reach the customer",
    )
    address: Optional[str] = None
    date_of_birth: Optional[str] = Field(None, description="ISO date")
    gender: Optional[str] = None


class CustomerLoginRequest(BaseModel):
    """Request model for customer login."""

    business_slug: str = Field(..., description="Slug of the business page")
    email: str = Field(..., description="Customer email")
    password: str = Field(..., description="Password")


class CustomerResponse(BaseModel):
    """A customer (no password hash)."""

    id: int
    business_id: int
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    preferred_contact_method: str
    customer_status: str

    class Config:
        from_attributes = True


class UserRegisteredResponse(BaseModel):
    """Acknowledgement for a new platform user."""

    message: str
    user: UserResponse


class CustomerRegisteredResponse(BaseModel):
    """Acknowledgement for a new customer."""

    message: str
    customer: CustomerResponse


class CustomerAuthResponse(BaseModel):
    """Customer token plus the business the customer belongs to."""

    message: str
    token: str
    customer: CustomerResponse
    business: PublicBusiness


# =============================================================================
# Public Page Models
# =============================================================================


class PageResponse(BaseModel):
    """Everything the public feedback page needs to render."""

    business: PublicBusiness = Field(..., description="Business branding")
    form_title: str = Field(..., description="Form heading")
    form_description: Optional[str] = Field(None, description="Form subheading")
    form_fields: list[FormField] = Field(default_factory=list, description="Ordered questions")
    social_links: list[SocialLink] = Field(default_factory=list, description="Active links")
    products: list[Product] = Field(default_factory=list, description="Enabled products")
    is_published: bool = Field(..., description="Whether the page accepts feedback")


class AnalyticsEventRequest(BaseModel):
    """Analytics ping from the public page."""

    event_type: EventType = Field(..., description="Kind of interaction")
    event_data: Optional[dict[str, Any]] = Field(None, description="Free-form context")


class FeedbackSubmitRequest(BaseModel):
    """A customer's answers keyed by form field id."""

    form_data: dict[str, Any] = Field(
        ...,
        description="Answers keyed by field id",
        json_schema_extra={"example": {"rating": 5, "feedback": "Great coffee!"}},
    )
    product_id: Optional[int] = Field(None, description="Product the feedback is about")


class SubmissionResponse(BaseModel):
    """Acknowledgement for a stored submission."""

    message: str
    submission_id: int


class MessageResponse(BaseModel):
    """Simple acknowledgement."""

    message: str


# =============================================================================
# Dashboard Models
# =============================================================================


class DashboardStats(AnalyticsStats):
    """Headline stats plus the latest submissions."""

    recent_feedback: list[RecentSubmission] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    """Overview tab payload."""

    business: BusinessResponse
    stats: DashboardStats
    social_links: list[SocialLink] = Field(default_factory=list)
    form: Optional[FeedbackForm] = None


class InsightsResponse(BaseModel):
    """Insights tab payload."""

    insights: DetailedInsights
    stats: AnalyticsStats


class AudienceResponse(BaseModel):
    """Audience tab payload."""

    customer_profiles: list[CustomerProfile] = Field(default_factory=list)
    customer_segments: list[CustomerSegment] = Field(default_factory=list)
    overview_stats: AudienceOverview


class AIInsightsResponse(BaseModel):
    """AI-generated report for the business's feedback."""

    insights: dict[str, Any] = Field(..., description="Structured analysis")
    generated_at: datetime = Field(..., description="When the report was generated")
    submission_count: int = Field(..., description="Submissions analysed")
    cached: bool = Field(..., description="Served from cache")


# =============================================================================
# Form Models
# =============================================================================


class FormUpdateRequest(BaseModel):
    """Replace the business's form fields."""

    business_id: Optional[int] = Field(None, description="Must match the token when given")
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    fields: list[FormField] = Field(..., description="Ordered questions")
    preview_enabled: Optional[bool] = Field(None, description="Publish the page")


class FormResponse(BaseModel):
    """The business's form (null when none exists yet)."""

    form: Optional[FeedbackForm] = None


class FormPublishRequest(BaseModel):
    """Toggle whether the feedback page is live."""

    business_id: Optional[int] = Field(None, description="Must match the token when given")
    is_published: bool = Field(..., description="New published state")


class FormSaveResponse(BaseModel):
    """The saved form with its fields tagged by category."""

    message: str
    form: FeedbackForm


class FormPublishResponse(BaseModel):
    """Outcome of a publish toggle."""

    message: str
    form_id: int
    is_published: bool


class FormStatusResponse(BaseModel):
    """Published state of a business's feedback page."""

    business_id: int
    is_published: bool


# =============================================================================
# Product Models
# =============================================================================


class ProductCreateRequest(BaseModel):
    """Request model for adding a product."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    product_image: Optional[str] = Field(None, description="Image URL")
    category: Optional[str] = Field(None, max_length=100)
    price: Optional[float] = Field(None, ge=0, description="Current price")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    is_enabled: bool = Field(default=True, description="Show on the feedback page")


class ProductUpdateRequest(BaseModel):
    """Request model for updating a product; omitted fields are unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    product_image: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_enabled: Optional[bool] = None


class ProductReorderRequest(BaseModel):
    """Product ids in their new display order."""

    product_ids: list[int] = Field(..., min_length=1)


class ProductListResponse(BaseModel):
    """Response model for listing products."""

    products: list[Product] = Field(..., description="Products ordered by display_order")
    total: int = Field(..., description="Number of products returned")


class ProductReviewCreateRequest(BaseModel):
    """A customer's review of one product."""

    rating: int = Field(..., ge=1, le=5, description="Stars from 1 to 5")
    comment: str = Field(
        ...,
        max_length=5000,
        description="What the customer thought of the product",
        json_schema_extra={"example": "Smooth and not too sweet"},
    )


class ProductReviewListResponse(BaseModel):
    """Reviews for a product, newest first."""

    product_id: int
    product_name: str
    reviews: list[ProductReview] = Field(default_factory=list)
    total: int = Field(..., description="Number of reviews")
    average_rating: float = Field(..., description="Mean stars, one decimal (0 when unreviewed)")


# =============================================================================
# Profile & Customization Models
# =============================================================================


class ProfileUpdateRequest(BaseModel):
    """Update basic business details."""

    name: str = Field(..., description="Business name")
    profile_image: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)


class SocialLinkInput(BaseModel):
    """A social link as edited on the profile screen."""

    platform: str = Field(..., min_length=1, max_length=50)
    url: str = Field(..., min_length=1)
    is_active: bool = True


class SocialLinksUpdateRequest(BaseModel):
    """Replace all social links (display order follows list order)."""

    social_links: list[SocialLinkInput] = Field(default_factory=list)


class SocialLinksResponse(BaseModel):
    """Stored social links."""

    social_links: list[SocialLink]


class BackgroundUpdateRequest(BaseModel):
    """Set the feedback page background."""

    background_type: BackgroundType
    background_value: str = Field(..., min_length=1)


class ButtonCustomizationRequest(BaseModel):
    """Submit button colours; omitted colours are unchanged."""

    submit_button_color: Optional[str] = Field(None, description="Hex colour, e.g. #CC79F0")
    submit_button_text_color: Optional[str] = Field(None, description="Hex colour")
    submit_button_hover_color: Optional[str] = Field(None, description="Hex colour")


class ButtonCustomization(BaseModel):
    """A business's current submit button colours."""

    id: int
    name: str
    submit_button_color: str
    submit_button_text_color: str
    submit_button_hover_color: str

    class Config:
        from_attributes = True


class ButtonCustomizationResponse(BaseModel):
    """Outcome of a button restyle."""

    message: str
    business: ButtonCustomization


class CustomizeRequest(BaseModel):
    """Save background, form fields and social links in one call."""

    form_fields: list[FormField] = Field(default_factory=list)
    social_links: list[SocialLinkInput] = Field(default_factory=list)
    background_type: BackgroundType = "color"
    background_color: Optional[str] = None
    background_image: Optional[str] = None


class CustomizeResponse(BaseModel):
    """Current page customisation."""

    form_fields: list[FormField] = Field(default_factory=list)
    social_links: list[SocialLink] = Field(default_factory=list)
    background_type: BackgroundType
    background_color: str = Field(..., description="Hex colour (default colour when an image is used)")
    background_image: str = Field(default="", description="Image URL when background_type is image")


# =============================================================================
# Health Check Models
# =============================================================================


class HealthStatus(BaseModel):
    """Individual service health status."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Service status"
    )
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    message: Optional[str] = Field(None, description="Additional status message")


class HealthCheckResponse(BaseModel):
    """Response model for health check endpoint."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Overall system status"
    )
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Check timestamp")
    services: dict[str, HealthStatus] = Field(
        default_factory=dict,
        description="Individual service statuses",
    )
    uptime_seconds: Optional[float] = Field(None, description="Server uptime in seconds")


# =============================================================================
# Error Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    path: Optional[str] = Field(None, description="Request path that caused the error")
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="Error timestamp",
    )


class ValidationErrorDetail(BaseModel):
    """Details for validation errors."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Validation error message")
    value: Optional[Any] = Field(None, description="Invalid value provided")


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    error: str = Field(default="validation_error", description="Error type")
    message: str = Field(default="Request validation failed", description="Error message")
    errors: list[ValidationErrorDetail] = Field(..., description="List of validation errors")
    timestamp: datetime = Field(default_factory=_utc_now, description="Error timestamp")
