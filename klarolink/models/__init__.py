"""Data models for KlaroLink entities and analytics aggregates."""

from klarolink.models.schemas import (
    AnalyticsEvent,
    AnalyticsStats,
    BackgroundType,
    BaseEntity,
    Business,
    Customer,
    CustomerProfile,
    CustomerSegment,
    EventType,
    FeedbackForm,
    FeedbackSubmission,
    FieldCategory,
    FieldType,
    FormField,
    Product,
    SocialLink,
    User,
    utc_now,
)

__all__ = [
    "AnalyticsEvent",
    "AnalyticsStats",
    "BackgroundType",
    "BaseEntity",
    "Business",
    "Customer",
    "CustomerProfile",
    "CustomerSegment",
    "EventType",
    "FeedbackForm",
    "FeedbackSubmission",
    "FieldCategory",
    "FieldType",
    "FormField",
    "Product",
    "SocialLink",
    "User",
    "utc_now",
]
