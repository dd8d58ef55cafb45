"""
Feedback Analytics.

- field_categorization: semantic field detection and value extraction
- insights: stats, trends, distributions and audience rollups
"""

from klarolink.analytics.field_categorization import (
    AnalyticsData,
    CategorizedData,
    CategoryRule,
    ExtractedData,
    FieldCategorization,
    add_backward_compatibility_categories,
    categorize_field,
    categorize_field_enhanced,
    categorize_form_fields,
    extract_analytics_data,
    extract_categorized_data,
    extract_data_with_fallback,
    find_feedback_text,
    find_rating_value,
    get_form_field_categorizations,
)
from klarolink.analytics.insights import (
    AudienceOverview,
    DetailedInsights,
    build_audience_overview,
    build_customer_profiles,
    build_customer_segments,
    build_detailed_insights,
    compute_analytics_stats,
)

__all__ = [
    "AnalyticsData",
    "AudienceOverview",
    "CategorizedData",
    "CategoryRule",
    "DetailedInsights",
    "ExtractedData",
    "FieldCategorization",
    "add_backward_compatibility_categories",
    "build_audience_overview",
    "build_customer_profiles",
    "build_customer_segments",
    "build_detailed_insights",
    "categorize_field",
    "categorize_field_enhanced",
    "categorize_form_fields",
    "compute_analytics_stats",
    "extract_analytics_data",
    "extract_categorized_data",
    "extract_data_with_fallback",
    "find_feedback_text",
    "find_rating_value",
    "get_form_field_categorizations",
]
