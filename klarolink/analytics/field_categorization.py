"""
Field Categorization.

Maps form field definitions onto semantic categories (rating, feedback text,
contact, ...) and pulls the rating and the main comment out of a submission
whatever the form author called those fields.

Two layers:
- Rule scoring: each field's id, label and declared type are tested against
  an ordered table of CategoryRule entries.
- Fallback detection: when a form has no usable categorization the raw
  submission keys and values are inspected directly.

Usage:
    categorizations = categorize_form_fields(form.fields)
    extracted = extract_data_with_fallback(submission.submission_data, categorizations)
    extracted.rating, extracted.feedback_text
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

import structlog

from klarolink.models.schemas import FieldCategory, FormField

logger = structlog.get_logger(__name__)

FieldLike = Union[FormField, Mapping[str, Any]]


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class FieldCategorization:
    """Category assigned to a field with its analytics priority (1-10) and confidence (0-1)."""

    category: FieldCategory
    priority: int
    confidence: float

    @property
    def weight(self) -> float:
        return self.priority * self.confidence


@dataclass(frozen=True)
class CategorizedValue:
    """A submitted value tagged with the categorization of its field."""

    field_id: str
    value: Any
    priority: int
    confidence: float

    @property
    def weight(self) -> float:
        return self.priority * self.confidence


@dataclass
class CategorizedData:
    """Output of categorized extraction."""

    rating: Optional[float] = None
    feedback_text: Optional[str] = None
    personal_info: dict[str, Any] = field(default_factory=dict)
    contact_info: dict[str, Any] = field(default_factory=dict)
    all_categorized_data: dict[FieldCategory, list[CategorizedValue]] = field(
        default_factory=lambda: {category: [] for category in FieldCategory}
    )


@dataclass
class ExtractedData:
    """Rating and feedback text found in a submission."""

    rating: Optional[float] = None
    feedback_text: Optional[str] = None


@dataclass
class AnalyticsData:
    """Everything the analytics layer reads from one submission."""

    rating: Optional[float] = None
    feedback_text: Optional[str] = None
    personal_info: dict[str, Any] = field(default_factory=dict)
    contact_info: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Categorization Rules
# =============================================================================


def _patterns(*sources: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


@dataclass(frozen=True)
class CategoryRule:
    """Patterns and field types that identify one category."""

    category: FieldCategory
    id_patterns: tuple[re.Pattern, ...]
    label_patterns: tuple[re.Pattern, ...]
    field_types: tuple[str, ...]
    priority: int


ID_MATCH_WEIGHT = 0.4
LABEL_MATCH_WEIGHT = 0.3
TYPE_MATCH_WEIGHT = 0.3
MULTI_MATCH_BOOST = 1.2
EXPLICIT_CATEGORY_CONFIDENCE = 0.95
EXPLICIT_CATEGORY_DEFAULT_PRIORITY = 8
BACKWARD_COMPAT_MIN_CONFIDENCE = 0.7

# Evaluated in order; an earlier rule keeps the win on equal confidence.
CATEGORIZATION_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        category=FieldCategory.RATING,
        id_patterns=_patterns(
            r"^rating$",
            r"^overall[-_]?rating$",
            r"^product[-_]?rating$",
            r"^service[-_]?rating$",
            r"^satisfaction[-_]?rating$",
            r"^score$",
            r"^overall[-_]?score$",
            r"rating$",
            r"score$",
        ),
        label_patterns=_patterns(
            r"rate",
            r"rating",
            r"score",
            r"stars?",
            r"satisfaction",
            r"how.*satisfied",
            r"overall.*experience",
        ),
        field_types=("rating",),
        priority=10,
    ),
    CategoryRule(
        category=FieldCategory.FEEDBACK_TEXT,
        id_patterns=_patterns(
            r"^feedback$",
            r"^comment$",
            r"^comments$",
            r"^message$",
            r"^review$",
            r"^experience$",
            r"^thoughts$",
            r"^opinion$",
            r"feedback$",
            r"comment$",
            r"experience$",
            r"thoughts$",
            r"review$",
            r"message$",
            r"description$",
            r"details$",
            r"additional",
            r"other",
            r"anything",
            r"else",
        ),
        label_patterns=_patterns(
            r"feedback",
            r"comment",
            r"message",
            r"review",
            r"experience",
            r"thoughts",
            r"opinion",
            r"tell us",
            r"describe",
            r"explain",
            r"additional",
            r"anything else",
            r"other",
            r"suggestions?",
            r"improvements?",
        ),
        field_types=("textarea",),
        priority=9,
    ),
    CategoryRule(
        category=FieldCategory.PERSONAL_INFO,
        id_patterns=_patterns(
            r"^name$",
            r"^full[-_]?name$",
            r"^first[-_]?name$",
            r"^last[-_]?name$",
            r"^customer[-_]?name$",
            r"^user[-_]?name$",
        ),
        label_patterns=_patterns(
            r"^name$",
            r"your name",
            r"full name",
            r"customer name",
        ),
        field_types=("text",),
        priority=5,
    ),
    CategoryRule(
        category=FieldCategory.CONTACT,
        id_patterns=_patterns(
            r"^email$",
            r"^contact[-_]?email$",
            r"^customer[-_]?email$",
            r"^phone$",
            r"^contact[-_]?phone$",
            r"^mobile$",
        ),
        label_patterns=_patterns(
            r"email",
            r"phone",
            r"contact",
            r"mobile",
        ),
        field_types=("email",),
        priority=4,
    ),
    CategoryRule(
        category=FieldCategory.RECOMMENDATION,
        id_patterns=_patterns(
            r"recommend",
            r"referral",
            r"refer",
            r"nps",
            r"net[-_]?promoter",
        ),
        label_patterns=_patterns(
            r"recommend",
            r"refer",
            r"friends",
            r"colleagues",
            r"others",
            r"likely.*recommend",
        ),
        field_types=("select", "rating"),
        priority=7,
    ),
    CategoryRule(
        category=FieldCategory.SATISFACTION,
        id_patterns=_patterns(
            r"satisfaction",
            r"quality",
            r"service",
            r"product",
            r"happy",
            r"pleased",
        ),
        label_patterns=_patterns(
            r"satisfied",
            r"quality",
            r"service",
            r"product",
            r"happy",
            r"pleased",
            r"experience",
        ),
        field_types=("select", "rating"),
        priority=6,
    ),
)

RULES_BY_CATEGORY: dict[FieldCategory, CategoryRule] = {
    rule.category: rule for rule in CATEGORIZATION_RULES
}

DEFAULT_CATEGORIZATION = FieldCategorization(
    category=FieldCategory.CUSTOM, priority=1, confidence=0.0
)


# =============================================================================
# Fallback Detection Tables
# =============================================================================

RATING_EXACT_NAMES = frozenset({
    "rating", "Rating", "RATING",
    "overall-rating", "overall_rating", "overallRating",
    "product-rating", "product_rating", "productRating",
    "service-rating", "service_rating", "serviceRating",
    "score", "Score", "SCORE",
    "overall-score", "overall_score", "overallScore",
    "satisfaction", "Satisfaction",
    "stars", "Stars", "star", "Star",
})

RATING_NAME_PATTERNS = _patterns(
    r"rating",
    r"score",
    r"stars?",
    r"satisfaction",
    r"rate",
    r"review",
)

NOT_A_RATING_NAME = re.compile(
    r"id|count|index|year|month|day|phone|zip|postal", re.IGNORECASE
)

FEEDBACK_EXACT_NAMES = frozenset({
    "feedback", "Feedback", "FEEDBACK",
    "comment", "Comment", "COMMENT",
    "comments", "Comments", "COMMENTS",
    "message", "Message", "MESSAGE",
    "review", "Review", "REVIEW",
    "experience", "Experience", "EXPERIENCE",
    "experience-feedback", "experience_feedback", "experienceFeedback",
    "thoughts", "Thoughts", "THOUGHTS",
    "opinion", "Opinion", "OPINION",
    "description", "Description", "DESCRIPTION",
    "details", "Details", "DETAILS",
    "text", "Text", "TEXT",
    "content", "Content", "CONTENT",
})

FEEDBACK_NAME_PATTERNS = _patterns(
    r"feedback",
    r"comment",
    r"message",
    r"review",
    r"experience",
    r"thoughts",
    r"opinion",
    r"description",
    r"details",
    r"tell.*us",
    r"additional",
    r"other",
    r"anything",
    r"improve",
    r"suggest",
    r"like",
    r"dislike",
)

NOT_FEEDBACK_NAME = re.compile(r"name|email|phone|address|id|url|link", re.IGNORECASE)

MIN_LONGEST_TEXT_CANDIDATE = 5
MIN_LONGEST_TEXT_LENGTH = 10
RATING_MIN = 1
RATING_MAX = 10


# =============================================================================
# Helpers
# =============================================================================


def _as_form_field(field_def: FieldLike) -> FormField:
    if isinstance(field_def, FormField):
        return field_def
    return FormField.model_validate(field_def)


def _to_number(value: Any) -> Optional[float]:
    """Coerce a submitted value to a finite number, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def _in_rating_range(number: Optional[float]) -> bool:
    return number is not None and RATING_MIN <= number <= RATING_MAX


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# =============================================================================
# Categorization
# =============================================================================


def _score_rule(rule: CategoryRule, field_id: str, label: str, field_type: str) -> float:
    confidence = 0.0
    matches = 0

    for pattern in rule.id_patterns:
        if pattern.search(field_id):
            matches += 1
            confidence += ID_MATCH_WEIGHT

    for pattern in rule.label_patterns:
        if pattern.search(label):
            matches += 1
            confidence += LABEL_MATCH_WEIGHT

    if field_type in rule.field_types:
        matches += 1
        confidence += TYPE_MATCH_WEIGHT

    if matches == 0:
        return 0.0

    confidence = min(confidence, 1.0)
    if matches > 1:
        confidence = min(confidence * MULTI_MATCH_BOOST, 1.0)
    return confidence


def categorize_field(field_def: FieldLike) -> FieldCategorization:
    """Categorize a field from its id, label and type alone."""
    form_field = _as_form_field(field_def)
    field_id = form_field.id.lower()
    label = form_field.label.lower()

    best = DEFAULT_CATEGORIZATION
    for rule in CATEGORIZATION_RULES:
        confidence = _score_rule(rule, field_id, label, form_field.type)
        if confidence > best.confidence:
            best = FieldCategorization(
                category=rule.category,
                priority=rule.priority,
                confidence=confidence,
            )

    return best


def categorize_field_enhanced(field_def: FieldLike) -> FieldCategorization:
    """Categorize a field, trusting an explicit non-custom ``field_category`` tag."""
    form_field = _as_form_field(field_def)
    category = form_field.field_category

    if category is not None and category != FieldCategory.CUSTOM:
        rule = RULES_BY_CATEGORY.get(category)
        return FieldCategorization(
            category=category,
            priority=rule.priority if rule else EXPLICIT_CATEGORY_DEFAULT_PRIORITY,
            confidence=EXPLICIT_CATEGORY_CONFIDENCE,
        )

    return categorize_field(form_field)


def categorize_form_fields(fields: Iterable[FieldLike]) -> dict[str, FieldCategorization]:
    """Categorize every field of a form, keyed by field id in form order."""
    categorizations: dict[str, FieldCategorization] = {}
    for field_def in fields:
        form_field = _as_form_field(field_def)
        categorizations[form_field.id] = categorize_field_enhanced(form_field)
    return categorizations


def get_form_field_categorizations(
    fields: Optional[Iterable[FieldLike]] = None,
) -> dict[str, FieldCategorization]:
    """Categorizations for a form; an empty mapping forces fallback extraction."""
    if fields is None:
        return {}
    return categorize_form_fields(fields)


def add_backward_compatibility_categories(fields: Iterable[FieldLike]) -> list[FormField]:
    """
    Tag fields lacking ``field_category`` with their detected category.

    Only confident detections are kept; everything else is tagged custom so
    the form is stable on the next load.
    """
    tagged: list[FormField] = []
    for field_def in fields:
        form_field = _as_form_field(field_def)
        if form_field.field_category is not None:
            tagged.append(form_field)
            continue

        categorization = categorize_field(form_field)
        if categorization.confidence > BACKWARD_COMPAT_MIN_CONFIDENCE:
            category = categorization.category
        else:
            category = FieldCategory.CUSTOM
        tagged.append(form_field.model_copy(update={"field_category": category}))
    return tagged


# =============================================================================
# Extraction
# =============================================================================


def extract_categorized_data(
    submission_data: Mapping[str, Any],
    categorizations: Mapping[str, FieldCategorization],
) -> CategorizedData:
    """Group submitted values by field category and pick the primary rating and comment."""
    result = CategorizedData()

    for field_id, value in submission_data.items():
        if _is_blank(value):
            continue

        categorization = categorizations.get(field_id)
        if categorization is None:
            continue

        result.all_categorized_data[categorization.category].append(
            CategorizedValue(
                field_id=field_id,
                value=value,
                priority=categorization.priority,
                confidence=categorization.confidence,
            )
        )

    # max() keeps the first entry on equal weight
    ratings = result.all_categorized_data[FieldCategory.RATING]
    if ratings:
        best_rating = max(ratings, key=lambda entry: entry.weight)
        number = _to_number(best_rating.value)
        if _in_rating_range(number):
            result.rating = number

    feedback = result.all_categorized_data[FieldCategory.FEEDBACK_TEXT]
    if feedback:
        best_feedback = max(feedback, key=lambda entry: entry.weight)
        if isinstance(best_feedback.value, str) and best_feedback.value.strip():
            result.feedback_text = best_feedback.value.strip()

    for entry in result.all_categorized_data[FieldCategory.PERSONAL_INFO]:
        result.personal_info[entry.field_id] = entry.value

    for entry in result.all_categorized_data[FieldCategory.CONTACT]:
        result.contact_info[entry.field_id] = entry.value

    return result


def find_rating_value(submission_data: Mapping[str, Any]) -> Optional[float]:
    """Find a rating in a raw submission without any field metadata."""
    for field_id, value in submission_data.items():
        if field_id in RATING_EXACT_NAMES:
            number = _to_number(value)
            if _in_rating_range(number):
                logger.debug("rating_found", strategy="exact", field_id=field_id)
                return number

    for field_id, value in submission_data.items():
        number = _to_number(value)
        if not _in_rating_range(number):
            continue
        if any(pattern.search(field_id) for pattern in RATING_NAME_PATTERNS):
            logger.debug("rating_found", strategy="pattern", field_id=field_id)
            return number

    for field_id, value in submission_data.items():
        number = _to_number(value)
        if not _in_rating_range(number) or not isinstance(number, int):
            continue
        if not NOT_A_RATING_NAME.search(field_id):
            logger.debug("rating_found", strategy="numeric", field_id=field_id)
            return number

    return None


def find_feedback_text(submission_data: Mapping[str, Any]) -> Optional[str]:
    """Find the main comment in a raw submission without any field metadata."""
    for field_id, value in submission_data.items():
        if field_id in FEEDBACK_EXACT_NAMES and isinstance(value, str) and value.strip():
            logger.debug("feedback_text_found", strategy="exact", field_id=field_id)
            return value.strip()

    for field_id, value in submission_data.items():
        if not isinstance(value, str) or not value.strip():
            continue
        if any(pattern.search(field_id) for pattern in FEEDBACK_NAME_PATTERNS):
            logger.debug("feedback_text_found", strategy="pattern", field_id=field_id)
            return value.strip()

    longest_text = ""
    longest_field_id = None
    for field_id, value in submission_data.items():
        if not isinstance(value, str):
            continue
        text = value.strip()
        if len(text) <= len(longest_text):
            continue
        if NOT_FEEDBACK_NAME.search(field_id) or len(text) <= MIN_LONGEST_TEXT_CANDIDATE:
            continue
        longest_text = text
        longest_field_id = field_id

    if len(longest_text) > MIN_LONGEST_TEXT_LENGTH:
        logger.debug("feedback_text_found", strategy="longest", field_id=longest_field_id)
        return longest_text

    return None


def extract_data_with_fallback(
    submission_data: Mapping[str, Any],
    categorizations: Optional[Mapping[str, FieldCategorization]] = None,
) -> ExtractedData:
    """Categorized extraction first, then raw-payload detection for whatever is still missing."""
    result = ExtractedData()

    if categorizations:
        categorized = extract_categorized_data(submission_data, categorizations)
        result.rating = categorized.rating
        result.feedback_text = categorized.feedback_text

    if result.rating is None:
        result.rating = find_rating_value(submission_data)

    if result.feedback_text is None:
        result.feedback_text = find_feedback_text(submission_data)

    return result


def extract_analytics_data(
    submission_data: Mapping[str, Any],
    fields: Optional[Iterable[FieldLike]] = None,
) -> AnalyticsData:
    """
    Extract rating, comment, personal and contact info from one submission.

    Malformed field definitions degrade to pure fallback detection.
    """
    try:
        categorizations = get_form_field_categorizations(fields)
        categorized = extract_categorized_data(submission_data, categorizations)
        fallback = extract_data_with_fallback(submission_data, categorizations)
    except (ValueError, TypeError) as e:
        logger.warning("field_categorization_failed", error=str(e))
        fallback = extract_data_with_fallback(submission_data)
        return AnalyticsData(rating=fallback.rating, feedback_text=fallback.feedback_text)

    return AnalyticsData(
        rating=categorized.rating if categorized.rating is not None else fallback.rating,
        feedback_text=categorized.feedback_text or fallback.feedback_text,
        personal_info=categorized.personal_info,
        contact_info=categorized.contact_info,
    )
