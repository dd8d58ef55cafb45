"""
Feedback Analytics.

Pure functions that turn stored submissions and analytics events into the
numbers shown on the dashboard. Ratings and comments are always read through
field categorization, so custom field names are counted like the defaults.
"""

import math
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from klarolink.analytics.field_categorization import (
    AnalyticsData,
    FieldCategorization,
    categorize_form_fields,
    extract_analytics_data,
)
from klarolink.models.schemas import (
    AnalyticsEvent,
    AnalyticsStats,
    CustomerProfile,
    CustomerSegment,
    EventType,
    FeedbackSubmission,
    FieldCategory,
    FormField,
)

TREND_DAYS = 30
BASE_RATING_BUCKETS = range(1, 6)
PROMOTER_MIN_RATING = 4
DETRACTOR_MAX_RATING = 2
ENGAGEMENT_PER_SUBMISSION = 20
ENGAGEMENT_PER_WRITTEN_FEEDBACK = 10
MAX_ENGAGEMENT = 100
NO_FEEDBACK_TEXT = "No feedback text"


# =============================================================================
# Models
# =============================================================================


class SubmissionTrend(BaseModel):
    """Submissions received on one day."""
    date: date
    count: int


class RatingBucket(BaseModel):
    """Number of submissions with a given (rounded) rating."""
    rating: int
    count: int


class FieldAnalytics(BaseModel):
    """Response coverage for one form field."""
    field_id: str
    label: str
    category: FieldCategory
    response_count: int
    response_rate: int


class RecentSubmission(BaseModel):
    """Submission summary for the recent feedback list."""
    id: int
    rating: Optional[float] = None
    feedback: str = NO_FEEDBACK_TEXT
    customer_name: Optional[str] = None
    submitted_at: datetime


class DetailedInsights(BaseModel):
    """Everything the insights tab renders."""
    total_submissions: int = 0
    submission_trends: list[SubmissionTrend] = Field(default_factory=list)
    rating_distribution: list[RatingBucket] = Field(default_factory=list)
    field_analytics: list[FieldAnalytics] = Field(default_factory=list)
    recent_submissions: list[RecentSubmission] = Field(default_factory=list)


class AudienceOverview(BaseModel):
    """NPS-style rollup of customer profiles."""
    total_customers: int = 0
    promoters: int = 0
    passives: int = 0
    detractors: int = 0
    average_engagement: int = 0
    nps_score: int = 0


# =============================================================================
# Helpers
# =============================================================================


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves up, matching JavaScript Math.round (2.5 -> 3, -2.5 -> -2)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def summarize_submission(
    submission: FeedbackSubmission,
    fields: Optional[Sequence[FormField]] = None,
) -> AnalyticsData:
    """Rating, comment, personal and contact info for one submission."""
    return extract_analytics_data(submission.submission_data, fields)


def _customer_email(summary: AnalyticsData, submission: FeedbackSubmission) -> Optional[str]:
    for value in summary.contact_info.values():
        if isinstance(value, str) and "@" in value:
            return value.strip().lower()

    raw = submission.submission_data.get("email")
    if isinstance(raw, str) and "@" in raw:
        return raw.strip().lower()
    return None


def _customer_name(summary: AnalyticsData, submission: FeedbackSubmission) -> Optional[str]:
    parts = [
        value.strip()
        for value in summary.personal_info.values()
        if isinstance(value, str) and value.strip()
    ]
    if parts:
        return " ".join(parts)

    raw = submission.submission_data.get("name")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


# =============================================================================
# Stats
# =============================================================================


def compute_analytics_stats(
    submissions: Sequence[FeedbackSubmission],
    events: Iterable[AnalyticsEvent],
    fields: Optional[Sequence[FormField]] = None,
) -> AnalyticsStats:
    """Headline numbers: totals, completion rate and average rating."""
    event_counts = Counter(event.event_type for event in events)
    page_views = event_counts[EventType.PAGE_VIEW]
    form_submits = event_counts[EventType.FORM_SUBMIT]

    ratings = [
        summary.rating
        for summary in (summarize_submission(s, fields) for s in submissions)
        if summary.rating is not None
    ]
    average_rating = sum(ratings) / len(ratings) if ratings else 0.0
    completion_rate = (form_submits / page_views) * 100 if page_views > 0 else 0.0

    return AnalyticsStats(
        total_feedback=len(submissions),
        completion_rate=int(round_half_up(completion_rate)),
        average_rating=round_half_up(average_rating, 1),
        page_views=page_views,
    )


# =============================================================================
# Insights
# =============================================================================


def build_submission_trends(
    submissions: Iterable[FeedbackSubmission],
    days: int = TREND_DAYS,
    now: Optional[datetime] = None,
) -> list[SubmissionTrend]:
    """Daily submission counts for the last ``days`` days, oldest first."""
    today = _as_utc(now or datetime.now(timezone.utc)).date()
    start = today - timedelta(days=days - 1)

    per_day = Counter(_as_utc(s.submitted_at).date() for s in submissions)
    return [
        SubmissionTrend(date=day, count=per_day.get(day, 0))
        for day in (start + timedelta(days=offset) for offset in range(days))
    ]


def build_rating_distribution(ratings: Iterable[float]) -> list[RatingBucket]:
    """Counts per rounded rating; 1-5 always present, 6-10 only when seen."""
    counts = Counter(int(round_half_up(rating)) for rating in ratings)
    buckets = sorted(set(BASE_RATING_BUCKETS) | set(counts))
    return [RatingBucket(rating=bucket, count=counts.get(bucket, 0)) for bucket in buckets]


def build_field_analytics(
    submissions: Sequence[FeedbackSubmission],
    fields: Sequence[FormField],
    categorizations: Optional[dict[str, FieldCategorization]] = None,
) -> list[FieldAnalytics]:
    """How often each form field was answered."""
    if categorizations is None:
        categorizations = categorize_form_fields(fields)
    total = len(submissions)

    analytics = []
    for form_field in fields:
        answered = sum(
            1
            for s in submissions
            if _has_answer(s.submission_data.get(form_field.id))
        )
        categorization = categorizations.get(form_field.id)
        analytics.append(
            FieldAnalytics(
                field_id=form_field.id,
                label=form_field.label,
                category=categorization.category if categorization else FieldCategory.CUSTOM,
                response_count=answered,
                response_rate=int(round_half_up(answered / total * 100)) if total else 0,
            )
        )
    return analytics


def _has_answer(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


def build_recent_submissions(
    submissions: Iterable[FeedbackSubmission],
    fields: Optional[Sequence[FormField]] = None,
    limit: int = 5,
) -> list[RecentSubmission]:
    """Newest submissions with their extracted rating and comment."""
    newest = sorted(submissions, key=lambda s: _as_utc(s.submitted_at), reverse=True)
    recent = []
    for submission in newest[:limit]:
        summary = summarize_submission(submission, fields)
        recent.append(
            RecentSubmission(
                id=submission.id,
                rating=summary.rating,
                feedback=summary.feedback_text or NO_FEEDBACK_TEXT,
                customer_name=_customer_name(summary, submission),
                submitted_at=submission.submitted_at,
            )
        )
    return recent


def build_detailed_insights(
    submissions: Sequence[FeedbackSubmission],
    fields: Optional[Sequence[FormField]] = None,
    now: Optional[datetime] = None,
) -> DetailedInsights:
    """Trends, rating distribution, field coverage and recent feedback."""
    fields = list(fields or [])
    summaries = [summarize_submission(s, fields) for s in submissions]

    return DetailedInsights(
        total_submissions=len(submissions),
        submission_trends=build_submission_trends(submissions, now=now),
        rating_distribution=build_rating_distribution(
            summary.rating for summary in summaries if summary.rating is not None
        ),
        field_analytics=build_field_analytics(submissions, fields) if fields else [],
        recent_submissions=build_recent_submissions(submissions, fields),
    )


# =============================================================================
# Audience
# =============================================================================


def _segments_for(average_rating: Optional[float], total_submissions: int) -> list[str]:
    segments = []
    if average_rating is not None:
        if average_rating >= PROMOTER_MIN_RATING:
            segments.append("promoter")
        elif average_rating <= DETRACTOR_MAX_RATING:
            segments.append("detractor")
        else:
            segments.append("passive")
    if total_submissions > 1:
        segments.append("repeat")
    return segments


def build_customer_profiles(
    submissions: Iterable[FeedbackSubmission],
    fields: Optional[Sequence[FormField]] = None,
) -> list[CustomerProfile]:
    """
    Group submissions by the customer's contact email.

    Submissions without an email address are anonymous and skipped. Profiles
    are ordered by most recent submission first.
    """
    grouped: dict[str, dict[str, Any]] = {}

    for submission in submissions:
        summary = summarize_submission(submission, fields)
        email = _customer_email(summary, submission)
        if email is None:
            continue

        entry = grouped.setdefault(
            email,
            {"name": None, "ratings": [], "total": 0, "written": 0, "last": None},
        )
        entry["total"] += 1
        if summary.rating is not None:
            entry["ratings"].append(summary.rating)
        if summary.feedback_text:
            entry["written"] += 1

        submitted_at = _as_utc(submission.submitted_at)
        if entry["last"] is None or submitted_at >= entry["last"]:
            entry["last"] = submitted_at
            entry["name"] = _customer_name(summary, submission) or entry["name"]
        elif entry["name"] is None:
            entry["name"] = _customer_name(summary, submission)

    profiles = []
    for email, entry in grouped.items():
        ratings = entry["ratings"]
        average = sum(ratings) / len(ratings) if ratings else None
        engagement = min(
            entry["total"] * ENGAGEMENT_PER_SUBMISSION
            + entry["written"] * ENGAGEMENT_PER_WRITTEN_FEEDBACK,
            MAX_ENGAGEMENT,
        )
        profiles.append(
            CustomerProfile(
                id=email,
                name=entry["name"],
                email=email,
                average_rating=round_half_up(average, 1) if average is not None else 0.0,
                total_submissions=entry["total"],
                engagement_score=engagement,
                segments=_segments_for(average, entry["total"]),
                last_submission_at=entry["last"],
            )
        )

    profiles.sort(key=lambda p: p.last_submission_at, reverse=True)
    return profiles


SEGMENT_DESCRIPTIONS = {
    "promoter": ("Promoters", "Customers averaging 4 or more"),
    "passive": ("Passives", "Customers averaging between 2 and 4"),
    "detractor": ("Detractors", "Customers averaging 2 or less"),
    "repeat": ("Repeat customers", "Customers with more than one submission"),
}


def build_customer_segments(profiles: Iterable[CustomerProfile]) -> list[CustomerSegment]:
    """Segment sizes in a fixed order."""
    counts = Counter(segment for profile in profiles for segment in profile.segments)
    return [
        CustomerSegment(
            id=segment_id,
            name=name,
            description=description,
            customer_count=counts.get(segment_id, 0),
        )
        for segment_id, (name, description) in SEGMENT_DESCRIPTIONS.items()
    ]


def build_audience_overview(profiles: Sequence[CustomerProfile]) -> AudienceOverview:
    """Totals per segment, average engagement and NPS score."""
    total = len(profiles)
    if total == 0:
        return AudienceOverview()

    promoters = sum(1 for p in profiles if "promoter" in p.segments)
    detractors = sum(1 for p in profiles if "detractor" in p.segments)
    passives = sum(1 for p in profiles if "passive" in p.segments)
    engagement = sum(p.engagement_score for p in profiles) / total

    return AudienceOverview(
        total_customers=total,
        promoters=promoters,
        passives=passives,
        detractors=detractors,
        average_engagement=int(round_half_up(engagement)),
        nps_score=int(round_half_up((promoters - detractors) / total * 100)),
    )


# =============================================================================
# Issue Analysis
# =============================================================================

ISSUE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "pricing": ("expensive", "costly", "price", "pricing", "cost", "money", "cheap", "overpriced"),
    "service": ("service", "staff", "employee", "rude", "helpful", "friendly", "slow service"),
    "quality": ("quality", "poor", "bad", "excellent", "good", "terrible", "amazing"),
    "delivery": ("delivery", "shipping", "late", "delayed", "fast", "slow", "on time"),
    "wait_time": ("wait", "waiting", "queue", "long wait", "quick", "fast", "slow"),
    "selection": ("selection", "variety", "options", "limited", "choice", "availability"),
    "location": ("location", "parking", "access", "convenient", "far", "close"),
    "cleanliness": ("clean", "dirty", "hygiene", "sanitary", "mess", "tidy"),
}
NEGATIVE_WORDS = ("bad", "terrible", "awful", "horrible", "worst", "hate", "disappointed", "frustrated")
NEGATIVE_MAX_RATING = 3
UNRATED_ISSUE_RATING = 5
HIGH_SEVERITY_PERCENT = 30
MEDIUM_SEVERITY_PERCENT = 15
ISSUE_TREND_DAYS = 7
MAX_ISSUE_EXAMPLES = 3
MAX_ISSUES = 5


class IssueExample(BaseModel):
    """A negative submission that mentions an issue."""
    id: int
    submitter: str
    feedback: str
    rating: float
    submitted_at: datetime


class IssueAnalysis(BaseModel):
    """How often one recurring issue shows up in negative feedback."""
    key: str
    issue: str
    count: int
    severity: Literal["high", "medium", "low"]
    trend: Literal["up", "down", "stable"]
    recent_submissions: list[IssueExample] = Field(default_factory=list)


class IssueReport(BaseModel):
    """Top issues across a business's negative feedback."""
    issues: list[IssueAnalysis] = Field(default_factory=list)
    total_submissions: int = 0
    negative_submissions: int = 0
    analysis_date: datetime


def is_negative_feedback(rating: float, text: str) -> bool:
    """Low rating, or wording that reads as a complaint."""
    return rating <= NEGATIVE_MAX_RATING or any(word in text for word in NEGATIVE_WORDS)


def _severity(count: int, negative_total: int) -> str:
    percent = count / negative_total * 100 if negative_total else 0
    if percent >= HIGH_SEVERITY_PERCENT:
        return "high"
    if percent >= MEDIUM_SEVERITY_PERCENT:
        return "medium"
    return "low"


def _trend(matched_at: Iterable[datetime], now: datetime) -> str:
    current_start = now - timedelta(days=ISSUE_TREND_DAYS)
    previous_start = current_start - timedelta(days=ISSUE_TREND_DAYS)

    current = previous = 0
    for moment in matched_at:
        if moment > current_start:
            current += 1
        elif moment > previous_start:
            previous += 1

    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "stable"


def build_issue_analysis(
    submissions: Iterable[FeedbackSubmission],
    fields: Optional[Sequence[FormField]] = None,
    now: Optional[datetime] = None,
) -> IssueReport:
    """
    Match negative feedback against keyword lists per issue.

    A submission is negative when its rating is 3 or lower (unrated counts as
    5) or its comment contains complaint words. Each issue whose keywords
    appear in a negative comment is counted once for that submission.

    Severity is the issue's share of negative submissions (30% or more is
    high, 15% or more medium). Trend compares matches in the last seven days
    with the seven days before. Only the five most frequent issues are kept.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    newest = sorted(submissions, key=lambda s: _as_utc(s.submitted_at), reverse=True)

    matches: dict[str, list[FeedbackSubmission]] = {key: [] for key in ISSUE_KEYWORDS}
    examples: dict[str, list[IssueExample]] = {key: [] for key in ISSUE_KEYWORDS}
    negative_total = 0

    for submission in newest:
        summary = summarize_submission(submission, fields)
        text = (summary.feedback_text or "").lower()
        rating = summary.rating if summary.rating is not None else UNRATED_ISSUE_RATING
        if not is_negative_feedback(rating, text):
            continue

        negative_total += 1
        for key, keywords in ISSUE_KEYWORDS.items():
            if not any(keyword in text for keyword in keywords):
                continue
            matches[key].append(submission)
            if len(examples[key]) < MAX_ISSUE_EXAMPLES:
                examples[key].append(
                    IssueExample(
                        id=submission.id,
                        submitter=(
                            _customer_name(summary, submission)
                            or _customer_email(summary, submission)
                            or "Anonymous"
                        ),
                        feedback=summary.feedback_text or NO_FEEDBACK_TEXT,
                        rating=rating,
                        submitted_at=submission.submitted_at,
                    )
                )

    issues = [
        IssueAnalysis(
            key=key,
            issue=key.replace("_", " ").title(),
            count=len(matched),
            severity=_severity(len(matched), negative_total),
            trend=_trend((_as_utc(s.submitted_at) for s in matched), now),
            recent_submissions=examples[key],
        )
        for key, matched in matches.items()
        if matched
    ]
    issues.sort(key=lambda issue: issue.count, reverse=True)

    return IssueReport(
        issues=issues[:MAX_ISSUES],
        total_submissions=len(newest),
        negative_submissions=negative_total,
        analysis_date=now,
    )
