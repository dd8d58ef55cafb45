"""Unit tests for dashboard analytics."""

from datetime import date, datetime, timedelta, timezone

import pytest

from klarolink.analytics.insights import (
    NO_FEEDBACK_TEXT,
    build_audience_overview,
    build_customer_profiles,
    build_customer_segments,
    build_detailed_insights,
    build_field_analytics,
    build_issue_analysis,
    build_rating_distribution,
    build_recent_submissions,
    build_submission_trends,
    compute_analytics_stats,
    round_half_up,
)
from klarolink.models.schemas import (
    AnalyticsEvent,
    FeedbackSubmission,
    FieldCategory,
    FormField,
)

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_submission(submission_id: int, data: dict, age: timedelta = timedelta(0)) -> FeedbackSubmission:
    return FeedbackSubmission(
        id=submission_id,
        business_id=1,
        form_id=1,
        submission_data=data,
        submitted_at=NOW - age,
    )


def make_event(event_id: int, event_type: str) -> AnalyticsEvent:
    return AnalyticsEvent(id=event_id, business_id=1, event_type=event_type, created_at=NOW)


class TestRoundHalfUp:
    """Test rounding used for displayed numbers."""

    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_negative_halves_round_towards_positive(self):
        assert round_half_up(-2.5) == -2

    def test_digits(self):
        assert round_half_up(3.14159, 1) == pytest.approx(3.1)
        assert round_half_up(4.25, 1) == pytest.approx(4.3)


class TestComputeAnalyticsStats:
    """Test headline dashboard numbers."""

    def test_empty(self):
        stats = compute_analytics_stats([], [])

        assert stats.total_feedback == 0
        assert stats.completion_rate == 0
        assert stats.average_rating == 0.0
        assert stats.page_views == 0

    def test_completion_rate_from_events(self):
        events = [
            make_event(1, "page_view"),
            make_event(2, "page_view"),
            make_event(3, "page_view"),
            make_event(4, "form_submit"),
            make_event(5, "link_click"),
        ]

        stats = compute_analytics_stats([], events)

        assert stats.page_views == 3
        assert stats.completion_rate == 33

    def test_submits_without_views_give_zero_rate(self):
        stats = compute_analytics_stats([], [make_event(1, "form_submit")])

        assert stats.completion_rate == 0

    def test_average_rating_skips_unrated(self):
        submissions = [
            make_submission(1, {"rating": 5}),
            make_submission(2, {"rating": 4}),
            make_submission(3, {"feedback": "no stars given"}),
        ]

        stats = compute_analytics_stats(submissions, [])

        assert stats.total_feedback == 3
        assert stats.average_rating == 4.5

    def test_average_rating_uses_form_categories(self):
        """A custom-named rating field is found through the form definition."""
        fields = [FormField(id="how_was_it", type="rating", label="How satisfied are you?")]
        submissions = [make_submission(1, {"how_was_it": 2}), make_submission(2, {"how_was_it": 3})]

        stats = compute_analytics_stats(submissions, [], fields)

        assert stats.average_rating == 2.5


class TestSubmissionTrends:
    """Test daily submission counts."""

    def test_window_is_oldest_first_and_zero_filled(self):
        submissions = [
            make_submission(1, {}, timedelta(hours=1)),
            make_submission(2, {}, timedelta(days=1)),
            make_submission(3, {}, timedelta(days=1, hours=2)),
            make_submission(4, {}, timedelta(days=9)),
        ]

        trends = build_submission_trends(submissions, days=3, now=NOW)

        assert [t.date for t in trends] == [date(2026, 1, 8), date(2026, 1, 9), date(2026, 1, 10)]
        assert [t.count for t in trends] == [0, 2, 1]

    def test_default_window_length(self):
        assert len(build_submission_trends([], now=NOW)) == 30


class TestRatingDistribution:
    """Test rating buckets."""

    def test_base_buckets_always_present(self):
        buckets = build_rating_distribution([])

        assert [b.rating for b in buckets] == [1, 2, 3, 4, 5]
        assert all(b.count == 0 for b in buckets)

    def test_ratings_are_rounded_and_high_buckets_added(self):
        buckets = build_rating_distribution([5, 4, 4.5, 7])

        assert {b.rating: b.count for b in buckets} == {1: 0, 2: 0, 3: 0, 4: 1, 5: 2, 7: 1}


class TestFieldAnalytics:
    """Test per-field response coverage."""

    def test_response_rate(self):
        fields = [
            FormField(id="rating", type="rating", label="Rating"),
            FormField(id="feedback", type="textarea", label="Feedback"),
        ]
        submissions = [
            make_submission(1, {"rating": 5, "feedback": "Great"}),
            make_submission(2, {"rating": 4, "feedback": "  "}),
            make_submission(3, {"rating": 3}),
        ]

        analytics = build_field_analytics(submissions, fields)

        assert analytics[0].category == FieldCategory.RATING
        assert analytics[0].response_count == 3
        assert analytics[0].response_rate == 100
        assert analytics[1].category == FieldCategory.FEEDBACK_TEXT
        assert analytics[1].response_count == 1
        assert analytics[1].response_rate == 33

    def test_no_submissions(self):
        analytics = build_field_analytics([], [FormField(id="rating", type="rating", label="Rating")])

        assert analytics[0].response_rate == 0


class TestRecentSubmissions:
    """Test the recent feedback list."""

    def test_newest_first_with_placeholder_text(self):
        submissions = [
            make_submission(1, {"name": "Old", "rating": 5, "feedback": "Lovely"}, timedelta(days=2)),
            make_submission(2, {"rating": 3}, timedelta(hours=1)),
        ]

        recent = build_recent_submissions(submissions)

        assert [r.id for r in recent] == [2, 1]
        assert recent[0].feedback == NO_FEEDBACK_TEXT
        assert recent[0].customer_name is None
        assert recent[1].feedback == "Lovely"
        assert recent[1].customer_name == "Old"

    def test_limit(self):
        submissions = [make_submission(i, {"rating": 4}, timedelta(minutes=i)) for i in range(1, 9)]

        assert len(build_recent_submissions(submissions, limit=5)) == 5


class TestDetailedInsights:
    """Test the insights bundle."""

    def test_bundle(self):
        fields = [FormField(id="rating", type="rating", label="Rating")]
        submissions = [make_submission(1, {"rating": 4}), make_submission(2, {"rating": 2})]

        insights = build_detailed_insights(submissions, fields, now=NOW)

        assert insights.total_submissions == 2
        assert len(insights.submission_trends) == 30
        assert insights.submission_trends[-1].count == 2
        assert {b.rating: b.count for b in insights.rating_distribution}[4] == 1
        assert len(insights.field_analytics) == 1
        assert len(insights.recent_submissions) == 2

    def test_without_form_has_no_field_analytics(self):
        insights = build_detailed_insights([make_submission(1, {"rating": 4})], now=NOW)

        assert insights.field_analytics == []


class TestCustomerProfiles:
    """Test grouping submissions into customer profiles."""

    @pytest.fixture
    def submissions(self):
        return [
            make_submission(1, {"name": "Ana", "email": "ana@example.com", "rating": 5, "feedback": "Great"},
                            timedelta(days=3)),
            make_submission(2, {"name": "Ana P", "email": "ANA@example.com ", "rating": 4, "feedback": "Good"},
                            timedelta(days=1)),
            make_submission(3, {"name": "Ben", "email": "ben@example.com", "rating": 1}, timedelta(days=2)),
            make_submission(4, {"name": "Cy", "email": "cy@example.com", "rating": 3, "feedback": "meh"},
                            timedelta(hours=2)),
            make_submission(5, {"name": "Anonymous", "rating": 5, "feedback": "No email"}),
        ]

    def test_anonymous_submissions_skipped(self, submissions):
        profiles = build_customer_profiles(submissions)

        assert {p.email for p in profiles} == {"ana@example.com", "ben@example.com", "cy@example.com"}

    def test_ordered_by_latest_submission(self, submissions):
        profiles = build_customer_profiles(submissions)

        assert [p.email for p in profiles] == ["cy@example.com", "ana@example.com", "ben@example.com"]

    def test_rollup(self, submissions):
        ana = {p.email: p for p in build_customer_profiles(submissions)}["ana@example.com"]

        assert ana.name == "Ana P"
        assert ana.total_submissions == 2
        assert ana.average_rating == 4.5
        assert ana.engagement_score == 60
        assert ana.segments == ["promoter", "repeat"]

    def test_segments(self, submissions):
        profiles = {p.email: p for p in build_customer_profiles(submissions)}

        assert profiles["ben@example.com"].segments == ["detractor"]
        assert profiles["ben@example.com"].engagement_score == 20
        assert profiles["cy@example.com"].segments == ["passive"]

    def test_engagement_capped(self):
        submissions = [
            make_submission(i, {"email": "loyal@example.com", "rating": 5, "feedback": "Again"},
                            timedelta(days=i))
            for i in range(1, 6)
        ]

        profiles = build_customer_profiles(submissions)

        assert profiles[0].engagement_score == 100

    def test_segment_counts(self, submissions):
        segments = {s.id: s.customer_count for s in build_customer_segments(build_customer_profiles(submissions))}

        assert segments == {"promoter": 1, "passive": 1, "detractor": 1, "repeat": 1}

    def test_overview(self, submissions):
        overview = build_audience_overview(build_customer_profiles(submissions))

        assert overview.total_customers == 3
        assert overview.promoters == 1
        assert overview.passives == 1
        assert overview.detractors == 1
        assert overview.nps_score == 0
        assert overview.average_engagement == 37

    def test_empty_overview(self):
        overview = build_audience_overview([])

        assert overview.total_customers == 0
        assert overview.nps_score == 0


class TestIssueAnalysis:
    """Test keyword issue detection in negative feedback."""

    @pytest.fixture
    def submissions(self):
        return [
            make_submission(
                1,
                {"name": "Ana", "rating": 2, "feedback": "Too expensive and the staff were rude"},
                age=timedelta(days=1),
            ),
            make_submission(2, {"rating": 5, "feedback": "Great price, lovely staff"}, age=timedelta(days=2)),
            make_submission(3, {"feedback": "Awful wait, the queue never moved"}, age=timedelta(days=9)),
            make_submission(
                4,
                {"email": "ben@example.com", "rating": 3, "feedback": "Price was fine"},
                age=timedelta(days=10),
            ),
            make_submission(5, {"rating": 1, "feedback": "Nothing to add"}, age=timedelta(days=3)),
        ]

    def test_no_submissions(self):
        report = build_issue_analysis([], now=NOW)

        assert report.issues == []
        assert report.total_submissions == 0
        assert report.negative_submissions == 0
        assert report.analysis_date == NOW

    def test_counts_only_negative_feedback(self, submissions):
        report = build_issue_analysis(submissions, now=NOW)

        assert report.total_submissions == 5
        assert report.negative_submissions == 4
        assert [(issue.key, issue.count) for issue in report.issues] == [
            ("pricing", 2),
            ("service", 1),
            ("wait_time", 1),
        ]

    def test_complaint_words_make_unrated_feedback_negative(self, submissions):
        report = build_issue_analysis(submissions, now=NOW)
        wait_time = next(issue for issue in report.issues if issue.key == "wait_time")

        assert wait_time.issue == "Wait Time"
        assert wait_time.recent_submissions[0].id == 3
        assert wait_time.recent_submissions[0].rating == 5
        assert wait_time.recent_submissions[0].submitter == "Anonymous"

    def test_severity_from_share_of_negative_feedback(self, submissions):
        report = build_issue_analysis(submissions, now=NOW)
        severity = {issue.key: issue.severity for issue in report.issues}

        assert severity == {"pricing": "high", "service": "medium", "wait_time": "medium"}

    def test_low_severity(self):
        submissions = [make_submission(1, {"rating": 1, "feedback": "Far too expensive"})] + [
            make_submission(index, {"rating": 1, "feedback": "Nothing to add"}) for index in range(2, 8)
        ]

        report = build_issue_analysis(submissions, now=NOW)

        assert [(issue.key, issue.severity) for issue in report.issues] == [
            ("pricing", "low"),
            ("location", "low"),
        ]

    def test_trend_compares_last_two_weeks(self, submissions):
        report = build_issue_analysis(submissions, now=NOW)
        trend = {issue.key: issue.trend for issue in report.issues}

        assert trend == {"pricing": "stable", "service": "up", "wait_time": "down"}

    def test_examples_newest_first_with_submitter(self, submissions):
        report = build_issue_analysis(submissions, now=NOW)
        pricing = report.issues[0]

        assert [example.id for example in pricing.recent_submissions] == [1, 4]
        assert [example.submitter for example in pricing.recent_submissions] == ["Ana", "ben@example.com"]
        assert pricing.recent_submissions[0].feedback == "Too expensive and the staff were rude"

    def test_examples_capped_at_three(self):
        submissions = [
            make_submission(index, {"rating": 1, "feedback": "Overpriced"}, age=timedelta(hours=index))
            for index in range(1, 6)
        ]

        pricing = build_issue_analysis(submissions, now=NOW).issues[0]

        assert pricing.count == 5
        assert [example.id for example in pricing.recent_submissions] == [1, 2, 3]

    def test_top_five_issues(self):
        text = "Expensive, rude staff, poor quality, late delivery, limited selection, dirty tables"

        report = build_issue_analysis([make_submission(1, {"rating": 1, "feedback": text})], now=NOW)

        assert [issue.key for issue in report.issues] == [
            "pricing",
            "service",
            "quality",
            "delivery",
            "selection",
        ]

    def test_custom_field_names_read_through_form(self):
        fields = [
            FormField(id="stars", type="rating", label="How was it?"),
            FormField(id="notes", type="textarea", label="Comments"),
        ]
        submission = make_submission(1, {"stars": 2, "notes": "The parking was a nightmare"})

        report = build_issue_analysis([submission], fields, now=NOW)

        assert [issue.key for issue in report.issues] == ["location"]
