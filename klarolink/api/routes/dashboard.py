"""Dashboard endpoints for the KlaroLink API.

Overview, insights, issues, audience and AI insights for the authenticated business.
"""

import structlog
from fastapi import APIRouter, Depends, Query

from klarolink.analytics.insights import (
    IssueReport,
    build_audience_overview,
    build_customer_segments,
    build_recent_submissions,
)
from klarolink.api.dependencies import get_ai_insights_generator, get_current_business, get_db
from klarolink.api.models import (
    AIInsightsResponse,
    AudienceResponse,
    BusinessResponse,
    DashboardResponse,
    DashboardStats,
    ErrorResponse,
    InsightsResponse,
)
from klarolink.database.base import DEFAULT_SUBMISSION_LIMIT, DatabaseAdapter
from klarolink.models.schemas import Business
from klarolink.services.ai_insights import FeedbackInsightsGenerator

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Dashboard"])

_AUTH_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    404: {"model": ErrorResponse, "description": "Business not found"},
}


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard overview",
    description="Business details, headline stats with recent feedback, social links and form.",
    responses=_AUTH_RESPONSES,
)
async def get_dashboard(
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
) -> DashboardResponse:
    stats = await db.get_analytics_stats(business.id)
    form = await db.get_feedback_form(business.id)
    recent = await db.get_feedback_submissions(business.id, limit=DEFAULT_SUBMISSION_LIMIT)

    return DashboardResponse(
        business=BusinessResponse.model_validate(business),
        stats=DashboardStats(
            **stats.model_dump(),
            recent_feedback=build_recent_submissions(recent, form.fields if form else None),
        ),
        social_links=await db.get_social_links(business.id),
        form=form,
    )


@router.get(
    "/insights",
    response_model=InsightsResponse,
    summary="Detailed insights",
    description="Submission trends, rating distribution, per-field analytics and recent feedback.",
    responses=_AUTH_RESPONSES,
)
async def get_insights(
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
) -> InsightsResponse:
    return InsightsResponse(
        insights=await db.get_detailed_insights(business.id),
        stats=await db.get_analytics_stats(business.id),
    )


@router.get(
    "/audience",
    response_model=AudienceResponse,
    summary="Audience overview",
    description="Customer profiles grouped from submissions, segments and NPS-style totals.",
    responses=_AUTH_RESPONSES,
)
async def get_audience(
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
) -> AudienceResponse:
    profiles = await db.get_customer_profiles(business.id)
    return AudienceResponse(
        customer_profiles=profiles,
        customer_segments=build_customer_segments(profiles),
        overview_stats=build_audience_overview(profiles),
    )


@router.get(
    "/dashboard/issues",
    response_model=IssueReport,
    summary="Recurring issues",
    description=(
        "Negative feedback matched against issue keywords (pricing, service, quality, "
        "delivery, wait time, selection, location, cleanliness). Returns the five most "
        "frequent issues with severity, trend and example submissions."
    ),
    responses=_AUTH_RESPONSES,
)
async def get_issues(
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
) -> IssueReport:
    report = await db.get_issue_analysis(business.id)
    logger.debug("issue_analysis_built", business_id=business.id, issue_count=len(report.issues))
    return report


@router.get(
    "/ai-insights",
    response_model=AIInsightsResponse,
    summary="AI feedback insights",
    description=(
        "Claude-generated analysis of recent feedback. Reports are cached until new "
        "feedback arrives or the cache expires; pass force=true to regenerate."
    ),
    responses={
        **_AUTH_RESPONSES,
        502: {"model": ErrorResponse, "description": "Model returned an unreadable report"},
        503: {"model": ErrorResponse, "description": "AI insights not configured or unavailable"},
    },
)
async def get_ai_insights(
    force: bool = Query(False, description="Bypass the cache"),
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
    generator: FeedbackInsightsGenerator = Depends(get_ai_insights_generator),
) -> AIInsightsResponse:
    submissions = await db.get_feedback_submissions(business.id, limit=None)
    result = await generator.get_insights(business, submissions, force=force)
    return AIInsightsResponse(**result.model_dump())
