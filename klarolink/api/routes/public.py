"""Public feedback page endpoints.

Unauthenticated endpoints used by a business's public page: page data,
analytics pings and feedback submission.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from klarolink.api.dependencies import get_client_ip, get_db, get_optional_customer_id
from klarolink.api.models import (
    AnalyticsEventRequest,
    ErrorResponse,
    FeedbackSubmitRequest,
    MessageResponse,
    PageResponse,
    PublicBusiness,
    SubmissionResponse,
)
from klarolink.database.base import DEFAULT_FORM_TITLE, DatabaseAdapter
from klarolink.models.schemas import Business, FormField

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Public"])


async def _business_for_slug(db: DatabaseAdapter, slug: str) -> Business:
    business = await db.get_business_by_slug(slug)
    if business is None:
        raise HTTPException(status_code=404, detail="Page not found")
    return business


def _missing_required(fields: list[FormField], form_data: dict[str, Any]) -> list[str]:
    """Labels of required fields with no answer."""
    missing = []
    for field in fields:
        if not field.required:
            continue
        value = form_data.get(field.id)
        if value is None or (isinstance(value, str) and not value.strip()) or value == []:
            missing.append(field.label)
    return missing


@router.get(
    "/page/{slug}",
    response_model=PageResponse,
    summary="Public page data",
    description="Business branding, form fields, social links and enabled products for a slug.",
    responses={404: {"model": ErrorResponse, "description": "Page not found"}},
)
async def get_page(
    slug: str,
    db: DatabaseAdapter = Depends(get_db),
) -> PageResponse:
    business = await _business_for_slug(db, slug)
    form = await db.get_feedback_form(business.id)
    social_links = await db.get_social_links(business.id)
    products = await db.get_products(business.id, enabled_only=True)

    return PageResponse(
        business=PublicBusiness.model_validate(business),
        form_title=form.title if form else DEFAULT_FORM_TITLE,
        form_description=form.description if form else None,
        form_fields=form.fields if form else [],
        social_links=social_links,
        products=products,
        is_published=form.preview_enabled if form else False,
    )


@router.post(
    "/analytics/{slug}",
    response_model=MessageResponse,
    summary="Track a page event",
    responses={404: {"model": ErrorResponse, "description": "Page not found"}},
)
async def track_event(
    slug: str,
    event: AnalyticsEventRequest,
    request: Request,
    db: DatabaseAdapter = Depends(get_db),
) -> MessageResponse:
    business = await _business_for_slug(db, slug)

    await db.create_analytics_event({
        "business_id": business.id,
        "event_type": event.event_type,
        "event_data": event.event_data,
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent", "unknown"),
    })
    logger.debug("analytics_event_tracked", business_id=business.id, event_type=event.event_type.value)
    return MessageResponse(message="Event tracked successfully")


@router.post(
    "/feedback/{slug}",
    response_model=SubmissionResponse,
    summary="Submit feedback",
    description=(
        "Store a submission against the business's active form. Sending a customer "
        "token links the submission to that customer."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Required fields missing"},
        404: {"model": ErrorResponse, "description": "Page, form or product not found"},
    },
)
async def submit_feedback(
    slug: str,
    submission: FeedbackSubmitRequest,
    request: Request,
    db: DatabaseAdapter = Depends(get_db),
    customer_id: Optional[int] = Depends(get_optional_customer_id),
) -> SubmissionResponse:
    business = await _business_for_slug(db, slug)

    form = await db.get_feedback_form(business.id)
    if form is None:
        raise HTTPException(status_code=404, detail="No active feedback form found")

    missing = _missing_required(form.fields, submission.form_data)
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    if submission.product_id is not None:
        product = await db.get_product(submission.product_id)
        if product is None or product.business_id != business.id:
            raise HTTPException(status_code=404, detail="Product not found")

    if customer_id is not None:
        customer = await db.get_customer(customer_id)
        if customer is None or customer.business_id != business.id:
            customer_id = None

    stored = await db.create_feedback_submission({
        "business_id": business.id,
        "form_id": form.id,
        "submission_data": submission.form_data,
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent", "unknown"),
        "customer_id": customer_id,
        "product_id": submission.product_id,
    })

    logger.info(
        "feedback_submitted",
        business_id=business.id,
        submission_id=stored.id,
        customer_id=customer_id,
    )
    return SubmissionResponse(message="Feedback submitted successfully", submission_id=stored.id)
