"""Feedback form endpoints for the KlaroLink API.

Read and save the business's form, and toggle whether its public page is
published.
"""

import structlog
from fastapi import APIRouter, Depends

from klarolink.analytics.field_categorization import add_backward_compatibility_categories
from klarolink.api.dependencies import ensure_same_business, get_current_business_id, get_db
from klarolink.api.models import (
    ErrorResponse,
    FormPublishRequest,
    FormPublishResponse,
    FormResponse,
    FormSaveResponse,
    FormStatusResponse,
    FormUpdateRequest,
)
from klarolink.database.base import DatabaseAdapter

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/forms", tags=["Forms"])


@router.get(
    "",
    response_model=FormResponse,
    summary="Get the feedback form",
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid token"}},
)
async def get_form(
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> FormResponse:
    return FormResponse(form=await db.get_feedback_form(business_id))


@router.post(
    "",
    response_model=FormSaveResponse,
    summary="Save the feedback form",
    description=(
        "Replace the form's fields. Fields without an explicit category are tagged "
        "with the detected one so analytics can find ratings and comments."
    ),
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Business id does not match the token"},
    },
)
async def save_form(
    request: FormUpdateRequest,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> FormSaveResponse:
    ensure_same_business(request.business_id, business_id)

    fields = add_backward_compatibility_categories(request.fields)
    form = await db.update_feedback_form(
        business_id,
        fields,
        title=request.title,
        description=request.description,
        preview_enabled=request.preview_enabled,
    )

    logger.info("feedback_form_saved", business_id=business_id, field_count=len(fields))
    return FormSaveResponse(message="Form saved successfully", form=form)


@router.post(
    "/publish",
    response_model=FormPublishResponse,
    summary="Publish or unpublish the feedback page",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Business id does not match the token"},
        404: {"model": ErrorResponse, "description": "Business has no form"},
    },
)
async def publish_form(
    request: FormPublishRequest,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> FormPublishResponse:
    ensure_same_business(request.business_id, business_id)

    form = await db.set_form_published(business_id, request.is_published)
    logger.info("feedback_form_publish_changed", business_id=business_id, is_published=form.preview_enabled)

    return FormPublishResponse(
        message="Form is now public" if form.preview_enabled else "Form is now private",
        form_id=form.id,
        is_published=form.preview_enabled,
    )


@router.get(
    "/status/{requested_business_id}",
    response_model=FormStatusResponse,
    summary="Published state of the feedback page",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Business id does not match the token"},
    },
)
async def get_form_status(
    requested_business_id: int,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> FormStatusResponse:
    ensure_same_business(requested_business_id, business_id)

    form = await db.get_feedback_form(business_id)
    return FormStatusResponse(
        business_id=business_id,
        is_published=form.preview_enabled if form else False,
    )
