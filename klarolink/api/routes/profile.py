"""Profile and page customisation endpoints for the KlaroLink API."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from klarolink.analytics.field_categorization import add_backward_compatibility_categories
from klarolink.api.dependencies import (
    get_auth_service,
    get_current_business,
    get_current_business_id,
    get_db,
)
from klarolink.api.models import (
    BackgroundUpdateRequest,
    BusinessResponse,
    ButtonCustomization,
    ButtonCustomizationRequest,
    ButtonCustomizationResponse,
    CustomizeRequest,
    CustomizeResponse,
    ErrorResponse,
    MessageResponse,
    ProfileUpdateRequest,
    SocialLinkInput,
    SocialLinksResponse,
    SocialLinksUpdateRequest,
)
from klarolink.config.settings import Settings, get_settings
from klarolink.database.base import DatabaseAdapter
from klarolink.models.schemas import Business
from klarolink.services.auth import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Profile"])

_AUTH_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    404: {"model": ErrorResponse, "description": "Business not found"},
}


def _link_rows(links: list[SocialLinkInput]) -> list[dict]:
    return [
        {
            "platform": link.platform,
            "url": link.url,
            "display_order": index,
            "is_active": link.is_active,
        }
        for index, link in enumerate(links)
    ]


@router.put(
    "/profile",
    response_model=BusinessResponse,
    summary="Update business profile",
    responses={400: {"model": ErrorResponse, "description": "Name missing"}, **_AUTH_RESPONSES},
)
async def update_profile(
    request: ProfileUpdateRequest,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> BusinessResponse:
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Business name is required")

    business = await db.update_business(business_id, {
        "name": name,
        "profile_image": request.profile_image or None,
        "location": request.location or None,
    })
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")

    logger.info("business_profile_updated", business_id=business_id)
    return BusinessResponse.model_validate(business)


@router.put(
    "/profile/social",
    response_model=SocialLinksResponse,
    summary="Replace social links",
    responses=_AUTH_RESPONSES,
)
async def update_social_links(
    request: SocialLinksUpdateRequest,
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
) -> SocialLinksResponse:
    await db.update_social_links(business.id, _link_rows(request.social_links))
    return SocialLinksResponse(social_links=await db.get_social_links(business.id))


@router.put(
    "/profile/background",
    response_model=BusinessResponse,
    summary="Set page background",
    responses={400: {"model": ErrorResponse, "description": "Invalid background"}, **_AUTH_RESPONSES},
)
async def update_background(
    request: BackgroundUpdateRequest,
    business_id: int = Depends(get_current_business_id),
    auth: AuthService = Depends(get_auth_service),
) -> BusinessResponse:
    business = await auth.update_business_background(
        business_id, request.background_type, request.background_value
    )
    return BusinessResponse.model_validate(business)


@router.put(
    "/profile/button-customization",
    response_model=ButtonCustomizationResponse,
    summary="Style the submit button",
    description="Set the submit button colour, text colour and hover colour. Omitted colours are unchanged.",
    responses={400: {"model": ErrorResponse, "description": "Invalid colour"}, **_AUTH_RESPONSES},
)
async def update_button_customization(
    request: ButtonCustomizationRequest,
    business_id: int = Depends(get_current_business_id),
    auth: AuthService = Depends(get_auth_service),
) -> ButtonCustomizationResponse:
    business = await auth.update_button_customization(
        business_id,
        submit_button_color=request.submit_button_color,
        submit_button_text_color=request.submit_button_text_color,
        submit_button_hover_color=request.submit_button_hover_color,
    )
    return ButtonCustomizationResponse(
        message="Button customization updated successfully",
        business=ButtonCustomization.model_validate(business),
    )


@router.get(
    "/customize",
    response_model=CustomizeResponse,
    summary="Current page customisation",
    responses=_AUTH_RESPONSES,
)
async def get_customization(
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CustomizeResponse:
    form = await db.get_feedback_form(business.id)
    is_color = business.background_type == "color"

    return CustomizeResponse(
        form_fields=form.fields if form else [],
        social_links=await db.get_social_links(business.id),
        background_type=business.background_type,
        background_color=business.background_value if is_color else settings.default_background_color,
        background_image="" if is_color else business.background_value,
    )


@router.post(
    "/customize",
    response_model=MessageResponse,
    summary="Save page customisation",
    description="Save background, form fields and social links in one request.",
    responses={400: {"model": ErrorResponse, "description": "Invalid background"}, **_AUTH_RESPONSES},
)
async def save_customization(
    request: CustomizeRequest,
    business: Business = Depends(get_current_business),
    db: DatabaseAdapter = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    if request.background_type == "image":
        background_value = request.background_image or ""
    else:
        background_value = request.background_color or settings.default_background_color

    await auth.update_business_background(business.id, request.background_type, background_value)
    await db.update_feedback_form(business.id, add_backward_compatibility_categories(request.form_fields))
    await db.update_social_links(business.id, _link_rows(request.social_links))

    logger.info("page_customization_saved", business_id=business.id)
    return MessageResponse(message="Customization saved successfully")
