"""Product review endpoints for the KlaroLink API.

Reviews are public: anyone on the feedback page can read them or leave one.
A customer token links the review to the customer when it belongs to the
product's business.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException

from klarolink.analytics.insights import round_half_up
from klarolink.api.dependencies import get_db, get_optional_customer_id
from klarolink.api.models import (
    ErrorResponse,
    ProductReviewCreateRequest,
    ProductReviewListResponse,
)
from klarolink.database.base import DatabaseAdapter
from klarolink.models.schemas import Product, ProductReview

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


async def _get_product(db: DatabaseAdapter, product_id: int) -> Product:
    product = await db.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get(
    "/product/{product_id}",
    response_model=ProductReviewListResponse,
    summary="List product reviews",
    responses={404: {"model": ErrorResponse, "description": "Product not found"}},
)
async def list_product_reviews(
    product_id: int,
    db: DatabaseAdapter = Depends(get_db),
) -> ProductReviewListResponse:
    product = await _get_product(db, product_id)
    reviews = await db.get_product_reviews(product_id)

    average = sum(review.rating for review in reviews) / len(reviews) if reviews else 0.0
    return ProductReviewListResponse(
        product_id=product.id,
        product_name=product.name,
        reviews=reviews,
        total=len(reviews),
        average_rating=round_half_up(average, 1),
    )


@router.post(
    "/product/{product_id}",
    response_model=ProductReview,
    status_code=201,
    summary="Review a product",
    responses={
        400: {"model": ErrorResponse, "description": "Comment missing"},
        404: {"model": ErrorResponse, "description": "Product not found or hidden"},
    },
)
async def create_product_review(
    product_id: int,
    request: ProductReviewCreateRequest,
    db: DatabaseAdapter = Depends(get_db),
    customer_id: Optional[int] = Depends(get_optional_customer_id),
) -> ProductReview:
    product = await _get_product(db, product_id)
    if not product.is_enabled:
        raise HTTPException(status_code=404, detail="Product not found")

    comment = request.comment.strip()
    if not comment:
        raise HTTPException(status_code=400, detail="Comment is required")

    if customer_id is not None:
        customer = await db.get_customer(customer_id)
        if customer is None or customer.business_id != product.business_id:
            customer_id = None

    review = await db.create_product_review({
        "product_id": product.id,
        "business_id": product.business_id,
        "customer_id": customer_id,
        "rating": request.rating,
        "comment": comment,
    })

    logger.info(
        "product_review_submitted",
        product_id=product.id,
        review_id=review.id,
        customer_id=customer_id,
    )
    return review
