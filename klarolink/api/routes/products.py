"""Product management endpoints for the KlaroLink API.

Products are shown on the public page so customers can say what their
feedback is about.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from klarolink.api.dependencies import get_current_business_id, get_db
from klarolink.api.models import (
    ErrorResponse,
    ProductCreateRequest,
    ProductListResponse,
    ProductReorderRequest,
    ProductUpdateRequest,
)
from klarolink.database.base import DatabaseAdapter
from klarolink.models.schemas import Product

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


async def _owned_product(db: DatabaseAdapter, product_id: int, business_id: int) -> Product:
    product = await db.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.business_id != business_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return product


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid token"}},
)
async def list_products(
    enabled_only: bool = Query(False, description="Only products shown on the page"),
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> ProductListResponse:
    products = await db.get_products(business_id, enabled_only=enabled_only)
    return ProductListResponse(products=products, total=len(products))


@router.post(
    "",
    response_model=Product,
    status_code=201,
    summary="Add a product",
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid token"}},
)
async def create_product(
    request: ProductCreateRequest,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> Product:
    product = await db.create_product({
        "business_id": business_id,
        **request.model_dump(exclude_none=True),
    })
    logger.info("product_created", business_id=business_id, product_id=product.id)
    return product


@router.post(
    "/reorder",
    response_model=ProductListResponse,
    summary="Reorder products",
    description="Set display order from the given list of product ids.",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "A product belongs to another business"},
        404: {"model": ErrorResponse, "description": "Product not found"},
    },
)
async def reorder_products(
    request: ProductReorderRequest,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> ProductListResponse:
    for product_id in request.product_ids:
        await _owned_product(db, product_id, business_id)

    products = await db.reorder_products(business_id, request.product_ids)
    return ProductListResponse(products=products, total=len(products))


@router.put(
    "/{product_id}",
    response_model=Product,
    summary="Update a product",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Product belongs to another business"},
        404: {"model": ErrorResponse, "description": "Product not found"},
    },
)
async def update_product(
    product_id: int,
    request: ProductUpdateRequest,
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> Product:
    await _owned_product(db, product_id, business_id)

    updated: Optional[Product] = await db.update_product(
        product_id, request.model_dump(exclude_unset=True)
    )
    if updated is None:
        raise HTTPException(status_code=404, detail="Product not found")

    logger.info("product_updated", business_id=business_id, product_id=product_id)
    return updated
