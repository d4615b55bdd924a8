"""
Products API router.

Routes (mounted at /api/products):
- GET / - List products (optionally including soft-deleted ones)
- GET /page - Paged, sorted listing
- GET /{product_id} - Get one product
- POST / - Create a product (admin)
- PUT /{product_id} - Update a product (admin)
- DELETE /{product_id} - Soft delete (admin)
- PUT /{product_id}/restore - Undo a soft delete (admin)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response
from fastapi_pagination import Params, paginate

from storefront.api.dependencies import (
    get_catalog_use_case,
    get_current_principal,
)
from storefront.api.requests import CreateProductRequest, UpdateProductRequest
from storefront.api.responses import ProductResponse, SpringPage
from storefront.domain import Principal
from storefront.usecases import CatalogUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[ProductResponse])
async def list_products(
    include_deleted: bool = Query(False, alias="includeDeleted"),
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> List[ProductResponse]:
    products = await catalog.list_products(include_deleted)
    return [ProductResponse.from_domain(p) for p in products]


@router.get("/page", response_model=SpringPage[ProductResponse])
async def list_products_page(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort_by: str = Query("id", alias="sortBy"),
    sort_dir: str = Query("asc", alias="sortDir"),
    include_deleted: bool = Query(False, alias="includeDeleted"),
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> SpringPage[ProductResponse]:
    """Zero-based page of products, sorted by one column."""
    products = await catalog.list_products(include_deleted, sort_by, sort_dir)
    result = paginate(products, params=Params(page=page + 1, size=size))
    return SpringPage[ProductResponse].build(
        content=[ProductResponse.from_domain(p) for p in result.items],
        total=result.total or 0,
        page=page,
        size=size,
        sorted_=True,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> ProductResponse:
    return ProductResponse.from_domain(await catalog.get_product(product_id))


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    request: CreateProductRequest,
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> ProductResponse:
    logger.info("Product creation requested", extra={"product_name": request.name})
    product = await catalog.create_product(
        principal, request.name, request.price, request.stock
    )
    return ProductResponse.from_domain(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    request: UpdateProductRequest,
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> ProductResponse:
    product = await catalog.update_product(
        principal,
        product_id,
        name=request.name,
        unit_price=request.price,
        stock=request.stock,
    )
    return ProductResponse.from_domain(product)


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: int,
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> Response:
    await catalog.delete_product(principal, product_id)
    return Response(status_code=204)


@router.put("/{product_id}/restore", response_model=ProductResponse)
async def restore_product(
    product_id: int,
    catalog: CatalogUseCase = Depends(get_catalog_use_case),
    principal: Principal = Depends(get_current_principal),
) -> ProductResponse:
    product = await catalog.restore_product(principal, product_id)
    return ProductResponse.from_domain(product)
