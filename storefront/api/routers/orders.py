"""
Orders API router.

Routes (mounted at /api/orders):
- POST / - Place an order (accepts an Idempotency-Key header)
- POST /preview - Price an order without placing it
- GET / - List orders, optionally for one client
- GET /{order_id} - Get one order with its payment status
- GET /{order_id}/balance - Payment ledger summary
- PUT /{order_id}/validate - Confirm (admin)
- PUT /{order_id}/cancel - Cancel (admin)
- PUT /{order_id}/reject - Reject (admin)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Header, Query

from storefront.api.dependencies import (
    get_current_principal,
    get_order_lifecycle_use_case,
    get_payment_ledger_use_case,
    get_place_order_use_case,
)
from storefront.api.requests import CreateOrderRequest, ReasonRequest
from storefront.api.responses import (
    BalanceResponse,
    OrderResponse,
    QuoteResponse,
)
from storefront.domain import Principal
from storefront.usecases import (
    OrderLifecycleUseCase,
    PaymentLedgerUseCase,
    PlaceOrderUseCase,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=201)
async def place_order(
    request: CreateOrderRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    ordering: PlaceOrderUseCase = Depends(get_place_order_use_case),
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> OrderResponse:
    """Place an order. Totals are always recomputed from the catalog."""
    order = await ordering.place_order(
        principal,
        request.client_id,
        request.stock_requests(),
        request.promo_code,
        idempotency_key=idempotency_key,
    )
    return OrderResponse.from_view(await lifecycle.describe(order))


@router.post("/preview", response_model=QuoteResponse)
async def preview_order(
    request: CreateOrderRequest,
    ordering: PlaceOrderUseCase = Depends(get_place_order_use_case),
    principal: Principal = Depends(get_current_principal),
) -> QuoteResponse:
    quote = await ordering.preview_totals(
        principal,
        request.client_id,
        request.stock_requests(),
        request.promo_code,
    )
    return QuoteResponse.from_domain(quote)


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    client_id: Optional[int] = Query(None, alias="clientId"),
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> List[OrderResponse]:
    views = await lifecycle.list_orders(principal, client_id)
    return [OrderResponse.from_view(view) for view in views]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> OrderResponse:
    return OrderResponse.from_view(
        await lifecycle.get_order(principal, order_id)
    )


@router.get("/{order_id}/balance", response_model=BalanceResponse)
async def get_order_balance(
    order_id: int,
    ledger: PaymentLedgerUseCase = Depends(get_payment_ledger_use_case),
    principal: Principal = Depends(get_current_principal),
) -> BalanceResponse:
    return BalanceResponse.from_domain(
        await ledger.balance(principal, order_id)
    )


@router.put("/{order_id}/validate", response_model=OrderResponse)
async def confirm_order(
    order_id: int,
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> OrderResponse:
    return OrderResponse.from_view(
        await lifecycle.confirm_order(principal, order_id)
    )


@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    request: Optional[ReasonRequest] = Body(None),
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> OrderResponse:
    reason = request.reason if request else None
    return OrderResponse.from_view(
        await lifecycle.cancel_order(principal, order_id, reason)
    )


@router.put("/{order_id}/reject", response_model=OrderResponse)
async def reject_order(
    order_id: int,
    request: Optional[ReasonRequest] = Body(None),
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> OrderResponse:
    reason = request.reason if request else None
    return OrderResponse.from_view(
        await lifecycle.reject_order(principal, order_id, reason)
    )
