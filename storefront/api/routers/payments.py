"""
Payments API router.

Routes (mounted at /api/payments):
- POST / - Record a payment (accepts an Idempotency-Key header)
- GET /{payment_id} - Get one payment
- GET /order/{order_id} - Payments of an order
- PUT /{payment_id}/encash - Mark as encashed (admin)
- PUT /{payment_id}/reject - Mark as rejected (admin)

Every payment response embeds the order's total and remaining amount as
they stand after the call.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Header

from storefront.api.dependencies import (
    get_current_principal,
    get_payment_ledger_use_case,
)
from storefront.api.requests import CreatePaymentRequest, ReasonRequest
from storefront.api.responses import PaymentResponse
from storefront.domain import Payment, Principal
from storefront.usecases import PaymentLedgerUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


async def _respond(
    ledger: PaymentLedgerUseCase, principal: Principal, payment: Payment
) -> PaymentResponse:
    balance = await ledger.balance(principal, payment.order_id)
    return PaymentResponse.from_domain(payment, balance)


@router.post("", response_model=PaymentResponse, status_code=201)
async def create_payment(
    request: CreatePaymentRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    ledger: PaymentLedgerUseCase = Depends(get_payment_ledger_use_case),
    principal: Principal = Depends(get_current_principal),
) -> PaymentResponse:
    payment = await ledger.create_payment(
        principal,
        request.order_id,
        request.amount,
        request.payment_method,
        request.reference,
        bank=request.bank,
        cheque_number=request.cheque_number,
        due_date=request.due_date,
        idempotency_key=idempotency_key,
    )
    return await _respond(ledger, principal, payment)


@router.get("/order/{order_id}", response_model=List[PaymentResponse])
async def list_order_payments(
    order_id: int,
    ledger: PaymentLedgerUseCase = Depends(get_payment_ledger_use_case),
    principal: Principal = Depends(get_current_principal),
) -> List[PaymentResponse]:
    payments = await ledger.list_for_order(principal, order_id)
    balance = await ledger.balance(principal, order_id)
    return [PaymentResponse.from_domain(p, balance) for p in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    ledger: PaymentLedgerUseCase = Depends(get_payment_ledger_use_case),
    principal: Principal = Depends(get_current_principal),
) -> PaymentResponse:
    payment = await ledger.get_payment(principal, payment_id)
    return await _respond(ledger, principal, payment)


@router.put("/{payment_id}/encash", response_model=PaymentResponse)
async def encash_payment(
    payment_id: int,
    ledger: PaymentLedgerUseCase = Depends(get_payment_ledger_use_case),
    principal: Principal = Depends(get_current_principal),
) -> PaymentResponse:
    payment = await ledger.encash_payment(principal, payment_id)
    return await _respond(ledger, principal, payment)


@router.put("/{payment_id}/reject", response_model=PaymentResponse)
async def reject_payment(
    payment_id: int,
    request: Optional[ReasonRequest] = Body(None),
    ledger: PaymentLedgerUseCase = Depends(get_payment_ledger_use_case),
    principal: Principal = Depends(get_current_principal),
) -> PaymentResponse:
    reason = request.reason if request else None
    payment = await ledger.reject_payment(principal, payment_id, reason)
    return await _respond(ledger, principal, payment)
