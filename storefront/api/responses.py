"""
Pydantic models for API responses.
These define the contract between the API and the admin console.
"""

import math
from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storefront.domain import (
    BalanceSummary,
    Client,
    ClientTier,
    OrderLine,
    OrderQuote,
    OrderStatus,
    OrderView,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Principal,
    Product,
    Role,
)
from storefront.money import Money

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthCheckResponse(CamelModel):
    status: str
    version: str
    timestamp: datetime


class ProductResponse(CamelModel):
    id: int
    name: str
    price: Money
    stock: int
    deleted: bool
    version: int

    @classmethod
    def from_domain(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.product_id,
            name=product.name,
            price=product.unit_price,
            stock=product.stock,
            deleted=product.deleted,
            version=product.version,
        )


class PageableResponse(CamelModel):
    page_number: int
    page_size: int


class SortResponse(CamelModel):
    sorted: bool
    unsorted: bool


class SpringPage(CamelModel, Generic[T]):
    """Page envelope in the shape the console's tables consume. Page
    numbers are zero-based."""

    content: List[T]
    pageable: PageableResponse
    total_elements: int
    total_pages: int
    last: bool
    first: bool
    size: int
    number: int
    sort: SortResponse
    number_of_elements: int
    empty: bool

    @classmethod
    def build(
        cls, content: List[T], total: int, page: int, size: int, sorted_: bool
    ) -> "SpringPage[T]":
        total_pages = math.ceil(total / size) if size else 0
        return cls(
            content=content,
            pageable=PageableResponse(page_number=page, page_size=size),
            total_elements=total,
            total_pages=total_pages,
            last=page >= total_pages - 1,
            first=page == 0,
            size=size,
            number=page,
            sort=SortResponse(sorted=sorted_, unsorted=not sorted_),
            number_of_elements=len(content),
            empty=not content,
        )


class ClientResponse(CamelModel):
    id: int
    full_name: str
    email: str
    tier: ClientTier
    total_spent: Money
    total_orders: int
    first_order_date: Optional[datetime] = None
    last_order_date: Optional[datetime] = None

    @classmethod
    def from_domain(cls, client: Client) -> "ClientResponse":
        return cls(
            id=client.client_id,
            full_name=client.full_name,
            email=client.email,
            tier=client.tier,
            total_spent=client.total_spent,
            total_orders=client.total_orders,
            first_order_date=client.first_order_date,
            last_order_date=client.last_order_date,
        )


class OrderItemResponse(CamelModel):
    product_id: int
    product_name: str
    quantity: int
    price: Money
    line_total: Money

    @classmethod
    def from_domain(cls, line: OrderLine) -> "OrderItemResponse":
        return cls(
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            price=line.unit_price,
            line_total=line.line_total,
        )


class OrderResponse(CamelModel):
    id: int
    client_id: int
    client_name: str
    items: List[OrderItemResponse]
    sub_total: Money
    tier_discount: Money
    promo_discount: Money
    total_discount: Money
    tax: Money
    total_amount: Money
    remaining_amount: Money
    status: OrderStatus
    payment_status: PaymentStatus
    promo_code: Optional[str] = None
    status_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None

    @classmethod
    def from_view(cls, view: OrderView) -> "OrderResponse":
        order = view.order
        return cls(
            id=order.order_id,
            client_id=order.client_id,
            client_name=order.client_name,
            items=[
                OrderItemResponse.from_domain(line) for line in order.lines
            ],
            sub_total=order.sub_total,
            tier_discount=order.tier_discount,
            promo_discount=order.promo_discount,
            total_discount=order.total_discount,
            tax=order.tax,
            total_amount=order.total,
            remaining_amount=view.balance.remaining,
            status=order.status,
            payment_status=view.balance.payment_status,
            promo_code=order.promo_code,
            status_reason=order.status_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
            confirmed_at=order.confirmed_at,
        )


class QuoteResponse(CamelModel):
    """Non-binding totals for the order form."""

    client_id: int
    client_tier: ClientTier
    items: List[OrderItemResponse]
    sub_total: Money
    tier_discount: Money
    promo_discount: Money
    total_discount: Money
    tax: Money
    total_amount: Money
    tier_rate: str
    promo_applied: bool

    @classmethod
    def from_domain(cls, quote: OrderQuote) -> "QuoteResponse":
        breakdown = quote.breakdown
        return cls(
            client_id=quote.client_id,
            client_tier=quote.client_tier,
            items=[
                OrderItemResponse.from_domain(line) for line in quote.lines
            ],
            sub_total=breakdown.sub_total,
            tier_discount=breakdown.tier_discount,
            promo_discount=breakdown.promo_discount,
            total_discount=breakdown.total_discount,
            tax=breakdown.tax,
            total_amount=breakdown.total,
            tier_rate=breakdown.tier_rate,
            promo_applied=breakdown.promo_applied,
        )


class BalanceResponse(CamelModel):
    order_id: int
    total_amount: Money
    cleared_amount: Money
    committed_amount: Money
    remaining_amount: Money
    payment_status: PaymentStatus

    @classmethod
    def from_domain(cls, balance: BalanceSummary) -> "BalanceResponse":
        return cls(
            order_id=balance.order_id,
            total_amount=balance.total,
            cleared_amount=balance.cleared,
            committed_amount=balance.committed,
            remaining_amount=balance.remaining,
            payment_status=balance.payment_status,
        )


class PaymentOrderSummary(CamelModel):
    id: int
    total_amount: Money
    remaining_amount: Money


class PaymentResponse(CamelModel):
    id: int
    order: PaymentOrderSummary
    payment_number: int
    amount: Money
    payment_date: datetime
    encashment_date: Optional[datetime] = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    reference: str
    bank: Optional[str] = None
    cheque_number: Optional[str] = None
    due_date: Optional[date] = None
    status_reason: Optional[str] = None

    @classmethod
    def from_domain(
        cls, payment: Payment, balance: BalanceSummary
    ) -> "PaymentResponse":
        return cls(
            id=payment.payment_id,
            order=PaymentOrderSummary(
                id=balance.order_id,
                total_amount=balance.total,
                remaining_amount=balance.remaining,
            ),
            payment_number=payment.payment_number,
            amount=payment.amount,
            payment_date=payment.payment_date,
            encashment_date=payment.encashment_date,
            payment_method=payment.method,
            payment_status=payment.status,
            reference=payment.reference,
            bank=payment.bank,
            cheque_number=payment.cheque_number,
            due_date=payment.due_date,
            status_reason=payment.status_reason,
        )


class LoginResponse(CamelModel):
    message: str
    username: str
    role: Role


class MeResponse(CamelModel):
    id: int
    username: str
    role: Role
    client_id: Optional[int] = None

    @classmethod
    def from_domain(cls, principal: Principal) -> "MeResponse":
        return cls(
            id=principal.user_id,
            username=principal.username,
            role=principal.role,
            client_id=principal.client_id,
        )


class MessageResponse(CamelModel):
    message: str
