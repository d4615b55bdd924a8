"""
Pydantic models for API requests.

Field names are camelCase on the wire. Business rules (positive quantities,
non-empty orders, method-specific payment fields) are enforced by the use
cases so that they are reported as domain errors, not schema errors.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storefront.domain import ClientTier, PaymentMethod, StockRequest
from storefront.money import Money


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateProductRequest(CamelModel):
    name: str
    price: Money
    stock: int = 0


class UpdateProductRequest(CamelModel):
    name: Optional[str] = None
    price: Optional[Money] = None
    stock: Optional[int] = None


class CreateClientRequest(CamelModel):
    full_name: str
    email: str
    password: str
    tier: ClientTier = ClientTier.BASIC


class UpdateClientRequest(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    tier: Optional[ClientTier] = None


class OrderItemRequest(CamelModel):
    product_id: int
    quantity: int

    def to_domain_model(self) -> StockRequest:
        return StockRequest(product_id=self.product_id, quantity=self.quantity)


class CreateOrderRequest(CamelModel):
    """Order placement. Any totals the console computed are not part of
    the request and are recomputed server side."""

    client_id: int
    items: List[OrderItemRequest]
    promo_code: Optional[str] = None

    def stock_requests(self) -> List[StockRequest]:
        return [item.to_domain_model() for item in self.items]


class CreatePaymentRequest(CamelModel):
    order_id: int
    amount: Money
    payment_method: PaymentMethod
    reference: Optional[str] = None
    bank: Optional[str] = None
    cheque_number: Optional[str] = None
    due_date: Optional[date] = None


class ReasonRequest(CamelModel):
    reason: Optional[str] = None


class LoginRequest(CamelModel):
    username: str
    password: str
