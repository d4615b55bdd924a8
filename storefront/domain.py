"""
Domain models defined as Pydantic models.
These are pure data structures with validation.

Status, tier, method and role fields are closed ``str`` enums; every
consumer dispatches on the enum members rather than comparing strings.
Monetary fields use the fixed-point Money type.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.money import Money


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClientTier(str, Enum):
    """Loyalty classification that drives discount eligibility."""

    BASIC = "BASIC"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    REJECTED = "REJECTED"


class PaymentStatus(str, Enum):
    """Payment states. Values are the labels the console displays."""

    PENDING = "EN_ATTENTE"
    CLEARED = "ENCAISSE"
    REJECTED = "REJETE"


class PaymentMethod(str, Enum):
    CASH = "ESPECES"
    CHEQUE = "CHEQUE"
    TRANSFER = "VIREMENT"


class Role(str, Enum):
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"


class Product(BaseModel):
    product_id: int
    name: str
    unit_price: Money
    stock: int = 0
    deleted: bool = False
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Product name cannot be empty")
        return v.strip()

    @field_validator("unit_price")
    @classmethod
    def price_must_be_non_negative(cls, v: Money) -> Money:
        if v.is_negative():
            raise ValueError("Price must be non-negative")
        return v

    @field_validator("stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock must be non-negative")
        return v


class Client(BaseModel):
    """A purchasing client.

    The aggregate fields are derived from the client's confirmed orders and
    are only ever written by the order confirmation transition.
    """

    client_id: int
    full_name: str
    email: str
    tier: ClientTier = ClientTier.BASIC
    total_spent: Money = Field(default_factory=Money.zero)
    total_orders: int = 0
    first_order_date: Optional[datetime] = None
    last_order_date: Optional[datetime] = None

    @field_validator("full_name")
    @classmethod
    def full_name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()

    @field_validator("email")
    @classmethod
    def email_must_look_valid(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Email address is not valid")
        return v


class OrderLine(BaseModel):
    """A priced order line. The unit price is captured when the order is
    placed and never follows later catalog changes."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    product_name: str = ""
    quantity: int
    unit_price: Money

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be positive")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_must_be_non_negative(cls, v: Money) -> Money:
        if v.is_negative():
            raise ValueError("Price must be non-negative")
        return v

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


class StockRequest(BaseModel):
    """Quantity requested for one product, before pricing."""

    product_id: int
    quantity: int


class PricingBreakdown(BaseModel):
    """Output of the pricing engine. Every field is derived."""

    model_config = ConfigDict(frozen=True)

    sub_total: Money
    tier_discount: Money
    promo_discount: Money
    total_discount: Money
    tax: Money
    total: Money
    tier_rate: str = "0"
    promo_applied: bool = False

    @property
    def taxable_amount(self) -> Money:
        return self.sub_total - self.total_discount


class OrderQuote(BaseModel):
    """Authoritative pricing of a prospective order against the current
    catalog."""

    client_id: int
    client_name: str
    client_tier: ClientTier
    lines: List[OrderLine]
    breakdown: PricingBreakdown
    promo_code: Optional[str] = None


class Order(BaseModel):
    order_id: int
    client_id: int
    client_name: str = ""
    lines: List[OrderLine]
    sub_total: Money
    tier_discount: Money
    promo_discount: Money
    total_discount: Money
    tax: Money
    total: Money
    status: OrderStatus = OrderStatus.PENDING
    promo_code: Optional[str] = None
    stock_reserved: bool = False
    status_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    confirmed_at: Optional[datetime] = None
    version: int = 0

    @field_validator("lines")
    @classmethod
    def lines_must_not_be_empty(cls, v: List[OrderLine]) -> List[OrderLine]:
        if not v:
            raise ValueError("Order must contain at least one line")
        return v

    @field_validator("total")
    @classmethod
    def total_must_be_non_negative(cls, v: Money) -> Money:
        if v.is_negative():
            raise ValueError("Total must be non-negative")
        return v

    @classmethod
    def from_quote(
        cls, order_id: int, quote: "OrderQuote", stock_reserved: bool
    ) -> "Order":
        """Build a new PENDING order from an authoritative quote."""
        breakdown = quote.breakdown
        return cls(
            order_id=order_id,
            client_id=quote.client_id,
            client_name=quote.client_name,
            lines=quote.lines,
            sub_total=breakdown.sub_total,
            tier_discount=breakdown.tier_discount,
            promo_discount=breakdown.promo_discount,
            total_discount=breakdown.total_discount,
            tax=breakdown.tax,
            total=breakdown.total,
            promo_code=quote.promo_code if breakdown.promo_applied else None,
            stock_reserved=stock_reserved,
        )


class Payment(BaseModel):
    payment_id: int
    order_id: int
    payment_number: int
    amount: Money
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    reference: str = ""
    bank: Optional[str] = None
    cheque_number: Optional[str] = None
    due_date: Optional[date] = None
    payment_date: datetime = Field(default_factory=utcnow)
    encashment_date: Optional[datetime] = None
    status_reason: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Money) -> Money:
        if v.is_negative() or v.is_zero():
            raise ValueError("Amount must be positive")
        return v

    @field_validator("payment_number")
    @classmethod
    def payment_number_starts_at_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Payment number must be at least 1")
        return v


class BalanceSummary(BaseModel):
    """Ledger view of one order."""

    order_id: int
    total: Money
    cleared: Money
    committed: Money
    remaining: Money
    payment_status: PaymentStatus


class PromoCode(BaseModel):
    code: str
    active: bool = True
    single_use: bool = False
    redeemed_by: Set[int] = Field(default_factory=set)


class User(BaseModel):
    user_id: int
    username: str
    password_hash: str = Field(repr=False)
    role: Role = Role.CLIENT
    client_id: Optional[int] = None


class IdempotencyRecord(BaseModel):
    key: str
    scope: str
    request_hash: str
    entity_id: int
    created_at: datetime = Field(default_factory=utcnow)


class ClientAggregates(BaseModel):
    total_spent: Money
    total_orders: int
    first_order_date: Optional[datetime] = None
    last_order_date: Optional[datetime] = None

    @classmethod
    def from_orders(cls, confirmed: List[Order]) -> "ClientAggregates":
        """Derive client aggregates from the client's confirmed orders."""
        dates = sorted(
            order.confirmed_at or order.created_at for order in confirmed
        )
        return cls(
            total_spent=Money.sum(order.total for order in confirmed),
            total_orders=len(confirmed),
            first_order_date=dates[0] if dates else None,
            last_order_date=dates[-1] if dates else None,
        )


class Principal(BaseModel):
    """The authenticated actor behind a request."""

    user_id: int
    username: str
    role: Role
    client_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


SYSTEM_PRINCIPAL = Principal(user_id=0, username="system", role=Role.ADMIN)


class OrderView(BaseModel):
    """An order together with the state of its payment ledger."""

    order: Order
    balance: BalanceSummary
