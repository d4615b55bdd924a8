"""
Tests for PaymentLedgerUseCase.
"""

from datetime import date

import pytest

from storefront.domain import (
    Order,
    PaymentMethod,
    PaymentStatus,
    Principal,
    StockRequest,
)
from storefront.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from storefront.money import Money
from storefront.tests.conftest import Engine, client_principal
from storefront.usecases.payment_ledger import validate_payment_fields


async def placed_order(engine: Engine, admin: Principal) -> Order:
    """An order whose total is 120.00."""
    client = await engine.add_client()
    product = await engine.add_product(price="100.00")
    return await engine.place_order.place_order(
        admin,
        client.client_id,
        [StockRequest(product_id=product.product_id, quantity=1)],
    )


class TestValidatePaymentFields:
    def test_cash_needs_only_a_reference(self) -> None:
        validate_payment_fields(Money.of("1.00"), PaymentMethod.CASH, "R1")

    def test_cheque_lists_every_missing_field(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_payment_fields(
                Money.of("1.00"), PaymentMethod.CHEQUE, "R1"
            )
        assert exc_info.value.details["missing"] == [
            "bank",
            "chequeNumber",
            "dueDate",
        ]

    def test_transfer_needs_a_bank(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_payment_fields(
                Money.of("1.00"), PaymentMethod.TRANSFER, "R1", bank="  "
            )
        assert exc_info.value.details["missing"] == ["bank"]

    def test_complete_cheque(self) -> None:
        validate_payment_fields(
            Money.of("1.00"),
            PaymentMethod.CHEQUE,
            "R1",
            bank="BMCE",
            cheque_number="000123",
            due_date=date(2026, 1, 31),
        )

    @pytest.mark.parametrize("amount", ["0.00", "-5.00"])
    def test_amount_must_be_positive(self, amount: str) -> None:
        with pytest.raises(ValidationError, match="positive"):
            validate_payment_fields(
                Money.of(amount), PaymentMethod.CASH, "R1"
            )

    def test_reference_is_required(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_payment_fields(Money.of("1.00"), PaymentMethod.CASH, None)
        assert exc_info.value.details["missing"] == ["reference"]


class TestCreatePayment:
    @pytest.mark.asyncio
    async def test_records_pending_payments_numbered_per_order(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)

        first = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("20.00"), PaymentMethod.CASH, "R1"
        )
        second = await engine.payment_ledger.create_payment(
            admin,
            order.order_id,
            Money.of("30.00"),
            PaymentMethod.TRANSFER,
            "R2",
            bank="CIH",
        )

        assert first.status is PaymentStatus.PENDING
        assert [first.payment_number, second.payment_number] == [1, 2]
        listed = await engine.payment_ledger.list_for_order(
            admin, order.order_id
        )
        assert [p.payment_id for p in listed] == [
            first.payment_id,
            second.payment_id,
        ]

    @pytest.mark.asyncio
    async def test_overpayment_is_refused(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        with pytest.raises(ValidationError) as exc_info:
            await engine.payment_ledger.create_payment(
                admin,
                order.order_id,
                Money.of("120.01"),
                PaymentMethod.CASH,
                "R1",
            )
        assert exc_info.value.details["available"] == "120.00"

    @pytest.mark.asyncio
    async def test_pending_payments_cannot_jointly_overpay(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("100.00"), PaymentMethod.CASH, "R1"
        )
        with pytest.raises(ValidationError):
            await engine.payment_ledger.create_payment(
                admin,
                order.order_id,
                Money.of("30.00"),
                PaymentMethod.CASH,
                "R2",
            )

    @pytest.mark.asyncio
    async def test_rejected_payments_free_their_amount(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        bounced = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("120.00"), PaymentMethod.CASH, "R1"
        )
        await engine.payment_ledger.reject_payment(admin, bounced.payment_id)

        replacement = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("120.00"), PaymentMethod.CASH, "R2"
        )
        assert replacement.payment_number == 2

    @pytest.mark.asyncio
    async def test_cheque_without_number_is_refused(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        with pytest.raises(ValidationError):
            await engine.payment_ledger.create_payment(
                admin,
                order.order_id,
                Money.of("10.00"),
                PaymentMethod.CHEQUE,
                "R1",
                bank="BMCE",
                due_date=date(2026, 1, 31),
            )
        assert await engine.payments.list_for_order(order.order_id) == []

    @pytest.mark.asyncio
    async def test_closed_orders_take_no_payments(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        await engine.lifecycle.cancel_order(admin, order.order_id)
        with pytest.raises(ValidationError, match="pending order"):
            await engine.payment_ledger.create_payment(
                admin,
                order.order_id,
                Money.of("1.00"),
                PaymentMethod.CASH,
                "R",
            )

    @pytest.mark.asyncio
    async def test_unknown_order(
        self, engine: Engine, admin: Principal
    ) -> None:
        with pytest.raises(NotFoundError):
            await engine.payment_ledger.create_payment(
                admin, 404, Money.of("1.00"), PaymentMethod.CASH, "R"
            )

    @pytest.mark.asyncio
    async def test_client_pays_only_own_orders(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        await engine.payment_ledger.create_payment(
            client_principal(order.client_id),
            order.order_id,
            Money.of("1.00"),
            PaymentMethod.CASH,
            "R1",
        )
        with pytest.raises(UnauthorizedError):
            await engine.payment_ledger.create_payment(
                client_principal(order.client_id + 1),
                order.order_id,
                Money.of("1.00"),
                PaymentMethod.CASH,
                "R2",
            )

    @pytest.mark.asyncio
    async def test_idempotent_creation(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        args = (
            admin,
            order.order_id,
            Money.of("10.00"),
            PaymentMethod.CASH,
            "R",
        )

        first = await engine.payment_ledger.create_payment(
            *args, idempotency_key="pay-1"
        )
        again = await engine.payment_ledger.create_payment(
            *args, idempotency_key="pay-1"
        )

        assert again.payment_id == first.payment_id
        assert len(await engine.payments.list_for_order(order.order_id)) == 1

    @pytest.mark.asyncio
    async def test_replayed_key_still_checks_ownership(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        owner = client_principal(order.client_id)
        stranger = client_principal(order.client_id + 1)
        args = (
            order.order_id,
            Money.of("10.00"),
            PaymentMethod.CASH,
            "R",
        )
        await engine.payment_ledger.create_payment(
            owner, *args, idempotency_key="k1"
        )

        with pytest.raises(UnauthorizedError):
            await engine.payment_ledger.create_payment(
                stranger, *args, idempotency_key="k1"
            )


class TestSettlePayment:
    @pytest.mark.asyncio
    async def test_encash_reduces_balance(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        payment = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("50.00"), PaymentMethod.CASH, "R1"
        )

        cleared = await engine.payment_ledger.encash_payment(
            admin, payment.payment_id
        )

        assert cleared.status is PaymentStatus.CLEARED
        assert cleared.encashment_date is not None
        balance = await engine.payment_ledger.balance(admin, order.order_id)
        assert balance.remaining == Money.of("70.00")

    @pytest.mark.asyncio
    async def test_reject_never_moves_balance(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        payment = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("50.00"), PaymentMethod.CASH, "R1"
        )
        before = await engine.payment_ledger.balance(admin, order.order_id)

        rejected = await engine.payment_ledger.reject_payment(
            admin, payment.payment_id, "insufficient funds"
        )

        after = await engine.payment_ledger.balance(admin, order.order_id)
        assert rejected.status is PaymentStatus.REJECTED
        assert rejected.status_reason == "insufficient funds"
        assert after.remaining == before.remaining == Money.of("120.00")

    @pytest.mark.asyncio
    async def test_settled_payments_are_terminal(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        payment = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("50.00"), PaymentMethod.CASH, "R1"
        )
        await engine.payment_ledger.encash_payment(admin, payment.payment_id)

        with pytest.raises(InvalidStateTransitionError):
            await engine.payment_ledger.encash_payment(
                admin, payment.payment_id
            )
        with pytest.raises(InvalidStateTransitionError):
            await engine.payment_ledger.reject_payment(
                admin, payment.payment_id
            )

    @pytest.mark.asyncio
    async def test_clients_cannot_settle(
        self, engine: Engine, admin: Principal
    ) -> None:
        order = await placed_order(engine, admin)
        payment = await engine.payment_ledger.create_payment(
            admin, order.order_id, Money.of("50.00"), PaymentMethod.CASH, "R1"
        )
        with pytest.raises(UnauthorizedError):
            await engine.payment_ledger.encash_payment(
                client_principal(order.client_id), payment.payment_id
            )

    @pytest.mark.asyncio
    async def test_unknown_payment(
        self, engine: Engine, admin: Principal
    ) -> None:
        with pytest.raises(NotFoundError):
            await engine.payment_ledger.encash_payment(admin, 404)
