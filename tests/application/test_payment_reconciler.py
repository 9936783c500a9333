"""Tests for payment callback reconciliation."""

import asyncio

import pytest
import pytest_asyncio

from checkout_api.application.cart_service import CartService
from checkout_api.application.order_service import OrderService
from checkout_api.application.payment_service import PaymentReconciler
from checkout_api.domain import Order, OrderStatus, PaymentVerdict
from checkout_api.domain.exceptions import (
    ConflictingVerdictError,
    InvalidSignatureError,
    OrderNotFoundError,
    TransactionConflictError,
)
from checkout_api.infrastructure.payment_gateway import VNPayGateway


@pytest.fixture
def orders(session_factory, gateways) -> OrderService:
    return OrderService(session_factory, gateways)


@pytest.fixture
def reconciler(session_factory, gateways) -> PaymentReconciler:
    return PaymentReconciler(session_factory, gateways)


@pytest_asyncio.fixture
async def placed(session_factory, orders: OrderService, catalog) -> Order:
    """A PENDING order for three mugs; stock left is 7."""
    mug = await catalog.create_item(name="Mug", price=50000, stock=10)
    await CartService(session_factory).add_item("user-1", mug.id, 3)
    return (await orders.create_order("user-1", "vnpay")).order


async def stock_of(catalog) -> int:
    items = (await catalog.list_items()).items
    return sum(item.stock for item in items)


class TestSuccessfulPayment:
    """Tests for success callbacks."""

    @pytest.mark.asyncio
    async def test_marks_paid_without_touching_stock(
        self, reconciler: PaymentReconciler, orders: OrderService, placed: Order, catalog, make_callback
    ) -> None:
        result = await reconciler.handle_callback(make_callback(placed, txn_no="14000001"))

        assert not result.duplicate
        assert result.order.status == OrderStatus.PAID
        assert result.order.payment_ref == "14000001"
        assert await stock_of(catalog) == 7

        details = await orders.get_order("user-1", str(placed.id))
        assert details.order.status == OrderStatus.PAID
        assert details.status_history[-1]["provider_txn_id"] == "14000001"
        assert details.status_history[-1]["actor"] == "gateway"

    @pytest.mark.asyncio
    async def test_redelivered_success_is_duplicate(
        self, reconciler: PaymentReconciler, orders: OrderService, placed: Order, make_callback
    ) -> None:
        params = make_callback(placed, txn_no="14000001")

        await reconciler.handle_callback(params)
        again = await reconciler.handle_callback(params)

        assert again.duplicate
        assert again.order.status == OrderStatus.PAID
        details = await orders.get_order("user-1", str(placed.id))
        assert [entry["to_status"] for entry in details.status_history] == ["pending", "paid"]

    @pytest.mark.asyncio
    async def test_second_success_with_other_transaction_conflicts(
        self, reconciler: PaymentReconciler, placed: Order, make_callback
    ) -> None:
        await reconciler.handle_callback(make_callback(placed, txn_no="14000001"))

        with pytest.raises(ConflictingVerdictError):
            await reconciler.handle_callback(make_callback(placed, txn_no="14000002"))

    @pytest.mark.asyncio
    async def test_amount_mismatch_conflicts(
        self, reconciler: PaymentReconciler, orders: OrderService, placed: Order, make_callback
    ) -> None:
        with pytest.raises(ConflictingVerdictError) as exc_info:
            await reconciler.handle_callback(make_callback(placed, amount=1000))

        assert exc_info.value.details["reason"] == "amount_mismatch"
        details = await orders.get_order("user-1", str(placed.id))
        assert details.order.status == OrderStatus.PENDING


class TestUnsuccessfulPayment:
    """Tests for failure and cancellation callbacks."""

    @pytest.mark.asyncio
    async def test_failure_releases_stock(
        self, reconciler: PaymentReconciler, placed: Order, catalog, make_callback
    ) -> None:
        result = await reconciler.handle_callback(make_callback(placed, response_code="51"))

        assert result.order.status == OrderStatus.FAILED
        assert await stock_of(catalog) == 10

    @pytest.mark.asyncio
    async def test_customer_cancel_at_provider_releases_stock(
        self, reconciler: PaymentReconciler, placed: Order, catalog, make_callback
    ) -> None:
        result = await reconciler.handle_callback(make_callback(placed, response_code="24"))

        assert result.order.status == OrderStatus.CANCELLED
        assert await stock_of(catalog) == 10

    @pytest.mark.asyncio
    async def test_redelivered_failure_restocks_once(
        self, reconciler: PaymentReconciler, placed: Order, catalog, make_callback
    ) -> None:
        params = make_callback(placed, response_code="51")

        await reconciler.handle_callback(params)
        again = await reconciler.handle_callback(params)

        assert again.duplicate
        assert await stock_of(catalog) == 10

    @pytest.mark.asyncio
    async def test_success_after_user_cancel_conflicts(
        self, reconciler: PaymentReconciler, orders: OrderService, placed: Order, catalog, make_callback
    ) -> None:
        await orders.cancel_order("user-1", str(placed.id))

        with pytest.raises(ConflictingVerdictError):
            await reconciler.handle_callback(make_callback(placed))

        details = await orders.get_order("user-1", str(placed.id))
        assert details.order.status == OrderStatus.CANCELLED
        assert await stock_of(catalog) == 10

    @pytest.mark.asyncio
    async def test_failure_after_paid_conflicts(
        self, reconciler: PaymentReconciler, placed: Order, catalog, make_callback
    ) -> None:
        await reconciler.handle_callback(make_callback(placed))

        with pytest.raises(ConflictingVerdictError):
            await reconciler.handle_callback(make_callback(placed, response_code="51"))
        assert await stock_of(catalog) == 7


class TestRejectedCallbacks:
    """Tests for callbacks that must not change anything."""

    @pytest.mark.asyncio
    async def test_bad_signature(
        self, reconciler: PaymentReconciler, orders: OrderService, placed: Order, make_callback
    ) -> None:
        forger = VNPayGateway(tmn_code="TESTTMN1", secret_key="not-the-secret")

        with pytest.raises(InvalidSignatureError):
            await reconciler.handle_callback(make_callback(placed, signer=forger))

        details = await orders.get_order("user-1", str(placed.id))
        assert details.order.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_order(self, reconciler: PaymentReconciler) -> None:
        with pytest.raises(OrderNotFoundError):
            await reconciler.apply_verdict(
                "00000000-0000-0000-0000-000000000000", PaymentVerdict.SUCCESS, "14000001"
            )


class TestConcurrentCallbacks:
    """Tests for callbacks racing on the same order."""

    @pytest.mark.asyncio
    async def test_simultaneous_duplicates_apply_once(
        self, reconciler: PaymentReconciler, orders: OrderService, placed: Order, make_callback
    ) -> None:
        params = make_callback(placed, txn_no="14000001")

        results = await asyncio.gather(
            reconciler.handle_callback(params),
            reconciler.handle_callback(params),
            return_exceptions=True,
        )

        applied = [r for r in results if not isinstance(r, BaseException) and not r.duplicate]
        assert len(applied) == 1
        for r in results:
            if isinstance(r, BaseException):
                assert isinstance(r, TransactionConflictError)

        details = await orders.get_order("user-1", str(placed.id))
        assert [entry["to_status"] for entry in details.status_history] == ["pending", "paid"]
