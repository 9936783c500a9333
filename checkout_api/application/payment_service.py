"""Payment reconciliation service.

Applies payment provider verdicts to orders. Callbacks may arrive late,
out of order or more than once; a verdict is applied at most once and a
re-delivery of an already-applied verdict is acknowledged without effect.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_api.application.order_service import log_events, release_stock
from checkout_api.catalog.repository import CatalogRepository
from checkout_api.domain.entities import Order, VerdictOutcome
from checkout_api.domain.exceptions import (
    ConflictingVerdictError,
    InvalidSignatureError,
    OrderNotFoundError,
    TransactionConflictError,
)
from checkout_api.domain.state_machines import PaymentVerdict
from checkout_api.infrastructure.payment_gateway import (
    PaymentGatewayRegistry,
    get_payment_gateway_registry,
)
from checkout_api.infrastructure.repositories import OrderRepository
from checkout_api.infrastructure.transactions import run_with_retry

logger = structlog.get_logger()


@dataclass
class ReconcileResult:
    """Result of applying a verdict."""

    order: Order
    duplicate: bool = False


class PaymentReconciler:
    """Order status reconciler.

    Every applied verdict moves a PENDING order with a conditional update
    on ``status = 'pending'``. Losing that race to another callback is a
    transaction conflict; the retry then sees the terminal state and
    resolves as a duplicate or a conflict.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateways: PaymentGatewayRegistry | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.gateways = gateways or get_payment_gateway_registry()

    async def apply_verdict(
        self,
        order_id: str,
        verdict: PaymentVerdict,
        provider_txn_id: str,
        amount: int | None = None,
    ) -> ReconcileResult:
        """Apply a verified verdict to an order.

        Args:
            order_id: Order the verdict refers to.
            verdict: Normalized provider verdict.
            provider_txn_id: Provider transaction identifier.
            amount: Amount the provider charged, if reported.

        Returns:
            ReconcileResult with the order after reconciliation.

        Raises:
            OrderNotFoundError: If the order does not exist.
            ConflictingVerdictError: If the verdict contradicts the order.
            TransactionConflictError: If conflicts persist after retries.
        """

        async def attempt() -> ReconcileResult:
            async with self.session_factory.begin() as session:
                repo = OrderRepository(session)
                order = await repo.get(order_id)
                if order is None:
                    raise OrderNotFoundError(order_id)

                if order.classify_verdict(verdict, provider_txn_id, amount) == VerdictOutcome.DUPLICATE:
                    return ReconcileResult(order=order, duplicate=True)

                previous = order.apply_verdict(verdict, provider_txn_id)
                updated = await repo.transition(
                    order,
                    previous,
                    reason=f"Payment {verdict.value}",
                    actor="gateway",
                    provider_txn_id=provider_txn_id or None,
                )
                if not updated:
                    raise TransactionConflictError("apply_verdict", reason="status changed concurrently")

                if not order.status.holds_stock():
                    await release_stock(CatalogRepository(session), order)
                return ReconcileResult(order=order)

        try:
            result = await run_with_retry("apply_verdict", attempt)
        except ConflictingVerdictError as e:
            logger.warning("Conflicting payment verdict", **e.details)
            raise

        if result.duplicate:
            logger.info(
                "Duplicate payment verdict ignored",
                order_id=order_id,
                verdict=verdict.value,
                status=result.order.status.value,
            )
        else:
            logger.info(
                "Payment verdict applied",
                order_id=order_id,
                verdict=verdict.value,
                status=result.order.status.value,
                provider_txn_id=provider_txn_id,
            )
            log_events(result.order)
        return result

    async def handle_callback(self, params: dict[str, str], payment_method: str = "vnpay") -> ReconcileResult:
        """Verify a raw provider callback and apply its verdict.

        The signature is checked before anything else is read.

        Raises:
            InvalidSignatureError: If verification fails.
            OrderNotFoundError: If the referenced order does not exist.
            ConflictingVerdictError: If the verdict contradicts the order.
        """
        gateway = self.gateways.get(payment_method)
        try:
            parsed = gateway.parse_callback(params)
        except InvalidSignatureError as e:
            logger.warning(
                "Payment callback rejected",
                payment_method=payment_method,
                reason=e.details.get("reason"),
            )
            raise

        logger.info(
            "Payment callback verified",
            order_id=parsed.order_id,
            verdict=parsed.verdict.value,
            response_code=parsed.response_code,
        )
        return await self.apply_verdict(
            parsed.order_id,
            parsed.verdict,
            parsed.provider_txn_id,
            amount=parsed.amount,
        )


def get_payment_reconciler(session_factory: async_sessionmaker[AsyncSession]) -> PaymentReconciler:
    """Get payment reconciler instance."""
    return PaymentReconciler(session_factory)
