"""Shared fixtures: an on-disk SQLite database and a test payment gateway."""

from collections.abc import Callable, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from checkout_api.catalog.service import CatalogService
from checkout_api.domain.entities import Order
from checkout_api.infrastructure import models  # noqa: F401  (register tables)
from checkout_api.infrastructure.config import settings
from checkout_api.infrastructure.database import Base
from checkout_api.infrastructure.payment_gateway import PaymentGatewayRegistry, VNPayGateway

TEST_SECRET = "test-payment-secret"


@pytest.fixture
def session_factory(tmp_path) -> Iterator[async_sessionmaker[AsyncSession]]:
    """Session factory bound to a fresh SQLite database file.

    The schema is created through a plain sync engine. NullPool gives every
    async session its own connection, so the factory can be used from both
    pytest-asyncio tests and the TestClient's event loop.
    """
    db_path = tmp_path / "checkout.sqlite"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retry conflicts without sleeping."""
    monkeypatch.setattr(settings, "transaction_backoff_seconds", 0.0)


@pytest.fixture
def gateway() -> VNPayGateway:
    return VNPayGateway(
        tmn_code="TESTTMN1",
        secret_key=TEST_SECRET,
        host="https://pay.example.test",
        return_url="https://shop.example.test/payment/success",
        locale="vn",
        currency="VND",
    )


@pytest.fixture
def gateways(gateway: VNPayGateway) -> PaymentGatewayRegistry:
    return PaymentGatewayRegistry([gateway])


@pytest.fixture
def make_callback(gateway: VNPayGateway) -> Callable[..., dict[str, str]]:
    """Build provider callback parameters for an order, signed with the test secret."""

    def _make(
        order: Order,
        response_code: str = "00",
        txn_no: str = "14012345",
        amount: int | None = None,
        signer: VNPayGateway | None = None,
    ) -> dict[str, str]:
        charged = order.total_amount.amount if amount is None else amount
        params = {
            "vnp_TmnCode": gateway.tmn_code,
            "vnp_TxnRef": str(order.id),
            "vnp_Amount": str(charged * 100),
            "vnp_ResponseCode": response_code,
            "vnp_TransactionStatus": response_code,
            "vnp_TransactionNo": txn_no,
            "vnp_BankCode": "NCB",
            "vnp_OrderInfo": f"Payment for order {order.id}",
            "vnp_PayDate": "20261019120000",
        }
        params["vnp_SecureHashType"] = "HmacSHA512"
        params["vnp_SecureHash"] = (signer or gateway).sign(
            {k: v for k, v in params.items() if k != "vnp_SecureHashType"}
        )
        return params

    return _make


@pytest.fixture
def catalog(session_factory: async_sessionmaker[AsyncSession]) -> CatalogService:
    return CatalogService(session_factory)
