"""Tests for the VNPay-style payment gateway adapter."""

from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlsplit

import pytest

from checkout_api.domain import Money, Order, OrderId, OrderLine, PaymentVerdict
from checkout_api.domain.exceptions import InvalidSignatureError, UnsupportedPaymentMethodError
from checkout_api.infrastructure.payment_gateway import PaymentGatewayRegistry, VNPayGateway


@pytest.fixture
def order() -> Order:
    return Order(
        id=OrderId.from_string("6f1d2c1e-8a53-4a3e-9f57-0c1b8f0e2d11"),
        user_id="user-1",
        total_amount=Money(165000),
        payment_method="vnpay",
        lines=[OrderLine("mug", "Mug", 3, Money(55000))],
        created_at=datetime(2026, 10, 19, 5, 30, 0, tzinfo=timezone.utc),
    )


def query_of(url: str) -> dict[str, str]:
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


class TestBuildRedirectUrl:
    """Tests for redirect URL generation."""

    def test_url_points_at_provider(self, gateway: VNPayGateway, order: Order) -> None:
        url = gateway.build_redirect_url(order, "203.0.113.7")
        assert url.startswith("https://pay.example.test/paymentv2/vpcpay.html?")

    def test_encodes_order_fields(self, gateway: VNPayGateway, order: Order) -> None:
        params = query_of(gateway.build_redirect_url(order, "203.0.113.7"))

        assert params["vnp_TxnRef"] == str(order.id)
        assert params["vnp_Amount"] == "16500000"
        assert params["vnp_CurrCode"] == "VND"
        assert params["vnp_TmnCode"] == "TESTTMN1"
        assert params["vnp_IpAddr"] == "203.0.113.7"
        assert params["vnp_OrderInfo"] == f"Payment for order {order.id}"
        assert params["vnp_ReturnUrl"] == "https://shop.example.test/payment/success"
        # 05:30 UTC is 12:30 in Vietnam
        assert params["vnp_CreateDate"] == "20261019123000"

    def test_signature_covers_parameters(self, gateway: VNPayGateway, order: Order) -> None:
        params = query_of(gateway.build_redirect_url(order, "203.0.113.7"))
        signature = params.pop("vnp_SecureHash")

        assert signature == gateway.sign(params)
        assert len(signature) == 128  # hex SHA-512

    def test_deterministic(self, gateway: VNPayGateway, order: Order) -> None:
        assert gateway.build_redirect_url(order, "203.0.113.7") == gateway.build_redirect_url(
            order, "203.0.113.7"
        )

    def test_missing_client_ip_uses_loopback(self, gateway: VNPayGateway, order: Order) -> None:
        assert query_of(gateway.build_redirect_url(order, None))["vnp_IpAddr"] == "127.0.0.1"


class TestParseCallback:
    """Tests for callback verification and verdict mapping."""

    def test_success(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        parsed = gateway.parse_callback(make_callback(order, txn_no="14099999"))

        assert parsed.order_id == str(order.id)
        assert parsed.verdict == PaymentVerdict.SUCCESS
        assert parsed.provider_txn_id == "14099999"
        assert parsed.amount == 165000
        assert parsed.response_code == "00"

    def test_customer_cancelled(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        assert gateway.parse_callback(make_callback(order, response_code="24")).verdict == PaymentVerdict.CANCELLED

    def test_other_codes_are_failures(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        assert gateway.parse_callback(make_callback(order, response_code="51")).verdict == PaymentVerdict.FAILURE

    def test_success_code_with_failed_transaction_status(
        self, gateway: VNPayGateway, order: Order, make_callback
    ) -> None:
        params = make_callback(order)
        params["vnp_TransactionStatus"] = "02"
        params["vnp_SecureHash"] = gateway.sign(
            {k: v for k, v in params.items() if k not in ("vnp_SecureHash", "vnp_SecureHashType")}
        )

        assert gateway.parse_callback(params).verdict == PaymentVerdict.FAILURE

    def test_uppercase_signature_accepted(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        params = make_callback(order)
        params["vnp_SecureHash"] = params["vnp_SecureHash"].upper()
        assert gateway.parse_callback(params).verdict == PaymentVerdict.SUCCESS

    def test_tampered_amount_rejected(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        params = make_callback(order)
        params["vnp_Amount"] = "100"
        with pytest.raises(InvalidSignatureError):
            gateway.parse_callback(params)

    def test_tampered_response_code_rejected(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        params = make_callback(order, response_code="51")
        params["vnp_ResponseCode"] = "00"
        with pytest.raises(InvalidSignatureError):
            gateway.parse_callback(params)

    def test_missing_signature_rejected(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        params = make_callback(order)
        del params["vnp_SecureHash"]
        with pytest.raises(InvalidSignatureError) as exc_info:
            gateway.parse_callback(params)
        assert exc_info.value.details["reason"] == "missing signature"

    def test_wrong_secret_rejected(self, gateway: VNPayGateway, order: Order, make_callback) -> None:
        forger = VNPayGateway(tmn_code="TESTTMN1", secret_key="not-the-secret")
        with pytest.raises(InvalidSignatureError):
            gateway.parse_callback(make_callback(order, signer=forger))

    def test_signed_but_malformed_rejected(self, gateway: VNPayGateway) -> None:
        params = {"vnp_ResponseCode": "00"}
        params["vnp_SecureHash"] = gateway.sign(params)
        with pytest.raises(InvalidSignatureError) as exc_info:
            gateway.parse_callback(params)
        assert exc_info.value.details["reason"] == "malformed callback"


class TestPaymentGatewayRegistry:
    """Tests for gateway lookup."""

    def test_lookup_is_case_insensitive(self, gateway: VNPayGateway) -> None:
        registry = PaymentGatewayRegistry([gateway])
        assert registry.get("VNPay") is gateway

    def test_unknown_method(self, gateway: VNPayGateway) -> None:
        registry = PaymentGatewayRegistry([gateway])
        with pytest.raises(UnsupportedPaymentMethodError) as exc_info:
            registry.get("bitcoin")
        assert exc_info.value.details["supported"] == ["vnpay"]
