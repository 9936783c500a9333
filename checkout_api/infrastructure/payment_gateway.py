"""Payment gateway adapters.

Builds signed redirect URLs for the external payment provider and verifies
the provider's callbacks. Adapters are stateless: the same order, client IP
and configuration always produce the same URL, and a callback is never
interpreted before its signature has been checked.
"""

import hashlib
import hmac
from datetime import timedelta, timezone
from typing import Protocol
from urllib.parse import quote_plus, urlencode

import structlog

from checkout_api.domain.entities import Order
from checkout_api.domain.exceptions import InvalidSignatureError, UnsupportedPaymentMethodError
from checkout_api.domain.state_machines import PaymentVerdict
from checkout_api.domain.value_objects import ParsedCallback, PaymentCallback
from checkout_api.infrastructure.config import settings

logger = structlog.get_logger()


class PaymentGateway(Protocol):
    """Interface every payment provider adapter implements."""

    method: str

    def build_redirect_url(self, order: Order, client_ip: str | None) -> str: ...

    def parse_callback(self, params: dict[str, str]) -> ParsedCallback: ...


# ============================================================================
# VNPay
# ============================================================================


# VNPay timestamps are local time in Vietnam (GMT+7)
VNPAY_TIMEZONE = timezone(timedelta(hours=7))

VNPAY_PAY_PATH = "/paymentv2/vpcpay.html"
VNPAY_VERSION = "2.1.0"

SIGNATURE_FIELDS = ("vnp_SecureHash", "vnp_SecureHashType")

RESPONSE_CODE_SUCCESS = "00"
RESPONSE_CODE_CUSTOMER_CANCELLED = "24"


def _encode(params: dict[str, str]) -> str:
    """Sort and URL-encode parameters the way the provider signs them."""
    return urlencode(sorted(params.items()), quote_via=quote_plus)


class VNPayGateway:
    """VNPay-style redirect payment gateway.

    The redirect URL carries the order reference and amount in a query
    string signed with HMAC-SHA512 over the sorted, URL-encoded parameters.
    The provider signs its callback the same way.
    """

    method = "vnpay"

    def __init__(
        self,
        tmn_code: str | None = None,
        secret_key: str | None = None,
        host: str | None = None,
        return_url: str | None = None,
        locale: str | None = None,
        currency: str | None = None,
    ) -> None:
        """Initialize gateway.

        Args:
            tmn_code: Merchant terminal code issued by the provider.
            secret_key: Shared HMAC secret.
            host: Provider base URL.
            return_url: Where the provider sends the shopper back to.
            locale: Provider UI language.
            currency: Currency code sent to the provider.
        """
        self.tmn_code = tmn_code or settings.payment_tmn_code
        self.secret_key = secret_key or settings.payment_secret_key
        self.host = (host or settings.payment_host).rstrip("/")
        self.return_url = return_url or settings.payment_return_url
        self.locale = locale or settings.payment_locale
        self.currency = currency or settings.currency

    def sign(self, params: dict[str, str]) -> str:
        """Compute the hex HMAC-SHA512 signature of ``params``."""
        return hmac.new(
            self.secret_key.encode(),
            _encode(params).encode(),
            hashlib.sha512,
        ).hexdigest()

    def build_redirect_url(self, order: Order, client_ip: str | None) -> str:
        """Build the signed URL the shopper is redirected to.

        Args:
            order: Newly created PENDING order.
            client_ip: Shopper's IP address as seen by the shop.

        Returns:
            Absolute provider URL.
        """
        created_at = order.created_at.astimezone(VNPAY_TIMEZONE)
        params = {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.tmn_code,
            # Provider expects the amount multiplied by 100
            "vnp_Amount": str(order.total_amount.amount * 100),
            "vnp_CurrCode": order.total_amount.currency or self.currency,
            "vnp_TxnRef": str(order.id),
            "vnp_OrderInfo": f"Payment for order {order.id}",
            "vnp_OrderType": "other",
            "vnp_Locale": self.locale,
            "vnp_ReturnUrl": self.return_url,
            "vnp_IpAddr": client_ip or "127.0.0.1",
            "vnp_CreateDate": created_at.strftime("%Y%m%d%H%M%S"),
        }
        signature = self.sign(params)
        return f"{self.host}{VNPAY_PAY_PATH}?{_encode(params)}&vnp_SecureHash={signature}"

    def verify_signature(self, callback: PaymentCallback) -> None:
        """Check the callback signature.

        Raises:
            InvalidSignatureError: If missing or not matching.
        """
        if not callback.provider_signature:
            raise InvalidSignatureError("missing signature")

        signed = {
            key: value
            for key, value in callback.raw_params.items()
            if key.startswith("vnp_") and key not in SIGNATURE_FIELDS
        }
        computed = self.sign(signed)

        # Constant-time comparison
        if not hmac.compare_digest(computed.lower(), callback.provider_signature.lower()):
            raise InvalidSignatureError("signature mismatch")

    def parse_callback(self, params: dict[str, str]) -> ParsedCallback:
        """Verify and normalize a provider callback.

        Args:
            params: Query parameters exactly as received.

        Returns:
            ParsedCallback with the normalized verdict.

        Raises:
            InvalidSignatureError: On a bad signature or malformed fields.
        """
        callback = PaymentCallback.from_query(
            params,
            reference_key="vnp_TxnRef",
            status_key="vnp_ResponseCode",
            signature_key="vnp_SecureHash",
        )
        self.verify_signature(callback)

        if not callback.order_reference or not callback.provider_status:
            raise InvalidSignatureError("malformed callback")

        amount = None
        raw_amount = params.get("vnp_Amount")
        if raw_amount is not None:
            if not raw_amount.isdigit():
                raise InvalidSignatureError("malformed amount")
            amount = int(raw_amount) // 100

        transaction_status = params.get("vnp_TransactionStatus")
        if callback.provider_status == RESPONSE_CODE_SUCCESS and transaction_status in (
            None,
            RESPONSE_CODE_SUCCESS,
        ):
            verdict = PaymentVerdict.SUCCESS
        elif callback.provider_status == RESPONSE_CODE_CUSTOMER_CANCELLED:
            verdict = PaymentVerdict.CANCELLED
        else:
            verdict = PaymentVerdict.FAILURE

        return ParsedCallback(
            order_id=callback.order_reference,
            verdict=verdict,
            provider_txn_id=params.get("vnp_TransactionNo", ""),
            amount=amount,
            response_code=callback.provider_status,
        )


# ============================================================================
# Gateway Registry
# ============================================================================


class PaymentGatewayRegistry:
    """Registry of configured payment gateways, keyed by payment method."""

    def __init__(self, gateways: list[PaymentGateway] | None = None) -> None:
        self._gateways: dict[str, PaymentGateway] = {}
        for gateway in gateways if gateways is not None else [VNPayGateway()]:
            self.register(gateway)

    def register(self, gateway: PaymentGateway) -> None:
        self._gateways[gateway.method] = gateway
        logger.info("Registered payment gateway", payment_method=gateway.method)

    def get(self, payment_method: str) -> PaymentGateway:
        """Get the gateway for ``payment_method``.

        Raises:
            UnsupportedPaymentMethodError: If none is configured.
        """
        gateway = self._gateways.get(payment_method.lower())
        if gateway is None:
            raise UnsupportedPaymentMethodError(payment_method, self.supported_methods())
        return gateway

    def supported_methods(self) -> list[str]:
        return sorted(self._gateways)


# Global registry instance
_gateway_registry: PaymentGatewayRegistry | None = None


def get_payment_gateway_registry() -> PaymentGatewayRegistry:
    """Get the payment gateway registry singleton."""
    global _gateway_registry
    if _gateway_registry is None:
        _gateway_registry = PaymentGatewayRegistry()
    return _gateway_registry
