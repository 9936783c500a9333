"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self
from uuid import UUID, uuid4

from checkout_api.domain.base import ValueObject
from checkout_api.domain.exceptions import CurrencyMismatchError, NegativeMoneyError
from checkout_api.domain.state_machines import PaymentVerdict

# ISO 4217 currencies without a minor unit
ZERO_DECIMAL_CURRENCIES = frozenset({"VND", "JPY", "KRW"})


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class OrderId(ValueObject):
    """Strongly-typed order identifier."""

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        """Generate a new order ID.

        Returns:
            New OrderId with random UUID.
        """
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Create OrderId from string representation.

        Args:
            value: String UUID representation.

        Returns:
            OrderId instance.
        """
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


# ============================================================================
# Money Value Object
# ============================================================================


@dataclass(frozen=True)
class Money(ValueObject):
    """Represents monetary value with currency.

    Money is stored as an integer in the currency's smallest unit (cents
    for USD, whole dong for VND) to avoid floating-point precision issues.

    Attributes:
        amount: Amount in smallest currency unit.
        currency: ISO 4217 currency code (e.g., 'VND', 'USD').
    """

    amount: int
    currency: str = "VND"

    def __post_init__(self) -> None:
        """Validate money constraints."""
        if self.amount < 0:
            raise NegativeMoneyError(self.amount)
        # Normalize currency to uppercase
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = "VND") -> Self:
        """Create zero amount money.

        Args:
            currency: Currency code.

        Returns:
            Money with zero amount.
        """
        return cls(amount=0, currency=currency)

    @property
    def minor_units_per_major(self) -> int:
        """Number of minor units in one major unit of this currency."""
        return 1 if self.currency in ZERO_DECIMAL_CURRENCIES else 100

    def to_decimal(self) -> Decimal:
        """Convert to decimal amount in major units.

        Returns:
            Decimal amount (e.g., dollars from cents).
        """
        return Decimal(self.amount) / self.minor_units_per_major

    def __add__(self, other: "Money") -> "Money":
        """Add two money amounts.

        Raises:
            CurrencyMismatchError: If currencies don't match.
        """
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __mul__(self, quantity: int) -> "Money":
        """Multiply money by quantity."""
        return Money(amount=self.amount * quantity, currency=self.currency)

    def __rmul__(self, quantity: int) -> "Money":
        return self.__mul__(quantity)

    def __str__(self) -> str:
        """Return formatted string representation.

        Returns:
            Formatted money string (e.g., '150000 VND', '12.99 USD').
        """
        if self.minor_units_per_major == 1:
            return f"{self.amount} {self.currency}"
        return f"{self.to_decimal():.2f} {self.currency}"

    def is_zero(self) -> bool:
        """Check if amount is zero."""
        return self.amount == 0


# ============================================================================
# Payment Callback Values
# ============================================================================


@dataclass(frozen=True)
class PaymentCallback(ValueObject):
    """Raw callback as delivered by the payment provider.

    Nothing in here is trusted until the signature over ``raw_params``
    has been verified.

    Attributes:
        order_reference: Order reference echoed back by the provider.
        provider_status: Provider response code.
        provider_signature: Signature supplied with the callback.
        raw_params: Complete query parameters as received.
    """

    order_reference: str
    provider_status: str
    provider_signature: str
    raw_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_query(
        cls,
        params: dict[str, str],
        reference_key: str,
        status_key: str,
        signature_key: str,
    ) -> Self:
        """Build a callback from query parameters using provider field names."""
        return cls(
            order_reference=params.get(reference_key, ""),
            provider_status=params.get(status_key, ""),
            provider_signature=params.get(signature_key, ""),
            raw_params=dict(params),
        )


@dataclass(frozen=True)
class ParsedCallback(ValueObject):
    """Verified and normalized payment callback.

    Attributes:
        order_id: Order the callback refers to.
        verdict: Normalized payment outcome.
        provider_txn_id: Provider's transaction identifier.
        amount: Amount the provider charged, in minor units.
        response_code: Raw provider response code, for logging.
    """

    order_id: str
    verdict: PaymentVerdict
    provider_txn_id: str
    amount: int | None = None
    response_code: str = ""
