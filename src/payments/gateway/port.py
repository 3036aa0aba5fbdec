"""Payment gateway port (abstract interface).

Defines the contract every payment adapter implements, so order payment can
switch from the simulated gateway to a real processor without touching domain
or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentDetails:
    """What the customer typed on the payment form. Never persisted."""

    card_number: str | None = None
    expiry_date: str | None = None
    cvv: str | None = None
    cardholder_name: str | None = None

    @property
    def last4(self) -> str | None:
        digits = "".join(ch for ch in self.card_number or "" if ch.isdigit())
        return digits[-4:] if digits else None


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    refund_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def charge(
        self,
        amount: float,
        payment_method: str,
        details: PaymentDetails,
        reference: str,
    ) -> ChargeResult:
        """Charge ``amount`` for the order identified by ``reference``."""
        ...

    @abstractmethod
    def refund(self, transaction_id: str, amount: float, reason: str | None = None) -> RefundResult:
        """Refund a previous charge in full."""
        ...
