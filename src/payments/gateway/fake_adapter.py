"""Configurable fake payment gateway for development and testing.

Simulates a processor without any external calls. It can be configured at
runtime to succeed or fail, and it declines the well-known test card numbers
a real processor's test mode declines, so the failure path is reachable from
the HTTP API as well as from tests.
"""

from uuid import uuid4

from payments.gateway.port import ChargeResult, PaymentDetails, PaymentGateway, RefundResult

DECLINED_TEST_CARDS = {
    "4000000000000002": "Card declined",
    "4000000000009995": "Insufficient funds",
    "4000000000000069": "Card expired",
}


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def charge(
        self,
        amount: float,
        payment_method: str,
        details: PaymentDetails,
        reference: str,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "charge",
                "amount": amount,
                "payment_method": payment_method,
                "last4": details.last4,
                "reference": reference,
            }
        )

        card_number = "".join(ch for ch in details.card_number or "" if ch.isdigit())
        if card_number in DECLINED_TEST_CARDS:
            return ChargeResult(
                success=False,
                gateway_status="failed",
                failure_reason=DECLINED_TEST_CARDS[card_number],
            )

        if self.should_succeed:
            return ChargeResult(
                success=True,
                transaction_id=f"TXN-{uuid4().hex[:12].upper()}",
                gateway_status="succeeded",
            )
        return ChargeResult(
            success=False,
            gateway_status="failed",
            failure_reason=self.failure_reason,
        )

    def refund(self, transaction_id: str, amount: float, reason: str | None = None) -> RefundResult:
        self.calls.append(
            {
                "method": "refund",
                "transaction_id": transaction_id,
                "amount": amount,
                "reason": reason,
            }
        )

        if self.should_succeed:
            return RefundResult(success=True, refund_id=f"REF-{uuid4().hex[:12].upper()}")
        return RefundResult(success=False, failure_reason=self.failure_reason)
