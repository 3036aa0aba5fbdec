"""Order payment: command and handler.

Charges the order total through the configured payment gateway. A declined
charge is recorded on the order (``payment.status = failed``) and reported in
the handler's result rather than raised, so the failed attempt is persisted
and the customer may retry.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from payments.gateway import get_gateway
from payments.gateway.port import PaymentDetails
from storefront.domain import storefront
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class ProcessPayment:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    card_number = String(max_length=30)
    expiry_date = String(max_length=7)
    cvv = String(max_length=4)
    cardholder_name = String(max_length=255)


@storefront.command_handler(part_of=Order)
class ProcessPaymentHandler:
    @handle(ProcessPayment)
    def process_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_owned(command.order_id, command.user_id)
        order.assert_payable()

        result = get_gateway().charge(
            amount=order.pricing.total,
            payment_method=order.payment.method,
            details=PaymentDetails(
                card_number=command.card_number,
                expiry_date=command.expiry_date,
                cvv=command.cvv,
                cardholder_name=command.cardholder_name,
            ),
            reference=order.order_number,
        )

        if result.success:
            order.record_payment_success(result.transaction_id)
            logger.info(
                "Payment captured",
                order_number=order.order_number,
                transaction_id=result.transaction_id,
                amount=order.pricing.total,
            )
        else:
            order.record_payment_failure(result.failure_reason)
            logger.warning(
                "Payment declined",
                order_number=order.order_number,
                reason=result.failure_reason,
            )

        repo.add(order)
        return {
            "order_id": str(order.id),
            "success": result.success,
            "transaction_id": result.transaction_id,
            "failure_reason": result.failure_reason,
        }
