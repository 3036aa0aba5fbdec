"""Order cancellation: command and handler.

Cancelling moves fulfillment to ``cancelled``, refunds a paid order through
the payment gateway and puts every line's quantity back on the shelf through
the inventory ledger. A refused refund aborts the cancellation.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from payments.gateway import get_gateway
from storefront.domain import storefront
from storefront.inventory.ledger import InventoryLedger, StockMovement
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    user_id = Identifier()  # Empty for back-office cancellations
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_owned(command.order_id, command.user_id)
        order.cancel(reason=command.reason)

        if order.is_paid:
            self._refund(order, command.reason)
        repo.add(order)

        InventoryLedger().restore_all(
            [StockMovement(str(p), str(v) if v else None, q) for p, v, q in order.stock_lines()],
            reference=order.order_number,
        )
        logger.info("Order cancelled", order_number=order.order_number, reason=command.reason)
        return str(order.id)

    @staticmethod
    def _refund(order, reason):
        result = get_gateway().refund(order.payment.transaction_id, order.pricing.total, reason=reason)
        if not result.success:
            logger.warning(
                "Refund refused, cancellation aborted",
                order_number=order.order_number,
                reason=result.failure_reason,
            )
            raise ValidationError({"payment": [f"Refund failed: {result.failure_reason}"]})

        order.record_refund(result.refund_id)
        logger.info("Payment refunded", order_number=order.order_number, refund_id=result.refund_id)
