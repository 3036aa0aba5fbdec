"""Order fulfillment: command and handler for back-office status updates."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import FulfillmentStatus, Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateFulfillmentStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=FulfillmentStatus)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    notes = String(max_length=1000)


@storefront.command_handler(part_of=Order)
class UpdateFulfillmentHandler:
    @handle(UpdateFulfillmentStatus)
    def update_fulfillment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_owned(command.order_id, None)
        previous = order.fulfillment.status

        order.update_fulfillment(
            command.status,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            notes=command.notes,
        )
        repo.add(order)

        logger.info(
            "Fulfillment updated",
            order_number=order.order_number,
            previous_status=previous,
            new_status=command.status,
        )
        return str(order.id)
