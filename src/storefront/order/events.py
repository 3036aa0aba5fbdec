"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlacementStarted:
    """An order snapshot was persisted; stock has not been taken yet."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier()
    item_count = Integer(required=True)
    total = Float(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPlaced:
    """Stock was decremented for every line and the order is live."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_email = String(required=True)
    total = Float(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPlacementFailed:
    """Checkout failed after the order was persisted; stock was restored."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaymentSucceeded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaymentRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    refund_id = String()
    amount = Float(required=True)
    refunded_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderFulfillmentUpdated:
    """The fulfillment status moved forward (or to cancelled)."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    tracking_number = String()
    carrier = String()
    updated_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)
