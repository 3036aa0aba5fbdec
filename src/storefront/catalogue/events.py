"""Domain events for the Product aggregate's stock counters."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class StockDecremented:
    """Units left the shelf because an order was placed."""

    __version__ = 1

    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String()


@storefront.event(part_of="Product")
class StockRestored:
    """Units were put back, after a failed checkout or a cancellation."""

    __version__ = 1

    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String()
