"""Domain events for the Cart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartItemAdded:
    """A product (or more of it) was added to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@storefront.event(part_of="Cart")
class CartItemQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """All lines were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    removed_count = Integer(required=True)


@storefront.event(part_of="Cart")
class CartCouponApplied:
    """A coupon discount was applied to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount_amount = Float(required=True)


@storefront.event(part_of="Cart")
class CartCouponsRemoved:
    """The active discount and all coupon codes were removed."""

    __version__ = 1

    cart_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartsMerged:
    """A guest session cart's lines were merged into a customer's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier(required=True)
    items_merged_count = Integer(required=True)


@storefront.event(part_of="Cart")
class CartOwnershipTransferred:
    """A guest session cart was re-linked to an authenticated customer."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    previous_session_id = String()
