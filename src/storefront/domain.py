"""Storefront bounded context: Shopping Cart, Checkout and Orders.

Owns a customer's (or guest session's) cart and its monetary totals, coupon
discounts, guest-to-customer cart merging, and the checkout transition that
turns a priced cart into an immutable order while decrementing inventory.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
