"""Storefront error taxonomy.

Validation-style failures extend protean's ``ValidationError`` and lookups
extend ``ObjectNotFoundError`` so that domain code and the API layer can
treat them uniformly. Messages always name the offending field or product.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class CartNotFound(ObjectNotFoundError):
    def __init__(self, message="Cart not found"):
        super().__init__({"cart": [message]})


class ProductNotFound(ObjectNotFoundError):
    def __init__(self, product_id, variant_id=None):
        if variant_id:
            message = f"Variant {variant_id} of product {product_id} not found"
        else:
            message = f"Product {product_id} not found"
        super().__init__({"product": [message]})


class OrderNotFound(ObjectNotFoundError):
    def __init__(self, order_id):
        super().__init__({"order": [f"Order {order_id} not found"]})


class InsufficientStock(ValidationError):
    def __init__(self, product_name, available, requested):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            {"stock": [f"Insufficient stock for {product_name}: {available} available, {requested} requested"]}
        )


class InvalidCoupon(ValidationError):
    def __init__(self, code):
        super().__init__({"coupon_code": [f"Invalid coupon code: {code}"]})


class EmptyCart(ValidationError):
    def __init__(self):
        super().__init__({"cart": ["Cart is empty"]})


class AuthenticationRequired(Exception):
    """Raised when an endpoint needs an authenticated customer."""


class OrderAccessDenied(Exception):
    """Raised when a customer touches an order they do not own."""


class PaymentDeclined(Exception):
    def __init__(self, reason, order=None):
        self.reason = reason
        self.order = order
        super().__init__(f"Payment declined: {reason}")


class ConcurrentModification(Exception):
    """Raised when a cart was changed by another request since it was read."""


def error_message(exc) -> str:
    """Flatten protean-style ``messages`` into a single human readable line."""
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        parts = []
        for value in messages.values():
            if isinstance(value, list | tuple):
                parts.extend(str(v) for v in value)
            else:
                parts.append(str(value))
        if parts:
            return "; ".join(parts)
    if messages:
        return str(messages)
    return str(exc)
