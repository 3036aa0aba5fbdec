import pytest

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "1 Analytical St",
    "city": "Istanbul",
    "state": "Istanbul",
    "postal_code": "34000",
    "country": "Türkiye",
}

CUSTOMER = {"email": "ada@example.com", "first_name": "Ada", "last_name": "Lovelace"}


@pytest.fixture()
def checkout_request():
    from storefront.checkout.orchestrator import CheckoutRequest

    def _make(**overrides):
        values = {
            "customer": dict(CUSTOMER),
            "shipping_address": dict(ADDRESS),
            "payment_method": "credit_card",
        }
        values.update(overrides)
        return CheckoutRequest(**values)

    return _make


@pytest.fixture()
def placed_order(make_product, checkout_request):
    """Check out a fresh cart for ``user_id`` and return the placed order."""
    from protean import current_domain
    from storefront.cart.items import AddToCart
    from storefront.checkout.orchestrator import CheckoutOrchestrator

    def _place(user_id="user-001", quantity=2, price=100.0, stock=10):
        product = make_product(name=f"Widget {user_id}", price=price, stock=stock)
        current_domain.process(
            AddToCart(user_id=user_id, product_id=product.id, quantity=quantity),
            asynchronous=False,
        )
        return CheckoutOrchestrator().place_order_from_cart(checkout_request(), user_id=user_id).order

    return _place
