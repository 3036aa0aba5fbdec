"""Application tests for guest cart merging and the expired cart sweep.

Covers:
- With no user cart, the session cart is handed over to the user
- With both carts, lines are merged into the user cart and the session cart is deleted
- A missing session cart is reported
- Expired carts are invisible to lookups and removed by the sweep
"""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from storefront.cart.cart import Cart
from storefront.cart.items import AddToCart
from storefront.cart.management import MergeCarts, PurgeExpiredCarts
from storefront.exceptions import CartNotFound


def _add(product_id, quantity, user_id=None, session_id=None):
    return current_domain.process(
        AddToCart(user_id=user_id, session_id=session_id, product_id=product_id, quantity=quantity),
        asynchronous=False,
    )


def _merge():
    return current_domain.process(MergeCarts(user_id="user-001", session_id="sess-001"), asynchronous=False)


class TestMergeCarts:
    def test_session_cart_is_transferred_when_user_has_none(self, make_product):
        product = make_product(stock=10)
        session_cart_id = _add(product.id, 2, session_id="sess-001")

        merged_id = _merge()

        assert merged_id == session_cart_id
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_user("user-001")
        assert str(cart.id) == session_cart_id
        assert cart.items[0].quantity == 2
        assert repo.find_by_session("sess-001") is None

    def test_lines_are_merged_into_user_cart(self, make_product):
        a = make_product(name="A", price=100.0, stock=10)
        b = make_product(name="B", price=50.0, stock=10)
        user_cart_id = _add(a.id, 2, user_id="user-001")
        _add(a.id, 1, session_id="sess-001")
        _add(b.id, 3, session_id="sess-001")

        merged_id = _merge()

        assert merged_id == user_cart_id
        repo = current_domain.repository_for(Cart)
        cart = repo.get(user_cart_id)
        quantities = {str(i.product_id): i.quantity for i in cart.items}
        assert quantities == {str(a.id): 3, str(b.id): 3}
        assert cart.totals.subtotal == 450.0
        assert repo.find_by_session("sess-001") is None

    def test_missing_session_cart(self):
        with pytest.raises(CartNotFound):
            _merge()


class TestPurgeExpiredCarts:
    def _age(self, cart_id, days):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(cart_id)
        cart.expires_at = datetime.now(UTC) - timedelta(days=days)
        repo.add(cart)

    def test_expired_cart_is_treated_as_absent(self, make_product):
        cart_id = _add(make_product().id, 1, session_id="sess-old")
        self._age(cart_id, 1)
        assert current_domain.repository_for(Cart).find_by_session("sess-old") is None

    def test_sweep_removes_only_expired_carts(self, make_product):
        product = make_product()
        stale = _add(product.id, 1, session_id="sess-old")
        fresh = _add(product.id, 1, session_id="sess-new")
        self._age(stale, 2)

        purged = current_domain.process(PurgeExpiredCarts(), asynchronous=False)

        assert purged == 1
        repo = current_domain.repository_for(Cart)
        assert repo.find_by_session("sess-new") is not None
        assert str(repo.find_by_session("sess-new").id) == fresh

    def test_sweep_as_of_future_date(self, make_product):
        _add(make_product().id, 1, session_id="sess-001")
        purged = current_domain.process(
            PurgeExpiredCarts(as_of=datetime.now(UTC) + timedelta(days=31)),
            asynchronous=False,
        )
        assert purged == 1
