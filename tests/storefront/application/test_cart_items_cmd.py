"""Application tests for cart item commands.

Covers:
- Adding creates the owner's cart on first use and prices from the catalogue
- Stock and product existence are checked before the cart is touched
- Update / remove / clear, and deletion of a cart that becomes empty
- A user id wins over a session id when both are supplied
"""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.cart.cart import Cart, CartOwner
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from storefront.exceptions import CartNotFound, InsufficientStock, ProductNotFound


def _add(product_id, quantity=1, variant_id=None, user_id=None, session_id="sess-001"):
    return current_domain.process(
        AddToCart(
            user_id=user_id,
            session_id=session_id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
        ),
        asynchronous=False,
    )


def _cart(cart_id):
    return current_domain.repository_for(Cart).get(cart_id)


class TestAddToCart:
    def test_first_add_creates_session_cart(self, make_product):
        product = make_product(price=100.0, stock=5)
        cart_id = _add(product.id, quantity=2)

        cart = _cart(cart_id)
        assert cart.session_id == "sess-001"
        assert cart.items[0].price == 100.0
        assert cart.totals.total == 265.99
        assert cart.version == 1

    def test_second_add_reuses_cart_and_bumps_version(self, make_product):
        product = make_product(stock=5)
        first = _add(product.id)
        second = _add(product.id)
        assert first == second
        cart = _cart(first)
        assert cart.items[0].quantity == 2
        assert cart.version == 2

    def test_sale_price_is_captured(self, make_product):
        product = make_product(price=100.0, sale_price=80.0)
        cart = _cart(_add(product.id))
        assert cart.items[0].price == 80.0

    def test_variant_price_and_stock(self, make_product):
        product = make_product(
            price=100.0,
            stock=0,
            variants=[{"name": "XL", "sku": "W-XL", "price": 120.0, "stock": 2}],
        )
        variant = product.variants[0]
        cart = _cart(_add(product.id, variant_id=variant.id, quantity=2))
        assert cart.items[0].price == 120.0
        assert str(cart.items[0].variant_id) == str(variant.id)

    def test_insufficient_stock_leaves_no_cart(self, make_product):
        product = make_product(name="Lamp", stock=1)
        with pytest.raises(InsufficientStock) as exc:
            _add(product.id, quantity=2)
        assert "Lamp" in str(exc.value.messages)
        assert current_domain.repository_for(Cart).find_by_session("sess-001") is None

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            _add("no-such-product")

    def test_unknown_variant(self, make_product):
        product = make_product()
        with pytest.raises(ProductNotFound):
            _add(product.id, variant_id="no-such-variant")

    def test_needs_an_owner(self, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            _add(product.id, session_id=None)

    def test_user_wins_over_session(self, make_product):
        product = make_product()
        cart = _cart(_add(product.id, user_id="user-001", session_id="sess-001"))
        assert cart.user_id == "user-001"
        assert cart.session_id is None

    def test_quantity_above_limit_is_rejected(self, make_product):
        product = make_product(stock=5000)
        with pytest.raises(ValidationError):
            _add(product.id, quantity=1000)


class TestUpdateRemoveClear:
    def test_update_quantity(self, make_product):
        product = make_product(stock=10)
        cart_id = _add(product.id)
        item_id = _cart(cart_id).items[0].id

        current_domain.process(
            UpdateCartQuantity(session_id="sess-001", item_id=item_id, quantity=4),
            asynchronous=False,
        )
        assert _cart(cart_id).items[0].quantity == 4

    def test_update_checks_stock(self, make_product):
        product = make_product(stock=3)
        cart_id = _add(product.id)
        item_id = _cart(cart_id).items[0].id

        with pytest.raises(InsufficientStock):
            current_domain.process(
                UpdateCartQuantity(session_id="sess-001", item_id=item_id, quantity=4),
                asynchronous=False,
            )
        assert _cart(cart_id).items[0].quantity == 1

    def test_update_to_zero_deletes_empty_cart(self, make_product):
        product = make_product()
        cart_id = _add(product.id)
        item_id = _cart(cart_id).items[0].id

        result = current_domain.process(
            UpdateCartQuantity(session_id="sess-001", item_id=item_id, quantity=0),
            asynchronous=False,
        )
        assert result is None
        assert current_domain.repository_for(Cart).find_by_owner(CartOwner.session("sess-001")) is None

    def test_update_unknown_item(self, make_product):
        _add(make_product().id)
        with pytest.raises(ValidationError):
            current_domain.process(
                UpdateCartQuantity(session_id="sess-001", item_id="missing", quantity=2),
                asynchronous=False,
            )

    def test_remove_keeps_cart_with_remaining_lines(self, make_product):
        lamp = make_product(name="Lamp")
        desk = make_product(name="Desk")
        cart_id = _add(lamp.id)
        _add(desk.id)
        lamp_line = _cart(cart_id).find_line(lamp.id)

        result = current_domain.process(
            RemoveFromCart(session_id="sess-001", item_id=lamp_line.id),
            asynchronous=False,
        )
        assert result == cart_id
        assert [str(i.product_id) for i in _cart(cart_id).items] == [str(desk.id)]

    def test_clear_deletes_cart(self, make_product):
        _add(make_product().id)
        result = current_domain.process(ClearCart(session_id="sess-001"), asynchronous=False)
        assert result is None
        assert current_domain.repository_for(Cart).find_by_session("sess-001") is None

    @pytest.mark.parametrize(
        "command_cls, fields",
        [
            (UpdateCartQuantity, {"item_id": "x", "quantity": 1}),
            (RemoveFromCart, {"item_id": "x"}),
            (ClearCart, {}),
        ],
    )
    def test_missing_cart(self, command_cls, fields):
        with pytest.raises(CartNotFound):
            current_domain.process(command_cls(session_id="nobody", **fields), asynchronous=False)
