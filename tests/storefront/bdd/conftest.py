"""Shared BDD fixtures and step definitions for the Storefront."""

import pytest
from pytest_bdd import given, parsers, then
from storefront.cart.cart import Cart, CartOwner


@pytest.fixture()
def error():
    """Container for a captured validation error."""
    return {"exc": None}


@given(parsers.cfparse('a cart owned by customer "{user_id}"'), target_fixture="cart")
def user_cart(user_id):
    return Cart.create(CartOwner.user(user_id))


@given(parsers.cfparse('{quantity:d} units of "{product_id}" are added at {price:f}'))
def given_items_added(cart, quantity, product_id, price):
    cart.add_item(product_id, quantity, price)


@then(parsers.cfparse("the subtotal is {amount:f}"))
def subtotal_is(cart, amount):
    assert cart.totals.subtotal == pytest.approx(amount)


@then(parsers.cfparse("the tax is {amount:f}"))
def tax_is(cart, amount):
    assert cart.totals.tax == pytest.approx(amount)


@then(parsers.cfparse("the shipping is {amount:f}"))
def shipping_is(cart, amount):
    assert cart.totals.shipping == pytest.approx(amount)


@then(parsers.cfparse("the discount is {amount:f}"))
def discount_is(cart, amount):
    assert cart.totals.discount == pytest.approx(amount)


@then(parsers.cfparse("the total is {amount:f}"))
def total_is(cart, amount):
    assert cart.totals.total == pytest.approx(amount)
