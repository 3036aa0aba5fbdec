"""Application tests for CancelOrder.

Covers:
- Cancelling records the reason and restores stock for every line
- Terminal orders cannot be cancelled
- Customers may only cancel their own orders; back-office cancels any
- A paid order is refunded; a refused refund leaves the order untouched
"""

import pytest
from payments.gateway import get_gateway
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.exceptions import OrderAccessDenied
from storefront.order.cancellation import CancelOrder
from storefront.order.fulfillment import UpdateFulfillmentStatus
from storefront.order.order import Order
from storefront.order.payment import ProcessPayment


def _cancel(order_id, user_id="user-001", reason=None):
    return current_domain.process(CancelOrder(order_id=order_id, user_id=user_id, reason=reason), asynchronous=False)


def test_cancel_restores_stock(placed_order, fetch_product):
    order = placed_order(quantity=3, stock=10)
    product_id = order.items[0].product_id
    assert fetch_product(product_id).stock == 7

    _cancel(order.id, reason="Found it cheaper")

    stored = current_domain.repository_for(Order).get(order.id)
    assert stored.fulfillment.status == "cancelled"
    assert stored.fulfillment.notes == "Found it cheaper"
    assert fetch_product(product_id).stock == 10


def test_delivered_order_cannot_be_cancelled(placed_order, fetch_product):
    order = placed_order(quantity=1, stock=5)
    for status in ("confirmed", "processing", "shipped", "delivered"):
        current_domain.process(UpdateFulfillmentStatus(order_id=order.id, status=status), asynchronous=False)

    with pytest.raises(ValidationError):
        _cancel(order.id)
    assert fetch_product(order.items[0].product_id).stock == 4


def test_other_customer_cannot_cancel(placed_order):
    order = placed_order(user_id="user-001")
    with pytest.raises(OrderAccessDenied):
        _cancel(order.id, user_id="user-002")


def test_back_office_cancel_without_user(placed_order):
    order = placed_order()
    _cancel(order.id, user_id=None)
    assert current_domain.repository_for(Order).get(order.id).is_cancelled


def _pay(order):
    current_domain.process(
        ProcessPayment(order_id=order.id, user_id="user-001", card_number="4242424242424242"),
        asynchronous=False,
    )


def test_paid_order_is_refunded_on_cancel(placed_order):
    order = placed_order(quantity=2, price=100.0)
    _pay(order)

    _cancel(order.id, reason="Changed my mind")

    stored = current_domain.repository_for(Order).get(order.id)
    assert stored.is_cancelled
    assert stored.payment.status == "refunded"
    assert stored.payment.refunded_at is not None
    assert stored.payment.transaction_id is not None
    refund = get_gateway().calls[-1]
    assert refund["method"] == "refund"
    assert refund["transaction_id"] == stored.payment.transaction_id
    assert refund["amount"] == stored.pricing.total


def test_unpaid_order_is_not_refunded(placed_order):
    order = placed_order()
    _cancel(order.id)

    assert current_domain.repository_for(Order).get(order.id).payment.status == "pending"
    assert get_gateway().calls == []


def test_refused_refund_aborts_cancellation(placed_order, fetch_product):
    order = placed_order(quantity=2, stock=10)
    _pay(order)
    get_gateway().configure(should_succeed=False, failure_reason="Refund window closed")

    with pytest.raises(ValidationError):
        _cancel(order.id)

    stored = current_domain.repository_for(Order).get(order.id)
    assert not stored.is_cancelled
    assert stored.payment.status == "paid"
    assert fetch_product(order.items[0].product_id).stock == 8
