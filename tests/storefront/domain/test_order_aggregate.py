"""Tests for the Order aggregate: snapshot creation and the three sub-state machines."""

import pytest
from protean.exceptions import ValidationError
from storefront.order.events import (
    OrderCancelled,
    OrderFulfillmentUpdated,
    OrderPaymentFailed,
    OrderPaymentSucceeded,
    OrderPlaced,
    OrderPlacementFailed,
    OrderPlacementStarted,
)
from storefront.order.order import FulfillmentStatus, Order, PaymentStatus, PlacementStatus

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "1 Analytical St",
    "city": "Istanbul",
    "state": "Istanbul",
    "postal_code": "34000",
    "country": "Türkiye",
}


def build_order(**overrides):
    values = {
        "order_number": "ORD-12345678-001",
        "customer": {"email": "  Ada@Example.COM ", "first_name": "Ada", "last_name": "Lovelace"},
        "items": [
            {
                "product_id": "prod-A",
                "name": "Widget",
                "sku": "WID-1",
                "price": 100.0,
                "quantity": 2,
                "total": 200.0,
            }
        ],
        "pricing": {"subtotal": 200.0, "discount": 0.0, "tax": 36.0, "shipping": 29.99, "total": 265.99},
        "billing_address": ADDRESS,
        "shipping_address": ADDRESS,
        "payment_method": "credit_card",
        "user_id": "user-001",
        "applied_coupons": ["indirim10"],
    }
    values.update(overrides)
    return Order.create(**values)


def placed_order(**overrides):
    order = build_order(**overrides)
    order.mark_placed()
    return order


class TestCreate:
    def test_starts_pending_everywhere(self):
        order = build_order()
        assert order.placement_status == PlacementStatus.PENDING.value
        assert order.payment.status == PaymentStatus.PENDING.value
        assert order.fulfillment.status == FulfillmentStatus.PENDING.value

    def test_email_is_normalized(self):
        assert build_order().customer.email == "ada@example.com"

    def test_snapshots_lines_and_coupons(self):
        order = build_order()
        assert order.item_count == 2
        assert order.items[0].name == "Widget"
        assert order.coupon_codes == ["INDIRIM10"]
        assert order.customer_name == "Ada Lovelace"

    def test_raises_placement_started(self):
        order = build_order()
        assert isinstance(order._events[-1], OrderPlacementStarted)

    def test_requires_items(self):
        with pytest.raises(ValidationError):
            build_order(items=[])

    def test_rejects_malformed_email(self):
        with pytest.raises(ValidationError):
            build_order(customer={"email": "not-an-email", "first_name": "A", "last_name": "B"})

    def test_rejects_unknown_payment_method(self):
        with pytest.raises(ValidationError):
            build_order(payment_method="barter")

    def test_ownership(self):
        order = build_order()
        assert order.belongs_to("user-001")
        assert not order.belongs_to("user-002")
        assert not build_order(user_id=None).belongs_to(None)

    def test_stock_lines(self):
        assert build_order().stock_lines() == [("prod-A", None, 2)]


class TestPlacement:
    def test_mark_placed(self):
        order = placed_order()
        assert order.placement_status == PlacementStatus.PLACED.value
        assert isinstance(order._events[-1], OrderPlaced)

    def test_mark_failed_releases_idempotency_key(self):
        order = build_order(idempotency_key="key-1")
        order.mark_failed("Insufficient stock for Widget")
        assert order.placement_status == PlacementStatus.FAILED.value
        assert order.failure_reason == "Insufficient stock for Widget"
        assert order.idempotency_key is None
        assert isinstance(order._events[-1], OrderPlacementFailed)

    def test_placement_is_settled_once(self):
        order = placed_order()
        with pytest.raises(ValidationError):
            order.mark_failed("late")


class TestPayment:
    def test_success_confirms_pending_fulfillment(self):
        order = placed_order()
        order.record_payment_success("TXN-ABC")
        assert order.payment.status == PaymentStatus.PAID.value
        assert order.payment.transaction_id == "TXN-ABC"
        assert order.payment.paid_at is not None
        assert order.fulfillment.status == FulfillmentStatus.CONFIRMED.value
        assert isinstance(order._events[-1], OrderPaymentSucceeded)

    def test_failure_then_retry(self):
        order = placed_order()
        order.record_payment_failure("Card declined")
        assert order.payment.status == PaymentStatus.FAILED.value
        assert isinstance(order._events[-1], OrderPaymentFailed)

        order.record_payment_success("TXN-RETRY")
        assert order.payment.status == PaymentStatus.PAID.value

    def test_paid_order_cannot_be_paid_again(self):
        order = placed_order()
        order.record_payment_success("TXN-1")
        with pytest.raises(ValidationError):
            order.record_payment_success("TXN-2")

    def test_unplaced_order_cannot_be_paid(self):
        with pytest.raises(ValidationError):
            build_order().record_payment_success("TXN-1")

    def test_cancelled_order_cannot_be_paid(self):
        order = placed_order()
        order.cancel("Changed my mind")
        with pytest.raises(ValidationError):
            order.record_payment_success("TXN-1")


class TestFulfillment:
    def test_full_forward_path(self):
        order = placed_order()
        order.record_payment_success("TXN-1")
        order.update_fulfillment("processing")
        order.update_fulfillment("shipped", tracking_number="TRK-1", carrier="Aras")
        assert order.fulfillment.shipped_at is not None
        assert order.fulfillment.tracking_number == "TRK-1"

        order.update_fulfillment("delivered")
        assert order.fulfillment.delivered_at is not None
        assert order.fulfillment.tracking_number == "TRK-1"
        assert order.is_completed
        assert isinstance(order._events[-1], OrderFulfillmentUpdated)

    @pytest.mark.parametrize("target", ["processing", "shipped", "delivered", "pending"])
    def test_cannot_skip_or_go_back_from_pending(self, target):
        order = placed_order()
        with pytest.raises(ValidationError):
            order.update_fulfillment(target)

    def test_delivered_is_terminal(self):
        order = placed_order()
        for status in ("confirmed", "processing", "shipped", "delivered"):
            order.update_fulfillment(status)
        with pytest.raises(ValidationError):
            order.cancel()

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            placed_order().update_fulfillment("lost")


class TestCancel:
    def test_cancel_records_reason(self):
        order = placed_order()
        order.cancel("Ordered twice")
        assert order.is_cancelled
        assert order.fulfillment.notes == "Ordered twice"
        assert isinstance(order._events[-1], OrderCancelled)

    def test_cancel_from_shipped(self):
        order = placed_order()
        for status in ("confirmed", "processing", "shipped"):
            order.update_fulfillment(status)
        order.cancel()
        assert order.is_cancelled

    def test_cancel_twice_fails(self):
        order = placed_order()
        order.cancel()
        with pytest.raises(ValidationError):
            order.cancel()
