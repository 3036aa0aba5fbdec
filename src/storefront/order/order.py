"""Order aggregate: the immutable snapshot of a priced cart.

An order is created once by checkout and never deleted. Its items, pricing,
addresses and coupons are copied at creation time and are never recomputed
from live catalogue or cart state. Only three sub-states move afterwards:

Placement (internal checkout saga):
    PENDING → PLACED | FAILED

Payment:
    PENDING → PAID | FAILED, and FAILED → PAID on retry
    PAID → REFUNDED when a paid order is cancelled

Fulfillment:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    any non-terminal state → CANCELLED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.order.events import (
    OrderCancelled,
    OrderFulfillmentUpdated,
    OrderPaymentFailed,
    OrderPaymentRefunded,
    OrderPaymentSucceeded,
    OrderPlaced,
    OrderPlacementFailed,
    OrderPlacementStarted,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PlacementStatus(Enum):
    PENDING = "pending"
    PLACED = "placed"
    FAILED = "failed"


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class FulfillmentStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_FULFILLMENT_TRANSITIONS = {
    FulfillmentStatus.PENDING: {FulfillmentStatus.CONFIRMED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.CONFIRMED: {FulfillmentStatus.PROCESSING, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.PROCESSING: {FulfillmentStatus.SHIPPED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.SHIPPED: {FulfillmentStatus.DELIVERED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.DELIVERED: set(),  # Terminal
    FulfillmentStatus.CANCELLED: set(),  # Terminal
}

_PAYABLE_STATES = {PaymentStatus.PENDING, PaymentStatus.FAILED}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class CustomerInfo:
    """Who placed the order, as typed at checkout."""

    email = String(required=True, max_length=254)
    phone = String(max_length=30)
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)

    @invariant.post
    def email_must_be_well_formed(self):
        local, _, domain = (self.email or "").partition("@")
        if not local or "." not in domain or " " in self.email:
            raise ValidationError({"email": [f"Invalid email address: {self.email}"]})


@storefront.value_object(part_of="Order")
class Address:
    """A billing or shipping address captured at checkout.

    Immutable once on an order, regardless of later changes to the customer's
    address book.
    """

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    company = String(max_length=255)
    address1 = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Totals copied from the cart (or guest pricing) at checkout. Never recomputed."""

    subtotal = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    tax = Float(required=True, min_value=0.0)
    shipping = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)


@storefront.value_object(part_of="Order")
class PaymentInfo:
    method = String(required=True, choices=PaymentMethod)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    paid_at = DateTime()
    refunded_at = DateTime()


@storefront.value_object(part_of="Order")
class FulfillmentInfo:
    status = String(choices=FulfillmentStatus, default=FulfillmentStatus.PENDING.value)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    shipped_at = DateTime()
    delivered_at = DateTime()
    notes = String(max_length=1000)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line snapshot: product name, sku and image as they were at checkout."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    total = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=50)
    user_id = Identifier()
    customer = ValueObject(CustomerInfo, required=True)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing, required=True)
    billing_address = ValueObject(Address, required=True)
    shipping_address = ValueObject(Address, required=True)
    payment = ValueObject(PaymentInfo, required=True)
    fulfillment = ValueObject(FulfillmentInfo)
    applied_coupons = Text()  # JSON array of uppercase coupon codes
    notes = String(max_length=2000)
    placement_status = String(choices=PlacementStatus, default=PlacementStatus.PENDING.value)
    failure_reason = String(max_length=500)
    idempotency_key = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def order_must_have_items(self):
        if not self.items:
            raise ValidationError({"items": ["An order must contain at least one item"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        customer,
        items,
        pricing,
        billing_address,
        shipping_address,
        payment_method,
        user_id=None,
        applied_coupons=None,
        notes=None,
        idempotency_key=None,
    ):
        """Build a new order in the ``pending`` placement state.

        Args:
            order_number: Unique human-facing number (see ``numbering``).
            customer: Dict with email, phone, first_name, last_name.
            items: List of dicts with product_id, variant_id, name, sku,
                   image, price, quantity, total.
            pricing: Dict with subtotal, discount, tax, shipping, total.
            billing_address / shipping_address: Address dicts.
            payment_method: One of ``PaymentMethod``.
        """
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            user_id=str(user_id) if user_id else None,
            customer=CustomerInfo(**{**customer, "email": customer["email"].strip().lower()}),
            items=[OrderItem(**item) for item in items],
            pricing=OrderPricing(**pricing),
            billing_address=Address(**billing_address),
            shipping_address=Address(**shipping_address),
            payment=PaymentInfo(method=payment_method),
            fulfillment=FulfillmentInfo(),
            applied_coupons=json.dumps([code.upper() for code in applied_coupons or []]),
            notes=notes,
            idempotency_key=idempotency_key,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlacementStarted(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=order.user_id,
                item_count=order.item_count,
                total=order.pricing.total,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def coupon_codes(self) -> list[str]:
        return json.loads(self.applied_coupons) if self.applied_coupons else []

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items or [])

    @property
    def customer_name(self) -> str:
        return f"{self.customer.first_name} {self.customer.last_name}"

    @property
    def is_completed(self) -> bool:
        return self.fulfillment.status == FulfillmentStatus.DELIVERED.value

    @property
    def is_cancelled(self) -> bool:
        return self.fulfillment.status == FulfillmentStatus.CANCELLED.value

    def belongs_to(self, user_id) -> bool:
        return bool(user_id) and str(self.user_id) == str(user_id)

    def stock_lines(self):
        """``(product_id, variant_id, quantity)`` for each line, as the ledger takes them."""
        return [(item.product_id, item.variant_id, item.quantity) for item in self.items]

    # -------------------------------------------------------------------
    # Placement (checkout saga)
    # -------------------------------------------------------------------
    def _assert_placement_pending(self):
        if PlacementStatus(self.placement_status) != PlacementStatus.PENDING:
            raise ValidationError(
                {"placement_status": [f"Order placement already {self.placement_status}"]}
            )

    def mark_placed(self):
        self._assert_placement_pending()
        now = datetime.now(UTC)
        with atomic_change(self):
            self.placement_status = PlacementStatus.PLACED.value
            self.updated_at = now

        self.raise_(
            OrderPlaced(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_email=self.customer.email,
                total=self.pricing.total,
                placed_at=now,
            )
        )

    def mark_failed(self, reason):
        """Record a failed placement. The idempotency key is released for a retry."""
        self._assert_placement_pending()
        now = datetime.now(UTC)
        reason = (reason or "Unknown failure")[:500]
        with atomic_change(self):
            self.placement_status = PlacementStatus.FAILED.value
            self.failure_reason = reason
            self.idempotency_key = None
            self.updated_at = now

        self.raise_(
            OrderPlacementFailed(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                failed_at=now,
            )
        )

    def _assert_placed(self):
        if PlacementStatus(self.placement_status) != PlacementStatus.PLACED:
            raise ValidationError({"placement_status": ["Order was not placed"]})

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def assert_payable(self):
        self._assert_placed()
        if self.is_cancelled:
            raise ValidationError({"fulfillment": ["Cancelled orders cannot be paid"]})
        if PaymentStatus(self.payment.status) not in _PAYABLE_STATES:
            raise ValidationError({"payment": [f"Payment is already {self.payment.status}"]})

    def record_payment_success(self, transaction_id):
        """Mark the order paid and confirm a pending fulfillment."""
        self.assert_payable()
        now = datetime.now(UTC)

        with atomic_change(self):
            self.payment = PaymentInfo(
                method=self.payment.method,
                status=PaymentStatus.PAID.value,
                transaction_id=transaction_id,
                paid_at=now,
            )
            if FulfillmentStatus(self.fulfillment.status) == FulfillmentStatus.PENDING:
                self.fulfillment = self._fulfillment_with(status=FulfillmentStatus.CONFIRMED.value)
            self.updated_at = now

        self.raise_(
            OrderPaymentSucceeded(
                order_id=str(self.id),
                order_number=self.order_number,
                transaction_id=transaction_id,
                amount=self.pricing.total,
                paid_at=now,
            )
        )

    def record_payment_failure(self, reason):
        self.assert_payable()
        now = datetime.now(UTC)

        with atomic_change(self):
            self.payment = PaymentInfo(method=self.payment.method, status=PaymentStatus.FAILED.value)
            self.updated_at = now

        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                failed_at=now,
            )
        )

    @property
    def is_paid(self) -> bool:
        return PaymentStatus(self.payment.status) == PaymentStatus.PAID

    def record_refund(self, refund_id=None):
        if not self.is_paid:
            raise ValidationError({"payment": [f"Only paid orders can be refunded, payment is {self.payment.status}"]})
        now = datetime.now(UTC)

        with atomic_change(self):
            self.payment = PaymentInfo(
                method=self.payment.method,
                status=PaymentStatus.REFUNDED.value,
                transaction_id=self.payment.transaction_id,
                paid_at=self.payment.paid_at,
                refunded_at=now,
            )
            self.updated_at = now

        self.raise_(
            OrderPaymentRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                refund_id=refund_id,
                amount=self.pricing.total,
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def _fulfillment_with(self, **changes):
        current = self.fulfillment
        values = {
            "status": current.status,
            "tracking_number": current.tracking_number,
            "carrier": current.carrier,
            "shipped_at": current.shipped_at,
            "delivered_at": current.delivered_at,
            "notes": current.notes,
        }
        values.update(changes)
        return FulfillmentInfo(**values)

    def update_fulfillment(self, status, tracking_number=None, carrier=None, notes=None):
        """Move fulfillment to ``status``, enforcing the forward-only state machine."""
        self._assert_placed()
        target = FulfillmentStatus(status)
        current = FulfillmentStatus(self.fulfillment.status)
        if target not in _FULFILLMENT_TRANSITIONS[current]:
            raise ValidationError(
                {"fulfillment": [f"Cannot transition from {current.value} to {target.value}"]}
            )

        now = datetime.now(UTC)
        changes = {"status": target.value}
        if tracking_number:
            changes["tracking_number"] = tracking_number
        if carrier:
            changes["carrier"] = carrier
        if notes:
            changes["notes"] = notes
        if target == FulfillmentStatus.SHIPPED:
            changes["shipped_at"] = now
        elif target == FulfillmentStatus.DELIVERED:
            changes["delivered_at"] = now

        with atomic_change(self):
            self.fulfillment = self._fulfillment_with(**changes)
            self.updated_at = now

        self.raise_(
            OrderFulfillmentUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target.value,
                tracking_number=self.fulfillment.tracking_number,
                carrier=self.fulfillment.carrier,
                updated_at=now,
            )
        )

    def cancel(self, reason=None):
        self.update_fulfillment(FulfillmentStatus.CANCELLED.value, notes=reason)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                cancelled_at=self.updated_at,
            )
        )
