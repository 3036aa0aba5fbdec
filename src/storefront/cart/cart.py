"""Cart aggregate: the line items and monetary totals of a pre-purchase basket.

A cart belongs to exactly one owner: an authenticated customer or an anonymous
session. Every mutation reconciles line totals and recomputes the cart totals
through ``storefront.cart.pricing`` before returning, so a cart is never
persisted with stale totals.

Invariants:
    - at most ``max_cart_lines`` (50) lines, each with quantity 1..999
    - exactly one of ``user_id`` / ``session_id`` is set
    - ``total == subtotal + tax + shipping - discount`` and all are >= 0
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponsRemoved,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartOwnershipTransferred,
    CartsMerged,
)
from storefront.cart.pricing import compute_totals, line_total, round_money
from storefront.config import setting
from storefront.domain import storefront

MAX_LINE_QUANTITY = 999


class OwnerKind(Enum):
    USER = "User"
    SESSION = "Session"


@dataclass(frozen=True)
class CartOwner:
    """Who a cart belongs to: ``CartOwner.user(id)`` or ``CartOwner.session(id)``."""

    kind: OwnerKind
    key: str

    @classmethod
    def user(cls, user_id) -> "CartOwner":
        return cls(OwnerKind.USER, str(user_id))

    @classmethod
    def session(cls, session_id) -> "CartOwner":
        return cls(OwnerKind.SESSION, str(session_id))

    @property
    def is_user(self) -> bool:
        return self.kind == OwnerKind.USER


def _max_lines() -> int:
    return int(setting("max_cart_lines"))


def _same_variant(left, right) -> bool:
    return (str(left) if left else None) == (str(right) if right else None)


@storefront.value_object(part_of="Cart")
class CartTotals:
    subtotal = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)

    @invariant.post
    def total_must_balance(self):
        expected = round_money(
            (self.subtotal or 0) + (self.tax or 0) + (self.shipping or 0) - (self.discount or 0)
        )
        if abs((self.total or 0) - expected) > 0.001:
            raise ValidationError({"total": [f"Total {self.total} does not balance, expected {expected}"]})


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1, max_value=MAX_LINE_QUANTITY)
    price = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)

    def matches(self, product_id, variant_id) -> bool:
        return str(self.product_id) == str(product_id) and _same_variant(self.variant_id, variant_id)


@storefront.aggregate
class Cart:
    user_id = Identifier()
    session_id = String(max_length=255)
    items = HasMany(CartItem)
    totals = ValueObject(CartTotals)
    coupon_discount = Float(default=0.0, min_value=0.0)
    applied_coupons = Text()  # JSON array of uppercase coupon codes
    version = Integer(default=0)
    expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_must_have_exactly_one_owner(self):
        if bool(self.user_id) == bool(self.session_id):
            raise ValidationError({"owner": ["A cart belongs to either a user or a session, never both"]})

    @invariant.post
    def cart_cannot_exceed_line_cap(self):
        if len(self.items or []) > _max_lines():
            raise ValidationError({"items": [f"A cart can hold at most {_max_lines()} lines"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner: CartOwner):
        now = datetime.now(UTC)
        return cls(
            user_id=owner.key if owner.is_user else None,
            session_id=None if owner.is_user else owner.key,
            totals=CartTotals(),
            applied_coupons=json.dumps([]),
            expires_at=now + timedelta(days=int(setting("cart_ttl_days"))),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def owner(self) -> CartOwner:
        if self.user_id:
            return CartOwner.user(self.user_id)
        return CartOwner.session(self.session_id)

    @property
    def coupon_codes(self) -> list[str]:
        return json.loads(self.applied_coupons) if self.applied_coupons else []

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items or [])

    @property
    def is_empty(self) -> bool:
        return not self.items

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= now

    def find_line(self, product_id, variant_id=None):
        return next((i for i in self.items or [] if i.matches(product_id, variant_id)), None)

    def get_item(self, item_id):
        item = next((i for i in self.items or [] if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def _reprice(self):
        """Reconcile line totals and recompute the cart totals."""
        for item in self.items or []:
            expected = line_total(item.price, item.quantity)
            if item.total != expected:
                item.total = expected

        breakdown = compute_totals((item.total for item in self.items or []), self.coupon_discount or 0.0)
        self.totals = CartTotals(**breakdown.as_dict())
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price, variant_id=None):
        """Add a line, or increase the quantity of the matching (product, variant) line.

        A repeat add keeps the unit price captured when the line was first
        added; only the quantity changes.
        """
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self.find_line(product_id, variant_id)

        with atomic_change(self):
            if existing:
                new_quantity = existing.quantity + quantity
                if new_quantity > MAX_LINE_QUANTITY:
                    raise ValidationError(
                        {"quantity": [f"Quantity cannot exceed {MAX_LINE_QUANTITY} for a single line"]}
                    )
                existing.quantity = new_quantity
                item = existing
            else:
                if quantity > MAX_LINE_QUANTITY:
                    raise ValidationError(
                        {"quantity": [f"Quantity cannot exceed {MAX_LINE_QUANTITY} for a single line"]}
                    )
                if len(self.items or []) >= _max_lines():
                    raise ValidationError({"items": [f"A cart can hold at most {_max_lines()} lines"]})

                price = round_money(unit_price)
                item = CartItem(
                    product_id=product_id,
                    variant_id=variant_id,
                    quantity=quantity,
                    price=price,
                    total=line_total(price, quantity),
                )
                self.add_items(item)

            self._reprice()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                unit_price=item.price,
            )
        )
        return item

    def update_item_quantity(self, item_id, quantity):
        """Set a line's quantity. Zero or less removes the line."""
        item = self.get_item(item_id)

        if quantity <= 0:
            self.remove_item(item_id)
            return

        if quantity > MAX_LINE_QUANTITY:
            raise ValidationError({"quantity": [f"Quantity cannot exceed {MAX_LINE_QUANTITY} for a single line"]})

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = quantity
            self._reprice()

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, item_id):
        item = self.get_item(item_id)

        with atomic_change(self):
            self.remove_items(item)
            self._reprice()

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear(self):
        removed = list(self.items or [])

        with atomic_change(self):
            for item in removed:
                self.remove_items(item)
            self._reprice()

        self.raise_(CartCleared(cart_id=str(self.id), removed_count=len(removed)))

    # -------------------------------------------------------------------
    # Discounts
    # -------------------------------------------------------------------
    def apply_discount(self, coupon_code, amount):
        """Record a coupon discount. The amount overwrites any earlier discount."""
        code = coupon_code.strip().upper()
        codes = self.coupon_codes
        if code not in codes:
            codes.append(code)

        with atomic_change(self):
            self.applied_coupons = json.dumps(codes)
            self.coupon_discount = round_money(amount)
            self._reprice()

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=code,
                discount_amount=self.totals.discount,
            )
        )

    def remove_discount(self):
        with atomic_change(self):
            self.applied_coupons = json.dumps([])
            self.coupon_discount = 0.0
            self._reprice()

        self.raise_(CartCouponsRemoved(cart_id=str(self.id)))

    # -------------------------------------------------------------------
    # Ownership and merging
    # -------------------------------------------------------------------
    def transfer_to_user(self, user_id):
        """Re-key a guest session cart to an authenticated customer."""
        previous_session_id = self.session_id
        with atomic_change(self):
            self.user_id = str(user_id)
            self.session_id = None
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartOwnershipTransferred(
                cart_id=str(self.id),
                user_id=str(user_id),
                previous_session_id=previous_session_id,
            )
        )

    def merge_guest_cart(self, guest_cart):
        """Union a guest cart's lines into this cart.

        Matching (product, variant) lines have their quantities summed and are
        repriced with this cart's unit price; other lines are carried over
        verbatim, including the guest cart's price.
        """
        merged = 0
        with atomic_change(self):
            for guest_item in guest_cart.items or []:
                existing = self.find_line(guest_item.product_id, guest_item.variant_id)
                if existing:
                    new_quantity = existing.quantity + guest_item.quantity
                    if new_quantity > MAX_LINE_QUANTITY:
                        raise ValidationError(
                            {"quantity": [f"Quantity cannot exceed {MAX_LINE_QUANTITY} for a single line"]}
                        )
                    existing.quantity = new_quantity
                    existing.total = line_total(existing.price, new_quantity)
                else:
                    if len(self.items or []) >= _max_lines():
                        raise ValidationError({"items": [f"A cart can hold at most {_max_lines()} lines"]})
                    self.add_items(
                        CartItem(
                            product_id=guest_item.product_id,
                            variant_id=guest_item.variant_id,
                            quantity=guest_item.quantity,
                            price=guest_item.price,
                            total=guest_item.total,
                        )
                    )
                merged += 1

            self._reprice()

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(guest_cart.id),
                items_merged_count=merged,
            )
        )
