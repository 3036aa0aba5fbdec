"""Cart coupons: the fixed rule table, and the apply / remove commands.

Only one discount is active at a time: applying a coupon overwrites the stored
discount with the amount computed from the current subtotal, and records the
code (uppercased, once) in ``applied_coupons``. Removing clears both.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.ownership import owner_from
from storefront.cart.pricing import percent_of, round_money
from storefront.domain import storefront
from storefront.exceptions import CartNotFound, InvalidCoupon

logger = structlog.get_logger(__name__)


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class CouponRule:
    discount_type: DiscountType
    value: float

    def discount_for(self, subtotal: float) -> float:
        if self.discount_type == DiscountType.PERCENTAGE:
            return percent_of(subtotal, self.value)
        return round_money(min(self.value, subtotal))


COUPON_RULES: dict[str, CouponRule] = {
    "INDIRIM10": CouponRule(DiscountType.PERCENTAGE, 10),
    "INDIRIM50TL": CouponRule(DiscountType.FIXED, 50),
}


@dataclass(frozen=True)
class CouponDiscount:
    code: str
    amount: float
    discount_type: DiscountType


def evaluate_coupon(code: str, subtotal: float) -> CouponDiscount:
    """Price a coupon against a subtotal. Codes are case-insensitive."""
    normalized = (code or "").strip().upper()
    rule = COUPON_RULES.get(normalized)
    if rule is None:
        raise InvalidCoupon(code)
    return CouponDiscount(normalized, rule.discount_for(subtotal), rule.discount_type)


@storefront.command(part_of="Cart")
class ApplyCoupon:
    user_id = Identifier()
    session_id = String(max_length=255)
    coupon_code = String(required=True, max_length=100)


@storefront.command(part_of="Cart")
class RemoveCoupon:
    user_id = Identifier()
    session_id = String(max_length=255)


@storefront.command_handler(part_of=Cart)
class CartCouponHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_owner(owner_from(command))
        if cart is None:
            raise CartNotFound()

        discount = evaluate_coupon(command.coupon_code, cart.totals.subtotal)
        cart.apply_discount(discount.code, discount.amount)
        repo.save(cart)

        logger.info(
            "Coupon applied",
            cart_id=str(cart.id),
            coupon_code=discount.code,
            discount_amount=cart.totals.discount,
        )
        return {
            "cart_id": str(cart.id),
            "discount_amount": cart.totals.discount,
            "discount_type": discount.discount_type.value,
        }

    @handle(RemoveCoupon)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_owner(owner_from(command))
        if cart is None:
            raise CartNotFound()

        cart.remove_discount()
        repo.save(cart)
        logger.info("Coupons removed", cart_id=str(cart.id))
        return str(cart.id)
