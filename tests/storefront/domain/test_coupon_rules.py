import pytest
from storefront.cart.coupons import COUPON_RULES, DiscountType, evaluate_coupon
from storefront.exceptions import InvalidCoupon


def test_rule_table_holds_two_coupons():
    assert set(COUPON_RULES) == {"INDIRIM10", "INDIRIM50TL"}


def test_percentage_coupon_takes_ten_percent_of_subtotal():
    discount = evaluate_coupon("INDIRIM10", 200.0)
    assert discount.code == "INDIRIM10"
    assert discount.amount == 20.0
    assert discount.discount_type == DiscountType.PERCENTAGE


@pytest.mark.parametrize(
    "subtotal, expected",
    [(33.35, 3.34), (1.15, 0.12), (0.05, 0.01), (2.675, 0.27)],
)
def test_percentage_coupon_rounds_half_up_to_cents(subtotal, expected):
    assert evaluate_coupon("INDIRIM10", subtotal).amount == expected


def test_fixed_coupon_takes_fifty():
    discount = evaluate_coupon("INDIRIM50TL", 200.0)
    assert discount.amount == 50.0
    assert discount.discount_type == DiscountType.FIXED


def test_fixed_coupon_never_exceeds_subtotal():
    assert evaluate_coupon("INDIRIM50TL", 30.0).amount == 30.0


@pytest.mark.parametrize("code", ["indirim10", " Indirim10 ", "INDIRIM10"])
def test_codes_are_case_insensitive(code):
    assert evaluate_coupon(code, 100.0).code == "INDIRIM10"


@pytest.mark.parametrize("code", ["BOGUS", "", None])
def test_unknown_code_is_rejected(code):
    with pytest.raises(InvalidCoupon):
        evaluate_coupon(code, 100.0)
