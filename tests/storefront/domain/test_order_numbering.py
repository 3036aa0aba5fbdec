import re

import pytest
from storefront.order.numbering import MAX_ATTEMPTS, generate_order_number, unique_order_number

ORDER_NUMBER = re.compile(r"^ORD-\d{8}-\d{3}$")


def test_format():
    assert ORDER_NUMBER.match(generate_order_number())


def test_uses_last_eight_digits_of_timestamp():
    number = generate_order_number(now_ms=1712345678901)
    assert number.startswith("ORD-45678901-")


def test_unique_number_skips_taken_candidates():
    seen = []

    def is_taken(candidate):
        seen.append(candidate)
        return len(seen) < 3

    number = unique_order_number(is_taken)
    assert number == seen[-1]
    assert len(seen) == 3


def test_gives_up_after_max_attempts():
    calls = []

    def always_taken(candidate):
        calls.append(candidate)
        return True

    with pytest.raises(RuntimeError):
        unique_order_number(always_taken)
    assert len(calls) == MAX_ATTEMPTS
