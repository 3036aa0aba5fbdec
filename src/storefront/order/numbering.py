"""Human-facing order numbers: ``ORD-<last 8 digits of epoch ms>-<3 digits>``."""

import random
import time

from storefront.config import setting

MAX_ATTEMPTS = 5


def generate_order_number(now_ms: int | None = None) -> str:
    timestamp = str(now_ms if now_ms is not None else int(time.time() * 1000))[-8:]
    suffix = f"{random.randint(0, 999):03d}"
    return f"{setting('order_number_prefix')}-{timestamp}-{suffix}"


def unique_order_number(is_taken) -> str:
    """Draw numbers until ``is_taken`` rejects none, giving up after a few tries."""
    for _ in range(MAX_ATTEMPTS):
        candidate = generate_order_number()
        if not is_taken(candidate):
            return candidate
    raise RuntimeError("Could not allocate a unique order number")
