"""Runtime settings for the storefront domain.

Business constants live in the ``[custom]`` table of ``domain.toml``. The
active environment is selected through ``PROTEAN_ENV``.
"""

import os

from storefront.domain import storefront

DEFAULTS = {
    "cart_ttl_days": 30,
    "max_cart_lines": 50,
    "order_number_prefix": "ORD",
    "notification_max_attempts": 3,
}


def setting(name: str, default=None):
    """Return a ``[custom]`` setting, falling back to the built-in default."""
    custom = storefront.config.get("custom", {}) or {}
    if name in custom:
        return custom[name]
    return DEFAULTS.get(name, default)


def environment() -> str:
    return os.environ.get("PROTEAN_ENV", "development")


def is_development() -> bool:
    return environment() == "development"
