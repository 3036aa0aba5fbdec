"""Payment gateway registry.

The active gateway is chosen by name from ``PAYMENT_GATEWAY`` (``fake`` when
unset) the first time it is asked for. Tests and start-up code can install
an instance directly with ``set_gateway``.
"""

import os

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway

GATEWAY_BACKENDS: dict[str, type[PaymentGateway]] = {
    "fake": FakeGateway,
}

_current_gateway: PaymentGateway | None = None


def build_gateway(name: str | None = None) -> PaymentGateway:
    name = (name or os.getenv("PAYMENT_GATEWAY") or "fake").strip().lower()
    backend = GATEWAY_BACKENDS.get(name)
    if backend is None:
        raise ValueError(f"Unknown payment gateway '{name}', expected one of {sorted(GATEWAY_BACKENDS)}")
    return backend()


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
