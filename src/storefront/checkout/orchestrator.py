"""Checkout orchestrator: turns a priced cart (or a guest's line list) into an order.

Runs as a small saga rather than a command handler, because the failed-order
record has to survive a failure inside the sequence:

    1. Resolve the cart (user cart, else the session cart re-linked to the user)
    2. Validate every line against the catalogue, stopping at the first failure
    3. Snapshot items, pricing and coupons into a new order
    4. Persist the order with placement status ``pending``
    5. Decrement stock for every line under per-product locks
       - on failure: restore what was taken, mark the order ``failed``, re-raise
    6. Mark the order ``placed``
    7. Clear and delete the source cart (failures are logged, not raised)
    8. Hand the confirmation to the notifier (failures are logged, not raised)

Steps 1-3 have no side effects. Guest checkout skips the cart entirely and
prices the supplied lines from the live catalogue with the cart pricing rules.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.cart.cart import MAX_LINE_QUANTITY, Cart
from storefront.cart.pricing import compute_totals, line_total
from storefront.catalogue.lookup import ProductCatalog
from storefront.exceptions import EmptyCart, InsufficientStock, OrderAccessDenied, error_message
from storefront.inventory.ledger import InventoryLedger
from storefront.order.numbering import unique_order_number
from storefront.order.order import Order, PaymentMethod

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
    """Customer-supplied checkout details common to both entry points."""

    customer: dict
    shipping_address: dict
    payment_method: str
    billing_address: dict | None = None
    same_as_shipping: bool = False
    notes: str | None = None
    idempotency_key: str | None = None

    @property
    def billing(self) -> dict:
        if self.same_as_shipping or not self.billing_address:
            return self.shipping_address
        return self.billing_address


@dataclass(frozen=True)
class GuestLine:
    product_id: str
    quantity: int
    variant_id: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    replayed: bool = False

    @property
    def order_number(self) -> str:
        return self.order.order_number


@dataclass
class _Snapshot:
    items: list = field(default_factory=list)

    def line_totals(self):
        return [item["total"] for item in self.items]


def confirmation_payload(order: Order) -> dict:
    """Plain-data view of an order for the confirmation notification."""
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "email": order.customer.email,
        "items": [
            {"name": item.name, "quantity": item.quantity, "price": item.price, "total": item.total}
            for item in order.items
        ],
        "subtotal": order.pricing.subtotal,
        "discount": order.pricing.discount,
        "tax": order.pricing.tax,
        "shipping": order.pricing.shipping,
        "total": order.pricing.total,
        "payment_method": order.payment.method,
    }


class CheckoutOrchestrator:
    def __init__(
        self,
        catalog: ProductCatalog | None = None,
        ledger: InventoryLedger | None = None,
        notify: Callable[[dict], None] | None = None,
    ):
        self.catalog = catalog or ProductCatalog()
        self.ledger = ledger or InventoryLedger(self.catalog)
        self.notify = notify

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def place_order_from_cart(self, request: CheckoutRequest, user_id, session_id=None) -> CheckoutResult:
        """Authenticated checkout of the customer's stored cart."""
        self._validate_payment_method(request.payment_method)
        replay = self._replay(request, user_id)
        if replay is not None:
            return replay

        cart_repo = current_domain.repository_for(Cart)
        cart = self._resolve_cart(cart_repo, user_id, session_id)
        if cart is None or cart.is_empty:
            raise EmptyCart()

        snapshot = _Snapshot()
        for item in cart.items:
            product, variant = self._checked_line(item.product_id, item.variant_id, item.quantity)
            snapshot.items.append(self._snapshot_item(product, variant, item.quantity, item.price, item.total))

        totals = cart.totals
        pricing = {
            "subtotal": totals.subtotal,
            "discount": totals.discount,
            "tax": totals.tax,
            "shipping": totals.shipping,
            "total": totals.total,
        }
        order = self._place(request, snapshot, pricing, user_id=user_id, coupons=cart.coupon_codes)
        self._discard_cart(cart_repo, cart)
        self._dispatch(order)
        return CheckoutResult(order)

    def place_guest_order(self, request: CheckoutRequest, lines: list[GuestLine]) -> CheckoutResult:
        """Guest checkout: lines come from the request and are priced from scratch."""
        self._validate_payment_method(request.payment_method)
        replay = self._replay(request, None)
        if replay is not None:
            return replay

        if not lines:
            raise EmptyCart()

        snapshot = _Snapshot()
        for line in lines:
            if line.quantity is None or not 1 <= line.quantity <= MAX_LINE_QUANTITY:
                raise ValidationError(
                    {"quantity": [f"Quantity must be between 1 and {MAX_LINE_QUANTITY}"]}
                )
            product, variant = self._checked_line(line.product_id, line.variant_id, line.quantity)
            price = product.unit_price(variant)
            snapshot.items.append(
                self._snapshot_item(product, variant, line.quantity, price, line_total(price, line.quantity))
            )

        pricing = compute_totals(snapshot.line_totals()).as_dict()
        order = self._place(request, snapshot, pricing, user_id=None, coupons=[])
        self._dispatch(order)
        return CheckoutResult(order)

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    @staticmethod
    def _validate_payment_method(method):
        valid = {m.value for m in PaymentMethod}
        if method not in valid:
            raise ValidationError({"payment_method": [f"Payment method must be one of {sorted(valid)}"]})

    def _replay(self, request, user_id) -> CheckoutResult | None:
        order = current_domain.repository_for(Order).find_by_idempotency_key(request.idempotency_key)
        if order is None:
            return None
        if not self._same_requester(order, request, user_id):
            raise OrderAccessDenied("Idempotency key was used by another customer")

        logger.info("Checkout replayed", order_number=order.order_number)
        return CheckoutResult(order, replayed=True)

    @staticmethod
    def _same_requester(order, request, user_id) -> bool:
        """Signed-in keys bind to the user id, guest keys to the customer email."""
        if user_id:
            return order.belongs_to(user_id)
        if order.user_id:
            return False
        requested = (request.customer.get("email") or "").strip().lower()
        return bool(requested) and order.customer.email.strip().lower() == requested

    @staticmethod
    def _resolve_cart(cart_repo, user_id, session_id) -> Cart | None:
        cart = cart_repo.find_by_user(user_id)
        if cart is not None or not session_id:
            return cart

        cart = cart_repo.find_by_session(session_id)
        if cart is not None:
            cart.transfer_to_user(user_id)
            cart_repo.save(cart)
            logger.info("Session cart linked at checkout", cart_id=str(cart.id), user_id=str(user_id))
        return cart

    def _checked_line(self, product_id, variant_id, quantity):
        product, variant = self.catalog.resolve(product_id, variant_id)
        available = product.available_stock(variant)
        if available < quantity:
            raise InsufficientStock(product.display_name(variant), available, quantity)
        return product, variant

    @staticmethod
    def _snapshot_item(product, variant, quantity, price, total) -> dict:
        return {
            "product_id": str(product.id),
            "variant_id": str(variant.id) if variant is not None else None,
            "name": product.display_name(variant),
            "sku": variant.sku if variant is not None else product.sku,
            "image": (variant.image if variant is not None else None) or product.image,
            "price": price,
            "quantity": quantity,
            "total": total,
        }

    def _place(self, request, snapshot, pricing, user_id, coupons) -> Order:
        order_repo = current_domain.repository_for(Order)
        order = Order.create(
            order_number=unique_order_number(order_repo.order_number_taken),
            customer=request.customer,
            items=snapshot.items,
            pricing=pricing,
            billing_address=request.billing,
            shipping_address=request.shipping_address,
            payment_method=request.payment_method,
            user_id=user_id,
            applied_coupons=coupons,
            notes=request.notes,
            idempotency_key=request.idempotency_key,
        )
        order_repo.add(order)
        logger.info("Order pending", order_number=order.order_number, total=order.pricing.total)

        movements = []
        try:
            movements = self.ledger.decrement_all(order.stock_lines(), reference=order.order_number)
            order.mark_placed()
            order_repo.add(order)
        except Exception as exc:
            if movements:
                self.ledger.restore_all(movements, reference=order.order_number)
            self._fail(order_repo, order, exc)
            raise

        logger.info("Order placed", order_number=order.order_number, user_id=str(user_id) if user_id else None)
        return order

    @staticmethod
    def _fail(order_repo, order, exc):
        stored = order_repo.get(order.id)
        stored.mark_failed(error_message(exc))
        order_repo.add(stored)
        logger.warning(
            "Order placement failed, compensated",
            order_number=order.order_number,
            reason=stored.failure_reason,
        )

    @staticmethod
    def _discard_cart(cart_repo, cart):
        try:
            cart.clear()
            cart_repo.delete(cart)
        except Exception:
            logger.exception("Source cart cleanup failed", cart_id=str(cart.id))

    def _dispatch(self, order):
        if self.notify is None:
            return
        try:
            self.notify(confirmation_payload(order))
        except Exception:
            logger.exception("Order confirmation dispatch failed", order_number=order.order_number)
