"""FastAPI routes for the Storefront cart and orders."""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query
from protean.utils.globals import current_domain

from storefront.api.identity import Identity, require_user, resolve_identity
from storefront.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartView,
    CouponResultView,
    CreateGuestOrderRequest,
    CreateOrderFromCartRequest,
    Envelope,
    MergeCartsRequest,
    OrderCreatedView,
    OrderListEnvelope,
    OrderView,
    PaymentResultView,
    ProcessPaymentRequest,
    UpdateQuantityRequest,
)
from storefront.cart.cart import Cart, CartOwner
from storefront.cart.coupons import ApplyCoupon, RemoveCoupon
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.management import MergeCarts
from storefront.checkout.orchestrator import CheckoutOrchestrator, CheckoutRequest, GuestLine
from storefront.config import setting
from storefront.exceptions import PaymentDeclined
from storefront.notification.dispatch import send_order_confirmation
from storefront.order.cancellation import CancelOrder
from storefront.order.order import Order
from storefront.order.payment import ProcessPayment

MAX_PAGE_SIZE = 50


def _cart_view(cart_id) -> CartView | None:
    if cart_id is None:
        return None
    return CartView.from_cart(current_domain.repository_for(Cart).get(cart_id))


def _orchestrator(background_tasks: BackgroundTasks) -> CheckoutOrchestrator:
    def notify(payload):
        background_tasks.add_task(
            send_order_confirmation,
            payload,
            max_attempts=setting("notification_max_attempts"),
        )

    return CheckoutOrchestrator(notify=notify)


def _checkout_request(body: CreateOrderFromCartRequest, idempotency_key: str | None) -> CheckoutRequest:
    return CheckoutRequest(
        customer=body.customer_info.model_dump(),
        shipping_address=body.addresses.shipping.model_dump(),
        billing_address=body.addresses.billing.model_dump() if body.addresses.billing else None,
        same_as_shipping=body.same_as_shipping,
        payment_method=body.payment_method,
        notes=body.notes,
        idempotency_key=idempotency_key,
    )


def _created(result) -> Envelope[OrderCreatedView]:
    message = "Order already created" if result.replayed else "Order created successfully"
    return Envelope[OrderCreatedView](
        message=message,
        data=OrderCreatedView(order=OrderView.from_order(result.order), order_number=result.order_number),
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=Envelope[CartView])
async def get_cart(identity: Identity = Depends(resolve_identity)) -> Envelope[CartView]:
    """Fetch the caller's cart, or a synthesized empty one when there is none."""
    cart = None
    if identity.user_id:
        cart = current_domain.repository_for(Cart).find_by_owner(CartOwner.user(identity.user_id))
    elif identity.session_id:
        cart = current_domain.repository_for(Cart).find_by_owner(CartOwner.session(identity.session_id))

    if cart is None:
        return Envelope[CartView](data=CartView.empty(identity.user_id, identity.session_id))
    return Envelope[CartView](data=CartView.from_cart(cart))


@cart_router.post("/add", response_model=Envelope[CartView])
async def add_to_cart(body: AddToCartRequest, identity: Identity = Depends(resolve_identity)) -> Envelope[CartView]:
    command = AddToCart(
        user_id=identity.user_id,
        session_id=identity.session_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return Envelope[CartView](message="Product added to cart", data=_cart_view(cart_id))


@cart_router.put("/update/{item_id}", response_model=Envelope[CartView])
async def update_cart_item(
    item_id: str,
    body: UpdateQuantityRequest,
    identity: Identity = Depends(resolve_identity),
) -> Envelope[CartView]:
    command = UpdateCartQuantity(
        user_id=identity.user_id,
        session_id=identity.session_id,
        item_id=item_id,
        quantity=body.quantity,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return Envelope[CartView](message="Cart updated", data=_cart_view(cart_id))


@cart_router.delete("/remove/{item_id}", response_model=Envelope[CartView])
async def remove_cart_item(item_id: str, identity: Identity = Depends(resolve_identity)) -> Envelope[CartView]:
    command = RemoveFromCart(
        user_id=identity.user_id,
        session_id=identity.session_id,
        item_id=item_id,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return Envelope[CartView](message="Product removed from cart", data=_cart_view(cart_id))


@cart_router.delete("/clear", response_model=Envelope[CartView])
async def clear_cart(identity: Identity = Depends(resolve_identity)) -> Envelope[CartView]:
    command = ClearCart(user_id=identity.user_id, session_id=identity.session_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return Envelope[CartView](message="Cart cleared", data=_cart_view(cart_id))


@cart_router.post("/apply-coupon", response_model=Envelope[CouponResultView])
async def apply_coupon(
    body: ApplyCouponRequest,
    identity: Identity = Depends(resolve_identity),
) -> Envelope[CouponResultView]:
    command = ApplyCoupon(
        user_id=identity.user_id,
        session_id=identity.session_id,
        coupon_code=body.coupon_code,
    )
    result = current_domain.process(command, asynchronous=False)
    return Envelope[CouponResultView](
        message="Coupon applied",
        data=CouponResultView(
            cart=_cart_view(result["cart_id"]),
            discount_amount=result["discount_amount"],
            discount_type=result["discount_type"],
        ),
    )


@cart_router.delete("/remove-coupon", response_model=Envelope[CartView])
async def remove_coupon(identity: Identity = Depends(resolve_identity)) -> Envelope[CartView]:
    command = RemoveCoupon(user_id=identity.user_id, session_id=identity.session_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return Envelope[CartView](message="Coupons removed", data=_cart_view(cart_id))


@cart_router.post("/merge", response_model=Envelope[CartView])
async def merge_carts(body: MergeCartsRequest, identity: Identity = Depends(require_user)) -> Envelope[CartView]:
    command = MergeCarts(user_id=identity.user_id, session_id=body.session_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return Envelope[CartView](message="Carts merged", data=_cart_view(cart_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/create-from-cart", status_code=201, response_model=Envelope[OrderCreatedView])
async def create_order_from_cart(
    body: CreateOrderFromCartRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_user),
    idempotency_key: str | None = Header(default=None),
) -> Envelope[OrderCreatedView]:
    """Check out the caller's cart.

    The cart is resolved by user, falling back to the caller's session cart.
    """
    result = _orchestrator(background_tasks).place_order_from_cart(
        _checkout_request(body, idempotency_key),
        user_id=identity.user_id,
        session_id=identity.session_id,
    )
    return _created(result)


@order_router.post("/create-guest", status_code=201, response_model=Envelope[OrderCreatedView])
async def create_guest_order(
    body: CreateGuestOrderRequest,
    background_tasks: BackgroundTasks,
    idempotency_key: str | None = Header(default=None),
) -> Envelope[OrderCreatedView]:
    lines = [GuestLine(product_id=i.product_id, variant_id=i.variant_id, quantity=i.quantity) for i in body.items]
    result = _orchestrator(background_tasks).place_guest_order(_checkout_request(body, idempotency_key), lines)
    return _created(result)


@order_router.get("/my-orders", response_model=OrderListEnvelope)
async def my_orders(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    identity: Identity = Depends(require_user),
) -> OrderListEnvelope:
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))
    result = current_domain.repository_for(Order).page_for_user(identity.user_id, page=page, limit=limit)
    return OrderListEnvelope(
        data=[OrderView.from_order(order) for order in result.orders],
        count=len(result.orders),
        total=result.total,
        pages=result.pages,
        current_page=page,
    )


@order_router.get("/{order_id}", response_model=Envelope[OrderView])
async def get_order(order_id: str, identity: Identity = Depends(require_user)) -> Envelope[OrderView]:
    order = current_domain.repository_for(Order).get_owned(order_id, identity.user_id)
    return Envelope[OrderView](data=OrderView.from_order(order))


@order_router.post("/{order_id}/process-payment", response_model=Envelope[PaymentResultView])
async def process_payment(
    order_id: str,
    body: ProcessPaymentRequest,
    identity: Identity = Depends(require_user),
) -> Envelope[PaymentResultView]:
    details = body.payment_details
    command = ProcessPayment(
        order_id=order_id,
        user_id=identity.user_id,
        card_number=details.card_number,
        expiry_date=details.expiry_date,
        cvv=details.cvv,
        cardholder_name=details.cardholder_name,
    )
    result = current_domain.process(command, asynchronous=False)
    order = OrderView.from_order(current_domain.repository_for(Order).get(result["order_id"]))

    if not result["success"]:
        raise PaymentDeclined(result["failure_reason"], order=order.model_dump(by_alias=True, mode="json"))

    return Envelope[PaymentResultView](
        message="Payment processed successfully",
        data=PaymentResultView(order=order, transaction_id=result["transaction_id"]),
    )


@order_router.post("/{order_id}/cancel", response_model=Envelope[OrderView])
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    identity: Identity = Depends(require_user),
) -> Envelope[OrderView]:
    command = CancelOrder(order_id=order_id, user_id=identity.user_id, reason=body.reason if body else None)
    current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return Envelope[OrderView](message="Order cancelled", data=OrderView.from_order(order))
