"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer), separate from the
internal protean commands and aggregates. The wire format is camelCase;
Python attributes stay snake_case through pydantic aliases.
"""

from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

PaymentMethodLiteral = Literal["credit_card", "paypal", "bank_transfer", "cash_on_delivery"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(CamelModel, Generic[DataT]):
    """``{success, message?, data?}``, the shape of every response."""

    success: bool = True
    message: str | None = None
    data: DataT | None = None


# ---------------------------------------------------------------------------
# Cart requests
# ---------------------------------------------------------------------------
class AddToCartRequest(CamelModel):
    product_id: str
    quantity: int = Field(default=1, ge=1, le=999)
    variant_id: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"productId": "prod-001", "quantity": 2, "variantId": None}]},
    )


class UpdateQuantityRequest(CamelModel):
    quantity: int = Field(le=999)  # Zero or less removes the line


class ApplyCouponRequest(CamelModel):
    coupon_code: str = Field(min_length=1, max_length=100)


class MergeCartsRequest(CamelModel):
    session_id: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Cart responses
# ---------------------------------------------------------------------------
class TotalsView(CamelModel):
    subtotal: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    total: float = 0.0


class CartItemView(CamelModel):
    id: str
    product_id: str
    variant_id: str | None = None
    quantity: int
    price: float
    total: float


class CartView(CamelModel):
    id: str | None = None  # None for a synthesized empty cart
    user_id: str | None = None
    session_id: str | None = None
    items: list[CartItemView] = []
    totals: TotalsView = TotalsView()
    applied_coupons: list[str] = []
    item_count: int = 0
    is_empty: bool = True
    version: int = 0
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_cart(cls, cart) -> "CartView":
        totals = cart.totals
        return cls(
            id=str(cart.id),
            user_id=str(cart.user_id) if cart.user_id else None,
            session_id=cart.session_id,
            items=[
                CartItemView(
                    id=str(item.id),
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id) if item.variant_id else None,
                    quantity=item.quantity,
                    price=item.price,
                    total=item.total,
                )
                for item in cart.items or []
            ],
            totals=TotalsView(
                subtotal=totals.subtotal,
                discount=totals.discount,
                tax=totals.tax,
                shipping=totals.shipping,
                total=totals.total,
            ),
            applied_coupons=cart.coupon_codes,
            item_count=cart.item_count,
            is_empty=cart.is_empty,
            version=cart.version or 0,
            expires_at=cart.expires_at,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )

    @classmethod
    def empty(cls, user_id=None, session_id=None) -> "CartView":
        return cls(user_id=user_id, session_id=None if user_id else session_id)


class CouponResultView(CamelModel):
    cart: CartView
    discount_amount: float
    discount_type: str


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class CustomerInfoSchema(CamelModel):
    email: str = Field(min_length=3, max_length=254)
    phone: str | None = None
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class AddressSchema(CamelModel):
    first_name: str
    last_name: str
    company: str | None = None
    address1: str
    address2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str = "Türkiye"
    phone: str | None = None


class AddressesSchema(CamelModel):
    shipping: AddressSchema
    billing: AddressSchema | None = None


class CreateOrderFromCartRequest(CamelModel):
    customer_info: CustomerInfoSchema
    addresses: AddressesSchema
    payment_method: PaymentMethodLiteral
    notes: str | None = Field(default=None, max_length=2000)
    same_as_shipping: bool = False


class GuestLineSchema(CamelModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, le=999)


class CreateGuestOrderRequest(CreateOrderFromCartRequest):
    items: list[GuestLineSchema] = Field(min_length=1)


class PaymentDetailsSchema(CamelModel):
    card_number: str | None = None
    expiry_date: str | None = None
    cvv: str | None = None
    cardholder_name: str | None = None


class ProcessPaymentRequest(CamelModel):
    payment_details: PaymentDetailsSchema = PaymentDetailsSchema()


class CancelOrderRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Order responses
# ---------------------------------------------------------------------------
class OrderItemView(CamelModel):
    id: str
    product_id: str
    variant_id: str | None = None
    name: str
    sku: str
    image: str | None = None
    price: float
    quantity: int
    total: float


class AddressesView(CamelModel):
    billing: AddressSchema
    shipping: AddressSchema


class PaymentView(CamelModel):
    method: str
    status: str
    transaction_id: str | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None


class FulfillmentView(CamelModel):
    status: str
    tracking_number: str | None = None
    carrier: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    notes: str | None = None


class OrderView(CamelModel):
    id: str
    order_number: str
    user_id: str | None = None
    customer_info: CustomerInfoSchema
    items: list[OrderItemView]
    pricing: TotalsView
    addresses: AddressesView
    payment: PaymentView
    fulfillment: FulfillmentView
    applied_coupons: list[str] = []
    notes: str | None = None
    placement_status: str
    item_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def _address(address) -> AddressSchema:
        return AddressSchema(
            first_name=address.first_name,
            last_name=address.last_name,
            company=address.company,
            address1=address.address1,
            address2=address.address2,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            country=address.country,
            phone=address.phone,
        )

    @classmethod
    def from_order(cls, order) -> "OrderView":
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id) if order.user_id else None,
            customer_info=CustomerInfoSchema(
                email=order.customer.email,
                phone=order.customer.phone,
                first_name=order.customer.first_name,
                last_name=order.customer.last_name,
            ),
            items=[
                OrderItemView(
                    id=str(item.id),
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id) if item.variant_id else None,
                    name=item.name,
                    sku=item.sku,
                    image=item.image,
                    price=item.price,
                    quantity=item.quantity,
                    total=item.total,
                )
                for item in order.items
            ],
            pricing=TotalsView(
                subtotal=order.pricing.subtotal,
                discount=order.pricing.discount,
                tax=order.pricing.tax,
                shipping=order.pricing.shipping,
                total=order.pricing.total,
            ),
            addresses=AddressesView(
                billing=cls._address(order.billing_address),
                shipping=cls._address(order.shipping_address),
            ),
            payment=PaymentView(
                method=order.payment.method,
                status=order.payment.status,
                transaction_id=order.payment.transaction_id,
                paid_at=order.payment.paid_at,
                refunded_at=order.payment.refunded_at,
            ),
            fulfillment=FulfillmentView(
                status=order.fulfillment.status,
                tracking_number=order.fulfillment.tracking_number,
                carrier=order.fulfillment.carrier,
                shipped_at=order.fulfillment.shipped_at,
                delivered_at=order.fulfillment.delivered_at,
                notes=order.fulfillment.notes,
            ),
            applied_coupons=order.coupon_codes,
            notes=order.notes,
            placement_status=order.placement_status,
            item_count=order.item_count,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderCreatedView(CamelModel):
    order: OrderView
    order_number: str


class PaymentResultView(CamelModel):
    order: OrderView
    transaction_id: str


class OrderListEnvelope(Envelope[list[OrderView]]):
    count: int
    total: int
    pages: int
    current_page: int
