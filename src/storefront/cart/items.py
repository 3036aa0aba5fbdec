"""Cart item management: commands and handler.

Handlers validate the product and its live stock before touching the cart,
then persist the repriced cart. A cart whose last line is removed is deleted
rather than kept around empty; those handlers return ``None`` in that case.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import MAX_LINE_QUANTITY, Cart
from storefront.cart.ownership import owner_from
from storefront.catalogue.lookup import ProductCatalog
from storefront.domain import storefront
from storefront.exceptions import CartNotFound, InsufficientStock

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class AddToCart:
    user_id = Identifier()
    session_id = String(max_length=255)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(default=1, min_value=1, max_value=MAX_LINE_QUANTITY)


@storefront.command(part_of="Cart")
class UpdateCartQuantity:
    user_id = Identifier()
    session_id = String(max_length=255)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, max_value=MAX_LINE_QUANTITY)


@storefront.command(part_of="Cart")
class RemoveFromCart:
    user_id = Identifier()
    session_id = String(max_length=255)
    item_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    user_id = Identifier()
    session_id = String(max_length=255)


def _persist_or_discard(repo, cart):
    if cart.is_empty:
        repo.delete(cart)
        return None
    repo.save(cart)
    return str(cart.id)


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.catalog = ProductCatalog()

    @handle(AddToCart)
    def add_to_cart(self, command):
        product, variant = self.catalog.resolve(command.product_id, command.variant_id)

        available = product.available_stock(variant)
        if available < command.quantity:
            raise InsufficientStock(product.display_name(variant), available, command.quantity)

        owner = owner_from(command)
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_owner(owner)
        if cart is None:
            cart = Cart.create(owner)
            logger.info("Cart created", cart_id=str(cart.id), owner=owner.kind.value)

        cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            unit_price=product.unit_price(variant),
            variant_id=command.variant_id,
        )
        repo.save(cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_owner(owner_from(command))
        if cart is None:
            raise CartNotFound()

        item = cart.get_item(command.item_id)
        if command.quantity > 0:
            product, variant = self.catalog.resolve(item.product_id, item.variant_id)
            available = product.available_stock(variant)
            if available < command.quantity:
                raise InsufficientStock(product.display_name(variant), available, command.quantity)

        cart.update_item_quantity(command.item_id, command.quantity)
        return _persist_or_discard(repo, cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_owner(owner_from(command))
        if cart is None:
            raise CartNotFound()

        cart.remove_item(command.item_id)
        return _persist_or_discard(repo, cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_owner(owner_from(command))
        if cart is None:
            raise CartNotFound()

        cart.clear()
        return _persist_or_discard(repo, cart)
