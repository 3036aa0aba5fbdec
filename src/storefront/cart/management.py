"""Cart management: commands and handler.

Handles guest cart merging at sign-in and the sweep of expired carts.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront
from storefront.exceptions import CartNotFound

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class MergeCarts:
    """Fold a guest session's cart into an authenticated customer's cart."""

    user_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)


@storefront.command(part_of="Cart")
class PurgeExpiredCarts:
    """Delete every cart whose ``expires_at`` has passed."""

    as_of = DateTime()


class CartMergeService:
    """Combine a session cart into the user's cart, or hand it over outright.

    No stock validation happens here; merged quantities are re-checked at
    checkout.
    """

    def __init__(self, repository):
        self.repository = repository

    def merge(self, user_cart: Cart | None, session_cart: Cart, user_id) -> Cart:
        if user_cart is None:
            session_cart.transfer_to_user(user_id)
            self.repository.save(session_cart)
            logger.info(
                "Guest cart transferred",
                cart_id=str(session_cart.id),
                user_id=str(user_id),
            )
            return session_cart

        user_cart.merge_guest_cart(session_cart)
        self.repository.save(user_cart)
        self.repository.delete(session_cart)
        logger.info(
            "Guest cart merged",
            cart_id=str(user_cart.id),
            source_cart_id=str(session_cart.id),
            item_count=user_cart.item_count,
        )
        return user_cart


@storefront.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(MergeCarts)
    def merge_carts(self, command):
        repo = current_domain.repository_for(Cart)
        session_cart = repo.find_by_session(command.session_id)
        if session_cart is None:
            raise CartNotFound("Session cart not found")

        user_cart = repo.find_by_user(command.user_id)
        merged = CartMergeService(repo).merge(user_cart, session_cart, command.user_id)
        return str(merged.id)

    @handle(PurgeExpiredCarts)
    def purge_expired_carts(self, command):
        repo = current_domain.repository_for(Cart)
        expired = repo.expired(command.as_of or datetime.now(UTC))
        for cart in expired:
            repo.delete(cart)

        logger.info("Expired carts purged", count=len(expired))
        return len(expired)
