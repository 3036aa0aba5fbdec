"""Cart persistence: owner lookups, versioned saves and deletion."""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError

from storefront.cart.cart import Cart, CartOwner
from storefront.domain import storefront
from storefront.exceptions import ConcurrentModification

logger = structlog.get_logger(__name__)


@storefront.repository(part_of=Cart)
class CartRepository:
    """Stores one cart per customer or per guest session.

    Expired carts are treated as absent and removed when encountered.
    """

    def find_by_owner(self, owner: CartOwner) -> Cart | None:
        if owner.is_user:
            return self.find_by_user(owner.key)
        return self.find_by_session(owner.key)

    def find_by_user(self, user_id) -> Cart | None:
        if not user_id:
            return None
        return self._live(self._dao.query.filter(user_id=str(user_id)).all().first)

    def find_by_session(self, session_id) -> Cart | None:
        if not session_id:
            return None
        return self._live(self._dao.query.filter(session_id=str(session_id)).all().first)

    def _live(self, cart):
        if cart is not None and cart.is_expired():
            logger.info("Discarding expired cart", cart_id=str(cart.id))
            self.delete(cart)
            return None
        return cart

    def save(self, cart: Cart) -> Cart:
        """Persist a cart if nobody else has written it since it was loaded."""
        try:
            stored = self._dao.get(cart.id)
        except ObjectNotFoundError:
            stored = None

        if stored is not None and stored is not cart and (stored.version or 0) != (cart.version or 0):
            raise ConcurrentModification(
                f"Cart {cart.id} was modified concurrently (expected version {cart.version}, found {stored.version})"
            )

        cart.version = (cart.version or 0) + 1
        self.add(cart)
        return cart

    def delete(self, cart: Cart) -> None:
        self._dao.delete(cart)
        logger.info("Cart deleted", cart_id=str(cart.id))

    def expired(self, as_of=None) -> list[Cart]:
        as_of = as_of or datetime.now(UTC)
        return [cart for cart in self._dao.query.all().items if cart.is_expired(as_of)]
