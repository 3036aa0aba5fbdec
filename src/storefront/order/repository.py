"""Order persistence: lookups by number, owner and idempotency key."""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError

from storefront.domain import storefront
from storefront.exceptions import OrderAccessDenied, OrderNotFound
from storefront.order.order import Order, PlacementStatus


@dataclass(frozen=True)
class OrderPage:
    orders: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


@storefront.repository(part_of=Order)
class OrderRepository:
    def find_by_order_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def find_by_idempotency_key(self, key: str) -> Order | None:
        if not key:
            return None
        return self._dao.query.filter(idempotency_key=key).all().first

    def order_number_taken(self, order_number: str) -> bool:
        return self.find_by_order_number(order_number) is not None

    def page_for_user(self, user_id, page: int = 1, limit: int = 10) -> OrderPage:
        """Placed orders, newest first. ``page`` is 1-based.

        Orders still mid-checkout or whose placement failed are not listed.
        """
        query = self._dao.query.filter(user_id=str(user_id), placement_status=PlacementStatus.PLACED.value)
        total = query.all().total
        orders = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all().items
        return OrderPage(orders=list(orders), total=total, page=page, limit=limit)

    def get_owned(self, order_id, user_id) -> Order:
        """Load an order on behalf of ``user_id``, refusing anyone but its owner."""
        try:
            order = self.get(str(order_id))
        except ObjectNotFoundError:
            raise OrderNotFound(order_id) from None
        if user_id is not None and not order.belongs_to(user_id):
            raise OrderAccessDenied(f"Order {order_id} belongs to another customer")
        return order
