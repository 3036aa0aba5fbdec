"""Inventory ledger: conditional stock decrements at order placement.

A decrement only succeeds when ``stock >= quantity``; otherwise it raises
``InsufficientStock`` and leaves stock untouched. The read-check-write for a
product runs under a lock keyed by product id, so two checkouts racing for
the last units cannot both succeed inside one process.

There is no reservation step: stock is checked when items are added, checked
again at checkout, and only moved here.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from storefront.catalogue.lookup import ProductCatalog
from storefront.catalogue.product import Product

logger = structlog.get_logger(__name__)

_locks_guard = threading.Lock()
_product_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)


def _lock_for(product_id) -> threading.Lock:
    with _locks_guard:
        return _product_locks[str(product_id)]


@dataclass(frozen=True)
class StockMovement:
    product_id: str
    variant_id: str | None
    quantity: int


class InventoryLedger:
    def __init__(self, catalog: ProductCatalog | None = None):
        self.catalog = catalog or ProductCatalog()

    def decrement(self, product_id, variant_id, quantity, reference=None) -> StockMovement:
        with _lock_for(product_id):
            product = self.catalog.get(product_id)
            product.decrement_stock(quantity, variant_id=variant_id, reference=reference)
            current_domain.repository_for(Product).add(product)

        logger.info(
            "Stock decremented",
            product_id=str(product_id),
            variant_id=str(variant_id) if variant_id else None,
            quantity=quantity,
            reference=reference,
        )
        return StockMovement(str(product_id), str(variant_id) if variant_id else None, quantity)

    def restore(self, product_id, variant_id, quantity, reference=None) -> None:
        with _lock_for(product_id):
            product = self.catalog.get(product_id)
            product.restore_stock(quantity, variant_id=variant_id, reference=reference)
            current_domain.repository_for(Product).add(product)

        logger.info(
            "Stock restored",
            product_id=str(product_id),
            variant_id=str(variant_id) if variant_id else None,
            quantity=quantity,
            reference=reference,
        )

    def decrement_all(self, lines, reference=None) -> list[StockMovement]:
        """Decrement every line, or none of them.

        ``lines`` is an iterable of ``(product_id, variant_id, quantity)``. When
        a line fails, the lines already taken are restored before the error
        propagates.
        """
        taken: list[StockMovement] = []
        try:
            for product_id, variant_id, quantity in lines:
                taken.append(self.decrement(product_id, variant_id, quantity, reference=reference))
        except Exception:
            logger.warning(
                "Stock decrement failed, restoring taken lines",
                reference=reference,
                restored_lines=len(taken),
            )
            self.restore_all(taken, reference=reference)
            raise
        return taken

    def restore_all(self, movements, reference=None) -> None:
        for movement in reversed(list(movements)):
            self.restore(movement.product_id, movement.variant_id, movement.quantity, reference=reference)
