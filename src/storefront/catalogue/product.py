"""Product aggregate: the catalogue read model the cart and checkout consume.

Catalogue management (CRUD, images, categories) lives outside the storefront
core. This aggregate carries only what pricing, stock validation, order
snapshots and inventory decrements need. Stock is only ever moved through
``decrement_stock`` / ``restore_stock``, driven by the inventory ledger.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, HasMany, Integer, String

from storefront.catalogue.events import StockDecremented, StockRestored
from storefront.domain import storefront
from storefront.exceptions import InsufficientStock, ProductNotFound


def _effective(price, sale_price):
    if sale_price and 0 < sale_price < price:
        return sale_price
    return price


@storefront.entity(part_of="Product")
class Variant:
    """A SKU-level option (size, colour) with its own stock counter."""

    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    price = Float(min_value=0.0)
    sale_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=500)


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    variants = HasMany(Variant)

    @invariant.post
    def variant_skus_must_be_unique(self):
        skus = [v.sku for v in self.variants or []]
        if len(skus) != len(set(skus)):
            raise ValidationError({"variants": ["Variant SKUs must be unique within a product"]})

    def find_variant(self, variant_id):
        return next((v for v in self.variants or [] if str(v.id) == str(variant_id)), None)

    def unit_price(self, variant=None) -> float:
        """Price a customer pays right now, honouring an active sale price."""
        if variant is not None:
            return _effective(variant.price or self.price, variant.sale_price)
        return _effective(self.price, self.sale_price)

    def available_stock(self, variant=None) -> int:
        if variant is not None:
            return variant.stock or 0
        return self.stock or 0

    def display_name(self, variant=None) -> str:
        if variant is not None:
            return f"{self.name} - {variant.name}"
        return self.name

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def decrement_stock(self, quantity, variant_id=None, reference=None):
        """Take units off the shelf, refusing to go below zero."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        variant = self._stock_holder(variant_id)
        previous = self.available_stock(variant)
        if previous < quantity:
            raise InsufficientStock(self.display_name(variant), previous, quantity)

        target = variant if variant is not None else self
        target.stock = previous - quantity

        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                previous_stock=previous,
                new_stock=previous - quantity,
                reference=reference,
            )
        )

    def restore_stock(self, quantity, variant_id=None, reference=None):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        variant = self._stock_holder(variant_id)
        previous = self.available_stock(variant)

        target = variant if variant is not None else self
        target.stock = previous + quantity

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                previous_stock=previous,
                new_stock=previous + quantity,
                reference=reference,
            )
        )

    def _stock_holder(self, variant_id):
        if not variant_id:
            return None
        variant = self.find_variant(variant_id)
        if variant is None:
            raise ProductNotFound(self.id, variant_id)
        return variant
