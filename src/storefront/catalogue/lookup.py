"""Read-only product lookups used by the cart and checkout."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.exceptions import ProductNotFound


class ProductCatalog:
    def get(self, product_id) -> Product:
        try:
            return current_domain.repository_for(Product).get(str(product_id))
        except ObjectNotFoundError:
            raise ProductNotFound(product_id) from None

    def variant(self, product: Product, variant_id):
        variant = product.find_variant(variant_id)
        if variant is None:
            raise ProductNotFound(product.id, variant_id)
        return variant

    def resolve(self, product_id, variant_id=None):
        """Return ``(product, variant)``; the variant is None for plain products."""
        product = self.get(product_id)
        if not variant_id:
            return product, None
        return product, self.variant(product, variant_id)
