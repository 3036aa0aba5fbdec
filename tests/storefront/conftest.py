import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    from identity.tokens import reset_verifier
    from notifications.channel import reset_channels
    from payments.gateway import reset_gateway
    from protean import current_domain

    with storefront_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_channels()
    reset_verifier()


@pytest.fixture()
def make_product():
    """Persist a catalogue product and return it.

    ``variants`` is a list of dicts with name, sku, stock and optional
    price / sale_price / image.
    """
    from protean import current_domain
    from storefront.catalogue.product import Product, Variant

    def _make(name="Widget", sku=None, price=100.0, stock=10, sale_price=None, variants=None, image=None):
        product = Product(
            name=name,
            sku=sku or f"SKU-{name.upper().replace(' ', '-')}",
            price=price,
            sale_price=sale_price,
            stock=stock,
            image=image,
            variants=[Variant(**v) for v in variants or []],
        )
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def fetch_product():
    from protean import current_domain
    from storefront.catalogue.product import Product

    def _fetch(product_id):
        return current_domain.repository_for(Product).get(str(product_id))

    return _fetch
