import threading

import pytest
from storefront.exceptions import InsufficientStock, ProductNotFound
from storefront.inventory.ledger import InventoryLedger, StockMovement


def test_decrement_and_restore(make_product, fetch_product):
    product = make_product(stock=5)
    ledger = InventoryLedger()

    movement = ledger.decrement(product.id, None, 3, reference="ORD-1")
    assert movement == StockMovement(str(product.id), None, 3)
    assert fetch_product(product.id).stock == 2

    ledger.restore(product.id, None, 3, reference="ORD-1")
    assert fetch_product(product.id).stock == 5


def test_variant_decrement_leaves_product_stock(make_product, fetch_product):
    product = make_product(stock=7, variants=[{"name": "Red", "sku": "W-RED", "stock": 4}])
    variant_id = product.variants[0].id

    InventoryLedger().decrement(product.id, variant_id, 4)

    stored = fetch_product(product.id)
    assert stored.stock == 7
    assert stored.find_variant(variant_id).stock == 0


def test_decrement_refuses_to_oversell(make_product, fetch_product):
    product = make_product(stock=1)
    with pytest.raises(InsufficientStock):
        InventoryLedger().decrement(product.id, None, 2)
    assert fetch_product(product.id).stock == 1


def test_decrement_all_is_all_or_nothing(make_product, fetch_product):
    plenty = make_product(name="Plenty", stock=10)
    scarce = make_product(name="Scarce", stock=1)

    with pytest.raises(InsufficientStock):
        InventoryLedger().decrement_all([(plenty.id, None, 4), (scarce.id, None, 2)], reference="ORD-2")

    assert fetch_product(plenty.id).stock == 10
    assert fetch_product(scarce.id).stock == 1


def test_decrement_all_returns_movements(make_product):
    a = make_product(name="A", stock=3)
    b = make_product(name="B", stock=3)
    movements = InventoryLedger().decrement_all([(a.id, None, 1), (b.id, None, 2)])
    assert [m.quantity for m in movements] == [1, 2]


def test_unknown_product():
    with pytest.raises(ProductNotFound):
        InventoryLedger().decrement("missing", None, 1)


def test_racing_decrements_never_oversell(make_product, fetch_product):
    from storefront.domain import storefront

    product = make_product(stock=3)
    barrier = threading.Barrier(2)
    outcomes = []

    def take_last_units():
        with storefront.domain_context():
            barrier.wait()
            try:
                InventoryLedger().decrement(product.id, None, 3)
            except InsufficientStock:
                outcomes.append("refused")
            else:
                outcomes.append("taken")

    workers = [threading.Thread(target=take_last_units) for _ in range(2)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=10)

    assert sorted(outcomes) == ["refused", "taken"]
    assert fetch_product(product.id).stock == 0
