"""Tests for the catalogue adapters: snapshots and atomic stock adjustments.

Every behaviour is checked against both the in-memory and the SQLite adapter.
"""

import threading
from decimal import Decimal

import pytest
from ordering.catalogue.fake_adapter import InMemoryCatalogue
from ordering.catalogue.port import ProductStatus
from ordering.catalogue.sql_adapter import SqlCatalogue
from ordering.errors import Unavailable
from ordering.utils.db import build_engine, connect_args, setup_db


@pytest.fixture(params=["memory", "sqlite"])
def adapter(request, tmp_path):
    if request.param == "memory":
        yield InMemoryCatalogue(timeout=2.0)
        return

    engine = build_engine(f"sqlite:///{tmp_path / 'catalogue.db'}", timeout=10.0)
    setup_db(engine)
    yield SqlCatalogue(engine)
    engine.dispose()


class TestSnapshots:
    def test_get_product(self, adapter):
        adapter.add_product("prod-1", "Shirt", "49.99", available_quantity=4, image="shirt.png")

        product = adapter.get_product("prod-1")
        assert product.name == "Shirt"
        assert product.price == Decimal("49.99")
        assert product.available_quantity == 4
        assert product.image == "shirt.png"
        assert product.is_active

    def test_missing_product(self, adapter):
        assert adapter.get_product("nope") is None

    def test_active_without_stock_is_out_of_stock(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=0)
        assert adapter.get_product("prod-1").status == ProductStatus.OUT_OF_STOCK.value

    def test_effective_price_applies_discount(self, adapter):
        adapter.add_product("prod-1", "Shirt", "19.99", available_quantity=1, discount_percent=15)
        # 19.99 * 0.85 = 16.9915
        assert adapter.get_product("prod-1").effective_price == Decimal("16.99")


class TestDecrement:
    def test_decrement_when_available(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=5)

        change = adapter.decrement_if_available("prod-1", 3)

        assert change.success
        assert change.available_quantity == 2
        assert adapter.get_product("prod-1").available_quantity == 2

    def test_refuses_to_go_negative(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=1)

        change = adapter.decrement_if_available("prod-1", 2)

        assert not change.success
        assert change.available_quantity == 1
        assert adapter.get_product("prod-1").available_quantity == 1

    def test_reaching_zero_flips_to_out_of_stock(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=2)

        change = adapter.decrement_if_available("prod-1", 2)

        assert change.status == ProductStatus.OUT_OF_STOCK.value
        assert adapter.get_product("prod-1").status == ProductStatus.OUT_OF_STOCK.value

    def test_inactive_status_kept_at_zero(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=2, status="inactive")

        adapter.decrement_if_available("prod-1", 2)

        assert adapter.get_product("prod-1").status == ProductStatus.INACTIVE.value

    def test_missing_product(self, adapter):
        assert not adapter.decrement_if_available("nope", 1).success


class TestIncrement:
    def test_increment(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=2)

        change = adapter.increment("prod-1", 3)

        assert change.success
        assert change.available_quantity == 5

    def test_restock_flips_back_to_active(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=1)
        adapter.decrement_if_available("prod-1", 1)

        change = adapter.increment("prod-1", 1)

        assert change.status == ProductStatus.ACTIVE.value
        assert adapter.get_product("prod-1").is_active

    def test_inactive_stays_inactive(self, adapter):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=0, status="inactive")

        adapter.increment("prod-1", 4)

        assert adapter.get_product("prod-1").status == ProductStatus.INACTIVE.value

    def test_missing_product(self, adapter):
        assert not adapter.increment("nope", 1).success


class TestConcurrentDecrements:
    @pytest.mark.parametrize(("stock", "quantity", "expected_successes"), [(10, 1, 10), (10, 3, 3), (5, 5, 1)])
    def test_never_oversells(self, adapter, stock, quantity, expected_successes):
        adapter.add_product("prod-1", "Shirt", 10, available_quantity=stock)
        barrier = threading.Barrier(20)
        results = []

        def buy():
            barrier.wait()
            results.append(adapter.decrement_if_available("prod-1", quantity).success)

        threads = [threading.Thread(target=buy) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == expected_successes
        remaining = adapter.get_product("prod-1").available_quantity
        assert remaining == stock - expected_successes * quantity
        assert remaining >= 0


class TestTimeouts:
    def test_memory_lock_timeout_raises_unavailable(self):
        catalogue = InMemoryCatalogue(timeout=0.05)
        catalogue.add_product("prod-1", "Shirt", 10, available_quantity=1)

        catalogue._lock.acquire()
        try:
            with pytest.raises(Unavailable) as exc:
                catalogue.decrement_if_available("prod-1", 1)
        finally:
            catalogue._lock.release()

        assert exc.value.kind == "unavailable"
        assert exc.value.identifier == "prod-1"

    def test_sql_outage_raises_unavailable(self, tmp_path):
        # Tables never created: every statement fails at the database
        engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}", timeout=1.0)
        with pytest.raises(Unavailable):
            SqlCatalogue(engine).decrement_if_available("prod-1", 1)


class TestEngineTimeouts:
    def test_sqlite_busy_timeout(self):
        args = connect_args("sqlite:///catalogue.db", 2.5)
        assert args == {"timeout": 2.5, "check_same_thread": False}

    def test_postgresql_connect_and_statement_timeouts(self):
        args = connect_args("postgresql://shop@db/catalogue", 2.5)
        assert args == {"connect_timeout": 2, "options": "-c statement_timeout=2500"}

    def test_postgresql_connect_timeout_is_at_least_one_second(self):
        assert connect_args("postgresql+psycopg2://shop@db/catalogue", 0.25)["connect_timeout"] == 1

    def test_other_databases_get_no_driver_arguments(self):
        assert connect_args("mysql://shop@db/catalogue", 5.0) == {}
