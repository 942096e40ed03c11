"""Tests for sale stock deduction."""

import pytest
from decimal import Decimal

from sqlalchemy.orm import sessionmaker

from ledgerlink.core.exceptions import ConcurrencyConflictError, InsufficientStockError, NotFoundError
from ledgerlink.models.inventory import InventoryItem
from ledgerlink.services.stock_service import StockLedger


class TestDeduct:

    def test_inventory_and_recipe_quantities_are_deducted(self, db_session, bread, flour, sugar):
        result = StockLedger(db_session).deduct(
            inventory_quantities=[(flour.id, Decimal("1"))],
            recipe_quantities=[(bread.id, Decimal("2"))],
        )

        assert result.success is True
        # flour: 10 - 1 - 2*2, sugar: 5 - 2*2
        assert db_session.get(InventoryItem, flour.id).quantity == Decimal("5")
        assert db_session.get(InventoryItem, sugar.id).quantity == Decimal("1")

    def test_shortfall_clamps_at_zero(self, db_session, bread, flour, sugar):
        result = StockLedger(db_session).deduct(recipe_quantities=[(bread.id, Decimal("3"))])

        assert result.success is False
        assert result.insufficient_recipe_ingredients == [sugar.id]
        assert db_session.get(InventoryItem, sugar.id).quantity == Decimal("0")
        assert db_session.get(InventoryItem, flour.id).quantity == Decimal("4")

    def test_inventory_shortfall_is_reported(self, db_session, sugar):
        result = StockLedger(db_session).deduct(inventory_quantities=[(sugar.id, Decimal("8"))])

        assert result.insufficient_inventory_items == [sugar.id]
        assert db_session.get(InventoryItem, sugar.id).quantity == Decimal("0")

    def test_low_stock_is_reported(self, db_session, flour):
        # minimum is 3
        result = StockLedger(db_session).deduct(inventory_quantities=[(flour.id, Decimal("8"))])

        assert result.success is True
        assert result.low_stock_items == [flour.id]

    def test_strict_mode_raises_and_deducts_nothing(self, db_session, bread, flour, sugar):
        with pytest.raises(InsufficientStockError):
            StockLedger(db_session).deduct(recipe_quantities=[(bread.id, Decimal("3"))], strict=True)

        assert db_session.get(InventoryItem, flour.id).quantity == Decimal("10")
        assert db_session.get(InventoryItem, sugar.id).quantity == Decimal("5")

    def test_unknown_ids(self, db_session):
        with pytest.raises(NotFoundError):
            StockLedger(db_session).deduct(inventory_quantities=[(404, Decimal("1"))])
        with pytest.raises(NotFoundError):
            StockLedger(db_session).deduct(recipe_quantities=[(404, Decimal("1"))])


class TestLowStock:

    def test_low_stock_items(self, db_session, flour, sugar):
        item = db_session.get(InventoryItem, flour.id)
        item.quantity = Decimal("2")
        db_session.commit()

        assert [i.id for i in StockLedger(db_session).low_stock_items([flour.id, sugar.id])] == [flour.id]

    def test_empty_ids(self, db_session):
        assert StockLedger(db_session).low_stock_items([]) == []


class TestConcurrentWriters:

    def test_stale_writer_gets_conflict(self, db_engine, db_session, flour):
        other = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
        try:
            # both writers have read quantity 10 at the same row version
            assert other.get(InventoryItem, flour.id).quantity == Decimal("10")

            StockLedger(db_session).deduct(inventory_quantities=[(flour.id, Decimal("3"))])

            with pytest.raises(ConcurrencyConflictError):
                StockLedger(other).deduct(inventory_quantities=[(flour.id, Decimal("1"))])
        finally:
            other.close()

        db_session.expire_all()
        assert db_session.get(InventoryItem, flour.id).quantity == Decimal("7")
