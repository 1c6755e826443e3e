"""
Tests for inventory items, stock movements and suppliers.
"""

import pytest

from restaurant.domain.inventory import InventoryItem, Supplier
from shared.config.constants import MovementType, UnitType
from shared.utils.exceptions import (
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    ErrorKind,
    ValidationError,
)


@pytest.fixture
def tomatoes():
    item = InventoryItem.create("TOM-001", "Tomato", 10.0, UnitType.KILOGRAMS, 2.5)
    item.update_thresholds(1.0, 50.0, 4.0)
    return item


class TestStockMovements:
    def test_received_adds(self, tomatoes):
        movement = tomatoes.add_movement(MovementType.RECEIVED, 5.0, reference="PO-1")
        assert tomatoes.current_stock == 15.0
        assert (movement.previous_stock, movement.new_stock) == (10.0, 15.0)
        assert tomatoes.movements == [movement]

    @pytest.mark.parametrize("movement_type", [MovementType.USED, MovementType.WASTED, MovementType.RETURNED])
    def test_outbound_subtracts(self, tomatoes, movement_type):
        tomatoes.add_movement(movement_type, 4.0)
        assert tomatoes.current_stock == 6.0

    def test_outbound_beyond_stock_is_conflict(self, tomatoes):
        with pytest.raises(ConflictError) as exc_info:
            tomatoes.add_movement(MovementType.USED, 10.5)
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_STOCK
        assert tomatoes.current_stock == 10.0
        assert tomatoes.movements == []

    def test_adjusted_sets_stock(self, tomatoes):
        tomatoes.add_movement(MovementType.ADJUSTED, 3.0)
        assert tomatoes.current_stock == 3.0
        tomatoes.add_movement(MovementType.ADJUSTED, 0.0)
        assert tomatoes.is_out_of_stock()

    def test_quantity_rules(self, tomatoes):
        with pytest.raises(ValidationError):
            tomatoes.add_movement(MovementType.RECEIVED, 0)
        with pytest.raises(ValidationError):
            tomatoes.add_movement(MovementType.ADJUSTED, -1)
        with pytest.raises(ValidationError):
            tomatoes.add_movement("STOLEN", 1)

    def test_reserve_stock(self, tomatoes):
        movement = tomatoes.reserve_stock(2.0, reference="ord_1")
        assert movement.type is MovementType.USED
        assert tomatoes.current_stock == 8.0

    def test_reserve_more_than_stock(self, tomatoes):
        with pytest.raises(BusinessRuleError) as exc_info:
            tomatoes.reserve_stock(11.0)
        assert exc_info.value.kind is ErrorKind.BUSINESS
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_STOCK


class TestThresholds:
    def test_low_stock_at_reorder_point(self, tomatoes):
        tomatoes.add_movement(MovementType.USED, 6.0)
        assert tomatoes.is_low_stock()
        assert not tomatoes.is_out_of_stock()

    def test_negative_threshold(self, tomatoes):
        with pytest.raises(ValidationError):
            tomatoes.update_thresholds(-1, 5, 2)

    def test_max_below_min(self, tomatoes):
        with pytest.raises(ConflictError):
            tomatoes.update_thresholds(5, 2, 3)

    def test_reorder_outside_range(self, tomatoes):
        with pytest.raises(ConflictError):
            tomatoes.update_thresholds(1, 5, 6)

    def test_can_fulfill(self, tomatoes):
        assert tomatoes.can_fulfill(10.0)
        assert not tomatoes.can_fulfill(10.01)


class TestItemDetails:
    def test_create_validation(self):
        with pytest.raises(ValidationError):
            InventoryItem.create("", "Tomato", 1, "KG", 1)
        with pytest.raises(ValidationError):
            InventoryItem.create("SKU", "Tomato", -1, "KG", 1)
        with pytest.raises(ValidationError):
            InventoryItem.create("SKU", "Tomato", 1, "BARRELS", 1)

    def test_update_details_and_supplier(self, tomatoes):
        tomatoes.update_details("Roma Tomato", category="produce", location="cooler", cost=3.0)
        tomatoes.set_supplier("sup_1")
        assert tomatoes.name == "Roma Tomato"
        assert tomatoes.cost == 3.0
        assert tomatoes.supplier_id == "sup_1"
        with pytest.raises(ValidationError):
            tomatoes.update_details("Roma", cost=-1)


class TestSupplier:
    def test_supplier_lifecycle(self):
        supplier = Supplier.create("Green Farms")
        supplier.update_details("Green Farms Ltd", contact_name="Ana", email="ana@greenfarms.test")
        supplier.deactivate()
        assert not supplier.is_active
        supplier.activate()
        assert supplier.is_active
        assert supplier.contact_name == "Ana"

    def test_supplier_requires_name(self):
        with pytest.raises(ValidationError):
            Supplier.create("")
