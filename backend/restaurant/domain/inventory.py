"""
Inventory aggregate: stock items, their movements, and suppliers.

Every stock change is recorded as a StockMovement carrying the stock level
before and after it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from shared.config.constants import MovementType, UnitType
from shared.utils.clock import utcnow
from shared.utils.exceptions import (
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    ValidationError,
)
from shared.utils.ids import (
    InventoryItemID,
    MovementID,
    SupplierID,
    new_inventory_item_id,
    new_movement_id,
    new_supplier_id,
)

# Movements that take stock out
_OUTBOUND = frozenset({MovementType.USED, MovementType.WASTED, MovementType.RETURNED})


@dataclass
class StockMovement:
    id: MovementID
    inventory_item_id: InventoryItemID
    type: MovementType
    quantity: float
    previous_stock: float
    new_stock: float
    notes: str = ""
    reference: str = ""
    performed_by: str = ""
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Supplier:
    id: SupplierID
    name: str
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    website: str = ""
    notes: str = ""
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, name: str) -> "Supplier":
        if not name:
            raise ValidationError("supplier name is required", field="name", op="Supplier.create")
        now = utcnow()
        return cls(id=new_supplier_id(), name=name, created_at=now, updated_at=now)

    def update_details(
        self,
        name: str,
        contact_name: str = "",
        email: str = "",
        phone: str = "",
        address: str = "",
        website: str = "",
        notes: str = "",
    ) -> None:
        if not name:
            raise ValidationError("name is required", field="name", op="Supplier.update_details")
        self.name = name
        self.contact_name = contact_name
        self.email = email
        self.phone = phone
        self.address = address
        self.website = website
        self.notes = notes
        self.updated_at = utcnow()

    def activate(self) -> None:
        self.is_active = True
        self.updated_at = utcnow()

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = utcnow()


@dataclass
class InventoryItem:
    """Stock-keeping unit and its movement history."""

    id: InventoryItemID
    sku: str
    name: str
    current_stock: float
    unit: UnitType
    cost: float
    description: str = ""
    min_threshold: float = 0.0
    max_threshold: float = 0.0
    reorder_point: float = 0.0
    category: str = ""
    location: str = ""
    supplier_id: str = ""
    last_ordered: datetime | None = None
    expiry_date: datetime | None = None
    movements: list[StockMovement] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Maintained by repositories for optimistic concurrency
    row_version: int = 0

    @classmethod
    def create(
        cls,
        sku: str,
        name: str,
        initial_stock: float,
        unit: UnitType | str,
        cost: float,
    ) -> "InventoryItem":
        if not sku:
            raise ValidationError("SKU is required", field="sku", op="InventoryItem.create")
        if not name:
            raise ValidationError("name is required", field="name", op="InventoryItem.create")
        if initial_stock < 0:
            raise ValidationError(
                "initial stock cannot be negative", field="initial_stock", op="InventoryItem.create"
            )
        if cost < 0:
            raise ValidationError("cost cannot be negative", field="cost", op="InventoryItem.create")
        try:
            unit = UnitType(unit)
        except ValueError:
            raise ValidationError(f"invalid unit: {unit}", field="unit", op="InventoryItem.create") from None

        now = utcnow()
        return cls(
            id=new_inventory_item_id(),
            sku=sku,
            name=name,
            current_stock=initial_stock,
            unit=unit,
            cost=cost,
            created_at=now,
            updated_at=now,
        )

    # =========================================================================
    # Movements
    # =========================================================================

    def add_movement(
        self,
        movement_type: MovementType | str,
        quantity: float,
        notes: str = "",
        reference: str = "",
        performed_by: str = "",
    ) -> StockMovement:
        """
        Apply a stock movement and record it.

        RECEIVED adds, USED/WASTED/RETURNED subtract, ADJUSTED sets the
        stock to quantity.

        Raises:
            ValidationError: Non-positive quantity (negative for ADJUSTED).
            ConflictError: Outbound movement larger than current stock.
        """
        try:
            movement_type = MovementType(movement_type)
        except ValueError:
            raise ValidationError(
                "invalid movement type", field="movement_type", op="InventoryItem.add_movement"
            ) from None

        if movement_type is MovementType.ADJUSTED:
            if quantity < 0:
                raise ValidationError(
                    "adjusted stock cannot be negative", field="quantity", op="InventoryItem.add_movement"
                )
        elif quantity <= 0:
            raise ValidationError("quantity must be positive", field="quantity", op="InventoryItem.add_movement")

        previous = self.current_stock
        if movement_type is MovementType.RECEIVED:
            new_stock = previous + quantity
        elif movement_type in _OUTBOUND:
            if previous < quantity:
                raise ConflictError(
                    "insufficient stock for this operation",
                    code=ErrorCode.INSUFFICIENT_STOCK,
                    op="InventoryItem.add_movement",
                    item_id=self.id,
                    current_stock=previous,
                    requested=quantity,
                )
            new_stock = previous - quantity
        else:
            new_stock = quantity

        now = utcnow()
        movement = StockMovement(
            id=new_movement_id(),
            inventory_item_id=self.id,
            type=movement_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new_stock,
            notes=notes,
            reference=reference,
            performed_by=performed_by,
            created_at=now,
        )
        self.current_stock = new_stock
        self.updated_at = now
        self.movements.append(movement)
        return movement

    def reserve_stock(self, quantity: float, reference: str = "", performed_by: str = "") -> StockMovement:
        """Take stock out for an order."""
        if not self.can_fulfill(quantity):
            raise BusinessRuleError(
                ErrorCode.INSUFFICIENT_STOCK,
                "insufficient stock",
                op="InventoryItem.reserve_stock",
                item_id=self.id,
                current_stock=self.current_stock,
                requested=quantity,
            )
        return self.add_movement(
            MovementType.USED, quantity, "Stock reserved for order", reference, performed_by
        )

    # =========================================================================
    # Levels
    # =========================================================================

    def update_thresholds(self, minimum: float, maximum: float, reorder_point: float) -> None:
        if minimum < 0 or maximum < 0 or reorder_point < 0:
            raise ValidationError(
                "thresholds cannot be negative", field="thresholds", op="InventoryItem.update_thresholds"
            )
        if maximum < minimum:
            raise ConflictError(
                "maximum threshold cannot be less than minimum threshold",
                op="InventoryItem.update_thresholds",
                item_id=self.id,
            )
        if not minimum <= reorder_point <= maximum:
            raise ConflictError(
                "reorder point must be between minimum and maximum thresholds",
                op="InventoryItem.update_thresholds",
                item_id=self.id,
            )
        self.min_threshold = minimum
        self.max_threshold = maximum
        self.reorder_point = reorder_point
        self.updated_at = utcnow()

    def is_low_stock(self) -> bool:
        return self.current_stock <= self.reorder_point

    def is_out_of_stock(self) -> bool:
        return self.current_stock <= 0

    def can_fulfill(self, quantity: float) -> bool:
        return self.current_stock >= quantity

    # =========================================================================
    # Details
    # =========================================================================

    def set_supplier(self, supplier_id: str) -> None:
        self.supplier_id = supplier_id
        self.updated_at = utcnow()

    def update_details(
        self,
        name: str,
        description: str = "",
        category: str = "",
        location: str = "",
        cost: float = 0.0,
    ) -> None:
        if not name:
            raise ValidationError("name is required", field="name", op="InventoryItem.update_details")
        if cost < 0:
            raise ValidationError("cost cannot be negative", field="cost", op="InventoryItem.update_details")
        self.name = name
        self.description = description
        self.category = category
        self.location = location
        self.cost = cost
        self.updated_at = utcnow()
