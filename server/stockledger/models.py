from datetime import datetime
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


ITEM_TYPES = ("MANUFACTURED", "EXTERNAL", "RAW_MATERIAL")
INBOUND = "INBOUND"
OUTBOUND = "OUTBOUND"
TRANSACTION_TYPES = (INBOUND, OUTBOUND)

Quantity = Numeric(18, 4)


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    code = Column(String(100), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    item_type = Column(Enum(*ITEM_TYPES, name="item_type"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    item_units = relationship("ItemUnit", back_populates="item", cascade="all, delete-orphan")
    lots = relationship("Lot", back_populates="item")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ItemUnit(Base):
    __tablename__ = "item_units"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    conversion_rate = Column(Numeric(18, 6), nullable=False, default=1)
    is_default = Column(Boolean, nullable=False, default=False)

    item = relationship("Item", back_populates="item_units")
    unit = relationship("Unit")

    __table_args__ = (
        UniqueConstraint("item_id", "unit_id", name="uq_item_unit"),
    )


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Lot(Base):
    __tablename__ = "lots"

    id = Column(Integer, primary_key=True)
    lot_number = Column(String(100), unique=True, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    production_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item = relationship("Item", back_populates="lots")


class Inventory(Base):
    """On-hand quantity for one (lot, warehouse, unit) ledger key.

    A missing row means zero; rows are removed when an outbound empties them.
    """

    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True)
    lot_id = Column(Integer, ForeignKey("lots.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    quantity = Column(Quantity, nullable=False, default=0)
    last_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lot = relationship("Lot")
    warehouse = relationship("Warehouse")
    unit = relationship("Unit")

    __table_args__ = (
        UniqueConstraint("lot_id", "warehouse_id", "unit_id", name="uq_inventory_ledger_key"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )


class InventoryTransaction(Base):
    """Append-only movement journal entry. Corrections are new movements."""

    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True)
    transaction_type = Column(Enum(*TRANSACTION_TYPES, name="inventory_transaction_type"), nullable=False)
    lot_id = Column(Integer, ForeignKey("lots.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    quantity = Column(Quantity, nullable=False)
    transaction_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    reference_number = Column(String(100), nullable=True)
    barcode_data = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    lot = relationship("Lot")
    warehouse = relationship("Warehouse")
    unit = relationship("Unit")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
        Index("ix_inventory_transactions_ledger_key", "lot_id", "warehouse_id", "unit_id"),
        Index("ix_inventory_transactions_transaction_date", "transaction_date"),
    )

    @property
    def signed_quantity(self):
        return self.quantity if self.transaction_type == INBOUND else -self.quantity


class Allocation(Base):
    __tablename__ = "allocations"

    id = Column(Integer, primary_key=True)
    lot_id = Column(Integer, ForeignKey("lots.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    quantity = Column(Quantity, nullable=False)
    allocation_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    reference_number = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lot = relationship("Lot")
    warehouse = relationship("Warehouse")
    unit = relationship("Unit")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_allocations_quantity_positive"),
        Index("ix_allocations_ledger_key", "lot_id", "warehouse_id", "unit_id"),
    )


class MonthlyInventory(Base):
    __tablename__ = "monthly_inventory"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    lot_id = Column(Integer, ForeignKey("lots.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    month = Column(Date, nullable=False)
    opening_quantity = Column(Quantity, nullable=False, default=0)
    incoming_quantity = Column(Quantity, nullable=False, default=0)
    outgoing_quantity = Column(Quantity, nullable=False, default=0)
    closing_quantity = Column(Quantity, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item = relationship("Item")
    lot = relationship("Lot")
    warehouse = relationship("Warehouse")
    unit = relationship("Unit")

    __table_args__ = (
        UniqueConstraint("item_id", "lot_id", "warehouse_id", "unit_id", "month", name="uq_monthly_inventory_key_month"),
        Index("ix_monthly_inventory_month", "month"),
    )
