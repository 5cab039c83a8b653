import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storeledger.core.enums import InventoryStatus
from ..database import Base, db_enum


class InventoryRecord(Base):
    __tablename__ = "inventory_records"
    __table_args__ = (
        UniqueConstraint("item_id", "store_id", name="ux_inventory_records_item_store"),
        CheckConstraint("quantity >= 0", name="ck_inventory_records_quantity_non_negative"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    item_id = Column(GUID, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    store_id = Column(GUID, ForeignKey("stores.id", ondelete="RESTRICT"), nullable=False, index=True)

    # base units
    quantity = Column(Float, nullable=False, default=0.0)
    min_stock_level = Column(Float, nullable=False, default=0.0)
    status = Column(db_enum(InventoryStatus, "inventory_status"), nullable=False, default=InventoryStatus.OUT_OF_STOCK)

    # bumped by every adjustment; the transaction written with it carries the same number
    version = Column(Integer, nullable=False, default=0)

    last_count_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_modified = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    item = relationship("Item", lazy="joined")
    store = relationship("Store")
