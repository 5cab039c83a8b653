import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storeledger.core.enums import ItemType
from .database import Base, db_enum


class Item(Base):
    """A menu item or raw material.

    Quantities and prices for the item are always held in its base unit;
    `unit` is the presentation default people type and read.
    """
    __tablename__ = "items"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    item_type = Column(db_enum(ItemType, "item_type"), nullable=False, index=True)
    description = Column(Text, nullable=True)

    unit_id = Column(GUID, ForeignKey("units_of_measurement.id", ondelete="RESTRICT"), nullable=False, index=True)
    base_unit_id = Column(GUID, ForeignKey("units_of_measurement.id", ondelete="RESTRICT"), nullable=False)

    price_per_base_unit = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_modified = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    unit = relationship("UnitOfMeasurement", foreign_keys=[unit_id], lazy="joined")
    base_unit = relationship("UnitOfMeasurement", foreign_keys=[base_unit_id], lazy="joined")
