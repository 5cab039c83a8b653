import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, String
from sqlalchemy.sql import func

from storeledger.core.enums import UnitFamily
from .database import Base, db_enum


class UnitOfMeasurement(Base):
    __tablename__ = "units_of_measurement"
    __table_args__ = (
        CheckConstraint("conversion_factor_to_base > 0", name="ck_units_factor_positive"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)  # e.g. "Kilogram"
    symbol = Column(String, nullable=False, unique=True)  # e.g. "kg"
    unit_family = Column(db_enum(UnitFamily, "unit_family"), nullable=False, index=True)

    # kg -> g is 1000; the family's base unit has 1
    conversion_factor_to_base = Column(Float, nullable=False, default=1.0)
    is_base_unit = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
