import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storeledger.core.enums import OrderStatus, PaymentMethod
from .database import Base, db_enum


class Order(Base):
    __tablename__ = "orders"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    reference = Column(String, nullable=False, unique=True)
    store_id = Column(GUID, ForeignKey("stores.id", ondelete="RESTRICT"), nullable=False, index=True)
    seller_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    total_amount = Column(Float, nullable=False)
    payment_method = Column(db_enum(PaymentMethod, "payment_method"), nullable=False, default=PaymentMethod.CASH)
    order_status = Column(db_enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.COMPLETED)

    order_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan")


class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    order_id = Column(GUID, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(GUID, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)

    # presentation units of the item's own unit
    quantity = Column(Float, nullable=False)
    quantity_base = Column(Float, nullable=False)
    price_at_order = Column(Float, nullable=False)
    sub_total = Column(Float, nullable=False, default=0.0)

    order = relationship("Order", back_populates="lines")
    item = relationship("Item")
