import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storeledger.core.enums import TransactionSource, TransactionType
from ..database import Base, db_enum


class StockTransaction(Base):
    """Append-only ledger row. Never updated or deleted."""
    __tablename__ = "stock_transactions"
    __table_args__ = (
        UniqueConstraint("item_id", "store_id", "sequence", name="ux_stock_transactions_item_store_seq"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    item_id = Column(GUID, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    store_id = Column(GUID, ForeignKey("stores.id", ondelete="RESTRICT"), nullable=False, index=True)
    performed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    type = Column(db_enum(TransactionType, "transaction_type"), nullable=False)
    source = Column(db_enum(TransactionSource, "transaction_source"), nullable=False, index=True)

    # signed, base units
    quantity_change = Column(Float, nullable=False)
    resulting_quantity = Column(Float, nullable=False)
    sequence = Column(Integer, nullable=False)

    source_document_id = Column(GUID, nullable=True, index=True)  # e.g. order id
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    item = relationship("Item")
