import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Store(Base):
    """A main store (no parent) or one of its branches.

    The hierarchy is two levels deep: a parent store never has a parent itself.
    """
    __tablename__ = "stores"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    location = Column(Text, nullable=True)
    parent_store_id = Column(GUID, ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    parent = relationship("Store", remote_side=[id], back_populates="branches")
    branches = relationship("Store", back_populates="parent")
