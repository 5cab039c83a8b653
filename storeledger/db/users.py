from fastapi_users.db import SQLAlchemyBaseUserTableUUID, SQLAlchemyUserDatabase
from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, ForeignKey, String

from storeledger.core.enums import Role
from .database import Base, db_enum


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    role = Column(db_enum(Role, "user_role"), nullable=False, default=Role.USER)
    store_id = Column(GUID, ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True)


def user_database(session):
    return SQLAlchemyUserDatabase(session, User)
