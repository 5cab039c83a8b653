import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import Enum, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from storeledger.core.exceptions import ConflictError, InternalError, LedgerError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """Engine + session factory owned by process bootstrap.

    Constructed once (application lifespan, scripts, tests) and passed to
    whoever needs a session. Nothing in the package imports a global engine.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 5,
        sqlite_busy_timeout: float = 30.0,
    ):
        self.url = make_url(url)
        self.is_sqlite = self.url.get_backend_name() == "sqlite"

        if self.is_sqlite:
            self.engine: AsyncEngine = create_async_engine(
                url,
                echo=echo,
                connect_args={"timeout": sqlite_busy_timeout},
            )
            _use_immediate_transactions(self.engine)
        else:
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )

        self.session_maker = async_sessionmaker(self.engine, expire_on_commit=False)
        logger.info("Database engine created for %s", self.url.render_as_string(hide_password=True))

    async def create_all(self):
        # Register every model on Base.metadata
        from storeledger.db import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_maker() as session:
            yield session

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database engine disposed")


def _use_immediate_transactions(engine: AsyncEngine):
    # pysqlite's implicit BEGIN is deferred, which lets two writers deadlock on
    # lock upgrade. Take the write lock up front so writers queue on the busy
    # timeout instead.

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.db.session() as session:
        yield session


def db_enum(enum_cls, name: str) -> Enum:
    """Non-native Enum column type storing member values ("inStock", not "IN_STOCK")."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


@asynccontextmanager
async def transaction_scope(session: AsyncSession):
    """Commit on success, roll back on any failure (cancellation included).

    Ledger and service helpers never commit on their own; operations that own
    their unit of work wrap it in this.
    """
    try:
        yield session
        await session.commit()
    except LedgerError:
        await session.rollback()
        raise
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Integrity violation: %s", exc.orig)
        raise ConflictError("Conflicting record already exists", code="CONSTRAINT_VIOLATION") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Storage failure")
        raise InternalError() from exc
    except BaseException:
        await session.rollback()
        raise
