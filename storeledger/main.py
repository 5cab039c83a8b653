from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storeledger import __version__
from storeledger.core.auth import auth_backend, fastapi_users
from storeledger.core.config import Settings, settings as default_settings
from storeledger.core.exception_handlers import setup_exception_handlers
from storeledger.core.logging_config import configure_logging
from storeledger.db.database import Database
from storeledger.routers.inventory import router as inventory_router
from storeledger.routers.items import router as items_router
from storeledger.routers.orders import router as orders_router
from storeledger.routers.stores import router as stores_router
from storeledger.routers.units import router as units_router
from storeledger.schemas.users import UserCreate, UserRead, UserUpdate
from storeledger.services.activity import ActivityLogger


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    db = database or Database(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        sqlite_busy_timeout=settings.sqlite_busy_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.create_all()
        yield
        await db.dispose()

    app = FastAPI(
        title="Store Ledger API",
        description="Multi-store inventory with an append-only stock ledger",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.activity = ActivityLogger(db)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    # Authentication routes (fastapi-users)
    app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
    app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
    app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

    # Catalog and stores
    app.include_router(units_router, prefix="/units", tags=["units"])
    app.include_router(items_router, prefix="/items", tags=["items"])
    app.include_router(stores_router, prefix="/stores", tags=["stores"])

    # Stock ledger and orders
    app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
    app.include_router(orders_router, prefix="/orders", tags=["orders"])

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("storeledger.main:app", host="0.0.0.0", port=8000, reload=True)
