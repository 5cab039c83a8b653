"""Which stores a principal may act on.

Managers see their home store plus its direct branches; every other role sees
only its home store. Scope is resolved per request from the stores table and
handed to the ledger as an explicit set.
"""
import logging
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.enums import Role
from storeledger.core.exceptions import NotFoundError, ScopeForbiddenError, ValidationError
from storeledger.core.permissions import Principal, require
from storeledger.db.database import transaction_scope
from storeledger.db.store import Store
from storeledger.services.activity import ActivityLogger, log_activity

logger = logging.getLogger(__name__)


async def fetch_store(session: AsyncSession, store_id: UUID) -> Store:
    store = await session.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found", code="STORE_NOT_FOUND", details={"store_id": str(store_id)})
    return store


async def branches_of(session: AsyncSession, store_id: UUID) -> Set[UUID]:
    res = await session.execute(select(Store.id).where(Store.parent_store_id == store_id))
    return set(res.scalars().all())


async def main_store_of(session: AsyncSession, store_id: UUID) -> Store:
    store = await fetch_store(session, store_id)
    if store.parent_store_id is None:
        return store
    return await fetch_store(session, store.parent_store_id)


async def resolve_hierarchy(session: AsyncSession, store_id: UUID) -> Set[UUID]:
    """Main store of `store_id` (itself, or its parent) plus all of its branches."""
    main = await main_store_of(session, store_id)
    res = await session.execute(
        select(Store.id).where(or_(Store.id == main.id, Store.parent_store_id == main.id))
    )
    return set(res.scalars().all())


async def resolve_scope(session: AsyncSession, role: Role, home_store_id: UUID) -> Set[UUID]:
    if role == Role.MANAGER:
        return {home_store_id} | await branches_of(session, home_store_id)
    return {home_store_id}


async def principal_scope(session: AsyncSession, principal: Principal) -> Set[UUID]:
    return await resolve_scope(session, principal.role, principal.store_id)


async def narrow_scope(
    session: AsyncSession,
    principal: Principal,
    target_store_ids: Optional[Iterable[UUID]] = None,
) -> Set[UUID]:
    """Resolved scope, optionally narrowed to explicitly requested stores.

    Any requested store outside the scope rejects the whole request.
    """
    scope = await principal_scope(session, principal)
    if not target_store_ids:
        return scope

    targets = set(target_store_ids)
    outside = targets - scope
    if outside:
        logger.warning(
            "Principal %s (%s) requested stores outside scope: %s",
            principal.id, principal.role.value, sorted(str(s) for s in outside),
        )
        raise ScopeForbiddenError(
            "Requested store is outside your scope",
            code="STORE_OUT_OF_SCOPE",
            details={"store_ids": sorted(str(s) for s in outside)},
        )
    return targets


async def authorize_store(session: AsyncSession, principal: Principal, store_id: Optional[UUID] = None) -> UUID:
    """Single target store for a write; defaults to the principal's home store."""
    if store_id is None:
        return principal.store_id
    await narrow_scope(session, principal, [store_id])
    return store_id


async def list_stores(session: AsyncSession, principal: Principal) -> List[Store]:
    require(principal, "stores.read")
    async with transaction_scope(session):
        scope = await principal_scope(session, principal)
        res = await session.execute(select(Store).where(Store.id.in_(scope)).order_by(Store.name))
        return list(res.scalars().all())


async def store_hierarchy(
    session: AsyncSession,
    principal: Principal,
    store_id: UUID,
) -> Tuple[Optional[Store], List[Store]]:
    """Main store of `store_id` and its branches, limited to the principal's scope.

    The main store is None when only one of its branches is in scope.
    """
    require(principal, "stores.read")
    async with transaction_scope(session):
        await narrow_scope(session, principal, [store_id])
        visible = await resolve_hierarchy(session, store_id) & await principal_scope(session, principal)
        res = await session.execute(select(Store).where(Store.id.in_(visible)).order_by(Store.name))
        stores = list(res.scalars().all())
    main = next((s for s in stores if s.parent_store_id is None), None)
    return main, [s for s in stores if s.parent_store_id is not None]


async def create_store(
    session: AsyncSession,
    principal: Principal,
    name: str,
    location: Optional[str] = None,
    parent_store_id: Optional[UUID] = None,
    activity: Optional[ActivityLogger] = None,
) -> Store:
    """Create a main store or a branch of one of the manager's stores."""
    require(principal, "stores.write")
    async with transaction_scope(session):
        if parent_store_id is not None:
            await narrow_scope(session, principal, [parent_store_id])
            parent = await fetch_store(session, parent_store_id)
            if parent.parent_store_id is not None:
                raise ValidationError(
                    "Branches cannot have branches of their own",
                    code="HIERARCHY_TOO_DEEP",
                )

        store = Store(name=name, location=location, parent_store_id=parent_store_id)
        session.add(store)
        await session.flush()
        await session.refresh(store)
    logger.info("Store %s created (parent=%s) by %s", store.id, parent_store_id, principal.id)
    await log_activity(
        activity,
        action="STORE_CREATED",
        details=f"Store '{store.name}' created",
        user_id=principal.id,
        store_id=store.id,
        entity_id=store.id,
        entity_type="store",
    )
    return store
