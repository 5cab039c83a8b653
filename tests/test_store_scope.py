import uuid

import pytest

from storeledger.core.enums import Role
from storeledger.core.exceptions import NotFoundError, PermissionDeniedError, ScopeForbiddenError, ValidationError
from storeledger.services import store_scope


async def test_manager_scope_includes_branches(session, world):
    scope = await store_scope.resolve_scope(session, Role.MANAGER, world.main.id)
    assert scope == {world.main.id, world.branch.id}


async def test_non_manager_scope_is_home_only(session, world):
    for role in (Role.ADMIN, Role.USER, Role.GUEST):
        assert await store_scope.resolve_scope(session, role, world.main.id) == {world.main.id}


async def test_manager_of_branch_sees_only_branch(session, world):
    scope = await store_scope.resolve_scope(session, Role.MANAGER, world.branch.id)
    assert scope == {world.branch.id}


async def test_hierarchy_from_branch_climbs_to_main(session, world):
    expected = {world.main.id, world.branch.id}
    assert await store_scope.resolve_hierarchy(session, world.branch.id) == expected
    assert await store_scope.resolve_hierarchy(session, world.main.id) == expected
    assert await store_scope.resolve_hierarchy(session, world.other.id) == {world.other.id}


async def test_hierarchy_unknown_store(session, world):
    with pytest.raises(NotFoundError):
        await store_scope.resolve_hierarchy(session, uuid.uuid4())


async def test_narrow_to_subset(session, world):
    assert await store_scope.narrow_scope(session, world.as_manager, [world.branch.id]) == {world.branch.id}
    assert await store_scope.narrow_scope(session, world.as_manager, None) == {world.main.id, world.branch.id}


async def test_narrow_outside_scope_is_forbidden(session, world):
    with pytest.raises(ScopeForbiddenError):
        await store_scope.narrow_scope(session, world.as_manager, [world.branch.id, world.other.id])

    # unknown ids are out of scope too, not "not found"
    with pytest.raises(ScopeForbiddenError):
        await store_scope.narrow_scope(session, world.as_manager, [uuid.uuid4()])


async def test_non_manager_cannot_reach_parent(session, world):
    assert await store_scope.authorize_store(session, world.as_staff) == world.branch.id
    with pytest.raises(ScopeForbiddenError):
        await store_scope.authorize_store(session, world.as_staff, world.main.id)


async def test_create_branch(session, world):
    store = await store_scope.create_store(session, world.as_manager, "Second Branch", parent_store_id=world.main.id)
    assert store.parent_store_id == world.main.id
    scope = await store_scope.resolve_scope(session, Role.MANAGER, world.main.id)
    assert store.id in scope


async def test_branch_of_branch_rejected(session, world):
    with pytest.raises(ValidationError) as exc:
        await store_scope.create_store(session, world.as_manager, "Too deep", parent_store_id=world.branch.id)
    assert exc.value.code == "HIERARCHY_TOO_DEEP"


async def test_only_managers_create_stores(session, world):
    with pytest.raises(PermissionDeniedError):
        await store_scope.create_store(session, world.as_admin, "Kiosk")


async def test_list_stores_in_scope(session, world):
    stores = await store_scope.list_stores(session, world.as_manager)
    assert {s.id for s in stores} == {world.main.id, world.branch.id}


async def test_store_hierarchy_for_manager(session, world):
    main, branches = await store_scope.store_hierarchy(session, world.as_manager, world.branch.id)
    assert main.id == world.main.id
    assert [b.id for b in branches] == [world.branch.id]


async def test_store_hierarchy_hides_stores_outside_scope(session, world):
    main, branches = await store_scope.store_hierarchy(session, world.as_staff, world.branch.id)
    assert main is None
    assert [b.id for b in branches] == [world.branch.id]

    with pytest.raises(ScopeForbiddenError):
        await store_scope.store_hierarchy(session, world.as_staff, world.main.id)
