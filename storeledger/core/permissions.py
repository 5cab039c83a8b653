"""Role policy: who may run which operation and touch which field.

Evaluated once per request from the tables below; handlers never strip
fields from payloads on their own.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping
from uuid import UUID

from storeledger.core.enums import Role
from storeledger.core.exceptions import PermissionDeniedError


@dataclass(frozen=True)
class Principal:
    id: UUID
    role: Role
    store_id: UUID


ALL_ROLES: FrozenSet[Role] = frozenset(Role)
STAFF: FrozenSet[Role] = frozenset({Role.MANAGER, Role.ADMIN, Role.USER})
SUPERVISORS: FrozenSet[Role] = frozenset({Role.MANAGER, Role.ADMIN})

OPERATION_POLICY: Dict[str, FrozenSet[Role]] = {
    "inventory.read": ALL_ROLES,
    "inventory.adjust": STAFF,
    "inventory.setup": SUPERVISORS,
    "catalog.read": ALL_ROLES,
    "catalog.write": SUPERVISORS,
    "orders.read": ALL_ROLES,
    "orders.create": STAFF,
    "stores.read": ALL_ROLES,
    "stores.write": frozenset({Role.MANAGER}),
}

# (field) -> roles allowed to change it on an item
ITEM_UPDATE_POLICY: Dict[str, FrozenSet[Role]] = {
    "name": SUPERVISORS,
    "description": SUPERVISORS,
    "unit_id": frozenset({Role.MANAGER}),
    "price": SUPERVISORS,
    "is_active": SUPERVISORS,
}

# (field) -> roles allowed to see it on item and stock responses
READ_POLICY: Dict[str, FrozenSet[Role]] = {
    "price": SUPERVISORS,
}


def require(principal: Principal, operation: str) -> None:
    allowed = OPERATION_POLICY.get(operation)
    if allowed is None:
        raise KeyError(f"Unknown operation: {operation}")
    if principal.role not in allowed:
        raise PermissionDeniedError(
            f"Role '{principal.role.value}' may not perform {operation}",
            code="OPERATION_DENIED",
        )


def permitted_update(role: Role, payload: Mapping[str, object], policy: Mapping[str, Iterable[Role]] = ITEM_UPDATE_POLICY) -> dict:
    """Return the payload if every field in it is writable by `role`, else raise."""
    denied = sorted(f for f in payload if role not in policy.get(f, ()))
    if denied:
        raise PermissionDeniedError(
            f"Role '{role.value}' may not update: {', '.join(denied)}",
            code="FIELD_DENIED",
            details={"fields": denied},
        )
    return dict(payload)


def visible_fields(role: Role) -> FrozenSet[str]:
    """Policy-controlled response fields `role` may read."""
    return frozenset(f for f, allowed in READ_POLICY.items() if role in allowed)
