"""Access control: actor identity, permission policy and FastAPI dependencies.

Authentication happens upstream. By the time a request gets here the
gateway has verified the caller and forwarded the actor in headers; this
module only checks the service key and the role/base policy.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request

from armory_engine.personnel.models import Role


@dataclass(frozen=True)
class Actor:
    """Authenticated caller on whose behalf an operation runs."""
    id: str
    role: str
    base_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


SYSTEM_ACTOR = Actor(id="system", role=Role.ADMIN.value)


# Roles allowed to invoke each operation, before the base check.
OPERATION_ROLES: dict[str, frozenset[str]] = {
    "create_asset": frozenset({"ADMIN", "LOGISTICS_OFFICER"}),
    "update_asset": frozenset({"ADMIN", "LOGISTICS_OFFICER"}),
    "assign_asset": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "expend_asset": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "view_assets": frozenset({"ADMIN", "BASE_COMMANDER", "LOGISTICS_OFFICER"}),
    "initiate_transfer": frozenset({"ADMIN", "LOGISTICS_OFFICER"}),
    "complete_transfer": frozenset({"ADMIN", "LOGISTICS_OFFICER"}),
    "approve_transfer": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "reject_transfer": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "update_transfer": frozenset({"ADMIN", "LOGISTICS_OFFICER"}),
    "view_transfers": frozenset({"ADMIN", "BASE_COMMANDER", "LOGISTICS_OFFICER"}),
    "create_purchase": frozenset({"ADMIN", "LOGISTICS_OFFICER"}),
    "approve_purchase": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "reject_purchase": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "view_purchases": frozenset({"ADMIN", "BASE_COMMANDER", "LOGISTICS_OFFICER"}),
    "purchase_summary": frozenset({"ADMIN", "BASE_COMMANDER"}),
    "manage_bases": frozenset({"ADMIN"}),
    "view_bases": frozenset({"ADMIN", "BASE_COMMANDER", "LOGISTICS_OFFICER"}),
    "manage_personnel": frozenset({"ADMIN"}),
    "view_audit": frozenset({"ADMIN"}),
}


# Operations a non-admin may run without belonging to a base.
UNSCOPED_OPERATIONS = frozenset({"view_bases"})


def has_role(actor: Actor, operation: str) -> bool:
    return actor.role in OPERATION_ROLES.get(operation, frozenset())


def can_perform(actor: Actor, operation: str, target_base_id: Optional[str]) -> bool:
    """ADMIN is always allowed; others need the role and a matching base.

    A ``None`` target base means the caller scopes the query to the actor's
    own base, so a non-admin without a base is refused unless the operation
    is in ``UNSCOPED_OPERATIONS``.
    """
    if actor.is_admin:
        return True
    if not has_role(actor, operation):
        return False
    if actor.base_id is None:
        return target_base_id is None and operation in UNSCOPED_OPERATIONS
    if target_base_id is None:
        return True
    return actor.base_id == target_base_id


def authorize(actor: Actor, operation: str, target_base_id: Optional[str] = None) -> None:
    """Raise 403 unless ``can_perform`` holds."""
    if not can_perform(actor, operation, target_base_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


async def require_api_key(
    request: Request,
    x_armory_api_key: str = Header(..., alias="X-Armory-Api-Key"),
) -> str:
    """FastAPI dependency that validates the service API key from header."""
    settings = request.app.state.engine.settings
    if x_armory_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_armory_api_key


async def require_actor(
    request: Request,
    x_armory_api_key: str = Header(..., alias="X-Armory-Api-Key"),
    x_armory_actor_id: str = Header(..., alias="X-Armory-Actor-Id"),
    x_armory_actor_role: str = Header(..., alias="X-Armory-Actor-Role"),
    x_armory_actor_base: str | None = Header(None, alias="X-Armory-Actor-Base"),
) -> Actor:
    """FastAPI dependency resolving the forwarded actor."""
    await require_api_key(request, x_armory_api_key)
    try:
        role = Role(x_armory_actor_role.upper()).value
    except ValueError:
        raise HTTPException(status_code=403, detail="Unknown actor role")
    return Actor(id=x_armory_actor_id, role=role, base_id=x_armory_actor_base)
