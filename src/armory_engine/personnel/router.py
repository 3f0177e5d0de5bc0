"""Personnel API router (admin only)."""

from fastapi import APIRouter, Depends, HTTPException, Query

from armory_engine.common.security import Actor, authorize, require_actor
from armory_engine.deps import get_engine
from armory_engine.engine import ArmoryEngine
from armory_engine.personnel.schemas import UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["personnel"])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreate,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "manage_personnel")
    result = await engine.personnel.create_user(
        actor, body.email, body.role, base_id=body.base_id,
        first_name=body.first_name, last_name=body.last_name,
    )
    return UserResponse.model_validate(result.unwrap())


@router.get("", response_model=list[UserResponse])
async def list_users(
    base_id: str | None = Query(None),
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "manage_personnel")
    async with engine.db.get_session() as session:
        users = await engine.personnel.list_users(session, base_id=base_id)
        return [UserResponse.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    actor: Actor = Depends(require_actor),
    engine: ArmoryEngine = Depends(get_engine),
):
    authorize(actor, "manage_personnel")
    async with engine.db.get_session() as session:
        user = await engine.personnel.get_user(session, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return UserResponse.model_validate(user)
