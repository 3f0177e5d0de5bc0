"""Personnel records referenced by asset assignments."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from armory_engine.audit.models import AuditAction, EntityType
from armory_engine.audit.service import AuditService
from armory_engine.bases.models import MilitaryBaseModel
from armory_engine.common.database import DatabaseManager
from armory_engine.common.exceptions import ConflictError, NotFoundError, ValidationError
from armory_engine.common.results import Err, Ok, Result
from armory_engine.common.security import Actor
from armory_engine.personnel.models import Role, UserModel

logger = logging.getLogger(__name__)


class PersonnelService:
    """User CRUD."""

    def __init__(self, db: DatabaseManager, audit: AuditService):
        self.db = db
        self.audit = audit

    async def create_user(
        self,
        actor: Actor,
        email: str,
        role: Role | str,
        base_id: str | None = None,
        first_name: str = "",
        last_name: str = "",
    ) -> Result[UserModel]:
        email = (email or "").strip().lower()
        if "@" not in email:
            return Err(ValidationError("A valid email is required"))
        try:
            role = Role(role).value
        except ValueError:
            return Err(ValidationError(f"Unknown role '{role}'"))

        async def _step(session: AsyncSession) -> Result[UserModel]:
            if base_id is not None and await session.get(MilitaryBaseModel, base_id) is None:
                return Err(NotFoundError(f"Base {base_id} not found"))
            if await self.get_by_email(session, email) is not None:
                return Err(ConflictError(f"User {email} already exists"))

            user = UserModel(
                email=email, role=role, base_id=base_id,
                first_name=first_name, last_name=last_name,
            )
            session.add(user)
            await session.flush()
            await self.audit.append(
                session, AuditAction.CREATE, EntityType.USER, user.id, actor.id,
                {"email": email, "role": role, "base_id": base_id},
            )
            return Ok(user)

        result = await self.db.run_in_transaction(_step, label="personnel.create")
        if result.ok:
            logger.info("User %s created with role %s", result.value.id, role)
        return result

    async def get_user(self, session: AsyncSession, user_id: str) -> UserModel | None:
        return await session.get(UserModel, user_id)

    async def get_by_email(self, session: AsyncSession, email: str) -> UserModel | None:
        result = await session.execute(
            select(UserModel).where(UserModel.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def list_users(
        self, session: AsyncSession, base_id: str | None = None,
    ) -> list[UserModel]:
        query = select(UserModel).order_by(UserModel.email)
        if base_id is not None:
            query = query.where(UserModel.base_id == base_id)
        result = await session.execute(query)
        return list(result.scalars().all())
