"""SQLAlchemy model for personnel referenced by assignments and actors."""

import enum

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from armory_engine.common.models import Base, TimestampMixin, generate_uuid


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    BASE_COMMANDER = "BASE_COMMANDER"
    LOGISTICS_OFFICER = "LOGISTICS_OFFICER"


class UserModel(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    base_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("bases.id"), nullable=True, index=True
    )
