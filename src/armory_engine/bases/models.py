"""SQLAlchemy model for military bases."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from armory_engine.common.models import Base, TimestampMixin, generate_uuid


class MilitaryBaseModel(Base, TimestampMixin):
    __tablename__ = "bases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
