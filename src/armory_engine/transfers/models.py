"""SQLAlchemy model for inter-base transfers."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from armory_engine.common.models import Base, TimestampMixin, generate_uuid


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class TransferModel(Base, TimestampMixin):
    __tablename__ = "transfers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    source_base_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("bases.id"), nullable=False, index=True
    )
    dest_base_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("bases.id"), nullable=False, index=True
    )
    transfer_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransferStatus.PENDING.value, index=True
    )
    notes: Mapped[str] = mapped_column(Text, default="")
