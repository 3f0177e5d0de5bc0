"""SQLAlchemy model for procurement records."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from armory_engine.assets.models import AssetModel
from armory_engine.common.models import Base, TimestampMixin, generate_uuid


class PurchaseStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PurchaseModel(Base, TimestampMixin):
    __tablename__ = "purchases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    base_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("bases.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PurchaseStatus.PENDING.value, index=True
    )

    assets: Mapped[list[AssetModel]] = relationship(
        back_populates="purchase",
        order_by=(AssetModel.created_at, AssetModel.serial_number),
    )
