"""SQLAlchemy model for tracked assets."""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from armory_engine.assets.lifecycle import AssetStatus
from armory_engine.common.models import Base, TimestampMixin, generate_uuid


class AssetModel(Base, TimestampMixin):
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    serial_number: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssetStatus.AVAILABLE.value, index=True
    )
    base_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("bases.id"), nullable=False, index=True
    )
    assigned_to_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True
    )
    purchase_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("purchases.id"), nullable=True, index=True
    )

    purchase: Mapped[Optional["PurchaseModel"]] = relationship(back_populates="assets")  # noqa: F821
