"""SQLAlchemy model for the append-only audit log."""

import enum

from sqlalchemy import JSON, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from armory_engine.common.models import Base, TimestampMixin, generate_uuid


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    ASSIGN = "ASSIGN"
    EXPEND = "EXPEND"
    TRANSFER = "TRANSFER"
    TRANSFER_COMPLETE = "TRANSFER_COMPLETE"
    TRANSFER_APPROVE = "TRANSFER_APPROVE"
    TRANSFER_REJECT = "TRANSFER_REJECT"
    PURCHASE = "PURCHASE"
    PURCHASE_APPROVE = "PURCHASE_APPROVE"
    PURCHASE_REJECT = "PURCHASE_REJECT"


class EntityType(str, enum.Enum):
    ASSET = "ASSET"
    TRANSFER = "TRANSFER"
    PURCHASE = "PURCHASE"
    BASE = "BASE"
    USER = "USER"


class AuditLogEntryModel(Base, TimestampMixin):
    __tablename__ = "audit_log_entries"
    __table_args__ = (
        # A second writer on the same chain position fails instead of forking.
        UniqueConstraint(
            "entity_type", "entity_id", "sequence", name="uq_audit_chain_position"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    action: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    details: Mapped[dict] = mapped_column(JSON, default=dict)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entry_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    signature: Mapped[str] = mapped_column(String(64), nullable=False)
