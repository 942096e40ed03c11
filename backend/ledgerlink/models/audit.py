"""Append-only audit trail model."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from ledgerlink.db.base import Base, utcnow


class ActionType(IntEnum):
    """Stable action codes; downstream reports key on these numbers."""

    LOGIN = 1
    LOGOUT = 2
    CREATE = 3
    UPDATE = 4
    DELETE = 5
    GENERATE = 6
    EXCEPTION = 1007


class AuditLevel(IntEnum):
    APPLICATION = 1
    ORGANIZATION = 2


class AuditEntry(Base):
    """One recorded mutation. Never edited or deleted once written."""

    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action_type_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    audit_level_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


@event.listens_for(AuditEntry, "before_update")
@event.listens_for(AuditEntry, "before_delete")
def _reject_audit_mutation(mapper, connection, target):
    raise PermissionError(f"Audit entry {target.id} is append-only")
