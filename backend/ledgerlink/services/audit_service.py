"""Diff-based audit trail recorded inside the mutating unit of work.

The recorder is attached to a session factory with ``install_audit_hook``.
After every flush it looks at the session's pending mutation set (new, dirty
and deleted instances together with their attribute history), builds one
``AuditEntry`` per effective mutation and adds the entries to the same
session. ``Session.commit()`` keeps flushing until the session is clean, so
the entries are written in the same transaction as the rows they describe:
both commit or both roll back.

Enablement is per unit of work. ``get_db`` attaches an ``AuditContext`` to
``session.info``; a session without a context, or with ``enabled=False``, is
not audited.

Usage::

    AuditContext(enabled=True, level=2, actor_id=user.id).attach(db)
    item.quantity = Decimal("7")
    db.commit()  # writes the UPDATE and its audit entry together
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Iterable, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, sessionmaker

from ledgerlink.db.base import utcnow
from ledgerlink.models.audit import ActionType, AuditEntry

logger = logging.getLogger("audit")


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


ACTION_TYPE_BY_KIND = {
    MutationKind.CREATE: ActionType.CREATE,
    MutationKind.UPDATE: ActionType.UPDATE,
    MutationKind.DELETE: ActionType.DELETE,
}


@dataclass(frozen=True)
class PendingMutation:
    """One staged change of a mapped instance."""

    kind: MutationKind
    entity: Any

    @property
    def entity_type(self) -> str:
        return type(self.entity).__name__


@dataclass
class AuditContext:
    """Audit switches and actor for a single unit of work."""

    SESSION_KEY: ClassVar[str] = "audit_context"

    enabled: bool = True
    level: Optional[int] = None
    actor_id: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> "AuditContext":
        return cls(enabled=settings.audit_enabled, level=settings.audit_default_level)

    @classmethod
    def of(cls, session: Session) -> Optional["AuditContext"]:
        return session.info.get(cls.SESSION_KEY)

    def attach(self, session: Session) -> "AuditContext":
        session.info[self.SESSION_KEY] = self
        return self


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<{len(value)} bytes>"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_snapshot(values: Optional[dict[str, Any]]) -> Optional[str]:
    """Serialize a field -> value map to a JSON object string."""
    if values is None:
        return None
    return json.dumps(values, default=_json_default, sort_keys=True)


def snapshot(entity: Any) -> dict[str, Any]:
    """All loaded column values of an instance, keyed by attribute name.

    Reads the instance dict directly so that expired attributes are never
    refreshed from inside a flush.
    """
    state = inspect(entity)
    return {
        attr.key: state.dict[attr.key]
        for attr in state.mapper.column_attrs
        if attr.key in state.dict
    }


def changed_fields(entity: Any) -> tuple[dict[str, Any], dict[str, Any]]:
    """Parallel (old, new) maps holding only the columns whose value changed."""
    state = inspect(entity)
    old_values: dict[str, Any] = {}
    new_values: dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if not history.has_changes():
            continue
        old = history.deleted[0] if history.deleted else None
        new = history.added[0] if history.added else None
        if old == new:
            continue
        old_values[attr.key] = old
        new_values[attr.key] = new
    return old_values, new_values


def _entity_id(entity: Any) -> Optional[str]:
    state = inspect(entity)
    if state.identity:
        return ",".join(str(part) for part in state.identity)
    values = [state.dict.get(state.mapper.get_property_by_column(col).key) for col in state.mapper.primary_key]
    if any(v is None for v in values):
        return None
    return ",".join(str(v) for v in values)


class AuditRecorder:
    """Turns a pending mutation set into audit entries."""

    def __init__(self, context: Optional[AuditContext] = None):
        self.context = context or AuditContext()

    def capture(
        self,
        mutations: Iterable[PendingMutation],
        actor_id: Optional[int] = None,
        audit_level: Optional[int] = None,
    ) -> list[AuditEntry]:
        """Build audit entries for ``mutations``; performs no I/O.

        ``actor_id`` and ``audit_level`` default to the context's values.
        AuditEntry mutations are never audited, and updates that change no
        column produce nothing.
        """
        if not self.context.enabled:
            return []

        actor = actor_id if actor_id is not None else self.context.actor_id
        level = audit_level if audit_level is not None else self.context.level
        entries = []

        for mutation in mutations:
            if isinstance(mutation.entity, AuditEntry):
                continue

            if mutation.kind is MutationKind.CREATE:
                old_values, new_values = None, snapshot(mutation.entity)
            elif mutation.kind is MutationKind.DELETE:
                old_values, new_values = snapshot(mutation.entity), None
            else:
                old_values, new_values = changed_fields(mutation.entity)
                if not new_values and not old_values:
                    continue

            entity_id = _entity_id(mutation.entity)
            entries.append(
                AuditEntry(
                    timestamp=utcnow(),
                    user_id=actor,
                    action_type_id=int(ACTION_TYPE_BY_KIND[mutation.kind]),
                    audit_level_id=level,
                    entity_type=mutation.entity_type,
                    entity_id=entity_id,
                    old_value=serialize_snapshot(old_values),
                    new_value=serialize_snapshot(new_values),
                    details=f"{mutation.kind.value.title()} {mutation.entity_type} #{entity_id}",
                )
            )

        return entries


def collect_pending_mutations(session: Session, flush_context=None) -> list[PendingMutation]:
    """The session's staged creates, updates and deletes, in that order.

    With a ``flush_context``, rows deleted by delete-orphan cascades count as
    deletes as well.
    """
    deleted = list(session.deleted)
    if flush_context is not None:
        seen = set(deleted)
        for state, (isdelete, listonly) in flush_context.states.items():
            obj = state.obj()
            if isdelete and not listonly and obj is not None and obj not in seen:
                deleted.append(obj)
                seen.add(obj)

    mutations = [PendingMutation(MutationKind.CREATE, obj) for obj in session.new]
    mutations.extend(
        PendingMutation(MutationKind.UPDATE, obj)
        for obj in session.dirty
        if obj not in deleted
    )
    mutations.extend(PendingMutation(MutationKind.DELETE, obj) for obj in deleted)
    return mutations


def _after_flush(session: Session, flush_context) -> None:
    context = AuditContext.of(session)
    if context is None or not context.enabled:
        return

    entries = AuditRecorder(context).capture(collect_pending_mutations(session, flush_context))
    if entries:
        session.add_all(entries)
        logger.debug(f"Staged {len(entries)} audit entries (actor={context.actor_id})")


def install_audit_hook(session_factory: sessionmaker) -> sessionmaker:
    """Audit every session produced by ``session_factory``."""
    if not event.contains(session_factory, "after_flush", _after_flush):
        event.listen(session_factory, "after_flush", _after_flush)
    return session_factory
