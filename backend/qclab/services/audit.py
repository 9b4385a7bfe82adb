"""Audit logging service.

Records every mutation with old/new value diffs and the acting user.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.exceptions import ValidationFailed
from qclab.models.enums import AuditAction
from qclab.models.user import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Service for creating structured audit log entries."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def log(
        self,
        *,
        user_id: uuid.UUID | None,
        action: AuditAction,
        entity_type: str,
        entity_id: uuid.UUID | None = None,
        old_values: dict | None = None,
        new_values: dict | None = None,
    ) -> AuditLog:
        """Add an audit log entry to the current transaction.

        Args:
            user_id: The user who performed the action (None for system actions).
            action: CREATE, UPDATE or DELETE.
            entity_type: The type of entity affected (e.g. "lab_shelf", "sample").
            entity_id: The UUID of the affected entity.
            old_values: Previous values before mutation (for UPDATE/DELETE).
            new_values: New values after mutation (for CREATE/UPDATE).
        """
        entry = AuditLog(
            id=uuid.uuid4(),
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
        )
        self.db.add(entry)

        logger.info(
            "AUDIT: user=%s action=%s entity=%s/%s",
            user_id,
            action.value,
            entity_type,
            entity_id,
        )
        return entry


def apply_changes(obj: object, changes: dict) -> tuple[dict, dict]:
    """Set ``changes`` on ``obj``; return (old, new) for fields that changed.

    An explicit ``None`` for a NOT NULL column is rejected before anything
    is written.
    """
    columns = obj.__table__.columns
    for field, value in changes.items():
        if value is None and field in columns and not columns[field].nullable:
            raise ValidationFailed(
                f"Field '{field}' cannot be null", details={"field": field}
            )

    old_values: dict = {}
    new_values: dict = {}
    for field, value in changes.items():
        current = getattr(obj, field)
        if value != current:
            old_values[field] = str(current) if current is not None else None
            setattr(obj, field, value)
            new_values[field] = str(value) if value is not None else None
    return old_values, new_values
