"""Audit trail of business mutations."""

import logging

from fastapi.encoders import jsonable_encoder
from sqlmodel import Session

from models.audit import AuditLog
from models.enums import AuditAction

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    organization_id: str,
    action: AuditAction,
    entity_type: str,
    entity_id: str,
    user_id: str | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog:
    """Add an audit row to the current transaction; the caller commits."""
    entry = AuditLog(
        organization_id=organization_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=jsonable_encoder(old_values) if old_values is not None else None,
        new_values=jsonable_encoder(new_values) if new_values is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    logger.info("%s %s %s", action.value, entity_type, entity_id)
    return entry
