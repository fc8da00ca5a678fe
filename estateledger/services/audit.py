import json
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..models.models import AuditLog, utcnow


def _serialize(data: Any) -> Optional[str]:
    if data is None:
        return None
    try:
        return json.dumps(data, default=str)
    except TypeError:
        return str(data)


def audit_log(
    db_session: Session,
    actor: Optional[str],
    action: str,
    target_entity_type: Optional[str] = None,
    target_entity_id: Optional[str] = None,
    before: Any = None,
    after: Any = None,
) -> AuditLog:
    """Stage an audit entry in the caller's transaction; the request commits it."""
    entry = AuditLog(
        timestamp=utcnow(),
        actor=actor,
        action=action,
        target_entity_type=target_entity_type,
        target_entity_id=None if target_entity_id is None else str(target_entity_id),
        before=_serialize(before),
        after=_serialize(after),
    )
    db_session.add(entry)
    db_session.flush()
    return entry


def recent_entries(db_session: Session, target_entity_type: Optional[str] = None, limit: int = 100) -> List[AuditLog]:
    query = db_session.query(AuditLog)
    if target_entity_type:
        query = query.filter(AuditLog.target_entity_type == target_entity_type)
    return query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
