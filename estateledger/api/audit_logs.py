from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..schemas.schemas import AuditLogRead
from ..services.audit import recent_entries

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("/", response_model=List[AuditLogRead])
def list_audit_logs(
    target_entity_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> List[AuditLogRead]:
    return [AuditLogRead.model_validate(entry) for entry in recent_entries(db, target_entity_type, limit)]
