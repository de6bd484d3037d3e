# app/crud/crud_transition_log.py
"""CRUD helpers for the append-only transition log."""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.transition_log import TransitionLog


def record(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    action: str,
    from_status: Optional[str],
    to_status: Optional[str],
    actor_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> TransitionLog:
    """
    Stage a log row in the caller's transaction. Does NOT commit;
    it lands together with the transition it records.
    """
    entry = TransitionLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        details=details,
    )
    db.add(entry)
    return entry


def list_for_entity(
    db: Session, *, entity_type: str, entity_id: str
) -> List[TransitionLog]:
    return (
        db.query(TransitionLog)
        .filter(
            TransitionLog.entity_type == entity_type,
            TransitionLog.entity_id == entity_id,
        )
        .order_by(TransitionLog.id.asc())
        .all()
    )
