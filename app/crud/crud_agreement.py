# app/crud/crud_agreement.py
from typing import Optional

from sqlalchemy.orm import Session

from app.models.agreement import Agreement


def get(db: Session, agreement_id: str) -> Optional[Agreement]:
    return db.get(Agreement, agreement_id)


def get_for_collaboration(db: Session, collaboration_id: str) -> Optional[Agreement]:
    return (
        db.query(Agreement)
        .filter(Agreement.collaboration_id == collaboration_id)
        .first()
    )
