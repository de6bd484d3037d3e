# app/crud/crud_collaboration.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.models.agreement import Agreement
from app.models.collaboration import Collaboration


def get(db: Session, collaboration_id: str) -> Optional[Collaboration]:
    return db.get(Collaboration, collaboration_id)


def get_by_token(db: Session, token: str) -> Optional[Collaboration]:
    return (
        db.query(Collaboration)
        .filter(Collaboration.affiliate_token == token)
        .first()
    )


def get_by_offer(db: Session, offer_id: str) -> Optional[Collaboration]:
    return db.query(Collaboration).filter(Collaboration.offer_id == offer_id).first()


def list_for_party(
    db: Session, *, party_id: str, status: Optional[str] = None
) -> List[Collaboration]:
    query = db.query(Collaboration).filter(
        or_(Collaboration.host_id == party_id, Collaboration.creator_id == party_id)
    )
    if status:
        query = query.filter(Collaboration.status == status)
    return query.order_by(Collaboration.created_at.desc()).all()


def increment_clicks(db: Session, *, collaboration_id: str, delta: int) -> int:
    """
    Atomically add ``delta`` to clicks_generated and return the new total.

    Runs as a single UPDATE so concurrent hits never lose increments.
    row_version is left alone: click counts do not race status transitions.
    Does NOT commit.
    """
    db.execute(
        update(Collaboration)
        .where(Collaboration.id == collaboration_id)
        .values(clicks_generated=Collaboration.clicks_generated + delta)
        .execution_options(synchronize_session=False)
    )
    return db.query(Collaboration.clicks_generated).filter(
        Collaboration.id == collaboration_id
    ).scalar()


def mark_bonus_earned(db: Session, *, collaboration_id: str, earned_at) -> bool:
    """
    Compare-and-set traffic_bonus_earned_at. True only for the caller that
    flipped it from NULL. Does NOT commit.
    """
    result = db.execute(
        update(Collaboration)
        .where(
            Collaboration.id == collaboration_id,
            Collaboration.traffic_bonus_earned_at.is_(None),
        )
        .values(traffic_bonus_earned_at=earned_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# Flag column set when each content deadline reminder goes out
DEADLINE_STAGE_COLUMNS = {
    "3-day": Collaboration.deadline_3day_warned_at,
    "1-day": Collaboration.deadline_1day_warned_at,
    "day-of": Collaboration.deadline_day_of_warned_at,
    "passed": Collaboration.deadline_passed_notified_at,
}


def list_awaiting_content(db: Session, *, deadline_before: datetime) -> List[Collaboration]:
    """Active collaborations with no content yet whose deadline falls before ``deadline_before``."""
    return (
        db.query(Collaboration)
        .join(Agreement, Agreement.id == Collaboration.agreement_id)
        .filter(
            Collaboration.status == "active",
            Collaboration.content_submitted_at.is_(None),
            Agreement.content_deadline < deadline_before,
        )
        .order_by(Agreement.content_deadline.asc())
        .all()
    )


def mark_deadline_stage(db: Session, *, collaboration_id: str, stage: str, at: datetime) -> bool:
    """
    Compare-and-set the reminder flag for ``stage`` so each stage is sent once.
    row_version is left alone. Does NOT commit.
    """
    column = DEADLINE_STAGE_COLUMNS[stage]
    result = db.execute(
        update(Collaboration)
        .where(Collaboration.id == collaboration_id, column.is_(None))
        .values({column.key: at})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
