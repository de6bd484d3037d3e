# app/crud/crud_offer.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.offer import Offer
from app.schemas.offer import OPEN_OFFER_STATUSES


def get(db: Session, offer_id: str) -> Optional[Offer]:
    return db.get(Offer, offer_id)


def list_for_host(
    db: Session, *, host_id: str, status: Optional[str] = None
) -> List[Offer]:
    query = db.query(Offer).filter(Offer.host_id == host_id)
    if status:
        query = query.filter(Offer.status == status)
    return query.order_by(Offer.created_at.desc()).all()


def list_for_creator(
    db: Session, *, creator_id: str, status: Optional[str] = None
) -> List[Offer]:
    query = db.query(Offer).filter(Offer.creator_id == creator_id)
    if status:
        query = query.filter(Offer.status == status)
    return query.order_by(Offer.created_at.desc()).all()


def list_expired_open(db: Session, *, now: datetime) -> List[Offer]:
    """Open offers whose expiry has passed."""
    return (
        db.query(Offer)
        .filter(Offer.status.in_(OPEN_OFFER_STATUSES), Offer.expires_at <= now)
        .order_by(Offer.expires_at.asc())
        .all()
    )


def list_expiring_unwarned(
    db: Session, *, now: datetime, until: datetime
) -> List[Offer]:
    """Open offers expiring in (now, until] that have not been warned yet."""
    return (
        db.query(Offer)
        .filter(
            Offer.status.in_(OPEN_OFFER_STATUSES),
            Offer.expires_at > now,
            Offer.expires_at <= until,
            Offer.expiry_warning_sent_at.is_(None),
        )
        .all()
    )


def mark_viewed(db: Session, *, offer_id: str, viewed_at: datetime) -> bool:
    """Set viewed_at once. Advisory, so row_version is left alone. Does NOT commit."""
    result = db.execute(
        update(Offer)
        .where(Offer.id == offer_id, Offer.viewed_at.is_(None))
        .values(viewed_at=viewed_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def mark_expiry_warned(db: Session, *, offer_id: str, warned_at: datetime) -> bool:
    """Compare-and-set expiry_warning_sent_at so each offer is warned once. Does NOT commit."""
    result = db.execute(
        update(Offer)
        .where(Offer.id == offer_id, Offer.expiry_warning_sent_at.is_(None))
        .values(expiry_warning_sent_at=warned_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
