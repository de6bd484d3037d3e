# app/models/offer.py
import uuid
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, JSON, CheckConstraint, Index
)
from app.db.base_class import Base
from app.db.types import UTCDateTime, utcnow
from app.schemas.offer import OPEN_OFFER_STATUSES


class Offer(Base):
    """A host's proposal to one creator for one property."""

    __tablename__ = "offers"

    id = Column(
        String, primary_key=True, default=lambda: f"ofr_{uuid.uuid4().hex[:12]}"
    )
    host_id = Column(String, nullable=False, index=True)
    creator_id = Column(String, nullable=False, index=True)
    property_id = Column(String, nullable=False, index=True)

    # Terms
    offer_type = Column(String, nullable=False)  # flat, flat-with-bonus, post-for-stay
    cash_amount_minor = Column(Integer, nullable=False, default=0)
    stay_nights = Column(Integer, nullable=True)  # post-for-stay only
    traffic_bonus_enabled = Column(Boolean, nullable=False, default=False)
    traffic_bonus_threshold_clicks = Column(Integer, nullable=True)
    traffic_bonus_amount_minor = Column(Integer, nullable=True)
    deliverables = Column(JSON, nullable=False, default=list)
    message = Column(Text, nullable=True)
    content_deadline_days = Column(Integer, nullable=False, default=30)

    # Negotiation (only set while status = countered)
    counter_cash_amount_minor = Column(Integer, nullable=True)
    counter_message = Column(Text, nullable=True)
    negotiation_round = Column(Integer, nullable=False, default=1)

    # Lifecycle
    status = Column(String, nullable=False, default="pending", index=True)
    expires_at = Column(UTCDateTime, nullable=False)
    responded_at = Column(UTCDateTime, nullable=True)
    viewed_at = Column(UTCDateTime, nullable=True)
    expiry_warning_sent_at = Column(UTCDateTime, nullable=True)
    resent_from_id = Column(String, nullable=True)

    # Terms as first proposed, kept for audit
    terms_snapshot = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Optimistic concurrency
    row_version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}

    __table_args__ = (
        CheckConstraint("cash_amount_minor >= 0", name="ck_offers_cash_non_negative"),
        CheckConstraint(
            "(status = 'countered') = (counter_cash_amount_minor IS NOT NULL)",
            name="ck_offers_counter_iff_countered",
        ),
        Index("idx_offers_open_expiry", "status", "expires_at"),
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_OFFER_STATUSES

    def terms(self) -> dict:
        """The negotiable terms, in the shape accepted by ``OfferTerms``."""
        return {
            "offer_type": self.offer_type,
            "cash_amount_minor": self.cash_amount_minor,
            "stay_nights": self.stay_nights,
            "traffic_bonus_enabled": self.traffic_bonus_enabled,
            "traffic_bonus_threshold_clicks": self.traffic_bonus_threshold_clicks,
            "traffic_bonus_amount_minor": self.traffic_bonus_amount_minor,
            "deliverables": list(self.deliverables or []),
            "message": self.message,
            "content_deadline_days": self.content_deadline_days,
        }
