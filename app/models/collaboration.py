# app/models/collaboration.py
import uuid
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, JSON, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.db.types import UTCDateTime, utcnow


class Collaboration(Base):
    """The working engagement spawned by an accepted offer."""

    __tablename__ = "collaborations"

    id = Column(
        String, primary_key=True, default=lambda: f"col_{uuid.uuid4().hex[:12]}"
    )
    offer_id = Column(String, ForeignKey("offers.id"), nullable=False, unique=True)
    agreement_id = Column(String, ForeignKey("agreements.id"), nullable=True, unique=True)
    host_id = Column(String, nullable=False, index=True)
    creator_id = Column(String, nullable=False, index=True)
    property_id = Column(String, nullable=False, index=True)

    status = Column(String, nullable=False, default="pending-agreement", index=True)
    # Set on pending-agreement when the agreement is executed but the
    # post-for-stay platform fee has not been collected yet.
    fee_pending = Column(Boolean, nullable=False, default=False)
    activated_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    # Payment
    payment_status = Column(String, nullable=False, default="unpaid")
    payment_amount_minor = Column(Integer, nullable=True)
    paid_at = Column(UTCDateTime, nullable=True)
    platform_fee_status = Column(String, nullable=False, default="not-required")
    platform_fee_paid_at = Column(UTCDateTime, nullable=True)

    # Content
    content_links = Column(JSON, nullable=False, default=list)
    content_submitted_at = Column(UTCDateTime, nullable=True)
    content_approved_at = Column(UTCDateTime, nullable=True)
    change_request_feedback = Column(Text, nullable=True)

    # Traffic
    clicks_generated = Column(Integer, nullable=False, default=0)
    affiliate_token = Column(String, nullable=True, unique=True)
    traffic_bonus_earned_at = Column(UTCDateTime, nullable=True)
    traffic_bonus_paid_at = Column(UTCDateTime, nullable=True)

    # Content deadline reminders, each stage sent once
    deadline_3day_warned_at = Column(UTCDateTime, nullable=True)
    deadline_1day_warned_at = Column(UTCDateTime, nullable=True)
    deadline_day_of_warned_at = Column(UTCDateTime, nullable=True)
    deadline_passed_notified_at = Column(UTCDateTime, nullable=True)

    # Cancellation (retained for audit after a decline)
    cancellation_requested_by = Column(String, nullable=True)
    cancellation_requested_by_role = Column(String, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_requested_at = Column(UTCDateTime, nullable=True)
    status_before_cancellation = Column(String, nullable=True)
    cancellation_declined_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    row_version = Column(Integer, nullable=False)

    offer = relationship("Offer", lazy="joined")
    agreement = relationship("Agreement", lazy="joined")

    __mapper_args__ = {"version_id_col": row_version}

    __table_args__ = (
        CheckConstraint("clicks_generated >= 0", name="ck_collaborations_clicks_non_negative"),
    )

    def party_role(self, actor_id: str):
        """Return 'host', 'creator' or None for the given party id."""
        if actor_id == self.host_id:
            return "host"
        if actor_id == self.creator_id:
            return "creator"
        return None
