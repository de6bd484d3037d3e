# app/models/agreement.py
import uuid
from sqlalchemy import Column, String, Text, Boolean, Integer, JSON
from app.db.base_class import Base
from app.db.types import UTCDateTime, utcnow


class Agreement(Base):
    """The bilateral contract bound to one collaboration."""

    __tablename__ = "agreements"

    id = Column(
        String, primary_key=True, default=lambda: f"agr_{uuid.uuid4().hex[:12]}"
    )
    collaboration_id = Column(String, nullable=False, unique=True, index=True)
    version = Column(Integer, nullable=False, default=1)  # contract version

    # Rendered contract and the terms it was rendered from
    agreement_text = Column(Text, nullable=False)
    deal_type = Column(String, nullable=False)
    cash_amount_minor = Column(Integer, nullable=False, default=0)
    stay_included = Column(Boolean, nullable=False, default=False)
    stay_nights = Column(Integer, nullable=True)
    deliverables = Column(JSON, nullable=False, default=list)
    traffic_bonus_threshold_clicks = Column(Integer, nullable=True)
    traffic_bonus_amount_minor = Column(Integer, nullable=True)
    content_deadline = Column(UTCDateTime, nullable=False)

    # Signatures (write-once)
    host_accepted_at = Column(UTCDateTime, nullable=True)
    creator_accepted_at = Column(UTCDateTime, nullable=True)
    is_fully_executed = Column(Boolean, nullable=False, default=False)
    executed_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    row_version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}

    @property
    def has_traffic_bonus(self) -> bool:
        return bool(self.traffic_bonus_threshold_clicks and self.traffic_bonus_amount_minor)

    def signed_at(self, role: str):
        return self.host_accepted_at if role == "host" else self.creator_accepted_at
