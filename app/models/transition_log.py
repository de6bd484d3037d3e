# app/models/transition_log.py
"""
Append-only trail of committed transitions.

Covers offers, agreements and collaborations. Each negotiation round
(counter, re-counter) gets its own row with the amounts involved, so the
offer row can be updated in place without losing history.
"""
from sqlalchemy import Column, String, Integer, JSON, Index
from app.db.base_class import Base
from app.db.types import UTCDateTime, utcnow


class TransitionLog(Base):
    __tablename__ = "transition_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(32), nullable=False)  # offer, agreement, collaboration
    entity_id = Column(String, nullable=False)
    action = Column(String(50), nullable=False, index=True)
    from_status = Column(String(50), nullable=True)
    to_status = Column(String(50), nullable=True)
    actor_id = Column(String, nullable=True)  # null for system actions
    details = Column(JSON, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_transition_logs_entity", "entity_type", "entity_id", "id"),
    )
