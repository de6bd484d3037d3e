# app/services/traffic_bonus.py
"""
Click accrual against a collaboration's affiliate link.

The counter is incremented with a single SQL UPDATE and never decreases.
The first time it reaches the agreed threshold the bonus becomes payable;
that flip is a compare-and-set on ``traffic_bonus_earned_at`` so it fires
once even when many hits cross the threshold together.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidAmount, InvalidTransition, NotFound
from app.crud import crud_collaboration, crud_transition_log
from app.db.types import utcnow
from app.models.collaboration import Collaboration
from app.schemas.collaboration import BonusStatus
from app.services.notifier import NotificationEvent, NotificationOutbox

logger = logging.getLogger(__name__)


class TrafficBonusTracker:
    def __init__(self, db: Session, outbox: NotificationOutbox):
        self.db = db
        self.outbox = outbox

    @staticmethod
    def bonus_status(collaboration: Collaboration) -> BonusStatus:
        agreement = collaboration.agreement
        if agreement is None or not agreement.has_traffic_bonus:
            return BonusStatus.DISABLED
        if collaboration.traffic_bonus_paid_at is not None:
            return BonusStatus.PAID
        if collaboration.traffic_bonus_earned_at is not None:
            return BonusStatus.PAYABLE
        return BonusStatus.ACCRUING

    def record_clicks_by_token(self, token: str, delta: int) -> Collaboration:
        collaboration = crud_collaboration.get_by_token(self.db, token)
        if not collaboration:
            raise NotFound(f"No collaboration for tracking token {token}")
        return self._record(collaboration, delta)

    def record_clicks(self, collaboration_id: str, delta: int) -> Collaboration:
        collaboration = crud_collaboration.get(self.db, collaboration_id)
        if not collaboration:
            raise NotFound(f"Collaboration {collaboration_id} not found")
        return self._record(collaboration, delta)

    def _record(self, collaboration: Collaboration, delta: int) -> Collaboration:
        if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
            raise InvalidAmount(
                "Click delta must be a non-negative integer",
                details={"current_status": collaboration.status},
            )
        if collaboration.affiliate_token is None:
            raise InvalidTransition(
                "Clicks can only be recorded once the agreement is executed",
                current_status=collaboration.status,
            )
        if delta == 0:
            return collaboration

        collaboration_id = collaboration.id
        total = crud_collaboration.increment_clicks(
            self.db, collaboration_id=collaboration_id, delta=delta
        )

        crossed = False
        agreement = collaboration.agreement
        if (
            agreement is not None
            and agreement.has_traffic_bonus
            and total >= agreement.traffic_bonus_threshold_clicks
        ):
            crossed = crud_collaboration.mark_bonus_earned(
                self.db, collaboration_id=collaboration_id, earned_at=utcnow()
            )
            if crossed:
                crud_transition_log.record(
                    self.db,
                    entity_type="collaboration",
                    entity_id=collaboration_id,
                    action="traffic-bonus-earned",
                    from_status=collaboration.status,
                    to_status=collaboration.status,
                    details={
                        "clicks": total,
                        "threshold": agreement.traffic_bonus_threshold_clicks,
                    },
                )
                self.outbox.stage(
                    NotificationEvent.TRAFFIC_BONUS_EARNED,
                    collaboration_id,
                    collaboration.creator_id,
                    collaboration.host_id,
                )

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.outbox.discard()
            raise
        self.outbox.flush()

        if crossed:
            logger.info(f"Traffic bonus earned on collaboration {collaboration_id} at {total} clicks")
        self.db.refresh(collaboration)
        return collaboration

    def payable_amount(self, collaboration: Collaboration) -> Optional[int]:
        if self.bonus_status(collaboration) != BonusStatus.PAYABLE:
            return None
        return collaboration.agreement.traffic_bonus_amount_minor
