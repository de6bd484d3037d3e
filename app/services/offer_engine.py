# app/services/offer_engine.py
"""
Offer engine: proposal, negotiation and the terminal responses.

    pending --creator counter--> countered --host re-counter--> pending
    pending --creator accept/decline--> accepted / declined
    countered --host accept/decline--> accepted / declined
    pending|countered --host withdraw--> withdrawn
    pending|countered --expiry--> expired

Terminal offers are never mutated again; resend creates a new record.
Every negotiation round is written to the transition log with its amounts.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConcurrentModification,
    Forbidden,
    InvalidAmount,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from app.crud import crud_offer, crud_transition_log
from app.crud.base import commit_versioned
from app.db.types import utcnow
from app.models.offer import Offer
from app.models.transition_log import TransitionLog
from app.schemas.offer import (
    RESENDABLE_OFFER_STATUSES,
    VALID_OFFER_TRANSITIONS,
    OfferAction,
    OfferStatus,
    OfferTerms,
    OfferType,
)
from app.services.collaboration_engine import CollaborationService
from app.services.notifier import NotificationEvent, Notifier
from app.services.offer_validation import validate_terms

logger = logging.getLogger(__name__)

# Who may respond in each open status
RESPONDER_ROLE = {
    OfferStatus.PENDING.value: "creator",
    OfferStatus.COUNTERED.value: "host",
}


class OfferService:
    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        collaborations: Optional[CollaborationService] = None,
    ):
        self.db = db
        self.collaborations = collaborations or CollaborationService(db, notifier=notifier)
        # Share one outbox so an acceptance sends offer and collaboration events together
        self.outbox = self.collaborations.outbox

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, offer_id: str) -> Offer:
        offer = crud_offer.get(self.db, offer_id)
        if not offer:
            raise NotFound(f"Offer {offer_id} not found")
        return offer

    def get_for_party(self, offer_id: str, party_id: str) -> Offer:
        offer = self.get(offer_id)
        if party_id not in (offer.host_id, offer.creator_id):
            raise Forbidden("Not a party to this offer")
        return offer

    def list_for_host(self, host_id: str, status: Optional[str] = None) -> List[Offer]:
        return crud_offer.list_for_host(self.db, host_id=host_id, status=status)

    def list_for_creator(self, creator_id: str, status: Optional[str] = None) -> List[Offer]:
        return crud_offer.list_for_creator(self.db, creator_id=creator_id, status=status)

    def history(self, offer_id: str) -> List[TransitionLog]:
        self.get(offer_id)
        return crud_transition_log.list_for_entity(self.db, entity_type="offer", entity_id=offer_id)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _transition(
        self,
        offer: Offer,
        to_status: OfferStatus,
        action: str,
        actor_id: Optional[str],
        details: Optional[dict] = None,
    ) -> None:
        from_status = offer.status
        if to_status.value not in VALID_OFFER_TRANSITIONS.get(from_status, set()):
            raise InvalidTransition(
                f"Offer cannot move from {from_status} to {to_status.value}",
                current_status=from_status,
            )
        offer.status = to_status.value
        if to_status != OfferStatus.COUNTERED:
            offer.counter_cash_amount_minor = None
            offer.counter_message = None
        crud_transition_log.record(
            self.db,
            entity_type="offer",
            entity_id=offer.id,
            action=action,
            from_status=from_status,
            to_status=offer.status,
            actor_id=actor_id,
            details=details,
        )

    def _commit(self, offer_id: str) -> None:
        try:
            commit_versioned(self.db, entity="offer", entity_id=offer_id)
        except Exception:
            self.outbox.discard()
            raise
        self.outbox.flush()

    def _expire_if_due(self, offer: Offer, now: datetime) -> None:
        """Commit the expiry of an open offer that outlived expires_at, then reject the call."""
        if offer.is_open and offer.expires_at <= now:
            self._transition(offer, OfferStatus.EXPIRED, "expired", actor_id=None)
            self.outbox.stage(NotificationEvent.OFFER_EXPIRED, offer.id, offer.host_id, offer.creator_id)
            self._commit(offer.id)
            logger.info(f"Offer {offer.id} expired on access")
            raise InvalidTransition("Offer has expired", current_status=OfferStatus.EXPIRED.value)

    @staticmethod
    def _counter_amount(offer: Offer, amount: Optional[int]) -> int:
        if offer.offer_type == OfferType.POST_FOR_STAY.value:
            raise ValidationError(
                "Post-for-stay offers carry no cash and cannot be countered with an amount",
                details={"current_status": offer.status},
            )
        if amount is None or isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(
                "Counter amount must be a positive integer",
                details={"current_status": offer.status},
            )
        return amount

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def create(self, host_id: str, creator_id: str, property_id: str, terms: OfferTerms) -> Offer:
        if host_id == creator_id:
            raise ValidationError("Host and creator must be different parties")
        validate_terms(terms)

        now = utcnow()
        offer = Offer(
            host_id=host_id,
            creator_id=creator_id,
            property_id=property_id,
            offer_type=terms.offer_type.value,
            cash_amount_minor=terms.cash_amount_minor,
            stay_nights=terms.stay_nights,
            traffic_bonus_enabled=terms.traffic_bonus_enabled,
            traffic_bonus_threshold_clicks=terms.traffic_bonus_threshold_clicks,
            traffic_bonus_amount_minor=terms.traffic_bonus_amount_minor,
            deliverables=[d.strip() for d in terms.deliverables],
            message=terms.message,
            content_deadline_days=terms.content_deadline_days,
            status=OfferStatus.PENDING.value,
            negotiation_round=1,
            created_at=now,
            expires_at=now + timedelta(days=settings.OFFER_EXPIRY_DAYS),
            terms_snapshot=terms.model_dump(mode="json"),
        )
        self.db.add(offer)
        self.db.flush()
        crud_transition_log.record(
            self.db,
            entity_type="offer",
            entity_id=offer.id,
            action="created",
            from_status=None,
            to_status=offer.status,
            actor_id=host_id,
            details={"cash_amount_minor": offer.cash_amount_minor},
        )
        self.outbox.stage(NotificationEvent.OFFER_CREATED, offer.id, creator_id)
        self._commit(offer.id)
        logger.info(f"Offer {offer.id} created by host {host_id} for creator {creator_id}")
        self.db.refresh(offer)
        return offer

    def respond_counter(
        self,
        offer_id: str,
        actor_id: str,
        action: str,
        re_counter_cash_amount_minor: Optional[int] = None,
        re_counter_message: Optional[str] = None,
    ) -> Offer:
        """
        Creator responds to a pending offer, or host responds to a counter.

        ``counter`` and ``re-counter`` are the same action; whether it is a
        creator counter or a host re-counter follows from the status.
        """
        try:
            action = OfferAction(action)
        except ValueError:
            raise ValidationError(f"Unknown offer action '{action}'")

        offer = self.get(offer_id)
        if actor_id not in (offer.host_id, offer.creator_id):
            raise Forbidden("Not a party to this offer", details={"current_status": offer.status})
        if not offer.is_open:
            raise InvalidTransition(
                f"Offer is already {offer.status}", current_status=offer.status
            )
        now = utcnow()
        self._expire_if_due(offer, now)

        actor_role = "host" if actor_id == offer.host_id else "creator"
        if RESPONDER_ROLE[offer.status] != actor_role:
            raise InvalidTransition(
                f"The {actor_role} cannot respond while the offer is {offer.status}",
                current_status=offer.status,
            )

        if action == OfferAction.ACCEPT:
            return self._accept(offer, actor_id, now)

        if action == OfferAction.DECLINE:
            self._transition(offer, OfferStatus.DECLINED, "declined", actor_id)
            offer.responded_at = now
            recipient = offer.host_id if actor_role == "creator" else offer.creator_id
            self.outbox.stage(NotificationEvent.OFFER_DECLINED, offer.id, recipient)
            self._commit(offer.id)
            logger.info(f"Offer {offer.id} declined by {actor_role}")
            self.db.refresh(offer)
            return offer

        amount = self._counter_amount(offer, re_counter_cash_amount_minor)
        if offer.status == OfferStatus.PENDING.value:
            # Creator counter
            self._transition(
                offer, OfferStatus.COUNTERED, "countered", actor_id,
                details={
                    "round": offer.negotiation_round,
                    "offered_cash_amount_minor": offer.cash_amount_minor,
                    "counter_cash_amount_minor": amount,
                    "message": re_counter_message,
                },
            )
            offer.counter_cash_amount_minor = amount
            offer.counter_message = re_counter_message
            offer.negotiation_round += 1
            offer.responded_at = now
            self.outbox.stage(NotificationEvent.OFFER_COUNTERED, offer.id, offer.host_id)
        else:
            # Host re-counter opens a fresh pending round on the same record
            validate_terms(OfferTerms(**{**offer.terms(), "cash_amount_minor": amount}))
            details = {
                "round": offer.negotiation_round,
                "countered_cash_amount_minor": offer.counter_cash_amount_minor,
                "re_counter_cash_amount_minor": amount,
                "message": re_counter_message,
            }
            self._transition(offer, OfferStatus.PENDING, "re-countered", actor_id, details=details)
            offer.cash_amount_minor = amount
            if re_counter_message:
                offer.message = re_counter_message
            offer.negotiation_round += 1
            offer.responded_at = now
            self.outbox.stage(NotificationEvent.OFFER_RE_COUNTERED, offer.id, offer.creator_id)

        self._commit(offer.id)
        logger.info(f"Offer {offer.id} {action.value} by {actor_role}: {amount}")
        self.db.refresh(offer)
        return offer

    def _accept(self, offer: Offer, actor_id: str, now: datetime) -> Offer:
        details = None
        if offer.status == OfferStatus.COUNTERED.value:
            # Host accepts the creator's counter: it becomes the agreed amount
            details = {
                "previous_cash_amount_minor": offer.cash_amount_minor,
                "accepted_cash_amount_minor": offer.counter_cash_amount_minor,
            }
            offer.cash_amount_minor = offer.counter_cash_amount_minor
        self._transition(offer, OfferStatus.ACCEPTED, "accepted", actor_id, details=details)
        offer.responded_at = now

        try:
            collaboration = self.collaborations.spawn(offer)
        except Exception:
            self.db.rollback()
            self.outbox.discard()
            raise
        recipient = offer.host_id if actor_id == offer.creator_id else offer.creator_id
        self.outbox.stage(NotificationEvent.OFFER_ACCEPTED, offer.id, recipient)
        self._commit(offer.id)
        logger.info(f"Offer {offer.id} accepted; collaboration {collaboration.id} requested")
        self.db.refresh(offer)
        return offer

    def withdraw(self, offer_id: str, host_id: str) -> Offer:
        offer = self.get(offer_id)
        if host_id != offer.host_id:
            raise Forbidden(
                "Only the host who sent the offer can withdraw it",
                details={"current_status": offer.status},
            )
        if not offer.is_open:
            raise InvalidTransition(
                f"Offer is already {offer.status}", current_status=offer.status
            )
        self._expire_if_due(offer, utcnow())

        self._transition(offer, OfferStatus.WITHDRAWN, "withdrawn", host_id)
        self.outbox.stage(NotificationEvent.OFFER_WITHDRAWN, offer.id, offer.creator_id)
        self._commit(offer.id)
        logger.info(f"Offer {offer.id} withdrawn")
        self.db.refresh(offer)
        return offer

    def expire_sweep(self, now: Optional[datetime] = None) -> int:
        """
        Expire every open offer whose expires_at <= now. Returns how many were expired.

        Each offer is its own versioned commit. An offer that a user moved in
        the meantime is skipped; re-running finds nothing left to do.
        """
        now = now or utcnow()
        expired = 0
        for offer in crud_offer.list_expired_open(self.db, now=now):
            offer_id = offer.id
            if not offer.is_open or offer.expires_at > now:
                continue
            self._transition(offer, OfferStatus.EXPIRED, "expired", actor_id=None)
            self.outbox.stage(NotificationEvent.OFFER_EXPIRED, offer_id, offer.host_id, offer.creator_id)
            try:
                self._commit(offer_id)
            except ConcurrentModification as e:
                logger.info(f"Offer {offer_id} changed during expiry sweep; now {e.current_status}")
                continue
            expired += 1
        if expired:
            logger.info(f"Expired {expired} offers")
        return expired

    def warn_expiring(self, now: Optional[datetime] = None, window_hours: Optional[int] = None) -> int:
        """Tell creators about open offers expiring within the window. Each offer is warned once."""
        now = now or utcnow()
        if window_hours is None:
            window_hours = settings.OFFER_EXPIRY_WARNING_HOURS
        window = timedelta(hours=window_hours)
        warned = 0
        for offer in crud_offer.list_expiring_unwarned(self.db, now=now, until=now + window):
            if crud_offer.mark_expiry_warned(self.db, offer_id=offer.id, warned_at=now):
                self.outbox.stage(NotificationEvent.OFFER_EXPIRING_SOON, offer.id, offer.creator_id)
                warned += 1
        self.db.commit()
        self.outbox.flush()
        return warned

    def resend(self, offer_id: str, host_id: str) -> Offer:
        """Copy the terms of an expired or declined offer into a new pending offer."""
        source = self.get(offer_id)
        if host_id != source.host_id:
            raise Forbidden(
                "Only the host who sent the offer can resend it",
                details={"current_status": source.status},
            )
        if source.status not in RESENDABLE_OFFER_STATUSES:
            raise InvalidTransition(
                f"Only expired or declined offers can be resent; offer is {source.status}",
                current_status=source.status,
            )

        now = utcnow()
        offer = Offer(
            host_id=source.host_id,
            creator_id=source.creator_id,
            property_id=source.property_id,
            offer_type=source.offer_type,
            cash_amount_minor=source.cash_amount_minor,
            stay_nights=source.stay_nights,
            traffic_bonus_enabled=source.traffic_bonus_enabled,
            traffic_bonus_threshold_clicks=source.traffic_bonus_threshold_clicks,
            traffic_bonus_amount_minor=source.traffic_bonus_amount_minor,
            deliverables=list(source.deliverables or []),
            message=source.message,
            content_deadline_days=source.content_deadline_days,
            status=OfferStatus.PENDING.value,
            negotiation_round=1,
            resent_from_id=source.id,
            created_at=now,
            expires_at=now + timedelta(days=settings.OFFER_EXPIRY_DAYS),
            terms_snapshot=source.terms(),
        )
        self.db.add(offer)
        self.db.flush()
        crud_transition_log.record(
            self.db,
            entity_type="offer",
            entity_id=offer.id,
            action="resent",
            from_status=None,
            to_status=offer.status,
            actor_id=host_id,
            details={"resent_from_id": source.id},
        )
        self.outbox.stage(NotificationEvent.OFFER_RESENT, offer.id, offer.creator_id)
        self._commit(offer.id)
        logger.info(f"Offer {source.id} resent as {offer.id}")
        self.db.refresh(offer)
        return offer

    def mark_viewed(self, offer_id: str, creator_id: str) -> Offer:
        offer = self.get(offer_id)
        if creator_id != offer.creator_id:
            raise Forbidden("Only the creator can mark an offer as viewed")
        if offer.viewed_at is None:
            crud_offer.mark_viewed(self.db, offer_id=offer_id, viewed_at=utcnow())
            self.db.commit()
            self.db.refresh(offer)
        return offer
