# app/services/collaboration_engine.py
"""
Collaboration engine: the lifecycle after an offer is accepted.

pending-agreement -> active -> content-submitted -> approved -> completed,
plus the cancellation branch X -> cancellation-requested -> {cancelled | X}.

Every mutation validates actor and status, stages its log row and
notifications, and commits under the row_version check. Payment gateway
calls happen between two commits: the payment is first marked pending,
then completed or restored once the gateway answers. Nothing else about
the collaboration changes on a gateway failure.
"""
import asyncio
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConcurrentModification,
    Forbidden,
    GatewayFailure,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from app.crud import crud_collaboration, crud_transition_log
from app.crud.base import commit_versioned
from app.db.types import utcnow
from app.models.agreement import Agreement
from app.models.collaboration import Collaboration
from app.models.offer import Offer
from app.schemas.collaboration import (
    BonusStatus,
    CancellationDecision,
    CollaborationStatus,
    DeadlineStage,
    PaymentStatus,
    PlatformFeeStatus,
    ReviewDecision,
    can_transition,
)
from app.schemas.offer import OfferTerms, OfferType
from app.services.agreement_engine import AgreementService
from app.services.notifier import NotificationEvent, NotificationOutbox, Notifier
from app.services.offer_validation import validate_terms
from app.services.payment.fee_calculator import (
    FeeCalculator,
    PaymentBreakdown,
    get_fee_calculator,
)
from app.services.payment.gateway_interface import (
    ChargeParams,
    ChargePurpose,
    PaymentGateway,
    PaymentGatewayError,
)
from app.services.traffic_bonus import TrafficBonusTracker

logger = logging.getLogger(__name__)

MIN_CHANGE_REQUEST_FEEDBACK = 10
# Attempts at writing a gateway outcome back when the row moved underneath us
OUTCOME_WRITE_ATTEMPTS = 3


def _valid_link(link: str) -> bool:
    parsed = urlparse(link.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def deadline_stage(content_deadline: datetime, now: datetime) -> Optional[DeadlineStage]:
    """Reminder stage due today for a deadline, by UTC calendar days left."""
    days_left = (content_deadline.date() - now.date()).days
    if days_left < 0:
        return DeadlineStage.PASSED
    return {
        3: DeadlineStage.THREE_DAYS,
        1: DeadlineStage.ONE_DAY,
        0: DeadlineStage.DAY_OF,
    }.get(days_left)


DEADLINE_STAGE_EVENTS = {
    DeadlineStage.THREE_DAYS: NotificationEvent.CONTENT_DEADLINE_APPROACHING,
    DeadlineStage.ONE_DAY: NotificationEvent.CONTENT_DEADLINE_APPROACHING,
    DeadlineStage.DAY_OF: NotificationEvent.CONTENT_DEADLINE_TODAY,
    DeadlineStage.PASSED: NotificationEvent.CONTENT_DEADLINE_PASSED,
}


class CollaborationService:
    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        gateway: Optional[PaymentGateway] = None,
        fee_calculator: Optional[FeeCalculator] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.fee_calculator = fee_calculator or get_fee_calculator()
        self.outbox = NotificationOutbox(notifier)
        self.agreements = AgreementService(
            db, self.outbox, on_executed=self._on_agreement_executed,
            fee_calculator=self.fee_calculator,
        )
        self.traffic = TrafficBonusTracker(db, self.outbox)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, collaboration_id: str) -> Collaboration:
        collaboration = crud_collaboration.get(self.db, collaboration_id)
        if not collaboration:
            raise NotFound(f"Collaboration {collaboration_id} not found")
        return collaboration

    def get_for_party(self, collaboration_id: str, party_id: str) -> Collaboration:
        collaboration = self.get(collaboration_id)
        if collaboration.party_role(party_id) is None:
            raise Forbidden("Not a party to this collaboration")
        return collaboration

    def list_for_party(self, party_id: str, status: Optional[str] = None) -> List[Collaboration]:
        return crud_collaboration.list_for_party(self.db, party_id=party_id, status=status)

    def payment_breakdown(self, collaboration: Collaboration) -> PaymentBreakdown:
        agreement = collaboration.agreement
        return self.fee_calculator.calculate(agreement.deal_type, agreement.cash_amount_minor)

    @staticmethod
    def affiliate_link(collaboration: Collaboration) -> Optional[str]:
        if not collaboration.affiliate_token:
            return None
        return f"{settings.AFFILIATE_LINK_BASE_URL.rstrip('/')}/{collaboration.affiliate_token}"

    def bonus_status(self, collaboration: Collaboration) -> BonusStatus:
        return self.traffic.bonus_status(collaboration)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _log(self, collaboration: Collaboration, action: str, from_status: str,
             actor_id: Optional[str] = None, details: Optional[dict] = None) -> None:
        crud_transition_log.record(
            self.db,
            entity_type="collaboration",
            entity_id=collaboration.id,
            action=action,
            from_status=from_status,
            to_status=collaboration.status,
            actor_id=actor_id,
            details=details,
        )

    def _commit(self, collaboration_id: str) -> None:
        try:
            commit_versioned(self.db, entity="collaboration", entity_id=collaboration_id)
        except Exception:
            self.outbox.discard()
            raise
        self.outbox.flush()

    def _require_host(self, collaboration: Collaboration, actor_id: str) -> None:
        if actor_id != collaboration.host_id:
            raise Forbidden(
                "Only the host can perform this action",
                details={"current_status": collaboration.status},
            )

    def _require_creator(self, collaboration: Collaboration, actor_id: str) -> None:
        if actor_id != collaboration.creator_id:
            raise Forbidden(
                "Only the creator can perform this action",
                details={"current_status": collaboration.status},
            )

    def _require_status(self, collaboration: Collaboration, expected: CollaborationStatus, action: str) -> None:
        if collaboration.status != expected.value:
            raise InvalidTransition(
                f"Cannot {action} while collaboration is {collaboration.status}",
                current_status=collaboration.status,
            )

    def _require_transition(
        self,
        collaboration: Collaboration,
        to_status: CollaborationStatus,
        action: str,
        from_status: Optional[CollaborationStatus] = None,
    ) -> None:
        """Reject ``action`` unless VALID_TRANSITIONS allows the move it would make."""
        if from_status is not None:
            self._require_status(collaboration, from_status, action)
        if not can_transition(collaboration.status, to_status.value):
            raise InvalidTransition(
                f"Cannot {action} while collaboration is {collaboration.status}",
                current_status=collaboration.status,
            )

    def _move(self, collaboration: Collaboration, to_status: str, action: str,
              actor_id: Optional[str] = None, details: Optional[dict] = None) -> None:
        """Change status through VALID_TRANSITIONS and log the move."""
        previous = collaboration.status
        if not can_transition(previous, to_status):
            raise InvalidTransition(
                f"Collaboration cannot move from {previous} to {to_status}",
                current_status=previous,
            )
        collaboration.status = to_status
        self._log(collaboration, action, previous, actor_id=actor_id, details=details)

    def _mint_affiliate_token(self, collaboration: Collaboration) -> None:
        if collaboration.affiliate_token is None:
            collaboration.affiliate_token = secrets.token_urlsafe(16)

    async def _charge(self, params: ChargeParams) -> Optional[str]:
        """Run one gateway charge. Returns None on success, else a failure message."""
        if self.gateway is None:
            logger.error(f"No payment gateway configured for {params.purpose.value} charge")
            return "Payment gateway is not configured"
        try:
            result = await asyncio.wait_for(
                self.gateway.charge(params),
                timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"Gateway timed out on {params.idempotency_key}")
            return "Payment gateway timed out"
        except PaymentGatewayError as e:
            logger.error(f"Gateway error on {params.idempotency_key}: {e.code} {e.message}")
            return e.message
        if result.succeeded:
            logger.info(f"Charge {params.idempotency_key} succeeded ({result.charge_id})")
            return None
        logger.warning(
            f"Charge {params.idempotency_key} failed: {result.failure_code} {result.failure_message}"
        )
        return result.failure_message or "Payment failed"

    def _write_outcome(self, collaboration_id: str, apply: Callable[[Collaboration], None]) -> Collaboration:
        """
        Record a gateway outcome on a fresh read of the row.

        The charge already happened, so a concurrent edit must not lose it:
        re-read and re-apply a bounded number of times.
        """
        for attempt in range(1, OUTCOME_WRITE_ATTEMPTS + 1):
            collaboration = self.get(collaboration_id)
            apply(collaboration)
            try:
                self._commit(collaboration_id)
            except ConcurrentModification:
                if attempt == OUTCOME_WRITE_ATTEMPTS:
                    raise
                logger.warning(
                    f"Retrying outcome write for collaboration {collaboration_id} (attempt {attempt})"
                )
                continue
            self.db.refresh(collaboration)
            return collaboration

    # ------------------------------------------------------------------ #
    # Spawn / activation
    # ------------------------------------------------------------------ #

    def spawn(self, offer: Offer) -> Collaboration:
        """
        Create the collaboration and its draft agreement for an accepted offer.

        Staged only; the offer engine commits it with the offer transition.
        """
        if crud_collaboration.get_by_offer(self.db, offer.id) is not None:
            raise InvalidState(
                f"Offer {offer.id} already has a collaboration",
                current_status=offer.status,
            )
        is_post_for_stay = offer.offer_type == OfferType.POST_FOR_STAY.value
        collaboration = Collaboration(
            id=f"col_{uuid.uuid4().hex[:12]}",
            offer=offer,
            host_id=offer.host_id,
            creator_id=offer.creator_id,
            property_id=offer.property_id,
            status=CollaborationStatus.PENDING_AGREEMENT.value,
            fee_pending=False,
            payment_status=PaymentStatus.UNPAID.value,
            platform_fee_status=(
                PlatformFeeStatus.UNPAID.value if is_post_for_stay
                else PlatformFeeStatus.NOT_REQUIRED.value
            ),
            content_links=[],
            clicks_generated=0,
        )
        self.db.add(collaboration)
        collaboration.agreement = self.agreements.draft(collaboration, offer)
        self._log(collaboration, "requested", from_status=None, details={"offer_id": offer.id})
        self.outbox.stage(
            NotificationEvent.COLLABORATION_REQUESTED,
            collaboration.id,
            offer.host_id,
            offer.creator_id,
        )
        return collaboration

    def _on_agreement_executed(self, collaboration: Collaboration, now: datetime) -> None:
        # The tracking token belongs to the executed agreement, even while a fee is outstanding
        self._mint_affiliate_token(collaboration)
        self.activate(collaboration, now)

    def activate(self, collaboration: Collaboration, now: Optional[datetime] = None) -> bool:
        """
        Move pending-agreement to active if every gate is satisfied.

        Post-for-stay deals also need the platform fee; until then the
        collaboration stays pending with ``fee_pending`` set. Runs inside the
        caller's transaction. Returns True if the collaboration was activated.
        """
        now = now or utcnow()
        if collaboration.status != CollaborationStatus.PENDING_AGREEMENT.value:
            return False
        agreement: Agreement = collaboration.agreement
        if agreement is None or not agreement.is_fully_executed:
            return False

        self._mint_affiliate_token(collaboration)
        if (
            agreement.deal_type == OfferType.POST_FOR_STAY.value
            and collaboration.platform_fee_status != PlatformFeeStatus.COMPLETED.value
        ):
            if not collaboration.fee_pending:
                collaboration.fee_pending = True
                self._log(collaboration, "activation-deferred", from_status=collaboration.status,
                          details={"reason": "platform-fee-unpaid"})
                logger.info(f"Collaboration {collaboration.id} waiting on platform fee")
            return False

        self._move(collaboration, CollaborationStatus.ACTIVE.value, "activated")
        collaboration.fee_pending = False
        collaboration.activated_at = now
        self.outbox.stage(
            NotificationEvent.COLLABORATION_ACTIVATED,
            collaboration.id,
            collaboration.host_id,
            collaboration.creator_id,
        )
        logger.info(f"Collaboration {collaboration.id} activated")
        return True

    def sign_agreement(self, collaboration_id: str, actor_id: str) -> Agreement:
        """Sign the collaboration's agreement in the role the actor holds."""
        collaboration = self.get(collaboration_id)
        role = collaboration.party_role(actor_id)
        if role is None:
            raise Forbidden(
                "Not a party to this collaboration",
                details={"current_status": collaboration.status},
            )
        return self.agreements.sign(collaboration.agreement_id, role, actor_id=actor_id)

    def amend_terms(
        self,
        collaboration_id: str,
        host_id: str,
        cash_amount_minor: Optional[int] = None,
        deliverables: Optional[List[str]] = None,
    ) -> Agreement:
        """Host changes cash or deliverables before execution; signatures reset."""
        collaboration = self.get(collaboration_id)
        self._require_host(collaboration, host_id)
        self._require_status(collaboration, CollaborationStatus.PENDING_AGREEMENT, "amend terms")
        if cash_amount_minor is None and deliverables is None:
            raise ValidationError("Nothing to amend")

        agreement = collaboration.agreement
        if agreement.is_fully_executed:
            raise InvalidState(
                "An executed agreement cannot be redrafted; request cancellation instead",
                current_status=collaboration.status,
            )
        offer = collaboration.offer
        validate_terms(
            OfferTerms(
                offer_type=agreement.deal_type,
                cash_amount_minor=(
                    cash_amount_minor if cash_amount_minor is not None else agreement.cash_amount_minor
                ),
                stay_nights=agreement.stay_nights,
                traffic_bonus_enabled=agreement.has_traffic_bonus,
                traffic_bonus_threshold_clicks=agreement.traffic_bonus_threshold_clicks,
                traffic_bonus_amount_minor=agreement.traffic_bonus_amount_minor,
                deliverables=deliverables if deliverables is not None else list(agreement.deliverables),
                content_deadline_days=offer.content_deadline_days,
            )
        )
        return self.agreements.redraft(
            collaboration_id,
            {"cash_amount_minor": cash_amount_minor, "deliverables": deliverables},
        )

    # ------------------------------------------------------------------ #
    # Platform fee (post-for-stay)
    # ------------------------------------------------------------------ #

    async def pay_platform_fee(self, collaboration_id: str, host_id: str) -> Collaboration:
        collaboration = self.get(collaboration_id)
        self._require_host(collaboration, host_id)
        if collaboration.platform_fee_status == PlatformFeeStatus.NOT_REQUIRED.value:
            raise InvalidTransition(
                "This deal has no platform fee",
                current_status=collaboration.status,
            )
        if collaboration.platform_fee_status == PlatformFeeStatus.COMPLETED.value:
            raise InvalidTransition(
                "Platform fee already paid",
                current_status=collaboration.status,
            )
        if collaboration.status in (
            CollaborationStatus.CANCELLED.value,
            CollaborationStatus.COMPLETED.value,
        ):
            raise InvalidTransition(
                f"Cannot pay the platform fee while collaboration is {collaboration.status}",
                current_status=collaboration.status,
            )

        breakdown = self.payment_breakdown(collaboration)
        if collaboration.platform_fee_status != PlatformFeeStatus.PENDING.value:
            collaboration.platform_fee_status = PlatformFeeStatus.PENDING.value
            self._commit(collaboration_id)

        failure = await self._charge(
            ChargeParams(
                payer_id=host_id,
                amount=breakdown.host_total_minor,
                currency=settings.PAYMENT_CURRENCY,
                purpose=ChargePurpose.PLATFORM_FEE,
                idempotency_key=f"platform-fee:{collaboration_id}",
                description=f"Platform fee for collaboration {collaboration_id}",
                metadata={"collaboration_id": collaboration_id},
            )
        )
        if failure:
            def restore(c: Collaboration) -> None:
                if c.platform_fee_status == PlatformFeeStatus.PENDING.value:
                    c.platform_fee_status = PlatformFeeStatus.UNPAID.value

            collaboration = self._write_outcome(collaboration_id, restore)
            raise GatewayFailure(
                f"Platform fee payment failed: {failure}",
                current_status=collaboration.status,
                details={"fee_pending": collaboration.fee_pending},
            )

        return self._write_outcome(collaboration_id, self._apply_platform_fee_paid)

    def confirm_platform_fee(self, collaboration_id: str) -> Collaboration:
        """System-side confirmation of a platform fee collected out of band."""
        collaboration = self.get(collaboration_id)
        if collaboration.platform_fee_status == PlatformFeeStatus.NOT_REQUIRED.value:
            raise InvalidTransition(
                "This deal has no platform fee",
                current_status=collaboration.status,
            )
        if collaboration.platform_fee_status == PlatformFeeStatus.COMPLETED.value:
            return collaboration
        return self._write_outcome(collaboration_id, self._apply_platform_fee_paid)

    def _apply_platform_fee_paid(self, collaboration: Collaboration) -> None:
        if collaboration.platform_fee_status == PlatformFeeStatus.COMPLETED.value:
            return
        now = utcnow()
        collaboration.platform_fee_status = PlatformFeeStatus.COMPLETED.value
        collaboration.platform_fee_paid_at = now
        self._log(collaboration, "platform-fee-paid", from_status=collaboration.status)
        self.outbox.stage(NotificationEvent.PLATFORM_FEE_PAID, collaboration.id, collaboration.host_id)
        # Resumes a deferred activation; no-op unless executed and still pending
        self.activate(collaboration, now)

    # ------------------------------------------------------------------ #
    # Content
    # ------------------------------------------------------------------ #

    def submit_content(self, collaboration_id: str, creator_id: str, links: List[str]) -> Collaboration:
        collaboration = self.get(collaboration_id)
        self._require_creator(collaboration, creator_id)
        self._require_transition(collaboration, CollaborationStatus.CONTENT_SUBMITTED, "submit content")
        cleaned = [link.strip() for link in links or [] if link and link.strip()]
        if not cleaned:
            raise ValidationError("At least one content link is required")
        invalid = [link for link in cleaned if not _valid_link(link)]
        if invalid:
            raise ValidationError("Content links must be http(s) URLs", details={"invalid_links": invalid})

        collaboration.content_links = cleaned
        collaboration.content_submitted_at = utcnow()
        self._move(collaboration, CollaborationStatus.CONTENT_SUBMITTED.value, "content-submitted",
                   actor_id=creator_id, details={"links": len(cleaned)})
        self.outbox.stage(NotificationEvent.CONTENT_SUBMITTED, collaboration.id, collaboration.host_id)
        self._commit(collaboration_id)
        logger.info(f"Content submitted for collaboration {collaboration_id}")
        self.db.refresh(collaboration)
        return collaboration

    def review_content(
        self,
        collaboration_id: str,
        host_id: str,
        decision: str,
        feedback: Optional[str] = None,
    ) -> Collaboration:
        try:
            decision = ReviewDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown review decision '{decision}'")
        collaboration = self.get(collaboration_id)
        self._require_host(collaboration, host_id)
        target = (
            CollaborationStatus.APPROVED if decision == ReviewDecision.APPROVE
            else CollaborationStatus.ACTIVE
        )
        self._require_transition(
            collaboration, target, "review content", from_status=CollaborationStatus.CONTENT_SUBMITTED
        )

        if decision == ReviewDecision.APPROVE:
            collaboration.content_approved_at = utcnow()
            event = NotificationEvent.CONTENT_APPROVED
            details = None
        else:
            if not feedback or len(feedback.strip()) < MIN_CHANGE_REQUEST_FEEDBACK:
                raise ValidationError(
                    f"Please provide feedback of at least {MIN_CHANGE_REQUEST_FEEDBACK} characters"
                )
            collaboration.change_request_feedback = feedback.strip()
            event = NotificationEvent.CONTENT_CHANGES_REQUESTED
            details = {"feedback": collaboration.change_request_feedback}

        self._move(collaboration, target.value, f"content-{decision.value}", actor_id=host_id, details=details)
        self.outbox.stage(event, collaboration.id, collaboration.creator_id)
        self._commit(collaboration_id)
        logger.info(f"Content for collaboration {collaboration_id}: {decision.value}")
        self.db.refresh(collaboration)
        return collaboration

    def warn_content_deadlines(self, now: Optional[datetime] = None) -> int:
        """
        Remind creators whose content is still outstanding on an active collaboration.

        Stages go out three days before the deadline, one day before, on the
        day, and once after it passed (to both parties). Each stage is sent at
        most once; a stage missed because no sweep ran that day is skipped.
        The collaboration status is never changed. Returns how many were sent.
        """
        now = now or utcnow()
        sent = 0
        candidates = crud_collaboration.list_awaiting_content(self.db, deadline_before=now + timedelta(days=4))
        for collaboration in candidates:
            stage = deadline_stage(collaboration.agreement.content_deadline, now)
            if stage is None:
                continue
            if not crud_collaboration.mark_deadline_stage(
                self.db, collaboration_id=collaboration.id, stage=stage.value, at=now
            ):
                continue
            recipients = [collaboration.creator_id]
            if stage == DeadlineStage.PASSED:
                recipients.append(collaboration.host_id)
            self.outbox.stage(DEADLINE_STAGE_EVENTS[stage], collaboration.id, *recipients)
            logger.info(f"Content deadline reminder ({stage.value}) for collaboration {collaboration.id}")
            sent += 1
        self.db.commit()
        self.outbox.flush()
        return sent

    # ------------------------------------------------------------------ #
    # Payment / completion
    # ------------------------------------------------------------------ #

    async def pay(self, collaboration_id: str, host_id: str) -> Collaboration:
        """
        Charge the host total (cash + markup) and complete the collaboration.

        Retryable after a GatewayFailure; the idempotency key is stable per
        collaboration so a retry can never double-charge.
        """
        collaboration = self.get(collaboration_id)
        self._require_host(collaboration, host_id)
        self._require_transition(collaboration, CollaborationStatus.COMPLETED, "pay")
        breakdown = self.payment_breakdown(collaboration)
        if collaboration.agreement.deal_type == OfferType.POST_FOR_STAY.value or not breakdown.requires_charge:
            raise InvalidTransition(
                "This deal has no cash compensation; complete it instead",
                current_status=collaboration.status,
            )

        if collaboration.payment_status == PaymentStatus.UNPAID.value:
            collaboration.payment_status = PaymentStatus.PENDING.value
            collaboration.payment_amount_minor = breakdown.host_total_minor
            self._log(collaboration, "payment-started", collaboration.status, actor_id=host_id,
                      details={"amount_minor": breakdown.host_total_minor})
            self._commit(collaboration_id)

        failure = await self._charge(
            ChargeParams(
                payer_id=host_id,
                amount=breakdown.host_total_minor,
                currency=settings.PAYMENT_CURRENCY,
                purpose=ChargePurpose.HOST_MARKUP,
                idempotency_key=f"collab-payment:{collaboration_id}",
                description=f"Collaboration {collaboration_id}",
                metadata={
                    "collaboration_id": collaboration_id,
                    "cash_amount_minor": str(breakdown.cash_amount_minor),
                    "host_fee_minor": str(breakdown.host_fee_minor),
                },
            )
        )
        if failure:
            def restore(c: Collaboration) -> None:
                if c.payment_status == PaymentStatus.PENDING.value:
                    c.payment_status = PaymentStatus.UNPAID.value

            collaboration = self._write_outcome(collaboration_id, restore)
            raise GatewayFailure(
                f"Payment failed: {failure}",
                current_status=collaboration.status,
                details={"payment_status": collaboration.payment_status},
            )

        def mark_paid(c: Collaboration) -> None:
            now = utcnow()
            c.payment_status = PaymentStatus.COMPLETED.value
            c.paid_at = now
            c.completed_at = now
            self._move(c, CollaborationStatus.COMPLETED.value, "paid", actor_id=host_id,
                       details={"amount_minor": breakdown.host_total_minor})
            self.outbox.stage(NotificationEvent.PAYMENT_COMPLETED, c.id, c.creator_id, c.host_id)
            self.outbox.stage(NotificationEvent.COLLABORATION_COMPLETED, c.id, c.creator_id, c.host_id)

        collaboration = self._write_outcome(collaboration_id, mark_paid)
        logger.info(f"Collaboration {collaboration_id} paid and completed")
        return collaboration

    def complete(self, collaboration_id: str, host_id: str) -> Collaboration:
        """Finish a deal with no cash compensation once content is approved."""
        collaboration = self.get(collaboration_id)
        self._require_host(collaboration, host_id)
        self._require_transition(collaboration, CollaborationStatus.COMPLETED, "complete")
        breakdown = self.payment_breakdown(collaboration)
        if collaboration.agreement.deal_type != OfferType.POST_FOR_STAY.value and breakdown.requires_charge:
            raise InvalidTransition(
                "Cash deals are completed by paying",
                current_status=collaboration.status,
            )

        collaboration.payment_status = PaymentStatus.COMPLETED.value
        collaboration.completed_at = utcnow()
        self._move(collaboration, CollaborationStatus.COMPLETED.value, "completed", actor_id=host_id)
        self.outbox.stage(
            NotificationEvent.COLLABORATION_COMPLETED,
            collaboration.id,
            collaboration.creator_id,
            collaboration.host_id,
        )
        self._commit(collaboration_id)
        self.db.refresh(collaboration)
        return collaboration

    # ------------------------------------------------------------------ #
    # Traffic bonus
    # ------------------------------------------------------------------ #

    def record_clicks(self, collaboration_id: str, delta: int) -> Collaboration:
        return self.traffic.record_clicks(collaboration_id, delta)

    async def pay_traffic_bonus(self, collaboration_id: str, host_id: str) -> Collaboration:
        collaboration = self.get(collaboration_id)
        self._require_host(collaboration, host_id)
        bonus = self.bonus_status(collaboration)
        if bonus != BonusStatus.PAYABLE:
            raise InvalidTransition(
                f"Traffic bonus is not payable ({bonus.value})",
                current_status=collaboration.status,
                details={"bonus_status": bonus.value},
            )
        if collaboration.status == CollaborationStatus.CANCELLED.value:
            raise InvalidTransition(
                "Collaboration was cancelled",
                current_status=collaboration.status,
            )

        amount = self.traffic.payable_amount(collaboration)
        failure = await self._charge(
            ChargeParams(
                payer_id=host_id,
                amount=amount,
                currency=settings.PAYMENT_CURRENCY,
                purpose=ChargePurpose.TRAFFIC_BONUS,
                idempotency_key=f"traffic-bonus:{collaboration_id}",
                description=f"Traffic bonus for collaboration {collaboration_id}",
                metadata={"collaboration_id": collaboration_id},
            )
        )
        if failure:
            raise GatewayFailure(
                f"Traffic bonus payment failed: {failure}",
                current_status=collaboration.status,
                details={"bonus_status": bonus.value},
            )

        def mark_bonus_paid(c: Collaboration) -> None:
            if c.traffic_bonus_paid_at is not None:
                return
            c.traffic_bonus_paid_at = utcnow()
            self._log(c, "traffic-bonus-paid", c.status, actor_id=host_id,
                      details={"amount_minor": amount})
            self.outbox.stage(NotificationEvent.TRAFFIC_BONUS_PAID, c.id, c.creator_id)

        return self._write_outcome(collaboration_id, mark_bonus_paid)

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #

    def request_cancellation(
        self, collaboration_id: str, actor_id: str, reason: Optional[str] = None
    ) -> Collaboration:
        collaboration = self.get(collaboration_id)
        role = collaboration.party_role(actor_id)
        if role is None:
            raise Forbidden(
                "Not a party to this collaboration",
                details={"current_status": collaboration.status},
            )
        self._require_transition(
            collaboration, CollaborationStatus.CANCELLATION_REQUESTED, "request cancellation"
        )
        if (
            collaboration.payment_status != PaymentStatus.UNPAID.value
            or collaboration.platform_fee_status == PlatformFeeStatus.PENDING.value
        ):
            raise InvalidTransition(
                "Cannot cancel while a payment is processing or completed",
                current_status=collaboration.status,
                details={"payment_status": collaboration.payment_status},
            )

        collaboration.status_before_cancellation = collaboration.status
        collaboration.cancellation_requested_by = actor_id
        collaboration.cancellation_requested_by_role = role
        collaboration.cancellation_reason = reason.strip() if reason else None
        collaboration.cancellation_requested_at = utcnow()
        collaboration.cancellation_declined_at = None
        self._move(collaboration, CollaborationStatus.CANCELLATION_REQUESTED.value, "cancellation-requested",
                   actor_id=actor_id, details={"reason": collaboration.cancellation_reason})

        other_party = collaboration.creator_id if role == "host" else collaboration.host_id
        self.outbox.stage(NotificationEvent.CANCELLATION_REQUESTED, collaboration.id, other_party)
        self._commit(collaboration_id)
        logger.info(f"Cancellation requested on collaboration {collaboration_id} by {role}")
        self.db.refresh(collaboration)
        return collaboration

    def respond_cancellation(self, collaboration_id: str, actor_id: str, decision: str) -> Collaboration:
        try:
            decision = CancellationDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown cancellation decision '{decision}'")
        collaboration = self.get(collaboration_id)
        if collaboration.party_role(actor_id) is None:
            raise Forbidden(
                "Not a party to this collaboration",
                details={"current_status": collaboration.status},
            )
        self._require_transition(collaboration, CollaborationStatus.CANCELLED, "respond to cancellation")
        if actor_id == collaboration.cancellation_requested_by:
            raise Forbidden(
                "The other party must respond to a cancellation request",
                details={"current_status": collaboration.status},
            )

        now = utcnow()
        requester = collaboration.cancellation_requested_by
        if decision == CancellationDecision.ACCEPT:
            collaboration.cancelled_at = now
            collaboration.fee_pending = False
            self._move(collaboration, CollaborationStatus.CANCELLED.value, "cancelled", actor_id=actor_id)
            self.outbox.stage(NotificationEvent.CANCELLATION_ACCEPTED, collaboration.id, requester)
        else:
            collaboration.cancellation_declined_at = now
            self._move(collaboration, collaboration.status_before_cancellation, "cancellation-declined",
                       actor_id=actor_id)
            self.outbox.stage(NotificationEvent.CANCELLATION_DECLINED, collaboration.id, requester)
            # Execution or fee payment may have completed while the request was open
            self.activate(collaboration, now)

        self._commit(collaboration_id)
        logger.info(f"Cancellation on collaboration {collaboration_id}: {decision.value}")
        self.db.refresh(collaboration)
        return collaboration
