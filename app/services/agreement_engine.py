# app/services/agreement_engine.py
"""
Agreement engine: contract rendering, versioning and the two-party signature.

The second signature flips ``is_fully_executed`` and activates the
collaboration in the same versioned commit. Both rows are written with
``WHERE row_version = <read value>``, so of two signers racing on stale
reads only one commits; the other gets ConcurrentModification and, on
retry, sees the first signature. Activation therefore fires exactly once.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import (
    AlreadySigned,
    Forbidden,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from app.crud import crud_agreement, crud_collaboration, crud_transition_log
from app.crud.base import commit_versioned
from app.db.types import utcnow
from app.models.agreement import Agreement
from app.models.collaboration import Collaboration
from app.models.offer import Offer
from app.schemas.collaboration import CollaborationStatus, PartyRole
from app.schemas.offer import OfferType
from app.services.notifier import NotificationEvent, NotificationOutbox
from app.services.payment.fee_calculator import FeeCalculator, get_fee_calculator

logger = logging.getLogger(__name__)

DEAL_TYPE_LABELS = {
    OfferType.FLAT.value: "Flat fee",
    OfferType.FLAT_WITH_BONUS.value: "Flat fee + traffic bonus",
    OfferType.POST_FOR_STAY.value: "Post for stay",
}


def _money(amount_minor: int) -> str:
    return f"${amount_minor / 100:,.2f}"


def render_agreement_text(
    *,
    agreement_id: str,
    version: int,
    host_id: str,
    creator_id: str,
    property_id: str,
    deal_type: str,
    cash_amount_minor: int,
    stay_nights: Optional[int],
    deliverables: List[str],
    traffic_bonus_threshold_clicks: Optional[int],
    traffic_bonus_amount_minor: Optional[int],
    content_deadline: datetime,
    rendered_at: datetime,
    fee_calculator: FeeCalculator,
) -> str:
    breakdown = fee_calculator.calculate(deal_type, cash_amount_minor)
    lines = [
        "COLLABORATION AGREEMENT",
        f"Agreement ID: {agreement_id}",
        f"Version: {version}",
        f"Date: {rendered_at.date().isoformat()}",
        "",
        "PARTIES",
        f"Host: {host_id}",
        f"Creator: {creator_id}",
        f"Property: {property_id}",
        "",
        "DEAL",
        f"Type: {DEAL_TYPE_LABELS.get(deal_type, deal_type)}",
    ]
    if deal_type == OfferType.POST_FOR_STAY.value:
        lines.append(f"Compensation: {stay_nights} night stay")
        lines.append(f"Platform fee (host): {_money(breakdown.host_fee_minor)} flat")
    else:
        lines += [
            f"Compensation: {_money(cash_amount_minor)}",
            f"Platform fee (host): {fee_calculator.host_markup_percent:g}% "
            f"({_money(breakdown.host_fee_minor)}); host total {_money(breakdown.host_total_minor)}",
            f"Platform fee (creator): {fee_calculator.creator_fee_percent:g}% "
            f"({_money(breakdown.creator_fee_minor)}); creator receives {_money(breakdown.creator_net_minor)}",
        ]
    if traffic_bonus_threshold_clicks and traffic_bonus_amount_minor:
        lines.append(
            f"Traffic bonus: {_money(traffic_bonus_amount_minor)} once the tracking "
            f"link reaches {traffic_bonus_threshold_clicks:,} clicks"
        )
    lines += ["", "DELIVERABLES"]
    lines += [f"{i}. {item}" for i, item in enumerate(deliverables, start=1)]
    lines += [
        "",
        f"Content deadline: {content_deadline.date().isoformat()}",
        "",
        "TERMS",
        "1. The creator delivers the content listed above by the content deadline.",
        "2. The host reviews submitted content and either approves it or requests changes with feedback.",
        "3. Cash compensation is paid through the platform after the host approves the content.",
        "4. Either party may request cancellation; it takes effect only if the other party accepts.",
        "5. This agreement takes effect once both the host and the creator have signed it.",
    ]
    return "\n".join(lines)


class AgreementService:
    def __init__(
        self,
        db: Session,
        outbox: NotificationOutbox,
        on_executed: Callable[[Collaboration, datetime], None],
        fee_calculator: Optional[FeeCalculator] = None,
    ):
        self.db = db
        self.outbox = outbox
        self.on_executed = on_executed
        self.fee_calculator = fee_calculator or get_fee_calculator()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, agreement_id: str) -> Agreement:
        agreement = crud_agreement.get(self.db, agreement_id)
        if not agreement:
            raise NotFound(f"Agreement {agreement_id} not found")
        return agreement

    def get_for_collaboration(self, collaboration_id: str) -> Agreement:
        agreement = crud_agreement.get_for_collaboration(self.db, collaboration_id)
        if not agreement:
            raise NotFound(f"No agreement for collaboration {collaboration_id}")
        return agreement

    # ------------------------------------------------------------------ #
    # Draft / redraft
    # ------------------------------------------------------------------ #

    def _render(self, agreement: Agreement, collaboration: Collaboration, now: datetime) -> str:
        return render_agreement_text(
            agreement_id=agreement.id,
            version=agreement.version,
            host_id=collaboration.host_id,
            creator_id=collaboration.creator_id,
            property_id=collaboration.property_id,
            deal_type=agreement.deal_type,
            cash_amount_minor=agreement.cash_amount_minor,
            stay_nights=agreement.stay_nights,
            deliverables=list(agreement.deliverables or []),
            traffic_bonus_threshold_clicks=agreement.traffic_bonus_threshold_clicks,
            traffic_bonus_amount_minor=agreement.traffic_bonus_amount_minor,
            content_deadline=agreement.content_deadline,
            rendered_at=now,
            fee_calculator=self.fee_calculator,
        )

    def draft(self, collaboration: Collaboration, offer: Offer) -> Agreement:
        """
        Create version 1 from the accepted offer terms.

        Staged only; the caller commits it together with the offer's move to
        accepted.
        """
        now = utcnow()
        agreement = Agreement(
            id=f"agr_{uuid.uuid4().hex[:12]}",
            collaboration_id=collaboration.id,
            version=1,
            agreement_text="",
            deal_type=offer.offer_type,
            cash_amount_minor=offer.cash_amount_minor,
            stay_included=bool(offer.stay_nights),
            stay_nights=offer.stay_nights,
            deliverables=list(offer.deliverables or []),
            traffic_bonus_threshold_clicks=(
                offer.traffic_bonus_threshold_clicks if offer.traffic_bonus_enabled else None
            ),
            traffic_bonus_amount_minor=(
                offer.traffic_bonus_amount_minor if offer.traffic_bonus_enabled else None
            ),
            content_deadline=now + timedelta(days=offer.content_deadline_days),
        )
        agreement.agreement_text = self._render(agreement, collaboration, now)
        self.db.add(agreement)
        crud_transition_log.record(
            self.db,
            entity_type="agreement",
            entity_id=agreement.id,
            action="drafted",
            from_status=None,
            to_status="awaiting-signatures",
            details={"version": 1},
        )
        return agreement

    def redraft(self, collaboration_id: str, new_terms: dict) -> Agreement:
        """
        Replace the terms of a not-yet-executed agreement.

        Bumps the version, clears both signatures and re-renders the text.
        ``new_terms`` may carry cash_amount_minor and/or deliverables.
        """
        agreement = self.get_for_collaboration(collaboration_id)
        if agreement.is_fully_executed:
            raise InvalidState(
                "An executed agreement cannot be redrafted; request cancellation instead",
                current_status="executed",
            )
        collaboration = crud_collaboration.get(self.db, collaboration_id)

        now = utcnow()
        previous_version = agreement.version
        collaboration.updated_at = now
        if new_terms.get("cash_amount_minor") is not None:
            agreement.cash_amount_minor = new_terms["cash_amount_minor"]
        if new_terms.get("deliverables") is not None:
            agreement.deliverables = list(new_terms["deliverables"])
        agreement.version = previous_version + 1
        agreement.host_accepted_at = None
        agreement.creator_accepted_at = None
        agreement.agreement_text = self._render(agreement, collaboration, now)

        crud_transition_log.record(
            self.db,
            entity_type="agreement",
            entity_id=agreement.id,
            action="redrafted",
            from_status="awaiting-signatures",
            to_status="awaiting-signatures",
            details={"version": agreement.version, "previous_version": previous_version},
        )
        self.outbox.stage(
            NotificationEvent.AGREEMENT_REDRAFTED,
            collaboration_id,
            collaboration.host_id,
            collaboration.creator_id,
        )
        self._commit(agreement.id)
        logger.info(f"Agreement {agreement.id} redrafted to version {agreement.version}")
        self.db.refresh(agreement)
        return agreement

    # ------------------------------------------------------------------ #
    # Signing
    # ------------------------------------------------------------------ #

    def sign(self, agreement_id: str, actor_role: str, actor_id: Optional[str] = None) -> Agreement:
        try:
            role = PartyRole(actor_role)
        except ValueError:
            raise ValidationError(f"Unknown signer role '{actor_role}'")

        agreement = self.get(agreement_id)
        collaboration = crud_collaboration.get(self.db, agreement.collaboration_id)

        party_id = collaboration.host_id if role == PartyRole.HOST else collaboration.creator_id
        if actor_id is not None and actor_id != party_id:
            raise Forbidden(
                f"Only the collaboration's {role.value} can sign as {role.value}",
                details={"current_status": collaboration.status},
            )
        if agreement.signed_at(role.value) is not None:
            raise AlreadySigned(
                f"The {role.value} has already signed this agreement",
                current_status=collaboration.status,
            )
        if collaboration.status != CollaborationStatus.PENDING_AGREEMENT.value:
            raise InvalidTransition(
                f"Agreement cannot be signed while collaboration is {collaboration.status}",
                current_status=collaboration.status,
            )

        now = utcnow()
        # Writing the collaboration row puts its status under the same version check
        collaboration.updated_at = now
        if role == PartyRole.HOST:
            agreement.host_accepted_at = now
            counterparty_id = collaboration.creator_id
        else:
            agreement.creator_accepted_at = now
            counterparty_id = collaboration.host_id

        crud_transition_log.record(
            self.db,
            entity_type="agreement",
            entity_id=agreement.id,
            action=f"{role.value}-signed",
            from_status="awaiting-signatures",
            to_status="awaiting-signatures",
            actor_id=party_id,
            details={"version": agreement.version},
        )
        self.outbox.stage(NotificationEvent.AGREEMENT_SIGNED, collaboration.id, counterparty_id)

        if agreement.host_accepted_at is not None and agreement.creator_accepted_at is not None:
            agreement.is_fully_executed = True
            agreement.executed_at = now
            crud_transition_log.record(
                self.db,
                entity_type="agreement",
                entity_id=agreement.id,
                action="executed",
                from_status="awaiting-signatures",
                to_status="executed",
                actor_id=party_id,
            )
            self.outbox.stage(
                NotificationEvent.AGREEMENT_EXECUTED,
                collaboration.id,
                collaboration.host_id,
                collaboration.creator_id,
            )
            # Activation rides on the same commit
            self.on_executed(collaboration, now)

        self._commit(agreement.id)
        logger.info(
            f"Agreement {agreement.id} signed by {role.value}"
            + (" (fully executed)" if agreement.is_fully_executed else "")
        )
        self.db.refresh(agreement)
        return agreement

    def _commit(self, agreement_id: str) -> None:
        try:
            commit_versioned(self.db, entity="agreement", entity_id=agreement_id)
        except Exception:
            self.outbox.discard()
            raise
        self.outbox.flush()
